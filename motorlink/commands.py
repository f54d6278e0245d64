"""Command codes exchanged with the motor controller."""

from enum import IntEnum


class Command(IntEnum):
    """One-byte command codes that follow the frame header on the wire."""

    PING = 0
    READ_SUCCESS = 1
    READ_FAILURE = 2
    SYNC_TIME = 3
    START = 4
    STOP = 5
    RESET = 6
    STOP_ALL_BROADCAST = 7
    RESTORE_ALL_BROADCAST = 8

    SET_MOTOR_DATA = 9
    GET_MOTOR_DATA = 10
    SET_CONTROLLER_PROPERTIES = 11
    GET_CONTROLLER_PROPERTIES = 12
    INIT_MOTORS = 13

    GET_PID_CONSTANTS = 14
    SET_PID_CONSTANTS = 15
    SET_MOTOR_PWMS = 16
    GET_MOTOR_PWMS = 17
    SET_MOTOR_SPEED_SETPOINTS = 18
    SET_MOTOR_ANGLE_SETPOINTS = 19

    GET_MOTOR_SPEED = 20
    GET_MOTOR_ANGLE = 21
    SET_MOTOR_CONTROL_MODES = 22
    GET_MOTOR_CONTROL_MODES = 23
    SET_ODO_BROADCAST_STATUS = 24
    SEND_ODO_SPEEDS = 25
    SEND_ODO_ANGLES = 26
    SEND_ODO_PWMS = 27
    SEND_ODO_TIMESTAMPED_ANGLES = 28