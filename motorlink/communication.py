"""High-level requests to the motor controller."""

from __future__ import annotations

import struct
from typing import Any, Iterable, List, Optional

from .commands import Command
from .serialhandler import FRAME_HEADER, SerialHandler
from .signals import Signal
from .structs import (
    ControllerProperties,
    ControlMode,
    OdoBroadcastFlags,
    PidConstants,
    TimestampedAngle,
    WheelData,
)

# Each entry is laid out as in controller memory: padded to 16 bytes.
_TIMESTAMPED_ANGLE_WIRE = struct.Struct("<Qf4x")

_SETPOINT_COMMANDS = {
    ControlMode.PWM_DIRECT_CONTROL: Command.SET_MOTOR_PWMS,
    ControlMode.POSITION_CONTROL: Command.SET_MOTOR_ANGLE_SETPOINTS,
    ControlMode.SPEED_CONTROL: Command.SET_MOTOR_SPEED_SETPOINTS,
}


class CommunicationInterface:
    """Sends properties and setpoints and dispatches commands from the controller.

    Signals:
      connection_status_changed(status, message)
      property_set_update(status, message)
      encoder_odometry_received(list of TimestampedAngle)
      time_sync_reply_received()
    """

    def __init__(self, serial_handler: SerialHandler, ack_timeout_ms: int = 1000) -> None:
        self.serial_handler = serial_handler
        self.ack_timeout_ms = ack_timeout_ms
        self.num_wheels = 0

        self.connection_status_changed = Signal()
        self.property_set_update = Signal()
        self.controller_properties_received = Signal()
        self.motor_data_received = Signal()
        self.odometry_data_received = Signal()
        self.encoder_odometry_received = Signal()
        self.time_sync_reply_received = Signal()

        serial_handler.command_received.connect(self.command_received)

    def list_available_ports(self) -> List[Any]:
        return self.serial_handler.available_ports()

    def toggle_connect(self, port_name: str, baud_rate: int) -> None:
        """Disconnect if connected, otherwise connect; report the outcome."""
        if self.serial_handler.is_connected():
            self.serial_handler.disconnect()
            self.connection_status_changed.emit(False, "")
        else:
            self.connect_serial(port_name, baud_rate)

    def connect_serial(self, port_name: str, baud_rate: int) -> None:
        try:
            self.serial_handler.connect(port_name, baud_rate)
        except ConnectionError as exc:
            self.connection_status_changed.emit(False, str(exc))
        else:
            self.connection_status_changed.emit(True, "")

    def disconnect_serial(self) -> None:
        self.serial_handler.disconnect()

    def ping(self) -> Optional[int]:
        """Round-trip time in milliseconds, or None if no PING came back."""
        self.serial_handler.set_auto_read(False)
        self._stop_all_broadcast()
        elapsed = self.serial_handler.ping(Command.PING)
        self.serial_handler.set_auto_read(True)
        self._restore_all_broadcast()
        return elapsed

    def _stop_all_broadcast(self) -> bool:
        return self.serial_handler.send_command(Command.STOP_ALL_BROADCAST)

    def _restore_all_broadcast(self) -> bool:
        return self.serial_handler.send_command(Command.RESTORE_ALL_BROADCAST)

    def _acknowledge(self, command: Command, data: bytes, name: str) -> tuple:
        handler = self.serial_handler
        if not handler.send_command(command):
            return False, f"Failed to send {name} command"
        if not handler.send_data(data):
            return False, f"Failed to send {name}"
        reply = handler.read_command(self.ack_timeout_ms)
        if reply is None:
            return False, "acknowledgement not received"
        if reply == Command.READ_SUCCESS:
            return True, f"{name} sent, and set successfully"
        if reply == Command.READ_FAILURE:
            return False, f"{name} sent, but failed to set "
        return False, f"{name} sent, but unexpected value received as acknowledgement"

    def _send_property(self, command: Command, data: bytes, name: str) -> None:
        handler = self.serial_handler
        handler.set_auto_read(False)
        self._stop_all_broadcast()
        status, message = self._acknowledge(command, data, name)
        self.property_set_update.emit(status, message)
        handler.set_auto_read(True)
        self._restore_all_broadcast()
        handler.handle_ready_read()

    def send_controller_properties(self, properties: ControllerProperties) -> None:
        self.num_wheels = properties.num_motors
        self._send_property(
            Command.SET_CONTROLLER_PROPERTIES,
            properties.to_bytes(),
            "Controller Properties",
        )

    def send_wheel_data(self, motor_id: int, wheel_data: WheelData) -> None:
        data = bytes((motor_id & 0xFF,)) + wheel_data.to_bytes()
        self._send_property(
            Command.SET_MOTOR_DATA, data, f"Motor Data (Motor {motor_id + 1})"
        )

    def send_pid_constants(
        self, motor_id: int, pid_type: int, pid_constants: PidConstants
    ) -> None:
        data = bytes((motor_id & 0xFF, pid_type & 0xFF)) + pid_constants.to_bytes()
        kind = "Speed" if pid_type else "Angle"
        self._send_property(
            Command.SET_PID_CONSTANTS, data, f"PID Constants (Motor {motor_id} {kind})"
        )

    def send_odo_broadcast_status(self, motor_id: int, flags: OdoBroadcastFlags) -> None:
        data = bytes((motor_id & 0xFF,)) + flags.to_bytes()
        self._send_property(
            Command.SET_ODO_BROADCAST_STATUS,
            data,
            f"Odometry broadcast status for motor {motor_id}",
        )

    def send_setpoints(self, mode: ControlMode, setpoints: Iterable[float]) -> None:
        """Send one float per motor; modes without setpoints send nothing."""
        command = _SETPOINT_COMMANDS.get(mode)
        if command is None:
            return
        values = list(setpoints)
        payload = struct.pack(f"<{len(values)}f", *values)
        self.serial_handler.send_data(FRAME_HEADER + bytes((int(command),)) + payload)

    def send_control_mode(self, motor_id: int, control_mode: ControlMode) -> None:
        data = bytes((motor_id & 0xFF, int(control_mode)))
        self._send_property(
            Command.SET_MOTOR_CONTROL_MODES, data, f"Control Mode (Motor {motor_id})"
        )

    def _receive_odo_angles_timestamped(self) -> None:
        size = _TIMESTAMPED_ANGLE_WIRE.size * self.num_wheels
        data = self.serial_handler.read_data(size)
        if len(data) == size:
            angles = [
                TimestampedAngle(timestamp, angle)
                for timestamp, angle in _TIMESTAMPED_ANGLE_WIRE.iter_unpack(data)
            ]
            self.encoder_odometry_received.emit(angles)
        self.serial_handler.set_auto_read(True)

    def command_received(self, command: int) -> None:
        """Dispatch a command byte announced by the serial handler."""
        try:
            code = Command(command)
        except ValueError:
            return
        if code is Command.SYNC_TIME:
            self.time_sync_reply_received.emit()
        elif code is Command.SEND_ODO_TIMESTAMPED_ANGLES:
            self._receive_odo_angles_timestamped()