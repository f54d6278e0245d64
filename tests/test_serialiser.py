import json

import pytest

from motorlink.serialiser import (
    connections_wheel_from_json,
    control_mode_from_json,
    control_mode_to_json,
    controller_data_from_json,
    controller_properties_from_json,
    limits_pwm_from_json,
    odo_broadcast_flags_from_json,
    odometry_from_json,
    pid_from_json,
    serial_conn_details_from_json,
    setpoint_from_json,
    to_json,
    update_frequencies_from_json,
    wheel_data_from_json,
    wheel_update_frequencies_from_json,
)
from motorlink.structs import (
    ConnectionsWheel,
    ControllerData,
    ControllerProperties,
    ControlMode,
    LimitsPwm,
    OdoBroadcastFlags,
    OdometrySample,
    PidConstants,
    SerialConnDetails,
    Setpoint,
    UpdateFrequencies,
    WheelData,
    WheelUpdateFrequencies,
)


def _sample_wheel(motor_id):
    return WheelData(
        motor_id=motor_id,
        control_mode=ControlMode.SPEED_CONTROL,
        angle_pid_constants=PidConstants(1.5, 0.25, 0.5),
        speed_pid_constants=PidConstants(2.0, 0.125, 0.0),
        motor_connections=ConnectionsWheel(3, 4, 5, 6),
        odometry_data=OdometrySample(timestamp=1000, angle=2.0, rpm=12.5),
        setpoint=Setpoint(angle=7.0, rpm=3.5),
        odo_broadcast_status=OdoBroadcastFlags(True, False, True, False),
        update_frequencies_wheel=WheelUpdateFrequencies(100, 200, 300),
        radians_per_tick=0.25,
        pwm_value=40.0,
    )


def _sample_data():
    return ControllerData(
        conn_details=SerialConnDetails(port="/dev/ttyUSB0", baud=115200),
        wheel_data=[_sample_wheel(0), _sample_wheel(1)],
        controller_properties=ControllerProperties(
            run=True,
            num_motors=2,
            odo_broadcast_status=OdoBroadcastFlags(False, False, False, True),
            odo_broadcast_frequency=20,
            update_frequencies=UpdateFrequencies(60),
        ),
    )


@pytest.mark.parametrize(
    "obj, reader",
    [
        (PidConstants(1.5, 0.25, 0.5), pid_from_json),
        (LimitsPwm(-10, 100), limits_pwm_from_json),
        (ConnectionsWheel(1, 2, 3, 4), connections_wheel_from_json),
        (OdoBroadcastFlags(True, True, False, True), odo_broadcast_flags_from_json),
        (OdometrySample(5, 3.0, 1.5), odometry_from_json),
        (Setpoint(4.0, 2.5), setpoint_from_json),
        (WheelUpdateFrequencies(10, 20, 30), wheel_update_frequencies_from_json),
        (UpdateFrequencies(75), update_frequencies_from_json),
        (SerialConnDetails("/dev/ttyACM0", 9600), serial_conn_details_from_json),
    ],
)
def test_flat_structures_round_trip(obj, reader):
    assert reader(to_json(obj)) == obj


def test_wheel_data_round_trip():
    wheel = _sample_wheel(3)
    assert wheel_data_from_json(to_json(wheel)) == wheel


def test_controller_data_round_trip_through_json_text():
    data = _sample_data()
    text = json.dumps(to_json(data))
    assert controller_data_from_json(json.loads(text)) == data


def test_controller_properties_round_trip():
    props = _sample_data().controller_properties
    assert controller_properties_from_json(to_json(props)) == props


def test_wheel_data_keys_and_mode_name():
    encoded = to_json(_sample_wheel(0))
    assert list(encoded) == [
        "motor_id",
        "control_mode",
        "anglePIDConstants",
        "speedPIDConstants",
        "motorConnections",
        "odometryData",
        "setpoint",
        "odoBroadcastStatus",
        "updateFrequenciesWheel",
        "radians_per_tick",
        "pwmValue",
    ]
    assert encoded["control_mode"] == "SPEED_CONTROL"


def test_controller_data_keys():
    assert set(to_json(_sample_data())) == {
        "wheelData",
        "controllerProperties",
        "serialConnDetails",
    }


@pytest.mark.parametrize("mode", list(ControlMode))
def test_control_mode_round_trip(mode):
    assert control_mode_from_json(control_mode_to_json(mode)) is mode


@pytest.mark.parametrize("value", ["bogus", "", None, 2, "speed_control"])
def test_unknown_control_mode_is_off(value):
    assert control_mode_from_json(value) is ControlMode.OFF


def test_empty_object_gives_zeroed_wheel():
    wheel = wheel_data_from_json({})
    assert wheel.motor_id == 0
    assert wheel.control_mode is ControlMode.OFF
    assert wheel.radians_per_tick == 0.0
    assert wheel.update_frequencies_wheel == WheelUpdateFrequencies(0, 0, 0)
    assert wheel.odo_broadcast_status == OdoBroadcastFlags()


def test_empty_object_gives_empty_controller_data():
    data = controller_data_from_json({})
    assert data.wheel_data == []
    assert data.conn_details == SerialConnDetails(port="", baud=0)
    assert data.controller_properties.update_frequencies == UpdateFrequencies(0)


def test_mistyped_fields_fall_back_to_defaults():
    flags = odo_broadcast_flags_from_json({"angle": 1, "speed": "yes", "pwm_value": True})
    assert flags == OdoBroadcastFlags(False, False, True, False)
    pid = pid_from_json({"p": "1.0", "i": True, "d": 2})
    assert pid == PidConstants(0.0, 0.0, 2.0)


def test_fractional_angle_is_not_integral_and_reads_as_zero():
    assert odometry_from_json({"angle": 1.5, "rpm": 1.5}).angle == 0.0
    assert setpoint_from_json({"angle": 2.0}).angle == 2.0


def test_narrow_fields_wrap():
    assert limits_pwm_from_json({"min": 200, "max": 127}) == LimitsPwm(-56, 127)
    assert connections_wheel_from_json({"dir": 256}).dir == 0


def test_non_list_wheel_data_is_ignored():
    data = controller_data_from_json({"wheelData": {"motor_id": 1}})
    assert data.wheel_data == []


def test_unsupported_type_raises():
    with pytest.raises(TypeError):
        to_json(object())