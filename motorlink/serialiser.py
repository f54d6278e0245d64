"""JSON representation of the controller structures.

``to_json`` turns a structure into a plain ``dict`` ready for ``json.dumps``.
The ``*_from_json`` functions read such a dict back leniently: a missing or
mistyped field falls back to zero, ``False``, an empty string or an empty
object, and integers are narrowed to the width of the field they fill.
"""

from __future__ import annotations

from functools import singledispatch
from typing import Any, Dict, Mapping

from .structs import (
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

JsonObject = Dict[str, Any]

_INT_MIN = -(1 << 31)
_INT_MAX = (1 << 31) - 1

_MODE_NAMES = {
    ControlMode.POSITION_CONTROL: "POSITION_CONTROL",
    ControlMode.SPEED_CONTROL: "SPEED_CONTROL",
    ControlMode.PWM_DIRECT_CONTROL: "PWM_DIRECT_CONTROL",
    ControlMode.OFF: "OFF",
}
_MODES_BY_NAME = {name: mode for mode, name in _MODE_NAMES.items()}


def _unsigned(value: int, bits: int) -> int:
    return value & ((1 << bits) - 1)


def _signed(value: int, bits: int) -> int:
    value = _unsigned(value, bits)
    return value - (1 << bits) if value >= 1 << (bits - 1) else value


def _as_int(value: Any, default: int = 0) -> int:
    """An integral number within 32-bit range, else ``default``."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not value.is_integer():
        return default
    if not _INT_MIN <= value <= _INT_MAX:
        return default
    return int(value)


def _as_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


def _as_bool(value: Any, default: bool = False) -> bool:
    return value if isinstance(value, bool) else default


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_object(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _field(obj: Mapping[str, Any], key: str) -> Any:
    return _as_object(obj).get(key)


@singledispatch
def to_json(obj: Any) -> JsonObject:
    """Return the JSON object for a controller structure."""
    raise TypeError(f"cannot convert {type(obj).__name__} to JSON")


@to_json.register
def _(obj: PidConstants) -> JsonObject:
    return {"p": float(obj.p), "i": float(obj.i), "d": float(obj.d)}


@to_json.register
def _(obj: LimitsPwm) -> JsonObject:
    return {"min": int(obj.min), "max": int(obj.max)}


@to_json.register
def _(obj: ConnectionsWheel) -> JsonObject:
    return {
        "dir": int(obj.dir),
        "pwm": int(obj.pwm),
        "enc_a": int(obj.enc_a),
        "enc_b": int(obj.enc_b),
    }


@to_json.register
def _(obj: OdoBroadcastFlags) -> JsonObject:
    return {
        "angle": bool(obj.angle),
        "speed": bool(obj.speed),
        "pwm_value": bool(obj.pwm_value),
        "timestamped_angle": bool(obj.timestamped_angle),
    }


@to_json.register
def _(obj: OdometrySample) -> JsonObject:
    return {
        "timestamp": _signed(int(obj.timestamp), 32),
        "angle": float(obj.angle),
        "rpm": float(obj.rpm),
    }


@to_json.register
def _(obj: Setpoint) -> JsonObject:
    return {"angle": float(obj.angle), "rpm": float(obj.rpm)}


@to_json.register
def _(obj: WheelUpdateFrequencies) -> JsonObject:
    return {
        "pwm": int(obj.pwm),
        "angle_pid": int(obj.angle_pid),
        "speed_pid": int(obj.speed_pid),
    }


@to_json.register
def _(obj: WheelData) -> JsonObject:
    return {
        "motor_id": int(obj.motor_id),
        "control_mode": control_mode_to_json(obj.control_mode),
        "anglePIDConstants": to_json(obj.angle_pid_constants),
        "speedPIDConstants": to_json(obj.speed_pid_constants),
        "motorConnections": to_json(obj.motor_connections),
        "odometryData": to_json(obj.odometry_data),
        "setpoint": to_json(obj.setpoint),
        "odoBroadcastStatus": to_json(obj.odo_broadcast_status),
        "updateFrequenciesWheel": to_json(obj.update_frequencies_wheel),
        "radians_per_tick": float(obj.radians_per_tick),
        "pwmValue": float(obj.pwm_value),
    }


@to_json.register
def _(obj: UpdateFrequencies) -> JsonObject:
    return {"interfaceRun": int(obj.interface_run)}


@to_json.register
def _(obj: ControllerProperties) -> JsonObject:
    return {
        "run": bool(obj.run),
        "numMotors": int(obj.num_motors),
        "odoBroadcastStatus": to_json(obj.odo_broadcast_status),
        "odoBroadcastFrequency": int(obj.odo_broadcast_frequency),
        "updateFrequencies": to_json(obj.update_frequencies),
    }


@to_json.register
def _(obj: SerialConnDetails) -> JsonObject:
    return {"port": str(obj.port), "baud": int(obj.baud)}


@to_json.register
def _(obj: ControllerData) -> JsonObject:
    return {
        "wheelData": [to_json(wheel) for wheel in obj.wheel_data],
        "controllerProperties": to_json(obj.controller_properties),
        "serialConnDetails": to_json(obj.conn_details),
    }


def pid_from_json(obj: Mapping[str, Any]) -> PidConstants:
    return PidConstants(
        p=_as_float(_field(obj, "p")),
        i=_as_float(_field(obj, "i")),
        d=_as_float(_field(obj, "d")),
    )


def limits_pwm_from_json(obj: Mapping[str, Any]) -> LimitsPwm:
    return LimitsPwm(
        min=_signed(_as_int(_field(obj, "min")), 8),
        max=_signed(_as_int(_field(obj, "max")), 8),
    )


def connections_wheel_from_json(obj: Mapping[str, Any]) -> ConnectionsWheel:
    return ConnectionsWheel(
        dir=_unsigned(_as_int(_field(obj, "dir")), 8),
        pwm=_unsigned(_as_int(_field(obj, "pwm")), 8),
        enc_a=_unsigned(_as_int(_field(obj, "enc_a")), 8),
        enc_b=_unsigned(_as_int(_field(obj, "enc_b")), 8),
    )


def odo_broadcast_flags_from_json(obj: Mapping[str, Any]) -> OdoBroadcastFlags:
    return OdoBroadcastFlags(
        angle=_as_bool(_field(obj, "angle")),
        speed=_as_bool(_field(obj, "speed")),
        pwm_value=_as_bool(_field(obj, "pwm_value")),
        timestamped_angle=_as_bool(_field(obj, "timestamped_angle")),
    )


def odometry_from_json(obj: Mapping[str, Any]) -> OdometrySample:
    """Read an odometry sample; the angle is stored as a whole number."""
    return OdometrySample(
        timestamp=_unsigned(_as_int(_field(obj, "timestamp")), 64),
        angle=float(_as_int(_field(obj, "angle"))),
        rpm=_as_float(_field(obj, "rpm")),
    )


def setpoint_from_json(obj: Mapping[str, Any]) -> Setpoint:
    """Read a setpoint; the angle is stored as a whole number."""
    return Setpoint(
        angle=float(_as_int(_field(obj, "angle"))),
        rpm=_as_float(_field(obj, "rpm")),
    )


def wheel_update_frequencies_from_json(
    obj: Mapping[str, Any],
) -> WheelUpdateFrequencies:
    return WheelUpdateFrequencies(
        pwm=_unsigned(_as_int(_field(obj, "pwm")), 16),
        angle_pid=_unsigned(_as_int(_field(obj, "angle_pid")), 16),
        speed_pid=_unsigned(_as_int(_field(obj, "speed_pid")), 16),
    )


def control_mode_to_json(mode: ControlMode) -> str:
    """The name of ``mode``; anything unrecognised is reported as ``OFF``."""
    try:
        return _MODE_NAMES[ControlMode(mode)]
    except ValueError:
        return "OFF"


def control_mode_from_json(value: Any) -> ControlMode:
    """The mode named by ``value``; anything unrecognised is ``OFF``."""
    return _MODES_BY_NAME.get(_as_str(value), ControlMode.OFF)


def wheel_data_from_json(obj: Mapping[str, Any]) -> WheelData:
    return WheelData(
        motor_id=_unsigned(_as_int(_field(obj, "motor_id")), 8),
        control_mode=control_mode_from_json(_field(obj, "control_mode")),
        angle_pid_constants=pid_from_json(_as_object(_field(obj, "anglePIDConstants"))),
        speed_pid_constants=pid_from_json(_as_object(_field(obj, "speedPIDConstants"))),
        motor_connections=connections_wheel_from_json(
            _as_object(_field(obj, "motorConnections"))
        ),
        odometry_data=odometry_from_json(_as_object(_field(obj, "odometryData"))),
        setpoint=setpoint_from_json(_as_object(_field(obj, "setpoint"))),
        odo_broadcast_status=odo_broadcast_flags_from_json(
            _as_object(_field(obj, "odoBroadcastStatus"))
        ),
        update_frequencies_wheel=wheel_update_frequencies_from_json(
            _as_object(_field(obj, "updateFrequenciesWheel"))
        ),
        radians_per_tick=_as_float(_field(obj, "radians_per_tick")),
        pwm_value=float(_as_int(_field(obj, "pwmValue"))),
    )


def update_frequencies_from_json(obj: Mapping[str, Any]) -> UpdateFrequencies:
    return UpdateFrequencies(
        interface_run=_unsigned(_as_int(_field(obj, "interfaceRun")), 16)
    )


def controller_properties_from_json(obj: Mapping[str, Any]) -> ControllerProperties:
    return ControllerProperties(
        run=_as_bool(_field(obj, "run")),
        num_motors=_unsigned(_as_int(_field(obj, "numMotors")), 8),
        odo_broadcast_status=odo_broadcast_flags_from_json(
            _as_object(_field(obj, "odoBroadcastStatus"))
        ),
        odo_broadcast_frequency=_unsigned(
            _as_int(_field(obj, "odoBroadcastFrequency")), 16
        ),
        update_frequencies=update_frequencies_from_json(
            _as_object(_field(obj, "updateFrequencies"))
        ),
    )


def serial_conn_details_from_json(obj: Mapping[str, Any]) -> SerialConnDetails:
    return SerialConnDetails(
        port=_as_str(_field(obj, "port")),
        baud=_as_int(_field(obj, "baud")),
    )


def controller_data_from_json(obj: Mapping[str, Any]) -> ControllerData:
    wheels = [
        wheel_data_from_json(_as_object(item))
        for item in _as_list(_field(obj, "wheelData"))
    ]
    return ControllerData(
        conn_details=serial_conn_details_from_json(
            _as_object(_field(obj, "serialConnDetails"))
        ),
        wheel_data=wheels,
        controller_properties=controller_properties_from_json(
            _as_object(_field(obj, "controllerProperties"))
        ),
    )