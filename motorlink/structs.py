"""Controller data structures and their little-endian wire encoding.

Every ``from_bytes`` classmethod decodes from ``data`` starting at ``offset``
and returns ``(instance, new_offset)``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, List, Tuple


def _pack(fmt: str, *values: Any) -> bytes:
    try:
        return struct.pack(fmt, *values)
    except struct.error as exc:
        raise ValueError(f"cannot encode {values!r}: {exc}") from exc


def _unpack(fmt: str, data: bytes, offset: int) -> Tuple[tuple, int]:
    if offset < 0:
        raise ValueError("offset must not be negative")
    try:
        values = struct.unpack_from(fmt, data, offset)
    except struct.error as exc:
        raise ValueError(f"buffer too short at offset {offset}: {exc}") from exc
    return values, offset + struct.calcsize(fmt)


class ControlMode(IntEnum):
    """How a motor is driven."""

    OFF = 0
    PWM_DIRECT_CONTROL = 1
    POSITION_CONTROL = 2
    SPEED_CONTROL = 3


@dataclass
class OdoBroadcastFlags:
    """Which odometry quantities the controller broadcasts."""

    _FORMAT: ClassVar[str] = "<????"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    angle: bool = False
    speed: bool = False
    pwm_value: bool = False
    timestamped_angle: bool = False

    def to_bytes(self) -> bytes:
        return _pack(
            self._FORMAT, self.angle, self.speed, self.pwm_value, self.timestamped_angle
        )

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[OdoBroadcastFlags, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset

    def __or__(self, other: OdoBroadcastFlags) -> OdoBroadcastFlags:
        if not isinstance(other, OdoBroadcastFlags):
            return NotImplemented
        return OdoBroadcastFlags(
            self.angle or other.angle,
            self.speed or other.speed,
            self.pwm_value or other.pwm_value,
            self.timestamped_angle or other.timestamped_angle,
        )


@dataclass
class PidConstants:
    _FORMAT: ClassVar[str] = "<fff"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    p: float = 0.0
    i: float = 0.0
    d: float = 0.0

    def to_bytes(self) -> bytes:
        return _pack(self._FORMAT, self.p, self.i, self.d)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[PidConstants, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset


@dataclass
class LimitsPwm:
    _FORMAT: ClassVar[str] = "<bb"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    min: int = 0
    max: int = 0

    def to_bytes(self) -> bytes:
        return _pack(self._FORMAT, self.min, self.max)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[LimitsPwm, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset


@dataclass
class ConnectionsWheel:
    """Pin assignments for one wheel's driver and encoder."""

    _FORMAT: ClassVar[str] = "<BBBB"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    dir: int = 0
    pwm: int = 0
    enc_a: int = 0
    enc_b: int = 0

    def to_bytes(self) -> bytes:
        return _pack(self._FORMAT, self.dir, self.pwm, self.enc_a, self.enc_b)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[ConnectionsWheel, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset


@dataclass
class TimestampedAngle:
    _FORMAT: ClassVar[str] = "<Qf"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    timestamp: int = 0
    angle: float = 0.0

    def to_bytes(self) -> bytes:
        return _pack(self._FORMAT, self.timestamp, self.angle)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[TimestampedAngle, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset


@dataclass
class OdometrySample:
    _FORMAT: ClassVar[str] = "<Qff"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    timestamp: int = 0
    angle: float = 0.0
    rpm: float = 0.0

    def to_bytes(self) -> bytes:
        return _pack(self._FORMAT, self.timestamp, self.angle, self.rpm)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[OdometrySample, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset


@dataclass
class Setpoint:
    _FORMAT: ClassVar[str] = "<ff"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    angle: float = 0.0
    rpm: float = 0.0

    def to_bytes(self) -> bytes:
        return _pack(self._FORMAT, self.angle, self.rpm)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[Setpoint, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset


@dataclass
class WheelUpdateFrequencies:
    _FORMAT: ClassVar[str] = "<HHH"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    pwm: int = 50
    angle_pid: int = 50
    speed_pid: int = 50

    def to_bytes(self) -> bytes:
        return _pack(self._FORMAT, self.pwm, self.angle_pid, self.speed_pid)

    @classmethod
    def from_bytes(
        cls, data: bytes, offset: int = 0
    ) -> Tuple[WheelUpdateFrequencies, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset


@dataclass
class UpdateFrequencies:
    _FORMAT: ClassVar[str] = "<H"
    size: ClassVar[int] = struct.calcsize(_FORMAT)

    interface_run: int = 50

    def to_bytes(self) -> bytes:
        return _pack(self._FORMAT, self.interface_run)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[UpdateFrequencies, int]:
        values, offset = _unpack(cls._FORMAT, data, offset)
        return cls(*values), offset


_ID_MODE = "<BB"
_TAIL = "<ff"


@dataclass
class WheelData:
    """Complete configuration and state of one wheel."""

    motor_id: int = 0
    control_mode: ControlMode = ControlMode.PWM_DIRECT_CONTROL
    angle_pid_constants: PidConstants = field(default_factory=PidConstants)
    speed_pid_constants: PidConstants = field(default_factory=PidConstants)
    motor_connections: ConnectionsWheel = field(default_factory=ConnectionsWheel)
    odometry_data: OdometrySample = field(default_factory=OdometrySample)
    setpoint: Setpoint = field(default_factory=Setpoint)
    odo_broadcast_status: OdoBroadcastFlags = field(default_factory=OdoBroadcastFlags)
    update_frequencies_wheel: WheelUpdateFrequencies = field(
        default_factory=WheelUpdateFrequencies
    )
    radians_per_tick: float = 1.0
    pwm_value: float = 0.0

    size: ClassVar[int] = (
        struct.calcsize(_ID_MODE)
        + PidConstants.size * 2
        + ConnectionsWheel.size
        + OdometrySample.size
        + Setpoint.size
        + OdoBroadcastFlags.size
        + WheelUpdateFrequencies.size
        + struct.calcsize(_TAIL)
    )

    def to_bytes(self) -> bytes:
        return b"".join(
            (
                _pack(_ID_MODE, self.motor_id, int(self.control_mode)),
                self.angle_pid_constants.to_bytes(),
                self.speed_pid_constants.to_bytes(),
                self.motor_connections.to_bytes(),
                self.odometry_data.to_bytes(),
                self.setpoint.to_bytes(),
                self.odo_broadcast_status.to_bytes(),
                self.update_frequencies_wheel.to_bytes(),
                _pack(_TAIL, self.radians_per_tick, self.pwm_value),
            )
        )

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[WheelData, int]:
        (motor_id, mode), offset = _unpack(_ID_MODE, data, offset)
        try:
            control_mode = ControlMode(mode)
        except ValueError:
            raise ValueError(f"unknown control mode {mode}") from None
        angle_pid, offset = PidConstants.from_bytes(data, offset)
        speed_pid, offset = PidConstants.from_bytes(data, offset)
        connections, offset = ConnectionsWheel.from_bytes(data, offset)
        odometry, offset = OdometrySample.from_bytes(data, offset)
        setpoint, offset = Setpoint.from_bytes(data, offset)
        flags, offset = OdoBroadcastFlags.from_bytes(data, offset)
        freqs, offset = WheelUpdateFrequencies.from_bytes(data, offset)
        (radians_per_tick, pwm_value), offset = _unpack(_TAIL, data, offset)
        wheel = cls(
            motor_id=motor_id,
            control_mode=control_mode,
            angle_pid_constants=angle_pid,
            speed_pid_constants=speed_pid,
            motor_connections=connections,
            odometry_data=odometry,
            setpoint=setpoint,
            odo_broadcast_status=flags,
            update_frequencies_wheel=freqs,
            radians_per_tick=radians_per_tick,
            pwm_value=pwm_value,
        )
        return wheel, offset


_RUN_MOTORS = "<?B"
_FREQUENCY = "<H"


@dataclass
class ControllerProperties:
    """Controller-wide settings."""

    run: bool = False
    num_motors: int = 0
    odo_broadcast_status: OdoBroadcastFlags = field(default_factory=OdoBroadcastFlags)
    odo_broadcast_frequency: int = 30
    update_frequencies: UpdateFrequencies = field(default_factory=UpdateFrequencies)

    size: ClassVar[int] = (
        struct.calcsize(_RUN_MOTORS)
        + OdoBroadcastFlags.size
        + struct.calcsize(_FREQUENCY)
        + UpdateFrequencies.size
    )

    def to_bytes(self) -> bytes:
        return b"".join(
            (
                _pack(_RUN_MOTORS, self.run, self.num_motors),
                self.odo_broadcast_status.to_bytes(),
                _pack(_FREQUENCY, self.odo_broadcast_frequency),
                self.update_frequencies.to_bytes(),
            )
        )

    @classmethod
    def from_bytes(
        cls, data: bytes, offset: int = 0
    ) -> Tuple[ControllerProperties, int]:
        (run, num_motors), offset = _unpack(_RUN_MOTORS, data, offset)
        flags, offset = OdoBroadcastFlags.from_bytes(data, offset)
        (frequency,), offset = _unpack(_FREQUENCY, data, offset)
        freqs, offset = UpdateFrequencies.from_bytes(data, offset)
        props = cls(
            run=run,
            num_motors=num_motors,
            odo_broadcast_status=flags,
            odo_broadcast_frequency=frequency,
            update_frequencies=freqs,
        )
        return props, offset


@dataclass
class SerialConnDetails:
    port: str = ""
    baud: int = 0


@dataclass
class ControllerData:
    """Connection details, wheels and controller properties together."""

    conn_details: SerialConnDetails = field(default_factory=SerialConnDetails)
    wheel_data: List[WheelData] = field(default_factory=list)
    controller_properties: ControllerProperties = field(
        default_factory=ControllerProperties
    )

    def to_bytes(self) -> bytes:
        """Encode wheel count, wheels and properties; connection details are not sent."""
        if len(self.wheel_data) > 0xFF:
            raise ValueError("at most 255 wheels can be encoded")
        parts = [_pack("<B", len(self.wheel_data))]
        parts.extend(wheel.to_bytes() for wheel in self.wheel_data)
        parts.append(self.controller_properties.to_bytes())
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple[ControllerData, int]:
        (count,), offset = _unpack("<B", data, offset)
        wheels = []
        for _ in range(count):
            wheel, offset = WheelData.from_bytes(data, offset)
            wheels.append(wheel)
        props, offset = ControllerProperties.from_bytes(data, offset)
        return cls(wheel_data=wheels, controller_properties=props), offset