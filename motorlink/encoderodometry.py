"""Pose and velocity estimation from timestamped wheel encoder angles."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence, Tuple

from .rolling import RollingMeanAccumulator
from .structs import TimestampedAngle

COVARIANCE_SIZE = 36

_NO_TIMESTAMP = -1
_MIN_DT_S = 1e-4
_STRAIGHT_EPSILON = 1e-6


def _zero_covariance() -> Tuple[float, ...]:
    return (0.0,) * COVARIANCE_SIZE


def _covariance(values: Sequence[float], name: str) -> Tuple[float, ...]:
    result = tuple(float(value) for value in values)
    if len(result) != COVARIANCE_SIZE:
        raise ValueError(f"{name} must hold {COVARIANCE_SIZE} values, got {len(result)}")
    return result


@dataclass
class EncoderOdometryConfig:
    """Geometry and filtering settings for encoder odometry."""

    left_wheel_radius: float = 1.0
    right_wheel_radius: float = 1.0
    wheel_base: float = 1.0
    use_exact_integration: bool = True
    rolling_window_size: int = 10
    pose_covariance: Tuple[float, ...] = field(default_factory=_zero_covariance)
    twist_covariance: Tuple[float, ...] = field(default_factory=_zero_covariance)

    def __post_init__(self) -> None:
        self.pose_covariance = _covariance(self.pose_covariance, "pose_covariance")
        self.twist_covariance = _covariance(self.twist_covariance, "twist_covariance")


@dataclass
class OdometryMessage:
    """A planar odometry estimate: pose, orientation, twist and covariances."""

    stamp_ns: int = 0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    orientation: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    pose_covariance: Tuple[float, ...] = field(default_factory=_zero_covariance)
    linear_x: float = 0.0
    linear_y: float = 0.0
    linear_z: float = 0.0
    angular_z: float = 0.0
    twist_covariance: Tuple[float, ...] = field(default_factory=_zero_covariance)
    frame_id: str = ""
    child_frame_id: str = ""


class EncoderOdometry:
    """Integrates left and right wheel angles into a 2D pose.

    Angles are in radians and timestamps in nanoseconds on the controller
    clock; ``update_time_delta`` sets the offset added to produce host time.
    """

    def __init__(self, config: EncoderOdometryConfig) -> None:
        if config.wheel_base == 0:
            raise ValueError("wheel_base must not be zero")
        self.config = config
        self._left_wheel_radius = float(config.left_wheel_radius)
        self._right_wheel_radius = float(config.right_wheel_radius)
        self._wheel_base = float(config.wheel_base)
        self._use_exact_integration = bool(config.use_exact_integration)
        self._linear_accumulator = RollingMeanAccumulator(config.rolling_window_size)
        self._angular_accumulator = RollingMeanAccumulator(config.rolling_window_size)
        self._pose_covariance = config.pose_covariance
        self._twist_covariance = config.twist_covariance

        self.time_delta_ns = 0
        self._last_left_angle = 0.0
        self._last_right_angle = 0.0
        self._last_timestamp = _NO_TIMESTAMP

        self.x = 0.0
        self.y = 0.0
        self.theta = 0.0
        self.linear_velocity = 0.0
        self.angular_velocity = 0.0

    @property
    def has_sample(self) -> bool:
        """Whether a first encoder sample has been recorded."""
        return self._last_timestamp != _NO_TIMESTAMP

    @property
    def last_timestamp(self) -> int:
        """Controller time of the last accepted sample, or -1 before any."""
        return self._last_timestamp

    def update(self, timestamped_angles: Sequence[TimestampedAngle]) -> None:
        """Advance the pose from the first two entries: left, then right wheel."""
        if len(timestamped_angles) < 2:
            raise ValueError("need angles for a left and a right wheel")
        left, right = timestamped_angles[0], timestamped_angles[1]
        left_angle = float(left.angle)
        right_angle = float(right.angle)
        timestamp = (int(left.timestamp) + int(right.timestamp)) // 2

        if not self.has_sample:
            self._remember(left_angle, right_angle, timestamp)
            return

        dt = (timestamp - self._last_timestamp) * 1e-9
        if dt < _MIN_DT_S:
            return

        d_left = (left_angle - self._last_left_angle) * self._left_wheel_radius
        d_right = (right_angle - self._last_right_angle) * self._right_wheel_radius
        linear = (d_left + d_right) * 0.5
        angular = (d_right - d_left) / self._wheel_base

        self._integrate(linear, angular)

        self._linear_accumulator.accumulate(linear / dt)
        self._angular_accumulator.accumulate(angular / dt)
        self.linear_velocity = self._linear_accumulator.rolling_mean()
        self.angular_velocity = self._angular_accumulator.rolling_mean()

        self.theta = math.atan2(math.sin(self.theta), math.cos(self.theta))
        self._remember(left_angle, right_angle, timestamp)

    def _remember(self, left_angle: float, right_angle: float, timestamp: int) -> None:
        self._last_left_angle = left_angle
        self._last_right_angle = right_angle
        self._last_timestamp = timestamp

    def _integrate(self, linear: float, angular: float) -> None:
        if self._use_exact_integration:
            self._integrate_exact(linear, angular)
        else:
            self._integrate_runge_kutta2(linear, angular)

    def _integrate_exact(self, linear: float, angular: float) -> None:
        if abs(angular) < _STRAIGHT_EPSILON:
            self._integrate_runge_kutta2(linear, angular)
            return
        heading_old = self.theta
        radius = linear / angular
        self.theta += angular
        self.x += radius * (math.sin(self.theta) - math.sin(heading_old))
        self.y += -radius * (math.cos(self.theta) - math.cos(heading_old))

    def _integrate_runge_kutta2(self, linear: float, angular: float) -> None:
        direction = self.theta + angular * 0.5
        self.x += linear * math.cos(direction)
        self.y += linear * math.sin(direction)
        self.theta += angular

    def update_time_delta(self, delta_ns: int) -> None:
        """Set the host-minus-controller clock offset in nanoseconds."""
        self.time_delta_ns = int(delta_ns)

    def reset_pose(self, x: float, y: float, theta: float) -> None:
        self.x = float(x)
        self.y = float(y)
        self.theta = float(theta)

    def reset_accumulators(self) -> None:
        """Forget the velocity history used for smoothing."""
        self._linear_accumulator.reset()
        self._angular_accumulator.reset()

    def update_from_velocity(self, linear: float, angular: float, timestamp_ns: int) -> None:
        """Advance the pose with known velocities up to ``timestamp_ns``."""
        dt = (int(timestamp_ns) - self._last_timestamp) * 1e-9
        if dt < _MIN_DT_S:
            return
        self._integrate(linear * dt, angular * dt)
        self.linear_velocity = float(linear)
        self.angular_velocity = float(angular)
        self._last_timestamp = int(timestamp_ns)

    def odometry_msg(self) -> OdometryMessage:
        """The current estimate stamped in host time; ValueError if that is negative."""
        stamp_ns = self._last_timestamp + self.time_delta_ns
        if stamp_ns < 0:
            raise ValueError("cannot stamp odometry with a negative time")
        half = self.theta * 0.5
        return OdometryMessage(
            stamp_ns=stamp_ns,
            x=self.x,
            y=self.y,
            z=0.0,
            orientation=(0.0, 0.0, math.sin(half), math.cos(half)),
            pose_covariance=self._pose_covariance,
            linear_x=self.linear_velocity,
            linear_y=0.0,
            linear_z=0.0,
            angular_z=self.angular_velocity,
            twist_covariance=self._twist_covariance,
        )