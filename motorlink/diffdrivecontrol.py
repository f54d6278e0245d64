"""Differential-drive inverse kinematics for velocity commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .signals import Signal
from .structs import ControlMode


@dataclass
class Twist:
    """A velocity command: linear in m/s, angular in rad/s."""

    linear_x: float = 0.0
    linear_y: float = 0.0
    linear_z: float = 0.0
    angular_x: float = 0.0
    angular_y: float = 0.0
    angular_z: float = 0.0


@dataclass
class DiffDriveControlConfig:
    wheel_radius: float = 1.0
    wheel_base: float = 1.0


class DiffDriveControl:
    """Turns body velocities into left and right wheel speed setpoints.

    Signals:
      send_setpoints(ControlMode, [left, right]) with wheel speeds in rad/s
    """

    def __init__(self, config: Optional[DiffDriveControlConfig] = None) -> None:
        config = config if config is not None else DiffDriveControlConfig()
        if config.wheel_radius == 0:
            raise ValueError("wheel_radius must not be zero")
        self.wheel_radius = float(config.wheel_radius)
        self.wheel_base = float(config.wheel_base)
        self.send_setpoints = Signal()

    def on_velocity_command(self, cmd_vel: Twist) -> List[float]:
        """Emit and return the wheel speeds for forward speed and yaw rate."""
        v = float(cmd_vel.linear_x)
        w = float(cmd_vel.angular_z)
        half_base = self.wheel_base * 0.5
        v_left = (v - half_base * w) / self.wheel_radius
        v_right = (v + half_base * w) / self.wheel_radius
        setpoints = [v_left, v_right]
        self.send_setpoints.emit(ControlMode.SPEED_CONTROL, list(setpoints))
        return setpoints