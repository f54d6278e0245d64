"""Differential-drive robot wiring odometry and control to the controller link."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .diffdrivecontrol import DiffDriveControl, DiffDriveControlConfig, Twist
from .odometry import Odometry, OdometryConfig


@dataclass
class DiffDriveSetup:
    """Odometry and control settings that share the robot's geometry."""

    odometry_config: OdometryConfig = field(default_factory=OdometryConfig)
    diff_drive_control_config: DiffDriveControlConfig = field(
        default_factory=DiffDriveControlConfig
    )

    def set_wheel_radius(self, wheel_radius: float) -> None:
        encoder = self.odometry_config.encoder_odometry_config
        encoder.left_wheel_radius = wheel_radius
        encoder.right_wheel_radius = wheel_radius
        self.diff_drive_control_config.wheel_radius = wheel_radius

    def set_wheel_base(self, wheel_base: float) -> None:
        self.odometry_config.encoder_odometry_config.wheel_base = wheel_base
        self.diff_drive_control_config.wheel_base = wheel_base


class DiffDrive:
    """Connects encoder data to odometry and velocity commands to setpoints.

    ``odometry_published`` carries every new OdometryMessage.
    """

    def __init__(
        self,
        communication_interface: Any,
        time_sync_client: Any = None,
        config: Optional[DiffDriveSetup] = None,
    ) -> None:
        self.config = config if config is not None else DiffDriveSetup()
        self.communication_interface = communication_interface
        self.time_sync_client = time_sync_client
        self.odometry = Odometry(self.config.odometry_config)
        self.control = DiffDriveControl(self.config.diff_drive_control_config)
        self.odometry_published = self.odometry.publish_encoder_odometry

        communication_interface.encoder_odometry_received.connect(
            self.odometry.update_encoder_odometry
        )
        self.control.send_setpoints.connect(communication_interface.send_setpoints)
        if time_sync_client is not None:
            time_sync_client.sync_completed.connect(self.update_time_delta)

    def update_time_delta(self, delta_time_ns: int) -> None:
        self.odometry.update_time_delta(delta_time_ns)

    def on_velocity_command(self, cmd_vel: Twist) -> List[float]:
        """Send wheel speed setpoints for a body velocity command."""
        return self.control.on_velocity_command(cmd_vel)