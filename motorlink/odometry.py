"""Odometry front end that publishes encoder-based estimates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from .encoderodometry import EncoderOdometry, EncoderOdometryConfig
from .signals import Signal
from .structs import TimestampedAngle


@dataclass
class OdometryConfig:
    encoder_odometry_config: EncoderOdometryConfig = field(
        default_factory=EncoderOdometryConfig
    )


class Odometry:
    """Feeds encoder samples to the estimator and announces each new estimate.

    Signals:
      publish_encoder_odometry(OdometryMessage)
    """

    def __init__(self, config: Optional[OdometryConfig] = None) -> None:
        self.config = config if config is not None else OdometryConfig()
        self.encoder_odometry = EncoderOdometry(self.config.encoder_odometry_config)
        self.publish_encoder_odometry = Signal()

    def update_encoder_odometry(self, timestamped_angles: Sequence[TimestampedAngle]) -> None:
        self.encoder_odometry.update(timestamped_angles)
        self.publish_encoder_odometry.emit(self.encoder_odometry.odometry_msg())

    def reset_pose(self, x: float, y: float, theta: float) -> None:
        self.encoder_odometry.reset_pose(x, y, theta)

    def update_time_delta(self, delta_ns: int) -> None:
        self.encoder_odometry.update_time_delta(delta_ns)