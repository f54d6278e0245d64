"""Serial link, JSON and YAML configuration, time sync and differential-drive odometry for a multi-motor controller board."""

__version__ = "0.1.0"