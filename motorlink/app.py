"""Command-line entry point that runs the controller link."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

from .communication import CommunicationInterface
from .controllermanager import ControllerManager
from .diffdrive import DiffDrive, DiffDriveSetup
from .nodeconfig import ConfigError, NodeConfig
from .serialhandler import SerialHandler
from .timesync import TimeSyncClient

_WHEEL_RADIUS = 1.0
_WHEEL_BASE = 1.0


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="motorlink", description="Configure and run the motor controller link."
    )
    parser.add_argument(
        "--node-config", default="config/node_config.yaml",
        help="YAML file with the serial settings",
    )
    parser.add_argument(
        "--controller-config", default="config/controller_config.json",
        help="JSON file with the controller and wheel settings",
    )
    parser.add_argument("--retries", type=int, default=10, help="attempts per step")
    parser.add_argument(
        "--retry-delay-ms", type=int, default=1000, help="wait after a failed attempt"
    )
    parser.add_argument(
        "--poll-ms", type=int, default=10, help="interval between reads of the port"
    )
    parser.add_argument(
        "--duration", type=float, default=None,
        help="seconds to run; runs until interrupted when omitted",
    )
    return parser.parse_args(argv)


def _run(serial_handler: SerialHandler, duration: Optional[float], poll_ms: int) -> None:
    deadline = None if duration is None else time.monotonic() + duration
    while deadline is None or time.monotonic() < deadline:
        serial_handler.handle_ready_read()
        time.sleep(max(poll_ms, 0) / 1000)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        serial_config = NodeConfig.load(args.node_config).serial_config()
    except ConfigError as exc:
        print(f"Failed to load config file.\n{exc}", file=sys.stderr)
        return 1

    serial_handler = SerialHandler()
    communication = CommunicationInterface(serial_handler)
    time_sync = TimeSyncClient(serial_handler, communication)
    try:
        manager = ControllerManager(
            communication,
            time_sync,
            serial_config,
            args.controller_config,
            retries=args.retries,
            retry_delay_ms=args.retry_delay_ms,
        )
        manager.start()

        setup = DiffDriveSetup()
        setup.set_wheel_radius(_WHEEL_RADIUS)
        setup.set_wheel_base(_WHEEL_BASE)
        DiffDrive(communication, time_sync, setup)

        _run(serial_handler, args.duration, args.poll_ms)
    except KeyboardInterrupt:
        pass
    finally:
        time_sync.stop_sync()
        serial_handler.disconnect()
    return 0


if __name__ == "__main__":
    sys.exit(main())