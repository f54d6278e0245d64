"""Brings the motor controller up: configuration, connection and properties."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .nodeconfig import ConfigError, SerialConfig
from .serialiser import controller_data_from_json
from .structs import ControllerData

logger = logging.getLogger("motorlink.controllermanager")


def retry_operation(
    operation: Callable[[], bool], max_retries: int, delay_ms: int
) -> bool:
    """Call ``operation`` until it returns True, at most ``max_retries`` times.

    Waits ``delay_ms`` milliseconds after every failed attempt.
    """
    logger.info(
        "Starting retry operation: maxRetries=%d, delayMs=%d", max_retries, delay_ms
    )
    for attempt in range(1, max_retries + 1):
        logger.debug("Attempt %d of %d", attempt, max_retries)
        if operation():
            logger.info("Operation succeeded on attempt %d", attempt)
            return True
        logger.warning(
            "Operation failed on attempt %d, retrying after %d ms...", attempt, delay_ms
        )
        if delay_ms > 0:
            time.sleep(delay_ms / 1000)
    logger.error("Operation failed after %d attempts", max_retries)
    return False


class ControllerManager:
    """Configures the controller through a communication interface.

    ``start`` reads the JSON configuration, connects, enables time
    synchronisation and sends the controller properties and every wheel's
    data, retrying each step.
    """

    def __init__(
        self,
        communication_interface: Any,
        time_sync_client: Any,
        serial_config: Optional[SerialConfig] = None,
        config_path: Union[str, Path] = "",
        retries: int = 10,
        retry_delay_ms: int = 1000,
    ) -> None:
        serial_config = serial_config if serial_config is not None else SerialConfig()
        self.communication_interface = communication_interface
        self.time_sync_client = time_sync_client
        self.port_name = serial_config.port
        self.baud_rate = serial_config.baud
        self.config_path = config_path
        self.retries = retries
        self.retry_delay_ms = retry_delay_ms
        self.controller_data = ControllerData()

    def start(self) -> bool:
        """Run the whole bring-up sequence; True if every step succeeded."""
        try:
            self.read_configuration()
        except ConfigError as exc:
            logger.error("%s", exc)
            return False

        if not retry_operation(self.connect_controller, self.retries, self.retry_delay_ms):
            return False

        self.set_time_sync(True)

        if not retry_operation(
            self.set_controller_properties, self.retries, self.retry_delay_ms
        ):
            return False
        return retry_operation(self.set_wheel_data, self.retries, self.retry_delay_ms)

    def read_configuration(self) -> ControllerData:
        """Load wheel data and controller properties from the JSON file."""
        path = str(self.config_path)
        logger.info("Reading configuration JSON from: %s", path)
        if not path:
            raise ConfigError("Configuration path is empty")
        try:
            with open(path, encoding="utf-8") as handle:
                document = json.load(handle)
        except OSError as exc:
            raise ConfigError(
                f"Could not open configuration file for reading: {path}"
            ) from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Failed to parse JSON config: {path} (error: {exc})") from exc
        if not isinstance(document, dict):
            raise ConfigError(f"Failed to parse JSON config: {path} (not an object)")

        data = controller_data_from_json(document)
        self.controller_data.controller_properties = data.controller_properties
        self.controller_data.wheel_data = data.wheel_data
        logger.info("Configuration loaded successfully.")
        return self.controller_data

    def connect_controller(self) -> bool:
        """Ask for a connection and return the reported outcome."""
        outcome = {"status": False}
        logger.info(
            "Attempting to connect to controller on port '%s' with baud rate %d",
            self.port_name,
            self.baud_rate,
        )

        def on_status_changed(status: bool, message: str) -> None:
            outcome["status"] = bool(status)
            if status:
                logger.info("Successfully connected to controller: %s", message)
            else:
                logger.error("Failed to connect to controller: %s", message)

        signal = self.communication_interface.connection_status_changed
        signal.connect(on_status_changed)
        try:
            self.communication_interface.connect_serial(self.port_name, self.baud_rate)
        finally:
            signal.disconnect(on_status_changed)

        if outcome["status"]:
            logger.debug("Controller connection process completed successfully.")
        else:
            logger.warning("Controller connection process completed with failure.")
        return outcome["status"]

    def disconnect_controller(self) -> None:
        logger.info("Emitting disconnect request to controller")
        self.communication_interface.disconnect_serial()

    def set_time_sync(self, status: bool) -> None:
        if status:
            logger.info("Enabling time synchronization")
            self.time_sync_client.start_sync()
        else:
            logger.info("Disabling time synchronization")
            self.time_sync_client.stop_sync()

    def set_controller_properties(self) -> bool:
        """Send the controller properties; True if the controller accepted them."""
        outcome = {"status": False}
        logger.info("Sending controller properties...")

        def on_status_changed(status: bool, message: str) -> None:
            outcome["status"] = bool(status)
            if status:
                logger.info("Controller properties set successfully: %s", message)
            else:
                logger.error("Failed to set controller properties: %s", message)

        signal = self.communication_interface.property_set_update
        signal.connect(on_status_changed)
        try:
            self.communication_interface.send_controller_properties(
                self.controller_data.controller_properties
            )
        finally:
            signal.disconnect(on_status_changed)
        return outcome["status"]

    def set_wheel_data(self) -> bool:
        """Send every wheel's data; True only if each one was accepted."""
        wheels = self.controller_data.wheel_data
        logger.info("Starting to send wheel data for %d wheels", len(wheels))
        replies = []

        def on_status_changed(status: bool, message: str) -> None:
            replies.append(bool(status))
            if status:
                logger.info("Wheel data set successfully: %s", message)
            else:
                logger.error("Failed to set wheel data: %s", message)

        success = True
        signal = self.communication_interface.property_set_update
        signal.connect(on_status_changed)
        try:
            for wheel in wheels:
                logger.debug("Sending wheel data for motor ID %d", wheel.motor_id)
                replies.clear()
                self.communication_interface.send_wheel_data(wheel.motor_id, wheel)
                success = success and bool(replies) and all(replies)
        finally:
            signal.disconnect(on_status_changed)

        if success:
            logger.info("All wheel data sent successfully.")
        else:
            logger.warning("Some wheel data failed to send.")
        return success