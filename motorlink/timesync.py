"""Clock offset estimation between this host and the controller."""

from __future__ import annotations

import struct
import threading
import time
from typing import Callable, Optional

from .commands import Command
from .communication import CommunicationInterface
from .serialhandler import SerialHandler
from .signals import Signal

_REPLY = struct.Struct("<QH")


def crc16_ccitt(data: bytes) -> int:
    """CRC-16/CCITT with polynomial 0x1021 and initial value 0xFFFF."""
    crc = 0xFFFF
    for byte in data:
        crc ^= byte << 8
        for _ in range(8):
            crc = ((crc << 1) ^ 0x1021) if crc & 0x8000 else (crc << 1)
            crc &= 0xFFFF
    return crc


class TimeSyncClient:
    """Periodically asks the controller for its time and reports the offset.

    The reply is an 8-byte microsecond timestamp followed by its CRC.
    ``sync_completed`` carries the offset in nanoseconds, host minus
    controller; ``avg_delta`` holds an exponentially smoothed offset.
    """

    ALPHA = 0.2

    def __init__(
        self,
        serial_handler: SerialHandler,
        communication_interface: CommunicationInterface,
        clock: Callable[[], int] = time.time_ns,
        sync_interval_ms: int = 3000,
        auto_start: bool = True,
    ) -> None:
        self.serial_handler = serial_handler
        self.communication_interface = communication_interface
        self.clock = clock
        self.sync_interval_ms = sync_interval_ms
        self.avg_delta = 0
        self.sync_completed = Signal()

        self._t0 = 0
        self._has_previous_sync = False
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

        communication_interface.time_sync_reply_received.connect(self.read_sync_reply)
        if auto_start:
            self.start_sync()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self, stop: threading.Event) -> None:
        while not stop.wait(self.sync_interval_ms / 1000):
            self.send_sync_request()

    def start_sync(self) -> None:
        """Start sending sync requests every interval, if not already doing so."""
        if self.running:
            return
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), daemon=True
        )
        self._thread.start()

    def stop_sync(self) -> None:
        """Stop the periodic requests and forget the smoothing history."""
        self._has_previous_sync = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def send_sync_request(self) -> None:
        self._t0 = self.clock()
        self.serial_handler.send_command_and_flush(Command.SYNC_TIME)

    def read_sync_reply(self) -> Optional[int]:
        """Read the controller's reply; return the offset, or None if it was unusable."""
        data = self.serial_handler.read_data(_REPLY.size)
        if len(data) < _REPLY.size:
            return None
        mcu_time_us, received_crc = _REPLY.unpack(data)
        if received_crc != crc16_ccitt(data[:8]):
            return None

        t3 = self.clock()
        sync_sys_time_ns = (self._t0 + t3) // 2
        delta = sync_sys_time_ns - mcu_time_us * 1000

        if self._has_previous_sync:
            self.avg_delta = int(self.ALPHA * delta + (1.0 - self.ALPHA) * self.avg_delta)
        else:
            self.avg_delta = delta
            self._has_previous_sync = True

        self.sync_completed.emit(delta)
        return delta