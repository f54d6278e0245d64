"""Framed command and data exchange over a serial port.

A command frame is three header bytes (0xAA) followed by one command byte.
Incoming bytes are buffered; complete frames found in the buffer are
announced through ``command_received``.
"""

from __future__ import annotations

import time
from typing import Any, List, Optional, Union

import serial
from serial.tools import list_ports

from .commands import Command
from .signals import Signal

HEADER = 0xAA
FRAME_HEADER = bytes((HEADER, HEADER, HEADER))

_READ_POLL_S = 0.001
_DATA_POLL_S = 0.01


def _as_command(value: int) -> Union[Command, int]:
    try:
        return Command(value)
    except ValueError:
        return value


class SerialHandler:
    """Owns the serial port and the receive buffer."""

    def __init__(self, port: Any = None) -> None:
        self._port = port if port is not None else serial.Serial()
        self._buffer = bytearray()
        self._auto_read = True
        self._parsing = False
        self.command_received = Signal()

    def __enter__(self) -> SerialHandler:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()

    @property
    def auto_read(self) -> bool:
        """Whether ``handle_ready_read`` drains the port and parses frames."""
        return self._auto_read

    @property
    def pending(self) -> bytes:
        """Bytes received but not yet consumed."""
        return bytes(self._buffer)

    def connect(self, port_name: str, baud_rate: int) -> None:
        """Open ``port_name`` at 8N1 without flow control; raise ConnectionError on failure."""
        self.disconnect()
        port = self._port
        try:
            port.port = port_name
            port.baudrate = baud_rate
            port.bytesize = serial.EIGHTBITS
            port.parity = serial.PARITY_NONE
            port.stopbits = serial.STOPBITS_ONE
            port.xonxoff = False
            port.rtscts = False
            port.open()
        except (serial.SerialException, OSError, ValueError) as exc:
            raise ConnectionError(str(exc) or f"cannot open {port_name}") from exc

    def disconnect(self) -> None:
        if self._port.is_open:
            self._port.close()

    def is_connected(self) -> bool:
        return bool(self._port.is_open)

    def available_ports(self) -> List[Any]:
        """Serial ports present on this machine."""
        return list(list_ports.comports())

    def _write(self, data: bytes) -> bool:
        try:
            written = self._port.write(data)
        except (serial.SerialException, OSError):
            return False
        return written == len(data)

    def _flush(self) -> None:
        try:
            self._port.flush()
        except (serial.SerialException, OSError):
            pass

    def _read_available(self) -> bytes:
        waiting = self._port.in_waiting
        return bytes(self._port.read(waiting)) if waiting else b""

    def _wait_read(self, timeout_s: float) -> bytes:
        self._port.timeout = timeout_s
        first = self._port.read(1)
        if not first:
            return b""
        return bytes(first) + self._read_available()

    def send_command(self, command: int) -> bool:
        """Write one command frame; True if all four bytes were written."""
        return self._write(FRAME_HEADER + bytes((int(command),)))

    def send_command_and_flush(self, command: int) -> bool:
        sent = self.send_command(command)
        self._flush()
        return sent

    def ping(self, command: int = Command.PING) -> Optional[int]:
        """Send ``command`` and return the milliseconds until a PING reply, or None."""
        if not self.is_connected():
            return None
        self._buffer += self._read_available()
        self._port.reset_input_buffer()
        self._port.reset_output_buffer()
        self.send_command(command)
        self._flush()
        start = time.monotonic()
        if self.read_command() == Command.PING:
            return int((time.monotonic() - start) * 1000)
        return None

    def read_command(self, timeout_ms: int = 1000) -> Optional[Union[Command, int]]:
        """Read a command frame straight from the port, or None on timeout."""
        if not self.is_connected():
            return None
        deadline = time.monotonic() + timeout_ms / 1000
        self._port.timeout = _READ_POLL_S
        while time.monotonic() < deadline:
            head = self._port.read(3)
            if len(head) == 3 and bytes(head) == FRAME_HEADER:
                while time.monotonic() < deadline:
                    byte = self._port.read(1)
                    if byte:
                        return _as_command(byte[0])
                return None
        return None

    def send_data(self, data: bytes) -> bool:
        return self._write(bytes(data))

    def read_data(self, length: int, timeout_ms: int = 1000) -> bytes:
        """Take ``length`` bytes from the buffer, reading the port as needed.

        Returns an empty result if they do not arrive in time.
        """
        if not self.is_connected():
            return b""
        deadline = time.monotonic() + timeout_ms / 1000
        while len(self._buffer) < length and time.monotonic() < deadline:
            self._buffer += self._wait_read(_DATA_POLL_S)
        data = b""
        if len(self._buffer) >= length:
            data = bytes(self._buffer[:length])
            del self._buffer[:length]
        self.parse_buffer()
        return data

    def set_auto_read(self, flag: bool) -> None:
        self._auto_read = bool(flag)

    def handle_ready_read(self) -> None:
        """Drain the port into the buffer and parse it, unless auto-read is off."""
        if self._auto_read and self.is_connected():
            self._buffer += self._read_available()
            self.parse_buffer()

    def parse_buffer(self) -> None:
        """Announce every complete command frame in the buffer, dropping noise."""
        if self._parsing:
            # An outer call is already walking the buffer and will continue.
            return
        self._parsing = True
        try:
            buffer = self._buffer
            while len(buffer) > 3:
                index = buffer.find(HEADER)
                if index < 0:
                    buffer.clear()
                    break
                if len(buffer) <= index + 3:
                    break
                if bytes(buffer[index:index + 3]) != FRAME_HEADER:
                    del buffer[:index + 1]
                    continue
                command = buffer[index + 3]
                del buffer[:index + 4]
                self.command_received.emit(command)
        finally:
            self._parsing = False