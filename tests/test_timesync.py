import struct
import time

import pytest
import serial

from motorlink.commands import Command
from motorlink.communication import CommunicationInterface
from motorlink.serialhandler import FRAME_HEADER, SerialHandler
from motorlink.timesync import TimeSyncClient, crc16_ccitt


class FakePort:
    def __init__(self):
        self.is_open = False
        self.incoming = bytearray()
        self.written = bytearray()
        self.timeout = None
        self.flushed = 0

    def open(self):
        self.is_open = True

    def close(self):
        self.is_open = False

    def write(self, data):
        if not self.is_open:
            raise serial.SerialException("port not open")
        self.written += data
        return len(data)

    def read(self, size=1):
        chunk = bytes(self.incoming[:size])
        del self.incoming[:size]
        return chunk

    @property
    def in_waiting(self):
        return len(self.incoming)

    def reset_input_buffer(self):
        self.incoming.clear()

    def reset_output_buffer(self):
        pass

    def flush(self):
        self.flushed += 1


class FakeClock:
    def __init__(self, *values):
        self.values = list(values)

    def __call__(self):
        return self.values.pop(0)


def reply(mcu_time_us, corrupt=False):
    body = struct.pack("<Q", mcu_time_us)
    crc = crc16_ccitt(body) ^ (1 if corrupt else 0)
    return body + struct.pack("<H", crc)


@pytest.fixture
def port():
    return FakePort()


@pytest.fixture
def comm(port):
    handler = SerialHandler(port)
    handler.connect("loop0", 115200)
    return CommunicationInterface(handler, ack_timeout_ms=20)


def make_client(comm, clock):
    return TimeSyncClient(comm.serial_handler, comm, clock=clock, auto_start=False)


def test_crc_check_value():
    assert crc16_ccitt(b"123456789") == 0x29B1


def test_crc_of_empty_is_initial_value():
    assert crc16_ccitt(b"") == 0xFFFF


@pytest.mark.parametrize("data", [b"\x00", b"abc", bytes(range(20))])
def test_crc_residue_is_zero(data):
    crc = crc16_ccitt(data)
    assert crc16_ccitt(data + crc.to_bytes(2, "big")) == 0


def test_send_sync_request_writes_frame(comm, port):
    client = make_client(comm, FakeClock(4, 8))
    client.send_sync_request()
    assert bytes(port.written) == FRAME_HEADER + bytes([Command.SYNC_TIME])
    assert port.flushed == 1
    # The request records the send time that the reply is measured against.
    port.incoming += reply(0)
    assert client.read_sync_reply() == 6


def test_reply_yields_delta(comm, port):
    client = make_client(comm, FakeClock(1000, 3000))
    deltas = []
    client.sync_completed.connect(deltas.append)
    client.send_sync_request()
    port.incoming += reply(1)
    assert client.read_sync_reply() == 1000
    assert deltas == [1000]
    assert client.avg_delta == 1000


def test_reply_through_communication_interface(comm, port):
    client = make_client(comm, FakeClock(1000, 3000))
    deltas = []
    client.sync_completed.connect(deltas.append)
    client.send_sync_request()
    port.incoming += reply(1)
    comm.command_received(Command.SYNC_TIME)
    assert deltas == [1000]


def test_bad_crc_is_ignored(comm, port):
    client = make_client(comm, FakeClock(1000, 3000))
    deltas = []
    client.sync_completed.connect(deltas.append)
    client.send_sync_request()
    port.incoming += reply(1, corrupt=True)
    assert client.read_sync_reply() is None
    assert deltas == []


def test_short_reply_is_ignored(comm, port):
    client = make_client(comm, FakeClock(1000, 3000))
    client.send_sync_request()
    port.incoming += b"\x01\x02\x03"
    assert client.read_sync_reply() is None


def test_offset_is_smoothed(comm, port):
    client = make_client(comm, FakeClock(0, 2000, 0, 4000))
    deltas = []
    client.sync_completed.connect(deltas.append)
    for _ in range(2):
        client.send_sync_request()
        port.incoming += reply(0)
        client.read_sync_reply()
    assert deltas == [1000, 2000]
    assert client.avg_delta == 1200


def test_stop_sync_resets_smoothing(comm, port):
    client = make_client(comm, FakeClock(0, 2000, 0, 4000))
    deltas = []
    client.sync_completed.connect(deltas.append)
    client.send_sync_request()
    port.incoming += reply(0)
    client.read_sync_reply()
    client.stop_sync()
    client.send_sync_request()
    port.incoming += reply(0)
    client.read_sync_reply()
    assert client.avg_delta == deltas[-1]


def test_timer_sends_requests_until_stopped(comm, port):
    client = TimeSyncClient(comm.serial_handler, comm, sync_interval_ms=10)
    deadline = time.monotonic() + 2.0
    while not port.written and time.monotonic() < deadline:
        time.sleep(0.005)
    client.stop_sync()
    assert bytes(port.written[:4]) == FRAME_HEADER + bytes([Command.SYNC_TIME])
    assert client.running is False