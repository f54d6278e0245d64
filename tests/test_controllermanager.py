import json

import pytest

from motorlink.controllermanager import ControllerManager, retry_operation
from motorlink.nodeconfig import ConfigError, SerialConfig
from motorlink.serialiser import to_json
from motorlink.signals import Signal
from motorlink.structs import (
    ControllerData,
    ControllerProperties,
    ControlMode,
    PidConstants,
    WheelData,
)


class FakeComm:
    def __init__(self, connect_ok=True, property_results=None, reply=True):
        self.connection_status_changed = Signal()
        self.property_set_update = Signal()
        self.connect_ok = connect_ok
        self.property_results = list(property_results or [])
        self.reply = reply
        self.connect_calls = []
        self.properties_sent = []
        self.wheels_sent = []
        self.disconnects = 0

    def connect_serial(self, port, baud):
        self.connect_calls.append((port, baud))
        self.connection_status_changed.emit(
            self.connect_ok, "" if self.connect_ok else "no such port"
        )

    def disconnect_serial(self):
        self.disconnects += 1

    def _answer(self):
        if not self.reply:
            return
        status = self.property_results.pop(0) if self.property_results else True
        self.property_set_update.emit(status, "ok" if status else "failed")

    def send_controller_properties(self, properties):
        self.properties_sent.append(properties)
        self._answer()

    def send_wheel_data(self, motor_id, wheel):
        self.wheels_sent.append((motor_id, wheel))
        self._answer()


class FakeTimeSync:
    def __init__(self):
        self.started = 0
        self.stopped = 0

    def start_sync(self):
        self.started += 1

    def stop_sync(self):
        self.stopped += 1


def _sample_data():
    return ControllerData(
        wheel_data=[
            WheelData(motor_id=0, control_mode=ControlMode.SPEED_CONTROL,
                      angle_pid_constants=PidConstants(1.0, 0.5, 0.25)),
            WheelData(motor_id=1),
        ],
        controller_properties=ControllerProperties(run=True, num_motors=2),
    )


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "controller_config.json"
    path.write_text(json.dumps(to_json(_sample_data())), encoding="utf-8")
    return path


def _manager(comm, sync, path, retries=3):
    return ControllerManager(
        comm, sync, SerialConfig(baud=115200, port="/dev/ttyTEST0"), path,
        retries=retries, retry_delay_ms=0,
    )


def test_retry_operation_succeeds_after_failures():
    attempts = []

    def operation():
        attempts.append(1)
        return len(attempts) == 3

    assert retry_operation(operation, 5, 0) is True
    assert len(attempts) == 3


def test_retry_operation_gives_up_after_max_retries():
    attempts = []

    def operation():
        attempts.append(1)
        return False

    assert retry_operation(operation, 4, 0) is False
    assert len(attempts) == 4


def test_retry_operation_with_no_retries_never_calls():
    attempts = []
    assert retry_operation(lambda: attempts.append(1) or True, 0, 0) is False
    assert attempts == []


def test_read_configuration_round_trip(config_file):
    manager = _manager(FakeComm(), FakeTimeSync(), config_file)
    data = manager.read_configuration()
    expected = _sample_data()
    assert data.wheel_data == expected.wheel_data
    assert data.controller_properties == expected.controller_properties
    assert manager.controller_data.wheel_data == expected.wheel_data


def test_read_configuration_missing_file(tmp_path):
    manager = _manager(FakeComm(), FakeTimeSync(), tmp_path / "absent.json")
    with pytest.raises(ConfigError):
        manager.read_configuration()


def test_read_configuration_empty_path():
    manager = _manager(FakeComm(), FakeTimeSync(), "")
    with pytest.raises(ConfigError):
        manager.read_configuration()


@pytest.mark.parametrize("text", ["{not json", "[1, 2, 3]"])
def test_read_configuration_rejects_bad_documents(tmp_path, text):
    path = tmp_path / "bad.json"
    path.write_text(text, encoding="utf-8")
    manager = _manager(FakeComm(), FakeTimeSync(), path)
    with pytest.raises(ConfigError):
        manager.read_configuration()


@pytest.mark.parametrize("ok", [True, False])
def test_connect_controller_reports_status(config_file, ok):
    comm = FakeComm(connect_ok=ok)
    manager = _manager(comm, FakeTimeSync(), config_file)
    assert manager.connect_controller() is ok
    assert comm.connect_calls == [("/dev/ttyTEST0", 115200)]
    assert len(comm.connection_status_changed) == 0


def test_set_controller_properties(config_file):
    comm = FakeComm(property_results=[True, False])
    manager = _manager(comm, FakeTimeSync(), config_file)
    manager.read_configuration()
    assert manager.set_controller_properties() is True
    assert manager.set_controller_properties() is False
    assert comm.properties_sent[0] == _sample_data().controller_properties
    assert len(comm.property_set_update) == 0


def test_set_wheel_data_all_accepted(config_file):
    comm = FakeComm()
    manager = _manager(comm, FakeTimeSync(), config_file)
    manager.read_configuration()
    assert manager.set_wheel_data() is True
    assert [motor_id for motor_id, _ in comm.wheels_sent] == [0, 1]


def test_set_wheel_data_one_rejected_still_sends_all(config_file):
    comm = FakeComm(property_results=[False, True])
    manager = _manager(comm, FakeTimeSync(), config_file)
    manager.read_configuration()
    assert manager.set_wheel_data() is False
    assert len(comm.wheels_sent) == 2


def test_set_wheel_data_without_reply_fails(config_file):
    comm = FakeComm(reply=False)
    manager = _manager(comm, FakeTimeSync(), config_file)
    manager.read_configuration()
    assert manager.set_wheel_data() is False


def test_set_time_sync_and_disconnect(config_file):
    comm = FakeComm()
    sync = FakeTimeSync()
    manager = _manager(comm, sync, config_file)
    manager.set_time_sync(True)
    manager.set_time_sync(False)
    manager.disconnect_controller()
    assert (sync.started, sync.stopped) == (1, 1)
    assert comm.disconnects == 1


def test_start_runs_full_sequence(config_file):
    comm = FakeComm()
    sync = FakeTimeSync()
    manager = _manager(comm, sync, config_file)
    assert manager.start() is True
    assert sync.started == 1
    assert len(comm.properties_sent) == 1
    assert len(comm.wheels_sent) == 2


def test_start_stops_when_connection_fails(config_file):
    comm = FakeComm(connect_ok=False)
    sync = FakeTimeSync()
    manager = _manager(comm, sync, config_file, retries=3)
    assert manager.start() is False
    assert len(comm.connect_calls) == 3
    assert sync.started == 0
    assert comm.properties_sent == []


def test_start_without_configuration_does_not_connect(tmp_path):
    comm = FakeComm()
    manager = _manager(comm, FakeTimeSync(), tmp_path / "absent.json")
    assert manager.start() is False
    assert comm.connect_calls == []