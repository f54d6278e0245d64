# motorlink

motorlink talks to a multi-motor controller board over a serial line. It
configures the board from a JSON file, sends wheel setpoints, estimates the
offset between the host clock and the board's clock, and turns the timestamped
wheel angles the board broadcasts into differential-drive odometry.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## The `motorlink` command

```
motorlink
```

The command:

1. reads the `serial_config` section (`port`, `baud`) of the node
   configuration YAML file; if that file cannot be read it prints
   `Failed to load config file.` and exits with status 1;
2. opens the serial port, starts periodic time synchronisation, reads the
   controller configuration JSON file and sends the controller properties and
   every wheel's data, retrying each step;
3. keeps draining the serial port and handling incoming frames until it is
   interrupted or the given duration has passed.

Options:

| Option | Default | Meaning |
| --- | --- | --- |
| `--node-config` | `config/node_config.yaml` | YAML file with the serial settings |
| `--controller-config` | `config/controller_config.json` | JSON file with the controller and wheel settings |
| `--retries` | `10` | attempts per step |
| `--retry-delay-ms` | `1000` | wait after a failed attempt |
| `--poll-ms` | `10` | interval between reads of the port |
| `--duration` | none | seconds to run; runs until interrupted when omitted |

## Modules

- `motorlink.commands` – `Command`, the one-byte command codes. On the wire a
  command frame is three `0xAA` header bytes followed by the command byte.
- `motorlink.structs` – `ControlMode` and the payload dataclasses
  (`WheelData`, `ControllerProperties`, `PidConstants`, `OdoBroadcastFlags`,
  `TimestampedAngle`, `ControllerData`, ...). `to_bytes()` packs them
  little-endian; the `from_bytes(data, offset)` classmethods return
  `(instance, new_offset)` and raise `ValueError` on a short buffer.
- `motorlink.serialiser` – `to_json()` turns any of those structures into a
  plain `dict`; `controller_data_from_json()`, `wheel_data_from_json()` and the
  other `*_from_json()` functions read them back leniently: missing or
  mistyped fields become zero, `False` or empty, and an unknown control mode
  reads as `ControlMode.OFF`.
- `motorlink.nodeconfig` – `NodeConfig.load()` parses the YAML node
  configuration; `serial_config()` and `diff_drive_config()` return
  `SerialConfig` and `DiffDriveConfig`. Problems raise `ConfigError`.
- `motorlink.signals` – `Signal`, a small synchronous callback list with
  `connect`, `disconnect` and `emit`, used for every notification below.
- `motorlink.serialhandler` – `SerialHandler` opens the port at 8N1 without
  flow control (`connect` raises `ConnectionError` on failure), writes
  commands and data, reads acknowledgements and buffered payloads, and emits
  `command_received` for each frame it finds.
- `motorlink.communication` – `CommunicationInterface` sends controller
  properties, wheel data, PID constants, broadcast flags, control modes and
  setpoints. Each property is acknowledged by the board and reported through
  `property_set_update(status, message)`; connection attempts are reported
  through `connection_status_changed(status, message)`. Timestamped wheel
  angles from the board arrive on `encoder_odometry_received`.
- `motorlink.timesync` – `crc16_ccitt()` and `TimeSyncClient`, which sends a
  sync request every interval, checks the CRC of the reply and emits
  `sync_completed` with the host-minus-board offset in nanoseconds.
- `motorlink.rolling` – `RollingMeanAccumulator`, a mean over the last N
  values.
- `motorlink.encoderodometry` – `EncoderOdometry` integrates left and right
  wheel angles into a pose and smoothed velocities, and `odometry_msg()`
  returns an `OdometryMessage`.
- `motorlink.odometry` – `Odometry` feeds samples to the estimator and emits
  `publish_encoder_odometry` with every new estimate.
- `motorlink.diffdrivecontrol` – `DiffDriveControl` turns a `Twist` into left
  and right wheel speeds and emits them as `SPEED_CONTROL` setpoints.
- `motorlink.diffdrive` – `DiffDrive` wires board odometry, time sync and
  velocity commands together; `DiffDriveSetup` sets the wheel radius and base
  for both odometry and control.
- `motorlink.controllermanager` – `ControllerManager` runs the bring-up
  sequence; `retry_operation()` retries a step with a delay.

## Examples

Reading the node configuration:

```python
from motorlink.nodeconfig import NodeConfig

config = NodeConfig.load("node_config.yaml")
serial = config.serial_config()
print(serial.port, serial.baud)
```

Packing a wheel description for the board and as JSON:

```python
from motorlink.structs import ControlMode, WheelData
from motorlink.serialiser import to_json, wheel_data_from_json

wheel = WheelData(motor_id=1, control_mode=ControlMode.SPEED_CONTROL)
payload = wheel.to_bytes()
decoded, end = WheelData.from_bytes(payload)
document = to_json(wheel)
assert wheel_data_from_json(document).control_mode is ControlMode.SPEED_CONTROL
```

Wheel speeds for a velocity command:

```python
from motorlink.diffdrivecontrol import DiffDriveControl, DiffDriveControlConfig, Twist

control = DiffDriveControl(DiffDriveControlConfig(wheel_radius=0.1, wheel_base=0.5))
left, right = control.on_velocity_command(Twist(linear_x=1.0, angular_z=0.5))
```

Checking a time-sync reply:

```python
from motorlink.timesync import crc16_ccitt

checksum = crc16_ccitt(b"\x00" * 8)
```

Smoothing a noisy signal over the last few samples:

```python
from motorlink.rolling import RollingMeanAccumulator

acc = RollingMeanAccumulator(3)
for value in (1.0, 2.0, 3.0, 4.0):
    acc.accumulate(value)
print(acc.rolling_mean())  # mean of 2.0, 3.0 and 4.0
```

## What it does not do

- Odometry estimates are only emitted as Python signals
  (`DiffDrive.odometry_published`); nothing publishes them to a robotics
  middleware, network or file.
- Velocity commands are not received from anywhere; they take effect only
  when code calls `DiffDrive.on_velocity_command()`.
- The `motorlink` command uses a wheel radius and wheel base of 1.0 and does
  not read the `diff_drive_config` section of the node configuration.
- There is no graphical or interactive front end.