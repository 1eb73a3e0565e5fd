# livelybot

Building blocks for talking to the boards of a LivelyBot robot from Python:

- the USB motor boards, which take checksummed serial frames for the motors
  on each of their CAN ports and answer with acknowledgements, a firmware
  version and motor state records;
- the power board, which reports battery and supply readings and takes
  switch commands over a Linux SocketCAN interface;
- the small status display, which receives IMU, motor, network, battery
  and state information over a serial line.

## Modules

| Module | Purpose |
| --- | --- |
| `livelybot.crc` | `crc8` and `crc16_ccitt`, the checksums used in motor board frames. |
| `livelybot.protocol` | `Mode`, `FrameHeader`, `CommandBuffer`, `encode_frame`, `decode_header`, `decode_motor_states`. |
| `livelybot.conversions` | `MotorType`, `PosVelUnit` and scaling between physical values and raw int16 wire values. |
| `livelybot.link` | `SerialLink`, a serial link to one motor board port, and its `PortStatus`. |
| `livelybot.ports` | `list_serial_ports` and `usb_vid_pid`. |
| `livelybot.discovery` | `find_motor_ports`, `order_ports`, `board_code` and `DiscoveryError`. |
| `livelybot.calibration` | `DynamicConfig`, per-joint slope/offset calibration with default gains. |
| `livelybot.can_driver` | `CanFrame`, `pack_can_frame`, `unpack_can_frame` and the `CanDriver` socket wrapper. |
| `livelybot.power` | Power board messages, `parse_power_frame`, `encode_power_switch` and `PowerBoard`. |
| `livelybot.oled` | Status display frames, interface address lookup and the `StatusDisplay` link. |
| `livelybot.oled_node` | `OledNode`, which relays IMU, joint, battery and state updates to the display. |

## Checksums

Motor board frames carry a CRC-8 over the command and length fields and a
CRC-16/CCITT over the payload:

```python
from livelybot.crc import crc8, crc16_ccitt

header_check = crc8(b"\x06\x01\x00", 0xFF)
payload_check = crc16_ccitt(b"\x7f", 0xFFFF)
```

## Motor board frames

A frame is a seven-byte header (head `0xF7`, command, length, CRC-8,
CRC-16) followed by up to 256 payload bytes.

```python
from livelybot.protocol import CommandBuffer, Mode, decode_header, encode_frame

frame = encode_frame(Mode.MOTOR_STATE, b"\x7f")
header = decode_header(frame[:7])

buffer = CommandBuffer()
buffer.prepare(Mode.STOP, 1)      # switches command and zeroes the payload
buffer.write_byte(0, 0x7F)
buffer.write_record(0, (0, 0))    # little-endian int16 record slots
frame = buffer.encode()           # checksums are computed on each encode
```

`CommandBuffer.prepare` only resets the buffer when the command changes and
returns whether it did. `decode_motor_states` turns a motor state payload
into `MotorStateRecord`s holding the motor id and its raw position,
velocity and torque.

## Unit conversions

```python
from livelybot.conversions import MotorType, PosVelUnit, pos_to_raw, torque_from_raw

raw = pos_to_raw(1.0, PosVelUnit.RADIAN_2PI)
torque = torque_from_raw(120, MotorType.M5047_36)
```

Positions and velocities can be given in radians (`RADIAN_2PI`), degrees
(`ANGLE_360`) or turns (`TURNS`). Torque, relative gain (`rkp_to_raw`,
`rkd_to_raw`) and PID gain (`gain_to_raw`, saturated to ±32700 by
`saturate_int16`) scaling depend on the motor type; unsupported types give 0
and log an error.

## Serial link to a motor board port

```python
from livelybot.link import SerialLink
from livelybot.protocol import CommandBuffer, Mode

with SerialLink("/dev/ttyACM0", 4000000) as link:
    buffer = CommandBuffer()
    buffer.prepare(Mode.SET_NUM, 1)
    buffer.write_byte(0, 6)
    link.send(buffer)
    link.poll()
    print(link.status.version, link.status.motor_ids, link.status.mode_flag)
```

If the port cannot be opened, `opened` is false and `send`/`poll` raise
`serial.SerialException`. `poll` reads one frame, checks both checksums and
updates `status`: acknowledgements of `RESET_ZERO`, `CONF_WRITE` and
`CONF_LOAD` record the mode and the acknowledging motor ids, `SET_NUM`
replies set the board version, and `MOTOR_STATE` records are handed to
`fresh_data(pos, vel, tqe)` of the objects registered with `bind_motors`,
keyed by motor id. `receive_loop(should_continue)` polls until the callable
returns false.

`find_motor_ports(prefix, board_num)` lists the motor board ports under a
device prefix such as `/dev/ttyACM`, identifies the two boards by USB vendor
id and returns the first board's four ports before the second board's;
it raises `DiscoveryError` when too few ports are found or a board cannot be
told apart.

## Calibration

```python
from livelybot.calibration import DynamicConfig

config = DynamicConfig()
config.update({"position_slope_0": 2.0, "rkp_0": 5.0})
pos, vel, torque, rkp, rkd = config.to_command(0, 0.5, 0.0, 0.0)
pos, vel, torque = config.from_state(0, pos, vel, torque)
```

## Power board

```python
from livelybot.power import parse_power_frame, encode_power_switch

message = parse_power_frame(0x302, b"\x10\x09\x00\x00")   # BatteryVoltage(23.2)
can_id, data = encode_power_switch(1, 0)
```

`parse_power_frame` returns a `BatteryVoltage`, a `PowerDetect` (voltage,
current and power) or a `PowerSwitchState`, depending on the sending board
and the data type in the identifier, or `None`. `PowerBoard(driver, publish)`
passes every decoded message to `publish`, sends switch commands with
`set_switch`, and `run(should_continue)` starts the driver's receive
callback and waits. `CanDriver("can0")` opens a raw SocketCAN socket; it
offers `send`, `receive`, `start_callback` and `close` and works as a
context manager.

## Status display

```python
from livelybot.oled import imu_frame, motor_frame, battery_frame, fsm_frame

frames = [
    imu_frame(True, (1.23, 2.45, 5.6)),
    motor_frame((7, 6, 5, 5), [1] * 23),
    battery_frame(23.2),
    fsm_frame(0),
]
```

`StatusDisplay(can_counts)` looks for the display's serial port under
`/dev/ttyACM` when no port is given and sends these frames.
`read_ip_addresses` collects the IPv4 addresses of the `lo`, `enp86s0` and
`p2p0` interfaces (0 where none is assigned) for `ip_frame`.
`OledNode(display)` converts IMU quaternions to roll, pitch and yaw, marks
joints with positions below -900 as disconnected, and with `tick` or
`run(should_continue)` sends the addresses periodically and reports a
silent IMU.

## What the package does not do

- It has no objects for individual motors, for a CAN port with its motors,
  for a whole board or for the whole robot: commands are written into a
  `CommandBuffer` by the caller, and motor state records go to whatever
  objects the caller registers with `SerialLink.bind_motors`.
- It installs no command-line programs; the node classes run only inside a
  loop the caller drives.

## Requirements

Python 3.10 or later and `pyserial`. The CAN driver and interface address
lookup need Linux.