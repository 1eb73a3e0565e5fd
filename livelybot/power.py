"""Power board messages carried over CAN."""

import logging
import struct
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import ClassVar

log = logging.getLogger(__name__)

CAN_DEVICE_NAME = "can0"
ORANGEPI_ADDR = 0x01
BMS_ADDR = 0x06
POWER_SWITCH_ADDR = 0x07

_INT16 = struct.Struct("<h")


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _scaled(data: bytes, offset: int) -> float:
    if len(data) < offset + 2:
        raise ValueError(f"frame of {len(data)} bytes too short")
    return _f32(_INT16.unpack_from(data, offset)[0] / 100.0)


@dataclass(frozen=True)
class BatteryVoltage:
    topic: ClassVar[str] = "battery_voltage"
    voltage: float


@dataclass(frozen=True)
class PowerDetect:
    topic: ClassVar[str] = "power_detect_state"
    voltage: float
    current: float
    power: float


@dataclass(frozen=True)
class PowerSwitchState:
    topic: ClassVar[str] = "power_switch_state"
    control_switch: int
    power_switch: int


Message = BatteryVoltage | PowerDetect | PowerSwitchState


def decode_can_id(can_id: int) -> tuple[int, int, int]:
    """Split an identifier into (device address, data type, append flag)."""
    can_id = int(can_id)
    return (can_id >> 7) & 0xFF, (can_id >> 1) & 0x3F, (can_id >> 10) & 0xFF


def parse_power_frame(can_id: int, data: bytes) -> Message | None:
    """Decode a frame from the battery or power-switch board; None if it carries nothing known."""
    dev_addr, data_type, append_flag = decode_can_id(can_id)
    if append_flag:
        return None
    data = bytes(data)
    if dev_addr == BMS_ADDR:
        if data_type == 0x01:
            return BatteryVoltage(_scaled(data, 0))
        log.warning("Error Type")
        return None
    if dev_addr == POWER_SWITCH_ADDR:
        if data_type == 0x01:
            voltage = _scaled(data, 0)
            current = _scaled(data, 2)
            return PowerDetect(voltage, current, _f32(voltage * current))
        if data_type == 0x02:
            if len(data) < 2:
                raise ValueError(f"frame of {len(data)} bytes too short")
            # The board's reply is published with control_switch taken from the second byte.
            return PowerSwitchState(control_switch=data[1], power_switch=0)
    return None


def encode_power_switch(control_switch: int, power_switch: int) -> tuple[int, bytes]:
    """Return the (identifier, payload) that sets the power switches."""
    can_id = (ORANGEPI_ADDR << 7) | (1 << 1) | 0
    return can_id, bytes([int(control_switch) & 0xFF, int(power_switch) & 0xFF])


class PowerBoard:
    """Publishes power board telemetry and forwards switch commands."""

    def __init__(self, driver, publish: Callable[[Message], object], *,
                 interval: float = 0.1, sleep: Callable[[float], None] = time.sleep) -> None:
        self.driver = driver
        self._publish = publish
        self._interval = interval
        self._sleep = sleep

    def handle_frame(self, can_id: int, data: bytes) -> Message | None:
        message = parse_power_frame(can_id, data)
        if message is not None:
            self._publish(message)
        return message

    def set_switch(self, control_switch: int, power_switch: int) -> None:
        self.driver.send(*encode_power_switch(control_switch, power_switch))

    def run(self, should_continue: Callable[[], bool]) -> None:
        self.driver.start_callback(self.handle_frame)
        while should_continue():
            self._sleep(self._interval)