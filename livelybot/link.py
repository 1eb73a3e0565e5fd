"""Serial link to one CAN port of the motor board."""

import logging
import struct
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

import serial

from .crc import crc8, crc16_ccitt
from .protocol import DATA_LEN, HEAD, CommandBuffer, FrameHeader, Mode, decode_motor_states

log = logging.getLogger(__name__)

ACK_MODES = frozenset({Mode.RESET_ZERO, Mode.CONF_WRITE, Mode.CONF_LOAD})

_HEAD_REST = struct.Struct("<BHB")
_CRC16 = struct.Struct("<H")
_F32 = struct.Struct("<f")


def _f32(value: float) -> float:
    return _F32.unpack(_F32.pack(value))[0]


_TENTH = _f32(0.1)


@dataclass
class PortStatus:
    """What the board has reported back on one port."""

    version: float = 0.0
    motor_ids: set[int] = field(default_factory=set)
    mode_flag: int = 0


class SerialLink:
    """Sends command frames to a port and dispatches the frames it answers with."""

    def __init__(self, port: str, baudrate: int, *, timeout: float = 1.0, connection=None) -> None:
        self.port = port
        self.status = PortStatus()
        self._motors: dict = {}
        if connection is None:
            connection = self._open(port, baudrate, timeout)
        self._connection = connection

    @staticmethod
    def _open(port: str, baudrate: int, timeout: float):
        try:
            connection = serial.Serial(port, baudrate, timeout=timeout)
        except (serial.SerialException, OSError, ValueError) as exc:
            log.error("Motor Unable to open port %s: %s", port, exc)
            return None
        log.info("Motor Serial Port initialized.")
        return connection

    @property
    def opened(self) -> bool:
        return self._connection is not None

    def _require(self):
        if self._connection is None:
            raise serial.SerialException(f"serial port {self.port} is not open")
        return self._connection

    def send(self, buffer: CommandBuffer) -> None:
        """Write the buffer's frame with freshly computed checksums."""
        self._require().write(buffer.encode())

    def bind_motors(self, motors: Mapping) -> None:
        """Route motor state records to these motors, keyed by motor id."""
        self._motors = dict(motors)

    def poll(self) -> FrameHeader | None:
        """Read one frame and act on it; None if nothing valid arrived."""
        conn = self._require()
        first = conn.read(1)
        if len(first) != 1 or first[0] != HEAD:
            return None
        rest = conn.read(_HEAD_REST.size)
        if len(rest) != _HEAD_REST.size:
            return None
        cmd, length, check8 = _HEAD_REST.unpack(rest)
        if check8 != crc8(rest[:3], 0xFF):
            return None
        raw_crc = conn.read(_CRC16.size)
        if len(raw_crc) != _CRC16.size:
            return None
        (check16,) = _CRC16.unpack(raw_crc)
        if length > DATA_LEN:
            return None
        payload = conn.read(length)
        if len(payload) != length or crc16_ccitt(payload, 0xFFFF) != check16:
            return None
        self._dispatch(cmd, bytes(payload))
        return FrameHeader(HEAD, cmd, length, check8, check16)

    def _dispatch(self, cmd: int, payload: bytes) -> None:
        if cmd in ACK_MODES:
            self.status.mode_flag = cmd
            self.status.motor_ids.update(payload)
        elif cmd == Mode.SET_NUM:
            padded = payload.ljust(4, b"\0")
            self.status.version = _f32(_f32(padded[2]) + _f32(padded[3] * _TENTH))
        elif cmd == Mode.MOTOR_STATE:
            for record in decode_motor_states(payload):
                motor = self._motors.get(record.id)
                if motor is not None:
                    motor.fresh_data(record.pos, record.vel, record.tqe)

    def receive_loop(self, should_continue: Callable[[], bool]) -> None:
        while should_continue():
            self.poll()

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "SerialLink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()