"""Wire format of the motor-board serial link."""

import struct
from dataclasses import dataclass
from enum import IntEnum

from .crc import crc8, crc16_ccitt

HEAD = 0xF7
DATA_LEN = 256
HEADER_SIZE = 7
MOTOR_STATE_SIZE = 7

_HEADER = struct.Struct("<BBHBH")
_CRC_FIELDS = struct.Struct("<BH")
_MOTOR_STATE = struct.Struct("<Bhhh")


class Mode(IntEnum):
    """Command identifiers carried in the frame header."""

    RESET_ZERO = 0x01
    CONF_WRITE = 0x02
    STOP = 0x03
    BRAKE = 0x04
    SET_NUM = 0x05
    MOTOR_STATE = 0x06
    CONF_LOAD = 0x07
    RESET = 0x08
    RUNZERO = 0x09

    POSITION = 0x80
    VELOCITY = 0x81
    TORQUE = 0x82
    VOLTAGE = 0x83
    CURRENT = 0x84
    TIME_OUT = 0x85

    POS_VEL_TQE = 0x90
    POS_VEL_TQE_KP_KD = 0x93
    POS_VEL_TQE_KP_KI_KD = 0x98
    POS_VEL_KP_KD = 0x9E
    POS_VEL_TQE_RKP_RKD = 0xA3
    POS_VEL_RKP_RKD = 0xA8
    POS_VEL_ACC = 0xAD


@dataclass
class MotorFeedback:
    """Latest decoded state of one motor."""

    time: float = 0.0
    id: int = 0
    position: float = 0.0
    velocity: float = 0.0
    torque: float = 0.0


@dataclass(frozen=True)
class MotorStateRecord:
    """Raw state record reported by the board for one motor."""

    id: int
    pos: int
    vel: int
    tqe: int


@dataclass(frozen=True)
class FrameHeader:
    """The seven-byte header that starts every frame."""

    head: int
    cmd: int
    length: int
    crc8: int
    crc16: int


def _to_int16(value: int) -> int:
    return ((int(value) + 0x8000) & 0xFFFF) - 0x8000


def _build(head: int, cmd: int, payload: bytes) -> bytes:
    length = len(payload)
    if length > DATA_LEN:
        raise ValueError(f"payload of {length} bytes exceeds {DATA_LEN}")
    check8 = crc8(_CRC_FIELDS.pack(cmd & 0xFF, length), 0xFF)
    check16 = crc16_ccitt(payload, 0xFFFF)
    return _HEADER.pack(head & 0xFF, cmd & 0xFF, length, check8, check16) + payload


class CommandBuffer:
    """A reusable outgoing frame whose payload is filled in place."""

    def __init__(self) -> None:
        self.head = 0
        self.cmd = 0
        self.length = 0
        self.data = bytearray(DATA_LEN)

    def prepare(self, cmd: int, length: int, fill: bytes | None = None) -> bool:
        """Switch to ``cmd`` unless already set; return whether it switched.

        On a switch the first ``length`` payload bytes are zeroed, or,
        when ``fill`` is given, the payload starts with ``fill``.
        """
        if self.cmd == cmd:
            return False
        if not 0 <= length <= DATA_LEN:
            raise ValueError(f"length {length} outside 0..{DATA_LEN}")
        if fill is not None and len(fill) > DATA_LEN:
            raise ValueError(f"fill of {len(fill)} bytes exceeds {DATA_LEN}")
        self.head = HEAD
        self.cmd = int(cmd)
        self.length = length
        if fill is None:
            self.data[:length] = bytes(length)
        else:
            self.data[: len(fill)] = fill
        return True

    def write_record(self, index: int, values) -> None:
        """Store ``values`` as little-endian int16s in record slot ``index``."""
        values = [_to_int16(v) for v in values]
        stride = 2 * len(values)
        offset = index * stride
        if index < 0 or offset + stride > DATA_LEN:
            raise IndexError(f"record {index} lies outside the payload")
        struct.pack_into(f"<{len(values)}h", self.data, offset, *values)

    def write_byte(self, index: int, value: int) -> None:
        """Store one byte of payload."""
        if not 0 <= index < DATA_LEN:
            raise IndexError(f"byte {index} lies outside the payload")
        self.data[index] = int(value) & 0xFF

    def encode(self) -> bytes:
        """Return the header with fresh checksums followed by the payload."""
        return _build(self.head, self.cmd, bytes(self.data[: self.length]))


def encode_frame(cmd: int, payload: bytes) -> bytes:
    """Return a complete frame carrying ``payload`` under ``cmd``."""
    return _build(HEAD, cmd, bytes(payload))


def decode_header(raw: bytes) -> FrameHeader:
    """Parse a seven-byte frame header."""
    if len(raw) != HEADER_SIZE:
        raise ValueError(f"header must be {HEADER_SIZE} bytes, got {len(raw)}")
    return FrameHeader(*_HEADER.unpack(raw))


def decode_motor_states(payload: bytes) -> list[MotorStateRecord]:
    """Parse the motor state records of a MOTOR_STATE payload."""
    whole = len(payload) // MOTOR_STATE_SIZE * MOTOR_STATE_SIZE
    return [MotorStateRecord(*fields) for fields in _MOTOR_STATE.iter_unpack(bytes(payload[:whole]))]