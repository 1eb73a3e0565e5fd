"""Status frames for the robot's OLED display board and the link that sends them."""

import fcntl
import logging
import socket
import struct
from collections.abc import Iterable, Sequence
from itertools import islice

import serial

from .ports import list_serial_ports, usb_vid_pid

log = logging.getLogger(__name__)

OLED_UART_PREFIX = "/dev/ttyACM"
DISPLAY_VID = 1155
DISPLAY_PID = 22339
BAUDRATE = 115200
DEFAULT_INTERFACES = ("lo", "enp86s0", "p2p0")

FRAME_HEAD = b"\xa5\x5a"
FRAME_TAIL = b"\x66\x47\x74"
SEND_BUFFER_SIZE = 64

KIND_IMU = 0x10
KIND_MOTOR = 0x11
KIND_IP = 0x12
KIND_VOLTAGE = 0x13
KIND_FSM = 0x14

_SIOCGIFADDR = 0x8915


def _frame(kind: int, payload: bytes) -> bytes:
    length = len(payload) + 1
    if length + len(FRAME_HEAD) + 1 + len(FRAME_TAIL) > SEND_BUFFER_SIZE:
        raise ValueError(f"frame of {length + 6} bytes exceeds {SEND_BUFFER_SIZE}")
    return FRAME_HEAD + bytes([length, kind]) + payload + FRAME_TAIL


def imu_frame(imu_exist: bool, rpy: Iterable[float]) -> bytes:
    """Frame reporting IMU presence and roll, pitch, yaw."""
    angles = tuple(rpy)
    if len(angles) != 3:
        raise ValueError("rpy must hold exactly three angles")
    return _frame(KIND_IMU, bytes([1 if imu_exist else 0]) + struct.pack("<3f", *angles))


def motor_frame(can_counts: Sequence[int], statuses: Iterable[int]) -> bytes:
    """Frame reporting the motor count of four CAN ports and each motor's status."""
    counts = tuple(int(c) for c in can_counts)
    if len(counts) != 4:
        raise ValueError("can_counts must hold four port counts")
    if any(c < 0 for c in counts):
        raise ValueError("port counts cannot be negative")
    total = sum(counts)
    flags = bytes(int(s) & 0xFF for s in islice(statuses, total))
    if len(flags) < total:
        raise ValueError(f"expected {total} motor statuses, got {len(flags)}")
    packed = bytes(
        [
            (counts[0] & 0x0F) | ((counts[1] & 0x0F) << 4),
            (counts[2] & 0x0F) | ((counts[3] & 0x0F) << 4),
        ]
    )
    return _frame(KIND_MOTOR, packed + flags)


def ip_frame(ip_data: Iterable[int]) -> bytes:
    """Frame carrying IPv4 addresses as 32-bit words in memory order."""
    words = [int(v) & 0xFFFFFFFF for v in ip_data]
    return _frame(KIND_IP, struct.pack(f"<{len(words)}I", *words))


def battery_frame(volt: float) -> bytes:
    """Frame carrying the battery voltage."""
    return _frame(KIND_VOLTAGE, struct.pack("<f", volt))


def fsm_frame(fsm_state: int) -> bytes:
    """Frame carrying the robot's state-machine state."""
    return _frame(KIND_FSM, struct.pack("<i", int(fsm_state)))


def display_port_code(name: str) -> int:
    """Return 1 for the display board, -2 for another USB device, -1 if ids are unknown."""
    ids = usb_vid_pid(name)
    if ids is None:
        return -1
    return 1 if ids == (DISPLAY_VID, DISPLAY_PID) else -2


def find_display_port(prefix: str = OLED_UART_PREFIX) -> str | None:
    """Return the last matching device path that belongs to the display board."""
    matches = [port for port in list_serial_ports(prefix) if display_port_code(port) > 0]
    for port in matches:
        log.info("port: %s", port)
    return matches[-1] if matches else None


def read_interface_ipv4(name: str) -> int:
    """Return an interface's IPv4 address as a 32-bit word in memory order, or 0."""
    request = struct.pack("16sH22s", name.encode()[:15], socket.AF_INET, b"")
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        try:
            reply = fcntl.ioctl(sock.fileno(), _SIOCGIFADDR, request)
        except OSError:
            return 0
    return int.from_bytes(reply[20:24], "little")


def read_ip_addresses(interfaces: Iterable[str] = DEFAULT_INTERFACES) -> list[int]:
    """Return the IPv4 word of each interface, 0 where none is assigned."""
    return [read_interface_ipv4(name) for name in interfaces]


class StatusDisplay:
    """Serial link to the display board."""

    def __init__(
        self,
        can_counts: Sequence[int],
        port: str | None = None,
        *,
        baudrate: int = BAUDRATE,
        timeout: float = 1.0,
        connection=None,
    ) -> None:
        counts = tuple(int(c) for c in can_counts)
        if len(counts) != 4:
            raise ValueError("can_counts must hold four port counts")
        self.can_counts = counts
        self.imu_connected = False
        if connection is None:
            connection = self._open(port or find_display_port(), baudrate, timeout)
        self._connection = connection

    @staticmethod
    def _open(port: str | None, baudrate: int, timeout: float):
        if port is None:
            return None
        try:
            return serial.Serial(port, baudrate, timeout=timeout)
        except (serial.SerialException, OSError, ValueError) as exc:
            log.debug("could not open %s: %s", port, exc)
            return None

    @property
    def opened(self) -> bool:
        return self._connection is not None

    def _write(self, frame: bytes) -> None:
        if self._connection is None:
            raise serial.SerialException("status display port is not open")
        self._connection.write(frame)

    def send_imu_status(self, imu_exist: bool, rpy: Iterable[float]) -> None:
        self.imu_connected = bool(imu_exist)
        self._write(imu_frame(imu_exist, rpy))

    def send_motor_status(self, statuses: Iterable[int]) -> None:
        self._write(motor_frame(self.can_counts, statuses))

    def send_ip_addr(self, ip_data: Iterable[int]) -> None:
        self._write(ip_frame(ip_data))

    def send_battery_volt(self, volt: float) -> None:
        self._write(battery_frame(volt))

    def send_fsm_state(self, fsm_state: int) -> None:
        self._write(fsm_frame(fsm_state))

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "StatusDisplay":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()