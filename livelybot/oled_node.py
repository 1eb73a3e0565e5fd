"""Node that feeds robot status to the OLED display board."""

import logging
import math
import threading
import time
from collections.abc import Callable, Iterable, Mapping, Sequence

from .oled import StatusDisplay, read_ip_addresses

log = logging.getLogger(__name__)

CAN_PORT_SLOTS = 4
STATUS_SLOTS = 64
DISCONNECTED_POSITION = -900.0
IP_REFRESH_TICKS = 10
PARAM_ROOT = "robot/CANboard/No_1_CANboard"

_STATUS_TEMPLATE = (1, 0, 1, 0, 1, 1, 0, 1, 1, 0, 0, 1) + (0,) * (STATUS_SLOTS - 12)
_NO_IMU_ANGLES = (0.0, 0.0, 0.0)


def quaternion_to_rpy(x: float, y: float, z: float, w: float) -> tuple[float, float, float]:
    """Return (roll, pitch, yaw) of a quaternion, which need not be normalised."""
    norm = x * x + y * y + z * z + w * w
    if norm == 0.0:
        raise ValueError("quaternion has zero length")
    s = 2.0 / norm
    xs, ys, zs = x * s, y * s, z * s
    wx, wy, wz = w * xs, w * ys, w * zs
    xx, xy, xz = x * xs, x * ys, x * zs
    yy, yz, zz = y * ys, y * zs, z * zs

    m00 = 1.0 - (yy + zz)
    m10 = xy + wz
    m20 = xz - wy
    m21 = yz + wx
    m22 = 1.0 - (xx + yy)

    if abs(m20) >= 1.0:
        yaw = 0.0
        roll = math.atan2(m21, m22)
        pitch = math.pi / 2 if m20 < 0 else -math.pi / 2
    else:
        pitch = -math.asin(m20)
        c = math.cos(pitch)
        roll = math.atan2(m21 / c, m22 / c)
        yaw = math.atan2(m10 / c, m00 / c)
    return roll, pitch, yaw


def motor_status_from_positions(positions: Sequence[float], count: int) -> list[int]:
    """Return the 64 status slots, marking each of the first ``count`` motors 0 or 1."""
    if count < 0 or count > STATUS_SLOTS:
        raise ValueError(f"motor count {count} outside 0..{STATUS_SLOTS}")
    if len(positions) < count:
        raise ValueError(f"expected {count} joint positions, got {len(positions)}")
    statuses = list(_STATUS_TEMPLATE)
    statuses[:count] = [0 if p < DISCONNECTED_POSITION else 1 for p in positions[:count]]
    return statuses


def read_can_counts(params: Mapping[str, int]) -> list[int]:
    """Return the motor count of each of the four CAN ports of the first board."""
    counts = [0] * CAN_PORT_SLOTS
    port_num = params.get(f"{PARAM_ROOT}/CANport_num")
    if port_num is None:
        log.error("Failed to get params can_port_num")
    else:
        port_num = int(port_num)
        if not 0 <= port_num <= CAN_PORT_SLOTS:
            raise ValueError(f"CAN port count {port_num} outside 0..{CAN_PORT_SLOTS}")
        log.info("Robot has %d CAN", port_num)
        for port in range(1, port_num + 1):
            value = params.get(f"{PARAM_ROOT}/CANport/CANport_{port}/motor_num")
            if value is None:
                log.error("Failed to get params motor_num")
                continue
            counts[port - 1] = int(value)
            log.info("can_%d has %d motor", port, counts[port - 1])
    log.info("all_motor_num: %d", sum(counts))
    return counts


class OledNode:
    """Relays IMU, joint, battery and state updates to the display board."""

    def __init__(
        self,
        display: StatusDisplay,
        *,
        ip_reader: Callable[[], Iterable[int]] = read_ip_addresses,
        interval: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.display = display
        self._ip_reader = ip_reader
        self._interval = interval
        self._sleep = sleep
        self._lock = threading.Lock()
        self._ticks = 0
        self._imu_silent = False
        self.ip_addresses = list(ip_reader())

    def _pause(self) -> None:
        self._sleep(self._interval)

    def on_imu(self, x: float, y: float, z: float, w: float) -> None:
        rpy = quaternion_to_rpy(x, y, z, w)
        with self._lock:
            self.display.send_imu_status(True, rpy)
        self._pause()
        with self._lock:
            self._imu_silent = False

    def on_joint_state(self, positions: Sequence[float]) -> None:
        statuses = motor_status_from_positions(positions, sum(self.display.can_counts))
        with self._lock:
            self.display.send_motor_status(statuses)
        self._pause()

    def on_battery_voltage(self, volt: float) -> None:
        with self._lock:
            self.display.send_battery_volt(volt)
        self._pause()

    def on_fsm_state(self, fsm_state: int) -> None:
        with self._lock:
            self.display.send_fsm_state(fsm_state)
        self._pause()

    def tick(self) -> None:
        """One cycle: refresh addresses every tenth tick, send them, report a silent IMU."""
        self._ticks += 1
        if self._ticks >= IP_REFRESH_TICKS:
            self._ticks = 0
            self.ip_addresses = list(self._ip_reader())
        with self._lock:
            self.display.send_ip_addr(self.ip_addresses)
        self._pause()
        with self._lock:
            if self._imu_silent:
                self.display.send_imu_status(False, _NO_IMU_ANGLES)
            self._imu_silent = True

    def run(self, should_continue: Callable[[], bool]) -> None:
        while should_continue():
            self._pause()
            self.tick()