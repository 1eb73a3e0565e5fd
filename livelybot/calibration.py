"""Per-joint linear calibration of commands and feedback."""

import logging
import re
from collections.abc import Mapping

log = logging.getLogger(__name__)

DEFAULT_SIZE = 20
DEFAULT_RKP = 3.0
DEFAULT_RKD = 0.01

_KEY = re.compile(
    r"^(position_slope|position_offset|velocity_slope|velocity_offset|"
    r"torque_slope|torque_offset|rkp|rkd)_(\d+)$"
)


class DynamicConfig:
    """Slope and offset of position, velocity and torque, plus default gains, per joint."""

    def __init__(self, size: int = DEFAULT_SIZE) -> None:
        if size < 0:
            raise ValueError("size cannot be negative")
        self.size = size
        self.position_slope = [1.0] * size
        self.position_offset = [0.0] * size
        self.velocity_slope = [1.0] * size
        self.velocity_offset = [0.0] * size
        self.torque_slope = [1.0] * size
        self.torque_offset = [0.0] * size
        self.rkp = [DEFAULT_RKP] * size
        self.rkd = [DEFAULT_RKD] * size

    def update(self, values: Mapping[str, float]) -> None:
        """Apply entries named like ``position_slope_3`` or ``rkd_0``."""
        log.info("reconfigure parameter")
        parsed = []
        for key, value in values.items():
            match = _KEY.match(key)
            if match is None:
                raise ValueError(f"unknown configuration key {key!r}")
            field, index = match.group(1), int(match.group(2))
            if index >= self.size:
                raise ValueError(f"joint index {index} outside 0..{self.size - 1}")
            parsed.append((field, index, float(value)))
        for field, index, value in parsed:
            getattr(self, field)[index] = value

    def _check(self, motor_idx: int) -> None:
        if not 0 <= motor_idx < self.size:
            raise IndexError(f"motor index {motor_idx} outside 0..{self.size - 1}")

    def to_command(self, motor_idx: int, pos: float, vel: float,
                   torque: float) -> tuple[float, float, float, float, float]:
        """Return (position, velocity, torque, rkp, rkd) to command joint ``motor_idx``."""
        self._check(motor_idx)
        return (
            pos * self.position_slope[motor_idx] + self.position_offset[motor_idx],
            vel * self.velocity_slope[motor_idx] + self.velocity_offset[motor_idx],
            torque * self.torque_slope[motor_idx] + self.torque_offset[motor_idx],
            self.rkp[motor_idx],
            self.rkd[motor_idx],
        )

    def from_state(self, motor_idx: int, pos: float, vel: float,
                   torque: float) -> tuple[float, float, float]:
        """Undo the calibration on feedback from joint ``motor_idx``."""
        self._check(motor_idx)
        return (
            (pos - self.position_offset[motor_idx]) / self.position_slope[motor_idx],
            (vel - self.velocity_offset[motor_idx]) / self.velocity_slope[motor_idx],
            (torque - self.torque_offset[motor_idx]) / self.torque_slope[motor_idx],
        )