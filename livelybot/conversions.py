"""Scaling between physical motor quantities and the int16 values on the wire."""

import logging
import math
import struct
from enum import IntEnum

log = logging.getLogger(__name__)

INT16_SATURATION = 32700
POSITION_STEPS = 10000.0
VELOCITY_STEPS = 4000.0


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


MY_2PI = _f32(6.28318530717)


class MotorType(IntEnum):
    """Motor models, numbered as in the robot configuration."""

    NULL = 0
    M5046 = 1
    M4538 = 2
    M5047_36 = 3
    M5047_9 = 4
    M4438_32 = 5
    M4438_8 = 6
    M7136_7 = 7


class PosVelUnit(IntEnum):
    """Unit of positions and velocities handed to and from a motor."""

    RADIAN_2PI = 0
    ANGLE_360 = 1
    TURNS = 2


def _unit(unit) -> PosVelUnit | None:
    try:
        return PosVelUnit(unit)
    except ValueError:
        return None


def _motor_type(motor_type) -> MotorType | None:
    try:
        return MotorType(motor_type)
    except ValueError:
        return None


def _to_int16(value: float) -> int:
    """Truncate toward zero and keep the low sixteen bits as a signed value."""
    return ((math.trunc(value) + 0x8000) & 0xFFFF) - 0x8000


def _scale_to_raw(value: float, unit, steps: float) -> int:
    v = _f32(value)
    u = _unit(unit)
    if u is PosVelUnit.RADIAN_2PI:
        return _to_int16(_f32(v / MY_2PI) * steps)
    if u is PosVelUnit.ANGLE_360:
        return _to_int16(v / 360.0 * steps)
    if u is PosVelUnit.TURNS:
        return _to_int16(v * steps)
    return 0


def _scale_from_raw(raw: int, unit, steps: float) -> float:
    r = _to_int16(raw)
    u = _unit(unit)
    if u is PosVelUnit.RADIAN_2PI:
        return _f32(_f32(r * MY_2PI) / steps)
    if u is PosVelUnit.ANGLE_360:
        return _f32(r * 360.0 / steps)
    if u is PosVelUnit.TURNS:
        return _f32(r / steps)
    return 0.0


def pos_to_raw(value: float, unit=PosVelUnit.RADIAN_2PI) -> int:
    """Position to wire value: 10000 counts per turn; 0 for an unknown unit."""
    return _scale_to_raw(value, unit, POSITION_STEPS)


def vel_to_raw(value: float, unit=PosVelUnit.RADIAN_2PI) -> int:
    """Velocity to wire value: 4000 counts per turn per second; 0 for an unknown unit."""
    return _scale_to_raw(value, unit, VELOCITY_STEPS)


def pos_from_raw(raw: int, unit=PosVelUnit.RADIAN_2PI) -> float:
    """Wire position to the given unit; 0.0 for an unknown unit."""
    return _scale_from_raw(raw, unit, POSITION_STEPS)


def vel_from_raw(raw: int, unit=PosVelUnit.RADIAN_2PI) -> float:
    """Wire velocity to the given unit; 0.0 for an unknown unit."""
    return _scale_from_raw(raw, unit, VELOCITY_STEPS)


_TORQUE_TO_RAW = {
    MotorType.M5046: (0.07, 0.00528),
    MotorType.M4538: (0.05, 0.00445),
    MotorType.M5047_36: (0.03313, 0.004938),
    MotorType.M5047_9: (0.034809, 0.00533),
    MotorType.M4438_32: (0.083, _f32(0.005584)),
}

_RKP_RANGE = {
    MotorType.M5046: 1.6,
    MotorType.M4538: 0.5,
    MotorType.M5047_36: 0.8,
    MotorType.M5047_9: 0.165,
}

_RKD_RANGE = {
    MotorType.M5046: 0.05,
    MotorType.M4538: 0.005,
    MotorType.M5047_36: 0.015,
    MotorType.M5047_9: 0.0033,
}

_PID_DIVISOR = {
    MotorType.M5046: _f32(0.533),
    MotorType.M4538: _f32(0.4938),
    MotorType.M5047_36: _f32(0.4938),
    MotorType.M5047_9: _f32(0.547),
    MotorType.M4438_32: _f32(0.5584),
    MotorType.M4438_8: _f32(0.5),
    MotorType.M7136_7: _f32(0.5),
}


def _report_missing(mt: MotorType | None) -> None:
    if mt is MotorType.NULL:
        log.error("motor type not set,fresh command fault")
    else:
        log.error("motor type setting error")


def torque_to_raw(value: float, motor_type) -> int:
    """Torque in Nm to wire value; 0 for a motor type without a torque model."""
    mt = _motor_type(motor_type)
    entry = _TORQUE_TO_RAW.get(mt)
    if entry is None:
        _report_missing(mt)
        return 0
    offset, step = entry
    return _to_int16((_f32(value) + offset) / step)


def _gain_range_to_raw(value: float, motor_type, ranges: dict) -> int:
    mt = _motor_type(motor_type)
    factor = ranges.get(mt)
    if factor is None:
        _report_missing(mt)
        return 0
    return _to_int16(_f32(_f32(value) * 0x7FF) / (MY_2PI * factor))


def rkp_to_raw(value: float, motor_type) -> int:
    """Relative stiffness gain to wire value; 0 for an unsupported motor type."""
    return _gain_range_to_raw(value, motor_type, _RKP_RANGE)


def rkd_to_raw(value: float, motor_type) -> int:
    """Relative damping gain to wire value; 0 for an unsupported motor type."""
    return _gain_range_to_raw(value, motor_type, _RKD_RANGE)


def pid_scale(value: float, motor_type) -> float:
    """Divide a gain by the motor's torque constant; unchanged for an untyped motor."""
    divisor = _PID_DIVISOR.get(_motor_type(motor_type))
    v = _f32(value)
    return v if divisor is None else _f32(v / divisor)


def saturate_int16(value) -> int:
    """Clamp a gain output to +/-32700."""
    v = math.trunc(value)
    if v >= INT16_SATURATION:
        log.info("PID output has reached the saturation limit.")
        return INT16_SATURATION
    if v <= -INT16_SATURATION:
        log.info("PID output has reached the saturation limit.")
        return -INT16_SATURATION
    return _to_int16(v)


def gain_to_raw(value: float, unit, motor_type) -> int:
    """Kp, Ki or Kd to wire value, saturated to +/-32700."""
    tenfold = _f32(pid_scale(value, motor_type) * 10)
    u = _unit(unit)
    if u is PosVelUnit.RADIAN_2PI:
        scaled = _f32(tenfold * MY_2PI)
    elif u is PosVelUnit.ANGLE_360:
        scaled = _f32(tenfold * 360)
    elif u is PosVelUnit.TURNS:
        scaled = tenfold
    else:
        scaled = 0.0
    return saturate_int16(scaled)


def torque_from_raw(raw: int, motor_type) -> float:
    """Wire torque to Nm; an untyped motor is read with the 5046 model."""
    r = _to_int16(raw)
    mt = _motor_type(motor_type)
    if mt is MotorType.NULL:
        log.error("motor type not set,fresh data fault")
        mt = MotorType.M5046
    if mt is MotorType.M5046:
        return _f32(_f32(r * 0.005397) - 0.07)
    if mt is MotorType.M4538:
        return _f32(_f32(r * 0.00445) - 0.05)
    if mt is MotorType.M5047_36:
        return _f32(_f32(r * _f32(0.004938)) - _f32(0.03313))
    if mt is MotorType.M5047_9:
        return _f32(_f32(r * 0.00533) - 0.034809)
    if mt is MotorType.M4438_32:
        return _f32(_f32(r * 0.005584) - _f32(0.083))
    if mt is MotorType.M4438_8:
        return _f32(r * 0.0055)
    if mt is MotorType.M7136_7:
        return _f32(r * 0.006)
    return 0.0