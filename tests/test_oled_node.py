import math

import pytest

from livelybot.oled import StatusDisplay, battery_frame, fsm_frame, imu_frame, ip_frame, motor_frame
from livelybot.oled_node import (
    OledNode,
    motor_status_from_positions,
    quaternion_to_rpy,
    read_can_counts,
)


class FakeConnection:
    def __init__(self):
        self.writes = []

    def write(self, data):
        self.writes.append(bytes(data))

    def close(self):
        pass


def make_node(counts=(2, 1, 0, 0), reader=None):
    conn = FakeConnection()
    display = StatusDisplay(counts, connection=conn)
    node = OledNode(display, ip_reader=reader or (lambda: [1, 2, 3]), sleep=lambda s: None)
    return node, conn


def test_identity_quaternion():
    assert quaternion_to_rpy(0.0, 0.0, 0.0, 1.0) == pytest.approx((0.0, 0.0, 0.0))


def test_yaw_rotation():
    half = 0.7
    rpy = quaternion_to_rpy(0.0, 0.0, math.sin(half / 2), math.cos(half / 2))
    assert rpy == pytest.approx((0.0, 0.0, half))


def test_roll_and_pitch_rotations():
    assert quaternion_to_rpy(math.sin(0.15), 0.0, 0.0, math.cos(0.15)) == pytest.approx((0.3, 0.0, 0.0))
    assert quaternion_to_rpy(0.0, math.sin(0.2), 0.0, math.cos(0.2)) == pytest.approx((0.0, 0.4, 0.0))


def test_unnormalised_quaternion_matches_normalised():
    q = (0.1, 0.2, 0.3, 0.9)
    scaled = tuple(3 * v for v in q)
    assert quaternion_to_rpy(*scaled) == pytest.approx(quaternion_to_rpy(*q))


def test_zero_quaternion_rejected():
    with pytest.raises(ValueError):
        quaternion_to_rpy(0.0, 0.0, 0.0, 0.0)


def test_motor_status_marks_disconnected():
    statuses = motor_status_from_positions([-999.0, 0.5, -901.0, 3.0], 4)
    assert len(statuses) == 64
    assert statuses[:8] == [0, 1, 0, 1, 1, 1, 0, 1]


def test_motor_status_needs_enough_positions():
    with pytest.raises(ValueError):
        motor_status_from_positions([0.0], 2)


def test_read_can_counts():
    root = "robot/CANboard/No_1_CANboard"
    params = {
        f"{root}/CANport_num": 2,
        f"{root}/CANport/CANport_1/motor_num": 6,
        f"{root}/CANport/CANport_2/motor_num": 5,
    }
    assert read_can_counts(params) == [6, 5, 0, 0]
    assert read_can_counts({}) == [0, 0, 0, 0]


def test_read_can_counts_rejects_too_many_ports():
    with pytest.raises(ValueError):
        read_can_counts({"robot/CANboard/No_1_CANboard/CANport_num": 5})


def test_tick_sends_ip_then_silent_imu():
    node, conn = make_node()
    node.tick()
    assert conn.writes == [ip_frame([1, 2, 3])]
    node.tick()
    assert conn.writes[1:] == [ip_frame([1, 2, 3]), imu_frame(False, (0.0, 0.0, 0.0))]


def test_imu_update_suppresses_silent_report():
    node, conn = make_node()
    node.tick()
    node.on_imu(0.0, 0.0, 0.0, 1.0)
    node.tick()
    assert conn.writes == [ip_frame([1, 2, 3]), imu_frame(True, (0.0, 0.0, 0.0)), ip_frame([1, 2, 3])]


def test_callbacks_send_frames():
    node, conn = make_node()
    node.on_joint_state([-999.0, 0.0, 5.0])
    node.on_battery_voltage(24.0)
    node.on_fsm_state(3)
    assert conn.writes == [motor_frame((2, 1, 0, 0), [0, 1, 1]), battery_frame(24.0), fsm_frame(3)]


def test_ip_addresses_refresh_every_ten_ticks():
    calls = []

    def reader():
        calls.append(1)
        return [len(calls)]

    node, conn = make_node(reader=reader)
    for _ in range(9):
        node.tick()
    assert len(calls) == 1
    node.tick()
    assert len(calls) == 2
    assert conn.writes[-2] == ip_frame([2])


def test_run_ticks_while_allowed():
    node, conn = make_node()
    remaining = iter([True, True, True, False])
    node.run(lambda: next(remaining))
    assert conn.writes.count(ip_frame([1, 2, 3])) == 3