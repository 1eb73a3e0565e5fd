import struct
from types import SimpleNamespace
from unittest import mock

import pytest
import serial

from livelybot.oled import (
    StatusDisplay,
    battery_frame,
    display_port_code,
    find_display_port,
    fsm_frame,
    imu_frame,
    ip_frame,
    motor_frame,
    read_interface_ipv4,
    read_ip_addresses,
)

IMU = (1.23, 2.45, 5.6)
MOTOR_STATUS = [1, 1, 0, 0, 1, 1, 0, 1, 0, 1, 0, 1, 1, 1, 0, 0, 1, 1, 0, 1, 0, 1, 0]
IP_ADDR = [345735, 837438, 998877]
TAIL = b"\x66\x47\x74"


class _Recorder:
    def __init__(self):
        self.frames = []
        self.closed = False

    def write(self, data):
        self.frames.append(bytes(data))
        return len(data)

    def close(self):
        self.closed = True


def test_imu_frame():
    frame = imu_frame(True, IMU)
    assert len(frame) == 20
    assert frame[:5] == bytes([0xA5, 0x5A, 14, 0x10, 1])
    assert struct.unpack("<3f", frame[5:17]) == pytest.approx(IMU, rel=1e-6)
    assert frame[17:] == TAIL


def test_imu_frame_needs_three_angles():
    with pytest.raises(ValueError):
        imu_frame(False, (1.0, 2.0))


def test_motor_frame_humanoid():
    frame = motor_frame((7, 6, 5, 5), MOTOR_STATUS)
    assert len(frame) == 32
    assert frame[:6] == bytes([0xA5, 0x5A, 26, 0x11, 0x67, 0x55])
    assert frame[6:29] == bytes(MOTOR_STATUS)
    assert frame[29:] == TAIL


def test_motor_frame_uses_only_counted_statuses():
    frame = motor_frame((6, 6, 0, 0), MOTOR_STATUS)
    assert frame[2] == 15
    assert frame[5] == 0
    assert frame[6:18] == bytes(MOTOR_STATUS[:12])


def test_motor_frame_too_few_statuses():
    with pytest.raises(ValueError):
        motor_frame((7, 6, 5, 5), MOTOR_STATUS[:10])


def test_motor_frame_needs_four_counts():
    with pytest.raises(ValueError):
        motor_frame((7, 6), MOTOR_STATUS)


def test_ip_frame():
    frame = ip_frame(IP_ADDR)
    assert frame[:4] == bytes([0xA5, 0x5A, 13, 0x12])
    assert list(struct.unpack("<3I", frame[4:16])) == IP_ADDR
    assert frame[16:] == TAIL


def test_ip_frame_too_large():
    with pytest.raises(ValueError):
        ip_frame([1] * 15)


def test_battery_frame():
    frame = battery_frame(23.2)
    assert frame[:4] == bytes([0xA5, 0x5A, 5, 0x13])
    assert struct.unpack("<f", frame[4:8])[0] == pytest.approx(23.2, rel=1e-6)
    assert frame[8:] == TAIL


def test_fsm_frame_zero():
    assert fsm_frame(0) == bytes([0xA5, 0x5A, 5, 0x14, 0, 0, 0, 0, 0x66, 0x47, 0x74])


def test_fsm_frame_negative_round_trip():
    assert struct.unpack("<i", fsm_frame(-3)[4:8])[0] == -3


def test_status_display_sends_frames():
    link = _Recorder()
    display = StatusDisplay((7, 6, 5, 5), connection=link)
    display.send_imu_status(True, IMU)
    display.send_motor_status(MOTOR_STATUS)
    display.send_ip_addr(IP_ADDR)
    display.send_battery_volt(23.2)
    display.send_fsm_state(0)
    assert display.imu_connected is True
    assert link.frames == [
        imu_frame(True, IMU),
        motor_frame((7, 6, 5, 5), MOTOR_STATUS),
        ip_frame(IP_ADDR),
        battery_frame(23.2),
        fsm_frame(0),
    ]


def test_status_display_close_via_context():
    link = _Recorder()
    with StatusDisplay((1, 0, 0, 0), connection=link) as display:
        display.send_imu_status(False, (0.0, 0.0, 0.0))
    assert link.closed is True
    assert display.opened is False
    assert display.imu_connected is False


def test_status_display_unopened_port_raises(tmp_path):
    display = StatusDisplay((1, 0, 0, 0), port=str(tmp_path / "ttyACM0"))
    assert display.opened is False
    with pytest.raises(serial.SerialException):
        display.send_fsm_state(1)


def test_status_display_rejects_bad_counts():
    with pytest.raises(ValueError):
        StatusDisplay((1, 2, 3), connection=_Recorder())


def _comports(tmp_path):
    return [
        SimpleNamespace(device=f"{tmp_path}/ttyACM0", vid=1155, pid=22339),
        SimpleNamespace(device=f"{tmp_path}/ttyACM1", vid=0xCAF1, pid=1),
        SimpleNamespace(device=f"{tmp_path}/ttyACM2", vid=None, pid=None),
    ]


def test_display_port_code(tmp_path):
    with mock.patch("serial.tools.list_ports.comports", return_value=_comports(tmp_path)):
        assert display_port_code(f"{tmp_path}/ttyACM0") == 1
        assert display_port_code(f"{tmp_path}/ttyACM1") == -2
        assert display_port_code(f"{tmp_path}/ttyACM2") == -1


def test_find_display_port(tmp_path):
    for name in ("ttyACM0", "ttyACM1", "ttyACM2"):
        (tmp_path / name).touch()
    with mock.patch("serial.tools.list_ports.comports", return_value=_comports(tmp_path)):
        assert find_display_port(f"{tmp_path}/ttyACM") == f"{tmp_path}/ttyACM0"


def test_find_display_port_picks_last_match(tmp_path):
    for name in ("ttyACM0", "ttyACM3"):
        (tmp_path / name).touch()
    ports = [
        SimpleNamespace(device=f"{tmp_path}/ttyACM0", vid=1155, pid=22339),
        SimpleNamespace(device=f"{tmp_path}/ttyACM3", vid=1155, pid=22339),
    ]
    with mock.patch("serial.tools.list_ports.comports", return_value=ports):
        assert find_display_port(f"{tmp_path}/ttyACM") == f"{tmp_path}/ttyACM3"


def test_find_display_port_none(tmp_path):
    with mock.patch("serial.tools.list_ports.comports", return_value=[]):
        assert find_display_port(f"{tmp_path}/ttyACM") is None


def test_read_interface_ipv4_unknown_interface():
    assert read_interface_ipv4("nosuchif0") == 0


def test_read_ip_addresses_unknown_interfaces():
    assert read_ip_addresses(["nosuchif0", "nosuchif1"]) == [0, 0]