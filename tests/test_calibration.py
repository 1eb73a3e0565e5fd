import pytest

from livelybot.calibration import DynamicConfig


def test_default_command_for_twelve_joints():
    config = DynamicConfig()
    for i in range(12):
        assert config.to_command(i, 0, 0, 0) == (0.0, 0.0, 0.0, 3.0, 0.01)


def test_default_state_passes_through():
    config = DynamicConfig()
    for i in range(12):
        assert config.from_state(i, 0.4, -1.2, 0.7) == pytest.approx((0.4, -1.2, 0.7))


def test_update_changes_only_named_joint():
    config = DynamicConfig()
    config.update({"position_slope_3": 2.0, "position_offset_3": 0.5, "rkp_3": 10.0})
    pos, vel, torque, rkp, rkd = config.to_command(3, 1.0, 0.0, 0.0)
    assert pos == pytest.approx(2.5)
    assert rkp == 10.0
    assert rkd == 0.01
    assert config.to_command(4, 1.0, 0.0, 0.0)[0] == 1.0


def test_round_trip_through_calibration():
    config = DynamicConfig()
    config.update({
        "position_slope_1": -1.0, "position_offset_1": 0.2,
        "velocity_slope_1": 0.5, "velocity_offset_1": -0.1,
        "torque_slope_1": 1.5, "torque_offset_1": 0.3,
    })
    cmd = config.to_command(1, 0.8, -2.0, 1.1)
    assert config.from_state(1, *cmd[:3]) == pytest.approx((0.8, -2.0, 1.1))


def test_unknown_key_rejected_without_partial_update():
    config = DynamicConfig()
    with pytest.raises(ValueError):
        config.update({"rkd_0": 0.5, "bogus_1": 1.0})
    assert config.rkd[0] == 0.01


def test_key_index_out_of_range():
    config = DynamicConfig()
    with pytest.raises(ValueError):
        config.update({"torque_offset_20": 1.0})


def test_motor_index_out_of_range():
    config = DynamicConfig()
    with pytest.raises(IndexError):
        config.to_command(20, 0, 0, 0)
    with pytest.raises(IndexError):
        config.from_state(-1, 0, 0, 0)


def test_custom_size():
    config = DynamicConfig(size=2)
    assert config.to_command(1, 0, 0, 0)[3] == 3.0
    with pytest.raises(IndexError):
        config.to_command(2, 0, 0, 0)