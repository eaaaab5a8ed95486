
import pytest
from personalizer_loop.config import LoopConfig
from personalizer_loop.simulation.user import SimulatedUser, TIME_OF_DAY_FEATURES, TASTE_FEATURES

@pytest.fixture
def user():
    return SimulatedUser(LoopConfig())

def test_context_cycles_through_features(user):
    assert [user.time_of_day(i) for i in range(1, 6)] == ["afternoon", "evening", "night", "morning", "afternoon"]
    assert [user.taste(i) for i in range(1, 4)] == ["sweet", "salty", "sweet"]

def test_context_is_deterministic(user):
    # 同じiterationなら同じContext
    assert user.build_context(42).features == user.build_context(42).features

def test_build_context_order(user):
    ctx = user.build_context(2)
    assert ctx.features == [{"time": "evening"}, {"taste": "salty"}]
    assert ctx.as_dict() == {"time": "evening", "taste": "salty"}

def test_context_values_come_from_fixed_sets(user):
    for i in range(100):
        ctx = user.build_context(i).as_dict()
        assert ctx["time"] in TIME_OF_DAY_FEATURES
        assert ctx["taste"] in TASTE_FEATURES

def test_reward_is_zero_every_nth_iteration(user):
    rewards = [user.reward_for(i) for i in range(1, 10)]
    assert rewards == [1.0, 1.0, 0.0, 1.0, 1.0, 0.0, 1.0, 1.0, 0.0]

def test_reward_delay_dangling_every_nth_iteration(user):
    delays = [user.reward_delay(i) for i in range(1, 11)]
    assert delays[4] == 120.0
    assert delays[9] == 120.0
    assert set(delays[:4] + delays[5:9]) == {1.0}

def test_custom_frequencies():
    user = SimulatedUser(LoopConfig(no_reward_frequency=2, dangling_reward_frequency=3,
                                    reward_delay_seconds=0.25, experimental_unit_duration=0))
    assert user.reward_for(4) == 0.0
    assert user.reward_for(5) == 1.0
    assert user.reward_delay(3) == 60.0
    assert user.reward_delay(4) == 0.25

def test_rejects_zero_frequency():
    with pytest.raises(ValueError):
        SimulatedUser(LoopConfig(no_reward_frequency=0))
