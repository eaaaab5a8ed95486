
import pytest
from unittest.mock import MagicMock
from personalizer_loop.catalog import filter_actions, get_actions
from personalizer_loop.config import LoopConfig
from personalizer_loop.context import RankResponse, RankedAction
from personalizer_loop.loop import RankRewardLoop
from personalizer_loop.errors import PersonalizerError

class FakeRankingService:
    """除外されていない先頭のアクションを選ぶだけのランキングサービス"""
    def __init__(self):
        self.rank_calls = []
        self.rewards = []

    def rank(self, actions, context, excluded_action_ids, event_id):
        self.rank_calls.append((context, list(excluded_action_ids), event_id))
        candidates = filter_actions(actions, excluded_action_ids)
        ranking = [RankedAction(id=a.id, probability=1.0 / len(candidates)) for a in candidates]
        ranking += [RankedAction(id=a_id, probability=0.0) for a_id in excluded_action_ids]
        return RankResponse(event_id=event_id, reward_action_id=candidates[0].id, ranking=ranking)

    def reward(self, event_id, value):
        self.rewards.append((event_id, value))

@pytest.fixture
def service():
    return FakeRankingService()

@pytest.fixture
def dispatcher():
    d = MagicMock()
    d.pending.return_value = 0
    return d

def test_run_issues_total_calls(service, dispatcher):
    config = LoopConfig(total_calls=10)
    loop = RankRewardLoop(service, dispatcher, config, sleep=MagicMock())

    summary = loop.run()

    assert summary.total_calls == 10
    assert summary.rounds == 1
    assert [call[2] for call in service.rank_calls] == [str(i) for i in range(1, 11)]
    assert dispatcher.dispatch.call_count == 10

def test_rewards_and_delays_follow_iteration(service, dispatcher):
    config = LoopConfig(total_calls=6)
    loop = RankRewardLoop(service, dispatcher, config, sleep=MagicMock())

    summary = loop.run(keep_results=True)

    dispatched = [call[0] for call in dispatcher.dispatch.call_args_list]
    assert dispatched[2] == ("3", 0.0, 1.0)
    assert dispatched[4] == ("5", 1.0, 120.0)
    assert summary.rewarded == 4
    assert [r.reward for r in summary.results] == [1.0, 1.0, 0.0, 1.0, 1.0, 0.0]

def test_excluded_actions_are_never_chosen(service, dispatcher):
    config = LoopConfig(total_calls=8, excluded_actions=["pasta", "juice"])
    loop = RankRewardLoop(service, dispatcher, config, sleep=MagicMock())

    summary = loop.run(keep_results=True)

    for call in service.rank_calls:
        assert call[1] == ["pasta", "juice"]
    for result in summary.results:
        assert result.response.reward_action_id not in config.excluded_actions

def test_rounds_pause_between_batches(service, dispatcher):
    sleep = MagicMock()
    config = LoopConfig(total_calls=7, calls_per_round=3, round_pause_seconds=2.5)
    loop = RankRewardLoop(service, dispatcher, config, sleep=sleep)

    summary = loop.run()

    assert summary.rounds == 3
    assert summary.total_calls == 7
    # 最後のラウンドの後は待たない
    assert sleep.call_count == 2
    sleep.assert_called_with(2.5)

def test_iteration_counter_is_global_across_rounds(service, dispatcher):
    config = LoopConfig(total_calls=4, calls_per_round=2)
    loop = RankRewardLoop(service, dispatcher, config, sleep=MagicMock())

    loop.run()

    assert [call[2] for call in service.rank_calls] == ["1", "2", "3", "4"]

def test_context_is_sent_with_rank(service, dispatcher):
    loop = RankRewardLoop(service, dispatcher, LoopConfig(total_calls=1), sleep=MagicMock())

    result = loop.run_iteration(1)

    assert service.rank_calls[0][0].features == [{"time": "afternoon"}, {"taste": "sweet"}]
    assert result.response.reward_action_id == "pasta"

def test_rank_error_propagates(dispatcher):
    service = MagicMock()
    service.rank.side_effect = PersonalizerError("unavailable", status_code=503)
    loop = RankRewardLoop(service, dispatcher, LoopConfig(total_calls=3), actions=get_actions(), sleep=MagicMock())

    with pytest.raises(PersonalizerError):
        loop.run()

    dispatcher.dispatch.assert_not_called()
    assert loop.calls_made == 0

def test_filter_actions_keeps_catalog_order():
    remaining = filter_actions(get_actions(), ["juice"])
    assert [a.id for a in remaining] == ["pasta", "ice cream", "salad"]
