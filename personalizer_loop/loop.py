
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from personalizer_loop.catalog import get_actions
from personalizer_loop.config import LoopConfig
from personalizer_loop.context import Action, Context, RankResponse
from personalizer_loop.ranker.base import RankingService
from personalizer_loop.reward.dispatcher import RewardDispatcher
from personalizer_loop.simulation.user import SimulatedUser
from personalizer_loop.observability.logging import (
    log_rank_result,
    log_round_completed,
)

@dataclass
class IterationResult:
    iteration: int
    context: Context
    response: RankResponse
    reward: float
    reward_delay_seconds: float

@dataclass
class LoopSummary:
    total_calls: int = 0
    rounds: int = 0
    rewarded: int = 0  # 報酬1を送った回数
    results: List[IterationResult] = field(default_factory=list)

class RankRewardLoop:
    """
    rank -> 報酬判定 -> 報酬送信(非同期)を繰り返すループ。

    rankは同期で呼び、報酬はRewardDispatcherに任せて待たない。
    iterationは1始まりで、ラウンドをまたいで通しで数える。
    """
    def __init__(
        self,
        service: RankingService,
        dispatcher: RewardDispatcher,
        config: LoopConfig,
        user: Optional[SimulatedUser] = None,
        actions: Optional[List[Action]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        config.validate()
        self.service = service
        self.dispatcher = dispatcher
        self.config = config
        self.user = user or SimulatedUser(config)
        self.actions = actions if actions is not None else get_actions()
        self.sleep = sleep
        self.calls_made = 0

    def run(self, keep_results: bool = False) -> LoopSummary:
        summary = LoopSummary()
        iteration = 0
        round_index = 0

        while iteration < self.config.total_calls:
            round_index += 1
            round_calls = min(self.config.calls_per_round, self.config.total_calls - iteration)

            for _ in range(round_calls):
                iteration += 1
                result = self.run_iteration(iteration)
                summary.total_calls += 1
                if result.reward > 0:
                    summary.rewarded += 1
                if keep_results:
                    summary.results.append(result)

            summary.rounds = round_index
            log_round_completed(round_index, round_calls, self.dispatcher.pending())

            # 最後のラウンドの後は待たない
            if iteration < self.config.total_calls and self.config.round_pause_seconds > 0:
                self.sleep(self.config.round_pause_seconds)

        return summary

    def run_iteration(self, iteration: int) -> IterationResult:
        context = self.user.build_context(iteration)
        event_id = str(iteration)

        response = self.service.rank(
            self.actions,
            context,
            list(self.config.excluded_actions),
            event_id,
        )
        self.calls_made += 1
        log_rank_result(iteration, context, response)

        reward = self.user.reward_for(iteration)
        delay = self.user.reward_delay(iteration)
        self.dispatcher.dispatch(response.event_id, reward, delay)

        return IterationResult(
            iteration=iteration,
            context=context,
            response=response,
            reward=reward,
            reward_delay_seconds=delay,
        )
