
from personalizer_loop.config import LoopConfig
from personalizer_loop.context import Context

TIME_OF_DAY_FEATURES = ["morning", "afternoon", "evening", "night"]
TASTE_FEATURES = ["salty", "sweet"]

class SimulatedUser:
    """
    イテレーション番号から、ユーザーのコンテキストと報酬を決定的に生成する。

    実際のユーザー入力の代わりに使うため、同じiterationに対しては
    常に同じ結果を返す。
    """
    def __init__(self, config: LoopConfig):
        if config.no_reward_frequency <= 0 or config.dangling_reward_frequency <= 0:
            raise ValueError("reward frequencies must be positive")
        self.config = config

    def time_of_day(self, iteration: int) -> str:
        return TIME_OF_DAY_FEATURES[iteration % len(TIME_OF_DAY_FEATURES)]

    def taste(self, iteration: int) -> str:
        return TASTE_FEATURES[iteration % len(TASTE_FEATURES)]

    def build_context(self, iteration: int) -> Context:
        return Context(features=[
            {"time": self.time_of_day(iteration)},
            {"taste": self.taste(iteration)},
        ])

    def reward_for(self, iteration: int) -> float:
        """Every `no_reward_frequency`-th iteration the user rejects the suggestion."""
        if iteration % self.config.no_reward_frequency == 0:
            return 0.0
        return 1.0

    def reward_delay(self, iteration: int) -> float:
        """
        報酬を送るまでの待ち時間(秒)。
        dangling_reward_frequency回に1回は実験単位より長く待ち、遅延報酬を再現する。
        """
        if iteration % self.config.dangling_reward_frequency == 0:
            return self.config.dangling_reward_delay_seconds
        return self.config.reward_delay_seconds
