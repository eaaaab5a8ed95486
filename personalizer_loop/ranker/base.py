
from typing import List, Protocol
from personalizer_loop.context import Action, Context, RankResponse

class RankingService(Protocol):
    def rank(
        self,
        actions: List[Action],
        context: Context,
        excluded_action_ids: List[str],
        event_id: str,
    ) -> RankResponse:
        """
        アクション一覧とContextを渡し、ランキングと選ばれたアクションを受け取る
        """
        ...

    def reward(self, event_id: str, value: float) -> None:
        """
        event_idに対応する報酬を送る
        """
        ...
