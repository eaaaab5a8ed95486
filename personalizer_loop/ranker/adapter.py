
from typing import List, Dict, Any
from personalizer_loop.context import Action, Context, RankedAction, RankResponse
from personalizer_loop.errors import RankingContractError

def to_rank_request(
    actions: List[Action],
    context: Context,
    excluded_action_ids: List[str],
    event_id: str,
) -> Dict[str, Any]:
    """
    ドメインの型をRank APIのリクエストボディ(JSON)に変換する。
    """
    return {
        "contextFeatures": [dict(group) for group in context.features],
        "actions": [
            {"id": action.id, "features": [dict(group) for group in action.features]}
            for action in actions
        ],
        "excludedActions": list(excluded_action_ids),
        "eventId": event_id,
        "deferActivation": False,
    }

def to_rank_response(raw: Dict[str, Any]) -> RankResponse:
    """
    Rank APIのレスポンスをRankResponseに変換する。
    必須フィールドが無い場合はRankingContractError。
    """
    if not isinstance(raw, dict):
        raise RankingContractError(f"rank response must be a JSON object, got {type(raw).__name__}")

    event_id = raw.get("eventId")
    reward_action_id = raw.get("rewardActionId")
    if event_id is None or reward_action_id is None:
        raise RankingContractError(f"rank response is missing eventId/rewardActionId: {raw}")

    entries = raw.get("ranking") or []
    if not isinstance(entries, list):
        raise RankingContractError(f"rank response ranking must be a list: {entries!r}")

    ranking = []
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("id") is None:
            raise RankingContractError(f"invalid ranking entry: {entry!r}")
        # 除外アクションはprobabilityが0で返ってくる
        probability = entry.get("probability", 0.0)
        if isinstance(probability, bool) or not isinstance(probability, (int, float)):
            raise RankingContractError(f"ranking entry '{entry['id']}' has no numeric probability: {probability!r}")
        ranking.append(RankedAction(
            id=str(entry["id"]),
            probability=float(probability),
        ))

    return RankResponse(
        event_id=str(event_id),
        reward_action_id=str(reward_action_id),
        ranking=ranking,
    )
