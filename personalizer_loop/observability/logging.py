
import json
import logging
from typing import Optional
from personalizer_loop.context import Context, RankResponse

logger = logging.getLogger("personalizer")
logger.setLevel(logging.INFO)
# 実行環境に依存するため、ここでは標準出力への出力のみを想定
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter('%(message)s'))
logger.addHandler(handler)

def _emit(level: int, log_data: dict):
    logger.log(level, json.dumps(log_data, ensure_ascii=False))

def log_rank_result(iteration: int, context: Context, response: RankResponse):
    """
    ランキング結果を構造化ログ(JSON)として出力する。
    """
    _emit(logging.INFO, {
        "event": "rank_completed",
        "iteration": iteration,
        "event_id": response.event_id,
        "context": context.as_dict(),
        "reward_action_id": response.reward_action_id,
        "ranking": [
            {
                "id": ranked.id,
                "probability": ranked.probability,
                "rank": i + 1,
            }
            for i, ranked in enumerate(response.ranking)
        ]
    })

def log_reward_scheduled(event_id: str, value: float, delay_seconds: float):
    _emit(logging.INFO, {
        "event": "reward_scheduled",
        "event_id": event_id,
        "value": value,
        "delay_seconds": delay_seconds,
    })

def log_reward_sent(event_id: str, value: float):
    _emit(logging.INFO, {"event": "reward_sent", "event_id": event_id, "value": value})

def log_reward_failed(event_id: str, value: float, error: BaseException):
    _emit(logging.ERROR, {
        "event": "reward_failed",
        "event_id": event_id,
        "value": value,
        "error": str(error),
        "error_type": type(error).__name__,
    })

def log_round_completed(round_index: int, calls: int, pending_rewards: int):
    _emit(logging.INFO, {
        "event": "round_completed",
        "round": round_index,
        "calls": calls,
        "pending_rewards": pending_rewards,
    })

def log_loop_completed(total_calls: int, rewards_sent: int, rewards_failed: int, error: Optional[str] = None):
    log_data = {
        "event": "loop_completed",
        "total_calls": total_calls,
        "rewards_sent": rewards_sent,
        "rewards_failed": rewards_failed,
    }
    if error:
        log_data["error"] = error
    _emit(logging.ERROR if error else logging.INFO, log_data)

def log_rewards_draining(pending_rewards: int, wait: bool):
    """
    終了前の報酬送信待ち。wait=Trueならdangling rewardの待ち時間分ブロックしうる。
    """
    _emit(logging.WARNING if not wait else logging.INFO, {
        "event": "rewards_draining",
        "pending_rewards": pending_rewards,
        "wait": wait,
    })
