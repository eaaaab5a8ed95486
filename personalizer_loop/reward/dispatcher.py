
import time
import threading
import concurrent.futures
from typing import Callable, Set

from personalizer_loop.ranker.base import RankingService
from personalizer_loop.observability.logging import (
    log_reward_scheduled,
    log_reward_sent,
    log_reward_failed,
)

class RewardDispatcher:
    """
    報酬をバックグラウンドで送信する(fire-and-forget)。

    dispatch()は待たずに戻る。待ち時間は報酬ごとのタイマースレッドで消化し、
    期限が来たものだけを送信用のスレッドプールに渡す。
    長い(dangling)待ちがプールのワーカーを占有することはない。
    送信失敗はログに残して数えるだけで、呼び出し元には伝播しない。
    送信順序は保証しない。
    """
    def __init__(
        self,
        service: RankingService,
        max_workers: int = 16,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.service = service
        self.sleep = sleep
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="reward"
        )
        self._lock = threading.Lock()
        self._in_flight: Set[concurrent.futures.Future] = set()
        self._timers: Set[threading.Thread] = set()
        self.sent = 0
        self.failed = 0

    def dispatch(self, event_id: str, value: float, delay_seconds: float) -> concurrent.futures.Future:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"reward must be within [0, 1], got {value}")
        if delay_seconds < 0:
            raise ValueError(f"delay must not be negative, got {delay_seconds}")

        log_reward_scheduled(event_id, value, delay_seconds)
        future: concurrent.futures.Future = concurrent.futures.Future()
        timer = threading.Thread(
            target=self._wait_then_submit,
            args=(event_id, value, delay_seconds, future),
            name=f"reward-timer-{event_id}",
            daemon=True,
        )
        with self._lock:
            self._in_flight.add(future)
            self._timers.add(timer)
            timer.start()
        future.add_done_callback(self._forget)
        return future

    def pending(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def shutdown(self, wait: bool = True):
        # wait=Trueならdangling rewardも含めて送り切るまで待つ
        if wait:
            while True:
                with self._lock:
                    timers = list(self._timers)
                if not timers:
                    break
                for timer in timers:
                    timer.join()
        self._executor.shutdown(wait=wait)

    def _wait_then_submit(self, event_id: str, value: float, delay_seconds: float,
                          future: concurrent.futures.Future):
        try:
            self.sleep(delay_seconds)
            self._executor.submit(self._send, event_id, value, future)
        except RuntimeError as e:
            # shutdown(wait=False)の後に期限が来た報酬は送らない
            self._fail(event_id, value, e, future)
        finally:
            with self._lock:
                self._timers.discard(threading.current_thread())

    def _send(self, event_id: str, value: float, future: concurrent.futures.Future):
        try:
            self.service.reward(event_id, value)
        except Exception as e:
            self._fail(event_id, value, e, future)
            return

        with self._lock:
            self.sent += 1
        log_reward_sent(event_id, value)
        future.set_result(True)

    def _fail(self, event_id: str, value: float, error: BaseException,
              future: concurrent.futures.Future):
        with self._lock:
            self.failed += 1
        log_reward_failed(event_id, value, error)
        future.set_result(False)

    def _forget(self, future: concurrent.futures.Future):
        with self._lock:
            self._in_flight.discard(future)
