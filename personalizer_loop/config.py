
import os
import time
import logging
import boto3
from dataclasses import dataclass, field, replace
from typing import Optional, Dict, List

from personalizer_loop.catalog import DEFAULT_EXCLUDED_ACTIONS
from personalizer_loop.errors import ConfigurationError

logger = logging.getLogger("personalizer")

@dataclass
class LoopConfig:
    total_calls: int = 500
    experimental_unit_duration: int = 1  # minutes
    no_reward_frequency: int = 3  # n回に1回は報酬0
    dangling_reward_frequency: int = 5  # n回に1回は報酬送信を遅らせる
    reward_delay_seconds: float = 1.0
    calls_per_round: int = 500
    round_pause_seconds: float = 0.0
    excluded_actions: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_ACTIONS))

    @property
    def dangling_reward_delay_seconds(self) -> float:
        # 実験単位の長さ + 1分待ってから送る
        return (self.experimental_unit_duration + 1) * 60.0

    def validate(self) -> None:
        for name in ("total_calls", "no_reward_frequency", "dangling_reward_frequency", "calls_per_round"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        if self.experimental_unit_duration < 0:
            raise ConfigurationError("experimental_unit_duration must not be negative")
        if self.reward_delay_seconds < 0 or self.round_pause_seconds < 0:
            raise ConfigurationError("delays must not be negative")

@dataclass
class ServiceSettings:
    endpoint: str
    api_key: str
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls, endpoint: Optional[str] = None, api_key: Optional[str] = None) -> "ServiceSettings":
        endpoint = endpoint or os.getenv("PERSONALIZER_ENDPOINT")
        api_key = api_key or os.getenv("PERSONALIZER_API_KEY")
        if not endpoint:
            raise ConfigurationError("PERSONALIZER_ENDPOINT is not set")
        if not api_key:
            raise ConfigurationError("PERSONALIZER_API_KEY is not set")

        timeout = os.getenv("PERSONALIZER_TIMEOUT")
        try:
            timeout_seconds = float(timeout) if timeout else 10.0
        except ValueError:
            raise ConfigurationError(f"PERSONALIZER_TIMEOUT must be a number, got {timeout!r}")

        return cls(endpoint=endpoint.rstrip("/"), api_key=api_key, timeout_seconds=timeout_seconds)

# prefix以下のパラメーター名(= LoopConfigのフィールド名) -> 型変換
_PARAMETERS = {
    "total_calls": int,
    "experimental_unit_duration": int,
    "no_reward_frequency": int,
    "dangling_reward_frequency": int,
    "reward_delay_seconds": float,
    "calls_per_round": int,
    "round_pause_seconds": float,
}

class ConfigManager:
    def __init__(self, prefix: str = "/personalizer/demo", ttl_seconds: float = 60.0):
        self.prefix = prefix.rstrip("/")
        self.ttl_seconds = ttl_seconds
        self._cached_config: Optional[LoopConfig] = None
        self._last_fetched_at: float = 0.0
        self._ssm_client = None

    def get_config(self) -> LoopConfig:
        current_time = time.time()

        if self._cached_config and (current_time - self._last_fetched_at < self.ttl_seconds):
            return self._cached_config

        try:
            config = self._fetch_from_ssm()
            config.validate()
            self._cached_config = config
            self._last_fetched_at = current_time
            return config
        except Exception as e:
            logger.warning("Falling back to default loop config: %s", e)
            return self._get_default_config()

    def _fetch_from_ssm(self) -> LoopConfig:
        names = [f"{self.prefix}/{key}" for key in _PARAMETERS] + [f"{self.prefix}/excluded_actions"]

        # get_parametersは1回あたり10件まで
        params: Dict[str, str] = {}
        for start in range(0, len(names), 10):
            response = self._get_ssm_client().get_parameters(Names=names[start:start + 10])
            params.update({p['Name']: p['Value'] for p in response.get('Parameters', [])})

        overrides = {}
        for key, cast in _PARAMETERS.items():
            value = params.get(f"{self.prefix}/{key}")
            if value is not None:
                overrides[key] = cast(value)

        # excluded_actions is a comma separated StringList
        excluded = params.get(f"{self.prefix}/excluded_actions")
        if excluded is not None:
            overrides["excluded_actions"] = [a.strip() for a in excluded.split(",") if a.strip()]

        return replace(self._get_default_config(), **overrides)

    def _get_default_config(self) -> LoopConfig:
        return LoopConfig()

    def _get_ssm_client(self):
        # リージョン未設定などで失敗しても、get_config側でデフォルトに倒せるよう遅延生成する
        if self._ssm_client is None:
            self._ssm_client = boto3.client('ssm')
        return self._ssm_client
