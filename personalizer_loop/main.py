
import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from personalizer_loop.config import ConfigManager, LoopConfig, ServiceSettings
from personalizer_loop.errors import ConfigurationError, PersonalizerError
from personalizer_loop.loop import RankRewardLoop
from personalizer_loop.observability.logging import logger, log_loop_completed, log_rewards_draining
from personalizer_loop.ranker.client import PersonalizerClient
from personalizer_loop.reward.dispatcher import RewardDispatcher

# CLIで上書きできるLoopConfigのフィールド
_OVERRIDABLE = [
    "total_calls",
    "experimental_unit_duration",
    "no_reward_frequency",
    "dangling_reward_frequency",
    "reward_delay_seconds",
    "calls_per_round",
    "round_pause_seconds",
    "excluded_actions",
]

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="personalizer-loop",
        description="Rank actions with Personalizer and send simulated rewards",
    )
    parser.add_argument("--endpoint", type=str, default=None, help="defaults to $PERSONALIZER_ENDPOINT")
    parser.add_argument("--api-key", type=str, default=None, help="defaults to $PERSONALIZER_API_KEY")
    parser.add_argument(
        "--ssm-prefix",
        type=str,
        default=None,
        help="load loop settings from SSM Parameter Store under this prefix",
    )
    parser.add_argument("--total-calls", dest="total_calls", type=int, default=None)
    parser.add_argument("--experimental-unit-duration", dest="experimental_unit_duration", type=int, default=None,
                        help="minutes; dangling rewards wait this + 1 minute")
    parser.add_argument("--no-reward-frequency", dest="no_reward_frequency", type=int, default=None)
    parser.add_argument("--dangling-reward-frequency", dest="dangling_reward_frequency", type=int, default=None)
    parser.add_argument("--reward-delay", dest="reward_delay_seconds", type=float, default=None)
    parser.add_argument("--calls-per-round", dest="calls_per_round", type=int, default=None)
    parser.add_argument("--round-pause", dest="round_pause_seconds", type=float, default=None)
    parser.add_argument("--exclude", dest="excluded_actions", nargs="*", default=None)
    parser.add_argument("--max-reward-workers", type=int, default=16)
    parser.add_argument("--verbose", action="store_true")
    return parser

def resolve_config(args: argparse.Namespace) -> LoopConfig:
    if args.ssm_prefix:
        config = ConfigManager(prefix=args.ssm_prefix).get_config()
    else:
        config = LoopConfig()

    overrides = {name: getattr(args, name) for name in _OVERRIDABLE if getattr(args, name) is not None}
    config = replace(config, **overrides)
    config.validate()
    return config

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    try:
        config = resolve_config(args)
        settings = ServiceSettings.from_env(endpoint=args.endpoint, api_key=args.api_key)
    except ConfigurationError as e:
        log_loop_completed(0, 0, 0, error=str(e))
        return 1

    client = PersonalizerClient(settings)
    dispatcher = RewardDispatcher(client, max_workers=args.max_reward_workers)
    loop = RankRewardLoop(client, dispatcher, config)

    error = None
    wait = True
    try:
        loop.run()
    except PersonalizerError as e:
        error = str(e)
    except KeyboardInterrupt:
        # Ctrl-Cではdangling rewardを待たずに終了する
        error = "interrupted"
        wait = False
    finally:
        # 通常は送信待ちの報酬(dangling含む)を送り切ってから終了する
        log_rewards_draining(dispatcher.pending(), wait=wait)
        dispatcher.shutdown(wait=wait)

    log_loop_completed(loop.calls_made, dispatcher.sent, dispatcher.failed, error=error)
    if error == "interrupted":
        return 130
    return 1 if error else 0

if __name__ == "__main__":
    sys.exit(main())
