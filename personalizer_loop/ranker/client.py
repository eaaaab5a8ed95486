
from typing import List, Optional, Dict, Any

import requests

from personalizer_loop.config import ServiceSettings
from personalizer_loop.context import Action, Context, RankResponse
from personalizer_loop.errors import PersonalizerError, RankingContractError
from personalizer_loop.ranker.adapter import to_rank_request, to_rank_response
from personalizer_loop.ranker.base import RankingService

API_PATH = "/personalizer/v1.0"

class PersonalizerClient(RankingService):
    """
    Personalizer REST APIのクライアント。
    requests.Sessionを使い回すので、報酬送信スレッドと共有してよい。
    """
    def __init__(self, settings: ServiceSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update({
            "Ocp-Apim-Subscription-Key": settings.api_key,
            "Content-Type": "application/json",
        })

    def rank(
        self,
        actions: List[Action],
        context: Context,
        excluded_action_ids: List[str],
        event_id: str,
    ) -> RankResponse:
        payload = to_rank_request(actions, context, excluded_action_ids, event_id)
        r = self._post("/rank", payload)
        try:
            raw = r.json()
        except ValueError as e:
            raise RankingContractError(f"rank response is not JSON: {r.text[:160]}") from e
        response = to_rank_response(raw)

        if response.reward_action_id in set(excluded_action_ids):
            raise RankingContractError(
                f"excluded action '{response.reward_action_id}' was chosen for event {response.event_id}"
            )
        return response

    def reward(self, event_id: str, value: float) -> None:
        self._post(f"/events/{event_id}/reward", {"value": value})

    def _post(self, path: str, payload: Dict[str, Any]) -> requests.Response:
        url = f"{self.settings.endpoint}{API_PATH}{path}"
        try:
            r = self.session.post(url, json=payload, timeout=self.settings.timeout_seconds)
        except requests.RequestException as e:
            raise PersonalizerError(f"POST {path} failed: {e}") from e

        if not r.ok:
            code, message = _parse_error(r)
            raise PersonalizerError(
                f"POST {path} rejected: {message}",
                status_code=r.status_code,
                error_code=code,
            )
        return r

def _parse_error(r: requests.Response):
    try:
        body = r.json()
    except ValueError:
        return None, r.text[:160]
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return None, r.text[:160]
    return error.get("code"), error.get("message", r.text[:160])
