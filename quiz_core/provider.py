from __future__ import annotations
import logging, random
from typing import Any, Dict, List, Optional

import requests

from . import config
from .errors import ProviderError
from .normalizer import normalize_items
from .types import Question

log = logging.getLogger(__name__)

# Open Trivia DB response codes
_RESPONSE_CODES: Dict[int, str] = {
    1: "not enough questions for the requested filters",
    2: "invalid parameter",
    3: "session token not found",
    4: "session token exhausted",
    5: "rate limited",
}


def fetch_raw_items(
    amount: Optional[int] = None,
    *,
    category: Optional[str] = None,
    qtype: Optional[str] = None,
    difficulty: Optional[str] = None,
    url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> List[Dict[str, Any]]:
    params: Dict[str, Any] = {
        "amount": int(amount or config.QUESTION_COUNT),
        "type": qtype or config.QUESTION_TYPE,
    }
    category = category or config.QUESTION_CATEGORY
    difficulty = difficulty or config.QUESTION_DIFFICULTY
    if category: params["category"] = category
    if difficulty: params["difficulty"] = difficulty

    target = url or config.PROVIDER_URL
    try:
        resp = requests.get(target, params=params, timeout=timeout or config.PROVIDER_TIMEOUT)
        resp.raise_for_status()
        payload = resp.json()
    except requests.exceptions.RequestException as e:
        log.warning("question provider unreachable: %s", e)
        raise ProviderError(f"question provider unreachable: {e}") from e
    except ValueError as e:
        log.warning("question provider returned invalid JSON: %s", e)
        raise ProviderError("question provider returned invalid JSON") from e

    if not isinstance(payload, dict):
        raise ProviderError("question provider returned an unexpected payload")
    code = payload.get("response_code", 0)
    if code:
        reason = _RESPONSE_CODES.get(code, "unknown error")
        log.warning("question provider refused request (code=%s): %s", code, reason)
        raise ProviderError(f"question provider error {code}: {reason}")
    results = payload.get("results")
    if not isinstance(results, list):
        raise ProviderError("question provider payload has no results list")
    return results


def load_questions(
    amount: Optional[int] = None,
    *,
    min_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
    **fetch_kwargs: Any,
) -> List[Question]:
    """Fetch and normalize one question set; any failure is a :class:`ProviderError`."""

    raw = fetch_raw_items(amount, **fetch_kwargs)
    need = config.MIN_QUESTIONS if min_count is None else min_count
    return normalize_items(raw, min_count=need, rng=rng)


__all__ = ["fetch_raw_items", "load_questions"]
