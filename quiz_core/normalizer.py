"""Turn raw provider items into immutable :class:`Question` records.

Raw items look like the Open Trivia DB payload::

    {"question": "...", "correct_answer": "...", "incorrect_answers": ["...", ...],
     "category": "...", "difficulty": "..."}

Every string may carry HTML entities (``&quot;``, ``&#039;``) which are
decoded here so nothing downstream has to care about markup.
"""
from __future__ import annotations

import html
import logging
import random
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from .config import MIN_QUESTIONS
from .errors import ProviderError
from .types import Question

log = logging.getLogger(__name__)


def _decode(value: Any) -> str:
    if value is None:
        return ""
    return html.unescape(str(value)).strip()


def _incorrect(raw: Mapping[str, Any], idx: int) -> List[str]:
    wrong = raw.get("incorrect_answers")
    if wrong is None:
        return []
    if isinstance(wrong, (str, bytes)) or not isinstance(wrong, Iterable):
        raise ProviderError(f"item {idx}: incorrect_answers must be a list")
    return [_decode(w) for w in wrong]


def normalize_item(raw: Mapping[str, Any], idx: int, rng: random.Random) -> Question:
    if not isinstance(raw, Mapping):
        raise ProviderError(f"item {idx}: expected an object, got {type(raw).__name__}")
    text = _decode(raw.get("question"))
    if not text:
        raise ProviderError(f"item {idx}: missing question text")
    correct = _decode(raw.get("correct_answer"))
    if not correct:
        raise ProviderError(f"item {idx}: missing correct answer")

    choices = _incorrect(raw, idx) + [correct]
    if len(choices) < 2:
        raise ProviderError(f"item {idx}: needs at least 2 choices, got {len(choices)}")
    if any(not c for c in choices):
        raise ProviderError(f"item {idx}: empty choice")
    if len(set(choices)) != len(choices):
        raise ProviderError(f"item {idx}: duplicate choices after decoding")

    # the one and only shuffle for this question
    rng.shuffle(choices)
    return Question(
        id=idx,
        text=text,
        choices=tuple(choices),
        correct_answer=correct,
        category=_decode(raw.get("category")),
        difficulty=_decode(raw.get("difficulty")),
    )


def normalize_items(
    items: Sequence[Mapping[str, Any]],
    *,
    min_count: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """Normalize a whole provider batch; fails as a unit with :class:`ProviderError`."""

    need = MIN_QUESTIONS if min_count is None else int(min_count)
    if items is None or isinstance(items, (str, bytes, Mapping)):
        raise ProviderError("provider payload is not a list of items")
    items = list(items)
    if len(items) < need:
        raise ProviderError(f"provider returned {len(items)} item(s), need at least {need}")
    rng = rng or random.Random()
    out = [normalize_item(raw, idx, rng) for idx, raw in enumerate(items)]
    log.debug("normalized %d question(s)", len(out))
    return out


__all__ = ["normalize_item", "normalize_items"]
