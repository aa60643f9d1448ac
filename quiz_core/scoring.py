from __future__ import annotations
from typing import Any, Dict, Mapping, Optional, Sequence

from .config import DEFAULT_FLOOR_TIER, PERFORMANCE_TIERS, Tiers
from .errors import EmptySession, SessionStillActive
from .types import (
    SUBMITTED,
    Question,
    QuestionResult,
    ScoreReport,
    SessionState,
    answers_from_record,
    questions_from_record,
)


def round_percentage(correct: int, total: int) -> int:
    """``round(100 * correct / total)`` with halves rounded up, in integers."""
    return (200 * correct + total) // (2 * total)


def performance_tier(percentage: int, tiers: Optional[Tiers] = None) -> str:
    table = tiers or PERFORMANCE_TIERS
    for threshold, label in sorted(table, key=lambda t: t[0], reverse=True):
        if percentage >= threshold:
            return label
    return DEFAULT_FLOOR_TIER


def score_answers(
    questions: Sequence[Question],
    answers: Mapping[int, str],
    elapsed_seconds: int,
    tiers: Optional[Tiers] = None,
) -> ScoreReport:
    total = len(questions)
    if total == 0:
        raise EmptySession("cannot score a session without questions")

    results = []
    for i, q in enumerate(questions):
        given = answers.get(i)
        results.append(
            QuestionResult(
                question_index=i,
                user_answer=given,
                is_correct=given is not None and given == q.correct_answer,
                was_answered=i in answers,
            )
        )
    correct = sum(1 for r in results if r.is_correct)
    pct = round_percentage(correct, total)
    return ScoreReport(
        correct_count=correct,
        total_count=total,
        percentage=pct,
        performance_tier=performance_tier(pct, tiers),
        elapsed_seconds=int(elapsed_seconds or 0),
        answered_count=sum(1 for r in results if r.was_answered),
        per_question=tuple(results),
    )


def score_session(state: SessionState, tiers: Optional[Tiers] = None) -> ScoreReport:
    """Score a frozen session. Same state in, identical report out."""
    if state.phase != SUBMITTED:
        raise SessionStillActive("session must be submitted before scoring")
    return score_answers(state.questions, state.answers, state.elapsed_seconds or 0, tiers)


def score_record(record: Dict[str, Any], tiers: Optional[Tiers] = None) -> ScoreReport:
    """Score the ``{questions, answers, timeSpent}`` handoff record."""
    return score_answers(
        questions_from_record(record),
        answers_from_record(record),
        int(record.get("timeSpent") or 0),
        tiers,
    )


__all__ = ["round_percentage", "performance_tier", "score_answers", "score_session", "score_record"]
