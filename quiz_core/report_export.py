"""Turn a score report into the downloadable results document (JSON or CSV)."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
import csv
import io
import json
import re

from .config import NOT_ANSWERED, PLATFORM_NAME
from .errors import ExportError
from .types import Question, ScoreReport

_CSV_FIELDS: tuple[str, ...] = (
    "index",
    "question",
    "userAnswer",
    "correctAnswer",
    "isCorrect",
    "wasAnswered",
)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def format_duration(seconds: int) -> str:
    """``Xm Ys`` as shown on the results page."""
    seconds = max(0, int(seconds or 0))
    return f"{seconds // 60}m {seconds % 60}s"


def build_report(
    score: ScoreReport,
    questions: Sequence[Question],
    *,
    participant: str,
    completed_at: Optional[str] = None,
) -> Dict[str, Any]:
    """Assemble the durable report record for one completed session."""

    if len(questions) != score.total_count or len(score.per_question) != score.total_count:
        raise ExportError(
            f"score covers {score.total_count} question(s) but {len(questions)} were supplied"
        )
    rows: List[Dict[str, Any]] = []
    for q, res in zip(questions, score.per_question):
        rows.append(
            {
                "question": q.text,
                "choices": list(q.choices),
                "userAnswer": res.user_answer if res.was_answered else NOT_ANSWERED,
                "correctAnswer": q.correct_answer,
                "isCorrect": res.is_correct,
                "wasAnswered": res.was_answered,
            }
        )
    return {
        "platform": PLATFORM_NAME,
        "email": participant,
        "score": f"{score.correct_count}/{score.total_count} ({score.percentage}%)",
        "correctCount": score.correct_count,
        "totalCount": score.total_count,
        "percentage": score.percentage,
        "performance": score.performance_tier,
        "elapsedSeconds": score.elapsed_seconds,
        "timeSpent": format_duration(score.elapsed_seconds),
        "answeredCount": score.answered_count,
        "completedAt": completed_at or datetime.now(timezone.utc).isoformat(),
        "questions": rows,
    }


def to_json(report: Dict[str, Any]) -> str:
    try:
        return json.dumps(report, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ExportError(f"report is not serialisable: {e}") from e


def to_csv(report: Dict[str, Any]) -> str:
    """One row per question with a fixed header."""

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_CSV_FIELDS)
    writer.writeheader()
    for idx, row in enumerate(report.get("questions") or [], start=1):
        writer.writerow(
            {
                "index": idx,
                "question": row.get("question", ""),
                "userAnswer": row.get("userAnswer", NOT_ANSWERED),
                "correctAnswer": row.get("correctAnswer", ""),
                "isCorrect": bool(row.get("isCorrect")),
                "wasAnswered": bool(row.get("wasAnswered")),
            }
        )
    return buf.getvalue()


def report_filename(participant: str, when_ms: int, ext: str = "json") -> str:
    label = _UNSAFE.sub("-", participant or "").strip("-") or "anonymous"
    return f"{PLATFORM_NAME.lower()}-results-{label}-{int(when_ms)}.{ext}"


__all__ = ["format_duration", "build_report", "to_json", "to_csv", "report_filename"]
