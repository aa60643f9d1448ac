from __future__ import annotations

import pytest

from quiz_core.engine import QuizSession
from quiz_core.types import Question


def build_raw_items(count: int = 15, *, wrong_per_item: int = 3) -> list[dict]:
    """Deterministic provider payload in the Open Trivia DB shape."""

    items: list[dict] = []
    for idx in range(count):
        items.append(
            {
                "category": "General Knowledge",
                "type": "multiple",
                "difficulty": "easy",
                "question": f"Question #{idx} &quot;quoted&quot; &amp; escaped?",
                "correct_answer": f"Right {idx}",
                "incorrect_answers": [f"Wrong {idx}.{w}" for w in range(wrong_per_item)],
            }
        )
    return items


def build_questions(count: int = 3) -> list[Question]:
    return [
        Question(id=i, text=f"Q{i}", choices=("A", "B", "C"), correct_answer="ABC"[i % 3])
        for i in range(count)
    ]


def started_session(count: int = 3, budget: int = 1800) -> QuizSession:
    sess = QuizSession()
    sess.start(build_questions(count), budget)
    return sess


@pytest.fixture
def abc_questions() -> list[Question]:
    """Three questions, choices A/B/C each, correct answers A, B, C."""
    return build_questions(3)


@pytest.fixture
def session(abc_questions) -> QuizSession:
    sess = QuizSession()
    sess.start(abc_questions, 1800)
    return sess
