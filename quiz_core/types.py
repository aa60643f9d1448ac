from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Literal, Tuple, Any

QuestionStatus = Literal["not-visited", "visited", "answered"]
Phase = Literal["loading", "active", "submitted"]
SubmitReason = Literal["manual", "timeout"]

NOT_VISITED: QuestionStatus = "not-visited"
VISITED: QuestionStatus = "visited"
ANSWERED: QuestionStatus = "answered"

LOADING: Phase = "loading"
ACTIVE: Phase = "active"
SUBMITTED: Phase = "submitted"


@dataclass(frozen=True)
class Question:
    id: int; text: str
    choices: Tuple[str, ...]
    correct_answer: str
    category: str = ""
    difficulty: str = ""

    def __post_init__(self) -> None:
        if len(self.choices) < 2:
            raise ValueError(f"question {self.id} needs at least 2 choices")
        if len(set(self.choices)) != len(self.choices):
            raise ValueError(f"question {self.id} has duplicate choices")
        if self.correct_answer not in self.choices:
            raise ValueError(f"question {self.id}: correct answer is not among the choices")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.text,
            "choices": list(self.choices),
            "correct_answer": self.correct_answer,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Question":
        return cls(
            id=int(raw["id"]),
            text=str(raw["question"]),
            choices=tuple(str(c) for c in raw["choices"]),
            correct_answer=str(raw["correct_answer"]),
        )


@dataclass
class SessionState:
    questions: Tuple[Question, ...]
    budget_seconds: int
    remaining_seconds: int
    current_index: int = 0
    answers: Dict[int, str] = field(default_factory=dict)
    status: Dict[int, QuestionStatus] = field(default_factory=dict)
    phase: Phase = LOADING
    elapsed_seconds: Optional[int] = None
    submitted_by: Optional[SubmitReason] = None
    started_at: Optional[str] = None
    submitted_at: Optional[str] = None

    @property
    def answered_count(self) -> int:
        return len(self.answers)


@dataclass(frozen=True)
class QuestionResult:
    question_index: int
    user_answer: Optional[str]
    is_correct: bool
    was_answered: bool


@dataclass(frozen=True)
class ScoreReport:
    correct_count: int
    total_count: int
    percentage: int
    performance_tier: str
    elapsed_seconds: int
    answered_count: int
    per_question: Tuple[QuestionResult, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correctCount": self.correct_count,
            "totalCount": self.total_count,
            "percentage": self.percentage,
            "performanceTier": self.performance_tier,
            "elapsedSeconds": self.elapsed_seconds,
            "answeredCount": self.answered_count,
            "perQuestion": [
                {
                    "questionIndex": r.question_index,
                    "userAnswer": r.user_answer,
                    "isCorrect": r.is_correct,
                    "wasAnswered": r.was_answered,
                }
                for r in self.per_question
            ],
        }


def questions_from_record(record: Dict[str, Any]) -> List[Question]:
    return [Question.from_dict(q) for q in record.get("questions") or []]


def answers_from_record(record: Dict[str, Any]) -> Dict[int, str]:
    """JSON object keys come back as strings; restore the integer indices."""
    raw = record.get("answers") or {}
    return {int(k): str(v) for k, v in raw.items()}
