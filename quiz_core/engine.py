# quiz_core/engine.py
from __future__ import annotations
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging, threading

from .types import (
    ACTIVE,
    ANSWERED,
    LOADING,
    NOT_VISITED,
    SUBMITTED,
    VISITED,
    Phase,
    Question,
    SessionState,
    SubmitReason,
)
from .errors import IndexOutOfRange, InvalidAnswer, InvalidConfiguration, SessionClosed
from .config import DEBUG_TRACE, TIME_WARNING_SECONDS, TRACE_FIELDS


log = logging.getLogger(__name__)

Listener = Callable[[SessionState], None]


def _emit_trace(**values: object) -> None:
    if not DEBUG_TRACE:
        return
    ordered = []
    for key in TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        log.info("trace %s", " ".join(ordered))


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def handoff_record(state: SessionState) -> Dict[str, Any]:
    """``{questions, answers, timeSpent}`` as written to the reporting slot."""
    if state.phase != SUBMITTED:
        raise SessionClosed("handoff record is only available after submission")
    return {
        "questions": [q.to_dict() for q in state.questions],
        "answers": {str(i): a for i, a in sorted(state.answers.items())},
        "timeSpent": state.elapsed_seconds,
    }


def format_clock(seconds: int) -> str:
    """``MM:SS`` countdown display."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class QuizSession:
    """The only thing allowed to mutate a :class:`SessionState`.

    Every public operation runs under one re-entrant lock, so a tick arriving
    from a timer thread and a request from a user are applied one after the
    other, never interleaved. Once submitted the state is frozen and every
    mutating call except ``submit()`` raises :class:`SessionClosed`.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._state: Optional[SessionState] = None
        self._listeners: List[Listener] = []

    # ---- read side ----
    @property
    def phase(self) -> Phase:
        return self._state.phase if self._state is not None else LOADING

    @property
    def state(self) -> SessionState:
        """A copy of the current state; callers cannot mutate the live one."""
        with self._lock:
            st = self._require_started()
            return replace(st, answers=dict(st.answers), status=dict(st.status))

    @property
    def current_question(self) -> Question:
        with self._lock:
            st = self._require_started()
            return st.questions[st.current_index]

    def add_listener(self, fn: Listener) -> None:
        """Register ``fn(state)`` to run once, right after submission.

        Listeners run after the session lock is released. One that raises is
        logged and does not stop the others.
        """
        with self._lock:
            self._listeners.append(fn)

    # ---- transitions ----
    def start(self, questions: Sequence[Question], budget_seconds: int) -> SessionState:
        with self._lock:
            if self._state is not None:
                raise SessionClosed("session already started")
            qs = tuple(questions or ())
            if not qs:
                raise InvalidConfiguration("cannot start a session without questions")
            if isinstance(budget_seconds, bool) or not isinstance(budget_seconds, int) or budget_seconds <= 0:
                raise InvalidConfiguration(f"time budget must be a positive number of seconds, got {budget_seconds!r}")
            status = {i: NOT_VISITED for i in range(len(qs))}
            status[0] = VISITED
            self._state = SessionState(
                questions=qs,
                budget_seconds=budget_seconds,
                remaining_seconds=budget_seconds,
                current_index=0,
                answers={},
                status=status,
                phase=ACTIVE,
                started_at=_utcnow_iso(),
            )
            log.info("session started: %d question(s), %ds budget", len(qs), budget_seconds)
            _emit_trace(event="start", index=0, status_after=VISITED, remaining=budget_seconds, phase=ACTIVE)
            return self.state

    def record_answer(self, choice: str) -> None:
        with self._lock:
            st = self._require_active()
            q = st.questions[st.current_index]
            if not isinstance(choice, str) or choice not in q.choices:
                raise InvalidAnswer(f"{choice!r} is not a choice of question {st.current_index + 1}")
            before = st.status[st.current_index]
            st.answers[st.current_index] = choice
            st.status[st.current_index] = ANSWERED
            _emit_trace(event="answer", index=st.current_index, status_before=before, status_after=ANSWERED)

    def navigate_to(self, index: int) -> None:
        with self._lock:
            st = self._require_active()
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(st.questions):
                raise IndexOutOfRange(f"question index {index!r} outside 0..{len(st.questions) - 1}")
            if index == st.current_index:
                return
            before = st.status[index]
            st.current_index = index
            if before == NOT_VISITED:
                st.status[index] = VISITED
            _emit_trace(event="navigate", index=index, status_before=before, status_after=st.status[index])

    def next(self) -> None:
        with self._lock:
            st = self._require_active()
            self.navigate_to(min(len(st.questions) - 1, st.current_index + 1))

    def previous(self) -> None:
        with self._lock:
            st = self._require_active()
            self.navigate_to(max(0, st.current_index - 1))

    def tick(self) -> int:
        """Advance the countdown by one second; returns the seconds left."""
        frozen = None
        with self._lock:
            st = self._require_active()
            st.remaining_seconds = max(0, st.remaining_seconds - 1)
            remaining = st.remaining_seconds
            if remaining == 0:
                log.info("time budget exhausted, submitting")
                frozen = self._submit(reason="timeout")
        if frozen is not None:
            self._notify(frozen)
        return remaining

    def submit(self) -> SessionState:
        """Freeze the session. A second call is a no-op returning the same state."""
        with self._lock:
            st = self._require_started()
            if st.phase == SUBMITTED:
                return self.state
            frozen = self._submit(reason="manual")
        self._notify(frozen)
        return self.state

    def _submit(self, reason: SubmitReason) -> SessionState:
        st = self._state
        assert st is not None and st.phase == ACTIVE
        st.phase = SUBMITTED
        st.elapsed_seconds = st.budget_seconds - st.remaining_seconds
        st.submitted_by = reason
        st.submitted_at = _utcnow_iso()
        log.info(
            "session submitted (%s): %d/%d answered, %ds elapsed",
            reason, len(st.answers), len(st.questions), st.elapsed_seconds,
        )
        _emit_trace(event="submit", remaining=st.remaining_seconds, phase=SUBMITTED)
        return self.state

    def _notify(self, frozen: SessionState) -> None:
        # runs outside the lock: a listener may join a thread blocked in tick()
        with self._lock:
            listeners = list(self._listeners)
        for fn in listeners:
            try:
                fn(frozen)
            except Exception:
                log.exception("submit listener %r failed", fn)

    # ---- presentation helpers ----
    def view(self) -> Dict[str, Any]:
        """Snapshot for a client; never includes correct answers."""
        with self._lock:
            st = self._require_started()
            n = len(st.questions)
            q = st.questions[st.current_index]
            return {
                "phase": st.phase,
                "currentIndex": st.current_index,
                "total": n,
                "question": {"id": q.id, "question": q.text, "choices": list(q.choices)},
                "selected": st.answers.get(st.current_index),
                "status": [st.status[i] for i in range(n)],
                "answeredCount": len(st.answers),
                "remainingSeconds": st.remaining_seconds,
                "clock": format_clock(st.remaining_seconds),
                "timeRunningOut": st.remaining_seconds <= TIME_WARNING_SECONDS,
                "progress": round((st.current_index + 1) / n * 100, 2),
                "isLast": st.current_index == n - 1,
            }

    def to_record(self) -> Dict[str, Any]:
        with self._lock:
            return handoff_record(self._require_started())

    # ---- guards ----
    def _require_started(self) -> SessionState:
        if self._state is None:
            raise SessionClosed("session has not started")
        return self._state

    def _require_active(self) -> SessionState:
        st = self._require_started()
        if st.phase != ACTIVE:
            raise SessionClosed("session already submitted")
        return st


__all__ = ["QuizSession", "format_clock", "handoff_record"]
