from __future__ import annotations
from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from datetime import datetime, timedelta, timezone
import uuid, time, logging, typing as t

# ---- Engine imports ----
from quiz_core import config
from quiz_core.clock import Ticker
from quiz_core.engine import QuizSession, handoff_record
from quiz_core.errors import (
    EmptySession,
    ExportError,
    IndexOutOfRange,
    InvalidAnswer,
    InvalidConfiguration,
    ProviderError,
    QuizError,
    SessionClosed,
    SessionStillActive,
)
from quiz_core.provider import load_questions
from quiz_core.report_export import build_report, report_filename, to_csv, to_json
from quiz_core.scoring import score_record
from quiz_core.types import SessionState, questions_from_record
from .storage import (
    EMAIL_SLOT,
    RESULTS_SLOT,
    START_TIME_SLOT,
    clear_session_slots,
    delete_report,
    find_report_by_session,
    put_slot,
    read_slot,
    save_report,
    slot_key,
    take_slot,
    utcnow_iso,
)

log = logging.getLogger(__name__)

SESS: dict[str, QuizSession] = {}
TICKERS: dict[str, Ticker] = {}

app = FastAPI(title="QuizSphere API")


@app.get("/")
def root():
    return {"status": "ok", "service": "quizsphere-api"}


ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

# ---- Schemas ----
class StartReq(BaseModel):
    email: str

class AnswerReq(BaseModel):
    choice: str

class NavigateReq(BaseModel):
    index: int

# ---- Helpers ----
_HTTP_STATUS: tuple[tuple[type, int], ...] = (
    (ProviderError, 502),
    (InvalidConfiguration, 502),
    (SessionClosed, 409),
    (SessionStillActive, 409),
    (IndexOutOfRange, 422),
    (InvalidAnswer, 422),
    (EmptySession, 422),
    (ExportError, 500),
)

NO_RESULTS = {"error": "no completed assessment found", "redirect": "/"}


def _http_error(e: QuizError) -> HTTPException:
    for cls, code in _HTTP_STATUS:
        if isinstance(e, cls):
            return HTTPException(code, str(e))
    return HTTPException(400, str(e))


def _session(sid: str) -> QuizSession:
    sess = SESS.get(sid)
    if not sess: raise HTTPException(404, "session not found")
    return sess


def _serialize_view(sid: str, sess: QuizSession) -> dict[str, t.Any]:
    view = sess.view()
    view["session_id"] = sid
    if view["phase"] == "submitted":
        view["redirect"] = f"/results/{sid}"
    return view


def _apply(sid: str, op: t.Callable[[QuizSession], object]) -> dict[str, t.Any]:
    sess = _session(sid)
    try:
        op(sess)
    except QuizError as e:
        raise _http_error(e) from e
    return _serialize_view(sid, sess)


def _stop_ticker(sid: str) -> None:
    ticker = TICKERS.pop(sid, None)
    if ticker is not None:
        ticker.stop()


def _on_submitted(sid: str) -> t.Callable[[SessionState], None]:
    def _handoff(state: SessionState) -> None:
        _stop_ticker(sid)
        put_slot(slot_key(sid, RESULTS_SLOT), handoff_record(state))
        log.info("session %s handed off to reporting (%s)", sid, state.submitted_by)
    return _handoff


def _prune_sessions(now: datetime | None = None) -> int:
    """Drop submitted sessions older than ``SESSION_TTL_SECONDS``; their record lives in the slot."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(seconds=config.SESSION_TTL_SECONDS)
    stale = []
    for sid, sess in list(SESS.items()):
        if sess.phase != "submitted":
            continue
        submitted_at = sess.state.submitted_at
        if submitted_at and datetime.fromisoformat(submitted_at) < cutoff:
            stale.append(sid)
    for sid in stale:
        SESS.pop(sid, None)
    if stale:
        log.info("evicted %d submitted session(s)", len(stale))
    return len(stale)


def _stored_report(sid: str) -> dict[str, t.Any]:
    found = find_report_by_session(sid)
    if not found:
        raise HTTPException(404, NO_RESULTS)
    return found[1]

# ---- Health ----
@app.get("/health")
def health():
    return {
        "provider_url": config.PROVIDER_URL,
        "question_count": config.QUESTION_COUNT,
        "time_budget_seconds": config.TIME_BUDGET_SECONDS,
        "tick_enabled": config.TICK_ENABLED,
        "active_sessions": len(SESS),
    }

# ---- Assessment stage ----
@app.post("/session/start")
def start(req: StartReq):
    email = (req.email or "").strip()
    if not email:
        raise HTTPException(422, "email is required")
    _prune_sessions()
    cfg = config.load_config()
    rng = config.seed_rng(cfg)
    sid = str(uuid.uuid4())
    sess = QuizSession()
    sess.add_listener(_on_submitted(sid))
    try:
        questions = load_questions(config.QUESTION_COUNT, min_count=config.MIN_QUESTIONS, rng=rng)
        sess.start(questions, config.TIME_BUDGET_SECONDS)
    except (ProviderError, InvalidConfiguration) as e:
        log.warning("assessment failed to load: %s", e)
        raise HTTPException(502, {"error": "assessment failed to load", "reason": str(e)}) from e

    put_slot(slot_key(sid, EMAIL_SLOT), email)
    put_slot(slot_key(sid, START_TIME_SLOT), int(time.time() * 1000))
    SESS[sid] = sess
    if config.TICK_ENABLED:
        TICKERS[sid] = Ticker(sess.tick, config.TICK_SECONDS, name=f"ticker-{sid[:8]}").start()
    return _serialize_view(sid, sess)

@app.get("/session/{sid}")
def get_session(sid: str):
    return _serialize_view(sid, _session(sid))

@app.post("/session/{sid}/answer")
def answer(sid: str, req: AnswerReq):
    return _apply(sid, lambda s: s.record_answer(req.choice))

@app.post("/session/{sid}/navigate")
def navigate(sid: str, req: NavigateReq):
    return _apply(sid, lambda s: s.navigate_to(req.index))

@app.post("/session/{sid}/next")
def next_question(sid: str):
    return _apply(sid, lambda s: s.next())

@app.post("/session/{sid}/previous")
def previous_question(sid: str):
    return _apply(sid, lambda s: s.previous())

@app.post("/session/{sid}/tick")
def tick(sid: str):
    return _apply(sid, lambda s: s.tick())

@app.post("/session/{sid}/submit")
def submit(sid: str):
    return _apply(sid, lambda s: s.submit())

@app.delete("/session/{sid}")
def abandon(sid: str):
    sess = _session(sid)
    _stop_ticker(sid)
    if sess.phase != "submitted":
        clear_session_slots(sid)
        log.info("session %s abandoned before submission", sid)
    SESS.pop(sid, None)
    return {"ok": True}

# ---- Reporting stage ----
@app.get("/results/{sid}")
def results(sid: str):
    found = find_report_by_session(sid)
    if found:
        return found[1]
    email = read_slot(slot_key(sid, EMAIL_SLOT))
    if not email:
        raise HTTPException(404, NO_RESULTS)
    record = take_slot(slot_key(sid, RESULTS_SLOT))
    if not record:
        sess = SESS.get(sid)
        if sess is None or sess.phase != "submitted":
            raise HTTPException(404, NO_RESULTS)
        # handoff write failed at submit time
        log.warning("no handoff slot for %s, rebuilding from session", sid)
        record = sess.to_record()

    tiers = config.tiers_from(config.load_config())
    try:
        questions = questions_from_record(record)
        score = score_record(record, tiers)
        report = build_report(score, questions, participant=str(email), completed_at=utcnow_iso())
    except (KeyError, TypeError, ValueError, QuizError) as e:
        log.warning("handoff record for %s is unusable: %s", sid, e)
        raise HTTPException(404, NO_RESULTS) from e

    rid = str(uuid.uuid4())
    report["reportId"] = rid
    report["sessionId"] = sid
    save_report(
        rid,
        report,
        {
            "sessionId": sid,
            "email": email,
            "createdAt": report["completedAt"],
            "percentage": report["percentage"],
            "performance": report["performance"],
        },
    )
    clear_session_slots(sid)
    SESS.pop(sid, None)
    return report

@app.get("/results/{sid}/download")
def download_json(sid: str):
    report = _stored_report(sid)
    filename = report_filename(str(report.get("email") or ""), int(time.time() * 1000), "json")
    return Response(
        content=to_json(report),
        media_type="application/json",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )

@app.get("/results/{sid}/download.csv")
def download_csv(sid: str):
    report = _stored_report(sid)
    filename = report_filename(str(report.get("email") or ""), int(time.time() * 1000), "csv")
    return Response(
        content=to_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )

@app.post("/results/{sid}/retake")
def retake(sid: str):
    found = find_report_by_session(sid)
    if found:
        delete_report(found[0])
    clear_session_slots(sid)
    _stop_ticker(sid)
    SESS.pop(sid, None)
    return {"ok": True, "redirect": "/"}
