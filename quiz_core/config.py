from __future__ import annotations
import os, json, pathlib, random
from typing import List, Optional, Tuple


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


Tiers = Tuple[Tuple[int, str], ...]


def parse_tiers(raw: str) -> Tiers:
    """Parse ``"90:Excellent,80:Very Good"`` into a descending threshold table.

    A zero threshold is appended when missing so every percentage maps to
    some tier.
    """

    out: List[Tuple[int, str]] = []
    for chunk in (raw or "").split(","):
        if not chunk.strip():
            continue
        threshold, sep, label = chunk.partition(":")
        if not sep or not label.strip():
            raise ValueError(f"bad tier entry: {chunk!r}")
        out.append((int(threshold.strip()), label.strip()))
    if not out:
        raise ValueError("empty tier table")
    out.sort(key=lambda t: t[0], reverse=True)
    if out[-1][0] > 0:
        out.append((0, DEFAULT_FLOOR_TIER))
    return tuple(out)


QUESTION_COUNT: int = 15
MIN_QUESTIONS: int = QUESTION_COUNT
TIME_BUDGET_SECONDS: int = 30 * 60
TIME_WARNING_SECONDS: int = 5 * 60

TICK_SECONDS: float = 1.0
TICK_ENABLED: bool = True
SESSION_TTL_SECONDS: int = 60 * 60

PROVIDER_URL: str = "https://opentdb.com/api.php"
PROVIDER_TIMEOUT: float = 10.0
QUESTION_TYPE: str = "multiple"
QUESTION_CATEGORY: Optional[str] = None
QUESTION_DIFFICULTY: Optional[str] = None

DEFAULT_FLOOR_TIER: str = "Needs Improvement"
PERFORMANCE_TIERS: Tiers = (
    (90, "Excellent"),
    (80, "Very Good"),
    (70, "Good"),
    (60, "Fair"),
    (0, DEFAULT_FLOOR_TIER),
)

PLATFORM_NAME: str = "QuizSphere"
NOT_ANSWERED: str = "Not answered"

DEBUG_TRACE: bool = False
TRACE_FIELDS: tuple[str, ...] = (
    "event",
    "index",
    "status_before",
    "status_after",
    "remaining",
    "phase",
)
# // env overrides for staging/ops
QUESTION_COUNT = _env_int("QUESTION_COUNT", QUESTION_COUNT)
MIN_QUESTIONS = _env_int("MIN_QUESTIONS", QUESTION_COUNT)
TIME_BUDGET_SECONDS = _env_int("TIME_BUDGET_SECONDS", TIME_BUDGET_SECONDS)
TIME_WARNING_SECONDS = _env_int("TIME_WARNING_SECONDS", TIME_WARNING_SECONDS)
TICK_SECONDS = _env_float("TICK_SECONDS", TICK_SECONDS)
TICK_ENABLED = _env_bool("TICK_ENABLED", TICK_ENABLED)
SESSION_TTL_SECONDS = _env_int("SESSION_TTL_SECONDS", SESSION_TTL_SECONDS)
PROVIDER_URL = _env_str("PROVIDER_URL", PROVIDER_URL) or PROVIDER_URL
PROVIDER_TIMEOUT = _env_float("PROVIDER_TIMEOUT", PROVIDER_TIMEOUT)
QUESTION_TYPE = _env_str("QUESTION_TYPE", QUESTION_TYPE) or QUESTION_TYPE
QUESTION_CATEGORY = _env_str("QUESTION_CATEGORY", QUESTION_CATEGORY)
QUESTION_DIFFICULTY = _env_str("QUESTION_DIFFICULTY", QUESTION_DIFFICULTY)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)
if os.getenv("PERFORMANCE_TIERS"):
    PERFORMANCE_TIERS = parse_tiers(os.environ["PERFORMANCE_TIERS"])


def load_config(path: str = "config.json") -> dict:
    cfg = {}
    p = pathlib.Path(path)
    if p.exists():
        try: cfg = json.loads(p.read_text(encoding="utf-8"))
        except ValueError: cfg = {}
    e = os.environ
    if e.get("SEED"): cfg["SEED"] = int(e["SEED"])
    if e.get("PERFORMANCE_TIERS"): cfg["PERFORMANCE_TIERS"] = e["PERFORMANCE_TIERS"]
    return cfg


def tiers_from(cfg: dict) -> Tiers:
    raw = cfg.get("PERFORMANCE_TIERS")
    if raw is None:
        return PERFORMANCE_TIERS
    if isinstance(raw, str):
        return parse_tiers(raw)
    if isinstance(raw, dict):
        raw = ",".join(f"{k}:{v}" for k, v in raw.items())
        return parse_tiers(raw)
    return parse_tiers(",".join(f"{t}:{label}" for t, label in raw))


def seed_rng(cfg: dict) -> Optional[random.Random]:
    s = cfg.get("SEED")
    if s is None:
        return None
    random.seed(int(s))
    return random.Random(int(s))
