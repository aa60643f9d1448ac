"""Key-value persistence for the hand-off between assessment and reporting.

Two kinds of records live under ``DATA_DIR``:

* slots: small named values written once by the assessment stage
  (``<session>.quizResults``, ``<session>.quizEmail``,
  ``<session>.quizStartTime``) and taken exactly once by the reporting stage;
* reports: the exported results document, indexed by session so a results
  page can be revisited after its slot was consumed.

Plain JSON files keep the API stateless across restarts without a database.
"""

from __future__ import annotations

import json
import os
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
SLOTS_DIR = DATA_ROOT / "slots"
REPORTS_DIR = DATA_ROOT / "reports"
REPORT_INDEX_PATH = DATA_ROOT / "reports_index.json"

RESULTS_SLOT = "quizResults"
EMAIL_SLOT = "quizEmail"
START_TIME_SLOT = "quizStartTime"

_LOCK = threading.Lock()
_KEY_RX = re.compile(r"[^A-Za-z0-9._-]")


def _ensure_dirs() -> None:
    SLOTS_DIR.mkdir(parents=True, exist_ok=True)
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError:
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def slot_key(session_id: str, name: str) -> str:
    return f"{session_id}.{name}"


def _slot_path(key: str) -> Path:
    return SLOTS_DIR / f"{_KEY_RX.sub('_', key)}.json"


# ---- slots ----
def put_slot(key: str, value: Any) -> None:
    _ensure_dirs()
    with _LOCK:
        _write_json(_slot_path(key), {"value": value})


def read_slot(key: str) -> Optional[Any]:
    payload = _read_json(_slot_path(key), None)
    if not isinstance(payload, dict):
        return None
    return payload.get("value")


def take_slot(key: str) -> Optional[Any]:
    """Read a slot and remove it; a second take returns ``None``."""
    path = _slot_path(key)
    with _LOCK:
        payload = _read_json(path, None)
        if path.exists():
            path.unlink()
    if not isinstance(payload, dict):
        return None
    return payload.get("value")


def remove_slot(key: str) -> bool:
    path = _slot_path(key)
    with _LOCK:
        if not path.exists():
            return False
        path.unlink()
        return True


def clear_session_slots(session_id: str) -> None:
    for name in (RESULTS_SLOT, EMAIL_SLOT, START_TIME_SLOT):
        remove_slot(slot_key(session_id, name))


# ---- reports ----
def save_report(report_id: str, report: Dict[str, Any], metadata: Dict[str, Any]) -> None:
    """Persist the rendered report JSON and its index metadata."""

    _ensure_dirs()
    report_path = REPORTS_DIR / f"{report_id}.json"

    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(REPORT_INDEX_PATH, {})
        index[report_id] = metadata
        _write_json(REPORT_INDEX_PATH, index)

    _write_json(report_path, report)


def load_report(report_id: str) -> Optional[Dict[str, Any]]:
    path = REPORTS_DIR / f"{report_id}.json"
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError:
        return None


def delete_report(report_id: str) -> bool:
    removed = False
    with _LOCK:
        index: Dict[str, Dict[str, Any]] = _read_json(REPORT_INDEX_PATH, {})
        if report_id in index:
            index.pop(report_id, None)
            _write_json(REPORT_INDEX_PATH, index)
            removed = True
    report_path = REPORTS_DIR / f"{report_id}.json"
    if report_path.exists():
        report_path.unlink()
    return removed


def find_report_by_session(session_id: str) -> Optional[tuple[str, Dict[str, Any]]]:
    index: Dict[str, Dict[str, Any]] = _read_json(REPORT_INDEX_PATH, {})
    for rid, meta in index.items():
        if meta.get("sessionId") == session_id:
            report = load_report(rid)
            if report:
                return rid, report
    return None
