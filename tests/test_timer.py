from __future__ import annotations

import json
import threading
import time

import pytest

from quiz_core.clock import Ticker
from quiz_core.errors import SessionClosed
from quiz_core.scoring import score_session
from tests.conftest import started_session


def test_budget_ticks_submit_exactly_once():
    sess = started_session(3, budget=5)
    calls = []
    sess.add_listener(calls.append)

    for _ in range(5):
        sess.tick()

    st = sess.state
    assert st.phase == "submitted"
    assert st.remaining_seconds == 0
    assert st.elapsed_seconds == 5
    assert st.submitted_by == "timeout"
    assert len(calls) == 1
    with pytest.raises(SessionClosed):
        sess.tick()
    assert len(calls) == 1


def test_submit_twice_is_noop():
    sess = started_session(3, budget=60)
    calls = []
    sess.add_listener(calls.append)
    sess.record_answer("A")
    sess.tick(); sess.tick()

    first = sess.submit()
    second = sess.submit()

    assert first == second
    assert first.elapsed_seconds == 2
    assert first.submitted_by == "manual"
    assert len(calls) == 1


def test_manual_submit_after_timeout_gives_identical_report():
    timed_out = started_session(3, budget=3)
    timed_out.record_answer("A")
    for _ in range(3):
        timed_out.tick()
    timed_out.submit()

    manual = started_session(3, budget=3)
    manual.record_answer("A")
    for _ in range(2):
        manual.tick()
    manual.submit()
    manual.submit()

    # elapsed differs by one tick; same answers give the same correctness
    a = score_session(timed_out.state).to_dict()
    b = score_session(manual.state).to_dict()
    assert a["perQuestion"] == b["perQuestion"]
    assert a["elapsedSeconds"] == 3 and b["elapsedSeconds"] == 2

    again = score_session(timed_out.state).to_dict()
    assert json.dumps(a, sort_keys=True) == json.dumps(again, sort_keys=True)


def test_listener_receives_frozen_state():
    sess = started_session(2, budget=10)
    seen = []
    sess.add_listener(seen.append)
    sess.submit()
    (state,) = seen
    assert state.phase == "submitted"
    state.answers[0] = "A"
    assert sess.state.answers == {}


def test_concurrent_submit_and_tick_transition_once():
    sess = started_session(3, budget=1)
    calls = []
    sess.add_listener(calls.append)
    barrier = threading.Barrier(2)

    def _tick():
        barrier.wait()
        try:
            sess.tick()
        except SessionClosed:
            pass

    def _submit():
        barrier.wait()
        sess.submit()

    threads = [threading.Thread(target=_tick), threading.Thread(target=_submit)]
    for th in threads: th.start()
    for th in threads: th.join()

    assert sess.phase == "submitted"
    assert len(calls) == 1


def test_ticker_drives_session_to_timeout_and_stops():
    sess = started_session(2, budget=3)
    ticker = Ticker(sess.tick, interval=0.01)
    sess.add_listener(lambda _st: ticker.stop())
    ticker.start()

    deadline = time.time() + 5
    while sess.phase != "submitted" and time.time() < deadline:
        time.sleep(0.01)
    time.sleep(0.05)

    assert sess.phase == "submitted"
    assert sess.state.remaining_seconds == 0
    assert not ticker.running
    assert ticker.ticks == 3


def test_ticker_stops_itself_when_session_closed():
    sess = started_session(2, budget=100)
    sess.submit()
    ticker = Ticker(sess.tick, interval=0.01).start()
    deadline = time.time() + 5
    while ticker.running and time.time() < deadline:
        time.sleep(0.01)
    assert not ticker.running
    assert ticker.ticks == 0
    ticker.stop()
    ticker.stop()


def test_ticker_rejects_bad_interval_and_double_start():
    with pytest.raises(ValueError):
        Ticker(lambda: None, interval=0)
    t = Ticker(lambda: None, interval=10).start()
    with pytest.raises(RuntimeError):
        t.start()
    t.stop()


def test_failing_listener_does_not_block_the_others():
    sess = started_session(2, budget=10)
    seen = []

    def _broken(_st):
        raise OSError("disk full")

    sess.add_listener(_broken)
    sess.add_listener(seen.append)

    state = sess.submit()
    assert state.phase == "submitted"
    assert len(seen) == 1
    sess.submit()
    assert len(seen) == 1


def test_failing_listener_on_timeout_still_reaches_the_others():
    sess = started_session(2, budget=1)
    seen = []
    sess.add_listener(lambda _st: 1 / 0)
    sess.add_listener(seen.append)

    assert sess.tick() == 0
    assert sess.phase == "submitted"
    assert [st.submitted_by for st in seen] == ["timeout"]


def test_submit_is_not_held_up_by_a_pending_tick():
    sess = started_session(2, budget=100)
    ticker = Ticker(sess.tick, interval=0.5)
    sess.add_listener(lambda _st: ticker.stop())
    ticker.start()
    finished = []

    def _submit():
        sess.submit()
        finished.append(time.monotonic())

    th = threading.Thread(target=_submit)
    with sess._lock:
        time.sleep(0.6)  # the ticker has fired and waits for the lock
        th.start()
        time.sleep(0.05)
        released = time.monotonic()
    th.join(timeout=5)

    assert finished and finished[0] - released < 0.4
    assert sess.phase == "submitted"
    ticker._thread.join(timeout=1)
    assert not ticker._thread.is_alive()
    assert ticker.ticks <= 1
