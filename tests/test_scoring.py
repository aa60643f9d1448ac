from __future__ import annotations

import json

import pytest

from quiz_core.config import parse_tiers, tiers_from
from quiz_core.errors import EmptySession, SessionStillActive
from quiz_core.scoring import performance_tier, round_percentage, score_answers, score_record, score_session
from tests.conftest import build_questions


def test_three_question_scenario(session):
    session.record_answer("A")
    session.navigate_to(1)
    session.record_answer("C")
    for _ in range(600):
        session.tick()
    session.submit()

    report = score_session(session.state)

    assert report.correct_count == 1
    assert report.total_count == 3
    assert report.percentage == 33
    assert report.elapsed_seconds == 600
    assert report.answered_count == 2
    q0, q1, q2 = report.per_question
    assert (q0.is_correct, q0.was_answered, q0.user_answer) == (True, True, "A")
    assert (q1.is_correct, q1.was_answered, q1.user_answer) == (False, True, "C")
    assert (q2.is_correct, q2.was_answered, q2.user_answer) == (False, False, None)
    assert report.performance_tier == "Needs Improvement"


def test_scoring_is_pure(session):
    session.record_answer("A")
    session.submit()
    state = session.state
    first = json.dumps(score_session(state).to_dict(), sort_keys=True)
    second = json.dumps(score_session(state).to_dict(), sort_keys=True)
    assert first == second
    assert score_session(state) == score_session(state)


def test_scoring_requires_submission(session):
    with pytest.raises(SessionStillActive):
        score_session(session.state)


def test_zero_answers_is_a_valid_zero_score(session):
    session.submit()
    report = score_session(session.state)
    assert report.correct_count == 0
    assert report.percentage == 0
    assert report.answered_count == 0


def test_empty_session_cannot_be_scored():
    with pytest.raises(EmptySession):
        score_answers([], {}, 0)


@pytest.mark.parametrize(
    "correct,total,expected",
    [(0, 3, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100), (1, 8, 13), (1, 200, 1), (1, 201, 0), (15, 15, 100)],
)
def test_round_half_up(correct, total, expected):
    assert round_percentage(correct, total) == expected


@pytest.mark.parametrize(
    "pct,tier",
    [(100, "Excellent"), (90, "Excellent"), (89, "Very Good"), (80, "Very Good"), (70, "Good"),
     (60, "Fair"), (59, "Needs Improvement"), (0, "Needs Improvement")],
)
def test_default_tiers(pct, tier):
    assert performance_tier(pct) == tier


def test_custom_tiers_from_config():
    tiers = tiers_from({"PERFORMANCE_TIERS": "50:Pass,95:Distinction"})
    assert tiers == ((95, "Distinction"), (50, "Pass"), (0, "Needs Improvement"))
    assert performance_tier(96, tiers) == "Distinction"
    assert performance_tier(50, tiers) == "Pass"
    assert performance_tier(10, tiers) == "Needs Improvement"

    from_json = tiers_from({"PERFORMANCE_TIERS": {"0": "Low", "75": "High"}})
    assert performance_tier(80, from_json) == "High"
    assert performance_tier(74, from_json) == "Low"


def test_table_without_zero_floor_falls_back_to_floor_tier():
    tiers = ((50, "Pass"), (95, "Distinction"))
    assert performance_tier(96, tiers) == "Distinction"
    assert performance_tier(50, tiers) == "Pass"
    assert performance_tier(10, tiers) == "Needs Improvement"


def test_bad_tier_table_is_rejected():
    with pytest.raises(ValueError):
        parse_tiers("90")
    with pytest.raises(ValueError):
        parse_tiers("")


def test_score_record_matches_score_answers():
    questions = build_questions(3)
    record = {
        "questions": [q.to_dict() for q in questions],
        "answers": {"0": "A", "2": "C"},
        "timeSpent": 125,
    }
    report = score_record(record)
    assert report == score_answers(questions, {0: "A", 2: "C"}, 125)
    assert report.correct_count == 2
    assert report.percentage == 67
