from __future__ import annotations

import csv
import io
import json

import pytest

from quiz_core.errors import ExportError
from quiz_core.report_export import build_report, format_duration, report_filename, to_csv, to_json
from quiz_core.scoring import score_answers
from tests.conftest import build_questions


def _report():
    questions = build_questions(3)
    score = score_answers(questions, {0: "A", 1: "C"}, 600)
    return build_report(score, questions, participant="jane@example.com", completed_at="2024-01-01T00:00:00+00:00")


def test_report_carries_aggregate_and_per_question_fields():
    report = _report()
    assert report["platform"] == "QuizSphere"
    assert report["email"] == "jane@example.com"
    assert report["score"] == "1/3 (33%)"
    assert report["percentage"] == 33
    assert report["performance"] == "Needs Improvement"
    assert report["elapsedSeconds"] == 600
    assert report["timeSpent"] == "10m 0s"
    assert report["answeredCount"] == 2
    assert report["completedAt"] == "2024-01-01T00:00:00+00:00"

    rows = report["questions"]
    assert [r["userAnswer"] for r in rows] == ["A", "C", "Not answered"]
    assert [r["correctAnswer"] for r in rows] == ["A", "B", "C"]
    assert [r["isCorrect"] for r in rows] == [True, False, False]
    assert rows[2]["wasAnswered"] is False
    assert rows[0]["question"] == "Q0"


def test_json_round_trip_is_stable():
    report = _report()
    text = to_json(report)
    assert json.loads(text) == report
    assert to_json(report) == text


def test_csv_has_fixed_header_and_one_row_per_question():
    body = to_csv(_report())
    rows = list(csv.DictReader(io.StringIO(body)))
    assert list(rows[0].keys()) == ["index", "question", "userAnswer", "correctAnswer", "isCorrect", "wasAnswered"]
    assert len(rows) == 3
    assert rows[2]["userAnswer"] == "Not answered"


def test_mismatched_questions_are_rejected():
    questions = build_questions(3)
    score = score_answers(questions, {}, 0)
    with pytest.raises(ExportError):
        build_report(score, questions[:2], participant="x")


def test_filename_derived_from_label_and_timestamp():
    assert report_filename("jane@example.com", 1700000000000) == "quizsphere-results-jane-example.com-1700000000000.json"
    assert report_filename("a/b c", 5, "csv") == "quizsphere-results-a-b-c-5.csv"
    assert report_filename("", 5) == "quizsphere-results-anonymous-5.json"


def test_format_duration():
    assert format_duration(0) == "0m 0s"
    assert format_duration(61) == "1m 1s"
    assert format_duration(1800) == "30m 0s"
