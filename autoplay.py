# autoplay.py
from __future__ import annotations
import argparse, os, json, random, datetime, logging
from typing import List, Optional
from quiz_core import config
from quiz_core.engine import QuizSession
from quiz_core.normalizer import normalize_items
from quiz_core.provider import load_questions
from quiz_core.report_export import build_report, to_csv, to_json
from quiz_core.scoring import score_session
from quiz_core.types import Question

log = logging.getLogger("autoplay")

def _wrong_choice(q: Question) -> str:
    ci = q.choices.index(q.correct_answer)
    return q.choices[(ci + 1) % len(q.choices)]

def _choice_for(q: Question, profile: str, rng: random.Random) -> Optional[str]:
    if profile == "perfect":   return q.correct_answer
    if profile == "all-wrong": return _wrong_choice(q)
    if profile == "skip-half": return q.correct_answer if q.id % 2 == 0 else None
    return rng.choice(q.choices)

def play(questions: List[Question], profile: str, budget: int, seconds_per_question: int,
         timeout: bool, rng: random.Random) -> QuizSession:
    sess = QuizSession()
    sess.start(questions, budget)
    # visit in a shuffled order to exercise free navigation
    order = list(range(len(questions)))
    rng.shuffle(order)
    for idx in order:
        if sess.phase != "active": break
        sess.navigate_to(idx)
        choice = _choice_for(questions[idx], profile, rng)
        if choice is not None:
            sess.record_answer(choice)
        for _ in range(seconds_per_question):
            if sess.phase != "active": break
            sess.tick()
    while timeout and sess.phase == "active":
        sess.tick()
    sess.submit()
    return sess

def run(profile: str, seed: Optional[int], bank: Optional[str], email: str, timeout: bool,
        seconds_per_question: int) -> str:
    rng = random.Random(seed or 1234)
    if bank:
        with open(bank, "r", encoding="utf-8") as f:
            questions = normalize_items(json.load(f), min_count=1, rng=rng)
    else:
        questions = load_questions(config.QUESTION_COUNT, rng=rng)
    if not questions: raise RuntimeError("Driver got 0 questions.")

    sess = play(questions, profile, config.TIME_BUDGET_SECONDS, seconds_per_question, timeout, rng)
    state = sess.state
    score = score_session(state, config.tiers_from(config.load_config()))
    report = build_report(score, state.questions, participant=email)

    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    os.makedirs("reports", exist_ok=True)
    base = os.path.join("reports", f"auto_{profile}_{ts}")
    with open(base + ".json", "w", encoding="utf-8") as f: f.write(to_json(report))
    with open(base + ".csv", "w", encoding="utf-8", newline="") as f: f.write(to_csv(report))
    log.info("%s: %s %s (%s, submitted by %s)", profile, report["score"], report["performance"],
             report["timeSpent"], state.submitted_by)
    print(f"Report: {base}.json")
    return base

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--profile", choices=["perfect", "all-wrong", "skip-half", "random"], default="perfect")
    ap.add_argument("--seed", type=int, default=1337)
    ap.add_argument("--bank", help="JSON file of raw provider items; live provider when omitted")
    ap.add_argument("--email", default="autoplay@quizsphere.local")
    ap.add_argument("--timeout", action="store_true", help="let the clock run out instead of submitting")
    ap.add_argument("--seconds-per-question", type=int, default=20)
    a = ap.parse_args()
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    run(a.profile, a.seed, a.bank, a.email, a.timeout, a.seconds_per_question)

if __name__ == "__main__":
    main()
