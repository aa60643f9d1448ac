from __future__ import annotations
import argparse, json, logging, os, datetime, time
from quiz_core import config
from quiz_core.clock import Ticker
from quiz_core.engine import QuizSession, format_clock
from quiz_core.errors import QuizError, ProviderError
from quiz_core.normalizer import normalize_items
from quiz_core.provider import load_questions
from quiz_core.report_export import build_report, report_filename, to_json
from quiz_core.scoring import score_session

HELP = "[1-9] answer  n next  p previous  g N go to question N  s submit  ? help"

def _show(sess: QuizSession) -> None:
    v = sess.view()
    marks = {"answered": "x", "visited": "~", "not-visited": "."}
    nav = " ".join(f"{i + 1}{marks[s]}" for i, s in enumerate(v["status"]))
    warn = "  !" if v["timeRunningOut"] else ""
    print(f"\n[{v['clock']}{warn}] Question {v['currentIndex'] + 1} of {v['total']}  "
          f"({v['answeredCount']}/{v['total']} answered)")
    print(f"  {nav}")
    print(v["question"]["question"])
    for i, choice in enumerate(v["question"]["choices"]):
        sel = "*" if choice == v["selected"] else " "
        print(f" {sel}[{i + 1}] {chr(65 + i)}. {choice}")

def _handle(sess: QuizSession, cmd: str) -> bool:
    """Apply one console command; returns False when the user asked to submit."""
    if cmd == "s":
        v = sess.view()
        left = v["total"] - v["answeredCount"]
        if left:
            print(f"{left} question(s) will be marked as unanswered.")
        if input("Submit assessment? [y/N] ").strip().lower() == "y":
            sess.submit()
            return False
        return True
    if cmd == "n": sess.next(); return True
    if cmd == "p": sess.previous(); return True
    if cmd.startswith("g "):
        sess.navigate_to(int(cmd[2:].strip()) - 1); return True
    if cmd.isdigit():
        choices = sess.current_question.choices
        idx = int(cmd) - 1
        if not 0 <= idx < len(choices):
            print("No such choice."); return True
        sess.record_answer(choices[idx]); return True
    print(HELP)
    return True

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--bank", help="JSON file of raw provider items instead of the live provider")
    ap.add_argument("--budget", type=int, default=config.TIME_BUDGET_SECONDS)
    a = ap.parse_args()
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")

    cfg = config.load_config()
    rng = config.seed_rng(cfg)
    try:
        if a.bank:
            with open(a.bank, "r", encoding="utf-8") as f:
                questions = normalize_items(json.load(f), min_count=1, rng=rng)
        else:
            questions = load_questions(config.QUESTION_COUNT, rng=rng)
    except ProviderError as e:
        print(f"Assessment failed to load: {e}")
        raise SystemExit(1)

    sess = QuizSession()
    ticker = Ticker(sess.tick, config.TICK_SECONDS)
    sess.add_listener(lambda _state: ticker.stop())
    sess.start(questions, a.budget)
    ticker.start()
    print(f"{config.PLATFORM_NAME} assessment: {len(questions)} questions, {format_clock(a.budget)} on the clock.")
    print(HELP)
    try:
        while sess.phase == "active":
            _show(sess)
            cmd = input("> ").strip().lower()
            if sess.phase != "active":
                print("Time is up. Your answers were submitted automatically.")
                break
            try:
                if not _handle(sess, cmd): break
            except ValueError:
                print(HELP)
            except QuizError as e:
                print(f"Rejected: {e}")
    except KeyboardInterrupt:
        ticker.stop()
        print("\nAssessment abandoned. No report was written.")
        return

    state = sess.state
    score = score_session(state, config.tiers_from(cfg))
    report = build_report(score, state.questions, participant=a.email)
    os.makedirs("reports", exist_ok=True)
    path = os.path.join("reports", report_filename(a.email, int(time.time() * 1000)))
    with open(path, "w", encoding="utf-8") as f:
        f.write(to_json(report))
    print(f"\nScore: {report['score']}  {report['performance']}  time spent {report['timeSpent']}")
    print(f"Done {datetime.datetime.now():%H:%M:%S}. Report saved to: {path}")

if __name__ == "__main__": main()
