import datetime

from fp_study import db, statistics
from fp_study.db import DailyStats, UserAnswer
from fp_study.settings import CATEGORIES
from fp_study.statistics import calculate_streaks


def day_row(date, solved=5):
    return DailyStats(date=date, questions_solved=solved, correct_answers=solved,
                      study_time_minutes=10, sessions_count=1)


def answer(aid, qid, correct, at=datetime.datetime(2024, 3, 1, 10, 0)):
    db.put(UserAnswer(id=aid, question_id=qid, user_answer=0, is_correct=correct,
                      answered_at=at, mode="random"))


class TestStreaks:

    def test_empty(self):
        assert calculate_streaks([], datetime.date(2024, 1, 3)) == (0, 0)

    def test_consecutive_days_live_today(self):
        rows = [day_row("2024-01-01"), day_row("2024-01-02"), day_row("2024-01-03")]
        assert calculate_streaks(rows, datetime.date(2024, 1, 3)) == (3, 3)

    def test_gap_resets_current(self):
        rows = [day_row("2024-01-01"), day_row("2024-01-02"), day_row("2024-01-03"),
                day_row("2024-01-05")]
        assert calculate_streaks(rows, datetime.date(2024, 1, 5)) == (1, 3)

    def test_streak_still_live_from_yesterday(self):
        rows = [day_row("2024-01-01"), day_row("2024-01-02")]
        assert calculate_streaks(rows, datetime.date(2024, 1, 3)) == (2, 2)

    def test_streak_broken_after_two_days(self):
        rows = [day_row("2024-01-01"), day_row("2024-01-02")]
        assert calculate_streaks(rows, datetime.date(2024, 1, 4)) == (0, 2)

    def test_unsorted_rows_and_empty_days(self):
        rows = [day_row("2024-01-03"), day_row("2024-01-01"), day_row("2024-01-02", solved=0)]
        # 01-02 had no solved questions, so it does not bridge the gap
        assert calculate_streaks(rows, datetime.date(2024, 1, 3)) == (1, 1)

    def test_crosses_month_boundary(self):
        rows = [day_row("2024-02-28"), day_row("2024-02-29"), day_row("2024-03-01")]
        assert calculate_streaks(rows, datetime.date(2024, 3, 1)) == (3, 3)


def test_record_session_accumulates():
    day = datetime.date(2024, 3, 1)
    statistics.record_session(10, 7, 15, today=day)
    stats = statistics.record_session(5, 5, 4, today=day)
    assert stats.questions_solved == 15
    assert stats.correct_answers == 12
    assert stats.study_time_minutes == 19
    assert stats.sessions_count == 2

    stored = statistics.get_today_stats(day)
    assert stored.sessions_count == 2
    assert statistics.get_today_stats(datetime.date(2024, 3, 2)) is None


def test_weekly_stats_window():
    for d in ("2024-02-29", "2024-03-01", "2024-03-07", "2024-03-08"):
        db.put(day_row(d))
    rows = statistics.get_weekly_stats(datetime.date(2024, 3, 1))
    assert [r.date for r in rows] == ["2024-03-01", "2024-03-07"]


def test_category_stats(make_question):
    make_question("lp1", category="life-planning")
    make_question("lp2", category="life-planning")
    make_question("lp3", category="life-planning")
    make_question("tx1", category="tax-planning")
    answer("a1", "lp1", True)
    answer("a2", "lp1", False)
    answer("a3", "lp2", False)
    answer("a4", "lp3", False)

    stats = {s.category: s for s in statistics.category_stats()}
    assert [s.category for s in statistics.category_stats()] == [c["id"] for c in CATEGORIES]

    lp = stats["life-planning"]
    assert lp.total_questions == 3
    assert lp.answered_questions == 3
    assert lp.correct_answers == 1
    assert lp.accuracy == 33

    tx = stats["tax-planning"]
    assert (tx.total_questions, tx.answered_questions, tx.accuracy) == (1, 0, 0)
    assert stats["inheritance"].total_questions == 0


def test_category_stats_appends_unknown_categories(make_question):
    make_question("x1", category="zz-extra")
    stats = statistics.category_stats()
    assert stats[-1].category == "zz-extra"
    assert stats[-1].total_questions == 1


def test_overall_stats(make_question):
    make_question("q1")
    answer("a1", "q1", True)
    answer("a2", "q1", False)
    answer("a3", "q1", False)
    db.put(day_row("2024-01-01"))
    db.put(day_row("2024-01-02"))

    overall = statistics.overall_stats(today=datetime.date(2024, 1, 2))
    assert overall.total_questions_solved == 3
    assert overall.overall_accuracy == 33
    assert overall.total_study_time_minutes == 20
    assert overall.current_streak == 2
    assert overall.longest_streak == 2


def test_overall_stats_empty():
    overall = statistics.overall_stats()
    assert overall.total_questions_solved == 0
    assert overall.overall_accuracy == 0
    assert overall.current_streak == 0


def test_today_answer_summary():
    day = datetime.date(2024, 3, 1)
    answer("a1", "q1", True, datetime.datetime(2024, 3, 1, 9, 0))
    answer("a2", "q2", False, datetime.datetime(2024, 3, 1, 21, 0))
    answer("a3", "q3", True, datetime.datetime(2024, 2, 29, 21, 0))
    summary = statistics.today_answer_summary(day)
    assert summary["total"] == 2
    assert summary["correct"] == 1
    assert summary["accuracy"] == 50
    assert summary["daily_goal"] == 20
    assert summary["goal_progress"] == 10
