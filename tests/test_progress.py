import datetime

from fp_study import db, progress
from fp_study.db import UserProgress


def test_first_answer_creates_record():
    now = datetime.datetime(2024, 3, 1, 12, 0)
    record = progress.record_answer("q1", True, now=now)
    assert record.total_attempts == 1
    assert record.correct_count == 1
    assert record.mastery_level == 1
    assert record.last_answered_at == now
    assert record.is_bookmarked is False

    stored = progress.get_progress("q1")
    assert stored is not None
    assert stored.mastery_level == 1


def test_level_climbs_and_drops():
    for _ in range(5):
        progress.record_answer("q1", True)
    assert progress.get_progress("q1").mastery_level == 5

    for _ in range(4):
        progress.record_answer("q1", False)
    record = progress.get_progress("q1")
    assert (record.correct_count, record.total_attempts) == (5, 9)
    assert record.mastery_level == 2


def test_correct_count_never_exceeds_attempts():
    pattern = [True, False, False, True, True, False, True]
    for is_correct in pattern:
        record = progress.record_answer("q1", is_correct)
        assert record.correct_count <= record.total_attempts
    assert record.total_attempts == len(pattern)
    assert record.correct_count == sum(pattern)


def test_toggle_bookmark_creates_zero_stat_record():
    assert progress.toggle_bookmark("q9") is True
    record = progress.get_progress("q9")
    assert record.is_bookmarked is True
    assert record.total_attempts == 0
    assert record.mastery_level == 0

    assert progress.toggle_bookmark("q9") is False
    assert progress.get_progress("q9").is_bookmarked is False


def test_bookmark_keeps_mastery():
    progress.record_answer("q1", True)
    progress.record_answer("q1", True)
    progress.toggle_bookmark("q1")
    record = progress.get_progress("q1")
    assert record.is_bookmarked is True
    assert record.mastery_level == 3
    assert record.total_attempts == 2


def test_set_notes_upserts_only_the_note():
    progress.record_answer("q1", False)
    progress.set_notes("q1", "check the tax table")
    record = progress.get_progress("q1")
    assert record.user_notes == "check the tax table"
    assert record.total_attempts == 1

    progress.set_notes("q2", "new")
    assert progress.get_progress("q2").user_notes == "new"
    assert progress.get_progress("q2").total_attempts == 0


def test_mastery_distribution(make_question):
    for i in range(10):
        make_question(f"q{i}")
    db.put(UserProgress(question_id="q0", mastery_level=5, correct_count=5, total_attempts=5))
    db.put(UserProgress(question_id="q1", mastery_level=4, correct_count=3, total_attempts=3))
    db.put(UserProgress(question_id="q2", mastery_level=3, correct_count=2, total_attempts=3))
    db.put(UserProgress(question_id="q3", mastery_level=2, correct_count=1, total_attempts=2))
    db.put(UserProgress(question_id="q4", mastery_level=1, correct_count=0, total_attempts=1))
    # Bookmark-only rows stay "new"
    db.put(UserProgress(question_id="q5", mastery_level=0, correct_count=0, total_attempts=0,
                        is_bookmarked=True))

    dist = progress.mastery_distribution()
    assert dist.mastered == 2
    assert dist.familiar == 1
    assert dist.learning == 2
    assert dist.new == 5
    assert dist.total == 10


def test_distribution_sums_to_corpus_size(make_question):
    for i in range(6):
        make_question(f"q{i}")
    answers = {"q0": [True] * 5, "q1": [True, False], "q2": [False], "q3": [True, True, True]}
    for qid, results in answers.items():
        for is_correct in results:
            progress.record_answer(qid, is_correct)
    progress.toggle_bookmark("q5")

    dist = progress.mastery_distribution()
    assert dist.mastered + dist.familiar + dist.learning + dist.new == 6


def test_distribution_ignores_progress_outside_corpus(make_question):
    for i in range(3):
        make_question(f"q{i}")
    progress.record_answer("q0", True)
    for qid in ("x1", "x2", "x3", "x4"):
        progress.record_answer(qid, True)

    dist = progress.mastery_distribution()
    assert (dist.learning, dist.new) == (1, 2)
    assert dist.total == 3


def test_mastery_level_counts():
    progress.record_answer("q1", True)
    progress.record_answer("q2", True)
    progress.toggle_bookmark("q3")
    counts = progress.mastery_level_counts()
    assert counts == {0: 1, 1: 2, 2: 0, 3: 0, 4: 0, 5: 0}
