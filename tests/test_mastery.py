import itertools

import pytest

from fp_study import mastery
from fp_study.mastery import calculate_accuracy, calculate_mastery_level, next_mastery_level


@pytest.mark.parametrize("correct,attempts,expected", [
    (0, 0, 0),
    (0, 1, 1),
    (1, 1, 1),
    (0, 2, 1),       # 0% accuracy on two attempts
    (1, 2, 2),       # 50%
    (2, 5, 2),       # 40%, only two correct
    (2, 3, 3),       # 67%
    (2, 4, 2),       # 50% fails level 3
    (3, 3, 4),
    (4, 5, 4),       # 80%
    (3, 4, 3),       # 75% fails level 4
    (5, 5, 5),
    (9, 10, 5),      # 90%
    (5, 6, 4),       # 83% fails level 5
])
def test_mastery_ladder(correct, attempts, expected):
    assert calculate_mastery_level(correct, attempts) == expected


def test_level_is_order_independent():
    """Replaying any ordering of the same answers ends at the same level."""
    answers = [True, True, False, True, False, True]
    expected = calculate_mastery_level(sum(answers), len(answers))
    for ordering in set(itertools.permutations(answers)):
        correct = attempts = level = 0
        for is_correct in ordering:
            level, correct, attempts = next_mastery_level(correct, attempts, is_correct)
            assert correct <= attempts
        assert (correct, attempts) == (4, 6)
        assert level == expected


def test_wrong_answers_drop_level():
    level, correct, attempts = 0, 0, 0
    for _ in range(5):
        level, correct, attempts = next_mastery_level(correct, attempts, True)
    assert level == 5
    level, correct, attempts = next_mastery_level(correct, attempts, False)
    assert level == 4  # 5/6 = 83%
    for _ in range(3):
        level, correct, attempts = next_mastery_level(correct, attempts, False)
    assert level == 2  # 5/9 = 56%


@pytest.mark.parametrize("correct,total,expected", [
    (0, 0, 0),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),   # 12.5 rounds up
    (3, 8, 38),   # 37.5 rounds up
    (5, 5, 100),
])
def test_accuracy_rounds_half_up(correct, total, expected):
    assert calculate_accuracy(correct, total) == expected


def test_date_helpers_round_trip():
    import datetime
    day = datetime.date(2024, 1, 3)
    assert mastery.format_date(day) == "2024-01-03"
    assert mastery.parse_date("2024-01-03") == day
