import datetime
from typing import Optional, Tuple

MAX_MASTERY_LEVEL = 5

# (level, minimum correct answers, minimum attempts, minimum accuracy),
# checked from the top; the first satisfied row wins.
MASTERY_LADDER: Tuple[Tuple[int, int, int, float], ...] = (
    (5, 5, 0, 0.90),
    (4, 3, 0, 0.80),
    (3, 2, 0, 0.60),
    (2, 0, 2, 0.40),
    (1, 0, 1, 0.0),
)


def calculate_mastery_level(correct_count: int, total_attempts: int) -> int:
    """
    Six-level mastery ladder (0-5) derived from cumulative answer counts.

      5 – 5+ correct and accuracy >= 90%
      4 – 3+ correct and accuracy >= 80%
      3 – 2+ correct and accuracy >= 60%
      2 – 2+ attempts and accuracy >= 40%
      1 – answered at least once
      0 – never answered

    The level depends only on the final tally, so replaying answers one at a
    time always lands on the same level as computing it from the totals.
    """
    if total_attempts <= 0:
        return 0
    accuracy = correct_count / total_attempts
    for level, min_correct, min_attempts, min_accuracy in MASTERY_LADDER:
        if correct_count >= min_correct and total_attempts >= min_attempts and accuracy >= min_accuracy:
            return level
    return 0


def next_mastery_level(correct_count: int, total_attempts: int, is_correct: bool) -> Tuple[int, int, int]:
    """Apply one answer to a tally.

    Returns:
        (new_level, new_correct_count, new_total_attempts)
    """
    new_attempts = total_attempts + 1
    new_correct = correct_count + (1 if is_correct else 0)
    return calculate_mastery_level(new_correct, new_attempts), new_correct, new_attempts


def accuracy_ratio(correct: int, total: int) -> float:
    """Fraction correct in [0, 1]; 0 when nothing was answered."""
    if total <= 0:
        return 0.0
    return correct / total


def calculate_accuracy(correct: int, total: int) -> int:
    """Accuracy as a whole percentage, rounded half up (12.5 -> 13)."""
    if total <= 0:
        return 0
    # Integer form of floor(x + 0.5); round() would send 12.5 to 12
    return (correct * 200 + total) // (total * 2)


def format_date(value: Optional[datetime.date] = None) -> str:
    """Local calendar day as YYYY-MM-DD."""
    if value is None:
        value = datetime.date.today()
    return value.strftime("%Y-%m-%d")


def parse_date(value: str) -> datetime.date:
    return datetime.datetime.strptime(value, "%Y-%m-%d").date()
