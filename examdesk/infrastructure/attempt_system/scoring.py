"""
Scoring for test attempts.

Everything here is pure: per-answer marking from the selected and correct
option labels, and the derived attempt totals (score, percentage, minutes
spent). Callers apply the results to the ORM objects before persisting.
"""
import enum
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional


class OptionLabel(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


@dataclass(frozen=True)
class MarkingRules:
    marks_per_question: float
    negative_marking: bool = False
    marks_deducted: float = 0.0

    @classmethod
    def from_test(cls, test) -> "MarkingRules":
        return cls(
            marks_per_question=test.marks_per_question,
            negative_marking=bool(test.negative_marking_enabled),
            marks_deducted=test.negative_marks_deducted or 0.0,
        )


@dataclass(frozen=True)
class ScoredAnswer:
    is_correct: bool
    marks_awarded: float


@dataclass(frozen=True)
class AttemptTotals:
    score: float
    percentage: float
    time_spent: Optional[int]  # minutes; None until both timestamps exist


def score_answer(
    selected: Optional[OptionLabel],
    correct: OptionLabel,
    rules: MarkingRules,
) -> ScoredAnswer:
    # Skipped questions never attract the negative-marking penalty.
    is_correct = selected is not None and selected == correct
    if is_correct:
        return ScoredAnswer(True, rules.marks_per_question)
    if selected is not None and rules.negative_marking:
        return ScoredAnswer(False, -rules.marks_deducted)
    return ScoredAnswer(False, 0.0)


def elapsed_minutes(start_time: Optional[datetime], end_time: Optional[datetime]) -> Optional[int]:
    if start_time is None or end_time is None:
        return None
    minutes = (end_time - start_time).total_seconds() / 60
    return int(math.floor(minutes + 0.5))


def compute_totals(
    marks: Iterable[float],
    total_marks: float,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
) -> AttemptTotals:
    score = float(sum(marks))
    percentage = (score / total_marks) * 100 if total_marks else 0.0
    return AttemptTotals(
        score=score,
        percentage=percentage,
        time_spent=elapsed_minutes(start_time, end_time),
    )


def apply_totals(attempt) -> AttemptTotals:
    """Recompute the derived fields of an attempt in place. Call before every commit."""
    totals = compute_totals(
        (answer.marks_awarded or 0.0 for answer in attempt.answers),
        attempt.total_marks,
        attempt.start_time,
        attempt.end_time,
    )
    attempt.score = totals.score
    attempt.percentage = totals.percentage
    if totals.time_spent is not None:
        attempt.time_spent = totals.time_spent
    return totals
