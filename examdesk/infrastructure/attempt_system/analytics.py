from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..repositories.attempt_repository import AttemptRepository
from ..repositories.mock_test_repository import MockTestRepository
from .errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


# ---------------------------
# Trend helpers
# ---------------------------

def best_streak(percentages: Sequence[float]) -> int:
    """Longest run of strictly increasing consecutive percentages, counted in steps."""
    best = current = 0
    for previous, latest in zip(percentages, percentages[1:]):
        if latest > previous:
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


def consistent_improvement(percentages: Sequence[float]) -> Optional[bool]:
    # Fewer than three attempts is not enough signal.
    if len(percentages) < 3:
        return None
    return all(latest >= previous for previous, latest in zip(percentages, percentages[1:]))


def attempt_trail(attempts: Sequence) -> List[Dict]:
    trail = []
    for index, attempt in enumerate(attempts):
        improvement = None
        if index > 0:
            previous = attempts[index - 1]
            improvement = {
                "score_change": attempt.score - previous.score,
                "percentage_change": attempt.percentage - previous.percentage,
                "time_change": attempt.time_spent - previous.time_spent,
            }
        trail.append(
            {
                "attempt_number": attempt.attempt_number,
                "score": attempt.score,
                "percentage": attempt.percentage,
                "time_spent": attempt.time_spent,
                "submitted_at": attempt.submitted_at,
                "improvement": improvement,
            }
        )
    return trail


def question_breakdown(attempts: Sequence) -> Dict:
    stats: Dict[int, Dict] = {}
    for attempt in attempts:
        for answer in attempt.answers:
            entry = stats.setdefault(answer.question_id, {"attempts": [], "correct_count": 0})
            entry["attempts"].append(
                {
                    "attempt_number": attempt.attempt_number,
                    "is_correct": answer.is_correct,
                    "selected_option": answer.selected_option,
                    "marks_awarded": answer.marks_awarded,
                }
            )
            if answer.is_correct:
                entry["correct_count"] += 1

    questions = []
    for question_id, entry in stats.items():
        trail = entry["attempts"]
        questions.append(
            {
                "question_id": question_id,
                "success_rate": entry["correct_count"] / len(trail) * 100,
                "attempts": trail,
                "improved": len(trail) > 1 and trail[-1]["is_correct"] and not trail[0]["is_correct"],
                "consistently_correct": all(t["is_correct"] for t in trail),
                "never_correct": not any(t["is_correct"] for t in trail),
            }
        )

    return {
        "total_questions": len(questions),
        "improved_questions": sum(1 for q in questions if q["improved"]),
        "consistent_questions": sum(1 for q in questions if q["consistently_correct"]),
        "difficult_questions": sum(1 for q in questions if q["never_correct"]),
        "questions": questions,
    }


def build_improvement_report(test, attempts: Sequence) -> Dict:
    """
    Trend report over a student's completed attempts on one test.

    `attempts` must be ordered by attempt number, oldest first. The
    question-wise breakdown is only produced for two or more attempts.
    """
    first, last = attempts[0], attempts[-1]
    percentages = [a.percentage for a in attempts]
    # max keeps the first maximal element, so ties go to the earliest attempt
    best = max(attempts, key=lambda a: a.percentage)

    report = {
        "test_info": {
            "title": test.title,
            "total_marks": test.total_marks,
            "total_attempts": len(attempts),
        },
        "attempts": attempt_trail(attempts),
        "overall_improvement": {
            "first_attempt": {"score": first.score, "percentage": first.percentage},
            "last_attempt": {"score": last.score, "percentage": last.percentage},
            "total_improvement": {
                "score_change": last.score - first.score,
                "percentage_change": last.percentage - first.percentage,
            },
            "best_attempt": {
                "attempt_number": best.attempt_number,
                "score": best.score,
                "percentage": best.percentage,
                "submitted_at": best.submitted_at,
            },
            "average_percentage": float(np.mean(percentages)),
        },
        "trends": {
            "improving": last.percentage > first.percentage,
            "consistent_improvement": consistent_improvement(percentages),
            "best_streak": best_streak(percentages),
        },
        "question_analysis": None,
    }
    if len(attempts) > 1:
        report["question_analysis"] = question_breakdown(attempts)
    return report


# ---------------------------
# Engine
# ---------------------------

class ImprovementAnalyticsEngine:
    def __init__(self, *, attempt_repo: AttemptRepository, test_repo: MockTestRepository):
        self._attempts = attempt_repo
        self._tests = test_repo

    def analyze(self, student_id: int, mock_test_id: int) -> Dict:
        test = self._tests.get_by_id(mock_test_id)
        if not test:
            raise NotFoundError("Test not found")
        if not test.show_improvement_analysis:
            raise ForbiddenError("Improvement analysis is not enabled for this test")

        attempts = self._attempts.list_completed_for_student_test(student_id, mock_test_id)
        if not attempts:
            raise NotFoundError("No completed attempts found for this test")

        logger.info(
            f"Building improvement report for student_id={student_id}, "
            f"mock_test_id={mock_test_id} over {len(attempts)} attempts"
        )
        return build_improvement_report(test, attempts)
