import logging
from datetime import datetime
from typing import Callable, Dict

from sqlalchemy.orm import Session

from ...infrastructure.attempt_system.clock import utcnow
from ...infrastructure.attempt_system.errors import ForbiddenError, NotFoundError
from ...infrastructure.attempt_system.lifecycle import attempt_deadline
from ...infrastructure.db.models import AttemptModel, UserRole
from ...infrastructure.repositories.attempt_repository import AttemptRepository
from ...infrastructure.repositories.question_repository import QuestionRepository

logger = logging.getLogger(__name__)


def _can_view(attempt: AttemptModel, user: Dict) -> bool:
    role = user.get("role")
    if role == UserRole.ADMIN:
        return True
    if role == UserRole.TEACHER:
        return attempt.mock_test.created_by == user.get("user_id")
    return attempt.student_id == user.get("user_id")


def _load_visible_attempt(db: Session, attempt_id: int, user: Dict) -> AttemptModel:
    attempt = AttemptRepository(db).get_by_id(attempt_id)
    if not attempt:
        raise NotFoundError("Test attempt not found")
    if not _can_view(attempt, user):
        logger.warning(f"User {user.get('user_id')} denied access to attempt_id={attempt_id}")
        # Students never learn that someone else's attempt exists
        if user.get("role") == UserRole.STUDENT:
            raise NotFoundError("Test attempt not found")
        raise ForbiddenError()
    return attempt


def build_attempt_view(db: Session, attempt: AttemptModel, reveal_key: bool, now: datetime) -> Dict:
    """Attempt with its question content hydrated explicitly, in stored answer order."""
    questions = QuestionRepository(db).get_many(a.question_id for a in attempt.answers)
    deadline = attempt_deadline(attempt)

    answers = []
    for answer in attempt.answers:
        question = questions.get(answer.question_id)
        row = {
            "question_id": answer.question_id,
            "position": answer.position,
            "question_text": question.question_text if question else None,
            "options": question.options if question else [],
            "difficulty_level": question.difficulty_level if question else None,
            "selected_option": answer.selected_option,
            "time_spent": answer.time_spent,
            "is_correct": None,
            "marks_awarded": None,
            "correct_option": None,
            "explanation": None,
        }
        if reveal_key:
            row.update(
                is_correct=answer.is_correct,
                marks_awarded=answer.marks_awarded,
                correct_option=question.correct_option if question else None,
                explanation=question.explanation if question else None,
            )
        answers.append(row)

    return {
        "id": attempt.id,
        "student_id": attempt.student_id,
        "mock_test_id": attempt.mock_test_id,
        "test_title": attempt.mock_test.title,
        "attempt_number": attempt.attempt_number,
        "status": attempt.status,
        "start_time": attempt.start_time,
        "end_time": attempt.end_time,
        "deadline": deadline,
        "is_overdue": attempt.is_in_progress and now > deadline,
        "time_spent": attempt.time_spent,
        "score": attempt.score,
        "total_marks": attempt.total_marks,
        "percentage": attempt.percentage,
        "is_submitted": attempt.is_submitted,
        "submitted_at": attempt.submitted_at,
        "answers": answers,
    }


def get_attempt(
    db: Session, attempt_id: int, user: Dict, clock: Callable[[], datetime] = utcnow
) -> Dict:
    attempt = _load_visible_attempt(db, attempt_id, user)
    # The answer key stays hidden from the student until the attempt is over
    reveal_key = not (user.get("role") == UserRole.STUDENT and attempt.is_in_progress)
    logger.info(f"User {user.get('user_id')} fetched attempt_id={attempt_id}")
    return build_attempt_view(db, attempt, reveal_key, clock())


def get_attempt_review(
    db: Session, attempt_id: int, user: Dict, clock: Callable[[], datetime] = utcnow
) -> Dict:
    attempt = _load_visible_attempt(db, attempt_id, user)
    if user.get("role") == UserRole.STUDENT:
        if not attempt.is_completed:
            raise ForbiddenError("Review is available after the test is submitted")
        if not attempt.mock_test.allow_review:
            raise ForbiddenError("Review is not enabled for this test")
    logger.info(f"User {user.get('user_id')} reviewing attempt_id={attempt_id}")
    return build_attempt_view(db, attempt, reveal_key=True, now=clock())
