import logging
import math
from typing import Dict, Optional

from sqlalchemy.orm import Session

from ...infrastructure.attempt_system.errors import ForbiddenError, NotFoundError
from ...infrastructure.db.models import AttemptModel, UserRole
from ...infrastructure.repositories.attempt_repository import AttemptRepository
from ...infrastructure.repositories.mock_test_repository import MockTestRepository

logger = logging.getLogger(__name__)


def _passed(attempt: AttemptModel) -> Optional[bool]:
    passing_marks = attempt.mock_test.passing_marks
    if passing_marks is None:
        return None
    return attempt.score >= passing_marks


def result_row(attempt: AttemptModel, include_student: bool = False) -> Dict:
    test = attempt.mock_test
    row = {
        "attempt_id": attempt.id,
        "mock_test_id": attempt.mock_test_id,
        "test_title": test.title,
        "attempt_number": attempt.attempt_number,
        "status": attempt.status,
        "score": attempt.score,
        "total_marks": attempt.total_marks,
        "percentage": attempt.percentage,
        "time_spent": attempt.time_spent,
        "start_time": attempt.start_time,
        "submitted_at": attempt.submitted_at,
        "allow_review": test.allow_review,
        "show_improvement_analysis": test.show_improvement_analysis,
        "passing_marks": test.passing_marks,
        "passed": _passed(attempt),
        "student": None,
    }
    if include_student:
        student = attempt.student
        row["student"] = {
            "id": student.id,
            "name": student.name,
            "email": student.email,
            "class_name": student.class_name,
            "semester": student.semester,
            "batch": student.batch,
            "roll_number": student.roll_number,
        }
    return row


def list_my_results(db: Session, student_id: int) -> Dict:
    attempts = AttemptRepository(db).list_completed(student_id=student_id)
    logger.info(f"Found {len(attempts)} completed attempts for student_id={student_id}")
    return {"count": len(attempts), "data": [result_row(a) for a in attempts]}


def list_all_results(db: Session) -> Dict:
    attempts = AttemptRepository(db).list_completed()
    logger.info(f"Found {len(attempts)} completed attempts")
    return {"count": len(attempts), "data": [result_row(a, include_student=True) for a in attempts]}


def get_test_history(db: Session, student_id: int, page: int, limit: int) -> Dict:
    rows, total = AttemptRepository(db).paginate_completed_for_student(
        student_id, offset=(page - 1) * limit, limit=limit
    )
    return {
        "count": len(rows),
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit),
        "data": [result_row(a) for a in rows],
    }


def get_test_attempts(db: Session, mock_test_id: int, user: Dict, page: int, limit: int) -> Dict:
    test = MockTestRepository(db).get_by_id(mock_test_id)
    if not test:
        raise NotFoundError("Test not found")
    if user.get("role") != UserRole.ADMIN and test.created_by != user.get("user_id"):
        logger.warning(f"User {user.get('user_id')} denied attempt listing for mock_test_id={mock_test_id}")
        raise ForbiddenError()

    rows, total = AttemptRepository(db).paginate_for_test(
        mock_test_id, offset=(page - 1) * limit, limit=limit
    )
    total_pages = math.ceil(total / limit)
    return {
        "attempts": [result_row(a, include_student=True) for a in rows],
        "pagination": {
            "current_page": page,
            "total_pages": total_pages,
            "total_attempts": total,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
