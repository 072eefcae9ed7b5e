from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from ..db.models import (
    AttemptAnswerModel,
    AttemptModel,
    AttemptStatus,
    MockTestModel,
    QuestionModel,
    UserModel,
)
from ..repositories.attempt_repository import AttemptRepository
from ..repositories.mock_test_repository import MockTestRepository
from ..repositories.user_repository import UserRepository
from .clock import utcnow
from .errors import (
    AttemptConflictError,
    AttemptInProgressError,
    EmptyTestError,
    EndedError,
    MaxAttemptsReachedError,
    NotFoundError,
    NotStartedError,
    RestrictionViolationError,
)

logger = logging.getLogger(__name__)

# (dimension, test field, student profile field)
RESTRICTIONS = (
    ("class", "restrict_to_class", "class_name"),
    ("semester", "restrict_to_semester", "semester"),
    ("batch", "restrict_to_batch", "batch"),
    ("department", "restrict_to_department", "department"),
)


def check_active_window(test: MockTestModel, now: datetime) -> None:
    if test.start_date and now < test.start_date:
        raise NotStartedError()
    if test.end_date and now > test.end_date:
        raise EndedError()


def check_restrictions(test: MockTestModel, student: UserModel) -> None:
    for dimension, test_field, profile_field in RESTRICTIONS:
        required = getattr(test, test_field)
        if not required:
            continue
        actual = getattr(student, profile_field)
        if not actual or actual.lower() != required.lower():
            raise RestrictionViolationError(dimension, required)


def check_attempt_allowance(test: MockTestModel, existing: List[AttemptModel]) -> None:
    # An open attempt is reported first so the student can resume it.
    ongoing = next((a for a in existing if a.status == AttemptStatus.IN_PROGRESS.value), None)
    if ongoing:
        raise AttemptInProgressError(ongoing.id)

    # Repeat-enabled tests are unlimited.
    if not test.allow_repeat_attempts and len(existing) >= test.max_attempts:
        raise MaxAttemptsReachedError()


class AttemptEligibilityChecker:
    """
    Decides whether a student may begin a new attempt on a test and,
    if so, creates the attempt with every answer unset.
    """

    def __init__(
        self,
        *,
        test_repo: MockTestRepository,
        user_repo: UserRepository,
        attempt_repo: AttemptRepository,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
    ):
        self._tests = test_repo
        self._users = user_repo
        self._attempts = attempt_repo
        self._clock = clock
        self._rng = rng or random.Random()

    def start_attempt(
        self,
        student_id: int,
        mock_test_id: int,
        *,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict:
        logger.info(f"Start requested by student_id={student_id} for mock_test_id={mock_test_id}")

        test = self._tests.get_available(mock_test_id)
        if not test:
            raise NotFoundError("Test not found or not available")

        questions: List[QuestionModel] = list(test.questions)
        if not questions:
            raise EmptyTestError()

        now = self._clock()
        check_active_window(test, now)

        student = self._users.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")
        check_restrictions(test, student)

        existing = self._attempts.list_for_student_test(student_id, mock_test_id)
        check_attempt_allowance(test, existing)

        expected_total = len(questions) * test.marks_per_question
        if abs(expected_total - test.total_marks) > 1e-9:
            logger.warning(
                f"mock_test_id={mock_test_id} total_marks={test.total_marks} differs from "
                f"{len(questions)} questions x {test.marks_per_question} marks; scoring uses the per-question rate"
            )

        if test.shuffle_questions:
            questions = questions[:]
            self._rng.shuffle(questions)

        attempt = AttemptModel(
            student_id=student_id,
            mock_test_id=mock_test_id,
            attempt_number=len(existing) + 1,
            total_marks=test.total_marks,
            start_time=now,
            status=AttemptStatus.IN_PROGRESS.value,
            ip_address=ip_address,
            user_agent=user_agent,
            answers=[
                AttemptAnswerModel(question_id=q.id, position=index)
                for index, q in enumerate(questions)
            ],
        )

        try:
            attempt = self._attempts.add(attempt)
        except IntegrityError:
            # A concurrent start won the unique constraint; report the winner.
            self._attempts.db.rollback()
            ongoing = self._attempts.get_in_progress(student_id, mock_test_id)
            if ongoing:
                logger.info(
                    f"Concurrent start for student_id={student_id}, mock_test_id={mock_test_id} "
                    f"resolved to attempt_id={ongoing.id}"
                )
                raise AttemptInProgressError(ongoing.id)
            logger.warning(
                f"Attempt number {len(existing) + 1} already taken for student_id={student_id}, "
                f"mock_test_id={mock_test_id}"
            )
            raise AttemptConflictError()

        logger.info(f"Attempt created successfully: attempt_id={attempt.id}, attempt_number={attempt.attempt_number}")

        return {
            "attempt_id": attempt.id,
            "test_title": test.title,
            "duration_minutes": test.duration_minutes,
            "total_marks": attempt.total_marks,
            "instructions": test.instructions,
            "questions": [
                {
                    "id": q.id,
                    "question_text": q.question_text,
                    "options": q.options,
                    "difficulty_level": q.difficulty_level,
                }
                for q in questions
            ],
            "start_time": attempt.start_time,
        }
