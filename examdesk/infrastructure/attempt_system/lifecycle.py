from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Mapping, Optional

from ..db.models import AttemptAnswerModel, AttemptModel, AttemptStatus, QuestionModel
from ..repositories.attempt_repository import AttemptRepository
from ..repositories.question_repository import QuestionRepository
from .clock import utcnow
from .errors import AlreadyCompletedError, NotFoundError, QuestionNotInAttemptError
from .scoring import MarkingRules, OptionLabel, apply_totals, score_answer

logger = logging.getLogger(__name__)


def attempt_deadline(attempt: AttemptModel) -> datetime:
    return attempt.start_time + timedelta(minutes=attempt.mock_test.duration_minutes)


def detailed_answers(attempt: AttemptModel, questions: Mapping[int, QuestionModel]) -> List[Dict]:
    rows = []
    for answer in attempt.answers:
        question = questions.get(answer.question_id)
        rows.append(
            {
                "question_id": answer.question_id,
                "question_text": question.question_text if question else None,
                "options": question.options if question else [],
                "selected_option": answer.selected_option,
                "correct_option": question.correct_option if question else None,
                "is_correct": answer.is_correct,
                "marks_awarded": answer.marks_awarded,
                "explanation": question.explanation if question else None,
            }
        )
    return rows


class AttemptLifecycleEngine:
    """
    Drives an attempt from in-progress to completed.

    Answers are rescored on every write and the attempt totals are
    recomputed before each commit. Completed attempts are never written
    again. Deadlines are cooperative: a submit that arrives after
    start + duration is still finalized, and flagged as late.
    """

    def __init__(
        self,
        *,
        attempt_repo: AttemptRepository,
        question_repo: QuestionRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._attempts = attempt_repo
        self._questions = question_repo
        self._clock = clock

    # ---------------------------
    # Public API
    # ---------------------------

    def save_answer(
        self,
        attempt_id: int,
        student_id: int,
        question_id: int,
        selected_option: Optional[OptionLabel],
        time_spent: int = 0,
    ) -> AttemptAnswerModel:
        attempt = self._load_in_progress(attempt_id, student_id)

        answer = next((a for a in attempt.answers if a.question_id == question_id), None)
        if answer is None:
            logger.warning(f"question_id={question_id} is not part of attempt_id={attempt_id}")
            raise QuestionNotInAttemptError()

        question = self._questions.get_by_id(question_id)
        if question is None:
            raise NotFoundError(f"Question {question_id} not found")

        self._score_into(answer, selected_option, question, MarkingRules.from_test(attempt.mock_test))
        answer.time_spent = time_spent or 0

        apply_totals(attempt)
        self._attempts.save(attempt)
        logger.info(
            f"Saved answer for attempt_id={attempt_id}, question_id={question_id}: "
            f"selected={answer.selected_option}, correct={answer.is_correct}"
        )
        return answer

    def save_answers(
        self,
        attempt_id: int,
        student_id: int,
        selections: Mapping[int, OptionLabel],
    ) -> int:
        attempt = self._load_in_progress(attempt_id, student_id)
        updated = self._apply_selections(attempt, selections)
        apply_totals(attempt)
        self._attempts.save(attempt)
        logger.info(f"Bulk-saved {updated} answers for attempt_id={attempt_id}")
        return updated

    def submit(
        self,
        attempt_id: int,
        student_id: int,
        final_answers: Optional[Mapping[int, OptionLabel]] = None,
    ) -> Dict:
        attempt = self._load_in_progress(attempt_id, student_id)

        if final_answers:
            self._apply_selections(attempt, final_answers)

        now = self._clock()
        attempt.status = AttemptStatus.COMPLETED.value
        attempt.is_submitted = True
        attempt.submitted_at = now
        attempt.end_time = now
        apply_totals(attempt)
        self._attempts.save(attempt)

        test = attempt.mock_test
        submitted_late = now > attempt_deadline(attempt)
        if submitted_late:
            logger.warning(
                f"attempt_id={attempt_id} submitted after its deadline "
                f"({test.duration_minutes} min); accepted"
            )
        logger.info(
            f"Attempt submitted: attempt_id={attempt_id}, score={attempt.score}/{attempt.total_marks}, "
            f"percentage={attempt.percentage:.2f}"
        )

        result = {
            "attempt_id": attempt.id,
            "score": attempt.score,
            "total_marks": attempt.total_marks,
            "percentage": attempt.percentage,
            "time_spent": attempt.time_spent,
            "submitted_at": attempt.submitted_at,
            "submitted_late": submitted_late,
            "detailed_answers": None,
        }
        if test.show_results_immediately:
            questions = self._questions.get_many(a.question_id for a in attempt.answers)
            result["detailed_answers"] = detailed_answers(attempt, questions)
        return result

    def auto_submit(
        self,
        attempt_id: int,
        student_id: int,
        last_known_answers: Optional[Mapping[int, OptionLabel]] = None,
    ) -> Dict:
        """Expiry path: the client's timer ran out. Same finalization as submit."""
        logger.info(f"Expiry submit for attempt_id={attempt_id}")
        return self.submit(attempt_id, student_id, last_known_answers)

    # ---------------------------
    # Internals
    # ---------------------------

    def _load_in_progress(self, attempt_id: int, student_id: int) -> AttemptModel:
        attempt = self._attempts.get_by_id(attempt_id)
        if not attempt or attempt.student_id != student_id:
            logger.warning(f"Attempt lookup failed: attempt_id={attempt_id} not found for student_id={student_id}")
            raise NotFoundError("Test attempt not found")
        if attempt.status == AttemptStatus.COMPLETED.value:
            raise AlreadyCompletedError()
        if attempt.status != AttemptStatus.IN_PROGRESS.value:
            raise NotFoundError("Test attempt not found or no longer active")
        return attempt

    def _apply_selections(self, attempt: AttemptModel, selections: Mapping[int, OptionLabel]) -> int:
        answers_by_question = {a.question_id: a for a in attempt.answers}
        known = [qid for qid in selections if qid in answers_by_question]
        ignored = len(selections) - len(known)
        if ignored:
            logger.debug(f"Ignoring {ignored} selections not in attempt_id={attempt.id}")

        questions = self._questions.get_many(known)
        rules = MarkingRules.from_test(attempt.mock_test)
        updated = 0
        for question_id in known:
            question = questions.get(question_id)
            if question is None:
                continue
            self._score_into(answers_by_question[question_id], selections[question_id], question, rules)
            updated += 1
        return updated

    @staticmethod
    def _score_into(
        answer: AttemptAnswerModel,
        selected: Optional[OptionLabel],
        question: QuestionModel,
        rules: MarkingRules,
    ) -> None:
        scored = score_answer(selected, OptionLabel(question.correct_option), rules)
        answer.selected_option = selected.value if selected is not None else None
        answer.is_correct = scored.is_correct
        answer.marks_awarded = scored.marks_awarded
