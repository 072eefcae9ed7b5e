"""
Tests for answering and submitting attempts.
"""
from datetime import datetime, timedelta

import pytest

from conftest import FrozenClock
from examdesk.infrastructure.attempt_system.errors import (
    AlreadyCompletedError,
    NotFoundError,
    QuestionNotInAttemptError,
)
from examdesk.infrastructure.attempt_system.lifecycle import AttemptLifecycleEngine
from examdesk.infrastructure.attempt_system.scoring import OptionLabel
from examdesk.infrastructure.db.models import AttemptAnswerModel, AttemptModel, AttemptStatus
from examdesk.infrastructure.repositories.attempt_repository import AttemptRepository
from examdesk.infrastructure.repositories.question_repository import QuestionRepository

START = datetime(2026, 3, 1, 9, 0, 0)


@pytest.fixture
def negative_test(make_questions, make_test):
    questions = make_questions(["A", "B", "A"])
    test = make_test(
        questions,
        marks_per_question=2,
        negative_marking_enabled=True,
        negative_marks_deducted=0.5,
        duration_minutes=30,
    )
    return test, questions


@pytest.fixture
def make_attempt(db_session):
    def _make(student, test, status=AttemptStatus.IN_PROGRESS.value, attempt_number=1):
        attempt = AttemptModel(
            student_id=student.id,
            mock_test_id=test.id,
            attempt_number=attempt_number,
            total_marks=test.total_marks,
            start_time=START,
            status=status,
            answers=[
                AttemptAnswerModel(question_id=q.id, position=i) for i, q in enumerate(test.questions)
            ],
        )
        db_session.add(attempt)
        db_session.commit()
        db_session.refresh(attempt)
        return attempt

    return _make


def make_engine(db_session, now):
    return AttemptLifecycleEngine(
        attempt_repo=AttemptRepository(db_session),
        question_repo=QuestionRepository(db_session),
        clock=FrozenClock(now),
    )


class TestLifecycleEngine:
    def test_submit_scores_mixed_answers(self, db_session, student, negative_test, make_attempt):
        test, questions = negative_test
        attempt = make_attempt(student, test)
        engine = make_engine(db_session, START + timedelta(minutes=20))

        result = engine.submit(
            attempt.id,
            student.id,
            {
                questions[0].id: OptionLabel.A,
                questions[1].id: OptionLabel.C,
                questions[2].id: OptionLabel.A,
            },
        )

        assert result["score"] == pytest.approx(3.5)
        assert result["percentage"] == pytest.approx(58.33, abs=0.01)
        assert result["time_spent"] == 20
        assert result["submitted_late"] is False
        marks = [row["marks_awarded"] for row in result["detailed_answers"]]
        assert marks == [2, -0.5, 2]

        db_session.refresh(attempt)
        assert attempt.status == AttemptStatus.COMPLETED.value
        assert attempt.is_submitted is True
        assert attempt.end_time == attempt.submitted_at
        assert attempt.score == pytest.approx(sum(a.marks_awarded for a in attempt.answers))

    def test_unanswered_question_scores_zero_under_negative_marking(
        self, db_session, student, negative_test, make_attempt
    ):
        test, questions = negative_test
        attempt = make_attempt(student, test)
        engine = make_engine(db_session, START + timedelta(minutes=5))

        result = engine.submit(attempt.id, student.id, {questions[0].id: OptionLabel.A})

        assert result["score"] == 2
        unanswered = [row for row in result["detailed_answers"] if row["selected_option"] is None]
        assert len(unanswered) == 2
        assert all(row["marks_awarded"] == 0 for row in unanswered)

    def test_save_answer_rescores_and_recomputes(self, db_session, student, negative_test, make_attempt):
        test, questions = negative_test
        attempt = make_attempt(student, test)
        engine = make_engine(db_session, START)

        engine.save_answer(attempt.id, student.id, questions[1].id, OptionLabel.D, time_spent=40)
        db_session.refresh(attempt)
        assert attempt.score == -0.5

        answer = engine.save_answer(attempt.id, student.id, questions[1].id, OptionLabel.B, time_spent=55)
        db_session.refresh(attempt)
        assert answer.is_correct is True
        assert answer.time_spent == 55
        assert attempt.score == 2
        assert attempt.percentage == pytest.approx(2 / 6 * 100)
        assert attempt.status == AttemptStatus.IN_PROGRESS.value

    def test_save_answer_rejects_foreign_question(
        self, db_session, student, negative_test, make_attempt, make_questions
    ):
        test, _ = negative_test
        attempt = make_attempt(student, test)
        stranger = make_questions(["D"])[0]
        engine = make_engine(db_session, START)

        with pytest.raises(QuestionNotInAttemptError):
            engine.save_answer(attempt.id, student.id, stranger.id, OptionLabel.D)

    def test_bulk_save_ignores_unknown_questions(self, db_session, student, negative_test, make_attempt):
        test, questions = negative_test
        attempt = make_attempt(student, test)
        engine = make_engine(db_session, START)

        updated = engine.save_answers(
            attempt.id, student.id, {questions[0].id: OptionLabel.A, 987654: OptionLabel.B}
        )

        assert updated == 1
        db_session.refresh(attempt)
        assert attempt.score == 2
        assert len(attempt.answers) == 3

    def test_bulk_save_preserves_time_spent(self, db_session, student, negative_test, make_attempt):
        test, questions = negative_test
        attempt = make_attempt(student, test)
        engine = make_engine(db_session, START)

        engine.save_answer(attempt.id, student.id, questions[0].id, OptionLabel.B, time_spent=30)
        engine.save_answers(attempt.id, student.id, {questions[0].id: OptionLabel.A})

        db_session.refresh(attempt)
        assert attempt.answers[0].time_spent == 30
        assert attempt.answers[0].is_correct is True

    def test_other_students_attempt_is_not_found(
        self, db_session, student, make_user, negative_test, make_attempt
    ):
        test, questions = negative_test
        attempt = make_attempt(student, test)
        intruder = make_user()
        engine = make_engine(db_session, START)

        with pytest.raises(NotFoundError):
            engine.save_answer(attempt.id, intruder.id, questions[0].id, OptionLabel.A)
        with pytest.raises(NotFoundError):
            engine.submit(attempt.id, intruder.id)

    def test_completed_attempt_is_immutable(self, db_session, student, negative_test, make_attempt):
        test, questions = negative_test
        attempt = make_attempt(student, test)
        engine = make_engine(db_session, START + timedelta(minutes=10))
        first = engine.submit(attempt.id, student.id, {questions[0].id: OptionLabel.A})

        with pytest.raises(AlreadyCompletedError):
            engine.submit(attempt.id, student.id, {questions[1].id: OptionLabel.B})
        with pytest.raises(AlreadyCompletedError):
            engine.save_answer(attempt.id, student.id, questions[1].id, OptionLabel.B)
        with pytest.raises(AlreadyCompletedError):
            engine.save_answers(attempt.id, student.id, {questions[2].id: OptionLabel.A})

        db_session.refresh(attempt)
        assert attempt.score == first["score"] == 2
        assert attempt.answers[1].selected_option is None

    def test_late_submission_is_accepted_and_flagged(self, db_session, student, negative_test, make_attempt):
        test, questions = negative_test
        attempt = make_attempt(student, test)
        engine = make_engine(db_session, START + timedelta(minutes=45))

        result = engine.auto_submit(attempt.id, student.id, {questions[0].id: OptionLabel.A})

        assert result["submitted_late"] is True
        assert result["time_spent"] == 45
        assert result["score"] == 2

    def test_breakdown_hidden_when_results_are_deferred(
        self, db_session, student, make_questions, make_test, make_attempt
    ):
        test = make_test(make_questions(["A", "B"]), show_results_immediately=False)
        attempt = make_attempt(student, test)
        engine = make_engine(db_session, START + timedelta(minutes=1))

        result = engine.submit(attempt.id, student.id)

        assert result["detailed_answers"] is None
        assert result["score"] == 0


class TestLifecycleApi:
    def start(self, client, headers, test):
        response = client.post(f"/attempts/start/{test.id}", headers=headers)
        assert response.status_code == 201
        return response.json()

    def test_submit_with_final_answer_map(self, client, auth_headers, student, negative_test):
        test, questions = negative_test
        headers = auth_headers(student)
        started = self.start(client, headers, test)

        response = client.post(
            f"/attempts/{started['attempt_id']}/submit",
            json={"answers": {str(questions[0].id): 0, str(questions[1].id): 2, str(questions[2].id): 0}},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["score"] == pytest.approx(3.5)
        assert data["percentage"] == pytest.approx(58.33, abs=0.01)
        assert data["total_marks"] == 6
        details = {row["question_id"]: row for row in data["detailed_answers"]}
        assert details[questions[1].id]["selected_option"] == "C"
        assert details[questions[1].id]["correct_option"] == "B"
        assert details[questions[1].id]["explanation"] == "Because B"

    def test_single_answer_then_bulk_then_submit(self, client, auth_headers, student, negative_test):
        test, questions = negative_test
        headers = auth_headers(student)
        attempt_id = self.start(client, headers, test)["attempt_id"]

        response = client.put(
            f"/attempts/{attempt_id}/answer",
            json={"question_id": questions[0].id, "selected_option": "A", "time_spent": 12},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = client.put(
            f"/attempts/{attempt_id}/answers",
            json={"answers": {str(questions[2].id): 0, "424242": 1}},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["updated"] == 1

        response = client.post(f"/attempts/{attempt_id}/submit", headers=headers)
        assert response.status_code == 200
        assert response.json()["score"] == 4

    def test_second_submit_is_rejected(self, client, auth_headers, student, negative_test):
        test, questions = negative_test
        headers = auth_headers(student)
        attempt_id = self.start(client, headers, test)["attempt_id"]

        first = client.post(
            f"/attempts/{attempt_id}/submit",
            json={"answers": {str(questions[0].id): 0}},
            headers=headers,
        )
        second = client.post(
            f"/attempts/{attempt_id}/submit",
            json={"answers": {str(questions[1].id): 1}},
            headers=headers,
        )

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["success"] is False

        detail = client.get(f"/attempts/{attempt_id}", headers=headers).json()
        assert detail["score"] == first.json()["score"] == 2

    def test_out_of_range_option_index_fails_validation(self, client, auth_headers, student, negative_test):
        test, questions = negative_test
        headers = auth_headers(student)
        attempt_id = self.start(client, headers, test)["attempt_id"]

        response = client.put(
            f"/attempts/{attempt_id}/answers",
            json={"answers": {str(questions[0].id): 4}},
            headers=headers,
        )

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["errors"]

    def test_invalid_option_letter_fails_validation(self, client, auth_headers, student, negative_test):
        test, questions = negative_test
        headers = auth_headers(student)
        attempt_id = self.start(client, headers, test)["attempt_id"]

        response = client.put(
            f"/attempts/{attempt_id}/answer",
            json={"question_id": questions[0].id, "selected_option": "E"},
            headers=headers,
        )

        assert response.status_code == 422

    def test_answer_for_question_outside_attempt(
        self, client, auth_headers, student, negative_test, make_questions
    ):
        test, _ = negative_test
        headers = auth_headers(student)
        attempt_id = self.start(client, headers, test)["attempt_id"]
        stranger = make_questions(["A"])[0]

        response = client.put(
            f"/attempts/{attempt_id}/answer",
            json={"question_id": stranger.id, "selected_option": "A"},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Question not found in this attempt"

    def test_unknown_attempt_is_not_found(self, client, auth_headers, student):
        response = client.post("/attempts/31337/submit", headers=auth_headers(student))
        assert response.status_code == 404
