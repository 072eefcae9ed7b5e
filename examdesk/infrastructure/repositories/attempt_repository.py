from typing import List, Optional, Tuple
import logging

from sqlalchemy.orm import Session

from ..db.models import AttemptModel, AttemptStatus

logger = logging.getLogger(__name__)


class AttemptRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, attempt_id: int) -> Optional[AttemptModel]:
        logger.debug(f"Fetching attempt by attempt_id={attempt_id}")
        return self.db.query(AttemptModel).filter(AttemptModel.id == attempt_id).first()

    def get_in_progress(self, student_id: int, mock_test_id: int) -> Optional[AttemptModel]:
        return (
            self.db.query(AttemptModel)
            .filter(
                AttemptModel.student_id == student_id,
                AttemptModel.mock_test_id == mock_test_id,
                AttemptModel.status == AttemptStatus.IN_PROGRESS.value,
            )
            .first()
        )

    def list_for_student_test(self, student_id: int, mock_test_id: int) -> List[AttemptModel]:
        return (
            self.db.query(AttemptModel)
            .filter(
                AttemptModel.student_id == student_id,
                AttemptModel.mock_test_id == mock_test_id,
            )
            .order_by(AttemptModel.attempt_number)
            .all()
        )

    def list_completed_for_student_test(self, student_id: int, mock_test_id: int) -> List[AttemptModel]:
        return (
            self.db.query(AttemptModel)
            .filter(
                AttemptModel.student_id == student_id,
                AttemptModel.mock_test_id == mock_test_id,
                AttemptModel.status == AttemptStatus.COMPLETED.value,
            )
            .order_by(AttemptModel.attempt_number.asc())
            .all()
        )

    def list_completed(self, student_id: Optional[int] = None) -> List[AttemptModel]:
        query = self.db.query(AttemptModel).filter(
            AttemptModel.status == AttemptStatus.COMPLETED.value
        )
        if student_id is not None:
            query = query.filter(AttemptModel.student_id == student_id)
        return query.order_by(AttemptModel.submitted_at.desc(), AttemptModel.id.desc()).all()

    def paginate_completed_for_student(
        self, student_id: int, offset: int, limit: int
    ) -> Tuple[List[AttemptModel], int]:
        query = self.db.query(AttemptModel).filter(
            AttemptModel.student_id == student_id,
            AttemptModel.status == AttemptStatus.COMPLETED.value,
        )
        total = query.count()
        rows = (
            query.order_by(AttemptModel.submitted_at.desc(), AttemptModel.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    def paginate_for_test(self, mock_test_id: int, offset: int, limit: int) -> Tuple[List[AttemptModel], int]:
        query = self.db.query(AttemptModel).filter(AttemptModel.mock_test_id == mock_test_id)
        total = query.count()
        rows = (
            query.order_by(AttemptModel.created_at.desc(), AttemptModel.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    def add(self, attempt: AttemptModel) -> AttemptModel:
        # IntegrityError propagates; the caller decides what a conflict means.
        self.db.add(attempt)
        self.db.commit()
        self.db.refresh(attempt)
        logger.info(
            f"Stored attempt_id={attempt.id} for student_id={attempt.student_id}, "
            f"mock_test_id={attempt.mock_test_id}, attempt_number={attempt.attempt_number}"
        )
        return attempt

    def save(self, attempt: AttemptModel) -> AttemptModel:
        try:
            self.db.commit()
            self.db.refresh(attempt)
            return attempt
        except Exception as e:
            logger.error(f"Error saving attempt_id={attempt.id}: {e}", exc_info=True)
            self.db.rollback()
            raise
