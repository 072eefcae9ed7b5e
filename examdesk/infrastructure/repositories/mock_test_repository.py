from typing import Optional
import logging

from sqlalchemy.orm import Session

from ..db.models import MockTestModel

logger = logging.getLogger(__name__)


class MockTestRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, mock_test_id: int) -> Optional[MockTestModel]:
        mock_test = self.db.query(MockTestModel).filter(MockTestModel.id == mock_test_id).first()
        if not mock_test:
            logger.warning(f"Mock test not found: mock_test_id={mock_test_id}")
        return mock_test

    def get_available(self, mock_test_id: int) -> Optional[MockTestModel]:
        """Active and publicly listed tests only."""
        return (
            self.db.query(MockTestModel)
            .filter(
                MockTestModel.id == mock_test_id,
                MockTestModel.is_active.is_(True),
                MockTestModel.is_public.is_(True),
            )
            .first()
        )
