from typing import Dict, Iterable, Optional
import logging

from sqlalchemy.orm import Session

from ..db.models import QuestionModel

logger = logging.getLogger(__name__)


class QuestionRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, question_id: int) -> Optional[QuestionModel]:
        logger.debug(f"Fetching question by question_id={question_id}")
        question = self.db.query(QuestionModel).filter(QuestionModel.id == question_id).first()
        if not question:
            logger.warning(f"Question not found: question_id={question_id}")
        return question

    def get_many(self, question_ids: Iterable[int]) -> Dict[int, QuestionModel]:
        ids = list(set(question_ids))
        if not ids:
            return {}
        questions = self.db.query(QuestionModel).filter(QuestionModel.id.in_(ids)).all()
        if len(questions) != len(ids):
            missing = set(ids) - {q.id for q in questions}
            logger.warning(f"Questions not found: {missing}")
        return {q.id: q for q in questions}
