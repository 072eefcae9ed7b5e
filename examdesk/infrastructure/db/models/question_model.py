from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Float, Boolean
from sqlalchemy.orm import relationship

from ..base import Base
from ...attempt_system.clock import utcnow


class QuestionModel(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)  # [{"label": "A", "text": "..."}, ...] exactly four
    correct_option = Column(String(1), nullable=False)
    explanation = Column(Text, nullable=True)
    difficulty_level = Column(String(10), default="medium")
    marks = Column(Float, default=1.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    author = relationship("UserModel")
