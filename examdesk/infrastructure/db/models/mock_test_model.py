from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Boolean, Float
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from ..base import Base
from ...attempt_system.clock import utcnow


class MockTestQuestionModel(Base):
    """Ordered link between a mock test and one of its questions."""

    __tablename__ = "mock_test_questions"

    mock_test_id = Column(Integer, ForeignKey("mock_tests.id", ondelete="CASCADE"), primary_key=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, nullable=False, default=0)

    question = relationship("QuestionModel")


class MockTestModel(Base):
    __tablename__ = "mock_tests"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    duration_minutes = Column(Integer, nullable=False)
    # Stored independently of marks_per_question; the two are not reconciled.
    total_marks = Column(Float, nullable=False)
    marks_per_question = Column(Float, nullable=False, default=1.0)
    negative_marking_enabled = Column(Boolean, nullable=False, default=False)
    negative_marks_deducted = Column(Float, nullable=False, default=0.0)
    passing_marks = Column(Float, nullable=True)

    shuffle_questions = Column(Boolean, nullable=False, default=False)
    max_attempts = Column(Integer, nullable=False, default=1)
    allow_repeat_attempts = Column(Boolean, nullable=False, default=False)
    show_results_immediately = Column(Boolean, nullable=False, default=True)
    allow_review = Column(Boolean, nullable=False, default=True)
    show_improvement_analysis = Column(Boolean, nullable=False, default=False)

    restrict_to_class = Column(String, nullable=True)
    restrict_to_semester = Column(String, nullable=True)
    restrict_to_batch = Column(String, nullable=True)
    restrict_to_department = Column(String, nullable=True)

    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_public = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    author = relationship("UserModel")
    question_links = relationship(
        "MockTestQuestionModel",
        order_by="MockTestQuestionModel.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
    )
    questions = association_proxy(
        "question_links",
        "question",
        creator=lambda question: MockTestQuestionModel(question=question),
    )
