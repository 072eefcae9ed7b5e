import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Boolean,
    Float,
    Index,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from ..base import Base
from ...attempt_system.clock import utcnow


class AttemptStatus(str, enum.Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"  # reserved; no operation moves an attempt here yet


class AttemptModel(Base):
    __tablename__ = "test_attempts"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    mock_test_id = Column(Integer, ForeignKey("mock_tests.id"), nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)

    start_time = Column(DateTime, nullable=False, default=utcnow)
    end_time = Column(DateTime, nullable=True)
    time_spent = Column(Integer, nullable=False, default=0)  # minutes

    score = Column(Float, nullable=False, default=0.0)
    total_marks = Column(Float, nullable=False)  # copied from the test at start
    percentage = Column(Float, nullable=False, default=0.0)

    status = Column(String(20), nullable=False, default=AttemptStatus.IN_PROGRESS.value)
    is_submitted = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime, nullable=True)

    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    student = relationship("UserModel")
    mock_test = relationship("MockTestModel")
    answers = relationship(
        "AttemptAnswerModel",
        back_populates="attempt",
        order_by="AttemptAnswerModel.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id", "mock_test_id", "attempt_number",
            name="uq_attempt_student_test_number",
        ),
        # At most one in-progress attempt per (student, test)
        Index(
            "uq_attempt_one_in_progress",
            "student_id",
            "mock_test_id",
            unique=True,
            sqlite_where=text("status = 'in-progress'"),
            postgresql_where=text("status = 'in-progress'"),
        ),
    )

    @property
    def is_in_progress(self) -> bool:
        return self.status == AttemptStatus.IN_PROGRESS.value

    @property
    def is_completed(self) -> bool:
        return self.status == AttemptStatus.COMPLETED.value


class AttemptAnswerModel(Base):
    __tablename__ = "attempt_answers"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("test_attempts.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    selected_option = Column(String(1), nullable=True)
    is_correct = Column(Boolean, nullable=False, default=False)
    marks_awarded = Column(Float, nullable=False, default=0.0)  # negative under negative marking
    time_spent = Column(Integer, nullable=False, default=0)  # seconds

    attempt = relationship("AttemptModel", back_populates="answers")
    question = relationship("QuestionModel")

    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_answer_attempt_question"),
    )
