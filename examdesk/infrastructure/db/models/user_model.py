from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from ..base import Base
from ...attempt_system.clock import utcnow


class UserRole:
    STUDENT = "STUDENT"
    TEACHER = "TEACHER"
    ADMIN = "ADMIN"


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False, default=UserRole.STUDENT)

    # Student profile fields matched against test restrictions
    class_name = Column("class", String, nullable=True)
    semester = Column(String, nullable=True)
    batch = Column(String, nullable=True)
    department = Column(String, nullable=True)
    roll_number = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("email", name="uq_email_user"),
    )
