from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class StudentOut(BaseModel):
    id: int
    name: str
    email: str
    class_name: Optional[str] = None
    semester: Optional[str] = None
    batch: Optional[str] = None
    roll_number: Optional[str] = None


class ResultOut(BaseModel):
    attempt_id: int
    mock_test_id: int
    test_title: str
    attempt_number: int
    status: str
    score: float
    total_marks: float
    percentage: float
    time_spent: int
    start_time: datetime
    submitted_at: Optional[datetime] = None
    allow_review: bool
    show_improvement_analysis: bool
    passing_marks: Optional[float] = None
    passed: Optional[bool] = None
    student: Optional[StudentOut] = None


class ResultListResponse(BaseModel):
    count: int
    data: List[ResultOut]


class HistoryResponse(ResultListResponse):
    total: int
    page: int
    pages: int


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_attempts: int
    has_next: bool
    has_prev: bool


class TestAttemptsResponse(BaseModel):
    attempts: List[ResultOut]
    pagination: Pagination
