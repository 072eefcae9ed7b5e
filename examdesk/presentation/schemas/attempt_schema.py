from datetime import datetime
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, Field

from ...infrastructure.attempt_system.scoring import OptionLabel

OPTION_LABELS = list(OptionLabel)

# Clients send 0-based option indices in bulk maps; the engine works on labels.
OptionIndex = Annotated[int, Field(ge=0, le=len(OPTION_LABELS) - 1)]


def option_label_from_index(index: int) -> OptionLabel:
    return OPTION_LABELS[index]


def selections_from_indices(answers: Optional[Dict[int, int]]) -> Dict[int, OptionLabel]:
    return {qid: option_label_from_index(idx) for qid, idx in (answers or {}).items()}


# ------------------ Requests ------------------

class AnswerRequest(BaseModel):
    question_id: int
    selected_option: Optional[OptionLabel] = None
    time_spent: int = Field(0, ge=0)


class BulkAnswersRequest(BaseModel):
    answers: Dict[int, OptionIndex]


class SubmitRequest(BaseModel):
    answers: Optional[Dict[int, OptionIndex]] = None


# ------------------ Responses ------------------

class OptionOut(BaseModel):
    label: str
    text: str


class QuestionOut(BaseModel):
    id: int
    question_text: str
    options: List[OptionOut]
    difficulty_level: Optional[str] = None


class StartAttemptResponse(BaseModel):
    attempt_id: int
    test_title: str
    duration_minutes: int
    total_marks: float
    instructions: Optional[str] = None
    questions: List[QuestionOut]
    start_time: datetime


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class BulkSaveResponse(MessageResponse):
    updated: int


class DetailedAnswerOut(BaseModel):
    question_id: int
    question_text: Optional[str] = None
    options: List[OptionOut] = []
    selected_option: Optional[str] = None
    correct_option: Optional[str] = None
    is_correct: bool
    marks_awarded: float
    explanation: Optional[str] = None


class SubmitResponse(BaseModel):
    attempt_id: int
    score: float
    total_marks: float
    percentage: float
    time_spent: int
    submitted_at: datetime
    submitted_late: bool = False
    detailed_answers: Optional[List[DetailedAnswerOut]] = None


class AttemptAnswerOut(BaseModel):
    question_id: int
    position: int
    question_text: Optional[str] = None
    options: List[OptionOut] = []
    difficulty_level: Optional[str] = None
    selected_option: Optional[str] = None
    time_spent: int = 0
    is_correct: Optional[bool] = None
    marks_awarded: Optional[float] = None
    correct_option: Optional[str] = None
    explanation: Optional[str] = None


class AttemptDetailOut(BaseModel):
    id: int
    student_id: int
    mock_test_id: int
    test_title: str
    attempt_number: int
    status: str
    start_time: datetime
    end_time: Optional[datetime] = None
    deadline: datetime
    is_overdue: bool
    time_spent: int
    score: float
    total_marks: float
    percentage: float
    is_submitted: bool
    submitted_at: Optional[datetime] = None
    answers: List[AttemptAnswerOut]
