from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class ImprovementDelta(BaseModel):
    score_change: float
    percentage_change: float
    time_change: int


class AttemptTrendOut(BaseModel):
    attempt_number: int
    score: float
    percentage: float
    time_spent: int
    submitted_at: Optional[datetime] = None
    improvement: Optional[ImprovementDelta] = None


class ScorePoint(BaseModel):
    score: float
    percentage: float


class TotalImprovement(BaseModel):
    score_change: float
    percentage_change: float


class BestAttempt(ScorePoint):
    attempt_number: int
    submitted_at: Optional[datetime] = None


class OverallImprovement(BaseModel):
    first_attempt: ScorePoint
    last_attempt: ScorePoint
    total_improvement: TotalImprovement
    best_attempt: BestAttempt
    average_percentage: float


class Trends(BaseModel):
    improving: bool
    consistent_improvement: Optional[bool] = None
    best_streak: int


class QuestionAttemptOut(BaseModel):
    attempt_number: int
    is_correct: bool
    selected_option: Optional[str] = None
    marks_awarded: float


class QuestionImprovementOut(BaseModel):
    question_id: int
    success_rate: float
    attempts: List[QuestionAttemptOut]
    improved: bool
    consistently_correct: bool
    never_correct: bool


class QuestionAnalysis(BaseModel):
    total_questions: int
    improved_questions: int
    consistent_questions: int
    difficult_questions: int
    questions: List[QuestionImprovementOut]


class TestInfo(BaseModel):
    title: str
    total_marks: float
    total_attempts: int


class ImprovementReportResponse(BaseModel):
    test_info: TestInfo
    attempts: List[AttemptTrendOut]
    overall_improvement: OverallImprovement
    trends: Trends
    question_analysis: Optional[QuestionAnalysis] = None
