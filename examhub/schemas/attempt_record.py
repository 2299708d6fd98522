from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Union
from datetime import datetime

from examhub.core.constants import AttemptStatusEnum, AnomalyReasonEnum

AnswerValue = Union[bool, str, List[str]]


class QuestionAnomaly(BaseModel):
    question_id: str
    reason: AnomalyReasonEnum = AnomalyReasonEnum.UNKNOWN_QUESTION


class AttemptResult(BaseModel):
    score: float
    max_score: float
    correct_count: int
    total_questions: int
    is_passed: bool
    percentage: float
    grade: str
    anomalies: List[QuestionAnomaly] = []


class AttemptRecord(BaseModel):
    id: int
    session_id: int
    student_id: str
    attempt_number: int
    status: AttemptStatusEnum
    started_at: Optional[datetime] = None
    deadline: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    answers: Dict[str, AnswerValue] = {}
    result: Optional[AttemptResult] = None

    model_config = ConfigDict(from_attributes=True)


class AnswerSubmit(BaseModel):
    answer: AnswerValue = Field(..., description="Option key, list of option keys, boolean or blank text")


class AttemptProgress(BaseModel):
    status: AttemptStatusEnum
    attempt_number: int
    remaining_seconds: Optional[int] = None
    answered_count: int
    total_questions: int


class QuestionReview(BaseModel):
    question_id: str
    answered: bool
    submitted_answer: Optional[AnswerValue] = None
    correct_answer: AnswerValue
    is_correct: bool
    points: float
    points_earned: float


class AttemptReview(BaseModel):
    record: AttemptRecord
    questions: List[QuestionReview]
