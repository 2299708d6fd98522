from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from examhub.core.config import settings
from examhub.core.constants import SchedulingTypeEnum, ExamSessionStatusEnum
from examhub.utils.clock import to_naive_utc


class SessionPolicy(BaseModel):
    max_attempts: int = Field(default=1, ge=1)
    allow_review: bool = True
    shuffle_questions: bool = False
    shuffle_options: bool = False
    passing_score: float = Field(default=settings.DEFAULT_PASSING_SCORE, ge=0, le=100)
    auto_grade: bool = True

    model_config = ConfigDict(from_attributes=True)


class SessionPolicyUpdate(BaseModel):
    max_attempts: Optional[int] = Field(default=None, ge=1)
    allow_review: Optional[bool] = None
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None
    passing_score: Optional[float] = Field(default=None, ge=0, le=100)
    auto_grade: Optional[bool] = None


def check_window_order(start: Optional[datetime], end: Optional[datetime], label: str):
    if start is not None and end is not None and start >= end:
        raise ValueError(f"{label} start must be earlier than its end")


class ExamSessionBase(BaseModel):
    title: str
    description: Optional[str] = None
    paper_ref: str
    scheduling_type: SchedulingTypeEnum = SchedulingTypeEnum.SCHEDULED
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    duration_minutes: int = Field(..., ge=1, le=settings.MAX_DURATION_MINUTES)
    policy: SessionPolicy = Field(default_factory=SessionPolicy)
    participants: List[str] = Field(default_factory=list)

    @field_validator("window_start", "window_end", "available_from", "available_until")
    @classmethod
    def normalize_timestamps(cls, v):
        return to_naive_utc(v)


class ExamSessionCreate(ExamSessionBase):
    created_by: Optional[str] = None

    @model_validator(mode="after")
    def validate_windows(self):
        if self.scheduling_type == SchedulingTypeEnum.SCHEDULED:
            if self.window_start is None or self.window_end is None:
                raise ValueError("scheduled sessions require window_start and window_end")
        check_window_order(self.window_start, self.window_end, "window")
        check_window_order(self.available_from, self.available_until, "availability")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Midterm",
                "paper_ref": "paper-2024-midterm",
                "scheduling_type": "scheduled",
                "window_start": "2024-05-01T09:00:00Z",
                "window_end": "2024-05-01T10:00:00Z",
                "duration_minutes": 60,
                "policy": {"max_attempts": 1, "passing_score": 60, "auto_grade": True},
            }
        }
    )


class ExamSessionUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    paper_ref: Optional[str] = None
    scheduling_type: Optional[SchedulingTypeEnum] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    available_from: Optional[datetime] = None
    available_until: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=settings.MAX_DURATION_MINUTES)
    policy: Optional[SessionPolicyUpdate] = None
    participants: Optional[List[str]] = None

    @field_validator("window_start", "window_end", "available_from", "available_until")
    @classmethod
    def normalize_timestamps(cls, v):
        return to_naive_utc(v)


class ExamSession(ExamSessionBase):
    id: int
    created_by: Optional[str] = None
    status: ExamSessionStatusEnum
    effective_status: Optional[ExamSessionStatusEnum] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SessionStatusUpdate(BaseModel):
    status: ExamSessionStatusEnum


class BatchStatusUpdate(BaseModel):
    session_ids: List[int] = Field(..., min_length=1)
    status: ExamSessionStatusEnum


class BatchFailure(BaseModel):
    session_id: int
    code: str
    message: str


class BatchStatusResult(BaseModel):
    succeeded: List[int] = []
    failed: List[BatchFailure] = []


class ScoreBucket(BaseModel):
    range: str
    count: int
    percentage: float


class SessionStatistics(BaseModel):
    session_id: int
    total_participants: int
    completed_count: int
    expired_count: int
    in_progress_count: int
    average_score: float
    highest_score: float
    lowest_score: float
    pass_rate: float
    average_time_minutes: float
    score_distribution: List[ScoreBucket]
