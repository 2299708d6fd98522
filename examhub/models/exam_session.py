from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Enum, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from examhub.core.database import Base
from examhub.core.constants import SchedulingTypeEnum, ExamSessionStatusEnum

class ExamSession(Base):
    __tablename__ = "exam_sessions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)
    paper_ref = Column(String, nullable=False, index=True)
    created_by = Column(String, nullable=True)
    scheduling_type = Column(Enum(SchedulingTypeEnum), nullable=False, default=SchedulingTypeEnum.SCHEDULED)
    window_start = Column(DateTime, nullable=True)
    window_end = Column(DateTime, nullable=True)
    available_from = Column(DateTime, nullable=True)
    available_until = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    max_attempts = Column(Integer, nullable=False, default=1)
    allow_review = Column(Boolean, nullable=False, default=True)
    shuffle_questions = Column(Boolean, nullable=False, default=False)
    shuffle_options = Column(Boolean, nullable=False, default=False)
    passing_score = Column(Float, nullable=False, default=60.0)
    auto_grade = Column(Boolean, nullable=False, default=True)
    participants = Column(JSON, nullable=False, default=list)
    status = Column(Enum(ExamSessionStatusEnum), nullable=False, default=ExamSessionStatusEnum.DRAFT, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    attempts = relationship("AttemptRecord", back_populates="session")

    @property
    def policy(self) -> dict:
        return {
            "max_attempts": self.max_attempts,
            "allow_review": self.allow_review,
            "shuffle_questions": self.shuffle_questions,
            "shuffle_options": self.shuffle_options,
            "passing_score": self.passing_score,
            "auto_grade": self.auto_grade,
        }

    def allows_student(self, student_id: str) -> bool:
        if not self.participants:
            return True
        return student_id in self.participants
