from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Float, Boolean, Enum, JSON, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from examhub.core.database import Base
from examhub.core.constants import AttemptStatusEnum

class AttemptRecord(Base):
    __tablename__ = "attempt_records"
    __table_args__ = (
        UniqueConstraint("session_id", "student_id", "attempt_number", name="uq_attempt_records_pair_number"),
        Index("ix_attempt_records_status_deadline", "status", "deadline"),
    )

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("exam_sessions.id"), nullable=False, index=True)
    student_id = Column(String, nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False, default=1)
    status = Column(Enum(AttemptStatusEnum), nullable=False, default=AttemptStatusEnum.NOT_STARTED)
    version = Column(Integer, nullable=False, default=1)
    started_at = Column(DateTime, nullable=True)
    deadline = Column(DateTime, nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    answers = Column(JSON, nullable=False, default=dict)

    score = Column(Float, nullable=True)
    max_score = Column(Float, nullable=True)
    correct_count = Column(Integer, nullable=True)
    total_questions = Column(Integer, nullable=True)
    is_passed = Column(Boolean, nullable=True)
    percentage = Column(Float, nullable=True)
    grade = Column(String(1), nullable=True)
    anomalies = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    session = relationship("ExamSession", back_populates="attempts")

    @property
    def result(self):
        if self.score is None:
            return None
        return {
            "score": self.score,
            "max_score": self.max_score,
            "correct_count": self.correct_count,
            "total_questions": self.total_questions,
            "is_passed": self.is_passed,
            "percentage": self.percentage,
            "grade": self.grade,
            "anomalies": self.anomalies or [],
        }
