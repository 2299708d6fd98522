from sqlalchemy import Column, Integer, String, Float, Enum, JSON, UniqueConstraint
from examhub.core.database import Base
from examhub.core.constants import QuestionTypeEnum

class PaperQuestion(Base):
    """Read-only answer key rows owned by the question-bank side."""
    __tablename__ = "paper_questions"
    __table_args__ = (
        UniqueConstraint("paper_ref", "question_id", name="uq_paper_questions_paper_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    paper_ref = Column(String, nullable=False, index=True)
    question_id = Column(String, nullable=False)
    question_type = Column(Enum(QuestionTypeEnum), nullable=False)
    correct_answer = Column(JSON, nullable=False) # str, list of str, or bool depending on type
    points = Column(Float, nullable=False, default=1)
    position = Column(Integer, nullable=False, default=0)
