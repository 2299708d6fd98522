from pydantic import BaseModel, ConfigDict, Field
from typing import Union, List

from examhub.core.constants import QuestionTypeEnum


class QuestionKey(BaseModel):
    """One entry of a resolved question set: what counts as correct and what it is worth."""
    question_id: str
    question_type: QuestionTypeEnum = QuestionTypeEnum.SINGLE_CHOICE
    correct_answer: Union[bool, str, List[str]]
    points: float = Field(default=1, ge=0)

    model_config = ConfigDict(from_attributes=True, frozen=True)


class PaperQuestionCreate(QuestionKey):
    paper_ref: str
    position: int = 0
