from typing import List, Protocol
from sqlalchemy.orm import Session

from examhub.crud.paper_question import paper_question as crud_paper_question
from examhub.schemas.question import QuestionKey


class QuestionSetResolver(Protocol):
    def resolve_question_set(self, db: Session, paper_ref: str) -> List[QuestionKey]:
        ...


class DatabaseQuestionSetResolver:
    """Reads the answer key for a paper from the ``paper_questions`` table.

    The engine only ever reads through this class; authoring the rows is the
    question bank's job.
    """

    def resolve_question_set(self, db: Session, paper_ref: str) -> List[QuestionKey]:
        rows = crud_paper_question.get_by_paper(db, paper_ref=paper_ref)
        return [QuestionKey.model_validate(row) for row in rows]


class StaticQuestionSetResolver:
    """Serves question sets from memory; handy for tests and local tooling."""

    def __init__(self, papers=None):
        self.papers = {ref: list(keys) for ref, keys in (papers or {}).items()}

    def resolve_question_set(self, db: Session, paper_ref: str) -> List[QuestionKey]:
        return list(self.papers.get(paper_ref, []))


question_resolver = DatabaseQuestionSetResolver()
