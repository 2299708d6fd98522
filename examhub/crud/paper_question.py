from typing import List
from sqlalchemy.orm import Session

from examhub.crud.base import CRUDBase
from examhub.models.paper_question import PaperQuestion
from examhub.schemas.question import PaperQuestionCreate, QuestionKey

class CRUDPaperQuestion(CRUDBase[PaperQuestion, PaperQuestionCreate, QuestionKey]):
    def get_by_paper(self, db: Session, *, paper_ref: str) -> List[PaperQuestion]:
        return (
            db.query(self.model)
            .filter(self.model.paper_ref == paper_ref)
            .order_by(self.model.position, self.model.id)
            .all()
        )

    def count_by_paper(self, db: Session, *, paper_ref: str) -> int:
        return db.query(self.model).filter(self.model.paper_ref == paper_ref).count()

paper_question = CRUDPaperQuestion(PaperQuestion)
