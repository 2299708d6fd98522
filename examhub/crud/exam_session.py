from typing import List, Optional
from sqlalchemy.orm import Session

from examhub.core.constants import ExamSessionStatusEnum
from examhub.crud.base import CRUDBase
from examhub.models.exam_session import ExamSession
from examhub.schemas.exam_session import ExamSessionCreate, ExamSessionUpdate

class CRUDExamSession(CRUDBase[ExamSession, ExamSessionCreate, ExamSessionUpdate]):

    def get_multi_by_status(
        self, db: Session, *, status: Optional[ExamSessionStatusEnum] = None, skip: int = 0, limit: int = 100
    ) -> List[ExamSession]:
        query = db.query(ExamSession)
        if status is not None:
            query = query.filter(ExamSession.status == status)
        return query.order_by(ExamSession.id).offset(skip).limit(limit).all()

    def get_non_terminal(self, db: Session) -> List[ExamSession]:
        return (
            db.query(ExamSession)
            .filter(ExamSession.status.in_([
                ExamSessionStatusEnum.PUBLISHED,
                ExamSessionStatusEnum.ACTIVE,
            ]))
            .all()
        )

    def set_status(self, db: Session, *, db_obj: ExamSession, status: ExamSessionStatusEnum) -> ExamSession:
        return self.update(db, db_obj=db_obj, obj_in={"status": status})


exam_session = CRUDExamSession(ExamSession)
