from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import func, update
from sqlalchemy.orm import Session

from examhub.core.constants import AttemptStatusEnum, ACTIVE_ATTEMPT_STATUSES, SETTLED_ATTEMPT_STATUSES
from examhub.crud.base import CRUDBase
from examhub.models.attempt_record import AttemptRecord
from pydantic import BaseModel

class CRUDAttemptRecord(CRUDBase[AttemptRecord, BaseModel, BaseModel]):

    def _pair_query(self, db: Session, session_id: int, student_id: str):
        return (
            db.query(AttemptRecord)
            .filter(AttemptRecord.session_id == session_id)
            .filter(AttemptRecord.student_id == student_id)
        )

    def get_by_session_and_student(self, db: Session, *, session_id: int, student_id: str) -> List[AttemptRecord]:
        return (
            self._pair_query(db, session_id, student_id)
            .order_by(AttemptRecord.attempt_number.desc())
            .all()
        )

    def get_latest(self, db: Session, *, session_id: int, student_id: str) -> Optional[AttemptRecord]:
        return (
            self._pair_query(db, session_id, student_id)
            .order_by(AttemptRecord.attempt_number.desc())
            .first()
        )

    def get_by_attempt_number(
        self, db: Session, *, session_id: int, student_id: str, attempt_number: int
    ) -> Optional[AttemptRecord]:
        return (
            self._pair_query(db, session_id, student_id)
            .filter(AttemptRecord.attempt_number == attempt_number)
            .first()
        )

    def get_active(self, db: Session, *, session_id: int, student_id: str) -> Optional[AttemptRecord]:
        return (
            self._pair_query(db, session_id, student_id)
            .filter(AttemptRecord.status.in_(list(ACTIVE_ATTEMPT_STATUSES)))
            .order_by(AttemptRecord.attempt_number.desc())
            .first()
        )

    def count_settled(self, db: Session, *, session_id: int, student_id: str) -> int:
        return (
            self._pair_query(db, session_id, student_id)
            .filter(AttemptRecord.status.in_(list(SETTLED_ATTEMPT_STATUSES)))
            .count()
        )

    def get_max_attempt_number(self, db: Session, *, session_id: int, student_id: str) -> int:
        result = (
            db.query(func.max(AttemptRecord.attempt_number))
            .filter(AttemptRecord.session_id == session_id)
            .filter(AttemptRecord.student_id == student_id)
            .scalar()
        )
        return result or 0

    def count_by_session(self, db: Session, *, session_id: int) -> int:
        return db.query(AttemptRecord).filter(AttemptRecord.session_id == session_id).count()

    def get_all_by_session(self, db: Session, *, session_id: int) -> List[AttemptRecord]:
        return (
            db.query(AttemptRecord)
            .filter(AttemptRecord.session_id == session_id)
            .order_by(AttemptRecord.student_id, AttemptRecord.attempt_number)
            .all()
        )

    def get_overdue_in_progress(self, db: Session, *, now: datetime, limit: int = 500) -> List[AttemptRecord]:
        return (
            db.query(AttemptRecord)
            .filter(AttemptRecord.status == AttemptStatusEnum.IN_PROGRESS)
            .filter(AttemptRecord.deadline.isnot(None))
            .filter(AttemptRecord.deadline < now)
            .order_by(AttemptRecord.deadline)
            .limit(limit)
            .all()
        )

    def compare_and_set(
        self,
        db: Session,
        *,
        record_id: int,
        expected_status: AttemptStatusEnum,
        values: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> bool:
        """Apply ``values`` only if the row still has ``expected_status`` (and version).

        Commits and returns whether this caller won the swap.
        """
        stmt = (
            update(AttemptRecord)
            .where(AttemptRecord.id == record_id)
            .where(AttemptRecord.status == expected_status)
        )
        if expected_version is not None:
            stmt = stmt.where(AttemptRecord.version == expected_version)
        stmt = stmt.values(version=AttemptRecord.version + 1, **values).execution_options(synchronize_session=False)

        result = db.execute(stmt)
        db.commit()
        return result.rowcount == 1

    def reload(self, db: Session, record: AttemptRecord) -> AttemptRecord:
        db.refresh(record)
        return record


attempt_record = CRUDAttemptRecord(AttemptRecord)
