import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from examhub.core.constants import AttemptStatusEnum
from examhub.crud.attempt_record import attempt_record as crud_attempt_record
from examhub.models.attempt_record import AttemptRecord
from examhub.models.exam_session import ExamSession
from examhub.services import time_window
from examhub.services.session_lifecycle import effective_status, can_transition_attempt

logger = logging.getLogger(__name__)

ATTEMPT_IN_PROGRESS = "AttemptInProgress"
ATTEMPT_LIMIT_EXCEEDED = "AttemptLimitExceeded"
SESSION_NOT_JOINABLE = "SessionNotJoinable"

SETTLING_OUTCOMES = (AttemptStatusEnum.SUBMITTED, AttemptStatusEnum.EXPIRED)


@dataclass
class AttemptDecision:
    ok: bool
    reason: Optional[str] = None
    existing: Optional[AttemptRecord] = None
    detail: Optional[str] = None


class AttemptLedger:
    def active_record(self, db: Session, session_id: int, student_id: str) -> Optional[AttemptRecord]:
        return crud_attempt_record.get_active(db, session_id=session_id, student_id=student_id)

    def settled_count(self, db: Session, session_id: int, student_id: str) -> int:
        return crud_attempt_record.count_settled(db, session_id=session_id, student_id=student_id)

    def joinability_problem(self, session: ExamSession, student_id: str, now: datetime) -> Optional[str]:
        status = effective_status(session, now)
        if not time_window.is_joinable_status(status):
            return f"Session is {status.value}."
        if not session.allows_student(student_id):
            return "Student is not a participant of this session."
        if not time_window.is_within_window(session, now):
            return "Session is outside its permitted time window."
        return None

    def can_start_new_attempt(self, db: Session, session: ExamSession, student_id: str, now: datetime) -> AttemptDecision:
        existing = self.active_record(db, session.id, student_id)
        if existing is not None and existing.status == AttemptStatusEnum.IN_PROGRESS:
            return AttemptDecision(ok=False, reason=ATTEMPT_IN_PROGRESS, existing=existing)

        if existing is None and self.settled_count(db, session.id, student_id) >= session.max_attempts:
            return AttemptDecision(
                ok=False,
                reason=ATTEMPT_LIMIT_EXCEEDED,
                detail=f"All {session.max_attempts} attempt(s) have been used."
            )

        problem = self.joinability_problem(session, student_id, now)
        if problem:
            return AttemptDecision(ok=False, reason=SESSION_NOT_JOINABLE, existing=existing, detail=problem)

        return AttemptDecision(ok=True, existing=existing)

    def record_attempt_outcome(
        self, db: Session, record: AttemptRecord, outcome: AttemptStatusEnum, now: datetime
    ) -> AttemptRecord:
        """Settle an in-progress attempt exactly once; repeats return the settled record."""
        if outcome not in SETTLING_OUTCOMES:
            raise ValueError(f"{outcome} is not a settling outcome")

        if not can_transition_attempt(record.status, outcome):
            return record

        values = {"status": outcome}
        if outcome == AttemptStatusEnum.SUBMITTED:
            values["submitted_at"] = now

        won = crud_attempt_record.compare_and_set(
            db,
            record_id=record.id,
            expected_status=AttemptStatusEnum.IN_PROGRESS,
            values=values,
        )
        record = crud_attempt_record.reload(db, record)
        if won:
            logger.info(
                f"Attempt {record.id} (session {record.session_id}, student {record.student_id}) -> {outcome.value}"
            )
        return record

    def expire_if_overdue(self, db: Session, record: Optional[AttemptRecord], now: datetime) -> Optional[AttemptRecord]:
        if (
            record is not None
            and record.status == AttemptStatusEnum.IN_PROGRESS
            and time_window.is_past_deadline(record.deadline, now)
        ):
            return self.record_attempt_outcome(db, record, AttemptStatusEnum.EXPIRED, now)
        return record


attempt_ledger = AttemptLedger()
