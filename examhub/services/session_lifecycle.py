import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from examhub.core.constants import (
    AttemptStatusEnum,
    ExamSessionStatusEnum,
    SchedulingTypeEnum,
    EDITABLE_SESSION_STATUSES,
)
from examhub.core.exceptions import (
    ExamError,
    InvalidSessionWindow,
    InvalidStatusTransition,
    SessionHasAttempts,
    SessionLocked,
    SessionNotFound,
)
from examhub.crud.attempt_record import attempt_record as crud_attempt_record
from examhub.crud.exam_session import exam_session as crud_exam_session
from examhub.models.exam_session import ExamSession as ExamSessionModel
from examhub.schemas.exam_session import (
    BatchFailure,
    BatchStatusResult,
    ExamSession,
    ExamSessionCreate,
    ExamSessionUpdate,
)
from examhub.services import time_window
from examhub.utils.clock import utcnow

logger = logging.getLogger(__name__)

SESSION_TRANSITIONS = {
    ExamSessionStatusEnum.DRAFT: {ExamSessionStatusEnum.PUBLISHED, ExamSessionStatusEnum.CANCELLED},
    ExamSessionStatusEnum.PUBLISHED: {ExamSessionStatusEnum.ACTIVE, ExamSessionStatusEnum.CANCELLED},
    ExamSessionStatusEnum.ACTIVE: {ExamSessionStatusEnum.ENDED, ExamSessionStatusEnum.CANCELLED},
    ExamSessionStatusEnum.ENDED: set(),
    ExamSessionStatusEnum.CANCELLED: set(),
}

ATTEMPT_TRANSITIONS = {
    AttemptStatusEnum.NOT_STARTED: {AttemptStatusEnum.IN_PROGRESS},
    AttemptStatusEnum.IN_PROGRESS: {AttemptStatusEnum.SUBMITTED, AttemptStatusEnum.EXPIRED},
    AttemptStatusEnum.SUBMITTED: {AttemptStatusEnum.COMPLETED},
    AttemptStatusEnum.COMPLETED: set(),
    AttemptStatusEnum.EXPIRED: set(),
}

WINDOW_FIELDS = (
    "scheduling_type",
    "window_start",
    "window_end",
    "available_from",
    "available_until",
    "duration_minutes",
)


def effective_status(session, now: datetime) -> ExamSessionStatusEnum:
    """Status as of ``now``, derived from the clock rather than a stored transition."""
    status = session.status
    if status not in (ExamSessionStatusEnum.PUBLISHED, ExamSessionStatusEnum.ACTIVE):
        return status

    if session.scheduling_type == SchedulingTypeEnum.SCHEDULED:
        if session.window_end is not None and now > session.window_end:
            return ExamSessionStatusEnum.ENDED
        if session.window_start is not None and now >= session.window_start:
            return ExamSessionStatusEnum.ACTIVE
        return status

    if status == ExamSessionStatusEnum.PUBLISHED and time_window.has_opened(session, now):
        return ExamSessionStatusEnum.ACTIVE
    return status


def can_transition_session(current: ExamSessionStatusEnum, target: ExamSessionStatusEnum) -> bool:
    return target in SESSION_TRANSITIONS[current]


def can_transition_attempt(current: AttemptStatusEnum, target: AttemptStatusEnum) -> bool:
    return target in ATTEMPT_TRANSITIONS[current]


class ExamSessionLifecycle:

    def _flatten(self, data: dict) -> dict:
        policy = data.pop("policy", None) or {}
        data.update({k: v for k, v in policy.items() if v is not None})
        return data

    def _validate_windows(self, scheduling_type, window_start, window_end, available_from, available_until):
        if scheduling_type == SchedulingTypeEnum.SCHEDULED and (window_start is None or window_end is None):
            raise InvalidSessionWindow("Scheduled sessions require window_start and window_end.")
        if window_start is not None and window_end is not None and window_start >= window_end:
            raise InvalidSessionWindow("window_start must be earlier than window_end.")
        if available_from is not None and available_until is not None and available_from >= available_until:
            raise InvalidSessionWindow("available_from must be earlier than available_until.")

    def _validate_time_constraints(self, session: ExamSessionModel, target: ExamSessionStatusEnum, now: datetime):
        scheduled = session.scheduling_type == SchedulingTypeEnum.SCHEDULED

        if target == ExamSessionStatusEnum.PUBLISHED and scheduled and time_window.has_closed(session, now):
            raise InvalidStatusTransition(
                "Cannot publish a session whose window has already closed.",
                {"window_end": session.window_end.isoformat()}
            )

        if target == ExamSessionStatusEnum.ACTIVE:
            if not time_window.has_opened(session, now):
                raise InvalidStatusTransition("Session window has not opened yet.")
            if time_window.has_closed(session, now):
                raise InvalidStatusTransition("Session window has already closed.")

    def to_schema(self, session: ExamSessionModel, now: Optional[datetime] = None) -> ExamSession:
        now = now or utcnow()
        schema = ExamSession.model_validate(session)
        return schema.model_copy(update={"effective_status": effective_status(session, now)})

    def create_session(self, db: Session, *, session_in: ExamSessionCreate) -> ExamSessionModel:
        data = self._flatten(session_in.model_dump())
        session = crud_exam_session.create(db, obj_in=data)
        logger.info(f"Exam session {session.id} created ({session.scheduling_type.value}, paper {session.paper_ref})")
        return session

    def get_session(self, db: Session, session_id: int) -> ExamSessionModel:
        session = crud_exam_session.get(db, id=session_id)
        if not session:
            raise SessionNotFound(f"Exam session {session_id} not found.", {"session_id": session_id})
        return session

    def list_sessions(
        self, db: Session, *, status: Optional[ExamSessionStatusEnum] = None, skip: int = 0, limit: int = 100
    ) -> List[ExamSessionModel]:
        return crud_exam_session.get_multi_by_status(db, status=status, skip=skip, limit=limit)

    def update_session(
        self, db: Session, *, session_id: int, session_in: ExamSessionUpdate, now: Optional[datetime] = None
    ) -> ExamSessionModel:
        now = now or utcnow()
        session = self.get_session(db, session_id)

        current = effective_status(session, now)
        if current not in EDITABLE_SESSION_STATUSES:
            raise SessionLocked(
                f"Session {session_id} is {current.value}; only draft or published sessions can be edited.",
                {"status": current.value}
            )

        data = self._flatten(session_in.model_dump(exclude_unset=True))
        touched_window = [f for f in WINDOW_FIELDS if f in data and data[f] != getattr(session, f)]
        if touched_window and crud_attempt_record.count_by_session(db, session_id=session_id) > 0:
            raise SessionLocked(
                "Window settings cannot change once students have joined.",
                {"fields": touched_window}
            )

        merged = {f: data.get(f, getattr(session, f)) for f in WINDOW_FIELDS}
        self._validate_windows(
            merged["scheduling_type"],
            merged["window_start"],
            merged["window_end"],
            merged["available_from"],
            merged["available_until"],
        )

        return crud_exam_session.update(db, db_obj=session, obj_in=data)

    def delete_session(self, db: Session, *, session_id: int) -> ExamSession:
        session = self.get_session(db, session_id)
        attempts = crud_attempt_record.count_by_session(db, session_id=session_id)
        if attempts:
            raise SessionHasAttempts(
                f"Session {session_id} has {attempts} attempt record(s) and cannot be deleted.",
                {"attempts": attempts}
            )
        snapshot = self.to_schema(session)
        crud_exam_session.delete(db, id=session_id)
        logger.info(f"Exam session {session_id} deleted")
        return snapshot

    def transition(
        self, db: Session, *, session_id: int, target: ExamSessionStatusEnum, now: Optional[datetime] = None
    ) -> ExamSessionModel:
        now = now or utcnow()
        session = self.get_session(db, session_id)
        current = effective_status(session, now)

        if current == target:
            if session.status != target:
                session = crud_exam_session.set_status(db, db_obj=session, status=target)
            return session

        if not can_transition_session(current, target):
            raise InvalidStatusTransition(
                f"Cannot move session from {current.value} to {target.value}.",
                {"current": current.value, "target": target.value}
            )

        self._validate_time_constraints(session, target, now)

        session = crud_exam_session.set_status(db, db_obj=session, status=target)
        logger.info(f"Exam session {session_id} moved {current.value} -> {target.value}")
        return session

    def batch_transition(
        self, db: Session, *, session_ids: List[int], target: ExamSessionStatusEnum, now: Optional[datetime] = None
    ) -> BatchStatusResult:
        now = now or utcnow()
        result = BatchStatusResult()
        for session_id in session_ids:
            try:
                self.transition(db, session_id=session_id, target=target, now=now)
                result.succeeded.append(session_id)
            except ExamError as e:
                result.failed.append(BatchFailure(session_id=session_id, code=e.code, message=e.message))
        return result

    def sync_statuses(self, db: Session, *, now: Optional[datetime] = None) -> int:
        """Persist derived statuses so listings filtered by status stay accurate."""
        now = now or utcnow()
        changed = 0
        for session in crud_exam_session.get_non_terminal(db):
            derived = effective_status(session, now)
            if derived != session.status:
                crud_exam_session.set_status(db, db_obj=session, status=derived)
                logger.info(f"Exam session {session.id} status synced to {derived.value}")
                changed += 1
        return changed


session_lifecycle = ExamSessionLifecycle()
