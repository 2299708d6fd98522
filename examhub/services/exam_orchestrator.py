import logging
from datetime import datetime
from typing import Any, List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from examhub.core.config import settings
from examhub.core.constants import (
    AttemptStatusEnum,
    ExamSessionStatusEnum,
    SETTLED_ATTEMPT_STATUSES,
    TERMINAL_SESSION_STATUSES,
)
from examhub.core.exceptions import (
    AttemptConflict,
    AttemptExpired,
    AttemptExpiredBeforeStart,
    AttemptLimitExceeded,
    AttemptNotInProgress,
    RecordNotFound,
    ReviewNotAllowed,
    SessionNotJoinable,
)
from examhub.crud.attempt_record import attempt_record as crud_attempt_record
from examhub.models.attempt_record import AttemptRecord as AttemptRecordModel
from examhub.models.exam_session import ExamSession as ExamSessionModel
from examhub.schemas.attempt_record import AttemptProgress, AttemptRecord, AttemptReview, QuestionReview
from examhub.services import time_window
from examhub.services.attempt_ledger import (
    attempt_ledger,
    AttemptLedger,
    ATTEMPT_IN_PROGRESS,
    ATTEMPT_LIMIT_EXCEEDED,
    SESSION_NOT_JOINABLE,
)
from examhub.services.grading import grading_engine, GradingEngine
from examhub.services.question_resolver import question_resolver, QuestionSetResolver
from examhub.services.session_lifecycle import session_lifecycle
from examhub.utils.clock import utcnow
from examhub.utils.locks import attempt_locks, KeyedLock

logger = logging.getLogger(__name__)


class ExamOrchestrator:
    def __init__(
        self,
        resolver: QuestionSetResolver = question_resolver,
        ledger: AttemptLedger = attempt_ledger,
        grader: GradingEngine = grading_engine,
        locks: KeyedLock = attempt_locks,
    ):
        self.resolver = resolver
        self.ledger = ledger
        self.grader = grader
        self.locks = locks

    def _key(self, session_id: int, student_id: str):
        return (session_id, student_id)

    def _require_latest(self, db: Session, session_id: int, student_id: str) -> AttemptRecordModel:
        record = crud_attempt_record.get_latest(db, session_id=session_id, student_id=student_id)
        if not record:
            raise RecordNotFound(
                "No attempt record found; join the session first.",
                {"session_id": session_id, "student_id": student_id}
            )
        return record

    def _create_record(self, db: Session, session: ExamSessionModel, student_id: str) -> AttemptRecordModel:
        attempt_number = crud_attempt_record.get_max_attempt_number(
            db, session_id=session.id, student_id=student_id
        ) + 1
        try:
            record = crud_attempt_record.create(db, obj_in={
                "session_id": session.id,
                "student_id": student_id,
                "attempt_number": attempt_number,
                "status": AttemptStatusEnum.NOT_STARTED,
                "answers": {},
            })
        except IntegrityError:
            # Another worker created this attempt number first; use theirs.
            db.rollback()
            record = self.ledger.active_record(db, session.id, student_id)
            if record is None:
                raise
            return record

        logger.info(f"Student {student_id} joined session {session.id} (attempt {attempt_number})")
        return record

    def join(self, db: Session, session_id: int, student_id: str, now: Optional[datetime] = None) -> AttemptRecordModel:
        now = now or utcnow()
        with self.locks.hold(self._key(session_id, student_id)):
            session = session_lifecycle.get_session(db, session_id)
            self.ledger.expire_if_overdue(db, self.ledger.active_record(db, session_id, student_id), now)

            problem = self.ledger.joinability_problem(session, student_id, now)
            if problem:
                raise SessionNotJoinable(problem, {"session_id": session_id})

            decision = self.ledger.can_start_new_attempt(db, session, student_id, now)
            if decision.existing is not None:
                return decision.existing
            if decision.reason == ATTEMPT_LIMIT_EXCEEDED:
                raise AttemptLimitExceeded(decision.detail, {"max_attempts": session.max_attempts})

            return self._create_record(db, session, student_id)

    def start(self, db: Session, session_id: int, student_id: str, now: Optional[datetime] = None) -> AttemptRecordModel:
        now = now or utcnow()
        with self.locks.hold(self._key(session_id, student_id)):
            session = session_lifecycle.get_session(db, session_id)
            self.ledger.expire_if_overdue(db, self.ledger.active_record(db, session_id, student_id), now)

            decision = self.ledger.can_start_new_attempt(db, session, student_id, now)
            if decision.reason == ATTEMPT_IN_PROGRESS:
                return decision.existing
            if decision.reason == ATTEMPT_LIMIT_EXCEEDED:
                raise AttemptLimitExceeded(decision.detail, {"max_attempts": session.max_attempts})

            record = decision.existing
            if record is None:
                raise RecordNotFound(
                    "No joined attempt to start; join the session first.",
                    {"session_id": session_id, "student_id": student_id}
                )

            if decision.reason == SESSION_NOT_JOINABLE:
                if session.status != ExamSessionStatusEnum.CANCELLED and time_window.has_closed(session, now):
                    raise AttemptExpiredBeforeStart(
                        "The session window closed before the attempt was started.",
                        {"attempt_number": record.attempt_number}
                    )
                raise SessionNotJoinable(decision.detail, {"session_id": session_id})

            deadline = time_window.effective_deadline(session, now)
            won = crud_attempt_record.compare_and_set(
                db,
                record_id=record.id,
                expected_status=AttemptStatusEnum.NOT_STARTED,
                values={
                    "status": AttemptStatusEnum.IN_PROGRESS,
                    "started_at": now,
                    "deadline": deadline,
                },
            )
            record = crud_attempt_record.reload(db, record)
            if won:
                logger.info(
                    f"Student {student_id} started attempt {record.attempt_number} of session {session_id}, "
                    f"deadline {deadline.isoformat()}"
                )
            elif record.status != AttemptStatusEnum.IN_PROGRESS:
                raise AttemptNotInProgress(
                    f"Attempt is {record.status.value} and cannot be started.",
                    {"status": record.status.value}
                )
            return record

    def submit_answer(
        self,
        db: Session,
        session_id: int,
        student_id: str,
        question_id: str,
        answer: Any,
        now: Optional[datetime] = None,
    ) -> AttemptRecordModel:
        now = now or utcnow()
        with self.locks.hold(self._key(session_id, student_id)):
            session = session_lifecycle.get_session(db, session_id)
            record = self._require_latest(db, session_id, student_id)

            for _ in range(settings.CAS_MAX_RETRIES):
                if record.status == AttemptStatusEnum.EXPIRED:
                    raise AttemptExpired("The attempt has expired.", {"deadline": record.deadline.isoformat() if record.deadline else None})
                if record.status != AttemptStatusEnum.IN_PROGRESS:
                    raise AttemptNotInProgress(
                        f"Answers can only be submitted while the attempt is in progress (it is {record.status.value}).",
                        {"status": record.status.value}
                    )
                if time_window.is_past_deadline(record.deadline, now):
                    raise AttemptExpired(
                        "The attempt deadline has passed; finish the attempt.",
                        {"deadline": record.deadline.isoformat()}
                    )
                if session.status in TERMINAL_SESSION_STATUSES:
                    raise SessionNotJoinable(f"Session is {session.status.value}.", {"session_id": session_id})

                answers = dict(record.answers or {})
                answers[str(question_id)] = answer
                won = crud_attempt_record.compare_and_set(
                    db,
                    record_id=record.id,
                    expected_status=AttemptStatusEnum.IN_PROGRESS,
                    expected_version=record.version,
                    values={"answers": answers},
                )
                record = crud_attempt_record.reload(db, record)
                if won:
                    return record

            raise AttemptConflict("The attempt kept changing while saving the answer; retry.", {"question_id": question_id})

    def _grade_if_pending(self, db: Session, session: ExamSessionModel, record: AttemptRecordModel) -> AttemptRecordModel:
        if record.status != AttemptStatusEnum.SUBMITTED or not session.auto_grade:
            return record

        question_key = self.resolver.resolve_question_set(db, session.paper_ref)
        result = self.grader.grade(record.answers or {}, question_key, session.passing_score)

        won = crud_attempt_record.compare_and_set(
            db,
            record_id=record.id,
            expected_status=AttemptStatusEnum.SUBMITTED,
            values={"status": AttemptStatusEnum.COMPLETED, **result.to_columns()},
        )
        record = crud_attempt_record.reload(db, record)
        if won:
            logger.info(
                f"Attempt {record.id} graded: {result.score}/{result.max_score} "
                f"({'passed' if result.is_passed else 'failed'})"
            )
        return record

    def finish(self, db: Session, session_id: int, student_id: str, now: Optional[datetime] = None) -> AttemptRecordModel:
        now = now or utcnow()
        with self.locks.hold(self._key(session_id, student_id)):
            session = session_lifecycle.get_session(db, session_id)
            record = self._require_latest(db, session_id, student_id)

            if record.status == AttemptStatusEnum.COMPLETED:
                return record
            if record.status == AttemptStatusEnum.SUBMITTED:
                return self._grade_if_pending(db, session, record)
            if record.status == AttemptStatusEnum.EXPIRED:
                raise AttemptExpired("The attempt has already expired.", {"attempt_number": record.attempt_number})
            if record.status == AttemptStatusEnum.NOT_STARTED:
                raise AttemptNotInProgress("The attempt has not been started.", {"status": record.status.value})

            if time_window.is_past_deadline(record.deadline, now):
                self.ledger.record_attempt_outcome(db, record, AttemptStatusEnum.EXPIRED, now)
                raise AttemptExpired(
                    "The attempt deadline passed before it was finished.",
                    {"deadline": record.deadline.isoformat()}
                )

            record = self.ledger.record_attempt_outcome(db, record, AttemptStatusEnum.SUBMITTED, now)
            if record.status == AttemptStatusEnum.EXPIRED:
                raise AttemptExpired("The attempt expired before it was finished.", {"attempt_number": record.attempt_number})
            return self._grade_if_pending(db, session, record)

    def get_progress(self, db: Session, session_id: int, student_id: str, now: Optional[datetime] = None) -> AttemptProgress:
        now = now or utcnow()
        with self.locks.hold(self._key(session_id, student_id)):
            session = session_lifecycle.get_session(db, session_id)
            record = self._require_latest(db, session_id, student_id)
            record = self.ledger.expire_if_overdue(db, record, now)

        if record.status == AttemptStatusEnum.IN_PROGRESS:
            remaining = time_window.remaining_seconds(record.deadline, now)
        elif record.status == AttemptStatusEnum.NOT_STARTED:
            remaining = None
        else:
            remaining = 0

        return AttemptProgress(
            status=record.status,
            attempt_number=record.attempt_number,
            remaining_seconds=remaining,
            answered_count=len(record.answers or {}),
            total_questions=len(self.resolver.resolve_question_set(db, session.paper_ref)),
        )

    def list_attempts(self, db: Session, session_id: int, student_id: str) -> List[AttemptRecordModel]:
        session_lifecycle.get_session(db, session_id)
        return crud_attempt_record.get_by_session_and_student(db, session_id=session_id, student_id=student_id)

    def review(
        self, db: Session, session_id: int, student_id: str, attempt_number: Optional[int] = None
    ) -> AttemptReview:
        session = session_lifecycle.get_session(db, session_id)
        if not session.allow_review:
            raise ReviewNotAllowed("Review is disabled for this session.", {"session_id": session_id})

        if attempt_number is None:
            record = self._require_latest(db, session_id, student_id)
        else:
            record = crud_attempt_record.get_by_attempt_number(
                db, session_id=session_id, student_id=student_id, attempt_number=attempt_number
            )
            if not record:
                raise RecordNotFound(f"Attempt {attempt_number} not found.", {"attempt_number": attempt_number})

        if record.status not in SETTLED_ATTEMPT_STATUSES:
            raise ReviewNotAllowed(
                "Only finished or expired attempts can be reviewed.",
                {"status": record.status.value}
            )
        if record.status == AttemptStatusEnum.SUBMITTED and not session.auto_grade:
            raise ReviewNotAllowed(
                "The attempt is awaiting grading and cannot be reviewed yet.",
                {"status": record.status.value}
            )

        question_key = self.resolver.resolve_question_set(db, session.paper_ref)
        graded =self.grader.grade(record.answers or {}, question_key, session.passing_score)
        return AttemptReview(
            record=AttemptRecord.model_validate(record),
            questions=[
                QuestionReview(
                    question_id=o.question_id,
                    answered=o.answered,
                    submitted_answer=o.submitted_answer,
                    correct_answer=o.correct_answer,
                    is_correct=o.is_correct,
                    points=o.points,
                    points_earned=o.points_earned,
                )
                for o in graded.question_results
            ],
        )

    def expire_overdue_attempts(self, db: Session, now: Optional[datetime] = None) -> int:
        """Passive sweep: expire every in-progress attempt whose deadline has passed."""
        now = now or utcnow()
        expired = 0
        for record in crud_attempt_record.get_overdue_in_progress(db, now=now):
            record_id, key = record.id, self._key(record.session_id, record.student_id)
            try:
                with self.locks.hold(key):
                    settled = self.ledger.record_attempt_outcome(db, record, AttemptStatusEnum.EXPIRED, now)
                if settled.status == AttemptStatusEnum.EXPIRED:
                    expired += 1
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to expire attempt {record_id}, will retry on next sweep: {e}")
        if expired:
            logger.info(f"Passive sweep expired {expired} attempt(s)")
        return expired


exam_orchestrator = ExamOrchestrator()
