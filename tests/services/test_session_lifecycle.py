from datetime import timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy.orm import Session

from examhub.core.constants import ExamSessionStatusEnum, SchedulingTypeEnum, AttemptStatusEnum
from examhub.core.exceptions import (
    InvalidSessionWindow,
    InvalidStatusTransition,
    SessionHasAttempts,
    SessionLocked,
    SessionNotFound,
)
from examhub.crud.attempt_record import attempt_record as crud_attempt_record
from examhub.schemas.exam_session import ExamSessionCreate, ExamSessionUpdate
from examhub.services.session_lifecycle import (
    session_lifecycle,
    effective_status,
    can_transition_session,
    can_transition_attempt,
)

S = ExamSessionStatusEnum


class TestSessionValidation:
    def test_scheduled_requires_window(self):
        with pytest.raises(ValidationError):
            ExamSessionCreate(title="x", paper_ref="p", duration_minutes=30)

    def test_window_must_be_ordered(self, t0):
        with pytest.raises(ValidationError):
            ExamSessionCreate(
                title="x", paper_ref="p", duration_minutes=30,
                window_start=t0, window_end=t0,
            )

    @pytest.mark.parametrize("duration", [0, 601])
    def test_duration_bounds(self, t0, duration):
        with pytest.raises(ValidationError):
            ExamSessionCreate(
                title="x", paper_ref="p", duration_minutes=duration,
                window_start=t0, window_end=t0 + timedelta(hours=1),
            )

    def test_on_demand_needs_no_window(self):
        session_in = ExamSessionCreate(
            title="x", paper_ref="p", duration_minutes=30, scheduling_type=SchedulingTypeEnum.ON_DEMAND
        )
        assert session_in.policy.max_attempts == 1

    def test_create_flattens_policy(self, db_session: Session, t0):
        session = session_lifecycle.create_session(db_session, session_in=ExamSessionCreate(
            title="Finals", paper_ref="p-finals", duration_minutes=90,
            window_start=t0, window_end=t0 + timedelta(hours=2),
            policy={"max_attempts": 3, "passing_score": 75, "allow_review": False},
        ))
        assert session.status == S.DRAFT
        assert session.max_attempts == 3
        assert session.passing_score == 75
        assert session.allow_review is False
        assert session.auto_grade is True

        schema = session_lifecycle.to_schema(session, now=t0)
        assert schema.policy.max_attempts == 3
        assert schema.effective_status == S.DRAFT


class TestEffectiveStatus:
    def test_scheduled_session_follows_window(self, session_factory, t0):
        session = session_factory(status=S.PUBLISHED)
        assert effective_status(session, t0 - timedelta(seconds=1)) == S.PUBLISHED
        assert effective_status(session, t0) == S.ACTIVE
        assert effective_status(session, t0 + timedelta(hours=1)) == S.ACTIVE
        assert effective_status(session, t0 + timedelta(hours=1, seconds=1)) == S.ENDED

    def test_on_demand_ends_only_explicitly(self, session_factory, t0):
        session = session_factory(
            status=S.ACTIVE,
            scheduling_type=SchedulingTypeEnum.ON_DEMAND,
            available_until=t0,
        )
        assert effective_status(session, t0 + timedelta(days=30)) == S.ACTIVE

    def test_terminal_and_draft_are_not_derived(self, session_factory, t0):
        assert effective_status(session_factory(status=S.DRAFT), t0) == S.DRAFT
        assert effective_status(session_factory(status=S.CANCELLED), t0) == S.CANCELLED


class TestTransitions:
    def test_transition_tables(self):
        assert can_transition_session(S.DRAFT, S.PUBLISHED)
        assert can_transition_session(S.ACTIVE, S.CANCELLED)
        assert not can_transition_session(S.ENDED, S.ACTIVE)
        assert not can_transition_session(S.CANCELLED, S.PUBLISHED)
        assert can_transition_attempt(AttemptStatusEnum.IN_PROGRESS, AttemptStatusEnum.EXPIRED)
        assert not can_transition_attempt(AttemptStatusEnum.COMPLETED, AttemptStatusEnum.IN_PROGRESS)

    def test_publish_then_cancel(self, db_session: Session, session_factory, t0):
        session = session_factory(status=S.DRAFT)
        now = t0 - timedelta(days=1)

        session = session_lifecycle.transition(db_session, session_id=session.id, target=S.PUBLISHED, now=now)
        assert session.status == S.PUBLISHED

        session = session_lifecycle.transition(db_session, session_id=session.id, target=S.CANCELLED, now=now)
        assert session.status == S.CANCELLED

        with pytest.raises(InvalidStatusTransition):
            session_lifecycle.transition(db_session, session_id=session.id, target=S.PUBLISHED, now=now)

    def test_cannot_publish_closed_window(self, db_session: Session, session_factory, t0):
        session = session_factory(status=S.DRAFT)
        with pytest.raises(InvalidStatusTransition):
            session_lifecycle.transition(
                db_session, session_id=session.id, target=S.PUBLISHED, now=t0 + timedelta(days=1)
            )

    def test_cannot_activate_before_window_opens(self, db_session: Session, session_factory, t0):
        session = session_factory(status=S.PUBLISHED)
        with pytest.raises(InvalidStatusTransition):
            session_lifecycle.transition(
                db_session, session_id=session.id, target=S.ACTIVE, now=t0 - timedelta(minutes=1)
            )

    def test_same_status_persists_derived_value(self, db_session: Session, session_factory, t0):
        session = session_factory(status=S.PUBLISHED)
        session = session_lifecycle.transition(
            db_session, session_id=session.id, target=S.ACTIVE, now=t0 + timedelta(minutes=5)
        )
        assert session.status == S.ACTIVE

    def test_on_demand_end_is_explicit(self, db_session: Session, session_factory, t0):
        session = session_factory(status=S.ACTIVE, scheduling_type=SchedulingTypeEnum.ON_DEMAND)
        session = session_lifecycle.transition(db_session, session_id=session.id, target=S.ENDED, now=t0)
        assert session.status == S.ENDED

    def test_unknown_session(self, db_session: Session):
        with pytest.raises(SessionNotFound):
            session_lifecycle.transition(db_session, session_id=987654321, target=S.PUBLISHED)

    def test_batch_transition_reports_failures(self, db_session: Session, session_factory, t0):
        draft = session_factory(status=S.DRAFT)
        ended = session_factory(status=S.ENDED)

        result = session_lifecycle.batch_transition(
            db_session, session_ids=[draft.id, ended.id, 987654321], target=S.CANCELLED, now=t0
        )

        assert result.succeeded == [draft.id]
        assert [f.session_id for f in result.failed] == [ended.id, 987654321]
        assert result.failed[0].code == "INVALID_STATUS_TRANSITION"
        assert result.failed[1].code == "SESSION_NOT_FOUND"


class TestEditing:
    def test_update_draft(self, db_session: Session, session_factory, t0):
        session = session_factory(status=S.DRAFT)
        updated = session_lifecycle.update_session(
            db_session, session_id=session.id,
            session_in=ExamSessionUpdate(title="Renamed", policy={"max_attempts": 2}),
            now=t0,
        )
        assert updated.title == "Renamed"
        assert updated.max_attempts == 2
        assert updated.passing_score == 60

    def test_update_rejects_inverted_window(self, db_session: Session, session_factory, t0):
        session = session_factory(status=S.DRAFT)
        with pytest.raises(InvalidSessionWindow):
            session_lifecycle.update_session(
                db_session, session_id=session.id,
                session_in=ExamSessionUpdate(window_end=t0 - timedelta(minutes=1)),
                now=t0 - timedelta(days=1),
            )

    def test_active_session_is_locked(self, db_session: Session, session_factory, t0):
        session = session_factory(status=S.PUBLISHED)
        with pytest.raises(SessionLocked):
            session_lifecycle.update_session(
                db_session, session_id=session.id,
                session_in=ExamSessionUpdate(title="Too late"),
                now=t0 + timedelta(minutes=1),
            )

    def test_window_locked_once_students_joined(self, db_session: Session, session_factory, student_id, t0):
        session = session_factory(status=S.PUBLISHED)
        crud_attempt_record.create(db_session, obj_in={
            "session_id": session.id, "student_id": student_id, "attempt_number": 1,
            "status": AttemptStatusEnum.NOT_STARTED, "answers": {},
        })
        now = t0 - timedelta(hours=1)

        with pytest.raises(SessionLocked):
            session_lifecycle.update_session(
                db_session, session_id=session.id,
                session_in=ExamSessionUpdate(duration_minutes=30),
                now=now,
            )

        updated = session_lifecycle.update_session(
            db_session, session_id=session.id,
            session_in=ExamSessionUpdate(description="Bring a calculator"),
            now=now,
        )
        assert updated.description == "Bring a calculator"

    def test_delete_blocked_by_attempts(self, db_session: Session, session_factory, student_id):
        session = session_factory(status=S.DRAFT)
        crud_attempt_record.create(db_session, obj_in={
            "session_id": session.id, "student_id": student_id, "attempt_number": 1,
            "status": AttemptStatusEnum.NOT_STARTED, "answers": {},
        })
        with pytest.raises(SessionHasAttempts):
            session_lifecycle.delete_session(db_session, session_id=session.id)

    def test_delete_empty_session(self, db_session: Session, session_factory):
        session = session_factory(status=S.DRAFT)
        deleted = session_lifecycle.delete_session(db_session, session_id=session.id)
        assert deleted.id == session.id
        with pytest.raises(SessionNotFound):
            session_lifecycle.get_session(db_session, session.id)


class TestSyncStatuses:
    def test_sync_persists_derived_statuses(self, db_session: Session, session_factory, t0):
        running = session_factory(status=S.PUBLISHED)
        finished = session_factory(
            status=S.ACTIVE, window_start=t0 - timedelta(hours=3), window_end=t0 - timedelta(hours=2)
        )

        changed = session_lifecycle.sync_statuses(db_session, now=t0 + timedelta(minutes=1))

        assert changed >= 2
        assert session_lifecycle.get_session(db_session, running.id).status == S.ACTIVE
        assert session_lifecycle.get_session(db_session, finished.id).status == S.ENDED
