from sqlalchemy.orm import Session

from examhub.core.constants import AttemptStatusEnum, SCORE_DISTRIBUTION_RANGES
from examhub.crud.attempt_record import attempt_record as crud_attempt_record
from examhub.schemas.exam_session import ScoreBucket, SessionStatistics
from examhub.services.session_lifecycle import session_lifecycle


class StatisticsService:

    def _distribution(self, percentages):
        buckets = []
        for label, low, high in SCORE_DISTRIBUTION_RANGES:
            count = sum(1 for p in percentages if low <= round(p) <= high)
            share = (count / len(percentages) * 100) if percentages else 0.0
            buckets.append(ScoreBucket(range=label, count=count, percentage=round(share, 2)))
        return buckets

    def session_statistics(self, db: Session, session_id: int) -> SessionStatistics:
        session = session_lifecycle.get_session(db, session_id)
        records = crud_attempt_record.get_all_by_session(db, session_id=session_id)

        completed = [r for r in records if r.status == AttemptStatusEnum.COMPLETED and r.percentage is not None]
        percentages = [r.percentage for r in completed]
        passed = [r for r in completed if r.is_passed]
        durations = [
            (r.submitted_at - r.started_at).total_seconds() / 60
            for r in completed
            if r.submitted_at and r.started_at
        ]

        return SessionStatistics(
            session_id=session.id,
            total_participants=len({r.student_id for r in records}),
            completed_count=len(completed),
            expired_count=sum(1 for r in records if r.status == AttemptStatusEnum.EXPIRED),
            in_progress_count=sum(1 for r in records if r.status == AttemptStatusEnum.IN_PROGRESS),
            average_score=round(sum(percentages) / len(percentages), 2) if percentages else 0.0,
            highest_score=max(percentages) if percentages else 0.0,
            lowest_score=min(percentages) if percentages else 0.0,
            pass_rate=round(len(passed) / len(completed) * 100, 2) if completed else 0.0,
            average_time_minutes=round(sum(durations) / len(durations), 2) if durations else 0.0,
            score_distribution=self._distribution(percentages),
        )


statistics_service = StatisticsService()
