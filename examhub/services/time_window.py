from datetime import datetime, timedelta
from typing import Optional, Tuple

from examhub.core.constants import SchedulingTypeEnum, ExamSessionStatusEnum, JOINABLE_SESSION_STATUSES


def _bounds(session) -> Tuple[Optional[datetime], Optional[datetime]]:
    if session.scheduling_type == SchedulingTypeEnum.SCHEDULED:
        return session.window_start, session.window_end
    return session.available_from, session.available_until


def is_within_window(session, now: datetime) -> bool:
    opens_at, closes_at = _bounds(session)
    if session.scheduling_type == SchedulingTypeEnum.SCHEDULED and (opens_at is None or closes_at is None):
        return False
    if opens_at is not None and now < opens_at:
        return False
    if closes_at is not None and now > closes_at:
        return False
    return True


def has_opened(session, now: datetime) -> bool:
    opens_at, _ = _bounds(session)
    return opens_at is None or now >= opens_at


def has_closed(session, now: datetime) -> bool:
    _, closes_at = _bounds(session)
    return closes_at is not None and now > closes_at


def effective_deadline(session, attempt_start: datetime) -> datetime:
    deadline = attempt_start + timedelta(minutes=session.duration_minutes)
    _, closes_at = _bounds(session)
    if closes_at is not None and closes_at < deadline:
        return closes_at
    return deadline


def is_joinable_status(status: ExamSessionStatusEnum) -> bool:
    return status in JOINABLE_SESSION_STATUSES


def is_past_deadline(deadline: Optional[datetime], now: datetime) -> bool:
    return deadline is not None and now > deadline


def remaining_seconds(deadline: Optional[datetime], now: datetime) -> Optional[int]:
    if deadline is None:
        return None
    return max(0, int((deadline - now).total_seconds()))
