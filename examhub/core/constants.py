from enum import Enum


class SchedulingTypeEnum(str, Enum):
    SCHEDULED = "scheduled"
    ON_DEMAND = "on_demand"

class ExamSessionStatusEnum(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ACTIVE = "active"
    ENDED = "ended"
    CANCELLED = "cancelled"

class AttemptStatusEnum(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    EXPIRED = "expired"

class QuestionTypeEnum(str, Enum):
    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"

class AnomalyReasonEnum(str, Enum):
    UNKNOWN_QUESTION = "unknown_question"


JOINABLE_SESSION_STATUSES = frozenset({ExamSessionStatusEnum.PUBLISHED, ExamSessionStatusEnum.ACTIVE})
TERMINAL_SESSION_STATUSES = frozenset({ExamSessionStatusEnum.ENDED, ExamSessionStatusEnum.CANCELLED})
EDITABLE_SESSION_STATUSES = frozenset({ExamSessionStatusEnum.DRAFT, ExamSessionStatusEnum.PUBLISHED})

ACTIVE_ATTEMPT_STATUSES = frozenset({AttemptStatusEnum.NOT_STARTED, AttemptStatusEnum.IN_PROGRESS})
# Attempts that consume one of the student's max_attempts.
SETTLED_ATTEMPT_STATUSES = frozenset({
    AttemptStatusEnum.SUBMITTED,
    AttemptStatusEnum.COMPLETED,
    AttemptStatusEnum.EXPIRED,
})

# Letter grade cut-offs on the percentage score, highest first.
GRADE_THRESHOLDS = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)
FAILING_GRADE = "F"

SCORE_DISTRIBUTION_RANGES = (
    ("0-20", 0, 20),
    ("21-40", 21, 40),
    ("41-60", 41, 60),
    ("61-80", 61, 80),
    ("81-100", 81, 100),
)
