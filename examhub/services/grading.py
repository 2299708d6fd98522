import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from examhub.core.constants import QuestionTypeEnum, AnomalyReasonEnum, GRADE_THRESHOLDS, FAILING_GRADE
from examhub.schemas.attempt_record import AttemptResult, QuestionAnomaly
from examhub.schemas.question import QuestionKey

logger = logging.getLogger(__name__)

_TRUE_WORDS = {"true", "t", "yes", "y", "1"}
_FALSE_WORDS = {"false", "f", "no", "n", "0"}


@dataclass
class QuestionOutcome:
    question_id: str
    answered: bool
    is_correct: bool
    points: float
    points_earned: float
    submitted_answer: Any = None
    correct_answer: Any = None


@dataclass
class GradeResult:
    score: float
    max_score: float
    correct_count: int
    total_questions: int
    is_passed: bool
    percentage: float
    grade: str
    anomalies: List[QuestionAnomaly] = field(default_factory=list)
    question_results: List[QuestionOutcome] = field(default_factory=list)

    def to_result(self) -> AttemptResult:
        return AttemptResult(
            score=self.score,
            max_score=self.max_score,
            correct_count=self.correct_count,
            total_questions=self.total_questions,
            is_passed=self.is_passed,
            percentage=self.percentage,
            grade=self.grade,
            anomalies=self.anomalies,
        )

    def to_columns(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "max_score": self.max_score,
            "correct_count": self.correct_count,
            "total_questions": self.total_questions,
            "is_passed": self.is_passed,
            "percentage": self.percentage,
            "grade": self.grade,
            "anomalies": [a.model_dump(mode="json") for a in self.anomalies],
        }


def _as_bool(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def _as_list(value) -> List[str]:
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value]
    return [str(value)]


def is_unanswered(answer) -> bool:
    if answer is None:
        return True
    if isinstance(answer, str):
        return answer.strip() == ""
    if isinstance(answer, (list, tuple, set)):
        return len(answer) == 0
    return False


def check_answer(question: QuestionKey, answer) -> bool:
    correct = question.correct_answer

    if question.question_type == QuestionTypeEnum.SINGLE_CHOICE:
        if isinstance(answer, (list, tuple)):
            return len(answer) == 1 and str(answer[0]) == str(correct)
        return str(answer) == str(correct)

    if question.question_type == QuestionTypeEnum.MULTIPLE_CHOICE:
        return set(_as_list(answer)) == set(_as_list(correct))

    if question.question_type == QuestionTypeEnum.TRUE_FALSE:
        expected = _as_bool(correct)
        return expected is not None and _as_bool(answer) == expected

    if question.question_type == QuestionTypeEnum.FILL_BLANK:
        given = "".join(_as_list(answer)).strip().lower()
        return any(given == accepted.strip().lower() for accepted in _as_list(correct))

    return False


def letter_grade(percentage: float) -> str:
    for threshold, letter in GRADE_THRESHOLDS:
        if percentage >= threshold:
            return letter
    return FAILING_GRADE


class GradingEngine:

    def grade(self, answers: Dict[str, Any], question_key: Iterable[QuestionKey], passing_score: float) -> GradeResult:
        questions = list(question_key)
        known_ids = {q.question_id for q in questions}

        outcomes = []
        for question in questions:
            answer = answers.get(question.question_id)
            answered = not is_unanswered(answer)
            is_correct = answered and check_answer(question, answer)
            outcomes.append(QuestionOutcome(
                question_id=question.question_id,
                answered=answered,
                is_correct=is_correct,
                points=question.points,
                points_earned=question.points if is_correct else 0.0,
                submitted_answer=answer if answered else None,
                correct_answer=question.correct_answer,
            ))

        anomalies = [
            QuestionAnomaly(question_id=qid, reason=AnomalyReasonEnum.UNKNOWN_QUESTION)
            for qid in answers
            if qid not in known_ids
        ]
        if anomalies:
            logger.warning(f"Excluded {len(anomalies)} answer(s) with no matching question: {[a.question_id for a in anomalies]}")

        score = float(sum(o.points_earned for o in outcomes))
        max_score = float(sum(q.points for q in questions))
        percentage = score / max_score * 100 if max_score > 0 else 0.0

        return GradeResult(
            score=score,
            max_score=max_score,
            correct_count=sum(1 for o in outcomes if o.is_correct),
            total_questions=len(questions),
            is_passed=percentage >= passing_score,
            percentage=round(percentage, 2),
            grade=letter_grade(percentage),
            anomalies=anomalies,
            question_results=outcomes,
        )


grading_engine = GradingEngine()
