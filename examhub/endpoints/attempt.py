from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from examhub.schemas.response import APIResponse
from examhub.schemas.attempt_record import AnswerSubmit, AttemptProgress, AttemptRecord, AttemptReview
from examhub.services.exam_orchestrator import ExamOrchestrator
from examhub.utils import deps

router = APIRouter()


@router.post("/{session_id}/students/{student_id}/join", response_model=APIResponse[AttemptRecord])
def join_session(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    student_id: str,
    orchestrator: ExamOrchestrator = Depends(deps.get_orchestrator)
):
    record = orchestrator.join(db, session_id, student_id)
    return APIResponse(message="Joined exam session", data=AttemptRecord.model_validate(record))


@router.post("/{session_id}/students/{student_id}/start", response_model=APIResponse[AttemptRecord])
def start_attempt(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    student_id: str,
    orchestrator: ExamOrchestrator = Depends(deps.get_orchestrator)
):
    record = orchestrator.start(db, session_id, student_id)
    return APIResponse(message="Exam attempt started", data=AttemptRecord.model_validate(record))


@router.put("/{session_id}/students/{student_id}/answers/{question_id}", response_model=APIResponse[AttemptRecord])
def submit_answer(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    student_id: str,
    question_id: str,
    answer_in: AnswerSubmit,
    orchestrator: ExamOrchestrator = Depends(deps.get_orchestrator)
):
    record = orchestrator.submit_answer(db, session_id, student_id, question_id, answer_in.answer)
    return APIResponse(message="Answer saved", data=AttemptRecord.model_validate(record))


@router.post("/{session_id}/students/{student_id}/finish", response_model=APIResponse[AttemptRecord])
def finish_attempt(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    student_id: str,
    orchestrator: ExamOrchestrator = Depends(deps.get_orchestrator)
):
    record = orchestrator.finish(db, session_id, student_id)
    return APIResponse(message="Exam attempt submitted", data=AttemptRecord.model_validate(record))


@router.get("/{session_id}/students/{student_id}/progress", response_model=APIResponse[AttemptProgress])
def get_progress(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    student_id: str,
    orchestrator: ExamOrchestrator = Depends(deps.get_orchestrator)
):
    progress = orchestrator.get_progress(db, session_id, student_id)
    return APIResponse(message="Progress retrieved successfully", data=progress)


@router.get("/{session_id}/students/{student_id}/attempts", response_model=APIResponse[List[AttemptRecord]])
def list_attempts(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    student_id: str,
    orchestrator: ExamOrchestrator = Depends(deps.get_orchestrator)
):
    records = orchestrator.list_attempts(db, session_id, student_id)
    return APIResponse(message="Attempts retrieved successfully", data=[AttemptRecord.model_validate(r) for r in records])


@router.get("/{session_id}/students/{student_id}/review", response_model=APIResponse[AttemptReview])
def review_attempt(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    student_id: str,
    attempt_number: Optional[int] = Query(None, ge=1),
    orchestrator: ExamOrchestrator = Depends(deps.get_orchestrator)
):
    review = orchestrator.review(db, session_id, student_id, attempt_number=attempt_number)
    return APIResponse(message="Attempt review retrieved successfully", data=review)
