from typing import List, Optional
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from examhub.core.constants import ExamSessionStatusEnum
from examhub.schemas.response import APIResponse
from examhub.schemas.exam_session import (
    BatchStatusResult,
    BatchStatusUpdate,
    ExamSession,
    ExamSessionCreate,
    ExamSessionUpdate,
    SessionStatistics,
    SessionStatusUpdate,
)
from examhub.services.exam_orchestrator import ExamOrchestrator
from examhub.services.session_lifecycle import session_lifecycle
from examhub.services.statistics import statistics_service
from examhub.utils import deps

router = APIRouter()


@router.post("/", response_model=APIResponse[ExamSession], status_code=status.HTTP_201_CREATED)
def create_session(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_in: ExamSessionCreate
):
    session = session_lifecycle.create_session(db, session_in=session_in)
    return APIResponse(message="Exam session created successfully", data=session_lifecycle.to_schema(session))


@router.get("/", response_model=APIResponse[List[ExamSession]])
def list_sessions(
    db: Session = Depends(deps.get_db),
    status_filter: Optional[ExamSessionStatusEnum] = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 100
):
    sessions = session_lifecycle.list_sessions(db, status=status_filter, skip=skip, limit=limit)
    return APIResponse(message="Exam sessions retrieved successfully", data=[session_lifecycle.to_schema(s) for s in sessions])


@router.patch("/batch-status", response_model=APIResponse[BatchStatusResult])
def batch_update_status(
    *,
    db: Session = Depends(deps.get_transactional_db),
    batch_in: BatchStatusUpdate
):
    result = session_lifecycle.batch_transition(db, session_ids=batch_in.session_ids, target=batch_in.status)
    return APIResponse(
        message=f"{len(result.succeeded)} session(s) updated, {len(result.failed)} failed",
        data=result
    )


@router.post("/sweep", response_model=APIResponse[dict])
def run_expiry_sweep(
    db: Session = Depends(deps.get_transactional_db),
    orchestrator: ExamOrchestrator = Depends(deps.get_orchestrator)
):
    expired = orchestrator.expire_overdue_attempts(db)
    synced = session_lifecycle.sync_statuses(db)
    return APIResponse(message="Sweep completed", data={"expired_attempts": expired, "synced_sessions": synced})


@router.get("/{session_id}", response_model=APIResponse[ExamSession])
def get_session(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int
):
    session = session_lifecycle.get_session(db, session_id)
    return APIResponse(message="Exam session retrieved successfully", data=session_lifecycle.to_schema(session))


@router.put("/{session_id}", response_model=APIResponse[ExamSession])
def update_session(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    session_in: ExamSessionUpdate
):
    session = session_lifecycle.update_session(db, session_id=session_id, session_in=session_in)
    return APIResponse(message="Exam session updated successfully", data=session_lifecycle.to_schema(session))


@router.delete("/{session_id}", response_model=APIResponse[ExamSession])
def delete_session(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int
):
    deleted = session_lifecycle.delete_session(db, session_id=session_id)
    return APIResponse(message="Exam session deleted successfully", data=deleted)


@router.patch("/{session_id}/status", response_model=APIResponse[ExamSession])
def update_session_status(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    status_in: SessionStatusUpdate
):
    session = session_lifecycle.transition(db, session_id=session_id, target=status_in.status)
    return APIResponse(
        message=f"Exam session status is now {status_in.status.value}",
        data=session_lifecycle.to_schema(session)
    )


@router.get("/{session_id}/statistics", response_model=APIResponse[SessionStatistics])
def get_session_statistics(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int
):
    stats = statistics_service.session_statistics(db, session_id)
    return APIResponse(message="Exam session statistics retrieved successfully", data=stats)
