from examhub.core.database import SessionLocal
from examhub.services.exam_orchestrator import exam_orchestrator, ExamOrchestrator


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_transactional_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_orchestrator() -> ExamOrchestrator:
    return exam_orchestrator
