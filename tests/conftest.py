import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ.setdefault("TESTING", "true")

import pytest
import uuid
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from examhub.core.database import Base, get_db
from examhub.core.config import settings
from examhub.core.constants import ExamSessionStatusEnum, SchedulingTypeEnum, QuestionTypeEnum
from examhub.crud.exam_session import exam_session as crud_exam_session
from examhub.crud.paper_question import paper_question as crud_paper_question
from examhub.schemas.exam_session import ExamSessionCreate
from examhub.schemas.question import PaperQuestionCreate
from examhub.services.session_lifecycle import session_lifecycle
from examhub.utils import deps as deps_utils
from examhub.utils.clock import utcnow
import main
from fastapi.testclient import TestClient

test_db_url = settings.TEST_DATABASE_URL or "sqlite:///./test.db"

# Fixed instant used by service-level tests that pass ``now`` explicitly.
T0 = datetime(2030, 1, 15, 9, 0, 0)

@pytest.fixture(scope="session")
def database_engine():
    if test_db_url.startswith("sqlite"):
        engine = create_engine(test_db_url, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(test_db_url)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    if test_db_url.startswith("sqlite") and os.path.exists("./test.db"):
        os.remove("./test.db")

@pytest.fixture(scope="session")
def session_maker(database_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=database_engine)

@pytest.fixture(scope="function")
def db_session(session_maker):
    db = session_maker()
    try:
        yield db
    finally:
        db.rollback()
        db.close()

@pytest.fixture(scope="function")
def client(db_session):
    # Re-initialize the app for each test function to ensure a clean state
    from importlib import reload
    reload(main)
    main.app.dependency_overrides[get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_db] = lambda: db_session
    main.app.dependency_overrides[deps_utils.get_transactional_db] = lambda: db_session
    with TestClient(main.app) as test_client:
        yield test_client

@pytest.fixture
def t0():
    return T0

@pytest.fixture
def paper_factory(db_session):
    """Stores an answer key and returns its paper_ref."""
    def _paper_factory(questions=None):
        paper_ref = f"paper-{uuid.uuid4()}"
        questions = questions or [
            {"question_id": "q1", "correct_answer": "B", "points": 50},
            {"question_id": "q2", "correct_answer": "C", "points": 50},
        ]
        for position, question in enumerate(questions):
            crud_paper_question.create(db_session, obj_in=PaperQuestionCreate(
                paper_ref=paper_ref,
                position=position,
                question_type=question.get("question_type", QuestionTypeEnum.SINGLE_CHOICE),
                question_id=question["question_id"],
                correct_answer=question["correct_answer"],
                points=question.get("points", 1),
            ))
        return paper_ref
    return _paper_factory

@pytest.fixture
def session_factory(db_session, paper_factory):
    """Creates an exam session directly in the given status, skipping the clock checks of publish."""
    def _session_factory(
        status=ExamSessionStatusEnum.PUBLISHED,
        scheduling_type=SchedulingTypeEnum.SCHEDULED,
        window_start=None,
        window_end=None,
        available_from=None,
        available_until=None,
        duration_minutes=60,
        paper_ref=None,
        participants=None,
        **policy
    ):
        if scheduling_type == SchedulingTypeEnum.SCHEDULED and window_start is None:
            window_start = T0
            window_end = window_end or T0 + timedelta(hours=1)
        session_in = ExamSessionCreate(
            title="Unit Test Exam",
            paper_ref=paper_ref or paper_factory(),
            scheduling_type=scheduling_type,
            window_start=window_start,
            window_end=window_end,
            available_from=available_from,
            available_until=available_until,
            duration_minutes=duration_minutes,
            participants=participants or [],
            policy=policy,
        )
        session = session_lifecycle.create_session(db_session, session_in=session_in)
        if status != ExamSessionStatusEnum.DRAFT:
            session = crud_exam_session.set_status(db_session, db_obj=session, status=status)
        return session
    return _session_factory

@pytest.fixture
def live_window():
    """A scheduled window around the real clock, for tests that go through the API."""
    now = utcnow()
    return now - timedelta(minutes=5), now + timedelta(hours=2)

@pytest.fixture
def student_id():
    return f"student-{uuid.uuid4().hex[:8]}"
