import uuid
from datetime import timedelta
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from examhub.core.constants import AttemptStatusEnum, QuestionTypeEnum
from examhub.crud.attempt_record import attempt_record as crud_attempt_record
from examhub.services.exam_orchestrator import exam_orchestrator
from examhub.utils.clock import utcnow


def test_mixed_paper_retake_flow(client: TestClient, paper_factory, live_window):
    """
    A two-attempt session over a paper with every question type.
    First attempt fails, second passes, statistics reflect both.
    """
    print("\n[TEST] Mixed paper retake flow")
    paper_ref = paper_factory([
        {"question_id": "single", "correct_answer": "B", "points": 25},
        {"question_id": "multi", "question_type": QuestionTypeEnum.MULTIPLE_CHOICE, "correct_answer": ["A", "D"], "points": 25},
        {"question_id": "tf", "question_type": QuestionTypeEnum.TRUE_FALSE, "correct_answer": False, "points": 25},
        {"question_id": "blank", "question_type": QuestionTypeEnum.FILL_BLANK, "correct_answer": ["photosynthesis"], "points": 25},
    ])
    start, end = live_window

    print("[1] Creating and publishing session")
    r_session = client.post("/sessions/", json={
        "title": f"Retake Flow {uuid.uuid4().hex[:6]}",
        "paper_ref": paper_ref,
        "window_start": start.isoformat(),
        "window_end": end.isoformat(),
        "duration_minutes": 45,
        "policy": {"max_attempts": 2, "passing_score": 70},
    })
    assert r_session.status_code == 201, r_session.text
    session_id = r_session.json()["data"]["id"]
    r_publish = client.patch(f"/sessions/{session_id}/status", json={"status": "published"})
    assert r_publish.status_code == 200, r_publish.text

    student = f"flow-{uuid.uuid4().hex[:6]}"
    base = f"/sessions/{session_id}/students/{student}"

    print("[2] First attempt: half right")
    assert client.post(f"{base}/join").status_code == 200
    assert client.post(f"{base}/start").status_code == 200
    client.put(f"{base}/answers/single", json={"answer": "B"})
    client.put(f"{base}/answers/multi", json={"answer": ["A"]})
    client.put(f"{base}/answers/tf", json={"answer": False})
    first = client.post(f"{base}/finish").json()["data"]
    assert first["result"]["score"] == 50
    assert first["result"]["is_passed"] is False

    print("[3] Second attempt: all right")
    second_join = client.post(f"{base}/join").json()["data"]
    assert second_join["attempt_number"] == 2
    client.post(f"{base}/start")
    client.put(f"{base}/answers/single", json={"answer": "B"})
    client.put(f"{base}/answers/multi", json={"answer": ["D", "A"]})
    client.put(f"{base}/answers/tf", json={"answer": "false"})
    client.put(f"{base}/answers/blank", json={"answer": " Photosynthesis "})
    second = client.post(f"{base}/finish").json()["data"]
    assert second["result"]["score"] == 100
    assert second["result"]["grade"] == "A"
    assert second["result"]["is_passed"] is True

    print("[4] Limit reached")
    r_third = client.post(f"{base}/join")
    assert r_third.status_code == 409
    assert r_third.json()["error"]["code"] == "ATTEMPT_LIMIT_EXCEEDED"

    print("[5] Statistics")
    stats = client.get(f"/sessions/{session_id}/statistics").json()["data"]
    assert stats["completed_count"] == 2
    assert stats["total_participants"] == 1
    assert stats["pass_rate"] == 50
    print("[OK] Flow complete")


def test_cancellation_stops_running_attempts(client: TestClient, paper_factory, live_window):
    print("\n[TEST] Cancellation during an attempt")
    start, end = live_window
    session_id = client.post("/sessions/", json={
        "title": "Cancelled Exam",
        "paper_ref": paper_factory(),
        "window_start": start.isoformat(),
        "window_end": end.isoformat(),
        "duration_minutes": 30,
    }).json()["data"]["id"]
    client.patch(f"/sessions/{session_id}/status", json={"status": "published"})

    base = f"/sessions/{session_id}/students/cancel-{uuid.uuid4().hex[:6]}"
    client.post(f"{base}/join")
    client.post(f"{base}/start")

    r_cancel = client.patch(f"/sessions/{session_id}/status", json={"status": "cancelled"})
    assert r_cancel.status_code == 200
    assert r_cancel.json()["data"]["effective_status"] == "cancelled"

    r_answer = client.put(f"{base}/answers/q1", json={"answer": "B"})
    assert r_answer.status_code == 409
    assert r_answer.json()["error"]["code"] == "SESSION_NOT_JOINABLE"

    r_join = client.post(f"/sessions/{session_id}/students/late-{uuid.uuid4().hex[:6]}/join")
    assert r_join.status_code == 409


def test_abandoned_attempt_is_swept(client: TestClient, db_session: Session, paper_factory, live_window):
    print("\n[TEST] Passive expiry of an abandoned attempt")
    start, end = live_window
    session_id = client.post("/sessions/", json={
        "title": "Abandoned Exam",
        "paper_ref": paper_factory(),
        "window_start": start.isoformat(),
        "window_end": end.isoformat(),
        "duration_minutes": 5,
    }).json()["data"]["id"]
    client.patch(f"/sessions/{session_id}/status", json={"status": "published"})

    student = f"abandon-{uuid.uuid4().hex[:6]}"
    client.post(f"/sessions/{session_id}/students/{student}/join")
    client.post(f"/sessions/{session_id}/students/{student}/start")

    exam_orchestrator.expire_overdue_attempts(db_session, now=utcnow() + timedelta(minutes=6))

    record = crud_attempt_record.get_latest(db_session, session_id=session_id, student_id=student)
    assert record.status == AttemptStatusEnum.EXPIRED

    r_finish = client.post(f"/sessions/{session_id}/students/{student}/finish")
    assert r_finish.status_code == 409
    assert r_finish.json()["error"]["code"] == "ATTEMPT_EXPIRED"


def test_on_demand_session(client: TestClient, paper_factory):
    print("\n[TEST] On-demand session")
    session_id = client.post("/sessions/", json={
        "title": "Practice Quiz",
        "paper_ref": paper_factory(),
        "scheduling_type": "on_demand",
        "duration_minutes": 20,
    }).json()["data"]["id"]
    r_publish = client.patch(f"/sessions/{session_id}/status", json={"status": "published"})
    assert r_publish.json()["data"]["effective_status"] == "active"

    base = f"/sessions/{session_id}/students/practice-{uuid.uuid4().hex[:6]}"
    client.post(f"{base}/join")
    started = client.post(f"{base}/start").json()["data"]
    assert started["status"] == "in_progress"

    r_end = client.patch(f"/sessions/{session_id}/status", json={"status": "ended"})
    assert r_end.status_code == 200
    assert r_end.json()["data"]["status"] == "ended"
