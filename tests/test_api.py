"""End-to-end tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from main import app

from .conftest import T0, T1


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _progress(session_id, part):
    return {"event": "AGENT_STREAMING_UPDATE", "data": {"sessionId": session_id, "part": part}}


def test_health_reports_boot(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["boot_id"] >= 1


def test_streaming_updates_build_transcript(client):
    first = client.post(
        "/api/v1/updates",
        json=_progress("s1", {"type": "text-delta", "message": "![alt](https://example.com/img", "startedAt": T0}),
    )
    assert first.status_code == 200
    assert first.json()["significant"] is True

    second = client.post(
        "/api/v1/updates",
        json=_progress("s1", {"type": "text-delta", "message": ".png)", "startedAt": T1}),
    )
    assert second.status_code == 200
    assert second.json()["significant"] is False

    transcript = client.get("/api/v1/sessions/s1/transcript").json()
    assert transcript == [
        {
            "role": "assistant",
            "parts": [
                {
                    "type": "assistant-attachment",
                    "url": "https://example.com/img.png",
                    "altText": "alt",
                    "startedAt": T0,
                    "completedAt": T1,
                }
            ],
        }
    ]


def test_session_snapshot_uses_camel_case(client):
    client.post(
        "/api/v1/updates",
        json=_progress("s2", {"type": "text-delta", "message": "hi", "startedAt": T0}),
    )
    snapshot = client.get("/api/v1/sessions/s2").json()
    assert snapshot["sessionId"] == "s2"
    assert snapshot["isStreaming"] is True
    assert snapshot["status"] == "running"
    assert "title" not in snapshot
    assert snapshot["conversation"] == client.get("/api/v1/sessions/s2/transcript").json()


def test_session_responses_omit_unset_fields(client):
    updated = client.post(
        "/api/v1/updates",
        json=_progress("s7", {"type": "text-delta", "message": "hi", "startedAt": T0}),
    ).json()
    assert updated["session"]["conversation"] == [
        {"role": "assistant", "parts": [{"type": "text", "message": "hi", "startedAt": T0}]}
    ]

    interrupted = client.post("/api/v1/sessions/s7/interrupt", json={}).json()
    assert interrupted["conversation"] == client.get("/api/v1/sessions/s7/transcript").json()
    assert "sentAt" not in interrupted["conversation"][0]


def test_ended_turn_rejects_chunks_until_user_message(client):
    client.post(
        "/api/v1/updates",
        json=_progress("s3", {"type": "text-delta", "message": "done", "startedAt": T0}),
    )
    ended = client.post("/api/v1/updates", json={"event": "AGENT_STREAMING_ENDED", "data": {"sessionId": "s3"}})
    assert ended.status_code == 200

    late = client.post(
        "/api/v1/updates",
        json=_progress("s3", {"type": "text-delta", "message": "late", "startedAt": T1}),
    )
    assert late.status_code == 409
    assert late.json()["error"] == "SessionSealed"

    reopened = client.post("/api/v1/sessions/s3/messages", json={"message": "more please"})
    assert reopened.status_code == 200
    assert reopened.json()["sealed"] is False


def test_questions_and_tool_output(client):
    client.post(
        "/api/v1/updates",
        json=_progress(
            "s4",
            {
                "type": "tool-call",
                "toolName": "ask_question",
                "toolCallId": "call_1",
                "status": "ready",
                "input": {"questions": [{"text": "Pick one", "type": "single_choice", "options": ["a", "b"]}]},
            },
        ),
    )
    questions = client.get("/api/v1/sessions/s4/questions").json()
    assert questions["questions"] == [{"text": "Pick one", "type": "single_choice", "options": ["a", "b"]}]

    completed = client.post("/api/v1/sessions/s4/tool-output", json={"output": {"answer": "a"}})
    assert completed.status_code == 200
    part = completed.json()["conversation"][0]["parts"][0]
    assert part["status"] == "completed"
    assert part["output"] == {"answer": "a"}


def test_tool_output_precondition_violation(client):
    client.post("/api/v1/sessions/s5/messages", json={"message": "hello"})
    response = client.post("/api/v1/sessions/s5/tool-output", json={"output": {}})
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "PreconditionViolation"
    assert body["message"] == "Last message is not an assistant message"


def test_unknown_session_is_404(client):
    response = client.get("/api/v1/sessions/nope/transcript")
    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "SessionNotFound",
        "message": "Session 'nope' not found",
        "details": {"session_id": "nope"},
    }


def test_malformed_update_is_400(client):
    response = client.post("/api/v1/updates", json={"event": "AGENT_UNKNOWN", "data": {}})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidStreamingUpdate"


def test_compaction_update_replaces_transcript(client):
    client.post("/api/v1/sessions/s6/messages", json={"message": "hello"})
    response = client.post(
        "/api/v1/updates",
        json={
            "event": "AGENT_COMPACTION",
            "data": {"sessionId": "s6", "compaction": {"role": "compaction", "summary": "greeting"}},
        },
    )
    assert response.status_code == 200
    transcript = client.get("/api/v1/sessions/s6/transcript").json()
    assert [message["role"] for message in transcript] == ["user", "compaction"]
