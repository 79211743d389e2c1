"""
제출/관리자 API 테스트

lifespan 대신 테스트용 ServiceContainer를 app.state에 직접 주입합니다.
"""
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import QueueUnavailable
from judge_pipeline.domain.submission import ExecutionResult, SubmissionStatus
from judge_pipeline.infrastructure.cache.rate_limiter import RateLimitDecision
from judge_pipeline.main import app


ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


@asynccontextmanager
async def api_client(container):
    app.state.container = container
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def submit(client, problem_id="p-public", headers=ALICE, **extra):
    body = {"problemId": problem_id, "language": "python", "code": "print('hello')"}
    body.update(extra)
    return await client.post("/api/submissions", json=body, headers=headers)


@pytest.mark.asyncio
async def test_create_submission_returns_202(container):
    async with api_client(container) as client:
        response = await submit(client)

    assert response.status_code == 202
    data = response.json()
    assert data["status"] == "QUEUED"
    assert data["createdAt"]
    assert data["submissionId"] in container.store.submissions
    assert len(container.queue) == 1


@pytest.mark.asyncio
async def test_create_submission_requires_user_header(container):
    async with api_client(container) as client:
        response = await submit(client, headers={})

    assert response.status_code == 401
    assert response.json()["error"] is True
    assert response.json()["error_code"] == "UNAUTHENTICATED"
    assert container.store.submissions == {}


@pytest.mark.asyncio
async def test_request_validation_error(container):
    async with api_client(container) as client:
        response = await client.post("/api/submissions", json={"language": "python"}, headers=ALICE)

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, status_code, error_code",
    [
        ({"code": ""}, 400, "CODE_REQUIRED"),
        ({"language": "cobol"}, 400, "UNSUPPORTED_LANGUAGE"),
        ({"problemId": "missing"}, 404, "PROBLEM_NOT_FOUND"),
        ({"problemId": "p-private"}, 403, "PROBLEM_NOT_PUBLIC"),
        ({"problemId": "p-private", "contestId": "c-ended"}, 400, "CONTEST_NOT_RUNNING"),
    ],
)
async def test_admission_errors_use_error_envelope(container, body, status_code, error_code):
    async with api_client(container) as client:
        response = await submit(client, **body)

    assert response.status_code == status_code
    data = response.json()
    assert data["error"] is True
    assert data["error_code"] == error_code
    assert data["error_message"]
    assert len(container.queue) == 0


@pytest.mark.asyncio
async def test_rate_limited_submission_returns_retry_after(container):
    container.rate_limiter.check = AsyncMock(
        return_value=RateLimitDecision(allowed=False, remaining=0, reset_in_seconds=42)
    )

    async with api_client(container) as client:
        response = await submit(client)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "42"
    assert response.json()["details"] == {"remaining": 0, "resetInSeconds": 42}


@pytest.mark.asyncio
async def test_queue_outage_returns_503(container):
    container.queue.enqueue = AsyncMock(side_effect=QueueUnavailable())

    async with api_client(container) as client:
        response = await submit(client)

    assert response.status_code == 503
    assert response.json()["error"] is True


@pytest.mark.asyncio
async def test_run_code(container):
    async with api_client(container) as client:
        response = await client.post(
            "/api/submissions/run",
            json={"problemId": "p-public", "language": "python", "code": "print(input())", "stdin": "hi"},
            headers=BOB,
        )

    assert response.status_code == 202
    stored = container.store.submissions[response.json()["submissionId"]]
    assert stored.is_run_only
    assert stored.stdin == "hi"


@pytest.mark.asyncio
async def test_submission_detail_hides_source_from_others(container):
    async with api_client(container) as client:
        submission_id = (await submit(client)).json()["submissionId"]

        own = await client.get(f"/api/submissions/{submission_id}", headers=ALICE)
        other = await client.get(f"/api/submissions/{submission_id}", headers=BOB)

    assert own.status_code == 200
    assert own.json()["code"] == "print('hello')"
    assert own.json()["status"] == "QUEUED"
    assert own.json()["judgedAt"] is None

    assert other.status_code == 200
    assert "code" not in other.json()
    assert "stdin" not in other.json()
    assert other.json()["userId"] == "alice"


@pytest.mark.asyncio
async def test_submission_not_found(container):
    async with api_client(container) as client:
        response = await client.get("/api/submissions/missing", headers=ALICE)

    assert response.status_code == 404
    assert response.json()["error_code"] == "SUBMISSION_NOT_FOUND"


@pytest.mark.asyncio
async def test_submission_status(container):
    async with api_client(container) as client:
        submission_id = (await submit(client)).json()["submissionId"]
        await container.store.save_result(submission_id, ExecutionResult(status=SubmissionStatus.ACCEPTED, score=100))

        response = await client.get(f"/api/submissions/{submission_id}/status", headers=ALICE)

    assert response.status_code == 200
    assert response.json() == {"submissionId": submission_id, "status": "ACCEPTED"}


@pytest.mark.asyncio
async def test_list_my_submissions_paginates(container):
    async with api_client(container) as client:
        for _ in range(3):
            await submit(client)
        await submit(client, headers=BOB)

        first_page = await client.get("/api/submissions?page=1&limit=2", headers=ALICE)
        second_page = await client.get("/api/submissions?page=2&limit=2", headers=ALICE)

    assert first_page.status_code == 200
    assert len(first_page.json()["items"]) == 2
    assert first_page.json()["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
    assert len(second_page.json()["items"]) == 1
    assert all(item["userId"] == "alice" for item in first_page.json()["items"])


@pytest.mark.asyncio
async def test_list_filters_by_status(container):
    async with api_client(container) as client:
        submission_id = (await submit(client)).json()["submissionId"]
        await submit(client)
        await container.store.save_result(submission_id, ExecutionResult(status=SubmissionStatus.WRONG_ANSWER))

        response = await client.get("/api/submissions?status=WRONG_ANSWER", headers=ALICE)

    [item] = response.json()["items"]
    assert item["id"] == submission_id


@pytest.mark.asyncio
async def test_rejudge(container):
    async with api_client(container) as client:
        submission_id = (await submit(client)).json()["submissionId"]

        in_progress = await client.post(f"/api/admin/submissions/{submission_id}/rejudge")

        await container.store.save_result(submission_id, ExecutionResult(status=SubmissionStatus.WRONG_ANSWER))
        rejudged = await client.post(f"/api/admin/submissions/{submission_id}/rejudge")
        missing = await client.post("/api/admin/submissions/missing/rejudge")

    assert in_progress.status_code == 409
    assert in_progress.json()["error_code"] == "SUBMISSION_NOT_REJUDGEABLE"
    assert rejudged.status_code == 202
    assert rejudged.json()["status"] == "QUEUED"
    assert container.store.submissions[submission_id].status == SubmissionStatus.QUEUED
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_admin_requires_api_key_when_configured(container, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "secret")

    async with api_client(container) as client:
        rejected = await client.get("/api/admin/queue/dead-letters")
        wrong_key = await client.get("/api/admin/queue/dead-letters", headers={"X-API-Key": "nope"})
        accepted = await client.get("/api/admin/queue/dead-letters", headers={"X-API-Key": "secret"})

    assert rejected.status_code == 401
    assert rejected.json() == {
        "error": True,
        "error_code": "INVALID_API_KEY",
        "error_message": "API 키가 없거나 올바르지 않습니다.",
        "details": {},
    }
    assert wrong_key.status_code == 401
    assert wrong_key.json()["error_code"] == "INVALID_API_KEY"
    assert accepted.status_code == 200
    assert accepted.json() == {"items": [], "count": 0}


@pytest.mark.asyncio
async def test_health_reports_degraded_without_redis(container):
    async with api_client(container) as client:
        response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["redis"] is False
    assert data["service"] == settings.APP_NAME


def test_websocket_greets_and_answers_ping(container):
    app.state.container = container
    client = TestClient(app)

    with client.websocket_connect("/ws/submissions", headers=ALICE) as websocket:
        assert websocket.receive_json() == {"type": "connected", "userId": "alice"}
        assert container.connections.connection_count("alice") == 1
        websocket.send_text("ping")
        assert websocket.receive_json() == {"type": "pong"}


def test_websocket_without_user_header_is_rejected(container):
    app.state.container = container
    client = TestClient(app)

    # 쿼리 파라미터로는 사용자를 지정할 수 없음
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/submissions?userId=alice"):
            pass

    assert exc_info.value.code == 1008
    assert container.connections.connection_count("alice") == 0
