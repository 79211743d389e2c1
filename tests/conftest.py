"""
Pytest 설정 및 Fixtures
"""
import json
import sys
import asyncio
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from judge_pipeline.application.container import build_container
from judge_pipeline.core.config import settings
from judge_pipeline.domain.catalog import ContestInfo, ProblemInfo
from judge_pipeline.domain.submission import TestCaseSpec, utcnow
from judge_pipeline.infrastructure.cache.redis_client import RedisClient
from judge_pipeline.infrastructure.judge0.client import Judge0Client
from judge_pipeline.infrastructure.repositories.memory import MemoryCatalog

# Windows에서 SelectorEventLoop 사용
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# pytest-asyncio가 각 테스트마다 새로운 event loop를 생성하도록 함


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# 테스트용 환경 설정
@pytest.fixture(autouse=True)
def setup_env(monkeypatch):
    """테스트 환경 설정 (메모리 어댑터, 폴링 대기 없음)"""
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("POSTGRES_HOST", "localhost")
    monkeypatch.setenv("REDIS_HOST", "localhost")
    monkeypatch.setattr(settings, "USE_REDIS_QUEUE", False)
    monkeypatch.setattr(settings, "USE_REDIS_EVENTS", False)
    monkeypatch.setattr(settings, "USE_POSTGRES_STORE", False)
    monkeypatch.setattr(settings, "JUDGE0_POLL_INTERVAL_MS", 0)
    monkeypatch.setattr(settings, "JUDGE0_POLL_MAX_ATTEMPTS", 5)
    monkeypatch.setattr(settings, "ADMIN_API_KEY", None)


ACCEPTED_RESULT = {
    "status": {"id": 3, "description": "Accepted"},
    "time": "0.012",
    "memory": 3100,
    "stdout": "hello\n",
    "stderr": None,
    "compile_output": None,
    "message": None,
}


class FakeJudge0:
    """
    Judge0 HTTP 서버 대역 (httpx.MockTransport 핸들러)

    - POST /submissions: 요청 본문을 기록하고 tok-N 토큰 반환
    - GET /submissions/{token}: results[N-1] (없으면 default) 반환
      값이 리스트면 조회할 때마다 순서대로 반환 (마지막 값 유지)
    """

    def __init__(self):
        self.default: Dict[str, Any] = dict(ACCEPTED_RESULT)
        self.results: List[Any] = []
        self.submissions: List[Dict[str, Any]] = []
        self.polls: Dict[str, int] = {}
        self.on_submit: Optional[Callable[[Dict[str, Any]], None]] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            payload = json.loads(request.content)
            self.submissions.append(payload)
            if self.on_submit:
                self.on_submit(payload)
            return httpx.Response(201, json={"token": f"tok-{len(self.submissions)}"})

        token = request.url.path.rsplit("/", 1)[-1]
        count = self.polls.get(token, 0)
        self.polls[token] = count + 1

        index = int(token.split("-")[1]) - 1
        result = self.results[index] if index < len(self.results) else self.default
        if isinstance(result, list):
            result = result[min(count, len(result) - 1)]
        return httpx.Response(200, json=result)


@pytest.fixture
def fake_judge0():
    return FakeJudge0()


@pytest.fixture
def judge_client(fake_judge0):
    """FakeJudge0에 연결되는 Judge0Client (connect()는 테스트에서 호출)"""
    return Judge0Client(
        api_url="http://judge0.test",
        transport=httpx.MockTransport(fake_judge0),
    )


@pytest.fixture
def catalog():
    """문제/대회 시드 데이터"""
    now = utcnow()
    catalog = MemoryCatalog()
    catalog.add_problem(ProblemInfo(id="p-public"))
    catalog.add_problem(ProblemInfo(id="p-private", is_public=False))
    catalog.add_problem(ProblemInfo(id="p-small", source_limit_bytes=16))
    catalog.add_problem(ProblemInfo(
        id="p-cases",
        cpu_limit_sec=1.0,
        memory_limit_kb=65536,
        test_cases=[
            TestCaseSpec(input="1 2\n", expected_output="3\n", points=1),
            TestCaseSpec(input="2 3\n", expected_output="5\n", points=3),
        ],
    ))
    catalog.add_contest(
        ContestInfo(
            id="c-running",
            status="RUNNING",
            start_time=now - timedelta(hours=1),
            end_time=now + timedelta(hours=1),
        ),
        participants=["alice"],
        problems=["p-private"],
    )
    catalog.add_contest(
        ContestInfo(
            id="c-ended",
            status="ENDED",
            start_time=now - timedelta(hours=3),
            end_time=now - timedelta(hours=1),
        ),
        participants=["alice"],
        problems=["p-private"],
    )
    catalog.add_contest(
        ContestInfo(
            id="c-window-closed",
            status="RUNNING",
            start_time=now + timedelta(hours=1),
            end_time=now + timedelta(hours=2),
        ),
        participants=["alice"],
        problems=["p-private"],
    )
    return catalog


@pytest.fixture
def container(judge_client, catalog):
    """
    메모리 어댑터로 조립한 파이프라인

    Redis는 연결하지 않으므로 캐시는 항상 미스, Rate Limit은 허용(fail open)으로 동작합니다.
    """
    return build_container(
        redis=RedisClient(url="redis://localhost:6399/0"),
        catalog=catalog,
        judge=judge_client,
        enable_worker=False,
        enable_fanout=False,
    )
