"""
결과 캐시 테스트
"""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from judge_pipeline.core.exceptions import ServiceUnavailable
from judge_pipeline.domain.submission import ExecutionResult, Submission, SubmissionStatus
from judge_pipeline.infrastructure.cache.redis_client import RedisClient
from judge_pipeline.infrastructure.cache.result_cache import ResultCache


def make_submission(status: SubmissionStatus = SubmissionStatus.QUEUED) -> Submission:
    submission = Submission(
        id="sub-1",
        user_id="alice",
        problem_id="p-public",
        language="python",
        code="print(1)",
    )
    if status.is_terminal:
        submission.apply_result(ExecutionResult(status=status, score=100 if status == SubmissionStatus.ACCEPTED else 0))
    else:
        submission.status = status
    return submission


def make_cache() -> ResultCache:
    redis = MagicMock()
    redis.get_json = AsyncMock(return_value=None)
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=2)
    return ResultCache(redis, result_ttl=3600, status_ttl=300)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [SubmissionStatus.QUEUED, SubmissionStatus.RUNNING])
async def test_put_refuses_non_terminal(status):
    cache = make_cache()

    outcome = await cache.put(make_submission(status))

    assert not outcome.ok
    cache.redis.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_put_terminal_writes_result_and_status():
    cache = make_cache()

    outcome = await cache.put(make_submission(SubmissionStatus.ACCEPTED))

    assert outcome.ok
    calls = cache.redis.set.await_args_list
    assert calls[0].args[0] == "submission:result:sub-1"
    assert json.loads(calls[0].args[1])["status"] == "ACCEPTED"
    assert calls[0].kwargs["ttl_seconds"] == 3600
    assert calls[1].args[:2] == ("submission:status:sub-1", "ACCEPTED")
    assert calls[1].kwargs["ttl_seconds"] == 300


@pytest.mark.asyncio
async def test_get_restores_submission():
    cache = make_cache()
    cached = make_submission(SubmissionStatus.WRONG_ANSWER)
    cache.redis.get_json.return_value = cached.to_dict()

    submission = await cache.get("sub-1")

    assert submission.status == SubmissionStatus.WRONG_ANSWER
    assert submission.code == "print(1)"
    assert submission.judged_at == cached.judged_at


@pytest.mark.asyncio
async def test_errors_are_misses_and_failed_outcomes():
    cache = make_cache()
    cache.redis.get_json.side_effect = RedisConnectionError("down")
    cache.redis.get.side_effect = ServiceUnavailable()
    cache.redis.set.side_effect = ServiceUnavailable()
    cache.redis.delete.side_effect = RedisConnectionError("down")

    assert await cache.get("sub-1") is None
    assert await cache.get_status("sub-1") is None
    assert not (await cache.set_status("sub-1", SubmissionStatus.RUNNING)).ok
    assert not (await cache.put(make_submission(SubmissionStatus.ACCEPTED))).ok
    assert not (await cache.invalidate("sub-1")).ok


@pytest.mark.asyncio
async def test_get_status_ignores_unknown_value():
    cache = make_cache()
    cache.redis.get.return_value = "SOMETHING_ELSE"
    assert await cache.get_status("sub-1") is None

    cache.redis.get.return_value = "RUNNING"
    assert await cache.get_status("sub-1") == SubmissionStatus.RUNNING


@pytest.mark.asyncio
async def test_unconnected_redis_is_cache_miss():
    """연결되지 않은 Redis는 대기하지 않고 캐시 미스"""
    cache = ResultCache(RedisClient(url="redis://localhost:6399/0"))

    assert await cache.get("sub-1") is None
    assert not (await cache.set_status("sub-1", SubmissionStatus.QUEUED)).ok
