"""
큐 시스템 테스트
"""
import asyncio
import json
import uuid

import pytest

from judge_pipeline.core.config import settings
from judge_pipeline.domain.queue.adapters.memory import MemoryQueueAdapter
from judge_pipeline.domain.queue.adapters.redis import RedisQueueAdapter
from judge_pipeline.domain.queue.factory import create_queue_adapter
from judge_pipeline.domain.submission import JudgeJob, TestCaseSpec
from judge_pipeline.infrastructure.cache.redis_client import RedisClient


def make_job(submission_id: str = "sub-1", **kwargs) -> JudgeJob:
    return JudgeJob(
        submission_id=submission_id,
        user_id=kwargs.pop("user_id", "alice"),
        problem_id=kwargs.pop("problem_id", "p-public"),
        language=kwargs.pop("language", "python"),
        source=kwargs.pop("source", "print('hello')"),
        **kwargs
    )


def test_factory_returns_memory_adapter():
    """USE_REDIS_QUEUE=False면 메모리 어댑터"""
    queue = create_queue_adapter()
    assert isinstance(queue, MemoryQueueAdapter)
    assert queue.max_deliveries == settings.JOB_MAX_DELIVERIES


def test_factory_requires_redis_client(monkeypatch):
    monkeypatch.setattr(settings, "USE_REDIS_QUEUE", True)
    with pytest.raises(ValueError):
        create_queue_adapter()


def test_job_wire_format():
    job = make_job(
        stdin="1 2",
        test_cases=[TestCaseSpec(input="1", expected_output="2", points=5)],
    )
    wire = job.to_wire()
    assert set(wire) == {
        "submissionId", "userId", "problemId", "language", "source", "stdin",
        "cpuLimitSec", "memoryLimitKb", "createdAt", "isRunOnly", "testCases",
    }
    assert wire["testCases"] == [{"input": "1", "expectedOutput": "2", "points": 5}]

    restored = JudgeJob.from_wire(json.loads(json.dumps(wire)))
    assert restored.submission_id == "sub-1"
    assert restored.test_cases[0].points == 5
    assert restored.created_at == job.created_at


def test_job_from_wire_rejects_missing_fields():
    with pytest.raises(KeyError):
        JudgeJob.from_wire({"userId": "alice"})


@pytest.mark.asyncio
async def test_memory_queue_adapter():
    """메모리 큐 어댑터: enqueue → dequeue → ack"""
    queue = MemoryQueueAdapter()

    message_id = await queue.enqueue(make_job("sub-1"))
    assert message_id.startswith("mem-")
    assert len(queue) == 1

    delivery = await queue.dequeue("worker-0", timeout=0.1)
    assert delivery is not None
    assert delivery.job.submission_id == "sub-1"
    assert delivery.attempt == 1
    assert len(queue) == 0
    assert delivery.delivery_id in queue.in_flight

    await queue.ack(delivery)
    assert queue.in_flight == {}
    assert await queue.dequeue("worker-0", timeout=0.01) is None


@pytest.mark.asyncio
async def test_memory_queue_preserves_order():
    queue = MemoryQueueAdapter()
    for i in range(3):
        await queue.enqueue(make_job(f"sub-{i}"))

    received = []
    for _ in range(3):
        delivery = await queue.dequeue("worker-0", timeout=0.1)
        received.append(delivery.job.submission_id)
        await queue.ack(delivery)

    assert received == ["sub-0", "sub-1", "sub-2"]


@pytest.mark.asyncio
async def test_memory_queue_nack_dead_letters():
    queue = MemoryQueueAdapter()
    await queue.enqueue(make_job("sub-bad"))

    delivery = await queue.dequeue("worker-0", timeout=0.1)
    await queue.nack(delivery, requeue=False, reason="unrecoverable")

    dead = await queue.dead_letters()
    assert len(dead) == 1
    assert dead[0]["reason"] == "unrecoverable"
    assert dead[0]["payload"]["submissionId"] == "sub-bad"
    assert await queue.dequeue("worker-0", timeout=0.01) is None


@pytest.mark.asyncio
async def test_memory_queue_max_deliveries():
    """재전달 횟수 초과 시 dead-letter"""
    queue = MemoryQueueAdapter(max_deliveries=2)
    await queue.enqueue(make_job("sub-retry"))

    first = await queue.dequeue("worker-0", timeout=0.1)
    await queue.nack(first, requeue=True)
    second = await queue.dequeue("worker-0", timeout=0.1)
    assert second.attempt == 2
    await queue.nack(second, requeue=True)

    assert await queue.dequeue("worker-0", timeout=0.1) is None
    dead = await queue.dead_letters()
    assert dead[0]["reason"] == "max deliveries exceeded"


@pytest.mark.asyncio
async def test_memory_queue_redelivers_unacked():
    """ack 전에 Worker가 죽으면 다시 전달"""
    queue = MemoryQueueAdapter()
    await queue.enqueue(make_job("sub-crash"))

    delivery = await queue.dequeue("worker-0", timeout=0.1)
    assert await queue.redeliver_in_flight() == 1

    redelivered = await queue.dequeue("worker-1", timeout=0.1)
    assert redelivered.job.submission_id == "sub-crash"
    assert redelivered.delivery_id == delivery.delivery_id
    assert redelivered.attempt == 2


async def _connect_redis_or_skip() -> RedisClient:
    redis = RedisClient(ready_timeout=1.0)
    try:
        await redis.connect()
    except Exception as e:
        await redis.close()
        pytest.skip(f"Redis 연결 실패: {e}")
    return redis


@pytest.mark.asyncio
async def test_redis_queue_adapter():
    """Redis 큐 어댑터 테스트 (Redis 연결 필요)"""
    redis = await _connect_redis_or_skip()
    suffix = uuid.uuid4().hex[:8]
    queue = RedisQueueAdapter(
        redis,
        stream=f"test_jobs_{suffix}",
        group="test_workers",
        dlq_stream=f"test_jobs_dlq_{suffix}",
        max_deliveries=2,
    )

    try:
        await queue.connect()
        # 컨슈머 그룹이 이미 있어도 성공
        await queue.connect()

        await queue.enqueue(make_job("sub-redis"))
        delivery = await queue.dequeue("worker-0", timeout=0.5)
        assert delivery is not None
        assert delivery.job.submission_id == "sub-redis"
        assert delivery.attempt == 1

        await queue.ack(delivery)
        assert await queue.dequeue("worker-0", timeout=0.1) is None

        # 재전달 시 전달 횟수 유지
        await queue.enqueue(make_job("sub-retry"))
        first = await queue.dequeue("worker-0", timeout=0.5)
        await queue.nack(first, requeue=True)
        second = await queue.dequeue("worker-0", timeout=0.5)
        assert second.job.submission_id == "sub-retry"
        assert second.attempt == 2
        await queue.nack(second, requeue=False, reason="gave up")

        dead = await queue.dead_letters()
        assert dead[-1]["reason"] == "gave up"
        assert dead[-1]["payload"]["submissionId"] == "sub-retry"
    finally:
        await redis.client.delete(queue.stream, queue.dlq_stream, queue.attempts_key)
        await redis.close()


@pytest.mark.asyncio
async def test_redis_queue_malformed_payload_dead_letters():
    redis = await _connect_redis_or_skip()
    suffix = uuid.uuid4().hex[:8]
    queue = RedisQueueAdapter(
        redis,
        stream=f"test_jobs_{suffix}",
        group="test_workers",
        dlq_stream=f"test_jobs_dlq_{suffix}",
    )

    try:
        await queue.connect()
        await redis.client.xadd(queue.stream, {"payload": "{not json"})

        assert await queue.dequeue("worker-0", timeout=0.5) is None

        dead = await queue.dead_letters()
        assert len(dead) == 1
        assert dead[0]["reason"].startswith("malformed payload")
        # 원본 메시지는 작업 스트림에서 제거됨
        assert await redis.client.xlen(queue.stream) == 0
    finally:
        await redis.client.delete(queue.stream, queue.dlq_stream, queue.attempts_key)
        await redis.close()


@pytest.mark.asyncio
async def test_memory_queue_records_touch():
    queue = MemoryQueueAdapter()
    await queue.enqueue(make_job())
    delivery = await queue.dequeue("worker-0", timeout=0.1)

    await queue.touch(delivery)
    await queue.touch(delivery)

    assert delivery.consumer == "worker-0"
    assert queue.touches[delivery.delivery_id] == 2


@pytest.mark.asyncio
async def test_redis_queue_touch_defers_reclaim():
    """touch한 작업은 visibility timeout이 다시 시작되어 다른 Worker가 회수하지 않음"""
    redis = await _connect_redis_or_skip()
    suffix = uuid.uuid4().hex[:8]
    queue = RedisQueueAdapter(
        redis,
        stream=f"test_jobs_{suffix}",
        group="test_workers",
        dlq_stream=f"test_jobs_dlq_{suffix}",
        visibility_timeout=1,
    )

    try:
        await queue.connect()
        await queue.enqueue(make_job("sub-long"))
        delivery = await queue.dequeue("worker-0", timeout=0.5)
        assert delivery.consumer == "worker-0"

        await asyncio.sleep(0.7)
        await queue.touch(delivery)
        await asyncio.sleep(0.7)

        # 최초 전달 후 1초가 지났지만 touch 이후로는 1초가 지나지 않음
        assert await queue.dequeue("worker-1", timeout=0.1) is None

        await asyncio.sleep(0.5)
        reclaimed = await queue.dequeue("worker-1", timeout=0.1)
        assert reclaimed.job.submission_id == "sub-long"
        assert reclaimed.attempt == 2
    finally:
        await redis.client.delete(queue.stream, queue.dlq_stream, queue.attempts_key)
        await redis.close()
