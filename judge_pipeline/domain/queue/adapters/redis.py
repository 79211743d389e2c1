"""
Redis Stream 기반 큐 어댑터 (프로덕션용)

[구조]
- judge_jobs: 작업 스트림 (XADD), 컨슈머 그룹으로 Worker들이 분배 소비 (XREADGROUP)
- judge_jobs_dlq: dead-letter 스트림
- judge_jobs:attempts: 메시지별 전달 횟수 (HINCRBY)

[전달 보장]
- ack 전까지 메시지는 컨슈머 그룹의 pending 목록에 남음
- 처리 중인 Worker는 touch(XCLAIM JUSTID)로 idle 시간을 주기적으로 초기화
- visibility timeout 이상 방치된 pending 메시지는 다른 Worker가 회수(XAUTOCLAIM)하여 재전달
- 최대 전달 횟수를 넘긴 메시지, 파싱할 수 없는 메시지는 dead-letter 스트림으로 이동
- 스트림은 Redis 영속화(AOF) 설정에 따라 브로커 재시작 후에도 유지됨
"""
import json
import logging
from typing import Any, Awaitable, Dict, List, Optional

from redis.exceptions import RedisError, ResponseError

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import QueueUnavailable
from judge_pipeline.domain.queue.adapters.base import JobDelivery, QueueAdapter
from judge_pipeline.domain.submission import JudgeJob, utcnow
from judge_pipeline.infrastructure.cache.redis_client import RedisClient


logger = logging.getLogger(__name__)


class RedisQueueAdapter(QueueAdapter):
    """Redis Stream 기반 큐 (프로덕션용)"""

    def __init__(
        self,
        redis: RedisClient,
        stream: Optional[str] = None,
        group: Optional[str] = None,
        dlq_stream: Optional[str] = None,
        visibility_timeout: Optional[int] = None,
        max_deliveries: Optional[int] = None,
    ):
        """
        Args:
            redis: Redis 클라이언트 인스턴스
            stream: 작업 스트림 이름 (기본값: settings.JUDGE_QUEUE_STREAM)
            group: 컨슈머 그룹 이름 (기본값: settings.JUDGE_QUEUE_GROUP)
            dlq_stream: dead-letter 스트림 이름 (기본값: settings.JUDGE_DLQ_STREAM)
            visibility_timeout: pending 메시지 회수 기준 (초)
            max_deliveries: 최대 전달 횟수
        """
        self.redis = redis
        self.stream = stream or settings.JUDGE_QUEUE_STREAM
        self.group = group or settings.JUDGE_QUEUE_GROUP
        self.dlq_stream = dlq_stream or settings.JUDGE_DLQ_STREAM
        self.attempts_key = f"{self.stream}:attempts"
        self.visibility_timeout = visibility_timeout or settings.JOB_VISIBILITY_TIMEOUT_SECONDS
        self.max_deliveries = max_deliveries or settings.JOB_MAX_DELIVERIES

    async def _call(self, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except RedisError as e:
            self.redis.report_failure(e)
            logger.error(f"[RedisQueue] Redis 명령 실패: {str(e)}")
            raise QueueUnavailable(f"작업 큐에 접근할 수 없습니다: {str(e)}") from e

    async def connect(self) -> None:
        """스트림과 컨슈머 그룹 생성 (이미 있으면 그대로 사용)"""
        client = await self.redis.acquire()
        try:
            await client.xgroup_create(self.stream, self.group, id="0", mkstream=True)
            logger.info(f"[RedisQueue] 컨슈머 그룹 생성 - stream: {self.stream}, group: {self.group}")
        except ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise QueueUnavailable(f"컨슈머 그룹 생성 실패: {str(e)}") from e
        except RedisError as e:
            self.redis.report_failure(e)
            raise QueueUnavailable(f"컨슈머 그룹 생성 실패: {str(e)}") from e

    async def enqueue(self, job: JudgeJob) -> str:
        """작업 스트림에 추가 (XADD)"""
        client = await self.redis.acquire()
        payload = json.dumps(job.to_wire(), ensure_ascii=False)
        message_id = await self._call(client.xadd(self.stream, {"payload": payload}))
        logger.info(f"[RedisQueue] 작업 추가 - submission: {job.submission_id}, message: {message_id}")
        return message_id

    async def dequeue(self, consumer: str, timeout: float = 1.0) -> Optional[JobDelivery]:
        """
        작업 1건 가져오기

        1. visibility timeout을 넘긴 pending 메시지 회수 (장애 Worker의 작업 재전달)
        2. 없으면 새 메시지를 최대 timeout 동안 블로킹 대기
        """
        client = await self.redis.acquire()

        claimed = await self._call(client.xautoclaim(
            self.stream,
            self.group,
            consumer,
            min_idle_time=self.visibility_timeout * 1000,
            start_id="0-0",
            count=1,
        ))
        entries = claimed[1] if claimed and len(claimed) > 1 else []

        if not entries:
            response = await self._call(client.xreadgroup(
                self.group,
                consumer,
                {self.stream: ">"},
                count=1,
                block=max(int(timeout * 1000), 1),
            ))
            if not response:
                return None
            _, entries = response[0]

        if not entries:
            return None

        message_id, fields = entries[0]
        return await self._to_delivery(message_id, fields, consumer)

    async def _to_delivery(
        self,
        message_id: str,
        fields: Optional[Dict[str, str]],
        consumer: str,
    ) -> Optional[JobDelivery]:
        client = await self.redis.acquire()

        if not fields:
            # pending 목록에는 남아 있으나 본문이 삭제된 메시지
            await self._call(client.xack(self.stream, self.group, message_id))
            return None

        raw_payload = fields.get("payload", "")
        attempt = int(await self._call(client.hincrby(self.attempts_key, message_id, 1)))

        try:
            job = JudgeJob.from_wire(json.loads(raw_payload))
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"[RedisQueue] 잘못된 작업 메시지 - message: {message_id}, error: {str(e)}")
            await self._dead_letter(message_id, raw_payload, f"malformed payload: {str(e)}", attempt)
            return None

        if attempt > self.max_deliveries:
            logger.warning(
                f"[RedisQueue] 최대 전달 횟수 초과 - submission: {job.submission_id}, attempts: {attempt}"
            )
            await self._dead_letter(message_id, raw_payload, "max deliveries exceeded", attempt)
            return None

        return JobDelivery(delivery_id=message_id, job=job, attempt=attempt, consumer=consumer)

    async def touch(self, delivery: JobDelivery) -> None:
        """pending 메시지의 idle 시간 초기화 (XCLAIM JUSTID, 전달 횟수 변화 없음)"""
        client = await self.redis.acquire()
        await self._call(client.xclaim(
            self.stream,
            self.group,
            delivery.consumer or "worker",
            min_idle_time=0,
            message_ids=[delivery.delivery_id],
            justid=True,
        ))

    async def ack(self, delivery: JobDelivery) -> None:
        """처리 완료 (XACK + 스트림에서 삭제)"""
        await self._remove(delivery.delivery_id)

    async def nack(
        self,
        delivery: JobDelivery,
        requeue: bool = False,
        reason: Optional[str] = None
    ) -> None:
        """처리 실패"""
        payload = json.dumps(delivery.job.to_wire(), ensure_ascii=False)

        if requeue:
            client = await self.redis.acquire()
            async with client.pipeline(transaction=True) as pipe:
                pipe.xadd(self.stream, {"payload": payload})
                pipe.xack(self.stream, self.group, delivery.delivery_id)
                pipe.xdel(self.stream, delivery.delivery_id)
                pipe.hdel(self.attempts_key, delivery.delivery_id)
                results = await self._call(pipe.execute())
            # 전달 횟수는 새 메시지로 이어서 집계
            await self._call(client.hset(self.attempts_key, results[0], delivery.attempt))
            logger.info(f"[RedisQueue] 작업 재전달 - submission: {delivery.job.submission_id}")
            return

        await self._dead_letter(delivery.delivery_id, payload, reason or "rejected", delivery.attempt)

    async def dead_letters(self, limit: int = 100) -> List[Dict[str, Any]]:
        """dead-letter 스트림 조회"""
        client = await self.redis.acquire()
        entries = await self._call(client.xrange(self.dlq_stream, count=limit))
        items = []
        for message_id, fields in entries:
            item = dict(fields)
            item["dlqId"] = message_id
            try:
                item["payload"] = json.loads(fields.get("payload", ""))
            except ValueError:
                pass
            items.append(item)
        return items

    async def _dead_letter(self, message_id: str, raw_payload: str, reason: str, attempt: int) -> None:
        client = await self.redis.acquire()
        await self._call(client.xadd(self.dlq_stream, {
            "messageId": message_id,
            "payload": raw_payload,
            "reason": reason,
            "attempts": str(attempt),
            "deadLetteredAt": utcnow().isoformat(),
        }))
        await self._remove(message_id)
        logger.warning(f"[RedisQueue] dead-letter 이동 - message: {message_id}, reason: {reason}")

    async def _remove(self, message_id: str) -> None:
        client = await self.redis.acquire()
        async with client.pipeline(transaction=True) as pipe:
            pipe.xack(self.stream, self.group, message_id)
            pipe.xdel(self.stream, message_id)
            pipe.hdel(self.attempts_key, message_id)
            await self._call(pipe.execute())
