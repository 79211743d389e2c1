"""
Redis Stream 기반 이벤트 버스 (프로덕션용)

submission_events 스트림에 이벤트를 추가(XADD)만 하며 삭제하지 않습니다.
구독자(알림 팬아웃, 분석)는 각자 XREAD로 읽기 때문에 모든 인스턴스가 모든 이벤트를 받습니다.
같은 제출의 created/finished 순서는 발행 순서(=스트림 ID 순서)로 보장됩니다.
"""
import asyncio
import json
import logging
from typing import AsyncIterator, Optional

from redis.exceptions import RedisError

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import InfrastructureError
from judge_pipeline.domain.events.adapters.base import EventBus
from judge_pipeline.domain.outcome import Outcome
from judge_pipeline.domain.submission import LifecycleEvent
from judge_pipeline.infrastructure.cache.redis_client import RedisClient


logger = logging.getLogger(__name__)


class RedisEventBus(EventBus):
    """Redis Stream 기반 이벤트 버스"""

    def __init__(
        self,
        redis: RedisClient,
        stream: Optional[str] = None,
        block_ms: int = 1000,
        batch_size: int = 100,
    ):
        self.redis = redis
        self.stream = stream or settings.EVENT_STREAM
        self.block_ms = block_ms
        self.batch_size = batch_size

    async def publish(self, event: LifecycleEvent) -> Outcome:
        """이벤트 발행 (XADD)"""
        try:
            client = await self.redis.acquire()
            await client.xadd(self.stream, {
                "type": event.type,
                "event": json.dumps(event.to_wire(), ensure_ascii=False),
            })
        except (RedisError, InfrastructureError) as e:
            self.redis.report_failure(e)
            return Outcome.failure(e)
        return Outcome.success()

    async def _latest_id(self) -> str:
        client = await self.redis.acquire()
        latest = await client.xrevrange(self.stream, count=1)
        return latest[0][0] if latest else "0-0"

    async def subscribe(self, from_beginning: bool = False) -> AsyncIterator[LifecycleEvent]:
        last_id: Optional[str] = "0-0" if from_beginning else None

        while True:
            try:
                if last_id is None:
                    last_id = await self._latest_id()
                client = await self.redis.acquire()
                response = await client.xread(
                    {self.stream: last_id},
                    count=self.batch_size,
                    block=self.block_ms,
                )
            except (RedisError, InfrastructureError) as e:
                self.redis.report_failure(e)
                logger.warning(f"[RedisEventBus] 이벤트 읽기 실패, 재시도 대기: {str(e)}")
                await asyncio.sleep(self.block_ms / 1000)
                continue

            for _, entries in response or []:
                for message_id, fields in entries:
                    last_id = message_id
                    try:
                        event = LifecycleEvent.from_wire(json.loads(fields["event"]))
                    except (KeyError, ValueError, TypeError) as e:
                        logger.error(f"[RedisEventBus] 잘못된 이벤트 무시 - id: {message_id}, error: {str(e)}")
                        continue
                    yield event
