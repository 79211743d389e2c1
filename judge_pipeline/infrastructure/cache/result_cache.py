"""
제출 결과 캐시 (read-through)

캐시는 최적화 용도일 뿐이며 정확성은 항상 영구 저장소가 보장합니다.
- 종료 상태의 결과만 캐시 (QUEUED/RUNNING은 금방 낡으므로 제외)
- 상태 키는 짧은 TTL로 별도 관리 (상태 폴링용)
- 모든 쓰기는 Outcome을 반환하고 예외를 던지지 않음
"""
import json
import logging
from typing import Optional

from redis.exceptions import RedisError

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import InfrastructureError
from judge_pipeline.domain.outcome import Outcome
from judge_pipeline.domain.submission import Submission, SubmissionStatus
from judge_pipeline.infrastructure.cache.redis_client import RedisClient


logger = logging.getLogger(__name__)


class ResultCache:
    """Redis 기반 제출 결과/상태 캐시"""

    RESULT_PREFIX = "submission:result:"
    STATUS_PREFIX = "submission:status:"

    def __init__(
        self,
        redis: RedisClient,
        result_ttl: Optional[int] = None,
        status_ttl: Optional[int] = None,
    ):
        self.redis = redis
        self.result_ttl = result_ttl or settings.RESULT_CACHE_TTL_SECONDS
        self.status_ttl = status_ttl or settings.STATUS_CACHE_TTL_SECONDS

    async def get(self, submission_id: str) -> Optional[Submission]:
        """캐시된 결과 조회 (오류는 캐시 미스로 처리)"""
        try:
            data = await self.redis.get_json(f"{self.RESULT_PREFIX}{submission_id}", wait=False)
        except (RedisError, InfrastructureError, ValueError) as e:
            logger.warning(f"[ResultCache] 결과 조회 실패 - submission: {submission_id}, error: {str(e)}")
            return None

        if not data:
            return None
        try:
            return Submission.from_dict(data)
        except (KeyError, ValueError) as e:
            logger.warning(f"[ResultCache] 손상된 캐시 항목 무시 - submission: {submission_id}, error: {str(e)}")
            return None

    async def put(self, submission: Submission, ttl: Optional[int] = None) -> Outcome:
        """종료 상태 결과 캐시"""
        if not submission.status.is_terminal:
            return Outcome(ok=False, error=f"non-terminal status not cached: {submission.status.value}")
        try:
            await self.redis.set(
                f"{self.RESULT_PREFIX}{submission.id}",
                json.dumps(submission.to_dict(), ensure_ascii=False),
                ttl_seconds=ttl or self.result_ttl,
                wait=False,
            )
            await self.redis.set(
                f"{self.STATUS_PREFIX}{submission.id}",
                submission.status.value,
                ttl_seconds=self.status_ttl,
                wait=False,
            )
        except (RedisError, InfrastructureError) as e:
            return Outcome.failure(e)
        return Outcome.success()

    async def set_status(
        self,
        submission_id: str,
        status: SubmissionStatus,
        ttl: Optional[int] = None
    ) -> Outcome:
        """상태 키 설정 (짧은 TTL)"""
        try:
            await self.redis.set(
                f"{self.STATUS_PREFIX}{submission_id}",
                status.value,
                ttl_seconds=ttl or self.status_ttl,
                wait=False,
            )
        except (RedisError, InfrastructureError) as e:
            return Outcome.failure(e)
        return Outcome.success()

    async def get_status(self, submission_id: str) -> Optional[SubmissionStatus]:
        """캐시된 상태 조회"""
        try:
            value = await self.redis.get(f"{self.STATUS_PREFIX}{submission_id}", wait=False)
        except (RedisError, InfrastructureError) as e:
            logger.warning(f"[ResultCache] 상태 조회 실패 - submission: {submission_id}, error: {str(e)}")
            return None
        if not value:
            return None
        try:
            return SubmissionStatus(value)
        except ValueError:
            return None

    async def invalidate(self, submission_id: str) -> Outcome:
        """결과/상태 키 삭제 (재채점 시)"""
        try:
            await self.redis.delete(
                f"{self.RESULT_PREFIX}{submission_id}",
                f"{self.STATUS_PREFIX}{submission_id}",
                wait=False,
            )
        except (RedisError, InfrastructureError) as e:
            return Outcome.failure(e)
        return Outcome.success()
