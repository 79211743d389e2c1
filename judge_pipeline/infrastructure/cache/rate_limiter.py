"""
제출 Rate Limiter

사용자별 고정 윈도우 카운터 (Redis INCR + TTL).
여러 Intake 인스턴스가 동시에 증가시켜도 하나의 원자적 스크립트로 처리합니다.

[장애 정책]
카운터 저장소에 접근할 수 없으면 허용(fail open)합니다.
캐시 장애로 모든 제출이 막히는 것보다 한도 적용이 느슨해지는 편이 낫습니다.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from redis.exceptions import RedisError

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import InfrastructureError
from judge_pipeline.infrastructure.cache.redis_client import RedisClient


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Rate limit 판정 결과"""

    allowed: bool
    remaining: int
    reset_in_seconds: int


class RateLimiter:
    """사용자별 고정 윈도우 Rate Limiter"""

    SUBMIT_KEY_PREFIX = "ratelimit:user:"
    RUN_KEY_PREFIX = "ratelimit:run:"

    def __init__(
        self,
        redis: RedisClient,
        submit_ceiling: Optional[int] = None,
        run_ceiling: Optional[int] = None,
        window_seconds: Optional[int] = None,
    ):
        """
        Args:
            redis: Redis 클라이언트
            submit_ceiling: 윈도우당 채점 제출 한도 (기본값: settings.SUBMISSIONS_PER_MINUTE)
            run_ceiling: 윈도우당 실행(run) 요청 한도 (기본값: settings.RUNS_PER_MINUTE)
            window_seconds: 윈도우 길이 (기본값: settings.RATE_LIMIT_WINDOW_SECONDS)
        """
        self.redis = redis
        self.submit_ceiling = submit_ceiling or settings.SUBMISSIONS_PER_MINUTE
        self.run_ceiling = run_ceiling or settings.RUNS_PER_MINUTE
        self.window_seconds = window_seconds or settings.RATE_LIMIT_WINDOW_SECONDS

    async def check(self, user_id: str, run_only: bool = False) -> RateLimitDecision:
        """
        카운터 증가 후 한도 비교

        Args:
            user_id: 사용자 ID
            run_only: True면 실행(run) 한도 사용

        Returns:
            RateLimitDecision
        """
        ceiling = self.run_ceiling if run_only else self.submit_ceiling
        prefix = self.RUN_KEY_PREFIX if run_only else self.SUBMIT_KEY_PREFIX

        try:
            current, ttl = await self.redis.incr_window(f"{prefix}{user_id}", self.window_seconds)
        except (RedisError, InfrastructureError) as e:
            logger.warning(f"[RateLimiter] 카운터 저장소 접근 실패, 허용 처리 - user: {user_id}, error: {str(e)}")
            return RateLimitDecision(allowed=True, remaining=ceiling, reset_in_seconds=0)

        decision = RateLimitDecision(
            allowed=current <= ceiling,
            remaining=max(0, ceiling - current),
            reset_in_seconds=max(ttl, 1),
        )

        if not decision.allowed:
            logger.info(
                f"[RateLimiter] 한도 초과 - user: {user_id}, count: {current}/{ceiling}, "
                f"reset_in: {decision.reset_in_seconds}s"
            )
        return decision
