"""
Redis 클라이언트 관리
큐(Stream), 이벤트 스트림, 결과 캐시, Rate Limit 카운터에 사용
"""
import json
from typing import Any, Awaitable, List, Optional, Tuple

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import ServiceUnavailable
from judge_pipeline.infrastructure.supervisor import ConnectionSupervisor


# 고정 윈도우 카운터: INCR + TTL 설정을 하나의 원자적 스크립트로 처리
# 새 카운터이거나 TTL이 유실된 경우에만 윈도우 길이로 만료 설정
_INCR_WINDOW_SCRIPT = """
local current = redis.call('INCR', KEYS[1])
local ttl = redis.call('TTL', KEYS[1])
if current == 1 or ttl < 0 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
    ttl = tonumber(ARGV[1])
end
return {current, ttl}
"""


class RedisClient:
    """Redis 비동기 클라이언트 래퍼"""

    def __init__(
        self,
        url: Optional[str] = None,
        max_connections: Optional[int] = None,
        ready_timeout: Optional[float] = None,
    ):
        self.url = url or settings.REDIS_URL
        self.max_connections = max_connections or settings.REDIS_MAX_CONNECTIONS
        self.ready_timeout = ready_timeout if ready_timeout is not None else settings.REDIS_READY_TIMEOUT_SECONDS
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self.supervisor = ConnectionSupervisor(
            "Redis",
            self._open,
            max_retries=settings.REDIS_RECONNECT_MAX_RETRIES,
            initial_delay=settings.REDIS_RECONNECT_INITIAL_DELAY,
            max_delay=settings.REDIS_RECONNECT_MAX_DELAY,
        )

    async def _open(self):
        """연결 풀 생성 및 연결 확인"""
        if self._client is None:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=self.max_connections,
                decode_responses=True,
            )
            self._client = redis.Redis(connection_pool=self._pool)
        # 연결 테스트
        await self._client.ping()

    async def connect(self):
        """Redis 연결 초기화"""
        await self.supervisor.start()

    async def close(self):
        """Redis 연결 종료"""
        await self.supervisor.stop()
        if self._client:
            await self._client.aclose()
        if self._pool:
            await self._pool.disconnect()
        self._client = None
        self._pool = None

    @property
    def is_ready(self) -> bool:
        return self.supervisor.is_ready

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    async def acquire(self, wait: bool = True) -> redis.Redis:
        """
        준비된 클라이언트 반환

        Args:
            wait: False면 준비되지 않았을 때 대기하지 않고 즉시 실패 (캐시/Rate Limit용)

        Raises:
            ServiceUnavailable: 연결이 준비되지 않음
        """
        if not wait and not self.supervisor.is_ready:
            raise ServiceUnavailable("Redis 연결이 준비되지 않았습니다.")
        await self.supervisor.wait_ready(self.ready_timeout)
        return self.client

    def report_failure(self, error: BaseException) -> None:
        """연결 계열 오류만 감시자에 보고"""
        if isinstance(error, (RedisConnectionError, RedisTimeoutError)):
            self.supervisor.report_failure(error)

    async def _guard(self, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except (RedisConnectionError, RedisTimeoutError) as e:
            self.report_failure(e)
            raise

    # ===== 기본 Key-Value 연산 =====

    async def get(self, key: str, wait: bool = True) -> Optional[str]:
        """키 값 조회"""
        client = await self.acquire(wait)
        return await self._guard(client.get(key))

    async def set(
        self,
        key: str,
        value: str,
        ttl_seconds: Optional[int] = None,
        wait: bool = True
    ) -> bool:
        """키 값 설정"""
        client = await self.acquire(wait)
        if ttl_seconds:
            return await self._guard(client.setex(key, ttl_seconds, value))
        return await self._guard(client.set(key, value))

    async def delete(self, *keys: str, wait: bool = True) -> int:
        """키 삭제"""
        client = await self.acquire(wait)
        return await self._guard(client.delete(*keys))

    # ===== JSON 데이터 연산 =====

    async def get_json(self, key: str, wait: bool = True) -> Optional[dict]:
        """JSON 데이터 조회"""
        data = await self.get(key, wait=wait)
        if data:
            return json.loads(data)
        return None

    async def set_json(
        self,
        key: str,
        value: dict,
        ttl_seconds: Optional[int] = None,
        wait: bool = True
    ) -> bool:
        """JSON 데이터 저장"""
        return await self.set(key, json.dumps(value, ensure_ascii=False), ttl_seconds, wait=wait)

    # ===== 고정 윈도우 카운터 =====

    async def incr_window(self, key: str, window_seconds: int, wait: bool = False) -> Tuple[int, int]:
        """
        카운터 원자적 증가

        Returns:
            (현재 카운트, 윈도우 만료까지 남은 초)
        """
        client = await self.acquire(wait)
        result: List[Any] = await self._guard(
            client.eval(_INCR_WINDOW_SCRIPT, 1, key, window_seconds)
        )
        return int(result[0]), int(result[1])
