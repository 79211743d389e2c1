from judge_pipeline.infrastructure.cache.redis_client import RedisClient
from judge_pipeline.infrastructure.cache.rate_limiter import RateLimitDecision, RateLimiter
from judge_pipeline.infrastructure.cache.result_cache import ResultCache

__all__ = [
    "RateLimitDecision",
    "RateLimiter",
    "RedisClient",
    "ResultCache",
]
