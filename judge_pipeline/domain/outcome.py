"""
부가 작업(best-effort) 결과 값

캐시 쓰기, 이벤트 발행처럼 실패해도 제출 처리가 계속되어야 하는 작업은
예외를 던지는 대신 Outcome을 반환하고, 호출자가 로그를 남긴 뒤 버립니다.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Outcome:
    """부가 작업 결과"""

    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "Outcome":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: BaseException) -> "Outcome":
        return cls(ok=False, error=f"{type(error).__name__}: {error}")
