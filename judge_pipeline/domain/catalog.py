"""
문제/대회 조회 모델 (외부 CRUD 계층이 관리하는 데이터의 읽기 전용 사본)
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from judge_pipeline.domain.submission import TestCaseSpec


@dataclass
class ProblemInfo:
    """채점에 필요한 문제 정보"""

    id: str
    is_public: bool = True
    source_limit_bytes: Optional[int] = None
    cpu_limit_sec: Optional[float] = None
    memory_limit_kb: Optional[int] = None
    test_cases: List[TestCaseSpec] = field(default_factory=list)


@dataclass
class ContestInfo:
    """대회 정보"""

    id: str
    status: str  # "UPCOMING", "RUNNING", "ENDED"
    start_time: datetime
    end_time: datetime

    @property
    def is_running(self) -> bool:
        return self.status == "RUNNING"

    def is_active_at(self, now: datetime) -> bool:
        return self.start_time <= now <= self.end_time
