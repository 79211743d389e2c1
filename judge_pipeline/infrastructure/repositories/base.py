"""
저장소 인터페이스 정의

- SubmissionStore: 제출 레코드의 영구 저장소 (채점 결과의 기준 데이터)
- CatalogReader: 문제/대회 조회 (외부 관리 데이터, 읽기 전용)
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from judge_pipeline.domain.catalog import ContestInfo, ProblemInfo
from judge_pipeline.domain.submission import ExecutionResult, Submission, SubmissionStatus


class SubmissionStore(ABC):
    """제출 저장소 인터페이스"""

    async def connect(self) -> None:
        """저장소 준비"""

    async def close(self) -> None:
        """저장소 정리"""

    @abstractmethod
    async def create(self, submission: Submission) -> Submission:
        """
        제출 저장 (QUEUED 상태)

        Raises:
            StoreUnavailable: 저장 실패
        """
        pass

    @abstractmethod
    async def get(self, submission_id: str) -> Optional[Submission]:
        pass

    @abstractmethod
    async def mark_running(self, submission_id: str) -> bool:
        """
        RUNNING으로 전이

        Returns:
            전이 여부 (이미 종료 상태면 False)

        Raises:
            SubmissionNotFound: 제출이 없음
        """
        pass

    @abstractmethod
    async def save_result(
        self,
        submission_id: str,
        result: ExecutionResult,
        judged_at: Optional[datetime] = None
    ) -> Submission:
        """
        종료 상태 결과 저장 (같은 결과를 다시 저장해도 동일한 상태)

        Raises:
            SubmissionNotFound: 제출이 없음
        """
        pass

    @abstractmethod
    async def reset_for_rejudge(self, submission_id: str) -> Submission:
        """
        재채점을 위해 QUEUED로 초기화

        Raises:
            SubmissionNotFound: 제출이 없음
            SubmissionNotRejudgeable: 종료 상태가 아님
        """
        pass

    @abstractmethod
    async def list_by_user(
        self,
        user_id: str,
        offset: int = 0,
        limit: int = 20,
        problem_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> Tuple[List[Submission], int]:
        """
        사용자 제출 목록 (최신순)

        Returns:
            (제출 목록, 전체 개수)
        """
        pass


class CatalogReader(ABC):
    """문제/대회 조회 인터페이스"""

    @abstractmethod
    async def get_problem(self, problem_id: str) -> Optional[ProblemInfo]:
        pass

    @abstractmethod
    async def get_contest(self, contest_id: str) -> Optional[ContestInfo]:
        pass

    @abstractmethod
    async def is_participant(self, contest_id: str, user_id: str) -> bool:
        pass

    @abstractmethod
    async def contest_has_problem(self, contest_id: str, problem_id: str) -> bool:
        pass
