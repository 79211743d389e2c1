"""
제출 조회 서비스

조회 순서: 결과 캐시 → PostgreSQL
캐시에는 종료 상태의 결과만 저장합니다 (진행 중 상태는 짧은 TTL의 상태 키만 사용).
"""
import logging
import math
from typing import Any, Dict, Optional

from judge_pipeline.core.exceptions import SubmissionNotFound
from judge_pipeline.domain.submission import Submission, SubmissionStatus
from judge_pipeline.infrastructure.cache.result_cache import ResultCache
from judge_pipeline.infrastructure.repositories.base import SubmissionStore


logger = logging.getLogger(__name__)


class SubmissionQueryService:
    """제출 조회 서비스"""

    def __init__(self, store: SubmissionStore, cache: ResultCache):
        self.store = store
        self.cache = cache

    async def _load(self, submission_id: str) -> Submission:
        submission = await self.cache.get(submission_id)
        if submission is not None:
            return submission

        submission = await self.store.get(submission_id)
        if submission is None:
            raise SubmissionNotFound(details={"submissionId": submission_id})

        if submission.status.is_terminal:
            outcome = await self.cache.put(submission)
            if not outcome.ok:
                logger.warning(f"[SubmissionQuery] 결과 캐시 실패 - submission: {submission_id}, error: {outcome.error}")
        return submission

    async def get_submission(self, submission_id: str, viewer_id: Optional[str]) -> Dict[str, Any]:
        """
        제출 상세 조회

        Args:
            submission_id: 제출 ID
            viewer_id: 조회자 ID (제출자 본인이 아니면 소스 코드/입력 제외)
        """
        submission = await self._load(submission_id)
        return submission.to_dict(include_source=viewer_id == submission.user_id)

    async def get_status(self, submission_id: str) -> SubmissionStatus:
        """제출 상태 조회 (상태 캐시 → 저장소)"""
        status = await self.cache.get_status(submission_id)
        if status is not None:
            return status
        return (await self._load(submission_id)).status

    async def list_user_submissions(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        problem_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> Dict[str, Any]:
        """
        사용자 제출 목록 (최신순, 페이지네이션)

        Returns:
            {"items": [...], "pagination": {"page", "limit", "total", "totalPages"}}
        """
        page = max(page, 1)
        limit = max(limit, 1)
        items, total = await self.store.list_by_user(
            user_id,
            offset=(page - 1) * limit,
            limit=limit,
            problem_id=problem_id,
            status=status,
        )
        return {
            "items": [s.to_dict(include_source=False) for s in items],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if total else 0,
            },
        }
