"""
제출 Repository (PostgreSQL)

[역할]
- submissions 테이블 CRUD
- 상태 전이는 조건부 UPDATE로 처리 (종료 상태는 재채점 외에는 변경되지 않음)
- 작업마다 세션을 열고 닫음 (API 요청과 Worker가 같은 인스턴스를 공유)

[오류 처리]
- SQLAlchemyError, 연결 실패(OSError), 타임아웃은 StoreUnavailable로 변환
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from judge_pipeline.core.exceptions import (
    StoreUnavailable,
    SubmissionNotFound,
    SubmissionNotRejudgeable,
)
from judge_pipeline.domain.submission import (
    ExecutionResult,
    Submission,
    SubmissionStatus,
    utcnow,
)
from judge_pipeline.infrastructure.persistence.models.submissions import SubmissionRecord
from judge_pipeline.infrastructure.persistence.session import DATABASE_ERRORS, Database
from judge_pipeline.infrastructure.repositories.base import SubmissionStore


logger = logging.getLogger(__name__)

NON_TERMINAL = (SubmissionStatus.QUEUED.value, SubmissionStatus.RUNNING.value)


def to_domain(record: SubmissionRecord) -> Submission:
    """ORM 레코드 → 도메인 모델"""
    return Submission(
        id=record.id,
        user_id=record.user_id,
        problem_id=record.problem_id,
        contest_id=record.contest_id,
        language=record.language,
        code=record.code,
        stdin=record.stdin or "",
        is_run_only=record.is_run_only,
        status=SubmissionStatus(record.status),
        score=record.score,
        time=record.time,
        memory=record.memory,
        stdout=record.stdout or "",
        stderr=record.stderr or "",
        compile_output=record.compile_output or "",
        testcase_results=record.testcase_results or [],
        created_at=record.created_at,
        judged_at=record.judged_at,
    )


class SubmissionRepository(SubmissionStore):
    """제출 데이터 접근 계층"""

    def __init__(self, db: Database):
        """
        Args:
            db: Database 인스턴스 (엔진/세션 팩토리 소유)
        """
        self.db = db

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.db.session() as session:
                yield session
        except DATABASE_ERRORS as e:
            logger.error(f"[SubmissionRepository] {operation} 실패: {str(e)}", exc_info=True)
            raise StoreUnavailable(f"제출 저장소 오류 ({operation})") from e

    async def create(self, submission: Submission) -> Submission:
        """제출 레코드 생성"""
        async with self._session("create") as session:
            session.add(SubmissionRecord(
                id=submission.id,
                user_id=submission.user_id,
                problem_id=submission.problem_id,
                contest_id=submission.contest_id,
                language=submission.language,
                code=submission.code,
                stdin=submission.stdin,
                is_run_only=submission.is_run_only,
                status=submission.status.value,
                testcase_results=[],
                created_at=submission.created_at,
            ))
        return submission

    async def get(self, submission_id: str) -> Optional[Submission]:
        async with self._session("get") as session:
            record = await session.get(SubmissionRecord, submission_id)
            return to_domain(record) if record else None

    async def mark_running(self, submission_id: str) -> bool:
        """
        QUEUED/RUNNING인 경우에만 RUNNING으로 갱신

        중복 전달된 작업이 이미 채점된 결과를 덮어쓰지 않도록 조건부 UPDATE를 사용합니다.
        """
        async with self._session("mark_running") as session:
            result = await session.execute(
                update(SubmissionRecord)
                .where(
                    SubmissionRecord.id == submission_id,
                    SubmissionRecord.status.in_(NON_TERMINAL),
                )
                .values(status=SubmissionStatus.RUNNING.value)
            )
            if result.rowcount:
                return True

            exists = await session.scalar(
                select(SubmissionRecord.id).where(SubmissionRecord.id == submission_id)
            )
        if exists is None:
            raise SubmissionNotFound(details={"submissionId": submission_id})
        return False

    async def save_result(
        self,
        submission_id: str,
        result: ExecutionResult,
        judged_at: Optional[datetime] = None
    ) -> Submission:
        """최종 결과 저장 (judged_at 함께 설정)"""
        if not result.status.is_terminal:
            raise ValueError(f"종료 상태가 아닌 결과는 저장할 수 없습니다: {result.status.value}")

        async with self._session("save_result") as session:
            record = await session.get(SubmissionRecord, submission_id)
            if record is None:
                raise SubmissionNotFound(details={"submissionId": submission_id})

            record.status = result.status.value
            record.score = result.score
            record.time = result.time
            record.memory = result.memory
            record.stdout = result.stdout
            record.stderr = result.stderr
            record.compile_output = result.compile_output
            record.testcase_results = list(result.testcase_results)
            record.judged_at = judged_at or utcnow()
            await session.flush()
            return to_domain(record)

    async def reset_for_rejudge(self, submission_id: str) -> Submission:
        async with self._session("reset_for_rejudge") as session:
            record = await session.get(SubmissionRecord, submission_id, with_for_update=True)
            if record is None:
                raise SubmissionNotFound(details={"submissionId": submission_id})
            if record.status in NON_TERMINAL:
                raise SubmissionNotRejudgeable(
                    details={"submissionId": submission_id, "status": record.status}
                )

            submission = to_domain(record)
            submission.reset_for_rejudge()

            record.status = submission.status.value
            record.score = 0
            record.time = 0.0
            record.memory = 0
            record.stdout = ""
            record.stderr = ""
            record.compile_output = ""
            record.testcase_results = []
            record.judged_at = None
            return submission

    async def list_by_user(
        self,
        user_id: str,
        offset: int = 0,
        limit: int = 20,
        problem_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> Tuple[List[Submission], int]:
        conditions = [SubmissionRecord.user_id == user_id]
        if problem_id is not None:
            conditions.append(SubmissionRecord.problem_id == problem_id)
        if status is not None:
            conditions.append(SubmissionRecord.status == status.value)

        async with self._session("list_by_user") as session:
            total = await session.scalar(
                select(func.count()).select_from(SubmissionRecord).where(*conditions)
            )
            result = await session.execute(
                select(SubmissionRecord)
                .where(*conditions)
                .order_by(SubmissionRecord.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            items = [to_domain(record) for record in result.scalars().all()]
        return items, int(total or 0)
