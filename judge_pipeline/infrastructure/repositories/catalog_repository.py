"""
문제/대회 조회 Repository (PostgreSQL, 읽기 전용)
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from judge_pipeline.core.exceptions import StoreUnavailable
from judge_pipeline.domain.catalog import ContestInfo, ProblemInfo
from judge_pipeline.domain.submission import TestCaseSpec
from judge_pipeline.infrastructure.persistence.models.catalog import (
    ContestParticipantRecord,
    ContestProblemRecord,
    ContestRecord,
    ProblemRecord,
)
from judge_pipeline.infrastructure.persistence.session import DATABASE_ERRORS, Database
from judge_pipeline.infrastructure.repositories.base import CatalogReader


logger = logging.getLogger(__name__)


class CatalogRepository(CatalogReader):
    """문제/대회 데이터 접근 계층"""

    def __init__(self, db: Database):
        self.db = db

    async def get_problem(self, problem_id: str) -> Optional[ProblemInfo]:
        """문제 + 테스트 케이스 조회"""
        try:
            async with self.db.session() as session:
                result = await session.execute(
                    select(ProblemRecord)
                    .where(ProblemRecord.id == problem_id)
                    .options(selectinload(ProblemRecord.test_cases))
                )
                record = result.scalar_one_or_none()
                if record is None:
                    return None
                return ProblemInfo(
                    id=record.id,
                    is_public=record.is_public,
                    source_limit_bytes=record.source_limit_bytes,
                    cpu_limit_sec=record.cpu_limit_sec,
                    memory_limit_kb=record.memory_limit_kb,
                    test_cases=[
                        TestCaseSpec(
                            input=tc.input,
                            expected_output=tc.expected_output,
                            points=tc.points,
                        )
                        for tc in record.test_cases
                    ],
                )
        except DATABASE_ERRORS as e:
            logger.error(f"[CatalogRepository] 문제 조회 실패 - problem_id: {problem_id}, error: {str(e)}")
            raise StoreUnavailable("문제 정보를 조회할 수 없습니다.") from e

    async def get_contest(self, contest_id: str) -> Optional[ContestInfo]:
        try:
            async with self.db.session() as session:
                record = await session.get(ContestRecord, contest_id)
                if record is None:
                    return None
                return ContestInfo(
                    id=record.id,
                    status=record.status,
                    start_time=record.start_time,
                    end_time=record.end_time,
                )
        except DATABASE_ERRORS as e:
            logger.error(f"[CatalogRepository] 대회 조회 실패 - contest_id: {contest_id}, error: {str(e)}")
            raise StoreUnavailable("대회 정보를 조회할 수 없습니다.") from e

    async def is_participant(self, contest_id: str, user_id: str) -> bool:
        try:
            async with self.db.session() as session:
                record = await session.get(ContestParticipantRecord, (contest_id, user_id))
                return record is not None
        except DATABASE_ERRORS as e:
            raise StoreUnavailable("대회 참가자 정보를 조회할 수 없습니다.") from e

    async def contest_has_problem(self, contest_id: str, problem_id: str) -> bool:
        try:
            async with self.db.session() as session:
                record = await session.get(ContestProblemRecord, (contest_id, problem_id))
                return record is not None
        except DATABASE_ERRORS as e:
            raise StoreUnavailable("대회 문제 정보를 조회할 수 없습니다.") from e
