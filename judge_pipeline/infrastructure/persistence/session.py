"""
PostgreSQL 비동기 세션 관리

Database 인스턴스가 엔진과 세션 팩토리를 소유하고 connect/close로 수명을 관리합니다.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from judge_pipeline.core.config import settings


logger = logging.getLogger(__name__)

# 저장소 장애로 취급하는 오류 (드라이버 연결 실패는 SQLAlchemyError로 감싸지지 않음)
DATABASE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class Base(DeclarativeBase):
    """ORM 모델 기본 클래스"""


class Database:
    """비동기 엔진 + 세션 팩토리"""

    def __init__(self, url: Optional[str] = None, echo: bool = False):
        self.url = url or settings.POSTGRES_URL
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    async def connect(self) -> None:
        """엔진 생성"""
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, echo=self.echo, pool_pre_ping=True)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        logger.info("[Database] PostgreSQL 엔진 생성 완료")

    async def close(self) -> None:
        """엔진 종료"""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("[Database] PostgreSQL 연결 종료")

    async def init_db(self) -> None:
        """테이블 생성 (개발 환경용, 운영은 마이그레이션 사용)"""
        from judge_pipeline.infrastructure.persistence import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("[Database] 테이블 생성 완료")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        작업 단위 세션 (성공 시 commit, 예외 시 rollback)

        사용 예:
            async with db.session() as session:
                ...
        """
        if self._session_factory is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
