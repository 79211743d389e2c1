"""
제출 테이블 모델
submissions
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from judge_pipeline.domain.submission import utcnow
from judge_pipeline.infrastructure.persistence.session import Base


class SubmissionRecord(Base):
    """제출 테이블"""
    __tablename__ = "submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    problem_id: Mapped[str] = mapped_column(String(64), nullable=False)
    contest_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    language: Mapped[str] = mapped_column(String(32), nullable=False)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    stdin: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_run_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # 채점 결과
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="QUEUED")
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # seconds
    memory: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # KB
    stdout: Mapped[str] = mapped_column(Text, nullable=False, default="")
    stderr: Mapped[str] = mapped_column(Text, nullable=False, default="")
    compile_output: Mapped[str] = mapped_column(Text, nullable=False, default="")
    testcase_results: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow
    )
    judged_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    __table_args__ = (
        Index("ix_submissions_user_created", "user_id", "created_at"),
        Index("ix_submissions_problem", "problem_id"),
    )
