"""
문제/대회 테이블 모델 (읽기 전용)
problems, problem_test_cases, contests, contest_participants, contest_problems

문제와 대회는 별도 관리 서비스가 작성하며, 채점 파이프라인은 조회만 합니다.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from judge_pipeline.infrastructure.persistence.session import Base


class ProblemRecord(Base):
    """문제 테이블"""
    __tablename__ = "problems"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    source_limit_bytes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cpu_limit_sec: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    memory_limit_kb: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    test_cases: Mapped[List["ProblemTestCaseRecord"]] = relationship(
        "ProblemTestCaseRecord",
        back_populates="problem",
        order_by="ProblemTestCaseRecord.position"
    )


class ProblemTestCaseRecord(Base):
    """문제 테스트 케이스 테이블"""
    __tablename__ = "problem_test_cases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    problem_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("problems.id", ondelete="CASCADE"),
        nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    input: Mapped[str] = mapped_column(Text, nullable=False, default="")
    expected_output: Mapped[str] = mapped_column(Text, nullable=False, default="")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    problem: Mapped["ProblemRecord"] = relationship("ProblemRecord", back_populates="test_cases")


class ContestRecord(Base):
    """대회 테이블"""
    __tablename__ = "contests"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)  # UPCOMING, RUNNING, ENDED
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ContestParticipantRecord(Base):
    """대회 참가자 테이블"""
    __tablename__ = "contest_participants"

    contest_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("contests.id", ondelete="CASCADE"),
        primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)


class ContestProblemRecord(Base):
    """대회 문제 테이블"""
    __tablename__ = "contest_problems"

    contest_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("contests.id", ondelete="CASCADE"),
        primary_key=True
    )
    problem_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("problems.id", ondelete="CASCADE"),
        primary_key=True
    )
