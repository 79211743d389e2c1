"""
제출 관련 스키마
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from judge_pipeline.domain.submission import SubmissionStatus


class SubmitRequest(BaseModel):
    """채점 제출 요청"""
    problemId: str = Field(..., description="문제 ID")
    language: str = Field(..., description="프로그래밍 언어 (예: python, cpp)")
    code: str = Field(..., description="소스 코드")
    contestId: Optional[str] = Field(None, description="대회 ID (없으면 연습 제출)")


class RunRequest(BaseModel):
    """실행 모드 요청 (사용자 입력으로 1회 실행)"""
    problemId: str = Field(..., description="문제 ID")
    language: str = Field(..., description="프로그래밍 언어")
    code: str = Field(..., description="소스 코드")
    stdin: str = Field("", description="표준 입력")


class SubmissionAcceptedResponse(BaseModel):
    """접수 응답 (202)"""
    submissionId: str = Field(..., description="제출 ID")
    status: SubmissionStatus = Field(..., description="제출 상태 (QUEUED)")
    createdAt: str = Field(..., description="접수 시각")


class SubmissionStatusResponse(BaseModel):
    """제출 상태"""
    submissionId: str = Field(..., description="제출 ID")
    status: SubmissionStatus = Field(..., description="제출 상태")


class SubmissionDetail(BaseModel):
    """제출 상세 (제출자 본인만 code/stdin 포함)"""
    id: str
    userId: str
    problemId: str
    contestId: Optional[str] = None
    language: str
    isRunOnly: bool = False
    status: SubmissionStatus
    score: int = 0
    time: float = Field(0.0, description="실행 시간 (초)")
    memory: int = Field(0, description="메모리 (KB)")
    stdout: str = ""
    stderr: str = ""
    compileOutput: str = ""
    testcaseResults: List[Dict[str, Any]] = Field(default_factory=list)
    createdAt: Optional[str] = None
    judgedAt: Optional[str] = None
    code: Optional[str] = None
    stdin: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class SubmissionListResponse(BaseModel):
    """제출 목록"""
    items: List[SubmissionDetail] = Field(default_factory=list)
    pagination: Pagination
