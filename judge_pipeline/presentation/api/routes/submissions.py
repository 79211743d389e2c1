"""
제출 API
채점 제출, 실행 모드, 결과/상태 조회, 내 제출 목록
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from judge_pipeline.application.services.intake_service import IntakeService
from judge_pipeline.application.services.submission_query_service import SubmissionQueryService
from judge_pipeline.core.security import get_current_user_id
from judge_pipeline.domain.submission import Submission, SubmissionStatus
from judge_pipeline.presentation.api.deps import get_intake_service, get_query_service
from judge_pipeline.presentation.schemas.common import ErrorResponse
from judge_pipeline.presentation.schemas.submission import (
    RunRequest,
    SubmissionAcceptedResponse,
    SubmissionDetail,
    SubmissionListResponse,
    SubmissionStatusResponse,
    SubmitRequest,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/submissions", tags=["Submissions"])


def _accepted(submission: Submission) -> SubmissionAcceptedResponse:
    return SubmissionAcceptedResponse(
        submissionId=submission.id,
        status=submission.status,
        createdAt=submission.created_at.isoformat(),
    )


@router.post(
    "",
    response_model=SubmissionAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="코드 제출",
    description="""
    코드를 채점 대기열에 추가합니다. 채점 완료를 기다리지 않고 즉시 반환합니다.

    **검증 순서:**
    1. 코드/언어 검증
    2. 제출 한도 (Rate Limit)
    3. 문제 존재 여부
    4. 대회 자격 또는 문제 공개 여부

    결과는 `GET /api/submissions/{id}` 또는 WebSocket 알림으로 확인합니다.
    """,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def create_submission(
    request: SubmitRequest,
    user_id: str = Depends(get_current_user_id),
    intake: IntakeService = Depends(get_intake_service),
) -> SubmissionAcceptedResponse:
    """코드 제출"""
    submission = await intake.create_submission(
        user_id=user_id,
        problem_id=request.problemId,
        language=request.language,
        code=request.code,
        contest_id=request.contestId,
    )
    return _accepted(submission)


@router.post(
    "/run",
    response_model=SubmissionAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="코드 실행 (채점 없음)",
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def run_code(
    request: RunRequest,
    user_id: str = Depends(get_current_user_id),
    intake: IntakeService = Depends(get_intake_service),
) -> SubmissionAcceptedResponse:
    """사용자 입력으로 1회 실행"""
    submission = await intake.run_code(
        user_id=user_id,
        problem_id=request.problemId,
        language=request.language,
        code=request.code,
        stdin=request.stdin,
    )
    return _accepted(submission)


@router.get(
    "",
    response_model=SubmissionListResponse,
    summary="내 제출 목록",
)
async def list_my_submissions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    problemId: Optional[str] = Query(None),
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    user_id: str = Depends(get_current_user_id),
    query: SubmissionQueryService = Depends(get_query_service),
) -> SubmissionListResponse:
    """내 제출 목록 (최신순)"""
    result = await query.list_user_submissions(
        user_id,
        page=page,
        limit=limit,
        problem_id=problemId,
        status=status_filter,
    )
    return SubmissionListResponse(**result)


@router.get(
    "/{submission_id}",
    response_model=SubmissionDetail,
    response_model_exclude_unset=True,
    summary="제출 결과 조회",
    responses={404: {"model": ErrorResponse}},
)
async def get_submission(
    submission_id: str,
    user_id: str = Depends(get_current_user_id),
    query: SubmissionQueryService = Depends(get_query_service),
) -> SubmissionDetail:
    """제출 상세 (본인 제출이 아니면 소스 코드 제외)"""
    data = await query.get_submission(submission_id, viewer_id=user_id)
    return SubmissionDetail(**data)


@router.get(
    "/{submission_id}/status",
    response_model=SubmissionStatusResponse,
    summary="제출 상태 조회",
    responses={404: {"model": ErrorResponse}},
)
async def get_submission_status(
    submission_id: str,
    query: SubmissionQueryService = Depends(get_query_service),
) -> SubmissionStatusResponse:
    """제출 상태 (상태 캐시 우선)"""
    current = await query.get_status(submission_id)
    return SubmissionStatusResponse(submissionId=submission_id, status=current)
