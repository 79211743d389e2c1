"""
관리자 API
재채점, dead-letter 조회
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, status

from judge_pipeline.application.container import ServiceContainer
from judge_pipeline.application.services.intake_service import IntakeService
from judge_pipeline.core.security import verify_admin_api_key
from judge_pipeline.presentation.api.deps import get_container, get_intake_service
from judge_pipeline.presentation.schemas.common import ErrorResponse
from judge_pipeline.presentation.schemas.submission import SubmissionAcceptedResponse


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_api_key)],
)


@router.post(
    "/submissions/{submission_id}/rejudge",
    response_model=SubmissionAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="재채점",
    description="""
    채점이 끝난 제출을 QUEUED로 초기화하고 다시 채점합니다.
    채점 중(QUEUED/RUNNING)인 제출은 409를 반환합니다.
    """,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def rejudge_submission(
    submission_id: str,
    intake: IntakeService = Depends(get_intake_service),
) -> SubmissionAcceptedResponse:
    """재채점"""
    submission = await intake.rejudge(submission_id)
    return SubmissionAcceptedResponse(
        submissionId=submission.id,
        status=submission.status,
        createdAt=submission.created_at.isoformat(),
    )


@router.get(
    "/queue/dead-letters",
    summary="dead-letter 작업 조회",
)
async def list_dead_letters(
    limit: int = Query(100, ge=1, le=1000),
    container: ServiceContainer = Depends(get_container),
) -> Dict[str, Any]:
    """처리에 실패해 dead-letter로 이동한 작업 목록"""
    items = await container.queue.dead_letters(limit)
    return {"items": items, "count": len(items)}
