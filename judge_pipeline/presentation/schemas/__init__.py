from judge_pipeline.presentation.schemas.common import ErrorResponse, HealthResponse
from judge_pipeline.presentation.schemas.submission import (
    RunRequest,
    SubmissionAcceptedResponse,
    SubmissionDetail,
    SubmissionListResponse,
    SubmissionStatusResponse,
    SubmitRequest,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "RunRequest",
    "SubmissionAcceptedResponse",
    "SubmissionDetail",
    "SubmissionListResponse",
    "SubmissionStatusResponse",
    "SubmitRequest",
]
