"""
ORM 모델 모듈 (Base.metadata 등록)
"""
from judge_pipeline.infrastructure.persistence.models.catalog import (
    ContestParticipantRecord,
    ContestProblemRecord,
    ContestRecord,
    ProblemRecord,
    ProblemTestCaseRecord,
)
from judge_pipeline.infrastructure.persistence.models.submissions import SubmissionRecord

__all__ = [
    "ContestParticipantRecord",
    "ContestProblemRecord",
    "ContestRecord",
    "ProblemRecord",
    "ProblemTestCaseRecord",
    "SubmissionRecord",
]
