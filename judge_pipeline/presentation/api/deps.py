"""
API 의존성 주입
lifespan에서 조립한 ServiceContainer를 app.state에서 꺼내 사용합니다.
"""
from fastapi import Depends, Request

from judge_pipeline.application.container import ServiceContainer
from judge_pipeline.application.services.intake_service import IntakeService
from judge_pipeline.application.services.submission_query_service import SubmissionQueryService


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_intake_service(container: ServiceContainer = Depends(get_container)) -> IntakeService:
    """IntakeService 의존성 주입"""
    return container.intake


def get_query_service(container: ServiceContainer = Depends(get_container)) -> SubmissionQueryService:
    """SubmissionQueryService 의존성 주입"""
    return container.query
