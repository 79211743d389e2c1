"""
공통 스키마
"""
from typing import Any, Dict

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """에러 응답"""
    error: bool = Field(True, description="에러 여부")
    error_code: str = Field(..., description="에러 코드")
    error_message: str = Field(..., description="에러 메시지")
    details: Dict[str, Any] = Field(default_factory=dict, description="상세 정보")


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str = Field(..., description="healthy 또는 degraded")
    service: str
    version: str
    redis: bool = Field(..., description="Redis 연결 준비 여부")
