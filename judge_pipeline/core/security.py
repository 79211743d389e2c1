"""
보안 관련 유틸리티
호출자 식별(게이트웨이 헤더), 관리자 API 키 검증
"""

from typing import Optional

from fastapi import Header

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import AuthenticationError, InvalidApiKey


USER_ID_HEADER = "X-User-Id"


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)
) -> str:
    """
    업스트림 게이트웨이가 인증 후 전달하는 사용자 ID

    인증 자체는 외부 서비스의 책임이며, 이 서비스는 헤더만 신뢰합니다.
    """
    if not x_user_id:
        raise AuthenticationError()
    return x_user_id


async def verify_admin_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> bool:
    """관리자 요청(재채점 등)의 API 키 검증"""
    if settings.ADMIN_API_KEY is None:
        # API 키가 설정되지 않은 경우 검증 스킵 (개발 환경)
        return True

    if x_api_key is None or x_api_key != settings.ADMIN_API_KEY:
        raise InvalidApiKey()
    return True
