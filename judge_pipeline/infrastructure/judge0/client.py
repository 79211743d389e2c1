"""
Judge0 API 클라이언트
코드 제출, 결과 폴링, 상태 매핑
"""
import httpx
import asyncio
import logging
from typing import Optional, Dict, Any

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import (
    JudgeTimeout,
    JudgeUnavailable,
    MalformedJudgeResponse,
    UnsupportedLanguage,
)
from judge_pipeline.domain.submission import SubmissionStatus


logger = logging.getLogger(__name__)


# Judge0 상태 ID
# 1: In Queue, 2: Processing, 3: Accepted, 4: Wrong Answer, 5: Time Limit Exceeded,
# 6: Compilation Error, 7-12: Runtime Error (SIGSEGV, SIGXFSZ, SIGFPE, SIGABRT, NZEC, Other),
# 13: Internal Error, 14: Exec Format Error
JUDGE0_STATUS_IN_QUEUE = 1
JUDGE0_STATUS_PROCESSING = 2
JUDGE0_STATUS_ACCEPTED = 3

JUDGE0_STATUS_MAP = {
    1: SubmissionStatus.QUEUED,
    2: SubmissionStatus.RUNNING,
    3: SubmissionStatus.ACCEPTED,
    4: SubmissionStatus.WRONG_ANSWER,
    5: SubmissionStatus.TIME_LIMIT_EXCEEDED,
    6: SubmissionStatus.COMPILE_ERROR,
    7: SubmissionStatus.RUNTIME_ERROR,
    8: SubmissionStatus.RUNTIME_ERROR,
    9: SubmissionStatus.RUNTIME_ERROR,
    10: SubmissionStatus.RUNTIME_ERROR,
    11: SubmissionStatus.RUNTIME_ERROR,
    12: SubmissionStatus.RUNTIME_ERROR,
    13: SubmissionStatus.FAILED,
    14: SubmissionStatus.FAILED,
}


def parse_time(value: Any) -> float:
    """실행 시간 파싱 (숫자가 아니거나 없으면 0)"""
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_memory(value: Any) -> int:
    """메모리(KB) 파싱 (숫자가 아니거나 없으면 0)"""
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def get_status_id(result: Dict[str, Any]) -> int:
    """Judge0 응답에서 상태 ID 추출"""
    status = result.get("status")
    if not isinstance(status, dict) or "id" not in status:
        raise MalformedJudgeResponse(f"Judge0 응답에 status가 없습니다: {result}")
    try:
        return int(status["id"])
    except (TypeError, ValueError):
        raise MalformedJudgeResponse(f"Judge0 status id 형식 오류: {status}")


class Judge0Client:
    """Judge0 API 클라이언트"""

    # 언어 ID 매핑
    LANGUAGE_IDS = {
        "javascript": 63,  # Node.js
        "python": 71,  # Python 3
        "java": 62,  # OpenJDK 13
        "cpp": 54,  # GCC 9.2.0
        "c": 50,  # GCC 9.2.0
        "csharp": 51,  # Mono 6.6.0.161
        "go": 60,
        "rust": 73,
        "typescript": 74,
        "kotlin": 78,
        "swift": 83,
        "ruby": 72,
        "php": 68,
    }

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        use_rapidapi: Optional[bool] = None,
        rapidapi_host: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_url: Judge0 API URL (기본값: settings.JUDGE0_API_URL)
            api_key: Judge0 API Key (기본값: settings.JUDGE0_API_KEY)
            use_rapidapi: RapidAPI 사용 여부 (기본값: settings.JUDGE0_USE_RAPIDAPI)
            rapidapi_host: RapidAPI Host (기본값: settings.JUDGE0_RAPIDAPI_HOST)
            timeout: HTTP 요청 타임아웃 (초)
            transport: httpx transport (테스트에서 MockTransport 주입)
        """
        self.api_url = (api_url or settings.JUDGE0_API_URL).rstrip('/')
        self.api_key = api_key or settings.JUDGE0_API_KEY
        self.use_rapidapi = use_rapidapi if use_rapidapi is not None else settings.JUDGE0_USE_RAPIDAPI
        self.rapidapi_host = rapidapi_host or settings.JUDGE0_RAPIDAPI_HOST
        self.timeout = timeout or settings.JUDGE0_HTTP_TIMEOUT_SECONDS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def connect(self):
        """HTTP 클라이언트 생성"""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self):
        """클라이언트 종료"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Judge0 client not initialized. Call connect() first.")
        return self._client

    def get_language_id(self, language: str) -> int:
        """
        언어 이름을 Judge0 언어 ID로 변환

        Raises:
            UnsupportedLanguage: 지원하지 않는 언어
        """
        language_id = self.LANGUAGE_IDS.get((language or "").lower())
        if language_id is None:
            raise UnsupportedLanguage(
                f"지원하지 않는 언어입니다: {language}",
                details={"language": language, "supported": sorted(self.LANGUAGE_IDS)},
            )
        return language_id

    def is_supported(self, language: str) -> bool:
        return (language or "").lower() in self.LANGUAGE_IDS

    def _get_headers(self) -> Dict[str, str]:
        """요청 헤더 생성"""
        headers = {
            "Content-Type": "application/json",
        }

        if self.use_rapidapi:
            # RapidAPI 형식
            if self.api_key:
                headers["x-rapidapi-key"] = self.api_key
            headers["x-rapidapi-host"] = self.rapidapi_host
        else:
            # 일반 Judge0 형식
            if self.api_key:
                headers["X-Auth-Token"] = self.api_key

        return headers

    async def submit(
        self,
        source_code: str,
        language_id: int,
        stdin: str = "",
        cpu_limit: float = 2.0,
        memory_limit: int = 262144,  # KB
        expected_output: Optional[str] = None,
    ) -> str:
        """
        코드 제출 (비동기 모드, 토큰만 즉시 반환)

        Args:
            source_code: 실행할 소스 코드
            language_id: Judge0 언어 ID
            stdin: 표준 입력
            cpu_limit: CPU 시간 제한 (초)
            memory_limit: 메모리 제한 (KB)
            expected_output: 예상 출력 (있으면 Judge0가 정답 비교)

        Returns:
            submission token
        """
        payload = {
            "source_code": source_code,
            "language_id": language_id,
            "stdin": stdin,
            "cpu_time_limit": cpu_limit,
            "memory_limit": memory_limit,
        }

        if expected_output is not None:
            payload["expected_output"] = expected_output

        try:
            response = await self.client.post(
                f"{self.api_url}/submissions",
                json=payload,
                params={"base64_encoded": "false", "wait": "false"},
                headers=self._get_headers()
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[Judge0] HTTP 에러 - status: {e.response.status_code}, response: {e.response.text}")
            raise JudgeUnavailable(f"Judge0 제출 실패 (HTTP {e.response.status_code})") from e
        except httpx.HTTPError as e:
            logger.error(f"[Judge0] 코드 제출 실패: {str(e)}")
            raise JudgeUnavailable(f"Judge0 제출 실패: {str(e)}") from e
        except ValueError as e:
            raise MalformedJudgeResponse(f"Judge0 응답이 JSON이 아닙니다: {str(e)}") from e

        token = result.get("token") if isinstance(result, dict) else None
        if not token:
            raise MalformedJudgeResponse(f"Judge0 API 응답에 token이 없습니다: {result}")

        logger.info(f"[Judge0] 코드 제출 완료 - token: {token}, language_id: {language_id}")
        return token

    async def get_result(self, token: str) -> Dict[str, Any]:
        """
        실행 결과 조회

        Args:
            token: submission token

        Returns:
            실행 결과 딕셔너리
        """
        try:
            response = await self.client.get(
                f"{self.api_url}/submissions/{token}",
                params={"base64_encoded": "false"},
                headers=self._get_headers()
            )
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"[Judge0] 결과 조회 HTTP 에러 - token: {token}, status: {e.response.status_code}")
            raise JudgeUnavailable(f"Judge0 결과 조회 실패 (HTTP {e.response.status_code})") from e
        except httpx.HTTPError as e:
            logger.error(f"[Judge0] 결과 조회 실패 - token: {token}, error: {str(e)}")
            raise JudgeUnavailable(f"Judge0 결과 조회 실패: {str(e)}") from e
        except ValueError as e:
            raise MalformedJudgeResponse(f"Judge0 응답이 JSON이 아닙니다: {str(e)}") from e

        if not isinstance(result, dict):
            raise MalformedJudgeResponse(f"Judge0 응답 형식 오류: {result}")
        return result

    async def poll_until_done(
        self,
        token: str,
        max_attempts: Optional[int] = None,
        interval_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        결과가 나올 때까지 고정 간격으로 폴링

        Args:
            token: submission token
            max_attempts: 최대 조회 횟수 (기본값: settings.JUDGE0_POLL_MAX_ATTEMPTS)
            interval_ms: 폴링 간격 (기본값: settings.JUDGE0_POLL_INTERVAL_MS)

        Returns:
            종료 상태의 실행 결과 딕셔너리

        Raises:
            JudgeTimeout: 최대 횟수까지 대기/처리 중 상태
        """
        max_attempts = max_attempts if max_attempts is not None else settings.JUDGE0_POLL_MAX_ATTEMPTS
        interval_ms = interval_ms if interval_ms is not None else settings.JUDGE0_POLL_INTERVAL_MS

        for attempt in range(max_attempts):
            result = await self.get_result(token)
            status_id = get_status_id(result)

            if status_id not in (JUDGE0_STATUS_IN_QUEUE, JUDGE0_STATUS_PROCESSING):
                logger.info(f"[Judge0] 실행 완료 - token: {token}, status_id: {status_id}, attempts: {attempt + 1}")
                return result

            if attempt < max_attempts - 1:
                await asyncio.sleep(interval_ms / 1000)

        logger.warning(f"[Judge0] 결과 대기 타임아웃 - token: {token}, attempts: {max_attempts}")
        raise JudgeTimeout(token, max_attempts)

    def map_status(self, raw_code: int) -> SubmissionStatus:
        """Judge0 상태 ID → 제출 상태 (알 수 없는 값은 FAILED)"""
        return JUDGE0_STATUS_MAP.get(raw_code, SubmissionStatus.FAILED)
