"""
파이프라인 예외 정의

[분류]
- AdmissionError: 제출 접수 단계에서 동기적으로 거절 (큐에 작업이 들어가지 않음)
- AuthenticationError: 호출자 식별 헤더 또는 관리자 API 키 누락
- InfrastructureError: 큐/저장소/캐시/이벤트 스트림 장애
- JudgeError: 외부 Judge0 어댑터 오류 (Worker에서 FAILED 결과로 변환)
"""
from typing import Any, Dict, Optional


class PipelineError(Exception):
    """API 응답으로 변환 가능한 파이프라인 예외의 기본 클래스"""

    error_code: str = "PIPELINE_ERROR"
    status_code: int = 500
    default_message: str = "처리 중 오류가 발생했습니다."

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """에러 응답 본문"""
        return {
            "error": True,
            "error_code": self.error_code,
            "error_message": self.message,
            "details": self.details,
        }


# ===== 접수 단계 오류 =====

class AdmissionError(PipelineError):
    error_code = "ADMISSION_REJECTED"
    status_code = 400


class CodeRequired(AdmissionError):
    error_code = "CODE_REQUIRED"
    default_message = "소스 코드가 비어 있습니다."


class CodeTooLarge(AdmissionError):
    error_code = "CODE_TOO_LARGE"
    default_message = "소스 코드가 허용된 최대 크기를 초과했습니다."


class InputTooLarge(AdmissionError):
    error_code = "INPUT_TOO_LARGE"
    default_message = "표준 입력이 허용된 최대 크기를 초과했습니다."


class UnsupportedLanguage(AdmissionError):
    error_code = "UNSUPPORTED_LANGUAGE"
    default_message = "지원하지 않는 프로그래밍 언어입니다."


class RateLimitExceeded(AdmissionError):
    error_code = "RATE_LIMIT_EXCEEDED"
    status_code = 429
    default_message = "제출 한도를 초과했습니다. 잠시 후 다시 시도하세요."

    def __init__(self, remaining: int, reset_in_seconds: int, message: Optional[str] = None):
        self.remaining = remaining
        self.reset_in_seconds = reset_in_seconds
        super().__init__(
            message,
            details={"remaining": remaining, "resetInSeconds": reset_in_seconds}
        )


class ProblemNotFound(AdmissionError):
    error_code = "PROBLEM_NOT_FOUND"
    status_code = 404
    default_message = "문제를 찾을 수 없습니다."


class ProblemNotPublic(AdmissionError):
    error_code = "PROBLEM_NOT_PUBLIC"
    status_code = 403
    default_message = "공개되지 않은 문제입니다."


class ContestNotFound(AdmissionError):
    error_code = "CONTEST_NOT_FOUND"
    status_code = 404
    default_message = "대회를 찾을 수 없습니다."


class ContestNotRunning(AdmissionError):
    error_code = "CONTEST_NOT_RUNNING"
    default_message = "진행 중인 대회가 아닙니다."


class ContestNotActive(AdmissionError):
    error_code = "CONTEST_NOT_ACTIVE"
    default_message = "대회 시간이 아닙니다."


class NotRegisteredForContest(AdmissionError):
    error_code = "NOT_REGISTERED_FOR_CONTEST"
    status_code = 403
    default_message = "대회에 등록된 참가자가 아닙니다."


class ProblemNotInContest(AdmissionError):
    error_code = "PROBLEM_NOT_IN_CONTEST"
    default_message = "해당 대회에 포함된 문제가 아닙니다."


# ===== 제출 조회/관리 오류 =====

class SubmissionNotFound(PipelineError):
    error_code = "SUBMISSION_NOT_FOUND"
    status_code = 404
    default_message = "제출을 찾을 수 없습니다."


class SubmissionNotRejudgeable(PipelineError):
    error_code = "SUBMISSION_NOT_REJUDGEABLE"
    status_code = 409
    default_message = "채점이 끝나지 않은 제출은 재채점할 수 없습니다."


# ===== 인증 오류 =====

class AuthenticationError(PipelineError):
    error_code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "X-User-Id 헤더가 필요합니다."


class InvalidApiKey(AuthenticationError):
    error_code = "INVALID_API_KEY"
    default_message = "API 키가 없거나 올바르지 않습니다."


# ===== 인프라 오류 =====

class InfrastructureError(PipelineError):
    error_code = "SERVICE_UNAVAILABLE"
    status_code = 503
    default_message = "일시적인 서비스 장애입니다. 잠시 후 다시 시도하세요."


class ServiceUnavailable(InfrastructureError):
    pass


class QueueUnavailable(InfrastructureError):
    error_code = "QUEUE_UNAVAILABLE"


class StoreUnavailable(InfrastructureError):
    error_code = "STORE_UNAVAILABLE"


# ===== Judge0 어댑터 오류 =====

class JudgeError(Exception):
    """외부 Judge0 호출 오류 (Worker에서 FAILED로 변환)"""


class JudgeUnavailable(JudgeError):
    """Judge0 서버에 연결할 수 없거나 HTTP 에러 응답"""


class JudgeTimeout(JudgeError):
    """폴링 최대 횟수 초과"""

    def __init__(self, token: str, attempts: int):
        self.token = token
        self.attempts = attempts
        super().__init__(
            f"Judge0 결과 대기 타임아웃 (timeout) - token: {token}, attempts: {attempts}"
        )


class MalformedJudgeResponse(JudgeError):
    """Judge0 응답 형식 오류"""
