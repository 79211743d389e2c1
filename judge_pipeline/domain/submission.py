"""
제출 도메인 모델

- SubmissionStatus: 제출 상태 머신
- Submission: 제출 레코드 (입력 + 채점 결과)
- JudgeJob: 큐 메시지 페이로드 (Worker가 DB 조회 없이 실행 가능한 비정규화 사본)
- ExecutionResult: 코드 실행 결과
- LifecycleEvent: 제출 생성/완료 이벤트
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


def utcnow() -> datetime:
    """현재 UTC 시각"""
    return datetime.now(timezone.utc)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SubmissionStatus(str, Enum):
    """
    제출 상태

    QUEUED → RUNNING → {ACCEPTED, WRONG_ANSWER, TIME_LIMIT_EXCEEDED, RUNTIME_ERROR,
    MEMORY_LIMIT_EXCEEDED, COMPILE_ERROR, FAILED, PARTIAL}

    종료 상태에서는 재채점(QUEUED로 초기화)을 제외하고 전이가 없습니다.
    """

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    ACCEPTED = "ACCEPTED"
    WRONG_ANSWER = "WRONG_ANSWER"
    TIME_LIMIT_EXCEEDED = "TIME_LIMIT_EXCEEDED"
    RUNTIME_ERROR = "RUNTIME_ERROR"
    MEMORY_LIMIT_EXCEEDED = "MEMORY_LIMIT_EXCEEDED"
    COMPILE_ERROR = "COMPILE_ERROR"
    FAILED = "FAILED"  # 인프라/어댑터 장애 (제출 코드 문제 아님)
    PARTIAL = "PARTIAL"  # 0 < score < 100

    @property
    def is_terminal(self) -> bool:
        return self not in (SubmissionStatus.QUEUED, SubmissionStatus.RUNNING)


@dataclass
class TestCaseSpec:
    """문제 테스트 케이스 (Judge0가 expected_output과 비교)"""

    __test__ = False  # pytest 수집 제외

    input: str
    expected_output: str
    points: int = 1

    def to_wire(self) -> Dict[str, Any]:
        return {
            "input": self.input,
            "expectedOutput": self.expected_output,
            "points": self.points,
        }

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "TestCaseSpec":
        return cls(
            input=data.get("input", ""),
            expected_output=data.get("expectedOutput", ""),
            points=int(data.get("points", 1)),
        )


@dataclass
class JudgeJob:
    """채점 작업 (큐 메시지 본문)"""

    submission_id: str
    user_id: str
    problem_id: str
    language: str
    source: str
    stdin: str = ""
    cpu_limit_sec: float = 2.0
    memory_limit_kb: int = 262144
    created_at: datetime = field(default_factory=utcnow)
    is_run_only: bool = False
    test_cases: List[TestCaseSpec] = field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        """큐 메시지 스키마 (camelCase)"""
        return {
            "submissionId": self.submission_id,
            "userId": self.user_id,
            "problemId": self.problem_id,
            "language": self.language,
            "source": self.source,
            "stdin": self.stdin,
            "cpuLimitSec": self.cpu_limit_sec,
            "memoryLimitKb": self.memory_limit_kb,
            "createdAt": _isoformat(self.created_at),
            "isRunOnly": self.is_run_only,
            "testCases": [tc.to_wire() for tc in self.test_cases],
        }

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "JudgeJob":
        """
        큐 메시지를 JudgeJob으로 변환

        Raises:
            KeyError, ValueError, TypeError: 필수 필드 누락 또는 형식 오류 (poison message)
        """
        return cls(
            submission_id=str(data["submissionId"]),
            user_id=str(data["userId"]),
            problem_id=str(data["problemId"]),
            language=str(data["language"]),
            source=str(data["source"]),
            stdin=data.get("stdin") or "",
            cpu_limit_sec=float(data.get("cpuLimitSec", 2.0)),
            memory_limit_kb=int(data.get("memoryLimitKb", 262144)),
            created_at=_parse_datetime(data.get("createdAt")) or utcnow(),
            is_run_only=bool(data.get("isRunOnly", False)),
            test_cases=[TestCaseSpec.from_wire(tc) for tc in data.get("testCases") or []],
        )


@dataclass
class ExecutionResult:
    """코드 실행 결과 (Worker가 저장하는 최종 결과)"""

    status: SubmissionStatus
    score: int = 0
    time: float = 0.0  # seconds
    memory: int = 0  # KB
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    testcase_results: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def failed(cls, message: str) -> "ExecutionResult":
        """인프라/어댑터 장애 결과 (에러 메시지는 stderr에 보존)"""
        return cls(status=SubmissionStatus.FAILED, stderr=message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "score": self.score,
            "time": self.time,
            "memory": self.memory,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "compileOutput": self.compile_output,
            "testcaseResults": self.testcase_results,
        }


@dataclass
class Submission:
    """
    제출 레코드

    [불변식]
    - judged_at은 상태가 종료 상태일 때만 설정됨
    - 소스 코드는 채점 후에도 보존 (재채점/장애 복구용)
    """

    id: str
    user_id: str
    problem_id: str
    language: str
    code: str
    contest_id: Optional[str] = None
    stdin: str = ""
    is_run_only: bool = False
    status: SubmissionStatus = SubmissionStatus.QUEUED
    score: int = 0
    time: float = 0.0
    memory: int = 0
    stdout: str = ""
    stderr: str = ""
    compile_output: str = ""
    testcase_results: List[Dict[str, Any]] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    judged_at: Optional[datetime] = None

    def mark_running(self) -> bool:
        """
        RUNNING으로 전이

        Returns:
            전이 여부 (이미 종료 상태면 False - 중복 전달된 작업)
        """
        if self.status.is_terminal:
            return False
        self.status = SubmissionStatus.RUNNING
        return True

    def apply_result(self, result: ExecutionResult, judged_at: Optional[datetime] = None) -> None:
        """최종 결과 반영 (같은 결과를 다시 반영해도 동일한 상태)"""
        if not result.status.is_terminal:
            raise ValueError(f"종료 상태가 아닌 결과는 저장할 수 없습니다: {result.status.value}")
        self.status = result.status
        self.score = result.score
        self.time = result.time
        self.memory = result.memory
        self.stdout = result.stdout
        self.stderr = result.stderr
        self.compile_output = result.compile_output
        self.testcase_results = list(result.testcase_results)
        self.judged_at = judged_at or utcnow()

    def reset_for_rejudge(self) -> None:
        """재채점: 새 라이프사이클로 QUEUED 초기화"""
        self.status = SubmissionStatus.QUEUED
        self.score = 0
        self.time = 0.0
        self.memory = 0
        self.stdout = ""
        self.stderr = ""
        self.compile_output = ""
        self.testcase_results = []
        self.judged_at = None

    def to_dict(self, include_source: bool = True) -> Dict[str, Any]:
        """API/캐시 직렬화 (include_source=False면 소유자 외 공개용)"""
        data = {
            "id": self.id,
            "userId": self.user_id,
            "problemId": self.problem_id,
            "contestId": self.contest_id,
            "language": self.language,
            "isRunOnly": self.is_run_only,
            "status": self.status.value,
            "score": self.score,
            "time": self.time,
            "memory": self.memory,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "compileOutput": self.compile_output,
            "testcaseResults": self.testcase_results,
            "createdAt": _isoformat(self.created_at),
            "judgedAt": _isoformat(self.judged_at),
        }
        if include_source:
            data["code"] = self.code
            data["stdin"] = self.stdin
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Submission":
        """캐시에 저장된 직렬화 데이터 복원"""
        return cls(
            id=data["id"],
            user_id=data["userId"],
            problem_id=data["problemId"],
            contest_id=data.get("contestId"),
            language=data["language"],
            code=data.get("code", ""),
            stdin=data.get("stdin", ""),
            is_run_only=data.get("isRunOnly", False),
            status=SubmissionStatus(data["status"]),
            score=data.get("score", 0),
            time=data.get("time", 0.0),
            memory=data.get("memory", 0),
            stdout=data.get("stdout", ""),
            stderr=data.get("stderr", ""),
            compile_output=data.get("compileOutput", ""),
            testcase_results=data.get("testcaseResults") or [],
            created_at=_parse_datetime(data.get("createdAt")) or utcnow(),
            judged_at=_parse_datetime(data.get("judgedAt")),
        )

    def to_job(
        self,
        cpu_limit_sec: float,
        memory_limit_kb: int,
        test_cases: Optional[List[TestCaseSpec]] = None
    ) -> JudgeJob:
        """큐에 넣을 채점 작업 생성 (enqueue 시각은 호출 시점)"""
        return JudgeJob(
            submission_id=self.id,
            user_id=self.user_id,
            problem_id=self.problem_id,
            language=self.language,
            source=self.code,
            stdin=self.stdin,
            cpu_limit_sec=cpu_limit_sec,
            memory_limit_kb=memory_limit_kb,
            created_at=utcnow(),
            is_run_only=self.is_run_only,
            test_cases=[] if self.is_run_only else list(test_cases or []),
        )


@dataclass(frozen=True)
class LifecycleEvent:
    """제출 라이프사이클 이벤트 (생성/완료)"""

    CREATED = "created"
    FINISHED = "finished"

    type: str
    submission_id: str
    user_id: str
    problem_id: str
    timestamp: str
    status: Optional[str] = None
    score: Optional[int] = None
    time: Optional[float] = None
    memory: Optional[int] = None

    @classmethod
    def created(cls, submission: Submission) -> "LifecycleEvent":
        return cls(
            type=cls.CREATED,
            submission_id=submission.id,
            user_id=submission.user_id,
            problem_id=submission.problem_id,
            timestamp=utcnow().isoformat(),
        )

    @classmethod
    def finished(cls, submission: Submission) -> "LifecycleEvent":
        return cls(
            type=cls.FINISHED,
            submission_id=submission.id,
            user_id=submission.user_id,
            problem_id=submission.problem_id,
            timestamp=utcnow().isoformat(),
            status=submission.status.value,
            score=submission.score,
            time=submission.time,
            memory=submission.memory,
        )

    def to_wire(self) -> Dict[str, Any]:
        data = {
            "type": self.type,
            "submissionId": self.submission_id,
            "userId": self.user_id,
            "problemId": self.problem_id,
            "timestamp": self.timestamp,
        }
        if self.type == self.FINISHED:
            data.update({
                "status": self.status,
                "score": self.score,
                "time": self.time,
                "memory": self.memory,
            })
        return data

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "LifecycleEvent":
        return cls(
            type=data["type"],
            submission_id=data["submissionId"],
            user_id=data["userId"],
            problem_id=data["problemId"],
            timestamp=data["timestamp"],
            status=data.get("status"),
            score=data.get("score"),
            time=data.get("time"),
            memory=data.get("memory"),
        )
