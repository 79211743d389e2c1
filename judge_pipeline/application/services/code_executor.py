"""
코드 실행 서비스
JudgeJob 1건을 Judge0로 실행하고 최종 결과(상태/점수)를 계산

[채점 규칙]
- 테스트 케이스 없음 (실행 모드 등): 단일 실행, ACCEPTED면 100점, 아니면 0점
- 테스트 케이스 있음: 케이스별로 expected_output과 함께 실행
  * 점수 = round(100 * 통과 배점 / 전체 배점)
  * 전체 통과 → ACCEPTED, 일부 통과 → PARTIAL, 통과 없음 → 첫 실패 케이스의 상태
  * 컴파일 에러는 즉시 중단하고 COMPILE_ERROR
  * Judge0 내부 오류(FAILED) 케이스가 나오면 즉시 중단하고 FAILED (점수 없음)
- 런타임 에러이면서 메모리 사용량이 제한에 도달한 경우 MEMORY_LIMIT_EXCEEDED
- Judge0 오류/타임아웃 등 모든 예외는 FAILED (에러 메시지는 stderr)
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from judge_pipeline.core.config import settings
from judge_pipeline.domain.submission import (
    ExecutionResult,
    JudgeJob,
    SubmissionStatus,
    TestCaseSpec,
)
from judge_pipeline.infrastructure.judge0.client import (
    Judge0Client,
    get_status_id,
    parse_memory,
    parse_time,
)


logger = logging.getLogger(__name__)


class CodeExecutor:
    """Judge0 기반 코드 실행기"""

    def __init__(
        self,
        judge: Judge0Client,
        poll_max_attempts: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
    ):
        """
        Args:
            judge: Judge0 클라이언트
            poll_max_attempts: 결과 폴링 최대 횟수 (기본값: settings.JUDGE0_POLL_MAX_ATTEMPTS)
            poll_interval_ms: 결과 폴링 간격 (기본값: settings.JUDGE0_POLL_INTERVAL_MS)
        """
        self.judge = judge
        self.poll_max_attempts = poll_max_attempts or settings.JUDGE0_POLL_MAX_ATTEMPTS
        self.poll_interval_ms = poll_interval_ms if poll_interval_ms is not None else settings.JUDGE0_POLL_INTERVAL_MS

    async def execute(self, job: JudgeJob) -> ExecutionResult:
        """
        작업 실행 (예외를 던지지 않음)

        Returns:
            종료 상태의 ExecutionResult
        """
        try:
            language_id = self.judge.get_language_id(job.language)
            if job.test_cases:
                return await self._execute_test_cases(job, language_id)
            return await self._execute_single(job, language_id)
        except Exception as e:
            logger.error(
                f"[CodeExecutor] 코드 실행 실패 - submission: {job.submission_id}, error: {str(e)}",
                exc_info=True
            )
            return ExecutionResult.failed(str(e))

    async def _run(
        self,
        job: JudgeJob,
        language_id: int,
        stdin: str,
        expected_output: Optional[str] = None,
    ) -> Tuple[SubmissionStatus, Dict[str, Any]]:
        """Judge0 제출 + 폴링 후 (상태, 원본 결과) 반환"""
        token = await self.judge.submit(
            source_code=job.source,
            language_id=language_id,
            stdin=stdin,
            cpu_limit=job.cpu_limit_sec,
            memory_limit=job.memory_limit_kb,
            expected_output=expected_output,
        )
        raw = await self.judge.poll_until_done(
            token,
            max_attempts=self.poll_max_attempts,
            interval_ms=self.poll_interval_ms,
        )
        status = self.judge.map_status(get_status_id(raw))

        if status == SubmissionStatus.RUNTIME_ERROR and parse_memory(raw.get("memory")) >= job.memory_limit_kb:
            status = SubmissionStatus.MEMORY_LIMIT_EXCEEDED

        return status, raw

    async def _execute_single(self, job: JudgeJob, language_id: int) -> ExecutionResult:
        status, raw = await self._run(job, language_id, job.stdin)
        return ExecutionResult(
            status=status,
            score=100 if status == SubmissionStatus.ACCEPTED else 0,
            time=parse_time(raw.get("time")),
            memory=parse_memory(raw.get("memory")),
            stdout=raw.get("stdout") or "",
            stderr=raw.get("stderr") or raw.get("message") or "",
            compile_output=raw.get("compile_output") or "",
        )

    async def _execute_test_cases(self, job: JudgeJob, language_id: int) -> ExecutionResult:
        results: List[Dict[str, Any]] = []
        first_failure: Optional[Tuple[SubmissionStatus, Dict[str, Any]]] = None
        passed_points = 0
        total_points = sum(tc.points for tc in job.test_cases)
        max_time = 0.0
        max_memory = 0

        for index, test_case in enumerate(job.test_cases):
            status, raw = await self._run(job, language_id, test_case.input, test_case.expected_output)

            if status == SubmissionStatus.COMPILE_ERROR:
                logger.info(f"[CodeExecutor] 컴파일 에러 - submission: {job.submission_id}")
                return ExecutionResult(
                    status=SubmissionStatus.COMPILE_ERROR,
                    compile_output=raw.get("compile_output") or "",
                    stderr=raw.get("stderr") or raw.get("message") or "",
                )

            if status == SubmissionStatus.FAILED:
                # Judge0 내부 오류는 제출 코드의 실패로 채점하지 않음
                message = raw.get("message") or f"Judge0 내부 오류 (status_id: {get_status_id(raw)})"
                logger.warning(f"[CodeExecutor] Judge0 내부 오류 - submission: {job.submission_id}, case: {index}, message: {message}")
                return ExecutionResult.failed(message)

            passed = status == SubmissionStatus.ACCEPTED
            time = parse_time(raw.get("time"))
            memory = parse_memory(raw.get("memory"))
            max_time = max(max_time, time)
            max_memory = max(max_memory, memory)

            if passed:
                passed_points += test_case.points
            elif first_failure is None:
                first_failure = (status, raw)

            results.append(self._case_result(index, test_case, status, passed, time, memory))

        if first_failure is None:
            return ExecutionResult(
                status=SubmissionStatus.ACCEPTED,
                score=100,
                time=max_time,
                memory=max_memory,
                testcase_results=results,
            )

        score = round(100 * passed_points / total_points) if total_points > 0 else 0
        failed_status, failed_raw = first_failure
        status = SubmissionStatus.PARTIAL if 0 < score < 100 else failed_status

        logger.info(
            f"[CodeExecutor] 테스트 케이스 채점 완료 - submission: {job.submission_id}, "
            f"status: {status.value}, score: {score}"
        )
        return ExecutionResult(
            status=status,
            score=score,
            time=max_time,
            memory=max_memory,
            stdout=failed_raw.get("stdout") or "",
            stderr=failed_raw.get("stderr") or failed_raw.get("message") or "",
            testcase_results=results,
        )

    @staticmethod
    def _case_result(
        index: int,
        test_case: TestCaseSpec,
        status: SubmissionStatus,
        passed: bool,
        time: float,
        memory: int,
    ) -> Dict[str, Any]:
        return {
            "index": index,
            "status": status.value,
            "passed": passed,
            "points": test_case.points if passed else 0,
            "maxPoints": test_case.points,
            "time": time,
            "memory": memory,
        }
