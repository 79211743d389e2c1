"""
제출 접수 서비스

[플로우] create_submission
1. 입력 검증 (코드 비어 있음, 크기, 언어)
2. Rate Limit 확인
3. 문제 존재 확인 (+ 문제별 소스 크기 제한)
4. 대회 제출이면 대회 자격 확인, 아니면 문제 공개 여부 확인
5. PostgreSQL에 QUEUED 상태로 저장
6. created 이벤트 발행 (best-effort)
7. 채점 작업 큐에 추가 (실패 시 저장된 제출을 FAILED로 표시하고 503)
8. 상태 캐시 QUEUED (best-effort)

채점 완료를 기다리지 않고 즉시 반환합니다.
"""
import logging
import uuid
from typing import Optional

from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import (
    CodeRequired,
    CodeTooLarge,
    ContestNotActive,
    ContestNotFound,
    ContestNotRunning,
    InfrastructureError,
    InputTooLarge,
    NotRegisteredForContest,
    PipelineError,
    ProblemNotFound,
    ProblemNotInContest,
    ProblemNotPublic,
    RateLimitExceeded,
    ServiceUnavailable,
    SubmissionNotFound,
    SubmissionNotRejudgeable,
)
from judge_pipeline.domain.catalog import ProblemInfo
from judge_pipeline.domain.events import EventBus
from judge_pipeline.domain.queue import QueueAdapter
from judge_pipeline.domain.submission import (
    ExecutionResult,
    LifecycleEvent,
    Submission,
    SubmissionStatus,
    utcnow,
)
from judge_pipeline.infrastructure.cache.rate_limiter import RateLimiter
from judge_pipeline.infrastructure.cache.result_cache import ResultCache
from judge_pipeline.infrastructure.judge0.client import Judge0Client
from judge_pipeline.infrastructure.repositories.base import CatalogReader, SubmissionStore


logger = logging.getLogger(__name__)


class IntakeService:
    """제출 접수 서비스"""

    def __init__(
        self,
        store: SubmissionStore,
        catalog: CatalogReader,
        queue: QueueAdapter,
        events: EventBus,
        cache: ResultCache,
        rate_limiter: RateLimiter,
        judge: Judge0Client,
    ):
        self.store = store
        self.catalog = catalog
        self.queue = queue
        self.events = events
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.judge = judge

    async def create_submission(
        self,
        user_id: str,
        problem_id: str,
        language: str,
        code: str,
        contest_id: Optional[str] = None,
    ) -> Submission:
        """
        채점 제출 접수

        Args:
            user_id: 제출자 ID
            problem_id: 문제 ID
            language: 프로그래밍 언어
            code: 소스 코드
            contest_id: 대회 ID (없으면 연습 제출)

        Returns:
            QUEUED 상태의 Submission

        Raises:
            AdmissionError: 검증/자격 확인 실패 (저장/큐 추가 없음)
            ServiceUnavailable: 저장소 또는 큐 장애
        """
        self._validate_source(code, language)
        await self._check_rate_limit(user_id, run_only=False)

        problem = await self._get_problem(problem_id)
        self._check_problem_source_limit(problem, code)

        if contest_id:
            await self._check_contest_eligibility(contest_id, user_id, problem_id)
        elif not problem.is_public:
            raise ProblemNotPublic(details={"problemId": problem_id})

        submission = Submission(
            id=str(uuid.uuid4()),
            user_id=user_id,
            problem_id=problem_id,
            contest_id=contest_id,
            language=language,
            code=code,
        )
        return await self._admit(submission, problem)

    async def run_code(
        self,
        user_id: str,
        problem_id: str,
        language: str,
        code: str,
        stdin: str = "",
    ) -> Submission:
        """
        실행 모드 제출 (사용자 입력으로 1회 실행, 테스트 케이스 채점 없음)

        대회/공개 여부 확인은 생략하며, 실행 전용 Rate Limit이 적용됩니다.
        """
        self._validate_source(code, language)
        stdin = stdin or ""
        if len(stdin.encode("utf-8")) > settings.MAX_STDIN_SIZE_BYTES:
            raise InputTooLarge(details={"limit": settings.MAX_STDIN_SIZE_BYTES})

        await self._check_rate_limit(user_id, run_only=True)

        problem = await self._get_problem(problem_id)
        self._check_problem_source_limit(problem, code)

        submission = Submission(
            id=str(uuid.uuid4()),
            user_id=user_id,
            problem_id=problem_id,
            language=language,
            code=code,
            stdin=stdin,
            is_run_only=True,
        )
        return await self._admit(submission, problem)

    async def rejudge(self, submission_id: str) -> Submission:
        """
        재채점 (종료 상태 제출을 QUEUED로 초기화하고 새 작업으로 큐에 추가)

        Raises:
            SubmissionNotFound: 제출이 없음
            SubmissionNotRejudgeable: 아직 채점 중인 제출
        """
        existing = await self.store.get(submission_id)
        if existing is None:
            raise SubmissionNotFound(details={"submissionId": submission_id})
        if not existing.status.is_terminal:
            raise SubmissionNotRejudgeable(
                details={"submissionId": submission_id, "status": existing.status.value}
            )

        submission = await self.store.reset_for_rejudge(submission_id)

        outcome = await self.cache.invalidate(submission_id)
        if not outcome.ok:
            logger.warning(f"[Intake] 캐시 무효화 실패 - submission: {submission_id}, error: {outcome.error}")

        problem = await self.catalog.get_problem(submission.problem_id)
        if problem is None:
            logger.warning(f"[Intake] 재채점 문제 정보 없음, 기본 제한 사용 - problem_id: {submission.problem_id}")
            problem = ProblemInfo(id=submission.problem_id)

        logger.info(f"[Intake] 재채점 요청 - submission: {submission_id}")
        return await self._publish_and_enqueue(submission, problem)

    # ===== 내부 처리 =====

    def _validate_source(self, code: str, language: str) -> None:
        if not code or not code.strip():
            raise CodeRequired()

        size = len(code.encode("utf-8"))
        if size > settings.MAX_SOURCE_SIZE_BYTES:
            raise CodeTooLarge(details={"size": size, "limit": settings.MAX_SOURCE_SIZE_BYTES})

        # 지원하지 않으면 UnsupportedLanguage
        self.judge.get_language_id(language)

    async def _check_rate_limit(self, user_id: str, run_only: bool) -> None:
        decision = await self.rate_limiter.check(user_id, run_only=run_only)
        if not decision.allowed:
            logger.info(f"[Intake] Rate Limit 초과 - user: {user_id}, run_only: {run_only}")
            raise RateLimitExceeded(decision.remaining, decision.reset_in_seconds)

    async def _get_problem(self, problem_id: str) -> ProblemInfo:
        problem = await self.catalog.get_problem(problem_id)
        if problem is None:
            raise ProblemNotFound(details={"problemId": problem_id})
        return problem

    @staticmethod
    def _check_problem_source_limit(problem: ProblemInfo, code: str) -> None:
        if problem.source_limit_bytes is None:
            return
        size = len(code.encode("utf-8"))
        if size > problem.source_limit_bytes:
            raise CodeTooLarge(
                "문제에서 허용한 소스 코드 크기를 초과했습니다.",
                details={"size": size, "limit": problem.source_limit_bytes},
            )

    async def _check_contest_eligibility(self, contest_id: str, user_id: str, problem_id: str) -> None:
        contest = await self.catalog.get_contest(contest_id)
        if contest is None:
            raise ContestNotFound(details={"contestId": contest_id})
        if not contest.is_running:
            raise ContestNotRunning(details={"contestId": contest_id, "status": contest.status})
        if not contest.is_active_at(utcnow()):
            raise ContestNotActive(details={"contestId": contest_id})
        if not await self.catalog.is_participant(contest_id, user_id):
            raise NotRegisteredForContest(details={"contestId": contest_id})
        if not await self.catalog.contest_has_problem(contest_id, problem_id):
            raise ProblemNotInContest(details={"contestId": contest_id, "problemId": problem_id})

    async def _admit(self, submission: Submission, problem: ProblemInfo) -> Submission:
        try:
            submission = await self.store.create(submission)
        except InfrastructureError as e:
            logger.error(f"[Intake] 제출 저장 실패 - submission: {submission.id}, error: {str(e)}")
            raise ServiceUnavailable("제출을 저장할 수 없습니다. 잠시 후 다시 시도하세요.") from e

        logger.info(
            f"[Intake] 제출 접수 - submission: {submission.id}, user: {submission.user_id}, "
            f"problem: {submission.problem_id}, run_only: {submission.is_run_only}"
        )
        return await self._publish_and_enqueue(submission, problem)

    async def _publish_and_enqueue(self, submission: Submission, problem: ProblemInfo) -> Submission:
        outcome = await self.events.publish(LifecycleEvent.created(submission))
        if not outcome.ok:
            logger.warning(f"[Intake] created 이벤트 발행 실패 - submission: {submission.id}, error: {outcome.error}")

        job = submission.to_job(
            cpu_limit_sec=problem.cpu_limit_sec or settings.DEFAULT_CPU_TIME_LIMIT_SEC,
            memory_limit_kb=problem.memory_limit_kb or settings.DEFAULT_MEMORY_LIMIT_KB,
            test_cases=problem.test_cases,
        )

        try:
            await self.queue.enqueue(job)
        except InfrastructureError as e:
            logger.error(f"[Intake] 작업 큐 추가 실패 - submission: {submission.id}, error: {str(e)}")
            await self._mark_enqueue_failed(submission, e)
            raise ServiceUnavailable("채점 대기열에 추가할 수 없습니다. 잠시 후 다시 시도하세요.") from e

        outcome = await self.cache.set_status(submission.id, SubmissionStatus.QUEUED)
        if not outcome.ok:
            logger.warning(f"[Intake] 상태 캐시 실패 - submission: {submission.id}, error: {outcome.error}")

        return submission

    async def _mark_enqueue_failed(self, submission: Submission, error: Exception) -> None:
        try:
            await self.store.save_result(
                submission.id,
                ExecutionResult.failed(f"enqueue failed: {str(error)}"),
            )
        except PipelineError as e:
            logger.warning(f"[Intake] FAILED 상태 저장 실패 - submission: {submission.id}, error: {str(e)}")
