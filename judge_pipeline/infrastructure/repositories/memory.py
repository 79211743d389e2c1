"""
메모리 기반 저장소 (개발/테스트용)
"""
import asyncio
import copy
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from judge_pipeline.core.exceptions import SubmissionNotFound, SubmissionNotRejudgeable
from judge_pipeline.domain.catalog import ContestInfo, ProblemInfo
from judge_pipeline.domain.submission import ExecutionResult, Submission, SubmissionStatus
from judge_pipeline.infrastructure.repositories.base import CatalogReader, SubmissionStore


class MemorySubmissionStore(SubmissionStore):
    """메모리 기반 제출 저장소 (반환값은 항상 복사본)"""

    def __init__(self):
        self.submissions: Dict[str, Submission] = {}
        self.lock = asyncio.Lock()

    async def create(self, submission: Submission) -> Submission:
        async with self.lock:
            self.submissions[submission.id] = copy.deepcopy(submission)
            return copy.deepcopy(submission)

    async def get(self, submission_id: str) -> Optional[Submission]:
        submission = self.submissions.get(submission_id)
        return copy.deepcopy(submission) if submission else None

    def _require(self, submission_id: str) -> Submission:
        submission = self.submissions.get(submission_id)
        if submission is None:
            raise SubmissionNotFound(details={"submissionId": submission_id})
        return submission

    async def mark_running(self, submission_id: str) -> bool:
        async with self.lock:
            return self._require(submission_id).mark_running()

    async def save_result(
        self,
        submission_id: str,
        result: ExecutionResult,
        judged_at: Optional[datetime] = None
    ) -> Submission:
        async with self.lock:
            submission = self._require(submission_id)
            submission.apply_result(result, judged_at)
            return copy.deepcopy(submission)

    async def reset_for_rejudge(self, submission_id: str) -> Submission:
        async with self.lock:
            submission = self._require(submission_id)
            if not submission.status.is_terminal:
                raise SubmissionNotRejudgeable(
                    details={"submissionId": submission_id, "status": submission.status.value}
                )
            submission.reset_for_rejudge()
            return copy.deepcopy(submission)

    async def list_by_user(
        self,
        user_id: str,
        offset: int = 0,
        limit: int = 20,
        problem_id: Optional[str] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> Tuple[List[Submission], int]:
        items = [
            s for s in self.submissions.values()
            if s.user_id == user_id
            and (problem_id is None or s.problem_id == problem_id)
            and (status is None or s.status == status)
        ]
        items.sort(key=lambda s: s.created_at, reverse=True)
        return [copy.deepcopy(s) for s in items[offset:offset + limit]], len(items)


class MemoryCatalog(CatalogReader):
    """메모리 기반 문제/대회 조회 (개발/테스트용 시드 데이터)"""

    def __init__(self):
        self.problems: Dict[str, ProblemInfo] = {}
        self.contests: Dict[str, ContestInfo] = {}
        self.participants: Dict[str, Set[str]] = {}
        self.contest_problems: Dict[str, Set[str]] = {}

    def add_problem(self, problem: ProblemInfo) -> ProblemInfo:
        self.problems[problem.id] = problem
        return problem

    def add_contest(
        self,
        contest: ContestInfo,
        participants: Iterable[str] = (),
        problems: Iterable[str] = ()
    ) -> ContestInfo:
        self.contests[contest.id] = contest
        self.participants[contest.id] = set(participants)
        self.contest_problems[contest.id] = set(problems)
        return contest

    async def get_problem(self, problem_id: str) -> Optional[ProblemInfo]:
        return self.problems.get(problem_id)

    async def get_contest(self, contest_id: str) -> Optional[ContestInfo]:
        return self.contests.get(contest_id)

    async def is_participant(self, contest_id: str, user_id: str) -> bool:
        return user_id in self.participants.get(contest_id, set())

    async def contest_has_problem(self, contest_id: str, problem_id: str) -> bool:
        return problem_id in self.contest_problems.get(contest_id, set())
