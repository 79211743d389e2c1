"""
제출 접수 서비스 테스트
"""
from unittest.mock import AsyncMock

import pytest

from judge_pipeline.core.exceptions import (
    CodeRequired,
    CodeTooLarge,
    ContestNotActive,
    ContestNotFound,
    ContestNotRunning,
    InputTooLarge,
    NotRegisteredForContest,
    ProblemNotFound,
    ProblemNotInContest,
    ProblemNotPublic,
    QueueUnavailable,
    RateLimitExceeded,
    ServiceUnavailable,
    StoreUnavailable,
    SubmissionNotFound,
    SubmissionNotRejudgeable,
    UnsupportedLanguage,
)
from judge_pipeline.core.config import settings
from judge_pipeline.domain.outcome import Outcome
from judge_pipeline.domain.submission import ExecutionResult, SubmissionStatus
from judge_pipeline.infrastructure.cache.rate_limiter import RateLimitDecision


def deny_rate_limit(container, remaining=0, reset=17):
    container.rate_limiter.check = AsyncMock(
        return_value=RateLimitDecision(allowed=False, remaining=remaining, reset_in_seconds=reset)
    )


@pytest.mark.asyncio
async def test_create_submission_persists_publishes_and_enqueues(container):
    submission = await container.intake.create_submission(
        user_id="alice",
        problem_id="p-cases",
        language="python",
        code="print(sum(map(int, input().split())))",
    )

    assert submission.status == SubmissionStatus.QUEUED

    stored = await container.store.get(submission.id)
    assert stored.status == SubmissionStatus.QUEUED
    assert stored.code == "print(sum(map(int, input().split())))"
    assert stored.judged_at is None

    assert [e.type for e in container.events.events_for(submission.id)] == ["created"]

    delivery = await container.queue.dequeue("test", timeout=0.1)
    assert delivery.job.submission_id == submission.id
    assert delivery.job.cpu_limit_sec == 1.0
    assert delivery.job.memory_limit_kb == 65536
    assert len(delivery.job.test_cases) == 2
    assert not delivery.job.is_run_only


@pytest.mark.asyncio
async def test_default_limits_when_problem_has_none(container):
    await container.intake.create_submission("alice", "p-public", "python", "print(1)")

    delivery = await container.queue.dequeue("test", timeout=0.1)
    assert delivery.job.cpu_limit_sec == settings.DEFAULT_CPU_TIME_LIMIT_SEC
    assert delivery.job.memory_limit_kb == settings.DEFAULT_MEMORY_LIMIT_KB


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, language, error",
    [
        ("", "python", CodeRequired),
        ("   \n", "python", CodeRequired),
        ("x" * (settings.MAX_SOURCE_SIZE_BYTES + 1), "python", CodeTooLarge),
        ("print(1)", "cobol", UnsupportedLanguage),
    ],
)
async def test_validation_errors(container, code, language, error):
    with pytest.raises(error):
        await container.intake.create_submission("alice", "p-public", language, code)

    assert container.store.submissions == {}
    assert len(container.queue) == 0


@pytest.mark.asyncio
async def test_source_size_counts_utf8_bytes(container, monkeypatch):
    monkeypatch.setattr(settings, "MAX_SOURCE_SIZE_BYTES", 10)
    with pytest.raises(CodeTooLarge):
        # 4글자지만 12바이트
        await container.intake.create_submission("alice", "p-public", "python", "가나다라")


@pytest.mark.asyncio
async def test_validation_runs_before_rate_limit(container):
    deny_rate_limit(container)

    with pytest.raises(CodeRequired):
        await container.intake.create_submission("alice", "p-public", "python", "")

    container.rate_limiter.check.assert_not_awaited()


@pytest.mark.asyncio
async def test_rate_limit_exceeded_enqueues_nothing(container):
    deny_rate_limit(container, remaining=0, reset=17)

    with pytest.raises(RateLimitExceeded) as exc_info:
        await container.intake.create_submission("alice", "p-public", "python", "print(1)")

    assert exc_info.value.status_code == 429
    assert exc_info.value.details == {"remaining": 0, "resetInSeconds": 17}
    assert container.store.submissions == {}
    assert container.events.events == []
    assert len(container.queue) == 0


@pytest.mark.asyncio
async def test_rate_limit_checked_before_problem_lookup(container):
    deny_rate_limit(container)
    with pytest.raises(RateLimitExceeded):
        await container.intake.create_submission("alice", "missing", "python", "print(1)")


@pytest.mark.asyncio
async def test_problem_not_found(container):
    with pytest.raises(ProblemNotFound):
        await container.intake.create_submission("alice", "missing", "python", "print(1)")


@pytest.mark.asyncio
async def test_problem_source_limit(container):
    with pytest.raises(CodeTooLarge):
        await container.intake.create_submission("alice", "p-small", "python", "print('this is too long')")


@pytest.mark.asyncio
async def test_private_problem_requires_contest(container):
    with pytest.raises(ProblemNotPublic):
        await container.intake.create_submission("alice", "p-private", "python", "print(1)")


@pytest.mark.asyncio
async def test_contest_submission_accepted(container):
    submission = await container.intake.create_submission(
        "alice", "p-private", "python", "print(1)", contest_id="c-running"
    )
    stored = await container.store.get(submission.id)
    assert stored.contest_id == "c-running"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "user_id, problem_id, contest_id, error",
    [
        ("alice", "p-private", "c-missing", ContestNotFound),
        ("alice", "p-private", "c-ended", ContestNotRunning),
        ("alice", "p-private", "c-window-closed", ContestNotActive),
        ("bob", "p-private", "c-running", NotRegisteredForContest),
        ("alice", "p-public", "c-running", ProblemNotInContest),
    ],
)
async def test_contest_eligibility_errors(container, user_id, problem_id, contest_id, error):
    with pytest.raises(error):
        await container.intake.create_submission(user_id, problem_id, "python", "print(1)", contest_id=contest_id)

    assert container.store.submissions == {}
    assert len(container.queue) == 0


@pytest.mark.asyncio
async def test_store_failure_is_service_unavailable(container):
    container.store.create = AsyncMock(side_effect=StoreUnavailable())

    with pytest.raises(ServiceUnavailable):
        await container.intake.create_submission("alice", "p-public", "python", "print(1)")

    assert len(container.queue) == 0
    assert container.events.events == []


@pytest.mark.asyncio
async def test_enqueue_failure_marks_submission_failed(container):
    container.queue.enqueue = AsyncMock(side_effect=QueueUnavailable())

    with pytest.raises(ServiceUnavailable):
        await container.intake.create_submission("alice", "p-public", "python", "print(1)")

    [stored] = container.store.submissions.values()
    assert stored.status == SubmissionStatus.FAILED
    assert "enqueue failed" in stored.stderr
    assert stored.judged_at is not None


@pytest.mark.asyncio
async def test_event_publish_failure_does_not_block_intake(container):
    container.events.publish = AsyncMock(return_value=Outcome.failure(RuntimeError("stream down")))

    submission = await container.intake.create_submission("alice", "p-public", "python", "print(1)")

    assert submission.status == SubmissionStatus.QUEUED
    assert len(container.queue) == 1


@pytest.mark.asyncio
async def test_run_code(container):
    submission = await container.intake.run_code(
        "bob", "p-private", "python", "print(input())", stdin="42"
    )

    assert submission.is_run_only
    delivery = await container.queue.dequeue("test", timeout=0.1)
    assert delivery.job.is_run_only
    assert delivery.job.stdin == "42"
    assert delivery.job.test_cases == []


@pytest.mark.asyncio
async def test_run_code_uses_run_ceiling(container):
    container.rate_limiter.check = AsyncMock(wraps=container.rate_limiter.check)

    await container.intake.run_code("bob", "p-public", "python", "print(1)")

    container.rate_limiter.check.assert_awaited_once_with("bob", run_only=True)


@pytest.mark.asyncio
async def test_run_code_input_too_large(container, monkeypatch):
    monkeypatch.setattr(settings, "MAX_STDIN_SIZE_BYTES", 4)
    with pytest.raises(InputTooLarge):
        await container.intake.run_code("bob", "p-public", "python", "print(1)", stdin="12345")


@pytest.mark.asyncio
async def test_run_code_requires_problem(container):
    with pytest.raises(ProblemNotFound):
        await container.intake.run_code("bob", "missing", "python", "print(1)")


@pytest.mark.asyncio
async def test_rejudge_requires_terminal_submission(container):
    submission = await container.intake.create_submission("alice", "p-public", "python", "print(1)")

    with pytest.raises(SubmissionNotRejudgeable):
        await container.intake.rejudge(submission.id)


@pytest.mark.asyncio
async def test_rejudge_missing_submission(container):
    with pytest.raises(SubmissionNotFound):
        await container.intake.rejudge("missing")


@pytest.mark.asyncio
async def test_rejudge_resets_and_enqueues_new_job(container):
    submission = await container.intake.create_submission("alice", "p-cases", "python", "print(1)")
    first = await container.queue.dequeue("test", timeout=0.1)
    await container.queue.ack(first)
    await container.store.save_result(
        submission.id,
        ExecutionResult(status=SubmissionStatus.WRONG_ANSWER, stdout="2\n"),
    )

    rejudged = await container.intake.rejudge(submission.id)

    assert rejudged.status == SubmissionStatus.QUEUED
    stored = await container.store.get(submission.id)
    assert stored.status == SubmissionStatus.QUEUED
    assert stored.judged_at is None
    assert stored.stdout == ""

    second = await container.queue.dequeue("test", timeout=0.1)
    assert second.job.submission_id == submission.id
    assert len(second.job.test_cases) == 2
    assert second.job.created_at >= first.job.created_at
    assert [e.type for e in container.events.events_for(submission.id)] == ["created", "created"]
