"""
채점 Worker
큐에서 채점 작업을 가져와 Judge0로 실행하고 결과를 저장

[작업 1건 처리 순서]
1. RUNNING 표시 (이미 종료 상태면 중복 전달 → 실행 없이 ack)
2. 코드 실행 (모든 오류는 FAILED 결과로 변환)
3. 최종 결과 저장 (judged_at 설정) + 결과 캐시
4. finished 이벤트 발행 (best-effort)
5. ack

[실패 처리]
- 인프라 일시 장애(저장소/큐): 최대 전달 횟수 전까지 재전달
- 그 외 복구 불가 오류: FAILED 저장 후 dead-letter
- 처리 중에는 heartbeat로 visibility timeout을 연장
- ack 전에 Worker가 죽으면 visibility timeout 이후 다른 Worker가 재처리
"""
import asyncio
import logging
import uuid
from typing import List, Optional

from judge_pipeline.application.services.code_executor import CodeExecutor
from judge_pipeline.core.config import settings
from judge_pipeline.core.exceptions import InfrastructureError
from judge_pipeline.domain.events import EventBus
from judge_pipeline.domain.queue import JobDelivery, QueueAdapter
from judge_pipeline.domain.submission import (
    ExecutionResult,
    JudgeJob,
    LifecycleEvent,
    SubmissionStatus,
)
from judge_pipeline.infrastructure.cache.result_cache import ResultCache
from judge_pipeline.infrastructure.repositories.base import SubmissionStore


logger = logging.getLogger(__name__)


class JudgeWorker:
    """채점 Worker (슬롯마다 작업 1건씩 동시 처리)"""

    def __init__(
        self,
        queue: QueueAdapter,
        store: SubmissionStore,
        cache: ResultCache,
        events: EventBus,
        executor: CodeExecutor,
        concurrency: Optional[int] = None,
        idle_sleep: Optional[float] = None,
        dequeue_timeout: Optional[float] = None,
        consumer_name: Optional[str] = None,
        heartbeat_interval: Optional[float] = None,
    ):
        self.queue = queue
        self.store = store
        self.cache = cache
        self.events = events
        self.executor = executor
        self.concurrency = concurrency or settings.WORKER_CONCURRENCY
        self.idle_sleep = idle_sleep if idle_sleep is not None else settings.WORKER_IDLE_SLEEP_SECONDS
        self.dequeue_timeout = dequeue_timeout or settings.WORKER_DEQUEUE_TIMEOUT_SECONDS
        self.consumer_name = consumer_name or f"worker-{uuid.uuid4().hex[:8]}"
        self.heartbeat_interval = heartbeat_interval or settings.JOB_HEARTBEAT_INTERVAL_SECONDS
        self.running = False
        self._tasks: List[asyncio.Task] = []

    async def start(self):
        """Worker 슬롯 시작"""
        if self.running:
            return
        self.running = True
        self._tasks = [
            asyncio.create_task(self._worker_loop(f"{self.consumer_name}-{slot}"))
            for slot in range(self.concurrency)
        ]
        logger.info(f"[JudgeWorker] Worker 시작 - consumer: {self.consumer_name}, slots: {self.concurrency}")

    async def stop(self):
        """
        Worker 중지

        처리 중인 작업은 ack되지 않은 채로 남아 재전달됩니다.
        """
        self.running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("[JudgeWorker] Worker 중지")

    async def join(self):
        """모든 슬롯이 끝날 때까지 대기"""
        await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _worker_loop(self, consumer: str):
        """슬롯 메인 루프"""
        while self.running:
            try:
                processed = await self.run_once(consumer)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[JudgeWorker] 작업 가져오기 실패 - consumer: {consumer}, error: {str(e)}")
                processed = False

            if not processed:
                # 큐가 비어 있거나 장애 시 잠시 대기
                await asyncio.sleep(self.idle_sleep)

    async def run_once(self, consumer: Optional[str] = None) -> bool:
        """
        작업 1건 처리

        Returns:
            처리한 작업이 있었는지 여부
        """
        delivery = await self.queue.dequeue(consumer or f"{self.consumer_name}-0", timeout=self.dequeue_timeout)
        if delivery is None:
            return False
        await self.process_delivery(delivery)
        return True

    async def process_delivery(self, delivery: JobDelivery) -> None:
        """전달받은 작업 처리 후 ack/nack"""
        job = delivery.job
        logger.info(
            f"[JudgeWorker] 작업 처리 시작 - submission: {job.submission_id}, attempt: {delivery.attempt}"
        )

        heartbeat = asyncio.create_task(self._heartbeat(delivery))
        try:
            await self._handle(job)
        except InfrastructureError as e:
            if delivery.attempt < self.queue.max_deliveries:
                logger.warning(
                    f"[JudgeWorker] 인프라 장애로 재전달 - submission: {job.submission_id}, error: {str(e)}"
                )
                await self._nack(delivery, requeue=True, reason=str(e))
                return
            await self._fail(delivery, e)
            return
        except Exception as e:
            await self._fail(delivery, e)
            return
        finally:
            heartbeat.cancel()

        try:
            await self.queue.ack(delivery)
        except Exception as e:
            # ack 실패 시 재전달되지만 저장소 상태로 중복 실행을 건너뜀
            logger.warning(f"[JudgeWorker] ack 실패 - submission: {job.submission_id}, error: {str(e)}")

    async def _heartbeat(self, delivery: JobDelivery) -> None:
        """처리 중 주기적으로 visibility timeout 연장 (실패해도 처리는 계속)"""
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.queue.touch(delivery)
            except InfrastructureError as e:
                logger.warning(
                    f"[JudgeWorker] heartbeat 실패 - submission: {delivery.job.submission_id}, error: {str(e)}"
                )

    async def _handle(self, job: JudgeJob) -> None:
        try:
            proceed = await self.store.mark_running(job.submission_id)
        except InfrastructureError as e:
            logger.warning(f"[JudgeWorker] RUNNING 표시 실패 - submission: {job.submission_id}, error: {str(e)}")
            proceed = True

        if not proceed:
            logger.info(f"[JudgeWorker] 이미 채점된 제출 (중복 전달) - submission: {job.submission_id}")
            return

        outcome = await self.cache.set_status(job.submission_id, SubmissionStatus.RUNNING)
        if not outcome.ok:
            logger.warning(f"[JudgeWorker] 상태 캐시 실패 - submission: {job.submission_id}, error: {outcome.error}")

        result = await self.executor.execute(job)

        submission = await self.store.save_result(job.submission_id, result)

        outcome = await self.cache.put(submission)
        if not outcome.ok:
            logger.warning(f"[JudgeWorker] 결과 캐시 실패 - submission: {job.submission_id}, error: {outcome.error}")

        outcome = await self.events.publish(LifecycleEvent.finished(submission))
        if not outcome.ok:
            logger.warning(f"[JudgeWorker] finished 이벤트 발행 실패 - submission: {job.submission_id}, error: {outcome.error}")

        logger.info(
            f"[JudgeWorker] 작업 완료 - submission: {job.submission_id}, "
            f"status: {submission.status.value}, score: {submission.score}, time: {submission.time}s"
        )

    async def _fail(self, delivery: JobDelivery, error: Exception) -> None:
        """복구 불가 오류: FAILED 저장 (best-effort) 후 dead-letter"""
        job = delivery.job
        logger.error(
            f"[JudgeWorker] 작업 처리 중 오류 - submission: {job.submission_id}, error: {str(error)}",
            exc_info=True
        )
        try:
            await self.store.save_result(job.submission_id, ExecutionResult.failed(str(error)))
        except Exception as save_error:
            logger.error(f"[JudgeWorker] FAILED 저장 실패 - submission: {job.submission_id}, error: {str(save_error)}")
        await self._nack(delivery, requeue=False, reason=str(error))

    async def _nack(self, delivery: JobDelivery, requeue: bool, reason: str) -> None:
        try:
            await self.queue.nack(delivery, requeue=requeue, reason=reason)
        except Exception as e:
            logger.error(f"[JudgeWorker] nack 실패 - submission: {delivery.job.submission_id}, error: {str(e)}")


async def main():
    """Worker 단독 실행"""
    from judge_pipeline.application.container import build_container

    container = build_container(enable_worker=True, enable_fanout=False)
    await container.start()
    try:
        await container.worker.join()
    finally:
        await container.stop()


if __name__ == "__main__":
    # 로깅 설정
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Worker 실행
    asyncio.run(main())
