"""
실시간 알림 팬아웃 테스트
"""
import asyncio
from typing import Any, Dict, List

import pytest

from judge_pipeline.application.services.notification_fanout import (
    ConnectionManager,
    NotificationFanout,
)
from judge_pipeline.domain.events.adapters.memory import MemoryEventBus
from judge_pipeline.domain.submission import (
    ExecutionResult,
    LifecycleEvent,
    Submission,
    SubmissionStatus,
)


class FakeWebSocket:
    def __init__(self, broken: bool = False):
        self.accepted = False
        self.broken = broken
        self.sent: List[Dict[str, Any]] = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, payload):
        if self.broken:
            raise RuntimeError("connection closed")
        self.sent.append(payload)


def make_submission(user_id="alice") -> Submission:
    return Submission(id="sub-1", user_id=user_id, problem_id="p-public", language="python", code="print(1)")


async def wait_for(predicate, attempts=100):
    for _ in range(attempts):
        if predicate():
            return True
        await asyncio.sleep(0.01)
    return predicate()


@pytest.mark.asyncio
async def test_connect_accepts_socket():
    manager = ConnectionManager()
    ws = FakeWebSocket()

    await manager.connect("alice", ws)

    assert ws.accepted
    assert manager.connection_count("alice") == 1
    assert manager.connection_count() == 1


@pytest.mark.asyncio
async def test_send_to_user_drops_broken_connections():
    manager = ConnectionManager()
    healthy, broken = FakeWebSocket(), FakeWebSocket(broken=True)
    await manager.connect("alice", healthy)
    await manager.connect("alice", broken)

    delivered = await manager.send_to_user("alice", {"type": "ping"})

    assert delivered == 1
    assert healthy.sent == [{"type": "ping"}]
    assert manager.connection_count("alice") == 1


@pytest.mark.asyncio
async def test_send_to_user_without_connections():
    manager = ConnectionManager()
    assert await manager.send_to_user("nobody", {"type": "ping"}) == 0


def test_disconnect_removes_empty_user():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    manager.user_connections["alice"].add(ws)

    manager.disconnect("alice", ws)
    manager.disconnect("alice", ws)

    assert "alice" not in manager.user_connections


@pytest.mark.asyncio
async def test_handle_event_maps_notification_types():
    manager = ConnectionManager()
    ws = FakeWebSocket()
    await manager.connect("alice", ws)
    fanout = NotificationFanout(MemoryEventBus(), manager)

    submission = make_submission()
    await fanout.handle_event(LifecycleEvent.created(submission))
    submission.apply_result(ExecutionResult(status=SubmissionStatus.ACCEPTED, score=100, time=0.1, memory=2048))
    await fanout.handle_event(LifecycleEvent.finished(submission))

    created, finished = ws.sent
    assert created["type"] == "submission_created"
    assert created["submissionId"] == "sub-1"
    assert "status" not in created
    assert finished["type"] == "submission_finished"
    assert finished["status"] == "ACCEPTED"
    assert finished["score"] == 100


@pytest.mark.asyncio
async def test_events_only_reach_submitter():
    manager = ConnectionManager()
    alice, bob = FakeWebSocket(), FakeWebSocket()
    await manager.connect("alice", alice)
    await manager.connect("bob", bob)
    fanout = NotificationFanout(MemoryEventBus(), manager)

    delivered = await fanout.handle_event(LifecycleEvent.created(make_submission("alice")))

    assert delivered == 1
    assert len(alice.sent) == 1
    assert bob.sent == []


@pytest.mark.asyncio
async def test_run_forwards_published_events():
    events = MemoryEventBus()
    manager = ConnectionManager()
    ws = FakeWebSocket()
    await manager.connect("alice", ws)
    fanout = NotificationFanout(events, manager)

    # 구독 이전 이벤트는 전달되지 않음
    await events.publish(LifecycleEvent.created(make_submission()))

    fanout.start()
    try:
        await asyncio.sleep(0.01)
        await events.publish(LifecycleEvent.created(make_submission()))
        assert await wait_for(lambda: len(ws.sent) == 1)
    finally:
        await fanout.stop()

    assert ws.sent[0]["type"] == "submission_created"


@pytest.mark.asyncio
async def test_run_survives_delivery_errors():
    events = MemoryEventBus()
    manager = ConnectionManager()
    fanout = NotificationFanout(events, manager)
    calls = []

    async def flaky_send(user_id, payload):
        calls.append(payload)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return 1

    manager.send_to_user = flaky_send

    fanout.start()
    try:
        await asyncio.sleep(0.01)
        await events.publish(LifecycleEvent.created(make_submission()))
        await events.publish(LifecycleEvent.created(make_submission()))
        assert await wait_for(lambda: len(calls) == 2)
    finally:
        await fanout.stop()
