"""
실시간 제출 알림 WebSocket

호출자 식별은 HTTP API와 같이 게이트웨이가 전달하는 X-User-Id 헤더를 사용합니다.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Header, WebSocket, WebSocketDisconnect, status

from judge_pipeline.core.security import USER_ID_HEADER


logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws/submissions")
async def submissions_ws(
    websocket: WebSocket,
    user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
):
    """
    제출자별 알림 채널

    메시지 형식: {"type": "submission_created" | "submission_finished", "submissionId", ...}
    """
    if not user_id:
        logger.warning("[WebSocket] X-User-Id 헤더 없음, 연결 거부")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    manager = websocket.app.state.container.connections
    await manager.connect(user_id, websocket)
    logger.info(f"[WebSocket] 연결 - user: {user_id}")

    try:
        await websocket.send_json({"type": "connected", "userId": user_id})
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info(f"[WebSocket] 연결 종료 - user: {user_id}")
    finally:
        manager.disconnect(user_id, websocket)
