"""WebSocket stream of an outlet's order events."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from pos_core.core.config import settings
from pos_core.core.security import actor_from_token, require_outlet_access
from pos_core.realtime import hub as realtime_hub

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/outlets/{outlet_id}/orders")
async def outlet_orders_ws(websocket: WebSocket, outlet_id: int, token: str | None = None) -> None:
    """Push ``order.*`` events for ``outlet_id`` until the client leaves.

    Idle connections get ``{"type": "ping"}`` every heartbeat interval. A
    client too slow to drain its queue is disconnected with 1013.
    """
    try:
        if not token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
        actor = actor_from_token(token)
        require_outlet_access(actor, outlet_id)
    except HTTPException as exc:
        logger.info("Rejected realtime connection for outlet %s: %s", outlet_id, exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    subscriber = realtime_hub.event_hub.subscribe(outlet_id)
    await websocket.accept()
    logger.info("User %s subscribed to outlet %s", actor.user_id, outlet_id)

    async def reader() -> None:
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            realtime_hub.event_hub.unsubscribe(subscriber)

    reader_task = asyncio.create_task(reader())
    try:
        while True:
            try:
                event = await subscriber.get(timeout=settings.realtime_heartbeat_seconds)
            except asyncio.TimeoutError:
                await websocket.send_json({"type": "ping"})
                continue
            if event is None:
                break
            await websocket.send_json(event)
        if not reader_task.done():
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
    except (WebSocketDisconnect, RuntimeError):  # pragma: no cover - network disconnect
        pass
    finally:
        reader_task.cancel()
        realtime_hub.event_hub.unsubscribe(subscriber)
        logger.info("User %s unsubscribed from outlet %s", actor.user_id, outlet_id)
