# khe_api/routes/realtime_routes.py
"""
Websocket endpoint: /ws/<namespace>?key=<user key>&token=<token>

Unknown namespaces and callers without the namespace's role are refused
with close code 1008 before the handshake completes.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket
from sqlalchemy.orm import Session

from khe_api.data_client.user_client import authenticate_token
from khe_api.db import get_session
from khe_api.realtime import hub

logger = logging.getLogger("khe-api")

router = APIRouter(tags=["realtime"])

POLICY_VIOLATION = 1008


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/{namespace:path}")
async def events(
    websocket: WebSocket,
    namespace: str,
    key: str = "",
    token: str = "",
    session: Session = Depends(get_session),
):
    namespace = "/" + namespace.strip("/")
    user = authenticate_token(session, key, token) if key and token else None
    role = user.role if user else None
    session.close()

    if user is None or not hub.allowed(namespace, role):
        logger.info(f"[Realtime] Refused {namespace} (role={role})")
        await websocket.close(code=POLICY_VIOLATION)
        return

    # Subscribe before accepting so no event emitted after the handshake is missed
    sub = hub.subscribe(namespace)
    receiver = None
    try:
        await websocket.accept()
        receiver = asyncio.create_task(_wait_for_disconnect(websocket))
        while True:
            getter = asyncio.create_task(sub.queue.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if getter not in done:
                getter.cancel()
                break
            await websocket.send_json(getter.result())
    finally:
        if receiver is not None:
            receiver.cancel()
        hub.unsubscribe(namespace, sub)
