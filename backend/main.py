from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from app.api.sessions import router as sessions_router
from app.services.hub import hub
from app.settings import settings
from game import Rejection
from sessions import supervisor

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = settings.allowed_origins()

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

logger.info("CORS allow_origins: %s", ALLOWED_ORIGINS)

app.include_router(sessions_router)


@app.on_event("shutdown")
async def _stop_sessions() -> None:
    await supervisor.shutdown()


async def _leave_lobby(session_id: str, player_id: str) -> None:
    try:
        view = await supervisor.get_view(session_id, player_id)
        if isinstance(view, Rejection) or view.phase != "lobby" or player_id not in view.players:
            return
        reply = await supervisor.leave(session_id, player_id)
        if reply.ok:
            await hub.notify(session_id, "player_left", supervisor)
    except asyncio.TimeoutError:
        logger.warning("Session %s: timed out removing %s from the lobby", session_id, player_id)


# ---------- WS endpoints ----------
@app.websocket("/ws/{session_id}")
async def ws_session(ws: WebSocket, session_id: str, player_id: str = Query(...)):
    if session_id not in supervisor.directory:
        await ws.close(code=1008, reason="session_not_found")
        return

    await hub.connect(session_id, player_id, ws)
    try:
        await hub.send_state(session_id, supervisor)
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        sid, pid = hub.disconnect(ws)
        # a player who walks away from a lobby gives up their seat
        if sid and pid:
            await _leave_lobby(sid, pid)
    except asyncio.TimeoutError:
        logger.warning("Session %s: timed out, closing websocket for %s", session_id, player_id)
        hub.disconnect(ws)
        await ws.close(code=1011, reason="session_timeout")
