from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from fastapi import WebSocket

from game import Rejection
from sessions import SessionSupervisor

logger = logging.getLogger(__name__)


class Hub:
    """Websocket fan-out for session events.

    The game core is request/response only; this is how the other players
    at a table hear that something happened.
    """

    def __init__(self):
        self.sessions: Dict[str, List[WebSocket]] = {}
        self.ws_player: Dict[WebSocket, str] = {}
        self.ws_session: Dict[WebSocket, str] = {}

    async def connect(self, session_id: str, player_id: str, ws: WebSocket):
        await ws.accept()
        self.sessions.setdefault(session_id, []).append(ws)
        self.ws_player[ws] = player_id
        self.ws_session[ws] = session_id

    def disconnect(self, ws: WebSocket) -> Tuple[Optional[str], Optional[str]]:
        pid = self.ws_player.pop(ws, None)
        sid = self.ws_session.pop(ws, None)
        if sid and ws in self.sessions.get(sid, []):
            self.sessions[sid].remove(ws)
            if not self.sessions[sid]:
                self.sessions.pop(sid, None)
        return sid, pid

    async def send_event(self, session_id: str, message: dict):
        for ws in list(self.sessions.get(session_id, [])):
            try:
                await ws.send_json(message)
            except RuntimeError:
                pass

    async def send_state(self, session_id: str, supervisor: SessionSupervisor):
        for ws in list(self.sessions.get(session_id, [])):
            player_id = self.ws_player.get(ws)
            view = await supervisor.get_view(session_id, player_id)
            if isinstance(view, Rejection):
                return
            try:
                await ws.send_json({"type": "state", "payload": view.model_dump(mode="json")})
            except RuntimeError:
                pass

    async def notify(self, session_id: str, event: str, supervisor: SessionSupervisor):
        logger.debug("Session %s: broadcasting %s", session_id, event)
        await self.send_event(session_id, {"type": event, "session_id": session_id})
        await self.send_state(session_id, supervisor)


hub = Hub()
