from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from fastapi import APIRouter, Depends, Header, HTTPException, status

from app.schemas import GameOut, PlayCardRequest, ScoresOut, SessionCreated, StatusOut, ViewOut
from app.services.hub import hub
from game import Rejection
from models import ErrorCode, FilteredView, Game
from sessions import SessionSupervisor, supervisor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/sessions")

T = TypeVar("T")

EVENT_BY_STATUS = {
    "continue": "trick_resolved",
    "game_complete": "game_complete",
}


def get_supervisor() -> SessionSupervisor:
    return supervisor


async def _unwrap(pending: Awaitable[T]) -> T:
    try:
        reply = await pending
    except asyncio.TimeoutError:
        logger.warning("Session call timed out")
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="session_timeout")
    if isinstance(reply, Rejection):
        code = (
            status.HTTP_404_NOT_FOUND
            if reply.reason == ErrorCode.SESSION_NOT_FOUND
            else status.HTTP_409_CONFLICT
        )
        raise HTTPException(status_code=code, detail=reply.reason.value)
    return reply


@router.post("", response_model=SessionCreated)
async def create_session(
    x_user_id: str = Header(...),
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> SessionCreated:
    session_id, view = await sessions.create_session(x_user_id)
    return SessionCreated(session_id=session_id, view=view)


@router.post("/{session_id}/join", response_model=ViewOut)
async def join_session(
    session_id: str,
    x_user_id: str = Header(...),
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> ViewOut:
    reply = await _unwrap(sessions.join(session_id, x_user_id))
    await hub.notify(session_id, "player_joined", sessions)
    return ViewOut(status=reply.status.value, view=reply.view)


@router.post("/{session_id}/leave", response_model=ViewOut)
async def leave_session(
    session_id: str,
    x_user_id: str = Header(...),
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> ViewOut:
    reply = await _unwrap(sessions.leave(session_id, x_user_id))
    await hub.notify(session_id, "player_left", sessions)
    return ViewOut(status=reply.status.value, view=reply.view)


@router.post("/{session_id}/start", response_model=GameOut)
async def start_game(
    session_id: str,
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> GameOut:
    reply = await _unwrap(sessions.start(session_id))
    await hub.notify(session_id, "game_started", sessions)
    return GameOut(game=reply.game)


@router.post("/{session_id}/play", response_model=ViewOut)
async def play_card(
    session_id: str,
    req: PlayCardRequest,
    x_user_id: str = Header(...),
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> ViewOut:
    reply = await _unwrap(sessions.play_card(session_id, x_user_id, req.card))
    await hub.notify(session_id, "card_played", sessions)
    return ViewOut(status=reply.status.value, view=reply.view)


@router.post("/{session_id}/resolve", response_model=StatusOut)
async def resolve_trick(
    session_id: str,
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> StatusOut:
    reply = await _unwrap(sessions.resolve_trick(session_id))
    await hub.notify(session_id, EVENT_BY_STATUS[reply.status.value], sessions)
    return StatusOut(status=reply.status.value)


@router.post("/{session_id}/finalize", response_model=ScoresOut)
async def finalize_game(
    session_id: str,
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> ScoresOut:
    reply = await _unwrap(sessions.finalize(session_id))
    await hub.notify(session_id, "game_over", sessions)
    return ScoresOut(scores=reply.scores)


@router.get("/{session_id}", response_model=Game)
async def full_state(
    session_id: str,
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> Game:
    return await _unwrap(sessions.get_full_state(session_id))


@router.get("/{session_id}/view", response_model=FilteredView)
async def player_view(
    session_id: str,
    x_user_id: str = Header(...),
    sessions: SessionSupervisor = Depends(get_supervisor),
) -> FilteredView:
    return await _unwrap(sessions.get_view(session_id, x_user_id))
