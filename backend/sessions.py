"""
Live game sessions.

Every game is owned by one ``Session``: an asyncio task draining a bounded
request queue, so the requests issued against one game are applied one at a
time, in the order they were queued. Sessions are found by id through the
``SessionDirectory`` and started and stopped by the ``SessionSupervisor``.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import game as engine
from app.services.session_codes import generate_session_code
from app.settings import get_settings
from game import Rejection, Result, Status
from models import Card, ErrorCode, FilteredView, Game
from view import project_view

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reply:
    status: Status
    view: Optional[FilteredView] = None
    game: Optional[Game] = None
    scores: Optional[Dict[str, int]] = None

    ok = True


SessionReply = Union[Reply, Rejection]
Handler = Callable[[Game], Tuple[Any, Game]]


def _view_reply(result: Result, game: Game, player: str) -> Tuple[SessionReply, Game]:
    if not result.ok:
        return result, game
    return Reply(result.status, view=project_view(result.game, player)), result.game


class Session:
    def __init__(
        self,
        session_id: str,
        player: str,
        *,
        queue_size: Optional[int] = None,
        call_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.id = session_id
        self._game = engine.create(player)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size or settings.session_queue_size)
        self._call_timeout = call_timeout or settings.session_call_timeout
        self._closed = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"session-{session_id}")

    @property
    def alive(self) -> bool:
        return not self._closed and not self._task.done()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------
    async def _run(self):
        try:
            while True:
                name, handler, future = await self._queue.get()
                try:
                    reply, game = handler(self._game)
                except Exception as exc:
                    logger.exception("Session %s: %s failed, game left unchanged", self.id, name)
                    if not future.done():
                        future.set_exception(exc)
                    continue
                self._game = game
                if isinstance(reply, Rejection):
                    logger.debug("Session %s: %s rejected (%s)", self.id, name, reply)
                else:
                    logger.debug("Session %s: %s -> %s", self.id, name, getattr(reply, "status", "ok"))
                if not future.done():
                    future.set_result(reply)
                if not game.players:
                    logger.info("Session %s: lobby is empty, shutting down", self.id)
                    break
        finally:
            self._closed = True
            self._drain()

    def _drain(self):
        while not self._queue.empty():
            _, _, future = self._queue.get_nowait()
            if not future.done():
                future.set_result(Rejection(ErrorCode.SESSION_NOT_FOUND))

    async def _call(self, name: str, handler: Handler):
        """Queue ``handler`` and wait for the worker to apply it.

        The wait is shielded: a caller that times out or is cancelled stops
        waiting, but the request stays queued and its change still applies.
        """
        if not self.alive:
            return Rejection(ErrorCode.SESSION_NOT_FOUND)
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((name, handler, future))
        if not self.alive:
            # closed while we waited for room in a full queue; nobody reads it
            # any more, so answer our own request and free the next blocked put
            self._drain()
        return await asyncio.wait_for(asyncio.shield(future), self._call_timeout)

    def stop(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._task.cancel()
        self._drain()
        logger.info("Session %s stopped", self.id)

    async def wait_closed(self) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            await self._task

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    async def join(self, player: str) -> SessionReply:
        return await self._call("join", lambda game: _view_reply(engine.join(game, player), game, player))

    async def leave(self, player: str) -> SessionReply:
        return await self._call("leave", lambda game: _view_reply(engine.leave(game, player), game, player))

    async def start(self) -> SessionReply:
        def handler(game: Game):
            result = engine.start(game)
            if not result.ok:
                return result, game
            logger.info("Session %s: game started with %s", self.id, ", ".join(result.game.players))
            return Reply(result.status, game=result.game), result.game

        return await self._call("start", handler)

    async def play_card(self, player: str, card: Card) -> SessionReply:
        def handler(game: Game):
            logger.debug("Session %s: %s plays %s", self.id, player, card.code)
            return _view_reply(engine.play_card(game, player, card), game, player)

        return await self._call("play_card", handler)

    async def resolve_trick(self) -> SessionReply:
        def handler(game: Game):
            result = engine.resolve_trick(game)
            if not result.ok:
                return result, game
            if result.status == Status.GAME_COMPLETE:
                logger.info("Session %s: last trick resolved", self.id)
            return Reply(result.status), result.game

        return await self._call("resolve_trick", handler)

    async def finalize(self) -> SessionReply:
        def handler(game: Game):
            result = engine.finalize(game)
            if not result.ok:
                return result, game
            logger.info("Session %s: final scores %s", self.id, result.scores)
            return Reply(result.status, scores=result.scores), result.game

        return await self._call("finalize", handler)

    async def get_full_state(self) -> Union[Game, Rejection]:
        return await self._call("get_full_state", lambda game: (game, game))

    async def get_view(self, player: str) -> Union[FilteredView, Rejection]:
        return await self._call("get_view", lambda game: (project_view(game, player), game))


class SessionDirectory:
    """Session id -> live ``Session``.

    Registration is a single ``dict.setdefault`` on the event loop, so two
    callers racing for the same id cannot both win and unrelated ids never
    wait on each other.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def register(self, session_id: str, session: Session) -> Tuple[Session, bool]:
        existing = self._sessions.setdefault(session_id, session)
        if existing is session:
            return session, True
        if existing.alive:
            return existing, False
        self._sessions[session_id] = session
        return session, True

    def lookup(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if not session.alive:
            if self._sessions.get(session_id) is session:
                del self._sessions[session_id]
            return None
        return session

    def remove(self, session_id: str) -> Optional[Session]:
        return self._sessions.pop(session_id, None)

    def dead(self) -> List[str]:
        return [sid for sid, session in self._sessions.items() if not session.alive]

    def ids(self) -> List[str]:
        return [sid for sid, session in self._sessions.items() if session.alive]

    def __contains__(self, session_id: object) -> bool:
        return isinstance(session_id, str) and self.lookup(session_id) is not None

    def __len__(self) -> int:
        return len(self.ids())


class SessionSupervisor:
    """Starts and stops sessions and routes requests to them by id."""

    def __init__(self, directory: Optional[SessionDirectory] = None):
        self.directory = directory if directory is not None else SessionDirectory()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start_session(self, session_id: str, player: str) -> Union[Session, Rejection]:
        session = Session(session_id, player)
        registered, created = self.directory.register(session_id, session)
        if not created:
            session.stop()
            logger.warning("Session id %s is already registered", session_id)
            return Rejection(ErrorCode.SESSION_ID_TAKEN)
        logger.info("Session %s created by %s", session_id, player)
        return registered

    async def create_session(self, player: str) -> Tuple[str, FilteredView]:
        while True:
            session_id = generate_session_code(self.directory)
            session = await self.start_session(session_id, player)
            if isinstance(session, Session):
                break
        view = await session.get_view(player)
        return session_id, view

    def stop_session(self, session_id: str) -> bool:
        session = self.directory.remove(session_id)
        if session is None:
            return False
        session.stop()
        return True

    def reap(self) -> List[str]:
        reaped = self.directory.dead()
        for session_id in reaped:
            self.directory.remove(session_id)
        if reaped:
            logger.info("Reaped %d dead sessions", len(reaped))
        return reaped

    async def shutdown(self) -> None:
        sessions = [self.directory.remove(sid) for sid in list(self.directory.ids()) + self.directory.dead()]
        for session in sessions:
            if session is not None:
                session.stop()
        for session in sessions:
            if session is not None:
                await session.wait_closed()
        logger.info("Session supervisor shut down (%d sessions)", len(sessions))

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------
    async def _dispatch(self, session_id: str, operation: str, *args):
        session = self.directory.lookup(session_id)
        if session is None:
            return Rejection(ErrorCode.SESSION_NOT_FOUND)
        return await getattr(session, operation)(*args)

    async def join(self, session_id: str, player: str) -> SessionReply:
        return await self._dispatch(session_id, "join", player)

    async def leave(self, session_id: str, player: str) -> SessionReply:
        reply = await self._dispatch(session_id, "leave", player)
        if reply.ok and not reply.view.players:
            # the session shut itself down after the last player left
            self.reap()
        return reply

    async def start(self, session_id: str) -> SessionReply:
        return await self._dispatch(session_id, "start")

    async def play_card(self, session_id: str, player: str, card: Card) -> SessionReply:
        return await self._dispatch(session_id, "play_card", player, card)

    async def resolve_trick(self, session_id: str) -> SessionReply:
        return await self._dispatch(session_id, "resolve_trick")

    async def finalize(self, session_id: str) -> SessionReply:
        return await self._dispatch(session_id, "finalize")

    async def get_full_state(self, session_id: str) -> Union[Game, Rejection]:
        return await self._dispatch(session_id, "get_full_state")

    async def get_view(self, session_id: str, player: str) -> Union[FilteredView, Rejection]:
        return await self._dispatch(session_id, "get_view", player)


supervisor = SessionSupervisor()
