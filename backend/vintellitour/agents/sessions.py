# sessions.py - In-process conversation sessions
import asyncio
import time
from contextlib import asynccontextmanager
from typing import Callable

from vintellitour.agents.orchestrator_agent import DialogueOrchestrator
from vintellitour.core.config import SESSION_IDLE_SECONDS
from vintellitour.core.errors import ForbiddenError
from vintellitour.core.logger import get_logger
from vintellitour.models.conversation import ConversationState, Message

log = get_logger(__name__)


class SessionManager:
    """
    Holds one ConversationState per session id. Turns for the same session
    run one at a time; different sessions never block each other.

    A session's lock is dropped only when nobody holds or waits for it, and
    sessions idle for longer than `idle_seconds` are forgotten.
    """

    def __init__(
        self,
        orchestrator: DialogueOrchestrator,
        idle_seconds: float = SESSION_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.orchestrator = orchestrator
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._states: dict[str, ConversationState] = {}
        self._last_seen: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def _hold(self, session_id: str):
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        self._holders[session_id] = self._holders.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[session_id] -= 1
            if self._holders[session_id] == 0:
                del self._holders[session_id]
                if session_id not in self._states:
                    self._locks.pop(session_id, None)

    def _forget(self, session_id: str) -> bool:
        self._last_seen.pop(session_id, None)
        return self._states.pop(session_id, None) is not None

    def evict_idle(self) -> int:
        """Drop sessions idle past the cutoff that no turn is using. Returns how many."""
        cutoff = self._clock() - self.idle_seconds
        idle = [
            sid
            for sid, seen in self._last_seen.items()
            if seen < cutoff and sid not in self._holders
        ]
        for sid in idle:
            self._forget(sid)
            self._locks.pop(sid, None)
        if idle:
            log.info("Evicted %d idle sessions", len(idle))
        return len(idle)

    def get(self, session_id: str) -> ConversationState | None:
        return self._states.get(session_id)

    async def handle(self, session_id: str, user_id: str, text: str) -> tuple[ConversationState, Message]:
        self.evict_idle()
        async with self._hold(session_id):
            state = self._states.get(session_id)
            if state is None:
                log.info("New session %s for user %s", session_id, user_id)
                state = ConversationState.start(user_id)
            elif state.user_id != user_id:
                raise ForbiddenError(f"Session {session_id} belongs to another user")

            new_state, reply = await self.orchestrator.process_turn(state, Message.user(text))
            self._states[session_id] = new_state
            self._last_seen[session_id] = self._clock()
            return new_state, reply

    async def end(self, session_id: str) -> bool:
        """Forget a session once its in-flight turn, if any, has finished."""
        async with self._hold(session_id):
            ended = self._forget(session_id)
        if ended:
            log.info("Ended session %s", session_id)
        return ended


__all__ = ["SessionManager"]
