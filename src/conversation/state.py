"""Per-session state record with serialized read-modify-write."""

import asyncio
import weakref
from typing import Callable

import structlog

from ..storage.repositories import SessionStateRepository
from ..utils.clock import now_ms
from .models import SessionState

logger = structlog.get_logger()

StateMutator = Callable[[SessionState], SessionState]


class SessionStateStore:
    """Keyed store of SessionState records.

    ``set_state`` is a blind full overwrite. Callers that derive the next
    record from the current one go through ``update``, which holds the
    session's lock for the whole read-compute-write so concurrent turns for
    the same session cannot lose each other's increments. Different sessions
    never share a lock.
    """

    def __init__(self, repo: SessionStateRepository) -> None:
        self._repo = repo
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, session_id: str) -> asyncio.Lock:
        """Return the lock serializing state writes for a session."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def get_state(self, session_id: str) -> SessionState:
        """Current record, or an uninitialized default if none is stored."""
        state = await self._repo.get(session_id)
        return state if state is not None else SessionState()

    async def set_state(self, session_id: str, state: SessionState) -> None:
        """Overwrite the whole record; last writer wins."""
        await self._repo.put(session_id, state)

    async def update(self, session_id: str, mutate: StateMutator) -> SessionState:
        """Apply ``mutate`` to the current record and store the result."""
        async with self.lock_for(session_id):
            current = await self.get_state(session_id)
            next_state = mutate(current.model_copy())
            await self._repo.put(session_id, next_state)
            return next_state

    async def initialize(self, session_id: str) -> SessionState:
        """Mark the session initialized with zeroed counters, once."""
        async with self.lock_for(session_id):
            current = await self.get_state(session_id)
            if current.initialized:
                return current
            state = SessionState(
                initialized=True,
                message_count=0,
                last_interaction=now_ms(),
            )
            await self._repo.put(session_id, state)

        logger.info("Session initialized", session_id=session_id)
        return state

    async def record_turn(self, session_id: str) -> SessionState:
        """Count one completed turn and stamp the interaction time."""

        def _bump(state: SessionState) -> SessionState:
            state.message_count += 1
            state.last_interaction = now_ms()
            return state

        return await self.update(session_id, _bump)

    async def record_sweep(self, session_id: str) -> SessionState:
        """Stamp the time of the latest retention sweep."""

        def _stamp(state: SessionState) -> SessionState:
            state.last_scheduled_task = now_ms()
            return state

        return await self.update(session_id, _stamp)
