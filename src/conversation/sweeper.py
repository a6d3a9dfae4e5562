"""RetentionSweeper -- periodic trimming of message logs."""

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog

from ..storage.repositories import MessageRepository
from .state import SessionStateStore

logger = structlog.get_logger()

DEFAULT_KEEP = 100


@dataclass
class SweepResult:
    """Outcome of trimming one session."""

    session_id: str
    deleted: int
    remaining: int


class RetentionSweeper:
    """Keeps each session's log at the ``keep`` most recent messages.

    Trimming only touches rows that existed when the sweep began and takes
    no session lock, so it neither waits for nor blocks turns in flight.
    """

    def __init__(
        self,
        messages: MessageRepository,
        state_store: SessionStateStore,
        keep: int = DEFAULT_KEEP,
        interval: float = 3600.0,
    ) -> None:
        if keep < 1:
            raise ValueError("keep must be >= 1")
        self._messages = messages
        self._state = state_store
        self._keep = keep
        self._interval = interval
        self._task: Optional[asyncio.Task] = None  # type: ignore[type-arg]

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self, session_id: str) -> SweepResult:
        """Trim one session and stamp its lastScheduledTask."""
        await self._state.initialize(session_id)
        deleted, remaining = await self._messages.trim(session_id, self._keep)
        await self._state.record_sweep(session_id)
        return SweepResult(session_id=session_id, deleted=deleted, remaining=remaining)

    async def sweep_all(self) -> list[SweepResult]:
        """Trim every session that has messages."""
        results = []
        for session_id in await self._messages.session_ids():
            results.append(await self.sweep(session_id))

        logger.info(
            "Retention sweep finished",
            sessions=len(results),
            deleted=sum(r.deleted for r in results),
        )
        return results

    async def start(self) -> None:
        """Start the periodic loop; an interval of 0 disables it."""
        if self.running or self._interval <= 0:
            return
        self._task = asyncio.create_task(self._loop(), name="retention-sweeper")
        logger.info("Retention sweeper started", interval=self._interval)

    async def stop(self) -> None:
        """Stop the periodic loop."""
        t, self._task = self._task, None
        if t and not t.done():
            t.cancel()
            try:
                await t
            except asyncio.CancelledError:
                pass

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep_all()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Retention sweep failed")
