"""Single-slot status notifications with generation-guarded auto-clear."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from voicevault.schemas.command import PendingStatus, StatusPhase

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], Any]


def _loop_scheduler(delay: float, callback: Callable[[], None]) -> Optional[asyncio.TimerHandle]:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("Status auto-clear skipped: no running event loop")
        return None
    return loop.call_later(delay, callback)


class StatusChannel:
    """Holds exactly one status.

    Posting bumps the generation. An auto-clear only fires if the generation it
    was scheduled for is still current.
    """

    def __init__(
        self,
        success_clear_seconds: float = 2.0,
        error_clear_seconds: float = 3.0,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._success_clear_seconds = success_clear_seconds
        self._error_clear_seconds = error_clear_seconds
        self._scheduler = scheduler or _loop_scheduler
        self._status = PendingStatus()
        self._handles: Dict[int, Any] = {}
        self._subscribers: List[asyncio.Queue] = []

    @property
    def current(self) -> PendingStatus:
        return self._status

    @property
    def generation(self) -> int:
        return self._status.generation

    def subscribe(self, maxsize: int = 100) -> asyncio.Queue:
        """Queue of status snapshots. A full queue drops its oldest snapshot."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def _publish(self) -> None:
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(self._status)

    def post(self, phase: StatusPhase, message: str) -> PendingStatus:
        self._status = PendingStatus(
            visible=True,
            phase=phase,
            message=message,
            generation=self._status.generation + 1,
        )
        self._publish()
        if phase == StatusPhase.SUCCESS:
            self._schedule_clear(self._success_clear_seconds)
        elif phase == StatusPhase.ERROR:
            self._schedule_clear(self._error_clear_seconds)
        return self._status

    def pending(self, message: str) -> PendingStatus:
        return self.post(StatusPhase.PENDING, message)

    def success(self, message: str) -> PendingStatus:
        return self.post(StatusPhase.SUCCESS, message)

    def error(self, message: str) -> PendingStatus:
        logger.warning(f"Status error: {message}")
        return self.post(StatusPhase.ERROR, message)

    def _schedule_clear(self, delay: float) -> None:
        generation = self._status.generation
        handle = self._scheduler(delay, lambda: self._expire(generation))
        if handle is not None:
            self._handles[generation] = handle

    def _expire(self, generation: int) -> None:
        self._handles.pop(generation, None)
        self.clear(generation)

    @property
    def pending_clears(self) -> int:
        return len(self._handles)

    def clear(self, generation: Optional[int] = None) -> bool:
        """Hide the status. With a generation, only if it is still current."""
        if generation is not None and generation != self._status.generation:
            return False
        if not self._status.visible:
            return False
        # Clearing does not bump the generation; only new statuses do
        self._status = PendingStatus(generation=self._status.generation)
        self._publish()
        return True

    def close(self) -> None:
        for handle in self._handles.values():
            cancel = getattr(handle, "cancel", None)
            if cancel is not None:
                cancel()
        self._handles.clear()
