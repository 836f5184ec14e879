from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from ordering.errors import InvalidSchedule
from utils.logger import get_logger

_logger = get_logger(__name__)


class AutoLockScheduler:
    """
    One armed, cancellable delayed call of `action` (lock every PENDING order).

    The action decides what to lock when it fires, not when it is armed, so
    orders placed in between are included. Arming again replaces the earlier
    schedule. The schedule lives in memory only and is lost on restart.
    """

    def __init__(
        self,
        action: Callable[[], Awaitable[Any]],
        clock: Callable[[], datetime] = datetime.now,
        on_done: Optional[Callable[[AutoLockScheduler], None]] = None,
    ) -> None:
        self._action = action
        self._clock = clock
        self._on_done = on_done
        self._task: Optional[asyncio.Task] = None
        self._fire_at: Optional[datetime] = None
        self.last_result: Any = None
        self.last_error: Optional[Exception] = None

    @property
    def fire_at(self) -> Optional[datetime]:
        return self._fire_at

    @property
    def is_armed(self) -> bool:
        # disarmed as soon as the action starts running
        return self._fire_at is not None and self._task is not None and not self._task.done()

    def schedule(self, fire_at: datetime) -> None:
        """Arm the lock for a future time. Must be called from a running event loop."""
        delay = (fire_at - self._clock()).total_seconds()
        if delay <= 0:
            raise InvalidSchedule("Auto-lock time must be in the future.")

        self.cancel()
        self._fire_at = fire_at
        self.last_error = None
        self._task = asyncio.get_running_loop().create_task(self._run(delay))
        _logger.info(f"Auto-lock armed for {fire_at:%Y-%m-%d %H:%M:%S} (in {delay:.0f}s)")

    def cancel(self) -> bool:
        if not self.is_armed:
            return False
        self._task.cancel()
        self._task = None
        self._fire_at = None
        _logger.info("Auto-lock disarmed")
        return True

    async def wait(self) -> Any:
        """
        Wait for the armed lock to fire and return the action's result.
        A failed action yields None; the exception is kept in `last_error`.
        """
        if self._task is None:
            return self.last_result
        return await self._task

    async def _run(self, delay: float) -> Any:
        await asyncio.sleep(delay)
        self._fire_at = None
        _logger.info("Auto-lock firing")
        try:
            self.last_result = await self._action()
            self.last_error = None
        except Exception as exc:
            _logger.exception("Auto-lock failed")
            self.last_result = None
            self.last_error = exc
        if self._on_done is not None:
            self._on_done(self)
        return self.last_result
