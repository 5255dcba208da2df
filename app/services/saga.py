"""
Compensation log for multi-system writes.

There is no distributed transaction between the database and external
services, so each external side effect that succeeds (or whose outcome is
unknown) registers an undo action here.  If the unit of work fails, the
log is unwound in reverse registration order.

Unwinding is best-effort: a failing compensation is logged and the next
one still runs, and nothing is re-raised so the primary failure remains
the one reported to the caller.
"""
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

Compensation = Callable[[], Awaitable[None]]


class CompensationLog:
    def __init__(self) -> None:
        self._steps: list[tuple[str, Compensation]] = []

    def register(self, name: str, compensation: Compensation) -> None:
        self._steps.append((name, compensation))

    def __len__(self) -> int:
        return len(self._steps)

    async def unwind(self) -> list[str]:
        """
        Run every registered compensation once, newest first.

        Returns the names of the compensations that failed.  The log is
        emptied before any compensation runs, so a second call is a no-op.
        """
        steps, self._steps = self._steps, []
        failed: list[str] = []
        for name, compensation in reversed(steps):
            logger.warning("Compensating: %s", name)
            try:
                await compensation()
            except Exception:
                logger.exception("Compensation %s failed", name)
                failed.append(name)
        return failed
