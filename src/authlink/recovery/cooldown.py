"""Resend cooldown for confirmation and recovery emails."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from authlink.auth.models import SendResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from authlink.recovery.timers import TimerHandle, TimerScope

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 60


@dataclass(frozen=True)
class ResendState:
    """Snapshot of the cooldown bookkeeping."""

    attempt_count: int
    last_sent_at: float | None
    cooldown_remaining_seconds: int

    @property
    def can_send(self) -> bool:
        return self.cooldown_remaining_seconds == 0


class ResendCooldownLimiter:
    """Tracks the last successful send and how long until the next one.

    Args:
        cooldown_seconds: Minimum wait between sends.
        clock: Monotonic clock in seconds; injectable for tests.
    """

    def __init__(
        self,
        cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self.attempt_count = 0
        self.last_sent_at: float | None = None

    def remaining_seconds(self) -> int:
        """Whole seconds until the next send is allowed (0 if allowed now)."""
        if self.last_sent_at is None:
            return 0
        elapsed = self._clock() - self.last_sent_at
        return math.ceil(max(0.0, self.cooldown_seconds - elapsed))

    def can_send(self) -> bool:
        return self.remaining_seconds() == 0

    def record_send(self) -> None:
        self.last_sent_at = self._clock()
        self.attempt_count += 1

    @property
    def state(self) -> ResendState:
        return ResendState(
            attempt_count=self.attempt_count,
            last_sent_at=self.last_sent_at,
            cooldown_remaining_seconds=self.remaining_seconds(),
        )

    async def attempt(self, send: Callable[[], Awaitable[SendResult]]) -> SendResult:
        """Run ``send`` if the cooldown allows it.

        Only a successful send starts the cooldown; a failed one leaves the
        user free to retry straight away.

        Returns:
            The send's result, or a ``cooldown_active`` failure without
            calling ``send``.
        """
        remaining = self.remaining_seconds()
        if remaining:
            return SendResult(
                success=False,
                error="cooldown_active",
                message=f"Please wait {remaining}s before sending again.",
            )
        result = await send()
        if result.success:
            self.record_send()
            logger.info("Email sent (attempt %d)", self.attempt_count)
        return result

    def start_countdown(
        self,
        scope: TimerScope,
        on_tick: Callable[[int], None],
        *,
        interval: float = 1.0,
    ) -> TimerHandle | None:
        """Report the remaining seconds every ``interval`` until it reaches 0.

        ``on_tick`` receives each new value, the final call receiving 0.
        Nothing is scheduled when the cooldown is not running.
        """
        if not self.remaining_seconds():
            return None

        def _tick() -> bool:
            remaining = self.remaining_seconds()
            on_tick(remaining)
            return remaining > 0

        return scope.every(interval, _tick)
