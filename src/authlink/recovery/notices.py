"""Notification capability used by the auth flow.

The flow never talks to the UI toolkit directly; pages hand it a Notifier.
Tests hand it a recording fake.
"""

from __future__ import annotations

from typing import Literal, Protocol

NoticeType = Literal["positive", "negative", "warning", "info"]


class Notifier(Protocol):
    """Transient notices and yes/no confirmations."""

    def notify(self, message: str, *, type: NoticeType = "info") -> None:  # noqa: A002
        """Show a short-lived notice."""
        ...

    async def confirm(self, message: str) -> bool:
        """Ask the user a yes/no question and wait for the answer."""
        ...
