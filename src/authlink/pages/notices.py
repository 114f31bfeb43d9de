"""NiceGUI notices and confirmation dialogs for the auth pages."""

from __future__ import annotations

from nicegui import ui

from authlink.recovery.notices import NoticeType


class PageNotifier:
    """Notifier backed by ``ui.notify`` and an awaitable ``ui.dialog``.

    Args:
        notice_seconds: How long transient notices stay on screen.
    """

    def __init__(self, notice_seconds: float = 5.0) -> None:
        self._timeout_ms = int(notice_seconds * 1000)

    def notify(self, message: str, *, type: NoticeType = "info") -> None:  # noqa: A002
        ui.notify(message, type=type, timeout=self._timeout_ms)

    async def confirm(self, message: str) -> bool:
        """Show awaitable modal asking the user to confirm ``message``.

        Returns:
            True if the user confirmed, False if they cancelled or
            dismissed the dialog.
        """
        with ui.dialog() as dialog, ui.card().classes("w-96"):
            ui.label("Are you sure?").classes("text-lg font-bold mb-2")
            ui.label(message).classes("text-sm text-gray-600 mb-4")

            with ui.row().classes("w-full justify-end gap-2"):
                ui.button("Stay", on_click=lambda: dialog.submit(False)).props("flat")
                ui.button(
                    "Leave",
                    on_click=lambda: dialog.submit(True),
                ).props('color=primary data-testid="confirm-leave-btn"')

        dialog.open()
        result = await dialog
        dialog.delete()
        return bool(result)
