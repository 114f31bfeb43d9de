"""Index page for authlink."""

import logging

from nicegui import app, ui

from authlink.auth import get_auth_client

logger = logging.getLogger(__name__)


def _get_session_user() -> dict | None:
    """Get the current user from session storage."""
    return app.storage.user.get("auth_user")


@ui.page("/")
async def index_page() -> None:
    """Landing page for logged-in members. Requires a live session."""
    user = _get_session_user()

    if not user:
        ui.navigate.to("/login")
        return

    session_token = user.get("session_token")
    if not session_token:
        logger.warning("Session missing token, clearing session")
        app.storage.user.pop("auth_user", None)
        ui.navigate.to("/login")
        return

    session_result = await get_auth_client().validate_session(session_token)
    if not session_result.valid:
        logger.info("Session expired or invalid: %s", session_result.error)
        app.storage.user.pop("auth_user", None)
        ui.navigate.to("/login")
        return

    ui.label("Welcome to authlink").classes("text-2xl font-bold mb-4")
    display_name = user.get("name") or user.get("email", "").split("@")[0]
    ui.label(f"Hello, {display_name}!").classes("text-lg mb-4")

    with ui.card().classes("p-4"):
        with ui.row().classes("gap-2"):
            ui.label("Email:").classes("font-semibold")
            ui.label(user["email"])

        with ui.row().classes("gap-2"):
            ui.label("Roles:").classes("font-semibold")
            for role in user["roles"]:
                ui.badge(role).classes("mr-1")

    ui.button(
        "Logout",
        on_click=lambda: ui.navigate.to("/logout"),
    ).props('data-testid="logout-btn"').classes("mt-4")
