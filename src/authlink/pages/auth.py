"""Authentication pages for authlink.

Provides login, registration, email confirmation and password reset pages
using NiceGUI. Uses either real Stytch or MockIdentityClient based on the
DEV__AUTH_MOCK setting.

Each page load owns one AuthFlowController and one TimerScope. The scope
is closed when the browser disconnects, which cancels the resend countdown
and any pending sign-out.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from nicegui import Client, app, ui

from authlink.auth import get_auth_client, get_organization_id
from authlink.config import get_settings
from authlink.pages.notices import PageNotifier
from authlink.recovery.credentials import (
    CONFIRM_PASSWORD,
    NEW_PASSWORD,
    CredentialUpdateForm,
)
from authlink.recovery.errors import TERMINAL_ERRORS, RecoveryError, describe
from authlink.recovery.flow import AuthFlowController, AuthMode
from authlink.recovery.policy import PASSWORD_REQUIREMENTS
from authlink.recovery.signals import MAX_SIGNAL_LENGTH
from authlink.recovery.timers import TimerScope

if TYPE_CHECKING:
    from collections.abc import Callable

    from starlette.requests import Request

    from authlink.auth.models import AuthResult

logger = logging.getLogger(__name__)

# Time to display error message before redirecting (seconds)
_ERROR_DISPLAY_SECONDS = 0.5


def _get_session_user() -> dict | None:
    """Get the current user from session storage.

    Returns:
        User dict with email, member_id, roles, etc. or None if not authenticated.
    """
    return app.storage.user.get("auth_user")


def _set_session_user(result: AuthResult, auth_method: str) -> None:
    """Store an authenticated member in session storage."""
    logger.info(
        "Login successful: email=%s, member_id=%s, auth_method=%s",
        result.email,
        result.member_id,
        auth_method,
    )
    app.storage.user["auth_user"] = {
        "email": result.email or "",
        "member_id": result.member_id or "",
        "organization_id": result.organization_id or "",
        "session_token": result.session_token or "",
        "roles": result.roles,
        "name": result.name,
        "auth_method": auth_method,
    }


def _clear_session() -> None:
    """Clear the current session."""
    app.storage.user.pop("auth_user", None)


def _get_query_param(name: str) -> str | None:
    """Get a query parameter from the current request."""
    request: Request = ui.context.client.request
    return request.query_params.get(name)


def _replace_url(client: Client, url: str) -> None:
    """Replace the address bar without reloading the page."""
    client.run_javascript(f"window.history.replaceState(null, '', {json.dumps(url)})")


def _build_login_form(flow: AuthFlowController, refresh: Callable[[], None]) -> None:
    """Email and password login, plus the forgotten password request."""
    with ui.card().classes("w-96 p-4"):
        ui.label("Log in").classes("text-lg font-semibold mb-2")

        email_input = (
            ui.input(label="Email address", placeholder="you@example.com")
            .props('data-testid="email-input"')
            .classes("w-full")
        )
        password_input = (
            ui.input(label="Password", password=True, password_toggle_button=True)
            .props('data-testid="password-input"')
            .classes("w-full")
        )

        async def sign_in() -> None:
            if not email_input.value or not password_input.value:
                ui.notify("Please enter your email and password", type="warning")
                return
            result = await flow.sign_in(email_input.value, password_input.value)
            if result.success:
                _set_session_user(result, auth_method="password")
                ui.navigate.to("/")

        async def forgot_password() -> None:
            if not email_input.value:
                ui.notify("Enter your email address first", type="warning")
                return
            await flow.request_password_reset(email_input.value)

        def to_register() -> None:
            flow.to_register()
            refresh()

        ui.button("Log in", on_click=sign_in).props(
            'data-testid="login-btn"'
        ).classes("w-full mt-2")
        with ui.row().classes("w-full justify-between mt-2"):
            ui.button("Forgot password?", on_click=forgot_password).props(
                'flat dense data-testid="forgot-password-btn"'
            )
            ui.button("Create account", on_click=to_register).props(
                'flat dense data-testid="to-register-btn"'
            )


def _build_register_form(
    flow: AuthFlowController, refresh: Callable[[], None]
) -> None:
    """Registration by email; the password is set from the emailed link."""
    with ui.card().classes("w-96 p-4"):
        ui.label("Create an account").classes("text-lg font-semibold mb-2")

        email_input = (
            ui.input(label="Email address", placeholder="you@example.com")
            .props('data-testid="register-email-input"')
            .classes("w-full")
        )

        async def register() -> None:
            if not email_input.value:
                ui.notify("Please enter an email address", type="warning")
                return
            result = await flow.register(email_input.value)
            if result.success:
                refresh()

        def to_login_form() -> None:
            flow.to_register()
            refresh()

        ui.button("Register", on_click=register).props(
            'data-testid="register-btn"'
        ).classes("w-full mt-2")
        ui.button("Already have an account? Log in", on_click=to_login_form).props(
            "flat dense"
        ).classes("mt-2")


def _build_email_confirm(
    flow: AuthFlowController, refresh: Callable[[], None]
) -> None:
    """The "check your inbox" view with a rate-limited resend button."""
    with ui.card().classes("w-96 p-4"):
        ui.label("Check your email").classes("text-lg font-semibold mb-2")
        ui.label(
            f"We sent a confirmation link to {flow.pending_email}. "
            f"The link is valid for {flow.config.link_validity_text}."
        ).classes("text-sm mb-4")

        resend_btn = ui.button("Resend email").props(
            'data-testid="resend-btn"'
        ).classes("w-full")

        def show_remaining(remaining: int) -> None:
            if remaining:
                resend_btn.text = f"Resend email ({remaining}s)"
                resend_btn.disable()
            else:
                resend_btn.text = "Resend email"
                resend_btn.enable()

        async def resend() -> None:
            result = await flow.resend_confirmation()
            if result.success:
                show_remaining(flow.limiter.remaining_seconds())
                flow.start_resend_countdown(show_remaining)

        resend_btn.on_click(resend)
        show_remaining(flow.limiter.remaining_seconds())
        flow.start_resend_countdown(show_remaining)

        def back() -> None:
            flow.to_login()
            refresh()

        ui.button("Back to login", on_click=back).props("flat dense").classes("mt-2")


def _build_reset_form(
    flow: AuthFlowController, refresh: Callable[[], None]
) -> None:
    """New password form for a VALID recovery session."""
    credentials = flow.credentials
    if credentials is None:
        with ui.card().classes("w-96 p-4 items-center"):
            ui.label("Checking your link...").classes("text-lg")
            ui.spinner()
        return

    form = CredentialUpdateForm()

    async def back_to_login() -> None:
        if await flow.back_to_login():
            refresh()

    @ui.refreshable
    def form_section() -> None:
        with ui.card().classes("w-96 p-4"):
            ui.label("Set a new password").classes("text-lg font-semibold mb-2")

            if credentials.updated:
                ui.label(
                    "Your password has been updated. "
                    "You will be signed out so you can log in with it."
                ).classes("text-green-700 mb-4")
                ui.button("Go to login", on_click=back_to_login).props(
                    'data-testid="go-to-login-btn"'
                ).classes("w-full")
                return

            new_input = (
                ui.input(
                    label="New password",
                    password=True,
                    password_toggle_button=True,
                    value=form.new_password,
                    on_change=lambda e: form.set_field(NEW_PASSWORD, e.value or ""),
                )
                .props('data-testid="new-password-input"')
                .classes("w-full")
            )
            if NEW_PASSWORD in form.field_errors:
                new_input.props(
                    f"error error-message={json.dumps(form.field_errors[NEW_PASSWORD])}"
                )

            confirm_input = (
                ui.input(
                    label="Confirm new password",
                    password=True,
                    password_toggle_button=True,
                    value=form.confirm_password,
                    on_change=lambda e: form.set_field(
                        CONFIRM_PASSWORD, e.value or ""
                    ),
                )
                .props('data-testid="confirm-password-input"')
                .classes("w-full")
            )
            if CONFIRM_PASSWORD in form.field_errors:
                confirm_input.props(
                    "error error-message="
                    f"{json.dumps(form.field_errors[CONFIRM_PASSWORD])}"
                )

            with ui.column().classes("gap-0 my-2"):
                for requirement in PASSWORD_REQUIREMENTS.values():
                    ui.label(f"• {requirement}").classes("text-xs text-gray-600")

            async def submit() -> None:
                submit_btn.disable()
                try:
                    result = await credentials.submit(form)
                finally:
                    submit_btn.enable()
                if result.success:
                    ui.notify("Password updated", type="positive")
                form_section.refresh()

            submit_btn = (
                ui.button("Update password", on_click=submit)
                .props('data-testid="update-password-btn"')
                .classes("w-full mt-2")
            )
            ui.button("Back to login", on_click=back_to_login).props(
                "flat dense"
            ).classes("mt-2")

    form_section()


def _build_reset_error(
    flow: AuthFlowController, refresh: Callable[[], None]
) -> None:
    """Terminal error surface: request a new link or go back to login."""
    error = flow.error or RecoveryError.EXCHANGE_FAILED
    copy = describe(error)
    with ui.card().classes("w-96 p-4"):
        ui.label(copy.title).classes("text-lg font-semibold text-red-600 mb-2")
        ui.label(flow.error_message or copy.description).props(
            'data-testid="reset-error-message"'
        ).classes("text-sm mb-4")

        if error in TERMINAL_ERRORS:
            ui.label(
                "Request a new link below. "
                f"New links are valid for {flow.config.link_validity_text}."
            ).classes("text-xs text-gray-600 mb-2")

        email_input = (
            ui.input(label="Email address", placeholder="you@example.com")
            .props('data-testid="reset-email-input"')
            .classes("w-full")
        )

        async def request_new_link() -> None:
            if not email_input.value:
                ui.notify("Please enter an email address", type="warning")
                return
            await flow.request_password_reset(email_input.value)

        def back() -> None:
            flow.to_login()
            refresh()

        ui.button("Request a new link", on_click=request_new_link).props(
            'data-testid="request-new-link-btn"'
        ).classes("w-full mt-2")
        ui.button("Back to login", on_click=back).props("flat dense").classes("mt-2")


async def _auth_view(client: Client, *, expect_recovery: bool) -> None:
    """Render the auth flow for this page load."""
    settings = get_settings()
    timers = TimerScope(f"auth:{client.id}")
    loaded = False

    def on_change() -> None:
        # May run from a timer, outside any UI event handler
        with client:
            if expect_recovery and flow.mode is AuthMode.LOGIN:
                ui.navigate.to("/login")
                return
            view.refresh()

    flow = AuthFlowController(
        get_auth_client(),
        timers=timers,
        notifier=PageNotifier(settings.recovery.notice_seconds),
        replace_url=lambda url: _replace_url(client, url),
        organization_id=get_organization_id(),
        callback_url=settings.confirmation_callback_url,
        reset_url=settings.reset_password_url,
        config=settings.recovery,
        on_change=on_change,
    )

    def on_disconnect() -> None:
        flow.close()
        timers.close()

    client.on_disconnect(on_disconnect)

    @ui.refreshable
    def view() -> None:
        if not loaded:
            ui.spinner()
            return
        if flow.mode is AuthMode.LOGIN:
            _build_login_form(flow, on_change)
        elif flow.mode is AuthMode.REGISTER:
            _build_register_form(flow, on_change)
        elif flow.mode is AuthMode.EMAIL_CONFIRM:
            _build_email_confirm(flow, on_change)
        elif flow.mode is AuthMode.RESET_PASSWORD:
            _build_reset_form(flow, on_change)
        else:
            _build_reset_error(flow, on_change)

    ui.label("authlink").classes("text-2xl font-bold mb-4")
    view()

    # The fragment never reaches the server; read the full address from
    # the browser
    await client.connected()
    url = await ui.run_javascript("window.location.href")
    await flow.mount(str(url or ""), expect_recovery=expect_recovery)
    loaded = True
    view.refresh()


@ui.page("/login")
async def login_page(client: Client) -> None:
    """Login page with password login, registration and reset requests."""
    if _get_session_user():
        ui.navigate.to("/")
        return
    await _auth_view(client, expect_recovery=False)


@ui.page("/auth/reset-password")
async def reset_password_page(client: Client) -> None:
    """Landing page for password reset links."""
    logger.info("Password reset link opened")
    await _auth_view(client, expect_recovery=True)


@ui.page("/auth/callback")
async def confirmation_callback() -> None:
    """Handle the confirmation email callback and log the member in."""
    logger.info("Confirmation callback received")
    token = _get_query_param("token")

    if not token or len(token) > MAX_SIGNAL_LENGTH:
        logger.warning("Confirmation callback: invalid or missing token")
        ui.label("Invalid or missing token").classes("text-xl text-red-500")
        ui.notify("Invalid or missing token", type="negative")
        ui.timer(_ERROR_DISPLAY_SECONDS, lambda: ui.navigate.to("/login"), once=True)
        return

    ui.label("Confirming your email...").classes("text-xl")
    ui.spinner()

    logger.debug("Authenticating confirmation token (length=%d)", len(token))
    result = await get_auth_client().authenticate_confirmation(token)

    if result.success:
        _set_session_user(result, auth_method="email_confirmation")
        ui.navigate.to("/")
    else:
        logger.warning("Confirmation failed: %s", result.error)
        ui.label(f"Error: {result.message or result.error}").classes("text-red-500")
        ui.notify(f"Confirmation failed: {result.error}", type="negative")
        ui.timer(_ERROR_DISPLAY_SECONDS, lambda: ui.navigate.to("/login"), once=True)


@ui.page("/logout")
def logout_page() -> None:
    """Logout and redirect to login."""
    _clear_session()
    ui.navigate.to("/login")
