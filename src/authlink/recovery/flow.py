"""Auth flow state machine.

Owns which mode the auth page is in (login, registration, email
confirmation, password reset, or the reset error surface) and every
transition between them. The page renders whatever mode the controller
is in; it never decides transitions itself.

A page load with a recovery link runs::

    mount(url) -> classify -> strip URL -> establish session
        VALID   -> RESET_PASSWORD, credential form
        INVALID -> RESET_ERROR, terminal copy
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from authlink.config import RecoveryConfig
from authlink.recovery.cooldown import ResendCooldownLimiter
from authlink.recovery.credentials import CredentialUpdateController
from authlink.recovery.errors import RecoveryError, classify_link_error, describe
from authlink.recovery.session import RecoverySessionEstablisher
from authlink.recovery.signals import (
    AuthRedirectSignal,
    SignalKind,
    classify,
    strip_sensitive_params,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from authlink.auth.models import AuthResult, SendResult
    from authlink.auth.protocol import IdentityClientProtocol
    from authlink.recovery.notices import Notifier
    from authlink.recovery.session import RecoverySession
    from authlink.recovery.timers import TimerHandle, TimerScope

logger = logging.getLogger(__name__)

ABANDON_RESET_PROMPT = (
    "Your password has not been changed. Leave without setting a new password?"
)


class AuthMode(StrEnum):
    LOGIN = "login"
    REGISTER = "register"
    EMAIL_CONFIRM = "email_confirm"
    RESET_PASSWORD = "reset_password"
    RESET_ERROR = "reset_error"


class AuthFlowController:
    """Root controller for one auth page.

    Args:
        client: Identity backend client.
        timers: Scope owning every timer the flow starts.
        notifier: Where notices and confirmations go.
        replace_url: Replaces the visible address without a navigation.
        organization_id: Organization used for backend calls.
        callback_url: Landing page for confirmation emails.
        reset_url: Landing page for password reset emails.
        config: Recovery policy constants.
        limiter: Resend limiter; built from ``config`` when omitted.
        on_change: Called when the flow changes mode on its own, such as
            returning to login after the delayed sign-out.
    """

    def __init__(
        self,
        client: IdentityClientProtocol,
        *,
        timers: TimerScope,
        notifier: Notifier,
        replace_url: Callable[[str], None],
        organization_id: str,
        callback_url: str,
        reset_url: str,
        config: RecoveryConfig | None = None,
        limiter: ResendCooldownLimiter | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._client = client
        self._timers = timers
        self._notifier = notifier
        self._replace_url = replace_url
        self._organization_id = organization_id
        self._callback_url = callback_url
        self._reset_url = reset_url
        self.config = config or RecoveryConfig()
        self.limiter = limiter or ResendCooldownLimiter(
            self.config.resend_cooldown_seconds
        )
        self.on_change = on_change

        self.mode = AuthMode.LOGIN
        self.url = ""
        self.signal = AuthRedirectSignal()
        self.error: RecoveryError | None = None
        self.error_message: str | None = None
        self.pending_email: str | None = None
        self.establisher: RecoverySessionEstablisher | None = None
        self.credentials: CredentialUpdateController | None = None
        self._countdown: TimerHandle | None = None
        # Bumped on every navigation; in-flight results from an older
        # generation are dropped
        self._generation = 0

    @property
    def session(self) -> RecoverySession | None:
        return self.establisher.session if self.establisher else None

    # ------------------------------------------------------------------
    # Page load
    # ------------------------------------------------------------------
    async def mount(self, url: str, *, expect_recovery: bool = False) -> AuthMode:
        """Classify ``url`` and enter the matching mode.

        Args:
            url: Full address of the page, fragment included.
            expect_recovery: True on the reset route, where a URL without
                any signal means the recovery code went missing.

        Returns:
            The mode the flow settled in.
        """
        generation = self._navigate()
        self.signal = signal = classify(url)
        self.url = url
        if signal.kind is not SignalKind.NONE:
            self.url = strip_sensitive_params(url)
            self._replace_url(self.url)

        if signal.kind is SignalKind.ERROR:
            self._fail(classify_link_error(signal))
            return self.mode

        if signal.kind is SignalKind.NONE:
            if expect_recovery:
                self._fail(RecoveryError.TOKEN_MISSING)
            else:
                self.mode = AuthMode.LOGIN
            return self.mode

        self.mode = AuthMode.RESET_PASSWORD
        establisher = RecoverySessionEstablisher(self._client)
        self.establisher = establisher
        session = await establisher.establish(signal)

        if generation != self._generation:
            logger.info("Recovery session resolved after navigation; discarded")
            establisher.close()
            return self.mode

        if not session.is_valid:
            self._fail(
                session.error or RecoveryError.EXCHANGE_FAILED, session.error_message
            )
            return self.mode

        self.credentials = CredentialUpdateController(
            self._client,
            session,
            self._timers,
            organization_id=self._organization_id,
            signout_delay=self.config.signout_delay_seconds,
            on_signed_out=self._after_sign_out(generation),
        )
        return self.mode

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def to_register(self) -> None:
        """Switch between the login and registration forms."""
        if self.mode not in (AuthMode.LOGIN, AuthMode.REGISTER):
            msg = f"Cannot switch to registration from {self.mode}"
            raise RuntimeError(msg)
        self._navigate()
        if self.mode is AuthMode.LOGIN:
            self.mode = AuthMode.REGISTER
        else:
            self.mode = AuthMode.LOGIN

    def to_email_confirm(self, email: str) -> None:
        """Show the "check your inbox" view for ``email``."""
        if self.mode is not AuthMode.REGISTER:
            msg = f"Cannot confirm email from {self.mode}"
            raise RuntimeError(msg)
        self.pending_email = email
        self.mode = AuthMode.EMAIL_CONFIRM

    def to_login(self) -> None:
        """Return to the login form from any mode."""
        self._navigate()
        self.error = None
        self.error_message = None
        self.pending_email = None
        if self.url:
            self.url = strip_sensitive_params(self.url)
            self._replace_url(self.url)
        self.mode = AuthMode.LOGIN

    async def back_to_login(self) -> bool:
        """Leave the current view for the login form.

        Abandoning a valid reset that has not been submitted needs the
        user's confirmation. The recovery session is signed out before
        leaving, since it was only ever good for setting a password.

        Returns:
            False if the user chose to stay.
        """
        credentials = self.credentials
        session = self.session
        if (
            self.mode is not AuthMode.RESET_PASSWORD
            or credentials is None
            or session is None
            or not session.is_valid
        ):
            self.to_login()
            return True

        if not credentials.updated:
            if not await self._notifier.confirm(ABANDON_RESET_PROMPT):
                return False
        # Ends in to_login via on_signed_out
        await credentials.sign_out_now()
        if self.mode is not AuthMode.LOGIN:
            self.to_login()
        return True

    # ------------------------------------------------------------------
    # Backend actions
    # ------------------------------------------------------------------
    async def register(self, email: str) -> SendResult:
        """Create the account (or re-invite it) and await confirmation.

        Registration itself is never held back by the resend cooldown; a
        successful send starts it for the confirmation view.
        """
        email = email.strip()
        generation = self._generation
        result = await self._client.sign_up(
            email, self._organization_id, self._callback_url
        )
        if self._is_stale(generation, "Registration"):
            return result
        if result.success:
            self.limiter.record_send()
            self.to_email_confirm(email)
            self._notifier.notify(
                f"Confirmation email sent to {email}.", type="positive"
            )
        else:
            self._notify_send_failure(result)
        return result

    async def resend_confirmation(self) -> SendResult:
        """Send the confirmation email again, respecting the cooldown."""
        if self.mode is not AuthMode.EMAIL_CONFIRM or not self.pending_email:
            msg = "No pending confirmation to resend"
            raise RuntimeError(msg)
        email = self.pending_email
        generation = self._generation
        result = await self.limiter.attempt(
            lambda: self._client.resend_confirmation_email(
                email, self._organization_id, self._callback_url
            )
        )
        if self._is_stale(generation, "Confirmation resend"):
            return result
        if result.success:
            self._notifier.notify(
                "Confirmation email sent again. Check your inbox.", type="positive"
            )
        else:
            self._notify_send_failure(result)
        return result

    async def request_password_reset(self, email: str) -> SendResult:
        """Email a password reset link to ``email``."""
        email = email.strip()
        generation = self._generation
        result = await self._client.request_password_reset(
            email, self._organization_id, self._reset_url
        )
        if self._is_stale(generation, "Password reset request"):
            return result
        if result.success:
            self._notifier.notify(
                f"Password reset link sent to {email}. "
                f"It is valid for {self.config.link_validity_text}.",
                type="positive",
            )
        else:
            self._notify_send_failure(result)
        return result

    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Log in with email and password."""
        result = await self._client.sign_in_with_password(
            email.strip(), password, self._organization_id
        )
        if not result.success:
            logger.info("Password login failed: %s", result.error)
            self._notifier.notify(
                result.message or "Invalid email or password.", type="negative"
            )
        return result

    def start_resend_countdown(
        self, on_tick: Callable[[int], None], *, interval: float = 1.0
    ) -> TimerHandle | None:
        """Tick ``on_tick`` with the resend cooldown until it runs out.

        Replaces any countdown already running. Leaving the view cancels it.
        """
        if self._countdown is not None:
            self._countdown.cancel()
        self._countdown = self.limiter.start_countdown(
            self._timers, on_tick, interval=interval
        )
        return self._countdown

    def close(self) -> None:
        """Drop in-flight work; the page is going away."""
        self._navigate()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _navigate(self) -> int:
        self._generation += 1
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None
        if self.establisher is not None:
            self.establisher.close()
        self.establisher = None
        self.credentials = None
        return self._generation

    def _after_sign_out(self, generation: int) -> Callable[[], None]:
        def _done() -> None:
            if generation == self._generation:
                self.to_login()
                if self.on_change is not None:
                    self.on_change()

        return _done

    def _is_stale(self, generation: int, action: str) -> bool:
        if generation == self._generation:
            return False
        logger.info("%s result arrived after navigation; discarded", action)
        return True

    def _fail(self, error: RecoveryError, message: str | None = None) -> None:
        self.mode = AuthMode.RESET_ERROR
        self.error = error
        self.error_message = message or describe(error).description
        logger.info("Auth flow entered error state: %s", error)

    def _notify_send_failure(self, result: SendResult) -> None:
        if result.error == "cooldown_active":
            self._notifier.notify(result.message or "Please wait.", type="warning")
            return
        logger.warning("Email send failed: %s", result.error)
        self._notifier.notify(
            result.message or describe(RecoveryError.SEND_FAILED).description,
            type="negative",
        )
