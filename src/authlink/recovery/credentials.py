"""New password entry for an established recovery session.

After a successful update the recovery session is signed out after a
short delay. The session minted from a recovery link only exists to set
the password; the user logs in again with the new one.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from authlink.recovery.errors import RecoveryError, describe
from authlink.recovery.policy import PolicyViolation, validate_password

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from authlink.auth.protocol import IdentityClientProtocol
    from authlink.recovery.session import RecoverySession
    from authlink.recovery.timers import TimerHandle, TimerScope

logger = logging.getLogger(__name__)

NEW_PASSWORD = "new_password"
CONFIRM_PASSWORD = "confirm_password"

DEFAULT_SIGNOUT_DELAY_SECONDS = 3.0

ALREADY_UPDATED_MESSAGE = "Your password has already been updated."


@dataclass
class CredentialUpdateForm:
    """The new password pair and the errors attached to each field."""

    new_password: str = ""
    confirm_password: str = ""
    field_errors: dict[str, str] = field(default_factory=dict)
    submitted: bool = False

    def set_field(self, name: str, value: str) -> None:
        """Update a field and clear its error (the user is fixing it)."""
        if name not in (NEW_PASSWORD, CONFIRM_PASSWORD):
            msg = f"Unknown form field: {name}"
            raise ValueError(msg)
        setattr(self, name, value)
        self.field_errors.pop(name, None)

    @property
    def can_submit(self) -> bool:
        return (
            not self.submitted
            and not self.field_errors
            and bool(self.new_password)
            and self.new_password == self.confirm_password
        )


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of one submission.

    Attributes:
        success: True once the backend accepted the new password.
        error: Why the submission failed.
        violations: Every failed password rule (policy failures only).
        message: Text for the user.
    """

    success: bool
    error: RecoveryError | None = None
    violations: tuple[PolicyViolation, ...] = ()
    message: str | None = None


class CredentialUpdateController:
    """Validates and applies a new password, then forces a fresh login.

    Args:
        client: Identity backend client.
        session: The recovery session; must be VALID when submitting.
        timers: Scope owning the delayed sign-out.
        organization_id: Used when the session does not name one.
        signout_delay: Seconds the success message shows before sign-out.
        on_signed_out: Called once the recovery session has been signed out.
    """

    def __init__(
        self,
        client: IdentityClientProtocol,
        session: RecoverySession,
        timers: TimerScope,
        *,
        organization_id: str,
        signout_delay: float = DEFAULT_SIGNOUT_DELAY_SECONDS,
        on_signed_out: Callable[[], Awaitable[None] | None] | None = None,
    ) -> None:
        self._client = client
        self._session = session
        self._timers = timers
        self._organization_id = organization_id
        self._signout_delay = signout_delay
        self._on_signed_out = on_signed_out
        self._submitting = False
        self._updated = False
        self._signed_out = False
        self._signout_timer: TimerHandle | None = None

    @property
    def submitting(self) -> bool:
        return self._submitting

    @property
    def updated(self) -> bool:
        """True once the backend accepted the new password."""
        return self._updated

    @property
    def signed_out(self) -> bool:
        return self._signed_out

    async def submit(self, form: CredentialUpdateForm) -> SubmitResult:
        """Validate the form and, if it passes, update the password.

        Policy and confirmation problems are reported on the form without
        contacting the backend. A backend rejection is attached to the
        new password field verbatim and the form stays editable.

        Raises:
            RuntimeError: If the recovery session is not VALID.
        """
        if not self._session.is_valid:
            msg = f"Cannot update password: recovery session is {self._session.status}"
            raise RuntimeError(msg)
        if self._updated or form.submitted:
            # Nothing left to do; the delayed sign-out is already scheduled
            return SubmitResult(success=True, message=ALREADY_UPDATED_MESSAGE)
        if self._submitting:
            return SubmitResult(
                success=False,
                error=RecoveryError.UPDATE_FAILED,
                message="The password update is already in progress.",
            )

        form.field_errors.clear()
        violations = validate_password(form.new_password)
        if violations:
            form.field_errors[NEW_PASSWORD] = ". ".join(v.message for v in violations)
        if form.new_password != form.confirm_password or not form.confirm_password:
            form.field_errors[CONFIRM_PASSWORD] = describe(
                RecoveryError.PASSWORD_MISMATCH
            ).description

        if violations:
            return SubmitResult(
                success=False,
                error=RecoveryError.PASSWORD_POLICY_VIOLATION,
                violations=tuple(violations),
                message=form.field_errors[NEW_PASSWORD],
            )
        if form.field_errors:
            return SubmitResult(
                success=False,
                error=RecoveryError.PASSWORD_MISMATCH,
                message=form.field_errors[CONFIRM_PASSWORD],
            )

        self._submitting = True
        try:
            result = await self._client.update_password(
                form.new_password,
                self._session.organization_id or self._organization_id,
                session_token=self._session.session_token,
                session_jwt=self._session.session_jwt,
            )
        finally:
            self._submitting = False

        if not result.success:
            message = (
                result.message or describe(RecoveryError.UPDATE_FAILED).description
            )
            logger.warning("Password update rejected: %s", result.error)
            form.field_errors[NEW_PASSWORD] = message
            return SubmitResult(
                success=False, error=RecoveryError.UPDATE_FAILED, message=message
            )

        form.submitted = True
        self._updated = True
        logger.info(
            "Password updated via %s; signing out in %.1fs",
            self._session.protocol,
            self._signout_delay,
        )
        self._signout_timer = self._timers.call_later(
            self._signout_delay, self._sign_out
        )
        return SubmitResult(success=True)

    async def sign_out_now(self) -> None:
        """Sign out immediately instead of waiting for the delay."""
        if self._signed_out:
            return
        if self._signout_timer is not None:
            self._signout_timer.cancel()
        await self._sign_out()

    async def _sign_out(self) -> None:
        if self._signed_out:
            return
        self._signed_out = True
        try:
            result = await self._client.sign_out(
                session_token=self._session.session_token,
                session_jwt=self._session.session_jwt,
            )
            if not result.success:
                logger.warning("Recovery session sign-out failed: %s", result.error)
        finally:
            if self._on_signed_out is not None:
                outcome = self._on_signed_out()
                if inspect.isawaitable(outcome):
                    await outcome
