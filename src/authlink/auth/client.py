"""Stytch B2B client wrapper for the recovery and confirmation flows.

This module provides a wrapper around the Stytch B2B SDK that implements
the IdentityClientProtocol. Recovery codes are Stytch magic link tokens,
the legacy recovery token is a session JWT, and new passwords are applied
through the session-authenticated password reset endpoint.
"""

from __future__ import annotations

import logging
from typing import Any

from stytch import B2BClient
from stytch.core.response_base import StytchError

from authlink.auth.models import (
    AuthResult,
    ExchangeResult,
    SendResult,
    SignOutResult,
    UpdateResult,
    VerifyResult,
)

logger = logging.getLogger(__name__)

# Login sessions last a week; recovery sessions are set per client
_LOGIN_SESSION_MINUTES = 60 * 24 * 7


def _extract_roles(raw_roles: list[Any] | None) -> list[str]:
    """Extract role IDs from Stytch response roles.

    Handles both object roles (with role_id attr) and string roles,
    depending on Stytch SDK version.

    Args:
        raw_roles: List of role objects or strings from Stytch response.

    Returns:
        List of role ID strings.
    """
    if not raw_roles:
        return []
    if hasattr(raw_roles[0], "role_id"):
        return [role.role_id for role in raw_roles]
    return list(raw_roles)


def _error_fields(error: StytchError) -> tuple[str, str | None]:
    """Split a StytchError into (error_type, error_message)."""
    details = error.details
    message = getattr(details, "error_message", None)
    return details.error_type, message if isinstance(message, str) else None


class StytchB2BClient:
    """Wrapper around Stytch B2BClient for recovery and confirmation.

    This class implements the IdentityClientProtocol. Every method converts
    StytchError into a failed result; other exceptions propagate.
    """

    def __init__(
        self,
        project_id: str,
        secret: str,
        *,
        environment: str = "test",
        recovery_session_minutes: int = 10,
        link_validity_minutes: int = 60,
    ) -> None:
        """Initialize the Stytch client.

        Args:
            project_id: Stytch project ID.
            secret: Stytch secret key.
            environment: Either "test" or "live".
            recovery_session_minutes: Lifetime of sessions minted from
                recovery codes.
            link_validity_minutes: Lifetime of emailed recovery links.
        """
        self._client = B2BClient(
            project_id=project_id,
            secret=secret,
            environment=environment,
        )
        self._recovery_session_minutes = recovery_session_minutes
        self._link_validity_minutes = link_validity_minutes

    async def exchange_code_for_session(self, code: str) -> ExchangeResult:
        """Exchange a recovery code for a short-lived session.

        Args:
            code: The one-time code from the recovery link.

        Returns:
            ExchangeResult with session credentials if successful.
        """
        try:
            response = await self._client.magic_links.authenticate_async(
                magic_links_token=code,
                session_duration_minutes=self._recovery_session_minutes,
            )
        except StytchError as e:
            error_type, message = _error_fields(e)
            logger.warning(
                "Recovery code exchange failed",
                extra={"error_type": error_type},
            )
            return ExchangeResult(success=False, error=error_type, message=message)

        if not response.member_authenticated:
            logger.info("MFA required for member %s", response.member_id)
            return ExchangeResult(
                success=False,
                error="mfa_required",
                message="Additional verification is required for this account.",
            )

        if not response.session_token and not response.session_jwt:
            logger.warning("Recovery code exchange returned no session")
            return ExchangeResult(success=False, error="no_session")

        return ExchangeResult(
            success=True,
            session_token=response.session_token,
            session_jwt=response.session_jwt,
            member_id=response.member_id,
            organization_id=response.organization_id,
            email=response.member.email_address,
        )

    async def verify_recovery_token(self, token: str) -> VerifyResult:
        """Check a legacy recovery token as a session JWT.

        Args:
            token: The access token from the recovery link.

        Returns:
            VerifyResult indicating whether Stytch accepts the token.
        """
        try:
            response = await self._client.sessions.authenticate_async(
                session_jwt=token,
            )
        except StytchError as e:
            error_type, message = _error_fields(e)
            logger.debug(
                "Recovery token verification failed",
                extra={"error_type": error_type},
            )
            return VerifyResult(valid=False, error=error_type, message=message)

        return VerifyResult(
            valid=True,
            member_id=response.member_id,
            organization_id=response.organization_id,
            email=response.member.email_address,
            roles=_extract_roles(response.member_session.roles),
        )

    async def update_password(
        self,
        password: str,
        organization_id: str,
        *,
        session_token: str | None = None,
        session_jwt: str | None = None,
    ) -> UpdateResult:
        """Reset the password of the member owning the session.

        Args:
            password: The new password.
            organization_id: The member's organization.
            session_token: Session token from a code exchange.
            session_jwt: Session JWT from a legacy recovery link.

        Returns:
            UpdateResult with success status.
        """
        if not session_token and not session_jwt:
            return UpdateResult(
                success=False,
                error="session_missing",
                message="The recovery session is no longer available.",
            )

        try:
            await self._client.passwords.sessions.reset_async(
                organization_id=organization_id,
                password=password,
                session_token=session_token,
                session_jwt=session_jwt,
            )
        except StytchError as e:
            error_type, message = _error_fields(e)
            logger.warning(
                "Password update failed",
                extra={"error_type": error_type},
            )
            return UpdateResult(success=False, error=error_type, message=message)

        return UpdateResult(success=True)

    async def sign_out(
        self,
        *,
        session_token: str | None = None,
        session_jwt: str | None = None,
    ) -> SignOutResult:
        """Revoke a session.

        Args:
            session_token: Session token to revoke.
            session_jwt: Session JWT to revoke.

        Returns:
            SignOutResult with success status.
        """
        try:
            await self._client.sessions.revoke_async(
                session_token=session_token,
                session_jwt=session_jwt,
            )
        except StytchError as e:
            error_type, _ = _error_fields(e)
            logger.warning("Session revoke failed", extra={"error_type": error_type})
            return SignOutResult(success=False, error=error_type)

        return SignOutResult(success=True)

    async def _login_or_signup(
        self,
        email: str,
        organization_id: str,
        callback_url: str,
    ) -> SendResult:
        try:
            response = await self._client.magic_links.email.login_or_signup_async(
                organization_id=organization_id,
                email_address=email,
                login_redirect_url=callback_url,
                signup_redirect_url=callback_url,
            )
        except StytchError as e:
            error_type, message = _error_fields(e)
            logger.warning(
                "Confirmation email send failed",
                extra={"email": email, "error_type": error_type},
            )
            return SendResult(success=False, error=error_type, message=message)

        return SendResult(
            success=True,
            member_id=response.member_id,
            member_created=response.member_created,
        )

    async def sign_up(
        self,
        email: str,
        organization_id: str,
        callback_url: str,
    ) -> SendResult:
        """Register an address; Stytch sends the confirmation email."""
        return await self._login_or_signup(email, organization_id, callback_url)

    async def resend_confirmation_email(
        self,
        email: str,
        organization_id: str,
        callback_url: str,
    ) -> SendResult:
        """Send another confirmation email to a pending member."""
        return await self._login_or_signup(email, organization_id, callback_url)

    async def request_password_reset(
        self,
        email: str,
        organization_id: str,
        reset_url: str,
    ) -> SendResult:
        """Start the password reset flow for an address.

        Args:
            email: The account's address.
            organization_id: The member's organization.
            reset_url: URL the recovery link returns to.

        Returns:
            SendResult with success status.
        """
        try:
            response = await self._client.passwords.email.reset_start_async(
                organization_id=organization_id,
                email_address=email,
                reset_password_redirect_url=reset_url,
                reset_password_expiration_minutes=self._link_validity_minutes,
            )
        except StytchError as e:
            error_type, message = _error_fields(e)
            logger.warning(
                "Password reset request failed",
                extra={"email": email, "error_type": error_type},
            )
            return SendResult(success=False, error=error_type, message=message)

        return SendResult(success=True, member_id=response.member_id)

    async def sign_in_with_password(
        self,
        email: str,
        password: str,
        organization_id: str,
    ) -> AuthResult:
        """Authenticate email and password.

        Returns:
            AuthResult with session info if successful.
        """
        try:
            response = await self._client.passwords.authenticate_async(
                organization_id=organization_id,
                email_address=email,
                password=password,
                session_duration_minutes=_LOGIN_SESSION_MINUTES,
            )
        except StytchError as e:
            error_type, message = _error_fields(e)
            logger.warning(
                "Password login failed",
                extra={"email": email, "error_type": error_type},
            )
            return AuthResult(success=False, error=error_type, message=message)

        return self._auth_result(response)

    async def authenticate_confirmation(self, token: str) -> AuthResult:
        """Authenticate a confirmation link token and start a login session.

        Args:
            token: The token from the confirmation callback URL.

        Returns:
            AuthResult with session info if successful.
        """
        try:
            response = await self._client.magic_links.authenticate_async(
                magic_links_token=token,
                session_duration_minutes=_LOGIN_SESSION_MINUTES,
            )
        except StytchError as e:
            error_type, message = _error_fields(e)
            logger.warning(
                "Confirmation link auth failed",
                extra={"error_type": error_type},
            )
            return AuthResult(success=False, error=error_type, message=message)

        return self._auth_result(response)

    async def validate_session(self, session_token: str) -> VerifyResult:
        """Validate an existing login session token.

        Args:
            session_token: The session token to validate.

        Returns:
            VerifyResult indicating if the session is valid.
        """
        try:
            response = await self._client.sessions.authenticate_async(
                session_token=session_token,
            )
        except StytchError as e:
            error_type, message = _error_fields(e)
            logger.debug(
                "Session validation failed",
                extra={"error_type": error_type},
            )
            return VerifyResult(valid=False, error=error_type, message=message)

        return VerifyResult(
            valid=True,
            member_id=response.member_id,
            organization_id=response.organization_id,
            email=response.member.email_address,
            roles=_extract_roles(response.member_session.roles),
        )

    @staticmethod
    def _auth_result(response: Any) -> AuthResult:
        # Check if MFA is required
        if not response.member_authenticated:
            logger.info("MFA required for member %s", response.member_id)
            return AuthResult(success=False, error="mfa_required")

        return AuthResult(
            success=True,
            session_token=response.session_token,
            session_jwt=response.session_jwt,
            member_id=response.member_id,
            organization_id=response.organization_id,
            email=response.member.email_address,
            name=response.member.name,
            roles=_extract_roles(response.member_session.roles),
        )
