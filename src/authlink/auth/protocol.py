"""Protocol defining the identity client interface.

Both StytchB2BClient and MockIdentityClient implement this protocol,
allowing them to be used interchangeably.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from authlink.auth.models import (
        AuthResult,
        ExchangeResult,
        SendResult,
        SignOutResult,
        UpdateResult,
        VerifyResult,
    )


class IdentityClientProtocol(Protocol):
    """Protocol for identity backend clients.

    This defines the interface that both the real Stytch client
    and the mock client must implement.
    """

    async def exchange_code_for_session(self, code: str) -> ExchangeResult:
        """Exchange a one-time recovery code for a short-lived session.

        Codes are single-use: callers must not retry a failed exchange.

        Args:
            code: The ``code`` parameter from the recovery link.

        Returns:
            ExchangeResult with session credentials if successful.
        """
        ...

    async def verify_recovery_token(self, token: str) -> VerifyResult:
        """Check a legacy recovery bearer token.

        Args:
            token: The ``access_token`` parameter from the recovery link.

        Returns:
            VerifyResult indicating whether the backend accepts the token.
        """
        ...

    async def update_password(
        self,
        password: str,
        organization_id: str,
        *,
        session_token: str | None = None,
        session_jwt: str | None = None,
    ) -> UpdateResult:
        """Set a new password for the member owning the given session.

        Args:
            password: The new password.
            organization_id: The organization the member belongs to.
            session_token: Opaque session token (code exchange protocol).
            session_jwt: Session JWT (legacy token protocol).

        Returns:
            UpdateResult with success status.
        """
        ...

    async def sign_out(
        self,
        *,
        session_token: str | None = None,
        session_jwt: str | None = None,
    ) -> SignOutResult:
        """Revoke a session.

        Args:
            session_token: Opaque session token to revoke.
            session_jwt: Session JWT to revoke.

        Returns:
            SignOutResult with success status.
        """
        ...

    async def sign_up(
        self,
        email: str,
        organization_id: str,
        callback_url: str,
    ) -> SendResult:
        """Register an address and send it a confirmation email.

        Args:
            email: The address to register.
            organization_id: The organization to join.
            callback_url: URL the confirmation link returns to.

        Returns:
            SendResult with member info.
        """
        ...

    async def resend_confirmation_email(
        self,
        email: str,
        organization_id: str,
        callback_url: str,
    ) -> SendResult:
        """Send another confirmation email to a registered address.

        Args:
            email: The address awaiting confirmation.
            organization_id: The organization the member belongs to.
            callback_url: URL the confirmation link returns to.

        Returns:
            SendResult with success status.
        """
        ...

    async def request_password_reset(
        self,
        email: str,
        organization_id: str,
        reset_url: str,
    ) -> SendResult:
        """Send a password recovery link.

        Args:
            email: The account's address.
            organization_id: The organization the member belongs to.
            reset_url: URL the recovery link returns to.

        Returns:
            SendResult with success status.
        """
        ...

    async def sign_in_with_password(
        self,
        email: str,
        password: str,
        organization_id: str,
    ) -> AuthResult:
        """Log in with email and password.

        Returns:
            AuthResult with session info if successful.
        """
        ...

    async def authenticate_confirmation(self, token: str) -> AuthResult:
        """Authenticate the token carried by a confirmation link.

        Args:
            token: The token from the confirmation callback URL.

        Returns:
            AuthResult with session info if successful.
        """
        ...

    async def validate_session(self, session_token: str) -> VerifyResult:
        """Validate an existing login session token.

        Args:
            session_token: The session token to validate.

        Returns:
            VerifyResult indicating if the session is valid.
        """
        ...
