"""Mock identity client for testing.

This module provides a mock implementation of the IdentityClientProtocol
that can be used in tests and local development without making real
Stytch API calls.

Supports arbitrary users - any email can register, request a recovery
link and exchange the resulting code.
"""

from __future__ import annotations

import hashlib

from authlink.auth.models import (
    AuthResult,
    ExchangeResult,
    SendResult,
    SignOutResult,
    UpdateResult,
    VerifyResult,
)

# Predefined test values for consistent behavior in tests
MOCK_VALID_EMAILS = frozenset(
    {"test@example.com", "student@uni.edu", "instructor@uni.edu"}
)
MOCK_DEFAULT_PASSWORD = "Password1!"
MOCK_VALID_CODE = "mock-valid-code"
MOCK_EXPIRED_CODE = "mock-expired-code"
MOCK_VALID_RECOVERY_TOKEN = "mock-recovery-jwt"
MOCK_VALID_CONFIRMATION_TOKEN = "mock-confirmation-token"

# Addresses at this domain simulate a mail provider rejecting the send
MOCK_UNDELIVERABLE_DOMAIN = "undeliverable.invalid"

MOCK_ORG_ID = "mock-org-123"


def _email_to_member_id(email: str) -> str:
    """Generate a deterministic member ID from an email."""
    return f"mock-member-{hashlib.md5(email.encode()).hexdigest()[:8]}"


def _email_to_session_token(email: str) -> str:
    """Generate a deterministic session token from an email."""
    return f"mock-session-{hashlib.md5(email.encode()).hexdigest()[:12]}"


class MockIdentityClient:
    """Mock implementation of IdentityClientProtocol for testing.

    Token Formats:
        - "mock-valid-code" - exchanges as the last address that requested
          a recovery link
        - "mock-code-{email}" - exchanges as a specific address
        - "mock-expired-code" - always fails as expired
        - "mock-recovery-jwt" / "mock-recovery-jwt-{email}" - legacy
          recovery tokens
        - "mock-token-{email}" - confirmation link for a specific address

    Codes are single-use, like the real backend: exchanging the same code
    twice fails the second time.
    """

    def __init__(self) -> None:
        """Initialize the mock client."""
        self._sent_emails: list[dict[str, str]] = []
        self._pending_email: str | None = None
        # session_token / session_jwt -> email
        self._active_sessions: dict[str, str] = {}
        self._consumed_codes: set[str] = set()
        self._passwords: dict[str, str] = dict.fromkeys(
            MOCK_VALID_EMAILS, MOCK_DEFAULT_PASSWORD
        )
        self.exchange_calls: list[str] = []
        self.verify_calls: list[str] = []
        self.update_calls: list[str] = []
        self.sign_out_calls: list[dict[str, str | None]] = []

    def _record_send(
        self, kind: str, email: str, organization_id: str, url: str
    ) -> SendResult | None:
        self._sent_emails.append(
            {
                "kind": kind,
                "email": email,
                "organization_id": organization_id,
                "url": url,
            }
        )
        if email.lower().endswith("@" + MOCK_UNDELIVERABLE_DOMAIN):
            return SendResult(
                success=False,
                error="email_send_failed",
                message="The email could not be delivered.",
            )
        self._pending_email = email
        return None

    async def exchange_code_for_session(self, code: str) -> ExchangeResult:
        """Mock exchanging a recovery code.

        Args:
            code: The recovery code. See class docstring for formats.

        Returns:
            ExchangeResult - success for valid, unused codes.
        """
        self.exchange_calls.append(code)

        if code == MOCK_EXPIRED_CODE:
            return ExchangeResult(
                success=False,
                error="magic_link_expired",
                message="The recovery link has expired.",
            )
        if code in self._consumed_codes:
            return ExchangeResult(
                success=False,
                error="magic_link_already_used",
                message="The recovery link has already been used.",
            )

        email: str | None = None
        if code.startswith("mock-code-"):
            email = code[len("mock-code-") :]
        elif code == MOCK_VALID_CODE:
            email = self._pending_email or "test@example.com"

        if not email:
            return ExchangeResult(
                success=False,
                error="magic_link_not_found",
                message="The recovery link is invalid.",
            )

        self._consumed_codes.add(code)
        session_token = _email_to_session_token(email)
        self._active_sessions[session_token] = email
        return ExchangeResult(
            success=True,
            session_token=session_token,
            session_jwt=f"mock-jwt-{email}",
            member_id=_email_to_member_id(email),
            organization_id=MOCK_ORG_ID,
            email=email,
        )

    async def verify_recovery_token(self, token: str) -> VerifyResult:
        """Mock verifying a legacy recovery token."""
        self.verify_calls.append(token)
        email = self._recovery_token_email(token)
        if email is None:
            return VerifyResult(
                valid=False,
                error="session_not_found",
                message="The recovery token is not valid.",
            )
        return VerifyResult(
            valid=True,
            member_id=_email_to_member_id(email),
            organization_id=MOCK_ORG_ID,
            email=email,
        )

    def _recovery_token_email(self, token: str) -> str | None:
        if token == MOCK_VALID_RECOVERY_TOKEN:
            return self._pending_email or "test@example.com"
        if token.startswith(MOCK_VALID_RECOVERY_TOKEN + "-"):
            return token[len(MOCK_VALID_RECOVERY_TOKEN) + 1 :]
        return self._active_sessions.get(token)

    async def update_password(
        self,
        password: str,
        organization_id: str,
        *,
        session_token: str | None = None,
        session_jwt: str | None = None,
    ) -> UpdateResult:
        """Mock setting a new password for the session's member."""
        self.update_calls.append(password)

        email: str | None = None
        if session_token:
            email = self._active_sessions.get(session_token)
        elif session_jwt:
            email = self._recovery_token_email(session_jwt)

        if email is None:
            return UpdateResult(
                success=False,
                error="session_not_found",
                message="Your recovery session has expired. Request a new link.",
            )

        if self._passwords.get(email) == password:
            return UpdateResult(
                success=False,
                error="password_reuse",
                message="The new password must differ from the current one.",
            )

        self._passwords[email] = password
        return UpdateResult(success=True)

    async def sign_out(
        self,
        *,
        session_token: str | None = None,
        session_jwt: str | None = None,
    ) -> SignOutResult:
        """Mock revoking a session."""
        self.sign_out_calls.append(
            {"session_token": session_token, "session_jwt": session_jwt}
        )
        for key in (session_token, session_jwt):
            if key:
                self._active_sessions.pop(key, None)
        return SignOutResult(success=True)

    async def sign_up(
        self,
        email: str,
        organization_id: str,
        callback_url: str,
    ) -> SendResult:
        """Mock registering an address.

        Accepts any email address for testing flexibility.
        """
        failure = self._record_send("signup", email, organization_id, callback_url)
        if failure:
            return failure
        return SendResult(
            success=True,
            member_id=_email_to_member_id(email),
            member_created=email not in self._passwords,
        )

    async def resend_confirmation_email(
        self,
        email: str,
        organization_id: str,
        callback_url: str,
    ) -> SendResult:
        """Mock resending a confirmation email."""
        failure = self._record_send(
            "confirmation", email, organization_id, callback_url
        )
        if failure:
            return failure
        return SendResult(success=True, member_id=_email_to_member_id(email))

    async def request_password_reset(
        self,
        email: str,
        organization_id: str,
        reset_url: str,
    ) -> SendResult:
        """Mock sending a recovery link."""
        failure = self._record_send("recovery", email, organization_id, reset_url)
        if failure:
            return failure
        return SendResult(success=True, member_id=_email_to_member_id(email))

    async def sign_in_with_password(
        self,
        email: str,
        password: str,
        organization_id: str,
    ) -> AuthResult:
        """Mock password login against the passwords set so far."""
        if self._passwords.get(email) != password:
            return AuthResult(
                success=False,
                error="unauthorized_credentials",
                message="Invalid email or password.",
            )
        return self._login(email)

    async def authenticate_confirmation(self, token: str) -> AuthResult:
        """Mock authenticating a confirmation link token."""
        email: str | None = None
        if token.startswith("mock-token-"):
            email = token[len("mock-token-") :]
        elif token == MOCK_VALID_CONFIRMATION_TOKEN:
            email = self._pending_email or "test@example.com"

        if not email:
            return AuthResult(success=False, error="invalid_token")
        return self._login(email)

    def _login(self, email: str) -> AuthResult:
        session_token = _email_to_session_token(email)
        self._active_sessions[session_token] = email
        return AuthResult(
            success=True,
            session_token=session_token,
            session_jwt=f"mock-jwt-{email}",
            member_id=_email_to_member_id(email),
            organization_id=MOCK_ORG_ID,
            email=email,
            name=email.split("@")[0].replace(".", " ").title(),
            roles=["stytch_member"],
        )

    async def validate_session(self, session_token: str) -> VerifyResult:
        """Mock validating a login session token."""
        email = self._active_sessions.get(session_token)
        if email is None:
            return VerifyResult(valid=False, error="session_not_found")
        return VerifyResult(
            valid=True,
            member_id=_email_to_member_id(email),
            organization_id=MOCK_ORG_ID,
            email=email,
            roles=["stytch_member"],
        )

    # Test helper methods

    def get_sent_emails(self) -> list[dict[str, str]]:
        """Return list of emails that were 'sent' (for test assertions)."""
        return self._sent_emails.copy()

    def clear_sent_emails(self) -> None:
        """Clear the list of sent emails."""
        self._sent_emails.clear()
