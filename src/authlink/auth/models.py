"""Data models for identity backend results.

These dataclasses represent the outcomes of identity operations,
providing a consistent interface between the real Stytch client and mock.
Backend failures are reported through ``error`` (a machine-readable type)
and ``message`` (text fit to show the user) rather than raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SendResult:
    """Result of asking the backend to send an email.

    Attributes:
        success: Whether the email was sent successfully.
        member_id: The member the email was sent to (if known).
        member_created: True if this send created a new member.
        error: Error type if the operation failed.
        message: Human-readable error message if the operation failed.
    """

    success: bool
    member_id: str | None = None
    member_created: bool = False
    error: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class AuthResult:
    """Result of a login (password or confirmation link).

    Attributes:
        success: Whether authentication succeeded.
        session_token: The session token for subsequent requests.
        session_jwt: Short-lived JWT for the same session.
        member_id: The authenticated member's ID.
        organization_id: The organization the member authenticated into.
        email: The member's email address.
        name: The member's display name.
        roles: List of role IDs assigned to the member.
        error: Error type if authentication failed.
        message: Human-readable error message if authentication failed.
    """

    success: bool
    session_token: str | None = None
    session_jwt: str | None = None
    member_id: str | None = None
    organization_id: str | None = None
    email: str | None = None
    name: str | None = None
    roles: list[str] = field(default_factory=list)
    error: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class ExchangeResult:
    """Result of exchanging a one-time recovery code for a session.

    ``success`` is only True when the backend handed back a usable
    session; an authenticated response without one is a failure.
    """

    success: bool
    session_token: str | None = None
    session_jwt: str | None = None
    member_id: str | None = None
    organization_id: str | None = None
    email: str | None = None
    error: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class VerifyResult:
    """Result of checking a bearer token or session against the backend."""

    valid: bool
    member_id: str | None = None
    organization_id: str | None = None
    email: str | None = None
    roles: list[str] = field(default_factory=list)
    error: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class UpdateResult:
    """Result of setting a new password."""

    success: bool
    error: str | None = None
    message: str | None = None


@dataclass(frozen=True)
class SignOutResult:
    """Result of revoking a session."""

    success: bool
    error: str | None = None
