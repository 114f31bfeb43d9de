"""Error taxonomy for the recovery and confirmation flows.

Maps link errors and backend error types onto a small set of outcomes,
each with the copy shown to the user.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authlink.recovery.signals import AuthRedirectSignal


class RecoveryError(StrEnum):
    """Every user-facing failure of the recovery flow."""

    TOKEN_MISSING = "token_missing"
    LINK_EXPIRED = "link_expired"
    LINK_INVALID_OR_USED = "link_invalid_or_used"
    ACCESS_DENIED = "access_denied"
    EXCHANGE_FAILED = "exchange_failed"
    PASSWORD_POLICY_VIOLATION = "password_policy_violation"
    PASSWORD_MISMATCH = "password_mismatch"
    UPDATE_FAILED = "update_failed"
    SEND_FAILED = "send_failed"


# Only a new link gets past these; the same code or token is never retried
TERMINAL_ERRORS = frozenset(
    {
        RecoveryError.TOKEN_MISSING,
        RecoveryError.LINK_EXPIRED,
        RecoveryError.LINK_INVALID_OR_USED,
        RecoveryError.ACCESS_DENIED,
    }
)

EXPIRY_ERROR_CODES = frozenset({"otp_expired", "magic_link_expired", "expired"})
EXPIRY_MARKER = "expired"

_USED_MARKERS = ("not_found", "already_used", "invalid_token", "unable_to_auth")


@dataclass(frozen=True)
class ErrorCopy:
    """Title and description for an error surface."""

    title: str
    description: str


ERROR_COPY: dict[RecoveryError, ErrorCopy] = {
    RecoveryError.TOKEN_MISSING: ErrorCopy(
        "Recovery code missing",
        "No recovery code was found. The link may be incomplete or invalid.",
    ),
    RecoveryError.LINK_EXPIRED: ErrorCopy(
        "Link expired",
        "The link to reset your password has expired. "
        "Reset links are only valid for a limited time for your security.",
    ),
    RecoveryError.LINK_INVALID_OR_USED: ErrorCopy(
        "Invalid link",
        "The link to reset your password is invalid or has already been used.",
    ),
    RecoveryError.ACCESS_DENIED: ErrorCopy(
        "Access denied",
        "You do not have permission to use this password reset link.",
    ),
    RecoveryError.EXCHANGE_FAILED: ErrorCopy(
        "Link could not be processed",
        "Something went wrong while processing the recovery link.",
    ),
    RecoveryError.PASSWORD_POLICY_VIOLATION: ErrorCopy(
        "Password too weak",
        "The password does not meet the requirements.",
    ),
    RecoveryError.PASSWORD_MISMATCH: ErrorCopy(
        "Passwords do not match",
        "The passwords do not match.",
    ),
    RecoveryError.UPDATE_FAILED: ErrorCopy(
        "Password not updated",
        "Your password could not be updated.",
    ),
    RecoveryError.SEND_FAILED: ErrorCopy(
        "Email not sent",
        "The email could not be sent. Please try again.",
    ),
}


def describe(error: RecoveryError) -> ErrorCopy:
    """Return the user-facing copy for an error."""
    return ERROR_COPY[error]


def classify_link_error(signal: AuthRedirectSignal) -> RecoveryError:
    """Pick the error for a signal that cannot start a recovery session.

    Args:
        signal: An ERROR or NONE signal.

    Returns:
        LINK_EXPIRED, ACCESS_DENIED, TOKEN_MISSING or LINK_INVALID_OR_USED.
    """
    error_code = (signal.error_code or "").lower()
    description = (signal.error_description or "").lower()
    error = (signal.error or "").lower()

    if error_code in EXPIRY_ERROR_CODES or EXPIRY_MARKER in description:
        return RecoveryError.LINK_EXPIRED
    if "access_denied" in (error, error_code):
        return RecoveryError.ACCESS_DENIED
    if not (signal.code or signal.token or error or error_code or description):
        return RecoveryError.TOKEN_MISSING
    return RecoveryError.LINK_INVALID_OR_USED


def classify_exchange_error(error_type: str | None) -> RecoveryError:
    """Map a backend error type from a failed code exchange.

    Args:
        error_type: The ``error`` of a failed ExchangeResult.

    Returns:
        LINK_EXPIRED, LINK_INVALID_OR_USED or EXCHANGE_FAILED.
    """
    kind = (error_type or "").lower()
    if EXPIRY_MARKER in kind:
        return RecoveryError.LINK_EXPIRED
    if any(marker in kind for marker in _USED_MARKERS):
        return RecoveryError.LINK_INVALID_OR_USED
    return RecoveryError.EXCHANGE_FAILED
