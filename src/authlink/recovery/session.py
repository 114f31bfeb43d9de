"""Recovery session establishment.

Turns a classified redirect signal into a RecoverySession. Two link
protocols feed the same state machine:

- CODE_EXCHANGE: the link carries a single-use ``code`` which is exchanged
  for a short-lived session exactly once. The session is VALID only if the
  exchange succeeds.
- LEGACY_TOKEN: the link carries a bearer ``access_token``. The session is
  VALID immediately; the token is verified in the background and a failed
  verification is only logged. The password update call is the
  authoritative check for these tokens.

The session moves from PENDING to VALID or INVALID exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from authlink.recovery.errors import (
    RecoveryError,
    classify_exchange_error,
    classify_link_error,
    describe,
)
from authlink.recovery.signals import AuthRedirectSignal, SignalKind

if TYPE_CHECKING:
    from authlink.auth.protocol import IdentityClientProtocol

logger = logging.getLogger(__name__)

GENERIC_EXCHANGE_MESSAGE = "The recovery code is invalid or has expired."
UNEXPECTED_EXCHANGE_MESSAGE = "Unexpected error while processing the recovery code."


class SessionStatus(StrEnum):
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"


class RecoveryProtocol(StrEnum):
    CODE_EXCHANGE = "code_exchange"
    LEGACY_TOKEN = "legacy_token"


@dataclass
class RecoverySession:
    """Outcome of activating a recovery signal.

    Mutated only by RecoverySessionEstablisher; views read it.

    Attributes:
        status: PENDING until the signal has been processed.
        protocol: Link protocol; fixed once status leaves PENDING.
        error: Cause of an INVALID session.
        error_message: Text shown to the user for an INVALID session.
        session_token: Credential from a code exchange.
        session_jwt: Credential from a legacy recovery link.
        organization_id: Member's organization, when the backend reports it.
        member_id: Member the session belongs to, when known.
        email: Member's address, when known.
    """

    status: SessionStatus = SessionStatus.PENDING
    protocol: RecoveryProtocol | None = None
    error: RecoveryError | None = None
    error_message: str | None = None
    session_token: str | None = None
    session_jwt: str | None = None
    organization_id: str | None = None
    member_id: str | None = None
    email: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.status is SessionStatus.VALID

    def _leave_pending(self, status: SessionStatus) -> None:
        if self.status is not SessionStatus.PENDING:
            msg = f"Recovery session already resolved as {self.status}"
            raise RuntimeError(msg)
        self.status = status


class RecoverySessionEstablisher:
    """Activates a recovery signal against the identity backend.

    One establisher handles one signal. Calling ``establish`` again returns
    the existing session; a code is never exchanged twice.

    Args:
        client: Identity backend client.
    """

    def __init__(self, client: IdentityClientProtocol) -> None:
        self._client = client
        self.session = RecoverySession()
        self._signal: AuthRedirectSignal | None = None
        self._verification: asyncio.Task[None] | None = None

    async def establish(self, signal: AuthRedirectSignal) -> RecoverySession:
        """Resolve the session for ``signal``.

        Returns:
            The resolved RecoverySession (VALID or INVALID).
        """
        if self._signal is not None:
            if signal != self._signal:
                logger.warning("Establisher reused with a different signal; ignored")
            return self.session
        self._signal = signal

        if signal.kind is SignalKind.RECOVERY_CODE and signal.code:
            await self._exchange_code(signal.code)
        elif signal.kind is SignalKind.RECOVERY_TOKEN and signal.token:
            self._accept_legacy_token(signal.token)
        else:
            self._reject_link(signal)
        return self.session

    def _reject_link(self, signal: AuthRedirectSignal) -> None:
        error = classify_link_error(signal)
        logger.info("Recovery link rejected without backend call: %s", error)
        self._invalidate(error, describe(error).description)

    def _invalidate(self, error: RecoveryError, message: str) -> None:
        self.session._leave_pending(SessionStatus.INVALID)
        self.session.error = error
        self.session.error_message = message

    async def _exchange_code(self, code: str) -> None:
        self.session.protocol = RecoveryProtocol.CODE_EXCHANGE
        logger.info("Exchanging recovery code (length=%d)", len(code))
        try:
            result = await self._client.exchange_code_for_session(code)
        except Exception:
            logger.exception("Unexpected error during recovery code exchange")
            self._invalidate(RecoveryError.EXCHANGE_FAILED, UNEXPECTED_EXCHANGE_MESSAGE)
            return

        if not result.success:
            error = classify_exchange_error(result.error)
            logger.warning(
                "Recovery code exchange rejected: %s (%s)", result.error, error
            )
            self._invalidate(error, result.message or GENERIC_EXCHANGE_MESSAGE)
            return

        session = self.session
        session._leave_pending(SessionStatus.VALID)
        session.session_token = result.session_token
        session.session_jwt = result.session_jwt
        session.organization_id = result.organization_id
        session.member_id = result.member_id
        session.email = result.email
        logger.info("Recovery session established for member %s", result.member_id)

    def _accept_legacy_token(self, token: str) -> None:
        session = self.session
        session.protocol = RecoveryProtocol.LEGACY_TOKEN
        session._leave_pending(SessionStatus.VALID)
        session.session_jwt = token
        logger.info("Legacy recovery token accepted, verifying in background")
        self._verification = asyncio.create_task(self._verify_in_background(token))

    async def _verify_in_background(self, token: str) -> None:
        try:
            result = await self._client.verify_recovery_token(token)
        except Exception:
            logger.warning("Recovery token verification errored", exc_info=True)
            return
        if not result.valid:
            # The update call decides; the form stays usable
            logger.warning("Recovery token verification failed: %s", result.error)
            return
        if self.session.organization_id is None:
            self.session.organization_id = result.organization_id
        self.session.member_id = self.session.member_id or result.member_id
        self.session.email = self.session.email or result.email

    async def wait_for_verification(self) -> None:
        """Wait for the background token verification, if one is running."""
        if self._verification is not None:
            await asyncio.wait({self._verification})

    def close(self) -> None:
        """Cancel the background verification if it is still running."""
        if self._verification is not None and not self._verification.done():
            self._verification.cancel()
