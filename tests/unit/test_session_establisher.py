"""Tests for RecoverySessionEstablisher."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from authlink.auth.mock import (
    MOCK_EXPIRED_CODE,
    MOCK_VALID_RECOVERY_TOKEN,
    MockIdentityClient,
)
from authlink.auth.models import ExchangeResult, VerifyResult
from authlink.recovery.errors import RecoveryError
from authlink.recovery.session import (
    GENERIC_EXCHANGE_MESSAGE,
    RecoveryProtocol,
    RecoverySession,
    RecoverySessionEstablisher,
    SessionStatus,
)
from authlink.recovery.signals import AuthRedirectSignal, SignalKind, classify


def _code_signal(code: str) -> AuthRedirectSignal:
    return AuthRedirectSignal(kind=SignalKind.RECOVERY_CODE, code=code)


def _token_signal(token: str) -> AuthRedirectSignal:
    return AuthRedirectSignal(kind=SignalKind.RECOVERY_TOKEN, token=token)


class TestCodeExchange:
    """The code exchange protocol."""

    async def test_valid_code_gives_valid_session(
        self, identity: MockIdentityClient
    ) -> None:
        establisher = RecoverySessionEstablisher(identity)

        session = await establisher.establish(_code_signal("mock-code-a@uni.edu"))

        assert session.status is SessionStatus.VALID
        assert session.protocol is RecoveryProtocol.CODE_EXCHANGE
        assert session.email == "a@uni.edu"
        assert session.session_token
        assert session.error is None

    async def test_second_establish_never_exchanges_again(
        self, identity: MockIdentityClient
    ) -> None:
        establisher = RecoverySessionEstablisher(identity)
        signal = classify("https://x.test/reset?code=mock-code-a@uni.edu")

        first = await establisher.establish(signal)
        second = await establisher.establish(signal)

        assert first is second
        assert identity.exchange_calls == ["mock-code-a@uni.edu"]

    async def test_expired_code(self, identity: MockIdentityClient) -> None:
        establisher = RecoverySessionEstablisher(identity)

        session = await establisher.establish(_code_signal(MOCK_EXPIRED_CODE))

        assert session.status is SessionStatus.INVALID
        assert session.error is RecoveryError.LINK_EXPIRED
        assert session.error_message == "The recovery link has expired."

    async def test_used_code(self, identity: MockIdentityClient) -> None:
        await identity.exchange_code_for_session("mock-code-a@uni.edu")
        establisher = RecoverySessionEstablisher(identity)

        session = await establisher.establish(_code_signal("mock-code-a@uni.edu"))

        assert session.error is RecoveryError.LINK_INVALID_OR_USED

    async def test_failure_without_message_uses_generic_text(self) -> None:
        client = AsyncMock()
        client.exchange_code_for_session.return_value = ExchangeResult(
            success=False, error="internal_server_error"
        )
        establisher = RecoverySessionEstablisher(client)

        session = await establisher.establish(_code_signal("abc123"))

        assert session.error is RecoveryError.EXCHANGE_FAILED
        assert session.error_message == GENERIC_EXCHANGE_MESSAGE

    async def test_unexpected_exception_is_invalid(self) -> None:
        client = AsyncMock()
        client.exchange_code_for_session.side_effect = ConnectionError("down")
        establisher = RecoverySessionEstablisher(client)

        session = await establisher.establish(_code_signal("abc123"))

        assert session.status is SessionStatus.INVALID
        assert session.error is RecoveryError.EXCHANGE_FAILED
        client.exchange_code_for_session.assert_awaited_once_with("abc123")


class TestLegacyToken:
    """The legacy bearer token protocol."""

    async def test_valid_immediately(self, identity: MockIdentityClient) -> None:
        establisher = RecoverySessionEstablisher(identity)

        session = await establisher.establish(
            _token_signal(f"{MOCK_VALID_RECOVERY_TOKEN}-b@uni.edu")
        )

        assert session.status is SessionStatus.VALID
        assert session.protocol is RecoveryProtocol.LEGACY_TOKEN
        assert session.session_jwt == f"{MOCK_VALID_RECOVERY_TOKEN}-b@uni.edu"

        await establisher.wait_for_verification()
        assert session.email == "b@uni.edu"
        assert identity.verify_calls == [f"{MOCK_VALID_RECOVERY_TOKEN}-b@uni.edu"]

    async def test_failed_verification_keeps_session_valid(
        self, identity: MockIdentityClient
    ) -> None:
        establisher = RecoverySessionEstablisher(identity)

        session = await establisher.establish(_token_signal("forged-token"))
        await establisher.wait_for_verification()

        assert session.status is SessionStatus.VALID
        assert session.email is None

    async def test_verification_error_is_only_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        client = AsyncMock()
        client.verify_recovery_token.side_effect = ConnectionError("down")
        establisher = RecoverySessionEstablisher(client)

        session = await establisher.establish(_token_signal("tok"))
        await establisher.wait_for_verification()

        assert session.is_valid
        assert "verification errored" in caplog.text

    async def test_close_cancels_verification(self) -> None:
        started = asyncio.Event()

        async def slow_verify(token: str) -> VerifyResult:
            started.set()
            await asyncio.sleep(10)
            return VerifyResult(valid=True)

        client = AsyncMock()
        client.verify_recovery_token.side_effect = slow_verify
        establisher = RecoverySessionEstablisher(client)

        session = await establisher.establish(_token_signal("tok"))
        await started.wait()
        establisher.close()
        await establisher.wait_for_verification()

        assert session.is_valid


class TestNoBackendContact:
    """Error and missing signals resolve without any backend call."""

    async def test_otp_expired_link(self) -> None:
        client = AsyncMock()
        establisher = RecoverySessionEstablisher(client)
        signal = classify(
            "https://x.test/reset#error=access_denied&error_code=otp_expired"
        )

        session = await establisher.establish(signal)

        assert session.status is SessionStatus.INVALID
        assert session.error is RecoveryError.LINK_EXPIRED
        client.exchange_code_for_session.assert_not_called()
        client.verify_recovery_token.assert_not_called()

    async def test_no_signal_is_token_missing(self) -> None:
        client = AsyncMock()
        establisher = RecoverySessionEstablisher(client)

        session = await establisher.establish(classify("https://x.test/reset"))

        assert session.error is RecoveryError.TOKEN_MISSING
        assert session.error_message
        client.exchange_code_for_session.assert_not_called()


class TestRecoverySession:
    """The session leaves PENDING exactly once."""

    def test_starts_pending(self) -> None:
        session = RecoverySession()

        assert session.status is SessionStatus.PENDING
        assert not session.is_valid

    def test_cannot_resolve_twice(self) -> None:
        session = RecoverySession()
        session._leave_pending(SessionStatus.VALID)

        with pytest.raises(RuntimeError, match="already resolved"):
            session._leave_pending(SessionStatus.INVALID)
