"""Tests for CredentialUpdateController and its form."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from authlink.auth.mock import MockIdentityClient
from authlink.auth.models import SignOutResult, UpdateResult
from authlink.recovery.credentials import (
    ALREADY_UPDATED_MESSAGE,
    CONFIRM_PASSWORD,
    NEW_PASSWORD,
    CredentialUpdateController,
    CredentialUpdateForm,
)
from authlink.recovery.errors import RecoveryError
from authlink.recovery.policy import PasswordRule
from authlink.recovery.session import (
    RecoveryProtocol,
    RecoverySession,
    RecoverySessionEstablisher,
    SessionStatus,
)
from authlink.recovery.signals import AuthRedirectSignal, SignalKind
from authlink.recovery.timers import TimerScope

STRONG = "Abcd12#$"


async def _valid_session(identity: MockIdentityClient) -> RecoverySession:
    establisher = RecoverySessionEstablisher(identity)
    signal = AuthRedirectSignal(
        kind=SignalKind.RECOVERY_CODE, code="mock-code-reset@uni.edu"
    )
    return await establisher.establish(signal)


def _form(new: str, confirm: str) -> CredentialUpdateForm:
    form = CredentialUpdateForm()
    form.set_field(NEW_PASSWORD, new)
    form.set_field(CONFIRM_PASSWORD, confirm)
    return form


class TestCredentialUpdateForm:
    """Field editing clears that field's error."""

    def test_set_field_clears_only_its_error(self) -> None:
        form = CredentialUpdateForm(
            field_errors={NEW_PASSWORD: "weak", CONFIRM_PASSWORD: "mismatch"}
        )

        form.set_field(CONFIRM_PASSWORD, "x")

        assert form.field_errors == {NEW_PASSWORD: "weak"}

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown form field"):
            CredentialUpdateForm().set_field("email", "x")

    def test_can_submit(self) -> None:
        assert _form(STRONG, STRONG).can_submit
        assert not _form(STRONG, "other").can_submit
        assert not _form("", "").can_submit


class TestSubmitValidation:
    """Local checks run before any network call."""

    async def test_requires_valid_session(self, timers: TimerScope) -> None:
        client = AsyncMock()
        controller = CredentialUpdateController(
            client, RecoverySession(), timers, organization_id="org"
        )

        with pytest.raises(RuntimeError, match="pending"):
            await controller.submit(_form(STRONG, STRONG))

    async def test_mismatch_blocks_without_network(
        self, identity: MockIdentityClient, timers: TimerScope
    ) -> None:
        session = await _valid_session(identity)
        controller = CredentialUpdateController(
            identity, session, timers, organization_id="org"
        )
        form = _form("Abcd12#$", "Abcd12#_")

        result = await controller.submit(form)

        assert not result.success
        assert result.error is RecoveryError.PASSWORD_MISMATCH
        assert CONFIRM_PASSWORD in form.field_errors
        assert identity.update_calls == []

    async def test_policy_violations_reported_together(
        self, identity: MockIdentityClient, timers: TimerScope
    ) -> None:
        session = await _valid_session(identity)
        controller = CredentialUpdateController(
            identity, session, timers, organization_id="org"
        )
        form = _form("abcdefgh", "abcdefgh")

        result = await controller.submit(form)

        assert result.error is RecoveryError.PASSWORD_POLICY_VIOLATION
        assert [v.rule for v in result.violations] == [
            PasswordRule.UPPERCASE,
            PasswordRule.DIGIT,
            PasswordRule.SPECIAL,
        ]
        assert form.field_errors[NEW_PASSWORD].count("Must contain") == 3
        assert identity.update_calls == []


class TestSubmitUpdate:
    """Backend update and the delayed sign-out."""

    async def test_success_signs_out_after_delay(
        self, identity: MockIdentityClient, timers: TimerScope
    ) -> None:
        session = await _valid_session(identity)
        signed_out = asyncio.Event()
        controller = CredentialUpdateController(
            identity,
            session,
            timers,
            organization_id="org",
            signout_delay=0.01,
            on_signed_out=signed_out.set,
        )
        form = _form(STRONG, STRONG)

        result = await controller.submit(form)

        assert result.success
        assert form.submitted
        assert controller.updated
        assert identity.update_calls == [STRONG]
        assert identity.sign_out_calls == []

        await asyncio.wait_for(signed_out.wait(), timeout=1)
        assert controller.signed_out
        assert identity.sign_out_calls == [
            {"session_token": session.session_token, "session_jwt": session.session_jwt}
        ]

    async def test_backend_rejection_stays_editable(
        self, identity: MockIdentityClient, timers: TimerScope
    ) -> None:
        session = await _valid_session(identity)
        controller = CredentialUpdateController(
            identity, session, timers, organization_id="org"
        )
        await controller.submit(_form(STRONG, STRONG))
        # Same password again on a fresh form is rejected by the backend
        controller = CredentialUpdateController(
            identity, session, TimerScope("second"), organization_id="org"
        )
        form = _form(STRONG, STRONG)

        result = await controller.submit(form)

        assert result.error is RecoveryError.UPDATE_FAILED
        assert form.field_errors[NEW_PASSWORD] == (
            "The new password must differ from the current one."
        )
        assert not form.submitted
        assert not controller.updated

    async def test_legacy_session_sends_jwt(self, timers: TimerScope) -> None:
        client = AsyncMock()
        client.update_password.return_value = UpdateResult(success=True)
        session = RecoverySession(
            status=SessionStatus.VALID,
            protocol=RecoveryProtocol.LEGACY_TOKEN,
            session_jwt="legacy-jwt",
        )
        controller = CredentialUpdateController(
            client, session, timers, organization_id="org-1", signout_delay=60
        )

        await controller.submit(_form(STRONG, STRONG))

        client.update_password.assert_awaited_once_with(
            STRONG, "org-1", session_token=None, session_jwt="legacy-jwt"
        )

    async def test_concurrent_submit_rejected(self, timers: TimerScope) -> None:
        release = asyncio.Event()

        async def slow_update(*args, **kwargs) -> UpdateResult:
            await release.wait()
            return UpdateResult(success=True)

        client = AsyncMock()
        client.update_password.side_effect = slow_update
        session = RecoverySession(status=SessionStatus.VALID, session_token="tok")
        controller = CredentialUpdateController(
            client, session, timers, organization_id="org", signout_delay=60
        )

        first = asyncio.create_task(controller.submit(_form(STRONG, STRONG)))
        await asyncio.sleep(0)
        assert controller.submitting
        second = await controller.submit(_form(STRONG, STRONG))
        release.set()

        assert not second.success
        assert (await first).success
        client.update_password.assert_awaited_once()

    async def test_submit_after_update_is_noop(
        self, identity: MockIdentityClient, timers: TimerScope
    ) -> None:
        session = await _valid_session(identity)
        controller = CredentialUpdateController(
            identity, session, timers, organization_id="org", signout_delay=60
        )
        form = _form(STRONG, STRONG)
        await controller.submit(form)

        again = await controller.submit(form)
        fresh_form = await controller.submit(_form(STRONG, STRONG))

        assert again.success
        assert again.error is None
        assert again.message == ALREADY_UPDATED_MESSAGE
        assert fresh_form.success
        assert identity.update_calls == [STRONG]
        assert timers.pending == 1


class TestSignOut:
    """Sign-out happens at most once, whichever path fires first."""

    async def test_sign_out_now_cancels_delayed_sign_out(
        self, timers: TimerScope
    ) -> None:
        client = AsyncMock()
        client.update_password.return_value = UpdateResult(success=True)
        client.sign_out.return_value = SignOutResult(success=True)
        on_signed_out = AsyncMock()
        session = RecoverySession(status=SessionStatus.VALID, session_token="tok")
        controller = CredentialUpdateController(
            client,
            session,
            timers,
            organization_id="org",
            signout_delay=0.02,
            on_signed_out=on_signed_out,
        )

        await controller.submit(_form(STRONG, STRONG))
        await controller.sign_out_now()
        await controller.sign_out_now()
        await asyncio.sleep(0.05)

        client.sign_out.assert_awaited_once_with(session_token="tok", session_jwt=None)
        on_signed_out.assert_awaited_once()
        assert timers.pending == 0

    async def test_failed_sign_out_still_leaves(self, timers: TimerScope) -> None:
        client = AsyncMock()
        client.sign_out.return_value = SignOutResult(success=False, error="not_found")
        left: list[bool] = []
        session = RecoverySession(status=SessionStatus.VALID, session_token="tok")
        controller = CredentialUpdateController(
            client,
            session,
            timers,
            organization_id="org",
            on_signed_out=lambda: left.append(True),
        )

        await controller.sign_out_now()

        assert left == [True]
        assert controller.signed_out
