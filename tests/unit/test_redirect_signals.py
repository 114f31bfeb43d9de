"""Tests for redirect signal classification and URL cleaning."""

from __future__ import annotations

import pytest

from authlink.recovery.signals import (
    MAX_SIGNAL_LENGTH,
    AuthRedirectSignal,
    SignalKind,
    classify,
    strip_sensitive_params,
)

BASE = "https://app.example.com/auth/reset-password"


class TestClassifyErrors:
    """Error parameters win over everything else."""

    @pytest.mark.parametrize(
        "url",
        [
            f"{BASE}?error=access_denied&error_code=otp_expired",
            f"{BASE}#error=access_denied&error_code=otp_expired",
        ],
    )
    def test_otp_expired_in_query_or_fragment(self, url: str) -> None:
        signal = classify(url)

        assert signal.kind is SignalKind.ERROR
        assert signal.error == "access_denied"
        assert signal.error_code == "otp_expired"

    def test_error_beats_code(self) -> None:
        """A link carrying both an error and a code is an error."""
        signal = classify(f"{BASE}?code=abc123&error=server_error")

        assert signal.kind is SignalKind.ERROR
        assert signal.code is None

    def test_description_alone_is_an_error(self) -> None:
        signal = classify(f"{BASE}#error_description=Email+link+is+invalid")

        assert signal.kind is SignalKind.ERROR
        assert signal.error_description == "Email link is invalid"

    def test_error_in_fragment_with_code_in_query(self) -> None:
        """Per-key lookup still sees the fragment error."""
        signal = classify(f"{BASE}?code=abc123#error=access_denied")

        assert signal.kind is SignalKind.ERROR
        assert signal.error == "access_denied"


class TestClassifyRecovery:
    """Recovery codes and legacy recovery tokens."""

    def test_code_in_query(self) -> None:
        signal = classify(f"{BASE}?code=abc123")

        assert signal == AuthRedirectSignal(
            kind=SignalKind.RECOVERY_CODE, code="abc123"
        )
        assert signal.is_recovery

    def test_code_in_fragment(self) -> None:
        signal = classify(f"{BASE}#code=abc123")

        assert signal.kind is SignalKind.RECOVERY_CODE
        assert signal.code == "abc123"

    def test_query_code_preferred_over_fragment_code(self) -> None:
        signal = classify(f"{BASE}?code=from-query#code=from-fragment")

        assert signal.code == "from-query"

    def test_code_beats_access_token(self) -> None:
        signal = classify(f"{BASE}?code=abc123#access_token=tok&type=recovery")

        assert signal.kind is SignalKind.RECOVERY_CODE

    def test_legacy_recovery_token_in_fragment(self) -> None:
        signal = classify(f"{BASE}#access_token=tok-1&refresh_token=r&type=recovery")

        assert signal.kind is SignalKind.RECOVERY_TOKEN
        assert signal.token == "tok-1"
        assert signal.is_recovery

    def test_access_token_without_recovery_type_is_none(self) -> None:
        signal = classify(f"{BASE}#access_token=tok-1&type=signup")

        assert signal.kind is SignalKind.NONE
        assert signal.token is None


class TestClassifyNone:
    """URLs without any auth signal."""

    @pytest.mark.parametrize(
        "url",
        [
            BASE,
            f"{BASE}?next=/home",
            f"{BASE}#section-2",
            f"{BASE}?code=",
            "",
            "not a url at all",
        ],
    )
    def test_no_signal(self, url: str) -> None:
        signal = classify(url)

        assert signal.kind is SignalKind.NONE
        assert not signal.is_recovery

    def test_malformed_url_does_not_raise(self) -> None:
        assert classify("http://[::1").kind is SignalKind.NONE

    def test_oversized_code_is_ignored(self) -> None:
        code = "x" * (MAX_SIGNAL_LENGTH + 1)

        assert classify(f"{BASE}?code={code}").kind is SignalKind.NONE

    def test_code_at_max_length_is_accepted(self) -> None:
        code = "x" * MAX_SIGNAL_LENGTH

        assert classify(f"{BASE}?code={code}").code == code


class TestStripSensitiveParams:
    """Removing auth parameters from the visible address."""

    def test_strips_code_and_keeps_unrelated(self) -> None:
        url = f"{BASE}?code=abc123&next=%2Fhome"

        assert strip_sensitive_params(url) == f"{BASE}?next=%2Fhome"

    def test_strips_fragment_tokens_entirely(self) -> None:
        url = (
            f"{BASE}#access_token=tok&expires_in=3600&refresh_token=r"
            "&token_type=bearer&type=recovery"
        )

        assert strip_sensitive_params(url) == BASE

    def test_strips_error_params_from_both_places(self) -> None:
        url = f"{BASE}?error=access_denied&lang=en#error_code=otp_expired"

        assert strip_sensitive_params(url) == f"{BASE}?lang=en"

    def test_plain_anchor_fragment_is_kept(self) -> None:
        assert strip_sensitive_params(f"{BASE}#top") == f"{BASE}#top"

    def test_url_without_params_unchanged(self) -> None:
        assert strip_sensitive_params(BASE) == BASE

    def test_stripped_url_classifies_as_none(self) -> None:
        url = f"{BASE}?code=abc123"

        assert classify(strip_sensitive_params(url)).kind is SignalKind.NONE
