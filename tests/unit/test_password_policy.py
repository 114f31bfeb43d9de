"""Tests for the new password policy."""

from __future__ import annotations

import pytest

from authlink.recovery.policy import (
    MIN_PASSWORD_LENGTH,
    PASSWORD_REQUIREMENTS,
    PasswordRule,
    validate_password,
)


def _rules(password: str) -> list[PasswordRule]:
    return [violation.rule for violation in validate_password(password)]


class TestValidatePassword:
    """Every rule is checked independently."""

    def test_strong_password_passes(self) -> None:
        assert validate_password("Abcd12#$") == []

    def test_all_lowercase_fails_three_rules(self) -> None:
        """Length passes; upper, digit and special fail."""
        assert _rules("abcdefgh") == [
            PasswordRule.UPPERCASE,
            PasswordRule.DIGIT,
            PasswordRule.SPECIAL,
        ]

    def test_empty_password_fails_everything(self) -> None:
        assert _rules("") == list(PasswordRule)

    def test_short_password_reports_length(self) -> None:
        rules = _rules("Ab1@")

        assert rules == [PasswordRule.MIN_LENGTH]

    def test_length_boundary(self) -> None:
        password = "Ab1@" + "x" * (MIN_PASSWORD_LENGTH - 4)

        assert len(password) == MIN_PASSWORD_LENGTH
        assert validate_password(password) == []
        assert _rules(password[:-1]) == [PasswordRule.MIN_LENGTH]

    @pytest.mark.parametrize("special", list("@$!%*?&"))
    def test_each_allowed_special(self, special: str) -> None:
        assert validate_password(f"Abcdef1{special}") == []

    def test_other_punctuation_is_not_special(self) -> None:
        assert _rules("Abcdef1_") == [PasswordRule.SPECIAL]

    def test_non_ascii_letters_do_not_count(self) -> None:
        """Only ASCII letters satisfy the case rules."""
        assert _rules("ÄBCDÉ12@") == [PasswordRule.LOWERCASE]

    def test_messages_are_human_readable(self) -> None:
        messages = [v.message for v in validate_password("abcdefgh")]

        assert messages == [
            "Must contain at least one uppercase letter",
            "Must contain at least one number",
            "Must contain at least one special character (@$!%*?&)",
        ]

    def test_requirements_cover_every_rule(self) -> None:
        assert list(PASSWORD_REQUIREMENTS) == list(PasswordRule)
