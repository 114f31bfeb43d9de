"""Password policy for new passwords."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

MIN_PASSWORD_LENGTH = 8
SPECIAL_CHARACTERS = "@$!%*?&"


class PasswordRule(StrEnum):
    MIN_LENGTH = "min_length"
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"
    DIGIT = "digit"
    SPECIAL = "special"


@dataclass(frozen=True)
class PolicyViolation:
    """A single failed password rule."""

    rule: PasswordRule
    message: str


PASSWORD_REQUIREMENTS: dict[PasswordRule, str] = {
    PasswordRule.MIN_LENGTH: f"At least {MIN_PASSWORD_LENGTH} characters",
    PasswordRule.LOWERCASE: "At least one lowercase letter",
    PasswordRule.UPPERCASE: "At least one uppercase letter",
    PasswordRule.DIGIT: "At least one number",
    PasswordRule.SPECIAL: f"At least one special character ({SPECIAL_CHARACTERS})",
}

_PATTERNS: dict[PasswordRule, re.Pattern[str]] = {
    PasswordRule.LOWERCASE: re.compile(r"[a-z]"),
    PasswordRule.UPPERCASE: re.compile(r"[A-Z]"),
    PasswordRule.DIGIT: re.compile(r"[0-9]"),
    PasswordRule.SPECIAL: re.compile(f"[{re.escape(SPECIAL_CHARACTERS)}]"),
}

_RULE_PHRASES: dict[PasswordRule, str] = {
    PasswordRule.LOWERCASE: "at least one lowercase letter",
    PasswordRule.UPPERCASE: "at least one uppercase letter",
    PasswordRule.DIGIT: "at least one number",
    PasswordRule.SPECIAL: f"at least one special character ({SPECIAL_CHARACTERS})",
}


def validate_password(password: str) -> list[PolicyViolation]:
    """Check a candidate password against every rule.

    All rules are evaluated so the form can show every problem at once.

    Returns:
        One PolicyViolation per failed rule, in PASSWORD_REQUIREMENTS order;
        empty when the password is acceptable.
    """
    violations: list[PolicyViolation] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        violations.append(
            PolicyViolation(
                PasswordRule.MIN_LENGTH,
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            )
        )
    for rule, pattern in _PATTERNS.items():
        if not pattern.search(password):
            violations.append(
                PolicyViolation(rule, f"Must contain {_RULE_PHRASES[rule]}")
            )
    return violations

