"""Account recovery through emailed links.

Usage:
    from authlink.recovery import AuthFlowController, AuthMode

    flow = AuthFlowController(client, timers=scope, notifier=notifier, ...)
    mode = await flow.mount(url, expect_recovery=True)
    if mode is AuthMode.RESET_PASSWORD and flow.credentials:
        result = await flow.credentials.submit(form)
"""

from __future__ import annotations

from authlink.recovery.cooldown import ResendCooldownLimiter, ResendState
from authlink.recovery.credentials import (
    CredentialUpdateController,
    CredentialUpdateForm,
    SubmitResult,
)
from authlink.recovery.errors import RecoveryError, describe
from authlink.recovery.flow import AuthFlowController, AuthMode
from authlink.recovery.notices import Notifier
from authlink.recovery.policy import (
    PASSWORD_REQUIREMENTS,
    PasswordRule,
    PolicyViolation,
    validate_password,
)
from authlink.recovery.session import (
    RecoveryProtocol,
    RecoverySession,
    RecoverySessionEstablisher,
    SessionStatus,
)
from authlink.recovery.signals import (
    AuthRedirectSignal,
    SignalKind,
    classify,
    strip_sensitive_params,
)
from authlink.recovery.timers import TimerHandle, TimerScope

__all__ = [
    "PASSWORD_REQUIREMENTS",
    "AuthFlowController",
    "AuthMode",
    "AuthRedirectSignal",
    "CredentialUpdateController",
    "CredentialUpdateForm",
    "Notifier",
    "PasswordRule",
    "PolicyViolation",
    "RecoveryError",
    "RecoveryProtocol",
    "RecoverySession",
    "RecoverySessionEstablisher",
    "ResendCooldownLimiter",
    "ResendState",
    "SessionStatus",
    "SignalKind",
    "SubmitResult",
    "TimerHandle",
    "TimerScope",
    "classify",
    "describe",
    "strip_sensitive_params",
    "validate_password",
]
