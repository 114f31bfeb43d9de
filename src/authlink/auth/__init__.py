"""Identity backend access for authlink.

Provides Stytch B2B access for the recovery and confirmation flows:
- Recovery code exchange and legacy recovery token checks
- Session-authenticated password updates and sign-out
- Confirmation and recovery emails
- Mock client for testing

Usage:
    from authlink.auth import get_auth_client

    client = get_auth_client()
    result = await client.exchange_code_for_session(code)
"""

from __future__ import annotations

from authlink.auth.factory import (
    clear_config_cache,
    get_auth_client,
    get_organization_id,
)
from authlink.auth.models import (
    AuthResult,
    ExchangeResult,
    SendResult,
    SignOutResult,
    UpdateResult,
    VerifyResult,
)
from authlink.auth.protocol import IdentityClientProtocol

__all__ = [
    "AuthResult",
    "ExchangeResult",
    "IdentityClientProtocol",
    "SendResult",
    "SignOutResult",
    "UpdateResult",
    "VerifyResult",
    "clear_config_cache",
    "get_auth_client",
    "get_organization_id",
]
