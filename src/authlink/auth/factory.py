"""Identity client factory.

Provides a factory function to get the appropriate identity client
based on configuration (real Stytch or mock for testing).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from authlink.config import get_settings

if TYPE_CHECKING:
    from authlink.auth.protocol import IdentityClientProtocol


# Cached mock client instance to preserve session state across requests
_mock_client_instance: IdentityClientProtocol | None = None


def get_auth_client() -> IdentityClientProtocol:
    """Get the appropriate identity client based on configuration.

    If DEV__AUTH_MOCK=true, returns MockIdentityClient (singleton to
    preserve sessions). Otherwise, returns StytchB2BClient with real
    credentials.

    Raises:
        ValueError: If stytch.project_id is empty and mock mode is disabled.
    """
    global _mock_client_instance  # noqa: PLW0603
    settings = get_settings()

    if settings.dev.auth_mock:
        if _mock_client_instance is None:
            from authlink.auth.mock import MockIdentityClient

            _mock_client_instance = MockIdentityClient()
        return _mock_client_instance

    stytch = settings.stytch
    if not stytch.project_id:
        msg = (
            "STYTCH__PROJECT_ID is required when DEV__AUTH_MOCK is not enabled. "
            "Set STYTCH__PROJECT_ID and STYTCH__SECRET in your .env file."
        )
        raise ValueError(msg)

    from authlink.auth.client import StytchB2BClient

    return StytchB2BClient(
        project_id=stytch.project_id,
        secret=stytch.secret.get_secret_value(),
        environment=stytch.environment,
        recovery_session_minutes=settings.recovery.session_duration_minutes,
        link_validity_minutes=settings.recovery.link_validity_minutes,
    )


def get_organization_id() -> str:
    """Return the organization new members and recovery requests use.

    Falls back to the mock organization when mocking is enabled.
    """
    settings = get_settings()
    if settings.stytch.default_org_id:
        return settings.stytch.default_org_id
    if settings.dev.auth_mock:
        from authlink.auth.mock import MOCK_ORG_ID

        return MOCK_ORG_ID
    msg = "STYTCH__DEFAULT_ORG_ID is required when DEV__AUTH_MOCK is not enabled."
    raise ValueError(msg)


def clear_config_cache() -> None:
    """Clear the configuration and mock client caches.

    Useful for testing when you need to reload configuration
    or reset mock client session state.
    """
    global _mock_client_instance  # noqa: PLW0603
    get_settings.cache_clear()
    _mock_client_instance = None
