"""Classification of the redirect signals carried by emailed auth links.

The identity service appends its parameters either to the query string or
to the fragment, depending on which link protocol produced the link. Each
key is looked up in the query first and then in the fragment. The two
sources are never merged, so a link cannot mix a code from one place
with an error from the other into a single lookup table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import parse_qs, parse_qsl, urlencode, urlsplit, urlunsplit

logger = logging.getLogger(__name__)

# Longer values are dropped rather than passed to the backend
MAX_SIGNAL_LENGTH = 1000

ERROR_PARAMS = ("error", "error_code", "error_description")

# Everything the identity service may append to a link. Stripped from the
# visible address once classified so a reload cannot replay the link.
SENSITIVE_PARAMS = frozenset(
    {
        *ERROR_PARAMS,
        "code",
        "access_token",
        "refresh_token",
        "expires_in",
        "expires_at",
        "token_type",
        "type",
    }
)


class SignalKind(StrEnum):
    """What the current URL asks the auth flow to do."""

    NONE = "none"
    ERROR = "error"
    RECOVERY_CODE = "recovery_code"
    RECOVERY_TOKEN = "recovery_token"


@dataclass(frozen=True)
class AuthRedirectSignal:
    """Classification of a URL at page load.

    Attributes:
        kind: The single classification of the URL.
        code: One-time exchange code (RECOVERY_CODE only).
        token: Legacy recovery bearer token (RECOVERY_TOKEN only).
        error: The ``error`` parameter (ERROR only).
        error_code: The ``error_code`` parameter (ERROR only).
        error_description: The ``error_description`` parameter (ERROR only).
    """

    kind: SignalKind = SignalKind.NONE
    code: str | None = None
    token: str | None = None
    error: str | None = None
    error_code: str | None = None
    error_description: str | None = None

    @property
    def is_recovery(self) -> bool:
        return self.kind in (SignalKind.RECOVERY_CODE, SignalKind.RECOVERY_TOKEN)


class _SignalSource:
    """Two-location parameter lookup: query first, then fragment."""

    def __init__(self, query: str, fragment: str) -> None:
        self._query = parse_qs(query)
        self._fragment = parse_qs(fragment)

    def get(self, name: str) -> str | None:
        for params in (self._query, self._fragment):
            value = _first_usable(name, params.get(name))
            if value is not None:
                return value
        return None


def _first_usable(name: str, values: list[str] | None) -> str | None:
    if not values:
        return None
    value = values[0].strip()
    if not value:
        return None
    # Oversized values never reach the backend
    if len(value) > MAX_SIGNAL_LENGTH:
        logger.warning("Ignoring %s parameter: %d chars", name, len(value))
        return None
    return value


def classify(url: str) -> AuthRedirectSignal:
    """Classify the auth-related parameters of a URL.

    Priority: error parameters, then ``code``, then ``access_token`` with
    ``type=recovery``. Never raises; unparseable or unrelated URLs are
    classified as NONE.

    Args:
        url: The full URL of the current page, including any fragment.

    Returns:
        The AuthRedirectSignal for this URL.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        logger.warning("Unparseable URL, treating as no signal")
        return AuthRedirectSignal()

    source = _SignalSource(parts.query, parts.fragment)

    error = source.get("error")
    error_code = source.get("error_code")
    error_description = source.get("error_description")
    if error or error_code or error_description:
        logger.info(
            "Auth link carries an error: error=%s error_code=%s", error, error_code
        )
        return AuthRedirectSignal(
            kind=SignalKind.ERROR,
            error=error,
            error_code=error_code,
            error_description=error_description,
        )

    code = source.get("code")
    if code:
        logger.debug("Recovery code found (length=%d)", len(code))
        return AuthRedirectSignal(kind=SignalKind.RECOVERY_CODE, code=code)

    token = source.get("access_token")
    if token and source.get("type") == "recovery":
        logger.debug("Legacy recovery token found (length=%d)", len(token))
        return AuthRedirectSignal(kind=SignalKind.RECOVERY_TOKEN, token=token)

    return AuthRedirectSignal()


def strip_sensitive_params(url: str) -> str:
    """Remove auth signal parameters from both query and fragment.

    Unrelated parameters are kept in their original order. An emptied
    fragment is dropped entirely.

    Args:
        url: The URL to clean.

    Returns:
        The URL without any auth signal parameters.
    """
    parts = urlsplit(url)

    def _clean(component: str) -> str:
        kept = [
            (key, value)
            for key, value in parse_qsl(component, keep_blank_values=True)
            if key not in SENSITIVE_PARAMS
        ]
        return urlencode(kept)

    query = _clean(parts.query)
    # Fragments that are not parameter lists (e.g. "#section") stay as-is
    fragment = _clean(parts.fragment) if "=" in parts.fragment else parts.fragment
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, fragment))
