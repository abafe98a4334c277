"""
Expiry-aware Vault credential value object.

A Credential is the token issued by a successful login plus the absolute
instant at which it expires. Credentials are immutable: when one goes stale
the owning authenticator logs in again and replaces it with a new instance.

Staleness uses a safety buffer (EXPIRATION_WINDOW). Refresh happens lazily on
access, so a token judged fresh at the start of a request could otherwise
expire before the request completes. Treating a token as stale once it is
within the window of expiry bounds that race to the window's duration.

Example Usage:
    >>> from datetime import UTC, datetime, timedelta
    >>> now = datetime.now(UTC)
    >>> credential = Credential.from_ttl("hvs.abc", timedelta(seconds=60), issued_at=now)
    >>> credential.is_expired(now)
    False
    >>> credential.is_expired(now + timedelta(seconds=55))
    True
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Final

EXPIRATION_WINDOW: Final[timedelta] = timedelta(seconds=10)


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class Credential:
    """
    Immutable Vault token with its absolute expiry.

    The zero value ``Credential()`` (empty token, no expiry) is always stale,
    so an uninitialised credential is never trusted.

    Attributes:
        token: Vault client token. Excluded from repr so it never lands in logs.
        expires_at: Absolute expiry instant (aware, UTC). None means unknown.
    """

    token: str = field(default="", repr=False)
    expires_at: datetime | None = None

    @classmethod
    def from_ttl(cls, token: str, ttl: timedelta, issued_at: datetime) -> "Credential":
        """Build a credential expiring ``ttl`` after ``issued_at``."""
        return cls(token=token, expires_at=issued_at + ttl)

    def is_expired(
        self,
        now: datetime | None = None,
        window: timedelta = EXPIRATION_WINDOW,
    ) -> bool:
        """
        Return True if this credential must not be used any more.

        A credential is expired when it has no token or expiry, or when it
        expires at or before ``now + window``.

        Args:
            now: Reference instant (defaults to the current UTC time)
            window: Safety buffer before true expiry (default: 10 seconds)

        Returns:
            True if a new login is required, False if the token can be used
        """
        if not self.token or self.expires_at is None:
            return True
        if now is None:
            now = utcnow()
        return self.expires_at <= now + window

    def remaining(self, now: datetime | None = None) -> timedelta:
        """Time left before true expiry (zero for the zero value or past expiry)."""
        if self.expires_at is None:
            return timedelta(0)
        if now is None:
            now = utcnow()
        return max(self.expires_at - now, timedelta(0))


def is_stale(
    credential: Credential | None,
    now: datetime | None = None,
    window: timedelta = EXPIRATION_WINDOW,
) -> bool:
    """Return True if ``credential`` is absent or expired."""
    if credential is None:
        return True
    return credential.is_expired(now, window)


def token_ttl(response: Mapping[str, Any]) -> timedelta:
    """
    Extract the token time-to-live from a Vault login response.

    Login responses carry the TTL as ``auth.lease_duration`` (seconds). When
    there is no ``auth`` block the ``data.ttl`` field is used instead, which
    is where token lookup responses put it.

    Raises:
        ValueError: The response carries no TTL, or the TTL is not a
            non-negative number of seconds
    """
    auth = response.get("auth")
    if auth:
        raw_ttl = auth.get("lease_duration")
    else:
        raw_ttl = (response.get("data") or {}).get("ttl")

    if raw_ttl is None:
        raise ValueError("response has no token TTL")
    if isinstance(raw_ttl, bool):
        raise ValueError(f"invalid token TTL: {raw_ttl!r}")
    try:
        seconds = int(raw_ttl)
    except (TypeError, ValueError) as e:
        raise ValueError(f"invalid token TTL: {raw_ttl!r}") from e
    if seconds < 0:
        raise ValueError(f"negative token TTL: {seconds}")
    return timedelta(seconds=seconds)


def client_token(response: Mapping[str, Any]) -> str:
    """
    Extract the issued client token from a Vault login response.

    Raises:
        ValueError: The response has no ``auth.client_token``
    """
    auth = response.get("auth") or {}
    token = auth.get("client_token")
    if not token or not isinstance(token, str):
        raise ValueError("response has no client token")
    return token
