"""
Vault authenticators: strategy implementations behind one client contract.

Every authenticator hands out a ready-to-use hvac.Client. Callers never see
raw tokens; they call get_client() before each batch of Vault operations and
the authenticator makes sure the client carries a fresh token.

Architecture:
    VaultAuthenticator (ABC)
    ├── TokenAuthenticator - Static token, set once, never refreshed
    └── RenewingAuthenticator - Lazy, expiry-aware login/refresh protocol
        ├── AppRoleAuthenticator - role_id + secret_id
        ├── K8sAuthenticator - Kubernetes service-account JWT
        └── IamAuthenticator - AWS IAM signed identity (iam.py)

Refresh Protocol (RenewingAuthenticator):
    - Fast path: credential fresh → return client, no backend contact
    - Stale or missing credential → login under a per-instance lock
    - Concurrent callers block on the in-flight login and reuse its result
    - Login failure → VaultLoginError, held credential unchanged; the next
      get_client() call retries the full login (no backoff at this layer)

Security:
    - Tokens, secret-ids, and JWTs are NEVER logged (only method/role/mount)
    - Tokens live in memory only

Example:
    >>> from libs.vault_auth import create_authenticator_from_env
    >>> with create_authenticator_from_env() as authenticator:
    ...     client = authenticator.get_client()
    ...     client.secrets.kv.v2.read_secret_version(path="database/password")
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from pathlib import Path
from types import TracebackType
from typing import Any, ClassVar

import hvac
from hvac.exceptions import VaultError
from requests import RequestException

from libs.vault_auth.config import DEFAULT_K8S_JWT_PATH, AuthType
from libs.vault_auth.credential import (
    EXPIRATION_WINDOW,
    Credential,
    client_token,
    is_stale,
    token_ttl,
    utcnow,
)
from libs.vault_auth.exceptions import (
    VaultAuthError,
    VaultAuthUnrecoverableError,
    VaultLoginError,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class VaultAuthenticator(ABC):
    """
    Abstract base class for all Vault authentication strategies.

    Each authenticator exclusively owns one hvac.Client. Build one
    authenticator per Vault identity; never share a client between them.

    Two ways to get a client:
        - get_client(): recoverable; raises VaultAuthError subclasses
        - get_client_or_fail(): fatal; raises VaultAuthUnrecoverableError,
          meant for startup paths that cannot continue without Vault
    """

    auth_type: ClassVar[AuthType]

    def __init__(self, client: hvac.Client) -> None:
        self._client = client

    @property
    def role(self) -> str | None:
        """Vault role this authenticator logs in as (None for static tokens)."""
        return None

    @abstractmethod
    def get_client(self) -> hvac.Client:
        """
        Return an hvac client carrying a currently-valid token.

        Returns:
            The authenticator's hvac.Client (same instance on every call)

        Raises:
            VaultLoginError: A required refresh failed. No client is returned
                and the caller must not proceed with a stale token.
        """

    def get_client_or_fail(self) -> hvac.Client:
        """
        Return an authenticated client or abort with an unrecoverable error.

        Converts any exception from get_client() into
        VaultAuthUnrecoverableError, chained as ``__cause__``. Use only where
        failing to authenticate is a fatal startup condition; use get_client()
        everywhere else.

        Raises:
            VaultAuthUnrecoverableError: Authentication is not possible right now
        """
        try:
            return self.get_client()
        except Exception as e:
            logger.critical(
                "Vault authentication unrecoverable",
                extra={
                    "auth_method": self.auth_type.value,
                    "role": self.role,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise VaultAuthUnrecoverableError(
                f"Vault authentication unrecoverable: {e}"
            ) from e

    def close(self) -> None:
        """Close the hvac client's HTTP adapter (connection pool)."""
        adapter = getattr(self._client, "adapter", None)
        if adapter and hasattr(adapter, "close"):
            adapter.close()
        logger.info(
            "Vault authenticator closed",
            extra={"auth_method": self.auth_type.value, "role": self.role},
        )

    def __enter__(self) -> "VaultAuthenticator":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


class TokenAuthenticator(VaultAuthenticator):
    """
    Static token authentication.

    The token is set on the client once, by the factory, and is assumed valid
    for the lifetime of the process. get_client() never contacts Vault.
    """

    auth_type = AuthType.TOKEN

    def get_client(self) -> hvac.Client:
        return self._client


class RenewingAuthenticator(VaultAuthenticator):
    """
    Base class for strategies that exchange an identity for a short-lived token.

    Subclasses implement _login() with the strategy-specific hvac call; this
    class owns the credential slot, the staleness check, and the single-flight
    refresh.

    Thread Safety:
        Refresh runs under threading.Lock with a re-check after acquiring it,
        so at most one login is in flight per authenticator. Threads that
        arrive during a refresh wait for it and reuse the new token.
    """

    # Exceptions a login call may raise that mean "this attempt failed".
    _LOGIN_ERRORS: ClassVar[tuple[type[BaseException], ...]] = (
        VaultError,
        RequestException,
        OSError,
    )

    def __init__(
        self,
        client: hvac.Client,
        role: str,
        mount_point: str,
        *,
        clock: Clock | None = None,
        expiration_window: timedelta = EXPIRATION_WINDOW,
    ) -> None:
        super().__init__(client)
        self._role = role
        self._mount_point = mount_point
        self._clock: Clock = clock or utcnow
        self._expiration_window = expiration_window
        self._credential: Credential | None = None
        self._lock = threading.Lock()

    @property
    def role(self) -> str:
        return self._role

    @property
    def mount_point(self) -> str:
        """Auth method mount the login call is sent to."""
        return self._mount_point

    @property
    def credential(self) -> Credential | None:
        """Currently held credential (None before the first successful login)."""
        return self._credential

    def get_client(self) -> hvac.Client:
        if not is_stale(self._credential, self._clock(), self._expiration_window):
            return self._client

        with self._lock:
            # Another thread may have refreshed while we waited for the lock
            if not is_stale(self._credential, self._clock(), self._expiration_window):
                return self._client

            credential = self._refresh()
            self._client.token = credential.token
            self._credential = credential

        return self._client

    def invalidate(self) -> None:
        """Drop the held credential so the next get_client() logs in again."""
        with self._lock:
            self._credential = None

    def _refresh(self) -> Credential:
        """Perform one login and turn the response into a Credential."""
        try:
            response = self._login()
        except VaultAuthError:
            raise
        except self._LOGIN_ERRORS as e:
            logger.error(
                "Vault login failed",
                extra={
                    "auth_method": self.auth_type.value,
                    "role": self._role,
                    "mount_point": self._mount_point,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
                exc_info=True,
            )
            raise VaultLoginError(
                f"Vault login failed: {e}",
                auth_method=self.auth_type.value,
                role=self._role,
            ) from e

        # Expiry is measured from when the response arrived
        issued_at = self._clock()
        try:
            ttl = token_ttl(response)
            token = client_token(response)
        except (AttributeError, ValueError) as e:
            logger.error(
                "Vault login returned a malformed response",
                extra={
                    "auth_method": self.auth_type.value,
                    "role": self._role,
                    "mount_point": self._mount_point,
                    "error": str(e),
                },
            )
            raise VaultLoginError(
                f"Invalid Vault login response: {e}",
                auth_method=self.auth_type.value,
                role=self._role,
            ) from e

        if ttl <= self._expiration_window:
            logger.warning(
                "Vault token TTL is within the expiration window; every call will log in",
                extra={
                    "auth_method": self.auth_type.value,
                    "role": self._role,
                    "ttl_seconds": int(ttl.total_seconds()),
                },
            )

        logger.info(
            "Vault login succeeded",
            extra={
                "auth_method": self.auth_type.value,
                "role": self._role,
                "mount_point": self._mount_point,
                "ttl_seconds": int(ttl.total_seconds()),
            },
        )
        return Credential.from_ttl(token, ttl, issued_at=issued_at)

    @abstractmethod
    def _login(self) -> Mapping[str, Any]:
        """Issue the strategy-specific login call and return the raw response."""


class AppRoleAuthenticator(RenewingAuthenticator):
    """
    AppRole authentication (role_id + secret_id).

    Writes ``{role_id, secret_id}`` to ``auth/<mount_point>/login``. The role
    name identifies the authenticator in logs; Vault resolves the role from
    the role_id.
    """

    auth_type = AuthType.APPROLE

    def __init__(
        self,
        client: hvac.Client,
        role: str,
        role_id: str,
        secret_id: str,
        mount_point: str = "approle",
        *,
        clock: Clock | None = None,
        expiration_window: timedelta = EXPIRATION_WINDOW,
    ) -> None:
        super().__init__(
            client,
            role,
            mount_point,
            clock=clock,
            expiration_window=expiration_window,
        )
        self._role_id = role_id
        self._secret_id = secret_id

    def _login(self) -> Mapping[str, Any]:
        return self._client.auth.approle.login(
            role_id=self._role_id,
            secret_id=self._secret_id,
            mount_point=self._mount_point,
            use_token=False,
        )


class K8sAuthenticator(RenewingAuthenticator):
    """
    Kubernetes service-account authentication.

    The service-account JWT is re-read from ``jwt_path`` on every login
    because projected tokens are rotated by the kubelet.
    """

    auth_type = AuthType.K8S

    def __init__(
        self,
        client: hvac.Client,
        role: str,
        mount_point: str,
        jwt_path: str | Path = DEFAULT_K8S_JWT_PATH,
        *,
        clock: Clock | None = None,
        expiration_window: timedelta = EXPIRATION_WINDOW,
    ) -> None:
        super().__init__(
            client,
            role,
            mount_point,
            clock=clock,
            expiration_window=expiration_window,
        )
        self._jwt_path = Path(jwt_path)

    @property
    def jwt_path(self) -> Path:
        return self._jwt_path

    def _read_jwt(self) -> str:
        try:
            jwt = self._jwt_path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            detail = e.strerror if isinstance(e, OSError) and e.strerror else e
            raise VaultLoginError(
                f"Cannot read service account token at {self._jwt_path}: {detail}",
                auth_method=self.auth_type.value,
                role=self._role,
            ) from e
        if not jwt:
            raise VaultLoginError(
                f"Service account token at {self._jwt_path} is empty",
                auth_method=self.auth_type.value,
                role=self._role,
            )
        return jwt

    def _login(self) -> Mapping[str, Any]:
        return self._client.auth.kubernetes.login(
            role=self._role,
            jwt=self._read_jwt(),
            mount_point=self._mount_point,
            use_token=False,
        )
