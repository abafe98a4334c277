"""
Vault authentication configuration.

This module decides which authentication strategy a process uses and carries
the transport settings used to build the hvac client. Strategy selection is
driven by environment variables; the first matching strategy wins:

    1. VAULT_APP_ROLE + VAULT_APP_ROLE_ID + VAULT_APP_SECRET_ID → AppRole
    2. VAULT_ROLE → AWS IAM
    3. K8S_ROLE → Kubernetes (K8S_PATH defaults to "k8s-<role>")
    4. VAULT_TOKEN → static token
    5. otherwise → VaultAuthConfigError

Transport Environment Variables:
    VAULT_ADDR (str): Vault server URL (default: "https://127.0.0.1:8200")
    VAULT_CACERT (str, optional): CA bundle used to verify the server certificate
    VAULT_SKIP_VERIFY (bool, optional): Disable TLS verification (local dev only)
    VAULT_CLIENT_TIMEOUT (str, optional): Request timeout in seconds or as a
        duration such as "30s", "500ms", "1m30s" (default: 60)
    VAULT_NAMESPACE (str, optional): Vault Enterprise namespace

Strategy-Specific Optional Variables:
    VAULT_APP_ROLE_PATH: AppRole auth mount (default: "approle")
    VAULT_IAM_PATH: AWS auth mount (default: "aws")
    VAULT_IAM_SERVER_ID: Value for the X-Vault-AWS-IAM-Server-ID header
    STS_AWS_REGION / AWS_REGION / AWS_DEFAULT_REGION: STS region (default: "us-east-1")
    K8S_JWT_PATH: Service-account token file
"""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

from libs.vault_auth.exceptions import VaultAuthConfigError

DEFAULT_VAULT_ADDR: Final[str] = "https://127.0.0.1:8200"
DEFAULT_TIMEOUT_SECONDS: Final[int] = 60
DEFAULT_APPROLE_MOUNT_POINT: Final[str] = "approle"
DEFAULT_IAM_MOUNT_POINT: Final[str] = "aws"
DEFAULT_AWS_REGION: Final[str] = "us-east-1"
DEFAULT_K8S_JWT_PATH: Final[str] = "/var/run/secrets/kubernetes.io/serviceaccount/token"

ENV_VAR_AWS_REGION: Final[str] = "AWS_REGION"
ENV_VAR_STS_AWS_REGION: Final[str] = "STS_AWS_REGION"

_TRUTHY_VALUES: Final[set[str]] = {"1", "true", "yes", "on"}

_DURATION_UNITS: Final[dict[str, float]] = {
    "ns": 1e-9,
    "us": 1e-6,
    "\u00b5s": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|\u00b5s|ms|s|m|h)")
_DURATION = re.compile(rf"(?:{_DURATION_PART.pattern})+")


class AuthType(str, Enum):
    """Vault authentication strategy."""

    TOKEN = "token"
    IAM = "iam"
    APPROLE = "approle"
    K8S = "k8s"


def _is_truthy(value: str | None) -> bool:
    """Return True when the provided environment variable looks truthy."""
    return bool(value and value.strip().lower() in _TRUTHY_VALUES)


def _parse_timeout(raw: str) -> float:
    """
    Parse VAULT_CLIENT_TIMEOUT into seconds.

    Accepts plain seconds ("30", "2.5") or a duration made of number+unit
    parts ("500ms", "1m", "1m30s", "2h"), units ns/us/ms/s/m/h.
    """
    value = raw.strip()
    try:
        seconds = float(value)
    except ValueError:
        if not _DURATION.fullmatch(value):
            raise VaultAuthConfigError(
                f"Invalid VAULT_CLIENT_TIMEOUT '{raw}'. Use seconds or a duration, "
                "e.g. '30', '30s', '500ms', '1m30s'."
            ) from None
        seconds = sum(
            float(number) * _DURATION_UNITS[unit]
            for number, unit in _DURATION_PART.findall(value)
        )
    if not seconds > 0 or seconds == float("inf"):
        raise VaultAuthConfigError(f"VAULT_CLIENT_TIMEOUT must be positive, got '{raw}'")
    return seconds


def k8s_default_path(role: str) -> str:
    """Default Kubernetes auth mount for a role."""
    return f"k8s-{role}"


def resolve_aws_region(environ: Mapping[str, str]) -> str:
    """
    Resolve the STS region for IAM logins.

    Priority: STS_AWS_REGION > AWS_REGION > AWS_DEFAULT_REGION > us-east-1
    """
    return (
        environ.get(ENV_VAR_STS_AWS_REGION)
        or environ.get(ENV_VAR_AWS_REGION)
        or environ.get("AWS_DEFAULT_REGION")
        or DEFAULT_AWS_REGION
    )


@dataclass(frozen=True)
class VaultTransportConfig:
    """Connection settings passed to hvac.Client."""

    address: str = DEFAULT_VAULT_ADDR
    verify: bool | str = True
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    namespace: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "VaultTransportConfig":
        """Load transport settings from environment variables."""
        env = os.environ if environ is None else environ

        verify: bool | str = True
        ca_cert = env.get("VAULT_CACERT")
        if ca_cert:
            verify = ca_cert
        if _is_truthy(env.get("VAULT_SKIP_VERIFY")):
            verify = False

        raw_timeout = env.get("VAULT_CLIENT_TIMEOUT")
        timeout = _parse_timeout(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_SECONDS

        return cls(
            address=env.get("VAULT_ADDR") or DEFAULT_VAULT_ADDR,
            verify=verify,
            timeout=timeout,
            namespace=env.get("VAULT_NAMESPACE") or None,
        )


@dataclass(frozen=True)
class VaultAuthConfig:
    """
    Resolved authentication configuration.

    Exactly one ``auth_type`` is active. Fields that belong to other
    strategies are ignored by the factory and never validated.

    Example:
        >>> config = VaultAuthConfig(auth_type=AuthType.K8S, k8s_role="svcA")
        >>> config.k8s_mount_point
        'k8s-svcA'
    """

    auth_type: AuthType
    transport: VaultTransportConfig = field(default_factory=VaultTransportConfig)

    # Static token
    token: str | None = field(default=None, repr=False)

    # AppRole
    app_role: str | None = None
    app_role_id: str | None = None
    app_role_secret_id: str | None = field(default=None, repr=False)
    app_role_mount_point: str = DEFAULT_APPROLE_MOUNT_POINT

    # AWS IAM
    iam_role: str | None = None
    iam_mount_point: str = DEFAULT_IAM_MOUNT_POINT
    aws_region: str = DEFAULT_AWS_REGION
    iam_server_id: str | None = None

    # Kubernetes
    k8s_role: str | None = None
    k8s_path: str | None = None
    k8s_jwt_path: str = DEFAULT_K8S_JWT_PATH

    @property
    def k8s_mount_point(self) -> str | None:
        """Kubernetes auth mount, defaulting to ``k8s-<role>`` when no path is set."""
        if self.k8s_path:
            return self.k8s_path
        if self.k8s_role:
            return k8s_default_path(self.k8s_role)
        return None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "VaultAuthConfig":
        """
        Resolve the auth strategy from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (tests, embedding)

        Returns:
            VaultAuthConfig for the first matching strategy

        Raises:
            VaultAuthConfigError: No strategy inputs are present, or a transport
                setting is invalid
        """
        env = os.environ if environ is None else environ
        transport = VaultTransportConfig.from_env(env)

        app_role = env.get("VAULT_APP_ROLE")
        app_role_id = env.get("VAULT_APP_ROLE_ID")
        app_role_secret_id = env.get("VAULT_APP_SECRET_ID")
        if app_role and app_role_id and app_role_secret_id:
            return cls(
                auth_type=AuthType.APPROLE,
                transport=transport,
                app_role=app_role,
                app_role_id=app_role_id,
                app_role_secret_id=app_role_secret_id,
                app_role_mount_point=env.get("VAULT_APP_ROLE_PATH") or DEFAULT_APPROLE_MOUNT_POINT,
            )

        iam_role = env.get("VAULT_ROLE")
        if iam_role:
            return cls(
                auth_type=AuthType.IAM,
                transport=transport,
                iam_role=iam_role,
                iam_mount_point=env.get("VAULT_IAM_PATH") or DEFAULT_IAM_MOUNT_POINT,
                aws_region=resolve_aws_region(env),
                iam_server_id=env.get("VAULT_IAM_SERVER_ID") or None,
            )

        k8s_role = env.get("K8S_ROLE")
        if k8s_role:
            return cls(
                auth_type=AuthType.K8S,
                transport=transport,
                k8s_role=k8s_role,
                k8s_path=env.get("K8S_PATH") or k8s_default_path(k8s_role),
                k8s_jwt_path=env.get("K8S_JWT_PATH") or DEFAULT_K8S_JWT_PATH,
            )

        token = env.get("VAULT_TOKEN")
        if token:
            return cls(auth_type=AuthType.TOKEN, transport=transport, token=token)

        raise VaultAuthConfigError("failed to determine auth type from env")
