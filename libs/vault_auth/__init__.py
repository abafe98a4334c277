"""
Vault Authentication Library.

This package obtains short-lived HashiCorp Vault tokens, caches them, and
re-authenticates transparently before they expire. Services never handle raw
tokens; they ask an authenticator for a ready-to-use hvac.Client.

Architecture (Strategy + Factory):
    - VaultAuthenticator: Abstract client contract (authenticators.py)
    - Strategies: TokenAuthenticator, AppRoleAuthenticator, IamAuthenticator, K8sAuthenticator
    - Credential: Immutable token + expiry with a 10-second safety window (credential.py)
    - Factory: create_authenticator() dispatches on VaultAuthConfig.auth_type
    - Config: VaultAuthConfig.from_env() picks the strategy from environment variables

Quick Start:
    >>> from libs.vault_auth import create_authenticator_from_env
    >>> authenticator = create_authenticator_from_env()
    >>> client = authenticator.get_client()  # Logs in on first use
    >>> client.secrets.kv.v2.read_secret_version(path="database/password")

Strategy Selection (first match wins):
    - VAULT_APP_ROLE + VAULT_APP_ROLE_ID + VAULT_APP_SECRET_ID → AppRole
    - VAULT_ROLE → AWS IAM
    - K8S_ROLE (+ optional K8S_PATH, default "k8s-<role>") → Kubernetes
    - VAULT_TOKEN → static token
    - none of the above → VaultAuthConfigError

Security Requirements:
    - Tokens, secret-ids, and JWTs are NEVER logged or included in exceptions
    - Tokens are held in memory only
"""

from libs.vault_auth.authenticators import (
    AppRoleAuthenticator,
    K8sAuthenticator,
    RenewingAuthenticator,
    TokenAuthenticator,
    VaultAuthenticator,
)
from libs.vault_auth.config import AuthType, VaultAuthConfig, VaultTransportConfig
from libs.vault_auth.credential import EXPIRATION_WINDOW, Credential, is_stale
from libs.vault_auth.exceptions import (
    VaultAuthConfigError,
    VaultAuthError,
    VaultAuthUnrecoverableError,
    VaultLoginError,
)
from libs.vault_auth.factory import create_authenticator, create_authenticator_from_env
from libs.vault_auth.iam import IamAuthenticator
from libs.vault_auth.retry import get_client_with_retry

# Package exports (PEP 8: __all__ defines public API)
__all__ = [
    # Core interface
    "VaultAuthenticator",
    "RenewingAuthenticator",
    # Strategies
    "TokenAuthenticator",
    "AppRoleAuthenticator",
    "IamAuthenticator",
    "K8sAuthenticator",
    # Credential value object
    "Credential",
    "EXPIRATION_WINDOW",
    "is_stale",
    # Configuration
    "AuthType",
    "VaultAuthConfig",
    "VaultTransportConfig",
    # Factory (recommended for most use cases)
    "create_authenticator",
    "create_authenticator_from_env",
    # Caller-side retry policy
    "get_client_with_retry",
    # Exceptions (callers should catch these)
    "VaultAuthError",
    "VaultAuthConfigError",
    "VaultLoginError",
    "VaultAuthUnrecoverableError",
]
