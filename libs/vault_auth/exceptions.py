"""
Vault Authentication Exception Hierarchy.

This module defines all exceptions raised by the Vault authentication library,
separating configuration problems, login failures, and the fatal path used by
startup code.

Exception hierarchy:
    VaultAuthError (base)
    ├── VaultAuthConfigError - No usable auth strategy / invalid settings
    └── VaultLoginError - Login call failed or returned a malformed response

    VaultAuthUnrecoverableError (RuntimeError) - raised only by
        VaultAuthenticator.get_client_or_fail(); intentionally NOT a
        VaultAuthError so that recoverable handlers never swallow it.

All exceptions carry structured context (auth method, role) without ever
exposing tokens, secret-ids, or JWTs.
"""


class VaultAuthError(Exception):
    """
    Base exception for all Vault authentication errors.

    Subclasses MUST NOT include token values, secret-ids, or service-account
    JWTs in error messages. Only auth method names and role names are safe.

    Attributes:
        message: Human-readable error message (MUST NOT include credentials)
        auth_method: Strategy name ("token", "approle", "iam", "k8s")
        role: Vault role the authenticator logs in as, if any

    Example:
        >>> try:
        ...     client = authenticator.get_client()
        ... except VaultAuthError as e:
        ...     logger.error("Vault auth failed", extra={"auth_method": e.auth_method})
    """

    def __init__(
        self,
        message: str,
        auth_method: str | None = None,
        role: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.auth_method = auth_method
        self.role = role

    def __str__(self) -> str:
        """
        Format error message with context (auth method + role).

        Example:
            >>> str(VaultAuthError("Permission denied", "approle", "billing"))
            'Permission denied (auth_method: approle, role: billing)'
        """
        context_parts = []
        if self.auth_method:
            context_parts.append(f"auth_method: {self.auth_method}")
        if self.role:
            context_parts.append(f"role: {self.role}")

        if context_parts:
            context = ", ".join(context_parts)
            return f"{self.message} ({context})"
        return self.message


class VaultAuthConfigError(VaultAuthError):
    """
    Raised when no authentication strategy can be built from configuration.

    This exception is raised when:
    - None of the strategy environment variables are set
    - An unknown auth type tag reaches the factory
    - A transport setting (e.g. VAULT_CLIENT_TIMEOUT) cannot be parsed

    Configuration errors are never retried automatically.

    Example:
        >>> VaultAuthConfig.from_env({})
        VaultAuthConfigError: failed to determine auth type from env
    """


class VaultLoginError(VaultAuthError):
    """
    Raised when a login call against Vault fails.

    This exception is raised when:
    - Vault rejects the presented identity (invalid secret-id, unknown role)
    - Vault is unreachable or sealed (network, TLS, 5xx)
    - The login response has no usable token or TTL
    - The strategy's proof of identity cannot be gathered
      (unreadable service-account token, no AWS credentials)

    The authenticator's held credential is left unchanged, so calling
    get_client() again retries the full login.

    Example:
        >>> authenticator.get_client()
        VaultLoginError: Vault login failed: permission denied (auth_method: approle, role: billing)
    """


class VaultAuthUnrecoverableError(RuntimeError):
    """
    Raised by get_client_or_fail() when authentication cannot proceed.

    This is the fatal path for startup code that has no way to continue
    without a Vault identity. The original VaultAuthError is chained as
    ``__cause__``. Callers that want to recover must use get_client() and
    handle VaultAuthError instead.
    """
