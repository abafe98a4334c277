"""
Factory for creating VaultAuthenticator instances from configuration.

This module maps a resolved VaultAuthConfig to the matching authenticator:
    - AuthType.TOKEN → TokenAuthenticator (token set on the client immediately)
    - AuthType.APPROLE → AppRoleAuthenticator
    - AuthType.IAM → IamAuthenticator
    - AuthType.K8S → K8sAuthenticator

Each builder copies only the fields its strategy needs; fields belonging to
other strategies are ignored, not validated. New strategies are added by
registering a builder in _BUILDERS.

Example Usage:
    >>> from libs.vault_auth import VaultAuthConfig, create_authenticator
    >>> authenticator = create_authenticator(VaultAuthConfig.from_env())
    >>> client = authenticator.get_client()

    >>> # Or in one step
    >>> authenticator = create_authenticator_from_env()
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

import hvac

from libs.vault_auth.authenticators import (
    AppRoleAuthenticator,
    Clock,
    K8sAuthenticator,
    TokenAuthenticator,
    VaultAuthenticator,
)
from libs.vault_auth.config import AuthType, VaultAuthConfig, VaultTransportConfig
from libs.vault_auth.exceptions import VaultAuthConfigError
from libs.vault_auth.iam import IamAuthenticator

logger = logging.getLogger(__name__)

ClientFactory = Callable[..., Any]


def _build_token(
    client: hvac.Client, config: VaultAuthConfig, clock: Clock | None
) -> VaultAuthenticator:
    client.token = config.token
    return TokenAuthenticator(client)


def _build_approle(
    client: hvac.Client, config: VaultAuthConfig, clock: Clock | None
) -> VaultAuthenticator:
    return AppRoleAuthenticator(
        client,
        role=config.app_role or "",
        role_id=config.app_role_id or "",
        secret_id=config.app_role_secret_id or "",
        mount_point=config.app_role_mount_point,
        clock=clock,
    )


def _build_iam(
    client: hvac.Client, config: VaultAuthConfig, clock: Clock | None
) -> VaultAuthenticator:
    return IamAuthenticator(
        client,
        role=config.iam_role or "",
        mount_point=config.iam_mount_point,
        region=config.aws_region,
        server_id=config.iam_server_id,
        clock=clock,
    )


def _build_k8s(
    client: hvac.Client, config: VaultAuthConfig, clock: Clock | None
) -> VaultAuthenticator:
    return K8sAuthenticator(
        client,
        role=config.k8s_role or "",
        mount_point=config.k8s_mount_point or "",
        jwt_path=config.k8s_jwt_path,
        clock=clock,
    )


_Builder = Callable[[hvac.Client, VaultAuthConfig, Clock | None], VaultAuthenticator]

_BUILDERS: dict[AuthType, _Builder] = {
    AuthType.TOKEN: _build_token,
    AuthType.APPROLE: _build_approle,
    AuthType.IAM: _build_iam,
    AuthType.K8S: _build_k8s,
}


def _build_client(transport: VaultTransportConfig, client_factory: ClientFactory) -> hvac.Client:
    return client_factory(
        url=transport.address,
        verify=transport.verify,
        timeout=transport.timeout,
        namespace=transport.namespace,
    )


def create_authenticator(
    config: VaultAuthConfig,
    client_factory: ClientFactory | None = None,
    *,
    clock: Clock | None = None,
) -> VaultAuthenticator:
    """
    Create the authenticator selected by ``config.auth_type``.

    Args:
        config: Resolved configuration (see VaultAuthConfig.from_env())
        client_factory: Callable building the Vault client from
            ``url``, ``verify``, ``timeout``, ``namespace`` keyword arguments.
            Defaults to hvac.Client.
        clock: Time source for token expiry checks (default: UTC wall clock).
            Ignored by the static token strategy.

    Returns:
        VaultAuthenticator owning a newly built client

    Raises:
        VaultAuthConfigError: ``auth_type`` is not a known strategy
        Exception: Whatever the client factory raises is propagated unchanged
    """
    try:
        builder = _BUILDERS.get(config.auth_type)
    except TypeError:
        # Unhashable tag
        builder = None
    if builder is None:
        raise VaultAuthConfigError(f"unknown auth type '{config.auth_type}'")

    factory = client_factory if client_factory is not None else hvac.Client
    client = _build_client(config.transport, factory)
    authenticator = builder(client, config, clock)

    logger.info(
        "Vault authenticator created",
        extra={
            "auth_method": authenticator.auth_type.value,
            "role": authenticator.role,
            "vault_url": config.transport.address,
        },
    )
    return authenticator


def create_authenticator_from_env(
    environ: Mapping[str, str] | None = None,
    client_factory: ClientFactory | None = None,
    *,
    clock: Clock | None = None,
) -> VaultAuthenticator:
    """
    Resolve configuration from the environment and build the authenticator.

    Raises:
        VaultAuthConfigError: No strategy could be determined from the environment
    """
    return create_authenticator(
        VaultAuthConfig.from_env(environ), client_factory=client_factory, clock=clock
    )
