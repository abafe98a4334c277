"""
Tests for libs/vault_auth/factory.py - Authenticator Factory.

Test Coverage:
    - Dispatch on auth_type to the matching strategy
    - Token strategy sets the token eagerly
    - Only strategy-relevant fields copied, others ignored
    - Transport settings forwarded to the client constructor
    - Unknown auth type → VaultAuthConfigError (no client built)
    - Client construction errors propagate unchanged
    - Injected clock reaches the renewing strategies
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest

from libs.vault_auth.authenticators import (
    AppRoleAuthenticator,
    K8sAuthenticator,
    TokenAuthenticator,
)
from libs.vault_auth.config import AuthType, VaultAuthConfig, VaultTransportConfig
from libs.vault_auth.exceptions import VaultAuthConfigError
from libs.vault_auth.factory import create_authenticator, create_authenticator_from_env
from libs.vault_auth.iam import IamAuthenticator


@pytest.fixture()
def client_factory(mock_hvac_client):
    return MagicMock(return_value=mock_hvac_client)


class TestCreateAuthenticatorDispatch:
    """Test strategy selection by auth_type."""

    @pytest.mark.unit()
    def test_token(self, client_factory, mock_hvac_client) -> None:
        config = VaultAuthConfig(auth_type=AuthType.TOKEN, token="abc")

        authenticator = create_authenticator(config, client_factory=client_factory)

        assert isinstance(authenticator, TokenAuthenticator)
        # Set eagerly, before any get_client() call
        assert mock_hvac_client.token == "abc"

    @pytest.mark.unit()
    def test_approle(self, client_factory) -> None:
        config = VaultAuthConfig(
            auth_type=AuthType.APPROLE,
            app_role="execution-gateway",
            app_role_id="role-id-123",
            app_role_secret_id="secret-id-456",
            app_role_mount_point="approle-prod",
        )

        authenticator = create_authenticator(config, client_factory=client_factory)

        assert isinstance(authenticator, AppRoleAuthenticator)
        assert authenticator.role == "execution-gateway"
        assert authenticator.mount_point == "approle-prod"
        assert authenticator.credential is None

    @pytest.mark.unit()
    def test_iam(self, client_factory) -> None:
        config = VaultAuthConfig(
            auth_type=AuthType.IAM,
            iam_role="signal-service",
            iam_mount_point="aws-prod",
            aws_region="eu-west-1",
        )

        with patch("libs.vault_auth.iam.boto3.session.Session"):
            authenticator = create_authenticator(config, client_factory=client_factory)

        assert isinstance(authenticator, IamAuthenticator)
        assert authenticator.role == "signal-service"
        assert authenticator.mount_point == "aws-prod"
        assert authenticator.region == "eu-west-1"

    @pytest.mark.unit()
    def test_k8s_uses_default_path(self, client_factory) -> None:
        config = VaultAuthConfig(auth_type=AuthType.K8S, k8s_role="svcA", k8s_jwt_path="/tmp/jwt")

        authenticator = create_authenticator(config, client_factory=client_factory)

        assert isinstance(authenticator, K8sAuthenticator)
        assert authenticator.mount_point == "k8s-svcA"
        assert str(authenticator.jwt_path) == "/tmp/jwt"

    @pytest.mark.unit()
    def test_raw_string_tag_is_accepted(self, client_factory) -> None:
        config = VaultAuthConfig(auth_type="token", token="abc")  # type: ignore[arg-type]

        assert isinstance(create_authenticator(config, client_factory=client_factory), TokenAuthenticator)

    @pytest.mark.unit()
    def test_no_login_at_construction(self, client_factory, mock_hvac_client) -> None:
        config = VaultAuthConfig(
            auth_type=AuthType.APPROLE,
            app_role="execution-gateway",
            app_role_id="role-id-123",
            app_role_secret_id="secret-id-456",
        )

        create_authenticator(config, client_factory=client_factory)

        mock_hvac_client.auth.approle.login.assert_not_called()

    @pytest.mark.unit()
    def test_other_strategy_fields_ignored(self, client_factory, mock_hvac_client) -> None:
        config = VaultAuthConfig(
            auth_type=AuthType.APPROLE,
            token="ignored-token",
            k8s_role="ignored",
            app_role="execution-gateway",
            app_role_id="role-id-123",
            app_role_secret_id="secret-id-456",
        )

        create_authenticator(config, client_factory=client_factory)

        assert mock_hvac_client.token is None

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        "env",
        [
            {"VAULT_APP_ROLE": "gw", "VAULT_APP_ROLE_ID": "rid", "VAULT_APP_SECRET_ID": "sid"},
            {"VAULT_ROLE": "signal-service"},
            {"K8S_ROLE": "svcA"},
        ],
    )
    def test_clock_forwarded_to_renewing_strategies(
        self, client_factory, clock, jwt_file, env: dict[str, str]
    ) -> None:
        env = {**env, "K8S_JWT_PATH": str(jwt_file)}
        with patch("libs.vault_auth.iam.boto3.session.Session"):
            authenticator = create_authenticator_from_env(
                env, client_factory=client_factory, clock=clock
            )
            authenticator.get_client()

        # Expiry measured on the injected clock, not the wall clock
        assert authenticator.credential.expires_at == clock.start + timedelta(seconds=3600)

    @pytest.mark.unit()
    def test_clock_ignored_by_token(self, client_factory, clock) -> None:
        config = VaultAuthConfig(auth_type=AuthType.TOKEN, token="abc")

        authenticator = create_authenticator(config, client_factory=client_factory, clock=clock)

        assert isinstance(authenticator, TokenAuthenticator)


class TestCreateAuthenticatorClient:
    """Test client construction."""

    @pytest.mark.unit()
    def test_transport_settings_forwarded(self, client_factory) -> None:
        transport = VaultTransportConfig(
            address="https://vault.company.com:8200",
            verify="/etc/ssl/vault-ca.pem",
            timeout=30,
            namespace="trading",
        )
        config = VaultAuthConfig(auth_type=AuthType.TOKEN, token="abc", transport=transport)

        create_authenticator(config, client_factory=client_factory)

        client_factory.assert_called_once_with(
            url="https://vault.company.com:8200",
            verify="/etc/ssl/vault-ca.pem",
            timeout=30,
            namespace="trading",
        )

    @pytest.mark.unit()
    def test_defaults_to_hvac_client(self, mock_hvac_client) -> None:
        config = VaultAuthConfig(auth_type=AuthType.TOKEN, token="abc")

        with patch("libs.vault_auth.factory.hvac.Client", return_value=mock_hvac_client) as mock_cls:
            authenticator = create_authenticator(config)

        mock_cls.assert_called_once()
        assert authenticator.get_client() is mock_hvac_client

    @pytest.mark.unit()
    def test_client_construction_error_propagates(self) -> None:
        error = ValueError("invalid URL")
        config = VaultAuthConfig(auth_type=AuthType.TOKEN, token="abc")

        with pytest.raises(ValueError) as exc_info:
            create_authenticator(config, client_factory=MagicMock(side_effect=error))

        assert exc_info.value is error


class TestCreateAuthenticatorErrors:
    """Test unknown strategy handling."""

    @pytest.mark.unit()
    @pytest.mark.parametrize("tag", ["ldap", 99, None])
    def test_unknown_auth_type(self, client_factory, tag: object) -> None:
        config = VaultAuthConfig(auth_type=tag)  # type: ignore[arg-type]

        with pytest.raises(VaultAuthConfigError) as exc_info:
            create_authenticator(config, client_factory=client_factory)

        assert f"unknown auth type '{tag}'" in str(exc_info.value)
        client_factory.assert_not_called()


class TestCreateAuthenticatorFromEnv:
    """Test the environment-driven entry point."""

    @pytest.mark.unit()
    def test_builds_from_environ(self, client_factory, mock_hvac_client) -> None:
        authenticator = create_authenticator_from_env(
            {"VAULT_TOKEN": "abc", "VAULT_ADDR": "http://localhost:8200"},
            client_factory=client_factory,
        )

        assert isinstance(authenticator, TokenAuthenticator)
        assert client_factory.call_args.kwargs["url"] == "http://localhost:8200"

    @pytest.mark.unit()
    def test_no_strategy(self, client_factory) -> None:
        with pytest.raises(VaultAuthConfigError, match="failed to determine auth type"):
            create_authenticator_from_env({}, client_factory=client_factory)

        client_factory.assert_not_called()
