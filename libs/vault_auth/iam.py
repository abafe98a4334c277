"""
AWS IAM authentication for Vault.

IamAuthenticator proves the process's AWS identity to Vault's AWS auth method
by sending a signed ``sts:GetCallerIdentity`` request. The signing material
comes from a boto3 session, so the usual AWS credential chain applies
(environment variables, shared config, ECS task role, EC2 instance profile).

Credentials are fetched on every login: instance-profile and task-role
credentials rotate, and boto3 refreshes them transparently.

Example:
    >>> authenticator = IamAuthenticator(
    ...     client=hvac.Client(url="https://vault.company.com:8200"),
    ...     role="execution-gateway",
    ...     region="us-west-2",
    ... )
    >>> client = authenticator.get_client()
"""

import logging
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

import boto3
import hvac
from botocore.exceptions import BotoCoreError, ClientError

from libs.vault_auth.authenticators import Clock, RenewingAuthenticator
from libs.vault_auth.config import DEFAULT_AWS_REGION, DEFAULT_IAM_MOUNT_POINT, AuthType
from libs.vault_auth.credential import EXPIRATION_WINDOW
from libs.vault_auth.exceptions import VaultLoginError

logger = logging.getLogger(__name__)


class IamAuthenticator(RenewingAuthenticator):
    """
    AWS IAM authentication (signed GetCallerIdentity request).

    Args:
        client: hvac client owned by this authenticator
        role: Vault AWS auth role to log in as
        mount_point: AWS auth mount (default: "aws")
        region: STS region used to sign the request
        server_id: Optional X-Vault-AWS-IAM-Server-ID header value, required
            when the Vault role is configured with iam_server_id_header_value
        session: boto3 session to take credentials from (default: new session)
    """

    auth_type = AuthType.IAM

    # iam_login signs with botocore, which can fail before Vault is contacted
    _LOGIN_ERRORS = (*RenewingAuthenticator._LOGIN_ERRORS, BotoCoreError, ClientError)

    def __init__(
        self,
        client: hvac.Client,
        role: str,
        mount_point: str = DEFAULT_IAM_MOUNT_POINT,
        region: str = DEFAULT_AWS_REGION,
        server_id: str | None = None,
        session: boto3.session.Session | None = None,
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
        self._region = region
        self._server_id = server_id
        self._session = session if session is not None else boto3.session.Session()

    @property
    def region(self) -> str:
        return self._region

    def _login(self) -> Mapping[str, Any]:
        try:
            credentials = self._session.get_credentials()
            frozen = credentials.get_frozen_credentials() if credentials is not None else None
        except (BotoCoreError, ClientError) as e:
            raise VaultLoginError(
                f"Unable to load AWS credentials for IAM login: {e}",
                auth_method=self.auth_type.value,
                role=self._role,
            ) from e

        if frozen is None or not frozen.access_key or not frozen.secret_key:
            raise VaultLoginError(
                "No AWS credentials available for IAM login. "
                "Attach an IAM role or set AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY.",
                auth_method=self.auth_type.value,
                role=self._role,
            )

        logger.debug(
            "Signing Vault IAM login request",
            extra={
                "auth_method": self.auth_type.value,
                "role": self._role,
                "region": self._region,
                "mount_point": self._mount_point,
            },
        )
        return self._client.auth.aws.iam_login(
            access_key=frozen.access_key,
            secret_key=frozen.secret_key,
            session_token=frozen.token,
            header_value=self._server_id,
            mount_point=self._mount_point,
            role=self._role,
            use_token=False,
            region=self._region,
        )
