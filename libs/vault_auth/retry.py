"""
Caller-side retry policy for Vault authentication.

Authenticators never retry on their own: a failed login raises
VaultLoginError and the next get_client() call tries again. Services that
want to ride out a short Vault outage (e.g. during startup while Vault is
still unsealing) can opt into exponential backoff with this helper.

Only VaultLoginError is retried. Configuration errors are permanent and are
raised on the first attempt.

Example:
    >>> client = get_client_with_retry(authenticator, attempts=5)
"""

import logging

import hvac
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from libs.vault_auth.authenticators import VaultAuthenticator
from libs.vault_auth.exceptions import VaultLoginError

logger = logging.getLogger(__name__)


def get_client_with_retry(
    authenticator: VaultAuthenticator,
    attempts: int = 3,
    min_wait_seconds: float = 1,
    max_wait_seconds: float = 5,
) -> hvac.Client:
    """
    Call ``authenticator.get_client()`` with exponential backoff on login failures.

    Args:
        authenticator: Authenticator to obtain the client from
        attempts: Total number of attempts (including the first)
        min_wait_seconds: Lower bound of the backoff between attempts
        max_wait_seconds: Upper bound of the backoff between attempts

    Returns:
        Authenticated hvac client

    Raises:
        VaultLoginError: The last attempt failed
        ValueError: ``attempts`` is less than 1
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=min_wait_seconds, max=max_wait_seconds),
        retry=retry_if_exception_type(VaultLoginError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(authenticator.get_client)
