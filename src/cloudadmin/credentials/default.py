"""
Environment-driven default credential resolution.

Resolution order:
    1. OAuth2 refresh token grant: CLOUDADMIN_TOKEN_URL, CLOUDADMIN_CLIENT_ID,
       CLOUDADMIN_CLIENT_SECRET and CLOUDADMIN_REFRESH_TOKEN
    2. OAuth2 client credentials grant: CLOUDADMIN_TOKEN_URL,
       CLOUDADMIN_CLIENT_ID and CLOUDADMIN_CLIENT_SECRET
    3. Azure DefaultAzureCredential (managed identity, environment, CLI, ...)

CLOUDADMIN_SCOPES is a space-separated scope list applied to 2 and 3.
"""

import logging
import os

from azure.identity.aio import DefaultAzureCredential

from cloudadmin.credentials.azure import DEFAULT_SCOPE, AzureIdentityCredential
from cloudadmin.credentials.base import Credential
from cloudadmin.credentials.oauth2 import (
    ClientCredentialsCredential,
    RefreshTokenCredential,
)

logger = logging.getLogger(__name__)


def _scopes_from_env() -> list[str]:
    return os.getenv("CLOUDADMIN_SCOPES", "").split()


def application_default() -> Credential:
    """
    Resolve a credential from the ambient environment.

    Returns:
        A new Credential instance; callers own it and should close() it.
    """
    token_url = os.getenv("CLOUDADMIN_TOKEN_URL")
    client_id = os.getenv("CLOUDADMIN_CLIENT_ID")
    client_secret = os.getenv("CLOUDADMIN_CLIENT_SECRET")
    refresh_token = os.getenv("CLOUDADMIN_REFRESH_TOKEN")

    if token_url and client_id and client_secret:
        if refresh_token:
            logger.info(
                "Using OAuth2 refresh token credential from environment",
                extra={"auth_mode": "refresh_token", "token_url": token_url},
            )
            return RefreshTokenCredential(token_url, client_id, client_secret, refresh_token)

        logger.info(
            "Using OAuth2 client credentials from environment",
            extra={"auth_mode": "client_credentials", "token_url": token_url},
        )
        return ClientCredentialsCredential(
            token_url, client_id, client_secret, scopes=_scopes_from_env()
        )

    scopes = _scopes_from_env() or [DEFAULT_SCOPE]
    logger.info(
        "Using DefaultAzureCredential (managed identity, env vars, etc.)",
        extra={"auth_mode": "default", "scopes": scopes},
    )
    return AzureIdentityCredential(DefaultAzureCredential(), scopes=scopes)


__all__ = ["application_default"]
