"""
Credentials that mint access tokens for the TokenManager.

Components:
    - Credential: abstract base (``get_access_token()`` -> access_token/expires_in)
    - ClientCredentialsCredential / RefreshTokenCredential: OAuth2 grants over aiohttp
    - AzureIdentityCredential: adapter for azure-identity async credentials
    - application_default(): environment-driven default resolution
"""

from cloudadmin.credentials.azure import AzureIdentityCredential
from cloudadmin.credentials.base import AccessTokenResult, Credential
from cloudadmin.credentials.default import application_default
from cloudadmin.credentials.oauth2 import (
    ClientCredentialsCredential,
    OAuth2Credential,
    RefreshTokenCredential,
)

__all__ = [
    "AccessTokenResult",
    "Credential",
    "OAuth2Credential",
    "ClientCredentialsCredential",
    "RefreshTokenCredential",
    "AzureIdentityCredential",
    "application_default",
]
