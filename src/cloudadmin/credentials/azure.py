"""Azure AD credential adapter built on azure-identity's async credentials."""

import logging
import time

from azure.core.credentials_async import AsyncTokenCredential

from cloudadmin.credentials.base import AccessTokenResult, Credential
from cloudadmin.errors import AppError, AppErrorCode, CredentialFetchError

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "https://management.azure.com/.default"


class AzureIdentityCredential(Credential):
    """
    Adapts an ``azure.identity.aio`` credential to the access-token capability.

    Azure returns an absolute ``expires_on`` (Unix seconds); it is converted
    into a relative ``expires_in`` so the TokenManager can schedule refreshes.

    Example:
        >>> from azure.identity.aio import ClientSecretCredential
        >>> credential = AzureIdentityCredential(
        ...     ClientSecretCredential(tenant_id, client_id, client_secret),
        ...     scopes=["https://storage.azure.com/.default"],
        ... )
    """

    def __init__(
        self,
        credential: AsyncTokenCredential,
        scopes: list[str] | None = None,
    ):
        if credential is None:
            raise AppError(
                AppErrorCode.INVALID_CREDENTIAL,
                "An azure-identity async credential is required",
            )
        self._credential = credential
        self.scopes = list(scopes or [DEFAULT_SCOPE])

    async def get_access_token(self) -> AccessTokenResult:
        try:
            access_token = await self._credential.get_token(*self.scopes)
        except Exception as e:
            logger.error(
                "Failed to acquire Azure AD token",
                extra={"scopes": self.scopes, "error_message": str(e)[:200]},
            )
            raise CredentialFetchError(f"Azure AD token acquisition failed: {e}") from e

        expires_in = max(0, int(access_token.expires_on) - int(time.time()))
        logger.debug(
            "Acquired Azure AD token",
            extra={"auth_mode": "azure", "expires_in": expires_in},
        )
        return {"access_token": access_token.token, "expires_in": expires_in}

    async def close(self) -> None:
        await self._credential.close()


__all__ = ["AzureIdentityCredential", "DEFAULT_SCOPE"]
