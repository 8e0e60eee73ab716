"""OAuth2 credentials: client credentials and refresh token grants."""

import asyncio
import logging

import aiohttp

from cloudadmin.credentials.base import AccessTokenResult, Credential
from cloudadmin.errors import AppError, AppErrorCode, CredentialFetchError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TIMEOUT_SECONDS = 30


class OAuth2Credential(Credential):
    """
    Shared plumbing for credentials that POST to an OAuth2 token endpoint.

    Owns a lazily created aiohttp session which is released by close().
    """

    grant_type: str = ""

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        timeout: float = DEFAULT_TOKEN_TIMEOUT_SECONDS,
    ):
        if not all([token_url, client_id, client_secret]):
            raise AppError(
                AppErrorCode.INVALID_CREDENTIAL,
                "token_url, client_id, and client_secret are required",
            )

        self.token_url = token_url
        self.client_id = client_id
        self._client_secret = client_secret
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP client session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _request_data(self) -> dict[str, str]:
        return {
            "grant_type": self.grant_type,
            "client_id": self.client_id,
            "client_secret": self._client_secret,
        }

    async def get_access_token(self) -> AccessTokenResult:
        """
        Request a token from the token endpoint.

        Raises:
            CredentialFetchError: On non-200 responses or transport failures.
                The response body is kept in the message so provider error
                codes such as ``invalid_grant`` reach the caller.
        """
        session = await self._ensure_session()

        try:
            async with session.post(
                self.token_url,
                data=self._request_data(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(
                        "Token request failed: HTTP %s",
                        response.status,
                        extra={
                            "http_status": response.status,
                            "token_url": self.token_url,
                            "error_message": error_text[:200],
                        },
                    )
                    raise CredentialFetchError(
                        f"HTTP {response.status}: {error_text[:200]}",
                        context={"http_status": response.status},
                    )

                payload = await response.json()

        except aiohttp.ClientError as e:
            logger.error(
                "HTTP error during token request",
                extra={"token_url": self.token_url, "error_message": str(e)},
            )
            raise CredentialFetchError(f"HTTP error: {e}") from e
        except asyncio.TimeoutError as e:
            raise CredentialFetchError(
                f"Token request timed out after {self.timeout}s"
            ) from e

        logger.debug(
            "Fetched OAuth2 access token",
            extra={
                "auth_mode": self.grant_type,
                "token_url": self.token_url,
                "expires_in": payload.get("expires_in") if isinstance(payload, dict) else None,
            },
        )
        return payload

    async def close(self) -> None:
        """Close HTTP client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)


class ClientCredentialsCredential(OAuth2Credential):
    """
    OAuth2 client credentials grant for machine-to-machine authentication.

    Works with any OAuth2-compliant token endpoint.
    """

    grant_type = "client_credentials"

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        scopes: list[str] | None = None,
        timeout: float = DEFAULT_TOKEN_TIMEOUT_SECONDS,
    ):
        super().__init__(token_url, client_id, client_secret, timeout)
        self.scopes = list(scopes or [])

    def _request_data(self) -> dict[str, str]:
        data = super()._request_data()
        if self.scopes:
            data["scope"] = " ".join(self.scopes)
        return data


class RefreshTokenCredential(OAuth2Credential):
    """OAuth2 refresh token grant, typically for a user-authorized application."""

    grant_type = "refresh_token"

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        timeout: float = DEFAULT_TOKEN_TIMEOUT_SECONDS,
    ):
        super().__init__(token_url, client_id, client_secret, timeout)
        if not refresh_token:
            raise AppError(AppErrorCode.INVALID_CREDENTIAL, "refresh_token is required")
        self._refresh_token = refresh_token

    def _request_data(self) -> dict[str, str]:
        data = super()._request_data()
        data["refresh_token"] = self._refresh_token
        return data


__all__ = [
    "OAuth2Credential",
    "ClientCredentialsCredential",
    "RefreshTokenCredential",
]
