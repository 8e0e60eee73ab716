"""Base credential interface."""

from abc import ABC, abstractmethod
from typing import TypedDict


class AccessTokenResult(TypedDict):
    """Raw token returned by a credential: the token and its lifetime in seconds."""

    access_token: str
    expires_in: int | float


class Credential(ABC):
    """
    Abstract base class for credentials.

    A credential knows how to obtain a raw access token from an identity
    provider. Caching and proactive refresh are the TokenManager's job, so
    implementations should fetch a fresh token on every call.
    """

    @abstractmethod
    async def get_access_token(self) -> AccessTokenResult:
        """
        Fetch a new access token.

        Returns:
            Mapping with "access_token" (str) and "expires_in" (seconds)

        Raises:
            CredentialFetchError: If the identity provider rejects the request
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the credential."""
        return None


__all__ = ["AccessTokenResult", "Credential"]
