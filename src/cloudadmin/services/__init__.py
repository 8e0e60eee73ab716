"""Service clients bound to an App."""

from cloudadmin.services.api_client import (
    SERVICE_NAME,
    ApiClient,
    ApiResponse,
    get_api_client,
)

__all__ = ["ApiClient", "ApiResponse", "get_api_client", "SERVICE_NAME"]
