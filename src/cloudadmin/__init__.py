"""
cloudadmin: application lifecycle and access token management.

Usage:
    import cloudadmin
    from cloudadmin.credentials import ClientCredentialsCredential

    app = cloudadmin.initialize_app(
        ClientCredentialsCredential(token_url, client_id, client_secret),
        {"project_id": "demo"},
    )
    token = await app.token_manager.get_token()
    await cloudadmin.delete_app(app)

The module-level functions operate on a process-wide AppRegistry. Create
an AppRegistry directly for isolated sets of apps.
"""

from collections.abc import Mapping
from typing import Any

from cloudadmin.app import (
    DEFAULT_APP_NAME,
    AccessToken,
    App,
    AppOptions,
    AppRegistry,
    TokenManager,
    get_default_registry,
)
from cloudadmin.credentials import (
    AzureIdentityCredential,
    ClientCredentialsCredential,
    Credential,
    RefreshTokenCredential,
    application_default,
)
from cloudadmin.errors import AppError, AppErrorCode, CloudAdminError
from cloudadmin.services import ApiClient, get_api_client

__version__ = "0.1.0"


def initialize_app(
    credential: Any = None,
    options: AppOptions | Mapping[str, Any] | None = None,
    name: str = DEFAULT_APP_NAME,
) -> App:
    """Create an App in the default registry. See AppRegistry.initialize_app."""
    return get_default_registry().initialize_app(credential, options, name)


def get_app(name: str = DEFAULT_APP_NAME) -> App:
    return get_default_registry().get_app(name)


def get_apps() -> list[App]:
    return get_default_registry().get_apps()


async def delete_app(app: App) -> None:
    await get_default_registry().delete_app(app)


__all__ = [
    "__version__",
    "initialize_app",
    "get_app",
    "get_apps",
    "delete_app",
    "App",
    "AppOptions",
    "AppRegistry",
    "AccessToken",
    "TokenManager",
    "DEFAULT_APP_NAME",
    "get_default_registry",
    "Credential",
    "ClientCredentialsCredential",
    "RefreshTokenCredential",
    "AzureIdentityCredential",
    "application_default",
    "AppError",
    "AppErrorCode",
    "CloudAdminError",
    "ApiClient",
    "get_api_client",
]
