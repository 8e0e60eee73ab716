"""
Application lifecycle and token management core.

Components:
    - AppOptions: configuration snapshot for one application
    - TokenManager: single cached access token with proactive refresh
    - App: named application owning the TokenManager and service clients
    - AppRegistry: name -> App mapping with lifecycle hooks
"""

from cloudadmin.app.app import App
from cloudadmin.app.options import AppOptions
from cloudadmin.app.registry import (
    DEFAULT_APP_NAME,
    AppHook,
    AppRegistry,
    get_default_registry,
)
from cloudadmin.app.tokens import (
    MAX_REFRESH_RETRIES,
    REFRESH_LEAD_SECONDS,
    REFRESH_RETRY_INTERVAL_SECONDS,
    AccessToken,
    RefreshOutcome,
    ScheduledRefresh,
    TokenManager,
)

__all__ = [
    "App",
    "AppOptions",
    "AppRegistry",
    "AppHook",
    "DEFAULT_APP_NAME",
    "get_default_registry",
    "AccessToken",
    "TokenManager",
    "ScheduledRefresh",
    "RefreshOutcome",
    "REFRESH_LEAD_SECONDS",
    "REFRESH_RETRY_INTERVAL_SECONDS",
    "MAX_REFRESH_RETRIES",
]
