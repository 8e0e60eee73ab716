"""Registry of named App instances."""

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from cloudadmin.app.app import App, CredentialResolver
from cloudadmin.app.options import AppOptions
from cloudadmin.credentials.default import application_default
from cloudadmin.errors import AppError, AppErrorCode

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = "[DEFAULT]"

# Called with ("create" | "delete", app) on lifecycle events.
AppHook = Callable[[str, App], None]


def _validate_app_name(name: Any) -> None:
    if not isinstance(name, str) or not name:
        raise AppError(
            AppErrorCode.INVALID_APP_NAME,
            f'Invalid app name "{name}" provided. App name must be a non-empty string.',
        )


class AppRegistry:
    """
    Creates, looks up and forgets App instances by name.

    Usage:
        registry = AppRegistry()
        app = registry.initialize_app(credential, AppOptions(project_id="demo"))
        assert registry.get_app() is app
        await registry.delete_app(app)
    """

    def __init__(self, credential_resolver: CredentialResolver = application_default):
        self._apps: dict[str, App] = {}
        self._hooks: list[AppHook] = []
        self._credential_resolver = credential_resolver

    def initialize_app(
        self,
        credential: Any = None,
        options: AppOptions | Mapping[str, Any] | None = None,
        name: str = DEFAULT_APP_NAME,
    ) -> App:
        """
        Create and register a new App.

        Args:
            credential: Credential for the app; overrides options.credential
            options: AppOptions or mapping; environment defaults when None
            name: Unique app name (default: "[DEFAULT]")

        Raises:
            AppError: INVALID_APP_NAME, DUPLICATE_APP or INVALID_APP_OPTIONS
        """
        _validate_app_name(name)
        if name in self._apps:
            if name == DEFAULT_APP_NAME:
                message = (
                    "The default app already exists. This means you called "
                    "initialize_app() more than once without providing an app name "
                    "as the third argument. In most cases you only need to call "
                    "initialize_app() once. But if you do want to initialize multiple "
                    "apps, pass a unique name for each one."
                )
            else:
                message = (
                    f'App named "{name}" already exists. This means you called '
                    "initialize_app() more than once with the same app name. "
                    "Make sure you provide a unique name every time."
                )
            raise AppError(AppErrorCode.DUPLICATE_APP, message)

        if options is None:
            options = AppOptions.from_env()
        if credential is not None:
            if isinstance(options, AppOptions):
                options = options.copy()
                options.credential = credential
            elif isinstance(options, Mapping):
                options = {**options, "credential": credential}

        app = App(options, name, self, credential_resolver=self._credential_resolver)
        self._apps[name] = app

        logger.info("App initialized", extra={"app_name": name, "event": "create"})
        self._call_hooks("create", app)
        return app

    def get_app(self, name: str = DEFAULT_APP_NAME) -> App:
        """
        Return the App registered under name.

        Raises:
            AppError: INVALID_APP_NAME or NO_APP
        """
        _validate_app_name(name)
        if name not in self._apps:
            if name == DEFAULT_APP_NAME:
                message = (
                    "The default app does not exist. Make sure you call "
                    "initialize_app() before using any of the services."
                )
            else:
                message = (
                    f'App named "{name}" does not exist. Make sure you call '
                    f'initialize_app() before using any of the services.'
                )
            raise AppError(AppErrorCode.NO_APP, message)
        return self._apps[name]

    def get_apps(self) -> list[App]:
        """Snapshot of the registered apps in creation order."""
        return list(self._apps.values())

    async def delete_app(self, app: App) -> None:
        """Delete app; equivalent to ``await app.delete()``."""
        await app.delete()

    def remove_app(self, name: str) -> None:
        """Forget the app registered under name. Unknown names are ignored."""
        app = self._apps.pop(name, None)
        if app is None:
            return
        logger.info("App removed", extra={"app_name": name, "event": "delete"})
        self._call_hooks("delete", app)

    def add_app_hook(self, hook: AppHook) -> None:
        self._hooks.append(hook)

    def remove_app_hook(self, hook: AppHook) -> None:
        self._hooks = [other for other in self._hooks if other != hook]

    def _call_hooks(self, event: str, app: App) -> None:
        for hook in list(self._hooks):
            try:
                hook(event, app)
            except Exception as e:
                logger.warning(
                    "App hook failed",
                    extra={
                        "app_name": app.name,
                        "event": event,
                        "callback_error": str(e)[:100],
                    },
                )


# Singleton instance for default usage
_default_registry: AppRegistry | None = None
_registry_lock = threading.Lock()


def get_default_registry() -> AppRegistry:
    """
    Get or create the process-wide AppRegistry singleton.

    Returns:
        Default AppRegistry instance
    """
    global _default_registry

    if _default_registry is None:
        with _registry_lock:
            if _default_registry is None:
                _default_registry = AppRegistry()

    return _default_registry


__all__ = [
    "AppRegistry",
    "AppHook",
    "DEFAULT_APP_NAME",
    "get_default_registry",
]
