"""
Application instance: a named configuration sharing one authentication state.

An App owns one TokenManager and lazily creates service clients on demand,
at most one per service name:

    client = app.get_or_init_service("api-client", ApiClient)

Deleting the App stops token refreshes, removes it from its registry and
shuts down every cached service that implements StatefulService.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from cloudadmin.app.options import AppOptions
from cloudadmin.app.tokens import TokenManager
from cloudadmin.errors import AppError, AppErrorCode
from cloudadmin.logging.utilities import log_exception
from cloudadmin.types import StatefulService

if TYPE_CHECKING:
    from cloudadmin.app.registry import AppRegistry

logger = logging.getLogger(__name__)

S = TypeVar("S")

CredentialResolver = Callable[[], Any]


class App:
    """
    One configured application.

    Args:
        options: AppOptions or a mapping of option names
        name: Unique name within the owning registry
        registry: Registry the app removes itself from on delete()
        credential_resolver: Called once when options carry no credential

    Raises:
        AppError: INVALID_APP_OPTIONS for malformed options or a credential
            without a callable get_access_token()
    """

    def __init__(
        self,
        options: AppOptions | Mapping[str, Any],
        name: str,
        registry: "AppRegistry",
        credential_resolver: CredentialResolver | None = None,
    ):
        self._name = name
        self._registry = registry
        self._services: dict[str, Any] = {}
        self._deleted = False
        self._deleting = False
        self._owns_credential = False

        # A mapping that names the credential key, even as None, opts out of
        # default resolution.
        credential_given = isinstance(options, Mapping) and "credential" in options

        if isinstance(options, AppOptions):
            self._options = options.copy()
        elif isinstance(options, Mapping):
            self._options = AppOptions.from_mapping(options, app_name=name).copy()
        else:
            raise AppError(
                AppErrorCode.INVALID_APP_OPTIONS,
                f'Invalid app options passed to initialize_app() for the app named "{name}". '
                "Options must be an AppOptions instance or a mapping.",
            )

        if (
            self._options.credential is None
            and not credential_given
            and credential_resolver is not None
        ):
            self._options.credential = credential_resolver()
            self._owns_credential = True

        credential = self._options.credential
        if credential is None or not callable(getattr(credential, "get_access_token", None)):
            raise AppError(
                AppErrorCode.INVALID_APP_OPTIONS,
                f'Invalid app options passed to initialize_app() for the app named "{name}". '
                'The "credential" option must be an object which implements '
                "get_access_token().",
            )

        self._token_manager = TokenManager(credential, app_name=name)

    def __repr__(self) -> str:
        state = "deleted" if self._deleted else "active"
        return f"<App name={self._name!r} {state}>"

    @property
    def name(self) -> str:
        self._check_destroyed()
        return self._name

    @property
    def options(self) -> AppOptions:
        """A fresh copy on every read; mutating it never affects the app."""
        self._check_destroyed()
        return self._options.copy()

    @property
    def credential(self) -> Any:
        self._check_destroyed()
        return self._options.credential

    @property
    def project_id(self) -> str | None:
        self._check_destroyed()
        if self._options.project_id:
            return self._options.project_id
        return getattr(self._options.credential, "project_id", None)

    @property
    def token_manager(self) -> TokenManager:
        self._check_destroyed()
        return self._token_manager

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    def get_or_init_service(self, name: str, initializer: Callable[["App"], S]) -> S:
        """
        Return the service cached under name, creating it on first use.

        The initializer runs synchronously, so two callers on the same event
        loop can never both create the service.

        Raises:
            AppError: APP_DELETED if the app has been deleted
        """
        self._check_destroyed()
        if name not in self._services:
            self._services[name] = initializer(self)
            logger.debug(
                "Initialized service",
                extra={"app_name": self._name, "service": name},
            )
        return self._services[name]

    async def delete(self) -> None:
        """
        Delete the app and release everything it owns.

        Service shutdowns run concurrently. The app is marked deleted once all
        of them have settled; if any failed, the first failure is re-raised.
        A credential the app resolved itself is closed last.

        Raises:
            AppError: APP_DELETED if the app was already deleted or is being
                deleted
        """
        self._check_destroyed()
        if self._deleting:
            self._raise_deleted()
        self._deleting = True

        self._registry.remove_app(self._name)
        self._token_manager.delete()

        names = list(self._services)
        results = await asyncio.gather(
            *(self._shutdown_service(self._services[name]) for name in names),
            return_exceptions=True,
        )

        failures = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                log_exception(
                    logger,
                    result,
                    "Service shutdown failed",
                    app_name=self._name,
                    service=name,
                )
                failures.append(result)

        if self._owns_credential:
            try:
                await self._close_credential(self._options.credential)
            except Exception as e:
                log_exception(logger, e, "Credential close failed", app_name=self._name)
                failures.append(e)

        self._services = {}
        self._deleted = True

        logger.info(
            "App deleted",
            extra={"app_name": self._name, "service_count": len(names)},
        )
        if failures:
            raise failures[0]

    @staticmethod
    async def _shutdown_service(service: Any) -> None:
        if isinstance(service, StatefulService):
            outcome = service.delete()
            if inspect.isawaitable(outcome):
                await outcome

    @staticmethod
    async def _close_credential(credential: Any) -> None:
        close = getattr(credential, "close", None)
        if callable(close):
            outcome = close()
            if inspect.isawaitable(outcome):
                await outcome

    def _check_destroyed(self) -> None:
        if self._deleted:
            self._raise_deleted()

    def _raise_deleted(self) -> None:
        raise AppError(
            AppErrorCode.APP_DELETED,
            f'App named "{self._name}" has already been deleted.',
        )


__all__ = ["App", "CredentialResolver"]
