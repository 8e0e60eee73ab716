"""
Access token caching and proactive refresh for one application.

The TokenManager owns a single credential and a single cached token. All
service clients of an App obtain their bearer token through it:

    token = await app.token_manager.get_token()
    headers = {"Authorization": f"Bearer {token.access_token}"}

Concurrency:
    Everything runs on one event loop. At most one credential fetch is in
    flight at a time; concurrent callers join it through asyncio.shield so
    a cancelled caller never cancels the shared fetch.

Refresh schedule:
    After every successful fetch a background task refreshes the token five
    minutes before expiry, retrying every minute (up to four times) if the
    refresh fails. Tokens living less than five minutes are refreshed on
    the next minute boundary of their lifetime instead.
"""

import asyncio
import inspect
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from cloudadmin.errors import AppError, AppErrorCode
from cloudadmin.logging.utilities import log_exception
from cloudadmin.types import TokenListener, TokenSource

logger = logging.getLogger(__name__)

# Refresh this long before the token expires
REFRESH_LEAD_SECONDS = 5 * 60
# Spacing between refresh retries (and the short-lived token granularity)
REFRESH_RETRY_INTERVAL_SECONDS = 60
# Retries after the first proactive refresh attempt: at 4, 3, 2 and 1 minutes
MAX_REFRESH_RETRIES = 4

INVALID_GRANT_HINT = (
    " There are two likely causes: (1) your server time is not properly synced"
    " or (2) the key or secret behind this credential has been revoked. To solve"
    " (1), re-sync the time on your server. To solve (2), make sure the key is"
    " still active with your identity provider, or issue a new one."
)


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class AccessToken:
    """
    An access token with its absolute expiration time.

    Attributes:
        access_token: Opaque bearer token string
        expiration_time: UTC timestamp when the token expires
    """

    access_token: str
    expiration_time: datetime

    def is_expired(self) -> bool:
        """A token is expired once its expiration time is strictly in the past."""
        return self.expiration_time < _now()

    @property
    def remaining_lifetime(self) -> timedelta:
        return self.expiration_time - _now()


class RefreshOutcome(Enum):
    """Result of one background refresh run. Nothing consumes it."""

    REFRESHED = "refreshed"
    RETRY_SCHEDULED = "retry_scheduled"
    GAVE_UP = "gave_up"


@dataclass
class ScheduledRefresh:
    """A pending background refresh."""

    delay_seconds: float
    retries: int
    task: "asyncio.Task[RefreshOutcome]"


class TokenManager:
    """
    Caches one access token and refreshes it before it expires.

    Usage:
        manager = TokenManager(credential, app_name="my-app")
        token = await manager.get_token()
        manager.add_auth_token_listener(lambda value: print("rotated"))
        manager.delete()
    """

    def __init__(self, credential: TokenSource, app_name: str = ""):
        self._credential = credential
        self._app_name = app_name
        self._cached_token: AccessToken | None = None
        self._token_task: asyncio.Task[AccessToken] | None = None
        self._listeners: list[TokenListener] = []
        self._scheduled: ScheduledRefresh | None = None
        self._deleted = False

    @property
    def cached_token(self) -> AccessToken | None:
        return self._cached_token

    @property
    def scheduled_refresh(self) -> ScheduledRefresh | None:
        return self._scheduled

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    async def get_token(self, force_refresh: bool = False) -> AccessToken:
        """
        Return the current access token, fetching a new one when needed.

        Args:
            force_refresh: Fetch a new token even if the cached one is valid

        Returns:
            The cached, in-flight or freshly fetched AccessToken

        Raises:
            AppError: INVALID_CREDENTIAL if the credential fails or returns
                a malformed token and no cached token can stand in
        """
        task = self._token_task
        expired = self._cached_token is not None and self._cached_token.is_expired()
        # A pending fetch is always joined; a settled one only while its token is valid.
        if task is not None and not force_refresh and (not task.done() or not expired):
            return await self._join_current_fetch(task)

        self._cancel_scheduled_refresh()
        self._token_task = asyncio.create_task(self._fetch_token())
        return await asyncio.shield(self._token_task)

    async def _join_current_fetch(self, task: "asyncio.Task[AccessToken]") -> AccessToken:
        try:
            return await asyncio.shield(task)
        except AppError:
            # Never cache a failure: the next call fetches again.
            if self._token_task is task:
                self._token_task = None
            if self._cached_token is not None:
                logger.debug(
                    "Token fetch failed, serving previously cached token",
                    extra={"app_name": self._app_name},
                )
                return self._cached_token
            raise

    async def _fetch_token(self) -> AccessToken:
        try:
            result = self._credential.get_access_token()
            if inspect.isawaitable(result):
                result = await result
            token, expires_in = self._to_access_token(result)
        except Exception as error:
            raise self._fetch_failed(error) from error

        if self._cached_token != token:
            self._cached_token = token
            self._notify_listeners(token.access_token)

        logger.info(
            "Access token refreshed",
            extra={
                "app_name": self._app_name,
                "expires_in": expires_in,
                "expires_at": token.expiration_time.isoformat(),
            },
        )

        if not self._deleted:
            self._schedule_proactive_refresh(expires_in)

        return token

    @staticmethod
    def _to_access_token(result: Any) -> tuple[AccessToken, float]:
        # Credentials can be user-supplied, so the result is checked loosely.
        expires_in = result.get("expires_in") if isinstance(result, Mapping) else None
        access_token = result.get("access_token") if isinstance(result, Mapping) else None
        if (
            isinstance(expires_in, bool)
            or not isinstance(expires_in, (int, float))
            or not isinstance(access_token, str)
        ):
            raise AppError(
                AppErrorCode.INVALID_CREDENTIAL,
                f'Invalid access token generated: "{result!r}". Valid access tokens '
                'must be a mapping with the "expires_in" (number) and "access_token" '
                "(string) keys.",
            )

        expiration_time = _now() + timedelta(seconds=expires_in)
        return AccessToken(access_token, expiration_time), expires_in

    @staticmethod
    def _fetch_failed(error: Exception) -> AppError:
        detail = error.message if isinstance(error, AppError) else str(error)
        message = (
            "Credential implementation provided to initialize_app() via the "
            '"credential" option failed to fetch a valid OAuth2 access token with '
            f'the following error: "{detail}".'
        )
        if "invalid_grant" in message:
            message += INVALID_GRANT_HINT
        return AppError(AppErrorCode.INVALID_CREDENTIAL, message)

    def _notify_listeners(self, access_token: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(access_token)
            except Exception as e:
                log_exception(
                    logger,
                    e,
                    "Token listener raised",
                    level=logging.WARNING,
                    app_name=self._app_name,
                    callback_error=repr(listener),
                )

    def add_auth_token_listener(self, listener: TokenListener) -> None:
        """
        Register a listener called with each new token string.

        The listener receives the current token immediately if one is cached.
        """
        if self._cached_token is not None:
            listener(self._cached_token.access_token)
        self._listeners.append(listener)

    def remove_auth_token_listener(self, listener: TokenListener) -> None:
        """Unregister a listener. Unknown listeners are ignored."""
        self._listeners = [other for other in self._listeners if other != listener]

    def delete(self) -> None:
        """
        Stop scheduling refreshes.

        An in-flight fetch is left to settle. Calling delete() twice is harmless.
        """
        self._deleted = True
        self._cancel_scheduled_refresh()

    # ------------------------------------------------------------------
    # Proactive refresh
    # ------------------------------------------------------------------

    def _schedule_proactive_refresh(self, expires_in: float) -> None:
        delay = expires_in - REFRESH_LEAD_SECONDS
        retries = MAX_REFRESH_RETRIES

        # Short-lived token: refresh once the current minute of its lifetime
        # ends, then every minute until it expires.
        if delay <= 0:
            delay = expires_in % REFRESH_RETRY_INTERVAL_SECONDS
            retries = math.floor(expires_in / REFRESH_RETRY_INTERVAL_SECONDS) - 1

        if retries < 0:
            logger.debug(
                "Token lifetime under one minute, not scheduling a refresh",
                extra={"app_name": self._app_name, "expires_in": expires_in},
            )
            return

        self._schedule_refresh(delay, retries)

    def _schedule_refresh(self, delay_seconds: float, retries: int) -> None:
        if self._deleted:
            return

        self._cancel_scheduled_refresh()
        task = asyncio.get_running_loop().create_task(
            self._run_scheduled_refresh(delay_seconds, retries)
        )
        self._scheduled = ScheduledRefresh(delay_seconds, retries, task)
        logger.debug(
            "Scheduled token refresh",
            extra={
                "app_name": self._app_name,
                "refresh_delay_seconds": delay_seconds,
                "retries_remaining": retries,
            },
        )

    def _cancel_scheduled_refresh(self) -> None:
        if self._scheduled is not None:
            self._scheduled.task.cancel()
            self._scheduled = None

    async def _run_scheduled_refresh(self, delay_seconds: float, retries: int) -> RefreshOutcome:
        await asyncio.sleep(delay_seconds)

        # This run is no longer pending; get_token() must not cancel it.
        if self._scheduled is not None and self._scheduled.task is asyncio.current_task():
            self._scheduled = None

        try:
            await self.get_token(force_refresh=True)
        except AppError as e:
            if retries > 0 and not self._deleted:
                log_exception(
                    logger,
                    e,
                    "Background token refresh failed, will retry",
                    level=logging.WARNING,
                    include_traceback=False,
                    app_name=self._app_name,
                    retries_remaining=retries - 1,
                )
                self._schedule_refresh(REFRESH_RETRY_INTERVAL_SECONDS, retries - 1)
                return RefreshOutcome.RETRY_SCHEDULED

            log_exception(
                logger,
                e,
                "Background token refresh failed, giving up until next request",
                level=logging.WARNING,
                include_traceback=False,
                app_name=self._app_name,
            )
            return RefreshOutcome.GAVE_UP

        return RefreshOutcome.REFRESHED


__all__ = [
    "AccessToken",
    "TokenManager",
    "ScheduledRefresh",
    "RefreshOutcome",
    "REFRESH_LEAD_SECONDS",
    "REFRESH_RETRY_INTERVAL_SECONDS",
    "MAX_REFRESH_RETRIES",
]
