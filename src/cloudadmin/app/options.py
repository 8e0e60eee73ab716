"""Application options.

Options are a plain dataclass. Environment variables fill in defaults when
no options are passed to initialize_app(); there is no config file loading.
"""

import copy
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from cloudadmin.errors import AppError, AppErrorCode

logger = logging.getLogger(__name__)

DEFAULT_HTTP_TIMEOUT_SECONDS = 120.0

# Environment variable -> AppOptions field
ENV_OPTIONS = {
    "CLOUDADMIN_PROJECT_ID": "project_id",
    "CLOUDADMIN_DATABASE_URL": "database_url",
    "CLOUDADMIN_STORAGE_BUCKET": "storage_bucket",
    "CLOUDADMIN_SERVICE_ACCOUNT_ID": "service_account_id",
    "CLOUDADMIN_API_ENDPOINT": "api_endpoint",
}


@dataclass
class AppOptions:
    """
    Configuration for one application.

    Attributes:
        credential: Object exposing get_access_token(); resolved from the
            environment when omitted
        project_id: Cloud project the app operates on
        database_url: Default database endpoint
        storage_bucket: Default storage bucket name
        service_account_id: Identity used for signing operations
        api_endpoint: Base URL for the authorized API client
        http_timeout: Total timeout for outbound HTTP calls, in seconds
    """

    credential: Any = None
    project_id: str | None = None
    database_url: str | None = None
    storage_bucket: str | None = None
    service_account_id: str | None = None
    api_endpoint: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], app_name: str = "") -> "AppOptions":
        """
        Build options from a mapping of field names.

        Raises:
            AppError: INVALID_APP_OPTIONS for unknown keys
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(key) for key in values if key not in known)
        if unknown:
            raise AppError(
                AppErrorCode.INVALID_APP_OPTIONS,
                f'Invalid app options for the app named "{app_name}". '
                f"Unknown option(s): {', '.join(unknown)}.",
            )
        return cls(**dict(values))

    @classmethod
    def from_env(cls) -> "AppOptions":
        """
        Build options from CLOUDADMIN_* environment variables.

        Environment Variables:
            CLOUDADMIN_PROJECT_ID, CLOUDADMIN_DATABASE_URL,
            CLOUDADMIN_STORAGE_BUCKET, CLOUDADMIN_SERVICE_ACCOUNT_ID,
            CLOUDADMIN_API_ENDPOINT, CLOUDADMIN_HTTP_TIMEOUT

        Raises:
            AppError: INVALID_APP_OPTIONS if CLOUDADMIN_HTTP_TIMEOUT is not a number
        """
        values: dict[str, Any] = {}
        for env_var, field_name in ENV_OPTIONS.items():
            value = os.getenv(env_var)
            if value:
                values[field_name] = value

        timeout = os.getenv("CLOUDADMIN_HTTP_TIMEOUT")
        if timeout:
            try:
                values["http_timeout"] = float(timeout)
            except ValueError:
                raise AppError(
                    AppErrorCode.INVALID_APP_OPTIONS,
                    f"CLOUDADMIN_HTTP_TIMEOUT must be a number of seconds, got {timeout!r}",
                )

        if values:
            logger.debug(
                "Loaded app options from environment",
                extra={"operation": "from_env"},
            )
        return cls(**values)

    def copy(self) -> "AppOptions":
        """
        Deep copy every field except the credential.

        The credential is shared by reference: it owns live resources
        (sessions, locks) and is the same object the TokenManager uses.
        """
        memo: dict[int, Any] = {}
        if self.credential is not None:
            memo[id(self.credential)] = self.credential
        return copy.deepcopy(self, memo)


__all__ = ["AppOptions", "DEFAULT_HTTP_TIMEOUT_SECONDS", "ENV_OPTIONS"]
