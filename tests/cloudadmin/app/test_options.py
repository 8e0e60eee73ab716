"""Tests for AppOptions."""

import pytest

from cloudadmin.app.options import DEFAULT_HTTP_TIMEOUT_SECONDS, ENV_OPTIONS, AppOptions
from cloudadmin.errors import AppError, AppErrorCode


class SessionCredential:
    """Credential holding state that must never be duplicated."""

    def __init__(self):
        self.sessions = []

    async def get_access_token(self):
        return {"access_token": "token", "expires_in": 3600}


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for var in [*ENV_OPTIONS, "CLOUDADMIN_HTTP_TIMEOUT"]:
        monkeypatch.delenv(var, raising=False)


class TestFromMapping:
    def test_builds_options(self):
        options = AppOptions.from_mapping({"project_id": "demo", "http_timeout": 5})

        assert options.project_id == "demo"
        assert options.http_timeout == 5

    def test_defaults(self):
        options = AppOptions.from_mapping({})

        assert options.credential is None
        assert options.api_endpoint is None
        assert options.http_timeout == DEFAULT_HTTP_TIMEOUT_SECONDS

    def test_rejects_unknown_keys(self):
        with pytest.raises(AppError, match="databaseURL") as exc_info:
            AppOptions.from_mapping({"databaseURL": "x"}, app_name="demo")

        assert exc_info.value.code == AppErrorCode.INVALID_APP_OPTIONS
        assert '"demo"' in exc_info.value.message


class TestFromEnv:
    def test_empty_environment(self):
        assert AppOptions.from_env() == AppOptions()

    def test_reads_all_fields(self, monkeypatch):
        monkeypatch.setenv("CLOUDADMIN_PROJECT_ID", "proj")
        monkeypatch.setenv("CLOUDADMIN_DATABASE_URL", "https://db.example.com")
        monkeypatch.setenv("CLOUDADMIN_STORAGE_BUCKET", "bucket")
        monkeypatch.setenv("CLOUDADMIN_SERVICE_ACCOUNT_ID", "svc@example.com")
        monkeypatch.setenv("CLOUDADMIN_API_ENDPOINT", "https://api.example.com")
        monkeypatch.setenv("CLOUDADMIN_HTTP_TIMEOUT", "15.5")

        options = AppOptions.from_env()

        assert options.project_id == "proj"
        assert options.database_url == "https://db.example.com"
        assert options.storage_bucket == "bucket"
        assert options.service_account_id == "svc@example.com"
        assert options.api_endpoint == "https://api.example.com"
        assert options.http_timeout == 15.5

    def test_invalid_timeout(self, monkeypatch):
        monkeypatch.setenv("CLOUDADMIN_HTTP_TIMEOUT", "soon")

        with pytest.raises(AppError, match="CLOUDADMIN_HTTP_TIMEOUT") as exc_info:
            AppOptions.from_env()

        assert exc_info.value.code == AppErrorCode.INVALID_APP_OPTIONS


class TestCopy:
    def test_copy_is_independent(self):
        options = AppOptions(project_id="before")

        copied = options.copy()
        copied.project_id = "after"

        assert options.project_id == "before"

    def test_credential_shared_by_reference(self):
        credential = SessionCredential()
        options = AppOptions(credential=credential)

        copied = options.copy()

        assert copied is not options
        assert copied.credential is credential

    def test_copy_without_credential(self):
        options = AppOptions(storage_bucket="bucket")

        assert options.copy() == options
