"""Tests for AppRegistry and the default registry singleton."""

import logging
from unittest.mock import MagicMock

import pytest

from cloudadmin.app.options import AppOptions
from cloudadmin.app.registry import DEFAULT_APP_NAME, AppRegistry, get_default_registry
from cloudadmin.errors import AppError, AppErrorCode


class StubCredential:
    async def get_access_token(self):
        return {"access_token": "token", "expires_in": 3600}


@pytest.fixture
def credential():
    return StubCredential()


@pytest.fixture
def resolver(credential):
    return MagicMock(return_value=credential)


@pytest.fixture
def registry(resolver):
    return AppRegistry(credential_resolver=resolver)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for var in ("CLOUDADMIN_PROJECT_ID", "CLOUDADMIN_API_ENDPOINT", "CLOUDADMIN_HTTP_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)


class TestInitializeApp:
    def test_default_name(self, registry, credential):
        app = registry.initialize_app(credential)

        assert app.name == DEFAULT_APP_NAME == "[DEFAULT]"
        assert registry.get_app() is app

    def test_named_app(self, registry, credential):
        app = registry.initialize_app(credential, name="secondary")

        assert registry.get_app("secondary") is app

    @pytest.mark.parametrize("name", ["", None, 42])
    def test_rejects_invalid_name(self, registry, credential, name):
        with pytest.raises(AppError) as exc_info:
            registry.initialize_app(credential, name=name)

        assert exc_info.value.code == AppErrorCode.INVALID_APP_NAME

    def test_duplicate_default_app(self, registry, credential):
        registry.initialize_app(credential)

        with pytest.raises(AppError, match="The default app already exists") as exc_info:
            registry.initialize_app(credential)

        assert exc_info.value.code == AppErrorCode.DUPLICATE_APP

    def test_duplicate_named_app(self, registry, credential):
        registry.initialize_app(credential, name="dup")

        with pytest.raises(AppError, match='App named "dup" already exists') as exc_info:
            registry.initialize_app(credential, name="dup")

        assert exc_info.value.code == AppErrorCode.DUPLICATE_APP

    def test_credential_argument_overrides_options(self, registry, credential):
        other = StubCredential()

        app = registry.initialize_app(credential, AppOptions(credential=other, project_id="p"))

        assert app.credential is credential
        assert app.project_id == "p"

    def test_credential_argument_merged_into_mapping(self, registry, credential):
        app = registry.initialize_app(credential, {"project_id": "p"})

        assert app.credential is credential

    def test_credential_argument_does_not_mutate_given_options(self, registry, credential):
        options = AppOptions(project_id="p")

        registry.initialize_app(credential, options)

        assert options.credential is None

    def test_options_default_to_environment(self, registry, credential, monkeypatch):
        monkeypatch.setenv("CLOUDADMIN_PROJECT_ID", "env-project")

        app = registry.initialize_app(credential)

        assert app.project_id == "env-project"

    def test_uses_resolver_when_no_credential(self, registry, resolver, credential):
        app = registry.initialize_app(options={"project_id": "p"})

        resolver.assert_called_once_with()
        assert app.credential is credential

    def test_invalid_options_leave_registry_unchanged(self, registry):
        with pytest.raises(AppError):
            registry.initialize_app(options={"unknown": True})

        assert registry.get_apps() == []


class TestLookup:
    def test_get_missing_default_app(self, registry):
        with pytest.raises(AppError, match="The default app does not exist") as exc_info:
            registry.get_app()

        assert exc_info.value.code == AppErrorCode.NO_APP

    def test_get_missing_named_app(self, registry):
        with pytest.raises(AppError, match='App named "ghost" does not exist'):
            registry.get_app("ghost")

    def test_get_app_rejects_invalid_name(self, registry):
        with pytest.raises(AppError) as exc_info:
            registry.get_app("")

        assert exc_info.value.code == AppErrorCode.INVALID_APP_NAME

    def test_get_apps_in_creation_order(self, registry, credential):
        first = registry.initialize_app(credential, name="first")
        second = registry.initialize_app(credential, name="second")

        assert registry.get_apps() == [first, second]

    def test_get_apps_returns_snapshot(self, registry, credential):
        registry.initialize_app(credential)
        apps = registry.get_apps()
        apps.clear()

        assert len(registry.get_apps()) == 1


class TestDeleteApp:
    @pytest.mark.asyncio
    async def test_delete_app_removes_entry(self, registry, credential):
        app = registry.initialize_app(credential)

        await registry.delete_app(app)

        assert app.is_deleted
        assert registry.get_apps() == []

    @pytest.mark.asyncio
    async def test_name_reusable_after_delete(self, registry, credential):
        first = registry.initialize_app(credential, name="reused")
        await registry.delete_app(first)

        second = registry.initialize_app(credential, name="reused")

        assert second is not first
        assert registry.get_app("reused") is second
        await registry.delete_app(second)

    def test_remove_unknown_app_is_noop(self, registry):
        registry.remove_app("never-created")


class TestHooks:
    @pytest.mark.asyncio
    async def test_hooks_receive_lifecycle_events(self, registry, credential):
        hook = MagicMock()
        registry.add_app_hook(hook)

        app = registry.initialize_app(credential)
        await app.delete()

        assert [c.args for c in hook.call_args_list] == [("create", app), ("delete", app)]

    def test_removed_hook_not_called(self, registry, credential):
        hook = MagicMock()
        registry.add_app_hook(hook)
        registry.remove_app_hook(hook)

        registry.initialize_app(credential)

        hook.assert_not_called()

    def test_failing_hook_does_not_abort_initialization(self, registry, credential, caplog):
        registry.add_app_hook(MagicMock(side_effect=RuntimeError("hook bug")))
        later = MagicMock()
        registry.add_app_hook(later)

        with caplog.at_level(logging.WARNING, logger="cloudadmin.app.registry"):
            app = registry.initialize_app(credential)

        assert registry.get_app() is app
        later.assert_called_once_with("create", app)
        assert "App hook failed" in caplog.text


class TestDefaultRegistry:
    def test_returns_singleton(self, monkeypatch):
        import cloudadmin.app.registry as registry_module

        monkeypatch.setattr(registry_module, "_default_registry", None)

        first = get_default_registry()
        second = get_default_registry()

        assert first is second
        assert isinstance(first, AppRegistry)
