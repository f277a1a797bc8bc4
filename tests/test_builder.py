"""Tests for the fluent application builder."""

from __future__ import annotations

import pytest

from apphost.builder import DistributedApplicationBuilder, ResourceBuilder
from apphost.config import AppHostConfig
from apphost.errors import (
    DuplicateResourceError,
    InvalidHealthCheckError,
    InvalidResourceNameError,
    ModelError,
    UnknownProjectError,
    UnknownResourceError,
)
from apphost.model import ResourceKind
from apphost.projects import HEALTHTRACKER_API_SERVICE, HEALTHTRACKER_WEB
from apphost.runtime import DistributedApplication


@pytest.fixture
def empty(config):
    return DistributedApplicationBuilder([], config=config)


# ===========================================================================
# Declaration
# ===========================================================================


class TestDeclare:
    """add_redis / add_project."""

    def test_add_redis(self, empty):
        cache = empty.add_redis("cache")
        assert isinstance(cache, ResourceBuilder)
        assert cache.kind == ResourceKind.REDIS
        assert cache.project is None

    def test_add_project_with_target(self, empty):
        api = empty.add_project("apiservice", HEALTHTRACKER_API_SERVICE)
        assert api.kind == ResourceKind.PROJECT
        assert api.project is HEALTHTRACKER_API_SERVICE

    def test_add_project_by_name(self, empty):
        web = empty.add_project("webfrontend", "healthtracker.web")
        assert web.project == HEALTHTRACKER_WEB

    def test_add_project_unknown_name(self, empty):
        with pytest.raises(UnknownProjectError, match="Unknown project") as exc_info:
            empty.add_project("x", "HealthTracker.Nope")
        assert isinstance(exc_info.value, ModelError)
        assert exc_info.value.exit_code == 2
        assert exc_info.value.project == "HealthTracker.Nope"
        assert empty.resources == []

    def test_declaration_order_kept(self, empty):
        empty.add_project("b", HEALTHTRACKER_WEB)
        empty.add_redis("a")
        assert [r.name for r in empty.resources] == ["b", "a"]

    def test_duplicate_name(self, empty):
        empty.add_redis("cache")
        with pytest.raises(DuplicateResourceError) as exc_info:
            empty.add_project("cache", HEALTHTRACKER_WEB)
        assert exc_info.value.resource == "cache"
        assert exc_info.value.exit_code == 2

    @pytest.mark.parametrize("name", ["", "Cache", "1cache", "ca_che", "-cache", "a" * 64])
    def test_invalid_names(self, empty, name):
        with pytest.raises(InvalidResourceNameError):
            empty.add_redis(name)

    def test_failed_declaration_not_recorded(self, empty):
        with pytest.raises(InvalidResourceNameError):
            empty.add_redis("Bad Name")
        assert empty.resources == []


# ===========================================================================
# Handle configuration
# ===========================================================================


class TestHandleConfiguration:
    """Chained handle methods."""

    def test_methods_return_handle(self, empty):
        cache = empty.add_redis("cache")
        web = empty.add_project("web", HEALTHTRACKER_WEB)
        assert web.with_http_health_check("/health") is web
        assert web.with_external_http_endpoints() is web
        assert web.with_reference(cache) is web
        assert web.wait_for(cache) is web

    def test_health_check_requires_leading_slash(self, empty):
        api = empty.add_project("api", HEALTHTRACKER_API_SERVICE)
        with pytest.raises(InvalidHealthCheckError, match="must start with '/'"):
            api.with_http_health_check("health")

    def test_health_check_deduplicated(self, empty):
        api = empty.add_project("api", HEALTHTRACKER_API_SERVICE)
        api.with_http_health_check("/health").with_http_health_check("/health")
        assert api.freeze().health_check_paths == ("/health",)

    def test_multiple_health_paths_keep_order(self, empty):
        api = empty.add_project("api", HEALTHTRACKER_API_SERVICE)
        api.with_http_health_check("/alive").with_http_health_check("/health")
        spec = api.freeze()
        assert spec.health_check_paths == ("/alive", "/health")
        assert spec.health_check_path == "/alive"

    def test_redis_has_no_http_endpoint(self, empty):
        cache = empty.add_redis("cache")
        with pytest.raises(ModelError):
            cache.with_http_health_check("/health")
        with pytest.raises(ModelError):
            cache.with_external_http_endpoints()

    def test_edges_deduplicated(self, empty):
        cache = empty.add_redis("cache")
        web = empty.add_project("web", HEALTHTRACKER_WEB)
        web.wait_for(cache).wait_for(cache).with_reference(cache).with_reference(cache)
        spec = web.freeze()
        assert spec.waits_for == ("cache",)
        assert spec.references == ("cache",)

    def test_reference_without_wait(self, empty):
        cache = empty.add_redis("cache")
        web = empty.add_project("web", HEALTHTRACKER_WEB).with_reference(cache)
        spec = web.freeze()
        assert spec.references == ("cache",)
        assert spec.waits_for == ()


class TestEdgeTargets:
    """Edges must target resources declared earlier on the same builder."""

    def test_self_edge_rejected(self, empty):
        web = empty.add_project("web", HEALTHTRACKER_WEB)
        with pytest.raises(UnknownResourceError):
            web.wait_for(web)

    def test_forward_edge_rejected(self, empty):
        api = empty.add_project("api", HEALTHTRACKER_API_SERVICE)
        web = empty.add_project("web", HEALTHTRACKER_WEB)
        with pytest.raises(UnknownResourceError) as exc_info:
            api.wait_for(web)
        assert exc_info.value.target == "web"
        assert exc_info.value.resource == "api"

    def test_foreign_builder_rejected(self, empty, config):
        other = DistributedApplicationBuilder([], config=config)
        foreign_cache = other.add_redis("cache")
        web = empty.add_project("web", HEALTHTRACKER_WEB)
        with pytest.raises(UnknownResourceError):
            web.with_reference(foreign_cache)


# ===========================================================================
# Build
# ===========================================================================


class TestBuild:
    """build() / build_model() / create_builder()."""

    def test_build_returns_application(self, empty):
        empty.add_redis("cache")
        app = empty.build()
        assert isinstance(app, DistributedApplication)
        assert app.model.names == ["cache"]
        assert app.config is empty.config

    def test_model_is_snapshot(self, empty):
        cache = empty.add_redis("cache")
        web = empty.add_project("web", HEALTHTRACKER_WEB)
        before = empty.build_model()
        web.wait_for(cache)
        after = empty.build_model()
        assert before.get("web").waits_for == ()
        assert after.get("web").waits_for == ("cache",)

    def test_empty_model(self, empty):
        model = empty.build_model()
        assert len(model) == 0
        assert model.describe() == ""

    def test_create_builder(self, config):
        builder = DistributedApplication.create_builder(["--foo", "bar"], config=config)
        assert isinstance(builder, DistributedApplicationBuilder)
        assert builder.args == ("--foo", "bar")

    def test_args_override_config(self, config):
        builder = DistributedApplicationBuilder(
            ["--project-name=demo", "--startup-timeout-seconds=30", "--build=false"],
            config=config,
        )
        assert builder.config.project_name == "demo"
        assert builder.config.startup_timeout_seconds == 30
        assert builder.config.build is False
        assert builder.config.run_id == config.run_id

    def test_default_config_from_env(self, monkeypatch):
        monkeypatch.setenv("APPHOST_PROJECT_NAME", "from-env")
        builder = DistributedApplicationBuilder()
        assert isinstance(builder.config, AppHostConfig)
        assert builder.config.project_name == "from-env"
        assert builder.args == ()
