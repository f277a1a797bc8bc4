"""Tests for the frozen application model."""

from __future__ import annotations

import dataclasses

import pytest

from apphost.errors import CycleDetectedError, UnknownResourceError
from apphost.model import ApplicationModel, ResourceKind, ResourceSpec, describe
from apphost.projects import HEALTHTRACKER_WEB


def _spec(name, kind=ResourceKind.PROJECT, **kwargs):
    return ResourceSpec(name=name, kind=kind, **kwargs)


class TestResourceSpec:
    """ResourceSpec descriptor and serialization."""

    def test_describe_plain(self):
        assert _spec("cache", ResourceKind.REDIS).describe() == "cache:redis"

    def test_describe_all_attributes(self):
        spec = _spec(
            "web",
            health_check_paths=("/health",),
            external=True,
            waits_for=("a", "b"),
        )
        assert spec.describe() == "web:project(health=/health, external=true, waits_for=[a,b])"

    def test_references_not_in_descriptor(self):
        assert _spec("web", references=("cache",)).describe() == "web:project"

    def test_frozen(self):
        spec = _spec("web")
        with pytest.raises(dataclasses.FrozenInstanceError):
            spec.name = "other"  # type: ignore[misc]

    def test_to_dict(self):
        spec = _spec("web", project=HEALTHTRACKER_WEB, health_check_paths=("/health",))
        data = spec.to_dict()
        assert data["kind"] == "project"
        assert data["health_check_paths"] == ["/health"]
        assert data["project"]["name"] == "HealthTracker.Web"
        assert data["waits_for"] == []


class TestApplicationModel:
    """Lookup, ordering and validation."""

    def test_lookup(self, model):
        assert "cache" in model
        assert "redis" not in model
        assert len(model) == 3
        with pytest.raises(KeyError):
            model.get("missing")

    def test_dependents_of(self, model):
        assert model.dependents_of("cache") == ["webfrontend"]
        assert model.dependents_of("webfrontend") == []

    def test_startup_order_stable_for_independent(self):
        model = ApplicationModel(resources=(
            _spec("web", waits_for=("api",)),
            _spec("zeta"),
            _spec("api"),
        ))
        assert [r.name for r in model.startup_order()] == ["zeta", "api", "web"]

    def test_startup_order_diamond(self):
        model = ApplicationModel(resources=(
            _spec("db", ResourceKind.REDIS),
            _spec("a", waits_for=("db",)),
            _spec("b", waits_for=("db",)),
            _spec("front", waits_for=("a", "b")),
        ))
        assert [r.name for r in model.startup_order()] == ["db", "a", "b", "front"]

    def test_unknown_edge_target(self):
        with pytest.raises(UnknownResourceError):
            ApplicationModel(resources=(_spec("web", waits_for=("ghost",)),))

    def test_unknown_reference_target(self):
        with pytest.raises(UnknownResourceError):
            ApplicationModel(resources=(_spec("web", references=("ghost",)),))

    def test_cycle_detected(self):
        with pytest.raises(CycleDetectedError) as exc_info:
            ApplicationModel(resources=(
                _spec("a", waits_for=("b",)),
                _spec("b", waits_for=("a",)),
            ))
        assert exc_info.value.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(exc_info.value)

    def test_self_cycle(self):
        with pytest.raises(CycleDetectedError):
            ApplicationModel(resources=(_spec("a", waits_for=("a",)),))

    def test_structural_equality(self):
        a = ApplicationModel(resources=(_spec("x"), _spec("y", waits_for=("x",))))
        b = ApplicationModel(resources=(_spec("x"), _spec("y", waits_for=("x",))))
        assert a == b
        assert hash(a) == hash(b)

    def test_describe_function(self, model):
        assert describe(model) == model.describe()
        assert model.describe().startswith("cache:redis; ")

    def test_to_dict(self, model):
        data = model.to_dict()
        assert [r["name"] for r in data["resources"]] == ["cache", "apiservice", "webfrontend"]
