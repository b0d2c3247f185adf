"""Tests for backend registry: auto-discovery and selection."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from svconform.adapters.base import BackendNotFoundError, CompileResult, SVCompiler
from svconform.adapters.registry import BackendRegistry, get_registry
from svconform.backends.command_backend import CommandCompiler
from svconform.backends.reference_backend import ReferenceCompiler

# ── Mock backends ────────────────────────────────────────────────────


class MockBackend(SVCompiler):
    """Mock backend for testing registration."""

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict

    @property
    def name(self) -> str:
        return "mock"

    def compile_advanced(self, source: str) -> CompileResult:
        return CompileResult(success=not self.strict)


class NeedsArguments(SVCompiler):
    def __init__(self, path: str) -> None:
        self.path = path

    @property
    def name(self) -> str:
        return "needs_args"

    def compile_advanced(self, source: str) -> CompileResult:
        return CompileResult()


# ── Discovery ────────────────────────────────────────────────────────


class TestDiscovery:
    def test_builtin_backends_discovered(self) -> None:
        registry = BackendRegistry()
        names = registry.list_backends()
        assert "reference" in names
        assert "command" in names

    def test_builtin_classes(self) -> None:
        registry = BackendRegistry()
        assert registry.get_backend_class("reference") is ReferenceCompiler
        assert registry.get_backend_class("command") is CommandCompiler

    def test_entry_point_backend_registered(self) -> None:
        entry_point = MagicMock()
        entry_point.name = "mock"
        entry_point.load.return_value = MockBackend

        with patch("importlib.metadata.entry_points", return_value=[entry_point]):
            registry = BackendRegistry()

        assert registry.get_backend_class("mock") is MockBackend

    def test_entry_point_conflict_skipped(self) -> None:
        entry_point = MagicMock()
        entry_point.name = "dup"
        entry_point.load.return_value = ReferenceCompiler

        with patch("importlib.metadata.entry_points", return_value=[entry_point]):
            registry = BackendRegistry()

        assert registry.list_backends().count("reference") == 1

    def test_entry_point_not_a_backend(self) -> None:
        entry_point = MagicMock()
        entry_point.name = "bogus"
        entry_point.load.return_value = object

        with patch("importlib.metadata.entry_points", return_value=[entry_point]):
            registry = BackendRegistry()

        assert "bogus" not in registry.list_backends()

    def test_broken_entry_point_ignored(self) -> None:
        entry_point = MagicMock()
        entry_point.name = "broken"
        entry_point.load.side_effect = ImportError("missing dependency")

        with patch("importlib.metadata.entry_points", return_value=[entry_point]):
            registry = BackendRegistry()

        assert "reference" in registry.list_backends()


# ── Selection ────────────────────────────────────────────────────────


class TestSelection:
    def test_register_and_get(self) -> None:
        registry = BackendRegistry()
        assert registry.register(MockBackend) == "mock"
        assert isinstance(registry.get_backend("mock"), MockBackend)

    def test_register_requires_default_construction(self) -> None:
        registry = BackendRegistry()
        assert registry.register(NeedsArguments) is None
        assert "needs_args" not in registry.list_backends()

    def test_unknown_backend(self) -> None:
        with pytest.raises(BackendNotFoundError, match="available: .*reference"):
            BackendRegistry().get_backend_class("nope")

    def test_get_backend_with_options(self) -> None:
        registry = BackendRegistry()
        registry.register(MockBackend)
        backend = registry.get_backend("mock", {"strict": True})
        assert isinstance(backend, MockBackend)
        assert backend.strict

    def test_factory_returns_fresh_instances(self) -> None:
        registry = BackendRegistry()
        factory = registry.factory("reference", {"enable_warnings": False})
        first = factory()
        second = factory()
        assert first is not second
        assert isinstance(first, ReferenceCompiler)
        assert first.enable_warnings is False

    def test_factory_unknown_backend(self) -> None:
        with pytest.raises(BackendNotFoundError):
            BackendRegistry().factory("nope")

    def test_get_registry_singleton(self) -> None:
        assert get_registry() is get_registry()
