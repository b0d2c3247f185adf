"""Backend registry: auto-discovery and selection of compiler backends.

The registry scans the built-in ``svconform.backends`` package and the
``svconform.backends`` entry-point group at runtime, and hands out fresh
backend instances (or factories producing them) by name.
"""

from __future__ import annotations

import functools
import importlib
import importlib.metadata
import logging
import pkgutil
from typing import TYPE_CHECKING, Any

import svconform.backends as backends_package
from svconform.adapters.base import BackendNotFoundError, SVCompiler

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "svconform.backends"


class BackendRegistry:
    """Registry for discovering and instantiating compiler backends.

    Built-in backends live in ``svconform.backends`` as modules named
    ``*_backend``.  Third-party packages register ``SVCompiler`` subclasses
    under the ``svconform.backends`` entry-point group.
    """

    def __init__(self) -> None:
        """Initialize the registry and discover all available backends."""
        self._backends: dict[str, type[SVCompiler]] = {}
        self._discover_backends()

    def _discover_backends(self) -> None:
        """Discover built-in backends first, then entry-point backends."""
        self._discover_builtin_backends()
        self._discover_entry_point_backends()

    def _discover_builtin_backends(self) -> None:
        """Scan ``svconform.backends`` for ``SVCompiler`` subclasses."""
        for _, module_name, _ in pkgutil.iter_modules(backends_package.__path__):
            if module_name.startswith("_") or not module_name.endswith("_backend"):
                continue

            try:
                module = importlib.import_module(f"svconform.backends.{module_name}")
            except Exception as exc:
                logger.warning("Failed to import backend module %s: %s", module_name, exc)
                continue
            self._register_backends_from_module(module)

    def _register_backends_from_module(self, module: object) -> None:
        """Register every concrete ``SVCompiler`` subclass defined in *module*."""
        for attr_name in dir(module):
            attr = getattr(module, attr_name, None)
            if not isinstance(attr, type) or not issubclass(attr, SVCompiler):
                continue
            if attr is SVCompiler or getattr(attr, "__abstractmethods__", None):
                continue
            self.register(attr)

    def _discover_entry_point_backends(self) -> None:
        """Discover backends registered via Python entry points.

        External packages register a backend by adding an entry point in the
        ``svconform.backends`` group of their ``pyproject.toml``.
        """
        try:
            entry_points = importlib.metadata.entry_points(group=ENTRY_POINT_GROUP)
        except Exception as exc:
            logger.debug("Failed to read entry points for %s: %s", ENTRY_POINT_GROUP, exc)
            return

        for entry_point in entry_points:
            self._load_entry_point_backend(entry_point)

    def _load_entry_point_backend(self, entry_point: importlib.metadata.EntryPoint) -> None:
        """Load and register a backend class from *entry_point*."""
        try:
            backend_class = entry_point.load()
        except Exception as exc:
            logger.warning("Failed to load entry point %s: %s", entry_point.name, exc)
            return

        if not isinstance(backend_class, type) or not issubclass(backend_class, SVCompiler):
            logger.warning(
                "Entry point %s does not refer to an SVCompiler subclass: %s",
                entry_point.name,
                backend_class,
            )
            return

        name = self._backend_name(backend_class)
        if name is None:
            return
        if name in self._backends:
            logger.warning(
                "Backend %s from entry point %s conflicts with an existing backend, skipping",
                name,
                entry_point.name,
            )
            return

        self._backends[name] = backend_class
        logger.info("Registered backend %s from entry point %s", name, entry_point.name)

    @staticmethod
    def _backend_name(backend_class: type[SVCompiler]) -> str | None:
        # Instantiate with defaults to read the name.
        try:
            return backend_class().name
        except Exception as exc:
            logger.warning("Failed to instantiate backend %s: %s", backend_class.__name__, exc)
            return None

    def register(self, backend_class: type[SVCompiler]) -> str | None:
        """Register *backend_class* under its ``name``.

        Returns:
            The registered name, or ``None`` if the class could not be
            instantiated with default arguments.
        """
        name = self._backend_name(backend_class)
        if name is None:
            return None
        self._backends[name] = backend_class
        logger.debug("Registered backend: %s", name)
        return name

    def get_backend_class(self, name: str) -> type[SVCompiler]:
        """Return the backend class registered as *name*.

        Raises:
            BackendNotFoundError: If no backend has that name.
        """
        try:
            return self._backends[name]
        except KeyError:
            available = ", ".join(sorted(self._backends)) or "none"
            msg = f"Unknown backend {name!r} (available: {available})"
            raise BackendNotFoundError(msg) from None

    def get_backend(self, name: str, options: dict[str, Any] | None = None) -> SVCompiler:
        """Return a fresh instance of backend *name* built with *options*."""
        return self.get_backend_class(name)(**(options or {}))

    def factory(
        self, name: str, options: dict[str, Any] | None = None
    ) -> Callable[[], SVCompiler]:
        """Return a zero-argument callable producing fresh instances of *name*."""
        backend_class = self.get_backend_class(name)
        return functools.partial(backend_class, **(options or {}))

    def list_backends(self) -> list[str]:
        """Return the names of all registered backends."""
        return list(self._backends.keys())


class _RegistrySingleton:
    """Singleton holder for the backend registry."""

    _instance: BackendRegistry | None = None

    @classmethod
    def get(cls) -> BackendRegistry:
        """Get the global backend registry, creating it on first use."""
        if cls._instance is None:
            cls._instance = BackendRegistry()
        return cls._instance


def get_registry() -> BackendRegistry:
    """Get the global backend registry instance."""
    return _RegistrySingleton.get()
