"""Fixture discovery: build an ordered registry of test cases from a directory tree."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from svconform.fixtures.metadata import (
    DEFAULT_MAX_FIXTURE_BYTES,
    FixtureReadError,
    parse_metadata,
    read_fixture,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

CHAPTER_PREFIX = "chapter-"
GENERIC_DIR = "generic"
DEFAULT_EXTENSIONS = (".sv",)

# Chapters of IEEE 1800 covered by the sv-tests suite.
DEFAULT_CHAPTERS = (
    "5", "6", "7", "8", "9", "10", "11", "12", "13", "14", "15", "16",
    "18", "20", "21", "22", "23", "24", "25", "26",
)  # fmt: skip


def chapter_dir(root: Path, chapter: str) -> Path:
    """Return the directory holding fixtures for *chapter* under *root*."""
    return root / f"{CHAPTER_PREFIX}{chapter}"


@dataclass
class TestCase:
    """One conformance fixture and its parsed metadata."""

    __test__ = False

    name: str
    file_path: Path
    description: str = ""
    tags: list[str] = field(default_factory=list)
    should_fail: bool = False
    should_fail_reason: str | None = None

    @property
    def chapter(self) -> str | None:
        """Chapter id from the nearest ``chapter-<id>`` directory, if any."""
        for part in reversed(self.file_path.parent.parts):
            if part.startswith(CHAPTER_PREFIX) and len(part) > len(CHAPTER_PREFIX):
                return part[len(CHAPTER_PREFIX) :]
        return None

    def has_tag(self, tag: str) -> bool:
        """Return ``True`` if *tag* is among this case's tags."""
        return tag in self.tags


def load_test_case(path: Path, max_bytes: int = DEFAULT_MAX_FIXTURE_BYTES) -> TestCase:
    """Build a ``TestCase`` from the fixture at *path*.

    Raises:
        FixtureReadError: If the fixture cannot be read.
    """
    metadata = parse_metadata(read_fixture(path, max_bytes))
    return TestCase(
        name=path.stem,
        file_path=path,
        description=metadata.description,
        tags=metadata.tags,
        should_fail=metadata.should_fail,
        should_fail_reason=metadata.should_fail_reason,
    )


class TestRegistry:
    """Ordered collection of test cases, in discovery order.

    The registry owns its cases; ``clear`` and ``reload_scoped`` drop every
    previously loaded case before anything new is added.
    """

    __test__ = False

    def __init__(
        self,
        *,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        max_fixture_bytes: int = DEFAULT_MAX_FIXTURE_BYTES,
    ) -> None:
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.max_fixture_bytes = max_fixture_bytes
        self._cases: list[TestCase] = []

    def __len__(self) -> int:
        return len(self._cases)

    def __iter__(self) -> Iterator[TestCase]:
        return iter(tuple(self._cases))

    @property
    def cases(self) -> tuple[TestCase, ...]:
        """Snapshot of the loaded cases."""
        return tuple(self._cases)

    def add(self, case: TestCase) -> None:
        """Append *case* to the registry."""
        self._cases.append(case)

    def clear(self) -> None:
        """Drop every loaded case."""
        self._cases = []

    def is_fixture(self, path: Path) -> bool:
        """Return ``True`` if *path* has a recognized source extension."""
        return path.suffix.lower() in self.extensions

    def load_directory(self, directory: Path | str) -> int:
        """Recursively load fixtures under *directory*.

        Files are taken in the order the filesystem walk yields them.
        Unreadable fixtures are logged and skipped; a missing directory
        loads nothing.

        Returns:
            The number of cases added.
        """
        root = Path(directory)
        if not root.is_dir():
            logger.warning("Fixture directory %s does not exist", root)
            return 0

        added = 0
        for dirpath, _dirnames, filenames in os.walk(root):
            for filename in filenames:
                path = Path(dirpath) / filename
                if not self.is_fixture(path) or not path.is_file():
                    continue
                try:
                    case = load_test_case(path, self.max_fixture_bytes)
                except FixtureReadError as exc:
                    logger.warning("Skipping fixture %s: %s", path, exc)
                    continue
                self._cases.append(case)
                added += 1

        logger.info("Loaded %d test cases from %s", added, root)
        return added

    def load_catalog(
        self,
        root: Path | str,
        chapters: Iterable[str] = DEFAULT_CHAPTERS,
        *,
        generic_dir: str | None = GENERIC_DIR,
    ) -> int:
        """Load every catalog chapter present under *root*, then the generic directory.

        Missing chapters are expected and skipped without error.

        Returns:
            The number of cases added.
        """
        root = Path(root)
        added = 0
        for chapter in chapters:
            directory = chapter_dir(root, chapter)
            if not directory.is_dir():
                logger.debug("Skipping chapter %s (directory not found)", chapter)
                continue
            added += self.load_directory(directory)

        if generic_dir:
            generic = root / generic_dir
            if generic.is_dir():
                added += self.load_directory(generic)
            else:
                logger.debug("No generic tests found under %s", root)

        logger.info("Total tests loaded: %d", len(self._cases))
        return added

    def reload_scoped(self, directory: Path | str) -> int:
        """Replace the registry contents with the fixtures under *directory*."""
        self.clear()
        return self.load_directory(directory)

    def with_tag(self, tag: str) -> list[TestCase]:
        """Return the cases carrying *tag*, in registry order."""
        return [case for case in self._cases if case.has_tag(tag)]

    def chapter_statistics(self) -> dict[str, int]:
        """Count cases per chapter id, in order of first appearance."""
        stats: dict[str, int] = {}
        for case in self._cases:
            chapter = case.chapter
            if chapter is not None:
                stats[chapter] = stats.get(chapter, 0) + 1
        return stats
