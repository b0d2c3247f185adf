"""Directive-block parser for conformance fixtures.

A fixture may start with a comment block such as::

    /*
    :name: module_decl
    :description: module with no ports
    :should_fail_because: missing endmodule
    :tags: 23.2 modules
    */

The block opens on the first line that starts with ``/*`` and mentions
``:name:``; it ends on the first later line containing ``*/``.  Only the
first such block is read, and unknown directives inside it are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

BLOCK_OPEN = "/*"
BLOCK_CLOSE = "*/"
NAME_MARKER = ":name:"

DEFAULT_MAX_FIXTURE_BYTES = 1024 * 1024

_LINE_STRIP = " \t\r\n"
_VALUE_STRIP = " \t"


class FixtureReadError(OSError):
    """A fixture could not be read (I/O failure or over the size limit)."""


@dataclass
class FixtureMetadata:
    """Metadata carried by a fixture's directive block."""

    description: str = ""
    tags: list[str] = field(default_factory=list)
    should_fail: bool = False
    should_fail_reason: str | None = None


def _set_description(metadata: FixtureMetadata, value: str) -> None:
    metadata.description = value.strip(_VALUE_STRIP)


def _set_should_fail(metadata: FixtureMetadata, value: str) -> None:
    metadata.should_fail = True
    metadata.should_fail_reason = value.strip(_VALUE_STRIP)


def _set_tags(metadata: FixtureMetadata, value: str) -> None:
    tokens = (token.strip(_VALUE_STRIP) for token in value.strip(_VALUE_STRIP).split(" "))
    metadata.tags = [token for token in tokens if token]


class DirectiveParser:
    """Line-oriented parser for the fixture directive block.

    Directives are matched by line prefix.  Extra directives can be added
    with :meth:`register` without touching discovery or execution.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, Callable[[FixtureMetadata, str], None]] = {
            ":description:": _set_description,
            ":should_fail_because:": _set_should_fail,
            ":tags:": _set_tags,
        }

    def register(self, prefix: str, handler: Callable[[FixtureMetadata, str], None]) -> None:
        """Handle lines starting with *prefix* using *handler*."""
        self._handlers[prefix] = handler

    @property
    def directives(self) -> tuple[str, ...]:
        """Recognized directive prefixes."""
        return tuple(self._handlers)

    def parse(self, text: str) -> FixtureMetadata:
        """Parse the first directive block in *text*.

        Text without a block yields default metadata.
        """
        metadata = FixtureMetadata()
        for line in _block_lines(text):
            for prefix, handler in self._handlers.items():
                if line.startswith(prefix):
                    handler(metadata, line[len(prefix) :])
                    break
        return metadata


def _block_lines(text: str) -> Iterator[str]:
    """Yield the trimmed lines inside the first directive block of *text*."""
    lines = iter(text.split("\n"))
    for line in lines:
        trimmed = line.strip(_LINE_STRIP)
        if trimmed.startswith(BLOCK_OPEN) and NAME_MARKER in trimmed:
            break
    else:
        return

    for line in lines:
        trimmed = line.strip(_LINE_STRIP)
        if BLOCK_CLOSE in trimmed:
            return
        yield trimmed


_default_parser = DirectiveParser()


def parse_metadata(text: str) -> FixtureMetadata:
    """Parse fixture *text* with the default directive set."""
    return _default_parser.parse(text)


def read_fixture(path: Path, max_bytes: int = DEFAULT_MAX_FIXTURE_BYTES) -> str:
    """Read a fixture as text.

    Undecodable bytes are replaced rather than rejected.

    Raises:
        FixtureReadError: If the file cannot be read or exceeds *max_bytes*.
    """
    try:
        size = path.stat().st_size
        if size > max_bytes:
            msg = f"{path} is {size} bytes, over the {max_bytes} byte limit"
            raise FixtureReadError(msg)
        with path.open("rb") as handle:
            data = handle.read(max_bytes + 1)
    except FixtureReadError:
        raise
    except OSError as exc:
        raise FixtureReadError(f"Failed to read {path}: {exc}") from exc

    if len(data) > max_bytes:
        raise FixtureReadError(f"{path} grew past the {max_bytes} byte limit while reading")
    return data.decode("utf-8", errors="replace")
