"""Configuration parsing from ``.svconform.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from svconform.backends.command_backend import DEFAULT_ARGV, DEFAULT_TIMEOUT, FILE_PLACEHOLDER
from svconform.benchmark import DEFAULT_ITERATIONS
from svconform.fixtures.loader import DEFAULT_CHAPTERS, DEFAULT_EXTENSIONS, GENERIC_DIR
from svconform.fixtures.metadata import DEFAULT_MAX_FIXTURE_BYTES

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".svconform.yml"
REPORT_FORMATS = frozenset({"terminal", "json"})

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_TRUTHY = {True, "true", "1", "yes"}


class ConfigError(ValueError):
    """The configuration file is malformed or fails validation."""


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _str_list(value: Any, default: tuple[str, ...]) -> list[str]:
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ConfigError(f"Expected a list of strings, got {type(value).__name__}")


@dataclass
class FixturesConfig:
    """Where fixtures live and how they are read."""

    root: str = "sv-tests/tests"
    """Fixture tree root; chapters are ``chapter-<id>`` directories below it."""

    chapters: list[str] = field(default_factory=lambda: list(DEFAULT_CHAPTERS))
    """Chapter ids loaded by a full run, in load order."""

    generic_dir: str = GENERIC_DIR
    """Directory of chapter-less fixtures loaded after the chapters."""

    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    """File extensions treated as fixtures."""

    max_fixture_bytes: int = DEFAULT_MAX_FIXTURE_BYTES
    """Fixtures larger than this are rejected."""


@dataclass
class RunConfig:
    """Test run settings."""

    backend: str = "reference"
    """Backend name resolved through the backend registry."""

    skip_tags: list[str] = field(default_factory=list)
    """Cases carrying any of these tags are reported as skipped."""


@dataclass
class CommandBackendConfig:
    """Settings for the external command backend."""

    argv: list[str] = field(default_factory=lambda: list(DEFAULT_ARGV))
    """Command line; ``{file}`` is replaced by the fixture path."""

    timeout: float = DEFAULT_TIMEOUT
    """Seconds before a compile is treated as hung."""


@dataclass
class BackendsConfig:
    """Per-backend options."""

    command: CommandBackendConfig = field(default_factory=CommandBackendConfig)

    def options_for(self, backend: str) -> dict[str, Any]:
        """Constructor keyword arguments for *backend*."""
        if backend == "command":
            return {"argv": list(self.command.argv), "timeout": self.command.timeout}
        return {}


@dataclass
class BenchmarkConfig:
    """Benchmark settings."""

    iterations: int = DEFAULT_ITERATIONS
    """Iterations for single-source benchmarks."""


@dataclass
class ReportConfig:
    """Reporting and output configuration."""

    format: str = "terminal"
    """Output format: terminal or json."""

    output: str = ""
    """File the JSON report is written to (empty = stdout)."""


@dataclass
class SentryConfig:
    """Sentry error monitoring configuration."""

    enabled: bool = False
    """Opt-in flag. No Sentry data sent unless True."""

    dsn: str = ""
    """Sentry DSN (Data Source Name)."""

    environment: str = ""
    """Override environment tag (``local`` if empty)."""


@dataclass
class SVConformConfig:
    """Complete harness configuration."""

    fixtures: FixturesConfig = field(default_factory=FixturesConfig)
    run: RunConfig = field(default_factory=RunConfig)
    backends: BackendsConfig = field(default_factory=BackendsConfig)
    benchmark: BenchmarkConfig = field(default_factory=BenchmarkConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    sentry: SentryConfig = field(default_factory=SentryConfig)
    source: Path | None = None
    """File the configuration was read from, if any."""

    @property
    def fixtures_root(self) -> Path:
        """Fixture root, relative paths resolved against the config file's directory."""
        root = Path(self.fixtures.root)
        if not root.is_absolute() and self.source is not None:
            return self.source.parent / root
        return root


def _parse_fixtures(raw: dict[str, Any]) -> FixturesConfig:
    fixtures_raw = _section(raw, "fixtures")
    return FixturesConfig(
        root=str(fixtures_raw.get("root", os.environ.get("SVCONFORM_FIXTURES", "sv-tests/tests"))),
        chapters=_str_list(fixtures_raw.get("chapters"), DEFAULT_CHAPTERS),
        generic_dir=str(fixtures_raw.get("generic_dir", GENERIC_DIR) or ""),
        extensions=_str_list(fixtures_raw.get("extensions"), DEFAULT_EXTENSIONS),
        max_fixture_bytes=int(fixtures_raw.get("max_fixture_bytes", DEFAULT_MAX_FIXTURE_BYTES)),
    )


def _parse_backends(raw: dict[str, Any]) -> BackendsConfig:
    command_raw = _section(_section(raw, "backends"), "command")
    return BackendsConfig(
        command=CommandBackendConfig(
            argv=_str_list(command_raw.get("argv"), DEFAULT_ARGV),
            timeout=float(command_raw.get("timeout", DEFAULT_TIMEOUT)),
        )
    )


def _parse_sentry(raw: dict[str, Any]) -> SentryConfig:
    sentry_raw = _section(raw, "sentry")
    enabled_raw = sentry_raw.get("enabled", os.environ.get("SVCONFORM_SENTRY_ENABLED", ""))
    return SentryConfig(
        enabled=enabled_raw in _TRUTHY,
        dsn=str(sentry_raw.get("dsn", os.environ.get("SVCONFORM_SENTRY_DSN", ""))),
        environment=str(sentry_raw.get("environment", "")),
    )


def find_config(start: str | Path) -> Path | None:
    """Return the nearest ``.svconform.yml`` at or above *start*."""
    current = Path(start).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: str | Path | None = None) -> SVConformConfig:
    """Load and parse ``.svconform.yml``.

    *path* may name the file itself or a directory to search upward from;
    ``None`` searches from the current directory.  Missing files yield the
    defaults (plus ``SVCONFORM_*`` environment fallbacks).

    Raises:
        ConfigError: If the file is not valid YAML or has badly typed values.
    """
    if path is not None and Path(path).is_file():
        config_path: Path | None = Path(path)
    else:
        config_path = find_config(path if path is not None else Path.cwd())

    raw: dict[str, Any] = {}
    if config_path is not None:
        try:
            parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            raise ConfigError(f"{config_path} must contain a mapping at the top level")
        logger.debug("Loaded configuration from %s", config_path)

    run_raw = _section(raw, "run")
    report_raw = _section(raw, "report")
    benchmark_raw = _section(raw, "benchmark")

    try:
        return SVConformConfig(
            fixtures=_parse_fixtures(raw),
            run=RunConfig(
                backend=str(run_raw.get("backend", os.environ.get("SVCONFORM_BACKEND", "reference"))),
                skip_tags=_str_list(run_raw.get("skip_tags"), ()),
            ),
            backends=_parse_backends(raw),
            benchmark=BenchmarkConfig(
                iterations=int(benchmark_raw.get("iterations", DEFAULT_ITERATIONS)),
            ),
            report=ReportConfig(
                format=str(report_raw.get("format", "terminal")),
                output=str(report_raw.get("output", "") or ""),
            ),
            sentry=_parse_sentry(raw),
            source=config_path,
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value in {config_path or CONFIG_FILENAME}: {exc}") from exc


def _validate_fixtures(fixtures: FixturesConfig) -> list[str]:
    errors: list[str] = []
    if fixtures.max_fixture_bytes <= 0:
        errors.append(
            f"fixtures.max_fixture_bytes must be positive (got: {fixtures.max_fixture_bytes})"
        )
    if not fixtures.extensions:
        errors.append("fixtures.extensions must not be empty")
    errors.extend(
        f"fixtures.extensions entry '{ext}' must start with '.'"
        for ext in fixtures.extensions
        if not ext.startswith(".")
    )
    return errors


def _validate_command(command: CommandBackendConfig) -> list[str]:
    errors: list[str] = []
    if not command.argv:
        errors.append("backends.command.argv must not be empty")
    elif not any(FILE_PLACEHOLDER in arg for arg in command.argv):
        errors.append(f"backends.command.argv must contain the {FILE_PLACEHOLDER} placeholder")
    if command.timeout <= 0:
        errors.append(f"backends.command.timeout must be positive (got: {command.timeout})")
    return errors


def validate_config(config: SVConformConfig, *, backend: str | None = None) -> list[str]:
    """Validate the configuration and return a list of error messages.

    *backend* names the backend about to be used when it differs from
    ``run.backend`` (e.g. chosen on the command line); its settings are
    checked instead.

    Returns an empty list if the configuration is valid.
    """
    errors = _validate_fixtures(config.fixtures)

    if not config.run.backend:
        errors.append("run.backend is required")
    if (backend or config.run.backend) == "command":
        errors.extend(_validate_command(config.backends.command))

    if config.benchmark.iterations <= 0:
        errors.append(
            f"benchmark.iterations must be positive (got: {config.benchmark.iterations})"
        )

    if config.report.format not in REPORT_FORMATS:
        errors.append(
            f"report.format must be one of {', '.join(sorted(REPORT_FORMATS))} "
            f"(got: {config.report.format})"
        )

    if config.sentry.enabled and not config.sentry.dsn:
        errors.append("sentry.dsn is required when sentry.enabled is true")

    return errors
