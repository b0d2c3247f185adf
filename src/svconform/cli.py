"""svconform CLI: top-level command group."""

from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from svconform import __version__
from svconform.adapters.adapter import CompilerAdapter
from svconform.adapters.base import AdapterConstructionError, SVConformError
from svconform.adapters.registry import get_registry
from svconform.benchmark import BENCHMARK_MAX_FILE_BYTES, Benchmark
from svconform.config import ConfigError, SentryConfig, load_config, validate_config
from svconform.fixtures.loader import TestRegistry, chapter_dir
from svconform.fixtures.metadata import FixtureReadError, read_fixture
from svconform.reporters.json_reporter import JSONReporter
from svconform.reporters.terminal import reporter
from svconform.runner import RunReport, TestRunner
from svconform.telemetry.sentry_integration import init_sentry

if TYPE_CHECKING:
    from collections.abc import Callable

    from svconform.adapters.base import CompilerInfo
    from svconform.benchmark import BenchmarkResult
    from svconform.config import SVConformConfig

logger = logging.getLogger(__name__)
console = Console()

_MIN_MASKED_VALUE_LENGTH = 8

# Compiled by ``bench`` when no source is given.
BENCHMARK_SNIPPET = """\
module counter #(parameter WIDTH = 8) (
    input  logic             clk,
    input  logic             rst_n,
    output logic [WIDTH-1:0] count
);
    always_ff @(posedge clk or negedge rst_n) begin
        if (!rst_n)
            count <= '0;
        else
            count <= count + 1'b1;
    end
endmodule
"""


def _setup_logging(level: int) -> None:
    """Route ``svconform`` log records to stderr through rich."""
    package_logger = logging.getLogger("svconform")
    for handler in list(package_logger.handlers):
        if isinstance(handler, RichHandler):
            package_logger.removeHandler(handler)
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    handler.setLevel(level)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)


def _init_sentry_from_env() -> None:
    """Initialize Sentry from environment variables before any config is read."""
    enabled_raw = os.environ.get("SVCONFORM_SENTRY_ENABLED", "").strip().lower()
    if enabled_raw not in {"1", "true", "yes"}:
        return
    dsn = os.environ.get("SVCONFORM_SENTRY_DSN", "").strip()
    if dsn:
        init_sentry(SentryConfig(enabled=True, dsn=dsn))


def _config_to_dict(config: SVConformConfig) -> dict[str, Any]:
    result = asdict(config)
    result["source"] = str(config.source) if config.source is not None else None
    return result


def _mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *config_dict* with the Sentry DSN masked."""
    result = copy.deepcopy(config_dict)
    sentry = result.get("sentry", {})
    dsn = sentry.get("dsn")
    if isinstance(dsn, str) and dsn:
        if len(dsn) > _MIN_MASKED_VALUE_LENGTH:
            sentry["dsn"] = f"{dsn[:4]}...{dsn[-4:]}"
        else:
            sentry["dsn"] = "***"
    return result


def _load_config_or_abort(path: str | None) -> SVConformConfig:
    try:
        return load_config(path)
    except ConfigError as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


def _load_valid_config(path: str | None, backend: str | None = None) -> SVConformConfig:
    """Load configuration, refusing to continue when it fails validation.

    *backend* is the backend selected on the command line, if any.
    """
    config = _load_config_or_abort(path)
    errors = validate_config(config, backend=backend)
    if errors:
        reporter.print_error(f"Found {len(errors)} configuration error(s):")
        for idx, error in enumerate(errors, start=1):
            console.print(f"  {idx}. [red]{error}[/red]")
        raise click.Abort
    init_sentry(config.sentry)
    return config


def _compiler_factory(config: SVConformConfig, backend: str) -> Callable[[], object]:
    try:
        return get_registry().factory(backend, config.backends.options_for(backend))
    except SVConformError as e:
        reporter.print_error(str(e))
        raise click.Abort from e


# ── Test runs ──────────────────────────────────────────────────────────


def _run_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by ``run`` and ``compliance``."""
    options = [
        click.option(
            "--path",
            default=None,
            type=click.Path(exists=True, resolve_path=True),
            help="Config file, or directory to search for .svconform.yml.",
        ),
        click.option(
            "--root",
            default=None,
            type=click.Path(file_okay=False),
            help="Fixture root (overrides fixtures.root).",
        ),
        click.option("--tag", default=None, help="Run only cases carrying this tag."),
        click.option(
            "--chapter",
            default=None,
            help="Run only the fixtures under chapter-<ID>.",
        ),
        click.option("--stats", is_flag=True, help="Print per-chapter test counts."),
        click.option("--json-output", "as_json", is_flag=True, help="Print a JSON report."),
        click.option(
            "--report-file",
            default=None,
            type=click.Path(dir_okay=False),
            help="Also write the JSON report to this file.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_runner(
    config: SVConformConfig,
    backend: str,
    fixtures_root: Path,
    *,
    quiet: bool,
) -> TestRunner:
    registry = TestRegistry(
        extensions=config.fixtures.extensions,
        max_fixture_bytes=config.fixtures.max_fixture_bytes,
    )
    factory = _compiler_factory(config, backend)
    try:
        return TestRunner(
            registry,
            factory,
            observer=None if quiet else reporter,
            skip_tags=config.run.skip_tags,
            max_fixture_bytes=config.fixtures.max_fixture_bytes,
            fixtures_root=fixtures_root,
        )
    except (SVConformError, ValueError) as e:
        reporter.print_error(f"Cannot use backend '{backend}': {e}")
        raise click.Abort from e


def _emit_json(
    *,
    as_json: bool,
    report_file: str | None,
    run_report: RunReport,
    compiler: CompilerInfo,
    extra: dict[str, Any] | None = None,
) -> None:
    json_reporter = JSONReporter()
    if as_json:
        click.echo(json_reporter.generate_string(run_report=run_report, compiler=compiler, extra=extra))
    if report_file:
        json_reporter.generate(
            Path(report_file), run_report=run_report, compiler=compiler, extra=extra
        )


def _execute_run(
    backend: str | None,
    *,
    path: str | None,
    root: str | None,
    tag: str | None,
    chapter: str | None,
    stats: bool,
    as_json: bool,
    report_file: str | None,
) -> None:
    config = _load_valid_config(path, backend)
    backend_name = backend or config.run.backend
    fixtures_root = Path(root) if root else config.fixtures_root
    as_json = as_json or config.report.format == "json"
    report_file = report_file or config.report.output or None

    runner = _build_runner(config, backend_name, fixtures_root, quiet=as_json)
    if chapter is not None:
        runner.registry.reload_scoped(chapter_dir(fixtures_root, chapter))
    else:
        runner.registry.load_catalog(
            fixtures_root,
            config.fixtures.chapters,
            generic_dir=config.fixtures.generic_dir or None,
        )
    if not as_json:
        reporter.print_run_header(runner.compiler_info, len(runner.registry))

    try:
        _run_loaded(
            runner,
            tag=tag,
            stats=stats,
            as_json=as_json,
            report_file=report_file,
        )
    except AdapterConstructionError as e:
        reporter.print_error(f"Cannot use backend '{backend_name}': {e}")
        raise click.Abort from e


def _run_loaded(
    runner: TestRunner,
    *,
    tag: str | None,
    stats: bool,
    as_json: bool,
    report_file: str | None,
) -> None:
    """Run the cases already loaded into *runner* and report them."""
    if tag is not None:
        tag_report = runner.run_by_tag(tag)
        run_report = RunReport()
        for result in tag_report.cases:
            run_report.record(result)
        if not as_json:
            reporter.print_tag_report(tag_report)
        _emit_json(
            as_json=as_json,
            report_file=report_file,
            run_report=run_report,
            compiler=runner.compiler_info,
            extra={"tag": tag},
        )
        if not tag_report.success:
            raise SystemExit(1)
        return

    run_report = runner.run_all()
    if not as_json:
        if stats:
            reporter.print_chapter_statistics(runner.chapter_statistics())
        reporter.print_run_report(run_report)
    _emit_json(
        as_json=as_json,
        report_file=report_file,
        run_report=run_report,
        compiler=runner.compiler_info,
        extra={"chapters": runner.chapter_statistics()} if stats else None,
    )
    if not run_report.success:
        raise SystemExit(run_report.exit_code)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Show passing tests and progress logs.")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="svconform")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool, debug: bool) -> None:
    """svconform: SystemVerilog conformance harness."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    reporter.verbose = verbose or debug
    if debug:
        _setup_logging(logging.DEBUG)
    elif verbose:
        _setup_logging(logging.INFO)
    else:
        _setup_logging(logging.WARNING)
    _init_sentry_from_env()


@cli.command("run")
@click.option("--backend", default=None, help="Backend to test (overrides run.backend).")
@_run_options
def run_cmd(backend: str | None, **options: Any) -> None:
    """Run all conformance tests.

    Exits with status 1 when any test failed or errored.

    Example:
      svconform run --root sv-tests/tests --stats
      svconform run --chapter 5
      svconform run --tag 23.2
    """
    _execute_run(backend, **options)


@cli.command("compliance")
@click.argument("backend")
@_run_options
def compliance_cmd(backend: str, **options: Any) -> None:
    """Run compliance tests for one backend.

    Example:
      svconform compliance command --root sv-tests/tests
    """
    _execute_run(backend, **options)


# ── Benchmarks ─────────────────────────────────────────────────────────


@cli.command("bench")
@click.argument("files", nargs=-1, type=click.Path(dir_okay=False))
@click.option(
    "--path",
    default=None,
    type=click.Path(exists=True, resolve_path=True),
    help="Config file, or directory to search for .svconform.yml.",
)
@click.option("--backend", default=None, help="Backend to benchmark.")
@click.option(
    "--iterations",
    default=None,
    type=click.IntRange(min=1),
    help="Repetitions of the single source (default: benchmark.iterations).",
)
@click.option(
    "--source",
    "source_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Source file to compile repeatedly (default: a built-in module).",
)
@click.option("--json-output", "as_json", is_flag=True, help="Print results as JSON.")
def bench_cmd(
    files: tuple[str, ...],
    path: str | None,
    backend: str | None,
    iterations: int | None,
    source_file: str | None,
    *,
    as_json: bool,
) -> None:
    """Measure compile latency.

    With FILES, each file is compiled once; otherwise a single source is
    compiled repeatedly.

    Example:
      svconform bench --iterations 500
      svconform bench sv-tests/tests/chapter-5/*.sv
    """
    config = _load_valid_config(path, backend)
    backend_name = backend or config.run.backend
    factory = _compiler_factory(config, backend_name)

    source = BENCHMARK_SNIPPET
    if source_file and not files:
        try:
            source = read_fixture(Path(source_file), BENCHMARK_MAX_FILE_BYTES)
        except FixtureReadError as e:
            reporter.print_error(str(e))
            raise click.Abort from e

    try:
        adapter = CompilerAdapter(factory())
    except (SVConformError, ValueError) as e:
        reporter.print_error(f"Cannot use backend '{backend_name}': {e}")
        raise click.Abort from e

    results: dict[str, BenchmarkResult] = {}
    with adapter:
        benchmark = Benchmark(adapter)
        if files:
            results[f"{len(files)} files"] = benchmark.run_files(files)
        else:
            label = Path(source_file).name if source_file else "built-in module"
            results[label] = benchmark.run_single(
                source, iterations or config.benchmark.iterations
            )
        info = adapter.describe()

    if as_json:
        click.echo(JSONReporter().generate_string(compiler=info, benchmarks=results))
        return

    reporter.print_header(f"Benchmarking {info.name} {info.version}")
    for label, result in results.items():
        reporter.print_benchmark(label, result)


# ── Backends ───────────────────────────────────────────────────────────


@cli.command("backends")
def backends_cmd() -> None:
    """List registered compiler backends."""
    registry = get_registry()
    rows: list[tuple[str, CompilerInfo | None]] = []
    for name in registry.list_backends():
        try:
            rows.append((name, CompilerAdapter(registry.get_backend(name)).describe()))
        except Exception as e:
            logger.warning("Backend %s could not be described: %s", name, e)
            rows.append((name, None))

    if not rows:
        reporter.print_warning("No backends registered")
        return
    reporter.print_backends(rows)


# ── Configuration ──────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Inspect `.svconform.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=None,
    type=click.Path(exists=True, resolve_path=True),
    help="Config file, or directory to search for .svconform.yml.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
def config_show(path: str | None, *, as_json: bool) -> None:
    """Display the resolved configuration.

    Example:
      svconform config show
      svconform config show --json-output
    """
    config = _load_config_or_abort(path)
    config_dict = _mask_sensitive_values(_config_to_dict(config))

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
        return

    console.print()
    console.print("[bold cyan]Configuration:[/bold cyan]")
    console.print()
    click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=None,
    type=click.Path(exists=True, resolve_path=True),
    help="Config file, or directory to search for .svconform.yml.",
)
def config_validate(path: str | None) -> None:
    """Validate `.svconform.yml`.

    Example:
      svconform config validate
    """
    config = _load_config_or_abort(path)
    errors = validate_config(config)

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()
    raise click.Abort


def main() -> None:
    """Console-script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
