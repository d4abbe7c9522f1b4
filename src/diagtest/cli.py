"""Click CLI entry point for diagtest."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from diagtest import __version__
from diagtest.config import (
    CONFIG_FILE,
    ConfigurationError,
    apply_overrides,
    load_config,
    resolve_suite,
    save_config,
)
from diagtest.models import HarnessConfig


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="diagtest")
@click.option(
    "--testpath",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Path to test files",
)
@click.option("--no-color", is_flag=True, default=False, help="Don't use colors")
@click.option("--editor", default=None, help="Editor for opening fixtures")
@click.option("--analyzer", default=None, help="Analyzer as module:attribute")
@click.option("--analyzer-cmd", default=None, help="External analyzer command")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    testpath: Path | None,
    no_color: bool,
    editor: str | None,
    analyzer: str | None,
    analyzer_cmd: str | None,
    verbose: bool,
) -> None:
    """Interactively validate diagnostic test fixtures.

    Without a subcommand, walks the fixture tree and offers to edit, update,
    skip or quit on every failure.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)

    try:
        config = load_config(Path.cwd())
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
        return

    ctx.obj["config"] = apply_overrides(
        config,
        test_path=testpath,
        editor=editor,
        analyzer=analyzer,
        analyzer_command=analyzer_cmd,
        formatted=False if no_color else None,
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(interactive)


def _setup(ctx: click.Context):
    """Resolve the fixture tree and build a runner. Exits 1 on configuration errors."""
    from diagtest.analyzer import load_analyzer
    from diagtest.runner import FixtureRunner

    config: HarnessConfig = ctx.obj["config"]
    try:
        base_path, suite_path = resolve_suite(config, Path.cwd())
        analyzer = load_analyzer(config)
    except ConfigurationError as e:
        click.echo(str(e), err=True)
        ctx.exit(1)
    runner = FixtureRunner(analyzer, header=config.header, formatted=config.formatted)
    return config, base_path, suite_path, runner


@cli.command()
@click.pass_context
def interactive(ctx: click.Context) -> None:
    """Walk the fixture tree interactively (the default)."""
    from diagtest.renderer import styled
    from diagtest.session import SessionController

    config, base_path, suite_path, runner = _setup(ctx)
    stats = SessionController(config, runner).process_path(base_path, suite_path)

    click.echo()
    summary = styled(
        f"{stats.success_count}/{stats.run_count}",
        config.formatted,
        fg="green" if stats.all_passed else "red",
    )
    click.echo(f"Summary: {summary} tests successful.")
    if not stats.all_passed:
        ctx.exit(1)


@cli.command("ci", context_settings={"ignore_unknown_options": True})
@click.argument("pytest_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def ci_cmd(ctx: click.Context, pytest_args: tuple[str, ...]) -> None:
    """Run every fixture non-interactively through pytest (for CI).

    Extra arguments are passed on to pytest, e.g. `diagtest ci -- -x -v`.
    """
    from diagtest.pytest_suite import run_pytest
    from diagtest.registrar import build_suite

    config, base_path, suite_path, runner = _setup(ctx)
    suite = build_suite(base_path, suite_path)
    click.echo(f"Registered {suite.count} test case(s).")

    exit_code = run_pytest(suite, runner, pytest_args)
    if exit_code == 0:
        click.echo("CI: PASSED")
    else:
        click.echo("CI: FAILED")
        ctx.exit(exit_code)


@cli.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    """Show the registered suite tree."""
    from diagtest.registrar import TestSuite, build_suite

    config: HarnessConfig = ctx.obj["config"]
    try:
        base_path, suite_path = resolve_suite(config, Path.cwd())
    except ConfigurationError as e:
        click.echo(str(e), err=True)
        ctx.exit(1)
        return

    def show(suite: TestSuite, depth: int) -> None:
        click.echo(f"{'  ' * depth}{suite.name}/")
        for case in suite.cases:
            click.echo(f"{'  ' * (depth + 1)}{case.name}")
        for sub in suite.suites:
            show(sub, depth + 1)

    root = build_suite(base_path, suite_path)
    for sub in root.suites:
        show(sub, 0)
    for case in root.cases:
        click.echo(case.name)
    click.echo(f"{root.count} test case(s).")


@cli.command()
def init() -> None:
    """Write a default diagtest.yaml in the current directory."""
    project_root = Path.cwd()
    if (project_root / CONFIG_FILE).exists():
        click.echo(f"Warning: {CONFIG_FILE} already exists. Skipping.")
        return
    path = save_config(HarnessConfig(), project_root)
    click.echo(f"Created: {path}")
