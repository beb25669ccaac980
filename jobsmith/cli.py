"""
CLI interface for jobsmith.

Provides commands to preset, lint and compile workflow definitions against a
spec store snapshot.

Workflows and stores are YAML (or JSON) files:

    jobsmith compile workflow.yaml --store store.yaml --task-id 42
    jobsmith lint workflow.yaml --store store.yaml
"""

import json
import sys
from pathlib import Path
from typing import Any

import click
import yaml

from jobsmith import __version__


def _load_workflow(path: Path):
    """Load a Workflow from a YAML/JSON file."""
    from jobsmith.schemas import Workflow

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid workflow file {path}: {e}")
    if not isinstance(data, dict):
        raise click.ClickException(f"Workflow file {path} must contain a mapping")
    try:
        return Workflow.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise click.ClickException(f"Invalid workflow in {path}: {e!r}")


def _build_compiler(ctx, store_path: Path):
    """Create a Compiler bound to the store file and loaded config."""
    from jobsmith.compiler import Compiler
    from jobsmith.jobs import JobDeps
    from jobsmith.store import load_store

    try:
        store = load_store(store_path)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))
    return Compiler(JobDeps(store=store, config=ctx.obj["config"]))


def _emit(data: Any, fmt: str) -> None:
    """Write data to stdout as JSON or YAML."""
    if fmt == "yaml":
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)
    else:
        click.echo(json.dumps(data, indent=2))


def _fail(error: Exception) -> None:
    """Report a jobsmith error and exit non-zero."""
    click.echo(f"✗ {type(error).__name__}: {error}", err=True)
    sys.exit(1)


workflow_argument = click.argument(
    "workflow_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
store_option = click.option(
    "--store", "store_file", required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Spec store snapshot (YAML or JSON)",
)
format_option = click.option(
    "--format", "fmt", type=click.Choice(["json", "yaml"]), default="json",
    show_default=True, help="Output format",
)


@click.group()
@click.version_option(version=__version__, prog_name="jobsmith")
@click.option("--config", "config_file", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Path to jobsmith.yaml (default: $JOBSMITH_CONFIG)")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.pass_context
def main(ctx, config_file, log_level):
    """
    jobsmith - compile workflow jobs into task graphs.
    """
    from jobsmith.config import ConfigError, load_config
    from jobsmith.utils import setup_logging

    ctx.ensure_object(dict)
    try:
        config = load_config(config_file)
    except ConfigError as e:
        raise click.ClickException(f"Config error: {e}")
    ctx.obj["config"] = config

    setup_logging(
        log_level=log_level or config.get_log_level(),
        log_format=config.get_log_format(),
        log_file=config.get_log_file_path(),
    )


@main.command("compile")
@workflow_argument
@store_option
@format_option
@click.option("--task-id", type=int, default=0, show_default=True, help="Run identifier")
@click.option("--preset/--no-preset", default=False, help="Run preset on every job first")
@click.pass_context
def compile_cmd(ctx, workflow_file, store_file, fmt, task_id, preset):
    """Compile WORKFLOW_FILE into a task graph."""
    from jobsmith.errors import JobsmithError

    workflow = _load_workflow(workflow_file)
    compiler = _build_compiler(ctx, store_file)
    try:
        if preset:
            compiler.preset(workflow)
        graph = compiler.compile(workflow, task_id=task_id)
    except JobsmithError as e:
        _fail(e)
        return
    _emit(graph.to_dict(), fmt)


@main.command()
@workflow_argument
@store_option
@format_option
@click.pass_context
def preset(ctx, workflow_file, store_file, fmt):
    """Print WORKFLOW_FILE with every job's preset applied."""
    from jobsmith.errors import JobsmithError

    workflow = _load_workflow(workflow_file)
    compiler = _build_compiler(ctx, store_file)
    try:
        compiler.preset(workflow)
    except JobsmithError as e:
        _fail(e)
        return
    _emit(workflow.to_dict(), fmt)


@main.command()
@workflow_argument
@store_option
@click.pass_context
def lint(ctx, workflow_file, store_file):
    """Check that every reference in WORKFLOW_FILE resolves."""
    from jobsmith.errors import JobsmithError

    workflow = _load_workflow(workflow_file)
    compiler = _build_compiler(ctx, store_file)
    try:
        compiler.lint(workflow)
    except JobsmithError as e:
        _fail(e)
        return
    click.echo(f"✓ {workflow.name}: {len(workflow.jobs)} job(s) OK")


@main.command()
@workflow_argument
@store_option
@format_option
@click.pass_context
def outputs(ctx, workflow_file, store_file, fmt):
    """List output references declared by WORKFLOW_FILE's jobs."""
    from jobsmith.errors import JobsmithError

    workflow = _load_workflow(workflow_file)
    compiler = _build_compiler(ctx, store_file)
    try:
        result = compiler.outputs(workflow)
    except JobsmithError as e:
        _fail(e)
        return
    for warning in result.warnings:
        click.echo(f"! {warning}", err=True)
    _emit(result.values, fmt)


if __name__ == "__main__":
    main()
