"""
devbox — CLI entrypoint.

Usage:
    devbox init
    devbox add python3 git
    devbox shell
    devbox shell -- make test
    devbox build --name myapp
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import click

from devbox import __version__
from devbox.adapters.shell.nix_shell import SHELL_ENABLED_ENV
from devbox.core.config.featureflag import parse_bool
from devbox.core.errors import DevboxError
from devbox.core.observability.logging_config import resolve_level, setup_logging
from devbox.ui.cli.common import abort, open_box


@click.group()
@click.version_option(version=__version__, prog_name="devbox")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to devbox.json or its directory (default: search upward from cwd).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devbox — isolated, reproducible development environments."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    # Read once here; the core never looks at the environment for this
    ctx.obj["shell_enabled"] = bool(parse_bool(os.environ.get(SHELL_ENABLED_ENV)))

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("DEVBOX_LOG_FILE"),
        log_file_level=os.environ.get("DEVBOX_LOG_FILE_LEVEL"),
    )


@cli.command()
@click.argument("directory", required=False, type=click.Path(file_okay=False))
def init(directory: str | None) -> None:
    """Create a devbox.json in DIRECTORY (default: the current directory)."""
    from devbox.core.config.loader import CONFIG_FILENAME, init_config

    target = Path(directory) if directory else Path.cwd()
    try:
        target.mkdir(parents=True, exist_ok=True)
        created = init_config(target)
    except (OSError, DevboxError) as e:
        abort("init", e)

    if created:
        click.secho(f"✅ Created {target / CONFIG_FILENAME}", fg="green")
    else:
        click.echo(f"{target / CONFIG_FILENAME} already exists")


@cli.command()
@click.pass_context
def generate(ctx: click.Context) -> None:
    """Generate the Nix files and Dockerfile under .devbox/gen/."""
    box = open_box(ctx)
    try:
        box.generate()
    except DevboxError as e:
        abort("generate", e)
    click.echo(f"Generated files in {box.gen_dir}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, as_json: bool) -> None:
    """Show the build plan: devbox.json merged with the detected project type."""
    box = open_box(ctx)
    try:
        result = box.build_plan()
    except DevboxError as e:
        abort("plan", e)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho(f"\n📋 Plan ({result.planner or 'no project type detected'})", fg="cyan", bold=True)
    click.echo(f"   Dev packages:     {', '.join(result.dev_packages) or '-'}")
    click.echo(f"   Runtime packages: {', '.join(result.runtime_packages) or '-'}")
    for name in ("install", "build", "start"):
        stage = result.stage(name)
        click.echo(f"   {name.capitalize() + ' stage:':<18}{stage.script or '-'}")

    for warning in result.warnings:
        click.secho(f"   ⚠️  {warning}", fg="yellow")
    if result.invalid():
        click.secho(f"   ❌ {result.error()}", fg="red")
    click.echo()


@cli.command()
@click.option("--name", default="devbox", show_default=True, help="Image name.")
@click.option("--tags", "-t", multiple=True, help="Image tag (repeatable; default: latest).")
@click.option("--engine", default="docker", show_default=True, help="Container CLI to use.")
@click.pass_context
def build(ctx: click.Context, name: str, tags: tuple[str, ...], engine: str) -> None:
    """Build a container image of the devbox environment."""
    from devbox.core.environment import BuildFlags

    box = open_box(ctx)
    flags = BuildFlags(name=name, tags=list(tags) or ["latest"], engine=engine)
    try:
        box.build(flags)
    except DevboxError as e:
        abort("build", e)


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("cmd", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def shell(ctx: click.Context, cmd: tuple[str, ...]) -> None:
    """Start a devbox shell, or run CMD inside the environment.

    \b
    devbox shell
    devbox shell -- python --version
    """
    box = open_box(ctx)
    try:
        if cmd:
            box.exec(*cmd)
        else:
            box.shell()
    except DevboxError as e:
        abort("shell", e)


from devbox.ui.cli.packages import add, remove  # noqa: E402

cli.add_command(add)
cli.add_command(remove)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
