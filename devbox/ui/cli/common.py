"""
Helpers shared by CLI commands.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn

import click

from devbox.core.environment import Devbox
from devbox.core.errors import DevboxError


def open_box(ctx: click.Context) -> Devbox:
    """Open the devbox selected by --config (or the cwd), or exit 1."""
    config_path: Path | None = ctx.obj.get("config_path")
    directory = None
    if config_path is not None:
        directory = config_path if config_path.is_dir() else config_path.parent

    try:
        return Devbox.open(directory, shell_enabled=ctx.obj.get("shell_enabled", False))
    except DevboxError as e:
        abort("open", e)


def abort(context: str, error: Exception | str) -> NoReturn:
    """Print ``❌ <context>: <cause>`` to stderr and exit 1."""
    click.secho(f"❌ {context}: {error}", fg="red", err=True)
    sys.exit(1)
