"""
CLI commands for the package list — add, remove.

Thin wrappers over ``Devbox.add`` / ``Devbox.remove``.
"""

from __future__ import annotations

import click

from devbox.core.errors import DevboxError
from devbox.ui.cli.common import abort, open_box


@click.command()
@click.argument("pkgs", nargs=-1, required=True)
@click.pass_context
def add(ctx: click.Context, pkgs: tuple[str, ...]) -> None:
    """Add Nix packages to devbox.json and install them."""
    box = open_box(ctx)
    try:
        box.add(*pkgs)
    except DevboxError as e:
        abort("add", e)


@click.command()
@click.argument("pkgs", nargs=-1, required=True)
@click.pass_context
def remove(ctx: click.Context, pkgs: tuple[str, ...]) -> None:
    """Remove Nix packages from devbox.json and uninstall them."""
    box = open_box(ctx)
    try:
        box.remove(*pkgs)
    except DevboxError as e:
        abort("remove", e)
