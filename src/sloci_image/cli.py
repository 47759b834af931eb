"""
sloci-image CLI

Packs a rootfs directory or ``.tar.gz`` archive into a single-layer OCI
image layout named after the image:

    sloci-image [OPTIONS] ROOTFS NAME[:TAG]

Exit codes: 0 on success (and for --help/--version), 1 on any failure,
including usage errors.
"""
from __future__ import annotations

import logging
import platform
import sys
from typing import List, Optional

import click
import typer
from pydantic import ValidationError
from typer.core import TyperCommand

from . import __version__
from .errors import UsageError
from .models import ImageOptions, ImageReference
from .operations import Operations, OpsConfig, run_and_exit
from .operations.mappers import error_message
from .operations.printers import print_build_summary
from .settings import create_settings_from_env

app = typer.Typer(
    name="sloci-image",
    help="Pack a rootfs into a single-layer OCI image.",
    add_completion=False,
    rich_markup_mode=None,
)


class SlociCommand(TyperCommand):
    """Command that reports usage errors with exit code 1 and the full help text."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            typer.echo(ctx.get_help(), err=True)
            raise


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"sloci-image {__version__}")
        raise typer.Exit()


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


@app.command(cls=SlociCommand)
def build(
    rootfs: str = typer.Argument(..., metavar="ROOTFS", help="Rootfs directory or .tar.gz archive (an archive is moved into the image)"),
    image: str = typer.Argument(..., metavar="NAME[:TAG]", help="Image name and tag (tag defaults to latest)"),
    arch: Optional[str] = typer.Option(None, "--arch", help="Target architecture (default: this machine's)"),
    arch_variant: Optional[str] = typer.Option(None, "--arch-variant", help="Architecture variant, e.g. v7"),
    author: Optional[str] = typer.Option(None, "--author", help="Image author"),
    cmd: Optional[List[str]] = typer.Option(None, "--cmd", help="Default command argument (repeatable)"),
    debug: bool = typer.Option(False, "--debug", help="Print every built document to stderr"),
    entrypoint: Optional[List[str]] = typer.Option(None, "--entrypoint", help="Entrypoint argument (repeatable)"),
    env: Optional[List[str]] = typer.Option(None, "--env", metavar="KEY=VALUE", help="Environment variable (repeatable)"),
    label: Optional[List[str]] = typer.Option(None, "--label", metavar="[.]KEY=VALUE", help="Label; a leading dot means org.opencontainers.image (repeatable)"),
    os_name: str = typer.Option("linux", "--os", help="Target operating system"),
    port: Optional[List[str]] = typer.Option(None, "--port", "--expose", metavar="PORT[/PROTO]", help="Exposed port (repeatable)"),
    tar: bool = typer.Option(False, "--tar", help="Bundle the image into a single .oci-image.tar file"),
    user: Optional[str] = typer.Option(None, "--user", help="Default user"),
    volume: Optional[List[str]] = typer.Option(None, "--volume", help="Volume mount point (repeatable)"),
    working_dir: Optional[str] = typer.Option(None, "--working-dir", help="Default working directory"),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"),
) -> None:
    """Pack ROOTFS into a single-layer OCI image named NAME[:TAG]."""

    def _build() -> None:
        settings = create_settings_from_env()
        debug_on = debug or settings.debug
        _configure_logging(debug_on)

        fields = dict(
            architecture=arch or platform.machine(),
            variant=arch_variant,
            os=os_name,
            author=author,
            user=user,
            working_dir=working_dir,
            env=env or [],
            entrypoint=entrypoint or [],
            cmd=cmd or [],
            ports=port or [],
            volumes=volume or [],
            labels=label or [],
        )
        if settings.created is not None:
            fields["created"] = settings.created
        try:
            ref = ImageReference.parse(image)
            options = ImageOptions(**fields)
        except ValidationError as e:
            raise UsageError(error_message(e)) from e

        ops = Operations(config=OpsConfig(debug=debug_on, tar=tar), settings=settings)
        result = ops.build(rootfs, ref, options)
        print_build_summary(result, verbose=debug_on)

    run_and_exit(_build)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
