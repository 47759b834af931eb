"""
Human-readable output formatting.

Centralizes all CLI output formatting so the command stays thin.
"""
from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from .facade import BuildResult

_console = Console(highlight=False)


def print_build_summary(result: BuildResult, verbose: bool = False) -> None:
    """
    Print the finished image's location and digests.

    Lines are never wrapped, so digests and paths stay copyable.

    Args:
        result: Outcome of the build
        verbose: Also show config digest and diff-id
    """
    image = result.image
    platform = image.platform
    arch = platform.architecture + (f"/{platform.variant}" if platform.variant else "")

    rows = [
        ("Image", escape(str(image.ref))),
        ("Platform", escape(f"{platform.os}/{arch}")),
        ("Output", escape(str(result.output_path))),
        ("Manifest", f"[dim]{image.manifest_digest}[/]"),
        ("Layer", f"[dim]{image.layer_digest}[/] ({_format_bytes(image.layer_size)})"),
    ]
    if verbose:
        rows.append(("Config", f"[dim]{image.config_digest}[/]"))
        rows.append(("Diff-ID", f"[dim]{image.diff_id}[/]"))

    for label, value in rows:
        _console.print(f"[bold]{label}:[/] {value}", soft_wrap=True)


def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Returns:
        Formatted string (e.g., "1.5 MB", "42 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
