"""
Deterministic archive export.

Packs a finished OCI Image Layout directory into a single uncompressed tar
file. Creates byte-identical archives from identical input trees by sorting
entries and normalizing tar headers.
"""
from __future__ import annotations

import os
import tarfile
import tempfile
from pathlib import Path
from typing import Iterator, Tuple

from .models import ImageReference, Platform

__all__ = ["write_deterministic_archive", "tarball_name"]

TARBALL_SUFFIX = ".oci-image.tar"


def tarball_name(ref: ImageReference, platform: Platform) -> str:
    """
    File name for a single-file image.

    ``<name>-<tag>-<arch>[-<variant>]-<os>.oci-image.tar``, with ``/`` and
    ``:`` in the name replaced by ``_``.
    """
    name = ref.name.replace("/", "_").replace(":", "_")
    parts = [name, ref.tag, platform.architecture]
    if platform.variant:
        parts.append(platform.variant)
    parts.append(platform.os)
    return "-".join(parts) + TARBALL_SUFFIX


def write_deterministic_archive(src_dir: str, out_path: str) -> None:
    """
    Create deterministic tar archive from source directory.

    The directory's contents end up at the archive root, so an image
    layout reads back as ``oci-layout``, ``index.json`` and ``blobs/...``.

    Produces byte-identical archives from identical input trees by:
    - Setting deterministic tar headers (uid=0, gid=0, mtime=0)
    - Using USTAR format without PAX headers
    - Sorting entries deterministically

    Args:
        src_dir: Source directory to archive
        out_path: Output archive path

    Raises:
        ValueError: If src_dir doesn't exist
        OSError: If archive creation fails
    """
    src_path = Path(src_dir).resolve()
    if not src_path.is_dir():
        raise ValueError(f"Source directory does not exist: {src_dir}")

    out_path = Path(out_path).resolve()

    # Write next to the target so the final rename stays on one filesystem
    with tempfile.NamedTemporaryFile(dir=out_path.parent, prefix=out_path.name + ".",
                                     suffix=".tmp", delete=False) as tmp:
        tmp_path = Path(tmp.name)
        try:
            with tarfile.open(fileobj=tmp, mode="w", format=tarfile.USTAR_FORMAT) as tar:
                for entry_path, arcname in _iter_layout_entries(src_path):
                    _add_canonical(tar, entry_path, arcname)
        except BaseException:
            tmp.close()
            tmp_path.unlink(missing_ok=True)
            raise

    os.replace(tmp_path, out_path)


def _iter_layout_entries(src_dir: Path) -> Iterator[Tuple[Path, str]]:
    """
    Yield ``(filesystem_path, archive_name)`` for everything under ``src_dir``.

    Sorted by archive name, which puts each directory before its contents.
    """
    entries = [(path, path.relative_to(src_dir).as_posix()) for path in src_dir.rglob("*")]
    return iter(sorted(entries, key=lambda entry: entry[1]))


def _add_canonical(tar: tarfile.TarFile, entry_path: Path, arcname: str) -> None:
    tarinfo = tar.gettarinfo(str(entry_path), arcname=arcname)
    _apply_canonical_headers(tarinfo)
    if tarinfo.isreg():
        with open(entry_path, "rb") as entry_file:
            tar.addfile(tarinfo, entry_file)
    else:
        tar.addfile(tarinfo)


def _apply_canonical_headers(tarinfo: tarfile.TarInfo) -> None:
    """
    Apply canonical tar headers for deterministic output.

    Sets consistent ownership, timestamps, and permissions while
    preserving essential file type information.
    """
    tarinfo.uid = 0
    tarinfo.gid = 0
    tarinfo.uname = ""
    tarinfo.gname = ""
    tarinfo.mtime = 0

    if tarinfo.isdir():
        tarinfo.mode = 0o755
    elif tarinfo.isreg():
        tarinfo.mode = 0o644
