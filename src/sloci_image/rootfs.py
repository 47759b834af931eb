"""
Root filesystem layer production.

Turns a rootfs directory into a gzip-compressed tar layer, or validates a
ready-made ``.tar.gz``, and computes the layer's diff-id: the digest of the
uncompressed tar stream. The diff-id is computed in the same pass that
writes or reads the stream; decompressed bytes are never stored.
"""
from __future__ import annotations

import errno
import gzip
import hashlib
import logging
import os
import tarfile
import zlib
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, Optional, Tuple, Union

from .digest import ALGORITHM, CHUNK_SIZE, Digest, HashingWriter
from .errors import ArchiveError, InputError

logger = logging.getLogger(__name__)

__all__ = ["write_layer_from_directory", "diff_id_of_archive", "HashingReader"]

# Errors that mean "this filesystem has no xattrs here", not a real failure
_NO_XATTR_ERRNOS = {errno.ENOTSUP, errno.EOPNOTSUPP, errno.ENODATA}

PathLike = Union[str, Path]


class HashingReader:
    """Read-only file-like wrapper that hashes everything read through it."""

    def __init__(self, source: BinaryIO) -> None:
        self._source = source
        self._hasher = hashlib.new(ALGORITHM)
        self.size = 0

    def read(self, size: int = -1) -> bytes:
        data = self._source.read(size)
        self._hasher.update(data)
        self.size += len(data)
        return data

    def drain(self) -> None:
        """Read and hash whatever is left in the source."""
        while self.read(CHUNK_SIZE):
            pass

    @property
    def digest(self) -> Digest:
        return Digest.from_hash(self._hasher)


def write_layer_from_directory(src_dir: PathLike, out_path: PathLike, *,
                               gzip_level: int = 6,
                               clamp_mtime: Optional[int] = None) -> Digest:
    """
    Archive a rootfs directory into a gzip-compressed tar layer.

    Entries are written in sorted order with paths relative to ``src_dir``.
    Ownership is stored numerically, and modes (including setuid, setgid
    and sticky bits), symlinks, hard links, device nodes and extended
    attributes are preserved. The gzip header has no name and mtime 0.

    Args:
        src_dir: Rootfs directory; left untouched
        out_path: Where to write the compressed layer
        gzip_level: Compression level 0-9
        clamp_mtime: If set, newer entry mtimes are lowered to this value

    Returns:
        The layer's diff-id (digest of the uncompressed tar stream)

    Raises:
        InputError: If ``src_dir`` is not a directory
        ArchiveError: If reading the tree or writing the layer fails
    """
    src = Path(src_dir)
    if not src.is_dir():
        raise InputError(f"Not a directory: {src_dir}")

    count = 0
    try:
        with open(out_path, "wb") as raw:
            with gzip.GzipFile(filename="", mode="wb", fileobj=raw,
                               compresslevel=gzip_level, mtime=0) as gz:
                hashing = HashingWriter(gz)
                with tarfile.open(fileobj=hashing, mode="w|", format=tarfile.PAX_FORMAT) as tar:
                    for entry_path, arcname in _iter_entries_sorted(src):
                        if _add_entry(tar, entry_path, arcname, clamp_mtime):
                            count += 1
    except (OSError, tarfile.TarError) as e:
        raise ArchiveError(f"Failed to archive {src_dir}: {e}") from e

    diff_id = hashing.digest
    logger.debug(f"Archived {count} entries from {src} ({hashing.size} bytes uncompressed), diff-id {diff_id}")
    return diff_id


def diff_id_of_archive(path: PathLike) -> Digest:
    """
    Validate a gzip-compressed tar archive and return its diff-id.

    Decompresses the archive once, walking the tar headers to prove it is a
    tar stream and hashing every decompressed byte, trailing padding included.

    Raises:
        InputError: If the file is not readable as gzip + tar
    """
    try:
        with gzip.open(path, "rb") as gz:
            reader = HashingReader(gz)
            with tarfile.open(fileobj=reader, mode="r|") as tar:
                count = sum(1 for _ in tar)
            reader.drain()
    except (OSError, EOFError, zlib.error, tarfile.TarError) as e:
        raise InputError(f"Not a gzip-compressed tar archive: {path}: {e}") from e

    diff_id = reader.digest
    logger.debug(f"Validated {path}: {count} entries, {reader.size} bytes uncompressed, diff-id {diff_id}")
    return diff_id


def _iter_entries_sorted(src_dir: Path) -> Iterator[Tuple[Path, str]]:
    """
    Yield ``(filesystem_path, archive_name)`` pairs sorted by archive name.

    Sorting puts every directory before its contents. Symlinks to
    directories are yielded but not descended into.
    """
    entries = []
    for root, dirs, files in os.walk(src_dir):
        root_path = Path(root)
        for name in dirs + files:
            entry_path = root_path / name
            entries.append((entry_path, entry_path.relative_to(src_dir).as_posix()))
    entries.sort(key=lambda x: x[1])
    yield from entries


def _add_entry(tar: tarfile.TarFile, entry_path: Path, arcname: str,
               clamp_mtime: Optional[int]) -> bool:
    tarinfo = tar.gettarinfo(str(entry_path), arcname=arcname)
    if tarinfo is None:
        # sockets and other types tar cannot represent
        logger.debug(f"Skipping unsupported file type: {entry_path}")
        return False

    # Numeric ownership; host user names mean nothing inside the image
    tarinfo.uname = ""
    tarinfo.gname = ""
    # Whole seconds only, so PAX does not record sub-second mtimes
    mtime = int(tarinfo.mtime)
    if clamp_mtime is not None and mtime > clamp_mtime:
        mtime = clamp_mtime
    tarinfo.mtime = mtime
    for name, value in _read_xattrs(entry_path).items():
        tarinfo.pax_headers[f"SCHILY.xattr.{name}"] = value.decode("utf-8", "surrogateescape")

    if tarinfo.isreg():
        with open(entry_path, "rb") as entry_file:
            tar.addfile(tarinfo, entry_file)
    else:
        tar.addfile(tarinfo)
    return True


def _read_xattrs(path: Path) -> Dict[str, bytes]:
    """Extended attributes of ``path`` (not following symlinks); POSIX ACLs are among them on Linux."""
    if not hasattr(os, "listxattr"):
        return {}
    try:
        names = os.listxattr(path, follow_symlinks=False)
        return {name: os.getxattr(path, name, follow_symlinks=False) for name in sorted(names)}
    except OSError as e:
        if e.errno in _NO_XATTR_ERRNOS:
            return {}
        raise
