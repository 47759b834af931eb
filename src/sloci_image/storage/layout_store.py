"""
Blob store backed by an OCI Image Layout directory.

Blobs live at ``<root>/blobs/<algorithm>/<hex>``. Writes go through a temp
file in the same directory followed by a rename, so a blob path only ever
holds complete content.
"""
from __future__ import annotations

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Union

from ..digest import ALGORITHM, CHUNK_SIZE, Digest, digest_bytes, digest_file
from ..errors import BlobNotFoundError
from .base import BlobStore

logger = logging.getLogger(__name__)

__all__ = ["OciLayoutBlobStore"]

_TMP_PREFIX = ".tmp."


class OciLayoutBlobStore(BlobStore):
    """Filesystem blob store for one OCI Image Layout."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self.blob_dir = self.root / "blobs" / ALGORITHM
        self.blob_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, digest: Digest) -> Path:
        """Location of a blob, whether or not it exists yet."""
        return self.root / "blobs" / digest.algorithm / digest.hex

    def temp_path(self, suffix: str = "") -> Path:
        """
        Reserve a fresh temp file next to the blobs.

        Content written there can later be handed to ``put_file`` and is
        renamed into place without crossing a filesystem boundary.
        """
        fd, name = tempfile.mkstemp(prefix=_TMP_PREFIX, suffix=suffix, dir=self.blob_dir)
        os.close(fd)
        return Path(name)

    def put_bytes(self, data: bytes) -> Digest:
        digest = digest_bytes(data)
        tmp = self.temp_path()
        try:
            tmp.write_bytes(data)
            os.replace(tmp, self.path_for(digest))
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug(f"Stored {len(data)} byte blob {digest}")
        return digest

    def put_stream(self, stream: BinaryIO) -> Digest:
        hasher = hashlib.new(ALGORITHM)
        tmp = self.temp_path()
        try:
            with open(tmp, "wb") as out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    hasher.update(chunk)
                    out.write(chunk)
            digest = Digest.from_hash(hasher)
            os.replace(tmp, self.path_for(digest))
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug(f"Stored streamed blob {digest}")
        return digest

    def put_file(self, path: Union[str, Path]) -> Digest:
        src = Path(path)
        digest = digest_file(src)
        target = self.path_for(digest)
        if src.is_symlink():
            # Store the linked file, never the link itself
            shutil.move(str(src.resolve(strict=True)), str(target))
            src.unlink()
        else:
            # shutil.move falls back to copy+unlink when src is on another filesystem
            shutil.move(str(src), str(target))
        logger.debug(f"Moved {src} into store as {digest}")
        return digest

    def get(self, digest: Digest) -> bytes:
        try:
            return self.path_for(digest).read_bytes()
        except FileNotFoundError:
            raise BlobNotFoundError(str(digest)) from None

    def open(self, digest: Digest) -> BinaryIO:
        try:
            return open(self.path_for(digest), "rb")
        except FileNotFoundError:
            raise BlobNotFoundError(str(digest)) from None

    def size(self, digest: Digest) -> int:
        try:
            return self.path_for(digest).stat().st_size
        except FileNotFoundError:
            raise BlobNotFoundError(str(digest)) from None

    def exists(self, digest: Digest) -> bool:
        return self.path_for(digest).is_file()
