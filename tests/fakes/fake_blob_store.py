"""
Fake blob store implementation for testing.

Stores blobs in memory and follows the BlobStore protocol.
"""
from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO, Dict, Union

from sloci_image.digest import Digest, digest_bytes
from sloci_image.errors import BlobNotFoundError
from sloci_image.storage.base import BlobStore

__all__ = ["FakeBlobStore"]


class FakeBlobStore(BlobStore):
    """
    In-memory blob store for testing.

    This is a test double; not for production use.
    """

    def __init__(self) -> None:
        self._blobs: Dict[Digest, bytes] = {}
        self.size_calls: list[Digest] = []

    def put_bytes(self, data: bytes) -> Digest:
        digest = digest_bytes(data)
        self._blobs[digest] = bytes(data)
        return digest

    def put_stream(self, stream: BinaryIO) -> Digest:
        return self.put_bytes(stream.read())

    def put_file(self, path: Union[str, Path]) -> Digest:
        path = Path(path)
        digest = self.put_bytes(path.read_bytes())
        path.unlink()
        return digest

    def get(self, digest: Digest) -> bytes:
        if digest not in self._blobs:
            raise BlobNotFoundError(str(digest))
        return self._blobs[digest]

    def open(self, digest: Digest) -> BinaryIO:
        return io.BytesIO(self.get(digest))

    def size(self, digest: Digest) -> int:
        self.size_calls.append(digest)
        return len(self.get(digest))

    def exists(self, digest: Digest) -> bool:
        return digest in self._blobs
