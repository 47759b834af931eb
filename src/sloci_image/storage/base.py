"""
Storage interfaces for sloci-image.

The blob store protocol is the boundary between the image assembler and the
on-disk OCI layout, enabling testing with an in-memory fake.
"""
from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Protocol, Union, runtime_checkable

from ..digest import Digest

__all__ = ["BlobStore"]


@runtime_checkable
class BlobStore(Protocol):
    """Protocol for content-addressable blob storage."""

    def put_bytes(self, data: bytes) -> Digest:
        """
        Store an in-memory value under its own digest.

        Storing identical content again is a no-op in effect.

        Returns:
            Digest of the stored content
        """
        ...

    def put_stream(self, stream: BinaryIO) -> Digest:
        """
        Store the content of a readable stream, read until EOF.

        Returns:
            Digest of the stored content
        """
        ...

    def put_file(self, path: Union[str, Path]) -> Digest:
        """
        Take ownership of an existing file and store it under its digest.

        The file is moved, not copied; the caller must not use ``path``
        afterwards.

        Returns:
            Digest of the stored content
        """
        ...

    def get(self, digest: Digest) -> bytes:
        """
        Retrieve blob content.

        Raises:
            BlobNotFoundError: If no blob with this digest exists
        """
        ...

    def open(self, digest: Digest) -> BinaryIO:
        """
        Open blob content for streaming reads.

        Raises:
            BlobNotFoundError: If no blob with this digest exists
        """
        ...

    def size(self, digest: Digest) -> int:
        """
        Size of a stored blob in bytes.

        Raises:
            BlobNotFoundError: If no blob with this digest exists
        """
        ...

    def exists(self, digest: Digest) -> bool:
        ...
