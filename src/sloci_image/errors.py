"""
Error classes for sloci-image.

Every failure is terminal: nothing in the build pipeline retries or rolls
back. The CLI maps all of these to exit code 1.
"""
from __future__ import annotations


class SlociError(Exception):
    """Base class for all sloci-image errors."""
    pass


class UsageError(SlociError):
    """
    Malformed invocation.

    Raised when:
    - a repeated option is not in KEY=VALUE form
    - the image reference is not NAME[:TAG]
    - a port is not PORT[/PROTO]
    """
    pass


class PreconditionError(SlociError):
    """
    The target image path already exists.

    Raised before anything is written, so a stale image is never merged into.
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class InputError(SlociError):
    """The rootfs is neither a directory nor a readable gzip-compressed tar archive."""
    pass


class BlobNotFoundError(SlociError):
    """No blob with the requested digest exists in the store."""

    def __init__(self, digest: str):
        super().__init__(f"Blob not found: {digest}")
        self.digest = digest


class ArchiveError(SlociError):
    """
    Archiving, compression or file-system failure while producing a blob.

    The message carries the underlying error text.
    """
    pass


__all__ = [
    "SlociError",
    "UsageError",
    "PreconditionError",
    "InputError",
    "BlobNotFoundError",
    "ArchiveError",
]
