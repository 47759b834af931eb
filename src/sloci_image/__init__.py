"""sloci-image - pack a root filesystem into a single-layer OCI image."""

__version__ = "0.1.0"

from .assembler import AssembledImage, ImageAssembler
from .digest import Digest
from .errors import (
    ArchiveError,
    BlobNotFoundError,
    InputError,
    PreconditionError,
    SlociError,
    UsageError,
)
from .models import ImageOptions, ImageReference, Platform

__all__ = [
    "__version__",
    "AssembledImage",
    "ImageAssembler",
    "Digest",
    "ImageOptions",
    "ImageReference",
    "Platform",
    "SlociError",
    "UsageError",
    "PreconditionError",
    "InputError",
    "BlobNotFoundError",
    "ArchiveError",
]
