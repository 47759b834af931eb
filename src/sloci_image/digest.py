"""Content digests and streaming hash helpers."""
from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import BinaryIO, Union

# Regex pattern for valid digest format (algorithm:hex)
DIGEST_PATTERN = re.compile(r"^([a-z0-9]+):([a-f0-9]+)$")

# The one algorithm used for every blob in a run
ALGORITHM = "sha256"

CHUNK_SIZE = 1024 * 1024  # 1 MiB

__all__ = [
    "ALGORITHM",
    "CHUNK_SIZE",
    "Digest",
    "HashingWriter",
    "digest_bytes",
    "digest_stream",
    "digest_file",
]


@dataclass(frozen=True)
class Digest:
    """
    Content address of a blob.

    Serialized as "algorithm:hex". Two blobs with equal digests are the
    same blob.
    """
    algorithm: str
    hex: str

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.hex}"

    @classmethod
    def parse(cls, value: str) -> Digest:
        """
        Parse an "algorithm:hex" string.

        Raises:
            ValueError: If the string is malformed or uses another algorithm
        """
        match = DIGEST_PATTERN.match(value) if isinstance(value, str) else None
        if match is None:
            raise ValueError(f"Invalid digest format: {value!r}")
        algorithm, hex_part = match.groups()
        if algorithm != ALGORITHM:
            raise ValueError(f"Unsupported digest algorithm: {algorithm}")
        if len(hex_part) != hashlib.new(algorithm).digest_size * 2:
            raise ValueError(f"Invalid {algorithm} digest length: {value!r}")
        return cls(algorithm, hex_part)

    @classmethod
    def from_hash(cls, hasher: "hashlib._Hash") -> Digest:
        return cls(hasher.name, hasher.hexdigest())


def digest_bytes(data: Union[bytes, bytearray]) -> Digest:
    """Digest an in-memory value."""
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Data must be bytes or bytearray")
    return Digest(ALGORITHM, hashlib.new(ALGORITHM, data).hexdigest())


def digest_stream(stream: BinaryIO) -> Digest:
    """Digest a readable binary stream until EOF, chunk by chunk."""
    hasher = hashlib.new(ALGORITHM)
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if not chunk:
            break
        hasher.update(chunk)
    return Digest.from_hash(hasher)


def digest_file(path) -> Digest:
    with open(path, "rb") as f:
        return digest_stream(f)


class HashingWriter:
    """
    Write-only file-like wrapper that hashes everything passing through.

    Used to compute a layer's diff-id from the uncompressed tar stream while
    the same bytes are fed into the compressor.
    """

    def __init__(self, target: BinaryIO) -> None:
        self._target = target
        self._hasher = hashlib.new(ALGORITHM)
        self.size = 0

    def write(self, data: bytes) -> int:
        self._hasher.update(data)
        self.size += len(data)
        return self._target.write(data)

    def flush(self) -> None:
        self._target.flush()

    @property
    def digest(self) -> Digest:
        return Digest.from_hash(self._hasher)
