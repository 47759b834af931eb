"""
Data models for image assembly.

These Pydantic models carry the resolved, validated user configuration into
the document builder and image assembler. They are built once after CLI
parsing and never mutated.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .encoding import split_key_value
from .storage.oci_media_types import OCI_ANNOTATION_PREFIX

__all__ = ["ImageReference", "Platform", "Descriptor", "ImageOptions", "expand_label_key"]

_TAG_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9._-]{0,127}$")
_PORT_PATTERN = re.compile(r"^(\d+)(?:/(tcp|udp|sctp))?$")

DEFAULT_TAG = "latest"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def expand_label_key(key: str) -> str:
    """Expand a leading-dot label key, e.g. ``.title`` -> ``org.opencontainers.image.title``."""
    if key.startswith("."):
        return OCI_ANNOTATION_PREFIX + key
    return key


def _dedupe(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class ImageReference(BaseModel):
    """Image name and tag, from a ``NAME[:TAG]`` argument."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Image name; also the output directory name")
    tag: str = Field(default=DEFAULT_TAG, description="Image tag")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or v.strip() != v or any(c.isspace() for c in v):
            raise ValueError(f"Invalid image name: {v!r}")
        return v

    @field_validator("tag")
    @classmethod
    def validate_tag(cls, v: str) -> str:
        if not _TAG_PATTERN.match(v):
            raise ValueError(f"Invalid image tag: {v!r}")
        return v

    @classmethod
    def parse(cls, ref: str) -> ImageReference:
        """
        Parse ``NAME[:TAG]``.

        The tag is split off the last ``:`` only when it comes after the last
        ``/``, so ``localhost:5000/app`` is a name without a tag.
        """
        name, tag = ref, DEFAULT_TAG
        colon = ref.rfind(":")
        if colon > ref.rfind("/"):
            name, tag = ref[:colon], ref[colon + 1:]
        return cls(name=name, tag=tag)

    def __str__(self) -> str:
        return f"{self.name}:{self.tag}"


class Platform(BaseModel):
    """Target platform, with the architecture already in OCI form."""
    model_config = ConfigDict(frozen=True)

    architecture: str = Field(..., description="OCI architecture code (amd64, arm64, ...)")
    os: str = Field(..., description="Operating system")
    variant: Optional[str] = Field(default=None, description="Architecture variant (v7, v8, ...)")


class Descriptor(BaseModel):
    """OCI content descriptor."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    media_type: str = Field(..., alias="mediaType", description="Media type of the referenced blob")
    size: int = Field(..., ge=0, description="Blob size in bytes")
    digest: str = Field(..., description="Blob digest (sha256:...)")
    platform: Optional[Platform] = Field(default=None, description="Platform, for index entries")
    annotations: Optional[Dict[str, str]] = Field(default=None, description="Descriptor annotations")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class ImageOptions(BaseModel):
    """
    Immutable image configuration.

    Repeated command line options are typed from the start: ordered lists
    for env, entrypoint and cmd; de-duplicated lists for ports and volumes;
    a map for labels.
    """
    model_config = ConfigDict(frozen=True)

    architecture: str = Field(..., description="Native or OCI architecture name")
    variant: Optional[str] = Field(default=None, description="Architecture variant")
    os: str = Field(default="linux", description="Target operating system")
    author: Optional[str] = Field(default=None, description="Image author")
    user: Optional[str] = Field(default=None, description="Default user")
    working_dir: Optional[str] = Field(default=None, description="Default working directory")
    created: datetime = Field(default_factory=_utc_now, description="Creation time (UTC)")

    env: List[str] = Field(default_factory=list, description="KEY=VALUE environment entries")
    entrypoint: List[str] = Field(default_factory=list, description="Entrypoint argv")
    cmd: List[str] = Field(default_factory=list, description="Default command argv")
    ports: List[str] = Field(default_factory=list, description="Exposed PORT[/PROTO] values")
    volumes: List[str] = Field(default_factory=list, description="Volume mount points")
    labels: Dict[str, str] = Field(default_factory=dict, description="Image labels")

    @field_validator("variant", "author", "user", "working_dir", mode="before")
    @classmethod
    def empty_as_unset(cls, v):
        if v == "":
            return None
        return v

    @field_validator("architecture", "os")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("created")
    @classmethod
    def validate_created(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("created must be timezone-aware")
        return v.astimezone(timezone.utc)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: List[str]) -> List[str]:
        """Require KEY=VALUE; on duplicate keys the last value wins at the first position."""
        by_key: Dict[str, str] = {}
        for entry in v:
            key, _ = split_key_value(entry)
            by_key[key] = entry
        return list(by_key.values())

    @field_validator("ports")
    @classmethod
    def validate_ports(cls, v: List[str]) -> List[str]:
        for port in v:
            match = _PORT_PATTERN.match(port)
            if match is None or not 1 <= int(match.group(1)) <= 65535:
                raise ValueError(f"Expected PORT[/PROTO] with PROTO tcp, udp or sctp, got {port!r}")
        return _dedupe(v)

    @field_validator("volumes")
    @classmethod
    def validate_volumes(cls, v: List[str]) -> List[str]:
        if any(not volume for volume in v):
            raise ValueError("Volume path must not be empty")
        return _dedupe(v)

    @field_validator("labels", mode="before")
    @classmethod
    def parse_labels(cls, v):
        """Accept a mapping or a list of ``[.]KEY=VALUE`` entries."""
        if v is None:
            return {}
        items = v.items() if isinstance(v, dict) else (split_key_value(entry) for entry in v)
        labels: Dict[str, str] = {}
        for key, value in items:
            labels[expand_label_key(key)] = value
        return labels
