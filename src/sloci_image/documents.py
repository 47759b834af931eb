"""
OCI document construction.

Pure functions that build the image config, image manifest, image index and
layout header from resolved inputs. The only outside call is the blob size
lookup passed in by the caller, so the sizes in a manifest or index are read
from the stored blobs rather than trusted from elsewhere.
"""
from __future__ import annotations

from typing import Any, Callable, Dict

from . import __version__
from .digest import Digest
from .encoding import to_json_array, to_json_scalar, to_presence_set
from .models import Descriptor, ImageOptions, Platform
from .storage.oci_media_types import (
    OCI_IMAGE_CONFIG,
    OCI_IMAGE_INDEX,
    OCI_IMAGE_LAYER,
    OCI_IMAGE_MANIFEST,
    OCI_LAYOUT_VERSION,
    OCI_REF_NAME_ANNOTATION,
    SCHEMA_VERSION,
)

__all__ = [
    "normalize_architecture",
    "build_platform",
    "build_config",
    "build_manifest",
    "build_index",
    "build_layout_header",
    "format_timestamp",
]

SizeLookup = Callable[[Digest], int]

# Native machine names that differ from their OCI architecture code
_ARCH_ALIASES = {
    "x86_64": "amd64",
    "x86": "386",
    "i386": "386",
    "i486": "386",
    "i586": "386",
    "i686": "386",
    "aarch64": "arm64",
    "arm64": "arm64",
}

CREATED_BY = f"sloci-image {__version__}"


def normalize_architecture(arch: str) -> str:
    """
    Translate a native platform architecture to its OCI code.

    ``x86_64 -> amd64``, ``x86 -> 386``, ``aarch64/arm64 -> arm64``,
    ``arm* -> arm``; anything else passes through unchanged.
    """
    if arch in _ARCH_ALIASES:
        return _ARCH_ALIASES[arch]
    if arch.startswith("arm"):
        return "arm"
    return arch


def build_platform(options: ImageOptions) -> Platform:
    return Platform(
        architecture=normalize_architecture(options.architecture),
        os=options.os,
        variant=options.variant,
    )


def format_timestamp(options: ImageOptions) -> str:
    """ISO-8601 UTC with a ``Z`` suffix, e.g. ``2024-01-31T12:00:00Z``."""
    return options.created.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_config(options: ImageOptions, diff_id: Digest) -> Dict[str, Any]:
    """
    Build the image configuration document.

    ``diff_id`` must be the digest of the uncompressed layer tar stream,
    not of the compressed blob.

    ``User`` and ``WorkingDir`` are left out of the runtime config when
    unset; ``author`` is ``null`` when unset; list and set fields are always
    present, empty when nothing was given.
    """
    platform = build_platform(options)
    created = format_timestamp(options)

    runtime: Dict[str, Any] = {}
    if options.user:
        runtime["User"] = options.user
    runtime["ExposedPorts"] = to_presence_set(options.ports)
    runtime["Env"] = to_json_array(options.env)
    runtime["Entrypoint"] = to_json_array(options.entrypoint)
    runtime["Cmd"] = to_json_array(options.cmd)
    runtime["Volumes"] = to_presence_set(options.volumes)
    if options.working_dir:
        runtime["WorkingDir"] = options.working_dir
    runtime["Labels"] = dict(options.labels)

    config: Dict[str, Any] = {
        "created": created,
        "author": to_json_scalar(options.author, empty="null"),
        "architecture": platform.architecture,
    }
    if platform.variant:
        config["variant"] = platform.variant
    config["os"] = platform.os
    config["config"] = runtime
    config["rootfs"] = {
        "type": "layers",
        "diff_ids": [str(diff_id)],
    }
    config["history"] = [
        {"created": created, "created_by": CREATED_BY},
    ]
    return config


def build_manifest(config_digest: Digest, layer_digest: Digest, size_of: SizeLookup) -> Dict[str, Any]:
    """
    Build the image manifest for one config blob and one layer blob.

    Raises:
        BlobNotFoundError: If either blob is not in the store
    """
    config = Descriptor(
        media_type=OCI_IMAGE_CONFIG,
        size=size_of(config_digest),
        digest=str(config_digest),
    )
    layer = Descriptor(
        media_type=OCI_IMAGE_LAYER,
        size=size_of(layer_digest),
        digest=str(layer_digest),
    )
    return {
        "schemaVersion": SCHEMA_VERSION,
        "mediaType": OCI_IMAGE_MANIFEST,
        "config": config.to_document(),
        "layers": [layer.to_document()],
    }


def build_index(manifest_digest: Digest, platform: Platform, ref_name: str,
                size_of: SizeLookup) -> Dict[str, Any]:
    """
    Build the image index pointing at one platform manifest.

    ``ref_name`` (the tag) goes in the ``org.opencontainers.image.ref.name``
    annotation. ``variant`` is left out of the platform when unset.
    """
    manifest = Descriptor(
        media_type=OCI_IMAGE_MANIFEST,
        size=size_of(manifest_digest),
        digest=str(manifest_digest),
        platform=platform,
        annotations={OCI_REF_NAME_ANNOTATION: ref_name},
    )
    return {
        "schemaVersion": SCHEMA_VERSION,
        "mediaType": OCI_IMAGE_INDEX,
        "manifests": [manifest.to_document()],
    }


def build_layout_header() -> Dict[str, str]:
    return {"imageLayoutVersion": OCI_LAYOUT_VERSION}
