"""
OCI media types and constants.

Single source of truth for all OCI-related media types and constants.
"""
from __future__ import annotations

# OCI standard document types
OCI_IMAGE_INDEX = "application/vnd.oci.image.index.v1+json"
OCI_IMAGE_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_IMAGE_CONFIG = "application/vnd.oci.image.config.v1+json"

# The single layer is always a gzip-compressed tar stream
OCI_IMAGE_LAYER = "application/vnd.oci.image.layer.v1.tar+gzip"

SCHEMA_VERSION = 2

# Image layout entry points (not content-addressed)
OCI_LAYOUT_FILE = "oci-layout"
OCI_INDEX_FILE = "index.json"
OCI_LAYOUT_VERSION = "1.0.0"

# Standard annotations
OCI_REF_NAME_ANNOTATION = "org.opencontainers.image.ref.name"
OCI_ANNOTATION_PREFIX = "org.opencontainers.image"


__all__ = [
    "OCI_IMAGE_INDEX",
    "OCI_IMAGE_MANIFEST",
    "OCI_IMAGE_CONFIG",
    "OCI_IMAGE_LAYER",
    "SCHEMA_VERSION",
    "OCI_LAYOUT_FILE",
    "OCI_INDEX_FILE",
    "OCI_LAYOUT_VERSION",
    "OCI_REF_NAME_ANNOTATION",
    "OCI_ANNOTATION_PREFIX",
]
