"""
Image assembly pipeline.

Runs the stages that turn a rootfs into an OCI Image Layout, strictly in
order and each to completion:

1. resolve the rootfs source (directory or gzip-compressed tar archive)
2. compute the layer diff-id
3. store the layer blob
4. build and store the config blob
5. build and store the manifest blob
6. write ``oci-layout`` and ``index.json``

The first failure aborts the run. Blobs already written stay where they
are; the output directory did not exist before the run, so the caller
removes it before trying again.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .digest import Digest
from .documents import build_config, build_index, build_layout_header, build_manifest, build_platform
from .encoding import encode_json_bytes
from .errors import InputError, PreconditionError
from .models import ImageOptions, ImageReference, Platform
from .rootfs import diff_id_of_archive, write_layer_from_directory
from .storage.layout_store import OciLayoutBlobStore
from .storage.oci_media_types import OCI_INDEX_FILE, OCI_LAYOUT_FILE

logger = logging.getLogger(__name__)

__all__ = ["ImageAssembler", "AssembledImage"]

PathLike = Union[str, Path]


@dataclass(frozen=True)
class AssembledImage:
    """Digests and location of a freshly written image layout."""
    path: Path
    ref: ImageReference
    platform: Platform
    layer_digest: Digest
    layer_size: int
    diff_id: Digest
    config_digest: Digest
    manifest_digest: Digest
    manifest_size: int


class ImageAssembler:
    """
    Writes a single-layer OCI image layout.

    Args:
        gzip_level: Compression level for layers built from a directory
        clamp_mtime: Upper bound for file mtimes in directory layers
        trace_documents: Log every built document as indented JSON
    """

    def __init__(self, *, gzip_level: int = 6, clamp_mtime: Optional[int] = None,
                 trace_documents: bool = False) -> None:
        self.gzip_level = gzip_level
        self.clamp_mtime = clamp_mtime
        self.trace_documents = trace_documents

    def assemble(self, rootfs: PathLike, output_dir: PathLike,
                 options: ImageOptions, ref: ImageReference) -> AssembledImage:
        """
        Build the image layout at ``output_dir``.

        A directory rootfs is left in place; an archive rootfs is moved into
        the layout as the layer blob.

        Raises:
            PreconditionError: If ``output_dir`` already exists
            InputError: If ``rootfs`` is neither a directory nor a gzip-compressed tar
                or ``output_dir`` lies inside a rootfs directory
            ArchiveError: If archiving the directory fails
            OSError: On any other file-system failure
        """
        rootfs = Path(rootfs)
        output_dir = Path(output_dir)

        if output_dir.exists() or output_dir.is_symlink():
            raise PreconditionError(f"Image path already exists: {output_dir}", path=str(output_dir))

        # Stage 1 (and stage 2 for archives): checked before anything is written
        archive_diff_id = None
        if rootfs.is_dir():
            if output_dir.resolve().is_relative_to(rootfs.resolve()):
                raise InputError(f"Image path {output_dir} is inside the rootfs {rootfs}")
            logger.debug(f"Rootfs {rootfs} is a directory; it will be archived")
        elif rootfs.is_file():
            logger.debug(f"Rootfs {rootfs} is a file; validating as gzip-compressed tar")
            archive_diff_id = diff_id_of_archive(rootfs)
        else:
            raise InputError(f"Rootfs is neither a directory nor a file: {rootfs}")

        output_dir.mkdir(parents=True)
        store = OciLayoutBlobStore(output_dir)

        # Stages 2-3: layer blob
        if archive_diff_id is None:
            layer_tmp = store.temp_path(suffix=".tar.gz")
            diff_id = write_layer_from_directory(
                rootfs, layer_tmp,
                gzip_level=self.gzip_level,
                clamp_mtime=self.clamp_mtime,
            )
            layer_digest = store.put_file(layer_tmp)
        else:
            diff_id = archive_diff_id
            layer_digest = store.put_file(rootfs)
        layer_size = store.size(layer_digest)
        logger.debug(f"Layer blob {layer_digest} ({layer_size} bytes), diff-id {diff_id}")

        # Stage 4: config blob
        config = build_config(options, diff_id)
        self._trace("config", config)
        config_digest = store.put_bytes(encode_json_bytes(config))

        # Stage 5: manifest blob
        manifest = build_manifest(config_digest, layer_digest, store.size)
        self._trace("manifest", manifest)
        manifest_digest = store.put_bytes(encode_json_bytes(manifest))

        # Stage 6: layout entry points
        platform = build_platform(options)
        index = build_index(manifest_digest, platform, ref.tag, store.size)
        self._trace("index", index)
        layout = build_layout_header()
        self._trace("oci-layout", layout)
        (output_dir / OCI_INDEX_FILE).write_bytes(encode_json_bytes(index))
        (output_dir / OCI_LAYOUT_FILE).write_bytes(encode_json_bytes(layout))

        logger.info(f"Wrote image {ref} to {output_dir} (manifest {manifest_digest})")
        return AssembledImage(
            path=output_dir,
            ref=ref,
            platform=platform,
            layer_digest=layer_digest,
            layer_size=layer_size,
            diff_id=diff_id,
            config_digest=config_digest,
            manifest_digest=manifest_digest,
            manifest_size=store.size(manifest_digest),
        )

    def _trace(self, name: str, document: Dict[str, Any]) -> None:
        if self.trace_documents:
            logger.debug(f"{name}:\n{json.dumps(document, indent=2, sort_keys=True)}")
