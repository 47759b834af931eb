"""
Operations Facade - Application service layer.

Provides a clean interface between the CLI and the image assembler,
centralizing configuration and policy decisions (output form, compression,
timestamps) while keeping the CLI command thin and testable.
"""
from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..assembler import AssembledImage, ImageAssembler
from ..documents import build_platform
from ..errors import PreconditionError
from ..export import tarball_name, write_deterministic_archive
from ..models import ImageOptions, ImageReference
from ..settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpsConfig:
    """
    Configuration for Operations facade.

    Per-invocation policy that does not belong in the image itself.
    """
    debug: bool = False           # Trace every built document
    tar: bool = False             # Bundle the layout into one tar file
    gzip_level: int = 6           # Layer compression level

    def __post_init__(self):
        if not 0 <= self.gzip_level <= 9:
            raise ValueError(f"gzip_level must be between 0 and 9, got {self.gzip_level}")


@dataclass(frozen=True)
class BuildResult:
    """
    Result of a build with its final output location.

    ``output_path`` is the layout directory, or the tar file when the
    layout was bundled.
    """
    image: AssembledImage
    output_path: Path
    bundled: bool


class Operations:
    """
    Application service facade for CLI operations.

    Stateless except for injected config and settings. Exceptions bubble
    up for central mapping to exit codes.
    """

    def __init__(self, config: OpsConfig, settings: Optional[Settings] = None):
        """
        Initialize Operations facade.

        Args:
            config: Configuration settings
            settings: Optional settings (if None, loaded from environment)
        """
        self.cfg = config

        if settings is None:
            from ..settings import create_settings_from_env
            settings = create_settings_from_env()
        self.settings = settings

    def build(self, rootfs: str, ref: ImageReference, options: ImageOptions, *,
              workdir: str = ".") -> BuildResult:
        """
        Package ``rootfs`` as image ``ref``.

        The layout is written to ``<workdir>/<name>``; with ``tar`` set it
        is then bundled into ``<workdir>/<tarball_name>`` and the directory
        removed.

        Args:
            rootfs: Rootfs directory or gzip-compressed tar archive
            ref: Image name and tag
            options: Image configuration
            workdir: Directory the output is created in

        Returns:
            BuildResult with the assembled image and final output path

        Raises:
            PreconditionError: If the layout directory or tar file already exists
        """
        base = Path(workdir)
        layout_dir = base / ref.name
        tar_path = None
        if self.cfg.tar:
            tar_path = base / tarball_name(ref, build_platform(options))
            if tar_path.exists():
                raise PreconditionError(f"Image file already exists: {tar_path}", path=str(tar_path))

        assembler = ImageAssembler(
            gzip_level=self.cfg.gzip_level,
            clamp_mtime=self.settings.source_date_epoch,
            trace_documents=self.cfg.debug or self.settings.debug,
        )
        image = assembler.assemble(rootfs, layout_dir, options, ref)

        if tar_path is None:
            return BuildResult(image=image, output_path=layout_dir, bundled=False)

        write_deterministic_archive(str(layout_dir), str(tar_path))
        shutil.rmtree(layout_dir)
        _remove_empty_parents(layout_dir.parent, base)
        logger.info(f"Bundled {layout_dir} into {tar_path}")
        return BuildResult(image=image, output_path=tar_path, bundled=True)


def _remove_empty_parents(path: Path, stop: Path) -> None:
    """Remove ``path`` and its ancestors while they are empty, stopping at ``stop``."""
    stop = stop.resolve()
    path = path.resolve()
    while path != stop and path.is_relative_to(stop):
        try:
            path.rmdir()
        except OSError:
            break
        path = path.parent
