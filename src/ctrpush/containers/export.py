"""Local image export and compression.

``docker save`` is streamed straight into a gzip file, so the image is
exported once and its uncompressed size is counted along the way.
"""

from __future__ import annotations

import gzip
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ctrpush.errors import ExportError
from ctrpush.job import ArtifactStats
from ctrpush.utils import format_size, sanitize_image_name

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class Artifact:
    """A compressed image archive staged on the local machine."""

    image: str
    local_path: Path
    stats: ArtifactStats | None = None

    @property
    def stem(self) -> str:
        return sanitize_image_name(self.image)

    @property
    def compressed_name(self) -> str:
        return self.stem + ".tar.gz"

    @property
    def tar_name(self) -> str:
        return self.stem + ".tar"


def artifact_path(image: str, workdir: str | os.PathLike = ".") -> Path:
    """Local path of the compressed archive for *image*."""
    return Path(workdir) / (sanitize_image_name(image) + ".tar.gz")


def export_image(
    image: str,
    workdir: str | os.PathLike = ".",
    dry_run: bool = False,
) -> Artifact:
    """Save *image* with ``docker save`` and gzip it into *workdir*.

    Args:
        image: Image reference known to the local Docker daemon.
        workdir: Directory that receives ``<sanitized>.tar.gz``.
        dry_run: If True, only log what would be done.

    Returns:
        The prepared :class:`Artifact`.

    Raises:
        ExportError: ``docker`` is missing, exits non-zero, or the
            archive cannot be written.  Any partial archive is removed.
    """
    path = artifact_path(image, workdir)
    if dry_run:
        logger.info("[dry-run] Would save image %s to %s", image, path)
        return Artifact(image=image, local_path=path)

    logger.info("Saving image %s to %s...", image, path)
    original = 0
    try:
        with tempfile.TemporaryFile() as err, gzip.open(path, "wb") as gz:
            with subprocess.Popen(
                ["docker", "save", image], stdout=subprocess.PIPE, stderr=err,
            ) as proc:
                while True:
                    chunk = proc.stdout.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    original += len(chunk)
                    gz.write(chunk)
                rc = proc.wait()
            if rc != 0:
                err.seek(0)
                reason = err.read().decode("utf-8", "replace").strip()
                raise ExportError(image, reason or "docker save exited with code %d" % rc)
    except FileNotFoundError as e:
        path.unlink(missing_ok=True)
        reason = "docker not found" if e.filename == "docker" else str(e)
        raise ExportError(image, reason) from e
    except (ExportError, KeyboardInterrupt):
        path.unlink(missing_ok=True)
        raise
    except OSError as e:
        path.unlink(missing_ok=True)
        raise ExportError(image, str(e)) from e

    stats = ArtifactStats(original_size=original, compressed_size=path.stat().st_size)
    logger.info("Image compressed to %s", path)
    logger.info("Compression stats:")
    logger.info("  Original: %s", format_size(stats.original_size))
    logger.info("  Compressed: %s", format_size(stats.compressed_size))
    saved = stats.percent_saved
    logger.info("  Savings: %s%%", "N/A" if saved is None else saved)
    return Artifact(image=image, local_path=path, stats=stats)


def remove_artifact(artifact: Artifact) -> None:
    """Delete the local archive; a missing file is not an error."""
    try:
        artifact.local_path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove %s: %s", artifact.local_path, e)
    else:
        logger.debug("Removed local artifact %s", artifact.local_path)
