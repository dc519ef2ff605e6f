"""Request-scoped scratch storage.

Every conversion gets its own freshly created directory under the configured
scratch root. Files are allocated inside it with unique names, and the whole
directory is removed when the scope exits, whether the conversion succeeded,
failed or was cancelled.
"""

from __future__ import annotations

from collections.abc import Generator
import contextlib
from pathlib import Path
import shutil
import tempfile
import uuid

from otsu_backend.errors import IOFailure
from otsu_backend.utils.log_utils import logger


SCRATCH_PREFIX = "otsu_"


class ScratchSpace:
    """Unique file names inside one request's private directory."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def allocate(self, stem: str, suffix: str = "") -> Path:
        """Return a new, not yet existing path such as ``input_<hex>.png``."""
        return self.directory / f"{stem}_{uuid.uuid4().hex}{suffix}"

    def discard(self, path: Path) -> None:
        """Remove a single file early; missing files are ignored."""
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(f"Could not remove scratch file {path.name}: {exc}")

    def files(self) -> list[Path]:
        return sorted(self.directory.iterdir()) if self.directory.exists() else []


@contextlib.contextmanager
def scratch_space(root: Path) -> Generator[ScratchSpace, None, None]:
    """Create a private scratch directory under ``root`` and remove it on exit.

    Raises:
        IOFailure: If the directory cannot be created, or cannot be removed after
            an otherwise successful conversion.
    """
    try:
        root.mkdir(parents=True, exist_ok=True)
        directory = Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=root))
    except OSError as exc:
        logger.error(f"Failed to create scratch directory under {root}: {exc}")
        raise IOFailure("Failed to create temporary file") from exc

    succeeded = False
    try:
        yield ScratchSpace(directory)
        succeeded = True
    finally:
        try:
            shutil.rmtree(directory)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.error(f"Failed to remove scratch directory {directory}: {exc}")
            if succeeded:
                raise IOFailure("Failed to remove temporary files") from exc


__all__ = ["SCRATCH_PREFIX", "ScratchSpace", "scratch_space"]
