"""Scratch area for transient per-page artifacts."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import logging
from pathlib import Path
import shutil
import tempfile

logger = logging.getLogger(__name__)

BITMAP_SUFFIXES = (".pbm", ".pgm", ".ppm")


@dataclass(frozen=True)
class PageScratch:
    """Paths allocated for processing one plan step."""

    directory: Path

    @property
    def prefix(self) -> Path:
        """Root passed to ``pdfimages``; it appends ``-000.<ext>``."""
        return self.directory / "image"

    @property
    def jpeg(self) -> Path:
        return self.directory / "image-000.jpg"

    @property
    def djvu(self) -> Path:
        return self.directory / "page.djvu"

    @property
    def metadata_script(self) -> Path:
        return self.directory / "metadata.txt"

    def bitmap(self) -> Path | None:
        """Return the extracted PBM/PGM/PPM image if there is one."""
        for suffix in BITMAP_SUFFIXES:
            candidate = self.directory / f"image-000{suffix}"
            if candidate.exists():
                return candidate
        return None


class ScratchArea:
    """Temporary working directory for one conversion run."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._counter = 0

    @contextmanager
    def page(self, label: str) -> Iterator[PageScratch]:
        """Allocate a directory for one step and remove it when the step ends."""
        self._counter += 1
        directory = self.root / f"{self._counter:05d}-{label}"
        directory.mkdir()
        try:
            yield PageScratch(directory=directory)
        finally:
            shutil.rmtree(directory, ignore_errors=True)


@contextmanager
def open_scratch_area() -> Iterator[ScratchArea]:
    """Create the run's scratch area and remove it in full afterwards."""
    with tempfile.TemporaryDirectory(prefix="pdfscan2djvu-") as tmpdir:
        logger.debug("Using scratch area %s", tmpdir)
        yield ScratchArea(Path(tmpdir))
