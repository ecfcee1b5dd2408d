"""Wrappers around the poppler and DjVuLibre command-line tools.

All commands are built as argument vectors and run through a single
:class:`ToolRunner`, so quoting and exit-status handling live in one place.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path
import re
import shutil
import subprocess

from pdfscan2djvu.errors import MalformedListing, ToolInvocationError, ToolNotFoundError

logger = logging.getLogger(__name__)

REQUIRED_TOOLS = ("pdfimages", "c44", "cjb2", "djvumake", "djvm", "djvused", "djvudump")
DJVUDUMP_SIZE_PATTERN = re.compile(r"DjVu\s+(\d+)x(\d+)")


def missing_tools(executables: Sequence[str]) -> list[str]:
    """Return the executables from *executables* that are missing on ``PATH``."""
    missing: list[str] = []
    for candidate in executables:
        found = shutil.which(candidate)
        if found:
            logger.debug("Detected external tool: %s -> %s", candidate, found)
        else:
            missing.append(candidate)
    return missing


def ensure_tools_available(executables: Sequence[str] = REQUIRED_TOOLS) -> None:
    missing = missing_tools(executables)
    if missing:
        raise ToolNotFoundError(missing)


class ToolRunner:
    """Run external commands and fail on any non-success exit status."""

    def run(self, argv: Sequence[str]) -> subprocess.CompletedProcess[str]:
        command = [str(item) for item in argv]
        logger.debug("Executing command: %s", command)
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
                text=True,
                errors="replace",
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError([command[0]]) from exc
        logger.debug(
            "Command finished with exit code %s\nstderr: %s",
            completed.returncode,
            completed.stderr,
        )
        if completed.returncode != 0:
            raise ToolInvocationError(
                tool=command[0],
                argv=command,
                returncode=completed.returncode,
                stderr=completed.stderr,
            )
        return completed


class DjVuTools:
    """The external operations the conversion depends on."""

    def __init__(self, runner: ToolRunner | None = None) -> None:
        self.runner = runner or ToolRunner()

    def list_images(self, pdf_path: Path) -> str:
        """Return the ``pdfimages -list`` listing for a PDF."""
        return self.runner.run(["pdfimages", "-list", pdf_path]).stdout

    def extract_page(
        self,
        pdf_path: Path,
        page_number: int,
        prefix: Path,
        keep_jpeg: bool = False,
    ) -> None:
        """Extract the image of one page as ``<prefix>-000.<ext>``.

        Without ``keep_jpeg`` the image is written as PBM or PPM. With it,
        DCT-encoded images are written unchanged as ``.jpg``.
        """
        argv: list[str | Path] = ["pdfimages"]
        if keep_jpeg:
            argv.append("-j")
        argv.extend(["-f", str(page_number), "-l", str(page_number), pdf_path, prefix])
        self.runner.run(argv)

    def compress_bilevel(self, bitmap: Path, output: Path, resolution: int) -> None:
        self.runner.run(["cjb2", "-dpi", str(resolution), bitmap, output])

    def compress_lossy(
        self,
        image: Path,
        output: Path,
        slices: Sequence[int],
        resolution: int | None = None,
        chroma: bool = True,
    ) -> None:
        """Compress a PNM or JPEG image into a single-page DjVu with c44."""
        argv: list[str | Path] = ["c44"]
        if resolution is not None:
            argv.extend(["-dpi", str(resolution)])
        argv.extend(["-slice", ",".join(str(value) for value in slices)])
        if not chroma:
            argv.append("-crcbnone")
        argv.extend([image, output])
        self.runner.run(argv)

    def inject_background(
        self,
        output: Path,
        width: int,
        height: int,
        resolution: int,
        jpeg: Path,
    ) -> None:
        """Rebuild a page that carries a JPEG as its background layer."""
        self.runner.run(
            ["djvumake", output, f"INFO={width},{height},{resolution}", f"BGjp={jpeg}"]
        )

    def page_size(self, page: Path) -> tuple[int, int]:
        """Return the pixel size of a single-page DjVu file."""
        dump = self.runner.run(["djvudump", page]).stdout
        match = DJVUDUMP_SIZE_PATTERN.search(dump)
        if match is None:
            raise MalformedListing(f"can't find the page size in the djvudump output for '{page}'")
        return int(match.group(1)), int(match.group(2))

    def create_document(self, document: Path, page: Path) -> None:
        self.runner.run(["djvm", "-c", document, page])

    def append_page(self, document: Path, page: Path) -> None:
        self.runner.run(["djvm", "-i", document, page])

    def set_metadata(self, document: Path, script: Path) -> None:
        self.runner.run(["djvused", "-s", "-f", script, document])
