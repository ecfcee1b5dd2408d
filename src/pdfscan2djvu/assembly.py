"""Sequential assembly of the output DjVu document from a plan."""

from __future__ import annotations

import base64
from enum import Enum
import logging
from pathlib import Path
import sys
from typing import TextIO

from pdfscan2djvu.errors import ConversionError, ValidationError
from pdfscan2djvu.models import (
    AssemblyResult,
    Bilevel,
    ConversionConfig,
    EncodingDecision,
    GrayscaleLossy,
    InsertEntry,
    PageEntry,
    PassthroughOriginal,
    Plan,
    SkippedPage,
    StepOutcome,
)
from pdfscan2djvu.planner import insert_resolution, keep_original, passthrough_decision
from pdfscan2djvu.scratch import PageScratch, ScratchArea
from pdfscan2djvu.tools import DjVuTools

logger = logging.getLogger(__name__)

# A tiny single-page DjVu file with the "page intentionally left blank" notice.
PLACEHOLDER_DJVU = base64.b64decode(
    "QVQmVEZPUk0AAAB4REpWVUlORk8AAAAKAdgBYBgAZAAWAVNqYnoAAABagEm3"
    "8jpegtEVy/X6afXF3nZqMaNrAfnToZdSuOjLitvnAQRd5WwyTWHA7lRT4x4X"
    "ILLYddSZ+E8NNCJ9eKAnQul8og195P0TSHbMAg6AKWfh6AI82UICBP8x"
)
DJVU_SUFFIXES = {".djvu", ".djv"}
PROGRESS_LINE_PAGES = 10


class AssemblyState(Enum):
    NOT_STARTED = "not_started"
    EMITTING = "emitting"
    FINALIZED = "finalized"
    FAILED = "failed"


class ProgressReporter:
    """Print one character per plan step, ten source pages per line."""

    LEGEND = (
        "Legend: c - lossy colored c44, g - lossy grayscale c44, b - lossless B&W cjb2,\n"
        "        J - transplanted original JPG, '-' - page deletion, '+' - page addition."
    )

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self._line_position = 0

    def start(self) -> None:
        self.stream.write(self.LEGEND + "\nProgress:")
        self.stream.flush()

    def position(self, position: int) -> None:
        """Start a new labelled line at every tenth source page."""
        if position > self._line_position and position % PROGRESS_LINE_PAGES == 1:
            self._line_position = position
            self.stream.write(f"\n{position:5d}: ")

    def mark(self, code: str) -> None:
        self.stream.write(code)
        self.stream.flush()

    def finish(self) -> None:
        self.stream.write("\n")
        self.stream.flush()


class AssemblyDriver:
    """Execute plan steps in order into one output document.

    The first emitted page creates the document, every later page is
    appended. Any tool failure aborts the run and leaves the document as
    it is.
    """

    def __init__(
        self,
        tools: DjVuTools,
        config: ConversionConfig,
        input_path: Path,
        output_path: Path,
        scratch: ScratchArea,
        progress: ProgressReporter | None = None,
    ) -> None:
        self.tools = tools
        self.config = config
        self.input_path = input_path
        self.output_path = output_path
        self.scratch = scratch
        self.progress = progress or ProgressReporter()
        self.state = AssemblyState.NOT_STARTED
        self.pages_output = 0
        self.outcomes: list[StepOutcome] = []

    def run(self, plan: Plan) -> AssemblyResult:
        """Emit every plan step. Returns once all pages are in the document."""
        self.progress.start()
        try:
            for step in plan.steps:
                self.progress.position(step.position)
                if isinstance(step, InsertEntry):
                    self._insert(step)
                elif isinstance(step, SkippedPage):
                    self._record(step.position, step.action, step.progress_code, 0, step.position)
                    self.progress.mark(step.progress_code)
                else:
                    decision = self._transform(step)
                    self._record(
                        step.position, decision.action, decision.progress_code, 1, step.position
                    )
                    self.progress.mark(decision.progress_code)
        except ConversionError:
            self.state = AssemblyState.FAILED
            self.progress.finish()
            raise
        self.progress.finish()
        return AssemblyResult(
            output_path=str(self.output_path),
            pages_output=self.pages_output,
            outcomes=list(self.outcomes),
        )

    def finalize(self, metadata_script: str) -> None:
        """Attach the provenance metadata to the finished document."""
        if self.state is not AssemblyState.EMITTING:
            raise ConversionError(f"can't finalize a document in state '{self.state.value}'")
        try:
            with self.scratch.page("metadata") as area:
                area.metadata_script.write_text(metadata_script, encoding="utf-8")
                self.tools.set_metadata(self.output_path, area.metadata_script)
        except ConversionError:
            self.state = AssemblyState.FAILED
            raise
        self.state = AssemblyState.FINALIZED

    def _emit(self, page: Path) -> None:
        if self.state is AssemblyState.NOT_STARTED:
            self.tools.create_document(self.output_path, page)
            self.state = AssemblyState.EMITTING
        else:
            self.tools.append_page(self.output_path, page)
        self.pages_output += 1

    def _insert(self, entry: InsertEntry) -> None:
        source = entry.source_file
        if source is not None and source.suffix.lower() in DJVU_SUFFIXES:
            self._emit_insert(entry, source)
        else:
            with self.scratch.page(f"insert-{entry.position}") as area:
                self._emit_insert(entry, self._materialize_insert(entry, area))
        self._record(entry.position, entry.action, entry.progress_code, entry.count, None)

    def _emit_insert(self, entry: InsertEntry, page: Path) -> None:
        for _ in range(entry.count):
            self._emit(page)
            self.progress.mark(entry.progress_code)

    def _materialize_insert(self, entry: InsertEntry, area: PageScratch) -> Path:
        """Write the placeholder page or convert a JPEG into a DjVu page."""
        source = entry.source_file
        if source is None:
            area.djvu.write_bytes(PLACEHOLDER_DJVU)
            return area.djvu

        self.tools.compress_lossy(source, area.djvu, self.config.slices)
        width, height = self.tools.page_size(area.djvu)
        resolution = insert_resolution(width, entry.neighbour_width_inches)
        if resolution is not None:
            self.tools.inject_background(area.djvu, width, height, resolution, source)
        return area.djvu

    def _transform(self, entry: PageEntry) -> EncodingDecision:
        record = entry.record
        decision = entry.decision
        with self.scratch.page(f"page-{record.page_number}") as area:
            if entry.consider_original and self.config.keep_jpegs == "always":
                self.tools.extract_page(self.input_path, record.page_number, area.prefix, True)
                if area.jpeg.exists():
                    decision = passthrough_decision(record, area.jpeg)
                    self._inject(decision, area)
                    self._emit(area.djvu)
                    return decision

            self.tools.extract_page(self.input_path, record.page_number, area.prefix)
            bitmap = area.bitmap()
            if bitmap is None:
                raise ValidationError(f"no image was extracted from page {record.page_number}")

            if isinstance(decision, Bilevel):
                self.tools.compress_bilevel(bitmap, area.djvu, decision.resolution)
            else:
                self.tools.compress_lossy(
                    bitmap,
                    area.djvu,
                    decision.slices,
                    resolution=decision.resolution,
                    chroma=not isinstance(decision, GrayscaleLossy),
                )
                if entry.consider_original:
                    decision = self._maybe_keep_original(entry, decision, area)
            self._emit(area.djvu)
        return decision

    def _maybe_keep_original(
        self,
        entry: PageEntry,
        decision: EncodingDecision,
        area: PageScratch,
    ) -> EncodingDecision:
        self.tools.extract_page(self.input_path, entry.record.page_number, area.prefix, True)
        if not area.jpeg.exists():
            return decision
        original_size = area.jpeg.stat().st_size
        recompressed_size = area.djvu.stat().st_size
        if not keep_original(
            self.config.keep_jpegs,
            self.config.keep_jpegs_threshold,
            original_size,
            recompressed_size,
        ):
            return decision
        logger.debug(
            "Keeping original JPEG for page %d (%d bytes, recompressed %d bytes)",
            entry.record.page_number,
            original_size,
            recompressed_size,
        )
        passthrough = passthrough_decision(entry.record, area.jpeg)
        self._inject(passthrough, area)
        return passthrough

    def _inject(self, decision: PassthroughOriginal, area: PageScratch) -> None:
        self.tools.inject_background(
            area.djvu,
            decision.width,
            decision.height,
            decision.resolution,
            decision.original_path,
        )

    def _record(
        self,
        position: int,
        action: str,
        progress_code: str,
        output_pages: int,
        source_page: int | None,
    ) -> None:
        self.outcomes.append(
            StepOutcome(
                position=position,
                action=action,
                progress_code=progress_code,
                output_pages=output_pages,
                source_page=source_page,
            )
        )
