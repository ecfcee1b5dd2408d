"""Typed models for pdfscan2djvu pages, plans and run results."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

ColorClass = Literal["mono", "gray", "color"]
KeepJpegsPolicy = Literal["never", "always", "auto"]

QUALITY_PRESETS: dict[str, tuple[int, ...]] = {
    "bad": (74, 86, 95),
    "mediocre": (74, 87, 97),
    "average": (74, 89, 99),
    "good": (72, 83, 93, 103),
    "superb": (74, 89, 99, 111),
}
DEFAULT_QUALITY = "good"
DEFAULT_KEEP_JPEGS: KeepJpegsPolicy = "auto"
DEFAULT_KEEP_JPEGS_THRESHOLD = 0.75


@dataclass(frozen=True)
class PageRecord:
    """Image properties of one source page, as reported by the image listing."""

    page_number: int
    width: int
    height: int
    resolution: int
    color_class: ColorClass
    source_encoding: str

    @property
    def width_inches(self) -> float:
        return self.width / self.resolution


@dataclass(frozen=True)
class DeleteDirective:
    """Remove the given 1-based source pages from the output."""

    page_numbers: frozenset[int]
    option: str = ""


@dataclass(frozen=True)
class InsertDirective:
    """Insert ``count`` copies of an image before a 1-based source page."""

    before_page: int
    count: int
    source_file: Path | None = None
    option: str = ""


EditDirective = DeleteDirective | InsertDirective


@dataclass(frozen=True)
class ConversionConfig:
    """Immutable option set for one conversion run."""

    slices: tuple[int, ...] = QUALITY_PRESETS[DEFAULT_QUALITY]
    quality_label: str = DEFAULT_QUALITY
    keep_jpegs: KeepJpegsPolicy = DEFAULT_KEEP_JPEGS
    keep_jpegs_threshold: float = DEFAULT_KEEP_JPEGS_THRESHOLD
    report_path: str | None = None
    verbose: bool = False

    @property
    def slice_argument(self) -> str:
        """Return the slices in c44 ``-slice`` syntax."""
        return ",".join(str(value) for value in self.slices)


@dataclass(frozen=True)
class Bilevel:
    """Lossless one-bit compression with cjb2."""

    resolution: int
    progress_code = "b"
    action = "bilevel"


@dataclass(frozen=True)
class GrayscaleLossy:
    """Lossy c44 compression without chroma."""

    resolution: int
    slices: tuple[int, ...]
    progress_code = "g"
    action = "grayscale"


@dataclass(frozen=True)
class ColorLossy:
    """Lossy c44 compression with chroma."""

    resolution: int
    slices: tuple[int, ...]
    progress_code = "c"
    action = "color"


@dataclass(frozen=True)
class PassthroughOriginal:
    """Reuse the original JPEG unchanged as the page background layer."""

    original_path: Path
    width: int
    height: int
    resolution: int
    progress_code = "J"
    action = "passthrough"


EncodingDecision = Bilevel | GrayscaleLossy | ColorLossy | PassthroughOriginal


@dataclass(frozen=True)
class InsertEntry:
    """A batch of inserted pages placed before a source position."""

    position: int
    directive: InsertDirective
    neighbour_width_inches: tuple[float, ...] = ()
    progress_code = "+"
    action = "insert"

    @property
    def count(self) -> int:
        return self.directive.count

    @property
    def source_file(self) -> Path | None:
        return self.directive.source_file


@dataclass(frozen=True)
class PageEntry:
    """A surviving source page together with its metadata-based decision."""

    record: PageRecord
    decision: EncodingDecision
    consider_original: bool = False

    @property
    def position(self) -> int:
        return self.record.page_number


@dataclass(frozen=True)
class SkippedPage:
    """Marker for a deleted source page. It emits nothing."""

    record: PageRecord
    progress_code = "-"
    action = "delete"

    @property
    def position(self) -> int:
        return self.record.page_number


PlanEntry = InsertEntry | PageEntry
PlanStep = InsertEntry | PageEntry | SkippedPage


@dataclass(frozen=True)
class Plan:
    """Ordered conversion plan computed before any output is written."""

    records: tuple[PageRecord, ...]
    steps: tuple[PlanStep, ...]

    @property
    def entries(self) -> list[PlanEntry]:
        return [step for step in self.steps if not isinstance(step, SkippedPage)]

    @property
    def page_entries(self) -> list[PageEntry]:
        return [step for step in self.steps if isinstance(step, PageEntry)]

    @property
    def expected_output_pages(self) -> int:
        total = 0
        for entry in self.entries:
            total += entry.count if isinstance(entry, InsertEntry) else 1
        return total


@dataclass(frozen=True)
class StepOutcome:
    """What the assembly driver actually did for one plan step."""

    position: int
    action: str
    progress_code: str
    output_pages: int
    source_page: int | None = None


@dataclass(frozen=True)
class AssemblyResult:
    """Outcome of executing a plan into the output document."""

    output_path: str
    pages_output: int
    outcomes: list[StepOutcome] = field(default_factory=list)


@dataclass(frozen=True)
class ConversionResult:
    """Result of converting one PDF into one DjVu document."""

    input_path: str
    output_path: str
    pages_source: int
    pages_deleted: int
    pages_inserted: int
    pages_output: int
    input_size: int
    output_size: int
    sha256: str
    option_strings: list[str]
    outcomes: list[StepOutcome]
    timings: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class RunReport:
    """Machine-readable record of one CLI run."""

    timestamp_local: str
    timestamp_utc: str
    user: str
    host: str
    python_version: str
    pypdf_version: str
    config: ConversionConfig
    result: ConversionResult
    totals: dict[str, int]
