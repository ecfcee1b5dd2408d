"""Single-document conversion orchestration for pdfscan2djvu."""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path
import sys
from time import perf_counter
from typing import TextIO

from pdfscan2djvu.assembly import AssemblyDriver, ProgressReporter
from pdfscan2djvu.errors import ValidationError
from pdfscan2djvu.inventory import (
    average_page_size,
    check_page_count,
    inspect_pdf,
    parse_image_listing,
)
from pdfscan2djvu.models import (
    ConversionConfig,
    ConversionResult,
    EditDirective,
    InsertEntry,
    PageRecord,
    SkippedPage,
)
from pdfscan2djvu.planner import build_plan
from pdfscan2djvu.provenance import build_metadata_script, file_sha256
from pdfscan2djvu.reporting import summary_lines
from pdfscan2djvu.scratch import open_scratch_area
from pdfscan2djvu.tools import DjVuTools

logger = logging.getLogger(__name__)


def load_inventory(input_path: Path, tools: DjVuTools) -> list[PageRecord]:
    """Read the per-page image inventory and check it against the PDF itself."""
    pdf_pages = inspect_pdf(input_path)
    records = parse_image_listing(tools.list_images(input_path))
    check_page_count(records, pdf_pages)
    return records


def convert_pdf(
    input_path: Path,
    output_path: Path,
    config: ConversionConfig,
    directives: Sequence[EditDirective] = (),
    option_strings: Sequence[str] = (),
    tools: DjVuTools | None = None,
    stream: TextIO | None = None,
) -> ConversionResult:
    """Convert one scanned-image PDF into a DjVu document."""
    tools = tools or DjVuTools()
    stream = stream if stream is not None else sys.stdout
    timings: dict[str, float] = {}
    run_start = perf_counter()

    print(f"Inspecting images in '{input_path}'. Please wait...", end="", file=stream)
    try:
        records = load_inventory(input_path, tools)
    except ValidationError:
        print(" FAIL.", file=stream)
        raise
    print(" done.", file=stream)
    width, height = average_page_size(records)
    print(
        f"File information: {len(records)} pages. Average page size: {width}x{height} pixels.",
        file=stream,
    )
    print(f"Quality settings for c44 transcoding: '-slice {config.slice_argument}'.", file=stream)

    plan = build_plan(records, directives, config)
    timings["planning_seconds"] = round(perf_counter() - run_start, 6)

    assembly_start = perf_counter()
    with open_scratch_area() as scratch:
        driver = AssemblyDriver(
            tools=tools,
            config=config,
            input_path=input_path,
            output_path=output_path,
            scratch=scratch,
            progress=ProgressReporter(stream),
        )
        assembly = driver.run(plan)
        timings["assembly_seconds"] = round(perf_counter() - assembly_start, 6)
        sha256 = file_sha256(input_path)
        driver.finalize(build_metadata_script(input_path, sha256, option_strings))

    timings["total_seconds"] = round(perf_counter() - run_start, 6)
    result = ConversionResult(
        input_path=str(input_path),
        output_path=str(output_path),
        pages_source=len(records),
        pages_deleted=sum(1 for step in plan.steps if isinstance(step, SkippedPage)),
        pages_inserted=sum(
            step.count for step in plan.steps if isinstance(step, InsertEntry)
        ),
        pages_output=assembly.pages_output,
        input_size=input_path.stat().st_size,
        output_size=output_path.stat().st_size,
        sha256=sha256,
        option_strings=list(option_strings),
        outcomes=assembly.outcomes,
        timings=timings,
    )
    for line in summary_lines(result):
        print(line, file=stream)
    logger.debug("Conversion timings: %s", timings)
    return result
