"""Conversion planning: edit resolution and per-page encoding strategy.

The whole plan is computed from the image inventory and the edit
directives before anything is written. The only decision deferred to
assembly time is whether an original JPEG replaces its recompressed
counterpart, because that needs the size of the recompressed artifact.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path

from pdfscan2djvu.errors import ArgumentError, EmptyPlan
from pdfscan2djvu.models import (
    Bilevel,
    ColorLossy,
    ConversionConfig,
    DeleteDirective,
    EditDirective,
    EncodingDecision,
    GrayscaleLossy,
    InsertDirective,
    InsertEntry,
    KeepJpegsPolicy,
    PageEntry,
    PageRecord,
    PassthroughOriginal,
    Plan,
    PlanStep,
    SkippedPage,
)

logger = logging.getLogger(__name__)

ResolvedStep = InsertEntry | SkippedPage | PageRecord


def build_plan(
    records: Sequence[PageRecord],
    directives: Sequence[EditDirective],
    config: ConversionConfig,
) -> Plan:
    """Resolve edits and choose an encoding for every surviving page."""
    steps: list[PlanStep] = []
    for step in resolve_edits(records, directives):
        if isinstance(step, PageRecord):
            decision, consider_original = select_strategy(step, config)
            steps.append(
                PageEntry(record=step, decision=decision, consider_original=consider_original)
            )
        else:
            steps.append(step)

    plan = Plan(records=tuple(records), steps=tuple(steps))
    if plan.expected_output_pages == 0:
        raise EmptyPlan("nothing to convert: every page is deleted and nothing is inserted")
    logger.debug(
        "Planned %d step(s) producing %d output page(s)",
        len(plan.steps),
        plan.expected_output_pages,
    )
    return plan


def resolve_edits(
    records: Sequence[PageRecord],
    directives: Sequence[EditDirective],
) -> list[ResolvedStep]:
    """Merge delete and insert directives into the ordered output sequence.

    Surviving pages are returned as their ``PageRecord``. Insertions at a
    position come first, in command-line order, followed by the page
    itself or its deletion marker. Position ``N + 1`` holds trailing
    insertions.
    """
    page_count = len(records)
    deleted: set[int] = set()
    inserts: dict[int, list[InsertDirective]] = {}
    for directive in directives:
        if isinstance(directive, DeleteDirective):
            beyond = sorted(number for number in directive.page_numbers if number > page_count)
            if beyond:
                raise ArgumentError(
                    f"Invalid page number {beyond[0]} in '{directive.option}' "
                    f"(the document has {page_count} pages)."
                )
            deleted.update(directive.page_numbers)
        elif directive.count > 0:
            if directive.before_page > page_count + 1:
                raise ArgumentError(
                    f"Invalid page number {directive.before_page} in '{directive.option}' "
                    f"(the document has {page_count} pages)."
                )
            inserts.setdefault(directive.before_page, []).append(directive)

    steps: list[ResolvedStep] = []
    for position in range(1, page_count + 2):
        for directive in inserts.get(position, []):
            steps.append(
                InsertEntry(
                    position=position,
                    directive=directive,
                    neighbour_width_inches=neighbour_width_inches(records, position),
                )
            )
        if position > page_count:
            break
        record = records[position - 1]
        if position in deleted:
            steps.append(SkippedPage(record=record))
        else:
            steps.append(record)
    return steps


def select_strategy(
    record: PageRecord,
    config: ConversionConfig,
) -> tuple[EncodingDecision, bool]:
    """Choose the encoding from page metadata alone.

    The second value tells whether the original JPEG must be compared
    against the recompressed page during assembly.
    """
    if record.color_class == "mono":
        return Bilevel(resolution=record.resolution), False
    decision: EncodingDecision
    if record.color_class == "gray":
        decision = GrayscaleLossy(resolution=record.resolution, slices=config.slices)
    else:
        decision = ColorLossy(resolution=record.resolution, slices=config.slices)
    consider_original = record.source_encoding == "jpeg" and config.keep_jpegs != "never"
    return decision, consider_original


def keep_original(
    policy: KeepJpegsPolicy,
    threshold: float,
    original_size: int,
    recompressed_size: int,
) -> bool:
    """Return whether the original JPEG should replace the recompressed page."""
    if policy == "always":
        return True
    if policy == "auto":
        return original_size * threshold < recompressed_size
    return False


def passthrough_decision(record: PageRecord, original_path: Path) -> PassthroughOriginal:
    """Decide to carry the page's original JPEG unchanged as the DjVu background."""
    return PassthroughOriginal(
        original_path=original_path,
        width=record.width,
        height=record.height,
        resolution=record.resolution,
    )


def neighbour_width_inches(records: Sequence[PageRecord], position: int) -> tuple[float, ...]:
    """Physical widths of the source pages on either side of an insertion point."""
    widths: list[float] = []
    for page_number in (position - 1, position):
        if 1 <= page_number <= len(records):
            widths.append(records[page_number - 1].width_inches)
    return tuple(widths)


def insert_resolution(width: int, neighbour_widths: Sequence[float]) -> int | None:
    """Resolution that gives an inserted image the mean width of its neighbours."""
    if not neighbour_widths:
        return None
    mean_width = sum(neighbour_widths) / len(neighbour_widths)
    return max(1, int(width / mean_width))
