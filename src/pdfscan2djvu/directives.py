"""Parsers for the edit directive, quality and keep-JPEG option values."""

from __future__ import annotations

from pathlib import Path
import re

from pdfscan2djvu.errors import ArgumentError
from pdfscan2djvu.models import (
    QUALITY_PRESETS,
    DeleteDirective,
    InsertDirective,
    KeepJpegsPolicy,
)

DELETE_ITEM_PATTERN = re.compile(r"^(\d+)(?:x(\d+))?$")
INSERT_PATTERN = re.compile(r"^(\d+)(?:x(\d+))?(?::(.*))?$", re.DOTALL)
KEEP_JPEGS_PATTERN = re.compile(r"^(never|always|auto)(?::(0\.\d+))?$")
# c44 slice syntax: "74,87,97" or relative increments "74+13+10"
SLICE_LINE_PATTERN = re.compile(r"^\d+(?:(?:,\+?|\+)\d+)*$")
SLICE_ITEM_PATTERN = re.compile(r"[,+]*\d+")

INSERTABLE_SUFFIXES = {".djvu", ".djv", ".jpg", ".jpeg"}
MIN_SLICES = 2
MAX_SLICES = 4


def parse_delete(value: str, option: str = "") -> DeleteDirective:
    """Parse ``N[xC]`` items separated by commas into a deletion set."""
    option = option or value
    pages: set[int] = set()
    for item in value.split(","):
        match = DELETE_ITEM_PATTERN.match(item.strip())
        if match is None:
            raise ArgumentError(f"Unrecognized command line option: '{option}'")
        start = int(match.group(1))
        count = int(match.group(2) or 1)
        if start < 1:
            raise ArgumentError(f"Invalid page number {start} in '{option}'.")
        pages.update(range(start, start + count))
    return DeleteDirective(page_numbers=frozenset(pages), option=option)


def parse_insert(value: str, option: str = "") -> InsertDirective:
    """Parse ``N[xC][:file]`` into an insertion directive."""
    option = option or value
    match = INSERT_PATTERN.match(value)
    if match is None:
        raise ArgumentError(f"Unrecognized command line option: '{option}'")
    start = int(match.group(1))
    count = int(match.group(2) or 1)
    file_name = match.group(3)
    source_file: Path | None = None
    if count > 0:
        if start < 1:
            raise ArgumentError(f"Invalid page number {start} in '{option}'.")
        if file_name is not None:
            source_file = Path(file_name)
            if not source_file.is_file():
                raise ArgumentError(f"File not found: '{file_name}'")
            if source_file.suffix.lower() not in INSERTABLE_SUFFIXES:
                raise ArgumentError(
                    f"Unsupported image format for insertion: '{file_name}' "
                    f"(expected one of {', '.join(sorted(INSERTABLE_SUFFIXES))})"
                )
    return InsertDirective(
        before_page=start,
        count=count,
        source_file=source_file,
        option=option,
    )


def parse_quality(value: str) -> tuple[str, tuple[int, ...]]:
    """Return the quality label and c44 slice list for a preset or slice line."""
    if value in QUALITY_PRESETS:
        return value, QUALITY_PRESETS[value]

    if SLICE_LINE_PATTERN.match(value) is None:
        raise ArgumentError(
            f"Unrecognized quality setting: '{value}' "
            f"(expected one of {'/'.join(QUALITY_PRESETS)} or a slice list like 72,83,93)"
        )

    slices: list[int] = []
    for item in SLICE_ITEM_PATTERN.findall(value):
        number = int(item.lstrip(",+"))
        slices.append(slices[-1] + number if "+" in item else number)
    if not MIN_SLICES <= len(slices) <= MAX_SLICES:
        raise ArgumentError(
            f"Quality slice list must have {MIN_SLICES} to {MAX_SLICES} values: '{value}'"
        )
    if any(later <= earlier for earlier, later in zip(slices, slices[1:])):
        raise ArgumentError(f"Quality slice values must be strictly increasing: '{value}'")
    return value, tuple(slices)


def parse_keep_jpegs(value: str | None) -> tuple[KeepJpegsPolicy, float | None]:
    """Parse ``never``, ``always``, ``auto`` or ``auto:0.NN``.

    A bare option without a value means ``always``. The threshold is
    ``None`` unless given explicitly.
    """
    if value is None or value == "":
        return "always", None
    match = KEEP_JPEGS_PATTERN.match(value)
    if match is None or (match.group(2) is not None and match.group(1) != "auto"):
        raise ArgumentError(
            f"Unrecognized keep-JPEG policy: '{value}' "
            "(expected never, always, auto or auto:0.NN)"
        )
    policy: KeepJpegsPolicy = match.group(1)  # type: ignore[assignment]
    threshold = float(match.group(2)) if match.group(2) is not None else None
    return policy, threshold
