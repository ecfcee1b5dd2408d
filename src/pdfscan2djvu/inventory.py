"""Per-page image inventory built from a ``pdfimages -list`` listing."""

from __future__ import annotations

import logging
from pathlib import Path
import re

from pypdf import PasswordType, PdfReader
from pypdf.errors import DependencyError, PdfReadError

from pdfscan2djvu.errors import (
    InconsistentResolution,
    MalformedListing,
    MultipleImagesOnPage,
    NoImagesFound,
    NonContiguousPages,
    PageCountMismatch,
    UnreadablePdf,
    UnsupportedImageType,
)
from pdfscan2djvu.models import ColorClass, PageRecord

logger = logging.getLogger(__name__)

# page   num  type   width height color comp bpc  enc interp  object ID x-ppi y-ppi size ratio
# --------------------------------------------------------------------------------------------
#    1     0 image    1065  1543  rgb     3   8  jpeg   no       849  0   200   200  156K 3.2%
LISTING_HEADER_PATTERN = re.compile(
    r"^\s*page\s+num\s+type\s+width\s+height\s+color\s+comp\s+bpc\s+enc\s+interp"
    r"\s+object\s+ID\s+x-ppi\s+y-ppi\s+size\s+ratio\s*$"
)
SEPARATOR_PATTERN = re.compile(r"^\s*-")
MIN_COLUMNS = 14

_COLOR_WORDS: dict[str, ColorClass] = {
    "mono": "mono",
    "gray": "gray",
    "rgb": "color",
    "cmyk": "color",
    "lab": "color",
    "index": "color",
    "sep": "color",
    "devn": "color",
}


def parse_image_listing(text: str) -> list[PageRecord]:
    """Parse listing text into page records ordered by page number.

    Rows before the header row and separator rows are ignored. The result
    covers pages ``1..N`` exactly, one image per page.
    """
    records: dict[int, PageRecord] = {}
    header_seen = False
    for line in text.splitlines():
        if SEPARATOR_PATTERN.match(line):
            continue
        if not header_seen:
            header_seen = bool(LISTING_HEADER_PATTERN.match(line))
            continue
        if not line.strip():
            continue
        record = parse_listing_row(line)
        if record.page_number in records:
            raise MultipleImagesOnPage(
                f"more than one image on a single page {record.page_number}"
            )
        records[record.page_number] = record

    ordered = [records[number] for number in sorted(records)]
    if not ordered:
        raise NoImagesFound("no images found")
    if ordered[0].page_number != 1 or ordered[-1].page_number != len(ordered):
        missing = sorted(set(range(1, ordered[-1].page_number + 1)) - set(records))
        detail = f" (missing page {missing[0]})" if missing else ""
        raise NonContiguousPages(f"not every page has an image{detail}")
    logger.debug("Parsed image listing with %d page(s)", len(ordered))
    return ordered


def parse_listing_row(line: str) -> PageRecord:
    """Parse one data row of the listing."""
    columns = line.split()
    if len(columns) < MIN_COLUMNS:
        raise MalformedListing(f"unexpected image listing row: '{line.strip()}'")
    try:
        page_number = int(columns[0])
        width = int(columns[3])
        height = int(columns[4])
        components = int(columns[6])
        bits_per_component = int(columns[7])
        x_ppi = int(columns[12])
        y_ppi = int(columns[13])
    except ValueError as exc:
        raise MalformedListing(f"unexpected image listing row: '{line.strip()}'") from exc

    image_type = columns[2]
    if image_type != "image":
        raise UnsupportedImageType(
            f"unexpected image type '{image_type}' on page {page_number}"
        )
    if x_ppi != y_ppi or x_ppi <= 0:
        raise InconsistentResolution(
            f"unexpected dpi {x_ppi}x{y_ppi} on page {page_number}"
        )
    return PageRecord(
        page_number=page_number,
        width=width,
        height=height,
        resolution=x_ppi,
        color_class=classify_color(columns[5], components, bits_per_component),
        source_encoding=columns[8],
    )


def classify_color(color_word: str, components: int, bits_per_component: int) -> ColorClass:
    """Normalize the declared color space to mono, gray or color."""
    if components == 1 and bits_per_component == 1:
        return "mono"
    if color_word == "icc":
        return "gray" if components == 1 else "color"
    return _COLOR_WORDS.get(color_word, "color")


def inspect_pdf(input_path: Path) -> int:
    """Open the input with pypdf and return its page count.

    PDFs protected only by an owner password open with an empty user
    password, the same way ``pdfimages`` reads them.
    """
    try:
        reader = PdfReader(str(input_path))
        if reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED:
            raise UnreadablePdf(f"'{input_path}' is encrypted with a user password")
        return len(reader.pages)
    except (PdfReadError, DependencyError, OSError) as exc:
        raise UnreadablePdf(f"'{input_path}' can't be read as a PDF: {exc}") from exc


def check_page_count(records: list[PageRecord], pdf_pages: int) -> None:
    """Reject PDFs with trailing pages that carry no image."""
    if len(records) != pdf_pages:
        raise PageCountMismatch(
            f"not every page has an image (images on {len(records)} of {pdf_pages} pages)"
        )


def average_page_size(records: list[PageRecord]) -> tuple[int, int]:
    """Return the integer mean width and height in pixels."""
    count = len(records)
    return (
        sum(record.width for record in records) // count,
        sum(record.height for record in records) // count,
    )
