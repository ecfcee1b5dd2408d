"""Deterministic PDF and image-listing fixture builders for tests."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from pypdf import PdfWriter

PAGE_WIDTH = 612
PAGE_HEIGHT = 792

LISTING_HEADER = (
    "page   num  type   width height color comp bpc  enc interp  object ID "
    "x-ppi y-ppi size ratio"
)
LISTING_SEPARATOR = "-" * 92


@dataclass(frozen=True)
class ImageRow:
    """Describe one row of a ``pdfimages -list`` listing."""

    page: int
    width: int = 1065
    height: int = 1543
    color: str = "rgb"
    components: int = 3
    bits: int = 8
    encoding: str = "jpeg"
    x_ppi: int = 200
    y_ppi: int | None = None
    image_type: str = "image"
    num: int = 0

    def render(self) -> str:
        y_ppi = self.x_ppi if self.y_ppi is None else self.y_ppi
        return (
            f"{self.page:>4} {self.num:>5} {self.image_type:<6} {self.width:>5} {self.height:>5}  "
            f"{self.color:<5} {self.components:>3} {self.bits:>3}  {self.encoding:<5}  no"
            f"       {840 + self.page:>3}  0   {self.x_ppi:>3}   {y_ppi:>3}  156K 3.2%"
        )


def color_row(page: int, **overrides: object) -> ImageRow:
    return ImageRow(page=page, **overrides)  # type: ignore[arg-type]


def gray_row(page: int, **overrides: object) -> ImageRow:
    values: dict[str, object] = {"color": "gray", "components": 1, "bits": 8}
    values.update(overrides)
    return ImageRow(page=page, **values)  # type: ignore[arg-type]


def mono_row(page: int, **overrides: object) -> ImageRow:
    values: dict[str, object] = {
        "color": "gray",
        "components": 1,
        "bits": 1,
        "encoding": "ccitt",
        "x_ppi": 600,
    }
    values.update(overrides)
    return ImageRow(page=page, **values)  # type: ignore[arg-type]


def listing_text(rows: list[ImageRow], preamble: list[str] | None = None) -> str:
    """Render rows as the text ``pdfimages -list`` prints."""
    lines = list(preamble or [])
    lines.extend([LISTING_HEADER, LISTING_SEPARATOR])
    lines.extend(row.render() for row in rows)
    return "\n".join(lines) + "\n"


def create_pdf(
    pages: int,
    password: str | None = None,
    owner_password: str | None = None,
) -> bytes:
    """Build a PDF payload with the given number of blank pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
    if password is not None:
        writer.encrypt(user_password=password, owner_password=owner_password)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def write_pdf(
    destination: Path,
    pages: int,
    password: str | None = None,
    owner_password: str | None = None,
) -> Path:
    """Write a blank-page PDF to disk and return its path."""
    destination.write_bytes(create_pdf(pages, password=password, owner_password=owner_password))
    return destination
