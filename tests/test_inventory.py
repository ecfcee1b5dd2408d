"""Tests for parsing the per-page image inventory."""

from __future__ import annotations

from pathlib import Path
import random

import pytest

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
from pdfscan2djvu.inventory import (
    average_page_size,
    check_page_count,
    classify_color,
    inspect_pdf,
    parse_image_listing,
)
from pdfscan2djvu.models import PageRecord
from tests.pdf_factory import (
    LISTING_HEADER,
    color_row,
    gray_row,
    listing_text,
    mono_row,
    write_pdf,
)


def test_parses_rows_into_ordered_page_records() -> None:
    text = listing_text([color_row(2, width=1000), color_row(1), gray_row(3, encoding="image")])

    records = parse_image_listing(text)

    assert [record.page_number for record in records] == [1, 2, 3]
    assert records[0] == PageRecord(
        page_number=1,
        width=1065,
        height=1543,
        resolution=200,
        color_class="color",
        source_encoding="jpeg",
    )
    assert records[1].width == 1000
    assert records[2].color_class == "gray"
    assert records[2].source_encoding == "image"


def test_ignores_rows_before_header_and_separator_rows() -> None:
    text = listing_text(
        [color_row(1)],
        preamble=["Syntax Warning: something odd", "   7     0 smask 1 1 gray 1 8 image"],
    )

    records = parse_image_listing(text)

    assert len(records) == 1


def test_mono_requires_one_component_and_one_bit() -> None:
    records = parse_image_listing(listing_text([mono_row(1), gray_row(2)]))

    assert [record.color_class for record in records] == ["mono", "gray"]
    assert records[0].resolution == 600


@pytest.mark.parametrize(
    ("word", "components", "bits", "expected"),
    [
        ("rgb", 3, 8, "color"),
        ("cmyk", 4, 8, "color"),
        ("gray", 1, 8, "gray"),
        ("icc", 1, 8, "gray"),
        ("icc", 3, 8, "color"),
        ("index", 1, 8, "color"),
        ("index", 1, 1, "mono"),
        ("unknown", 3, 8, "color"),
    ],
)
def test_classify_color(word: str, components: int, bits: int, expected: str) -> None:
    assert classify_color(word, components, bits) == expected


def test_rejects_non_image_types() -> None:
    with pytest.raises(UnsupportedImageType, match="page 2"):
        parse_image_listing(listing_text([color_row(1), color_row(2, image_type="smask")]))


@pytest.mark.parametrize(("x_ppi", "y_ppi"), [(200, 300), (0, 0)])
def test_rejects_bad_resolution(x_ppi: int, y_ppi: int) -> None:
    with pytest.raises(InconsistentResolution, match="page 1"):
        parse_image_listing(listing_text([color_row(1, x_ppi=x_ppi, y_ppi=y_ppi)]))


def test_rejects_multiple_images_on_one_page() -> None:
    text = listing_text([color_row(1), color_row(2), color_row(2, num=1)])

    with pytest.raises(MultipleImagesOnPage, match="page 2"):
        parse_image_listing(text)


@pytest.mark.parametrize("text", ["", LISTING_HEADER + "\n", listing_text([])])
def test_rejects_listing_without_images(text: str) -> None:
    with pytest.raises(NoImagesFound):
        parse_image_listing(text)


def test_rejects_gap_in_page_numbers() -> None:
    with pytest.raises(NonContiguousPages, match="missing page 2"):
        parse_image_listing(listing_text([color_row(1), color_row(3)]))


def test_rejects_listing_not_starting_at_page_one() -> None:
    with pytest.raises(NonContiguousPages):
        parse_image_listing(listing_text([color_row(2), color_row(3)]))


def test_rejects_truncated_row() -> None:
    text = LISTING_HEADER + "\n   1     0 image    1065  1543  rgb\n"

    with pytest.raises(MalformedListing):
        parse_image_listing(text)


@pytest.mark.parametrize("seed", range(20))
def test_contiguous_listings_keep_every_page(seed: int) -> None:
    rng = random.Random(seed)
    page_count = rng.randint(1, 40)
    pages = list(range(1, page_count + 1))
    rng.shuffle(pages)

    records = parse_image_listing(listing_text([color_row(page) for page in pages]))

    assert [record.page_number for record in records] == list(range(1, page_count + 1))


@pytest.mark.parametrize("seed", range(20))
def test_listings_with_a_missing_page_are_rejected(seed: int) -> None:
    rng = random.Random(seed)
    page_count = rng.randint(2, 40)
    pages = list(range(1, page_count + 1))
    pages.remove(rng.randint(1, page_count - 1))
    rng.shuffle(pages)

    with pytest.raises(NonContiguousPages):
        parse_image_listing(listing_text([color_row(page) for page in pages]))


def test_inspect_pdf_counts_pages(tmp_path: Path) -> None:
    pdf_path = write_pdf(tmp_path / "book.pdf", pages=4)

    assert inspect_pdf(pdf_path) == 4


def test_inspect_pdf_rejects_garbage(tmp_path: Path) -> None:
    pdf_path = tmp_path / "broken.pdf"
    pdf_path.write_bytes(b"this is not a pdf")

    with pytest.raises(UnreadablePdf, match="broken.pdf"):
        inspect_pdf(pdf_path)


def test_inspect_pdf_rejects_encrypted_files(tmp_path: Path) -> None:
    pdf_path = write_pdf(tmp_path / "locked.pdf", pages=1, password="secret")

    with pytest.raises(UnreadablePdf, match="encrypted"):
        inspect_pdf(pdf_path)


def test_check_page_count_detects_pages_without_images() -> None:
    records = parse_image_listing(listing_text([color_row(1), color_row(2)]))

    check_page_count(records, 2)
    with pytest.raises(PageCountMismatch, match="2 of 3"):
        check_page_count(records, 3)


def test_average_page_size() -> None:
    records = parse_image_listing(
        listing_text([color_row(1, width=1000, height=1500), color_row(2, width=1001, height=1600)])
    )

    assert average_page_size(records) == (1000, 1550)


def test_inspect_pdf_opens_owner_password_only_files(tmp_path: Path) -> None:
    pdf_path = write_pdf(tmp_path / "book.pdf", pages=3, password="", owner_password="owner")

    assert inspect_pdf(pdf_path) == 3
