"""Exceptions raised by pdfscan2djvu.

Every detected fault is fatal: callers never retry and never repair a
partially written document.
"""

from __future__ import annotations

from collections.abc import Sequence


class ConversionError(Exception):
    """Base exception for all pdfscan2djvu errors."""


class ValidationError(ConversionError):
    """The input PDF or its image listing cannot be converted."""


class MalformedListing(ValidationError):
    """A listing row does not have the expected columns."""


class UnsupportedImageType(ValidationError):
    """A listed image is not of type ``image`` (masks, stencils, ...)."""


class InconsistentResolution(ValidationError):
    """Horizontal and vertical resolution differ, or are not positive."""


class MultipleImagesOnPage(ValidationError):
    """More than one image was listed for the same page."""


class NoImagesFound(ValidationError):
    """The listing has no image rows at all."""


class NonContiguousPages(ValidationError):
    """Listed page numbers do not form the range ``1..N``."""


class PageCountMismatch(ValidationError):
    """The PDF has pages that carry no image."""


class UnreadablePdf(ValidationError):
    """The input could not be opened as a PDF, or it is encrypted."""


class EmptyPlan(ValidationError):
    """The edit directives leave no page to write."""


class ArgumentError(ConversionError):
    """A command-line option is malformed or references a missing file."""


class ToolInvocationError(ConversionError):
    """An external tool exited with a non-success status."""

    def __init__(
        self,
        tool: str,
        argv: Sequence[str],
        returncode: int,
        stderr: str = "",
    ) -> None:
        self.tool = tool
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        message = f"'{tool}' failed with exit status {returncode}: {' '.join(self.argv)}"
        detail = stderr.strip()
        if detail:
            message += f"\n{detail}"
        super().__init__(message)


class ToolNotFoundError(ConversionError):
    """Required external executables are not installed."""

    def __init__(self, missing: Sequence[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            "required external tool(s) not found on PATH: " + ", ".join(self.missing)
        )
