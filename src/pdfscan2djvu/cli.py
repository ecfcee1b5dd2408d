"""Command-line interface for pdfscan2djvu."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import re
import sys
from typing import Any, Sequence

from pdfscan2djvu.converter import convert_pdf
from pdfscan2djvu.directives import (
    parse_delete,
    parse_insert,
    parse_keep_jpegs,
    parse_quality,
)
from pdfscan2djvu.errors import ArgumentError, ConversionError, ValidationError
from pdfscan2djvu.models import (
    DEFAULT_KEEP_JPEGS,
    DEFAULT_KEEP_JPEGS_THRESHOLD,
    DEFAULT_QUALITY,
    QUALITY_PRESETS,
    ConversionConfig,
)
from pdfscan2djvu.provenance import VERSION
from pdfscan2djvu.reporting import build_run_report, write_run_report
from pdfscan2djvu.tools import DjVuTools, ensure_tools_available

PDF_SUFFIX_PATTERN = re.compile(r"\.pdf\Z", re.IGNORECASE)
DJVU_SUFFIX_PATTERN = re.compile(r"\.djvu\Z", re.IGNORECASE)
KEEP_JPEGS_OPTIONS = ("-j", "-jpeg", "-jpegs", "--keep-jpegs")
KEEP_JPEGS_VALUE_PATTERN = re.compile(r"^(?:never|always|auto)(?::|\Z)")

DESCRIPTION = (
    "Interpret a PDF as just a container of images (ignoring everything else "
    "in it) and convert it to DjVu."
)
EPILOG = (
    "Example of removing the 3rd page and inserting another image before the 5th:\n"
    "    pdfscan2djvu -d=3 -i=5:image.djvu book.pdf book.djvu"
)


class _ParsedOption(argparse.Action):
    """Parse an option value and report bad values as usage errors."""

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        try:
            self.store(namespace, str(values), f"{option_string}={values}")
        except ArgumentError as exc:
            raise argparse.ArgumentError(self, str(exc)) from exc

    def store(self, namespace: argparse.Namespace, value: str, written: str) -> None:
        raise NotImplementedError


class _DeleteOption(_ParsedOption):
    def store(self, namespace: argparse.Namespace, value: str, written: str) -> None:
        _append_directive(namespace, parse_delete(value, option=written))


class _InsertOption(_ParsedOption):
    def store(self, namespace: argparse.Namespace, value: str, written: str) -> None:
        _append_directive(namespace, parse_insert(value, option=written))


class _QualityOption(_ParsedOption):
    def store(self, namespace: argparse.Namespace, value: str, written: str) -> None:
        namespace.quality_label, namespace.slices = parse_quality(value)


class _KeepJpegsOption(_ParsedOption):
    def store(self, namespace: argparse.Namespace, value: str, written: str) -> None:
        policy, threshold = parse_keep_jpegs(value)
        namespace.keep_jpegs = policy
        if threshold is not None:
            namespace.keep_jpegs_threshold = threshold


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="pdfscan2djvu",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.set_defaults(
        directives=[],
        quality_label=DEFAULT_QUALITY,
        slices=QUALITY_PRESETS[DEFAULT_QUALITY],
        keep_jpegs=DEFAULT_KEEP_JPEGS,
        keep_jpegs_threshold=DEFAULT_KEEP_JPEGS_THRESHOLD,
    )
    parser.add_argument("input", help="Input PDF file with one scanned image per page.")
    parser.add_argument(
        "output",
        nargs="?",
        default=None,
        help="Output DjVu file. Defaults to the input name with a .djvu suffix.",
    )
    parser.add_argument(
        "-q",
        "-quality",
        "--quality",
        action=_QualityOption,
        metavar="SLICES",
        help=(
            "A line for the c44 tool's -slice option or one of the "
            f"{'/'.join(QUALITY_PRESETS)} presets. "
            f"The default is '{DEFAULT_QUALITY}' "
            f"({','.join(str(value) for value in QUALITY_PRESETS[DEFAULT_QUALITY])})."
        ),
    )
    parser.add_argument(
        *KEEP_JPEGS_OPTIONS,
        action=_KeepJpegsOption,
        nargs="?",
        const="always",
        metavar="never|always|auto[:frac]",
        help=(
            "Take the original JPEG images from the PDF and transplant them into "
            "the DjVu file as-is instead of recompressing. 'auto' (the default) "
            "keeps a JPEG when c44 recompression does not make it smaller than "
            f"the threshold fraction (default {DEFAULT_KEEP_JPEGS_THRESHOLD}) of "
            "the original. A bare -j means 'always'."
        ),
    )
    parser.add_argument(
        "-d",
        "-delete",
        "--delete",
        action=_DeleteOption,
        metavar="N[xC],...",
        help=(
            "Remove the N-th page, or C pages starting at the N-th. Page numbers "
            "refer to the original PDF. E.g. '-d=3,141,9' or '-d=10x4'."
        ),
    )
    parser.add_argument(
        "-i",
        "-insert",
        "--insert",
        action=_InsertOption,
        metavar="N[xC][:image]",
        help=(
            "Insert a new page (C pages) before the N-th page. The image may be a "
            "JPEG or DjVu file; without one a placeholder notice is inserted."
        ),
    )
    parser.add_argument(
        "--report",
        default=None,
        help="Write a JSON run report to this path.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log external tool invocations to stderr.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s v{VERSION}")
    return parser


def run_cli(argv: Sequence[str] | None = None, tools: DjVuTools | None = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = build_parser()
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(bind_bare_keep_jpegs(raw_argv))
    _configure_logging(verbose=args.verbose)
    _validate_cli_args(parser=parser, args=args)

    input_path = Path(args.input)
    output_path = default_output_path(input_path, args.output)
    config = ConversionConfig(
        slices=tuple(args.slices),
        quality_label=str(args.quality_label),
        keep_jpegs=args.keep_jpegs,
        keep_jpegs_threshold=float(args.keep_jpegs_threshold),
        report_path=args.report,
        verbose=bool(args.verbose),
    )

    try:
        if tools is None:
            ensure_tools_available()
            tools = DjVuTools()
        result = convert_pdf(
            input_path=input_path,
            output_path=output_path,
            config=config,
            directives=list(args.directives),
            option_strings=recorded_options(raw_argv),
            tools=tools,
        )
    except ValidationError as exc:
        print(
            f"pdfscan2djvu: error: The input file '{input_path}' can't be converted: {exc}.",
            file=sys.stderr,
        )
        return 1
    except ConversionError as exc:
        print(f"pdfscan2djvu: error: {exc}", file=sys.stderr)
        return 1

    if config.report_path is not None:
        report_path = write_run_report(
            build_run_report(config=config, result=result),
            Path(config.report_path),
        )
        print(f"pdfscan2djvu: report written to {report_path}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Run the CLI as a console entry point."""
    raise SystemExit(run_cli(argv))


def default_output_path(input_path: Path, output: str | None) -> Path:
    """Return the output path, always ending in ``.djvu``."""
    if output is None:
        return input_path.with_name(PDF_SUFFIX_PATTERN.sub(".djvu", input_path.name))
    if not DJVU_SUFFIX_PATTERN.search(output):
        output += ".djvu"
    return Path(output)


def _append_directive(namespace: argparse.Namespace, directive: object) -> None:
    namespace.directives = [*(getattr(namespace, "directives", None) or []), directive]


def recorded_options(argv: Sequence[str]) -> list[str]:
    """Return the option tokens of a command line exactly as they were written."""
    return [arg for arg in argv if arg.startswith("-")]


def bind_bare_keep_jpegs(argv: Sequence[str]) -> list[str]:
    """Bind a value-less ``-j`` to ``always`` when a positional follows it.

    ``-j never`` keeps its value; ``-j book.pdf`` must not consume the input.
    """
    bound: list[str] = []
    for index, arg in enumerate(argv):
        following = argv[index + 1] if index + 1 < len(argv) else None
        if (
            arg in KEEP_JPEGS_OPTIONS
            and following is not None
            and not following.startswith("-")
            and not KEEP_JPEGS_VALUE_PATTERN.match(following)
        ):
            arg = f"{arg}=always"
        bound.append(arg)
    return bound


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
            stream=sys.stderr,
        )
    _configure_pypdf_logging(capture_warnings=verbose)


def _configure_pypdf_logging(capture_warnings: bool) -> None:
    """Suppress pypdf warning spam unless verbose output was requested."""
    logger = logging.getLogger("pypdf")
    logger.setLevel(logging.WARNING if capture_warnings else logging.ERROR)
    logger.propagate = capture_warnings
    if not any(isinstance(handler, logging.NullHandler) for handler in logger.handlers):
        logger.addHandler(logging.NullHandler())


def _validate_cli_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    """Validate the positional arguments after parsing."""
    if not PDF_SUFFIX_PATTERN.search(args.input):
        parser.error(f"input file must have a .pdf suffix: '{args.input}'")
    if not Path(args.input).is_file():
        parser.error(f"File not found: '{args.input}'")
