"""Provenance metadata recorded into the finished DjVu document."""

from __future__ import annotations

from collections.abc import Sequence
import hashlib
from pathlib import Path

VERSION = "0.1"
PRODUCER = f"pdfscan2djvu v{VERSION} (https://github.com/ssvb/pdfscan2djvu)"
CHUNK_SIZE = 1024 * 1024

_ESCAPES = {"\t": "\\t", "\n": "\\n", "\r": "\\r", '"': '\\"', "\\": "\\\\"}


def file_sha256(path: Path, chunk_size: int = CHUNK_SIZE) -> str:
    """Return the hex SHA-256 digest of a file, read in fixed-size chunks."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while chunk := handle.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def djvused_quote(value: str) -> str:
    """Quote a string for the djvused script language."""
    escaped: list[str] = []
    for char in value:
        if char in _ESCAPES:
            escaped.append(_ESCAPES[char])
        elif ord(char) < 0x20:
            escaped.append(f"\\{ord(char):03o}")
        else:
            escaped.append(char)
    return '"' + "".join(escaped) + '"'


def build_metadata_script(
    input_path: Path,
    sha256: str,
    option_strings: Sequence[str],
) -> str:
    """Build the ``set-meta`` djvused script describing where a document came from."""
    lines = [
        f"set-meta; Producer {djvused_quote(PRODUCER)}",
        f"pdfscan2djvu_pdf_name {djvused_quote(input_path.name)}",
        f"pdfscan2djvu_pdf_sha256 {sha256}",
    ]
    for number, option in enumerate(option_strings, start=1):
        lines.append(f"pdfscan2djvu_opt{number} {djvused_quote(option)}")
    return "\n".join(lines) + "\n"
