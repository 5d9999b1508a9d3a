from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO, Iterable

import pdfplumber

from statement_ingest.utils.logging import get_logger

logger = get_logger(__name__)

TEXT_SUFFIXES = {".txt", ".text"}
PDF_SUFFIXES = {".pdf"}

StatementSource = str | Path | bytes | BinaryIO | Iterable[str]


def _pdf_bytes(source: str | Path | BinaryIO | bytes) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, Path)):
        return Path(source).read_bytes()
    if hasattr(source, "read"):
        payload = source.read()
        # Text-mode reads have already mangled the binary stream.
        if not isinstance(payload, (bytes, bytearray)):
            raise TypeError("PDF statements must be opened in binary mode")
        return bytes(payload)
    raise TypeError(f"Unsupported PDF source: {type(source).__name__}")


def extract_pdf_text(source: str | Path | BinaryIO | bytes) -> list[str]:
    """Page texts of a PDF, in page order."""
    payload = _pdf_bytes(source)
    pages: list[str] = []
    with pdfplumber.open(io.BytesIO(payload)) as pdf:
        for page in pdf.pages:
            pages.append(page.extract_text() or "")
    logger.info("Extracted text from %d PDF page(s)", len(pages))
    return pages


def _lines_from_pages(pages: Iterable[str]) -> list[str]:
    lines: list[str] = []
    for page_text in pages:
        lines.extend(page_text.splitlines())
    return lines


def _looks_like_path(source: str) -> bool:
    if "\n" in source:
        return False
    return Path(source).suffix.lower() in TEXT_SUFFIXES | PDF_SUFFIXES


def load_statement_lines(source: StatementSource) -> list[str]:
    """Statement text as an ordered list of lines, tabs preserved.

    Accepts statement text, a list of lines, a ``.txt`` or ``.pdf`` path,
    PDF bytes, or an open binary PDF file.
    """
    if isinstance(source, str) and not _looks_like_path(source):
        return source.splitlines()
    if isinstance(source, (str, Path)):
        path = Path(source)
        if path.suffix.lower() in PDF_SUFFIXES:
            return _lines_from_pages(extract_pdf_text(path))
        return path.read_text(encoding="utf-8").splitlines()
    if isinstance(source, bytes) or hasattr(source, "read"):
        return _lines_from_pages(extract_pdf_text(source))
    return [str(line).rstrip("\r\n") for line in source]


__all__ = ["extract_pdf_text", "load_statement_lines"]
