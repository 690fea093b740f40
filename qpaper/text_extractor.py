"""
Text Extractor
==============
Decodes a PDF into DocumentText using PyMuPDF (fitz): the page texts joined
in reading order, plus word-level positioned tokens for layout lookups.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Optional, Union

import fitz  # PyMuPDF

from .models import DocumentMetadata, DocumentText, PositionedToken

logger = logging.getLogger(__name__)


class DocumentDecodeError(RuntimeError):
    """The document could not be decoded into text."""


class TextExtractor:
    """
    Handles PDF ingestion and low-level text extraction.

    Extracts:
        - Page text (one "\\n"-joined string for the whole document)
        - Word tokens with top-left-origin bounding boxes
    """

    def __init__(self, with_tokens: bool = True):
        self.with_tokens = with_tokens

    def get_page_count(self, source: Union[str, bytes]) -> int:
        with self._open(source) as doc:
            return doc.page_count

    def extract(
        self,
        source: Union[str, bytes],
        page_range: Optional[tuple[int, int]] = None,
        progress_callback: Optional[callable] = None,
    ) -> DocumentText:
        """
        Extract text (and tokens) from a PDF.

        Args:
            source: Path to a PDF file, or the raw PDF bytes.
            page_range: Optional (start, end) range (1-indexed, inclusive).
            progress_callback: Optional callable(current, total).

        Raises:
            FileNotFoundError: If a path is given and does not exist.
            DocumentDecodeError: If the bytes are not a readable PDF.
        """
        page_texts: list[str] = []
        tokens: list[PositionedToken] = []

        with self._open(source) as doc:
            total_pages = doc.page_count

            start_page = 1
            end_page = total_pages
            if page_range:
                start_page = max(1, page_range[0])
                end_page = min(total_pages, page_range[1])

            logger.info(
                f"Extracting text (pages {start_page} to {end_page})"
            )

            for page_idx in range(start_page - 1, end_page):
                page = doc[page_idx]
                page_texts.append(page.get_text("text"))

                if self.with_tokens:
                    # (x0, y0, x1, y1, word, block_no, line_no, word_no)
                    for x0, y0, x1, y1, word, *_ in page.get_text("words"):
                        tokens.append(PositionedToken(
                            content=word,
                            x=x0,
                            y=y0,
                            width=x1 - x0,
                            height=y1 - y0,
                            page_index=page_idx,
                        ))

                if progress_callback:
                    progress_callback(page_idx - start_page + 2, end_page - start_page + 1)

        text = "\n".join(page_texts)
        logger.info(
            f"Extracted {len(text)} chars, {len(tokens)} tokens"
        )
        logger.debug(f"First 500 characters: {text[:500]!r}")
        return DocumentText(text=text, tokens=tokens)

    def describe(self, pdf_path: str) -> DocumentMetadata:
        """File-level metadata for a PDF on disk."""
        return DocumentMetadata(
            source_pdf=os.path.basename(pdf_path),
            page_count=self.get_page_count(pdf_path),
            file_hash=compute_file_hash(pdf_path),
            file_size_bytes=os.path.getsize(pdf_path),
        )

    def _open(self, source: Union[str, bytes]) -> fitz.Document:
        if isinstance(source, (bytes, bytearray)):
            try:
                doc = fitz.open(stream=bytes(source), filetype="pdf")
            except Exception as e:
                raise DocumentDecodeError(f"Failed to decode PDF: {e}") from e
        else:
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"PDF not found: {path}")
            try:
                doc = fitz.open(str(path))
            except Exception as e:
                raise DocumentDecodeError(f"Failed to open PDF {path}: {e}") from e

        if doc.page_count == 0:
            doc.close()
            raise DocumentDecodeError("PDF has no pages")
        return doc


def compute_file_hash(filepath: str) -> str:
    """Compute SHA-256 hash of a file."""
    sha256 = hashlib.sha256()
    with open(filepath, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256.update(chunk)
    return sha256.hexdigest()
