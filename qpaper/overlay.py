"""
PDF Overlay
===========
Writes replacement question text back into the source PDF with PyMuPDF.

Questions with a resolved position are blanked with a white box and the new
text is fitted into the same region. The box is only drawn once a font size
that fits is known. Questions without a position, or whose replacement does
not fit, are listed as "id: text" lines at the top of the first page instead.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import fitz  # PyMuPDF

from .models import Question
from .text_extractor import DocumentDecodeError

logger = logging.getLogger(__name__)

FONT_SIZE = 10
MIN_FONT_SIZE = 6
FALLBACK_X = 50
FALLBACK_TOP = 100
FALLBACK_LINE_GAP = 50


def create_modified_pdf(
    pdf_data: Union[bytes, bytearray],
    questions: list[Question],
    selected: dict[str, str],
) -> bytes:
    """
    Apply the selected replacement texts to a copy of the PDF.

    Args:
        pdf_data: Original PDF bytes.
        questions: Extracted questions (positions may be zero).
        selected: Question id -> text to print. Entries equal to the
            original text, or for unknown ids, are skipped.

    Raises:
        DocumentDecodeError: If ``pdf_data`` is not a readable PDF.
    """
    try:
        doc = fitz.open(stream=bytes(pdf_data), filetype="pdf")
    except Exception as e:
        raise DocumentDecodeError(f"Failed to decode PDF: {e}") from e

    by_id = {q.id: q for q in questions}
    fallback_y = FALLBACK_TOP
    replaced = 0

    with doc:
        if doc.page_count == 0:
            raise DocumentDecodeError("PDF has no pages")

        for question_id, new_text in selected.items():
            q = by_id.get(question_id)
            if q is None:
                logger.warning(f"Unknown question id in selection: {question_id}")
                continue
            if new_text == q.text:
                continue

            if q.position.is_resolved and q.position.page_index < doc.page_count:
                if _replace_in_region(doc[q.position.page_index], q, new_text):
                    replaced += 1
                    continue
                logger.warning(f"{q.id}: replacement did not fit its region")

            page = doc[0]
            page.insert_text(
                (FALLBACK_X, fallback_y),
                f"{question_id}: {new_text}",
                fontsize=FONT_SIZE,
                color=(0, 0, 0),
            )
            fallback_y += FALLBACK_LINE_GAP
            replaced += 1

        logger.info(f"Applied {replaced} replacement(s)")
        return doc.tobytes()


def _replace_in_region(page: fitz.Page, q: Question, new_text: str) -> bool:
    """Blank the question's region and write ``new_text`` into it, if it fits."""
    pos = q.position
    rect = fitz.Rect(pos.x, pos.y, pos.x + pos.width, pos.y + pos.height)

    size = fitting_font_size(page.rect, rect, new_text)
    if size is None:
        return False

    page.draw_rect(rect, color=(1, 1, 1), fill=(1, 1, 1), overlay=True)
    page.insert_textbox(rect, new_text, fontsize=size, color=(0, 0, 0))
    return True


def fitting_font_size(
    page_rect: fitz.Rect, rect: fitz.Rect, text: str
) -> Optional[int]:
    """
    Largest font size in [MIN_FONT_SIZE, FONT_SIZE] at which ``text`` fits
    inside ``rect``, or None. Measured on a scratch page of the same size so
    the real page is untouched.
    """
    with fitz.open() as scratch:
        scratch_page = scratch.new_page(width=page_rect.width, height=page_rect.height)
        # insert_textbox returns < 0 on overflow
        for size in range(FONT_SIZE, MIN_FONT_SIZE - 1, -1):
            if scratch_page.insert_textbox(rect, text, fontsize=size) >= 0:
                return size
    return None
