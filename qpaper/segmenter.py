"""
Section Segmenter
=================
Splits decoded paper text into one span per top-level question marker
("Q1", "Q2", ...), then corrects boundaries so a trailing sub-question whose
mark value was pushed past the next marker (a common layout artifact when the
marks column is read after the question column) is not truncated.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .config import HeuristicConfig
from .models import SectionSpan

logger = logging.getLogger(__name__)

# The literal "Q" immediately followed by digits
SECTION_MARKER = re.compile(r"Q(\d+)")

# A standalone integer, i.e. a mark value candidate
MARK_VALUE = re.compile(r"(?<!\S)(\d{1,2})(?!\S)")


class SectionSegmenter:
    """Produces ordered SectionSpans over the raw text."""

    def __init__(
        self,
        config: Optional[HeuristicConfig] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self.config = config or HeuristicConfig()
        self.log = log or logger
        final = re.escape(self.config.final_label)
        self._final_label = re.compile(
            rf"(?<!\S)\(?{final}(?:[\s.)]|$)", re.IGNORECASE
        )

    def segment(self, text: str) -> list[SectionSpan]:
        """
        Segment text into spans with corrected boundaries.

        Returns:
            Spans in order of marker appearance. Text before the first marker
            belongs to no span.
        """
        return self.correct_boundaries(text, self.naive_spans(text))

    def naive_spans(self, text: str) -> list[SectionSpan]:
        """One span per marker, each ending where the next marker starts."""
        markers = [
            (int(m.group(1)), m.start())
            for m in SECTION_MARKER.finditer(text)
        ]
        spans = []
        for i, (number, start) in enumerate(markers):
            end = markers[i + 1][1] if i + 1 < len(markers) else len(text)
            spans.append(SectionSpan(
                question_number=number,
                start_offset=start,
                end_offset=end,
            ))

        if spans:
            self.log.info(
                f"Found {len(spans)} Q sections: "
                f"{', '.join(f'Q{s.question_number}' for s in spans)}"
            )
        else:
            self.log.info("No top-level question markers found")
        return spans

    def correct_boundaries(
        self, text: str, spans: list[SectionSpan]
    ) -> list[SectionSpan]:
        """Extend each span (except the last) to cover its final mark value."""
        corrected = list(spans)
        for i in range(len(corrected) - 1):
            span, nxt = corrected[i], corrected[i + 1]
            new_end = self._find_extended_end(text, span, nxt)
            if new_end is None:
                continue

            self.log.info(
                f"Q{span.question_number}: boundary extended by "
                f"{new_end - span.end_offset} chars to include trailing mark"
            )
            corrected[i] = span.model_copy(update={"end_offset": new_end})
            corrected[i + 1] = nxt.model_copy(
                update={"start_offset": max(nxt.start_offset, new_end)}
            )
        return corrected

    def _find_extended_end(
        self, text: str, span: SectionSpan, nxt: SectionSpan
    ) -> Optional[int]:
        """
        Locate the mark value of the span's final sub-question.

        Returns the new end offset when that mark lies past the naive
        boundary, otherwise None (naive boundary stands).
        """
        label_pos = None
        for m in self._final_label.finditer(text, span.start_offset, span.end_offset):
            label_pos = m.end()
        if label_pos is None:
            self.log.debug(
                f"Q{span.question_number}: no '{self.config.final_label}' "
                f"label, keeping naive boundary"
            )
            return None

        window_end = min(
            label_pos + self.config.boundary_extension_chars,
            nxt.end_offset,
        )
        for m in MARK_VALUE.finditer(text, label_pos, window_end):
            if not self.config.marks_in_bounds(int(m.group(1))):
                continue
            if m.start() < span.end_offset:
                # The final sub-question's mark is already inside the span
                return None
            # Only the next marker itself may sit between boundary and mark;
            # anything else means the mark belongs to the next section.
            gap = SECTION_MARKER.sub("", text[span.end_offset:m.start()])
            if gap.strip():
                self.log.debug(
                    f"Q{span.question_number}: mark after boundary is "
                    f"preceded by next-section content, not extending"
                )
                return None
            return m.end()

        self.log.info(
            f"Q{span.question_number}: no mark value after final label, "
            f"keeping naive boundary"
        )
        return None
