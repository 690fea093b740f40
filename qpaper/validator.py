"""
Validation Engine
=================
Two layers of validation:

    - CandidateValidator: the acceptance predicate and text normalizer that
      every locator candidate passes through before it can become a Question.
    - ValidationEngine: post-extraction report over the whole result set
      (gaps, duplicates, empty sections, shortfalls).

Rejected candidates are dropped, never raised. The report is advisory.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .config import HeuristicConfig
from .models import (
    Candidate,
    ExtractionReport,
    Question,
    SectionDiagnostic,
)

logger = logging.getLogger(__name__)

WHITESPACE_RUN = re.compile(r"\s+")
NUMERIC_ONLY = re.compile(r"^\d+$")
HAS_LETTER = re.compile(r"[a-zA-Z]")
# A top-level marker that slipped into a body (e.g. after boundary correction)
STRAY_MARKER = re.compile(r"(?<!\S)Q\d+(?!\S)")


class CandidateValidator:
    """
    Structural and lexical acceptance rules for locator candidates.

    Both methods are pure: same input, same answer, no side effects.
    """

    def __init__(self, config: Optional[HeuristicConfig] = None):
        self.config = config or HeuristicConfig()
        labels = re.escape(self.config.label_alphabet)
        self._leading_label = re.compile(
            rf"^\(?[{labels}][.)]?\s+", re.IGNORECASE
        )
        self._lone_label = re.compile(rf"^[{labels}]$", re.IGNORECASE)

    def is_header(self, body_text: str) -> bool:
        return any(p.search(body_text) for p in self.config.header_patterns)

    def is_valid(self, body_text: Optional[str], marks: int) -> bool:
        """Raw-stage acceptance check."""
        if body_text is None:
            return False
        if not self.config.marks_in_bounds(marks):
            return False

        body = body_text.strip()
        if not (self.config.min_raw_length < len(body) < self.config.max_raw_length):
            return False
        if self.is_header(body):
            return False
        return self._looks_like_text(body)

    def clean(self, body_text: str) -> str:
        """Normalize a body: single spaces, no duplicated label, no markers."""
        text = WHITESPACE_RUN.sub(" ", body_text).strip()
        text = self._leading_label.sub("", text)
        text = STRAY_MARKER.sub(" ", text)
        text = text.replace("\n", " ")
        return WHITESPACE_RUN.sub(" ", text).strip()

    def is_clean_valid(self, cleaned: str) -> bool:
        """Post-clean check with the tightened length bounds."""
        if not (self.config.min_clean_length <= len(cleaned) < self.config.max_raw_length):
            return False
        return self._looks_like_text(cleaned)

    def accept(
        self,
        candidates: list[Candidate],
        question_number: int,
        log: logging.Logger | logging.LoggerAdapter = logger,
    ) -> list[Candidate]:
        """
        Filter candidates and return cleaned copies of those that pass.
        """
        accepted: list[Candidate] = []
        for cand in candidates:
            if not self.is_valid(cand.body_text, cand.marks):
                log.debug(
                    f"Q{question_number}{cand.sub_part}: rejected raw body "
                    f"({len(cand.body_text)} chars, {cand.marks} marks)"
                )
                continue

            cleaned = self.clean(cand.body_text)
            if not self.is_clean_valid(cleaned):
                log.debug(
                    f"Q{question_number}{cand.sub_part}: rejected after "
                    f"cleaning ({len(cleaned)} chars)"
                )
                continue

            accepted.append(cand.model_copy(update={"body_text": cleaned}))
        return accepted

    def _looks_like_text(self, text: str) -> bool:
        if not HAS_LETTER.search(text):
            return False
        if NUMERIC_ONLY.match(text) or self._lone_label.match(text):
            return False
        return True


class ValidationEngine:
    """
    Validates an extraction run and produces a summary report.
    """

    def validate(
        self,
        questions: list[Question],
        sections: list[SectionDiagnostic],
        log: logging.Logger | logging.LoggerAdapter = logger,
    ) -> ExtractionReport:
        """
        Build the report for one run.

        Args:
            questions: Final, reconciled questions.
            sections: One diagnostic per detected section, in document order.

        Returns:
            ExtractionReport summarizing coverage and irregularities.
        """
        report = ExtractionReport(
            sections_detected=len(sections),
            questions_extracted=len(questions),
            sections=sections,
        )

        if not sections:
            log.warning("No question sections detected")
            return report

        numbers = [s.question_number for s in sections]
        report.duplicate_question_numbers = sorted({
            s.question_number for s in sections if s.duplicate
        })

        # Gaps in the Q-number sequence
        expected = set(range(min(numbers), max(numbers) + 1))
        report.missing_question_numbers = sorted(expected - set(numbers))

        produced = {q.question_number for q in questions}
        report.sections_with_questions = len(produced)
        report.empty_sections = [
            s.question_number for s in sections
            if not s.duplicate and s.question_number not in produced
        ]
        report.sections_with_shortfall = [
            s.question_number for s in sections
            if not s.duplicate and s.shortfall > 0
        ]
        report.positions_resolved = sum(
            1 for q in questions if q.position.is_resolved
        )

        log.info("=" * 60)
        log.info("EXTRACTION REPORT")
        log.info("=" * 60)
        log.info(f"Sections Detected: {report.sections_detected}")
        log.info(
            f"Sections With Questions: {report.sections_with_questions} "
            f"({report.success_rate}%)"
        )
        log.info(f"Questions Extracted: {report.questions_extracted}")
        log.info(
            f"Missing Question Numbers: {len(report.missing_question_numbers)}"
        )
        log.info(
            f"Duplicate Question Numbers: "
            f"{len(report.duplicate_question_numbers)}"
        )
        log.info(f"Empty Sections: {len(report.empty_sections)}")
        log.info(
            f"Sections With Shortfall: {len(report.sections_with_shortfall)}"
        )
        log.info(f"Positions Resolved: {report.positions_resolved}")
        log.info("=" * 60)

        return report
