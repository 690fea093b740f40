"""
Extraction Engine
=================
Main orchestrator that combines text extraction, segmentation, the locator
cascade, validation, reconciliation and position lookup into a complete
question-paper extraction pipeline.

Usage:
    engine = ExtractionEngine(config)
    result = engine.parse("path/to/paper.pdf")       # from a PDF
    result = engine.extract(DocumentText(text=raw))  # from decoded text

Architecture:
    PDF → TextExtractor → DocumentText → SectionSegmenter → SectionSpans →
    SubQuestionLocator → CandidateValidator → SequentialReconciler →
    PositionResolver → Questions (+ alternatives) → ExtractionResult (JSON)
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from . import __version__
from .config import HeuristicConfig
from .locator import SubQuestionLocator
from .models import (
    DocumentMetadata,
    DocumentText,
    ExtractionResult,
    Question,
    SectionDiagnostic,
)
from .paraphrase import generate_alternatives
from .positions import PositionResolver
from .reconciler import SequentialReconciler
from .segmenter import SectionSegmenter
from .text_extractor import TextExtractor
from .validator import CandidateValidator, ValidationEngine

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


@dataclass
class ParserConfig:
    """Configuration for the extraction engine."""

    # Pipeline toggles
    generate_alternatives: bool = True
    resolve_positions: bool = True

    # Heuristic constants
    heuristics: HeuristicConfig = field(default_factory=HeuristicConfig)

    # Processing
    page_range: Optional[tuple[int, int]] = None

    # Output settings
    output_dir: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class ExtractionEngine:
    """
    Question-paper extraction engine.

    Orchestrates the full pipeline:
        1. Text extraction (PDF only)
        2. Section segmentation with boundary correction
        3. Locator cascade per section
        4. Candidate validation and cleaning
        5. Sequential reconciliation
        6. Position lookup (when tokens are available)
        7. Paraphrase alternatives
        8. Report

    Holds no per-run state: the same input always yields the same questions,
    and one engine may serve concurrent callers.
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self.config = config or ParserConfig()
        self.log = log or logger
        if log is None:
            self._setup_logging()

        heuristics = self.config.heuristics
        self.validator = CandidateValidator(heuristics)
        self.segmenter = SectionSegmenter(heuristics, self.log)
        self.locator = SubQuestionLocator(heuristics, self.validator, self.log)
        self.reconciler = SequentialReconciler(heuristics, self.log)
        self.resolver = PositionResolver(heuristics, self.log)
        self.report_engine = ValidationEngine()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the qpaper package
        pkg_logger = logging.getLogger("qpaper")
        pkg_logger.setLevel(log_level)

        # Console handler
        if not pkg_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
            pkg_logger.addHandler(console)

        # File handler
        if self.config.log_file and not any(
            isinstance(h, logging.FileHandler) for h in pkg_logger.handlers
        ):
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(
                self.config.log_file, encoding="utf-8"
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
            pkg_logger.addHandler(file_handler)

    def parse(
        self,
        source: Union[str, bytes],
        progress_callback: Optional[callable] = None,
    ) -> ExtractionResult:
        """
        Decode a PDF and extract its questions.

        Args:
            source: Path to a PDF file, or raw PDF bytes.
            progress_callback: Callback(page_num, total_pages) per page.

        Raises:
            FileNotFoundError: If the PDF path doesn't exist.
            DocumentDecodeError: If the PDF cannot be decoded.
        """
        start_time = time.time()
        extractor = TextExtractor(with_tokens=self.config.resolve_positions)

        if isinstance(source, (bytes, bytearray)):
            metadata = DocumentMetadata(
                page_count=extractor.get_page_count(source),
                file_size_bytes=len(source),
            )
        else:
            self.log.info(f"Starting parse of: {source}")
            metadata = extractor.describe(source)

        document = extractor.extract(
            source,
            page_range=self.config.page_range,
            progress_callback=progress_callback,
        )
        result = self.extract(document, metadata=metadata)

        elapsed = time.time() - start_time
        self.log.info(
            f"Parse complete in {elapsed:.2f}s — "
            f"{len(result.questions)} questions extracted"
        )

        if self.config.output_dir:
            self.save_result(result, metadata.source_pdf or "document")
        return result

    def extract(
        self,
        document: Union[DocumentText, str],
        metadata: Optional[DocumentMetadata] = None,
    ) -> ExtractionResult:
        """
        Run the extraction core over already-decoded text.

        Never raises for structural irregularities: unmatched sections,
        rejected candidates and shortfalls only shrink the result.
        """
        if isinstance(document, str):
            document = DocumentText(text=document)
        text = document.text

        naive = self.segmenter.naive_spans(text)
        spans = self.segmenter.correct_boundaries(text, naive)

        questions: list[Question] = []
        diagnostics: list[SectionDiagnostic] = []
        seen_numbers: set[int] = set()

        for original, span in zip(naive, spans):
            diag = SectionDiagnostic(
                question_number=span.question_number,
                boundary_extended=span.end_offset > original.end_offset,
            )
            diagnostics.append(diag)

            if span.question_number in seen_numbers:
                diag.duplicate = True
                self.log.warning(
                    f"Q{span.question_number} appears more than once; "
                    f"keeping the first occurrence"
                )
                continue
            seen_numbers.add(span.question_number)

            section = self.extract_section(span.text(text), span.question_number, diag)
            questions.extend(section)

        if self.config.resolve_positions and document.has_tokens:
            questions = self.resolver.resolve(questions, document.tokens)

        if self.config.generate_alternatives:
            questions = [
                q.model_copy(update={"alternatives": generate_alternatives(q.text)})
                for q in questions
            ]

        report = self.report_engine.validate(questions, diagnostics, self.log)
        return ExtractionResult(
            document=metadata or DocumentMetadata(),
            parser_version=__version__,
            questions=questions,
            report=report,
        )

    def extract_section(
        self,
        span_text: str,
        question_number: int,
        diag: Optional[SectionDiagnostic] = None,
    ) -> list[Question]:
        """Locate, validate and reconcile the questions of one section."""
        diag = diag or SectionDiagnostic(question_number=question_number)

        located = self.locator.locate(span_text, question_number)
        accepted = self.validator.accept(
            located.candidates, question_number, self.log
        )
        questions = self.reconciler.reconcile(
            question_number, accepted, located.expected_count
        )

        diag.expected_count = located.expected_count
        diag.strict_count = located.pass_counts.get("strict", 0)
        diag.flexible_count = located.pass_counts.get("flexible", 0)
        diag.pass_used = located.pass_used
        diag.accepted_count = len(questions)

        for q in questions:
            self.log.info(
                f"  ✓ ACCEPTED: {q.id} - {q.text[:60]}... ({q.marks} marks)"
            )
        return questions

    def save_result(self, result: ExtractionResult, name: str) -> Path:
        """Save an ExtractionResult as JSON under the configured output dir."""
        output_dir = Path(self.config.output_dir or "output")
        output_dir.mkdir(parents=True, exist_ok=True)

        stem = "".join(
            c if c.isalnum() or c in "-_" else "_"
            for c in Path(name).stem
        )[:50]
        filepath = output_dir / f"{stem}_questions.json"
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(
                result.model_dump(), f,
                indent=2, ensure_ascii=False, default=str,
            )
        self.log.info(f"Saved JSON output: {filepath}")
        return filepath
