"""
Heuristic Configuration
=======================
Every tunable constant the extraction heuristics depend on, collected in one
immutable structure so alternate paper layouts can be supported without
touching pipeline code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# ─── Header / Boilerplate Patterns ────────────────────────────────────────────

# Any candidate body matching one of these is page furniture, not a question.
DEFAULT_HEADER_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"visvesvaraya technological university", re.IGNORECASE),
    re.compile(r"model question paper", re.IGNORECASE),
    re.compile(r"semester.*degree examination", re.IGNORECASE),
    re.compile(r"time:\s*\d+\s*hours", re.IGNORECASE),
    re.compile(r"max\.\s*marks:\s*\d+", re.IGNORECASE),
    re.compile(r"note:\s*answer any", re.IGNORECASE),
    re.compile(r"module\s*[–\-]\s*\d+", re.IGNORECASE),
    re.compile(r"qno\.", re.IGNORECASE),
    re.compile(r"\bmarks\b", re.IGNORECASE),
    re.compile(r"betck\d+", re.IGNORECASE),
    re.compile(r"\b[A-Z]{4,}\d{3}[A-Z]?\b"),  # course codes, e.g. BPHYS102
    re.compile(r"^\s*or\s*$", re.IGNORECASE),
    re.compile(r"usn:", re.IGNORECASE),
    re.compile(r"introduction to", re.IGNORECASE),
)

# Leading verbs stripped before picking "significant" words for position lookup.
DEFAULT_QUESTION_VERBS: tuple[str, ...] = (
    "explain", "describe", "define", "write", "discuss", "analyze",
    "analyse", "compare", "evaluate", "derive", "list", "state", "what",
    "with", "give", "mention", "illustrate", "briefly", "differentiate",
)


@dataclass(frozen=True)
class HeuristicConfig:
    """
    Constants for segmentation, location, validation and position lookup.

    Attributes:
        label_alphabet: Sub-question labels in canonical order.
        max_subparts: Cap on the expected number of sub-questions per section.
        min_marks / max_marks: Inclusive mark bounds.
        min_raw_length / max_raw_length: Exclusive bounds on the raw body.
        min_clean_length: Inclusive lower bound on the cleaned body; the
            upper bound stays ``max_raw_length`` (exclusive).
        boundary_extension_chars: How far past the final label the segmenter
            may look for its mark value.
        header_patterns: Boilerplate patterns that disqualify a body.
        question_verbs: Leading verbs ignored when picking anchor words.
        label_band / text_band: Horizontal (x) bands, in points, where label
            tokens and question text are expected.
        line_tolerance: Vertical distance (points) for tokens to share a line.
        min_region_width / min_region_height: Floors on resolved regions.
        prefix_chars: Text prefix length used by the loose regex fallback.
    """

    label_alphabet: str = "abc"
    max_subparts: int = 3

    min_marks: int = 2
    max_marks: int = 10

    min_raw_length: int = 20
    max_raw_length: int = 500
    min_clean_length: int = 15

    boundary_extension_chars: int = 300

    header_patterns: tuple[re.Pattern, ...] = field(
        default_factory=lambda: DEFAULT_HEADER_PATTERNS
    )
    question_verbs: tuple[str, ...] = field(
        default_factory=lambda: DEFAULT_QUESTION_VERBS
    )

    label_band: tuple[float, float] = (0.0, 150.0)
    text_band: tuple[float, float] = (0.0, 600.0)
    line_tolerance: float = 3.0
    min_region_width: float = 200.0
    min_region_height: float = 20.0
    prefix_chars: int = 15

    @property
    def labels(self) -> str:
        """Labels actually in play, i.e. the alphabet capped at max_subparts."""
        return self.label_alphabet[: self.max_subparts]

    @property
    def final_label(self) -> str:
        """The label that conventionally closes a question group."""
        return self.labels[-1]

    def marks_in_bounds(self, marks: int) -> bool:
        return self.min_marks <= marks <= self.max_marks
