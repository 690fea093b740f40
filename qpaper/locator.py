"""
Sub-question Locator
====================
Finds (label, body, marks) candidates inside one section span using a
cascade of strategies, each more permissive than the last:

    StrictPatternStrategy   - anchored regexes, high precision
    FlexibleScanStrategy    - split-and-accumulate via LineScanner, high recall

The flexible pass only runs when the strict pass falls short of the
estimated sub-question count. The larger result set wins; ties go to the
earlier (stricter) strategy.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .config import HeuristicConfig
from .models import Candidate, LocatorPass
from .state_machine import LineScanner
from .validator import CandidateValidator

logger = logging.getLogger(__name__)


def _label_class(config: HeuristicConfig) -> str:
    """Regex character class body matching any label, either case."""
    labels = config.labels
    return re.escape(labels.lower() + labels.upper())


def _dedupe_by_label(candidates: list[Candidate]) -> list[Candidate]:
    """First candidate per label wins; order is preserved."""
    seen: set[str] = set()
    unique = []
    for cand in candidates:
        if cand.sub_part in seen:
            continue
        seen.add(cand.sub_part)
        unique.append(cand)
    return unique


class ExtractionStrategy:
    """Base class for locator strategies."""

    name = "base"
    pass_kind = LocatorPass.NONE

    def __init__(
        self,
        config: HeuristicConfig,
        validator: CandidateValidator,
        log: logging.Logger | logging.LoggerAdapter = logger,
    ):
        self.config = config
        self.validator = validator
        self.log = log

    def try_extract(self, span_text: str) -> list[Candidate]:
        raise NotImplementedError


class StrictPatternStrategy(ExtractionStrategy):
    """
    Evaluates every anchored pattern and merges the results. Within the
    merge, the earliest valid match for a label wins; on equal offsets the
    earlier pattern is kept.
    """

    name = "strict"
    pass_kind = LocatorPass.STRICT

    def __init__(self, config, validator, log=logger):
        super().__init__(config, validator, log)
        lc = _label_class(config)
        label = rf"(?<!\S)\(?([{lc}])"
        self.patterns: list[re.Pattern] = [
            # "a body 8" closed by the next label, next Q marker, OR/Module
            # separator rows, or the end of the span
            re.compile(
                label + r"\s+(.+?)\s+(\d{1,2})"
                rf"(?=\s+(?:\(?[{lc}][\s.)]|Q\d+|OR\b|Module)|\s*$)",
                re.DOTALL,
            ),
            # "a. body 8" / "a) body 8" / "(a) body 8"
            re.compile(
                label + r"[.)]\s*(.+?)\s+(\d{1,2})(?=\s|$)",
                re.DOTALL,
            ),
            # "a body" closed by the very next standalone integer
            re.compile(
                label + r"\s+(.+?)(?=\s+(\d{1,2})(?!\S))",
                re.DOTALL,
            ),
        ]

    def try_extract(self, span_text: str) -> list[Candidate]:
        # label -> earliest valid match; a real "(a)" precedes any article
        # "a" inside a later body
        best: dict[str, Candidate] = {}

        for pattern in self.patterns:
            for m in pattern.finditer(span_text):
                sub_part = m.group(1).lower()
                offset = m.start(1)
                current = best.get(sub_part)
                if current is not None and current.offset <= offset:
                    continue

                body, marks = m.group(2), int(m.group(3))
                if not self.validator.is_valid(body, marks):
                    continue

                best[sub_part] = Candidate(
                    sub_part=sub_part,
                    body_text=body.strip(),
                    marks=marks,
                    offset=offset,
                )

        return sorted(best.values(), key=lambda c: c.offset)


class FlexibleScanStrategy(ExtractionStrategy):
    """
    Splits the span by each separator in turn and runs the line scanner.
    The first separator that yields a valid candidate is used; results are
    never merged across separators.
    """

    name = "flexible"
    pass_kind = LocatorPass.FLEXIBLE

    def __init__(self, config, validator, log=logger):
        super().__init__(config, validator, log)
        lc = _label_class(config)
        self.separators: list[tuple[str, re.Pattern]] = [
            ("newline", re.compile(r"\n+")),
            ("wide-space", re.compile(r"\s{2,}")),
            ("inline-mark", re.compile(rf"(?<=\d)\s+(?=\(?[{lc}][\s.)])")),
        ]

    def try_extract(self, span_text: str) -> list[Candidate]:
        scanner = LineScanner(self.config, self.log)
        for name, separator in self.separators:
            candidates = [
                c for c in scanner.scan(self.segments(span_text, separator))
                if self.validator.is_valid(c.body_text, c.marks)
            ]
            if candidates:
                self.log.debug(
                    f"Flexible pass: '{name}' separator yielded "
                    f"{len(candidates)} candidate(s)"
                )
                return _dedupe_by_label(candidates)
        return []

    @staticmethod
    def segments(text: str, separator: re.Pattern) -> Iterator[tuple[int, str]]:
        """Yield (offset, segment) pairs between separator matches."""
        pos = 0
        for m in separator.finditer(text):
            if m.start() > pos:
                yield pos, text[pos:m.start()]
            pos = m.end()
        if pos < len(text):
            yield pos, text[pos:]


@dataclass
class LocateResult:
    """Outcome of locating candidates in one section."""
    candidates: list[Candidate] = field(default_factory=list)
    expected_count: int = 0
    pass_used: LocatorPass = LocatorPass.NONE
    pass_counts: dict[str, int] = field(default_factory=dict)


class SubQuestionLocator:
    """Runs the strategy cascade over one section span."""

    def __init__(
        self,
        config: Optional[HeuristicConfig] = None,
        validator: Optional[CandidateValidator] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
        strategies: Optional[list[ExtractionStrategy]] = None,
    ):
        self.config = config or HeuristicConfig()
        self.validator = validator or CandidateValidator(self.config)
        self.log = log or logger
        self.strategies = strategies or [
            StrictPatternStrategy(self.config, self.validator, self.log),
            FlexibleScanStrategy(self.config, self.validator, self.log),
        ]
        lc = _label_class(self.config)
        self._label_like = re.compile(rf"(?<!\S)\(?([{lc}])(?=[\s.)]|$)")

    def label_counts(self, span_text: str) -> dict[str, int]:
        """Occurrences of each label character next to a label-like delimiter."""
        counts = {label: 0 for label in self.config.labels}
        for m in self._label_like.finditer(span_text):
            counts[m.group(1).lower()] += 1
        return counts

    def estimate_expected_count(self, span_text: str) -> int:
        """
        Estimate how many sub-questions the section should contain: the
        highest label that appears at least once, capped at max_subparts.
        """
        counts = self.label_counts(span_text)
        present = [
            i + 1 for i, label in enumerate(self.config.labels)
            if counts[label] > 0
        ]
        return min(max(present, default=0), self.config.max_subparts)

    def locate(self, span_text: str, question_number: int) -> LocateResult:
        result = LocateResult(
            expected_count=self.estimate_expected_count(span_text)
        )

        for i, strategy in enumerate(self.strategies):
            if i > 0 and len(result.candidates) >= result.expected_count:
                break
            if i > 0:
                self.log.info(
                    f"Q{question_number}: escalating to {strategy.name} pass "
                    f"({len(result.candidates)}/{result.expected_count} found)"
                )

            candidates = strategy.try_extract(span_text)
            result.pass_counts[strategy.name] = len(candidates)
            if len(candidates) > len(result.candidates):
                result.candidates = candidates
                result.pass_used = strategy.pass_kind

        self.log.debug(
            f"Q{question_number}: expected {result.expected_count}, "
            f"passes {result.pass_counts}, using {result.pass_used.value}"
        )
        return result
