"""
Line Scanner State Machine
==========================
Deterministic state machine behind the flexible locator pass. It consumes
line-like segments of a section and accumulates body text under the current
sub-question label until a trailing mark value closes it.

States:
    IDLE          - no open sub-question; non-marker lines are ignored
    ACCUMULATING  - collecting body lines for ``current_label``
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Iterable, Optional

from .config import HeuristicConfig
from .models import Candidate

logger = logging.getLogger(__name__)

# ─── Anchor Patterns ──────────────────────────────────────────────────────────

# Leading "Q3" on a segment; the remainder is scanned normally
MARKER_PREFIX = re.compile(r"^Q\d+\s*")

# Mark value closing the accumulated body, e.g. "... with examples. 8"
TRAILING_MARK = re.compile(r"(?:^|\s)(\d{1,2})$")


class ScanState(Enum):
    """Scanner states."""
    IDLE = "IDLE"
    ACCUMULATING = "ACCUMULATING"


class LineScanner:
    """
    Finite state machine that turns an ordered sequence of line segments
    into Candidates.

    Each label may open at most once per scan, so a body line that happens
    to start with an already-used letter ("a note on ...") is treated as a
    continuation rather than a new sub-question.
    """

    def __init__(
        self,
        config: Optional[HeuristicConfig] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self.config = config or HeuristicConfig()
        self.log = log or logger
        labels = re.escape(self.config.labels.lower() + self.config.labels.upper())
        # "a text", "a. text", "a) text", "(a) text" or a bare "a"
        self._label_line = re.compile(
            rf"^\(?([{labels}])(?:[.)]\s*|\s+|$)(.*)$", re.DOTALL
        )
        self.reset()

    def reset(self):
        """Reset the state machine for a fresh scan."""
        self.state = ScanState.IDLE
        self.current_label: Optional[str] = None
        self.current_offset = 0
        self.parts: list[str] = []
        self.seen_labels: set[str] = set()

    def scan(self, segments: Iterable[tuple[int, str]]) -> list[Candidate]:
        """Run a full scan over (offset, segment) pairs."""
        self.reset()
        candidates = []
        for offset, segment in segments:
            cand = self.feed(segment, offset)
            if cand is not None:
                candidates.append(cand)
        self.finish()
        return candidates

    def feed(self, line: str, offset: int = 0) -> Optional[Candidate]:
        """
        Process one segment. Returns a Candidate when this segment closes
        the open sub-question with a mark value.
        """
        line = MARKER_PREFIX.sub("", line.strip())
        if not line:
            return None

        label_match = self._label_line.match(line)
        if label_match and label_match.group(1).lower() not in self.seen_labels:
            self._start(label_match.group(1).lower(), offset)
            line = label_match.group(2).strip()
            if line:
                self.parts.append(line)
            return self._close_on_mark()

        if self.state is ScanState.ACCUMULATING:
            self.parts.append(line)
            return self._close_on_mark()

        return None

    def finish(self):
        """Discard any sub-question still open at end of input."""
        if self.state is ScanState.ACCUMULATING:
            self.log.debug(
                f"Discarding '{self.current_label}': no mark value before "
                f"end of section"
            )
        self._to_idle()

    def _start(self, label: str, offset: int):
        if self.state is ScanState.ACCUMULATING:
            self.log.debug(
                f"Discarding '{self.current_label}': label '{label}' "
                f"started before a mark value"
            )
        self.state = ScanState.ACCUMULATING
        self.current_label = label
        self.current_offset = offset
        self.parts = []
        self.seen_labels.add(label)

    def _close_on_mark(self) -> Optional[Candidate]:
        body = " ".join(self.parts)
        mark_match = TRAILING_MARK.search(body)
        if not mark_match:
            return None

        cand = Candidate(
            sub_part=self.current_label,
            body_text=body[:mark_match.start()].strip(),
            marks=int(mark_match.group(1)),
            offset=self.current_offset,
        )
        self._to_idle()
        return cand

    def _to_idle(self):
        self.state = ScanState.IDLE
        self.current_label = None
        self.parts = []
