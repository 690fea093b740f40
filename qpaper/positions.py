"""
Position Resolver
=================
Maps each extracted question to an approximate bounding region in the
source layout, using the positioned-token stream from the text extractor.

Anchor cascade, first hit wins:
    1. a lone label token ("a") in the label band, followed on the same line
       by the question's first word
    2. the first two significant words of the question, in the text band
    3. a loose regex of label + text prefix over reconstructed lines

The region is the union of the anchor line's tokens from the anchor
rightwards (label and trailing mark tokens excluded), floored to a minimum
size. Unresolved questions keep the zero position.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .config import HeuristicConfig
from .models import PositionedToken, Question, QuestionPosition

logger = logging.getLogger(__name__)

WORD = re.compile(r"[A-Za-z][A-Za-z\-]*")
NUMERIC_TOKEN = re.compile(r"^\d+$")


@dataclass
class TokenLine:
    """Tokens sharing a page and (within tolerance) a baseline, left to right."""
    page_index: int
    y: float
    tokens: list[PositionedToken]

    @property
    def text(self) -> str:
        return " ".join(t.content for t in self.tokens)


class PositionResolver:

    def __init__(
        self,
        config: Optional[HeuristicConfig] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self.config = config or HeuristicConfig()
        self.log = log or logger
        labels = re.escape(self.config.label_alphabet)
        self._label_token = re.compile(rf"^\(?[{labels}][.)]?$", re.IGNORECASE)

    def resolve(
        self,
        questions: list[Question],
        tokens: list[PositionedToken],
    ) -> list[Question]:
        """
        Return copies of ``questions`` with ``position`` filled in where an
        anchor was found. Questions are resolved in order and each anchor
        token is claimed at most once.
        """
        if not tokens:
            return list(questions)

        lines = self.group_lines(tokens)
        claimed: set[int] = set()
        resolved = []

        for q in questions:
            found = (
                self._match_label(q, lines, claimed)
                or self._match_words(q, lines, claimed)
                or self._match_prefix(q, lines, claimed)
            )
            if found is None:
                self.log.info(f"{q.id}: no layout anchor, position left unset")
                resolved.append(q)
                continue

            anchor, line = found
            claimed.add(id(anchor))
            resolved.append(q.model_copy(
                update={"position": self.region(anchor, line)}
            ))
        return resolved

    def group_lines(self, tokens: list[PositionedToken]) -> list[TokenLine]:
        """Group tokens into visual lines in reading order."""
        ordered = sorted(tokens, key=lambda t: (t.page_index, t.y, t.x))
        lines: list[TokenLine] = []
        for tok in ordered:
            current = lines[-1] if lines else None
            if (
                current is None
                or current.page_index != tok.page_index
                or abs(tok.y - current.y) > self.config.line_tolerance
            ):
                lines.append(TokenLine(tok.page_index, tok.y, [tok]))
            else:
                current.tokens.append(tok)
        for line in lines:
            line.tokens.sort(key=lambda t: t.x)
        return lines

    def region(self, anchor: PositionedToken, line: TokenLine) -> QuestionPosition:
        members = [
            t for t in line.tokens
            if t.x >= anchor.x and not self._label_token.match(t.content.strip())
        ]
        while members and NUMERIC_TOKEN.match(members[-1].content.strip()):
            members.pop()
        if not members:
            members = [anchor]

        x0 = min(t.x for t in members)
        y0 = min(t.y for t in members)
        x1 = max(t.right for t in members)
        y1 = max(t.bottom for t in members)
        return QuestionPosition(
            x=x0,
            y=y0,
            width=max(x1 - x0, self.config.min_region_width),
            height=max(y1 - y0, self.config.min_region_height),
            page_index=anchor.page_index,
        )

    # ─── Anchor Strategies ────────────────────────────────────────────────

    def _match_label(self, q, lines, claimed):
        first_words = WORD.findall(q.text)
        if not first_words:
            return None
        first = first_words[0].lower()
        lo, hi = self.config.label_band

        for line in lines:
            for i, tok in enumerate(line.tokens[:-1]):
                if id(tok) in claimed or not (lo <= tok.x <= hi):
                    continue
                if tok.content.strip().lower() != q.sub_part:
                    continue
                if line.tokens[i + 1].content.lower().startswith(first):
                    return tok, line
        return None

    def _match_words(self, q, lines, claimed):
        words = self.significant_words(q.text)
        if not words:
            return None
        lo, hi = self.config.text_band

        for line in lines:
            for tok in line.tokens:
                if id(tok) in claimed or not (lo <= tok.x <= hi):
                    continue
                if words[0] not in tok.content.lower():
                    continue
                if len(words) > 1 and not any(
                    other.x > tok.x and words[1] in other.content.lower()
                    for other in line.tokens
                ):
                    continue
                return self._line_start(line, tok), line
        return None

    def _match_prefix(self, q, lines, claimed):
        prefix = [c for c in q.text[: self.config.prefix_chars] if not c.isspace()]
        if not prefix:
            return None
        pattern = re.compile(
            rf"(?<![A-Za-z]){re.escape(q.sub_part)}[\s.)]*"
            + r"\s*".join(re.escape(c) for c in prefix),
            re.IGNORECASE,
        )

        for line in lines:
            m = pattern.search(line.text)
            if not m:
                continue
            tok = self._token_at(line, m.start())
            if tok is not None and id(tok) not in claimed:
                return tok, line
        return None

    # ─── Helpers ──────────────────────────────────────────────────────────

    def significant_words(self, text: str) -> list[str]:
        """First two words longer than 3 chars, leading question verbs skipped."""
        words = [w.lower() for w in WORD.findall(text)]
        while words and words[0] in self.config.question_verbs:
            words.pop(0)
        return [w for w in words if len(w) > 3][:2]

    def _line_start(self, line: TokenLine, tok: PositionedToken) -> PositionedToken:
        """Leftmost non-label token at or before ``tok`` on its line."""
        before = [
            t for t in line.tokens
            if t.x <= tok.x and not self._label_token.match(t.content.strip())
        ]
        return before[0] if before else tok

    @staticmethod
    def _token_at(line: TokenLine, char_offset: int) -> Optional[PositionedToken]:
        pos = 0
        for tok in line.tokens:
            end = pos + len(tok.content)
            if pos <= char_offset < end:
                return tok
            pos = end + 1
        return None
