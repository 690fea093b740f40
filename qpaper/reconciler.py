"""
Sequential Reconciler
=====================
Turns a section's accepted candidates into canonically labeled Questions.

Upstream passes can skip or mislabel a sub-question (a body tagged "b" that
is structurally the third part). Candidates are sorted by label, truncated to
the expected count and relabeled a, b, c, ... by position, so every section
yields a dense prefix of the label alphabet.
"""

from __future__ import annotations

import logging
from typing import Optional

from .config import HeuristicConfig
from .models import Candidate, Question, make_question_id

logger = logging.getLogger(__name__)


class SequentialReconciler:

    def __init__(
        self,
        config: Optional[HeuristicConfig] = None,
        log: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self.config = config or HeuristicConfig()
        self.log = log or logger

    def reconcile(
        self,
        question_number: int,
        candidates: list[Candidate],
        expected_count: int,
    ) -> list[Question]:
        """
        Relabel accepted candidates for one section.

        Returns at most ``expected_count`` questions labeled with the first
        N letters of the alphabet. A shortfall is logged, never raised.
        """
        ordered = sorted(candidates, key=lambda c: (c.sub_part, c.offset))
        limit = min(expected_count, len(self.config.label_alphabet))
        kept = ordered[:limit]

        if len(kept) < expected_count:
            self.log.info(
                f"Q{question_number}: expected {expected_count} "
                f"sub-question(s), recovered {len(kept)}"
            )

        questions = []
        for label, cand in zip(self.config.label_alphabet, kept):
            if label != cand.sub_part:
                self.log.debug(
                    f"Q{question_number}: relabeled '{cand.sub_part}' "
                    f"as '{label}'"
                )
            questions.append(Question(
                id=make_question_id(question_number, label),
                text=cand.body_text,
                marks=cand.marks,
            ))
        return questions
