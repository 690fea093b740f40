"""
Paraphrase Generator
====================
Template-based rewordings of a question: the leading instruction verb is
stripped and replaced by each of a fixed set of prefixes.
"""

from __future__ import annotations

import re

PARAPHRASE_TEMPLATES: tuple[str, ...] = (
    "Explain in detail",
    "Describe with examples",
    "Analyze and discuss",
    "Compare and contrast",
    "Evaluate the significance of",
)

# Leading verb plus any suffix up to the first whitespace ("Explained", "Write")
LEADING_VERB = re.compile(
    r"^(?:Explain|Describe|Analyze|Compare|Evaluate|Write|Discuss)\S*",
    re.IGNORECASE,
)


def strip_leading_verb(text: str) -> str:
    return LEADING_VERB.sub("", text.strip(), count=1).strip()


def generate_alternatives(text: str) -> list[str]:
    """
    Generate exactly ``len(PARAPHRASE_TEMPLATES)`` rewordings of ``text``.

    >>> generate_alternatives("Explain the working of a sol-gel process.")[0]
    'Explain in detail the working of a sol-gel process.'
    """
    base = strip_leading_verb(text)
    return [f"{prefix} {base}".strip() for prefix in PARAPHRASE_TEMPLATES]
