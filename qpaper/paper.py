"""
Paper Builder
=============
Rebuilds a question paper from extracted questions: header fields are pulled
from the raw text (with VTU defaults), questions are grouped into modules of
two question numbers each, and the result is rendered to HTML via Jinja2.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .models import PaperHeader, PaperModule, Question, QuestionPaper

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

# Question numbers per module in the VTU layout (Q1/Q2 -> Module 1, ...)
QUESTIONS_PER_MODULE = 2

_ORDINALS = "first|second|third|fourth|fifth|sixth|seventh|eighth"

HEADER_PATTERNS: dict[str, re.Pattern] = {
    "university": re.compile(r"visvesvaraya technological university", re.IGNORECASE),
    "course": re.compile(rf"(?:{_ORDINALS}).*semester.*degree", re.IGNORECASE),
    "semester": re.compile(rf"\b(?:{_ORDINALS})\b", re.IGNORECASE),
    "subject": re.compile(r"introduction to \w+", re.IGNORECASE),
    "time": re.compile(r"time:\s*\d+\s*hours?", re.IGNORECASE),
    "max_marks": re.compile(r"max\.?\s*marks?\s*:\s*\d+", re.IGNORECASE),
    "course_code": re.compile(r"\b[A-Z]{2,}[CK]\d+[A-Z]*\b"),
}


def parse_header(text: str) -> PaperHeader:
    """Extract header fields from the raw text; missing ones keep defaults."""
    found = {}
    for name, pattern in HEADER_PATTERNS.items():
        match = pattern.search(text)
        if match:
            found[name] = match.group(0)
    return PaperHeader(**found)


def group_into_modules(questions: list[Question]) -> list[PaperModule]:
    """Pair consecutive question numbers into modules."""
    by_number: dict[int, list[Question]] = defaultdict(list)
    for q in questions:
        by_number[q.question_number].append(q)

    numbers = sorted(by_number)
    modules = []
    for i in range(0, len(numbers), QUESTIONS_PER_MODULE):
        chunk = numbers[i:i + QUESTIONS_PER_MODULE]
        module_questions = [
            q
            for n in chunk
            for q in sorted(by_number[n], key=lambda q: q.sub_part)
        ]
        name = f"Module - {i // QUESTIONS_PER_MODULE + 1}"
        logger.debug(
            f"{name}: Q{', Q'.join(str(n) for n in chunk)} "
            f"({len(module_questions)} questions)"
        )
        modules.append(PaperModule(
            name=name,
            question_numbers=chunk,
            questions=module_questions,
        ))
    return modules


def parse_paper_structure(text: str, questions: list[Question]) -> QuestionPaper:
    return QuestionPaper(
        header=parse_header(text),
        modules=group_into_modules(questions),
    )


def build_paper_context(
    paper: QuestionPaper,
    selected: Optional[dict[str, str]] = None,
) -> dict:
    """Template context: modules -> question groups -> rows."""
    selected = selected or {}
    modules = []
    for module in paper.modules:
        groups = []
        for number in module.question_numbers:
            rows = [
                {
                    "sub_part": q.sub_part,
                    "text": selected.get(q.id, q.text),
                    "marks": q.marks,
                }
                for q in module.questions
                if q.question_number == number
            ]
            if rows:
                groups.append({"number": number, "rows": rows})
        modules.append({"name": module.name, "groups": groups})

    return {
        "header": paper.header,
        "instructions": paper.instructions,
        "modules": modules,
        "usn_boxes": 10,
    }


def render_html(
    paper: QuestionPaper,
    selected: Optional[dict[str, str]] = None,
) -> str:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(["html"]),
    )
    template = env.get_template("paper.html")
    return template.render(**build_paper_context(paper, selected))


def generate_html_paper(
    paper: QuestionPaper,
    output_path: Path,
    selected: Optional[dict[str, str]] = None,
) -> None:
    """Render the paper and write it to ``output_path``."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_html(paper, selected), encoding="utf-8")
    logger.info(f"Saved HTML paper: {output_path}")
