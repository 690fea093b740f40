"""
Paper Tests
===========
Paraphrase alternatives, header parsing, module grouping and HTML rendering.
"""

from __future__ import annotations

from qpaper.models import PaperHeader, Question
from qpaper.paper import (
    build_paper_context,
    generate_html_paper,
    group_into_modules,
    parse_header,
    parse_paper_structure,
    render_html,
)
from qpaper.paraphrase import (
    PARAPHRASE_TEMPLATES,
    generate_alternatives,
    strip_leading_verb,
)

HEADER_TEXT = (
    "BETCK105C\n"
    "Visvesvaraya Technological University\n"
    "First Semester B.E. Degree Examination\n"
    "Introduction to Nano Technology\n"
    "Time: 3 Hours    Max. Marks: 100\n"
)


def _q(qid: str, text: str = "Explain the working principle in detail.", marks: int = 8):
    return Question(id=qid, text=text, marks=marks)


# ═══════════════════════════════════════════════════════════════════════════════
# PARAPHRASE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestParaphrase:

    def test_sol_gel(self):
        alts = generate_alternatives("Explain the working of a sol-gel process.")

        assert len(alts) == 5
        assert len(set(alts)) == 5
        assert alts == [
            f"{prefix} the working of a sol-gel process."
            for prefix in PARAPHRASE_TEMPLATES
        ]

    def test_verb_variants_stripped(self):
        assert strip_leading_verb("Write a note on fuel cells.") == "a note on fuel cells."
        assert strip_leading_verb("Discussed below: entropy") == "below: entropy"
        assert strip_leading_verb("  compare X and Y") == "X and Y"

    def test_no_leading_verb(self):
        alts = generate_alternatives("Define nanomaterials.")
        assert alts[0] == "Explain in detail Define nanomaterials."

    def test_empty_text(self):
        assert generate_alternatives("") == list(PARAPHRASE_TEMPLATES)


# ═══════════════════════════════════════════════════════════════════════════════
# PAPER STRUCTURE TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestPaperStructure:

    def test_parse_header(self):
        header = parse_header(HEADER_TEXT)

        assert header.university == "Visvesvaraya Technological University"
        assert header.course_code == "BETCK105C"
        assert header.subject == "Introduction to Nano"
        assert header.time == "Time: 3 Hours"
        assert header.max_marks == "Max. Marks: 100"
        assert header.course.startswith("First Semester")

    def test_header_defaults(self):
        assert parse_header("nothing useful here") == PaperHeader()

    def test_group_into_modules(self):
        questions = [_q("q3a"), _q("q1b"), _q("q2a"), _q("q1a")]
        modules = group_into_modules(questions)

        assert [m.name for m in modules] == ["Module - 1", "Module - 2"]
        assert modules[0].question_numbers == [1, 2]
        assert [q.id for q in modules[0].questions] == ["q1a", "q1b", "q2a"]
        assert modules[1].question_numbers == [3]

    def test_empty_paper(self):
        paper = parse_paper_structure("", [])
        assert paper.modules == []
        assert paper.question_count == 0

    def test_context_applies_selection(self):
        paper = parse_paper_structure(HEADER_TEXT, [_q("q1a"), _q("q1b"), _q("q2a")])
        context = build_paper_context(paper, {"q1b": "Replacement wording."})

        [module] = context["modules"]
        assert [g["number"] for g in module["groups"]] == [1, 2]
        assert [r["text"] for r in module["groups"][0]["rows"]] == [
            "Explain the working principle in detail.",
            "Replacement wording.",
        ]
        assert context["usn_boxes"] == 10


# ═══════════════════════════════════════════════════════════════════════════════
# HTML RENDER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestRenderHtml:

    def test_render(self):
        questions = [_q("q1a"), _q("q1b", marks=4), _q("q2a"), _q("q3a")]
        paper = parse_paper_structure(HEADER_TEXT, questions)
        html = render_html(paper, {"q2a": "Describe with examples the working principle."})

        assert "Module - 1" in html
        assert "Module - 2" in html
        assert "BETCK105C" in html
        assert "Describe with examples the working principle." in html
        assert 'rowspan="2"' in html
        # One OR row between Q1 and Q2; Module 2 holds a single question
        assert html.count(">OR<") == 1

    def test_text_is_escaped(self):
        paper = parse_paper_structure("", [_q("q1a", text="Compare <b>bold</b> & plain text.")])
        html = render_html(paper)
        assert "&lt;b&gt;bold&lt;/b&gt; &amp; plain" in html

    def test_generate_html_paper(self, tmp_path):
        paper = parse_paper_structure(HEADER_TEXT, [_q("q1a")])
        out = tmp_path / "out" / "paper.html"
        generate_html_paper(paper, out)

        assert out.exists()
        assert "Q1" in out.read_text(encoding="utf-8")
