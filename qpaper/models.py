"""
Data Models
===========
Pydantic models for question-paper extraction.
All models serialize to JSON for downstream consumers (overlay, paper
regeneration, HTTP clients).
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

# "q" + question number + sub-part letter, e.g. "q12b"
QUESTION_ID_PATTERN = re.compile(r"^q(\d+)([a-z])$")


# ─── Enums ────────────────────────────────────────────────────────────────────


class LocatorPass(str, Enum):
    """Which cascade pass produced a section's candidates."""
    STRICT = "strict"
    FLEXIBLE = "flexible"
    NONE = "none"


# ─── Input Models ─────────────────────────────────────────────────────────────


class PositionedToken(BaseModel):
    """
    A word-level token from the decoded document.
    Coordinates are top-left origin, in PDF points.
    """
    model_config = ConfigDict(frozen=True)

    content: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    page_index: int = Field(default=0, ge=0)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


class DocumentText(BaseModel):
    """Decoded document: the full text plus, optionally, positioned tokens."""
    model_config = ConfigDict(frozen=True)

    text: str
    tokens: list[PositionedToken] = Field(default_factory=list)

    @property
    def has_tokens(self) -> bool:
        return bool(self.tokens)


# ─── Intermediate Models ──────────────────────────────────────────────────────


class SectionSpan(BaseModel):
    """Character span of one top-level question (e.g. everything under Q3)."""
    model_config = ConfigDict(frozen=True)

    question_number: int = Field(ge=0)
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)

    def text(self, source: str) -> str:
        return source[self.start_offset:self.end_offset]

    @property
    def length(self) -> int:
        return self.end_offset - self.start_offset


class Candidate(BaseModel):
    """A (label, body, marks) triple proposed by the locator."""
    model_config = ConfigDict(frozen=True)

    sub_part: str = Field(min_length=1, max_length=1)
    body_text: str
    marks: int
    offset: int = Field(
        default=0,
        description="Position of the label within the section span"
    )


# ─── Question Model ───────────────────────────────────────────────────────────


class QuestionPosition(BaseModel):
    """Approximate bounding region of a question; all zeros means unknown."""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    page_index: int = 0

    @property
    def is_resolved(self) -> bool:
        return self.width > 0 and self.height > 0


class Question(BaseModel):
    """A fully extracted sub-question."""
    id: str = Field(pattern=r"^q\d+[a-z]$")
    text: str
    marks: int = Field(ge=2, le=10)
    position: QuestionPosition = Field(default_factory=QuestionPosition)
    alternatives: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def question_number(self) -> int:
        return parse_question_id(self.id)[0]

    @computed_field
    @property
    def sub_part(self) -> str:
        return parse_question_id(self.id)[1]


def make_question_id(question_number: int, sub_part: str) -> str:
    return f"q{question_number}{sub_part}"


def parse_question_id(question_id: str) -> tuple[int, str]:
    """Split "q3b" into (3, "b"). Raises ValueError on a malformed id."""
    match = QUESTION_ID_PATTERN.match(question_id)
    if not match:
        raise ValueError(f"Malformed question id: {question_id!r}")
    return int(match.group(1)), match.group(2)


# ─── Report Models ────────────────────────────────────────────────────────────


class SectionDiagnostic(BaseModel):
    """How one section fared through the cascade."""
    question_number: int
    expected_count: int = 0
    strict_count: int = 0
    flexible_count: int = 0
    accepted_count: int = 0
    pass_used: LocatorPass = LocatorPass.NONE
    boundary_extended: bool = False
    duplicate: bool = False

    @computed_field
    @property
    def shortfall(self) -> int:
        return max(0, self.expected_count - self.accepted_count)


class ExtractionReport(BaseModel):
    """Post-extraction summary. Advisory only."""
    sections_detected: int = 0
    sections_with_questions: int = 0
    questions_extracted: int = 0
    missing_question_numbers: list[int] = Field(default_factory=list)
    duplicate_question_numbers: list[int] = Field(default_factory=list)
    empty_sections: list[int] = Field(default_factory=list)
    sections_with_shortfall: list[int] = Field(default_factory=list)
    positions_resolved: int = 0
    sections: list[SectionDiagnostic] = Field(default_factory=list)

    @computed_field
    @property
    def success_rate(self) -> float:
        if self.sections_detected == 0:
            return 0.0
        return round(
            self.sections_with_questions / self.sections_detected * 100,
            2
        )


class DocumentMetadata(BaseModel):
    """Metadata about the source document."""
    source_pdf: str = ""
    page_count: int = 0
    file_hash: str = ""
    file_size_bytes: int = 0


class ExtractionResult(BaseModel):
    """
    Complete output of one extraction run.
    This is the top-level JSON structure handed to callers.
    """
    document: DocumentMetadata = Field(default_factory=DocumentMetadata)
    parser_version: str = "1.0.0"
    extracted_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    questions: list[Question] = Field(default_factory=list)
    report: ExtractionReport = Field(default_factory=ExtractionReport)


# ─── Regenerated Paper Models ─────────────────────────────────────────────────


class PaperHeader(BaseModel):
    university: str = "Visvesvaraya Technological University"
    course: str = "Semester Degree Examination"
    semester: str = "First/Second"
    exam_type: str = "B.E. Degree Examination"
    subject: str = "Subject"
    time: str = "TIME: 03 Hours"
    max_marks: str = "Max.Marks: 100"
    course_code: str = "BETCK105C"


class PaperModule(BaseModel):
    """Two consecutive question numbers presented as alternatives (OR)."""
    name: str
    question_numbers: list[int] = Field(default_factory=list)
    questions: list[Question] = Field(default_factory=list)


class QuestionPaper(BaseModel):
    header: PaperHeader = Field(default_factory=PaperHeader)
    instructions: str = (
        "Answer any FIVE full questions, choosing at least ONE question "
        "from each Module."
    )
    modules: list[PaperModule] = Field(default_factory=list)

    @property
    def question_count(self) -> int:
        return sum(len(m.questions) for m in self.modules)
