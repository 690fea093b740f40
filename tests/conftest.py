"""Shared fixtures: sample paper text and small in-memory PDFs."""

from __future__ import annotations

import logging

import fitz
import pytest

SAMPLE_TEXT = (
    "Q1\n"
    "a Describe the Sputtering technique for nanomaterial synthesis and its drawbacks. 8\n"
    "b Write a note on precipitation methods used. 8\n"
    "c Define Nanomaterials and Quantum confinement. 4\n"
    "Q2\n"
    "a Explain optical and electrical property variation from bulk to nano. 8"
)


def make_pdf(text: str) -> bytes:
    """One A4 page with ``text`` written line by line at the left margin."""
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((50, 72), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_TEXT


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    return make_pdf(SAMPLE_TEXT)


@pytest.fixture
def sample_pdf_path(tmp_path, sample_pdf_bytes):
    path = tmp_path / "model_paper.pdf"
    path.write_bytes(sample_pdf_bytes)
    return path


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    doc = fitz.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def quiet_log() -> logging.Logger:
    return logging.getLogger("qpaper.tests")
