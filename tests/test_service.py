"""
Service Tests
=============
HTTP endpoints (Flask test client) and CLI commands (click CliRunner).
"""

from __future__ import annotations

import io
import json

import fitz
import pytest
from click.testing import CliRunner

from qpaper.cli import cli
from qpaper.server import create_app


@pytest.fixture
def client():
    app = create_app({"TESTING": True})
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════════
# HTTP TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestHealthAndInfo:

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"

    def test_info(self, client):
        data = client.get("/api/info").get_json()
        assert data["version"] == "1.0.0"
        assert len(data["paraphrase_templates"]) == 5


class TestExtractEndpoint:

    def test_extract_text(self, client, sample_text):
        resp = client.post("/api/extract", json={"text": sample_text})
        assert resp.status_code == 200

        data = resp.get_json()
        assert [q["id"] for q in data["questions"]] == ["q1a", "q1b", "q1c", "q2a"]
        assert all(len(q["alternatives"]) == 5 for q in data["questions"])
        assert data["report"]["sections_detected"] == 2

    def test_extract_without_alternatives(self, client, sample_text):
        resp = client.post(
            "/api/extract",
            json={"text": sample_text, "generate_alternatives": False},
        )
        assert all(q["alternatives"] == [] for q in resp.get_json()["questions"])

    def test_extract_upload(self, client, sample_pdf_bytes):
        resp = client.post(
            "/api/extract",
            data={"file": (io.BytesIO(sample_pdf_bytes), "paper.pdf")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert len(resp.get_json()["questions"]) == 4

    def test_undecodable_upload(self, client):
        resp = client.post(
            "/api/extract",
            data={"file": (io.BytesIO(b"not a pdf at all"), "paper.pdf")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 422
        assert "error" in resp.get_json()

    def test_missing_input(self, client):
        assert client.post("/api/extract", json={}).status_code == 400


class TestAlternativesEndpoint:

    def test_alternatives(self, client):
        resp = client.post(
            "/api/alternatives",
            json={"text": "Explain the working of a sol-gel process."},
        )
        alts = resp.get_json()["alternatives"]
        assert alts[0] == "Explain in detail the working of a sol-gel process."
        assert len(alts) == 5

    def test_missing_text(self, client):
        assert client.post("/api/alternatives", json={"text": "  "}).status_code == 400


class TestRenderEndpoint:

    def test_render_from_text(self, client, sample_text):
        resp = client.post("/api/render", json={
            "text": sample_text,
            "selected": {"q1a": "Brand new wording for the first part."},
        })
        assert resp.status_code == 200
        assert resp.mimetype == "text/html"
        body = resp.get_data(as_text=True)
        assert "Brand new wording for the first part." in body
        assert "Module - 1" in body

    def test_render_with_questions(self, client):
        resp = client.post("/api/render", json={
            "text": "",
            "questions": [{"id": "q4b", "text": "Supplied question text.", "marks": 6}],
        })
        assert resp.status_code == 200
        assert "Supplied question text." in resp.get_data(as_text=True)

    def test_invalid_questions(self, client):
        resp = client.post("/api/render", json={
            "text": "", "questions": [{"id": "bad", "text": "x", "marks": 50}],
        })
        assert resp.status_code == 400

    def test_invalid_selection(self, client, sample_text):
        resp = client.post("/api/render", json={"text": sample_text, "selected": "{oops"})
        assert resp.status_code == 400


class TestModifyEndpoint:

    def test_modify(self, client, sample_pdf_bytes):
        resp = client.post(
            "/api/modify",
            data={
                "file": (io.BytesIO(sample_pdf_bytes), "paper.pdf"),
                "selected": json.dumps({"q2a": "Analyze and discuss optical properties."}),
            },
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.data.startswith(b"%PDF")

    def test_missing_file(self, client):
        resp = client.post("/api/modify", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400


# ═══════════════════════════════════════════════════════════════════════════════
# CLI TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestCli:

    def test_extract_text_json(self, tmp_path, sample_text):
        path = tmp_path / "paper.txt"
        path.write_text(sample_text, encoding="utf-8")

        result = CliRunner().invoke(cli, ["extract-text", str(path), "--json-output"])
        assert result.exit_code == 0, result.output

        data = json.loads(result.output)
        assert [q["id"] for q in data["questions"]] == ["q1a", "q1b", "q1c", "q2a"]

    def test_extract_text_table(self, tmp_path, sample_text):
        path = tmp_path / "paper.txt"
        path.write_text(sample_text, encoding="utf-8")

        result = CliRunner().invoke(cli, ["extract-text", str(path), "--log-level", "ERROR"])
        assert result.exit_code == 0, result.output
        assert "q1a" in result.output
        assert "Extraction Report" in result.output

    def test_extract_pdf_saves_json(self, tmp_path, sample_pdf_path):
        out_dir = tmp_path / "out"
        result = CliRunner().invoke(cli, [
            "extract", str(sample_pdf_path), "-o", str(out_dir), "--log-level", "ERROR",
        ])
        assert result.exit_code == 0, result.output
        saved = json.loads((out_dir / "model_paper_questions.json").read_text(encoding="utf-8"))
        assert len(saved["questions"]) == 4

    def test_extract_undecodable(self, tmp_path):
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"definitely not a pdf")
        result = CliRunner().invoke(cli, ["extract", str(bad), "--log-level", "ERROR"])
        assert result.exit_code == 1

    def test_render(self, tmp_path, sample_pdf_path):
        out = tmp_path / "paper.html"
        result = CliRunner().invoke(cli, [
            "render", str(sample_pdf_path), "-o", str(out), "-c", "q1a=1",
        ])
        assert result.exit_code == 0, result.output
        assert "Explain in detail the Sputtering technique" in out.read_text(encoding="utf-8")

    def test_render_bad_choice(self, tmp_path, sample_pdf_path):
        result = CliRunner().invoke(cli, [
            "render", str(sample_pdf_path), "-o", str(tmp_path / "x.html"), "-c", "q9z=1",
        ])
        assert result.exit_code == 1

    def test_modify(self, tmp_path, sample_pdf_path):
        out = tmp_path / "modified.pdf"
        result = CliRunner().invoke(cli, [
            "modify", str(sample_pdf_path), "-o", str(out), "-c", "q1b=3",
        ])
        assert result.exit_code == 0, result.output
        with fitz.open(str(out)) as doc:
            assert doc.page_count == 1

    def test_info(self, sample_pdf_path):
        result = CliRunner().invoke(cli, ["info", str(sample_pdf_path)])
        assert result.exit_code == 0, result.output
        assert "Pages" in result.output
        assert "Q1, Q2" in result.output

    def test_info_undecodable(self, tmp_path):
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"definitely not a pdf")
        result = CliRunner().invoke(cli, ["info", str(bad)])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)
