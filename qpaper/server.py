"""
HTTP Microservice
=================
Flask-based HTTP API for the question-paper extraction engine.

Every request is handled synchronously with a fresh engine; nothing is
stored between requests.

Endpoints:
    GET    /api/health        → Health check
    GET    /api/info          → Extractor version info
    POST   /api/extract       → Extract questions from a PDF upload or text
    POST   /api/alternatives  → Paraphrase alternatives for one question
    POST   /api/render        → Regenerate the paper as HTML
    POST   /api/modify        → Overlay selected alternatives onto the PDF
"""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path

from flask import Flask, jsonify, request, send_file
from flask_cors import CORS
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from . import __version__
from .engine import LOG_DATEFMT, LOG_FORMAT, ExtractionEngine, ParserConfig
from .models import DocumentText, Question
from .overlay import create_modified_pdf
from .paper import parse_paper_structure, render_html
from .paraphrase import PARAPHRASE_TEMPLATES, generate_alternatives
from .text_extractor import DocumentDecodeError, TextExtractor

logger = logging.getLogger(__name__)

_pkg_dir = Path(__file__).parent
app = Flask(__name__, template_folder=str(_pkg_dir / "templates"))
CORS(app)


class BadRequest(ValueError):
    """Malformed or missing request input."""


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    if config:
        app.config.update(config)

    app.config.setdefault("MAX_CONTENT_LENGTH", 50 * 1024 * 1024)  # 50MB
    return app


# ─── Error Handlers ───────────────────────────────────────────────────────────


@app.errorhandler(BadRequest)
def handle_bad_request(e):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(DocumentDecodeError)
def handle_decode_error(e):
    logger.warning(f"Rejected undecodable PDF: {e}")
    return jsonify({"error": str(e)}), 422


@app.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return e
    logger.error(f"Request failed: {e}", exc_info=True)
    return jsonify({"error": str(e)}), 500


# ─── Health Check ─────────────────────────────────────────────────────────────


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "qpaper",
        "version": __version__,
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Extractor version and capability info."""
    return jsonify({
        "version": __version__,
        "engine": "PyMuPDF",
        "capabilities": [
            "question_extraction",
            "paraphrase_alternatives",
            "position_lookup",
            "html_render",
            "pdf_overlay",
        ],
        "paraphrase_templates": list(PARAPHRASE_TEMPLATES),
        "supported_formats": ["pdf", "text"],
    })


# ─── Extraction ───────────────────────────────────────────────────────────────


@app.route("/api/extract", methods=["POST"])
def extract():
    """
    Extract questions.

    Accepts either:
        - A PDF upload (multipart/form-data, field ``file``)
        - A JSON body ``{"text": "..."}`` with already-decoded text

    Optional parameter ``generate_alternatives`` (default true).
    """
    params = _params()
    document = _load_document()

    engine = _engine(
        generate_alternatives=_flag(params.get("generate_alternatives"), True),
    )
    result = engine.extract(document)
    return jsonify(result.model_dump(mode="json")), 200


@app.route("/api/alternatives", methods=["POST"])
def alternatives():
    """Paraphrase alternatives for ``{"text": "..."}``."""
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        raise BadRequest("Provide a JSON body with non-empty 'text'")
    return jsonify({"alternatives": generate_alternatives(text)})


# ─── Rendering ────────────────────────────────────────────────────────────────


@app.route("/api/render", methods=["POST"])
def render():
    """
    Regenerate the paper as HTML.

    JSON body:
    {
        "text": "<raw paper text>",
        "questions": [...],             # optional, extracted from text if absent
        "selected": {"q1a": "..."}      # optional replacement texts
    }
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get("text"), str):
        raise BadRequest("Provide a JSON body with 'text'")

    text = data["text"]
    if data.get("questions") is not None:
        try:
            questions = [Question.model_validate(q) for q in data["questions"]]
        except (ValidationError, TypeError) as e:
            raise BadRequest(f"Invalid questions: {e}") from e
    else:
        questions = _engine(generate_alternatives=False).extract(text).questions

    selected = _selection(data.get("selected"))
    paper = parse_paper_structure(text, questions)
    html = render_html(paper, selected)
    return app.response_class(html, status=200, mimetype="text/html")


@app.route("/api/modify", methods=["POST"])
def modify():
    """
    Overlay replacement texts onto an uploaded PDF.

    Multipart form: ``file`` (the PDF) and ``selected`` (a JSON object
    mapping question ids to replacement texts).
    """
    if "file" not in request.files:
        raise BadRequest("No file provided")
    pdf_data = request.files["file"].read()
    selected = _selection(request.form.get("selected", "{}"))

    document = TextExtractor().extract(pdf_data)
    result = _engine(generate_alternatives=False).extract(document)
    output = create_modified_pdf(pdf_data, result.questions, selected)

    return send_file(
        io.BytesIO(output),
        mimetype="application/pdf",
        as_attachment=True,
        download_name="modified.pdf",
    )


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _engine(generate_alternatives: bool = True) -> ExtractionEngine:
    config = ParserConfig(generate_alternatives=generate_alternatives)
    return ExtractionEngine(config, log=logger)


def _params() -> dict:
    if request.content_type and "multipart" in request.content_type:
        return request.form
    return request.get_json(silent=True) or {}


def _load_document() -> DocumentText:
    if "file" in request.files:
        file = request.files["file"]
        if not file.filename:
            raise BadRequest("No file selected")
        logger.info(f"Extracting upload: {file.filename}")
        return TextExtractor().extract(file.read())

    data = request.get_json(silent=True)
    if data and isinstance(data.get("text"), str):
        return DocumentText(text=data["text"])

    raise BadRequest("Provide a PDF upload or JSON with 'text'")


def _selection(raw) -> dict[str, str]:
    """Accept the selection as a dict or a JSON-encoded string."""
    if raw is None:
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw or "{}")
        except json.JSONDecodeError as e:
            raise BadRequest(f"'selected' is not valid JSON: {e}") from e
    if not isinstance(raw, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in raw.items()
    ):
        raise BadRequest("'selected' must map question ids to strings")
    return raw


def _flag(value, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() not in ("0", "false", "no", "off")


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    debug: bool = False,
):
    """Start the microservice server."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
