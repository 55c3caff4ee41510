"""
HTTP Microservice
=================
Flask-based HTTP API for the exam question parser.

Endpoints:
    POST   /api/parse/text   → Parse exam text posted as JSON
    POST   /api/parse        → Parse an uploaded PDF/text file or a source path/URL
    GET    /api/health       → Health check
    GET    /api/info         → Parser version info
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import __version__
from .engine import ParserConfig, ParserEngine
from .exceptions import SourceError, UnsupportedSourceError
from .models import CheckType, NumberPolicy

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

UPLOAD_SUFFIXES = {".pdf", ".txt", ".text", ".md"}


def create_app(config: dict = None) -> Flask:
    """Create and configure the Flask app."""
    if config:
        app.config.update(config)

    app.config.setdefault("MAX_CONTENT_LENGTH", 100 * 1024 * 1024)  # 100MB
    app.config.setdefault("UPLOAD_DIR", tempfile.gettempdir())
    app.config.setdefault("LOG_LEVEL", "INFO")
    Path(app.config["UPLOAD_DIR"]).mkdir(parents=True, exist_ok=True)

    return app


def _config_from_params(params) -> ParserConfig:
    """Build a ParserConfig from request JSON / form fields."""
    return ParserConfig(
        number_policy=NumberPolicy(
            params.get("number_policy", NumberPolicy.ADVISORY.value)
        ),
        exhaustive=str(params.get("exhaustive", "")).lower() in ("1", "true", "yes"),
        log_level=app.config.get("LOG_LEVEL", "INFO"),
    )


# ─── Health Check ─────────────────────────────────────────────────────────────


@app.route("/api/health", methods=["GET"])
def health():
    """Health check endpoint."""
    return jsonify({
        "status": "healthy",
        "service": "exam-parser",
        "version": __version__,
    })


@app.route("/api/info", methods=["GET"])
def info():
    """Parser version and capability info."""
    return jsonify({
        "version": __version__,
        "engine": "PyMuPDF",
        "sources": ["text", "pdf", "url"],
        "checks": [c.value for c in CheckType],
        "number_policies": [p.value for p in NumberPolicy],
    })


# ─── Parse Endpoints ──────────────────────────────────────────────────────────


@app.route("/api/parse/text", methods=["POST"])
def parse_text():
    """
    Parse exam text synchronously.

    Body: {"text": "...", "number_policy": "advisory", "exhaustive": false}
    """
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return jsonify({"error": "Provide JSON with a non-empty 'text' field"}), 400

    try:
        config = _config_from_params(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    engine = ParserEngine(config)
    result = engine.process_text(text)
    return jsonify(result.model_dump(mode="json")), 200


@app.route("/api/parse", methods=["POST"])
def parse_source():
    """
    Parse a document synchronously and return the result.

    Accepts either:
        - A file upload (multipart/form-data, .pdf or .txt)
        - A JSON body with "source": a local path or an http(s) PDF URL
    """
    temp_path = None

    if "file" in request.files:
        file = request.files["file"]
        if not file.filename:
            return jsonify({"error": "No file selected"}), 400

        suffix = Path(file.filename).suffix.lower()
        if suffix not in UPLOAD_SUFFIXES:
            return jsonify({
                "error": f"Unsupported file type: {suffix or '(none)'}"
            }), 400

        fd, temp_path = tempfile.mkstemp(
            suffix=suffix, dir=app.config.get("UPLOAD_DIR")
        )
        os.close(fd)
        file.save(temp_path)
        identifier = temp_path
        params = request.form

    elif request.is_json:
        params = request.get_json(silent=True) or {}
        identifier = params.get("source")
        if not identifier:
            return jsonify({"error": "Provide 'source' in the JSON body"}), 400

    else:
        return jsonify({
            "error": "Provide a file upload or JSON with 'source'"
        }), 400

    try:
        engine = ParserEngine(_config_from_params(params))
        result = engine.parse(identifier)
        if temp_path:
            result.source.identifier = request.files["file"].filename
        return jsonify(result.model_dump(mode="json")), 200
    except FileNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (UnsupportedSourceError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except SourceError as e:
        return jsonify({"error": str(e)}), 422
    except Exception as e:
        logger.exception(f"Parse failed for {identifier}")
        return jsonify({"error": str(e)}), 500
    finally:
        if temp_path and os.path.exists(temp_path):
            os.unlink(temp_path)


# ─── Run Server ──────────────────────────────────────────────────────────────


def run_server(
    host: str = "0.0.0.0",
    port: int = 5000,
    debug: bool = False,
):
    """Start the microservice server."""
    create_app()
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run_server(debug=True)
