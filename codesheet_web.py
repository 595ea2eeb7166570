"""HTTP front end for the label sheet exporter."""

from __future__ import annotations

import argparse
import logging
import os
from io import BytesIO
from typing import Any

from dotenv import load_dotenv
from flask import Flask, jsonify, request, send_file
from werkzeug.wrappers import Response

from label_data import expand_items, parse_labels, parse_print_settings
from label_sheet import EngineConfig, LabelSheetError, LayoutError, export, page_capacity
from label_types import ExportFormat

__all__ = ["create_app", "create_app_from_env", "main", "run_web_app"]

logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> tuple[Response, int]:
    return jsonify({"error": message}), status


def create_app(config: EngineConfig | None = None) -> Flask:
    """Create the Flask app bound to an engine configuration."""
    app = Flask(__name__)
    engine_config = config or EngineConfig()
    app.config["ENGINE_CONFIG"] = engine_config

    def _payload() -> dict[str, Any]:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object.")
        return payload

    @app.route("/capacity", methods=["POST"])
    def capacity() -> Response | tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        try:
            settings = parse_print_settings(_payload().get("settings"))
            geometry = page_capacity(settings.page_layout(), dpi=engine_config.dpi)
        except (ValueError, LayoutError) as exc:
            return _error(str(exc), 400)
        return jsonify(
            {
                "columns": geometry.columns,
                "rows": geometry.rows,
                "labelsPerPage": geometry.labels_per_page,
            }
        )

    @app.route("/export", methods=["POST"])
    def export_labels() -> Response | tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        try:
            payload = _payload()
            if "items" in payload and "labels" not in payload:
                labels = expand_items(payload["items"], str(payload.get("brandName") or ""))
            else:
                labels = parse_labels(payload.get("labels"))
            if not labels:
                raise ValueError("Add at least one label before exporting.")
            settings = parse_print_settings(payload.get("settings"))
            page_capacity(settings.page_layout(), dpi=engine_config.dpi)
            fmt = ExportFormat(str(payload.get("format") or "pdf").strip().lower())
        except (ValueError, LayoutError) as exc:
            return _error(str(exc), 400)

        try:
            result = export(labels, settings, fmt, engine_config)
        except LabelSheetError as exc:
            logger.error("Export of %d labels failed: %s", len(labels), exc)
            return _error(str(exc), 500)

        return send_file(
            BytesIO(result.blob),
            mimetype=result.mimetype,
            as_attachment=True,
            download_name=result.filename,
        )

    return app


def create_app_from_env() -> Flask:
    """Create the Flask app using CODESHEET_* environment variables."""
    load_dotenv()
    return create_app(EngineConfig.from_env())


def run_web_app(host: str, port: int) -> None:
    """Serve the app with Flask's development server."""
    app = create_app_from_env()

    # Enable reloader so code changes auto-restart the dev server.
    use_reloader_env = os.getenv("USE_RELOADER")
    use_reloader = (
        str(use_reloader_env).lower() in {"1", "true", "yes", "on"}
        if use_reloader_env is not None
        else True
    )
    app.run(host=host, port=port, debug=False, use_reloader=use_reloader)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the HTTP service."""
    parser = argparse.ArgumentParser(
        description="Label sheet export service"
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host/IP to bind (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=4000,
        help="Port to listen on (default: 4000).",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    run_web_app(host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    main()
