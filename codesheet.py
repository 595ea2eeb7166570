#!/usr/bin/env python3
"""Generate printable QR / barcode / Data Matrix label sheets."""

from __future__ import annotations

import argparse
import base64
import json
import logging
import mimetypes
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional, Sequence

from dotenv import load_dotenv

from label_data import LabelImportError, load_label_rows, parse_print_settings
from label_sheet import EngineConfig, LabelSheetError, export, page_capacity
from label_types import ExportFormat, LogoPosition, PrintSettings


def _load_settings_file(path: Optional[str]) -> dict[str, Any]:
    if not path:
        return {}
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SystemExit(f"Cannot read settings file '{path}': {exc}") from exc
    if not isinstance(payload, dict):
        raise SystemExit(f"Settings file '{path}' must contain a JSON object.")
    return payload


def _image_data_uri(path: str) -> str:
    file_path = Path(path)
    try:
        raw = file_path.read_bytes()
    except OSError as exc:
        raise SystemExit(f"Cannot read logo '{path}': {exc}") from exc
    mime = mimetypes.guess_type(file_path.name)[0] or "image/png"
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def build_settings(args: argparse.Namespace) -> PrintSettings:
    """Merge the settings file with command line overrides."""

    try:
        settings = parse_print_settings(_load_settings_file(args.settings))
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc

    overrides: dict[str, Any] = {}
    if args.label_width is not None:
        overrides["label_width_cm"] = args.label_width
    if args.label_height is not None:
        overrides["label_height_cm"] = args.label_height
    if args.columns is not None:
        overrides["columns_per_row"] = args.columns
    if args.brand is not None:
        overrides["brand_name"] = args.brand
    if args.color is not None:
        overrides["code_color"] = args.color
    if args.logo:
        overrides["logo_image"] = _image_data_uri(args.logo)
        overrides["show_logo"] = True
    if args.logo_position is not None:
        overrides["logo_position"] = LogoPosition(args.logo_position)
    if args.data_text:
        overrides["show_data_text"] = True
    if args.no_border:
        overrides["show_border"] = False
    return replace(settings, **overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""

    parser = argparse.ArgumentParser(
        description="Lay out code labels on A4 sheets and export PDF, PNG or SVG."
    )
    parser.add_argument(
        "labels_file",
        nargs="?",
        metavar="LABELS_FILE",
        help="CSV, XLSX or JSON file with type, data and count columns, or a JSON object with an \"items\" list.",
    )
    parser.add_argument("-o", "--output")
    parser.add_argument(
        "-f",
        "--format",
        choices=[fmt.value for fmt in ExportFormat],
        default=ExportFormat.PDF.value,
        help="Output format (default: pdf).",
    )
    parser.add_argument(
        "--settings",
        metavar="JSON_FILE",
        help="Print settings as a JSON object with camelCase keys.",
    )
    parser.add_argument("--label-width", type=float, metavar="CM")
    parser.add_argument("--label-height", type=float, metavar="CM")
    parser.add_argument(
        "--columns",
        type=int,
        metavar="N",
        help="Cap the number of columns per row.",
    )
    parser.add_argument("--brand", metavar="TEXT", help="Brand text above each code.")
    parser.add_argument("--color", metavar="HEX", help="Code colour, e.g. #1A73E8.")
    parser.add_argument("--logo", metavar="IMAGE_FILE", help="Logo overlaid on QR codes.")
    parser.add_argument(
        "--logo-position",
        choices=[position.value for position in LogoPosition],
    )
    parser.add_argument(
        "--data-text",
        action="store_true",
        help="Print the encoded data below each code.",
    )
    parser.add_argument(
        "--no-border",
        action="store_true",
        help="Do not outline the label cells.",
    )
    parser.add_argument(
        "--no-worker",
        action="store_true",
        help="Render in this process instead of a worker process.",
    )
    parser.add_argument(
        "--capacity",
        action="store_true",
        help="Only print how many labels fit on a page.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    load_dotenv()
    config = EngineConfig.from_env()
    if args.no_worker:
        config = replace(config, use_worker=False)

    settings = build_settings(args)

    try:
        geometry = page_capacity(settings.page_layout(), dpi=config.dpi)
    except (ValueError, LabelSheetError) as exc:
        raise SystemExit(str(exc)) from exc

    if args.capacity:
        print(
            f"{geometry.columns} columns x {geometry.rows} rows = "
            f"{geometry.labels_per_page} labels per page"
        )
        return 0

    if not args.labels_file:
        parser.error("LABELS_FILE is required unless --capacity is given.")

    try:
        labels = load_label_rows(args.labels_file)
    except LabelImportError as exc:
        raise SystemExit(f"Cannot import '{args.labels_file}':\n{exc}") from exc

    try:
        result = export(labels, settings, ExportFormat(args.format), config)
    except LabelSheetError as exc:
        raise SystemExit(f"Export failed: {exc}") from exc

    output_path = Path(args.output or result.filename)
    output_path.write_bytes(result.blob)

    print(
        f"Wrote {output_path} ({len(labels)} labels, {result.page_count} page(s), "
        f"{geometry.labels_per_page} per page)"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
