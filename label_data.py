"""Helpers for building labels and print settings from caller-supplied data."""

from __future__ import annotations

import csv
import json
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from label_types import FillMode, Label, LogoPosition, PrintSettings, Symbology

__all__ = [
    "LabelImportError",
    "expand_items",
    "load_label_rows",
    "parse_label",
    "parse_labels",
    "parse_print_settings",
    "parse_symbology",
]

REQUIRED_COLUMNS = ("type", "data", "count")
SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".json")

_CONTENT_KEYS = ("content", "data", "qrData")
_SYMBOLOGY_KEYS = ("symbology", "type")
_BRAND_KEYS = ("brandText", "brandName")


class LabelImportError(ValueError):
    """An import file is unreadable or has invalid rows."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("\n".join(self.errors))


def _first(payload: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def parse_symbology(value: Any) -> Symbology:
    """Map a type name to a symbology; anything unknown is a QR code."""

    try:
        return Symbology(str(value or "").strip().lower())
    except ValueError:
        return Symbology.QR


def parse_label(payload: Mapping[str, Any]) -> Label:
    content = _first(payload, _CONTENT_KEYS)
    brand = str(_first(payload, _BRAND_KEYS) or "").strip()
    return Label(
        content="" if content is None else str(content),
        symbology=parse_symbology(_first(payload, _SYMBOLOGY_KEYS)),
        brand_text=brand or None,
    )


def parse_labels(payload: Any) -> list[Label]:
    if not isinstance(payload, list):
        raise ValueError("Labels must be a list of objects.")
    labels: list[Label] = []
    for index, item in enumerate(payload, start=1):
        if not isinstance(item, Mapping):
            raise ValueError(f"Label #{index} must be an object.")
        labels.append(parse_label(item))
    return labels


def _whole_number(value: Any, name: str, minimum: int) -> int:
    if isinstance(value, bool):
        raise ValueError(f'"{name}" must be a whole number.')
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValueError(f'"{name}" must be a whole number.') from None
    if number < minimum:
        raise ValueError(f'"{name}" must be at least {minimum}.')
    return number


def expand_items(items: Any, brand_name: str = "") -> list[Label]:
    """Expand ``{type, count, dataPattern, startNumber, isExact}`` items.

    Every ``{n}`` in ``dataPattern`` becomes a running number that starts
    at ``startNumber`` (default 1); ``isExact`` items repeat the pattern
    verbatim. Problems in all items are reported in one ``LabelImportError``.
    """

    if not isinstance(items, list):
        raise LabelImportError(["Items must be a list of objects."])

    brand = brand_name.strip() or None
    errors: list[str] = []
    labels: list[Label] = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            errors.append(f"Item {index}: must be an object")
            continue
        pattern = item.get("dataPattern")
        if not isinstance(pattern, str) or not pattern.strip():
            errors.append(f'Item {index}: "dataPattern" is missing')
            continue
        try:
            count = _whole_number(item.get("count"), "count", 1)
            start = _whole_number(item.get("startNumber", 1), "startNumber", 0)
        except ValueError as exc:
            errors.append(f"Item {index}: {exc}")
            continue

        symbology = parse_symbology(item.get("type"))
        exact = bool(item.get("isExact"))
        for n in range(start, start + count):
            content = pattern if exact else pattern.replace("{n}", str(n))
            labels.append(Label(content=content, symbology=symbology, brand_text=brand))

    if errors:
        raise LabelImportError(errors)
    return labels


def _as_float(settings: Mapping[str, Any], key: str, default: float) -> float:
    value = settings.get(key)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Setting '{key}' must be a number, got {value!r}.") from exc


def _as_int(settings: Mapping[str, Any], key: str, default: int | None) -> int | None:
    value = settings.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Setting '{key}' must be an integer, got {value!r}.") from exc


def _as_bool(settings: Mapping[str, Any], key: str, default: bool) -> bool:
    value = settings.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def parse_print_settings(settings: Mapping[str, Any] | None) -> PrintSettings:
    """Build ``PrintSettings`` from camelCase keys, filling in defaults."""

    settings = settings or {}
    defaults = PrintSettings()

    try:
        fill_mode = FillMode(str(settings.get("qrFillMode") or defaults.qr_fill_mode).lower())
    except ValueError:
        fill_mode = FillMode.COLOR
    try:
        logo_position = LogoPosition(
            str(settings.get("logoPosition") or defaults.logo_position).lower()
        )
    except ValueError:
        logo_position = LogoPosition.CENTER

    columns = _as_int(settings, "columnsPerRow", None)
    return PrintSettings(
        label_width_cm=_as_float(settings, "labelWidthCm", defaults.label_width_cm),
        label_height_cm=_as_float(settings, "labelHeightCm", defaults.label_height_cm),
        spacing_x_cm=_as_float(settings, "spacingXCm", defaults.spacing_x_cm),
        spacing_y_cm=_as_float(settings, "spacingYCm", defaults.spacing_y_cm),
        columns_per_row=columns if columns and columns > 0 else None,
        show_border=_as_bool(settings, "showBorder", defaults.show_border),
        brand_name=str(settings.get("brandName") or ""),
        show_brand_name=_as_bool(settings, "showBrandName", defaults.show_brand_name),
        brand_font_size=_as_int(settings, "brandFontSize", defaults.brand_font_size)
        or defaults.brand_font_size,
        show_data_text=_as_bool(settings, "showDataText", defaults.show_data_text),
        data_font_size=_as_int(settings, "dataFontSize", defaults.data_font_size)
        or defaults.data_font_size,
        code_color=str(settings.get("codeColor") or defaults.code_color),
        qr_fill_mode=fill_mode,
        qr_pattern_image=settings.get("qrPatternImage") or None,
        logo_image=settings.get("logoImage") or None,
        show_logo=_as_bool(settings, "showLogo", defaults.show_logo),
        logo_position=logo_position,
    )


def _validate_rows(rows: Sequence[Mapping[str, Any]]) -> list[Label]:
    errors: list[str] = []
    labels: list[Label] = []
    valid_types = ", ".join(s.value for s in Symbology)

    for row_number, raw in enumerate(rows, start=1):
        row = {str(k).strip().lower(): v for k, v in raw.items() if k is not None}
        problems: list[str] = []

        type_text = str(row.get("type") or "").strip().lower()
        symbology: Symbology | None = None
        if not type_text:
            problems.append('"type" is missing')
        else:
            try:
                symbology = Symbology(type_text)
            except ValueError:
                problems.append(f'"{row.get("type")}" is not a valid type; expected {valid_types}')

        data = str(row.get("data") or "").strip()
        if not data:
            problems.append('"data" is missing')

        count_value = row.get("count")
        # Spreadsheet cells hold whole numbers as floats.
        if isinstance(count_value, float) and count_value.is_integer():
            count_value = int(count_value)
        count_raw = "" if count_value is None else str(count_value).strip()
        count = 0
        if not count_raw:
            problems.append('"count" is missing')
        else:
            try:
                count = int(count_raw)
            except ValueError:
                count = 0
            if count < 1:
                problems.append(f'"{count_raw}" is not a valid count; it must be a whole number above 0')

        if problems or symbology is None:
            errors.append(f"Row {row_number}: {' | '.join(problems)}")
            continue
        labels.extend(Label(content=data, symbology=symbology) for _ in range(count))

    if errors:
        raise LabelImportError(errors)
    return labels


def _read_csv(path: Path) -> list[dict[str, Any]]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        header = [str(name).strip().lower() for name in reader.fieldnames or []]
        _check_columns(header)
        return list(reader)


def _read_xlsx(path: Path) -> list[dict[str, Any]]:
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError) as exc:
        raise LabelImportError([f"'{path.name}' is not a readable .xlsx workbook: {exc}"]) from exc
    try:
        sheet = workbook.active
        rows = list(sheet.iter_rows(values_only=True)) if sheet is not None else []
    finally:
        workbook.close()

    if not rows:
        raise LabelImportError(["The file has no data rows."])
    header = [str(name).strip().lower() if name is not None else "" for name in rows[0]]
    _check_columns(header)
    return [
        dict(zip(header, values))
        for values in rows[1:]
        if any(value not in (None, "") for value in values)
    ]


def _read_json(path: Path) -> Any:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise LabelImportError([f"'{path.name}' is not valid JSON: {exc}"]) from exc
    if isinstance(payload, dict) and "items" in payload:
        return payload
    if not isinstance(payload, list) or not all(isinstance(row, dict) for row in payload):
        raise LabelImportError(["A JSON import must be a list of objects or an object with \"items\"."])
    if payload:
        _check_columns({str(k).strip().lower() for k in payload[0]})
    return payload


def _check_columns(header: Iterable[str]) -> None:
    present = set(header)
    missing = [column for column in REQUIRED_COLUMNS if column not in present]
    if missing:
        names = ", ".join(f'"{column}"' for column in missing)
        raise LabelImportError([f"The file is missing column(s): {names}."])


def load_label_rows(path: str | Path) -> list[Label]:
    """Read labels from a CSV, XLSX or JSON file.

    Rows carry ``type``/``data``/``count`` columns and each expands to
    ``count`` labels. A JSON object with an ``items`` list is expanded with
    ``expand_items`` instead. All invalid rows are reported together in one
    ``LabelImportError``.
    """

    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        supported = ", ".join(SUPPORTED_SUFFIXES)
        raise LabelImportError([f"Unsupported file type '{suffix or path.name}'; use {supported}."])
    try:
        if suffix == ".csv":
            rows = _read_csv(path)
        elif suffix == ".xlsx":
            rows = _read_xlsx(path)
        else:
            payload = _read_json(path)
            if isinstance(payload, dict):
                return expand_items(payload["items"], str(payload.get("brandName") or ""))
            rows = payload
    except OSError as exc:
        raise LabelImportError([f"Cannot read '{path}': {exc}"]) from exc

    if not rows:
        raise LabelImportError(["The file has no data rows."])
    return _validate_rows(rows)
