"""Shared helpers for text fitting, colours and PDF rasterization."""

from __future__ import annotations

import re
import threading

import fitz
from PIL import Image
from reportlab.pdfbase.pdfmetrics import getAscent, getDescent, stringWidth

DEFAULT_COLOR = "#000000"
ELLIPSIS = "…"

_HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")

# PyMuPDF is not thread-safe; every document it opens goes through this lock.
_RASTER_LOCK = threading.Lock()


def normalize_hex_color(value: object, fallback: str = DEFAULT_COLOR) -> str:
    """Return ``#RRGGBB`` in upper case, or ``fallback`` for anything else."""

    match = _HEX_COLOR_RE.match(str(value or "").strip())
    if not match:
        return fallback
    return f"#{match.group(1).upper()}"


def shrink_fit(
    text: str,
    max_width: float,
    max_font: float,
    min_font: float,
    font_name: str,
    step: float = 0.5,
) -> float:
    """Return the largest font size that fits within ``max_width``.

    Widths and sizes share one unit, so callers may work in points or pixels.
    """

    size = max_font
    step = max(step, 0.25)
    while (
        size >= min_font
        and stringWidth(text, font_name, size) > max_width
    ):
        size -= step
    return max(size, min_font)


def elide_to_width(
    text: str,
    font_name: str,
    font_size: float,
    max_width: float,
) -> str:
    """Trim ``text`` and append an ellipsis until it fits ``max_width``."""

    if stringWidth(text, font_name, font_size) <= max_width:
        return text
    if stringWidth(ELLIPSIS, font_name, font_size) > max_width:
        return ""
    trimmed = text.rstrip()
    while trimmed and stringWidth(trimmed + ELLIPSIS, font_name, font_size) > max_width:
        trimmed = trimmed[:-1].rstrip()
    return trimmed + ELLIPSIS if trimmed else ELLIPSIS


def middle_baseline(middle_y: float, font_name: str, font_size: float) -> float:
    """Baseline that vertically centres glyphs on ``middle_y`` (y grows down)."""

    ascent = getAscent(font_name, font_size)
    descent = getDescent(font_name, font_size)
    return middle_y + (ascent + descent) / 2.0


def rasterize_pdf(
    pdf_bytes: bytes,
    *,
    dpi: int | None = None,
    zoom: float | None = None,
) -> Image.Image:
    """Render the first page of ``pdf_bytes`` to an opaque RGB image.

    Either ``dpi`` or a uniform ``zoom`` factor (pixels per point) is used.
    """

    with _RASTER_LOCK:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            page = doc.load_page(0)
            if zoom is not None:
                pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
            else:
                pix = page.get_pixmap(dpi=dpi or 72, alpha=False)
            return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


__all__ = [
    "elide_to_width",
    "middle_baseline",
    "normalize_hex_color",
    "rasterize_pdf",
    "shrink_fit",
]
