"""Symbol rendering for QR, CODE128 and Data Matrix codes.

Every symbol is first drawn in pure black on white. Ink is then picked out
with a luminance threshold and recoloured through that mask, so colours and
pattern fills never move a module. QR codes may finally receive a logo.
"""

from __future__ import annotations

import logging
import math
from io import BytesIO

import qrcode
from PIL import Image, ImageDraw
from qrcode.constants import ERROR_CORRECT_H
from qrcode.exceptions import DataOverflowError
from reportlab.graphics.barcode.code128 import Code128
from reportlab.graphics.barcode.ecc200datamatrix import ECC200DataMatrix
from reportlab.pdfgen import canvas

from label_types import FillMode, LogoPosition, StyleSettings, Symbology
from .errors import EncodingError
from .utils import normalize_hex_color, rasterize_pdf

logger = logging.getLogger(__name__)

INK_THRESHOLD = 180
BARCODE_HEIGHT_RATIO = 0.45

LOGO_SCALE = 0.25
LOGO_PADDING = 0.04
LOGO_BACKING_SCALE = 1.08

# Reportlab symbols are drawn with one module per point.
_MODULE_PT = 1.0
_BARCODE_BAR_HEIGHT_PT = 20.0


def render_code(
    symbology: Symbology,
    content: str,
    size_px: int,
    style: StyleSettings,
    *,
    height_px: int | None = None,
) -> Image.Image:
    """Render one code as an RGB image styled with ``style``.

    ``size_px`` is the side of square symbols and the width of linear
    barcodes; ``height_px`` only applies to barcodes and defaults to
    ``BARCODE_HEIGHT_RATIO`` of the width.
    """

    if not content:
        raise EncodingError(f"Cannot encode empty content as {symbology.value}.")

    width = max(1, int(round(size_px)))
    if symbology is Symbology.BARCODE:
        height = height_px or width * BARCODE_HEIGHT_RATIO
        symbol = render_barcode_symbol(content, width, max(1, int(round(height))))
    elif symbology is Symbology.DATAMATRIX:
        symbol = render_datamatrix_symbol(content, width)
    else:
        symbol = render_qr_symbol(content, width)

    styled = apply_fill(build_ink_mask(symbol), style)
    if symbology is Symbology.QR and style.logo.active:
        styled = overlay_logo(styled, style.logo.image, style.logo.position)
    return styled


def render_qr_symbol(content: str, size_px: int) -> Image.Image:
    """Black-on-white QR symbol at error correction level H, no quiet zone."""

    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, border=0, box_size=1)
    try:
        qr.add_data(content)
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        raise EncodingError(f"QR code cannot hold '{content[:40]}': {exc}") from exc

    matrix = qr.get_matrix()
    modules = len(matrix)
    symbol = Image.new("L", (modules, modules), 255)
    symbol.putdata([0 if dark else 255 for row in matrix for dark in row])
    return symbol.resize((size_px, size_px), Image.Resampling.NEAREST).convert("RGB")


def render_barcode_symbol(content: str, width_px: int, height_px: int) -> Image.Image:
    """Black-on-white CODE128 bars stretched to ``width_px`` x ``height_px``."""

    try:
        symbol = Code128(
            content,
            barWidth=_MODULE_PT,
            barHeight=_BARCODE_BAR_HEIGHT_PT,
            quiet=0,
            humanReadable=0,
        )
        symbol_width = symbol.width
        symbol_height = symbol.height
        valid = getattr(symbol, "valid", 1)
    except Exception as exc:
        raise EncodingError(f"CODE128 cannot encode '{content[:40]}': {exc}") from exc
    if not valid or symbol_width <= 0:
        raise EncodingError(
            f"'{content[:40]}' contains characters outside the CODE128 set."
        )

    image = _rasterize_symbol(symbol, symbol_width, symbol_height, width_px)
    return image.resize((width_px, height_px), Image.Resampling.NEAREST)


def render_datamatrix_symbol(content: str, size_px: int) -> Image.Image:
    """Black-on-white ECC200 Data Matrix fitted into a ``size_px`` square."""

    if not content.isascii():
        raise EncodingError(f"'{content[:40]}' contains non-ASCII characters.")
    try:
        symbol = ECC200DataMatrix(content, barWidth=_MODULE_PT)
        symbol_width = symbol.width
        symbol_height = symbol.height
    except Exception as exc:
        raise EncodingError(f"Data Matrix cannot encode '{content[:40]}': {exc}") from exc
    if symbol_width <= 0 or symbol_height <= 0:
        raise EncodingError(
            f"'{content[:40]}' cannot be represented as a Data Matrix."
        )

    image = _rasterize_symbol(symbol, symbol_width, symbol_height, size_px)
    scale = size_px / max(image.width, image.height)
    fitted = image.resize(
        (
            max(1, int(round(image.width * scale))),
            max(1, int(round(image.height * scale))),
        ),
        Image.Resampling.NEAREST,
    )
    square = Image.new("RGB", (size_px, size_px), "white")
    square.paste(fitted, ((size_px - fitted.width) // 2, (size_px - fitted.height) // 2))
    return square


def _rasterize_symbol(
    symbol: Code128 | ECC200DataMatrix,
    width_pt: float,
    height_pt: float,
    target_px: int,
) -> Image.Image:
    buffer = BytesIO()
    canvas_obj = canvas.Canvas(buffer, pagesize=(width_pt, height_pt), invariant=1)
    # ECC200DataMatrix.draw() reads its own x/y, which drawOn never sets.
    symbol.x = symbol.y = 0
    try:
        symbol.drawOn(canvas_obj, 0, 0)
    except Exception as exc:
        raise EncodingError(f"Could not draw '{symbol.value[:40]}': {exc}") from exc
    canvas_obj.showPage()
    canvas_obj.save()

    # Whole pixels per module keep bar edges crisp before the final resize.
    zoom = max(1, math.ceil(target_px / max(width_pt, height_pt)))
    return rasterize_pdf(buffer.getvalue(), zoom=zoom)


def build_ink_mask(symbol: Image.Image) -> Image.Image:
    """Return an ``L`` mask that is 255 on ink and 0 elsewhere.

    Transparent pixels count as paper. ``L`` conversion uses the
    0.299/0.587/0.114 luminance weights.
    """

    if symbol.mode in ("RGBA", "LA", "P"):
        rgba = symbol.convert("RGBA")
        paper = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        symbol = Image.alpha_composite(paper, rgba)
    luminance = symbol.convert("RGB").convert("L")
    return luminance.point(lambda value: 255 if value < INK_THRESHOLD else 0)


def apply_fill(mask: Image.Image, style: StyleSettings) -> Image.Image:
    """Paint ink with the style's colour or pattern and flatten onto white."""

    if style.effective_fill_mode is FillMode.IMAGE and style.pattern_image is not None:
        fill = style.pattern_image.convert("RGB").resize(
            mask.size, Image.Resampling.BILINEAR
        )
    else:
        fill = Image.new("RGB", mask.size, normalize_hex_color(style.foreground_color))
    paper = Image.new("RGB", mask.size, "white")
    return Image.composite(fill, paper, mask)


def logo_box(side_px: int, position: LogoPosition) -> tuple[float, float, float]:
    """Return ``(x, y, size)`` of the logo inside a square symbol."""

    logo_size = side_px * LOGO_SCALE
    pad = side_px * LOGO_PADDING
    anchor = position.value

    if anchor.startswith("top"):
        y = pad
    elif anchor.startswith("bottom"):
        y = side_px - logo_size - pad
    else:
        y = (side_px - logo_size) / 2

    if anchor.endswith("left"):
        x = pad
    elif anchor.endswith("right"):
        x = side_px - logo_size - pad
    else:
        x = (side_px - logo_size) / 2

    return x, y, logo_size


def overlay_logo(
    image: Image.Image,
    logo: Image.Image,
    position: LogoPosition,
) -> Image.Image:
    """Composite ``logo`` on a white backing square at ``position``."""

    side = min(image.size)
    x, y, logo_size = logo_box(side, position)
    backing = logo_size * LOGO_BACKING_SCALE
    inset = (backing - logo_size) / 2

    result = image.copy()
    draw = ImageDraw.Draw(result)
    draw.rectangle(
        [
            int(math.floor(x - inset)),
            int(math.floor(y - inset)),
            int(math.ceil(x - inset + backing)) - 1,
            int(math.ceil(y - inset + backing)) - 1,
        ],
        fill="white",
    )

    size = max(1, int(round(logo_size)))
    resized = logo.convert("RGBA").resize((size, size), Image.Resampling.LANCZOS)
    result.paste(resized, (int(round(x)), int(round(y))), resized)
    logger.debug("Placed %dpx logo at %s", size, position.value)
    return result


__all__ = [
    "BARCODE_HEIGHT_RATIO",
    "INK_THRESHOLD",
    "apply_fill",
    "build_ink_mask",
    "logo_box",
    "overlay_logo",
    "render_barcode_symbol",
    "render_code",
    "render_datamatrix_symbol",
    "render_qr_symbol",
]
