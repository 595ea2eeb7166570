"""Draw label cells (border, brand band, code, data band) onto sheet pages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image
from reportlab.lib.colors import HexColor
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from fonts import FontConfig
from label_types import Label, Page, PageGeometry, StyleSettings, Symbology
from .code_renderer import BARCODE_HEIGHT_RATIO
from .config import FONT_REFERENCE_DPI, PAGE_SIZE, RENDER_DPI, page_size_px
from .image_cache import RenderCache
from .utils import elide_to_width, middle_baseline, rasterize_pdf, shrink_fit

logger = logging.getLogger(__name__)

BORDER_COLOR = "#CCCCCC"
BRAND_COLOR = "#333333"
DATA_COLOR = "#555555"
PLACEHOLDER_COLOR = "#F0F0F0"

MIN_PADDING_PX = 8.0
PADDING_RATIO = 0.04
BARCODE_WIDTH_PER_HEIGHT = 2.2
MIN_TEXT_SCALE = 0.5

DEFAULT_FONTS = FontConfig(brand="Helvetica-Bold", data="Helvetica")


class PixelCanvas:
    """Reportlab canvas addressed in device pixels from the top-left corner."""

    def __init__(self, canvas_obj: canvas.Canvas, page_height_px: float, dpi: int) -> None:
        self.canvas = canvas_obj
        self.dpi = dpi
        self._pt_per_px = 72.0 / dpi
        self._page_height_pt = page_height_px * self._pt_per_px

    def _pt(self, value_px: float) -> float:
        return value_px * self._pt_per_px

    def _flip(self, y_px: float) -> float:
        return self._page_height_pt - self._pt(y_px)

    def rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        *,
        stroke: str | None = None,
        fill: str | None = None,
        line_width_px: float = 1.0,
    ) -> None:
        c = self.canvas
        c.saveState()
        if stroke:
            c.setStrokeColor(HexColor(stroke))
            c.setLineWidth(self._pt(line_width_px))
        if fill:
            c.setFillColor(HexColor(fill))
        c.rect(
            self._pt(x),
            self._flip(y + height),
            self._pt(width),
            self._pt(height),
            stroke=1 if stroke else 0,
            fill=1 if fill else 0,
        )
        c.restoreState()

    def image(self, image: Image.Image, x: float, y: float, width: float, height: float) -> None:
        self.canvas.drawImage(
            ImageReader(image),
            self._pt(x),
            self._flip(y + height),
            width=self._pt(width),
            height=self._pt(height),
        )

    def centered_text(
        self,
        text: str,
        center_x: float,
        baseline_y: float,
        font_name: str,
        font_size_px: float,
        color: str,
    ) -> None:
        c = self.canvas
        c.saveState()
        c.setFillColor(HexColor(color))
        c.setFont(font_name, self._pt(font_size_px))
        c.drawCentredString(self._pt(center_x), self._flip(baseline_y), text)
        c.restoreState()


@dataclass(frozen=True)
class CellLayout:
    """Positions inside one cell, relative to its top-left corner."""

    padding: float
    brand_height: float
    data_height: float
    code_x: float
    code_y: float
    code_width: float
    code_height: float


def _padding(width: float, height: float) -> float:
    return max(MIN_PADDING_PX, min(width, height) * PADDING_RATIO)


def _code_box(symbology: Symbology, avail_w: float, avail_h: float) -> tuple[float, float]:
    if symbology is Symbology.BARCODE:
        code_w = min(avail_w, avail_h * BARCODE_WIDTH_PER_HEIGHT)
        return code_w, code_w * BARCODE_HEIGHT_RATIO
    side = min(avail_w, avail_h)
    return side, side


def brand_text_for(label: Label, style: StyleSettings) -> str:
    """The label's own brand text wins over the sheet-wide one."""

    if label.brand_text:
        return label.brand_text
    return style.brand_text or ""


def layout_cell(
    label: Label,
    width: float,
    height: float,
    style: StyleSettings,
    scale: float,
) -> CellLayout:
    padding = _padding(width, height)

    brand_height = 0.0
    if style.show_brand_text and brand_text_for(label, style):
        brand_height = round(style.brand_font_size_px * scale) + padding
    data_height = 0.0
    if style.show_data_text and label.content:
        data_height = round(style.data_font_size_px * scale) + padding

    avail_w = width - padding * 2
    avail_h = height - padding * 2 - brand_height - data_height
    code_w, code_h = _code_box(label.symbology, avail_w, avail_h)

    return CellLayout(
        padding=padding,
        brand_height=brand_height,
        data_height=data_height,
        code_x=(width - code_w) / 2,
        code_y=padding + brand_height + (avail_h - code_h) / 2,
        code_width=code_w,
        code_height=code_h,
    )


def max_code_size(symbology: Symbology, geometry: PageGeometry) -> tuple[int, int]:
    """Largest code box a cell can offer, i.e. with both text bands hidden."""

    width, height = geometry.cell_width_px, geometry.cell_height_px
    padding = _padding(width, height)
    code_w, code_h = _code_box(symbology, width - padding * 2, height - padding * 2)
    return max(1, int(round(code_w))), max(1, int(round(code_h)))


def _draw_band_text(
    target: PixelCanvas,
    text: str,
    center_x: float,
    middle_y: float,
    max_width: float,
    font_name: str,
    font_size: float,
    color: str,
) -> None:
    if max_width <= 0 or font_size <= 0:
        return
    size = shrink_fit(text, max_width, font_size, max(1.0, font_size * MIN_TEXT_SCALE), font_name)
    fitted = elide_to_width(text, font_name, size, max_width)
    if not fitted:
        return
    target.centered_text(
        fitted,
        center_x,
        middle_baseline(middle_y, font_name, size),
        font_name,
        size,
        color,
    )


def draw_cell(
    target: PixelCanvas,
    label: Label,
    x: float,
    y: float,
    width: float,
    height: float,
    style: StyleSettings,
    image: Image.Image | None,
    *,
    dpi: int = RENDER_DPI,
    fonts: FontConfig = DEFAULT_FONTS,
) -> None:
    """Composite one label. Drawing problems degrade to a placeholder."""

    scale = dpi / FONT_REFERENCE_DPI
    try:
        cell = layout_cell(label, width, height, style, scale)
        avail_w = width - cell.padding * 2

        if style.show_border:
            target.rect(x, y, width, height, stroke=BORDER_COLOR, line_width_px=max(1.0, scale))

        if cell.brand_height:
            _draw_band_text(
                target,
                brand_text_for(label, style),
                x + width / 2,
                y + cell.padding + cell.brand_height / 2,
                avail_w,
                fonts.brand,
                round(style.brand_font_size_px * scale),
                BRAND_COLOR,
            )

        if cell.code_width > 0 and cell.code_height > 0:
            code_args = (x + cell.code_x, y + cell.code_y, cell.code_width, cell.code_height)
            if image is not None:
                target.image(image, *code_args)
            else:
                target.rect(*code_args, fill=PLACEHOLDER_COLOR)

        if cell.data_height:
            _draw_band_text(
                target,
                label.content,
                x + width / 2,
                y + height - cell.padding - cell.data_height / 2,
                avail_w,
                fonts.data,
                round(style.data_font_size_px * scale),
                DATA_COLOR,
            )
    except Exception:
        logger.exception("Failed to draw label '%s'; using placeholder", label.content[:40])
        _draw_placeholder(target, label, x, y, width, height)


def _draw_placeholder(
    target: PixelCanvas,
    label: Label,
    x: float,
    y: float,
    width: float,
    height: float,
) -> None:
    padding = _padding(width, height)
    try:
        target.rect(
            x + padding,
            y + padding,
            max(0.0, width - padding * 2),
            max(0.0, height - padding * 2),
            fill=PLACEHOLDER_COLOR,
        )
    except Exception:
        logger.exception("Placeholder for label '%s' could not be drawn", label.content[:40])


def render_page(
    page: Page,
    geometry: PageGeometry,
    style: StyleSettings,
    cache: RenderCache,
    *,
    dpi: int = RENDER_DPI,
    fonts: FontConfig = DEFAULT_FONTS,
) -> Image.Image:
    """Draw every cell of ``page`` and return the page as an RGB image."""

    buffer = BytesIO()
    canvas_obj = canvas.Canvas(buffer, pagesize=PAGE_SIZE, invariant=1)
    _, page_height_px = page_size_px(dpi)
    target = PixelCanvas(canvas_obj, page_height_px, dpi)

    for cell in page.cells:
        draw_cell(
            target,
            cell.label,
            cell.x,
            cell.y,
            geometry.cell_width_px,
            geometry.cell_height_px,
            style,
            cache.get(cell.label.cache_key),
            dpi=dpi,
            fonts=fonts,
        )

    canvas_obj.showPage()
    canvas_obj.save()
    image = rasterize_pdf(buffer.getvalue(), dpi=dpi)
    logger.debug("Rendered page %d with %d labels", page.page_index + 1, len(page.cells))
    return image


__all__ = [
    "CellLayout",
    "PixelCanvas",
    "brand_text_for",
    "draw_cell",
    "layout_cell",
    "max_code_size",
    "render_page",
]
