"""Page grid geometry and label pagination."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from label_types import Cell, Label, Page, PageGeometry, PageLayoutSettings
from .config import RENDER_DPI, cm_to_px, page_size_px
from .errors import LayoutError

logger = logging.getLogger(__name__)

# Tolerated floating error when a whole number of cells exactly fills a page.
_FIT_EPSILON = 1e-9


def _fit_count(available: float, pitch: float) -> int:
    return int(math.floor(available / pitch + _FIT_EPSILON))


def compute_page_geometry(
    page_width_px: float,
    page_height_px: float,
    layout: PageLayoutSettings,
    dpi: int = RENDER_DPI,
) -> PageGeometry:
    """Derive the label grid for one page.

    Raises ``LayoutError`` when not even one label fits.
    """

    cell_w = cm_to_px(layout.label_width_cm, dpi)
    cell_h = cm_to_px(layout.label_height_cm, dpi)
    spacing_x = cm_to_px(layout.spacing_x_cm, dpi)
    spacing_y = cm_to_px(layout.spacing_y_cm, dpi)

    max_columns = _fit_count(page_width_px, cell_w + spacing_x)
    columns = max_columns
    if layout.forced_columns_per_row is not None:
        columns = min(layout.forced_columns_per_row, max_columns)
    rows = _fit_count(page_height_px, cell_h + spacing_y)

    if columns < 1 or rows < 1:
        raise LayoutError(
            f"A {layout.label_width_cm:g}x{layout.label_height_cm:g} cm label with "
            f"{layout.spacing_x_cm:g}/{layout.spacing_y_cm:g} cm spacing does not fit on the page."
        )

    geometry = PageGeometry(
        columns=columns,
        rows=rows,
        cell_width_px=cell_w,
        cell_height_px=cell_h,
        spacing_x_px=spacing_x,
        spacing_y_px=spacing_y,
    )
    logger.debug(
        "Page grid %dx%d (%d labels) at %d dpi",
        columns,
        rows,
        geometry.labels_per_page,
        dpi,
    )
    return geometry


def page_capacity(layout: PageLayoutSettings, dpi: int = RENDER_DPI) -> PageGeometry:
    """Geometry of an A4 page at ``dpi``, for capacity readouts."""

    width_px, height_px = page_size_px(dpi)
    return compute_page_geometry(width_px, height_px, layout, dpi)


def cell_origin(index: int, geometry: PageGeometry) -> tuple[float, float]:
    """Top-left pixel origin of the ``index``-th cell on a page (row-major)."""

    row, col = divmod(index, geometry.columns)
    return (
        col * geometry.pitch_x_px + geometry.spacing_x_px,
        row * geometry.pitch_y_px + geometry.spacing_y_px,
    )


def partition(labels: Sequence[Label], geometry: PageGeometry) -> list[Page]:
    """Split ``labels`` into pages, preserving order."""

    per_page = geometry.labels_per_page
    if per_page < 1:
        raise LayoutError("Page geometry holds no labels.")

    pages: list[Page] = []
    for page_index, start in enumerate(range(0, len(labels), per_page)):
        chunk = labels[start:start + per_page]
        cells = tuple(
            Cell(label, *cell_origin(slot, geometry))
            for slot, label in enumerate(chunk)
        )
        pages.append(Page(page_index=page_index, cells=cells))
    return pages


__all__ = [
    "cell_origin",
    "compute_page_geometry",
    "page_capacity",
    "partition",
]
