"""Pack rendered page images into PDF, PNG or SVG output."""

from __future__ import annotations

import base64
import logging
import zipfile
from collections.abc import Sequence
from io import BytesIO

from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from label_types import ExportFormat, ExportResult
from .config import DEFAULT_BASE_NAME, PAGE_HEIGHT_MM, PAGE_SIZE, PAGE_WIDTH_MM
from .errors import SerializationError

logger = logging.getLogger(__name__)

MIMETYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.PNG: "image/png",
    ExportFormat.SVG: "image/svg+xml",
}
ZIP_MIMETYPE = "application/zip"

# Fixed entry timestamp so identical pages give identical archives.
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)

_SVG_TEMPLATE = (
    '<svg xmlns="http://www.w3.org/2000/svg" '
    'xmlns:xlink="http://www.w3.org/1999/xlink" '
    'width="{width:g}mm" height="{height:g}mm" viewBox="0 0 {width:g} {height:g}">'
    '<image x="0" y="0" width="{width:g}" height="{height:g}" '
    'xlink:href="data:image/png;base64,{payload}"/>'
    "</svg>"
)


def png_bytes(page: Image.Image) -> bytes:
    buffer = BytesIO()
    page.save(buffer, format="PNG")
    return buffer.getvalue()


def svg_document(page: Image.Image) -> str:
    """Wrap one page raster in an A4-sized SVG document."""

    payload = base64.b64encode(png_bytes(page)).decode("ascii")
    return _SVG_TEMPLATE.format(width=PAGE_WIDTH_MM, height=PAGE_HEIGHT_MM, payload=payload)


def pdf_document(pages: Sequence[Image.Image]) -> bytes:
    buffer = BytesIO()
    page_w, page_h = PAGE_SIZE
    canvas_obj = canvas.Canvas(buffer, pagesize=PAGE_SIZE, invariant=1)
    for page in pages:
        canvas_obj.drawImage(ImageReader(page), 0, 0, width=page_w, height=page_h)
        canvas_obj.showPage()
    canvas_obj.save()
    return buffer.getvalue()


def zip_entries(entries: Sequence[tuple[str, bytes]]) -> bytes:
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            info = zipfile.ZipInfo(name, date_time=_ZIP_DATE_TIME)
            info.compress_type = zipfile.ZIP_DEFLATED
            zf.writestr(info, data)
    return buffer.getvalue()


def serialize(
    pages: Sequence[Image.Image],
    fmt: ExportFormat,
    *,
    base_name: str = DEFAULT_BASE_NAME,
    zip_extension: bool = True,
) -> ExportResult:
    """Serialize page images; PNG and SVG bundle several pages into a ZIP."""

    if not pages:
        raise SerializationError("There are no pages to export.")

    try:
        fmt = ExportFormat(fmt)
    except ValueError as exc:
        raise SerializationError(f"Unsupported export format '{fmt}'.") from exc
    count = len(pages)
    try:
        if fmt is ExportFormat.PDF:
            return ExportResult(
                blob=pdf_document(pages),
                filename=f"{base_name}.pdf",
                mimetype=MIMETYPES[fmt],
                page_count=count,
            )

        encode = png_bytes if fmt is ExportFormat.PNG else (
            lambda page: svg_document(page).encode("utf-8")
        )
        if count == 1:
            return ExportResult(
                blob=encode(pages[0]),
                filename=f"{base_name}.{fmt.value}",
                mimetype=MIMETYPES[fmt],
                page_count=1,
            )

        blob = zip_entries(
            [(f"page-{number}.{fmt.value}", encode(page)) for number, page in enumerate(pages, start=1)]
        )
    except SerializationError:
        raise
    except Exception as exc:
        raise SerializationError(f"Could not build {fmt.value} output: {exc}") from exc

    extension = "zip" if zip_extension else fmt.value
    logger.debug("Bundled %d %s pages into a ZIP archive", count, fmt.value)
    return ExportResult(
        blob=blob,
        filename=f"{base_name}.{extension}",
        mimetype=ZIP_MIMETYPE,
        page_count=count,
    )


__all__ = [
    "MIMETYPES",
    "ZIP_MIMETYPE",
    "pdf_document",
    "png_bytes",
    "serialize",
    "svg_document",
]
