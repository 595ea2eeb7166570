"""Decode logo and pattern images supplied as data URIs."""

from __future__ import annotations

import base64
import binascii
import logging
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from label_types import FillMode, LogoSettings, PrintSettings, StyleSettings
from .errors import AssetLoadError
from .utils import normalize_hex_color

logger = logging.getLogger(__name__)


def decode_data_uri(uri: str) -> Image.Image:
    """Return the image encoded in ``data:<mime>;base64,<payload>``.

    A bare base64 payload is accepted as well.
    """

    text = (uri or "").strip()
    if not text:
        raise AssetLoadError("Image data is empty.")

    if text.startswith("data:"):
        header, sep, payload = text.partition(",")
        if not sep:
            raise AssetLoadError("Malformed data URI: missing ',' separator.")
        if not header.endswith(";base64"):
            raise AssetLoadError("Only base64 data URIs are supported.")
    else:
        payload = text

    try:
        raw = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise AssetLoadError(f"Invalid base64 image data: {exc}") from exc

    try:
        with Image.open(BytesIO(raw)) as image:
            image.load()
            return image.copy()
    except (UnidentifiedImageError, OSError) as exc:
        raise AssetLoadError(f"Unreadable image data: {exc}") from exc


def _load_optional(uri: str | None, purpose: str) -> Image.Image | None:
    if not uri:
        return None
    try:
        return decode_data_uri(uri)
    except AssetLoadError as exc:
        logger.warning("Ignoring %s image: %s", purpose, exc)
        return None


def resolve_style(settings: PrintSettings) -> StyleSettings:
    """Turn caller settings into a render style with decoded images.

    Asset problems are logged and degrade to no logo or a solid fill.
    """

    logo_image = _load_optional(settings.logo_image, "logo") if settings.show_logo else None
    pattern_image = None
    if settings.qr_fill_mode is FillMode.IMAGE:
        pattern_image = _load_optional(settings.qr_pattern_image, "pattern")

    return StyleSettings(
        foreground_color=normalize_hex_color(settings.code_color),
        fill_mode=settings.qr_fill_mode,
        pattern_image=pattern_image,
        logo=LogoSettings(
            image=logo_image,
            enabled=settings.show_logo,
            position=settings.logo_position,
        ),
        show_border=settings.show_border,
        brand_text=settings.brand_name,
        show_brand_text=settings.show_brand_name,
        brand_font_size_px=settings.brand_font_size,
        show_data_text=settings.show_data_text,
        data_font_size_px=settings.data_font_size,
    )


__all__ = ["decode_data_uri", "resolve_style"]
