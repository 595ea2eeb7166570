"""On-screen thumbnails for the label list."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from types import MappingProxyType

from PIL import Image

from label_types import Label, StyleSettings, Symbology
from .code_renderer import BARCODE_HEIGHT_RATIO, render_code
from .config import DEFAULT_MAX_WORKERS
from .image_cache import RenderCache, Renderer, build_cache, cache_signature

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE_PX = 120


def thumbnail_size(symbology: Symbology) -> tuple[int, int]:
    if symbology is Symbology.BARCODE:
        return THUMBNAIL_SIZE_PX, round(THUMBNAIL_SIZE_PX * BARCODE_HEIGHT_RATIO)
    return THUMBNAIL_SIZE_PX, THUMBNAIL_SIZE_PX


class PreviewCache:
    """Thumbnails keyed by ``(symbology, content)``, rebuilt when inputs change.

    Several refreshes may overlap. Only the one whose signature is still the
    latest when it finishes gets to replace the stored thumbnails.
    """

    def __init__(
        self,
        *,
        renderer: Renderer = render_code,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        self._renderer = renderer
        self._max_workers = max_workers
        self._lock = threading.Lock()
        self._latest_signature: str | None = None
        self._stored_signature: str | None = None
        self._thumbnails: RenderCache = MappingProxyType({})

    @property
    def thumbnails(self) -> RenderCache:
        with self._lock:
            return self._thumbnails

    def refresh(self, labels: Sequence[Label], style: StyleSettings) -> RenderCache:
        signature = cache_signature(labels, style)
        with self._lock:
            self._latest_signature = signature
            if signature == self._stored_signature:
                return self._thumbnails

        rendered = build_cache(
            labels,
            style,
            thumbnail_size,
            renderer=self._renderer,
            max_workers=self._max_workers,
        )

        with self._lock:
            if signature != self._latest_signature:
                logger.debug("Dropping stale thumbnails for signature %s", signature[:12])
                return rendered
            self._stored_signature = signature
            self._thumbnails = rendered
        return rendered

    def thumbnail_for(self, label: Label) -> Image.Image | None:
        return self.thumbnails.get(label.cache_key)


__all__ = ["PreviewCache", "THUMBNAIL_SIZE_PX", "thumbnail_size"]
