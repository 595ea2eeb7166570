"""Render each distinct code once per pass."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType

from PIL import Image

from label_types import CacheKey, FillMode, Label, StyleSettings, Symbology
from .code_renderer import render_code
from .config import DEFAULT_MAX_WORKERS
from .errors import EncodingError

logger = logging.getLogger(__name__)

RenderCache = Mapping[CacheKey, Image.Image | None]
SizeFor = Callable[[Symbology], tuple[int, int]]
Renderer = Callable[..., Image.Image]


def distinct_keys(labels: Iterable[Label]) -> list[CacheKey]:
    """Unique ``(symbology, content)`` keys in first-seen order."""

    return list(dict.fromkeys(label.cache_key for label in labels))


def _render_one(
    key: CacheKey,
    style: StyleSettings,
    size_for: SizeFor,
    renderer: Renderer,
) -> Image.Image | None:
    symbology, content = key
    width, height = size_for(symbology)
    try:
        return renderer(symbology, content, width, style, height_px=height)
    except EncodingError as exc:
        logger.warning("Skipping %s code '%s': %s", symbology.value, content[:40], exc)
    except Exception:
        logger.exception("Unexpected failure rendering %s code '%s'", symbology.value, content[:40])
    return None


def build_cache(
    labels: Iterable[Label],
    style: StyleSettings,
    size_for: SizeFor,
    *,
    renderer: Renderer = render_code,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> RenderCache:
    """Render every distinct key concurrently and wait for all of them.

    A key whose render fails maps to ``None``; the batch itself never fails.
    """

    keys = distinct_keys(labels)
    if not keys:
        return MappingProxyType({})

    workers = max(1, min(max_workers, len(keys)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="code-render") as pool:
        futures = {
            key: pool.submit(_render_one, key, style, size_for, renderer)
            for key in keys
        }
        rendered = {key: future.result() for key, future in futures.items()}

    failed = sum(1 for image in rendered.values() if image is None)
    logger.debug("Rendered %d distinct codes (%d failed)", len(rendered), failed)
    return MappingProxyType(rendered)


def _image_digest(image: Image.Image | None) -> str:
    if image is None:
        return "-"
    digest = hashlib.sha256()
    digest.update(f"{image.mode}:{image.width}x{image.height}".encode())
    digest.update(image.tobytes())
    return digest.hexdigest()


def cache_signature(labels: Iterable[Label], style: StyleSettings) -> str:
    """Stable digest of everything that changes rendered code pixels."""

    digest = hashlib.sha256()
    for symbology, content in distinct_keys(labels):
        digest.update(f"{symbology.value}\x1f{content}\x1e".encode())
    parts = (
        style.foreground_color.upper(),
        style.effective_fill_mode.value,
        _image_digest(style.pattern_image if style.effective_fill_mode is FillMode.IMAGE else None),
        str(style.logo.active),
        style.logo.position.value,
        _image_digest(style.logo.image if style.logo.active else None),
    )
    digest.update("\x1d".join(parts).encode())
    return digest.hexdigest()


__all__ = [
    "RenderCache",
    "build_cache",
    "cache_signature",
    "distinct_keys",
]
