"""Engine constants and environment-driven configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from reportlab.lib.pagesizes import A4

PAGE_SIZE = A4
PAGE_WIDTH_MM = 210.0
PAGE_HEIGHT_MM = 297.0

CM_PER_INCH = 2.54
MM_PER_INCH = 25.4

RENDER_DPI = 300
FONT_REFERENCE_DPI = 72

DEFAULT_BASE_NAME = "qr-labels"
DEFAULT_MAX_WORKERS = 8


def cm_to_px(value_cm: float, dpi: int = RENDER_DPI) -> float:
    return value_cm / CM_PER_INCH * dpi


def page_size_px(dpi: int = RENDER_DPI) -> tuple[float, float]:
    """Return the A4 page size in device pixels at ``dpi``."""

    return (
        PAGE_WIDTH_MM / MM_PER_INCH * dpi,
        PAGE_HEIGHT_MM / MM_PER_INCH * dpi,
    )


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid integer for {name}: '{raw}'") from exc


@dataclass(frozen=True)
class EngineConfig:
    """Tunables that are not part of a single export request."""

    dpi: int = RENDER_DPI
    font_reference_dpi: int = FONT_REFERENCE_DPI
    base_name: str = DEFAULT_BASE_NAME
    zip_extension: bool = True
    max_workers: int = DEFAULT_MAX_WORKERS
    font_family: str = "Helvetica"
    use_worker: bool = True

    @property
    def font_scale(self) -> float:
        """Factor applied to user font sizes authored at the reference DPI."""

        return self.dpi / self.font_reference_dpi

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Build a config from ``CODESHEET_*`` environment variables."""

        return cls(
            base_name=os.getenv("CODESHEET_BASE_NAME", DEFAULT_BASE_NAME).strip()
            or DEFAULT_BASE_NAME,
            zip_extension=_env_flag("CODESHEET_ZIP_EXTENSION", True),
            max_workers=max(1, _env_int("CODESHEET_MAX_WORKERS", DEFAULT_MAX_WORKERS)),
            font_family=os.getenv("CODESHEET_FONT_FAMILY", "Helvetica").strip()
            or "Helvetica",
            use_worker=_env_flag("CODESHEET_USE_WORKER", True),
        )


__all__ = [
    "CM_PER_INCH",
    "EngineConfig",
    "FONT_REFERENCE_DPI",
    "PAGE_HEIGHT_MM",
    "PAGE_SIZE",
    "PAGE_WIDTH_MM",
    "RENDER_DPI",
    "cm_to_px",
    "page_size_px",
]
