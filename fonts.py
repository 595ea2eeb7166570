# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false, reportAttributeAccessIssue=false
# pyright: reportMissingImports=false
# pyright: reportMissingTypeStubs=false

"""Font resolution for label text: built-in PDF fonts or local TTF files."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Union

from fontTools.ttLib import TTFont as VariableTTFont
from fontTools.varLib import instancer
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont as ReportLabTTFont

logger = logging.getLogger(__name__)

DEFAULT_FAMILY = "Helvetica"
BOLD_WEIGHT = 700
REGULAR_WEIGHT = 400


def fonts_dir() -> Path:
    configured = (os.getenv("CODESHEET_FONTS_DIR") or "").strip()
    if configured:
        return Path(configured).expanduser()
    return Path(__file__).resolve().parent / "fonts"


@dataclass(frozen=True)
class BuiltinFont:
    """One of the standard 14 PDF fonts, keyed by weight."""

    family_name: str
    faces: dict[int, str]


@dataclass(frozen=True)
class LocalVariableFont:
    family_name: str
    filename: str


@dataclass(frozen=True)
class LocalStaticFont:
    family_name: str
    files: dict[int, str]


FontSource = Union[BuiltinFont, LocalVariableFont, LocalStaticFont]


def _font_key(name: str) -> str:
    return " ".join(name.strip().lower().split())


FONT_SOURCES: dict[str, FontSource] = {
    _font_key("Helvetica"): BuiltinFont(
        family_name="Helvetica",
        faces={REGULAR_WEIGHT: "Helvetica", BOLD_WEIGHT: "Helvetica-Bold"},
    ),
    _font_key("Times"): BuiltinFont(
        family_name="Times",
        faces={REGULAR_WEIGHT: "Times-Roman", BOLD_WEIGHT: "Times-Bold"},
    ),
    _font_key("Courier"): BuiltinFont(
        family_name="Courier",
        faces={REGULAR_WEIGHT: "Courier", BOLD_WEIGHT: "Courier-Bold"},
    ),
    _font_key("Inter"): LocalVariableFont(
        family_name="Inter",
        filename="InterVariable.ttf",
    ),
    _font_key("Vera"): LocalStaticFont(
        family_name="Vera",
        files={REGULAR_WEIGHT: "Vera.ttf", BOLD_WEIGHT: "VeraBd.ttf"},
    ),
}


@dataclass(frozen=True)
class FontSpec:
    """Desired weight for a text band."""

    weight: float


@dataclass(frozen=True)
class FontConfig:
    """Registered font names for the brand and data bands."""

    brand: str
    data: str


class FontUnavailableError(RuntimeError):
    """The requested family or its files cannot be used."""


def _closest_weight(available: dict[int, str], weight: float) -> int:
    return min(sorted(available), key=lambda w: abs(w - weight))


class VariableFontManager:
    """Instantiate static font variants from a variable font file."""

    def __init__(self, family: str, font_path: Path) -> None:
        self.family = family
        self.font_path = font_path
        self._font_bytes = font_path.read_bytes()
        self._weight_min, self._weight_max = self._discover_weight_axis()
        self._registered: dict[str, str] = {}

    def _discover_weight_axis(self) -> tuple[float, float]:
        font = VariableTTFont(BytesIO(self._font_bytes))
        try:
            axis = next(ax for ax in font["fvar"].axes if ax.axisTag == "wght")
        except (KeyError, StopIteration) as exc:
            raise FontUnavailableError(
                f"Variable font '{self.font_path}' does not expose a wght axis."
            ) from exc
        return float(axis.minValue), float(axis.maxValue)

    def font_name_for_weight(self, weight: float) -> str:
        weight = min(max(float(weight), self._weight_min), self._weight_max)
        key = f"{weight:.1f}"
        cached = self._registered.get(key)
        if cached:
            return cached

        font_name = f"{self.family}-w{int(round(weight))}"
        pdfmetrics.registerFont(ReportLabTTFont(font_name, self._instantiate(weight)))
        self._registered[key] = font_name
        return font_name

    def _instantiate(self, weight: float) -> BytesIO:
        font = VariableTTFont(BytesIO(self._font_bytes))
        instancer.instantiateVariableFont(font, {"wght": weight}, inplace=True)
        self._ensure_unique_ps_name(font, weight)
        buffer = BytesIO()
        font.save(buffer)
        buffer.seek(0)
        return buffer

    def _ensure_unique_ps_name(self, font: VariableTTFont, weight: float) -> None:
        """Force a distinct PostScript name if instancer did not change it."""
        nm = font["name"]
        current_ps = nm.getName(6, 3, 1, 0x409) or nm.getName(6, 1, 0, 0)
        target_ps = self._safe_ps_name(
            f"{self.family.replace(' ', '')}-W{int(round(weight))}")
        if not current_ps or current_ps.toUnicode() == target_ps:
            return

        for plat, enc, lang in ((3, 1, 0x409), (1, 0, 0)):
            nm.setName(target_ps, 6, plat, enc, lang)
            nm.setName(f"{self.family} {int(round(weight))}", 4, plat, enc, lang)
            nm.setName(self.family, 1, plat, enc, lang)
            nm.setName(str(int(round(weight))), 2, plat, enc, lang)
            nm.setName(self.family, 16, plat, enc, lang)
            nm.setName(str(int(round(weight))), 17, plat, enc, lang)

    def _safe_ps_name(self, s: str) -> str:
        return re.sub(r"[^A-Za-z0-9-]", "", s)[:63]


class FontRegistry:
    def __init__(self) -> None:
        self._variable_managers: dict[str, VariableFontManager] = {}

        # map (family_name, weight) -> registered font name
        self._static_registry: dict[tuple[str, int], str] = {}

    def get_font_name(self, family_key: str, weight: float) -> str:
        info = FONT_SOURCES.get(family_key)
        if info is None:
            available = ", ".join(sorted(FONT_SOURCES))
            raise FontUnavailableError(
                f"Unknown font family '{family_key}'. Available: {available}")

        if isinstance(info, BuiltinFont):
            return info.faces[_closest_weight(info.faces, weight)]
        if isinstance(info, LocalVariableFont):
            return self._get_variable_font_name(info, weight)
        return self._get_static_font_name(info, weight)

    def _get_variable_font_name(
        self, info: LocalVariableFont, weight: float
    ) -> str:
        key = _font_key(info.family_name)
        manager = self._variable_managers.get(key)
        if manager is None:
            destination = fonts_dir() / info.filename
            if not destination.exists():
                raise FontUnavailableError(
                    f"Font file '{destination}' for family '{info.family_name}' is missing."
                )
            manager = VariableFontManager(info.family_name, destination)
            self._variable_managers[key] = manager
        return manager.font_name_for_weight(weight)

    def _get_static_font_name(self, info: LocalStaticFont, weight: float) -> str:
        weight_int = _closest_weight(info.files, weight)
        filename = info.files[weight_int]

        key = (info.family_name, weight_int)
        cached = self._static_registry.get(key)
        if cached:
            return cached

        destination = fonts_dir() / filename
        if not destination.exists():
            raise FontUnavailableError(
                f"Font file '{destination}' for family '{info.family_name}' is missing."
            )

        font_name = f"{info.family_name.replace(' ', '')}-w{weight_int}"
        pdfmetrics.registerFont(ReportLabTTFont(font_name, str(destination)))
        self._static_registry[key] = font_name
        return font_name


_REGISTRY = FontRegistry()


def _resolve(family_key: str, weight: float) -> str:
    try:
        return _REGISTRY.get_font_name(family_key, weight)
    except (FontUnavailableError, OSError) as exc:
        logger.warning("Falling back to %s: %s", DEFAULT_FAMILY, exc)
        return _REGISTRY.get_font_name(_font_key(DEFAULT_FAMILY), weight)


def build_font_config(
    family: str = DEFAULT_FAMILY,
    brand_spec: FontSpec = FontSpec(weight=BOLD_WEIGHT),
    data_spec: FontSpec = FontSpec(weight=REGULAR_WEIGHT),
) -> FontConfig:
    """Register fonts as needed and return the names to draw with."""

    key = _font_key(family or DEFAULT_FAMILY)
    return FontConfig(
        brand=_resolve(key, brand_spec.weight),
        data=_resolve(key, data_spec.weight),
    )


__all__ = [
    "FontConfig",
    "FontSpec",
    "build_font_config",
]
