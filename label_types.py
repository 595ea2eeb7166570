"""Value types shared by the label sheet engine and its callers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from PIL import Image


class Symbology(StrEnum):
    QR = "qr"
    BARCODE = "barcode"
    DATAMATRIX = "datamatrix"


class FillMode(StrEnum):
    COLOR = "color"
    IMAGE = "image"


class LogoPosition(StrEnum):
    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    CENTER_LEFT = "center-left"
    CENTER = "center"
    CENTER_RIGHT = "center-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"


class ExportFormat(StrEnum):
    PDF = "pdf"
    PNG = "png"
    SVG = "svg"


CacheKey = tuple[Symbology, str]


@dataclass(frozen=True)
class Label:
    """One physical code to print."""

    content: str
    symbology: Symbology = Symbology.QR
    brand_text: str | None = None

    @property
    def cache_key(self) -> CacheKey:
        return (self.symbology, self.content)


@dataclass(frozen=True)
class LogoSettings:
    image: Image.Image | None = None
    enabled: bool = False
    position: LogoPosition = LogoPosition.CENTER

    @property
    def active(self) -> bool:
        return self.enabled and self.image is not None


@dataclass(frozen=True)
class StyleSettings:
    """Rendering style shared by every label of one export or preview pass."""

    foreground_color: str = "#000000"
    fill_mode: FillMode = FillMode.COLOR
    pattern_image: Image.Image | None = None
    logo: LogoSettings = field(default_factory=LogoSettings)
    show_border: bool = True
    brand_text: str = ""
    show_brand_text: bool = True
    brand_font_size_px: int = 12
    show_data_text: bool = False
    data_font_size_px: int = 10

    @property
    def effective_fill_mode(self) -> FillMode:
        """Image fills need a pattern; without one the solid colour is used."""

        if self.fill_mode is FillMode.IMAGE and self.pattern_image is not None:
            return FillMode.IMAGE
        return FillMode.COLOR


@dataclass(frozen=True)
class PageLayoutSettings:
    label_width_cm: float = 4.0
    label_height_cm: float = 3.0
    spacing_x_cm: float = 0.3
    spacing_y_cm: float = 0.3
    forced_columns_per_row: int | None = None

    def __post_init__(self) -> None:
        if self.label_width_cm <= 0 or self.label_height_cm <= 0:
            raise ValueError("Label width and height must be positive.")
        if self.spacing_x_cm < 0 or self.spacing_y_cm < 0:
            raise ValueError("Label spacing cannot be negative.")
        if self.forced_columns_per_row is not None and self.forced_columns_per_row < 1:
            raise ValueError("Columns per row must be at least 1.")


@dataclass(frozen=True)
class PrintSettings:
    """Print settings exactly as supplied by the caller.

    Images stay as data URIs so the settings can be pickled into a worker
    process; ``label_sheet.assets.resolve_style`` decodes them.
    """

    label_width_cm: float = 4.0
    label_height_cm: float = 3.0
    spacing_x_cm: float = 0.3
    spacing_y_cm: float = 0.3
    columns_per_row: int | None = None
    show_border: bool = True
    brand_name: str = ""
    show_brand_name: bool = True
    brand_font_size: int = 12
    show_data_text: bool = False
    data_font_size: int = 10
    code_color: str = "#000000"
    qr_fill_mode: FillMode = FillMode.COLOR
    qr_pattern_image: str | None = None
    logo_image: str | None = None
    show_logo: bool = False
    logo_position: LogoPosition = LogoPosition.CENTER

    def page_layout(self) -> PageLayoutSettings:
        return PageLayoutSettings(
            label_width_cm=self.label_width_cm,
            label_height_cm=self.label_height_cm,
            spacing_x_cm=self.spacing_x_cm,
            spacing_y_cm=self.spacing_y_cm,
            forced_columns_per_row=self.columns_per_row,
        )


@dataclass(frozen=True)
class PageGeometry:
    """Derived grid for one page size, all lengths in device pixels."""

    columns: int
    rows: int
    cell_width_px: float
    cell_height_px: float
    spacing_x_px: float
    spacing_y_px: float

    @property
    def labels_per_page(self) -> int:
        return self.columns * self.rows

    @property
    def pitch_x_px(self) -> float:
        return self.cell_width_px + self.spacing_x_px

    @property
    def pitch_y_px(self) -> float:
        return self.cell_height_px + self.spacing_y_px


@dataclass(frozen=True)
class Cell:
    label: Label
    x: float
    y: float


@dataclass(frozen=True)
class Page:
    page_index: int
    cells: tuple[Cell, ...]


@dataclass(frozen=True)
class ExportResult:
    blob: bytes
    filename: str
    mimetype: str
    page_count: int
