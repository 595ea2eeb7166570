"""Code label sheet layout and export engine."""

from __future__ import annotations

from .config import EngineConfig
from .errors import (
    AssetLoadError,
    EncodingError,
    ExportError,
    LabelSheetError,
    LayoutError,
    SerializationError,
)
from .exporter import (
    ExportRequest,
    ExportResponse,
    ExportSession,
    ExportStatus,
    export,
    export_in_worker,
    handle_request,
    run_export,
)
from .layout import page_capacity

__all__ = [
    "AssetLoadError",
    "EncodingError",
    "EngineConfig",
    "ExportError",
    "ExportRequest",
    "ExportResponse",
    "ExportSession",
    "ExportStatus",
    "LabelSheetError",
    "LayoutError",
    "SerializationError",
    "export",
    "export_in_worker",
    "handle_request",
    "page_capacity",
    "run_export",
]
