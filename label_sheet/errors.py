"""Exception types raised by the label sheet engine."""

from __future__ import annotations


class LabelSheetError(Exception):
    """Base class for engine failures."""


class EncodingError(LabelSheetError):
    """Content cannot be represented by the chosen symbology."""


class AssetLoadError(LabelSheetError):
    """A logo or pattern image could not be decoded."""


class LayoutError(LabelSheetError):
    """The label cell does not fit on the page."""


class SerializationError(LabelSheetError):
    """The output container could not be assembled."""


class ExportError(LabelSheetError):
    """Terminal error reported by an export worker."""


__all__ = [
    "AssetLoadError",
    "EncodingError",
    "ExportError",
    "LabelSheetError",
    "LayoutError",
    "SerializationError",
]
