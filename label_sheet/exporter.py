"""Export coordination: one request in, one response out.

``run_export`` does the work in the calling process. ``export_in_worker``
runs the same pipeline in a throwaway single-process pool so a crash or a
long render never takes the caller down with it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from dataclasses import dataclass
from enum import StrEnum
from multiprocessing import get_context

from fonts import build_font_config
from label_types import ExportFormat, ExportResult, Label, PrintSettings
from .assets import resolve_style
from .code_renderer import render_code
from .compositor import max_code_size, render_page
from .config import EngineConfig
from .errors import ExportError
from .image_cache import Renderer, build_cache
from .layout import page_capacity, partition
from .serializer import serialize

logger = logging.getLogger(__name__)


class ExportStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ExportRequest:
    """Everything one export needs; plain data so it pickles into a worker."""

    labels: tuple[Label, ...]
    settings: PrintSettings
    export_format: ExportFormat = ExportFormat.PDF

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", tuple(self.labels))


@dataclass(frozen=True)
class ExportResponse:
    status: ExportStatus
    blob: bytes | None = None
    filename: str | None = None
    mimetype: str | None = None
    page_count: int = 0
    error: str | None = None

    def to_result(self) -> ExportResult:
        if self.status is not ExportStatus.SUCCESS or self.blob is None:
            raise ExportError(self.error or "Export failed.")
        return ExportResult(
            blob=self.blob,
            filename=self.filename or "",
            mimetype=self.mimetype or "application/octet-stream",
            page_count=self.page_count,
        )


def run_export(
    request: ExportRequest,
    config: EngineConfig | None = None,
    *,
    renderer: Renderer = render_code,
) -> ExportResult:
    """Lay out, render and serialize ``request`` in the current process."""

    config = config or EngineConfig()
    if not request.labels:
        raise ValueError("No labels to export.")
    fmt = ExportFormat(request.export_format)

    geometry = page_capacity(request.settings.page_layout(), dpi=config.dpi)
    style = resolve_style(request.settings)
    fonts = build_font_config(config.font_family)

    cache = build_cache(
        request.labels,
        style,
        lambda symbology: max_code_size(symbology, geometry),
        renderer=renderer,
        max_workers=config.max_workers,
    )
    pages = partition(request.labels, geometry)
    images = [
        render_page(page, geometry, style, cache, dpi=config.dpi, fonts=fonts)
        for page in pages
    ]
    result = serialize(
        images,
        fmt,
        base_name=config.base_name,
        zip_extension=config.zip_extension,
    )
    logger.info(
        "Exported %d labels on %d page(s) as %s",
        len(request.labels),
        result.page_count,
        result.filename,
    )
    return result


def handle_request(
    request: ExportRequest,
    config: EngineConfig | None = None,
) -> ExportResponse:
    """Worker entry point: always answers with exactly one response."""

    try:
        result = run_export(request, config)
    except Exception as exc:
        logger.error("Export failed: %s", exc, exc_info=logger.isEnabledFor(logging.DEBUG))
        return ExportResponse(status=ExportStatus.ERROR, error=str(exc) or type(exc).__name__)
    return ExportResponse(
        status=ExportStatus.SUCCESS,
        blob=result.blob,
        filename=result.filename,
        mimetype=result.mimetype,
        page_count=result.page_count,
    )


def export_in_worker(
    request: ExportRequest,
    config: EngineConfig | None = None,
) -> ExportResult:
    """Run one export in a fresh worker process that is torn down afterwards."""

    with ProcessPoolExecutor(max_workers=1, mp_context=get_context("spawn")) as pool:
        future = pool.submit(handle_request, request, config)
        try:
            response = future.result()
        except BrokenProcessPool as exc:
            raise ExportError("Export worker terminated unexpectedly.") from exc
    return response.to_result()


def export(
    labels: Sequence[Label],
    settings: PrintSettings,
    export_format: ExportFormat | str = ExportFormat.PDF,
    config: EngineConfig | None = None,
) -> ExportResult:
    """Export ``labels`` using the worker unless the config disables it."""

    config = config or EngineConfig()
    request = ExportRequest(
        labels=tuple(labels),
        settings=settings,
        export_format=ExportFormat(str(export_format).lower()),
    )
    if config.use_worker:
        return export_in_worker(request, config)
    try:
        return run_export(request, config)
    except ExportError:
        raise
    except Exception as exc:
        raise ExportError(str(exc)) from exc


Runner = Callable[[ExportRequest, EngineConfig | None], ExportResult]


class ExportSession:
    """Caller-side bookkeeping that drops results of superseded exports."""

    def __init__(self, config: EngineConfig | None = None, runner: Runner = export_in_worker) -> None:
        self.config = config
        self._runner = runner
        self._lock = threading.Lock()
        self._latest = 0

    def ticket(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest

    def accept(self, ticket: int, result: ExportResult) -> ExportResult | None:
        if not self.is_current(ticket):
            logger.debug("Discarding result of superseded export #%d", ticket)
            return None
        return result

    def run(self, request: ExportRequest) -> ExportResult | None:
        """Export ``request``; ``None`` means a newer export replaced it."""

        ticket = self.ticket()
        try:
            result = self._runner(request, self.config)
        except ExportError:
            if not self.is_current(ticket):
                logger.debug("Ignoring failure of superseded export #%d", ticket)
                return None
            raise
        return self.accept(ticket, result)


__all__ = [
    "ExportRequest",
    "ExportResponse",
    "ExportSession",
    "ExportStatus",
    "export",
    "export_in_worker",
    "handle_request",
    "run_export",
]
