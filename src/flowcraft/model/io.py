"""
Input/Output Manager
====================
Handles loading and saving diagram files and exporting the rendered diagram
to SVG, PNG or PDF.

Diagram files are plain UTF-8 text. Every successful load or save moves the
file to the front of the recent files history.

When a method is called without a path, the ``path_provider`` is asked for
one (the main window plugs in its file dialogs). Returning ``None`` from the
provider means the user cancelled.
"""
from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from PySide6.QtCore import QByteArray, QMarginsF, QRectF, QSize, QSizeF, Qt
from PySide6.QtGui import QImage, QPageLayout, QPageSize, QPainter, QPdfWriter
from PySide6.QtSvg import QSvgRenderer

from flowcraft import config
from flowcraft.model.recent import RecentFilesStore
from flowcraft.model.state import ExportFormat, FileContent, Rendered

# Get module logger
logger = logging.getLogger(__name__)

# (mode, file_filter) -> chosen path or None; mode is "open", "save" or "export"
PathProvider = Callable[[str, str], Optional[str]]


class FileOperationError(Exception):
    """Load/save failed; the message is meant for the user."""


class ExportError(Exception):
    """Export failed; the message is meant for the user."""


EXPORT_FILTERS: dict[ExportFormat, str] = {
    ExportFormat.PNG: "PNG Files (*.png)",
    ExportFormat.SVG: "SVG Files (*.svg)",
    ExportFormat.PDF: "PDF Files (*.pdf)",
}


class DiagramExporter:
    """Serializes an already rendered SVG artifact. Never re-renders."""

    def __init__(self, png_scale: float = config.PNG_EXPORT_SCALE) -> None:
        self.png_scale = png_scale

    def export(self, artifact: Optional[Rendered], fmt: ExportFormat | str, path: str) -> str:
        if artifact is None:
            raise ExportError("No rendered diagram to export")
        try:
            fmt = ExportFormat(str(fmt).lower())
        except ValueError:
            raise ExportError("Unsupported format") from None

        logger.info(f"Exporting diagram as {fmt.upper()} to: {path}")
        try:
            if fmt is ExportFormat.SVG:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(artifact.svg)
            elif fmt is ExportFormat.PNG:
                self._write_png(artifact.svg, path)
            else:
                self._write_pdf(artifact.svg, path)
        except ExportError:
            raise
        except OSError as e:
            logger.exception("Failed to export diagram")
            raise ExportError(f"Failed to export: {e}") from e

        return path

    # ---- Rasterization helpers ----

    @staticmethod
    def _load_svg(svg: str) -> tuple[QSvgRenderer, QSizeF]:
        renderer = QSvgRenderer(QByteArray(svg.encode("utf-8")))
        if not renderer.isValid():
            raise ExportError("Failed to export: the rendered SVG could not be parsed")

        size = QSizeF(renderer.defaultSize())
        if size.isEmpty():
            size = renderer.viewBoxF().size()
        if size.isEmpty():
            raise ExportError("Failed to export: the rendered SVG has no size")
        return renderer, size

    def _write_png(self, svg: str, path: str) -> None:
        renderer, size = self._load_svg(svg)
        pixel_size = QSize(
            max(1, round(size.width() * self.png_scale)),
            max(1, round(size.height() * self.png_scale)),
        )

        image = QImage(pixel_size, QImage.Format.Format_ARGB32_Premultiplied)
        image.fill(Qt.GlobalColor.transparent)

        painter = QPainter(image)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing)
        renderer.render(painter, QRectF(0, 0, pixel_size.width(), pixel_size.height()))
        painter.end()

        if not image.save(path, "PNG"):
            raise ExportError(f"Failed to export: could not write '{path}'")

    def _write_pdf(self, svg: str, path: str) -> None:
        renderer, size = self._load_svg(svg)

        writer = QPdfWriter(path)
        writer.setResolution(72)  # 1 SVG px == 1 pt
        writer.setPageLayout(QPageLayout(
            QPageSize(size, QPageSize.Unit.Point, "", QPageSize.SizeMatchPolicy.ExactMatch),
            QPageLayout.Orientation.Portrait,
            QMarginsF(0, 0, 0, 0),
        ))

        painter = QPainter()
        if not painter.begin(writer):
            raise ExportError(f"Failed to export: could not write '{path}'")
        renderer.render(painter, QRectF(0, 0, size.width(), size.height()))
        painter.end()


class DocumentIO:
    def __init__(
        self,
        recent: Optional[RecentFilesStore] = None,
        path_provider: Optional[PathProvider] = None,
        exporter: Optional[DiagramExporter] = None,
    ) -> None:
        self.recent = recent if recent is not None else RecentFilesStore()
        self.path_provider = path_provider
        self.exporter = exporter if exporter is not None else DiagramExporter()

    def load_file(self, path: Optional[str] = None) -> FileContent:
        if path is None:
            path = self._ask("open", config.DIAGRAM_FILE_FILTER)
            if path is None:
                raise FileOperationError("File selection cancelled")

        logger.info(f"Loading diagram from: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.exception(f"Failed to load diagram: {e}")
            raise FileOperationError(f"Failed to read file: {e}") from e

        self._remember(path)
        return FileContent(content=content, path=path)

    def save_file(self, content: str, path: Optional[str] = None) -> str:
        if path is None:
            path = self._ask("save", config.DIAGRAM_FILE_FILTER)
            if path is None:
                raise FileOperationError("File save cancelled")
            if not os.path.splitext(path)[1]:
                path += config.DIAGRAM_DEFAULT_SUFFIX

        logger.info(f"Saving diagram to: {path}")
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            logger.exception(f"Failed to save diagram: {e}")
            raise FileOperationError(f"Failed to save file: {e}") from e

        self._remember(path)
        return path

    def export_diagram(self, artifact: Optional[Rendered], fmt: ExportFormat | str, path: Optional[str] = None) -> str:
        try:
            fmt = ExportFormat(str(fmt).lower())
        except ValueError:
            raise ExportError("Unsupported format") from None
        if artifact is None:
            raise ExportError("No rendered diagram to export")

        if path is None:
            path = self._ask("export", EXPORT_FILTERS[fmt])
            if path is None:
                raise ExportError("Export cancelled")
            if not path.lower().endswith(f".{fmt}"):
                path += f".{fmt}"

        return self.exporter.export(artifact, fmt, path)

    def _ask(self, mode: str, file_filter: str) -> Optional[str]:
        if self.path_provider is None:
            return None
        return self.path_provider(mode, file_filter) or None

    def _remember(self, path: str) -> None:
        try:
            self.recent.touch(path)
        except Exception as e:
            logger.warning(f"Could not update recent files: {e}")
