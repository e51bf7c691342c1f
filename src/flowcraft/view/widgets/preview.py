"""
Diagram Preview Panel
=====================
Displays whatever the synchronization controller says the preview should
show: a placeholder, the rendered diagram, or the renderer's error text.

Zoom only rescales the displayed image. The artifact itself is never touched,
so export always writes the diagram exactly as rendered.
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QByteArray, QSize, Qt, Signal
from PySide6.QtGui import QColor, QPainter, QPixmap
from PySide6.QtSvg import QSvgRenderer
from PySide6.QtWidgets import (
    QHBoxLayout, QLabel, QPushButton, QScrollArea, QStackedWidget, QVBoxLayout, QWidget,
)

from flowcraft import config
from flowcraft.controller.sync import SyncController
from flowcraft.model.state import Failed, PreviewState, Rendered

logger = logging.getLogger(__name__)


def render_svg_pixmap(svg: str, zoom: float = 1.0, background: Optional[QColor] = None) -> Optional[QPixmap]:
    """Rasterize an SVG document at the given zoom. None if Qt cannot parse it."""
    renderer = QSvgRenderer(QByteArray(svg.encode("utf-8")))
    if not renderer.isValid():
        return None
    size = renderer.defaultSize()
    if not size.isValid() or size.isEmpty():
        size = QSize(800, 600)

    scaled = QSize(max(1, round(size.width() * zoom)), max(1, round(size.height() * zoom)))
    pixmap = QPixmap(scaled)
    pixmap.fill(background if background is not None else Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    renderer.render(painter)
    painter.end()
    return pixmap


class PreviewPanel(QWidget):
    # Emitted with the export format name ("svg", "png", "pdf")
    export_requested = Signal(str)

    PAGE_EMPTY = 0
    PAGE_INVALID = 1
    PAGE_PENDING = 2
    PAGE_DIAGRAM = 3
    PAGE_FAILED = 4

    def __init__(self, controller: SyncController, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.controller = controller

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        # --- Header ---
        header = QHBoxLayout()
        title = QLabel("Preview")
        title.setStyleSheet("font-weight: bold;")
        header.addWidget(title)

        self.lbl_zoom = QLabel()
        self.lbl_zoom.setStyleSheet("color: gray;")
        header.addWidget(self.lbl_zoom)

        self.lbl_rendering = QLabel("Rendering…")
        self.lbl_rendering.setStyleSheet("color: #1565c0;")
        self.lbl_rendering.setVisible(False)
        header.addWidget(self.lbl_rendering)
        header.addStretch()

        self.btn_refresh = QPushButton("Refresh")
        self.btn_refresh.setToolTip("Render again and reset zoom")
        self.btn_refresh.clicked.connect(self.controller.force_refresh)
        header.addWidget(self.btn_refresh)

        self.btn_zoom_out = QPushButton("−")
        self.btn_zoom_out.setToolTip("Zoom out")
        self.btn_zoom_out.setFixedWidth(32)
        self.btn_zoom_out.clicked.connect(self.controller.zoom_out)
        header.addWidget(self.btn_zoom_out)

        self.btn_zoom_in = QPushButton("+")
        self.btn_zoom_in.setToolTip("Zoom in")
        self.btn_zoom_in.setFixedWidth(32)
        self.btn_zoom_in.clicked.connect(self.controller.zoom_in)
        header.addWidget(self.btn_zoom_in)

        self.btn_export_svg = QPushButton("Export SVG")
        self.btn_export_svg.clicked.connect(lambda: self.export_requested.emit("svg"))
        header.addWidget(self.btn_export_svg)

        layout.addLayout(header)

        # --- Body ---
        self.stack = QStackedWidget()

        self.lbl_empty = self._placeholder("Start typing to see the diagram preview.")
        self.lbl_invalid = self._placeholder("Fix the errors in the editor to see the preview.")
        self.lbl_pending = self._placeholder("Rendering preview…")

        self.lbl_diagram = QLabel()
        self.lbl_diagram.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.scroll = QScrollArea()
        self.scroll.setWidgetResizable(True)
        self.scroll.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.scroll.setWidget(self.lbl_diagram)

        self.lbl_failed = self._placeholder("")
        self.lbl_failed.setStyleSheet("color: #c62828; font-family: monospace;")
        self.lbl_failed.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)

        for page in (self.lbl_empty, self.lbl_invalid, self.lbl_pending, self.scroll, self.lbl_failed):
            self.stack.addWidget(page)
        layout.addWidget(self.stack, stretch=1)

        # Cache of the last rasterized artifact
        self._shown_artifact: Optional[Rendered] = None
        self._shown_zoom: Optional[float] = None

        # --- Controller wiring ---
        self.controller.validation_changed.connect(self.refresh)
        self.controller.render_changed.connect(self.refresh)
        self.controller.document_changed.connect(self.refresh)
        self.controller.zoom_changed.connect(self.refresh)
        self.controller.rendering_changed.connect(self.on_rendering_changed)

        self.refresh()

    # --- PROPERTIES ---

    @property
    def current_page(self) -> int:
        return self.stack.currentIndex()

    @property
    def displayed_artifact(self) -> Optional[Rendered]:
        return self._shown_artifact

    # --- SLOTS ---

    def on_rendering_changed(self, rendering: bool) -> None:
        self.lbl_rendering.setVisible(rendering)

    def refresh(self, *_args) -> None:
        zoom = self.controller.zoom
        self.lbl_zoom.setText(f"{round(zoom * 100)}%")
        self.btn_zoom_in.setEnabled(zoom < config.ZOOM_MAX)
        self.btn_zoom_out.setEnabled(zoom > config.ZOOM_MIN)
        self.btn_export_svg.setEnabled(self.controller.current_artifact() is not None)
        self.lbl_rendering.setVisible(self.controller.is_rendering)

        state = self.controller.preview_state()
        if state is PreviewState.EMPTY:
            self.stack.setCurrentIndex(self.PAGE_EMPTY)
        elif state is PreviewState.INVALID:
            self.stack.setCurrentIndex(self.PAGE_INVALID)
        elif state is PreviewState.PENDING:
            self.stack.setCurrentIndex(self.PAGE_PENDING)
        elif state is PreviewState.FAILED:
            outcome = self.controller.current_render()
            message = outcome.message if isinstance(outcome, Failed) else ""
            self.lbl_failed.setText(f"Render error:\n{message}")
            self.stack.setCurrentIndex(self.PAGE_FAILED)
        else:
            self._show_artifact(self.controller.current_artifact(), zoom)

    # --- HELPERS ---

    def _show_artifact(self, artifact: Optional[Rendered], zoom: float) -> None:
        if artifact is None:
            return
        if artifact is not self._shown_artifact or zoom != self._shown_zoom:
            pixmap = render_svg_pixmap(artifact.svg, zoom)
            if pixmap is None:
                logger.warning("Rendered SVG could not be displayed by QtSvg.")
                self.lbl_failed.setText("The rendered diagram could not be displayed.")
                self.stack.setCurrentIndex(self.PAGE_FAILED)
                return
            self.lbl_diagram.setPixmap(pixmap)
            self._shown_artifact = artifact
            self._shown_zoom = zoom
        self.stack.setCurrentIndex(self.PAGE_DIAGRAM)

    @staticmethod
    def _placeholder(text: str) -> QLabel:
        label = QLabel(text)
        label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        label.setWordWrap(True)
        label.setStyleSheet("color: gray;")
        return label
