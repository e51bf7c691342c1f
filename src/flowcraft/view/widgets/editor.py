"""
Diagram Editor Widget
=====================
A plain text editor for diagram descriptions.

Contract toward the controller:
    * ``changed(str)`` is emitted on every content mutation.
    * ``set_value(text)`` replaces the whole content (file load, template)
      without a signal per internal edit, then emits ``changed`` once.
    * ``set_markers(markers)`` underlines validator findings.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from PySide6.QtCore import QEvent, Signal
from PySide6.QtGui import QColor, QFontDatabase, QHelpEvent, QPalette, QTextCharFormat, QTextCursor, QTextFormat
from PySide6.QtWidgets import QPlainTextEdit, QTextEdit, QToolTip, QWidget

from flowcraft.model.state import Marker, MarkerSeverity, Theme
from flowcraft.view.widgets.highlighter import EditorEnvironment, MermaidHighlighter

logger = logging.getLogger(__name__)

MARKER_COLORS: Dict[MarkerSeverity, str] = {
    MarkerSeverity.ERROR: "#e51400",
    MarkerSeverity.WARNING: "#d18616",
}


class DiagramEditor(QPlainTextEdit):
    changed = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None, theme: Theme = Theme.LIGHT) -> None:
        super().__init__(parent)
        EditorEnvironment.initialize()

        self._theme = theme
        self._markers: List[Marker] = []
        self._marker_selections: List[QTextEdit.ExtraSelection] = []

        font = QFontDatabase.systemFont(QFontDatabase.SystemFont.FixedFont)
        font.setPointSize(11)
        self.setFont(font)
        self.setTabStopDistance(4 * self.fontMetrics().horizontalAdvance(" "))
        self.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        self.setPlaceholderText("Type a Mermaid diagram here...")

        self.highlighter = MermaidHighlighter(self.document(), theme)
        self._apply_palette()

        self.textChanged.connect(self._on_text_changed)
        self.cursorPositionChanged.connect(self._refresh_selections)

    # ------------------------------------------------------------------------------
    # Value
    # ------------------------------------------------------------------------------

    def value(self) -> str:
        return self.toPlainText()

    def set_value(self, text: str) -> None:
        if text == self.toPlainText():
            return
        self.blockSignals(True)
        try:
            self.setPlainText(text)
        finally:
            self.blockSignals(False)
        self.moveCursor(QTextCursor.MoveOperation.Start)
        self.changed.emit(text)

    def _on_text_changed(self) -> None:
        self.changed.emit(self.toPlainText())

    # ------------------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------------------

    @property
    def markers(self) -> List[Marker]:
        return list(self._markers)

    def set_markers(self, markers: Sequence[Marker]) -> None:
        self._markers = list(markers)
        selections: List[QTextEdit.ExtraSelection] = []
        for marker in self._markers:
            block = self.document().findBlockByNumber(marker.line - 1)
            if not block.isValid():
                continue
            sel = QTextEdit.ExtraSelection()
            cursor = QTextCursor(block)
            cursor.movePosition(QTextCursor.MoveOperation.EndOfBlock, QTextCursor.MoveMode.KeepAnchor)
            sel.cursor = cursor
            sel.format.setUnderlineStyle(QTextCharFormat.UnderlineStyle.WaveUnderline)
            sel.format.setUnderlineColor(QColor(MARKER_COLORS[marker.severity]))
            sel.format.setToolTip(marker.message)
            selections.append(sel)
        self._marker_selections = selections
        self._refresh_selections()

    def markers_at_line(self, line: int) -> List[Marker]:
        return [m for m in self._markers if m.line == line]

    def _refresh_selections(self) -> None:
        selections = list(self._marker_selections)
        if not self.isReadOnly():
            current = QTextEdit.ExtraSelection()
            line_color = QColor(EditorEnvironment.palette(self._theme)["background"])
            line_color = line_color.lighter(130) if line_color.lightness() < 128 else line_color.darker(106)
            current.format.setBackground(line_color)
            current.format.setProperty(QTextFormat.Property.FullWidthSelection, True)
            current.cursor = self.textCursor()
            current.cursor.clearSelection()
            selections.insert(0, current)
        self.setExtraSelections(selections)

    def viewportEvent(self, event: QEvent) -> bool:
        if event.type() == QEvent.Type.ToolTip and isinstance(event, QHelpEvent):
            cursor = self.cursorForPosition(event.pos())
            found = self.markers_at_line(cursor.blockNumber() + 1)
            if found:
                QToolTip.showText(event.globalPos(), "\n".join(m.message for m in found), self)
            else:
                QToolTip.hideText()
                event.ignore()
            return True
        return super().viewportEvent(event)

    # ------------------------------------------------------------------------------
    # Theme
    # ------------------------------------------------------------------------------

    @property
    def theme(self) -> Theme:
        return self._theme

    def set_theme(self, theme: Theme) -> None:
        if theme == self._theme:
            return
        self._theme = theme
        self.highlighter.set_theme(theme)
        self._apply_palette()
        self._refresh_selections()

    def _apply_palette(self) -> None:
        colors = EditorEnvironment.palette(self._theme)
        palette = self.palette()
        palette.setColor(QPalette.ColorRole.Base, QColor(colors["background"]))
        palette.setColor(QPalette.ColorRole.Text, QColor(colors["foreground"]))
        self.setPalette(palette)
