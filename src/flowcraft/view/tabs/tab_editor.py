"""
Editor Tab
==========
Toolbar, validation feedback and the editor | preview splitter.

File and export actions are only requested here (signals); the main window
performs them and reports the result.
"""
import os
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QHBoxLayout, QLabel, QListWidget, QListWidgetItem, QPushButton, QSplitter, QVBoxLayout, QWidget,
)
from PySide6.QtGui import QBrush, QColor

from flowcraft.controller.sync import SyncController
from flowcraft.controller.validator import markers_from_validation
from flowcraft.model.state import ValidationResult
from flowcraft.view.widgets.editor import DiagramEditor
from flowcraft.view.widgets.preview import PreviewPanel


class EditorTab(QWidget):
    save_requested = Signal()
    open_requested = Signal()
    export_requested = Signal(str)

    def __init__(self, controller: SyncController, editor: DiagramEditor) -> None:
        super().__init__()
        self.controller = controller
        self.editor = editor

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        # --- Toolbar ---
        toolbar = QHBoxLayout()

        self.btn_save = QPushButton("Save")
        self.btn_save.clicked.connect(self.save_requested.emit)
        toolbar.addWidget(self.btn_save)

        self.btn_open = QPushButton("Open")
        self.btn_open.clicked.connect(self.open_requested.emit)
        toolbar.addWidget(self.btn_open)

        self.export_buttons: dict[str, QPushButton] = {}
        for fmt in ("png", "svg", "pdf"):
            btn = QPushButton(fmt.upper())
            btn.setToolTip(f"Export the diagram as {fmt.upper()}")
            btn.clicked.connect(lambda _checked=False, f=fmt: self.export_requested.emit(f))
            toolbar.addWidget(btn)
            self.export_buttons[fmt] = btn

        self.btn_validate = QPushButton("Validate")
        self.btn_validate.clicked.connect(self.controller.revalidate)
        toolbar.addWidget(self.btn_validate)

        toolbar.addStretch()

        self.lbl_file = QLabel()
        self.lbl_file.setStyleSheet("color: gray;")
        toolbar.addWidget(self.lbl_file)

        self.lbl_validation = QLabel()
        toolbar.addWidget(self.lbl_validation)

        layout.addLayout(toolbar)

        # --- Messages ---
        self.list_messages = QListWidget()
        self.list_messages.setMaximumHeight(90)
        self.list_messages.setVisible(False)
        layout.addWidget(self.list_messages)

        # --- Editor | Preview ---
        self.preview = PreviewPanel(controller)
        self.preview.export_requested.connect(self.export_requested.emit)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self.editor)
        splitter.addWidget(self.preview)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 1)
        layout.addWidget(splitter, stretch=1)

        # --- Wiring ---
        self.controller.validation_changed.connect(self.on_validation_changed)
        self.set_file_path(None)
        self.on_validation_changed(self.controller.current_validation())

    # --- SLOTS ---

    def on_validation_changed(self, result: Optional[ValidationResult]) -> None:
        self.editor.set_markers(markers_from_validation(result))

        valid = result is not None and result.is_valid
        for btn in self.export_buttons.values():
            btn.setEnabled(valid)

        self.list_messages.clear()
        if result is None:
            self.lbl_validation.setText("")
            self.list_messages.setVisible(False)
            return

        if result.is_valid:
            self.lbl_validation.setText("✔ Valid")
            self.lbl_validation.setStyleSheet("color: #2e7d32; font-weight: bold;")
        else:
            self.lbl_validation.setText(f"✖ {len(result.errors)} error(s)")
            self.lbl_validation.setStyleSheet("color: #c62828; font-weight: bold;")

        for message in result.errors:
            item = QListWidgetItem(f"Error: {message}")
            item.setForeground(QBrush(QColor("#c62828")))
            self.list_messages.addItem(item)
        for message in result.warnings:
            item = QListWidgetItem(f"Warning: {message}")
            item.setForeground(QBrush(QColor("#ef6c00")))
            self.list_messages.addItem(item)
        self.list_messages.setVisible(self.list_messages.count() > 0)

    def set_file_path(self, path: Optional[str]) -> None:
        if path:
            self.lbl_file.setText(os.path.basename(path))
            self.lbl_file.setToolTip(path)
        else:
            self.lbl_file.setText("Untitled")
            self.lbl_file.setToolTip("")
