"""
Templates Tab
=============
Browse the starter template catalog and apply one to the editor.
"""
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QComboBox, QHBoxLayout, QLabel, QListWidget, QListWidgetItem, QPlainTextEdit, QPushButton, QSplitter,
    QVBoxLayout, QWidget,
)

from flowcraft.model.state import Template
from flowcraft.model.templates import ALL_CATEGORIES, TemplateCatalog


class TemplatesTab(QWidget):
    # Emitted with the chosen template
    template_selected = Signal(object)

    def __init__(self, catalog: TemplateCatalog) -> None:
        super().__init__()
        self.catalog = catalog

        layout = QVBoxLayout(self)

        # --- Filter ---
        row = QHBoxLayout()
        row.addWidget(QLabel("Category:"))
        self.combo_category = QComboBox()
        self.combo_category.addItem(ALL_CATEGORIES)
        self.combo_category.addItems(self.catalog.categories())
        self.combo_category.currentTextChanged.connect(self.on_category_changed)
        row.addWidget(self.combo_category)
        row.addStretch()
        layout.addLayout(row)

        # --- List | Content preview ---
        splitter = QSplitter(Qt.Orientation.Horizontal)

        self.list_templates = QListWidget()
        self.list_templates.currentItemChanged.connect(self.on_current_changed)
        self.list_templates.itemDoubleClicked.connect(self.on_item_activated)
        splitter.addWidget(self.list_templates)

        self.txt_content = QPlainTextEdit()
        self.txt_content.setReadOnly(True)
        splitter.addWidget(self.txt_content)
        layout.addWidget(splitter, stretch=1)

        # --- Actions ---
        self.btn_apply = QPushButton("Use Template")
        self.btn_apply.setEnabled(False)
        self.btn_apply.clicked.connect(self.on_apply_clicked)
        layout.addWidget(self.btn_apply, alignment=Qt.AlignmentFlag.AlignRight)

        self.populate(ALL_CATEGORIES)

    def populate(self, category: str) -> None:
        self.list_templates.clear()
        for template in self.catalog.by_category(category):
            item = QListWidgetItem(f"{template.name}\n{template.description}")
            item.setData(Qt.ItemDataRole.UserRole, template)
            item.setToolTip(template.category)
            self.list_templates.addItem(item)
        self.txt_content.clear()
        self.btn_apply.setEnabled(False)

    def selected_template(self) -> Optional[Template]:
        item = self.list_templates.currentItem()
        return item.data(Qt.ItemDataRole.UserRole) if item else None

    # --- SLOTS ---

    def on_category_changed(self, category: str) -> None:
        self.populate(category)

    def on_current_changed(self, current: Optional[QListWidgetItem], _previous=None) -> None:
        template = current.data(Qt.ItemDataRole.UserRole) if current else None
        self.txt_content.setPlainText(template.content if template else "")
        self.btn_apply.setEnabled(template is not None)

    def on_item_activated(self, item: QListWidgetItem) -> None:
        self.template_selected.emit(item.data(Qt.ItemDataRole.UserRole))

    def on_apply_clicked(self) -> None:
        template = self.selected_template()
        if template is not None:
            self.template_selected.emit(template)
