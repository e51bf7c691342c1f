"""
Recent Files Tab
================
Most-recent-first list of opened and saved diagrams.
"""
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QHBoxLayout, QLabel, QPushButton, QTreeWidget, QTreeWidgetItem, QVBoxLayout, QWidget,
)

from flowcraft.model.recent import RecentFilesStore


class RecentFilesTab(QWidget):
    # Emitted with the absolute path to open
    open_requested = Signal(str)

    def __init__(self, store: RecentFilesStore) -> None:
        super().__init__()
        self.store = store

        layout = QVBoxLayout(self)

        self.tree = QTreeWidget()
        self.tree.setColumnCount(3)
        self.tree.setHeaderLabels(["Name", "Path", "Opened"])
        self.tree.setRootIsDecorated(False)
        self.tree.itemDoubleClicked.connect(lambda item, _col: self._emit_open(item))
        self.tree.currentItemChanged.connect(self._update_buttons)
        layout.addWidget(self.tree, stretch=1)

        self.lbl_empty = QLabel("No recent files.")
        self.lbl_empty.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.lbl_empty.setStyleSheet("color: gray;")
        layout.addWidget(self.lbl_empty)

        buttons = QHBoxLayout()
        buttons.addStretch()
        self.btn_open = QPushButton("Open")
        self.btn_open.clicked.connect(lambda: self._emit_open(self.tree.currentItem()))
        buttons.addWidget(self.btn_open)

        self.btn_clear = QPushButton("Clear All")
        self.btn_clear.clicked.connect(self.on_clear_clicked)
        buttons.addWidget(self.btn_clear)
        layout.addLayout(buttons)

        self.refresh()

    def refresh(self) -> None:
        self.tree.clear()
        entries = self.store.get_recent_files()
        for entry in entries:
            opened = entry.last_opened.astimezone().strftime("%Y-%m-%d %H:%M")
            item = QTreeWidgetItem([entry.name, entry.path, opened])
            item.setData(0, Qt.ItemDataRole.UserRole, entry.path)
            self.tree.addTopLevelItem(item)

        self.tree.setVisible(bool(entries))
        self.lbl_empty.setVisible(not entries)
        self.btn_clear.setEnabled(bool(entries))
        self._update_buttons()

    @property
    def count(self) -> int:
        return self.tree.topLevelItemCount()

    # --- SLOTS ---

    def on_clear_clicked(self) -> None:
        self.store.clear_recent_files()
        self.refresh()

    def _emit_open(self, item: Optional[QTreeWidgetItem]) -> None:
        if item is not None:
            self.open_requested.emit(item.data(0, Qt.ItemDataRole.UserRole))

    def _update_buttons(self, *_args) -> None:
        self.btn_open.setEnabled(self.tree.currentItem() is not None)
