"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar, the Tab Bar and the
stacked tab pages (Editor, Preview, Templates, Recent).

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects global actions (File -> Save, View -> Toggle theme)
   to the document I/O collaborators and the synchronization controller.
3. Lifecycle: It owns the close sequence (save prompt, render workers,
   editor environment teardown).
"""
import logging
import os
from typing import Optional

from PySide6.QtCore import QSettings
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog, QMainWindow, QMessageBox, QStackedWidget, QTabBar, QVBoxLayout, QWidget,
)

from flowcraft import config
from flowcraft.application import VISIBLE_APP_NAME, apply_theme
from flowcraft.controller.sync import SyncController
from flowcraft.model.io import DocumentIO, ExportError, FileOperationError
from flowcraft.model.state import Template, Theme
from flowcraft.model.templates import TemplateCatalog
from flowcraft.view.tabs.tab_editor import EditorTab
from flowcraft.view.tabs.tab_recent import RecentFilesTab
from flowcraft.view.tabs.tab_templates import TemplatesTab
from flowcraft.view.widgets.editor import DiagramEditor
from flowcraft.view.widgets.highlighter import EditorEnvironment
from flowcraft.view.widgets.preview import PreviewPanel

logger = logging.getLogger(__name__)

THEME_SETTINGS_KEY = "ui/theme"

TAB_EDITOR = 0
TAB_PREVIEW = 1
TAB_TEMPLATES = 2
TAB_RECENT = 3


class MainWindow(QMainWindow):
    def __init__(
        self,
        controller: SyncController,
        io: DocumentIO,
        catalog: TemplateCatalog,
        settings: Optional[QSettings] = None,
    ) -> None:
        super().__init__()
        self.controller = controller
        self.io = io
        self.catalog = catalog
        self.settings = settings if settings is not None else QSettings()

        if self.io.path_provider is None:
            self.io.path_provider = self.ask_path

        self.file_path: Optional[str] = None
        self._saved_text: str = ""
        self.is_modified: bool = False

        self.resize(1400, 900)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)

        main_layout = QVBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # --- 1. TOP TAB BAR ---
        self.tab_bar = QTabBar()
        self.tab_bar.setDrawBase(True)
        self.tab_bar.setShape(QTabBar.Shape.RoundedNorth)
        self.tab_bar.setExpanding(True)

        self.tab_bar.addTab("Editor")
        self.tab_bar.addTab("Preview")
        self.tab_bar.addTab("Templates")
        self.tab_bar.addTab("Recent")

        self.tab_bar.setStyleSheet("""
                    QTabBar::tab { height: 35px; min-width: 100px; }
                    QTabBar::tab:selected { font-weight: bold; }
                """)
        main_layout.addWidget(self.tab_bar)

        # --- 2. STACKED PAGES ---
        self.pages = QStackedWidget()

        self.editor = DiagramEditor()
        self.editor_tab = EditorTab(self.controller, self.editor)
        self.preview_panel = PreviewPanel(self.controller)
        self.templates_tab = TemplatesTab(self.catalog)
        self.recent_tab = RecentFilesTab(self.io.recent)

        # Order must match Tab Bar order
        self.pages.addWidget(self.editor_tab)  # Index 0
        self.pages.addWidget(self.preview_panel)  # Index 1
        self.pages.addWidget(self.templates_tab)  # Index 2
        self.pages.addWidget(self.recent_tab)  # Index 3
        main_layout.addWidget(self.pages, stretch=1)

        # --- SIGNAL CONNECTIONS ---
        self.tab_bar.currentChanged.connect(self.pages.setCurrentIndex)

        # Editor -> Controller (every mutation, typed or programmatic)
        self.editor.changed.connect(self.controller.on_text_changed)
        self.editor.changed.connect(self.on_document_edited)

        self.editor_tab.save_requested.connect(self.on_file_save)
        self.editor_tab.open_requested.connect(lambda: self.on_file_open())
        self.editor_tab.export_requested.connect(self.on_export)
        self.preview_panel.export_requested.connect(self.on_export)
        self.templates_tab.template_selected.connect(self.on_template_selected)
        self.recent_tab.open_requested.connect(self.on_file_open)
        self.controller.theme_changed.connect(self.on_theme_changed)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        # --- INITIAL STATE ---
        saved_theme = self.settings.value(THEME_SETTINGS_KEY, Theme.LIGHT.value, type=str)
        try:
            self.controller.set_theme(Theme(saved_theme))
        except ValueError:
            logger.warning(f"Ignoring unknown saved theme: {saved_theme!r}")
        self._apply_theme(self.controller.theme)

        self.editor.set_value(config.DEFAULT_DOCUMENT)
        self._saved_text = config.DEFAULT_DOCUMENT
        self.set_modified(False)
        self.update_window_title()

    def _create_actions(self) -> None:
        # File Actions
        self.act_new = QAction("New", self)
        self.act_new.setShortcut(QKeySequence.StandardKey.New)
        self.act_new.triggered.connect(self.on_file_new)

        self.act_open = QAction("Open...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(lambda: self.on_file_open())

        self.act_save = QAction("Save", self)
        self.act_save.setShortcut("Ctrl+S")
        self.act_save.triggered.connect(self.on_file_save)

        self.act_save_as = QAction("Save As...", self)
        self.act_save_as.setShortcut("Ctrl+Shift+S")
        self.act_save_as.triggered.connect(self.on_file_save_as)

        self.export_actions: dict[str, QAction] = {}
        for fmt in ("png", "svg", "pdf"):
            act = QAction(f"Export {fmt.upper()}...", self)
            act.triggered.connect(lambda _checked=False, f=fmt: self.on_export(f))
            self.export_actions[fmt] = act

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

        # View Actions
        self.act_toggle_theme = QAction("Toggle Dark Theme", self)
        self.act_toggle_theme.setCheckable(True)
        self.act_toggle_theme.setShortcut("Ctrl+T")
        self.act_toggle_theme.triggered.connect(self.on_toggle_theme)

        self.act_refresh = QAction("Refresh Preview", self)
        self.act_refresh.setShortcut("F5")
        self.act_refresh.triggered.connect(self.controller.force_refresh)

        self.act_zoom_in = QAction("Zoom In", self)
        self.act_zoom_in.setShortcut("Ctrl+=")
        self.act_zoom_in.triggered.connect(self.controller.zoom_in)

        self.act_zoom_out = QAction("Zoom Out", self)
        self.act_zoom_out.setShortcut("Ctrl+-")
        self.act_zoom_out.triggered.connect(self.controller.zoom_out)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        file_menu.addAction(self.act_new)
        file_menu.addSeparator()
        file_menu.addAction(self.act_open)
        file_menu.addSeparator()
        file_menu.addAction(self.act_save)
        file_menu.addAction(self.act_save_as)
        file_menu.addSeparator()
        export_menu = file_menu.addMenu("Export")
        for act in self.export_actions.values():
            export_menu.addAction(act)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

        view_menu = menu_bar.addMenu("&View")
        view_menu.addAction(self.act_toggle_theme)
        view_menu.addSeparator()
        view_menu.addAction(self.act_refresh)
        view_menu.addAction(self.act_zoom_in)
        view_menu.addAction(self.act_zoom_out)

    # --- HELPER METHODS ---
    def update_window_title(self) -> None:
        """Updates the window title based on filename and dirty state."""
        filename = os.path.basename(self.file_path) if self.file_path else "Untitled"
        title = f"{VISIBLE_APP_NAME} - [{filename}"
        if self.is_modified:
            title += "*"
        title += "]"
        self.setWindowTitle(title)

    def set_modified(self, modified: bool) -> None:
        """Sets the dirty flag and updates title if changed."""
        if self.is_modified != modified:
            self.is_modified = modified
            self.update_window_title()

    def notify(self, message: str) -> None:
        """Transient status bar notification."""
        logger.info(message)
        self.statusBar().showMessage(message, config.NOTIFICATION_TIMEOUT_MS)

    def ask_path(self, mode: str, file_filter: str) -> Optional[str]:
        """File dialog used by DocumentIO when no path is given."""
        start_dir = os.path.dirname(self.file_path) if self.file_path else ""
        if mode == "open":
            fname, _ = QFileDialog.getOpenFileName(self, "Open Diagram", start_dir, file_filter)
        elif mode == "save":
            fname, _ = QFileDialog.getSaveFileName(self, "Save Diagram", start_dir, file_filter)
        else:
            fname, _ = QFileDialog.getSaveFileName(self, "Export Diagram", start_dir, file_filter)
        return fname or None

    def _set_document(self, content: str, path: Optional[str]) -> None:
        self.file_path = path
        self._saved_text = content
        self.editor.set_value(content)
        self.editor_tab.set_file_path(path)
        self.set_modified(False)
        self.update_window_title()

    def _apply_theme(self, theme: Theme) -> None:
        apply_theme(theme)
        self.editor.set_theme(theme)
        self.act_toggle_theme.setChecked(theme is Theme.DARK)

    # --- SLOTS ---

    def on_document_edited(self, text: str) -> None:
        self.set_modified(text != self._saved_text)

    def on_theme_changed(self, theme_name: str) -> None:
        theme = Theme(theme_name)
        self._apply_theme(theme)
        self.settings.setValue(THEME_SETTINGS_KEY, theme.value)

    def on_toggle_theme(self) -> None:
        self.controller.set_theme(self.controller.theme.toggled())

    def on_template_selected(self, template: Template) -> None:
        self.editor.set_value(template.content)
        self.tab_bar.setCurrentIndex(TAB_EDITOR)
        self.notify(f"Template applied: {template.name}")

    def on_export(self, fmt: str) -> None:
        try:
            path = self.io.export_diagram(self.controller.current_artifact(), fmt)
        except ExportError as e:
            self.notify(f"Export failed: {e}")
            return
        self.notify(f"Diagram exported to: {path}")

    # --- FILE SLOTS ---

    def on_file_new(self) -> None:
        if not self.maybe_save():
            return
        self._set_document("", None)
        self.tab_bar.setCurrentIndex(TAB_EDITOR)

    def on_file_open(self, path: Optional[str] = None) -> None:
        if not self.maybe_save():
            return
        try:
            loaded = self.io.load_file(path)
        except FileOperationError as e:
            self.notify(f"Could not open file: {e}")
            return

        self._set_document(loaded.content, loaded.path)
        self.recent_tab.refresh()
        self.tab_bar.setCurrentIndex(TAB_EDITOR)
        self.notify(f"File loaded: {loaded.path}")

    def on_file_save(self) -> bool:
        return self._save(self.file_path)

    def on_file_save_as(self) -> bool:
        return self._save(None)

    def _save(self, path: Optional[str]) -> bool:
        content = self.editor.value()
        try:
            saved_path = self.io.save_file(content, path)
        except FileOperationError as e:
            self.notify(f"Could not save file: {e}")
            return False

        self.file_path = saved_path
        self._saved_text = content
        self.editor_tab.set_file_path(saved_path)
        self.set_modified(False)
        self.update_window_title()
        self.recent_tab.refresh()
        self.notify(f"File saved: {saved_path}")
        return True

    def maybe_save(self) -> bool:
        """Ask to save unsaved changes. False means the user cancelled."""
        if not self.is_modified:
            return True

        reply = QMessageBox.question(
            self,
            "Save changes?",
            "The diagram has been modified. Do you want to save your changes?",
            QMessageBox.StandardButton.Save | QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
        )
        if reply == QMessageBox.StandardButton.Save:
            return self.on_file_save()
        return reply == QMessageBox.StandardButton.Discard

    def closeEvent(self, event, /) -> None:
        """Handle window close event to prompt for saving if modified."""
        if not self.maybe_save():
            event.ignore()  # Don't close window
            return

        self.shutdown()
        event.accept()

    def shutdown(self) -> None:
        """Stop render workers and release the editor environment."""
        self.controller.shutdown()
        EditorEnvironment.teardown()
