"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Instantiates the collaborators (renderer, document I/O, templates, recent files).
2. Instantiates the Synchronization Controller around the renderer.
3. Instantiates the Main Window (View) and passes everything in.
4. Prevents circular import errors by being the orchestrator.
"""
import logging
import os
import sys

from flowcraft.application import create_app
from flowcraft.controller.renderer import MermaidRenderer
from flowcraft.controller.sync import SyncController
from flowcraft.logging_config import level_from_name, setup_logging
from flowcraft.model.io import DocumentIO
from flowcraft.model.recent import RecentFilesStore
from flowcraft.model.templates import TemplateCatalog
from flowcraft.view.main_window import MainWindow

logger = logging.getLogger(__name__)


def main() -> None:
    # 1. Setup Logging (Console + Optional File)
    setup_logging(
        level=level_from_name(os.environ.get("FLOWCRAFT_LOG_LEVEL")),
        log_file=os.environ.get("FLOWCRAFT_LOG_FILE") or None,
    )

    # 2. Create the Qt Application
    app = create_app()

    # 3. Initialize the Model & Controller
    renderer = MermaidRenderer()
    if renderer.executable is None:
        logger.warning("mermaid-cli (mmdc) not found; previews will show an error until it is installed.")
    controller = SyncController(renderer)
    io = DocumentIO(recent=RecentFilesStore())
    catalog = TemplateCatalog()

    # 4. Initialize the Main Window, passing the model
    window = MainWindow(controller, io, catalog)
    window.show()

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
