"""
Configuration
=============
This module serves as the central registry for global constants.

Why is this file needed?
------------------------
1. Abstraction: It keeps timing constants (debounce, timeouts), zoom bounds
   and file dialog filters in one place instead of scattering them across
   the controller and the widgets.
2. Environment: Values that users may need to tune without editing code
   (render timeout) are read from environment variables here.

Exports:
    RENDER_TIMEOUT_S (float): Upper bound for one mermaid-cli run.
    RENDER_DEBOUNCE_MS (int): Quiet period before a preview render.
"""
import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"WARNING: Ignoring invalid value for {name}: {raw!r}")
        return default


# Synchronization pipeline
RENDER_DEBOUNCE_MS: int = 500

# Preview zoom
ZOOM_MIN: float = 0.5
ZOOM_MAX: float = 3.0
ZOOM_STEP: float = 0.2
ZOOM_DEFAULT: float = 1.0

# Rendering engine (mermaid-cli)
MMDC_ENV_VAR: str = "FLOWCRAFT_MMDC"
RENDER_TIMEOUT_S: float = _env_float("FLOWCRAFT_RENDER_TIMEOUT", 30.0)

# Export
PNG_EXPORT_SCALE: float = 2.0

# Collaborators
RECENT_FILES_LIMIT: int = 10
DIAGRAM_FILE_FILTER: str = "Mermaid Files (*.mmd *.mermaid *.txt);;All Files (*)"
DIAGRAM_DEFAULT_SUFFIX: str = ".mmd"

# UI
NOTIFICATION_TIMEOUT_MS: int = 4000

DEFAULT_DOCUMENT: str = (
    "flowchart TD\n"
    "    A[Start] --> B{Decision?}\n"
    "    B -->|Yes| C[Process 1]\n"
    "    B -->|No| D[Process 2]\n"
    "    C --> E[End]\n"
    "    D --> E"
)
