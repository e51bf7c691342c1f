"""
Diagram Renderer Adapter (mermaid-cli)
======================================
This module translates diagram text into an SVG artifact by running the
external ``mmdc`` executable.

Why is this file needed?
------------------------
1. Isolation: The rendering engine is a Node.js tool. Everything about
   locating it, building its command line and interpreting its output is
   kept here so the controller only sees ``Rendered`` or ``Failed``.
2. Configuration: The engine configuration (theme + per-diagram layout) is
   process-wide state owned by the renderer and swapped in place when the
   theme changes.

Thread-safety:
    ``render()`` is called from background workers, possibly several at
    once. Each call works in its own temporary directory and receives an
    immutable ``RenderConfig`` snapshot, so calls never share mutable state.
"""
from __future__ import annotations

import json
import logging
import os
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from flowcraft import config
from flowcraft.model.state import Failed, RenderConfig, Rendered, Theme

logger = logging.getLogger(__name__)

# mermaid-cli sometimes exits 0 and draws an error banner instead of the diagram
ERROR_MARKERS: tuple[str, ...] = (
    "Syntax error in text",
    "Parse error on line",
    "Lexical error on line",
    "UnknownDiagramError",
    "No diagram type detected",
    "Expecting '",
)


def find_mmdc() -> Optional[str]:
    """Locate the mermaid-cli executable (env override first, then PATH)."""
    override = os.environ.get(config.MMDC_ENV_VAR)
    if override:
        return override
    return shutil.which("mmdc")


def summarize_error(stderr: str, stdout: str = "", limit: int = 3) -> str:
    """
    Reduce mermaid-cli output to a short, user-facing message.

    Node stack trace lines ("    at ...") are dropped; the first few remaining
    lines are kept.
    """
    full = ((stderr or "") + "\n" + (stdout or "")).strip()
    lines = [
        ln.strip() for ln in full.splitlines()
        if ln.strip() and not ln.strip().startswith("at ")
    ]
    if not lines:
        return "Mermaid render error"
    return "\n".join(lines[:limit])


class MermaidRenderer:
    """
    Stateless-per-call renderer with a replaceable engine configuration.
    """

    def __init__(
        self,
        executable: Optional[str] = None,
        timeout: float = config.RENDER_TIMEOUT_S,
        render_config: Optional[RenderConfig] = None,
    ) -> None:
        self._executable = executable
        self.timeout = timeout
        self._config: RenderConfig = render_config or RenderConfig()

    # ------------------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------------------

    @property
    def config(self) -> RenderConfig:
        """The current engine configuration snapshot."""
        return self._config

    @property
    def executable(self) -> Optional[str]:
        if self._executable is None:
            self._executable = find_mmdc()
        return self._executable

    def configure(self, theme: Theme) -> RenderConfig:
        """Swap the engine configuration for the given theme."""
        if theme != self._config.theme:
            self._config = RenderConfig(
                theme=theme,
                font_family=self._config.font_family,
                font_size=self._config.font_size,
                flowchart=dict(self._config.flowchart),
                sequence=dict(self._config.sequence),
                gantt=dict(self._config.gantt),
            )
            logger.info(f"Renderer reconfigured for theme '{theme}'.")
        return self._config

    # ------------------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------------------

    def build_command(self, input_path: Path, output_path: Path, config_path: Path, render_config: RenderConfig) -> List[str]:
        return [
            str(self.executable),
            "-i", str(input_path),
            "-o", str(output_path),
            "-c", str(config_path),
            "-b", render_config.background,
            "-q",
        ]

    def render(self, text: str, render_config: Optional[RenderConfig] = None) -> Rendered | Failed:
        """
        Render ``text`` to SVG.

        Expected failures (bad syntax, missing executable, timeout) come back
        as ``Failed``. Anything else is a fault and propagates to the caller.
        """
        cfg = render_config or self._config

        if not text.strip():
            return Failed("Nothing to render", source=text)

        if not self.executable:
            return Failed(
                "Mermaid CLI (mmdc) not found. Install @mermaid-js/mermaid-cli "
                f"or set {config.MMDC_ENV_VAR}.",
                source=text,
            )

        with tempfile.TemporaryDirectory(prefix="flowcraft_") as tmp_dir:
            workdir = Path(tmp_dir)
            input_path = workdir / "input.mmd"
            output_path = workdir / "output.svg"
            config_path = workdir / "config.json"

            input_path.write_text(text, encoding="utf-8")
            config_path.write_text(json.dumps(cfg.to_mermaid_config()), encoding="utf-8")

            cmd = self.build_command(input_path, output_path, config_path, cfg)
            logger.debug(f"Running: {' '.join(cmd)}")

            try:
                result = subprocess.run(
                    cmd,
                    capture_output=True,
                    text=True,
                    check=False,
                    cwd=str(workdir),
                    timeout=self.timeout,
                )
            except FileNotFoundError:
                return Failed(f"Mermaid CLI not found at '{self.executable}'.", source=text)
            except subprocess.TimeoutExpired as e:
                return Failed(f"Rendering timed out after {e.timeout:g}s.", source=text)

            combined = (result.stderr or "") + "\n" + (result.stdout or "")
            if result.returncode != 0 or self._has_error_marker(combined):
                message = summarize_error(result.stderr, result.stdout)
                logger.info(f"Render failed (exit {result.returncode}): {message.splitlines()[0]}")
                return Failed(message, source=text)

            if not output_path.exists():
                return Failed("Mermaid CLI finished but produced no SVG output.", source=text)

            svg = output_path.read_text(encoding="utf-8")

        if self._has_error_marker(svg):
            return Failed(self._svg_error_text(svg), source=text)

        return Rendered(svg=svg, source=text, theme=cfg.theme)

    @staticmethod
    def _has_error_marker(output: str) -> bool:
        return any(marker in output for marker in ERROR_MARKERS)

    @staticmethod
    def _svg_error_text(svg: str) -> str:
        texts: Sequence[str] = re.findall(r">([^<>]*(?:error|Error)[^<>]*)<", svg)
        return texts[0].strip() if texts else "Syntax error in text"
