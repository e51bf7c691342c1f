"""Tests for the mermaid-cli renderer adapter (subprocess patched)."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from flowcraft import config
from flowcraft.controller import renderer as renderer_module
from flowcraft.controller.renderer import MermaidRenderer, find_mmdc, summarize_error
from flowcraft.model.state import Failed, RenderConfig, Rendered, Theme

from helpers import SIMPLE_SVG

TEXT = "graph TD\n A-->B"


class FakeMmdc:
    """Stands in for subprocess.run; records the call and writes the output file."""

    def __init__(self, svg: str | None = SIMPLE_SVG, returncode: int = 0, stdout: str = "", stderr: str = ""):
        self.svg = svg
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.cmd: list[str] = []
        self.kwargs: dict = {}
        self.input_text = ""
        self.config: dict = {}

    def __call__(self, cmd, **kwargs):
        self.cmd = cmd
        self.kwargs = kwargs
        self.input_text = Path(cmd[cmd.index("-i") + 1]).read_text(encoding="utf-8")
        self.config = json.loads(Path(cmd[cmd.index("-c") + 1]).read_text(encoding="utf-8"))
        if self.svg is not None:
            Path(cmd[cmd.index("-o") + 1]).write_text(self.svg, encoding="utf-8")
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def mmdc():
    fake = FakeMmdc()
    with patch.object(renderer_module.subprocess, "run", fake):
        yield fake


class TestCommand:
    def test_successful_render(self, mmdc):
        outcome = MermaidRenderer(executable="/usr/bin/mmdc").render(TEXT)
        assert outcome == Rendered(svg=SIMPLE_SVG, source=TEXT, theme=Theme.LIGHT)
        assert mmdc.input_text == TEXT

    def test_command_line(self, mmdc):
        MermaidRenderer(executable="/usr/bin/mmdc").render(TEXT)
        cmd = mmdc.cmd
        assert cmd[0] == "/usr/bin/mmdc"
        assert cmd[cmd.index("-b") + 1] == "white"
        assert "-q" in cmd
        assert mmdc.kwargs["timeout"] == config.RENDER_TIMEOUT_S
        assert mmdc.kwargs["capture_output"] is True

    def test_config_file_contents(self, mmdc):
        MermaidRenderer(executable="mmdc").render(TEXT)
        assert mmdc.config["theme"] == "default"
        assert mmdc.config["flowchart"]["htmlLabels"] is False
        assert mmdc.config["sequence"]["actorMargin"] == 50
        assert mmdc.config["gantt"]["barHeight"] == 20

    def test_explicit_config_snapshot_wins(self, mmdc):
        r = MermaidRenderer(executable="mmdc")
        outcome = r.render(TEXT, RenderConfig(theme=Theme.DARK))
        assert mmdc.config["theme"] == "dark"
        assert mmdc.cmd[mmdc.cmd.index("-b") + 1] == "#1e1e1e"
        assert outcome.theme is Theme.DARK
        assert r.config.theme is Theme.LIGHT

    def test_temporary_files_are_removed(self, mmdc):
        MermaidRenderer(executable="mmdc").render(TEXT)
        assert not Path(mmdc.cmd[mmdc.cmd.index("-i") + 1]).exists()


class TestFailures:
    def test_blank_text(self, mmdc):
        outcome = MermaidRenderer(executable="mmdc").render("  \n")
        assert isinstance(outcome, Failed)
        assert mmdc.cmd == []

    def test_nonzero_exit(self):
        stderr = (
            "Error: Parse error on line 2:\n"
            "...A-->\n"
            "    at Object.parseError (/node_modules/mermaid.js:1:1)\n"
            "    at Parser.parse (/node_modules/mermaid.js:2:2)\n"
        )
        fake = FakeMmdc(svg=None, returncode=1, stderr=stderr)
        with patch.object(renderer_module.subprocess, "run", fake):
            outcome = MermaidRenderer(executable="mmdc").render(TEXT)
        assert isinstance(outcome, Failed)
        assert outcome.message == "Error: Parse error on line 2:\n...A-->"
        assert outcome.source == TEXT

    def test_error_marker_with_zero_exit(self):
        fake = FakeMmdc(returncode=0, stdout="Syntax error in text\nmermaid version 10.9.0")
        with patch.object(renderer_module.subprocess, "run", fake):
            outcome = MermaidRenderer(executable="mmdc").render(TEXT)
        assert isinstance(outcome, Failed)
        assert "Syntax error in text" in outcome.message

    def test_error_banner_inside_svg(self):
        svg = '<svg xmlns="http://www.w3.org/2000/svg"><text>Syntax error in text</text></svg>'
        fake = FakeMmdc(svg=svg)
        with patch.object(renderer_module.subprocess, "run", fake):
            outcome = MermaidRenderer(executable="mmdc").render(TEXT)
        assert outcome == Failed("Syntax error in text", source=TEXT)

    def test_missing_output_file(self):
        fake = FakeMmdc(svg=None)
        with patch.object(renderer_module.subprocess, "run", fake):
            outcome = MermaidRenderer(executable="mmdc").render(TEXT)
        assert isinstance(outcome, Failed)
        assert "no SVG output" in outcome.message

    def test_executable_vanished(self):
        def gone(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        with patch.object(renderer_module.subprocess, "run", gone):
            outcome = MermaidRenderer(executable="/missing/mmdc").render(TEXT)
        assert outcome == Failed("Mermaid CLI not found at '/missing/mmdc'.", source=TEXT)

    def test_timeout(self):
        def slow(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        with patch.object(renderer_module.subprocess, "run", slow):
            outcome = MermaidRenderer(executable="mmdc", timeout=2.5).render(TEXT)
        assert outcome == Failed("Rendering timed out after 2.5s.", source=TEXT)

    def test_not_installed(self, monkeypatch):
        monkeypatch.delenv(config.MMDC_ENV_VAR, raising=False)
        monkeypatch.setattr(renderer_module.shutil, "which", lambda name: None)
        outcome = MermaidRenderer().render(TEXT)
        assert isinstance(outcome, Failed)
        assert "not found" in outcome.message

    def test_unexpected_errors_propagate(self):
        def broken(cmd, **kwargs):
            raise PermissionError("denied")

        with patch.object(renderer_module.subprocess, "run", broken):
            with pytest.raises(PermissionError):
                MermaidRenderer(executable="mmdc").render(TEXT)


class TestConfiguration:
    def test_configure_replaces_snapshot(self):
        r = MermaidRenderer(executable="mmdc")
        before = r.config
        after = r.configure(Theme.DARK)
        assert after is r.config
        assert after.theme is Theme.DARK
        assert before.theme is Theme.LIGHT
        assert after.flowchart == before.flowchart

    def test_configure_same_theme_keeps_snapshot(self):
        r = MermaidRenderer(executable="mmdc")
        before = r.config
        assert r.configure(Theme.LIGHT) is before

    def test_find_mmdc_prefers_env(self, monkeypatch):
        monkeypatch.setenv(config.MMDC_ENV_VAR, "/opt/mmdc")
        assert find_mmdc() == "/opt/mmdc"

    def test_find_mmdc_uses_path(self, monkeypatch):
        monkeypatch.delenv(config.MMDC_ENV_VAR, raising=False)
        monkeypatch.setattr(renderer_module.shutil, "which", lambda name: f"/usr/local/bin/{name}")
        assert find_mmdc() == "/usr/local/bin/mmdc"


def test_summarize_error_defaults():
    assert summarize_error("", "") == "Mermaid render error"
    assert summarize_error("a\nb\nc\nd") == "a\nb\nc"
