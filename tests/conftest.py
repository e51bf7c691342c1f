"""Shared fixtures: headless Qt, isolated settings, a recording render dispatcher."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtCore import QSettings
from PySide6.QtWidgets import QApplication

from flowcraft.controller.renderer import MermaidRenderer
from flowcraft.controller.sync import SyncController

from helpers import FakeDispatcher


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def settings(tmp_path):
    """QSettings backed by a throwaway INI file."""
    s = QSettings(str(tmp_path / "settings.ini"), QSettings.Format.IniFormat)
    yield s
    s.sync()


@pytest.fixture
def dispatcher(qapp):
    return FakeDispatcher()


@pytest.fixture
def renderer():
    return MermaidRenderer(executable="mmdc")


@pytest.fixture
def controller(qapp, renderer, dispatcher):
    """Controller whose debounce never elapses on its own; tests call ``debounce.fire()``."""
    ctrl = SyncController(renderer, dispatcher=dispatcher, debounce_ms=60_000)
    yield ctrl
    ctrl.debounce.cancel()
