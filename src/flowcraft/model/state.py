"""
Document State (Data Model)
===========================
This module defines the value types that flow through the editing pipeline.

Why is this file needed?
------------------------
1. Shared vocabulary: The controller, the background workers and the views all
   exchange these objects, so they live in one dependency-free place.
2. Immutability: Validation verdicts and render outcomes are replaced
   wholesale, never patched. Frozen dataclasses make that explicit.

Classes:
    ValidationResult: Verdict of the syntax validator.
    Rendered / Failed / Empty: The RenderOutcome variants.
    RenderConfig: Renderer engine configuration snapshot.
    RenderRequest: One session-tagged render attempt.
    Template, RecentFileEntry: Collaborator records.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Dict, Union


class Theme(StrEnum):
    LIGHT = "light"
    DARK = "dark"

    def toggled(self) -> Theme:
        return Theme.LIGHT if self is Theme.DARK else Theme.DARK


class PreviewState(StrEnum):
    """What the preview pane should show right now."""
    EMPTY = "empty"
    INVALID = "invalid"
    PENDING = "pending"
    RENDERED = "rendered"
    FAILED = "failed"


class ExportFormat(StrEnum):
    PNG = "png"
    SVG = "svg"
    PDF = "pdf"


class MarkerSeverity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


# ------------------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @classmethod
    def build(cls, errors: list[str], warnings: list[str]) -> ValidationResult:
        return cls(is_valid=not errors, errors=tuple(errors), warnings=tuple(warnings))

    @property
    def messages(self) -> tuple[str, ...]:
        """Errors first, then warnings."""
        return self.errors + self.warnings


@dataclass(frozen=True)
class Marker:
    """A validator message anchored to a 1-based editor line."""
    line: int
    severity: MarkerSeverity
    message: str


# ------------------------------------------------------------------------------
# Rendering
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class Rendered:
    """A successfully rendered vector artifact."""
    svg: str
    source: str
    theme: Theme = Theme.LIGHT


@dataclass(frozen=True)
class Failed:
    """The renderer rejected the text."""
    message: str
    source: str = ""


@dataclass(frozen=True)
class Empty:
    """Nothing to show."""


EMPTY = Empty()

RenderOutcome = Union[Rendered, Failed, Empty]


def _default_flowchart() -> Dict[str, Any]:
    # htmlLabels produce <foreignObject>, which QtSvg does not paint
    return {"useMaxWidth": True, "htmlLabels": False, "curve": "basis"}


def _default_sequence() -> Dict[str, Any]:
    return {
        "actorMargin": 50,
        "width": 150,
        "height": 65,
        "boxMargin": 10,
        "boxTextMargin": 5,
        "noteMargin": 10,
        "messageMargin": 35,
        "mirrorActors": True,
        "bottomMarginAdj": 1,
        "useMaxWidth": True,
    }


def _default_gantt() -> Dict[str, Any]:
    return {
        "titleTopMargin": 25,
        "barHeight": 20,
        "fontSize": 12,
        "sectionFontSize": 24,
        "gridLineStartPadding": 35,
        "leftPadding": 75,
        "topPadding": 50,
        "topAxis": False,
    }


@dataclass(frozen=True)
class RenderConfig:
    """
    Snapshot of the rendering engine configuration.

    The per-diagram layout options are fixed defaults; only the theme changes
    at runtime. A new snapshot is created on every theme switch so a request
    that already captured the old one is not affected.
    """
    theme: Theme = Theme.LIGHT
    font_family: str = "Inter, system-ui, sans-serif"
    font_size: int = 14
    flowchart: Dict[str, Any] = field(default_factory=_default_flowchart, hash=False, compare=False)
    sequence: Dict[str, Any] = field(default_factory=_default_sequence, hash=False, compare=False)
    gantt: Dict[str, Any] = field(default_factory=_default_gantt, hash=False, compare=False)

    @property
    def mermaid_theme(self) -> str:
        return "dark" if self.theme is Theme.DARK else "default"

    @property
    def background(self) -> str:
        return "#1e1e1e" if self.theme is Theme.DARK else "white"

    def to_mermaid_config(self) -> Dict[str, Any]:
        """The JSON document passed to mermaid-cli with ``-c``."""
        return {
            "theme": self.mermaid_theme,
            "securityLevel": "loose",
            "fontFamily": self.font_family,
            "fontSize": self.font_size,
            "flowchart": dict(self.flowchart),
            "sequence": dict(self.sequence),
            "gantt": dict(self.gantt),
            "class": {"useMaxWidth": True},
            "state": {"useMaxWidth": True},
            "er": {"useMaxWidth": True},
            "pie": {"useMaxWidth": True},
        }


@dataclass(frozen=True)
class RenderRequest:
    session: int
    text: str
    config: RenderConfig


# ------------------------------------------------------------------------------
# Collaborator records
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class Template:
    id: str
    name: str
    description: str
    content: str
    category: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Template:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            content=str(data["content"]),
            category=str(data.get("category", "Other")),
        )


@dataclass(frozen=True)
class RecentFileEntry:
    path: str
    name: str
    last_opened: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            "path": self.path,
            "name": self.name,
            "last_opened": self.last_opened.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> RecentFileEntry:
        opened = datetime.fromisoformat(str(data["last_opened"]))
        if opened.tzinfo is None:
            opened = opened.replace(tzinfo=timezone.utc)
        return cls(path=str(data["path"]), name=str(data["name"]), last_opened=opened)


@dataclass(frozen=True)
class FileContent:
    content: str
    path: str
