"""
Mermaid Syntax Highlighting
===========================
Token rules and per-theme colours for the diagram editor.

EditorEnvironment:
    Process-wide editor engine state. The regular expressions and the text
    formats are built once by ``initialize()`` and shared by every editor
    instance; ``teardown()`` releases them when the main window closes.

MermaidHighlighter:
    QSyntaxHighlighter applying those rules block by block. Double-quoted
    strings may span several lines (block state 1 = inside a string).
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from PySide6.QtGui import QColor, QFont, QSyntaxHighlighter, QTextCharFormat, QTextDocument

from flowcraft.model.state import Theme

logger = logging.getLogger(__name__)

# Rule order matters: later rules paint over earlier ones.
TOKEN_RULES: Tuple[Tuple[str, str], ...] = (
    ("identifier", r"\b[a-zA-Z_]\w*\b"),
    ("number", r"\b\d+\b"),
    ("bracket", r"[\[\]{}()]"),
    ("operator", r"-->|---|-\.->|-\.-|==>|==|\|\||<\|--|--\|>|->>|-->>|[<>]"),
    ("keyword", r"\b(?:graph|flowchart|sequenceDiagram|classDiagram|stateDiagram(?:-v2)?|erDiagram|"
                r"journey|gantt|pie|gitGraph|mindmap|timeline|zenuml|sankey(?:-beta)?|subgraph|end|"
                r"participant|actor|class|section|title|dateFormat|note|loop|alt|else|opt)\b"),
    ("direction", r"\b(?:TD|TB|BT|RL|LR|DT)\b"),
    ("string", r"'[^'\n]*'"),
)

PALETTES: Dict[Theme, Dict[str, str]] = {
    Theme.LIGHT: {
        "comment": "#008000",
        "keyword": "#0000FF",
        "direction": "#AF00DB",
        "string": "#A31515",
        "number": "#09885A",
        "operator": "#000000",
        "bracket": "#FF8C00",
        "identifier": "#001080",
        "background": "#ffffff",
        "foreground": "#000000",
    },
    Theme.DARK: {
        "comment": "#6A9955",
        "keyword": "#C586C0",
        "direction": "#569CD6",
        "string": "#CE9178",
        "number": "#B5CEA8",
        "operator": "#D4D4D4",
        "bracket": "#FFD700",
        "identifier": "#9CDCFE",
        "background": "#1e1e1e",
        "foreground": "#d4d4d4",
    },
}

_IN_STRING = 1


@dataclass
class CompiledRules:
    rules: List[Tuple[str, re.Pattern]]
    comment: re.Pattern
    quote: re.Pattern


class EditorEnvironment:
    """Init-once holder of the compiled rules and the text formats."""

    _rules: Optional[CompiledRules] = None
    _formats: Dict[Theme, Dict[str, QTextCharFormat]] = {}

    @classmethod
    def initialize(cls) -> None:
        if cls._rules is not None:
            return
        cls._rules = CompiledRules(
            rules=[(token, re.compile(pattern)) for token, pattern in TOKEN_RULES],
            comment=re.compile(r"%%.*$"),
            quote=re.compile(r'"'),
        )
        cls._formats = {theme: cls._build_formats(palette) for theme, palette in PALETTES.items()}
        logger.debug("Editor environment initialized.")

    @classmethod
    def teardown(cls) -> None:
        if cls._rules is None:
            return
        cls._rules = None
        cls._formats = {}
        logger.debug("Editor environment torn down.")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._rules is not None

    @classmethod
    def rules(cls) -> CompiledRules:
        cls.initialize()
        assert cls._rules is not None
        return cls._rules

    @classmethod
    def formats(cls, theme: Theme) -> Dict[str, QTextCharFormat]:
        cls.initialize()
        return cls._formats[theme]

    @staticmethod
    def palette(theme: Theme) -> Dict[str, str]:
        return PALETTES[theme]

    @staticmethod
    def _build_formats(palette: Dict[str, str]) -> Dict[str, QTextCharFormat]:
        formats: Dict[str, QTextCharFormat] = {}
        for token in ("comment", "keyword", "direction", "string", "number", "operator", "bracket", "identifier"):
            fmt = QTextCharFormat()
            fmt.setForeground(QColor(palette[token]))
            if token == "keyword":
                fmt.setFontWeight(QFont.Weight.Bold)
            if token == "comment":
                fmt.setFontItalic(True)
            formats[token] = fmt
        return formats


class MermaidHighlighter(QSyntaxHighlighter):
    def __init__(self, document: QTextDocument, theme: Theme = Theme.LIGHT) -> None:
        super().__init__(document)
        self._theme = theme
        self._formats = EditorEnvironment.formats(theme)

    @property
    def theme(self) -> Theme:
        return self._theme

    def set_theme(self, theme: Theme) -> None:
        if theme == self._theme:
            return
        self._theme = theme
        self._formats = EditorEnvironment.formats(theme)
        self.rehighlight()

    def highlightBlock(self, text: str) -> None:
        rules = EditorEnvironment.rules()
        formats = self._formats

        comment = rules.comment.search(text)
        code_end = comment.start() if comment else len(text)

        for token, pattern in rules.rules:
            for match in pattern.finditer(text, 0, code_end):
                self.setFormat(match.start(), match.end() - match.start(), formats[token])

        self._highlight_strings(text, code_end, rules.quote, formats["string"])

        if comment:
            self.setFormat(comment.start(), len(text) - comment.start(), formats["comment"])

    def _highlight_strings(self, text: str, code_end: int, quote: re.Pattern, fmt: QTextCharFormat) -> None:
        self.setCurrentBlockState(0)
        start = 0 if self.previousBlockState() == _IN_STRING else None
        position = 0

        while True:
            if start is None:
                opening = quote.search(text, position, code_end)
                if opening is None:
                    return
                start = opening.start()
                position = opening.end()

            closing = quote.search(text, position, code_end)
            if closing is None:
                self.setFormat(start, code_end - start, fmt)
                self.setCurrentBlockState(_IN_STRING)
                return

            self.setFormat(start, closing.end() - start, fmt)
            position = closing.end()
            start = None
