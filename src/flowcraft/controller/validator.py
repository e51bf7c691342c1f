"""
Mermaid Syntax Validator
========================
A fast, heuristic pre-flight check of the diagram text.

Why is this file needed?
------------------------
1. Feedback: It runs on every keystroke, so the error/warning badge reacts
   immediately while the (slow) renderer is still debounced.
2. Gating: A definitively invalid verdict stops the controller from sending
   broken text to the renderer.

It does not parse the Mermaid grammar; mermaid-cli remains the authority.
The checks here are line-level and bracket-level only.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Set

from flowcraft.model.state import Marker, MarkerSeverity, ValidationResult

logger = logging.getLogger(__name__)

DIAGRAM_KEYWORDS: tuple[str, ...] = (
    "graph", "flowchart", "sequencediagram", "classdiagram",
    "statediagram", "erdiagram", "journey", "gantt", "pie",
    "gitgraph", "mindmap", "timeline", "zenuml", "sankey",
    "quadrantchart", "requirementdiagram", "c4context", "c4container",
    "c4component", "c4dynamic", "xychart", "block", "packet", "kanban",
    "architecture",
)

BRACKET_PAIRS: tuple[tuple[str, str], ...] = (("[", "]"), ("(", ")"), ("{", "}"))

_QUOTED = re.compile(r'"[^"]*"')
# ER cardinality markers such as ||--o{ or }|..|{
_ER_CARDINALITY = re.compile(r"[|}o]{1,2}(?:--|\.\.)[|{o]{1,2}")
# Asymmetric flowchart node: id>label]
_ASYMMETRIC_NODE = re.compile(r"(?:^|(?<=[\s;&>|]))\w+>[^\]]*\]")
_DANGLING_LINK = re.compile(r"(-->|---|==>|-\.->|-\.-)\s*(\|[^|]*\|)?\s*$")
_LINE_PREFIX = re.compile(r"^Line (\d+):\s*")


def validate_mermaid_syntax(content: str) -> ValidationResult:
    """
    Validate a diagram description.

    Never raises: an unexpected internal failure is reported as a single
    generic error so the editor keeps working.
    """
    try:
        return _validate(content)
    except Exception as e:
        logger.exception("Validator crashed")
        return ValidationResult.build([f"Internal validator error: {e}"], [])


def _validate(content: str) -> ValidationResult:
    errors: List[str] = []
    warnings: List[str] = []

    lines = content.splitlines()
    if not lines:
        warnings.append("Empty diagram")
        return ValidationResult.build(errors, warnings)

    skipped = _front_matter_lines(lines)

    header = _first_meaningful_line(lines, skipped)
    if header is None or not _starts_with_keyword(header):
        warnings.append("Diagram type not clearly specified in first line")

    totals = {char: 0 for pair in BRACKET_PAIRS for char in pair}

    for index, line in enumerate(lines):
        line_num = index + 1
        trimmed = line.strip()
        if index in skipped or not trimmed or trimmed.startswith("%%"):
            continue

        if trimmed.count('"') % 2 != 0:
            errors.append(f"Line {line_num}: Unterminated string literal")
            continue

        bare = _QUOTED.sub('""', trimmed)
        bare = _ER_CARDINALITY.sub("--", bare)
        bare = _ASYMMETRIC_NODE.sub("", bare)

        opened = sum(bare.count(o) for o, _ in BRACKET_PAIRS)
        closed = sum(bare.count(c) for _, c in BRACKET_PAIRS)
        if opened != closed:
            warnings.append(f"Line {line_num}: Potentially unmatched brackets")
        for char in totals:
            totals[char] += bare.count(char)

        if _DANGLING_LINK.search(bare):
            errors.append(f"Line {line_num}: Connection is missing a target node")

    for opening, closing in BRACKET_PAIRS:
        if totals[opening] != totals[closing]:
            errors.append(f"Unbalanced '{opening}' '{closing}' brackets in diagram")

    return ValidationResult.build(errors, warnings)


def _front_matter_lines(lines: List[str]) -> Set[int]:
    """Indexes of a leading '---' YAML block, delimiters included."""
    if not lines or lines[0].strip() != "---":
        return set()
    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            return set(range(index + 1))
    # Unterminated front-matter: only skip the opening delimiter
    return {0}


def _first_meaningful_line(lines: List[str], skipped: Set[int]) -> Optional[str]:
    for index, raw in enumerate(lines):
        line = raw.strip()
        if index in skipped or not line or line.startswith("%%"):
            continue
        return line
    return None


def _starts_with_keyword(line: str) -> bool:
    lowered = line.lower()
    return any(lowered.startswith(keyword) for keyword in DIAGRAM_KEYWORDS)


def markers_from_validation(result: Optional[ValidationResult]) -> List[Marker]:
    """Convert 'Line N: ...' messages into editor markers."""
    if result is None:
        return []

    markers: List[Marker] = []
    for severity, messages in (
        (MarkerSeverity.ERROR, result.errors),
        (MarkerSeverity.WARNING, result.warnings),
    ):
        for message in messages:
            match = _LINE_PREFIX.match(message)
            if match:
                markers.append(Marker(
                    line=int(match.group(1)),
                    severity=severity,
                    message=message[match.end():],
                ))
    return markers
