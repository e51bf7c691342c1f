"""
Synchronization Controller
==========================
Keeps the document text, its validation verdict and its rendered preview
consistent while the user types.

Why is this file needed?
------------------------
1. Single authority: Every decision about what the preview should show is
   made here, in one transition function (``dispatch``) over a closed set of
   events. Views only listen to the signals below.
2. Staleness: Renders are slow and finish out of order. Each one is tagged
   with a session from a ``Generation`` counter; only the latest session may
   change the displayed outcome. Until it arrives the previous outcome stays
   on screen.
3. Throttling: Validation runs on every edit, rendering only after a quiet
   period (``config.RENDER_DEBOUNCE_MS``).

Events:
    TextChanged, TimerFired, ValidationResolved, RenderResolved,
    ThemeChanged, RefreshRequested
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from PySide6.QtCore import QObject, Signal

from flowcraft import config
from flowcraft.controller.renderer import MermaidRenderer
from flowcraft.controller.timers import DebounceTimer, Generation
from flowcraft.controller.validator import validate_mermaid_syntax
from flowcraft.controller.workers import RenderDispatcher
from flowcraft.model.state import (
    EMPTY, Failed, PreviewState, RenderOutcome, RenderRequest, Rendered, Theme, ValidationResult,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# Events
# ------------------------------------------------------------------------------

@dataclass(frozen=True)
class TextChanged:
    text: str


@dataclass(frozen=True)
class TimerFired:
    generation: int


@dataclass(frozen=True)
class ValidationResolved:
    text: str
    result: ValidationResult


@dataclass(frozen=True)
class RenderResolved:
    """A worker finished. ``outcome`` is None when the worker itself faulted."""
    request: RenderRequest
    outcome: Optional[Union[Rendered, Failed]]
    error: str = ""


@dataclass(frozen=True)
class ThemeChanged:
    theme: Theme


@dataclass(frozen=True)
class RefreshRequested:
    pass


Event = Union[TextChanged, TimerFired, ValidationResolved, RenderResolved, ThemeChanged, RefreshRequested]


class SyncController(QObject):
    document_changed = Signal(str)
    validation_changed = Signal(object)  # ValidationResult | None
    render_changed = Signal(object)  # RenderOutcome
    rendering_changed = Signal(bool)
    zoom_changed = Signal(float)
    theme_changed = Signal(str)

    def __init__(
        self,
        renderer: MermaidRenderer,
        dispatcher: Optional[RenderDispatcher] = None,
        validator: Callable[[str], ValidationResult] = validate_mermaid_syntax,
        debounce_ms: int = config.RENDER_DEBOUNCE_MS,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._renderer = renderer
        self._validator = validator

        self._dispatcher = dispatcher if dispatcher is not None else RenderDispatcher(renderer, parent=self)
        self._dispatcher.resolved.connect(self._on_render_resolved)
        self._dispatcher.faulted.connect(self._on_render_faulted)

        self._timer = DebounceTimer(debounce_ms, self._on_timer_fired, parent=self)
        self._sessions = Generation()

        self._text: str = ""
        self._validation: Optional[ValidationResult] = None
        self._validated_text: Optional[str] = None
        self._outcome: RenderOutcome = EMPTY
        self._last_rendered: Optional[tuple[str, Theme]] = None
        self._pending_session: Optional[int] = None
        self._zoom: float = config.ZOOM_DEFAULT

    # ------------------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._text

    @property
    def theme(self) -> Theme:
        return self._renderer.config.theme

    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def is_rendering(self) -> bool:
        return self._pending_session is not None

    @property
    def debounce(self) -> DebounceTimer:
        return self._timer

    @property
    def session(self) -> int:
        """Identity of the most recently issued render."""
        return self._sessions.current

    def current_validation(self) -> Optional[ValidationResult]:
        return self._validation

    def current_render(self) -> RenderOutcome:
        return self._outcome

    def current_artifact(self) -> Optional[Rendered]:
        """The artifact on screen, possibly older than the text. Export uses it."""
        return self._outcome if isinstance(self._outcome, Rendered) else None

    def is_definitively_invalid(self) -> bool:
        return (
            self._validation is not None
            and self._validated_text == self._text
            and not self._validation.is_valid
        )

    def preview_state(self) -> PreviewState:
        if not self._text.strip():
            return PreviewState.EMPTY
        if self.is_definitively_invalid():
            return PreviewState.INVALID
        if isinstance(self._outcome, Rendered):
            return PreviewState.RENDERED
        if isinstance(self._outcome, Failed):
            return PreviewState.FAILED
        return PreviewState.PENDING

    # ------------------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------------------

    def on_text_changed(self, text: str) -> None:
        self.dispatch(TextChanged(text))

    def force_refresh(self) -> None:
        self.reset_zoom()
        self.dispatch(RefreshRequested())

    def set_theme(self, theme: Theme) -> None:
        self.dispatch(ThemeChanged(Theme(theme)))

    def revalidate(self) -> None:
        """Run the validator again on the current text."""
        if self._text.strip():
            self._validate(self._text)

    def zoom_in(self) -> None:
        self._set_zoom(self._zoom + config.ZOOM_STEP)

    def zoom_out(self) -> None:
        self._set_zoom(self._zoom - config.ZOOM_STEP)

    def reset_zoom(self) -> None:
        self._set_zoom(config.ZOOM_DEFAULT)

    def shutdown(self) -> None:
        """Cancel pending work and wait for render workers."""
        self._timer.cancel()
        self._sessions.advance()
        self._set_pending(None)
        self._dispatcher.shutdown()
        logger.info("Synchronization controller shut down.")

    # ------------------------------------------------------------------------------
    # Transition function
    # ------------------------------------------------------------------------------

    def dispatch(self, event: Event) -> None:
        match event:
            case TextChanged(text=text):
                self._handle_text_changed(text)
            case ValidationResolved(text=text, result=result):
                self._handle_validation(text, result)
            case TimerFired(generation=generation):
                self._handle_timer_fired(generation)
            case RenderResolved(request=request, outcome=outcome, error=error):
                self._handle_render_resolved(request, outcome, error)
            case ThemeChanged(theme=theme):
                self._handle_theme_changed(theme)
            case RefreshRequested():
                self._handle_refresh()
            case _:
                raise TypeError(f"Unknown controller event: {event!r}")

    def _handle_text_changed(self, text: str) -> None:
        if not text.strip():
            self._clear(text)
            return

        if text == self._text:
            return

        self._text = text
        self.document_changed.emit(text)
        self._validate(text)
        self._timer.arm()

    def _handle_validation(self, text: str, result: ValidationResult) -> None:
        if text != self._text:
            logger.debug("Discarding validation for superseded text.")
            return
        self._validation = result
        self._validated_text = text
        self.validation_changed.emit(result)

    def _handle_timer_fired(self, generation: int) -> None:
        if not self._timer.claim(generation):
            logger.debug(f"Ignoring superseded debounce shot {generation}.")
            return
        if not self._text.strip():
            return
        if self.is_definitively_invalid():
            logger.debug("Skipping render: document has errors.")
            return
        if self._last_rendered == (self._text, self.theme) and not self.is_rendering:
            logger.debug("Skipping render: text already rendered.")
            return
        self._start_render()

    def _handle_render_resolved(
        self,
        request: RenderRequest,
        outcome: Optional[Union[Rendered, Failed]],
        error: str,
    ) -> None:
        if not self._sessions.is_current(request.session):
            logger.debug(f"Discarding result of superseded render session {request.session}.")
            return

        self._set_pending(None)

        if outcome is None:
            logger.warning(f"Render session {request.session} faulted: {error}")
            return

        self._outcome = outcome
        if isinstance(outcome, Rendered):
            self._last_rendered = (request.text, request.config.theme)
        else:
            self._last_rendered = None
        self.render_changed.emit(outcome)

    def _handle_theme_changed(self, theme: Theme) -> None:
        if theme == self.theme:
            return
        # Reconfigure before dispatching so the new request captures the new snapshot
        self._renderer.configure(theme)
        self.theme_changed.emit(str(theme))
        self._render_now()

    def _handle_refresh(self) -> None:
        self._render_now()

    # ------------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------------

    def _validate(self, text: str) -> None:
        try:
            result = self._validator(text)
        except Exception:
            logger.exception("Validation failed; keeping previous verdict.")
            return
        self.dispatch(ValidationResolved(text, result))

    def _render_now(self) -> None:
        self._timer.cancel()
        if not self._text.strip() or self.is_definitively_invalid():
            return
        self._start_render()

    def _start_render(self) -> None:
        request = RenderRequest(
            session=self._sessions.advance(),
            text=self._text,
            config=self._renderer.config,
        )
        try:
            self._dispatcher.submit(request)
        except Exception:
            logger.exception(f"Could not start render session {request.session}.")
            self._set_pending(None)
            return
        logger.debug(f"Render session {request.session} started.")
        self._set_pending(request.session)

    def _clear(self, text: str) -> None:
        self._timer.cancel()
        # In-flight renders of the previous text must not repopulate the preview
        self._sessions.advance()
        self._set_pending(None)

        changed = text != self._text
        self._text = text
        self._last_rendered = None
        self._validated_text = None

        if changed:
            self.document_changed.emit(text)
        if self._validation is not None:
            self._validation = None
            self.validation_changed.emit(None)
        if self._outcome is not EMPTY:
            self._outcome = EMPTY
            self.render_changed.emit(EMPTY)

    def _set_pending(self, session: Optional[int]) -> None:
        was_rendering = self.is_rendering
        self._pending_session = session
        if was_rendering != self.is_rendering:
            self.rendering_changed.emit(self.is_rendering)

    def _set_zoom(self, value: float) -> None:
        value = round(min(config.ZOOM_MAX, max(config.ZOOM_MIN, value)), 2)
        if value == self._zoom:
            return
        self._zoom = value
        self.zoom_changed.emit(value)

    # ------------------------------------------------------------------------------
    # Signal adapters
    # ------------------------------------------------------------------------------

    def _on_timer_fired(self, generation: int) -> None:
        self.dispatch(TimerFired(generation))

    def _on_render_resolved(self, request: RenderRequest, outcome: object) -> None:
        self.dispatch(RenderResolved(request, outcome))

    def _on_render_faulted(self, request: RenderRequest, message: str) -> None:
        self.dispatch(RenderResolved(request, None, message))
