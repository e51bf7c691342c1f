"""Tests for the synchronization controller state machine."""

from __future__ import annotations

import pytest

from flowcraft import config
from flowcraft.controller.sync import (
    RefreshRequested,
    RenderResolved,
    SyncController,
    TextChanged,
    ThemeChanged,
    TimerFired,
)
from flowcraft.model.state import EMPTY, Failed, PreviewState, Rendered, Theme, ValidationResult

FIRST = "graph TD\n A-->B"
SECOND = "graph TD\n A-->B-->C"
INVALID = "graph TD\n A -->"


def type_and_settle(controller, text):
    controller.on_text_changed(text)
    controller.debounce.fire()


class Recorder:
    def __init__(self, signal):
        self.values = []
        signal.connect(self.values.append)


# ── Empty input ──


class TestEmptyText:
    def test_initial_state(self, controller):
        assert controller.current_validation() is None
        assert controller.current_render() is EMPTY
        assert controller.preview_state() is PreviewState.EMPTY
        assert not controller.is_rendering

    @pytest.mark.parametrize("text", ["", "   ", "\n\t  \n"])
    def test_empty_clears_synchronously(self, controller, dispatcher, text):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])
        assert isinstance(controller.current_render(), Rendered)

        controller.on_text_changed(text)

        assert controller.current_validation() is None
        assert controller.current_render() is EMPTY
        assert not controller.debounce.is_armed
        assert controller.preview_state() is PreviewState.EMPTY

    def test_empty_cancels_pending_debounce(self, controller, dispatcher):
        controller.on_text_changed(FIRST)
        assert controller.debounce.is_armed

        controller.on_text_changed("")

        assert not controller.debounce.is_armed
        assert controller.debounce.fire() is False
        assert dispatcher.requests == []

    def test_in_flight_render_cannot_repopulate_after_clear(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        in_flight = dispatcher.requests[-1]
        assert controller.is_rendering

        controller.on_text_changed("")
        assert not controller.is_rendering
        dispatcher.succeed(in_flight)

        assert controller.current_render() is EMPTY
        assert controller.current_validation() is None

    def test_empty_emits_cleared_state(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])
        validations = Recorder(controller.validation_changed)
        renders = Recorder(controller.render_changed)

        controller.on_text_changed("")

        assert validations.values == [None]
        assert renders.values == [EMPTY]


# ── Validation ──


class TestValidation:
    def test_validates_synchronously(self, controller):
        controller.on_text_changed(FIRST)
        result = controller.current_validation()
        assert result is not None
        assert result.is_valid

    def test_same_text_is_not_revalidated(self, renderer, dispatcher, qapp):
        calls = []

        def validator(text):
            calls.append(text)
            return ValidationResult.build([], [])

        ctrl = SyncController(renderer, dispatcher=dispatcher, validator=validator, debounce_ms=60_000)
        ctrl.on_text_changed(FIRST)
        ctrl.on_text_changed(FIRST)
        assert calls == [FIRST]
        ctrl.debounce.cancel()

    def test_validator_exception_keeps_previous_verdict(self, renderer, dispatcher, qapp):
        good = ValidationResult.build([], ["w"])

        def validator(text):
            if text == SECOND:
                raise RuntimeError("validator exploded")
            return good

        ctrl = SyncController(renderer, dispatcher=dispatcher, validator=validator, debounce_ms=60_000)
        ctrl.on_text_changed(FIRST)
        ctrl.on_text_changed(SECOND)

        assert ctrl.current_validation() is good
        assert ctrl.text == SECOND
        # The render still goes ahead; the verdict for this text is unknown
        ctrl.debounce.fire()
        assert [r.text for r in dispatcher.requests] == [SECOND]

    def test_revalidate_runs_validator_again(self, controller):
        controller.on_text_changed(FIRST)
        changes = Recorder(controller.validation_changed)
        controller.revalidate()
        assert len(changes.values) == 1
        assert changes.values[0].is_valid


# ── Debounce ──


class TestDebounce:
    def test_rapid_edits_render_once_with_latest_text(self, controller, dispatcher):
        controller.on_text_changed(FIRST)
        controller.on_text_changed(SECOND)

        assert dispatcher.requests == []
        controller.debounce.fire()

        assert len(dispatcher.requests) == 1
        assert dispatcher.requests[0].text == SECOND

    def test_every_edit_rearms_timer(self, controller):
        controller.on_text_changed(FIRST)
        first_generation = controller.debounce.generation
        controller.on_text_changed(SECOND)
        assert controller.debounce.generation > first_generation
        assert controller.debounce.is_armed

    def test_timer_interval_defaults_to_config(self, renderer, dispatcher, qapp):
        ctrl = SyncController(renderer, dispatcher=dispatcher)
        assert ctrl.debounce.interval == config.RENDER_DEBOUNCE_MS

    def test_one_render_per_quiet_period(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        type_and_settle(controller, SECOND)
        assert [r.text for r in dispatcher.requests] == [FIRST, SECOND]

    def test_already_rendered_text_is_skipped(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])

        controller.on_text_changed(SECOND)
        controller.on_text_changed(FIRST)
        controller.debounce.fire()

        assert len(dispatcher.requests) == 1

    def test_rendered_text_rerenders_when_newer_render_in_flight(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])
        type_and_settle(controller, SECOND)

        type_and_settle(controller, FIRST)

        assert [r.text for r in dispatcher.requests] == [FIRST, SECOND, FIRST]

    def test_dispatch_timer_event_directly(self, controller, dispatcher):
        controller.dispatch(TextChanged(FIRST))
        controller.dispatch(TimerFired(controller.debounce.generation))
        assert [r.text for r in dispatcher.requests] == [FIRST]
        assert not controller.debounce.is_armed

    def test_superseded_timer_event_is_ignored(self, controller, dispatcher):
        controller.on_text_changed(FIRST)
        superseded = controller.debounce.generation
        controller.on_text_changed(SECOND)

        controller.dispatch(TimerFired(superseded))
        assert dispatcher.requests == []

        controller.debounce.fire()
        assert [r.text for r in dispatcher.requests] == [SECOND]

    def test_timer_event_is_accepted_once(self, controller, dispatcher):
        controller.on_text_changed(FIRST)
        shot = controller.debounce.generation
        controller.dispatch(TimerFired(shot))
        controller.dispatch(TimerFired(shot))
        assert controller.debounce.fire() is False
        assert len(dispatcher.requests) == 1


# ── Session discard ──


class TestSessions:
    def test_sessions_are_monotonic(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        type_and_settle(controller, SECOND)
        sessions = [r.session for r in dispatcher.requests]
        assert sessions == sorted(sessions)
        assert sessions[0] < sessions[1]

    def test_out_of_order_completion_keeps_latest(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        type_and_settle(controller, SECOND)
        older, newer = dispatcher.requests

        applied = dispatcher.succeed(newer)
        dispatcher.succeed(older)

        assert controller.current_render() is applied
        assert controller.current_render().source == SECOND

    def test_stale_until_replaced(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        shown = dispatcher.succeed(dispatcher.requests[-1])

        type_and_settle(controller, SECOND)

        assert controller.current_render() is shown
        assert controller.is_rendering
        assert controller.preview_state() is PreviewState.RENDERED

    def test_superseded_result_is_silent(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        type_and_settle(controller, SECOND)
        older = dispatcher.requests[0]
        renders = Recorder(controller.render_changed)

        dispatcher.succeed(older)

        assert renders.values == []
        assert controller.is_rendering

    def test_rendering_flag_signals(self, controller, dispatcher):
        flags = Recorder(controller.rendering_changed)
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])
        assert flags.values == [True, False]

    def test_resolution_event_dispatched_directly(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        request = dispatcher.requests[-1]
        outcome = Rendered(svg="<svg/>", source=FIRST)
        controller.dispatch(RenderResolved(request, outcome))
        assert controller.current_render() is outcome


# ── Invalid content ──


class TestInvalidContent:
    def test_invalid_text_never_renders(self, controller, dispatcher):
        type_and_settle(controller, INVALID)

        assert controller.current_validation().is_valid is False
        assert dispatcher.requests == []
        assert controller.preview_state() is PreviewState.INVALID

    def test_valid_again_schedules_exactly_one_render(self, controller, dispatcher):
        type_and_settle(controller, INVALID)
        controller.on_text_changed(INVALID + " B")
        controller.on_text_changed(INVALID + " C")
        controller.debounce.fire()

        assert [r.text for r in dispatcher.requests] == [INVALID + " C"]

    def test_invalid_placeholder_wins_over_previous_artifact(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])

        type_and_settle(controller, INVALID)

        assert controller.preview_state() is PreviewState.INVALID
        assert isinstance(controller.current_render(), Rendered)
        assert len(dispatcher.requests) == 1

    def test_refresh_does_not_render_invalid_text(self, controller, dispatcher):
        controller.on_text_changed(INVALID)
        controller.force_refresh()
        assert dispatcher.requests == []


# ── Failures ──


class TestFailures:
    def test_failure_replaces_artifact(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])
        type_and_settle(controller, SECOND)

        dispatcher.fail(dispatcher.requests[-1], "Parse error on line 2")

        outcome = controller.current_render()
        assert isinstance(outcome, Failed)
        assert outcome.message == "Parse error on line 2"
        assert controller.preview_state() is PreviewState.FAILED
        assert controller.current_artifact() is None

    def test_failure_is_not_retried_automatically(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.fail(dispatcher.requests[-1])
        controller.debounce.fire()
        assert len(dispatcher.requests) == 1

    def test_failed_text_renders_again_on_refresh(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.fail(dispatcher.requests[-1])
        controller.force_refresh()
        assert [r.text for r in dispatcher.requests] == [FIRST, FIRST]

    def test_adapter_fault_keeps_previous_outcome(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        shown = dispatcher.succeed(dispatcher.requests[-1])
        type_and_settle(controller, SECOND)

        dispatcher.fault(dispatcher.requests[-1], "worker crashed")

        assert controller.current_render() is shown
        assert not controller.is_rendering

    def test_submit_error_is_contained(self, controller, dispatcher, monkeypatch):
        def broken(request):
            raise RuntimeError("Render dispatcher has been shut down")

        monkeypatch.setattr(dispatcher, "submit", broken)
        type_and_settle(controller, FIRST)

        assert controller.current_render() is EMPTY
        assert not controller.is_rendering


# ── Theme ──


class TestTheme:
    def test_theme_toggle_issues_exactly_one_render(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        shown = dispatcher.succeed(dispatcher.requests[-1])

        controller.set_theme(Theme.DARK)

        assert len(dispatcher.requests) == 2
        request = dispatcher.requests[-1]
        assert request.text == FIRST
        assert request.config.theme is Theme.DARK
        assert controller.current_render() is shown

        applied = dispatcher.succeed(request)
        assert controller.current_render() is applied
        assert applied.theme is Theme.DARK

    def test_theme_change_reconfigures_renderer_first(self, controller, renderer):
        controller.set_theme(Theme.DARK)
        assert renderer.config.theme is Theme.DARK
        assert controller.theme is Theme.DARK

    def test_same_theme_is_noop(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        themes = Recorder(controller.theme_changed)
        controller.set_theme(Theme.LIGHT)
        assert themes.values == []
        assert len(dispatcher.requests) == 1

    def test_theme_change_with_empty_text_does_not_render(self, controller, dispatcher):
        themes = Recorder(controller.theme_changed)
        controller.dispatch(ThemeChanged(Theme.DARK))
        assert themes.values == ["dark"]
        assert dispatcher.requests == []

    def test_theme_change_supersedes_pending_debounce(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])
        controller.on_text_changed(SECOND)

        controller.set_theme(Theme.DARK)

        assert not controller.debounce.is_armed
        assert [r.text for r in dispatcher.requests] == [FIRST, SECOND]

    def test_old_theme_result_is_discarded(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        light_request = dispatcher.requests[-1]
        controller.set_theme(Theme.DARK)

        dispatcher.succeed(light_request)

        assert controller.current_render() is EMPTY


# ── Zoom & refresh ──


class TestZoom:
    def test_zoom_steps_and_bounds(self, controller):
        controller.zoom_in()
        assert controller.zoom == pytest.approx(1.2)
        for _ in range(20):
            controller.zoom_in()
        assert controller.zoom == config.ZOOM_MAX
        for _ in range(20):
            controller.zoom_out()
        assert controller.zoom == config.ZOOM_MIN

    def test_zoom_does_not_touch_artifact(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        shown = dispatcher.succeed(dispatcher.requests[-1])

        controller.zoom_in()
        controller.zoom_out()
        controller.zoom_in()

        assert controller.current_render() is shown
        assert controller.current_artifact() is shown
        assert len(dispatcher.requests) == 1

    def test_zoom_signal_only_on_change(self, controller):
        zooms = Recorder(controller.zoom_changed)
        controller.reset_zoom()
        controller.zoom_out()
        assert zooms.values == [pytest.approx(0.8)]

    def test_force_refresh_resets_zoom_and_renders_now(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])
        controller.zoom_in()
        controller.on_text_changed(SECOND)

        controller.force_refresh()

        assert controller.zoom == config.ZOOM_DEFAULT
        assert not controller.debounce.is_armed
        assert [r.text for r in dispatcher.requests] == [FIRST, SECOND]

    def test_refresh_renders_even_if_already_rendered(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        dispatcher.succeed(dispatcher.requests[-1])
        controller.dispatch(RefreshRequested())
        assert len(dispatcher.requests) == 2

    def test_export_target_is_displayed_artifact_while_newer_in_flight(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        shown = dispatcher.succeed(dispatcher.requests[-1])
        type_and_settle(controller, SECOND)
        assert controller.is_rendering
        assert controller.current_artifact() is shown


# ── Lifecycle ──


class TestLifecycle:
    def test_shutdown_stops_timer_and_dispatcher(self, controller, dispatcher):
        type_and_settle(controller, FIRST)
        pending = dispatcher.requests[-1]
        controller.on_text_changed(SECOND)

        controller.shutdown()

        assert dispatcher.shut_down
        assert not controller.debounce.is_armed
        dispatcher.succeed(pending)
        assert controller.current_render() is EMPTY

    def test_unknown_event_is_rejected(self, controller):
        with pytest.raises(TypeError):
            controller.dispatch(object())

    def test_document_changed_signal(self, controller):
        docs = Recorder(controller.document_changed)
        controller.on_text_changed(FIRST)
        controller.on_text_changed(FIRST)
        controller.on_text_changed("")
        assert docs.values == [FIRST, ""]
