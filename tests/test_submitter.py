from __future__ import annotations

from dataclasses import dataclass, field

import allure
import pytest

from prompt_relay.delivery.errors import AdapterError, DeliveryTimeoutError
from prompt_relay.delivery.models import SubmitOptions
from prompt_relay.delivery.submitter import Submitter
from prompt_relay.delivery.timing import SimulatedClock
from prompt_relay.surface.base import ControlHandle
from prompt_relay.surface.scripted import SUBMIT, ScriptedSurface

pytestmark = [
    allure.epic("Delivery"),
    allure.feature("Single Submission"),
]


@dataclass
class FlippingSurface:
    """Surface whose busy answers follow a fixed script, then stay idle."""

    busy_script: list[bool]
    editor_text: str = ""
    last_busy: bool = False
    actuated_while_busy: list[bool] = field(default_factory=list)

    def find_editor(self) -> ControlHandle | None:
        return ControlHandle(key="editor")

    def write_content(self, handle: ControlHandle, text: str) -> None:
        self.editor_text = text

    def find_submit_control(self) -> ControlHandle | None:
        return ControlHandle(key="submit")

    def is_enabled(self, handle: ControlHandle) -> bool:
        return bool(self.editor_text)

    def actuate(self, handle: ControlHandle) -> None:
        self.actuated_while_busy.append(self.last_busy)

    def is_busy(self) -> bool:
        self.last_busy = self.busy_script.pop(0) if self.busy_script else False
        return self.last_busy

    def find_retry_control(self) -> ControlHandle | None:
        return None

    def list_artifact_controls(self) -> list[ControlHandle]:
        return []

    def open_new_session(self) -> None:
        return None


def test_submit_on_idle_surface_sends_once_without_waiting(clock: SimulatedClock) -> None:
    surface = ScriptedSurface()

    report = Submitter(surface=surface, clock=clock).submit("hello")

    assert surface.submissions == ["hello"]
    assert report.polls == 1
    assert report.busy_polls == 0
    assert clock.sleeps == []


def test_submit_waits_out_busy_surface(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(initial_busy_polls=2)

    report = Submitter(surface=surface, clock=clock).submit("hello")

    assert surface.submissions == ["hello"]
    assert report.polls == 3
    assert report.busy_polls == 2
    assert report.elapsed_seconds == pytest.approx(0.2)
    assert clock.sleeps == [0.1, 0.1]


def test_submit_presses_retry_and_cools_down_when_busy(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(initial_busy_polls=5, retry_available=True)

    report = Submitter(surface=surface, clock=clock).submit(
        "hello",
        SubmitOptions(poll_interval_ms=100, busy_cooldown_seconds=1.2),
    )

    assert surface.retry_presses == 1
    assert report.retry_actuations == 1
    assert clock.sleeps == [1.2, 0.1]
    assert surface.events == ["retry", "submit:hello"]


def test_submit_skips_retry_when_disabled_by_options(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(initial_busy_polls=3, retry_available=True)

    report = Submitter(surface=surface, clock=clock).submit(
        "hello",
        SubmitOptions(retry_on_busy=False),
    )

    assert surface.retry_presses == 0
    assert report.busy_polls == 3
    assert surface.submissions == ["hello"]


def test_submit_rewrites_content_until_control_is_ready(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(submit_ready_after=3)

    report = Submitter(surface=surface, clock=clock).submit("again")

    assert surface.submissions == ["again"]
    assert report.polls == 4
    # One write per readiness check plus the final write right before actuation.
    assert surface.writes == 5


def test_submit_never_actuates_while_busy(clock: SimulatedClock) -> None:
    surface = FlippingSurface(busy_script=[False, True, False])

    report = Submitter(surface=surface, clock=clock).submit(
        "hello",
        SubmitOptions(pre_submit_delay_ms=500),
    )

    assert surface.actuated_while_busy == [False]
    assert report.busy_polls == 1
    assert clock.sleeps == [0.5, 0.1]


def test_submit_honors_pre_submit_delay(clock: SimulatedClock) -> None:
    surface = ScriptedSurface()

    Submitter(surface=surface, clock=clock).submit(
        "hello",
        SubmitOptions(pre_submit_delay_ms=500),
    )

    assert clock.sleeps == [0.5]
    assert surface.submissions == ["hello"]


def test_submit_times_out_when_surface_stays_busy(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(initial_busy_polls=1_000_000)

    with pytest.raises(DeliveryTimeoutError) as error:
        Submitter(surface=surface, clock=clock).submit(
            "hello",
            SubmitOptions(poll_interval_ms=100, timeout_seconds=1),
        )

    assert not isinstance(error.value, AdapterError)
    assert error.value.waited_seconds >= 1
    assert surface.submissions == []
    assert surface.writes == 0


def test_submit_times_out_when_control_never_enables(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(submit_ready_after=1_000_000)

    with pytest.raises(DeliveryTimeoutError, match="within 2s"):
        Submitter(surface=surface, clock=clock).submit(
            "hello",
            SubmitOptions(poll_interval_ms=500, timeout_seconds=2),
        )

    assert surface.submissions == []


def test_submit_reports_missing_editor_as_adapter_error(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(editor_present=False)

    with pytest.raises(AdapterError, match="Editor control not found"):
        Submitter(surface=surface, clock=clock).submit("hello")

    assert surface.submissions == []


def test_scripted_surface_disables_submit_while_editor_is_empty() -> None:
    surface = ScriptedSurface()

    assert surface.is_enabled(SUBMIT) is False
    surface.editor_text = "x"
    assert surface.is_enabled(SUBMIT) is True
