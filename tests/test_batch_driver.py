from __future__ import annotations

import allure

from prompt_relay.delivery.batch import BatchDriver
from prompt_relay.delivery.models import BatchOptions, DeliveryMode, FailureKind, SubmitOptions
from prompt_relay.delivery.source import MessageBatch
from prompt_relay.delivery.timing import SimulatedClock
from prompt_relay.surface.scripted import ScriptedSurface

pytestmark = [
    allure.epic("Delivery"),
    allure.feature("Batch Delivery"),
]


def test_continuous_batch_paces_between_items_only(clock: SimulatedClock) -> None:
    surface = ScriptedSurface()

    outcomes = BatchDriver(surface=surface, clock=clock).deliver(
        MessageBatch.build(["a", "b", "c"]),
        BatchOptions(pacing_seconds=5),
    )

    assert [outcome.accepted for outcome in outcomes] == [True, True, True]
    assert [outcome.index for outcome in outcomes] == [0, 1, 2]
    assert surface.submissions == ["a", "b", "c"]
    assert clock.sleeps == [5.0, 5.0]
    assert surface.new_sessions == 0


def test_batch_honors_selected_range(clock: SimulatedClock) -> None:
    surface = ScriptedSurface()

    outcomes = BatchDriver(surface=surface, clock=clock).deliver(
        MessageBatch.build("a\nb\nc\nd", start=1, stop=-1),
        BatchOptions(pacing_seconds=0),
    )

    assert [(outcome.index, outcome.message) for outcome in outcomes] == [(1, "b"), (2, "c")]
    assert surface.submissions == ["b", "c"]


def test_empty_range_sends_nothing(clock: SimulatedClock) -> None:
    surface = ScriptedSurface()

    outcomes = BatchDriver(surface=surface, clock=clock).deliver(
        MessageBatch.build(["a", "b", "c"], start=3, stop=1),
    )

    assert outcomes == []
    assert surface.submissions == []
    assert clock.sleeps == []


def test_batch_stops_at_first_failure(clock: SimulatedClock) -> None:
    # The first acceptance leaves the surface busy for good.
    surface = ScriptedSurface(busy_polls=1_000_000)

    outcomes = BatchDriver(surface=surface, clock=clock).deliver(
        MessageBatch.build(["a", "b", "c"]),
        BatchOptions(pacing_seconds=0, submit=SubmitOptions(timeout_seconds=1)),
    )

    assert len(outcomes) == 2
    assert outcomes[0].accepted is True
    assert outcomes[1].accepted is False
    assert outcomes[1].failure is FailureKind.TIMEOUT
    assert "did not become available" in (outcomes[1].error_summary or "")
    assert surface.submissions == ["a"]


def test_adapter_failure_is_recorded_as_adapter_error(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(editor_present=False)

    outcomes = BatchDriver(surface=surface, clock=clock).deliver(MessageBatch.build(["a", "b"]))

    assert len(outcomes) == 1
    assert outcomes[0].failure is FailureKind.ADAPTER_ERROR
    assert outcomes[0].report is None


def test_new_session_mode_collects_artifacts_then_opens_session(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(artifacts_per_submission=2)

    outcomes = BatchDriver(surface=surface, clock=clock).deliver(
        MessageBatch.build(["cat", "dog"]),
        BatchOptions(mode=DeliveryMode.NEW_SESSION_PER_ITEM, pacing_seconds=1),
    )

    assert [outcome.artifacts_collected for outcome in outcomes] == [2, 2]
    assert surface.events == [
        "submit:cat",
        "download:artifact-1",
        "download:artifact-2",
        "new_session",
        "submit:dog",
        "download:artifact-3",
        "download:artifact-4",
        "new_session",
    ]
    # Settle time wins over a shorter pacing.
    assert clock.sleeps == [3.0]


def test_new_session_mode_uses_pacing_when_longer_than_settle(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(artifacts_per_submission=1)

    BatchDriver(surface=surface, clock=clock).deliver(
        MessageBatch.build(["cat", "dog"]),
        BatchOptions(mode=DeliveryMode.NEW_SESSION_PER_ITEM, pacing_seconds=20),
    )

    assert clock.sleeps == [20.0]


def test_new_session_mode_fails_when_no_artifact_appears(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(artifacts_per_submission=0)

    outcomes = BatchDriver(surface=surface, clock=clock).deliver(
        MessageBatch.build(["cat", "dog"]),
        BatchOptions(
            mode=DeliveryMode.NEW_SESSION_PER_ITEM,
            artifact_poll_interval_ms=500,
            artifact_timeout_seconds=1,
        ),
    )

    assert len(outcomes) == 1
    assert outcomes[0].accepted is False
    assert outcomes[0].failure is FailureKind.TIMEOUT
    assert outcomes[0].report is not None
    assert surface.submissions == ["cat"]
    assert surface.new_sessions == 0


def test_new_session_mode_ignores_artifacts_present_before_submit(clock: SimulatedClock) -> None:
    surface = ScriptedSurface(artifacts_per_submission=1)
    driver = BatchDriver(surface=surface, clock=clock)
    driver.deliver(MessageBatch.build(["warmup"]))

    outcomes = driver.deliver(
        MessageBatch.build(["cat"]),
        BatchOptions(mode=DeliveryMode.NEW_SESSION_PER_ITEM),
    )

    assert outcomes[0].artifacts_collected == 1
    assert surface.downloads == ["artifact-2"]
