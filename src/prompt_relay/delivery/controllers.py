"""Controllers for delivery CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from prompt_relay.config import Settings
from prompt_relay.delivery.artifacts import ArtifactCollector
from prompt_relay.delivery.batch import BatchDriver
from prompt_relay.delivery.errors import DeliveryError
from prompt_relay.delivery.models import DeliveryOutcome, SubmitOptions
from prompt_relay.delivery.source import (
    DEFAULT_SEPARATOR,
    MessageBatch,
    read_message_file,
)
from prompt_relay.delivery.submitter import Submitter
from prompt_relay.delivery.timing import Clock, MonotonicClock, SimulatedClock
from prompt_relay.surface.base import SurfaceAdapter
from prompt_relay.surface.scripted import ScriptedSurface

logger = logging.getLogger(__name__)

SurfaceFactory = Callable[[Settings], AbstractContextManager[SurfaceAdapter]]


@dataclass(slots=True)
class SubmitOverrides:
    """Per-call polling overrides shared by every send command."""

    poll_interval_ms: int | None = None
    pre_submit_delay_ms: int | None = None
    timeout_seconds: int | None = None


@dataclass(slots=True)
class SendCommand:
    """CLI input for a single message."""

    message: str
    submit: SubmitOverrides = field(default_factory=SubmitOverrides)


@dataclass(slots=True)
class RepeatCommand:
    """CLI input for sending one message a fixed number of times."""

    message: str
    count: int | None = None
    pacing_seconds: int | None = None
    mode: str | None = None
    submit: SubmitOverrides = field(default_factory=SubmitOverrides)


@dataclass(slots=True)
class SendListCommand:
    """CLI input for a literal or delimited message list."""

    messages: str | list[str]
    separator: str = DEFAULT_SEPARATOR
    prefix: str = ""
    postfix: str = ""
    start: int | None = None
    stop: int | None = None
    pacing_seconds: int | None = None
    mode: str | None = None
    submit: SubmitOverrides = field(default_factory=SubmitOverrides)


@dataclass(slots=True)
class SendFileCommand:
    """CLI input for a message list read from a text file."""

    path: Path
    encoding: str = "utf-8"
    separator: str = DEFAULT_SEPARATOR
    prefix: str = ""
    postfix: str = ""
    start: int | None = None
    stop: int | None = None
    pacing_seconds: int | None = None
    mode: str | None = None
    submit: SubmitOverrides = field(default_factory=SubmitOverrides)


@dataclass(slots=True)
class CollectCommand:
    """CLI input for a standalone artifact collection pass."""

    burst_size: int | None = None


@dataclass(slots=True)
class DeliveryCliResult:
    """Report to render in CLI."""

    lines: list[str]
    success: bool


class DeliveryCliController:
    """Wires settings, surface and orchestrator together for each command."""

    def __init__(
        self,
        *,
        settings: Settings,
        surface_factory: SurfaceFactory | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.settings = settings
        self.surface_factory = surface_factory or browser_surface_factory
        self.clock = clock or MonotonicClock()

    @classmethod
    def dry_run(cls, *, settings: Settings) -> DeliveryCliController:
        """Controller backed by the scripted surface and a simulated clock."""

        return cls(
            settings=settings,
            surface_factory=scripted_surface_factory,
            clock=SimulatedClock(),
        )

    def send(self, command: SendCommand) -> DeliveryCliResult:
        options = self._submit_options(command.submit)
        with self.surface_factory(self.settings) as surface:
            try:
                report = Submitter(surface=surface, clock=self.clock).submit(
                    command.message,
                    options,
                )
            except DeliveryError as error:
                return DeliveryCliResult(lines=[f"Send failed: {error}"], success=False)
        return DeliveryCliResult(
            lines=[
                "Message sent: "
                f"polls={report.polls} busy_polls={report.busy_polls} "
                f"retries={report.retry_actuations} elapsed={report.elapsed_seconds:.2f}s",
            ],
            success=True,
        )

    def repeat(self, command: RepeatCommand) -> DeliveryCliResult:
        count = self.settings.delivery.repeat_count if command.count is None else command.count
        return self._deliver(
            MessageBatch.repeated(command.message, count),
            mode=command.mode,
            pacing_seconds=command.pacing_seconds,
            submit=command.submit,
        )

    def send_list(self, command: SendListCommand) -> DeliveryCliResult:
        batch = MessageBatch.build(
            command.messages,
            separator=command.separator,
            prefix=command.prefix,
            postfix=command.postfix,
            start=command.start,
            stop=command.stop,
        )
        return self._deliver(
            batch,
            mode=command.mode,
            pacing_seconds=command.pacing_seconds,
            submit=command.submit,
        )

    def send_file(self, command: SendFileCommand) -> DeliveryCliResult:
        text = read_message_file(command.path, encoding=command.encoding)
        return self.send_list(
            SendListCommand(
                messages=text,
                separator=command.separator,
                prefix=command.prefix,
                postfix=command.postfix,
                start=command.start,
                stop=command.stop,
                pacing_seconds=command.pacing_seconds,
                mode=command.mode,
                submit=command.submit,
            ),
        )

    def collect(self, command: CollectCommand) -> DeliveryCliResult:
        delivery = self.settings.delivery
        with self.surface_factory(self.settings) as surface:
            collector = ArtifactCollector(
                surface=surface,
                clock=self.clock,
                burst_size=command.burst_size or delivery.burst_size,
                burst_pause_seconds=delivery.burst_pause_seconds,
            )
            clicked = collector.collect_visible()
        if clicked == 0:
            return DeliveryCliResult(lines=["No artifacts found; nothing to collect."], success=True)
        return DeliveryCliResult(lines=[f"Collected artifacts: clicked={clicked}"], success=True)

    def _deliver(
        self,
        batch: MessageBatch,
        *,
        mode: str | None,
        pacing_seconds: int | None,
        submit: SubmitOverrides,
    ) -> DeliveryCliResult:
        delivery = self.settings.delivery
        options = delivery.batch_options(
            mode=mode,
            pacing_seconds=pacing_seconds,
            submit=self._submit_options(submit),
        )
        total = len(batch)
        if total == 0:
            return DeliveryCliResult(
                lines=[
                    f"Nothing to send: range [{batch.start}, {batch.stop}) "
                    f"of {len(batch.messages)} message(s) is empty.",
                ],
                success=True,
            )

        with self.surface_factory(self.settings) as surface:
            collector = ArtifactCollector(
                surface=surface,
                clock=self.clock,
                burst_size=delivery.burst_size,
                burst_pause_seconds=delivery.burst_pause_seconds,
            )
            driver = BatchDriver(surface=surface, clock=self.clock, collector=collector)
            outcomes = driver.deliver(batch, options)

        lines = [_render_outcome(outcome) for outcome in outcomes]
        accepted = sum(1 for outcome in outcomes if outcome.accepted)
        lines.append(
            f"Batch finished: accepted={accepted}/{total} mode={options.mode.value} "
            f"range=[{batch.start}, {batch.stop})",
        )
        return DeliveryCliResult(lines=lines, success=accepted == total)

    def _submit_options(self, overrides: SubmitOverrides) -> SubmitOptions:
        return self.settings.delivery.submit_options(
            poll_interval_ms=overrides.poll_interval_ms,
            pre_submit_delay_ms=overrides.pre_submit_delay_ms,
            timeout_seconds=overrides.timeout_seconds,
        )


def browser_surface_factory(settings: Settings) -> AbstractContextManager[SurfaceAdapter]:
    # Playwright is only loaded when a live browser is actually requested.
    from prompt_relay.surface.browser import open_browser_surface  # noqa: PLC0415

    return open_browser_surface(settings.browser)


@contextmanager
def scripted_surface_factory(settings: Settings) -> Iterator[SurfaceAdapter]:
    """Scripted surface that behaves like a slow but healthy chat page."""

    surface = ScriptedSurface(busy_polls=2, submit_ready_after=1, artifacts_per_submission=1)
    logger.info("Dry run: using scripted surface instead of %s", settings.browser.url)
    yield surface
    logger.info(
        "Dry run finished: submissions=%d downloads=%d new_sessions=%d",
        len(surface.submissions),
        len(surface.downloads),
        surface.new_sessions,
    )


def _render_outcome(outcome: DeliveryOutcome) -> str:
    if outcome.accepted:
        return (
            f"[{outcome.index}] sent artifacts={outcome.artifacts_collected} "
            f"message={_preview(outcome.message)}"
        )
    failure = outcome.failure.value if outcome.failure is not None else "unknown"
    return f"[{outcome.index}] failed ({failure}): {outcome.error_summary}"


def _preview(message: str, limit: int = 60) -> str:
    flat = " ".join(message.split())
    if len(flat) <= limit:
        return repr(flat)
    return repr(flat[: limit - 3] + "...")
