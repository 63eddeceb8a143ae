"""Sequential batch delivery with per-mode post-item behavior."""

from __future__ import annotations

import logging

from prompt_relay.delivery.artifacts import ArtifactCollector
from prompt_relay.delivery.errors import AdapterError, DeliveryError, DeliveryTimeoutError
from prompt_relay.delivery.models import (
    ArtifactSnapshot,
    BatchOptions,
    DeliveryMode,
    DeliveryOutcome,
    FailureKind,
    SubmitReport,
)
from prompt_relay.delivery.source import MessageBatch
from prompt_relay.delivery.submitter import Submitter
from prompt_relay.delivery.timing import Clock, MonotonicClock
from prompt_relay.surface.base import SurfaceAdapter

logger = logging.getLogger(__name__)


class BatchDriver:
    """Delivers batch items one at a time and stops at the first failure.

    Items are never submitted concurrently: busy detection assumes a single
    outstanding submission on the surface.
    """

    def __init__(
        self,
        *,
        surface: SurfaceAdapter,
        clock: Clock | None = None,
        submitter: Submitter | None = None,
        collector: ArtifactCollector | None = None,
    ) -> None:
        self.surface = surface
        self.clock = clock or MonotonicClock()
        self.submitter = submitter or Submitter(surface=surface, clock=self.clock)
        self.collector = collector or ArtifactCollector(surface=surface, clock=self.clock)

    def deliver(
        self,
        batch: MessageBatch,
        options: BatchOptions | None = None,
    ) -> list[DeliveryOutcome]:
        """Deliver the selected range; the last outcome is the failure, if any."""

        options = options or BatchOptions()
        mode = DeliveryMode.parse(options.mode)
        items = batch.selected
        outcomes: list[DeliveryOutcome] = []
        if not items:
            logger.info("Batch range [%d, %d) is empty; nothing to send.", batch.start, batch.stop)
            return outcomes

        total = len(items)
        for position, (index, message) in enumerate(items, start=1):
            is_last = position == total
            outcome = self._deliver_item(
                index=index,
                message=message,
                mode=mode,
                options=options,
            )
            outcomes.append(outcome)
            if outcome.failed:
                logger.error(
                    "Stopping batch at item %d/%d (index %d): %s",
                    position,
                    total,
                    index,
                    outcome.error_summary,
                )
                break
            logger.info("Message sent (%d/%d).", position, total)
            if not is_last:
                self._pause_between_items(mode=mode, options=options)
        return outcomes

    def _deliver_item(
        self,
        *,
        index: int,
        message: str,
        mode: DeliveryMode,
        options: BatchOptions,
    ) -> DeliveryOutcome:
        snapshot = (
            self.collector.snapshot()
            if mode is DeliveryMode.NEW_SESSION_PER_ITEM
            else ArtifactSnapshot()
        )
        try:
            report = self.submitter.submit(message, options.submit)
        except DeliveryError as error:
            return _failed_outcome(index=index, message=message, error=error)

        outcome = DeliveryOutcome(index=index, message=message, accepted=True, report=report)
        if mode is DeliveryMode.CONTINUOUS:
            return outcome

        try:
            fresh = self.collector.wait_for_new_artifacts(
                snapshot,
                poll_interval_ms=options.artifact_poll_interval_ms,
                timeout_seconds=options.artifact_timeout_seconds,
            )
            outcome.artifacts_collected = self.collector.click_all(fresh)
            self.surface.open_new_session()
        except DeliveryError as error:
            return _failed_outcome(index=index, message=message, error=error, report=report)
        logger.info(
            "Collected %d artifact(s) for index %d and opened a new session",
            outcome.artifacts_collected,
            index,
        )
        return outcome

    def _pause_between_items(self, *, mode: DeliveryMode, options: BatchOptions) -> None:
        if mode is DeliveryMode.CONTINUOUS:
            seconds = float(options.pacing_seconds)
        else:
            seconds = max(options.new_session_min_settle_seconds, float(options.pacing_seconds))
        logger.info("Waiting %g seconds before the next send...", seconds)
        self.clock.sleep(seconds)


def _failed_outcome(
    *,
    index: int,
    message: str,
    error: DeliveryError,
    report: SubmitReport | None = None,
) -> DeliveryOutcome:
    if isinstance(error, DeliveryTimeoutError):
        failure = FailureKind.TIMEOUT
    elif isinstance(error, AdapterError):
        failure = FailureKind.ADAPTER_ERROR
    else:
        raise error
    return DeliveryOutcome(
        index=index,
        message=message,
        accepted=False,
        failure=failure,
        error_summary=str(error),
        report=report,
    )
