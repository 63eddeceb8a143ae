"""Artifact (download control) detection and throttled collection."""

from __future__ import annotations

import logging

from prompt_relay.delivery.errors import DeliveryTimeoutError
from prompt_relay.delivery.models import ArtifactSnapshot
from prompt_relay.delivery.timing import Clock, Deadline, MonotonicClock
from prompt_relay.surface.base import ControlHandle, SurfaceAdapter

logger = logging.getLogger(__name__)

DEFAULT_BURST_SIZE = 10
DEFAULT_BURST_PAUSE_SECONDS = 1.1


class ArtifactCollector:
    """Waits for newly appeared artifact controls and clicks them in bursts."""

    def __init__(
        self,
        *,
        surface: SurfaceAdapter,
        clock: Clock | None = None,
        burst_size: int = DEFAULT_BURST_SIZE,
        burst_pause_seconds: float = DEFAULT_BURST_PAUSE_SECONDS,
    ) -> None:
        if burst_size <= 0:
            raise ValueError("burst_size must be > 0.")
        self.surface = surface
        self.clock = clock or MonotonicClock()
        self.burst_size = burst_size
        self.burst_pause_seconds = burst_pause_seconds

    def snapshot(self) -> ArtifactSnapshot:
        """Capture currently visible artifact controls as a diff baseline."""

        return ArtifactSnapshot.capture(self.surface.list_artifact_controls())

    def visible(self) -> list[ControlHandle]:
        """Currently visible and enabled artifact controls, in surface order."""

        return [
            handle
            for handle in self.surface.list_artifact_controls()
            if self.surface.is_enabled(handle)
        ]

    def wait_for_new_artifacts(
        self,
        snapshot: ArtifactSnapshot,
        *,
        poll_interval_ms: int = 300,
        timeout_seconds: int = 3600,
    ) -> list[ControlHandle]:
        """Return as soon as at least one control absent from ``snapshot`` shows up."""

        deadline = Deadline.after(self.clock, timeout_seconds)
        while not deadline.expired():
            fresh = [handle for handle in self.visible() if handle not in snapshot]
            if fresh:
                logger.info(
                    "Found %d new artifact(s) after %.1fs",
                    len(fresh),
                    deadline.elapsed(),
                )
                return fresh
            self.clock.sleep(poll_interval_ms / 1000)

        raise DeliveryTimeoutError(
            f"No new artifacts appeared within {timeout_seconds}s.",
            waited_seconds=deadline.elapsed(),
        )

    def click_all(self, handles: list[ControlHandle]) -> int:
        """Actuate every handle, pausing between bursts. Returns the click count."""

        if not handles:
            logger.info("No artifacts found; nothing to collect.")
            return 0

        logger.info("Collecting %d artifact(s)", len(handles))
        clicked = 0
        for handle in handles:
            logger.debug("Clicking artifact %d: %s", clicked + 1, handle.label or handle.key)
            self.surface.actuate(handle)
            clicked += 1
            if clicked % self.burst_size == 0 and clicked < len(handles):
                self.clock.sleep(self.burst_pause_seconds)
        return clicked

    def collect_visible(self) -> int:
        """Click every currently visible artifact control."""

        return self.click_all(self.visible())
