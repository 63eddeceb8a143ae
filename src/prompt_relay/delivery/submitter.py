"""Single-message submission state machine."""

from __future__ import annotations

import logging

from prompt_relay.delivery.errors import AdapterError, DeliveryTimeoutError
from prompt_relay.delivery.models import SubmitOptions, SubmitReport, SubmitState
from prompt_relay.delivery.timing import Clock, Deadline, MonotonicClock
from prompt_relay.surface.base import ControlHandle, SurfaceAdapter

logger = logging.getLogger(__name__)


class Submitter:
    """Drives one message through the surface until it is accepted.

    The surface reports no completion, so the loop keeps re-asserting the
    intended content after every wait: content written while the surface is
    busy may be reset or ignored.  Busy handling (retry control + cooldown) is
    the only built-in retry and is bounded by the call deadline alone.
    """

    def __init__(self, *, surface: SurfaceAdapter, clock: Clock | None = None) -> None:
        self.surface = surface
        self.clock = clock or MonotonicClock()

    def submit(self, message: str, options: SubmitOptions | None = None) -> SubmitReport:
        """Submit ``message`` once.

        Raises:
            AdapterError: the editor or submit control is structurally missing.
            DeliveryTimeoutError: the submit control never became available in time.
        """

        options = options or SubmitOptions()
        poll_seconds = options.poll_interval_ms / 1000
        deadline = Deadline.after(self.clock, options.timeout_seconds)
        report = SubmitReport()
        state = SubmitState.POLLING

        while state is not SubmitState.DONE:
            if deadline.expired():
                self._log_transition(state, SubmitState.FAILED)
                raise DeliveryTimeoutError(
                    f"Submit control did not become available within "
                    f"{options.timeout_seconds}s.",
                    waited_seconds=deadline.elapsed(),
                )

            if state is SubmitState.POLLING:
                report.polls += 1
                next_state = (
                    SubmitState.BUSY
                    if self.surface.is_busy()
                    else SubmitState.AWAITING_SUBMIT_ENABLED
                )
            elif state is SubmitState.BUSY:
                report.busy_polls += 1
                if options.retry_on_busy and self._press_retry(options):
                    report.retry_actuations += 1
                self.clock.sleep(poll_seconds)
                next_state = SubmitState.POLLING
            elif state is SubmitState.AWAITING_SUBMIT_ENABLED:
                self._write(message)
                if self._ready_submit_control() is not None:
                    next_state = SubmitState.SUBMITTING
                else:
                    self.clock.sleep(poll_seconds)
                    next_state = SubmitState.POLLING
            elif state is SubmitState.SUBMITTING:
                next_state = self._actuate_submit(message, options, deadline)
            else:
                raise RuntimeError(f"Unexpected submit state: {state.value}")

            self._log_transition(state, next_state)
            state = next_state

        report.elapsed_seconds = deadline.elapsed()
        logger.info(
            "Message accepted after %.2fs (polls=%d busy=%d retries=%d)",
            report.elapsed_seconds,
            report.polls,
            report.busy_polls,
            report.retry_actuations,
        )
        return report

    def _actuate_submit(
        self,
        message: str,
        options: SubmitOptions,
        deadline: Deadline,
    ) -> SubmitState:
        remaining = options.pre_submit_delay_ms / 1000 - deadline.elapsed()
        if remaining > 0:
            logger.debug("Holding submission %.2fs for pre-submit delay", remaining)
            self.clock.sleep(remaining)

        # The settle wait may overlap a surface-side state change.
        if self.surface.is_busy():
            return SubmitState.BUSY

        self._write(message)
        control = self._ready_submit_control()
        if control is None:
            raise AdapterError("Submit control is not available.")
        self.surface.actuate(control)
        return SubmitState.DONE

    def _write(self, message: str) -> None:
        editor = self.surface.find_editor()
        if editor is None:
            raise AdapterError("Editor control not found.")
        self.surface.write_content(editor, message)

    def _ready_submit_control(self) -> ControlHandle | None:
        control = self.surface.find_submit_control()
        if control is None or not self.surface.is_enabled(control):
            return None
        return control

    def _press_retry(self, options: SubmitOptions) -> bool:
        control = self.surface.find_retry_control()
        if control is None or not self.surface.is_enabled(control):
            return False
        logger.info("Surface busy; pressing %s", control.label or "retry control")
        self.surface.actuate(control)
        self.clock.sleep(options.busy_cooldown_seconds)
        return True

    @staticmethod
    def _log_transition(current: SubmitState, following: SubmitState) -> None:
        if current is not following:
            logger.debug("submit state %s -> %s", current.value, following.value)
