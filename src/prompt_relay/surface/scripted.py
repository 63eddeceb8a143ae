"""Deterministic in-memory surface for dry runs and tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from prompt_relay.delivery.errors import AdapterError
from prompt_relay.surface.base import ControlHandle

logger = logging.getLogger(__name__)

EDITOR = ControlHandle(key="editor", label="editor")
SUBMIT = ControlHandle(key="submit", label="send button")
RETRY = ControlHandle(key="retry", label="retry button")


@dataclass(slots=True)
class ScriptedSurface:
    """Surface that follows a fixed script instead of a live page.

    Each accepted submission makes the surface busy for ``busy_polls`` checks
    and publishes ``artifacts_per_submission`` download controls.  The submit
    control stays disabled for the first ``submit_ready_after`` readiness
    checks of every submission.
    """

    initial_busy_polls: int = 0
    busy_polls: int = 0
    submit_ready_after: int = 0
    artifacts_per_submission: int = 0
    editor_present: bool = True
    retry_available: bool = False
    retry_clears_busy: bool = True
    submissions: list[str] = field(default_factory=list)
    downloads: list[str] = field(default_factory=list)
    events: list[str] = field(default_factory=list)
    editor_text: str = ""
    writes: int = 0
    retry_presses: int = 0
    new_sessions: int = 0
    _busy_remaining: int = field(default=0, init=False, repr=False)
    _not_ready_remaining: int = field(default=0, init=False, repr=False)
    _artifacts: list[ControlHandle] = field(default_factory=list, init=False, repr=False)
    _artifact_seq: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self._busy_remaining = self.initial_busy_polls
        self._not_ready_remaining = self.submit_ready_after

    def find_editor(self) -> ControlHandle | None:
        return EDITOR if self.editor_present else None

    def write_content(self, handle: ControlHandle, text: str) -> None:
        if handle != EDITOR or not self.editor_present:
            raise AdapterError("Editor control is gone.")
        self.editor_text = text
        self.writes += 1

    def find_submit_control(self) -> ControlHandle | None:
        return SUBMIT

    def is_enabled(self, handle: ControlHandle) -> bool:
        if handle == SUBMIT:
            if not self.editor_text or self._busy_remaining > 0:
                return False
            if self._not_ready_remaining > 0:
                self._not_ready_remaining -= 1
                return False
            return True
        return True

    def actuate(self, handle: ControlHandle) -> None:
        if handle == SUBMIT:
            self._accept_submission()
        elif handle == RETRY:
            self.retry_presses += 1
            self.events.append("retry")
            if self.retry_clears_busy:
                self._busy_remaining = 0
        elif handle in self._artifacts:
            self.downloads.append(handle.key)
            self.events.append(f"download:{handle.key}")
        else:
            raise AdapterError(f"Unknown control {handle.key!r}.")

    def is_busy(self) -> bool:
        if self._busy_remaining > 0:
            self._busy_remaining -= 1
            return True
        return False

    def find_retry_control(self) -> ControlHandle | None:
        return RETRY if self.retry_available else None

    def list_artifact_controls(self) -> list[ControlHandle]:
        return list(self._artifacts)

    def open_new_session(self) -> None:
        self.new_sessions += 1
        self.events.append("new_session")
        self._artifacts.clear()
        self.editor_text = ""

    def _accept_submission(self) -> None:
        self.submissions.append(self.editor_text)
        self.events.append(f"submit:{self.editor_text}")
        logger.debug("Scripted surface accepted %r", self.editor_text)
        self.editor_text = ""
        self._busy_remaining = self.busy_polls
        self._not_ready_remaining = self.submit_ready_after
        for _ in range(self.artifacts_per_submission):
            self._artifact_seq += 1
            key = f"artifact-{self._artifact_seq}"
            self._artifacts.append(ControlHandle(key=key, label=f"download {key}"))
