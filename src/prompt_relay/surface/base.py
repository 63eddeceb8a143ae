"""Surface adapter interface consumed by delivery orchestration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(frozen=True, slots=True)
class ControlHandle:
    """Opaque reference to one interactive control on the surface.

    Identity is the adapter-assigned ``key``; the native object is carried for
    the adapter's own use and never takes part in equality.
    """

    key: str
    label: str = ""
    native: Any = field(default=None, compare=False, hash=False, repr=False)


class SurfaceAdapter(Protocol):
    """Capabilities the orchestrator needs from a live surface."""

    def find_editor(self) -> ControlHandle | None:
        """Return the editable input control, if present."""

    def write_content(self, handle: ControlHandle, text: str) -> None:
        """Replace the editor content with ``text``; raise AdapterError on failure."""

    def find_submit_control(self) -> ControlHandle | None:
        """Return the submit control, if present."""

    def is_enabled(self, handle: ControlHandle) -> bool:
        """Whether the control currently accepts actuation."""

    def actuate(self, handle: ControlHandle) -> None:
        """Click/press the control."""

    def is_busy(self) -> bool:
        """Whether the surface is still processing a previous submission."""

    def find_retry_control(self) -> ControlHandle | None:
        """Return the retry/regenerate control, if present."""

    def list_artifact_controls(self) -> list[ControlHandle]:
        """Return currently visible artifact (download) controls."""

    def open_new_session(self) -> None:
        """Start a fresh conversation on the surface."""
