"""Domain models for message delivery."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from prompt_relay.delivery.errors import ConfigurationError
from prompt_relay.surface.base import ControlHandle


class DeliveryMode(str, Enum):
    """Policy applied between successive batch items."""

    CONTINUOUS = "continuous"
    NEW_SESSION_PER_ITEM = "new_session_per_item"

    @classmethod
    def parse(cls, value: str | DeliveryMode) -> DeliveryMode:
        if isinstance(value, DeliveryMode):
            return value
        normalized = str(value).strip().lower().replace("-", "_")
        for mode in cls:
            if mode.value == normalized:
                return mode
        allowed = ", ".join(mode.value for mode in cls)
        raise ConfigurationError(f"Unknown delivery mode {value!r}. Expected one of: {allowed}.")


class FailureKind(str, Enum):
    """Normalized failure kinds recorded on outcomes."""

    TIMEOUT = "timeout"
    ADAPTER_ERROR = "adapter_error"


class SubmitState(str, Enum):
    """States of the single-submission poll loop."""

    POLLING = "polling"
    BUSY = "busy"
    AWAITING_SUBMIT_ENABLED = "awaiting_submit_enabled"
    SUBMITTING = "submitting"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ArtifactSnapshot:
    """Artifact control keys visible right before a submission."""

    keys: frozenset[str] = frozenset()

    @classmethod
    def capture(cls, handles: list[ControlHandle]) -> ArtifactSnapshot:
        return cls(keys=frozenset(handle.key for handle in handles))

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, ControlHandle) and handle.key in self.keys

    def __len__(self) -> int:
        return len(self.keys)


@dataclass(slots=True)
class SubmitOptions:
    """Per-call options for one submission."""

    poll_interval_ms: int = 100
    pre_submit_delay_ms: int = 0
    timeout_seconds: int = 3600
    retry_on_busy: bool = True
    busy_cooldown_seconds: float = 1.2


@dataclass(slots=True)
class BatchOptions:
    """Per-call options for driving a batch."""

    mode: DeliveryMode = DeliveryMode.CONTINUOUS
    pacing_seconds: int = 30
    submit: SubmitOptions = field(default_factory=SubmitOptions)
    artifact_poll_interval_ms: int = 300
    artifact_timeout_seconds: int = 3600
    new_session_min_settle_seconds: float = 3.0


@dataclass(slots=True)
class SubmitReport:
    """Telemetry of one accepted submission."""

    polls: int = 0
    busy_polls: int = 0
    retry_actuations: int = 0
    elapsed_seconds: float = 0.0


@dataclass(slots=True)
class DeliveryOutcome:
    """Result for one batch position."""

    index: int
    message: str
    accepted: bool
    failure: FailureKind | None = None
    error_summary: str | None = None
    artifacts_collected: int = 0
    report: SubmitReport | None = None

    @property
    def failed(self) -> bool:
        return not self.accepted
