"""Error kinds raised by delivery orchestration."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid option, mode or message source. Never retried."""


class DeliveryError(RuntimeError):
    """Delivery failure that halts the current batch."""


class AdapterError(DeliveryError):
    """A required surface control could not be located or operated."""


class DeliveryTimeoutError(DeliveryError):
    """A poll loop exceeded its deadline without reaching the target state."""

    def __init__(self, message: str, *, waited_seconds: float) -> None:
        super().__init__(message)
        self.waited_seconds = waited_seconds
