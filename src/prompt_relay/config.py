"""Runtime configuration for browser surfaces and delivery options."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from pathlib import Path

from prompt_relay.delivery.errors import ConfigurationError
from prompt_relay.delivery.models import BatchOptions, DeliveryMode, SubmitOptions

DEFAULT_SURFACE_URL = "https://chatgpt.com/"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(slots=True)
class BrowserSettings:
    """How to reach the live chat surface."""

    url: str = DEFAULT_SURFACE_URL
    cdp_url: str | None = None
    headed: bool = True
    profile_dir: Path | None = None
    download_dir: Path = Path("downloads")
    navigation_timeout_ms: int = 60_000


@dataclass(slots=True)
class DeliverySettings:
    """Default polling, pacing and collection options."""

    poll_interval_ms: int = 100
    pre_submit_delay_ms: int = 0
    timeout_seconds: int = 3600
    pacing_seconds: int = 30
    repeat_count: int = 10
    mode: str = DeliveryMode.CONTINUOUS.value
    retry_on_busy: bool = True
    busy_cooldown_seconds: float = 1.2
    artifact_poll_interval_ms: int = 300
    artifact_timeout_seconds: int = 3600
    new_session_min_settle_seconds: float = 3.0
    burst_size: int = 10
    burst_pause_seconds: float = 1.1

    def submit_options(
        self,
        *,
        poll_interval_ms: int | None = None,
        pre_submit_delay_ms: int | None = None,
        timeout_seconds: int | None = None,
    ) -> SubmitOptions:
        """Build per-call submit options, CLI overrides winning over defaults."""

        return SubmitOptions(
            poll_interval_ms=_pick(poll_interval_ms, self.poll_interval_ms),
            pre_submit_delay_ms=_pick(pre_submit_delay_ms, self.pre_submit_delay_ms),
            timeout_seconds=_pick(timeout_seconds, self.timeout_seconds),
            retry_on_busy=self.retry_on_busy,
            busy_cooldown_seconds=self.busy_cooldown_seconds,
        )

    def batch_options(
        self,
        *,
        mode: str | None = None,
        pacing_seconds: int | None = None,
        submit: SubmitOptions | None = None,
    ) -> BatchOptions:
        return BatchOptions(
            mode=DeliveryMode.parse(mode or self.mode),
            pacing_seconds=_pick(pacing_seconds, self.pacing_seconds),
            submit=submit or self.submit_options(),
            artifact_poll_interval_ms=self.artifact_poll_interval_ms,
            artifact_timeout_seconds=self.artifact_timeout_seconds,
            new_session_min_settle_seconds=self.new_session_min_settle_seconds,
        )


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    browser: BrowserSettings = field(default_factory=BrowserSettings)
    delivery: DeliverySettings = field(default_factory=DeliverySettings)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``PROMPT_RELAY_*`` environment variables."""

        profile_dir = os.getenv("PROMPT_RELAY_PROFILE_DIR", "").strip()
        cdp_url = os.getenv("PROMPT_RELAY_CDP_URL", "").strip()
        return cls(
            browser=BrowserSettings(
                url=os.getenv("PROMPT_RELAY_URL", DEFAULT_SURFACE_URL),
                cdp_url=cdp_url or None,
                headed=_env_bool("PROMPT_RELAY_HEADED", default=True),
                profile_dir=Path(profile_dir) if profile_dir else None,
                download_dir=Path(os.getenv("PROMPT_RELAY_DOWNLOAD_DIR", "downloads")),
                navigation_timeout_ms=_env_int("PROMPT_RELAY_NAVIGATION_TIMEOUT_MS", 60_000),
            ),
            delivery=DeliverySettings(
                poll_interval_ms=_env_int("PROMPT_RELAY_POLL_INTERVAL_MS", 100),
                pre_submit_delay_ms=_env_int("PROMPT_RELAY_PRE_SUBMIT_DELAY_MS", 0),
                timeout_seconds=_env_int("PROMPT_RELAY_TIMEOUT_SECONDS", 3600),
                pacing_seconds=_env_int("PROMPT_RELAY_PACING_SECONDS", 30),
                repeat_count=_env_int("PROMPT_RELAY_REPEAT_COUNT", 10),
                mode=os.getenv("PROMPT_RELAY_MODE", DeliveryMode.CONTINUOUS.value),
                retry_on_busy=_env_bool("PROMPT_RELAY_RETRY_ON_BUSY", default=True),
                busy_cooldown_seconds=_env_float("PROMPT_RELAY_BUSY_COOLDOWN_SECONDS", 1.2),
                artifact_poll_interval_ms=_env_int("PROMPT_RELAY_ARTIFACT_POLL_INTERVAL_MS", 300),
                artifact_timeout_seconds=_env_int("PROMPT_RELAY_ARTIFACT_TIMEOUT_SECONDS", 3600),
                new_session_min_settle_seconds=_env_float(
                    "PROMPT_RELAY_NEW_SESSION_SETTLE_SECONDS",
                    3.0,
                ),
                burst_size=_env_int("PROMPT_RELAY_BURST_SIZE", 10),
                burst_pause_seconds=_env_float("PROMPT_RELAY_BURST_PAUSE_SECONDS", 1.1),
            ),
            log_level=os.getenv("PROMPT_RELAY_LOG_LEVEL", "INFO").strip().upper(),
        )

    def validate(self) -> None:
        """Raise ConfigurationError for values the poll loops cannot work with."""

        delivery = self.delivery
        if delivery.poll_interval_ms <= 0:
            raise ConfigurationError("PROMPT_RELAY_POLL_INTERVAL_MS must be > 0.")
        if delivery.artifact_poll_interval_ms <= 0:
            raise ConfigurationError("PROMPT_RELAY_ARTIFACT_POLL_INTERVAL_MS must be > 0.")
        if delivery.timeout_seconds <= 0:
            raise ConfigurationError("PROMPT_RELAY_TIMEOUT_SECONDS must be > 0.")
        if delivery.artifact_timeout_seconds <= 0:
            raise ConfigurationError("PROMPT_RELAY_ARTIFACT_TIMEOUT_SECONDS must be > 0.")
        if delivery.pacing_seconds < 0:
            raise ConfigurationError("PROMPT_RELAY_PACING_SECONDS must be >= 0.")
        if delivery.pre_submit_delay_ms < 0:
            raise ConfigurationError("PROMPT_RELAY_PRE_SUBMIT_DELAY_MS must be >= 0.")
        if delivery.repeat_count < 0:
            raise ConfigurationError("PROMPT_RELAY_REPEAT_COUNT must be >= 0.")
        if delivery.burst_size <= 0:
            raise ConfigurationError("PROMPT_RELAY_BURST_SIZE must be > 0.")
        DeliveryMode.parse(delivery.mode)
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid PROMPT_RELAY_LOG_LEVEL {self.log_level!r}. "
                f"Expected one of: {', '.join(LOG_LEVELS)}.",
            )


def coerce_whole_number(name: str, value: object) -> int:
    """Accept finite numbers (or numeric strings) and truncate them to int."""

    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}.")
    if isinstance(value, int):
        return value
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as error:
        raise ConfigurationError(f"{name} must be a number, got {value!r}.") from error
    if not math.isfinite(number):
        raise ConfigurationError(f"{name} must be finite, got {value!r}.")
    return math.trunc(number)


def _pick(override: int | None, default: int) -> int:
    return default if override is None else override


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return coerce_whole_number(name, value.strip())


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError as error:
        raise ConfigurationError(f"Invalid float value for {name}: {value!r}") from error
    if not math.isfinite(number) or number < 0:
        raise ConfigurationError(f"{name} must be a finite non-negative number, got {value!r}.")
    return number


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"Invalid boolean value for {name}: {value!r}")
