"""Message batch resolution: literal lists, delimited strings and text files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from prompt_relay.delivery.errors import ConfigurationError

DEFAULT_SEPARATOR = "\n"
DEFAULT_REPEAT_COUNT = 10
TEXT_FILE_SUFFIXES: frozenset[str] = frozenset(
    {
        ".txt",
        ".md",
        ".markdown",
        ".csv",
        ".tsv",
        ".json",
        ".jsonl",
        ".xml",
        ".yml",
        ".yaml",
        ".toml",
        ".ini",
        ".cfg",
        ".conf",
        ".log",
    },
)


@dataclass(frozen=True, slots=True)
class MessageBatch:
    """Ordered messages with a selected half-open range ``[start, stop)``."""

    messages: tuple[str, ...]
    start: int = 0
    stop: int | None = None

    def __post_init__(self) -> None:
        # Bounds are stored normalized; raw user bounds go through ``build``.
        length = len(self.messages)
        stop = length if self.stop is None else self.stop
        if not 0 <= self.start <= stop <= length:
            raise ConfigurationError(
                f"Range [{self.start}, {stop}) is out of bounds for {length} message(s).",
            )
        object.__setattr__(self, "stop", stop)

    @classmethod
    def build(  # noqa: PLR0913
        cls,
        raw: object,
        *,
        separator: str = DEFAULT_SEPARATOR,
        prefix: str = "",
        postfix: str = "",
        start: int | None = None,
        stop: int | None = None,
    ) -> MessageBatch:
        """Resolve ``raw`` and apply decoration; the range refers to the resolved list."""

        messages = tuple(
            f"{prefix}{message}{postfix}" for message in resolve_messages(raw, separator)
        )
        first, last = normalize_range(len(messages), start, stop)
        return cls(messages=messages, start=first, stop=last)

    @classmethod
    def repeated(cls, message: str, count: int = DEFAULT_REPEAT_COUNT) -> MessageBatch:
        if count < 0:
            raise ConfigurationError(f"Repeat count must be >= 0, got {count}.")
        return cls(messages=(str(message),) * count)

    @property
    def selected(self) -> list[tuple[int, str]]:
        """(index, message) pairs inside the range, index relative to the full list."""

        return [(index, self.messages[index]) for index in range(self.start, self.stop or 0)]

    def __len__(self) -> int:
        return max(0, (self.stop or 0) - self.start)


def resolve_messages(raw: object, separator: str = DEFAULT_SEPARATOR) -> list[str]:
    """Turn a literal list or a delimited string into the raw message list."""

    if isinstance(raw, str):
        if not separator:
            raise ConfigurationError("Message separator must not be empty.")
        return raw.split(separator)
    if isinstance(raw, (list, tuple)):
        return [str(item) for item in raw]
    raise ConfigurationError(
        f"Expected a list of messages or a delimited string, got {type(raw).__name__}.",
    )


def normalize_range(length: int, start: int | None, stop: int | None) -> tuple[int, int]:
    """Normalize ``[start, stop)`` against a list of ``length`` items.

    Negative indices count from the end.  A ``stop`` of exactly zero means
    "end of list", the same as omitting it, so callers that leave the upper
    bound at its zero default still get the whole tail.
    """

    first = 0 if start is None else start
    last = length if stop is None or stop == 0 else stop
    if first < 0:
        first += length
    if last < 0:
        last += length
    first = min(max(first, 0), length)
    last = min(max(last, 0), length)
    return first, max(first, last)


def read_message_file(path: Path, encoding: str = "utf-8") -> str:
    """Read a user-chosen text file holding delimited messages."""

    if path.suffix.lower() not in TEXT_FILE_SUFFIXES:
        allowed = " ".join(sorted(TEXT_FILE_SUFFIXES))
        raise ConfigurationError(
            f"Unsupported message file type {path.suffix or '<none>'!r} for {path}. "
            f"Expected one of: {allowed}",
        )
    try:
        return path.read_text(encoding=encoding)
    except FileNotFoundError as error:
        raise ConfigurationError(f"Message file not found: {path}") from error
    except UnicodeDecodeError as error:
        raise ConfigurationError(f"Message file is not valid {encoding} text: {path}") from error
