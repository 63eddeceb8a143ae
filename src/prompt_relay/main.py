"""CLI entrypoint for prompt-relay."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import rich_click as click

from prompt_relay import __version__
from prompt_relay.config import LOG_LEVELS, Settings, coerce_whole_number
from prompt_relay.delivery.controllers import (
    CollectCommand,
    DeliveryCliController,
    DeliveryCliResult,
    RepeatCommand,
    SendCommand,
    SendFileCommand,
    SendListCommand,
    SubmitOverrides,
)
from prompt_relay.delivery.errors import ConfigurationError, DeliveryError
from prompt_relay.delivery.models import DeliveryMode

click.rich_click.USE_MARKDOWN = True
MODE_CHOICES = [mode.value for mode in DeliveryMode]


class WholeNumber(click.ParamType):
    """Finite number truncated to an integer; ``2.9`` becomes ``2``."""

    name = "number"

    def __init__(self, min_value: int | None = None) -> None:
        self.min_value = min_value

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> int:
        name = f"--{param.name.replace('_', '-')}" if param is not None and param.name else "value"
        try:
            number = coerce_whole_number(name, value)
        except ConfigurationError as error:
            self.fail(str(error), param, ctx)
        if self.min_value is not None and number < self.min_value:
            self.fail(f"{name} must be >= {self.min_value}, got {number}.", param, ctx)
        return number


def submit_options(command: Callable[..., Any]) -> Callable[..., Any]:
    """Polling options shared by every sending command."""

    command = click.option(
        "--timeout",
        "timeout_seconds",
        type=WholeNumber(min_value=1),
        default=None,
        help="Give up on one message after this many seconds. Default 3600.",
    )(command)
    command = click.option(
        "--delay-ms",
        "pre_submit_delay_ms",
        type=WholeNumber(min_value=0),
        default=None,
        help="Minimum settle time before the first send, in milliseconds. Default 0.",
    )(command)
    return click.option(
        "--interval-ms",
        "poll_interval_ms",
        type=WholeNumber(min_value=1),
        default=None,
        help="Poll interval while waiting for the send button, in milliseconds. Default 100.",
    )(command)


def batch_options(command: Callable[..., Any]) -> Callable[..., Any]:
    """Pacing and mode options shared by batch commands."""

    command = click.option(
        "--mode",
        type=click.Choice(MODE_CHOICES, case_sensitive=False),
        default=None,
        help="continuous: pace only. new_session_per_item: collect artifacts, then new chat.",
    )(command)
    return click.option(
        "--pacing",
        "pacing_seconds",
        type=WholeNumber(min_value=0),
        default=None,
        help="Seconds to wait between messages. Default 30.",
    )(command)


def list_options(command: Callable[..., Any]) -> Callable[..., Any]:
    """Separator, decoration and range options for list commands."""

    command = click.option(
        "--to",
        "stop",
        type=WholeNumber(),
        default=None,
        help="End of the half-open range. Negative counts from the end; 0 means the end.",
    )(command)
    command = click.option(
        "--from",
        "start",
        type=WholeNumber(),
        default=None,
        help="Start of the half-open range. Negative counts from the end.",
    )(command)
    command = click.option("--postfix", default="", help="Text appended to every message.")(
        command,
    )
    command = click.option("--prefix", default="", help="Text prepended to every message.")(
        command,
    )
    return click.option(
        "--separator",
        "--sep",
        default="\\n",
        show_default=True,
        help="Message separator. Escapes such as \\n and \\t are understood.",
    )(command)


@click.group()
@click.version_option(version=__version__, prog_name="prompt-relay")
@click.option(
    "--dry-run/--live",
    default=False,
    show_default=True,
    help="Use a scripted surface and simulated clock instead of a browser.",
)
@click.option("--url", default=None, help="Chat page URL. Defaults to PROMPT_RELAY_URL.")
@click.option(
    "--cdp-url",
    default=None,
    help="Attach to a running Chrome, e.g. http://127.0.0.1:9222.",
)
@click.option(
    "--headed",
    is_flag=True,
    default=False,
    help="Launch the browser with a window (overrides PROMPT_RELAY_HEADED).",
)
@click.option(
    "--headless",
    is_flag=True,
    default=False,
    help="Launch the browser without a window (overrides PROMPT_RELAY_HEADED).",
)
@click.option(
    "--profile-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Persistent browser profile directory (keeps the login).",
)
@click.option(
    "--download-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Where collected artifacts are saved.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level. Defaults to PROMPT_RELAY_LOG_LEVEL or INFO.",
)
@click.pass_context
def prompt_relay(  # noqa: PLR0913
    ctx: click.Context,
    dry_run: bool,
    url: str | None,
    cdp_url: str | None,
    headed: bool,
    headless: bool,
    profile_dir: Path | None,
    download_dir: Path | None,
    log_level: str | None,
) -> None:
    """Send messages to a chat web page reliably, one accepted submission at a time."""

    if headed and headless:
        raise click.UsageError("--headed and --headless are mutually exclusive.", ctx=ctx)
    try:
        settings = Settings.from_env()
        if url is not None:
            settings.browser.url = url
        if cdp_url is not None:
            settings.browser.cdp_url = cdp_url
        if headed or headless:
            settings.browser.headed = headed
        if profile_dir is not None:
            settings.browser.profile_dir = profile_dir
        if download_dir is not None:
            settings.browser.download_dir = download_dir
        if log_level is not None:
            settings.log_level = log_level.upper()
        settings.validate()
    except ConfigurationError as error:
        raise click.UsageError(str(error), ctx=ctx) from error

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if dry_run:
        ctx.obj = DeliveryCliController.dry_run(settings=settings)
    else:
        ctx.obj = DeliveryCliController(settings=settings)


@prompt_relay.command("send")
@click.argument("message")
@submit_options
@click.pass_obj
def send(
    controller: DeliveryCliController,
    message: str,
    poll_interval_ms: int | None,
    pre_submit_delay_ms: int | None,
    timeout_seconds: int | None,
) -> None:
    """Send one message once the page accepts input."""

    _run(
        lambda: controller.send(
            SendCommand(
                message=message,
                submit=SubmitOverrides(
                    poll_interval_ms=poll_interval_ms,
                    pre_submit_delay_ms=pre_submit_delay_ms,
                    timeout_seconds=timeout_seconds,
                ),
            ),
        ),
    )


@prompt_relay.command("repeat")
@click.argument("message")
@click.option(
    "--count",
    "-n",
    type=WholeNumber(min_value=0),
    default=None,
    help="How many times to send the message. Default 10.",
)
@batch_options
@submit_options
@click.pass_obj
def repeat(  # noqa: PLR0913
    controller: DeliveryCliController,
    message: str,
    count: int | None,
    pacing_seconds: int | None,
    mode: str | None,
    poll_interval_ms: int | None,
    pre_submit_delay_ms: int | None,
    timeout_seconds: int | None,
) -> None:
    """Send the same message a fixed number of times, e.g. "Thanks, continue."."""

    _run(
        lambda: controller.repeat(
            RepeatCommand(
                message=message,
                count=count,
                pacing_seconds=pacing_seconds,
                mode=mode,
                submit=SubmitOverrides(
                    poll_interval_ms=poll_interval_ms,
                    pre_submit_delay_ms=pre_submit_delay_ms,
                    timeout_seconds=timeout_seconds,
                ),
            ),
        ),
    )


@prompt_relay.command("send-list")
@click.argument("messages", nargs=-1, required=True)
@list_options
@batch_options
@submit_options
@click.pass_obj
def send_list(  # noqa: PLR0913
    controller: DeliveryCliController,
    messages: tuple[str, ...],
    separator: str,
    prefix: str,
    postfix: str,
    start: int | None,
    stop: int | None,
    pacing_seconds: int | None,
    mode: str | None,
    poll_interval_ms: int | None,
    pre_submit_delay_ms: int | None,
    timeout_seconds: int | None,
) -> None:
    """Send messages in order.

    One argument is split on the separator; several arguments are sent as a
    literal list.
    """

    raw: str | list[str] = messages[0] if len(messages) == 1 else list(messages)
    _run(
        lambda: controller.send_list(
            SendListCommand(
                messages=raw,
                separator=_unescape(separator),
                prefix=prefix,
                postfix=postfix,
                start=start,
                stop=stop,
                pacing_seconds=pacing_seconds,
                mode=mode,
                submit=SubmitOverrides(
                    poll_interval_ms=poll_interval_ms,
                    pre_submit_delay_ms=pre_submit_delay_ms,
                    timeout_seconds=timeout_seconds,
                ),
            ),
        ),
    )


@prompt_relay.command("send-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--encoding", default="utf-8", show_default=True, help="Text file encoding.")
@list_options
@batch_options
@submit_options
@click.pass_obj
def send_file(  # noqa: PLR0913
    controller: DeliveryCliController,
    path: Path,
    encoding: str,
    separator: str,
    prefix: str,
    postfix: str,
    start: int | None,
    stop: int | None,
    pacing_seconds: int | None,
    mode: str | None,
    poll_interval_ms: int | None,
    pre_submit_delay_ms: int | None,
    timeout_seconds: int | None,
) -> None:
    """Send messages read from a text file, split on the separator."""

    _run(
        lambda: controller.send_file(
            SendFileCommand(
                path=path,
                encoding=encoding,
                separator=_unescape(separator),
                prefix=prefix,
                postfix=postfix,
                start=start,
                stop=stop,
                pacing_seconds=pacing_seconds,
                mode=mode,
                submit=SubmitOverrides(
                    poll_interval_ms=poll_interval_ms,
                    pre_submit_delay_ms=pre_submit_delay_ms,
                    timeout_seconds=timeout_seconds,
                ),
            ),
        ),
    )


@prompt_relay.command("collect")
@click.option(
    "--burst-size",
    type=WholeNumber(min_value=1),
    default=None,
    help="Clicks per burst before a short pause. Default 10.",
)
@click.pass_obj
def collect(controller: DeliveryCliController, burst_size: int | None) -> None:
    """Click every visible download button on the page."""

    _run(lambda: controller.collect(CollectCommand(burst_size=burst_size)))


def _run(action: Callable[[], DeliveryCliResult]) -> None:
    try:
        result = action()
    except ConfigurationError as error:
        raise click.UsageError(str(error)) from error
    except DeliveryError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Delivery stopped before all messages were accepted.")


def _unescape(separator: str) -> str:
    return separator.replace("\\n", "\n").replace("\\t", "\t").replace("\\r", "\r")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    prompt_relay()
