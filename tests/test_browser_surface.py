from __future__ import annotations

from dataclasses import dataclass, field

import allure
import pytest
from playwright.sync_api import Error as PlaywrightError

from prompt_relay.delivery.batch import BatchDriver
from prompt_relay.delivery.errors import AdapterError
from prompt_relay.delivery.models import FailureKind
from prompt_relay.delivery.source import MessageBatch
from prompt_relay.delivery.timing import SimulatedClock
from prompt_relay.surface import browser
from prompt_relay.surface.browser import BrowserSurface
from prompt_relay.surface.selectors import SurfaceSelectors

pytestmark = [
    allure.epic("Delivery"),
    allure.feature("Browser Surface"),
]


@dataclass(eq=False)
class FakeElement:
    text: str = ""
    visible: bool = True
    enabled: bool = True
    accepts_fill: bool = True
    detached: bool = False
    attributes: dict[str, str] = field(default_factory=dict)
    clicks: int = 0

    def evaluate(self, script: str, arg=None):
        if script == browser._ASSIGN_KEY_JS:
            name, candidate = arg
            return self.attributes.setdefault(name, candidate)
        if script == browser._READ_TEXT_JS:
            return self.text
        if script == browser._WRITE_PARAGRAPHS_JS:
            self.text = arg
            return None
        raise AssertionError(f"unexpected script {script!r}")

    def fill(self, text: str) -> None:
        if self.accepts_fill:
            self.text = text

    def is_enabled(self) -> bool:
        if self.detached:
            raise PlaywrightError("Element is not attached to the DOM")
        return self.enabled

    def is_visible(self) -> bool:
        return self.visible

    def click(self) -> None:
        if self.detached:
            raise PlaywrightError("Element is not attached to the DOM")
        self.clicks += 1

    def text_content(self) -> str:
        return self.text


@dataclass
class FakePage:
    by_selector: dict[str, list[FakeElement]] = field(default_factory=dict)
    visited: list[str] = field(default_factory=list)

    def query_selector(self, selector: str) -> FakeElement | None:
        matches = self.by_selector.get(selector, [])
        return matches[0] if matches else None

    def query_selector_all(self, selector: str) -> list[FakeElement]:
        return list(self.by_selector.get(selector, []))

    def goto(self, url: str, **_: object) -> None:
        self.visited.append(url)


SELECTORS = SurfaceSelectors()


def test_repeated_queries_return_the_same_handle_key() -> None:
    editor = FakeElement()
    surface = BrowserSurface(FakePage({SELECTORS.editor: [editor]}))

    first = surface.find_editor()
    second = surface.find_editor()

    assert first is not None
    assert first == second
    assert editor.attributes[browser.KEY_ATTRIBUTE] == first.key


def test_write_content_falls_back_to_paragraphs_when_fill_is_ignored() -> None:
    editor = FakeElement(accepts_fill=False)
    surface = BrowserSurface(FakePage({SELECTORS.editor: [editor]}))

    surface.write_content(surface.find_editor(), "line one\nline two")

    assert editor.text == "line one\nline two"


def test_is_busy_follows_busy_selector() -> None:
    page = FakePage()
    surface = BrowserSurface(page)
    assert surface.is_busy() is False

    page.by_selector[SELECTORS.busy] = [FakeElement()]
    assert surface.is_busy() is True


def test_detached_control_reads_as_disabled_and_fails_to_actuate() -> None:
    button = FakeElement(detached=True)
    surface = BrowserSurface(FakePage({SELECTORS.submit: [button]}))
    handle = surface.find_submit_control()

    assert surface.is_enabled(handle) is False
    with pytest.raises(AdapterError, match="send button"):
        surface.actuate(handle)


def test_retry_control_found_by_button_text() -> None:
    retry = FakeElement(text="Try again")
    page = FakePage({"button": [FakeElement(text="Share"), retry]})
    surface = BrowserSurface(page)

    handle = surface.find_retry_control()

    assert handle is not None
    surface.actuate(handle)
    assert retry.clicks == 1


def test_artifact_controls_exclude_hidden_elements() -> None:
    shown = FakeElement()
    hidden = FakeElement(visible=False)
    surface = BrowserSurface(FakePage({SELECTORS.artifact: [shown, hidden]}))

    handles = surface.list_artifact_controls()

    assert len(handles) == 1
    assert handles[0].native is shown


def test_open_new_session_navigates_when_control_is_missing() -> None:
    page = FakePage()
    surface = BrowserSurface(page, new_session_url="https://chat.example.com/")

    surface.open_new_session()

    assert page.visited == ["https://chat.example.com/"]


def test_open_new_session_without_control_or_url_fails() -> None:
    surface = BrowserSurface(FakePage())

    with pytest.raises(AdapterError, match="New chat control not found"):
        surface.open_new_session()


class NavigatingPage(FakePage):
    """Page whose execution context is gone, as right after opening a new chat."""

    def query_selector(self, selector: str) -> FakeElement | None:
        raise PlaywrightError("Execution context was destroyed")

    def query_selector_all(self, selector: str) -> list[FakeElement]:
        raise PlaywrightError("Execution context was destroyed")


def test_page_query_failure_is_an_adapter_error() -> None:
    surface = BrowserSurface(NavigatingPage())

    with pytest.raises(AdapterError, match="Execution context was destroyed"):
        surface.is_busy()
    with pytest.raises(AdapterError):
        surface.list_artifact_controls()
    with pytest.raises(AdapterError):
        surface.find_retry_control()


def test_batch_records_page_query_failure_as_failed_outcome() -> None:
    surface = BrowserSurface(NavigatingPage())

    outcomes = BatchDriver(surface=surface, clock=SimulatedClock()).deliver(
        MessageBatch.build(["a", "b"]),
    )

    assert len(outcomes) == 1
    assert outcomes[0].accepted is False
    assert outcomes[0].failure is FailureKind.ADAPTER_ERROR


def test_tagging_a_detached_element_is_an_adapter_error() -> None:
    class DetachedElement(FakeElement):
        def evaluate(self, script: str, arg=None):
            raise PlaywrightError("Element is not attached to the DOM")

    surface = BrowserSurface(FakePage({SELECTORS.editor: [DetachedElement()]}))

    with pytest.raises(AdapterError, match="Unable to tag editor"):
        surface.find_editor()
