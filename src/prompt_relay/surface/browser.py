"""Playwright-backed surface adapter for the chat web UI."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from functools import partial
from pathlib import Path

from playwright.sync_api import BrowserContext, Download, ElementHandle, Page, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from prompt_relay.config import BrowserSettings
from prompt_relay.delivery.errors import AdapterError
from prompt_relay.surface.base import ControlHandle
from prompt_relay.surface.selectors import RETRY_BUTTON_KEYWORDS, SurfaceSelectors

logger = logging.getLogger(__name__)

KEY_ATTRIBUTE = "data-prompt-relay-key"

_ASSIGN_KEY_JS = """(el, [attr, candidate]) => {
    if (!el.hasAttribute(attr)) {
        el.setAttribute(attr, candidate);
    }
    return el.getAttribute(attr);
}"""

_READ_TEXT_JS = """el => {
    if (el instanceof HTMLTextAreaElement || el instanceof HTMLInputElement) {
        return el.value;
    }
    return el.innerText;
}"""

# Paragraph-per-line insertion for contenteditable editors that ignore fill().
_WRITE_PARAGRAPHS_JS = """(el, text) => {
    el.focus();
    el.innerHTML = "";
    for (const line of text.split("\\n")) {
        const p = document.createElement("p");
        if (line.length === 0) {
            p.appendChild(document.createElement("br"));
        } else {
            p.textContent = line;
        }
        el.appendChild(p);
    }
    el.dispatchEvent(
        new InputEvent("input", {bubbles: true, inputType: "insertText", data: text})
    );
}"""


class BrowserSurface:
    """Surface adapter over one Playwright page.

    Every located control is tagged with a ``data-prompt-relay-key`` attribute
    so that its identity survives repeated queries, while a control the page
    re-renders gets a fresh key.
    """

    def __init__(
        self,
        page: Page,
        *,
        selectors: SurfaceSelectors | None = None,
        new_session_url: str | None = None,
    ) -> None:
        self.page = page
        self.selectors = selectors or SurfaceSelectors()
        self.new_session_url = new_session_url

    def find_editor(self) -> ControlHandle | None:
        return self._query_one(self.selectors.editor, label="editor")

    def write_content(self, handle: ControlHandle, text: str) -> None:
        element = _element(handle)
        try:
            element.fill(text)
            if _normalize_text(element.evaluate(_READ_TEXT_JS)) == _normalize_text(text):
                return
            logger.debug("fill() did not take; rebuilding editor paragraphs")
            element.evaluate(_WRITE_PARAGRAPHS_JS, text)
        except PlaywrightError as error:
            raise AdapterError(f"Unable to set editor text: {error}") from error

    def find_submit_control(self) -> ControlHandle | None:
        return self._query_one(self.selectors.submit, label="send button")

    def is_enabled(self, handle: ControlHandle) -> bool:
        try:
            return _element(handle).is_enabled()
        except PlaywrightError:
            # Detached between query and check.
            return False

    def actuate(self, handle: ControlHandle) -> None:
        try:
            _element(handle).click()
        except PlaywrightError as error:
            raise AdapterError(f"Unable to click {handle.label or handle.key}: {error}") from error

    def is_busy(self) -> bool:
        return self._query_element(self.selectors.busy) is not None

    def find_retry_control(self) -> ControlHandle | None:
        handle = self._query_one(self.selectors.retry, label="retry button")
        if handle is not None:
            return handle
        for element in self._query_elements("button"):
            try:
                text = (element.text_content() or "").lower()
            except PlaywrightError as error:
                raise AdapterError(f"Unable to read button text: {error}") from error
            if any(keyword in text for keyword in RETRY_BUTTON_KEYWORDS):
                return self._handle(element, label="retry button")
        return None

    def list_artifact_controls(self) -> list[ControlHandle]:
        handles: list[ControlHandle] = []
        for element in self._query_elements(self.selectors.artifact):
            try:
                visible = element.is_visible()
            except PlaywrightError as error:
                raise AdapterError(f"Unable to inspect download button: {error}") from error
            if visible:
                handles.append(self._handle(element, label="download button"))
        return handles

    def open_new_session(self) -> None:
        control = self._query_one(self.selectors.new_session, label="new chat")
        try:
            if control is not None:
                _element(control).click()
                return
            if self.new_session_url is None:
                raise AdapterError("New chat control not found and no session URL configured.")
            self.page.goto(self.new_session_url, wait_until="domcontentloaded")
        except PlaywrightError as error:
            raise AdapterError(f"Unable to open a new session: {error}") from error

    def _query_one(self, selector: str, *, label: str) -> ControlHandle | None:
        element = self._query_element(selector)
        if element is None:
            return None
        return self._handle(element, label=label)

    # Queries fail while the page navigates, e.g. right after "New chat".
    def _query_element(self, selector: str) -> ElementHandle | None:
        try:
            return self.page.query_selector(selector)
        except PlaywrightError as error:
            raise AdapterError(f"Page query {selector!r} failed: {error}") from error

    def _query_elements(self, selector: str) -> list[ElementHandle]:
        try:
            return self.page.query_selector_all(selector)
        except PlaywrightError as error:
            raise AdapterError(f"Page query {selector!r} failed: {error}") from error

    def _handle(self, element: ElementHandle, *, label: str) -> ControlHandle:
        try:
            key = element.evaluate(_ASSIGN_KEY_JS, [KEY_ATTRIBUTE, uuid.uuid4().hex])
        except PlaywrightError as error:
            raise AdapterError(f"Unable to tag {label}: {error}") from error
        return ControlHandle(key=str(key), label=label, native=element)


@contextmanager
def open_browser_surface(
    settings: BrowserSettings,
    *,
    selectors: SurfaceSelectors | None = None,
) -> Iterator[BrowserSurface]:
    """Attach to a running Chrome over CDP or launch Chromium, then open the chat page."""

    settings.download_dir.mkdir(parents=True, exist_ok=True)
    with sync_playwright() as playwright:
        owned_context: BrowserContext | None = None
        if settings.cdp_url:
            # 127.0.0.1 avoids IPv6 (::1) refusals on some systems.
            connect_url = settings.cdp_url.strip().replace("localhost", "127.0.0.1")
            try:
                browser = playwright.chromium.connect_over_cdp(connect_url)
            except PlaywrightError as error:
                raise AdapterError(
                    f"Could not connect to browser at {connect_url}: {error}. "
                    "Start Chrome with --remote-debugging-port=9222.",
                ) from error
            if not browser.contexts:
                raise AdapterError("Attached browser exposes no context.")
            context = browser.contexts[0]
            page = _find_tab(context, settings.url) or context.new_page()
        elif settings.profile_dir is not None:
            settings.profile_dir.mkdir(parents=True, exist_ok=True)
            owned_context = playwright.chromium.launch_persistent_context(
                user_data_dir=str(settings.profile_dir),
                headless=not settings.headed,
                accept_downloads=True,
            )
            context = owned_context
            page = context.pages[0] if context.pages else context.new_page()
        else:
            browser = playwright.chromium.launch(headless=not settings.headed)
            owned_context = browser.new_context(accept_downloads=True)
            context = owned_context
            page = context.new_page()

        if settings.url.rstrip("/") not in (page.url or ""):
            logger.info("Opening %s", settings.url)
            page.goto(
                settings.url,
                wait_until="domcontentloaded",
                timeout=settings.navigation_timeout_ms,
            )
        page.on("download", partial(_save_download, settings.download_dir))
        try:
            yield BrowserSurface(page, selectors=selectors, new_session_url=settings.url)
        finally:
            if owned_context is not None:
                owned_context.close()


def _find_tab(context: BrowserContext, url: str) -> Page | None:
    target = url.rstrip("/")
    for page in context.pages:
        if target in (page.url or ""):
            return page
    return None


def _save_download(download_dir: Path, download: Download) -> None:
    destination = download_dir / download.suggested_filename
    try:
        download.save_as(destination)
    except PlaywrightError as error:
        logger.warning("Download %s failed: %s", download.suggested_filename, error)
        return
    logger.info("Saved artifact to %s", destination)


def _element(handle: ControlHandle) -> ElementHandle:
    if handle.native is None:
        raise AdapterError(f"Handle {handle.key} carries no element.")
    return handle.native


def _normalize_text(value: object) -> str:
    return str(value or "").replace("\r\n", "\n").strip()
