"""CSS selectors for the chat web surface, kept in one place.

The chat frontend changes often; when automation breaks, override these
instead of touching the adapter.
"""

from __future__ import annotations

from dataclasses import dataclass

RETRY_BUTTON_KEYWORDS = ("regenerate", "retry", "try again")


@dataclass(frozen=True, slots=True)
class SurfaceSelectors:
    """Selector set used by the browser surface."""

    editor: str = (
        '#prompt-textarea[contenteditable="true"], textarea#prompt-textarea, div#prompt-textarea'
    )
    submit: str = (
        'button[data-testid="send-button"], '
        'button[aria-label="Send prompt"], '
        'button[aria-label="Send"]'
    )
    busy: str = 'button[data-testid="stop-button"]'
    retry: str = (
        'button[data-testid*="regenerate" i], '
        'button[data-testid*="retry" i], '
        'button[aria-label*="Regenerate" i], '
        'button[aria-label*="Try again" i]'
    )
    artifact: str = (
        'button[aria-label="Download this image"], '
        'button[aria-label*="Download image" i], '
        'button[data-testid*="download" i]'
    )
    new_session: str = (
        'a[data-testid="create-new-chat-button"], '
        'button[data-testid="create-new-chat-button"], '
        'a[aria-label="New chat"], '
        'button[aria-label="New chat"]'
    )
