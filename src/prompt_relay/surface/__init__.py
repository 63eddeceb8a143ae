"""Surface adapters: the live browser page and a scripted stand-in."""

from prompt_relay.surface.base import ControlHandle, SurfaceAdapter
from prompt_relay.surface.scripted import ScriptedSurface
from prompt_relay.surface.selectors import SurfaceSelectors

__all__ = [
    "ControlHandle",
    "ScriptedSurface",
    "SurfaceAdapter",
    "SurfaceSelectors",
]
