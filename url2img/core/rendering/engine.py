"""
Rendering Engine Interface
==========================

Capabilities the render pipeline requires from a page-rendering engine.
All engine calls happen on the event loop that owns the engine.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Tuple

from PIL import Image  # type: ignore

LoadCallback = Callable[[], None]


class RenderEngineError(Exception):
    """Exception raised when the rendering engine itself is unavailable or fails."""

    pass


class EngineView(ABC):
    """
    One page handle owned by a single render session.

    Load-complete listeners are notified when a navigation finishes,
    whether or not the page loaded successfully.
    """

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Start navigating to url."""

    @abstractmethod
    def on_load_complete(self, callback: LoadCallback) -> None:
        """Register a listener for load completion."""

    @abstractmethod
    async def set_viewport(self, width: int, height: int) -> None:
        """Resize the render surface and viewport."""

    @abstractmethod
    async def set_zoom(self, zoom: float) -> None:
        """Set the page zoom factor."""

    @abstractmethod
    async def suppress_scrollbars(self) -> None:
        """Hide horizontal and vertical scrollbars."""

    @abstractmethod
    async def content_size(self) -> Tuple[int, int]:
        """Return the (width, height) of the page content."""

    @abstractmethod
    async def evaluate_script(self, script: str) -> Any:
        """Evaluate a JavaScript expression in the page and return its value."""

    @abstractmethod
    async def render_frame(self) -> Image.Image:
        """Render the current viewport into an RGB bitmap."""

    @abstractmethod
    async def release(self) -> None:
        """Release the page handle. Safe to call more than once."""


class RenderEngine(ABC):
    """Factory of engine views bound to one event loop."""

    @abstractmethod
    async def initialize(self) -> None:
        """Start the engine."""

    @abstractmethod
    async def close(self) -> None:
        """Shut the engine down."""

    @abstractmethod
    async def open_view(self) -> EngineView:
        """
        Open a new page handle.

        Raises:
            RenderEngineError: If the engine is not running
        """

    @property
    @abstractmethod
    def healthy(self) -> bool:
        """Whether the engine can open new views."""
