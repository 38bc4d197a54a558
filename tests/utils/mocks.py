"""
Test Mocks
===========

In-process stand-ins for the rendering engine and Redis.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from PIL import Image

from url2img.core.rendering.engine import EngineView, LoadCallback, RenderEngine, RenderEngineError


class MockEngineView(EngineView):
    """
    Engine view that paints solid frames and fires load events from loop timers.

    Args:
        load_delay: Seconds between navigate() and the load event
        load_events: How many times the load event fires (0 never completes)
        content: Reported (width, height) of the page content
        document_height: Value returned for document.body.offsetHeight
        scale: Device pixel ratio applied to rendered frames
        color: Fill color of rendered frames
        script_error: Raise RenderEngineError from evaluate_script
        frame_error: Raise RenderEngineError from render_frame
    """

    def __init__(
        self,
        load_delay: float = 0.0,
        load_events: int = 1,
        content: Tuple[int, int] = (800, 2400),
        document_height: Any = None,
        scale: float = 1.0,
        color: Tuple[int, int, int] = (30, 120, 200),
        script_error: bool = False,
        frame_error: bool = False,
    ):
        self.load_delay = load_delay
        self.load_events = load_events
        self.content = content
        self.document_height = content[1] if document_height is None else document_height
        self.scale = scale
        self.color = color
        self.script_error = script_error
        self.frame_error = frame_error

        self.listeners: List[LoadCallback] = []
        self.viewport: Optional[Tuple[int, int]] = None
        self.viewport_history: List[Tuple[int, int]] = []
        self.zoom: Optional[float] = None
        self.scrollbars_hidden = False
        self.url: Optional[str] = None
        self.scripts: List[str] = []
        self.frames_rendered = 0
        self.release_count = 0

    @property
    def released(self) -> bool:
        return self.release_count > 0

    async def navigate(self, url: str) -> None:
        self.url = url
        loop = asyncio.get_running_loop()
        for _ in range(self.load_events):
            loop.call_later(self.load_delay, self._fire_load)

    def on_load_complete(self, callback: LoadCallback) -> None:
        self.listeners.append(callback)

    async def set_viewport(self, width: int, height: int) -> None:
        self.viewport = (width, height)
        self.viewport_history.append((width, height))

    async def set_zoom(self, zoom: float) -> None:
        self.zoom = zoom

    async def suppress_scrollbars(self) -> None:
        self.scrollbars_hidden = True

    async def content_size(self) -> Tuple[int, int]:
        return self.content

    async def evaluate_script(self, script: str) -> Any:
        self.scripts.append(script)
        if self.script_error:
            raise RenderEngineError("Script evaluation failed: document.body is null")
        return self.document_height

    async def render_frame(self) -> Image.Image:
        if self.frame_error:
            raise RenderEngineError("Frame capture failed: Target closed")
        if self.viewport is None:
            raise RenderEngineError("Viewport not set")
        self.frames_rendered += 1
        width, height = self.viewport
        size = (round(width * self.scale), round(height * self.scale))
        return Image.new("RGB", size, self.color)

    async def release(self) -> None:
        self.release_count += 1
        self.listeners.clear()

    def _fire_load(self) -> None:
        for callback in list(self.listeners):
            callback()


class MockRenderEngine(RenderEngine):
    """Engine that hands out MockEngineView instances built from shared options."""

    def __init__(self, **view_options: Any):
        self.view_options = view_options
        self.views: List[MockEngineView] = []
        self.initialized = False
        self.closed = False

    async def initialize(self) -> None:
        self.initialized = True
        self.closed = False

    async def close(self) -> None:
        self.closed = True

    async def open_view(self) -> MockEngineView:
        if not self.initialized or self.closed:
            raise RenderEngineError("Rendering engine not initialized")
        view = MockEngineView(**self.view_options)
        self.views.append(view)
        return view

    @property
    def healthy(self) -> bool:
        return self.initialized and not self.closed


class MockRedisClient:
    """Mock Redis client for testing."""

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._expiry: Dict[str, datetime] = {}
        self.closed = False

    def _expired(self, key: str) -> bool:
        if key in self._expiry and datetime.now(timezone.utc) > self._expiry[key]:
            self._data.pop(key, None)
            del self._expiry[key]
            return True
        return False

    async def ping(self) -> bool:
        return True

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._data[key] = value
        if ex is not None:
            self._expiry[key] = datetime.now(timezone.utc) + timedelta(seconds=ex)
        else:
            self._expiry.pop(key, None)
        return True

    async def get(self, key: str) -> Optional[str]:
        if self._expired(key):
            return None
        return self._data.get(key)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if key in self._data:
                del self._data[key]
                deleted += 1
            self._expiry.pop(key, None)
        return deleted

    async def scan_iter(self, match: str = "*"):
        prefix = match.rstrip("*")
        for key in list(self._data):
            if key.startswith(prefix):
                yield key

    async def aclose(self) -> None:
        self.closed = True
