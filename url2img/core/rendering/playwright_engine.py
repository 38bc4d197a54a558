"""
Playwright Engine
=================

Chromium rendering engine driven through Playwright's async API.
Each view is a page in its own incognito browser context.
"""

from typing import Any, Callable, Dict, List, Optional, Set, Tuple
import io

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Error as PlaywrightError,
)
from PIL import Image  # type: ignore

from url2img.config.logging import get_logger
from url2img.config.settings import Settings, get_settings
from url2img.core.rendering.engine import EngineView, LoadCallback, RenderEngine, RenderEngineError

logger = get_logger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-webgl",
    "--disable-3d-apis",
    "--disable-accelerated-2d-canvas",
    "--disable-plugins",
    "--disable-notifications",
    "--disable-background-networking",
]

PAGE_SETTINGS_SCRIPT = """
([zoom, hideScrollbars]) => {
    const root = document.documentElement;
    if (!root) {
        return;
    }
    root.style.zoom = String(zoom);
    if (hideScrollbars && !document.getElementById("__url2img_scrollbars")) {
        const style = document.createElement("style");
        style.id = "__url2img_scrollbars";
        style.textContent =
            "html { scrollbar-width: none !important; }" +
            "::-webkit-scrollbar { display: none !important; }";
        (document.head || root).appendChild(style);
    }
}
"""

CONTENT_SIZE_SCRIPT = """
() => {
    const root = document.documentElement;
    const body = document.body;
    return [
        Math.max(root ? root.scrollWidth : 0, body ? body.scrollWidth : 0),
        Math.max(root ? root.scrollHeight : 0, body ? body.scrollHeight : 0),
    ];
}
"""


class PlaywrightView(EngineView):
    """Engine view backed by a Playwright page."""

    def __init__(
        self,
        context: BrowserContext,
        page: Page,
        on_release: Optional[Callable[["PlaywrightView"], None]] = None,
    ):
        self.context = context
        self.page = page
        self.logger: Any = logger.bind(component="playwright_view")
        self._listeners: List[LoadCallback] = []
        self._on_release = on_release
        self._zoom = 1.0
        self._hide_scrollbars = False
        self._loaded = False
        self._released = False

        page.on("load", self._handle_load)
        page.on("popup", self._close_popup)

    async def navigate(self, url: str) -> None:
        """
        Navigate to url.

        Navigation errors are not raised: the view reports load completion
        and keeps whatever content the browser shows, usually its error page.
        """
        self.logger.debug("Navigating", url=url)
        try:
            await self.page.goto(url, wait_until="commit")
        except PlaywrightError as e:
            self.logger.warning("Navigation failed, keeping current content", url=url, error=str(e))
            await self._handle_load(self.page)

    def on_load_complete(self, callback: LoadCallback) -> None:
        self._listeners.append(callback)

    async def set_viewport(self, width: int, height: int) -> None:
        try:
            await self.page.set_viewport_size({"width": width, "height": height})
        except PlaywrightError as e:
            raise RenderEngineError(f"Viewport resize failed: {e}") from e

    async def set_zoom(self, zoom: float) -> None:
        self._zoom = zoom
        if self._loaded:
            await self._apply_page_settings()

    async def suppress_scrollbars(self) -> None:
        self._hide_scrollbars = True
        if self._loaded:
            await self._apply_page_settings()

    async def content_size(self) -> Tuple[int, int]:
        width, height = await self.evaluate_script(CONTENT_SIZE_SCRIPT)
        return int(width), int(height)

    async def evaluate_script(self, script: str) -> Any:
        try:
            return await self.page.evaluate(script)
        except PlaywrightError as e:
            raise RenderEngineError(f"Script evaluation failed: {e}") from e

    async def render_frame(self) -> Image.Image:
        try:
            screenshot_bytes = await self.page.screenshot(type="png")
        except PlaywrightError as e:
            raise RenderEngineError(f"Frame capture failed: {e}") from e

        frame = Image.open(io.BytesIO(screenshot_bytes))
        return frame.convert("RGB")

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._listeners.clear()

        try:
            await self.context.close()
        except PlaywrightError as e:
            self.logger.warning("Closing browser context failed", error=str(e))
        finally:
            if self._on_release:
                self._on_release(self)

    async def _handle_load(self, page: Page) -> None:
        self._loaded = True
        try:
            await self._apply_page_settings()
        except RenderEngineError as e:
            self.logger.warning("Applying page settings failed", error=str(e))
        self._notify_load_complete()

    async def _apply_page_settings(self) -> None:
        if self._zoom == 1.0 and not self._hide_scrollbars:
            return
        try:
            await self.page.evaluate(PAGE_SETTINGS_SCRIPT, [self._zoom, self._hide_scrollbars])
        except PlaywrightError as e:
            raise RenderEngineError(f"Page settings failed: {e}") from e

    async def _close_popup(self, popup: Page) -> None:
        self.logger.debug("Closing popup window", url=popup.url)
        try:
            await popup.close()
        except PlaywrightError as e:
            self.logger.warning("Closing popup failed", error=str(e))

    def _notify_load_complete(self) -> None:
        for callback in list(self._listeners):
            callback()


class PlaywrightEngine(RenderEngine):
    """Chromium engine with a small set of shared browser processes."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.pool_size = self.settings.browser_pool_size
        self.browsers: List[Browser] = []
        self.views: Set[PlaywrightView] = set()
        self._playwright: Optional[Playwright] = None
        self._next_browser = 0
        self.logger: Any = logger.bind(component="playwright_engine")

    async def initialize(self) -> None:
        """Start Playwright and launch the browser processes."""
        try:
            self._playwright = await async_playwright().start()

            for _ in range(self.pool_size):
                browser = await self._playwright.chromium.launch(
                    headless=self.settings.playwright_headless,
                    args=BROWSER_ARGS,
                    downloads_path=str(self.settings.temp_path),
                )
                self.browsers.append(browser)

            self.logger.info("Rendering engine initialized", pool_size=self.pool_size)
        except Exception as e:
            self.logger.error("Failed to initialize rendering engine", error=str(e))
            raise RenderEngineError(f"Rendering engine initialization failed: {e}")

    async def close(self) -> None:
        """Release open views and close all browsers."""
        for view in list(self.views):
            await view.release()

        for browser in self.browsers:
            await browser.close()
        self.browsers.clear()

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Rendering engine closed")

    async def open_view(self) -> PlaywrightView:
        if not self.browsers:
            raise RenderEngineError("Rendering engine not initialized")

        browser = self.browsers[self._next_browser % len(self.browsers)]
        self._next_browser += 1

        try:
            context = await browser.new_context(**self._context_options())
            page = await context.new_page()
        except PlaywrightError as e:
            raise RenderEngineError(f"Opening page failed: {e}") from e

        page.set_default_navigation_timeout(self.settings.playwright_timeout)

        view = PlaywrightView(context, page, on_release=self.views.discard)
        self.views.add(view)
        return view

    @property
    def healthy(self) -> bool:
        return bool(self.browsers) and all(browser.is_connected() for browser in self.browsers)

    def _context_options(self) -> Dict[str, Any]:
        """Browser context options for an isolated, script-enabled page."""
        context_options: Dict[str, Any] = {
            "device_scale_factor": self.settings.device_scale_factor,
            "java_script_enabled": True,
            "service_workers": "block",
            "accept_downloads": False,
            "permissions": [],
        }

        if self.settings.user_agent:
            context_options["user_agent"] = self.settings.user_agent

        return context_options
