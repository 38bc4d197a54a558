"""
Page Render Driver
==================

Drives one render session per request through navigation, optional delay,
optional full-page resize, frame capture and encoding, then publishes the
hex-encoded image to the result store.

Sessions are coroutines on the engine's event loop. Waiting for page load
and the post-load delay both suspend only the current session.
"""

from typing import Any, Tuple
import asyncio
import time

from PIL import Image  # type: ignore

from url2img.config.logging import get_logger
from url2img.core.rendering.encoder import (
    ImageEncodeError,
    encode,
    from_lossless_intermediate,
    hex_encode,
    to_lossless_intermediate,
)
from url2img.core.rendering.engine import EngineView, RenderEngine, RenderEngineError
from url2img.core.storage.result_store import ResultStore
from url2img.models.schemas import Params, RenderState

logger = get_logger(__name__)

DOCUMENT_HEIGHT_SCRIPT = "document.body.offsetHeight"
BACKGROUND_COLOR = (255, 255, 255)


class RenderSession:
    """State of a single in-flight render."""

    def __init__(self, params: Params, view: EngineView):
        self.params = params
        self.view = view
        self.state = RenderState.CREATED
        self.height = params.height
        self.viewport: Tuple[int, int] = (params.width, params.width)
        self.started_at = time.monotonic()
        self.logger: Any = logger.bind(request_id=params.id)
        self._loaded: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    def transition(self, state: RenderState) -> None:
        self.logger.debug("Render state changed", previous=self.state.value, state=state.value)
        self.state = state

    def mark_loaded(self) -> None:
        # The engine may report completion more than once; only the first counts.
        if not self._loaded.done():
            self._loaded.set_result(None)

    async def wait_loaded(self) -> None:
        await self._loaded

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class PageRenderDriver:
    """Runs render sessions against an engine and publishes their results."""

    def __init__(self, engine: RenderEngine, store: ResultStore):
        self.engine = engine
        self.store = store
        self.logger: Any = logger.bind(component="render_driver")

    async def run(self, params: Params) -> None:
        """
        Render params.url and store the encoded image under params.id.

        The session waits for the engine's load-complete notification without
        a timeout. The engine view is released on every exit path.

        Args:
            params: Decoded request parameters
        """
        view = await self.engine.open_view()
        session = RenderSession(params, view)

        try:
            await self._load(session)
            await self._delay(session)
            if params.full:
                await self._resize(session)
            bitmap = await self._capture(session)
            data = self._encode(session, bitmap)
            await self.store.set(params.id, hex_encode(data))
            session.transition(RenderState.COMPLETED)

            session.logger.info(
                "Render completed",
                url=params.url,
                width=params.width,
                height=session.height,
                format=params.format,
                size=len(data),
                elapsed=round(session.elapsed, 3),
            )
        finally:
            await view.release()

    async def _load(self, session: RenderSession) -> None:
        params = session.params
        view = session.view

        session.transition(RenderState.LOADING)
        await view.set_viewport(*session.viewport)
        await view.set_zoom(params.zoom)
        await view.suppress_scrollbars()
        view.on_load_complete(session.mark_loaded)

        session.logger.info("Loading page", url=params.url, zoom=params.zoom)
        await view.navigate(params.url)
        await session.wait_loaded()

    async def _delay(self, session: RenderSession) -> None:
        delay = session.params.delay
        session.transition(RenderState.DELAYING)
        if delay > 0:
            await asyncio.sleep(delay / 1000)

    async def _resize(self, session: RenderSession) -> None:
        session.transition(RenderState.RESIZING)

        content_width, content_height = await session.view.content_size()
        session.viewport = (max(content_width, 1), max(content_height, 1))
        await session.view.set_viewport(*session.viewport)

        session.height = await self._document_height(session, fallback=session.viewport[1])
        session.logger.debug(
            "Resized to content",
            content_width=content_width,
            content_height=content_height,
            height=session.height,
        )

    async def _document_height(self, session: RenderSession, fallback: int) -> int:
        try:
            value = await session.view.evaluate_script(DOCUMENT_HEIGHT_SCRIPT)
        except RenderEngineError as e:
            session.logger.warning("Document height unavailable", error=str(e))
            return fallback

        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            return fallback
        return int(value)

    async def _capture(self, session: RenderSession) -> Image.Image:
        session.transition(RenderState.CAPTURING)
        width, height = session.params.width, session.height

        if not session.params.full and session.viewport != (width, height):
            session.viewport = (width, height)
            await session.view.set_viewport(width, height)

        frame = await session.view.render_frame()
        return paint_frame(frame, session.viewport[0], width, height)

    def _encode(self, session: RenderSession, bitmap: Image.Image) -> bytes:
        params = session.params
        session.transition(RenderState.ENCODING)

        if params.image_format is None:
            session.logger.warning("Unsupported image format, result is empty", format=params.format)

        try:
            image = from_lossless_intermediate(to_lossless_intermediate(bitmap))
            return encode(image, params.format, params.quality)
        except ImageEncodeError as e:
            session.logger.error("Encoding failed, result is empty", error=str(e))
            return b""


def paint_frame(
    frame: Image.Image, viewport_width: int, width: int, height: int
) -> Image.Image:
    """
    Paint a rendered frame onto a new RGB bitmap of exactly width x height.

    Frames captured at a device pixel ratio other than 1 are smooth-scaled back
    to CSS pixels. The frame is anchored top-left; overflow is clipped and
    uncovered area stays white.
    """
    bitmap = Image.new("RGB", (width, height), BACKGROUND_COLOR)

    if frame.width != viewport_width and frame.width > 0:
        scaled_height = max(1, round(frame.height * viewport_width / frame.width))
        frame = frame.resize((viewport_width, scaled_height), Image.Resampling.LANCZOS)

    bitmap.paste(frame.convert("RGB"), (0, 0))
    return bitmap
