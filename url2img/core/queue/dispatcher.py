"""
Request Dispatcher
==================

Decode inbound render requests and start one render session per request on
the event loop. Submission never waits for rendering.
"""

from typing import Any, Set, Union
import asyncio

from url2img.config.logging import get_logger
from url2img.core.rendering.driver import PageRenderDriver
from url2img.models.schemas import Params, RequestDecodeError

logger = get_logger(__name__)

RawRequest = Union[str, bytes, bytearray]


class RequestDispatcher:
    """
    Schedules render sessions for decoded requests.

    Malformed requests are dropped: nothing is raised to the caller and no
    result is ever stored for them.
    """

    def __init__(self, driver: PageRenderDriver):
        self.driver = driver
        self.logger: Any = logger.bind(component="request_dispatcher")
        self._sessions: Set["asyncio.Task[None]"] = set()

    @property
    def in_flight(self) -> int:
        return len(self._sessions)

    def submit(self, raw: RawRequest) -> None:
        """
        Decode raw and schedule its render session.

        Must be called from the event loop thread.

        Args:
            raw: Serialized JSON request
        """
        try:
            params = Params.decode(raw)
        except RequestDecodeError as e:
            self.logger.warning("Dropping malformed render request", error=str(e))
            return

        task = asyncio.get_running_loop().create_task(
            self.driver.run(params), name=f"render:{params.id}"
        )
        self._sessions.add(task)
        task.add_done_callback(self._session_done)

        self.logger.info("Render request scheduled", request_id=params.id, url=params.url)

    def submit_threadsafe(self, raw: RawRequest, loop: asyncio.AbstractEventLoop) -> None:
        """Hand a submission to loop from another thread."""
        loop.call_soon_threadsafe(self.submit, raw)

    async def drain(self) -> None:
        """Wait until every session scheduled so far has finished."""
        while self._sessions:
            await asyncio.wait(set(self._sessions))

    async def close(self) -> None:
        """Cancel outstanding sessions and wait for their cleanup."""
        sessions = set(self._sessions)
        for task in sessions:
            task.cancel()
        if sessions:
            await asyncio.gather(*sessions, return_exceptions=True)
            self.logger.info("Cancelled outstanding render sessions", count=len(sessions))

    def _session_done(self, task: "asyncio.Task[None]") -> None:
        self._sessions.discard(task)
        if task.cancelled():
            self.logger.info("Render session cancelled", task=task.get_name())
            return

        error = task.exception()
        if error is not None:
            self.logger.error(
                "Render session failed",
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )
