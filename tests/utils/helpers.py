"""
Test Helpers
============

Helper functions for common testing operations.
"""

import asyncio
import io
import json
import time
from typing import Any, Callable, Dict

from PIL import Image


async def wait_for_async_condition(
    condition: Callable[[], Any],
    timeout: float = 5.0,
    interval: float = 0.01,
    error_message: str = "Async condition not met within timeout",
) -> None:
    """Wait for an async condition to become true."""
    start_time = time.monotonic()

    while time.monotonic() - start_time < timeout:
        if await condition():
            return
        await asyncio.sleep(interval)

    raise TimeoutError(error_message)


def make_request(**overrides: Any) -> str:
    """Serialize a render request with sensible defaults."""
    request: Dict[str, Any] = {
        "url": "https://example.com/",
        "id": "req-1",
        "format": "png",
        "quality": 90,
        "delay": 0,
        "width": 320,
        "height": 240,
        "zoom": 1.0,
        "full": False,
    }
    request.update(overrides)
    return json.dumps(request)


def decode_result(hex_data: str) -> Image.Image:
    """Decode a hex-encoded result into a loaded image."""
    image = Image.open(io.BytesIO(bytes.fromhex(hex_data)))
    image.load()
    return image
