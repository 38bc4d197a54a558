"""
Test Configuration
==================

Pytest configuration with fixtures for all test types.
Provides test settings, a mock rendering engine and pipeline components.
"""

import os
import tempfile
from pathlib import Path

# Configure the environment before url2img configures logging on import.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="url2img_test_"))
os.environ.setdefault("URL2IMG_ENVIRONMENT", "testing")
os.environ.setdefault("URL2IMG_STORAGE_PATH", str(_TEST_ROOT / "storage"))
os.environ.setdefault("URL2IMG_TEMP_PATH", str(_TEST_ROOT / "tmp"))
os.environ.setdefault("URL2IMG_LOG_LEVEL", "DEBUG")

import pytest
from PIL import Image

from url2img.config.settings import Settings
from url2img.core.queue.dispatcher import RequestDispatcher
from url2img.core.rendering.driver import PageRenderDriver
from url2img.core.storage.result_store import MemoryResultStore

from tests.utils.mocks import MockRenderEngine


class TestSettings(Settings):
    """Test-specific settings."""

    environment: str = "testing"
    debug: bool = True
    storage_path: Path = _TEST_ROOT / "storage"
    temp_path: Path = _TEST_ROOT / "tmp"
    browser_pool_size: int = 2
    playwright_headless: bool = True
    log_level: str = "DEBUG"


@pytest.fixture(scope="session")
def test_settings() -> TestSettings:
    """Test settings fixture."""
    return TestSettings()


@pytest.fixture
async def mock_engine() -> MockRenderEngine:
    """Initialized mock rendering engine."""
    engine = MockRenderEngine()
    await engine.initialize()
    return engine


@pytest.fixture
def result_store() -> MemoryResultStore:
    return MemoryResultStore()


@pytest.fixture
def driver(mock_engine: MockRenderEngine, result_store: MemoryResultStore) -> PageRenderDriver:
    return PageRenderDriver(mock_engine, result_store)


@pytest.fixture
def dispatcher(driver: PageRenderDriver) -> RequestDispatcher:
    return RequestDispatcher(driver)


@pytest.fixture
def gradient_image() -> Image.Image:
    """Photographic-ish RGB test image with smooth gradients and hard edges."""
    width, height = 96, 64
    image = Image.new("RGB", (width, height))
    pixels = image.load()
    for x in range(width):
        for y in range(height):
            pixels[x, y] = (
                (x * 255) // (width - 1),
                (y * 255) // (height - 1),
                255 if (x // 8 + y // 8) % 2 else 0,
            )
    return image
