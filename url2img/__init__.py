"""
url2img
=======

Render web pages to raster images through a headless browser.

This package provides:
- Request decoding and dispatch onto a single asyncio event loop
- Playwright-driven page rendering with optional delay and full-page capture
- Image encoding to PNG, JPEG and WEBP with Pillow
- A keyed result store (in-memory or Redis) read by the transport layer
- A FastAPI transport for submitting requests and fetching results
"""

__version__ = "1.0.0"
__author__ = "url2img Team"
