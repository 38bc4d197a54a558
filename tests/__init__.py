"""
Test Suite
==========

Test suite matching the url2img/ package structure.

Test Categories:
- unit: Unit tests for individual components
- integration: HTTP transport tests through the FastAPI app
"""
