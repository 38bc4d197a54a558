"""
Data Models
===========

Pydantic models for render requests, pipeline state and API responses.
"""
