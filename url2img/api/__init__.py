"""
API Layer
=========

FastAPI transport for submitting render requests and reading results.
"""
