"""
Core Pipeline
=============

Render-and-encode pipeline components.

Components:
- rendering: Engine interface, Playwright adapter, render driver and image encoder
- queue: Request dispatcher
- storage: Result store
"""
