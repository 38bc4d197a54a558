"""
Rendering
=========

Page rendering engine interface, Playwright adapter, render driver and encoder.
"""
