"""
Result Storage
==============

Keyed store of encoded render results.
"""
