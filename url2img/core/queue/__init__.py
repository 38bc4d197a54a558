"""
Request Queue
=============

Decoding and asynchronous dispatch of render requests.
"""
