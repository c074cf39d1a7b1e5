"""Core logic for indicator snapshots.

This package contains pure business logic with no I/O dependencies
(no network, no event loop, no web framework). The app/ package feeds it
candles and publishes what it builds.
"""
