"""GUI adapter layer.

This package provides thin Qt-shaped adapters over engine services.

Notes
-----
Adapters exist to:
- keep UI code free of persistence details,
- keep store calls on one worker thread,
- turn store change events into Qt signals that views subscribe to.
"""
