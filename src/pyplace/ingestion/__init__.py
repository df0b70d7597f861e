"""Ingestion layer.

This package turns realtime events into canvas state transitions, tile
downloads and, once every slot is complete, a composite image.
"""

__all__: list[str] = []
