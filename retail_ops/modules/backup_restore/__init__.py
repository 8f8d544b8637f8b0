"""
Backup & Restore.

- codec: AppState <-> versioned JSON document (pure).
- service: *.rbak files, inline or on the Qt thread pool.

The Qt-bound service is imported lazily so the pure codec stays cheap to import.
"""

from __future__ import annotations

from .codec import deserialize, dumps, loads, serialize

__all__ = ["serialize", "deserialize", "dumps", "loads"]
