"""Persistence: project document store and append-only version history."""

from sopgraph.storage.documents import ProjectStore
from sopgraph.storage.history import VersionLog

__all__ = ["ProjectStore", "VersionLog"]
