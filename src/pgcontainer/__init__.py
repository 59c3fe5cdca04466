"""
pgcontainer - Snapshot a live PostgreSQL database into a Docker image
"""

__version__ = "0.1.0"

from .core import PgContainer, SnapshotError

__all__ = ["PgContainer", "SnapshotError"]
