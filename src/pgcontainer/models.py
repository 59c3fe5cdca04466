"""Shared domain models for pgcontainer."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Identifiers derived from the connection URL for one invocation."""

    database_name: str


@dataclass(frozen=True)
class PipelineResult:
    """Artifacts produced by a successful snapshot run."""

    database_name: str
    image_tag: str
    dump_size: int
    container_name: Optional[str] = None
    container_id: Optional[str] = None
