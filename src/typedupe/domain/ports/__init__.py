"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import (
    RawLogRepository,
    Repository,
    StreamStateRepository,
    TypedTableRepository,
)
from .unit_of_work import (
    RepositoryCollection,
    StreamRepositories,
    StreamUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "RawLogRepository",
    "Repository",
    "RepositoryCollection",
    "StreamRepositories",
    "StreamStateRepository",
    "StreamUnitOfWork",
    "TypedTableRepository",
    "UnitOfWork",
]
