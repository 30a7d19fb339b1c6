"""Per-stream bookkeeping persisted alongside the typed tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass
class StreamState:
    """Bookkeeping row of one stream; mapped imperatively by the SQLAlchemy adapter."""

    stream_name: str
    last_started_at: datetime | None = None
    last_completed_at: datetime | None = None
    runs_completed: int = 0
    last_loaded_count: int = 0
