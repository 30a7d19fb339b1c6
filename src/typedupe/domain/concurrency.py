"""In-process mutual exclusion for runs of the same stream."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

from typedupe.domain.errors import StreamBusyError

if TYPE_CHECKING:
    from collections.abc import Iterator


class StreamLockRegistry:
    """Hand out one lock per stream name.

    Runs of different streams never wait for each other. The database claim taken by
    the unit of work covers other processes.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, stream: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(stream)
            if lock is None:
                lock = self._locks[stream] = threading.Lock()
            return lock

    def is_held(self, stream: str) -> bool:
        return self.lock_for(stream).locked()

    @contextmanager
    def hold(self, stream: str, *, timeout: float | None = None) -> Iterator[None]:
        """Hold the stream's lock, waiting at most ``timeout`` seconds (forever if ``None``)."""

        lock = self.lock_for(stream)
        acquired = lock.acquire() if timeout is None else lock.acquire(timeout=timeout)
        if not acquired:
            raise StreamBusyError(stream, timeout=timeout)
        try:
            yield
        finally:
            lock.release()


STREAM_LOCKS = StreamLockRegistry()
