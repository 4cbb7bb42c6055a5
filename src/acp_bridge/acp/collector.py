"""ResponseCollector — text buffer filled by streamed agent notifications."""

from __future__ import annotations

import threading


class ResponseCollector:
    """Append-only text buffer for one exchange.

    Thread-safe: the exchange runs on a private event loop in a worker
    thread while the caller reads the result from its own thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chunks: list[str] = []

    def append(self, text: str) -> None:
        with self._lock:
            self._chunks.append(text)

    def get(self) -> str:
        """Return a snapshot of the text collected so far."""
        with self._lock:
            return "".join(self._chunks)

    def clear(self) -> None:
        with self._lock:
            self._chunks.clear()

    def is_empty(self) -> bool:
        with self._lock:
            return not any(self._chunks)
