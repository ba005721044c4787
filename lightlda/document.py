"""A document viewed inside a shared token buffer."""

from __future__ import annotations

from collections import Counter
from typing import MutableSequence

from .config import MAX_DOC_LENGTH


class Document:
    """View of ``cursor, word1, topic1, ..., wordn, topicn`` inside a buffer.

    The document does not own its data: reads and writes go to the shared
    buffer between ``start`` and ``stop``.
    """

    __slots__ = ("_buffer", "_start", "_stop")

    def __init__(self, buffer: MutableSequence[int], start: int, stop: int) -> None:
        if not 0 <= start < stop <= len(buffer):
            raise ValueError(f"invalid document bounds {start}:{stop}")
        self._buffer = buffer
        self._start = start
        self._stop = stop

    def __len__(self) -> int:
        return (self._stop - self._start) // 2

    @property
    def cursor(self) -> int:
        """Position of the next token to sample."""
        return self._buffer[self._start]

    @cursor.setter
    def cursor(self, value: int) -> None:
        self._buffer[self._start] = value

    def _check(self, index: int) -> None:
        if not 0 <= index < len(self):
            raise IndexError(f"token index {index} out of range")

    def word(self, index: int) -> int:
        """Word id of the token at ``index``."""
        self._check(index)
        return self._buffer[self._start + 1 + 2 * index]

    def topic(self, index: int) -> int:
        """Topic assigned to the token at ``index``."""
        self._check(index)
        return self._buffer[self._start + 2 + 2 * index]

    def set_topic(self, index: int, topic: int) -> None:
        """Assign ``topic`` to the token at ``index``."""
        self._check(index)
        self._buffer[self._start + 2 + 2 * index] = topic

    def topic_counts(self, limit: int = MAX_DOC_LENGTH) -> Counter:
        """Count topics over at most the first ``limit`` tokens."""
        counts: Counter = Counter()
        topics = self._buffer[self._start + 2 : self._stop : 2]
        for topic in topics[:limit]:
            counts[topic] += 1
        return counts