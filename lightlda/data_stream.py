"""Access to the data blocks of the corpus, in memory or streamed from disk."""

from __future__ import annotations

import abc
import queue
import threading
from pathlib import Path

from .config import Config
from .data_block import DataBlock

_POLL_SECONDS = 0.05


def _block_path(data_path, block_id: int) -> Path:
    return Path(data_path) / f"block.{block_id}"


class DataStream(abc.ABC):
    """Sequential access to data blocks, one block at a time."""

    @abc.abstractmethod
    def before_access(self) -> None:
        """Prepare the next data block; call before ``current_block``."""

    @abc.abstractmethod
    def end_access(self) -> None:
        """Release the current data block."""

    @abc.abstractmethod
    def current_block(self) -> DataBlock:
        """Return the data block being accessed."""

    @abc.abstractmethod
    def close(self) -> None:
        """Write all loaded blocks back to disk and release resources."""

    def __enter__(self) -> "DataStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class MemoryDataStream(DataStream):
    """Keeps every data block in memory and cycles through them."""

    def __init__(
        self, num_blocks: int, data_path, max_num_document: int, capacity: int
    ) -> None:
        if num_blocks <= 0:
            raise ValueError("num_blocks must be positive")
        self._data_path = Path(data_path)
        self._index = 0
        self._closed = False
        self._blocks: list[DataBlock] = []
        for block_id in range(num_blocks):
            block = DataBlock(max_num_document, capacity)
            block.read(_block_path(self._data_path, block_id))
            self._blocks.append(block)

    def before_access(self) -> None:
        self._index %= len(self._blocks)

    def end_access(self) -> None:
        self._index += 1

    def current_block(self) -> DataBlock:
        return self._blocks[self._index % len(self._blocks)]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for block in self._blocks:
            block.write()


class _Exhausted:
    """Marker put on the ready queue once every scheduled block was served."""


_EXHAUSTED = _Exhausted()


class DiskDataStream(DataStream):
    """Streams blocks from disk through two buffers with a preload thread.

    While one buffer is being trained on, the other is written back and
    refilled with the next block in the background.
    """

    def __init__(
        self,
        num_blocks: int,
        data_path,
        num_iterations: int,
        max_num_document: int,
        capacity: int,
    ) -> None:
        if num_blocks <= 0:
            raise ValueError("num_blocks must be positive")
        self._num_blocks = num_blocks
        self._num_iterations = num_iterations
        self._data_path = Path(data_path)
        self._buffers = (
            DataBlock(max_num_document, capacity),
            DataBlock(max_num_document, capacity),
        )
        self._free: queue.Queue = queue.Queue()
        self._ready: queue.Queue = queue.Queue()
        self._stop = threading.Event()
        self._current: DataBlock | None = None
        self._failure: BaseException | None = None
        self._closed = False

        first, second = self._buffers
        first.read(_block_path(self._data_path, 0))
        self._ready.put(first)
        self._free.put(second)

        self._thread = threading.Thread(target=self._preload, daemon=True)
        self._thread.start()

    def _take_free(self) -> DataBlock | None:
        while not self._stop.is_set():
            try:
                return self._free.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                continue
        return None

    def _preload(self) -> None:
        last = (self._num_iterations, self._num_blocks - 1)
        try:
            for iteration in range(self._num_iterations + 1):
                for block_id in range(self._num_blocks):
                    buffer = self._take_free()
                    if buffer is None:
                        return
                    if buffer.loaded:
                        buffer.write()
                    if (iteration, block_id) == last:
                        self._ready.put(_EXHAUSTED)
                        return
                    next_block = (block_id + 1) % self._num_blocks
                    buffer.read(_block_path(self._data_path, next_block))
                    self._ready.put(buffer)
            self._ready.put(_EXHAUSTED)
        except Exception as exc:  # forwarded to the consumer
            self._ready.put(exc)

    def before_access(self) -> None:
        if self._closed:
            raise RuntimeError("data stream is closed")
        if self._current is not None:
            raise RuntimeError("previous data block was not released")
        if self._failure is not None:
            raise self._failure
        item = self._ready.get()
        if isinstance(item, _Exhausted):
            self._failure = RuntimeError("data stream is exhausted")
            raise self._failure
        if isinstance(item, BaseException):
            self._failure = item
            raise item
        self._current = item

    def end_access(self) -> None:
        if self._current is None:
            raise RuntimeError("no data block is being accessed")
        buffer, self._current = self._current, None
        self._free.put(buffer)

    def current_block(self) -> DataBlock:
        if self._current is None:
            raise RuntimeError("no data block is being accessed")
        return self._current

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stop.set()
        self._thread.join()
        for buffer in self._buffers:
            if buffer.loaded:
                buffer.write()
        self._current = None


def create_data_stream(config: Config) -> DataStream:
    """Create the data stream that suits ``config``."""
    if config.out_of_core and config.num_blocks != 1:
        return DiskDataStream(
            config.num_blocks,
            config.input_dir,
            config.num_iterations,
            config.max_num_document,
            config.data_capacity,
        )
    return MemoryDataStream(
        config.num_blocks,
        config.input_dir,
        config.max_num_document,
        config.data_capacity,
    )