"""Training data blocks stored as binary block files."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .document import Document

_INT32_SIZE = 4
_INT64_SIZE = 8


class DataBlockError(Exception):
    """Raised when a block file cannot be read or written."""


class DataBlock:
    """One block of the training corpus, matching one block file on disk.

    ``capacity`` is the memory budget in bytes for the token buffer; blocks
    whose token buffer would exceed it are rejected.
    """

    def __init__(self, max_num_document: int, capacity: int) -> None:
        self.max_num_document = max_num_document
        self.memory_block_size = capacity // _INT32_SIZE
        self.path: Path | None = None
        self.meta: Any = None
        self._offsets: list[int] = [0]
        self._buffer: list[int] = []
        self._documents: list[Document] = []
        self._loaded = False

    @property
    def loaded(self) -> bool:
        """Whether the block holds data read from disk and not yet written back."""
        return self._loaded

    @property
    def corpus_size(self) -> int:
        """Number of int32 values in the token buffer."""
        return self._offsets[-1]

    def __len__(self) -> int:
        return len(self._documents)

    def document(self, index: int) -> Document:
        """Return the document at ``index``."""
        return self._documents[index]

    def read(self, path) -> None:
        """Load the block file at ``path``."""
        path = Path(path)
        self.path = path
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise DataBlockError(f"Failed to read data {path}") from exc

        if len(data) < _INT64_SIZE:
            raise DataBlockError(f"Truncated block header in {path}")
        (num_document,) = struct.unpack_from("<q", data, 0)
        if num_document < 0:
            raise DataBlockError(f"Negative number of documents in {path}")
        if num_document > self.max_num_document:
            raise DataBlockError(
                f"Num of documents > max number of documents when reading file {path}"
            )

        header_end = _INT64_SIZE * (num_document + 2)
        if len(data) < header_end:
            raise DataBlockError(f"Truncated document offsets in {path}")
        offsets = list(struct.unpack_from(f"<{num_document + 1}q", data, _INT64_SIZE))

        corpus_size = offsets[-1]
        if corpus_size > self.memory_block_size:
            raise DataBlockError(
                f"corpus_size > memory_block_size when reading file {path}"
            )
        body_end = header_end + _INT32_SIZE * corpus_size
        if len(data) < body_end:
            raise DataBlockError(f"Truncated document data in {path}")
        buffer = list(struct.unpack_from(f"<{corpus_size}i", data, header_end))

        try:
            documents = [
                Document(buffer, start, stop)
                for start, stop in zip(offsets, offsets[1:])
            ]
        except ValueError as exc:
            raise DataBlockError(f"Invalid document offsets in {path}: {exc}") from exc

        self._offsets = offsets
        self._buffer = buffer
        self._documents = documents
        self._loaded = True

    def write(self) -> None:
        """Write the block back to its file, replacing it atomically."""
        if self.path is None:
            raise DataBlockError("No file has been read into this block")
        temp_path = self.path.with_name(self.path.name + ".temp")
        num_document = len(self._documents)
        try:
            with open(temp_path, "wb") as stream:
                stream.write(struct.pack("<q", num_document))
                stream.write(struct.pack(f"<{len(self._offsets)}q", *self._offsets))
                stream.write(
                    struct.pack(f"<{self.corpus_size}i", *self._buffer[: self.corpus_size])
                )
                stream.flush()
        except OSError as exc:
            raise DataBlockError(f"Failed to open file {temp_path}") from exc
        try:
            os.replace(temp_path, self.path)
        except OSError as exc:
            raise DataBlockError("Failed to move tmp file to final location") from exc
        self._loaded = False


@dataclass
class LDADataBlock:
    """A slice of a data block scheduled for one training step."""

    data: DataBlock
    block: int = 0
    slice: int = 0
    iteration: int = 0