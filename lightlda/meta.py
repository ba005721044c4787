"""Vocabulary meta information, model slicing and alias table indexes."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path

from .config import LOAD_FACTOR, Config

logger = logging.getLogger(__name__)

_INT32_SIZE = 4


class MetaError(Exception):
    """Raised when meta information is missing or inconsistent."""


def read_vocab_file(path) -> tuple[list[int], list[int], list[int]]:
    """Read a binary vocab file into (word ids, global tf, local tf)."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise MetaError(f"Failed to open file : {path}") from exc
    if len(data) < _INT32_SIZE:
        raise MetaError(f"Truncated vocab file : {path}")
    (size,) = struct.unpack_from("<i", data, 0)
    if size < 0 or len(data) < _INT32_SIZE * (1 + 3 * size):
        raise MetaError(f"Truncated vocab file : {path}")
    values = struct.unpack_from(f"<{3 * size}i", data, _INT32_SIZE)
    return list(values[:size]), list(values[size : 2 * size]), list(values[2 * size :])


@dataclass
class LocalVocab:
    """Words occurring in one data block and how they are split into slices."""

    vocabs: list[int] = field(default_factory=list)
    slice_index: list[int] = field(default_factory=list)

    @property
    def num_slices(self) -> int:
        """Number of slices the vocabulary is split into."""
        return max(len(self.slice_index) - 1, 0)

    def last_word(self, slice: int) -> int:
        """Last word of ``slice``."""
        return self.vocabs[self.slice_index[slice + 1] - 1]

    def words(self, slice: int) -> list[int]:
        """Words belonging to ``slice``."""
        return self.vocabs[self.slice_index[slice] : self.slice_index[slice + 1]]


@dataclass
class WordEntry:
    """Location and layout of one word's row in the alias table memory."""

    is_dense: bool
    begin_offset: int
    capacity: int


class AliasTableIndex:
    """Maps words of one slice to their alias table entries."""

    def __init__(self, num_vocabs: int) -> None:
        self._entries: list[WordEntry] = []
        self._index_map = [-1] * num_vocabs

    def word_entry(self, word: int) -> WordEntry:
        """Return the entry for ``word``."""
        if not 0 <= word < len(self._index_map) or self._index_map[word] == -1:
            raise MetaError(f"Fatal in alias index: word {word} not exist")
        return self._entries[self._index_map[word]]

    def push_word(
        self, word: int, is_dense: bool, begin_offset: int, capacity: int
    ) -> None:
        """Register ``word`` with its layout."""
        if not 0 <= word < len(self._index_map):
            raise MetaError(f"word {word} outside vocabulary")
        self._index_map[word] = len(self._entries)
        self._entries.append(WordEntry(is_dense, begin_offset, capacity))


class Meta:
    """Meta information of all data blocks of this process."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self._local_vocabs: list[LocalVocab] = []
        self._tf: list[int] = []
        self._local_tf: list[int] = []
        self._alias_index: list[list[AliasTableIndex]] = []

    def load(self) -> None:
        """Read all vocab files, schedule slices and build alias indexes."""
        config = self.config
        self._tf = [0] * config.num_vocabs
        self._local_tf = [0] * config.num_vocabs
        self._local_vocabs = []
        for block in range(config.num_blocks):
            path = Path(config.input_dir) / f"vocab.{block}"
            words, tf, local_tf = read_vocab_file(path)
            for word, global_count, local_count in zip(words, tf, local_tf):
                if not 0 <= word < config.num_vocabs:
                    raise MetaError(f"word {word} in {path} outside vocabulary")
                self._tf[word] = max(self._tf[word], global_count)
                self._local_tf[word] = max(self._local_tf[word], local_count)
            self._local_vocabs.append(LocalVocab(vocabs=words))

        if config.inference:
            self._schedule_for_inference()
        else:
            self._schedule()
        self._build_alias_index()

    def tf(self, word: int) -> int:
        """Term frequency of ``word`` in the whole dataset."""
        return self._tf[word]

    def local_tf(self, word: int) -> int:
        """Term frequency of ``word`` in the local data."""
        return self._local_tf[word]

    def local_vocab(self, block: int) -> LocalVocab:
        """Local vocabulary of data block ``block``."""
        return self._local_vocabs[block]

    def alias_index(self, block: int, slice: int) -> AliasTableIndex:
        """Alias table index for ``slice`` of ``block``."""
        return self._alias_index[block][slice]

    def _schedule(self) -> None:
        config = self.config
        num_topics = config.num_topics
        model_thresh = num_topics // (2 * LOAD_FACTOR)
        alias_thresh = (num_topics * 2) // 3
        delta_thresh = num_topics // (4 * LOAD_FACTOR)

        for block, local_vocab in enumerate(self._local_vocabs):
            local_vocab.slice_index = [0]
            model_offset = alias_offset = delta_offset = 0
            for position, word in enumerate(local_vocab.vocabs):
                tf = self._tf[word]
                local_tf = self._local_tf[word]
                model_size = (
                    num_topics * _INT32_SIZE
                    if tf > model_thresh
                    else tf * LOAD_FACTOR * _INT32_SIZE
                )
                alias_size = (
                    num_topics * 2 * _INT32_SIZE
                    if tf > alias_thresh
                    else tf * 3 * _INT32_SIZE
                )
                delta_size = (
                    num_topics * _INT32_SIZE
                    if local_tf > delta_thresh
                    else local_tf * LOAD_FACTOR * 2 * _INT32_SIZE
                )
                model_offset += model_size
                alias_offset += alias_size
                delta_offset += delta_size
                if (
                    model_offset > config.model_capacity
                    or alias_offset > config.alias_capacity
                    or delta_offset > config.delta_capacity
                ):
                    logger.info(
                        "Actual Model capacity: %d MB, Alias capacity: %d MB, "
                        "Delta capacity: %dMB",
                        model_offset // 1024 // 1024,
                        alias_offset // 1024 // 1024,
                        delta_offset // 1024 // 1024,
                    )
                    local_vocab.slice_index.append(position)
                    model_offset = model_size
                    alias_offset = alias_size
                    delta_offset = delta_size
            local_vocab.slice_index.append(len(local_vocab.vocabs))
            logger.info(
                "block = %d, the number of slice = %d", block, local_vocab.num_slices
            )

    def _schedule_for_inference(self) -> None:
        config = self.config
        config.alias_capacity = 0
        alias_thresh = (config.num_topics * 2) // 3
        for local_vocab in self._local_vocabs:
            local_vocab.slice_index = [0, len(local_vocab.vocabs)]
            alias_offset = 0
            for word in local_vocab.vocabs:
                tf = self._tf[word]
                alias_offset += (
                    config.num_topics * 2 * _INT32_SIZE
                    if tf > alias_thresh
                    else tf * 3 * _INT32_SIZE
                )
            config.alias_capacity = max(config.alias_capacity, alias_offset)
        logger.info(
            "Actual Alias capacity: %d MB", config.alias_capacity // 1024 // 1024
        )

    def _build_alias_index(self) -> None:
        config = self.config
        num_topics = config.num_topics
        alias_thresh = (num_topics * 2) // 3
        self._alias_index = []
        for local_vocab in self._local_vocabs:
            block_indexes = []
            for slice in range(local_vocab.num_slices):
                index = AliasTableIndex(config.num_vocabs)
                offset = 0
                for word in local_vocab.words(slice):
                    tf = self._tf[word]
                    if tf <= alias_thresh:
                        index.push_word(word, False, offset, tf)
                        offset += tf * 3
                    else:
                        index.push_word(word, True, offset, num_topics)
                        offset += num_topics * 2
                block_indexes.append(index)
            self._alias_index.append(block_indexes)