"""Word-topic and summary tables and a model loaded from dumped files."""

from __future__ import annotations

import abc
import logging
import os
import re
from pathlib import Path

from .config import LOAD_FACTOR, SUMMARY_ROW, WORD_TOPIC_TABLE, Config

logger = logging.getLogger(__name__)

_INT_PREFIX = re.compile(r"\s*([+-]?[0-9]+)")
_WORD_TOPIC_FILE = re.compile(rf"server_[0-9]+_table_{WORD_TOPIC_TABLE}\.model")
_SUMMARY_FILE = re.compile(rf"server_[0-9]+_table_{SUMMARY_ROW}\.model")


class ModelError(Exception):
    """Raised when a model cannot be loaded or used."""


class TopicRow:
    """Topic counts of one row, stored densely or sparsely."""

    def __init__(self, dense: bool, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("capacity must not be negative")
        self.dense = dense
        self.capacity = capacity
        self._values: list[int] | dict[int, int] = [0] * capacity if dense else {}

    def _check(self, topic: int) -> None:
        if not 0 <= topic < self.capacity:
            raise IndexError(f"topic {topic} outside dense row of {self.capacity}")

    def at(self, topic: int) -> int:
        """Count stored for ``topic``."""
        if self.dense:
            self._check(topic)
            return self._values[topic]
        return self._values.get(topic, 0)

    def add(self, topic: int, delta: int) -> None:
        """Add ``delta`` to the count of ``topic``."""
        if self.dense:
            self._check(topic)
            self._values[topic] += delta
            return
        value = self._values.get(topic, 0) + delta
        if value:
            self._values[topic] = value
        else:
            self._values.pop(topic, None)

    def items(self) -> list[tuple[int, int]]:
        """Non-zero (topic, count) pairs in topic order."""
        if self.dense:
            return [(topic, value) for topic, value in enumerate(self._values) if value]
        return sorted(self._values.items())

    def nonzero_size(self) -> int:
        """Number of topics with a non-zero count."""
        if self.dense:
            return sum(1 for value in self._values if value)
        return len(self._values)


class ModelBase(abc.ABC):
    """Access to the word-topic table and the topic summary row."""

    @abc.abstractmethod
    def word_topic_row(self, word: int) -> TopicRow:
        """Topic counts of ``word``."""

    @abc.abstractmethod
    def summary_row(self) -> TopicRow:
        """Total counts per topic."""

    @abc.abstractmethod
    def add_word_topic(self, word: int, topic: int, delta: int) -> None:
        """Add ``delta`` to the count of ``topic`` for ``word``."""

    @abc.abstractmethod
    def add_summary(self, topic: int, delta: int) -> None:
        """Add ``delta`` to the total count of ``topic``."""


def _stoi(text: str, line: str) -> int:
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ModelError(f"bad format of model: {line}")
    return int(match.group(1))


def _features(tokens: list[str], line: str):
    for feature in tokens:
        pos = feature.rfind(":")
        if pos == -1:
            raise ModelError(f"bad format of model: {line}")
        yield _stoi(feature[:pos], line), _stoi(feature[pos + 1 :], line)


class LocalModel(ModelBase):
    """Model held in local tables, loaded from server model files in the input directory."""

    def __init__(self, meta, config: Config) -> None:
        self.meta = meta
        self.config = config
        self._word_topic: dict[int, TopicRow] = {}
        self._summary = TopicRow(True, config.num_topics)

    def _new_row(self, word: int) -> TopicRow:
        tf = self.meta.tf(word)
        num_topics = self.config.num_topics
        if tf * LOAD_FACTOR > num_topics:
            return TopicRow(True, num_topics)
        return TopicRow(False, tf * LOAD_FACTOR)

    def _check_word(self, word: int) -> None:
        if not 0 <= word < self.config.num_vocabs:
            raise ModelError(f"word {word} outside vocabulary")

    def load(self) -> None:
        """Load every word-topic and summary model file in the input directory."""
        input_dir = Path(self.config.input_dir)
        logger.info("loading model")
        try:
            names = sorted(os.listdir(input_dir))
        except OSError as exc:
            raise ModelError(f"model dir does not exist : {input_dir}") from exc
        for name in names:
            if _WORD_TOPIC_FILE.fullmatch(name):
                logger.info("loading word topic table[%s]", name)
                self.load_word_topic_table(input_dir / name)
            elif _SUMMARY_FILE.fullmatch(name):
                logger.info("loading summary table[%s]", name)
                self.load_summary_table(input_dir / name)

    def load_word_topic_table(self, path) -> None:
        """Load ``word topic:count ...`` lines for words seen in the data."""
        try:
            with open(path, encoding="utf-8") as stream:
                for raw in stream:
                    line = raw.rstrip("\n")
                    tokens = line.split()
                    word = _stoi(tokens[0] if tokens else "", line)
                    self._check_word(word)
                    if self.meta.tf(word) <= 0:
                        continue
                    row = self._new_row(word)
                    self._word_topic[word] = row
                    for topic, count in _features(tokens[1:], line):
                        row.add(topic, count)
        except OSError as exc:
            raise ModelError(f"Failed to open file : {path}") from exc

    def load_summary_table(self, path) -> None:
        """Load topic totals from the first line of a summary model file."""
        try:
            with open(path, encoding="utf-8") as stream:
                line = stream.readline()
        except OSError as exc:
            raise ModelError(f"Failed to open file : {path}") from exc
        if not line:
            return
        line = line.rstrip("\n")
        for topic, count in _features(line.split()[1:], line):
            self._summary.add(topic, count)

    def word_topic_row(self, word: int) -> TopicRow:
        self._check_word(word)
        row = self._word_topic.get(word)
        if row is None:
            row = self._new_row(word)
            self._word_topic[word] = row
        return row

    def summary_row(self) -> TopicRow:
        return self._summary

    def add_word_topic(self, word: int, topic: int, delta: int) -> None:
        self.word_topic_row(word).add(topic, delta)

    def add_summary(self, topic: int, delta: int) -> None:
        self._summary.add(topic, delta)