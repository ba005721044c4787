"""Alias tables for sampling from the LightLDA word proposal distribution."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from itertools import chain, cycle
from typing import Sequence

from .rng import XorshiftRng

_MAX_INT = 0x7FFFFFFF


class AliasTableError(Exception):
    """Raised when an alias row cannot be built or used."""


def alias_multinomial(
    proportions: Sequence[float], mass: float
) -> tuple[int, list[tuple[int, int]]]:
    """Build an integer alias table for ``proportions`` normalised by ``mass``.

    Returns ``(height, kv)``: bucket ``i`` covers integer samples in
    ``[i * height, (i + 1) * height)``; a sample below ``kv[i][1]`` yields
    ``i``, otherwise the alias ``kv[i][0]``.
    """
    size = len(proportions)
    if size == 0:
        raise ValueError("cannot build an alias table of no outcomes")
    if not mass > 0:
        raise ValueError("mass must be positive")
    height = _MAX_INT // size
    mass_int = height * size
    ints = [int(p / mass * mass_int) for p in proportions]

    excess = sum(ints) - mass_int
    if excess > 0:
        removed = 0
        for idx in cycle(range(size)):
            if removed >= excess:
                break
            if ints[idx] >= 1:
                ints[idx] -= 1
                removed += 1
    elif excess < 0:
        for _, idx in zip(range(-excess), cycle(range(size))):
            ints[idx] += 1

    kv = [(k, (k + 1) * height) for k in range(size)]
    low: deque[tuple[int, int]] = deque()
    high: deque[tuple[int, int]] = deque()
    for k, value in enumerate(ints):
        (low if value < height else high).append((k, value))

    while low and high:
        l_k, l_v = low.popleft()
        h_k, h_v = high.popleft()
        kv[l_k] = (h_k, l_k * height + l_v)
        total = h_v + l_v
        if total > 2 * height:
            high.append((h_k, total - height))
        else:
            low.append((h_k, total - height))

    for k, value in chain(low, high):
        kv[k] = (k, k * height + value)
    return height, kv


@dataclass
class _AliasRow:
    height: int
    mass: float
    kv: list[tuple[int, int]]
    topics: list[int]


class AliasTable:
    """Alias rows for the words of one slice plus the shared beta row.

    Dense words hold an alias over all topics; sparse words hold an alias
    over their non-zero topics and fall back to the beta row for the prior.
    """

    def __init__(self, num_vocabs: int, num_topics: int, beta: float) -> None:
        self.num_vocabs = num_vocabs
        self.num_topics = num_topics
        self.beta = beta
        self.beta_sum = beta * num_vocabs
        self._index = None
        self._rows: dict[int, _AliasRow] = {}
        self._beta_row: _AliasRow | None = None

    def set_index(self, table_index) -> None:
        """Use ``table_index`` to find the layout of each word."""
        self._index = table_index

    def _entry(self, word: int):
        if self._index is None:
            raise AliasTableError("alias table has no index")
        return self._index.word_entry(word)

    def build(self, word: int, model) -> None:
        """Build the alias row of ``word``, or the beta row when ``word`` is -1."""
        summary = model.summary_row()
        if word == -1:
            proportions = [
                self.beta / (summary.at(k) + self.beta_sum)
                for k in range(self.num_topics)
            ]
            mass = sum(proportions)
            height, kv = alias_multinomial(proportions, mass)
            self._beta_row = _AliasRow(height, mass, kv, list(range(self.num_topics)))
            return

        entry = self._entry(word)
        row = model.word_topic_row(word)
        if entry.is_dense:
            topics = list(range(self.num_topics))
            proportions = [
                (row.at(k) + self.beta) / (summary.at(k) + self.beta_sum)
                for k in topics
            ]
        else:
            entry.capacity = row.nonzero_size()
            items = row.items()
            if not items:
                raise AliasTableError(
                    f"Fail to build alias row, capacity of row = {entry.capacity}"
                )
            topics = [topic for topic, _ in items]
            proportions = [
                count / (summary.at(topic) + self.beta_sum) for topic, count in items
            ]
        mass = sum(proportions)
        height, kv = alias_multinomial(proportions, mass)
        self._rows[word] = _AliasRow(height, mass, kv, topics)

    def propose(self, word: int, rng: XorshiftRng) -> int:
        """Draw a topic for ``word`` from its word proposal distribution."""
        entry = self._entry(word)
        row = self._rows.get(word)
        if row is None:
            raise AliasTableError(f"alias row of word {word} has not been built")
        capacity = entry.capacity
        if entry.is_dense:
            sample = rng.rand()
            idx = min(sample // row.height, capacity - 1)
            alias, bound = row.kv[idx]
            return idx if sample < bound else alias

        beta_row = self._beta_row
        if beta_row is None:
            raise AliasTableError("beta alias row has not been built")
        sample = rng.rand_double() * (row.mass + beta_row.mass)
        if sample < row.mass:
            n_kw_sample = rng.rand()
            idx = min(n_kw_sample // row.height, capacity - 1)
            alias, bound = row.kv[idx]
            return row.topics[idx] if n_kw_sample < bound else row.topics[alias]
        beta_sample = rng.rand()
        idx = min(beta_sample // beta_row.height, self.num_topics - 1)
        alias, bound = beta_row.kv[idx]
        return idx if beta_sample < bound else alias

    def clear(self) -> None:
        """Drop every built row."""
        self._rows.clear()
        self._beta_row = None