"""Metropolis-Hastings document sampler of LightLDA."""

from __future__ import annotations

import math
from collections import Counter

from .config import Config
from .rng import XorshiftRng


class SamplerError(Exception):
    """Raised when sampling produces an invalid state."""


def _div(numerator: float, denominator: float) -> float:
    """Divide with IEEE semantics for a zero denominator."""
    if denominator:
        return numerator / denominator
    if numerator > 0:
        return math.inf
    if numerator < 0:
        return -math.inf
    return math.nan


class LightDocSampler:
    """Resamples topic assignments with alternating word and doc proposals."""

    def __init__(self, config: Config, rng: XorshiftRng | None = None) -> None:
        self.alpha = config.alpha
        self.beta = config.beta
        self.num_vocab = config.num_vocabs
        self.num_topic = config.num_topics
        self.mh_steps = config.mh_steps
        self.inference = config.inference
        self.alpha_sum = self.num_topic * self.alpha
        self.beta_sum = self.num_vocab * self.beta
        self.subtractor = 0 if config.inference else 1
        self.rng = rng if rng is not None else XorshiftRng()
        self._doc_topic_counter: Counter = Counter()

    @property
    def doc_topic_counter(self) -> Counter:
        """Topic counts of the document being sampled."""
        return self._doc_topic_counter

    def sample_one_doc(self, doc, slice: int, last_word: int, model, alias) -> int:
        """Resample the tokens of ``doc`` up to ``last_word``; return how many."""
        self._doc_topic_counter = doc.topic_counts()
        counter = self._doc_topic_counter
        if slice == 0:
            doc.cursor = 0
        num_tokens = 0
        while doc.cursor < len(doc):
            cursor = doc.cursor
            word = doc.word(cursor)
            if word > last_word:
                break
            old_topic = doc.topic(cursor)
            new_topic = self.sample(doc, word, old_topic, old_topic, model, alias)
            if new_topic != old_topic:
                doc.set_topic(cursor, new_topic)
                counter[old_topic] -= 1
                counter[new_topic] += 1
                if not self.inference:
                    model.add_word_topic(word, old_topic, -1)
                    model.add_summary(old_topic, -1)
                    model.add_word_topic(word, new_topic, 1)
                    model.add_summary(new_topic, 1)
            num_tokens += 1
            doc.cursor = cursor + 1
        return num_tokens

    def _doc_proposal(self, doc) -> int:
        size = len(doc)
        n_td_or_alpha = self.rng.rand_double() * (size + self.alpha_sum)
        if n_td_or_alpha < size:
            return doc.topic(int(n_td_or_alpha))
        return self.rng.rand_k(self.num_topic)

    def _acceptance(self, word_row, summary, t: int, s: int, old_topic: int, word_step: bool) -> float:
        counter = self._doc_topic_counter
        w_t_cnt = word_row.at(t)
        w_s_cnt = word_row.at(s)
        n_t = summary.at(t)
        n_s = summary.at(s)

        n_td_alpha = counter[t] + self.alpha
        n_sd_alpha = counter[s] + self.alpha
        n_tw_beta = w_t_cnt + self.beta
        n_t_beta_sum = n_t + self.beta_sum
        n_sw_beta = w_s_cnt + self.beta
        n_s_beta_sum = n_s + self.beta_sum
        if s == old_topic:
            n_sd_alpha -= 1
            n_sw_beta -= self.subtractor
            n_s_beta_sum -= self.subtractor
        if t == old_topic:
            n_td_alpha -= 1
            n_tw_beta -= self.subtractor
            n_t_beta_sum -= self.subtractor

        if word_step:
            proposal_s = _div(w_s_cnt + self.beta, n_s + self.beta_sum)
            proposal_t = _div(w_t_cnt + self.beta, n_t + self.beta_sum)
        else:
            proposal_s = counter[s] + self.alpha
            proposal_t = counter[t] + self.alpha

        nominator = n_td_alpha * n_tw_beta * n_s_beta_sum * proposal_s
        denominator = n_sd_alpha * n_sw_beta * n_t_beta_sum * proposal_t
        return _div(nominator, denominator)

    def sample(self, doc, word: int, old_topic: int, s: int, model, alias) -> int:
        """Run the Metropolis-Hastings chain for one token starting at ``s``."""
        word_row = model.word_topic_row(word)
        summary = model.summary_row()
        for _ in range(self.mh_steps):
            t = alias.propose(word, self.rng)
            if not 0 <= t < self.num_topic:
                raise SamplerError(f"Invalid topic assignment {t} from word proposal")
            if t != s:
                rejection = self.rng.rand_double()
                pi = self._acceptance(word_row, summary, t, s, old_topic, True)
                if rejection < pi:
                    s = t
            t = self._doc_proposal(doc)
            if t != s:
                rejection = self.rng.rand_double()
                pi = self._acceptance(word_row, summary, t, s, old_topic, False)
                if rejection < pi:
                    s = t
        return s

    def approx_sample(self, doc, word: int, old_topic: int, s: int, model, alias) -> int:
        """Faster chain that uses only the non-cancelling terms of each ratio."""
        counter = self._doc_topic_counter
        word_row = model.word_topic_row(word)
        summary = model.summary_row()
        for _ in range(self.mh_steps):
            t = alias.propose(word, self.rng)
            if t != s:
                nominator = counter[t] + self.alpha
                denominator = counter[s] + self.alpha
                if t == old_topic:
                    nominator -= 1
                if s == old_topic:
                    denominator -= 1
                pi = _div(nominator, denominator)
                if self.rng.rand_double() < pi:
                    s = t
            t = self._doc_proposal(doc)
            if t != s:
                n_tw_beta = word_row.at(t) + self.beta
                n_sw_beta = word_row.at(s) + self.beta
                n_t_beta_sum = summary.at(t) + self.beta_sum
                n_s_beta_sum = summary.at(s) + self.beta_sum
                if t == old_topic:
                    n_tw_beta -= self.subtractor
                    n_t_beta_sum -= self.subtractor
                if s == old_topic:
                    n_sw_beta -= self.subtractor
                    n_s_beta_sum -= self.subtractor
                pi = _div(n_tw_beta * n_s_beta_sum, n_sw_beta * n_t_beta_sum)
                if self.rng.rand_double() < pi:
                    s = t
        return s