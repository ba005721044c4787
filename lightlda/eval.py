"""Log-likelihood evaluation for LDA models."""

from __future__ import annotations

import math
from typing import Any, Mapping

_COF = (
    76.18009172947146,
    -86.50532032941677,
    24.01409824083091,
    -1.231739572450155,
    0.1208650973866179e-2,
    -0.5395239384953e-5,
)


def log_gamma(x: float) -> float:
    """Lanczos approximation of ln(Gamma(x)) for x > 0."""
    y = x
    tmp = x + 5.5
    tmp -= (x + 0.5) * math.log(tmp)
    ser = 1.000000000190015
    for c in _COF:
        y += 1
        ser += c / y
    return -tmp + math.log(2.5066282746310005 * ser / x)


def _nonzero_counts(row: Any) -> list:
    items = row.items() if hasattr(row, "items") else enumerate(row)
    return [value for _, value in items if value]


def _count_lookup(summary: Any) -> Mapping:
    if hasattr(summary, "items"):
        return dict(summary.items())
    return dict(enumerate(summary))


def doc_log_likelihood(doc, num_topics: int, alpha: float) -> float:
    """Document part of the log-likelihood for one document."""
    size = len(doc)
    if size == 0:
        return 0.0
    llh = log_gamma(num_topics * alpha) - num_topics * log_gamma(alpha)
    counts = [c for c in doc.topic_counts().values() if c]
    for count in counts:
        llh += log_gamma(count + alpha)
    llh += (num_topics - len(counts)) * log_gamma(alpha)
    llh -= log_gamma(size + alpha * num_topics)
    return llh


def word_log_likelihood(row, num_topics: int, beta: float) -> float:
    """Word part of the log-likelihood for one word-topic row."""
    counts = _nonzero_counts(row)
    if not counts:
        return 0.0
    llh = sum(log_gamma(count + beta) for count in counts)
    llh += (num_topics - len(counts)) * log_gamma(beta)
    return llh


def normalize_word_log_likelihood(
    summary, num_topics: int, num_vocabs: int, beta: float
) -> float:
    """Normalisation term of the word log-likelihood from topic totals."""
    totals = _count_lookup(summary)
    llh = num_topics * (
        log_gamma(beta * num_vocabs) - num_vocabs * log_gamma(beta)
    )
    for topic in range(num_topics):
        llh -= log_gamma(totals.get(topic, 0) + num_vocabs * beta)
    return llh