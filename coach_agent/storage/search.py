"""TF-IDF relevance ranking shared by the file-backed stores."""

from __future__ import annotations

import math
import re
from collections import Counter
from typing import Sequence, TypeVar

T = TypeVar("T")


def tokenize(text: str) -> list[str]:
    """Simple whitespace + punctuation tokenizer."""
    return re.findall(r"\w+", text.lower())


def tfidf_score(
    query_terms: list[str],
    doc_terms: list[str],
    doc_freq: Counter[str],
    n_docs: int,
) -> float:
    """Compute TF-IDF similarity score between query and document."""
    if not doc_terms:
        return 0.0

    doc_counter = Counter(doc_terms)
    doc_len = len(doc_terms)
    score = 0.0

    for term in query_terms:
        tf = doc_counter.get(term, 0) / doc_len
        df = doc_freq.get(term, 0)
        if df > 0:
            # +1 keeps terms that appear in every document (or a single-document corpus) scorable.
            idf = math.log((n_docs + 1) / df)
            score += tf * idf

    return score


def rank(query: str, documents: Sequence[tuple[T, str]], top_k: int = 5) -> list[tuple[float, T]]:
    """
    Rank ``(item, text)`` pairs against a query.

    Returns:
        ``(score, item)`` pairs with a positive score, best first.
    """
    if not documents:
        return []

    query_terms = tokenize(query)
    if not query_terms:
        return []

    doc_freq: Counter[str] = Counter()
    doc_tokens: list[list[str]] = []
    for _, text in documents:
        tokens = tokenize(text)
        doc_tokens.append(tokens)
        for term in set(tokens):
            doc_freq[term] += 1

    n_docs = len(documents)
    scored: list[tuple[float, T]] = []
    for (item, _), tokens in zip(documents, doc_tokens):
        score = tfidf_score(query_terms, tokens, doc_freq, n_docs)
        if score > 0:
            scored.append((score, item))

    scored.sort(key=lambda x: x[0], reverse=True)
    return scored[:top_k]
