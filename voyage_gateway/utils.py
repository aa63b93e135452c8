"""Token estimation and vector helpers."""

import math
import re
from typing import Iterable, List, Sequence

import numpy as np

_WORD_RE = re.compile(r"[^\W_]+")


def estimate_embedding_tokens(texts: Sequence[str]) -> int:
    """Approximate the token cost of an embeddings request.

    Roughly one token per 4 characters of each text, plus 2 tokens of
    overhead per text.

    Args:
        texts: The texts that will be embedded

    Returns:
        Estimated token count (0 for no texts)
    """
    return sum(math.ceil(len(text) / 4) + 2 for text in texts)


def count_word_tokens(text: str) -> int:
    """Count the alphanumeric runs in text, splitting on whitespace and punctuation."""
    return len(_WORD_RE.findall(text))


def estimate_rerank_tokens(query: str, documents: Iterable[str]) -> int:
    """Approximate the token cost of a rerank request (query + all documents)."""
    return count_word_tokens(query) + sum(count_word_tokens(doc) for doc in documents)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when either vector is empty, the lengths differ, or either
    vector has zero magnitude.
    """
    if len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


def zero_vector() -> List[float]:
    return [0.0]
