"""Token estimates and vector similarity."""

import pytest

from voyage_gateway.utils import (
    count_word_tokens,
    cosine_similarity,
    estimate_embedding_tokens,
    estimate_rerank_tokens,
    zero_vector,
)


def test_embedding_estimate_per_text():
    assert estimate_embedding_tokens([]) == 0
    assert estimate_embedding_tokens([""]) == 2
    assert estimate_embedding_tokens(["abcd"]) == 3
    assert estimate_embedding_tokens(["abcde", "xy"]) == (2 + 2) + (1 + 2)


def test_word_tokens_split_on_punctuation():
    assert count_word_tokens("hello, world! it's 2024") == 5
    assert count_word_tokens("snake_case") == 2
    assert count_word_tokens("   ") == 0


def test_rerank_estimate_covers_query_and_documents():
    assert estimate_rerank_tokens("two words", ["one", "three more words"]) == 6


def test_cosine_similarity():
    a = [1.0, 2.0, 3.0]
    b = [-2.0, 0.5, 4.0]

    assert cosine_similarity(a, a) == pytest.approx(1.0)
    assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


def test_cosine_similarity_degenerate_inputs():
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity([1.0], [1.0, 2.0]) == 0.0
    assert cosine_similarity(zero_vector(), [1.0]) == 0.0
