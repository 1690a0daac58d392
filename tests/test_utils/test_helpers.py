"""
Helper function tests

Chunking, truncation, date formatting, similarity and id hashing.
"""

from datetime import datetime

import pytest
from hypothesis import given, strategies as st, settings

from newsletter_digest.utils.helpers import (
    chunk,
    cosine_similarity,
    estimate_tokens,
    estimate_word_count,
    format_date_range,
    generate_article_id,
    truncate,
    vector_norm,
)


class TestChunk:
    """chunk()"""

    def test_even_split(self):
        assert chunk([1, 2, 3, 4], 2) == [[1, 2], [3, 4]]

    def test_last_chunk_shorter(self):
        assert chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_empty(self):
        assert chunk([], 3) == []

    @pytest.mark.parametrize("size", [0, -1])
    def test_non_positive_size_rejected(self, size):
        with pytest.raises(ValueError):
            chunk([1, 2], size)

    @given(
        items=st.lists(st.integers(), max_size=60),
        size=st.integers(min_value=1, max_value=25),
    )
    @settings(max_examples=50, deadline=None)
    def test_chunks_reassemble_in_order(self, items, size):
        chunks = chunk(items, size)
        assert [x for c in chunks for x in c] == items
        assert all(1 <= len(c) <= size for c in chunks)


class TestTruncate:
    """truncate()"""

    def test_short_text_unchanged(self):
        assert truncate("short", 10) == "short"

    def test_long_text_gets_ellipsis(self):
        result = truncate("hello world", 8)
        assert result == "hello..."
        assert len(result) == 8


class TestFormatDateRange:
    def test_same_year(self):
        assert format_date_range(datetime(2025, 3, 1), datetime(2025, 3, 8)) == "Mar 1 - Mar 8, 2025"

    def test_month_boundary(self):
        assert format_date_range(datetime(2025, 1, 28), datetime(2025, 2, 4)) == "Jan 28 - Feb 4, 2025"


class TestCosineSimilarity:
    """cosine_similarity() / vector_norm()"""

    def test_identical_vectors(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_vector_norm(self):
        assert vector_norm([3.0, 4.0]) == pytest.approx(5.0)


class TestGenerateArticleId:
    """generate_article_id()"""

    def test_stable(self):
        date = datetime(2025, 3, 1, 9, 30)
        assert generate_article_id("Stratechery", "Apple", date) == generate_article_id(
            "Stratechery", "Apple", date
        )

    def test_sensitive_to_each_field(self):
        date = datetime(2025, 3, 1)
        base = generate_article_id("A", "B", date)
        assert generate_article_id("A2", "B", date) != base
        assert generate_article_id("A", "B2", date) != base
        assert generate_article_id("A", "B", datetime(2025, 3, 2)) != base

    def test_length(self):
        assert len(generate_article_id("A", "B", "2025-03-01")) == 16


class TestEstimates:
    def test_word_count(self):
        assert estimate_word_count("one two  three\nfour") == 4
        assert estimate_word_count("") == 0

    def test_tokens(self):
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("") == 0
