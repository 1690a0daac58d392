"""
ArticleEmbedder tests

Batching, truncation, retry and partial-failure reporting against a fake
embedding backend. Sleeps are recorded instead of slept.
"""

from datetime import datetime, timedelta

import pytest

from newsletter_digest.aggregation.embedder import (
    ArticleEmbedder,
    EmbeddingExhausted,
    MAX_CHARS_PER_ARTICLE,
    embedding_stats,
    prepare_text,
)
from newsletter_digest.models import Article, EmbeddedArticle


# =============================================================================
# Helper Functions
# =============================================================================

def make_articles(count: int, content: str = "body text") -> list[Article]:
    base = datetime(2025, 3, 1)
    return [
        Article.create(f"Source {i}", f"Subject {i}", base + timedelta(hours=i), content)
        for i in range(count)
    ]


class FakeEmbeddingService:
    """Returns a 3-d vector per text; fails the listed call numbers."""

    def __init__(self, fail_calls=(), fail_always=False):
        self.calls: list[list[str]] = []
        self.fail_calls = set(fail_calls)
        self.fail_always = fail_always

    def embed(self, texts):
        self.calls.append(list(texts))
        if self.fail_always or len(self.calls) in self.fail_calls:
            raise ConnectionError("rate limited")
        return [[float(len(t)), 1.0, 0.0] for t in texts]


class BatchFailingService(FakeEmbeddingService):
    """Always fails any batch containing the marked subject."""

    def __init__(self, poisoned_subject):
        super().__init__()
        self.poisoned_subject = poisoned_subject

    def embed(self, texts):
        self.calls.append(list(texts))
        if any(t.startswith(self.poisoned_subject + "\n") for t in texts):
            raise ConnectionError("server error")
        return [[1.0, 0.0, 0.0] for _ in texts]


# =============================================================================
# Tests
# =============================================================================

class TestPrepareText:
    def test_subject_and_content_joined(self):
        article = make_articles(1, content="Hello")[0]
        assert prepare_text(article) == "Subject 0\n\nHello"

    def test_truncated_to_budget(self):
        article = make_articles(1, content="x" * (MAX_CHARS_PER_ARTICLE + 500))[0]
        assert len(prepare_text(article)) == MAX_CHARS_PER_ARTICLE


class TestArticleEmbedder:
    """ArticleEmbedder.embed()"""

    def test_empty_input(self):
        service = FakeEmbeddingService()
        result = ArticleEmbedder(service, sleep=lambda _: None).embed([])

        assert result.embedded == []
        assert result.failed_ids == []
        assert service.calls == []

    def test_batches_of_twenty(self):
        service = FakeEmbeddingService()
        sleeps = []
        articles = make_articles(45)

        result = ArticleEmbedder(service, sleep=sleeps.append).embed(articles)

        assert [len(call) for call in service.calls] == [20, 20, 5]
        assert [e.article for e in result.embedded] == articles
        assert result.failed_ids == []
        # Inter-batch delay, none after the last batch
        assert sleeps == [0.2, 0.2]

    def test_single_batch_no_delay(self):
        sleeps = []
        ArticleEmbedder(FakeEmbeddingService(), sleep=sleeps.append).embed(make_articles(3))
        assert sleeps == []

    def test_long_content_truncated_before_sending(self):
        service = FakeEmbeddingService()
        articles = make_articles(2, content="y" * 10000)

        ArticleEmbedder(service, sleep=lambda _: None).embed(articles)

        assert all(len(text) <= MAX_CHARS_PER_ARTICLE for text in service.calls[0])

    def test_transient_failure_retried(self):
        service = FakeEmbeddingService(fail_calls={1})
        sleeps = []

        result = ArticleEmbedder(service, sleep=sleeps.append).embed(make_articles(5))

        assert len(service.calls) == 2
        assert result.success_count == 5
        assert sleeps == [1.0]

    def test_failed_batch_reported_whole(self):
        articles = make_articles(45)
        service = BatchFailingService(poisoned_subject="Subject 25")
        sleeps = []

        result = ArticleEmbedder(service, sleep=sleeps.append).embed(articles)

        assert result.failed_ids == [a.id for a in articles[20:40]]
        assert [e.article for e in result.embedded] == articles[:20] + articles[40:]
        # 3 attempts on the failing batch: backoff 1s, 2s
        assert len(service.calls) == 1 + 3 + 1
        assert sleeps == [0.2, 1.0, 2.0, 0.2]

    def test_all_batches_fail(self):
        articles = make_articles(25)
        service = FakeEmbeddingService(fail_always=True)

        with pytest.raises(EmbeddingExhausted) as exc_info:
            ArticleEmbedder(service, sleep=lambda _: None).embed(articles)

        assert exc_info.value.failed_ids == [a.id for a in articles]

    def test_count_mismatch_treated_as_failure(self):
        class ShortService:
            def embed(self, texts):
                return [[1.0]]

        with pytest.raises(EmbeddingExhausted):
            ArticleEmbedder(ShortService(), sleep=lambda _: None).embed(make_articles(3))

    def test_custom_config(self):
        service = FakeEmbeddingService()
        embedder = ArticleEmbedder(
            service,
            {'batch_size': 2, 'batch_delay': 0.5, 'max_chars_per_article': 5},
            sleep=lambda _: None,
        )

        embedder.embed(make_articles(3))

        assert [len(call) for call in service.calls] == [2, 1]
        assert all(len(text) <= 5 for call in service.calls for text in call)

    def test_invalid_batch_size(self):
        with pytest.raises(ValueError):
            ArticleEmbedder(FakeEmbeddingService(), {'batch_size': 0})


class TestEmbeddingStats:
    def test_empty(self):
        assert embedding_stats([])["count"] == 0

    def test_magnitudes(self):
        articles = make_articles(2)
        embedded = [
            EmbeddedArticle(articles[0], [3.0, 4.0]),
            EmbeddedArticle(articles[1], [0.0, 1.0]),
        ]

        stats = embedding_stats(embedded)

        assert stats["count"] == 2
        assert stats["dimensions"] == 2
        assert stats["min_magnitude"] == pytest.approx(1.0)
        assert stats["max_magnitude"] == pytest.approx(5.0)
        assert stats["avg_magnitude"] == pytest.approx(3.0)
