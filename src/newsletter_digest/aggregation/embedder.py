"""
文章向量化模块
Article embedding module

Turns articles into embedding vectors through an injected embedding
service. Articles are sent in fixed-size batches, each batch retried with
exponential backoff. A batch that exhausts its retries is recorded as failed
as a whole (the upstream call is all-or-nothing) and the run continues; only
when every batch fails is the operation aborted.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

import numpy as np

from newsletter_digest.models import Article, EmbeddedArticle
from newsletter_digest.utils.helpers import chunk
from newsletter_digest.utils.retry import with_retry

logger = logging.getLogger(__name__)

# Sized so 20 articles x ~1500 tokens stays well under the request limit
DEFAULT_BATCH_SIZE = 20
MAX_CHARS_PER_ARTICLE = 6000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 1.0
DEFAULT_BATCH_DELAY = 0.2


class EmbeddingBackend(Protocol):
    def embed(self, texts: list[str]) -> list[list[float]]:
        ...


class EmbeddingExhausted(RuntimeError):
    """Every embedding batch failed; nothing can be clustered."""

    def __init__(self, failed_ids: list[str], message: str = "Failed to generate any embeddings"):
        super().__init__(f"{message} ({len(failed_ids)} articles failed)")
        self.failed_ids = failed_ids


@dataclass
class EmbeddingResult:
    """
    Outcome of embedding a list of articles.

    Attributes:
        embedded: Successfully embedded articles, in input order
        failed_ids: Ids of articles whose batch failed
    """
    embedded: list[EmbeddedArticle] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.embedded)

    @property
    def failure_count(self) -> int:
        return len(self.failed_ids)


def truncate_for_embedding(text: str, max_chars: int = MAX_CHARS_PER_ARTICLE) -> str:
    """Cut text to the per-article character budget (a proxy for tokens)."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def prepare_text(article: Article, max_chars: int = MAX_CHARS_PER_ARTICLE) -> str:
    """Subject and content joined, truncated to the character budget."""
    return truncate_for_embedding(f"{article.subject}\n\n{article.content}", max_chars)


class ArticleEmbedder:
    """
    Batching, retrying embedder

    Attributes:
        service: Embedding backend with ``embed(texts)``
        batch_size: Articles per request
        max_chars: Per-article character budget
        max_retries: Attempts per batch
        retry_base_delay: First backoff delay in seconds
        batch_delay: Pause between batches in seconds
    """

    def __init__(
        self,
        service: EmbeddingBackend,
        config: dict[str, Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            service: Embedding backend
            config: Optional settings: batch_size, max_chars_per_article,
                    max_retries, retry_base_delay, batch_delay
            sleep: Sleep function, injectable for tests
        """
        config = config or {}
        self.service = service
        self.batch_size = int(config.get('batch_size', DEFAULT_BATCH_SIZE))
        self.max_chars = int(config.get('max_chars_per_article', MAX_CHARS_PER_ARTICLE))
        self.max_retries = int(config.get('max_retries', DEFAULT_MAX_RETRIES))
        self.retry_base_delay = float(config.get('retry_base_delay', DEFAULT_RETRY_BASE_DELAY))
        self.batch_delay = float(config.get('batch_delay', DEFAULT_BATCH_DELAY))
        self._sleep = sleep

        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

    def embed(self, articles: list[Article]) -> EmbeddingResult:
        """
        Embed all articles.

        Args:
            articles: Articles to embed

        Returns:
            EmbeddingResult with successes and failed article ids

        Raises:
            EmbeddingExhausted: Articles were given but no batch succeeded
        """
        result = EmbeddingResult()
        if not articles:
            return result

        batches = chunk(articles, self.batch_size)
        logger.info(
            f"Generating embeddings for {len(articles)} articles in {len(batches)} batches"
        )

        for i, batch in enumerate(batches):
            logger.info(f"Processing batch {i + 1}/{len(batches)}...")
            texts = [prepare_text(article, self.max_chars) for article in batch]

            try:
                vectors = with_retry(
                    lambda: self._embed_batch(texts),
                    max_retries=self.max_retries,
                    base_delay=self.retry_base_delay,
                    sleep=self._sleep,
                    description=f"Embedding batch {i + 1}",
                )
                result.embedded.extend(
                    EmbeddedArticle(article=article, embedding=vector)
                    for article, vector in zip(batch, vectors)
                )
            except Exception as e:
                logger.error(f"Failed to embed batch {i + 1}: {e}")
                result.failed_ids.extend(article.id for article in batch)

            if i < len(batches) - 1:
                self._sleep(self.batch_delay)

        if result.failed_ids:
            logger.warning(
                f"Failed to generate embeddings for {result.failure_count} articles: "
                f"{', '.join(result.failed_ids)}"
            )

        if not result.embedded:
            raise EmbeddingExhausted(result.failed_ids)

        logger.info(
            f"Generated {result.success_count} embeddings ({result.failure_count} failed)"
        )
        return result

    def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        vectors = self.service.embed(texts)
        if len(vectors) != len(texts):
            raise RuntimeError(
                f"Embedding count mismatch: expected {len(texts)}, got {len(vectors)}"
            )
        return vectors


def embedding_stats(embedded: list[EmbeddedArticle]) -> dict[str, Any]:
    """
    Summary statistics for a set of embeddings (debug aid).

    Returns:
        Dict with count, dimensions and average/min/max magnitude
    """
    if not embedded:
        return {
            "count": 0,
            "dimensions": 0,
            "avg_magnitude": 0.0,
            "min_magnitude": 0.0,
            "max_magnitude": 0.0,
        }

    matrix = np.asarray([e.embedding for e in embedded], dtype=float)
    magnitudes = np.linalg.norm(matrix, axis=1)
    return {
        "count": len(embedded),
        "dimensions": int(matrix.shape[1]),
        "avg_magnitude": float(magnitudes.mean()),
        "min_magnitude": float(magnitudes.min()),
        "max_magnitude": float(magnitudes.max()),
    }
