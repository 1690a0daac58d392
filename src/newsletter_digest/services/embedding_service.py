"""
文本向量化服务
Text embedding service

Thin wrapper around an OpenAI-compatible embeddings endpoint. One call per
batch of texts, one vector per input, in input order. Retries, batching and
truncation are the embedder's job, so errors from the API are surfaced
unchanged.
"""

import logging
from typing import Any

from openai import OpenAI

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


class EmbeddingService:
    """
    Embedding client for OpenAI and compatible APIs

    Attributes:
        client: OpenAI client instance
        model: Embedding model name
        timeout: Per-request timeout in seconds
    """

    def __init__(self, config: dict[str, Any], client: OpenAI | None = None):
        """
        Initialize the embedding service.

        Args:
            config: Config dict with:
                - api_base: API URL (default https://api.openai.com/v1)
                - api_key: API key
                - model: Model name (default text-embedding-3-small)
                - timeout: Request timeout seconds (default 60)
            client: Pre-built client, mainly for tests

        Examples:
            >>> service = EmbeddingService({'api_key': 'sk-xxx'})
        """
        api_base = config.get('api_base') or 'https://api.openai.com/v1'
        api_key = config.get('api_key') or ''

        if not api_key and client is None:
            logger.warning("EmbeddingService initialized without API key")

        self.client = client or OpenAI(base_url=api_base, api_key=api_key)
        self.model = config.get('model') or DEFAULT_EMBEDDING_MODEL
        self.timeout = float(config.get('timeout', 60))

        logger.info(
            f"EmbeddingService initialized with model: {self.model}, api_base: {api_base}"
        )

    def embed(self, texts: list[str]) -> list[list[float]]:
        """
        Embed a batch of texts in a single request.

        Args:
            texts: Non-empty list of input texts

        Returns:
            One vector per text, in input order

        Raises:
            ValueError: Empty input list
            RuntimeError: Response count does not match input count
            openai.APIError: Any API failure, unchanged
        """
        if not texts:
            raise ValueError("Input text list cannot be empty")

        response = self.client.embeddings.create(
            model=self.model,
            input=texts,
            timeout=self.timeout,
        )

        data = response.data or []
        if len(data) != len(texts):
            raise RuntimeError(
                f"API response count mismatch: expected {len(texts)}, got {len(data)}"
            )

        # The API may not guarantee order
        ordered = sorted(data, key=lambda item: item.index)
        embeddings = [list(item.embedding) for item in ordered]

        logger.debug(
            f"Embedded {len(embeddings)} texts (vector dim: {len(embeddings[0])})"
        )
        return embeddings
