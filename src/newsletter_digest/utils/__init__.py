# Utils module / 工具模块
# Helpers, retry and run cache

from .helpers import (
    chunk,
    cosine_similarity,
    estimate_tokens,
    estimate_word_count,
    format_date_range,
    generate_article_id,
    truncate,
)
from .retry import with_retry
from .run_cache import RunCache

__all__ = [
    "chunk",
    "cosine_similarity",
    "estimate_tokens",
    "estimate_word_count",
    "format_date_range",
    "generate_article_id",
    "truncate",
    "with_retry",
    "RunCache",
]
