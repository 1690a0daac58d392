"""
新闻通讯摘要
Newsletter digest

Turns a week of newsletter articles into a topic-organized digest:
embeddings, k-means topic clustering, size-adaptive curation and
isolated per-topic generation.
"""

from newsletter_digest.models import Article, EmbeddedArticle, Link
from newsletter_digest.pipeline import DigestPipeline

__version__ = "0.1.0"

__all__ = [
    "Article",
    "EmbeddedArticle",
    "Link",
    "DigestPipeline",
]
