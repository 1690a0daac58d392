"""
外部服务客户端
External service clients

Injected handles for the remote services the pipeline depends on:
an embedding endpoint, a text-generation endpoint and the prompt templates.
"""

from newsletter_digest.services.embedding_service import (
    EmbeddingService,
    DEFAULT_EMBEDDING_MODEL,
)
from newsletter_digest.services.text_generator import TextGenerator, Completion
from newsletter_digest.services.prompts import PromptLibrary, fill_template

__all__ = [
    "EmbeddingService",
    "DEFAULT_EMBEDDING_MODEL",
    "TextGenerator",
    "Completion",
    "PromptLibrary",
    "fill_template",
]
