"""
最终摘要撰写器
Final digest writer

Curated mode only: hands the curated material block to the generation
service for one final writing pass and reports token usage.
"""

import logging
import time
from typing import Any, Callable, Protocol

from newsletter_digest.aggregation.assembler import format_curated_content
from newsletter_digest.aggregation.models import CuratedCluster, DigestResult, Selection
from newsletter_digest.services import prompts as prompt_names
from newsletter_digest.services.prompts import PromptLibrary
from newsletter_digest.services.text_generator import Completion
from newsletter_digest.utils.helpers import estimate_word_count
from newsletter_digest.utils.retry import with_retry

logger = logging.getLogger(__name__)

DEFAULT_DATE_RANGE = "This Week"


class CompletionBackend(Protocol):
    model: str

    def complete(self, prompt: str) -> Completion:
        ...


class DigestWriter:
    """
    Final writing pass over curated content

    Attributes:
        generator: Service with ``complete(prompt) -> Completion``
        prompts: Prompt template library
    """

    def __init__(
        self,
        generator: CompletionBackend,
        prompts: PromptLibrary | None = None,
        config: dict[str, Any] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        config = config or {}
        self.generator = generator
        self.prompts = prompts or PromptLibrary()
        self.max_retries = int(config.get('max_retries', 3))
        self.retry_base_delay = float(config.get('retry_base_delay', 2.0))
        self._sleep = sleep

    def write(
        self,
        best_of: Selection,
        main_clusters: list[CuratedCluster],
        misc_cluster: CuratedCluster | None,
        date_range: str | None = None,
        total_articles: int = 0,
    ) -> DigestResult:
        """
        Write the digest.

        Args:
            best_of: Best-of-week selection
            main_clusters: Curated main topics
            misc_cluster: Curated long tail (None if there is none)
            date_range: Display date range
            total_articles: Articles read this run

        Returns:
            DigestResult with text, token usage and metadata

        Raises:
            Exception: The generation call's last error after retries
        """
        logger.info("Writing final digest...")
        date_range = date_range or DEFAULT_DATE_RANGE

        prompt = self.prompts.render(
            prompt_names.DIGEST,
            DATE_RANGE=date_range,
            TOTAL_ARTICLES=total_articles,
            CURATED_CONTENT=format_curated_content(best_of, main_clusters, misc_cluster),
        )

        completion = with_retry(
            lambda: self.generator.complete(prompt),
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            sleep=self._sleep,
            description="Digest writing",
        )

        logger.info(
            f"Digest written: {len(completion.text)} characters, "
            f"{estimate_word_count(completion.text)} words, "
            f"{completion.output_tokens} tokens"
        )

        return DigestResult(
            digest=completion.text,
            input_tokens=completion.input_tokens,
            output_tokens=completion.output_tokens,
            metadata={
                "model": getattr(self.generator, 'model', None),
                "date_range": date_range,
                "total_articles": total_articles,
            },
        )
