"""
深度分析生成器
Deep-dive writer

One generation call analyzing the selected top articles in depth. The
output uses one ``###`` heading per story, which the assembler lists as the
digest's top stories.
"""

import logging
import time
from typing import Any, Callable

from newsletter_digest.aggregation.curation import CurationError, Generator, format_articles
from newsletter_digest.aggregation.models import DeepDive
from newsletter_digest.models import Article
from newsletter_digest.services import prompts as prompt_names
from newsletter_digest.services.prompts import PromptLibrary
from newsletter_digest.utils.retry import with_retry

logger = logging.getLogger(__name__)

DEEP_DIVE_LABEL = "Top Stories"


class DeepDiveWriter:
    """In-depth analysis of the top articles."""

    def __init__(
        self,
        generator: Generator,
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

    def write(self, articles: list[Article]) -> DeepDive:
        """
        Analyze the given articles.

        Args:
            articles: Selected top articles

        Returns:
            DeepDive; empty content when there is nothing to analyze

        Raises:
            CurationError: The generation call exhausted its retries
        """
        if not articles:
            return DeepDive(content="")

        logger.info(f"Writing deep dive for {len(articles)} top articles")
        prompt = self.prompts.render(
            prompt_names.DEEP_DIVE,
            ARTICLE_COUNT=len(articles),
            ARTICLES=format_articles(articles),
        )

        try:
            content = with_retry(
                lambda: self.generator.generate(prompt),
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                sleep=self._sleep,
                description="Deep dive",
            )
        except Exception as e:
            raise CurationError(DEEP_DIVE_LABEL, str(e)) from e

        return DeepDive(content=content, article_ids=tuple(a.id for a in articles))
