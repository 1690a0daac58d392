"""
文章精选模块
Article selection module

Picks a bounded subset of articles ("best of week" or "top N") with one
generation call over compact previews. The response is parsed in three
tiers: a JSON object, then bare integers, then a deterministic fallback by
word count. Selection never fails for a non-empty pool; the tier that
produced the result is kept on the Selection as a tagged outcome.
"""

import json
import logging
import re
import time
from typing import Any, Callable, Protocol

from newsletter_digest.aggregation.models import (
    Fallback,
    ParsedIntegers,
    ParsedJson,
    Selection,
    SelectionOutcome,
)
from newsletter_digest.models import Article
from newsletter_digest.services import prompts as prompt_names
from newsletter_digest.services.prompts import PromptLibrary
from newsletter_digest.utils.retry import with_retry

logger = logging.getLogger(__name__)

BEST_OF_MAX = 5
DEFAULT_TOP_COUNT = 4
PREVIEW_LENGTH = 300
REASONING_EXCERPT_LENGTH = 500

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 2.0

SMALL_POOL_REASONING = "All articles included due to small total count"
DEFAULT_JSON_REASONING = "Selected based on significance and analytical value"
FALLBACK_REASONING = "Fallback selection by article length"

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
INTEGER_PATTERN = re.compile(r"\b(\d{1,3})\b")


class Generator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


def format_article_metadata(article: Article, index: int) -> str:
    """
    Compact preview line for the selection prompt (never the full content).

    Examples:
        1. "Weekly AI Roundup" (The Batch) - 1200 words
           Link: https://example.com/a
           Preview: This week in AI...
    """
    preview = article.content[:PREVIEW_LENGTH].replace("\n", " ")
    return (
        f'{index + 1}. "{article.subject}" ({article.source}) - {article.word_count} words\n'
        f"   Link: {article.primary_link}\n"
        f"   Preview: {preview}..."
    )


def _coerce_json_index(value: Any, pool_size: int) -> int | None:
    # Numbers are 0-based unless past the end, then read as 1-based.
    # Numeric strings are always read as 1-based.
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value - 1 if value >= pool_size else value
    if isinstance(value, float) and value.is_integer():
        index = int(value)
        return index - 1 if index >= pool_size else index
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip()) - 1
    return None


def _unique_valid(indices, pool_size: int, count: int) -> tuple[int, ...]:
    seen: list[int] = []
    for index in indices:
        if index is None or not 0 <= index < pool_size or index in seen:
            continue
        seen.append(index)
        if len(seen) == count:
            break
    return tuple(seen)


def parse_selection_response(text: str, pool_size: int, count: int) -> SelectionOutcome:
    """
    Interpret a selection response.

    Args:
        text: Raw generation output
        pool_size: Number of articles that were offered
        count: Maximum number to select

    Returns:
        ParsedJson, ParsedIntegers or Fallback (never raises)
    """
    match = JSON_OBJECT_PATTERN.search(text or "")
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse selection JSON: {e}")
            parsed = None

        if isinstance(parsed, dict):
            raw = parsed.get('selected') or parsed.get('indices') or []
            if isinstance(raw, list):
                indices = _unique_valid(
                    (_coerce_json_index(v, pool_size) for v in raw), pool_size, count
                )
                if indices:
                    reasoning = parsed.get('reasoning')
                    if not isinstance(reasoning, str) or not reasoning.strip():
                        reasoning = DEFAULT_JSON_REASONING
                    return ParsedJson(indices=indices, reasoning=reasoning)

    numbers = INTEGER_PATTERN.findall(text or "")
    indices = _unique_valid((int(n) - 1 for n in numbers), pool_size, count)
    if indices:
        return ParsedIntegers(indices=indices, raw_excerpt=text[:REASONING_EXCERPT_LENGTH])

    return Fallback(reason="No usable indices in response")


def fallback_selection(articles: list[Article], count: int) -> list[Article]:
    """Longest articles first; equal word counts keep input order."""
    return sorted(articles, key=lambda a: a.word_count, reverse=True)[:count]


def resolve_selection(
    articles: list[Article],
    outcome: SelectionOutcome,
    count: int,
) -> Selection:
    """Turn a parse outcome into a Selection over ``articles``."""
    if isinstance(outcome, ParsedJson):
        return Selection(
            selected=tuple(articles[i] for i in outcome.indices),
            reasoning=outcome.reasoning,
            outcome=outcome,
        )
    if isinstance(outcome, ParsedIntegers):
        return Selection(
            selected=tuple(articles[i] for i in outcome.indices),
            reasoning=outcome.raw_excerpt,
            outcome=outcome,
        )
    logger.warning(f"Using fallback selection by article length ({outcome.reason})")
    return Selection(
        selected=tuple(fallback_selection(articles, count)),
        reasoning=FALLBACK_REASONING,
        outcome=outcome,
    )


class ArticleSelector:
    """
    Best-of and top-N selector

    Attributes:
        generator: Text generation service with ``generate(prompt)``
        prompts: Prompt template library
        max_retries: Attempts for the selection call
        retry_base_delay: First backoff delay in seconds
    """

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
        self.max_retries = int(config.get('max_retries', DEFAULT_MAX_RETRIES))
        self.retry_base_delay = float(config.get('retry_base_delay', DEFAULT_RETRY_BASE_DELAY))
        self._sleep = sleep

    def select_best_of_week(self, articles: list[Article], count: int = BEST_OF_MAX) -> Selection:
        """Select up to five standout articles of the week."""
        count = max(1, min(count, BEST_OF_MAX))
        logger.info(f"Selecting best {count} articles from {len(articles)} total...")
        return self._select(articles, count, prompt_names.SELECT_BEST_OF)

    def select_top_articles(self, articles: list[Article], count: int = DEFAULT_TOP_COUNT) -> Selection:
        """Select the top ``count`` stories for deep-dive treatment."""
        count = max(1, count)
        logger.info(f"Selecting top {count} articles from {len(articles)} total...")
        return self._select(articles, count, prompt_names.SELECT_TOP)

    def _select(self, articles: list[Article], count: int, template: str) -> Selection:
        if len(articles) <= count:
            return Selection(selected=tuple(articles), reasoning=SMALL_POOL_REASONING)

        try:
            prompt = self.prompts.render(
                template,
                ARTICLE_COUNT=len(articles),
                SELECT_COUNT=count,
                ARTICLES="\n\n".join(
                    format_article_metadata(a, i) for i, a in enumerate(articles)
                ),
            )
            response = with_retry(
                lambda: self.generator.generate(prompt),
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                sleep=self._sleep,
                description="Article selection",
            )
        except Exception as e:
            logger.warning(f"Selection call failed: {e}")
            outcome: SelectionOutcome = Fallback(reason=f"Generation failed: {e}")
        else:
            outcome = parse_selection_response(response, len(articles), count)

        selection = resolve_selection(articles, outcome, count)
        logger.info(
            f"Selected {len(selection.selected)} articles via {type(outcome).__name__}"
        )
        return selection
