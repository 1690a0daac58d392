"""
聚类策展模块
Cluster curation module

Chooses a curation strategy per cluster from its size and drives one
self-contained generation call per cluster. Every call is built from that
cluster's own articles only, so no topic's content can leak into another
topic's section.

Also writes isolated full summaries per cluster, with already-featured
articles removed from a copy of each cluster beforehand.

Curation failure is fatal: a digest missing one of its topic sections is
worse than no digest, so an exhausted retry aborts the whole phase with a
CurationError naming the cluster.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Iterable, Protocol

from newsletter_digest.aggregation.models import (
    Cluster,
    ClusterSummary,
    CuratedCluster,
    CurationStrategy,
    MISC_CLUSTER_LABEL,
    STRATEGY_HEAVY,
    STRATEGY_LIGHT,
    STRATEGY_MISC,
    STRATEGY_MODERATE,
    STRATEGY_PASSTHROUGH,
)
from newsletter_digest.models import Article
from newsletter_digest.services import prompts as prompt_names
from newsletter_digest.services.prompts import PromptLibrary
from newsletter_digest.utils.retry import with_retry

logger = logging.getLogger(__name__)

HEAVY_MIN_ARTICLES = 30
MODERATE_MIN_ARTICLES = 10
LIGHT_MIN_ARTICLES = 3
HEAVY_KEEP_COUNT = 2
MODERATE_KEEP_COUNT = 4
# Misc clusters up to this size are shown verbatim
MISC_PASSTHROUGH_MAX = 3
MAX_LISTED_LINKS = 3

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 2.0
DEFAULT_MAX_WORKERS = 4

EMPTY_CLUSTER_SUMMARY = "No articles in this cluster."


class Generator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class CurationError(RuntimeError):
    """A cluster's generation call exhausted its retries."""

    def __init__(self, label: str, reason: str):
        super().__init__(f'Failed to curate cluster "{label}": {reason}')
        self.label = label


# =============================================================================
# Strategy and formatting
# =============================================================================

def select_strategy(article_count: int) -> CurationStrategy:
    """
    Map a cluster size to its curation strategy.

    Examples:
        >>> select_strategy(2).name
        'passthrough'
        >>> select_strategy(5).keep_count
        4
        >>> select_strategy(40).name, select_strategy(40).keep_count
        ('heavy', 2)
    """
    if article_count >= HEAVY_MIN_ARTICLES:
        return CurationStrategy(
            name=STRATEGY_HEAVY,
            keep_count=HEAVY_KEEP_COUNT,
            synthesize=True,
            description=(
                f"Large topic. Keep the {HEAVY_KEEP_COUNT} strongest articles in full "
                "and synthesize everything else into a tight overview of the trends."
            ),
        )
    if article_count >= MODERATE_MIN_ARTICLES:
        return CurationStrategy(
            name=STRATEGY_MODERATE,
            keep_count=MODERATE_KEEP_COUNT,
            synthesize=True,
            description=(
                f"Medium topic. Keep the {MODERATE_KEEP_COUNT} strongest articles in full "
                "and summarize the rest in a short synthesis paragraph."
            ),
        )
    if article_count >= LIGHT_MIN_ARTICLES:
        keep = article_count - 1
        return CurationStrategy(
            name=STRATEGY_LIGHT,
            keep_count=keep,
            synthesize=False,
            description=(
                f"Small topic. Keep {keep} articles in full and drop only the weakest one."
            ),
        )
    return CurationStrategy(
        name=STRATEGY_PASSTHROUGH,
        keep_count=article_count,
        synthesize=False,
        description="Very small topic. Show every article as-is.",
    )


def format_article(article: Article, index: int) -> str:
    """Full article block for a generation prompt (``index`` is 0-based)."""
    lines = [
        f"### Article {index + 1}: {article.subject}",
        f"**Source:** {article.source}",
        f"**Date:** {article.date.strftime('%Y-%m-%d')}",
        f"**Word Count:** {article.word_count}",
        f"**Primary Link:** {article.primary_link}",
        "",
        article.content,
    ]
    extra_links = [f"  - [{link.text}]({link.url})" for link in article.links[:MAX_LISTED_LINKS]]
    if extra_links:
        lines.extend(["", "**Additional Links:**", *extra_links])
    lines.append("---")
    return "\n".join(lines)


def format_articles(articles: Iterable[Article]) -> str:
    return "\n\n".join(format_article(a, i) for i, a in enumerate(articles))


# =============================================================================
# Curator
# =============================================================================

class ClusterCurator:
    """
    Per-cluster curation and summary writer

    Attributes:
        generator: Text generation service with ``generate(prompt)``
        prompts: Prompt template library
        max_retries: Attempts per generation call
        retry_base_delay: First backoff delay in seconds
        max_workers: Concurrent curation calls (1 runs them in order)
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
        self.max_workers = max(1, int(config.get('max_workers', DEFAULT_MAX_WORKERS)))
        self._sleep = sleep

    def _generate(self, prompt: str, label: str) -> str:
        try:
            return with_retry(
                lambda: self.generator.generate(prompt),
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                sleep=self._sleep,
                description=f'Curation of "{label}"',
            )
        except Exception as e:
            logger.error(f'Curation failed for cluster "{label}": {e}')
            raise CurationError(label, str(e)) from e

    def curate(self, cluster: Cluster, label: str | None = None) -> CuratedCluster:
        """
        Curate one main cluster.

        Args:
            cluster: Cluster to curate
            label: Topic label (defaults to the cluster's own label)

        Returns:
            CuratedCluster; passthrough clusters make no call

        Raises:
            CurationError: The generation call exhausted its retries
        """
        label = label or cluster.label or f"Topic {cluster.id + 1}"
        strategy = select_strategy(cluster.size)
        logger.info(
            f'Curating cluster "{label}" ({cluster.size} articles, {strategy.name} strategy)'
        )

        if strategy.name == STRATEGY_PASSTHROUGH:
            return CuratedCluster(
                label=label,
                original_article_count=cluster.size,
                curated_content=None,
                strategy=strategy.name,
                articles=cluster.articles,
            )

        prompt = self.prompts.render(
            prompt_names.CLUSTER_CURATION,
            CLUSTER_LABEL=label,
            ARTICLE_COUNT=cluster.size,
            STRATEGY=strategy.name,
            STRATEGY_DESCRIPTION=strategy.description,
            KEEP_COUNT=strategy.keep_count,
            SYNTHESIZE="yes" if strategy.synthesize else "no",
            ARTICLES=format_articles(cluster.articles),
        )
        content = self._generate(prompt, label)

        return CuratedCluster(
            label=label,
            original_article_count=cluster.size,
            curated_content=content,
            strategy=strategy.name,
            articles=cluster.articles,
        )

    def curate_misc(self, cluster: Cluster | None) -> CuratedCluster:
        """
        Curate the merged long-tail cluster.

        Empty (or missing) clusters return an empty result and small ones
        pass through; otherwise one roundup call covers every member.

        Raises:
            CurationError: The generation call exhausted its retries
        """
        label = (cluster.label if cluster else None) or MISC_CLUSTER_LABEL
        if cluster is None or cluster.size == 0:
            return CuratedCluster(
                label=label,
                original_article_count=0,
                curated_content=None,
                strategy=STRATEGY_PASSTHROUGH,
            )

        if cluster.size <= MISC_PASSTHROUGH_MAX:
            logger.info(f"Long tail has {cluster.size} articles, passing through")
            return CuratedCluster(
                label=label,
                original_article_count=cluster.size,
                curated_content=None,
                strategy=STRATEGY_PASSTHROUGH,
                articles=cluster.articles,
            )

        logger.info(f"Curating long tail ({cluster.size} articles)")
        prompt = self.prompts.render(
            prompt_names.MISC_CURATION,
            CLUSTER_LABEL=label,
            ARTICLE_COUNT=cluster.size,
            ARTICLES=format_articles(cluster.articles),
        )
        content = self._generate(prompt, label)

        return CuratedCluster(
            label=label,
            original_article_count=cluster.size,
            curated_content=content,
            strategy=STRATEGY_MISC,
            articles=cluster.articles,
        )

    def curate_all(self, clusters: list[Cluster]) -> list[CuratedCluster]:
        """
        Curate main clusters, concurrently when max_workers > 1.

        Results keep the input cluster order. On the first failure the
        remaining queued calls are cancelled and the error propagates.

        Raises:
            CurationError: Any cluster failed
        """
        if not clusters:
            return []

        if self.max_workers == 1 or len(clusters) == 1:
            return [self.curate(c) for c in clusters]

        results: dict[int, CuratedCluster] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self.curate, cluster): i
                for i, cluster in enumerate(clusters)
            }

            for future in as_completed(future_to_index):
                try:
                    results[future_to_index[future]] = future.result()
                except Exception:
                    for pending in future_to_index:
                        pending.cancel()
                    raise

        return [results[i] for i in range(len(clusters))]

    # -------------------------------------------------------------------------
    # Isolated summaries
    # -------------------------------------------------------------------------

    def write_cluster_summary(self, cluster: Cluster, label: str | None = None) -> ClusterSummary:
        """
        Write a self-contained summary of one cluster.

        Raises:
            CurationError: The generation call exhausted its retries
        """
        label = label or cluster.label or f"Topic {cluster.id + 1}"
        logger.info(f'Writing summary for cluster "{label}" ({cluster.size} articles)')

        if cluster.size == 0:
            return ClusterSummary(label=label, summary=EMPTY_CLUSTER_SUMMARY, article_count=0)

        prompt = self.prompts.render(
            prompt_names.CLUSTER_SUMMARY,
            CLUSTER_LABEL=label,
            ARTICLE_COUNT=cluster.size,
            ARTICLES=format_articles(cluster.articles),
        )
        summary = self._generate(prompt, label)
        return ClusterSummary(label=label, summary=summary, article_count=cluster.size)

    def write_cluster_summaries(
        self,
        clusters: list[Cluster],
        exclude_ids: Iterable[str] = (),
    ) -> list[ClusterSummary]:
        """
        Summaries for every cluster, minus already-featured articles.

        Excluded articles are removed from a copy of each cluster before the
        prompt is built. Clusters left empty by the exclusion are skipped.

        Args:
            clusters: Clusters in display order
            exclude_ids: Article ids already covered elsewhere (top stories)

        Returns:
            Summaries in cluster order
        """
        excluded = set(exclude_ids)
        summaries = []
        for cluster in clusters:
            remaining = cluster.without_articles(excluded)
            if remaining.size == 0:
                logger.info(
                    f'Skipping cluster "{cluster.label}": all articles already featured'
                )
                continue
            summaries.append(self.write_cluster_summary(remaining))
        return summaries
