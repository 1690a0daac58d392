"""
摘要处理流水线
Digest pipeline

Orchestrates one run: embed -> cluster -> label -> merge, then either

- ``curated`` mode: best-of selection and per-cluster curation (run side by
  side), followed by a final writing pass, or
- ``summary`` mode: top-N selection, a deep dive on the selected articles,
  isolated per-cluster summaries with those articles excluded, and pure
  assembly.

Intermediate structures are snapshotted to an optional RunCache.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Any, Callable

from newsletter_digest.aggregation.assembler import assemble_digest
from newsletter_digest.aggregation.clusterer import (
    cluster_articles,
    find_representative_articles,
    merge_miscellaneous_clusters,
)
from newsletter_digest.aggregation.curation import ClusterCurator
from newsletter_digest.aggregation.deep_dive import DeepDiveWriter
from newsletter_digest.aggregation.digest_writer import DigestWriter
from newsletter_digest.aggregation.embedder import ArticleEmbedder
from newsletter_digest.aggregation.labeler import label_clusters
from newsletter_digest.aggregation.models import Cluster, DigestResult
from newsletter_digest.aggregation.selection import ArticleSelector
from newsletter_digest.config import (
    get_embedding_config,
    get_generation_config,
    get_pipeline_config,
)
from newsletter_digest.models import Article
from newsletter_digest.services.embedding_service import EmbeddingService
from newsletter_digest.services.prompts import PromptLibrary
from newsletter_digest.services.text_generator import TextGenerator
from newsletter_digest.utils.helpers import estimate_word_count, format_date_range
from newsletter_digest.utils.run_cache import RunCache

logger = logging.getLogger(__name__)

MODE_CURATED = "curated"
MODE_SUMMARY = "summary"


class DigestPipeline:
    """
    One-run digest orchestrator

    All collaborators are injected; ``from_config`` wires the real services.

    Attributes:
        embedder: ArticleEmbedder
        curator: ClusterCurator
        selector: ArticleSelector
        deep_dive_writer: DeepDiveWriter (summary mode)
        digest_writer: DigestWriter (curated mode)
        config: Pipeline section (mode, cluster_count, top_count, ...)
        cache: Optional RunCache for snapshots
        stats: Counters for the last run
    """

    def __init__(
        self,
        embedder: ArticleEmbedder,
        curator: ClusterCurator,
        selector: ArticleSelector,
        deep_dive_writer: DeepDiveWriter,
        digest_writer: DigestWriter,
        config: dict[str, Any] | None = None,
        cache: RunCache | None = None,
    ):
        config = config or {}
        self.embedder = embedder
        self.curator = curator
        self.selector = selector
        self.deep_dive_writer = deep_dive_writer
        self.digest_writer = digest_writer
        self.mode = config.get('mode', MODE_CURATED)
        self.cluster_count = int(config.get('cluster_count', 8))
        self.days_to_fetch = int(config.get('days_to_fetch', 7))
        self.top_count = int(config.get('top_count', 4))
        self.best_of_count = int(config.get('best_of_count', 5))
        self.representative_count = int(config.get('representative_count', 3))
        self.random_state = config.get('random_state', 42)
        self.cache = cache
        self.stats: dict[str, Any] = {}

        if self.mode not in (MODE_CURATED, MODE_SUMMARY):
            raise ValueError(f"Unknown pipeline mode: {self.mode}")

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        cache: RunCache | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "DigestPipeline":
        """
        Build a pipeline with real services from a full config dict.

        Raises:
            ValueError: Invalid pipeline settings
        """
        pipeline_config = get_pipeline_config(config)
        embedding_config = get_embedding_config(config)
        generation_config = get_generation_config(config)

        generator = TextGenerator(generation_config)
        prompts = PromptLibrary(generation_config.get('prompts_dir'))

        return cls(
            embedder=ArticleEmbedder(EmbeddingService(embedding_config), embedding_config, sleep=sleep),
            curator=ClusterCurator(generator, prompts, generation_config, sleep=sleep),
            selector=ArticleSelector(generator, prompts, generation_config, sleep=sleep),
            deep_dive_writer=DeepDiveWriter(generator, prompts, generation_config, sleep=sleep),
            digest_writer=DigestWriter(generator, prompts, generation_config, sleep=sleep),
            config=pipeline_config,
            cache=cache,
        )

    def _snapshot(self, name: str, data: Any) -> None:
        if self.cache is not None:
            self.cache.save(name, data)

    def default_date_range(self, end_date: datetime | None = None) -> str:
        end_date = end_date or datetime.now()
        return format_date_range(end_date - timedelta(days=self.days_to_fetch), end_date)

    # =========================================================================
    # Run
    # =========================================================================

    def run(self, articles: list[Article], date_range: str | None = None) -> DigestResult:
        """
        Produce a digest from the given articles.

        Args:
            articles: Articles for this run
            date_range: Display date range (defaults to the last days_to_fetch days)

        Returns:
            DigestResult (empty digest when there are no articles)

        Raises:
            EmbeddingExhausted: No article could be embedded
            CurationError: A cluster's generation call exhausted its retries
        """
        start_time = time.time()
        date_range = date_range or self.default_date_range()
        self.stats = {
            "articles": len(articles),
            "embedded": 0,
            "embedding_failures": 0,
            "clusters": 0,
            "mode": self.mode,
        }
        logger.info(f"Starting newsletter digest for {date_range} ({self.mode} mode)")

        try:
            if not articles:
                logger.warning("No articles to digest")
                return DigestResult(digest="", metadata={"date_range": date_range, "total_articles": 0})

            self._snapshot("articles", [a.to_dict() for a in articles])
            clusters = self._build_clusters(articles)

            if self.mode == MODE_CURATED:
                result = self._run_curated(articles, clusters, date_range)
            else:
                result = self._run_summary(articles, clusters, date_range)

            self._snapshot("digest", result.to_dict())
        except Exception as e:
            logger.error(f"Pipeline failed: {e}")
            if self.cache is not None:
                self.cache.save_error(e, self.stats)
            raise

        elapsed = time.time() - start_time
        logger.info("=" * 50)
        logger.info("DIGEST COMPLETE")
        logger.info("=" * 50)
        logger.info(f"Date Range: {date_range}")
        logger.info(f"Articles: {self.stats['articles']} ({self.stats['embedding_failures']} not embedded)")
        logger.info(f"Clusters Formed: {self.stats['clusters']}")
        logger.info(f"Final Word Count: {estimate_word_count(result.digest)}")
        logger.info(f"Tokens: {result.input_tokens} in / {result.output_tokens} out")
        logger.info(f"Elapsed Time: {elapsed:.1f}s")
        return result

    def _build_clusters(self, articles: list[Article]) -> list[Cluster]:
        embedding = self.embedder.embed(articles)
        self.stats["embedded"] = embedding.success_count
        self.stats["embedding_failures"] = embedding.failure_count
        self._snapshot("embeddings", [e.to_dict() for e in embedding.embedded])

        clustering = cluster_articles(
            embedding.embedded, self.cluster_count, random_state=self.random_state
        )
        self.stats["clusters"] = len(clustering.clusters)

        merged = merge_miscellaneous_clusters(label_clusters(clustering.clusters))
        self._snapshot("clusters", [
            {
                **c.to_dict(),
                "representative_ids": [
                    a.id for a in find_representative_articles(
                        c, embedding.embedded, self.representative_count
                    )
                ],
            }
            for c in merged
        ])
        return merged

    def _run_curated(
        self,
        articles: list[Article],
        clusters: list[Cluster],
        date_range: str,
    ) -> DigestResult:
        main_clusters = [c for c in clusters if c.is_main]
        misc_cluster = next((c for c in clusters if not c.is_main), None)

        # Selection and curation are independent
        with ThreadPoolExecutor(max_workers=2) as executor:
            best_of_future = executor.submit(
                self.selector.select_best_of_week, articles, self.best_of_count
            )
            curated_main = self.curator.curate_all(main_clusters)
            curated_misc = self.curator.curate_misc(misc_cluster)
            best_of = best_of_future.result()

        self._snapshot("selection", best_of.to_dict())
        self._snapshot("curated", {
            "main": [c.to_dict() for c in curated_main],
            "misc": curated_misc.to_dict(),
        })

        return self.digest_writer.write(
            best_of,
            curated_main,
            curated_misc,
            date_range=date_range,
            total_articles=len(articles),
        )

    def _run_summary(
        self,
        articles: list[Article],
        clusters: list[Cluster],
        date_range: str,
    ) -> DigestResult:
        top = self.selector.select_top_articles(articles, self.top_count)
        self._snapshot("selection", top.to_dict())

        deep_dive = self.deep_dive_writer.write(list(top.selected))
        summaries = self.curator.write_cluster_summaries(clusters, exclude_ids=top.article_ids)
        self._snapshot("summaries", [s.to_dict() for s in summaries])

        digest = assemble_digest(
            date_range,
            deep_dive,
            summaries,
            total_articles=len(articles),
        )
        return DigestResult(
            digest=digest,
            metadata={
                "date_range": date_range,
                "total_articles": len(articles),
                "top_article_ids": top.article_ids,
            },
        )
