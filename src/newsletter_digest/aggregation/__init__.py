"""
聚类与策展流水线各阶段
Clustering and curation pipeline stages

embed -> cluster -> label -> merge -> (selection | curation) -> assemble
"""

from newsletter_digest.aggregation.models import (
    Cluster,
    ClusterSummary,
    CuratedCluster,
    CurationStrategy,
    DeepDive,
    DigestResult,
    Fallback,
    ParsedIntegers,
    ParsedJson,
    Selection,
    SelectionOutcome,
)
from newsletter_digest.aggregation.embedder import (
    ArticleEmbedder,
    EmbeddingExhausted,
    EmbeddingResult,
    embedding_stats,
)
from newsletter_digest.aggregation.clusterer import (
    ClusteringResult,
    cluster_articles,
    find_representative_articles,
    merge_miscellaneous_clusters,
    DEFAULT_CLUSTER_COUNT,
    MAIN_CLUSTER_THRESHOLD,
)
from newsletter_digest.aggregation.labeler import generate_cluster_label, label_clusters
from newsletter_digest.aggregation.curation import (
    ClusterCurator,
    CurationError,
    select_strategy,
)
from newsletter_digest.aggregation.selection import ArticleSelector, parse_selection_response
from newsletter_digest.aggregation.deep_dive import DeepDiveWriter
from newsletter_digest.aggregation.assembler import assemble_digest, format_curated_content
from newsletter_digest.aggregation.digest_writer import DigestWriter

__all__ = [
    "Cluster",
    "ClusterSummary",
    "CuratedCluster",
    "CurationStrategy",
    "DeepDive",
    "DigestResult",
    "Fallback",
    "ParsedIntegers",
    "ParsedJson",
    "Selection",
    "SelectionOutcome",
    "ArticleEmbedder",
    "EmbeddingExhausted",
    "EmbeddingResult",
    "embedding_stats",
    "ClusteringResult",
    "cluster_articles",
    "find_representative_articles",
    "merge_miscellaneous_clusters",
    "DEFAULT_CLUSTER_COUNT",
    "MAIN_CLUSTER_THRESHOLD",
    "generate_cluster_label",
    "label_clusters",
    "ClusterCurator",
    "CurationError",
    "select_strategy",
    "ArticleSelector",
    "parse_selection_response",
    "DeepDiveWriter",
    "assemble_digest",
    "format_curated_content",
    "DigestWriter",
]
