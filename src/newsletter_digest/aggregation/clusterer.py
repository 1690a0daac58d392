"""
相似度聚类模块
Similarity clustering module

Groups embedded articles into topic clusters with k-means over L2-normalized
vectors, so Euclidean distance between points ranks pairs the same way cosine
similarity does. Clusters are re-ranked by size after partitioning: the
largest ``MAIN_CLUSTER_THRESHOLD`` are "main" topics, the rest are
"miscellaneous" and can be merged into a single long-tail cluster.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from sklearn.cluster import KMeans

from newsletter_digest.aggregation.models import (
    Cluster,
    CLUSTER_TYPE_MAIN,
    CLUSTER_TYPE_MISC,
    MISC_CLUSTER_LABEL,
)
from newsletter_digest.models import Article, EmbeddedArticle
from newsletter_digest.utils.helpers import cosine_similarity

logger = logging.getLogger(__name__)

DEFAULT_CLUSTER_COUNT = 8
# Clusters 0-4 are "main", the rest "miscellaneous"
MAIN_CLUSTER_THRESHOLD = 5
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_RANDOM_STATE = 42
DEFAULT_REPRESENTATIVE_COUNT = 3


@dataclass
class ClusteringResult:
    """
    Output of one clustering pass.

    Attributes:
        clusters: Clusters ordered by descending size, re-indexed from 0
        assignments: Raw partition label per input article, in input order
    """
    clusters: list[Cluster] = field(default_factory=list)
    assignments: list[int] = field(default_factory=list)


def cluster_type_for(index: int) -> str:
    """Positional type: the first MAIN_CLUSTER_THRESHOLD ranks are main."""
    return CLUSTER_TYPE_MAIN if index < MAIN_CLUSTER_THRESHOLD else CLUSTER_TYPE_MISC


def normalize_vector(vector) -> np.ndarray:
    """
    Scale a vector to unit length.

    A zero vector has no direction and is returned unchanged.
    """
    array = np.asarray(vector, dtype=float)
    magnitude = np.linalg.norm(array)
    if magnitude == 0:
        return array
    return array / magnitude


def cluster_articles(
    embedded: list[EmbeddedArticle],
    k: int = DEFAULT_CLUSTER_COUNT,
    random_state: int | None = DEFAULT_RANDOM_STATE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> ClusteringResult:
    """
    Partition embedded articles into at most k topic clusters.

    Args:
        embedded: Embedded articles
        k: Requested number of clusters
        random_state: Seed for k-means++ initialization (None for random)
        max_iterations: Iteration cap for k-means

    Returns:
        ClusteringResult; every input article is in exactly one cluster

    Examples:
        With 6 articles and k=8 each article becomes its own cluster; the
        first five are main, the sixth miscellaneous.
    """
    logger.info(f"Clustering {len(embedded)} articles into {k} groups...")

    if not embedded or k <= 0:
        return ClusteringResult()

    if len(embedded) <= k:
        # Fewer articles than clusters: one singleton per article
        clusters = [
            Cluster(
                id=i,
                original_id=i,
                articles=(item.article,),
                centroid=tuple(float(v) for v in item.embedding),
                type=cluster_type_for(i),
            )
            for i, item in enumerate(embedded)
        ]
        return ClusteringResult(clusters=clusters, assignments=list(range(len(embedded))))

    data = np.vstack([normalize_vector(item.embedding) for item in embedded])

    kmeans = KMeans(
        n_clusters=k,
        init='k-means++',
        max_iter=max_iterations,
        n_init=1,
        random_state=random_state,
    )
    labels = kmeans.fit_predict(data)
    assignments = [int(label) for label in labels]

    groups: dict[int, list[Article]] = {}
    for item, label in zip(embedded, assignments):
        groups.setdefault(label, []).append(item.article)

    # Descending size, ties by original label
    ordered = sorted(groups.items(), key=lambda entry: (-len(entry[1]), entry[0]))

    clusters = [
        Cluster(
            id=index,
            original_id=original_id,
            articles=tuple(articles),
            centroid=tuple(float(v) for v in kmeans.cluster_centers_[original_id]),
            type=cluster_type_for(index),
        )
        for index, (original_id, articles) in enumerate(ordered)
    ]

    main_count = sum(c.size for c in clusters if c.is_main)
    misc_count = sum(c.size for c in clusters if not c.is_main)
    logger.info(
        f"Clustered into {len(clusters)} groups: {main_count} in main topics, "
        f"{misc_count} in miscellaneous"
    )

    return ClusteringResult(clusters=clusters, assignments=assignments)


def merge_miscellaneous_clusters(clusters: list[Cluster]) -> list[Cluster]:
    """
    Fold every miscellaneous cluster into one long-tail cluster.

    The merged cluster sits right after the main clusters and has no centroid.
    Without miscellaneous clusters the main clusters are returned as they are.
    """
    main_clusters = [c for c in clusters if c.is_main]
    misc_clusters = [c for c in clusters if not c.is_main]

    if not misc_clusters:
        return main_clusters

    misc_articles = tuple(a for c in misc_clusters for a in c.articles)
    merged = Cluster(
        id=len(main_clusters),
        articles=misc_articles,
        type=CLUSTER_TYPE_MISC,
        label=MISC_CLUSTER_LABEL,
    )
    return [*main_clusters, merged]


def find_representative_articles(
    cluster: Cluster,
    embedded: list[EmbeddedArticle],
    count: int = DEFAULT_REPRESENTATIVE_COUNT,
) -> list[Article]:
    """
    Articles closest to the cluster centroid.

    Args:
        cluster: Cluster to inspect
        embedded: Embeddings to look members up in (by article id)
        count: Number of articles to return

    Returns:
        All members if there is no centroid or the cluster is small,
        otherwise the ``count`` members most similar to the centroid
    """
    if cluster.centroid is None or cluster.size <= count:
        return list(cluster.articles)

    vectors = {item.article.id: item.embedding for item in embedded}
    scored = [
        (cosine_similarity(vectors[article.id], cluster.centroid), position, article)
        for position, article in enumerate(cluster.articles)
        if article.id in vectors
    ]
    scored.sort(key=lambda entry: (-entry[0], entry[1]))
    return [article for _, _, article in scored[:count]]
