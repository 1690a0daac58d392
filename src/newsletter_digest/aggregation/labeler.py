"""
聚类标签生成
Cluster label generation

Derives a short topic label from word frequency across a cluster's
articles. No external calls.
"""

import re
from collections import Counter

from newsletter_digest.aggregation.models import Cluster

WORD_PATTERN = re.compile(r"\b[a-z]{4,}\b")
LABEL_WORD_COUNT = 3
LABEL_SEPARATOR = " / "

STOPWORDS = frozenset({
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'as', 'is', 'was', 'are', 'were', 'been',
    'be', 'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would',
    'could', 'should', 'may', 'might', 'must', 'shall', 'can', 'this',
    'that', 'these', 'those', 'i', 'you', 'he', 'she', 'it', 'we', 'they',
    'what', 'which', 'who', 'when', 'where', 'why', 'how', 'all', 'each',
    'every', 'both', 'few', 'more', 'most', 'other', 'some', 'such', 'no',
    'nor', 'not', 'only', 'own', 'same', 'so', 'than', 'too', 'very',
    'just', 'also', 'now', 'here', 'there', 'then', 'once', 'your', 'our',
    'their', 'its', 'about', 'into', 'through', 'during', 'before', 'after',
    'above', 'below', 'between', 'under', 'again', 'further', 'while',
})


def generate_cluster_label(cluster: Cluster) -> str:
    """
    Top three most frequent words, title-cased and joined with " / ".

    Words shorter than four letters and stopwords are ignored; equal counts
    keep first-occurrence order. Falls back to ``Topic {id + 1}``.

    Examples:
        A cluster about "Rust compiler release" articles might be labelled
        ``Rust / Compiler / Release``.
    """
    text = " ".join(f"{a.subject} {a.content}" for a in cluster.articles).lower()
    words = [w for w in WORD_PATTERN.findall(text) if w not in STOPWORDS]

    # Counter preserves insertion order and most_common sorts stably
    top_words = [word for word, _ in Counter(words).most_common(LABEL_WORD_COUNT)]
    if not top_words:
        return f"Topic {cluster.id + 1}"
    return LABEL_SEPARATOR.join(word.capitalize() for word in top_words)


def label_clusters(clusters: list[Cluster]) -> list[Cluster]:
    """Labelled copies of the clusters; existing labels are kept."""
    return [c if c.label else c.with_label(generate_cluster_label(c)) for c in clusters]
