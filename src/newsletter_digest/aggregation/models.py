"""
摘要聚合数据模型
Digest aggregation data models

Clusters, curation results, selections and the tagged outcome of parsing a
selection response. All of them are created within one pipeline run and are
never modified in place after handoff; operations that change a cluster
return a new one.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Union

from newsletter_digest.models import Article

CLUSTER_TYPE_MAIN = "main"
CLUSTER_TYPE_MISC = "miscellaneous"

STRATEGY_PASSTHROUGH = "passthrough"
STRATEGY_LIGHT = "light"
STRATEGY_MODERATE = "moderate"
STRATEGY_HEAVY = "heavy"
STRATEGY_MISC = "misc"

MISC_CLUSTER_LABEL = "Long Tail / Miscellaneous"


@dataclass(frozen=True)
class Cluster:
    """
    Topic cluster

    Attributes:
        id: Dense rank by descending size, 0-based
        original_id: Raw partition label before sorting (None for merged clusters)
        articles: Member articles, in input order
        centroid: Partition centroid (normalized space), None if unknown
        type: "main" or "miscellaneous", purely positional
        label: Human-readable topic label, None until labelled
    """
    id: int
    articles: tuple[Article, ...]
    type: str = CLUSTER_TYPE_MAIN
    original_id: int | None = None
    centroid: tuple[float, ...] | None = None
    label: str | None = None

    @property
    def size(self) -> int:
        return len(self.articles)

    @property
    def is_main(self) -> bool:
        return self.type == CLUSTER_TYPE_MAIN

    def with_label(self, label: str) -> "Cluster":
        return replace(self, label=label)

    def without_articles(self, article_ids: Iterable[str]) -> "Cluster":
        """
        Copy of this cluster minus the given article ids.

        The original cluster is left untouched.
        """
        excluded = set(article_ids)
        return replace(
            self,
            articles=tuple(a for a in self.articles if a.id not in excluded),
        )

    def to_dict(self) -> dict[str, Any]:
        """Snapshot form, article ids only."""
        return {
            "id": self.id,
            "original_id": self.original_id,
            "label": self.label,
            "type": self.type,
            "article_count": self.size,
            "article_ids": [a.id for a in self.articles],
        }


@dataclass(frozen=True)
class CurationStrategy:
    """
    Curation plan derived from a cluster's size.

    Attributes:
        name: passthrough / light / moderate / heavy
        keep_count: Articles to keep verbatim
        synthesize: Whether the rest are synthesized into an overview
        description: Instruction text sent with the generation call
    """
    name: str
    keep_count: int
    synthesize: bool
    description: str


@dataclass(frozen=True)
class CuratedCluster:
    """
    Curation result for one cluster.

    ``curated_content`` is None only for passthrough, in which case the
    caller renders ``articles`` directly.

    Attributes:
        label: Topic label
        original_article_count: Cluster size before curation
        curated_content: Generated text, None for passthrough
        strategy: passthrough / light / moderate / heavy / misc
        articles: The cluster's articles
    """
    label: str
    original_article_count: int
    curated_content: str | None
    strategy: str
    articles: tuple[Article, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "original_article_count": self.original_article_count,
            "curated_content": self.curated_content,
            "strategy": self.strategy,
            "article_ids": [a.id for a in self.articles],
        }


@dataclass(frozen=True)
class ClusterSummary:
    """
    Isolated full summary of one cluster.

    Attributes:
        label: Topic label
        summary: Generated summary text
        article_count: Articles actually summarized (after exclusions)
    """
    label: str
    summary: str
    article_count: int

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "summary": self.summary, "article_count": self.article_count}


# =============================================================================
# Selection parse outcomes
# =============================================================================

@dataclass(frozen=True)
class ParsedJson:
    """Indices read from a JSON object in the response."""
    indices: tuple[int, ...]
    reasoning: str


@dataclass(frozen=True)
class ParsedIntegers:
    """Indices scraped from bare integers in the response (read as 1-based)."""
    indices: tuple[int, ...]
    raw_excerpt: str


@dataclass(frozen=True)
class Fallback:
    """Deterministic selection by word count; ``reason`` says why parsing gave up."""
    reason: str


SelectionOutcome = Union[ParsedJson, ParsedIntegers, Fallback]


@dataclass(frozen=True)
class Selection:
    """
    Bounded selection of articles.

    Attributes:
        selected: Selected articles, in selection order
        reasoning: Rationale text
        outcome: How the response was interpreted; None when no call was made
    """
    selected: tuple[Article, ...]
    reasoning: str
    outcome: SelectionOutcome | None = None

    @property
    def article_ids(self) -> list[str]:
        return [a.id for a in self.selected]

    @property
    def used_fallback(self) -> bool:
        return isinstance(self.outcome, Fallback)

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected": self.article_ids,
            "reasoning": self.reasoning,
            "outcome": type(self.outcome).__name__ if self.outcome else None,
        }


# =============================================================================
# Deep dive and digest
# =============================================================================

HEADING_PATTERN = re.compile(r"^###\s+(.+?)\s*$", re.MULTILINE)


@dataclass(frozen=True)
class DeepDive:
    """
    In-depth analysis of the top articles.

    Attributes:
        content: Generated analysis (Markdown)
        article_ids: Ids of the analyzed articles
    """
    content: str
    article_ids: tuple[str, ...] = field(default_factory=tuple)

    @property
    def headings(self) -> list[str]:
        """Level-3 headings, one per analyzed story."""
        return [h.strip() for h in HEADING_PATTERN.findall(self.content)]


@dataclass(frozen=True)
class DigestResult:
    """
    Final digest text plus metadata.

    Attributes:
        digest: Markdown digest
        input_tokens: Prompt tokens spent on the final writing call (0 if none)
        output_tokens: Completion tokens spent on the final writing call
        metadata: Date range, totals, model
    """
    digest: str
    input_tokens: int = 0
    output_tokens: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.digest,
            "usage": {"input": self.input_tokens, "output": self.output_tokens},
            "metadata": self.metadata,
        }
