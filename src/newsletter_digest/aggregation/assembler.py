"""
摘要组装模块
Digest assembly

Pure text assembly, no external calls:

- ``assemble_digest`` builds the summary-mode document (header, top stories,
  deep dive, per-cluster summaries, closing).
- ``format_curated_content`` builds the curated-mode material block handed
  to the final digest writer.
"""

from newsletter_digest.aggregation.models import (
    ClusterSummary,
    CuratedCluster,
    DeepDive,
    Selection,
)

SECTION_SEPARATOR = "\n\n---\n\n"
MAIN_EXCERPT_LENGTH = 1000
MISC_EXCERPT_LENGTH = 500


def _is_blank(text: str | None) -> bool:
    return text is None or not text.strip()


def format_top_stories(deep_dive: DeepDive) -> str:
    """Numbered list of the deep dive's story headings, empty if none."""
    headings = deep_dive.headings
    if not headings:
        return ""
    lines = ["## Top Stories", ""]
    lines.extend(f"{i}. {heading}" for i, heading in enumerate(headings, 1))
    return "\n".join(lines)


def assemble_digest(
    date_range: str,
    deep_dive: DeepDive,
    summaries: list[ClusterSummary],
    total_articles: int = 0,
    title: str = "Newsletter Digest",
) -> str:
    """
    Join the digest sections in fixed order.

    Args:
        date_range: Display date range for the header
        deep_dive: Deep-dive analysis of the top articles
        summaries: Per-cluster summaries, in cluster order
        total_articles: Articles read this run (for the header and closing)
        title: Digest title

    Returns:
        Markdown document; empty sections leave no separator behind
    """
    header = f"# {title}: {date_range}"
    if total_articles:
        header += f"\n\n*{total_articles} articles, {len(summaries)} topics*"

    sections = [
        header,
        format_top_stories(deep_dive),
        deep_dive.content.strip(),
        *(s.summary.strip() for s in summaries if not _is_blank(s.summary)),
        closing_section(total_articles, len(summaries)),
    ]
    return SECTION_SEPARATOR.join(s for s in sections if s)


def closing_section(total_articles: int, topic_count: int) -> str:
    text = "## That's All for This Week"
    if total_articles:
        text += (
            f"\n\nThis digest was built from {total_articles} articles "
            f"across {topic_count} topics."
        )
    return text


def _excerpt(content: str, length: int) -> str:
    return f"{content[:length]}..."


def format_curated_content(
    best_of: Selection,
    main_clusters: list[CuratedCluster],
    misc_cluster: CuratedCluster | None,
) -> str:
    """
    Material block for the final writing pass.

    Passthrough clusters have no curated content, so their articles are
    rendered as excerpts here instead.
    """
    parts = ["## BEST OF WEEK\n\n"]
    if best_of.reasoning:
        parts.append(f"Selection reasoning: {best_of.reasoning}\n\n")
    for article in best_of.selected:
        parts.append(f"### {article.subject}\n")
        parts.append(f"**Source:** {article.source}\n")
        parts.append(f"**Date:** {article.date.strftime('%Y-%m-%d')}\n\n")
        parts.append(f"{article.content}\n\n")
        parts.append("---\n\n")

    parts.append("## MAIN TOPICS\n\n")
    for cluster in main_clusters:
        count = cluster.original_article_count or len(cluster.articles)
        parts.append(f"### {cluster.label}\n")
        parts.append(f"({count} articles, {cluster.strategy} curation)\n\n")
        if cluster.curated_content:
            parts.append(cluster.curated_content)
        else:
            for article in cluster.articles:
                parts.append(f"#### {article.subject}\n")
                parts.append(f"{_excerpt(article.content, MAIN_EXCERPT_LENGTH)}\n\n")
        parts.append("\n---\n\n")

    parts.append("## LONG TAIL / MISCELLANEOUS\n\n")
    if misc_cluster is not None:
        if misc_cluster.curated_content:
            parts.append(misc_cluster.curated_content)
        else:
            for article in misc_cluster.articles:
                parts.append(f"### {article.subject}\n")
                parts.append(f"**Source:** {article.source}\n\n")
                parts.append(f"{_excerpt(article.content, MISC_EXCERPT_LENGTH)}\n\n")

    return "".join(parts)
