"""
核心数据模型
Core data models.

Defines the article records that flow through the digest pipeline. Articles
are produced upstream (mail extraction) and only read by the pipeline, so
they are frozen dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from newsletter_digest.utils.helpers import estimate_word_count, generate_article_id


@dataclass(frozen=True)
class Link:
    """
    A hyperlink extracted from an article.

    Attributes:
        text: Anchor text
        url: Target URL
    """
    text: str
    url: str

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "url": self.url}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Link":
        return cls(text=data.get("text", ""), url=data.get("url", ""))


def dedupe_links(links: Iterable[Link]) -> tuple[Link, ...]:
    """
    Remove duplicate links by URL, keeping the first occurrence.

    Links without a URL are dropped.

    Examples:
        >>> dedupe_links([Link("a", "https://x.io"), Link("b", "https://x.io")])
        (Link(text='a', url='https://x.io'),)
    """
    seen: set[str] = set()
    unique: list[Link] = []
    for link in links:
        if not link.url or link.url in seen:
            continue
        seen.add(link.url)
        unique.append(link)
    return tuple(unique)


def parse_date(value: Any) -> datetime | None:
    """
    Parse an ISO 8601 timestamp, accepting a trailing ``Z`` for UTC.

    Returns:
        datetime, or None if the value is missing or unparseable

    Examples:
        >>> parse_date("2025-03-03T09:00:00Z")
        datetime.datetime(2025, 3, 3, 9, 0, tzinfo=datetime.timezone.utc)
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass(frozen=True)
class Article:
    """
    Article data model

    One newsletter issue (or section of one) reduced to plain text.

    Attributes:
        id: Stable hash of source + subject + timestamp
        source: Sender / publication name
        subject: Subject line
        date: Publication timestamp
        content: Plain-text body
        links: Ordered links, unique by URL
        word_count: Whitespace word count of ``content``
    """
    id: str
    source: str
    subject: str
    date: datetime
    content: str
    links: tuple[Link, ...] = field(default_factory=tuple)
    word_count: int = 0

    @classmethod
    def create(
        cls,
        source: str,
        subject: str,
        date: datetime,
        content: str,
        links: Iterable[Link] = (),
    ) -> "Article":
        """
        Build an article, deriving its id, word count and deduplicated links.

        Args:
            source: Sender / publication name
            subject: Subject line
            date: Publication timestamp
            content: Plain-text body
            links: Extracted links, possibly with duplicates

        Returns:
            Article object
        """
        return cls(
            id=generate_article_id(source, subject, date),
            source=source,
            subject=subject,
            date=date,
            content=content,
            links=dedupe_links(links),
            word_count=estimate_word_count(content),
        )

    @property
    def primary_link(self) -> str:
        """URL of the first link, or an empty string."""
        return self.links[0].url if self.links else ""

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the article to a JSON-friendly dict.

        Returns:
            Dict with ``date`` as an ISO string and links as dicts
        """
        return {
            "id": self.id,
            "source": self.source,
            "subject": self.subject,
            "date": self.date.isoformat(),
            "content": self.content,
            "links": [link.to_dict() for link in self.links],
            "word_count": self.word_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Article":
        """
        Create an article from a dict.

        Missing ``id`` and ``word_count`` are derived the same way
        ``create`` derives them. A missing or unparseable date falls back
        to now, but the id is then hashed from the raw date value so the
        same record always gets the same id.

        Args:
            data: Article dict (as produced by ``to_dict`` or an upstream extractor)

        Returns:
            Article object
        """
        raw_date = data.get("date")
        date = parse_date(raw_date)
        id_stamp = date if date is not None else ("" if raw_date is None else str(raw_date))
        if date is None:
            date = datetime.now()

        source = data.get("source", "")
        subject = data.get("subject", "")
        content = data.get("content", "")
        links = dedupe_links(
            Link.from_dict(link) if isinstance(link, dict) else link
            for link in data.get("links", [])
        )

        return cls(
            id=data.get("id") or generate_article_id(source, subject, id_stamp),
            source=source,
            subject=subject,
            date=date,
            content=content,
            links=links,
            word_count=int(data.get("word_count") or estimate_word_count(content)),
        )


@dataclass(frozen=True)
class EmbeddedArticle:
    """
    An article paired with its embedding vector.

    Attributes:
        article: The source article
        embedding: Fixed-dimension vector (dimension is constant within a run)
    """
    article: Article
    embedding: list[float]

    def to_dict(self) -> dict[str, Any]:
        """Snapshot form: article id plus vector."""
        return {"article_id": self.article.id, "embedding": list(self.embedding)}
