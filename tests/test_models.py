"""
Article model tests
"""

from datetime import datetime, timezone

import pytest
from hypothesis import given, strategies as st, settings

from newsletter_digest.models import Article, EmbeddedArticle, Link, dedupe_links
from newsletter_digest.utils.helpers import generate_article_id


class TestDedupeLinks:
    """dedupe_links()"""

    def test_first_occurrence_wins(self):
        links = [
            Link("Read more", "https://a.io/1"),
            Link("Other", "https://a.io/2"),
            Link("Duplicate", "https://a.io/1"),
        ]
        assert dedupe_links(links) == (
            Link("Read more", "https://a.io/1"),
            Link("Other", "https://a.io/2"),
        )

    def test_empty_urls_dropped(self):
        assert dedupe_links([Link("nothing", ""), Link("x", "https://x.io")]) == (
            Link("x", "https://x.io"),
        )

    @given(urls=st.lists(st.sampled_from(["https://a", "https://b", "https://c", ""]), max_size=20))
    @settings(max_examples=30, deadline=None)
    def test_urls_unique(self, urls):
        result = dedupe_links(Link(str(i), url) for i, url in enumerate(urls))
        result_urls = [link.url for link in result]
        assert len(result_urls) == len(set(result_urls))
        assert "" not in result_urls


class TestArticle:
    """Article dataclass"""

    def test_create_derives_fields(self):
        date = datetime(2025, 3, 3, 8, 0)
        article = Article.create(
            source="The Batch",
            subject="Agents everywhere",
            date=date,
            content="Agents are shipping in many products now",
            links=[Link("a", "https://x.io"), Link("b", "https://x.io")],
        )

        assert article.id == generate_article_id("The Batch", "Agents everywhere", date)
        assert article.word_count == 7
        assert len(article.links) == 1
        assert article.primary_link == "https://x.io"

    def test_frozen(self):
        article = Article.create("s", "subj", datetime(2025, 1, 1), "text")
        with pytest.raises(Exception):
            article.subject = "changed"

    def test_primary_link_empty(self):
        article = Article.create("s", "subj", datetime(2025, 1, 1), "text")
        assert article.primary_link == ""

    def test_dict_round_trip(self):
        article = Article.create(
            "Source", "Subject", datetime(2025, 3, 3, 8, 0), "Body text here",
            links=[Link("l", "https://l.io")],
        )
        assert Article.from_dict(article.to_dict()) == article

    def test_from_dict_derives_missing_fields(self):
        article = Article.from_dict({
            "source": "S",
            "subject": "T",
            "date": "2025-03-03T08:00:00",
            "content": "one two three",
            "links": [{"text": "x", "url": "https://x.io"}],
        })

        assert article.id == generate_article_id("S", "T", datetime(2025, 3, 3, 8, 0))
        assert article.word_count == 3
        assert article.links == (Link("x", "https://x.io"),)

    def test_from_dict_bad_date_falls_back_to_now(self):
        article = Article.from_dict({"source": "S", "subject": "T", "date": "not a date", "content": ""})
        assert isinstance(article.date, datetime)

    @pytest.mark.parametrize("date", [None, "not a date", ""])
    def test_from_dict_id_stable_without_usable_date(self, date):
        record = {"source": "S", "subject": "Subj", "content": "x y"}
        if date is not None:
            record["date"] = date

        first = Article.from_dict(record)
        second = Article.from_dict(dict(record))

        assert first.id == second.id

    def test_from_dict_accepts_utc_suffix(self):
        article = Article.from_dict({"source": "S", "subject": "T", "date": "2025-03-03T09:00:00Z", "content": ""})

        assert article.date == datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)
        assert article.id == generate_article_id("S", "T", datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc))

    def test_from_dict_null_word_count_recomputed(self):
        article = Article.from_dict({
            "source": "S",
            "subject": "T",
            "date": "2025-03-03T08:00:00",
            "content": "one two three four",
            "word_count": None,
        })

        assert article.word_count == 4

    def test_from_dict_string_word_count_coerced(self):
        article = Article.from_dict({"source": "S", "subject": "T", "content": "a", "word_count": "12"})
        assert article.word_count == 12


class TestEmbeddedArticle:
    def test_to_dict(self):
        article = Article.create("s", "subj", datetime(2025, 1, 1), "text")
        embedded = EmbeddedArticle(article=article, embedding=[0.1, 0.2])

        assert embedded.to_dict() == {"article_id": article.id, "embedding": [0.1, 0.2]}
