"""
DeepDiveWriter tests
"""

from datetime import datetime

import pytest

from newsletter_digest.aggregation.curation import CurationError
from newsletter_digest.aggregation.deep_dive import DeepDiveWriter
from newsletter_digest.models import Article
from newsletter_digest.services.prompts import PromptLibrary


class RecordingGenerator:
    def __init__(self, response="### Story\nAnalysis", error=None):
        self.response = response
        self.error = error
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.response


def make_articles(n):
    return [Article.create(f"S{i}", f"Top story {i}", datetime(2025, 3, 1, i), f"top-body-{i}") for i in range(n)]


class TestDeepDiveWriter:
    def test_writes_analysis(self):
        generator = RecordingGenerator()
        articles = make_articles(2)

        deep_dive = DeepDiveWriter(generator, PromptLibrary(), sleep=lambda _: None).write(articles)

        assert deep_dive.content == "### Story\nAnalysis"
        assert deep_dive.article_ids == tuple(a.id for a in articles)
        assert deep_dive.headings == ["Story"]
        assert "top-body-0" in generator.prompts[0]
        assert "top-body-1" in generator.prompts[0]

    def test_no_articles_no_call(self):
        generator = RecordingGenerator()

        deep_dive = DeepDiveWriter(generator, sleep=lambda _: None).write([])

        assert deep_dive.content == ""
        assert generator.prompts == []

    def test_failure_after_retries(self):
        generator = RecordingGenerator(error=TimeoutError("slow"))

        with pytest.raises(CurationError):
            DeepDiveWriter(generator, sleep=lambda _: None).write(make_articles(1))

        assert len(generator.prompts) == 3
