"""
DigestWriter tests
"""

from datetime import datetime
from unittest.mock import Mock

import pytest

from newsletter_digest.aggregation.digest_writer import DEFAULT_DATE_RANGE, DigestWriter
from newsletter_digest.aggregation.models import CuratedCluster, Selection
from newsletter_digest.models import Article
from newsletter_digest.services.prompts import PromptLibrary
from newsletter_digest.services.text_generator import Completion


def make_generator(side_effect=None) -> Mock:
    generator = Mock()
    generator.model = "gpt-4o"
    if side_effect is not None:
        generator.complete.side_effect = side_effect
    else:
        generator.complete.return_value = Completion("# Digest\nBody", input_tokens=900, output_tokens=300)
    return generator


def make_inputs():
    article = Article.create("Source", "Best story", datetime(2025, 3, 2), "best-body")
    best_of = Selection(selected=(article,), reasoning="Top pick")
    main = [CuratedCluster("AI", 12, "curated-ai", "moderate")]
    misc = CuratedCluster("Long Tail / Miscellaneous", 5, "misc-roundup", "misc")
    return best_of, main, misc


class TestDigestWriter:
    def test_write(self):
        generator = make_generator()
        best_of, main, misc = make_inputs()

        result = DigestWriter(generator, PromptLibrary(), sleep=lambda _: None).write(
            best_of, main, misc, date_range="Mar 1 - Mar 8, 2025", total_articles=42
        )

        assert result.digest == "# Digest\nBody"
        assert result.input_tokens == 900
        assert result.output_tokens == 300
        assert result.metadata == {
            "model": "gpt-4o",
            "date_range": "Mar 1 - Mar 8, 2025",
            "total_articles": 42,
        }

        prompt = generator.complete.call_args.args[0]
        assert "Mar 1 - Mar 8, 2025" in prompt
        assert "42 articles" in prompt
        for marker in ("best-body", "curated-ai", "misc-roundup"):
            assert marker in prompt

    def test_default_date_range(self):
        best_of, main, misc = make_inputs()

        result = DigestWriter(make_generator(), sleep=lambda _: None).write(best_of, main, misc)

        assert result.metadata["date_range"] == DEFAULT_DATE_RANGE

    def test_retried_then_succeeds(self):
        generator = make_generator(side_effect=[ConnectionError("x"), Completion("ok", 1, 2)])
        sleeps = []
        best_of, main, misc = make_inputs()

        result = DigestWriter(generator, sleep=sleeps.append).write(best_of, main, misc)

        assert result.digest == "ok"
        assert sleeps == [2.0]

    def test_exhausted_raises(self):
        generator = make_generator(side_effect=ConnectionError("down"))
        best_of, main, misc = make_inputs()

        with pytest.raises(ConnectionError):
            DigestWriter(generator, sleep=lambda _: None).write(best_of, main, misc)

        assert generator.complete.call_count == 3

    def test_to_dict(self):
        best_of, main, misc = make_inputs()
        result = DigestWriter(make_generator(), sleep=lambda _: None).write(best_of, main, misc)

        assert result.to_dict()["usage"] == {"input": 900, "output": 300}
