"""
提示词模板库
Prompt template library

Keyed lookup of prompt templates per call site. Built-in defaults can be
overridden by ``<name>.txt`` files in a prompts directory. Placeholders are
``{{TOKEN}}`` markers filled by exact string substitution, so literal braces
in templates (JSON examples) need no escaping.
"""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

# Call-site names
CLUSTER_CURATION = "cluster-curation"
MISC_CURATION = "misc-curation"
CLUSTER_SUMMARY = "cluster-summary"
SELECT_BEST_OF = "select-best-of"
SELECT_TOP = "select-top"
DEEP_DIVE = "deep-dive"
DIGEST = "digest"

PLACEHOLDER_PATTERN = re.compile(r"\{\{([A-Z_]+)\}\}")

DEFAULT_CLUSTER_CURATION_PROMPT = """You are curating one topic section of a weekly newsletter digest.

Topic: {{CLUSTER_LABEL}}
Articles in this topic: {{ARTICLE_COUNT}}
Curation strategy: {{STRATEGY}} - {{STRATEGY_DESCRIPTION}}

Instructions:
1. Pick the {{KEEP_COUNT}} most insightful articles and reproduce their key content in full, with source and links.
2. Synthesize remaining articles into a short overview: {{SYNTHESIZE}}
3. Use only the articles below. Do not mention other topics.

Articles:
{{ARTICLES}}"""

DEFAULT_MISC_CURATION_PROMPT = """You are curating the long-tail section of a weekly newsletter digest.
These {{ARTICLE_COUNT}} articles did not fit a main topic.

Write a concise roundup: one or two sentences per noteworthy item, grouped loosely by theme,
keeping source names and primary links. Skip items with no substantive content.

Articles:
{{ARTICLES}}"""

DEFAULT_CLUSTER_SUMMARY_PROMPT = """Write a complete, self-contained summary of the topic "{{CLUSTER_LABEL}}"
based on the {{ARTICLE_COUNT}} articles below.

Start with a "## {{CLUSTER_LABEL}}" heading. Cover the main developments, points of agreement
and disagreement between sources, and why it matters. Cite sources by name and keep links.
Use only the articles below.

Articles:
{{ARTICLES}}"""

DEFAULT_SELECT_BEST_OF_PROMPT = """Below are {{ARTICLE_COUNT}} newsletter articles from this week.
Select the {{SELECT_COUNT}} best articles: the most insightful, original and consequential.

Respond with JSON only:
{"selected": [<article numbers>], "reasoning": "<one paragraph>"}

Articles:
{{ARTICLES}}"""

DEFAULT_SELECT_TOP_PROMPT = """Below are {{ARTICLE_COUNT}} newsletter articles from this week.
Select the {{SELECT_COUNT}} most important stories that deserve an in-depth analysis.

Respond with JSON only:
{"selected": [<article numbers>], "reasoning": "<one paragraph>"}

Articles:
{{ARTICLES}}"""

DEFAULT_DEEP_DIVE_PROMPT = """Write an in-depth analysis of each of the following {{ARTICLE_COUNT}} top stories.

For each story use a "### <headline>" heading, then explain what happened, the context,
and the implications. Cite the source and keep links.

Articles:
{{ARTICLES}}"""

DEFAULT_DIGEST_PROMPT = """Write the weekly newsletter digest for {{DATE_RANGE}}.
{{TOTAL_ARTICLES}} articles were read this week; the curated material is below.

Keep the section structure (best of week, main topics, long tail). Preserve links.
Write in clear, direct prose with headings in Markdown.

{{CURATED_CONTENT}}"""

DEFAULT_TEMPLATES: dict[str, str] = {
    CLUSTER_CURATION: DEFAULT_CLUSTER_CURATION_PROMPT,
    MISC_CURATION: DEFAULT_MISC_CURATION_PROMPT,
    CLUSTER_SUMMARY: DEFAULT_CLUSTER_SUMMARY_PROMPT,
    SELECT_BEST_OF: DEFAULT_SELECT_BEST_OF_PROMPT,
    SELECT_TOP: DEFAULT_SELECT_TOP_PROMPT,
    DEEP_DIVE: DEFAULT_DEEP_DIVE_PROMPT,
    DIGEST: DEFAULT_DIGEST_PROMPT,
}


def fill_template(template: str, values: dict[str, object]) -> str:
    """
    Substitute ``{{TOKEN}}`` placeholders.

    Every occurrence of a known token is replaced; unknown tokens are left as-is.

    Examples:
        >>> fill_template("{{A}} and {{A}} but {{B}}", {"A": 1})
        '1 and 1 but {{B}}'
    """
    result = template
    for token, value in values.items():
        result = result.replace("{{" + token + "}}", str(value))
    return result


class PromptLibrary:
    """
    Prompt template source

    Attributes:
        prompts_dir: Optional directory of ``<name>.txt`` overrides
    """

    def __init__(
        self,
        prompts_dir: str | None = None,
        templates: dict[str, str] | None = None,
    ):
        """
        Args:
            prompts_dir: Directory containing ``<name>.txt`` override files
            templates: In-memory overrides, take precedence over files
        """
        self.prompts_dir = Path(prompts_dir) if prompts_dir else None
        self._templates: dict[str, str] = dict(DEFAULT_TEMPLATES)

        if self.prompts_dir and self.prompts_dir.is_dir():
            for path in sorted(self.prompts_dir.glob("*.txt")):
                self._templates[path.stem] = path.read_text(encoding='utf-8')
                logger.debug(f"Loaded prompt override: {path.stem}")
        elif self.prompts_dir:
            logger.warning(f"Prompts directory not found: {self.prompts_dir}, using defaults")

        if templates:
            self._templates.update(templates)

    def get(self, name: str) -> str:
        """
        Look up a template by call-site name.

        Raises:
            KeyError: Unknown template name
        """
        if name not in self._templates:
            raise KeyError(f"Unknown prompt template: {name}")
        return self._templates[name]

    def render(self, name: str, **values: object) -> str:
        """Look up a template and fill its placeholders."""
        return fill_template(self.get(name), values)

    def placeholders(self, name: str) -> set[str]:
        """Placeholder tokens used by a template."""
        return set(PLACEHOLDER_PATTERN.findall(self.get(name)))
