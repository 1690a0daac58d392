"""
文本生成服务
Text generation service

Stateless wrapper around an OpenAI-compatible chat-completions endpoint.
Every call carries its full prompt and nothing else: there is no
conversation history between calls, which is what keeps per-cluster calls
isolated from each other.
"""

import logging
from dataclasses import dataclass
from typing import Any

from openai import OpenAI

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"

DEFAULT_SYSTEM_PROMPT = """You are an experienced newsletter editor and analyst.
You read many newsletters and turn them into clear, well-sourced, topic-organized writing.
Stay faithful to the source material and keep links intact."""


@dataclass
class Completion:
    """
    Result of one generation call.

    Attributes:
        text: Generated text (stripped)
        input_tokens: Prompt tokens reported by the API (0 if absent)
        output_tokens: Completion tokens reported by the API (0 if absent)
    """
    text: str
    input_tokens: int = 0
    output_tokens: int = 0


class TextGenerator:
    """
    Chat-completions client

    Attributes:
        client: OpenAI client instance
        model: Model name
        max_tokens: Max completion tokens, None for no limit
        temperature: Sampling temperature
        timeout: Request timeout in seconds
        system_prompt: System message sent with every call
    """

    def __init__(self, config: dict[str, Any], client: OpenAI | None = None):
        """
        Initialize the generator.

        Args:
            config: AI config dict with:
                - api_base: API URL
                - api_key: API key
                - model: Model name
                - max_tokens: Max tokens (empty, None or 0 means no limit)
                - temperature: Temperature (default 0.7)
                - timeout: Timeout seconds (default 120)
                - system_prompt: Custom system prompt (optional)
            client: Pre-built client, mainly for tests
        """
        api_base = config.get('api_base') or 'https://api.openai.com/v1'
        api_key = config.get('api_key') or ''

        self.client = client or OpenAI(base_url=api_base, api_key=api_key)
        self.model = config.get('model') or DEFAULT_MODEL

        max_tokens_value = config.get('max_tokens')
        if max_tokens_value is None or max_tokens_value == '' or max_tokens_value == 0:
            self.max_tokens = None
        else:
            self.max_tokens = int(max_tokens_value)

        self.temperature = float(config.get('temperature', 0.7))
        self.timeout = float(config.get('timeout', 120))
        self.system_prompt = config.get('system_prompt') or DEFAULT_SYSTEM_PROMPT

        logger.info(f"TextGenerator initialized with model: {self.model}, api_base: {api_base}")

    def complete(self, prompt: str) -> Completion:
        """
        Run one self-contained generation call.

        Args:
            prompt: Full user prompt

        Returns:
            Completion with text and token usage

        Raises:
            RuntimeError: The API returned no text
            openai.APIError: Any API failure, unchanged
        """
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.temperature,
            "timeout": self.timeout,
        }
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens

        response = self.client.chat.completions.create(**kwargs)

        content = None
        if response.choices:
            content = response.choices[0].message.content
        if not content or not content.strip():
            raise RuntimeError("API response contains no text")

        usage = getattr(response, 'usage', None)
        return Completion(
            text=content.strip(),
            input_tokens=int(getattr(usage, 'prompt_tokens', 0) or 0),
            output_tokens=int(getattr(usage, 'completion_tokens', 0) or 0),
        )

    def generate(self, prompt: str) -> str:
        """Run one generation call and return only the text."""
        return self.complete(prompt).text
