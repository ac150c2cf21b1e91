"""Anthropic text generator using the official SDK."""

import logging

import anthropic

from vecdb.errors import (
    ConfigurationError,
    GeneratorConnectionError,
    GeneratorError,
    GeneratorTimeoutError,
    ModelNotFoundError,
)

logger = logging.getLogger(__name__)

MAX_TOKENS = 1024


class AnthropicGenerator:
    """Generate completions with a Claude model via the Messages API."""

    def __init__(self, model: str, api_key: str | None, timeout: float = 30.0, client=None):
        if client is None:
            if not api_key or not api_key.strip():
                raise ConfigurationError("Anthropic API key is missing; set ANTHROPIC_API_KEY")
            client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model
        self.client = client

    @property
    def name(self) -> str:
        return f"anthropic:{self.model}"

    def generate(self, prompt: str) -> str:
        logger.debug(f"Generating with {self.name}, prompt of {len(prompt)} chars")
        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                messages=[{"role": "user", "content": prompt}],
            )
        # APITimeoutError subclasses APIConnectionError
        except anthropic.APITimeoutError as e:
            raise GeneratorTimeoutError("Anthropic API request timed out") from e
        except anthropic.APIConnectionError as e:
            raise GeneratorConnectionError(f"Could not connect to the Anthropic API: {e}") from e
        except anthropic.NotFoundError as e:
            raise ModelNotFoundError(f"Model {self.model} is not available: {e}") from e
        except anthropic.APIStatusError as e:
            raise GeneratorError(
                f"Anthropic API error {e.status_code}: {e.message}",
                retryable=e.status_code == 429 or e.status_code >= 500,
            ) from e

        return "".join(block.text for block in message.content if block.type == "text").strip()
