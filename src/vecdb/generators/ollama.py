"""Ollama text generator over its local HTTP API."""

import logging

import requests

from vecdb.errors import (
    GeneratorConnectionError,
    GeneratorError,
    GeneratorTimeoutError,
    ModelNotFoundError,
)

logger = logging.getLogger(__name__)


class OllamaGenerator:
    """Generate completions with a model served by Ollama.

    Uses the non-streaming ``/api/generate`` endpoint.
    """

    def __init__(self, model: str, endpoint: str = "http://localhost:11434", timeout: float = 30.0):
        self.model = model
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    @property
    def name(self) -> str:
        return f"ollama:{self.model}"

    def generate(self, prompt: str) -> str:
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        logger.debug(f"Generating with {self.name}, prompt of {len(prompt)} chars")
        response = self._request("post", "/api/generate", json=payload)

        if response.status_code == 404 or self._mentions_missing_model(response):
            raise ModelNotFoundError(
                f"Model {self.model} is not available on {self.endpoint}; pull it with `ollama pull {self.model}`"
            )
        if response.status_code != 200:
            raise GeneratorError(
                f"Ollama returned HTTP {response.status_code}: {response.text[:200]}",
                retryable=response.status_code >= 500,
            )
        return response.json().get("response", "").strip()

    def list_models(self) -> list[str]:
        """Names of the models installed on the server (``/api/tags``)."""
        response = self._request("get", "/api/tags")
        if response.status_code != 200:
            raise GeneratorError(f"Ollama returned HTTP {response.status_code} listing models")
        return [m["name"] for m in response.json().get("models", [])]

    def check_connection(self) -> bool:
        try:
            self.list_models()
        except GeneratorError as e:
            logger.warning(f"Ollama at {self.endpoint} is not reachable: {e}")
            return False
        return True

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.endpoint}{path}"
        try:
            return requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise GeneratorTimeoutError(
                f"Ollama did not answer within {self.timeout:g}s"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise GeneratorConnectionError(f"Could not connect to Ollama at {self.endpoint}") from e
        except requests.exceptions.RequestException as e:
            raise GeneratorError(f"Ollama request failed: {e}") from e

    @staticmethod
    def _mentions_missing_model(response: requests.Response) -> bool:
        if response.status_code < 400:
            return False
        text = response.text.lower()
        return "model" in text and "not found" in text
