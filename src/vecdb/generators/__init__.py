"""Text generators (LLM providers) and their configuration."""

from dataclasses import dataclass
from typing import Literal, Union

from vecdb.config import Settings
from vecdb.errors import ConfigurationError
from vecdb.generators.anthropic_generator import AnthropicGenerator
from vecdb.generators.ollama import OllamaGenerator
from vecdb.protocols import TextGenerator


@dataclass(frozen=True)
class OllamaConfig:
    model: str
    endpoint: str = "http://localhost:11434"
    kind: Literal["ollama"] = "ollama"


@dataclass(frozen=True)
class AnthropicConfig:
    model: str
    api_key: str | None = None
    kind: Literal["anthropic"] = "anthropic"


ProviderConfig = Union[OllamaConfig, AnthropicConfig]


def provider_config(provider: str, settings: Settings, model: str | None = None) -> ProviderConfig:
    """Build a provider configuration from its name and the settings."""
    if provider == "ollama":
        return OllamaConfig(model=model or settings.ollama_model, endpoint=settings.ollama_endpoint)
    if provider == "anthropic":
        return AnthropicConfig(
            model=model or settings.anthropic_model, api_key=settings.anthropic_api_key
        )
    raise ConfigurationError(f"Unknown provider: {provider}")


def create_generator(config: ProviderConfig, timeout: float = 30.0) -> TextGenerator:
    """Instantiate the generator described by ``config``."""
    if config.kind == "ollama":
        return OllamaGenerator(config.model, config.endpoint, timeout=timeout)
    if config.kind == "anthropic":
        return AnthropicGenerator(config.model, config.api_key, timeout=timeout)
    raise ConfigurationError(f"Unknown provider kind: {config.kind}")


__all__ = [
    "AnthropicConfig",
    "AnthropicGenerator",
    "OllamaConfig",
    "OllamaGenerator",
    "ProviderConfig",
    "create_generator",
    "provider_config",
]
