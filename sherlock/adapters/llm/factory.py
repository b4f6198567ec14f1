"""
Model client factory
"""
from ...core.constants import DEFAULT_LLM_TIMEOUT, PROVIDER_DEEPSEEK, PROVIDER_OLLAMA, PROVIDER_OPENAI
from ...core.exceptions import ConfigError
from ...core.interfaces import ModelClient
from ..config.settings import LLMConfig
from .ollama import OllamaClient
from .openai import DeepSeekClient, OpenAIClient


def create_model_client(config: LLMConfig, timeout: float = DEFAULT_LLM_TIMEOUT) -> ModelClient:
    """
    Create the client for the configured provider.

    Raises:
        ConfigError: If the provider is unsupported
        ModelError: If the provider needs an API key and none is set
    """
    base_url = config.effective_base_url()

    if config.provider == PROVIDER_OLLAMA:
        return OllamaClient(base_url, config.model, temperature=config.temperature, timeout=timeout)
    if config.provider == PROVIDER_OPENAI:
        return OpenAIClient(
            base_url, config.model, config.api_key,
            temperature=config.temperature, timeout=timeout,
        )
    if config.provider == PROVIDER_DEEPSEEK:
        return DeepSeekClient(
            base_url, config.model, config.api_key,
            temperature=config.temperature, timeout=timeout,
        )
    raise ConfigError(f"Unsupported LLM provider: {config.provider}")
