"""
Language model backends
"""
from .base import HTTPModelClient
from .ollama import OllamaClient
from .openai import OpenAIClient, DeepSeekClient
from .factory import create_model_client

__all__ = [
    "HTTPModelClient",
    "OllamaClient",
    "OpenAIClient",
    "DeepSeekClient",
    "create_model_client",
]
