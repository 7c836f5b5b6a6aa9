"""On-device language model adapters."""

from .ollama_client import OllamaLocalLLM

__all__ = ["OllamaLocalLLM"]
