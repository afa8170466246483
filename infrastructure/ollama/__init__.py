"""
Ollama Infrastructure - LLM backend client (implements ITextEnhancer).
"""

from .client import OllamaClient

__all__ = ["OllamaClient"]
