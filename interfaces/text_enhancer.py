"""
Text Enhancer Interface - Abstract interface for LLM text generation.
"""

from abc import ABC, abstractmethod

from models.domain import ChatResult, EnhancementResult, EnhancementTask


class ITextEnhancer(ABC):
    """
    Abstract interface for the LLM backend.

    Implementations:
    - infrastructure.ollama.client.OllamaClient
    """

    @abstractmethod
    async def enhance(self, text: str, task: EnhancementTask) -> EnhancementResult:
        """
        Apply a templated transformation to text.

        Never raises: any backend failure returns
        EnhancementResult.passthrough(text, task).
        """
        pass

    @abstractmethod
    async def chat(self, prompt: str, context: str = "") -> ChatResult:
        """
        Free-form completion, optionally grounded in note context.

        Raises:
            LLMBackendError: If the backend is unreachable or answers badly
        """
        pass
