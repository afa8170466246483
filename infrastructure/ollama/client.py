"""
Ollama Client - LLM text enhancement and chat.

Implements ITextEnhancer. Enhancement is best-effort: it never raises and
falls back to the unmodified input. Chat is the one LLM call whose failure
is surfaced, since the answer is the whole point of the request.
"""

import time
from typing import Optional

import httpx  # type: ignore

from core.config import Settings
from core.constants import CHAT_EMPTY_RESPONSE, OLLAMA_GENERATE_PATH
from core.errors import LLMBackendError
from core.logger import format_exception_short, logger
from core.messages import ErrorMessages, LogMessages
from infrastructure.http import BackendHttpClient, build_timeout
from interfaces.text_enhancer import ITextEnhancer
from models.domain import ChatResult, EnhancementResult, EnhancementTask


class OllamaClient(ITextEnhancer):
    """Talks to Ollama's non-streaming /api/generate endpoint."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            settings: Gateway settings (URL, model, timeouts)
            transport: Optional httpx transport, used by tests
        """
        self.model = settings.ollama_model
        self.enhance_timeout = settings.enhance_timeout_seconds
        self.chat_timeout = settings.chat_timeout_seconds
        self._http = BackendHttpClient(
            backend="ollama",
            base_url=settings.ollama_url,
            default_timeout=settings.chat_timeout_seconds,
            transport=transport,
        )

    async def generate(self, prompt: str, timeout: float) -> Optional[str]:
        """
        Run one completion.

        Returns:
            The ``response`` field, or None when the backend omitted it

        Raises:
            LLMBackendError: Timeout, connection failure, non-2xx or bad JSON
        """
        payload = {"model": self.model, "prompt": prompt, "stream": False}
        client = self._http.get()

        try:
            response = await client.post(
                OLLAMA_GENERATE_PATH, json=payload, timeout=build_timeout(timeout)
            )
        except httpx.HTTPError as e:
            raise LLMBackendError(
                ErrorMessages.LLM_UNREACHABLE.format(error=str(e) or type(e).__name__)
            ) from e

        if not response.is_success:
            raise LLMBackendError(
                ErrorMessages.LLM_REJECTED.format(status_code=response.status_code)
            )

        try:
            body = response.json()
        except ValueError as e:
            raise LLMBackendError(ErrorMessages.LLM_MALFORMED.format(error=e)) from e

        if not isinstance(body, dict):
            raise LLMBackendError(
                ErrorMessages.LLM_MALFORMED.format(
                    error=f"expected object, got {type(body).__name__}"
                )
            )

        text = body.get("response")
        if text is not None and not isinstance(text, str):
            raise LLMBackendError(
                ErrorMessages.LLM_MALFORMED.format(error="'response' is not a string")
            )
        return text

    async def enhance(self, text: str, task: EnhancementTask) -> EnhancementResult:
        """Implements ITextEnhancer.enhance(). Never raises."""
        task = EnhancementTask.parse(task)
        start = time.time()

        try:
            output = await self.generate(task.build_prompt(text), self.enhance_timeout)
        except LLMBackendError as e:
            logger.warning(
                LogMessages.ENHANCE_FALLBACK.format(task=task.value, error=e.message)
            )
            return EnhancementResult.passthrough(text, task)
        except Exception as e:
            logger.warning(
                LogMessages.ENHANCE_FALLBACK.format(
                    task=task.value, error=format_exception_short(e)
                )
            )
            return EnhancementResult.passthrough(text, task)

        result = EnhancementResult.from_output(text, task, output or "")
        if result.succeeded:
            logger.info(
                LogMessages.ENHANCE_DONE.format(
                    task=task.value,
                    before=len(text),
                    after=len(result.output_text),
                    duration=time.time() - start,
                )
            )
        else:
            logger.warning(
                LogMessages.ENHANCE_FALLBACK.format(
                    task=task.value, error="empty or unchanged response"
                )
            )
        return result

    async def chat(self, prompt: str, context: str = "") -> ChatResult:
        """Implements ITextEnhancer.chat()."""
        context = context or ""
        full_prompt = f"Context: {context}\n\nQuestion: {prompt}" if context else prompt

        output = await self.generate(full_prompt, self.chat_timeout)
        logger.info(f"Chat response generated for prompt: {prompt[:100]}")

        return ChatResult(
            response=output if output is not None else CHAT_EMPTY_RESPONSE,
            prompt=prompt,
            context=context,
            model=self.model,
        )

    async def aclose(self) -> None:
        await self._http.aclose()
