"""
Dependency Injection Container.

This module provides a simple DI container for managing interface implementations.
"""

from typing import Any, Callable, Dict, Optional, Type, TypeVar

from core.config import Settings, get_settings
from core.logger import logger

T = TypeVar("T")


class Container:
    """
    Simple Dependency Injection Container.

    Supports:
    - Singleton instances (register)
    - Factory functions (register_factory)
    - Interface resolution (resolve)
    """

    _instances: Dict[Type, Any] = {}
    _providers: Dict[Type, Callable[[], Any]] = {}
    _initialized: bool = False

    @classmethod
    def register(cls, interface: Type[T], instance: Any) -> None:
        """
        Register a singleton instance for an interface.

        Args:
            interface: The interface type (e.g., ITranscriber)
            instance: The implementation instance
        """
        cls._instances[interface] = instance

    @classmethod
    def register_factory(cls, interface: Type[T], factory: Callable[[], T]) -> None:
        """
        Register a factory function for an interface.
        Factory is called each time resolve() is called.

        Args:
            interface: The interface type
            factory: Factory function that returns an implementation
        """
        cls._providers[interface] = factory

    @classmethod
    def resolve(cls, interface: Type[T]) -> T:
        """
        Resolve an interface to its implementation.

        Raises:
            KeyError: If no implementation is registered for the interface
        """
        if interface in cls._instances:
            return cls._instances[interface]
        if interface in cls._providers:
            return cls._providers[interface]()
        raise KeyError(f"No provider registered for {interface.__name__}")

    @classmethod
    def is_registered(cls, interface: Type[T]) -> bool:
        return interface in cls._instances or interface in cls._providers

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations (useful for testing)."""
        cls._instances.clear()
        cls._providers.clear()
        cls._initialized = False

    @classmethod
    def is_initialized(cls) -> bool:
        """Check if container has been bootstrapped."""
        return cls._initialized

    @classmethod
    def _mark_initialized(cls) -> None:
        cls._initialized = True


def bootstrap_container(
    settings: Optional[Settings] = None,
    speech_model: Optional[Any] = None,
) -> None:
    """
    Initialize the dependency injection container.

    Registers all interface implementations:
    - Settings -> the frozen settings value
    - SpeechModelHandle -> the process-wide speech model
    - ITranscriber -> WhisperTranscriber
    - ITextEnhancer -> OllamaClient
    - INoteStore -> TriliumNoteStore
    - NotePipelineService -> NotePipelineService (with injected dependencies)

    Args:
        settings: Settings to build components from (default: get_settings())
        speech_model: Already loaded SpeechModelHandle. When omitted the
            model is loaded here.

    This function is idempotent - calling it multiple times has no effect
    after the first successful initialization.
    """
    if Container.is_initialized():
        return

    logger.info("Bootstrapping dependency injection container...")

    try:
        from interfaces.note_store import INoteStore
        from interfaces.text_enhancer import ITextEnhancer
        from interfaces.transcriber import ITranscriber

        from infrastructure.ollama import OllamaClient
        from infrastructure.trilium import TriliumNoteStore
        from infrastructure.whisper import (
            SpeechModelHandle,
            WhisperTranscriber,
            load_speech_model,
        )

        from services.pipeline import NotePipelineService

        settings = settings or get_settings()
        Container.register(Settings, settings)

        if speech_model is None:
            speech_model = load_speech_model(settings)
        Container.register(SpeechModelHandle, speech_model)
        logger.info(f"Registered SpeechModelHandle (loaded={speech_model.is_loaded})")

        transcriber = WhisperTranscriber(speech_model, settings)
        Container.register(ITranscriber, transcriber)
        logger.info("Registered ITranscriber -> WhisperTranscriber")

        enhancer = OllamaClient(settings)
        Container.register(ITextEnhancer, enhancer)
        logger.info("Registered ITextEnhancer -> OllamaClient")

        note_store = TriliumNoteStore(settings)
        Container.register(INoteStore, note_store)
        logger.info("Registered INoteStore -> TriliumNoteStore")

        Container.register(
            NotePipelineService,
            NotePipelineService(
                transcriber=transcriber,
                enhancer=enhancer,
                note_store=note_store,
                settings=settings,
            ),
        )
        logger.info("Registered NotePipelineService with DI")

        Container._mark_initialized()
        logger.info("Dependency injection container bootstrapped successfully")

    except Exception as e:
        logger.error(f"Failed to bootstrap container: {e}")
        logger.exception("Container bootstrap error details:")
        raise


async def shutdown_container() -> None:
    """Close backend clients, stop the transcription pool and release the model."""
    if not Container.is_initialized():
        return

    from infrastructure.whisper import SpeechModelHandle
    from interfaces.transcriber import ITranscriber
    from services.pipeline import NotePipelineService

    await Container.resolve(NotePipelineService).aclose()

    transcriber = Container.resolve(ITranscriber)
    close = getattr(transcriber, "close", None)
    if close is not None:
        close()

    Container.resolve(SpeechModelHandle).release()
    Container.clear()
    logger.info("Dependency injection container shut down")


def get_speech_model():
    """
    Get the SpeechModelHandle from container.

    Returns:
        SpeechModelHandle, or None if the container is not bootstrapped
    """
    from infrastructure.whisper import SpeechModelHandle

    if not Container.is_registered(SpeechModelHandle):
        return None
    return Container.resolve(SpeechModelHandle)


def get_pipeline_service():
    """
    Get NotePipelineService from container.

    Returns:
        NotePipelineService with injected dependencies
    """
    from services.pipeline import NotePipelineService

    if not Container.is_initialized():
        bootstrap_container()

    return Container.resolve(NotePipelineService)
