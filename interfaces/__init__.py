"""
Interface Layer - Abstract interfaces for dependency injection.

This layer defines contracts that infrastructure implementations must fulfill.
The pipeline depends on these interfaces, not concrete backends.
"""

from .transcriber import ITranscriber
from .text_enhancer import ITextEnhancer
from .note_store import INoteStore

__all__ = [
    "ITranscriber",
    "ITextEnhancer",
    "INoteStore",
]
