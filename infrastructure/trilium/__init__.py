"""
Trilium Infrastructure - note store client (implements INoteStore).
"""

from .client import TriliumNoteStore

__all__ = ["TriliumNoteStore"]
