"""
Infrastructure Layer - External system integrations.

This layer contains implementations of interfaces defined in the interfaces/ layer.
Each subdirectory groups implementations by external dependency.

Structure:
- whisper/  - faster-whisper speech model and transcription adapter
- ollama/   - LLM backend client
- trilium/  - note store client
- http/     - shared pooled HTTP client
"""
