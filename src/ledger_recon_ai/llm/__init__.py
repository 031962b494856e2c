"""Hosted model access: backends, prompts and stream chunking."""

from .backend import GenerationBackend, OpenAIBackend
from .chunker import LineChunker

__all__ = ["GenerationBackend", "OpenAIBackend", "LineChunker"]
