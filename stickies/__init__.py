"""Stickies: personal notes with semantic search and topical clustering."""

__version__ = "0.1.0"
