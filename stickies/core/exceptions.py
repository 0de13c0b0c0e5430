"""
Error Types

Typed exceptions shared by the services, stores and API layer.

Hierarchy::

    StickiesError
    ├── EmbeddingProviderError
    │   ├── ProviderUnavailableError   (timeout, network, disabled backend)
    │   └── ProviderLoadFailedError    (model could not be loaded; permanent)
    ├── InvalidDimensionError          (also a ValueError)
    ├── StoreError
    └── NoteNotFoundError

A note without a stored vector is not an error: stores return ``None``.
"""

from __future__ import annotations


class StickiesError(Exception):
    """Base class for all application errors."""


class EmbeddingProviderError(StickiesError):
    """Embedding generation cannot proceed."""


class ProviderUnavailableError(EmbeddingProviderError):
    """The provider is unreachable, timed out, or disabled."""


class ProviderLoadFailedError(EmbeddingProviderError):
    """The provider failed to initialize; the failure is remembered."""


class InvalidDimensionError(StickiesError, ValueError):
    """Vectors of mismatched length were combined."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class StoreError(StickiesError):
    """The underlying persistence call failed."""


class NoteNotFoundError(StickiesError):
    """No note exists with the given identifier."""

    def __init__(self, note_id: str) -> None:
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id
