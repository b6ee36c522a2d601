"""Error taxonomy for the product360 engine."""

from __future__ import annotations


class Product360Error(Exception):
    """Base class for all engine errors."""


class NotFoundError(Product360Error):
    """Entity or version does not exist."""


class SourceNotFoundError(NotFoundError):
    """Clone source version does not exist for the entity."""


class ConflictError(Product360Error):
    """Concurrent write claimed the version number first."""


class ComputationError(Product360Error):
    """A collaborator call failed while computing readiness.

    The original failure is available as ``__cause__``.
    """
