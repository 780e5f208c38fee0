# errors.py

"""
Error types shared by the region store, the search service and the HTTP layer.

Search failures form a closed set of kinds (``ErrorKind``); the HTTP boundary
maps each kind to a status code. Ingestion failures are separate: they abort
the one-time build of the region store and never reach a search caller.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    STORE_FAILURE = "STORE_FAILURE"


class RegionSearchError(Exception):
    """Base class for failures surfaced to search callers.

    Attributes:
        kind: Which of the three failure kinds this is.
        message: Human-readable description, safe to return to clients
            (store failures carry a generic message only).
    """

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(RegionSearchError):
    """Missing or malformed parameter (empty query, non 5-digit postal code)."""

    kind = ErrorKind.INVALID_INPUT


class NotFoundError(RegionSearchError):
    """Postal code lookup matched no region."""

    kind = ErrorKind.NOT_FOUND


class StoreFailureError(RegionSearchError):
    """The region store could not be opened or a query against it failed."""

    kind = ErrorKind.STORE_FAILURE


class IngestionError(Exception):
    """Raw data could not be read or denormalized; nothing is written."""


__all__ = [
    "ErrorKind",
    "RegionSearchError",
    "InvalidInputError",
    "NotFoundError",
    "StoreFailureError",
    "IngestionError",
]
