"""Failure kinds raised by the memory store."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every structured store failure."""

    kind = "store_error"


class NotFoundError(StoreError):
    """A memory id (or a `related` target) does not exist."""

    kind = "not_found"


class ConflictError(StoreError):
    """An id collision, or a non-empty directory targeted without overwrite."""

    kind = "conflict"


class InvalidArgumentError(StoreError):
    """Unknown type, empty required field, out-of-bounds importance, etc."""

    kind = "invalid_argument"


class IOFailureError(StoreError):
    """An underlying read/write/rename failed."""

    kind = "io_failure"
