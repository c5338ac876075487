"""
Error types for DJStore.

This module defines all exception types raised by store operations:
- StoreError: Base exception
- NotFoundError: Referenced or queried entity is absent
- InvalidInputError: Required field empty/zero or numeric field out of range
- AlreadyExistsError: Key already present where a fresh one is required
- UnauthorizedError: Reserved for capability checks done by callers
- StoreNotFoundError: Store database missing or never initialized
- IdSpaceExhaustedError: Shared id counter is at its maximum

Invariants:
    - All errors inherit from StoreError
    - Errors include context for debugging
    - Error messages are human-readable
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class StoreError(Exception):
    """Base exception for all DJStore errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "STORE_ERROR"
        self.details = details or {}


class NotFoundError(StoreError):
    """Resource not found.

    Raised when:
    - A foreign key points at a missing row
    - A lookup by id or name matches nothing
    - A list-all query runs over an empty collection
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
    ) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
            },
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class InvalidInputError(StoreError):
    """Payload validation failed.

    Raised when:
    - Required text field is empty
    - Required numeric field is zero
    - Numeric field is outside its declared range
    """

    def __init__(
        self,
        message: str = "Invalid input fields",
        field_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="INVALID_INPUT",
            details={"field": field_name},
        )
        self.field_name = field_name


class AlreadyExistsError(StoreError):
    """A row with this key already exists."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
    ) -> None:
        super().__init__(
            message,
            code="ALREADY_EXISTS",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
            },
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class UnauthorizedError(StoreError):
    """Actor lacks the capability for an operation.

    The store never raises this itself; role checks belong to the layer
    that calls into the store.
    """

    def __init__(
        self,
        message: str,
        actor: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="UNAUTHORIZED",
            details={"actor": actor},
        )
        self.actor = actor


class StoreNotFoundError(StoreError):
    """Store database file or schema is missing.

    Raised when an engine that was never initialized is used, or when
    a read-only tool is pointed at the wrong data directory.
    """

    def __init__(self, message: str, db_path: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="STORE_NOT_FOUND",
            details={"db_path": db_path},
        )
        self.db_path = db_path


class IdSpaceExhaustedError(StoreError):
    """The shared identifier counter has reached its maximum."""

    def __init__(self, message: str, last_id: Optional[int] = None) -> None:
        super().__init__(
            message,
            code="ID_SPACE_EXHAUSTED",
            details={"last_id": last_id},
        )
        self.last_id = last_id
