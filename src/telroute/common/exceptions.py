#!/usr/bin/env python3
"""Exception Hierarchy for the Telephony Line Routing Service.

This module provides a structured exception hierarchy for handling errors
across the topology model, the route assignment engine, bulk imports and
the persistent record store.

Design Principles:
    - All exceptions inherit from TelrouteError base class
    - Exceptions preserve context (original error, timestamps, details)
    - Exceptions are categorized by recoverability
    - Each exception includes actionable information

Exception Hierarchy:
    TelrouteError (base)
    ├── ConfigurationError (unrecoverable - fix config)
    ├── ValidationError (recoverable - fix the offending fields)
    │   └── InvalidAddress
    ├── NotFoundError
    ├── ConflictError
    │   ├── PortConflictError
    │   └── NodeInUseError
    ├── PartialReassignmentFailure (port left vacated - alert operator)
    └── StoreUnavailable (record store failure)
        ├── ConnectionPoolError
        ├── TransactionError
        └── IntegrityError
            └── DuplicateKeyError
"""
from datetime import datetime, timezone
from typing import Any, Optional

# ============================================
# Base Exception
# ============================================

class TelrouteError(Exception):
    """Base exception for all routing service errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "INVALID_ADDRESS")
        details: Additional context as a dictionary
        timestamp: When the error occurred
        cause: The original exception that caused this error
        recoverable: Whether this error might be recoverable with retry
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause
        self.recoverable = recoverable

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.insert(0, f"[{self.code}]")
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================
# Configuration Errors (Unrecoverable)
# ============================================

class ConfigurationError(TelrouteError):
    """Raised when configuration is missing or invalid."""

    def __init__(
        self,
        message: str,
        missing_keys: Optional[list[str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if missing_keys:
            details["missing_keys"] = missing_keys
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details=details,
            recoverable=False,
            **kwargs,
        )


# ============================================
# Validation Errors
# ============================================

class ValidationError(TelrouteError):
    """Raised when operator input fails validation.

    A form may have several problems at once, so every offending field is
    reported in ``field_errors`` instead of stopping at the first one.

    Attributes:
        field_errors: Mapping of field name to message
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[dict[str, str]] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        self.field_errors = dict(field_errors or {})
        if self.field_errors:
            details["fields"] = sorted(self.field_errors)
        kwargs.setdefault("code", "VALIDATION_ERROR")
        super().__init__(
            message,
            details=details,
            recoverable=True,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["field_errors"] = self.field_errors
        return data


class InvalidAddress(ValidationError):
    """Raised when a port address token cannot be decoded for a node."""

    def __init__(
        self,
        message: str,
        token: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if token is not None:
            details["token"] = token
        super().__init__(
            message,
            field_errors={"port_address": message},
            code="INVALID_ADDRESS",
            details=details,
            **kwargs,
        )
        self.token = token


# ============================================
# Lookup and Conflict Errors
# ============================================

class NotFoundError(TelrouteError):
    """Raised when a node, phone line or other record does not exist."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        resource_id: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if resource:
            details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        super().__init__(message, code="NOT_FOUND", details=details, **kwargs)


class ConflictError(TelrouteError):
    """Base class for operations rejected because of concurrent or dependent state."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class PortConflictError(ConflictError):
    """Raised when a port is being edited concurrently or is held by another line."""

    def __init__(
        self,
        message: str = "Port is being modified by another operation",
        node_id: Optional[Any] = None,
        port_address: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if node_id is not None:
            details["node_id"] = str(node_id)
        if port_address is not None:
            details["port_address"] = port_address
        super().__init__(message, code="PORT_CONFLICT", details=details, **kwargs)
        self.node_id = node_id
        self.port_address = port_address


class NodeInUseError(ConflictError):
    """Raised when deleting a record that route hops still reference."""

    def __init__(
        self,
        message: str,
        usage_count: int = 0,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["usage_count"] = usage_count
        super().__init__(
            message,
            code="IN_USE",
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.usage_count = usage_count


# ============================================
# Reassignment Errors
# ============================================

class PartialReassignmentFailure(TelrouteError):
    """Raised when the old hop was removed but the new hop could not be written.

    The port is vacated at this point; the caller must retry or alert the
    operator rather than assume the assignment took effect.

    Attributes:
        node_id: Node whose port was vacated
        port_address: Address token of the vacated port
        retired_line_number: Number of the line that lost the port, if any
    """

    def __init__(
        self,
        message: str = "Port was vacated but the new assignment was not written",
        node_id: Optional[Any] = None,
        port_address: Optional[str] = None,
        retired_line_number: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if node_id is not None:
            details["node_id"] = str(node_id)
        if port_address is not None:
            details["port_address"] = port_address
        if retired_line_number:
            details["retired_line_number"] = retired_line_number
        super().__init__(
            message,
            code="PARTIAL_REASSIGNMENT",
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.node_id = node_id
        self.port_address = port_address
        self.retired_line_number = retired_line_number


# ============================================
# Record Store Errors
# ============================================

class StoreUnavailable(TelrouteError):
    """Base class for record store failures."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class ConnectionPoolError(StoreUnavailable):
    """Raised when database connection pool is exhausted or unavailable."""

    def __init__(
        self,
        message: str = "Database connection pool error",
        **kwargs,
    ):
        super().__init__(message, code="CONNECTION_POOL_ERROR", **kwargs)


class TransactionError(StoreUnavailable):
    """Raised when database transaction fails."""

    def __init__(
        self,
        message: str = "Database transaction failed",
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if operation:
            details["operation"] = operation
        super().__init__(
            message,
            code="TRANSACTION_ERROR",
            details=details,
            **kwargs,
        )


class IntegrityError(StoreUnavailable):
    """Raised when database integrity constraint is violated."""

    def __init__(
        self,
        message: str = "Database integrity error",
        constraint: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if constraint:
            details["constraint"] = constraint
        kwargs.setdefault("code", "INTEGRITY_ERROR")
        super().__init__(
            message,
            details=details,
            recoverable=False,
            **kwargs,
        )
        self.constraint = constraint


class DuplicateKeyError(IntegrityError):
    """Raised when a unique business key (phone number, asset number, port) already exists."""

    def __init__(
        self,
        message: str = "Duplicate key",
        key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if key is not None:
            details["key"] = key
        super().__init__(
            message,
            constraint="unique",
            code="DUPLICATE_KEY",
            details=details,
            **kwargs,
        )
        self.key = key


# ============================================
# Error Aggregation
# ============================================

class ErrorCollector:
    """Collect per-item errors for batch operations.

    Bulk import commits keep going after a failing row; the collector is
    the record of which rows failed and why.

    Example:
        collector = ErrorCollector()
        for row in rows:
            try:
                await save(row)
            except Exception as e:
                collector.add(e, context={"row": row.row_number, "key": row.key})
        for context, message in collector.entries():
            ...
    """

    def __init__(self):
        self.errors: list[tuple[Exception, dict[str, Any]]] = []

    def add(self, error: Exception, context: Optional[dict[str, Any]] = None):
        """Add an error with optional context."""
        self.errors.append((error, context or {}))

    def has_errors(self) -> bool:
        return bool(self.errors)

    def count(self) -> int:
        return len(self.errors)

    def entries(self) -> list[tuple[dict[str, Any], str]]:
        """(context, message) per error; messages of service errors omit their cause."""
        return [
            (context, error.message if isinstance(error, TelrouteError) else str(error))
            for error, context in self.errors
        ]


__all__ = [
    "TelrouteError",
    "ConfigurationError",
    "ValidationError",
    "InvalidAddress",
    "NotFoundError",
    "ConflictError",
    "PortConflictError",
    "NodeInUseError",
    "PartialReassignmentFailure",
    "StoreUnavailable",
    "ConnectionPoolError",
    "TransactionError",
    "IntegrityError",
    "DuplicateKeyError",
    "ErrorCollector",
]
