"""Shared infrastructure for the routing service.

Contains:
- Exceptions: the service-wide error hierarchy
- Database: asyncpg pool and transaction helpers
- Error sanitizer: safe client-facing error messages
"""

from .exceptions import (
    ConfigurationError,
    ConflictError,
    ConnectionPoolError,
    DuplicateKeyError,
    ErrorCollector,
    IntegrityError,
    InvalidAddress,
    NodeInUseError,
    NotFoundError,
    PartialReassignmentFailure,
    PortConflictError,
    StoreUnavailable,
    TelrouteError,
    TransactionError,
    ValidationError,
)

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
