"""Translate service errors into HTTP errors for the routers."""

import logging

from fastapi import HTTPException

from ...common.error_sanitizer import sanitize_error_message
from ...common.exceptions import (
    ConflictError,
    DuplicateKeyError,
    IntegrityError,
    InvalidAddress,
    NotFoundError,
    PartialReassignmentFailure,
    StoreUnavailable,
    TelrouteError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins
STATUS_BY_ERROR: list[tuple[type, int]] = [
    (InvalidAddress, 422),
    (ValidationError, 422),
    (NotFoundError, 404),
    (DuplicateKeyError, 409),
    (ConflictError, 409),
    (IntegrityError, 409),
    (PartialReassignmentFailure, 500),
    (StoreUnavailable, 503),
]


def status_for(error: TelrouteError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500


def to_http_exception(error: TelrouteError) -> HTTPException:
    """Build the HTTPException for a service error.

    The detail carries the error code, a sanitized message and, for
    validation errors, the per-field messages.
    """
    status_code = status_for(error)
    if status_code >= 500:
        logger.error(f"Request failed: {error!r}")

    detail = {
        "code": error.code,
        "message": sanitize_error_message(error.message),
    }
    if isinstance(error, ValidationError) and error.field_errors:
        detail["fields"] = {
            name: sanitize_error_message(msg) for name, msg in error.field_errors.items()
        }
    if isinstance(error, DuplicateKeyError) and error.key:
        detail["key"] = error.key
    return HTTPException(status_code=status_code, detail=detail)
