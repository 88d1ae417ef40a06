"""Pydantic schemas for bulk import request/response validation."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ImportRowDTO(BaseModel):
    """One preview row.

    Phone line rows and asset rows carry different fields, so the row is
    passed through as a mapping next to the common flags.
    """

    row_index: int
    row_number: int
    can_import: bool
    fields: dict[str, Any] = Field(default_factory=dict)


class ImportSessionResponse(BaseModel):
    session_id: str
    kind: str
    filename: Optional[str] = None
    total_rows: int
    importable_rows: int
    rows: list[ImportRowDTO]
    created_at: str


class RowEditRequest(BaseModel):
    """Fields to change on a preview row; omitted fields keep their value."""

    changes: dict[str, Any] = Field(default_factory=dict)


class CommitRequest(BaseModel):
    actor: Optional[str] = None


class RowErrorDTO(BaseModel):
    row_number: int
    key: str
    message: str


class CommitResponse(BaseModel):
    total: int
    success_count: int
    error_count: int
    skipped_count: int
    errors: list[RowErrorDTO] = Field(default_factory=list)
