"""Use cases for bulk import.

Use cases orchestrate the domain logic and coordinate between
different ports (interfaces) to accomplish business goals.
"""

from .commit_import import CommitImportUseCase
from .preview_import import PreviewImportUseCase
from .revalidate_row import RevalidateRowUseCase

__all__ = [
    "PreviewImportUseCase",
    "RevalidateRowUseCase",
    "CommitImportUseCase",
]
