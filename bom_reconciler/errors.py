# -*- coding: utf-8 -*-
"""
Exception types raised by the reconciler.

Extraction errors are local to one source and carry enough context for
the front end to say which source failed and why.
"""

from typing import Optional

from .config import SourceKind, SOURCE_LABELS


class BomSourceError(Exception):
    """A BOM source could not be turned into line entries."""

    def __init__(self, message: str, source_kind: SourceKind, source_label: Optional[str] = None):
        self.source_kind = source_kind
        self.source_label = source_label or SOURCE_LABELS[source_kind]
        super().__init__(f'{self.source_label}: {message}')


class ColumnResolutionError(BomSourceError):
    """A mandatory column could not be located in the header row."""

    def __init__(self, field: str, source_kind: SourceKind, source_label: Optional[str] = None):
        self.field = field
        super().__init__(
            f"could not find a '{field.replace('_', ' ')}' column in the header row",
            source_kind, source_label,
        )


class EmptySourceError(BomSourceError):
    """A source produced no data rows."""


class AssemblyNotFoundError(EmptySourceError):
    """The DURO search returned no exact match for an assembly number."""

    def __init__(self, assembly_number: str):
        self.assembly_number = assembly_number
        super().__init__(f"assembly '{assembly_number}' not found", SourceKind.SECONDARY)


class DuroApiError(Exception):
    """Transport, HTTP or GraphQL failure talking to DURO."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ExportBlockedError(Exception):
    """A remediation export cannot be produced in the current state."""
