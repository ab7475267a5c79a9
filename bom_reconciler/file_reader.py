# -*- coding: utf-8 -*-
"""
BOM file reading module v1.0

Core functions:
    load_excel_rows   - upload bytes -> pandas -> 2-D list of raw cells
    map_columns       - header row -> ColumnMap (fuzzy names, positional fallback)
    extract_entries   - raw data rows + ColumnMap -> BomLineEntry stream
    parse_bom         - header detection + mapping + extraction for one source
    rows_to_records   - header-keyed rows, kept for the DURO update export
"""

import logging
import os
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd

from .config import (
    ColumnMap,
    SourceKind,
    SOURCE_LABELS,
    FIELD_KEYWORDS,
    LEVEL_KEYWORDS,
    POSITIONAL_DEFAULTS,
    EXACT_HEADER_ALIASES,
    ALL_HEADER_KEYWORDS,
    HEADER_SCAN_ROWS,
    MIN_HEADER_SCORE,
)
from .errors import ColumnResolutionError, EmptySourceError
from .utils import (
    cell_to_text,
    find_column_by_keywords,
    is_empty_row,
    is_level_zero,
    smart_find_header_row,
)

logger = logging.getLogger(__name__)

CSV_ENCODINGS = ('utf-8-sig', 'cp1252', 'latin1')
BOM_COLUMNS = ['Item Number', 'Part Number', 'Description', 'Quantity']


# ============================================================
# Data structures
# ============================================================
@dataclass(frozen=True)
class BomLineEntry:
    """One line item of one BOM source. Quantity stays text."""
    part_number: str
    item_number: str = ''
    description: str = ''
    quantity: str = ''


@dataclass
class ParseDiagnostics:
    """Parse diagnostics shown under the mapping panel."""
    source_label: str
    header_row: int
    total_rows: int
    parsed_items: int
    skipped_rows: int
    column_map: Optional[ColumnMap] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'Source': self.source_label,
            'Header row': self.header_row,
            'Data rows': self.total_rows,
            'Parsed items': self.parsed_items,
            'Skipped rows': self.skipped_rows,
            'Warnings': self.warnings,
        }


# ============================================================
# Spreadsheet decoding
# ============================================================
def load_excel_rows(
    file_data: Union[BytesIO, bytes],
    original_filename: str = 'upload.xlsx',
    sheet_index: int = 0,
) -> List[List[Any]]:
    """
    Decode an uploaded .xlsx / .xls / .csv into a list of raw rows.

    No header interpretation happens here; row 0 is whatever the file
    starts with.
    """
    buffer = file_data if isinstance(file_data, BytesIO) else BytesIO(file_data)
    buffer.seek(0)

    ext = os.path.splitext(original_filename)[1].lower() or '.xlsx'

    if ext == '.csv':
        df = None
        for enc in CSV_ENCODINGS:
            try:
                buffer.seek(0)
                df = pd.read_csv(buffer, header=None, dtype=str, encoding=enc,
                                 keep_default_na=False)
                break
            except UnicodeDecodeError:
                continue
        if df is None:
            raise ValueError(f'Unable to decode {original_filename}')
    else:
        engine = 'xlrd' if ext == '.xls' else 'openpyxl'
        df = pd.read_excel(buffer, sheet_name=sheet_index, header=None,
                           dtype=object, engine=engine)

    df = df.astype(object).where(pd.notna(df), None)
    rows = df.values.tolist()
    logger.info('[read] %s: %d rows x %d columns', original_filename, len(rows), df.shape[1])
    return rows


# ============================================================
# Column mapping
# ============================================================
def map_columns(
    header_row: List[Any],
    source_kind: SourceKind,
    source_label: Optional[str] = None,
) -> ColumnMap:
    """
    Resolve which column holds each BOM field.

    Fields are resolved in FIELD_KEYWORDS order by name; a header cell
    taken by one field is not offered to later fields. For the secondary
    source the level column is matched by name next. Fields still
    unresolved then fall back to a free positional default. Part number
    has no fallback.

    Raises:
        ColumnResolutionError: part number column not found
    """
    headers = [cell_to_text(h) for h in (header_row or [])]
    claimed = set()
    resolved: Dict[str, Optional[int]] = {}

    for field_name, keywords in FIELD_KEYWORDS:
        idx = find_column_by_keywords(headers, keywords, claimed)
        resolved[field_name] = idx
        if idx is not None:
            claimed.add(idx)

    if resolved['part_number'] is None:
        raise ColumnResolutionError('part_number', source_kind, source_label)

    level_col = None
    if source_kind is SourceKind.SECONDARY:
        level_col = find_column_by_keywords(headers, LEVEL_KEYWORDS, claimed)
        if level_col is not None:
            claimed.add(level_col)

    for field_name, default_idx in POSITIONAL_DEFAULTS.items():
        if resolved[field_name] is None and default_idx < len(headers) and default_idx not in claimed:
            resolved[field_name] = default_idx
            claimed.add(default_idx)

    column_map = ColumnMap(
        part_number_col=resolved['part_number'],
        item_number_col=resolved['item_number'],
        description_col=resolved['description'],
        quantity_col=resolved['quantity'],
        level_col=level_col,
    )
    logger.debug('[map] %s columns: %s', source_label or SOURCE_LABELS[source_kind], column_map)
    return column_map


# ============================================================
# Row extraction
# ============================================================
def _cell(row: List[Any], col: Optional[int]) -> str:
    if col is None or col < 0 or col >= len(row):
        return ''
    return cell_to_text(row[col])


def _alias_columns(header_row: Optional[List[Any]], source_kind: SourceKind) -> Dict[str, int]:
    """Locate the source's exact known headers in the header row."""
    if not header_row:
        return {}
    headers = [cell_to_text(h) for h in header_row]
    found = {}
    for field_name, alias in EXACT_HEADER_ALIASES[source_kind].items():
        if alias in headers:
            found[field_name] = headers.index(alias)
    return found


class ExtractedEntries:
    """
    Lazy, restartable sequence of BomLineEntry.

    Every iteration re-reads the raw rows, so the result can be consumed
    more than once; order follows the input rows.
    """

    def __init__(
        self,
        rows: List[List[Any]],
        column_map: ColumnMap,
        source_kind: SourceKind,
        header_row: Optional[List[Any]] = None,
    ):
        self.rows = rows
        self.column_map = column_map
        self.source_kind = source_kind
        self._aliases = _alias_columns(header_row, source_kind)

    def _field(self, row: List[Any], field_name: str, col: Optional[int]) -> str:
        value = _cell(row, col)
        if not value and field_name in self._aliases:
            value = _cell(row, self._aliases[field_name])
        return value

    def __iter__(self) -> Iterator[BomLineEntry]:
        cmap = self.column_map
        is_secondary = self.source_kind is SourceKind.SECONDARY

        for row_idx, row in enumerate(self.rows):
            # first DURO data row is the assembly itself
            if is_secondary and row_idx == 0:
                continue
            if is_empty_row(row):
                continue
            if is_secondary and cmap.level_col is not None and is_level_zero(_cell(row, cmap.level_col)):
                continue

            part_number = self._field(row, 'part_number', cmap.part_number_col)
            if not part_number:
                continue

            yield BomLineEntry(
                part_number=part_number,
                item_number=self._field(row, 'item_number', cmap.item_number_col),
                description=self._field(row, 'description', cmap.description_col),
                quantity=self._field(row, 'quantity', cmap.quantity_col),
            )


def extract_entries(
    rows: List[List[Any]],
    column_map: ColumnMap,
    source_kind: SourceKind,
    header_row: Optional[List[Any]] = None,
) -> ExtractedEntries:
    """Turn data rows (header excluded) into BOM line entries."""
    return ExtractedEntries(rows, column_map, source_kind, header_row)


# ============================================================
# Per-source pipeline
# ============================================================
def detect_header_row(raw_data: List[List[Any]]) -> int:
    """Header row index by keyword scoring; row 0 when nothing scores."""
    idx, _ = smart_find_header_row(
        raw_data, ALL_HEADER_KEYWORDS,
        max_rows=HEADER_SCAN_ROWS, min_score=MIN_HEADER_SCORE,
    )
    return idx if idx is not None else 0


def entries_to_dataframe(entries: List[BomLineEntry]) -> pd.DataFrame:
    rows = [{
        'Item Number': e.item_number, 'Part Number': e.part_number,
        'Description': e.description, 'Quantity': e.quantity,
    } for e in entries]
    return pd.DataFrame(rows, columns=BOM_COLUMNS)


def parse_bom(
    raw_data: List[List[Any]],
    source_kind: SourceKind,
    source_label: Optional[str] = None,
    column_map: Optional[ColumnMap] = None,
    header_row: Optional[int] = None,
) -> Tuple[List[BomLineEntry], pd.DataFrame, ParseDiagnostics]:
    """
    Parse one source's raw rows into BOM line entries.

    ``column_map`` / ``header_row`` override automatic detection (the
    UI passes what the user confirmed).

    Raises:
        EmptySourceError: no data rows, or no row carries a part number
        ColumnResolutionError: part number column not found
    """
    label = source_label or SOURCE_LABELS[source_kind]

    if not raw_data:
        raise EmptySourceError('the file contains no rows', source_kind, label)

    header_idx = detect_header_row(raw_data) if header_row is None else header_row
    headers = raw_data[header_idx] if header_idx < len(raw_data) else []
    data_rows = raw_data[header_idx + 1:]

    if all(is_empty_row(r) for r in data_rows):
        raise EmptySourceError('no data rows below the header', source_kind, label)

    if column_map is None:
        column_map = map_columns(headers, source_kind, label)

    entries = list(extract_entries(data_rows, column_map, source_kind, headers))
    if not entries:
        raise EmptySourceError('no rows with a part number', source_kind, label)

    diag = ParseDiagnostics(
        source_label=label,
        header_row=header_idx + 1,
        total_rows=len(data_rows),
        parsed_items=len(entries),
        skipped_rows=len(data_rows) - len(entries),
        column_map=column_map,
    )
    logger.info('[extract] %s: %d entries from %d rows (header row %d)',
                label, len(entries), len(data_rows), header_idx + 1)

    return entries, entries_to_dataframe(entries), diag


def rows_to_records(raw_data: List[List[Any]], header_row: int = 0) -> List[Dict[str, str]]:
    """Header-keyed text rows below ``header_row``; blank rows dropped."""
    if not raw_data or header_row >= len(raw_data):
        return []

    headers = [cell_to_text(h) or f'Column {i + 1}' for i, h in enumerate(raw_data[header_row])]
    records = []
    for row in raw_data[header_row + 1:]:
        if is_empty_row(row):
            continue
        records.append({h: (cell_to_text(row[i]) if i < len(row) else '') for i, h in enumerate(headers)})
    return records
