# -*- coding: utf-8 -*-
"""
Utility functions module v1.0
Text normalization, part-number keys, header scoring and row helpers.

    - normalize_text / are_texts_equivalent  equivalence used by every field comparison
    - normalize_part_number / to_duro_format  matching key and its DURO export inverse
    - smart_find_header_row                   header row scoring (Smart Anchor)
    - find_column_by_keywords                 first header cell matching a fragment
"""

import math
import re
from typing import Any, Iterable, List, Optional, Set, Tuple


_INVISIBLE_RE = re.compile(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\u200b-\u200d\ufeff]')
_WHITESPACE_RE = re.compile(r'\s+')
_DUPLICATED_SUFFIX_RE = re.compile(r'(-\d{2})\1$')
_BASE_SUFFIX_RE = re.compile(r'-00$')
_TRAILING_SUFFIX_RE = re.compile(r'-(\d{2})$')


# ============================================================
# Cell cleaning
# ============================================================
def cell_to_text(value: Any) -> str:
    """
    Convert a raw spreadsheet cell into display text.

    Rules:
    1. None / NaN become ''
    2. Integral floats lose their '.0' (Excel hands back 2.0 for 2)
    3. Control and zero-width characters are removed
    4. Leading/trailing whitespace is stripped

    Args:
        value: raw cell value (int, float, str, ...)

    Returns:
        The cleaned text
    """
    if value is None:
        return ''

    if isinstance(value, float):
        if value != value:  # NaN
            return ''
        if math.isfinite(value) and value == int(value):
            return str(int(value))

    str_val = str(value)
    str_val = _INVISIBLE_RE.sub('', str_val)
    return str_val.strip()


def is_empty_row(row: List[Any]) -> bool:
    """True when every cell of the row is blank."""
    if not row:
        return True

    for cell in row:
        cell_str = cell_to_text(cell)
        if cell_str and cell_str.lower() not in ('nan', 'none'):
            return False

    return True


# ============================================================
# Text normalization
# ============================================================
def normalize_text(value: Any) -> str:
    """
    Normalize a cell value for equivalence testing.

    Lowercases, collapses whitespace runs (tabs, line breaks) into a single
    space and strips both ends. None and NaN yield ''.
    """
    if value is None:
        return ''
    if isinstance(value, float) and value != value:
        return ''
    return _WHITESPACE_RE.sub(' ', str(value).lower()).strip()


def are_texts_equivalent(a: Any, b: Any) -> bool:
    return normalize_text(a) == normalize_text(b)


# ============================================================
# Part-number keys
# ============================================================
def normalize_part_number(value: Any) -> str:
    """
    Build the matching key for a part number.

    DURO duplicates the last dash suffix on export:
        406-00043-00  ->  406-00043-00-00
        453-00516-02  ->  453-00516-02-02
    and marks base parts with '-00', which PDM numbering never carries.

    Steps, repeated until the key stops changing so the result is a
    fixed point:
        1. collapse a repeated trailing '-DD-DD' into '-DD'
        2. strip a trailing '-00'

    Examples:
        '406-00043-00-00' -> '406-00043'
        '453-00516-02-02' -> '453-00516-02'
        '800-00761-01'    -> '800-00761-01'

    The key is for matching only; never display it.
    """
    key = normalize_text(value)
    while True:
        collapsed = _DUPLICATED_SUFFIX_RE.sub(r'\1', key)
        collapsed = _BASE_SUFFIX_RE.sub('', collapsed)
        if collapsed == key:
            return key
        key = collapsed


def to_duro_format(value: Any) -> str:
    """
    Convert a part number to the form DURO expects on import.

        '406-00043'       -> '406-00043-00-00'
        '453-00516-02'    -> '453-00516-02-02'
        '453-00516-02-02' -> unchanged
    """
    if value is None:
        return ''

    trimmed = str(value).strip()

    if _DUPLICATED_SUFFIX_RE.search(trimmed):
        return trimmed

    suffix = _TRAILING_SUFFIX_RE.search(trimmed)
    if suffix:
        return f'{trimmed}-{suffix.group(1)}'

    return f'{trimmed}-00-00'


# ============================================================
# Quantities (parsed on demand, never at ingestion)
# ============================================================
def parse_quantity(value: Any) -> Optional[float]:
    """
    Parse a quantity cell as a number.

    Returns:
        The numeric value, or None when the text is blank or non-numeric
    """
    if value is None:
        return None

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float) and value != value:
            return None
        return float(value)

    text = cell_to_text(value).replace(',', '')
    if not text or text.lower() in ('nan', 'none', '-'):
        return None

    try:
        return float(text)
    except ValueError:
        return None


def is_level_zero(value: Any) -> bool:
    """True when a BOM level cell denotes the assembly root."""
    text = normalize_text(cell_to_text(value))
    if not text:
        return False
    return parse_quantity(text) == 0


# ============================================================
# Smart header detection
# ============================================================
def calculate_header_score(row: List[Any], keywords: List[str]) -> int:
    """
    Score a row as a header candidate (number of distinct keywords hit).

    Args:
        row: row cells
        keywords: keyword pool

    Returns:
        The score
    """
    if not row:
        return 0

    row_text_lower = ' '.join(cell_to_text(cell) for cell in row).lower()

    score = 0
    matched_keywords = set()

    for keyword in keywords:
        kw_lower = keyword.lower()
        if kw_lower in row_text_lower and kw_lower not in matched_keywords:
            score += 1
            matched_keywords.add(kw_lower)

    return score


def smart_find_header_row(data: List[List[Any]],
                          keywords: List[str],
                          max_rows: int = 20,
                          min_score: int = 2) -> Tuple[Optional[int], int]:
    """
    Locate the header row by keyword scoring.

    Scans the first ``max_rows`` rows; the highest scoring row wins and
    ties go to the earliest row.

    Returns:
        (header row index, score), or (None, 0) below ``min_score``
    """
    if not data or not keywords:
        return None, 0

    best_row_idx = None
    best_score = 0

    for row_idx in range(min(len(data), max_rows)):
        row = data[row_idx]
        if not row:
            continue

        # a header needs at least two labelled cells
        non_empty_cells = sum(1 for cell in row if cell_to_text(cell))
        if non_empty_cells < 2:
            continue

        score = calculate_header_score(row, keywords)
        if score > best_score:
            best_score = score
            best_row_idx = row_idx

    if best_score >= min_score:
        return best_row_idx, best_score

    return None, 0


def find_column_by_keywords(header_row: List[Any],
                            keywords: Iterable[str],
                            claimed: Optional[Set[int]] = None) -> Optional[int]:
    """
    Find the first header cell (left to right) containing any keyword.

    Args:
        header_row: header cells
        keywords: accepted fragments, case-insensitive
        claimed: column indexes already taken by another field

    Returns:
        Column index (0-based), or None
    """
    if not header_row:
        return None

    claimed = claimed or set()
    fragments = [kw.lower() for kw in keywords]

    for col_idx, cell in enumerate(header_row):
        if col_idx in claimed:
            continue
        cell_str = cell_to_text(cell).lower()
        if cell_str and any(kw in cell_str for kw in fragments):
            return col_idx

    return None
