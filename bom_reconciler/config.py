# -*- coding: utf-8 -*-
"""
Global configuration module v1.0

Holds only declarative data: source kinds, issue kinds, the column
mapping structure, header keyword pools, per-source exact header aliases,
scan constants, DURO connection settings and export colours.
Edit the tables here, not the code that reads them.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


# ============================================================
# Source & issue kinds
# ============================================================
class SourceKind(Enum):
    PRIMARY = 'primary'        # SOLIDWORKS PDM export
    SECONDARY = 'secondary'    # DURO export / API


class IssueKind(Enum):
    MISSING = 'missing'
    ITEM_NUMBER = 'itemNumber'
    QUANTITY = 'quantity'
    DESCRIPTION = 'description'


SOURCE_LABELS: Dict[SourceKind, str] = {
    SourceKind.PRIMARY: 'PDM',
    SourceKind.SECONDARY: 'DURO',
}

ISSUE_LABELS: Dict[IssueKind, str] = {
    IssueKind.MISSING: 'Missing Parts',
    IssueKind.ITEM_NUMBER: 'Item Number Issues',
    IssueKind.QUANTITY: 'Quantity Issues',
    IssueKind.DESCRIPTION: 'Description Issues',
}


# ============================================================
# Column mapping (produced by map_columns or by the UI dropdowns)
# ============================================================
@dataclass
class ColumnMap:
    part_number_col: int
    item_number_col: Optional[int] = None
    description_col: Optional[int] = None
    quantity_col: Optional[int] = None
    level_col: Optional[int] = None          # secondary only


# ============================================================
# Header fragments, in field resolution order.
# Matching is a case-insensitive substring test per header cell.
# ============================================================
FIELD_KEYWORDS: List[Tuple[str, List[str]]] = [
    ('item_number', ['item no', 'item number', 'item #', 'line', 'position']),
    ('part_number', ['part number', 'part no', 'part #', 'cpn', 'pn', 'number', 'partnumber']),
    ('description', ['description', 'desc', 'name', 'title', 'part name']),
    ('quantity', ['qty', 'quantity', 'count', 'amount']),
]

LEVEL_KEYWORDS: List[str] = ['level', 'lvl', 'indent']

# part_number deliberately absent: it has no positional fallback
POSITIONAL_DEFAULTS: Dict[str, int] = {
    'item_number': 0,
    'description': 2,
    'quantity': 3,
}

# Exact header names known per source, tried when the mapped cell is blank
EXACT_HEADER_ALIASES: Dict[SourceKind, Dict[str, str]] = {
    SourceKind.PRIMARY: {
        'part_number': 'PART NUMBER',
        'item_number': 'ITEM NO.',
        'description': 'DESCRIPTION',
        'quantity': 'QTY.',
    },
    SourceKind.SECONDARY: {
        'part_number': 'CPN',
        'item_number': 'Item Number',
        'description': 'Description',
        'quantity': 'Quantity',
    },
}

ALL_HEADER_KEYWORDS: List[str] = [kw for _, kws in FIELD_KEYWORDS for kw in kws] + LEVEL_KEYWORDS


# ============================================================
# Scan constants
# ============================================================
HEADER_SCAN_ROWS = 20
MIN_HEADER_SCORE = 2


# ============================================================
# DURO API
# ============================================================
@dataclass
class DuroSettings:
    api_url: str = ''
    api_token: str = ''
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.api_url and self.api_token)


def load_duro_settings() -> DuroSettings:
    """Read DURO connection settings from the environment."""
    return DuroSettings(
        api_url=os.environ.get('DURO_API_URL', ''),
        api_token=os.environ.get('DURO_API_TOKEN', ''),
        timeout=float(os.environ.get('DURO_API_TIMEOUT', '30')),
    )


# ============================================================
# Export palette (header fill, font colour)
# ============================================================
SECTION_COLORS: Dict[str, Tuple[str, str]] = {
    'summary': ('#553388', '#FFFFFF'),
    IssueKind.MISSING.value: ('#DC3545', '#FFFFFF'),
    IssueKind.ITEM_NUMBER.value: ('#FFC107', '#000000'),
    IssueKind.QUANTITY.value: ('#0D6EFD', '#FFFFFF'),
    IssueKind.DESCRIPTION.value: ('#553388', '#FFFFFF'),
}


# ============================================================
# UI sentinels
# ============================================================
NO_COLUMN_LABEL = '➖ (not used)'
DURO_SOURCE_UPLOAD = '📤 Upload DURO export'
DURO_SOURCE_API = '🌐 Fetch from DURO by assembly number'
