# -*- coding: utf-8 -*-
"""
Core reconciliation module v1.0

Responsibilities:
    compare_boms          - PDM <-> DURO two-way comparison (matched / PDM-only / DURO-only)
    summarize             - summary counters, honouring the ignore set
    get_issue_records / get_missing_records / search_results - tab filters
    results_to_dataframe  - display table
    validate_data         - pre-comparison warnings (empty, duplicates, quantities)
"""

import logging
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .config import IssueKind
from .file_reader import BomLineEntry
from .utils import are_texts_equivalent, normalize_part_number, parse_quantity

logger = logging.getLogger(__name__)

IgnoreSet = AbstractSet[Tuple[str, IssueKind]]


# ============================================================
# Result structures
# ============================================================
@dataclass(frozen=True)
class ComparisonRecord:
    """
    One reconciled part: matched, PDM-only or DURO-only.

    ``part_number`` is the display value from the privileged side (PDM
    for matched and PDM-only records, DURO for DURO-only records).
    """
    part_number: str
    primary_item_number: str = ''
    secondary_item_number: str = ''
    primary_quantity: str = ''
    secondary_quantity: str = ''
    primary_description: str = ''
    secondary_description: str = ''

    item_number_issue: bool = False
    quantity_issue: bool = False
    description_issue: bool = False

    in_primary_only: bool = False
    in_secondary_only: bool = False

    @property
    def is_matched(self) -> bool:
        return not (self.in_primary_only or self.in_secondary_only)

    @property
    def is_matching(self) -> bool:
        return self.is_matched and not (
            self.item_number_issue or self.quantity_issue or self.description_issue)

    @property
    def issue_kinds(self) -> List[IssueKind]:
        kinds = []
        if not self.is_matched:
            kinds.append(IssueKind.MISSING)
        if self.item_number_issue:
            kinds.append(IssueKind.ITEM_NUMBER)
        if self.quantity_issue:
            kinds.append(IssueKind.QUANTITY)
        if self.description_issue:
            kinds.append(IssueKind.DESCRIPTION)
        return kinds

    @property
    def status(self) -> str:
        if self.in_primary_only:
            return 'Missing in DURO'
        if self.in_secondary_only:
            return 'Missing in PDM'
        if self.is_matching:
            return 'OK'
        labels = {
            IssueKind.ITEM_NUMBER: 'Item #',
            IssueKind.QUANTITY: 'Qty',
            IssueKind.DESCRIPTION: 'Description',
        }
        return 'Mismatch: ' + ', '.join(labels[k] for k in self.issue_kinds)


@dataclass(frozen=True)
class ComparisonSummary:
    total_parts: int
    matching_parts: int
    item_number_issues: int
    quantity_issues: int
    description_issues: int
    in_primary_only: int
    in_secondary_only: int
    results: Tuple[ComparisonRecord, ...] = ()

    @property
    def matched_parts(self) -> int:
        return sum(1 for r in self.results if r.is_matched)


# ============================================================
# Matching
# ============================================================
def build_part_index(entries: Iterable[BomLineEntry]) -> Dict[str, BomLineEntry]:
    """Normalized part key -> first entry carrying it."""
    index: Dict[str, BomLineEntry] = {}
    for entry in entries:
        key = normalize_part_number(entry.part_number)
        if key and key not in index:
            index[key] = entry
    return index


def match_entry(primary: BomLineEntry, secondary: Optional[BomLineEntry]) -> ComparisonRecord:
    if secondary is None:
        return ComparisonRecord(
            part_number=primary.part_number,
            primary_item_number=primary.item_number,
            primary_quantity=primary.quantity,
            primary_description=primary.description,
            in_primary_only=True,
        )

    return ComparisonRecord(
        part_number=primary.part_number,
        primary_item_number=primary.item_number,
        secondary_item_number=secondary.item_number,
        primary_quantity=primary.quantity,
        secondary_quantity=secondary.quantity,
        primary_description=primary.description,
        secondary_description=secondary.description,
        item_number_issue=not are_texts_equivalent(primary.item_number, secondary.item_number),
        quantity_issue=not are_texts_equivalent(primary.quantity, secondary.quantity),
        description_issue=not are_texts_equivalent(primary.description, secondary.description),
    )


def compare_boms(
    primary: Sequence[BomLineEntry],
    secondary: Sequence[BomLineEntry],
) -> ComparisonSummary:
    """
    Reconcile a PDM BOM against a DURO BOM.

    Every PDM entry yields one record (matched or PDM-only) in input
    order, followed by one DURO-only record per DURO entry whose key
    never appeared on the PDM side. When a key repeats within DURO only
    its first entry can be matched; repeated PDM keys all match that same
    entry.
    """
    primary = list(primary)
    secondary = list(secondary)
    logger.info('[compare] PDM: %d entries, DURO: %d entries', len(primary), len(secondary))

    secondary_index = build_part_index(secondary)
    seen = set()
    results: List[ComparisonRecord] = []
    unmatched = 0

    for entry in primary:
        if not entry.part_number:
            continue
        key = normalize_part_number(entry.part_number)
        seen.add(key)
        match = secondary_index.get(key)
        if match is None:
            unmatched += 1
            if unmatched <= 5:
                logger.debug('[compare] no DURO match for %r (key %r)', entry.part_number, key)
        results.append(match_entry(entry, match))

    for entry in secondary:
        if not entry.part_number:
            continue
        if normalize_part_number(entry.part_number) not in seen:
            results.append(ComparisonRecord(
                part_number=entry.part_number,
                secondary_item_number=entry.item_number,
                secondary_quantity=entry.quantity,
                secondary_description=entry.description,
                in_secondary_only=True,
            ))

    summary = summarize(results)
    logger.info(
        '[compare] total=%d matching=%d item#=%d qty=%d desc=%d pdm_only=%d duro_only=%d',
        summary.total_parts, summary.matching_parts, summary.item_number_issues,
        summary.quantity_issues, summary.description_issues,
        summary.in_primary_only, summary.in_secondary_only,
    )
    return summary


# ============================================================
# Summary
# ============================================================
def _is_ignored(record: ComparisonRecord, kind: IssueKind, ignored: IgnoreSet) -> bool:
    return (record.part_number, kind) in ignored


def summarize(
    results: Iterable[ComparisonRecord],
    ignored: IgnoreSet = frozenset(),
) -> ComparisonSummary:
    """
    Count records by kind. Ignored issues drop out of the issue and
    "only" counters but never out of total_parts / matching_parts.
    """
    results = tuple(results)

    def _count(pred, kind: IssueKind) -> int:
        return sum(1 for r in results if pred(r) and not _is_ignored(r, kind, ignored))

    return ComparisonSummary(
        total_parts=len(results),
        matching_parts=sum(1 for r in results if r.is_matching),
        item_number_issues=_count(lambda r: r.item_number_issue, IssueKind.ITEM_NUMBER),
        quantity_issues=_count(lambda r: r.quantity_issue, IssueKind.QUANTITY),
        description_issues=_count(lambda r: r.description_issue, IssueKind.DESCRIPTION),
        in_primary_only=_count(lambda r: r.in_primary_only, IssueKind.MISSING),
        in_secondary_only=_count(lambda r: r.in_secondary_only, IssueKind.MISSING),
        results=results,
    )


# ============================================================
# Filters
# ============================================================
_ISSUE_PREDICATES = {
    IssueKind.MISSING: lambda r: not r.is_matched,
    IssueKind.ITEM_NUMBER: lambda r: r.item_number_issue,
    IssueKind.QUANTITY: lambda r: r.quantity_issue,
    IssueKind.DESCRIPTION: lambda r: r.description_issue,
}


def get_issue_records(
    results: Iterable[ComparisonRecord],
    kind: IssueKind,
    ignored: Optional[IgnoreSet] = None,
) -> List[ComparisonRecord]:
    """Records carrying ``kind``; pass ``ignored`` to hide ignored ones."""
    pred = _ISSUE_PREDICATES[kind]
    return [r for r in results
            if pred(r) and not (ignored and _is_ignored(r, kind, ignored))]


def get_missing_records(
    results: Iterable[ComparisonRecord],
    ignored: Optional[IgnoreSet] = None,
) -> List[ComparisonRecord]:
    return get_issue_records(results, IssueKind.MISSING, ignored)


def search_results(
    results: Iterable[ComparisonRecord],
    term: str,
    field: str = 'all',
) -> List[ComparisonRecord]:
    """
    Case-insensitive substring search.

    field: 'part_number', 'description' or 'all' (also item numbers)
    """
    results = list(results)
    term = (term or '').strip().lower()
    if not term:
        return results

    def _hit(*values: str) -> bool:
        return any(term in (v or '').lower() for v in values)

    if field == 'part_number':
        return [r for r in results if _hit(r.part_number)]
    if field == 'description':
        return [r for r in results if _hit(r.primary_description, r.secondary_description)]
    return [r for r in results if _hit(
        r.part_number, r.primary_description, r.secondary_description,
        r.primary_item_number, r.secondary_item_number,
    )]


# ============================================================
# Display table
# ============================================================
RESULT_COLUMNS = [
    'Part Number', 'PDM Item #', 'DURO Item #', 'PDM Qty', 'DURO Qty',
    'PDM Description', 'DURO Description', 'Status',
]


def results_to_dataframe(results: Iterable[ComparisonRecord]) -> pd.DataFrame:
    rows = [{
        'Part Number': r.part_number,
        'PDM Item #': r.primary_item_number, 'DURO Item #': r.secondary_item_number,
        'PDM Qty': r.primary_quantity, 'DURO Qty': r.secondary_quantity,
        'PDM Description': r.primary_description, 'DURO Description': r.secondary_description,
        'Status': r.status,
    } for r in results]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


# ============================================================
# Validation
# ============================================================
def find_duplicate_part_numbers(entries: Iterable[BomLineEntry]) -> Dict[str, List[str]]:
    """Normalized key -> original spellings, for keys occurring more than once."""
    groups: Dict[str, List[str]] = {}
    for e in entries:
        key = normalize_part_number(e.part_number)
        if key:
            groups.setdefault(key, []).append(e.part_number)
    return {k: v for k, v in groups.items() if len(v) > 1}


def validate_data(
    primary: Sequence[BomLineEntry],
    secondary: Sequence[BomLineEntry],
    primary_label: str = 'PDM',
    secondary_label: str = 'DURO',
) -> List[str]:
    warnings: List[str] = []
    for label, entries in ((primary_label, primary), (secondary_label, secondary)):
        if not entries:
            warnings.append(f'⚠️ {label} BOM is empty')
            continue

        dups = find_duplicate_part_numbers(entries)
        if dups:
            names = [v[0] for v in dups.values()]
            warnings.append(
                f"⚠️ {label} duplicate part numbers (only the first is compared): "
                f"{', '.join(names[:5])}{'...' if len(names) > 5 else ''}"
            )

        quantities = [parse_quantity(e.quantity) for e in entries]
        non_numeric = sum(1 for e, q in zip(entries, quantities) if e.quantity and q is None)
        if non_numeric:
            warnings.append(f'⚠️ {label} has {non_numeric} non-numeric quantities (compared as text)')
        zero = sum(1 for q in quantities if q == 0)
        if zero:
            warnings.append(f'⚠️ {label} has {zero} items with quantity 0')
    return warnings
