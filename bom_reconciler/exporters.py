# -*- coding: utf-8 -*-
"""
Remediation export module v1.0 - format only, no comparison logic

    export_results_to_excel          - multi-sheet report (xlsxwriter)
    export_results_to_csv            - the same sections as stacked CSV blocks
    export_results_to_pdf            - paginated report (reportlab)
    generate_action_plan             - Markdown PDM / DURO update plan
    export_duro_updates              - DURO import workbook for "Update DURO" items
    export_pdm_action_report         - workbook of "Update PDM" items
    generate_duro_item_number_update - original DURO rows with PDM item numbers applied

Ignored issues are left out of every export.
"""

import io
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .annotations import AnnotationStore
from .config import IssueKind, ISSUE_LABELS, SECTION_COLORS
from .data_processor import ComparisonRecord, ComparisonSummary, get_issue_records, summarize
from .errors import ExportBlockedError
from .utils import is_level_zero, normalize_part_number, to_duro_format

logger = logging.getLogger(__name__)

SECTION_ORDER = [IssueKind.MISSING, IssueKind.ITEM_NUMBER, IssueKind.QUANTITY, IssueKind.DESCRIPTION]

SECTION_COLUMNS: Dict[IssueKind, List[str]] = {
    IssueKind.MISSING: ['Part Number', 'Item Number', 'Description', 'Quantity', 'Missing From'],
    IssueKind.ITEM_NUMBER: ['Part Number', 'PDM Item #', 'DURO Item #'],
    IssueKind.QUANTITY: ['Part Number', 'PDM Quantity', 'DURO Quantity'],
    IssueKind.DESCRIPTION: ['Part Number', 'PDM Description', 'DURO Description'],
}
ANNOTATION_COLUMNS = ['Update PDM', 'Update DURO', 'Comment']

LEVEL_KEYS = ('Level', 'LEVEL', 'Lvl')
PART_NUMBER_KEYS = ('CPN', 'Part Number', 'Component', 'PN')


def export_filename(prefix: str, ext: str) -> str:
    return f"{prefix}_{datetime.now().strftime('%Y-%m-%d')}.{ext}"


# ============================================================
# Shared section building
# ============================================================
def _yes_no(flag: bool) -> str:
    return 'Yes' if flag else 'No'


def _checkbox(flag: bool) -> str:
    return '[X]' if flag else '[ ]'


def section_values(record: ComparisonRecord, kind: IssueKind) -> List[str]:
    if kind is IssueKind.MISSING:
        if record.in_primary_only:
            return [record.part_number, record.primary_item_number, record.primary_description,
                    record.primary_quantity, 'DURO']
        return [record.part_number, record.secondary_item_number, record.secondary_description,
                record.secondary_quantity, 'PDM']
    if kind is IssueKind.ITEM_NUMBER:
        return [record.part_number, record.primary_item_number, record.secondary_item_number]
    if kind is IssueKind.QUANTITY:
        return [record.part_number, record.primary_quantity, record.secondary_quantity]
    return [record.part_number, record.primary_description, record.secondary_description]


def build_section(
    results: Iterable[ComparisonRecord],
    kind: IssueKind,
    annotations: AnnotationStore,
    flag_fmt: Callable[[bool], str] = _yes_no,
) -> Tuple[List[str], List[List[str]]]:
    """(columns, rows) of one issue section, ignored issues excluded."""
    rows = []
    for r in get_issue_records(results, kind, annotations.ignored_keys()):
        ann = annotations.get(r.part_number, kind)
        rows.append(section_values(r, kind) + [
            flag_fmt(ann.update_primary), flag_fmt(ann.update_secondary), ann.comment,
        ])
    return SECTION_COLUMNS[kind] + ANNOTATION_COLUMNS, rows


def summary_rows(summary: ComparisonSummary) -> List[Tuple[str, int]]:
    return [
        ('Total Parts', summary.total_parts),
        ('Matching Parts', summary.matching_parts),
        ('Item Number Issues', summary.item_number_issues),
        ('Quantity Issues', summary.quantity_issues),
        ('Description Issues', summary.description_issues),
        ('In PDM Only', summary.in_primary_only),
        ('In DURO Only', summary.in_secondary_only),
    ]


def _effective_summary(summary: ComparisonSummary, annotations: AnnotationStore) -> ComparisonSummary:
    return summarize(summary.results, annotations.ignored_keys())


# ============================================================
# Excel
# ============================================================
def export_results_to_excel(output, summary: ComparisonSummary, annotations: AnnotationStore):
    effective = _effective_summary(summary, annotations)

    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        wb = writer.book

        title_fmt = wb.add_format({'bold': True, 'font_size': 14, 'font_color': '#553388'})
        label_fmt = wb.add_format({'bold': True, 'font_color': '#404040'})
        val_fmt = wb.add_format({'font_color': '#1F4E79'})
        cell_fmt = wb.add_format({'border': 1, 'align': 'left', 'valign': 'vcenter', 'text_wrap': True})
        yes_fmt = wb.add_format({'bg_color': '#C6EFCE', 'font_color': '#006100', 'border': 1})

        def _hdr_fmt(key: str):
            bg, fg = SECTION_COLORS[key]
            return wb.add_format({'bold': True, 'bg_color': bg, 'font_color': fg,
                                  'border': 1, 'align': 'center', 'valign': 'vcenter'})

        # ---- Summary ----
        summary_df = pd.DataFrame(summary_rows(effective), columns=['Metric', 'Value'])
        summary_df.to_excel(writer, sheet_name='Summary', index=False, startrow=3)
        ws = writer.sheets['Summary']
        ws.write(0, 0, 'BOM Comparison Report', title_fmt)
        ws.write(1, 0, 'Generated:', label_fmt)
        ws.write(1, 1, datetime.now().strftime('%Y-%m-%d %H:%M:%S'), val_fmt)
        summary_hdr = _hdr_fmt('summary')
        for ci, cn in enumerate(summary_df.columns):
            ws.write(3, ci, cn, summary_hdr)
        ws.set_column('A:A', 25)
        ws.set_column('B:B', 12)

        # ---- Issue sections ----
        for kind in SECTION_ORDER:
            columns, rows = build_section(summary.results, kind, annotations)
            if not rows:
                continue
            df = pd.DataFrame(rows, columns=columns)
            sheet_name = ISSUE_LABELS[kind]
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            ws2 = writer.sheets[sheet_name]
            hdr_fmt = _hdr_fmt(kind.value)
            for ci, cn in enumerate(df.columns):
                ws2.write(0, ci, cn, hdr_fmt)
            flag_cols = {df.columns.get_loc(c) for c in ('Update PDM', 'Update DURO')}
            for ri in range(len(df)):
                for ci in range(len(df.columns)):
                    v = df.iloc[ri, ci]
                    f = yes_fmt if (ci in flag_cols and v == 'Yes') else cell_fmt
                    ws2.write(1 + ri, ci, v, f)
            for ci, cn in enumerate(df.columns):
                ml = max(len(str(cn)), df.iloc[:, ci].astype(str).str.len().max() if len(df) else 0)
                ws2.set_column(ci, ci, min(ml + 2, 50))
            ws2.freeze_panes(1, 0)

    logger.info('[export] excel report: %d records', effective.total_parts)


# ============================================================
# CSV
# ============================================================
def export_results_to_csv(summary: ComparisonSummary, annotations: AnnotationStore) -> str:
    effective = _effective_summary(summary, annotations)
    buf = io.StringIO()

    buf.write('Summary\n')
    pd.DataFrame(summary_rows(effective)).to_csv(buf, index=False, header=False)

    for kind in SECTION_ORDER:
        columns, rows = build_section(summary.results, kind, annotations)
        if not rows:
            continue
        buf.write(f'\n{ISSUE_LABELS[kind]}\n')
        pd.DataFrame(rows, columns=columns).to_csv(buf, index=False)

    return buf.getvalue()


# ============================================================
# PDF
# ============================================================
def _table_style(key: str) -> TableStyle:
    bg, fg = SECTION_COLORS[key]
    return TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor(bg)),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.HexColor(fg)),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ])


def export_results_to_pdf(output, summary: ComparisonSummary, annotations: AnnotationStore):
    effective = _effective_summary(summary, annotations)
    styles = getSampleStyleSheet()
    cell_style = styles['BodyText']
    cell_style.fontSize = 8
    cell_style.leading = 10

    doc = SimpleDocTemplate(
        output, pagesize=letter,
        leftMargin=0.5 * inch, rightMargin=0.5 * inch,
        topMargin=0.6 * inch, bottomMargin=0.6 * inch,
        title='BOM Comparison Report',
    )

    story: List[Any] = [
        Paragraph('BOM Comparison Report', styles['Title']),
        Paragraph(f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}", styles['Normal']),
        Spacer(1, 12),
        Paragraph('Summary', styles['Heading2']),
    ]
    summary_table = Table([['Metric', 'Value']] + [[m, str(v)] for m, v in summary_rows(effective)],
                          hAlign='LEFT')
    summary_table.setStyle(_table_style('summary'))
    story += [summary_table, Spacer(1, 16)]

    for kind in SECTION_ORDER:
        columns, rows = build_section(summary.results, kind, annotations, flag_fmt=_checkbox)
        if not rows:
            continue
        body = [[Paragraph(str(v), cell_style) for v in row] for row in rows]
        table = Table([columns] + body, repeatRows=1, hAlign='LEFT')
        table.setStyle(_table_style(kind.value))
        story += [Paragraph(ISSUE_LABELS[kind], styles['Heading2']), table, Spacer(1, 16)]

    doc.build(story)
    logger.info('[export] pdf report: %d records', effective.total_parts)


# ============================================================
# Action plan (Markdown)
# ============================================================
_ISSUE_TYPE_LABELS = {
    IssueKind.ITEM_NUMBER: 'Item Number Issue',
    IssueKind.QUANTITY: 'Quantity Issue',
    IssueKind.DESCRIPTION: 'Description Issue',
}


def _field_values(record: ComparisonRecord, kind: IssueKind) -> Tuple[str, str]:
    """(PDM value, DURO value) of the field behind ``kind``."""
    if kind is IssueKind.ITEM_NUMBER:
        return record.primary_item_number, record.secondary_item_number
    if kind is IssueKind.QUANTITY:
        return record.primary_quantity, record.secondary_quantity
    return record.primary_description, record.secondary_description


def _plan_row(record: ComparisonRecord, kind: IssueKind, update_pdm: bool) -> Tuple[str, str, str]:
    """(issue type, current value, new value) for one side's update."""
    if kind is IssueKind.MISSING:
        issue = 'Missing in DURO' if record.in_primary_only else 'Missing in PDM'
        missing_here = record.in_secondary_only if update_pdm else record.in_primary_only
        if missing_here:
            return issue, 'Missing', 'Add part'
        return issue, 'Present', 'Remove part'

    pdm_value, duro_value = _field_values(record, kind)
    if update_pdm:
        return _ISSUE_TYPE_LABELS[kind], pdm_value, duro_value
    return _ISSUE_TYPE_LABELS[kind], duro_value, pdm_value


def _md(value: str) -> str:
    return str(value or '').replace('|', '\\|').replace('\n', ' ')


def generate_action_plan(summary: ComparisonSummary, annotations: AnnotationStore) -> str:
    pdm_updates: List[Tuple[str, ...]] = []
    duro_updates: List[Tuple[str, ...]] = []

    for record in summary.results:
        for kind in record.issue_kinds:
            ann = annotations.get(record.part_number, kind)
            if ann.ignored:
                continue
            if ann.update_primary:
                pdm_updates.append((record.part_number,) + _plan_row(record, kind, True) + (ann.comment,))
            if ann.update_secondary:
                duro_updates.append((record.part_number,) + _plan_row(record, kind, False) + (ann.comment,))

    lines = [
        '# BOM Comparison Action Plan',
        '',
        f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        '',
    ]
    for title, updates in (('PDM', pdm_updates), ('DURO', duro_updates)):
        lines += [f'## {title} Updates ({len(updates)} items)', '']
        if updates:
            lines += [
                '| Part Number | Issue Type | Current Value | New Value | Comment |',
                '|------------|------------|---------------|-----------|---------|',
            ]
            lines += ['| ' + ' | '.join(_md(v) for v in u) + ' |' for u in updates]
        else:
            lines.append(f'No {title} updates required.')
        lines.append('')

    return '\n'.join(lines)


# ============================================================
# DURO / PDM remediation workbooks
# ============================================================
def _flagged(results: Iterable[ComparisonRecord], annotations: AnnotationStore,
             side: str) -> List[Tuple[ComparisonRecord, str]]:
    """Records with an update flag for ``side`` on any non-ignored issue, plus joined comments."""
    picked = []
    for record in results:
        anns = [annotations.get(record.part_number, k) for k in record.issue_kinds]
        anns = [a for a in anns if not a.ignored]
        if any(getattr(a, side) for a in anns):
            comment = '; '.join(a.comment for a in anns if a.comment)
            picked.append((record, comment))
    return picked


def _write_sheet(output, df: pd.DataFrame, sheet_name: str):
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        ws = writer.sheets[sheet_name]
        for ci, cn in enumerate(df.columns):
            ml = max(len(str(cn)), df.iloc[:, ci].astype(str).str.len().max() if len(df) else 0)
            ws.set_column(ci, ci, min(ml + 2, 50))


def export_duro_updates(output, results: Sequence[ComparisonRecord], annotations: AnnotationStore) -> int:
    """
    DURO import workbook for items marked "Update DURO".
    PDM values are the source of truth.

    Returns:
        number of rows written
    """
    items = _flagged(results, annotations, 'update_secondary')
    if not items:
        raise ExportBlockedError('No items selected for DURO update')

    has_item_number_issues = any(r.item_number_issue for r, _ in items)

    rows = []
    for record, comment in items:
        row = {
            'CPN': to_duro_format(record.part_number),
            'Quantity': record.primary_quantity or record.secondary_quantity or '1',
        }
        if has_item_number_issues:
            row['Item Number'] = record.primary_item_number or record.secondary_item_number
        row['Ref Des'] = ''
        row['Notes'] = comment
        rows.append(row)

    _write_sheet(output, pd.DataFrame(rows), 'DURO Assembly Update')
    logger.info('[export] DURO update workbook: %d items', len(rows))
    return len(rows)


def _issue_label(record: ComparisonRecord) -> str:
    if record.in_primary_only:
        return 'Missing in DURO'
    if record.in_secondary_only:
        return 'Missing in PDM'
    if record.item_number_issue:
        return 'Item Number Mismatch'
    if record.quantity_issue:
        return 'Quantity Mismatch'
    if record.description_issue:
        return 'Description Mismatch'
    return 'Other'


def export_pdm_action_report(output, results: Sequence[ComparisonRecord], annotations: AnnotationStore) -> int:
    items = _flagged(results, annotations, 'update_primary')
    if not items:
        raise ExportBlockedError('No items flagged for PDM update')

    df = pd.DataFrame([{
        'Part Number': r.part_number,
        'Current Item #': r.primary_item_number,
        'DURO Item #': r.secondary_item_number,
        'Current Qty': r.primary_quantity,
        'DURO Qty': r.secondary_quantity,
        'Issue': _issue_label(r),
        'Notes': comment,
    } for r, comment in items])

    _write_sheet(output, df, 'PDM Action Items')
    logger.info('[export] PDM action report: %d items', len(df))
    return len(df)


# ============================================================
# DURO item-number update (original rows, PDM item numbers applied)
# ============================================================
def preview_duro_updates(summary: ComparisonSummary) -> List[ComparisonRecord]:
    return [r for r in summary.results if r.item_number_issue and r.is_matched]


def collect_item_number_updates(summary: ComparisonSummary, ignored=frozenset()) -> Dict[str, str]:
    """Normalized part key -> PDM item number, for every non-ignored item-number mismatch."""
    updates = {}
    for r in get_issue_records(summary.results, IssueKind.ITEM_NUMBER, ignored):
        if r.primary_item_number:
            updates[normalize_part_number(r.part_number)] = r.primary_item_number
    return updates


def _record_value(row: Dict[str, Any], keys: Sequence[str]) -> Optional[Any]:
    for k in keys:
        if row.get(k) not in (None, ''):
            return row[k]
    return None


def generate_duro_item_number_update(
    output,
    summary: ComparisonSummary,
    original_records: Optional[List[Dict[str, Any]]],
    ignored=frozenset(),
) -> int:
    """
    Rewrite the original DURO rows with PDM item numbers.

    Level-0 rows and the 'Item' column are dropped.

    Raises:
        ExportBlockedError: quantity issues remain, no original rows, or nothing to update

    Returns:
        number of rows whose item number changed
    """
    if summary.quantity_issues > 0:
        raise ExportBlockedError(
            f'There are {summary.quantity_issues} quantity mismatches that must be resolved '
            f'before generating the DURO import file')
    if not original_records:
        raise ExportBlockedError('Original DURO BOM data is not available; re-load the DURO BOM')

    updates = collect_item_number_updates(summary, ignored)
    if not updates:
        raise ExportBlockedError('No item number mismatches found to update in DURO')

    rows = []
    changed = 0
    for record in original_records:
        level = _record_value(record, LEVEL_KEYS)
        if level is not None and is_level_zero(level):
            continue
        row = {k: v for k, v in record.items() if k != 'Item'}
        part_number = _record_value(record, PART_NUMBER_KEYS)
        key = normalize_part_number(part_number) if part_number is not None else ''
        if key in updates:
            row['Item Number'] = updates[key]
            changed += 1
        rows.append(row)

    _write_sheet(output, pd.DataFrame(rows), 'Assembly Updates')
    logger.info('[export] DURO item number update: %d of %d rows changed', changed, len(rows))
    return changed
