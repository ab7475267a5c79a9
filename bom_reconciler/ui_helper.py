# -*- coding: utf-8 -*-
"""
UI helper module v1.0 - column mapping confirmation and issue annotation

Responsibilities:
    1. ensure_file_loaded      - upload -> pandas -> cached raw rows
    2. render_column_mapping   - header detection + mapping dropdowns with predicted defaults
    3. render_annotation_editor - per-issue Ignore / Update PDM / Update DURO / Comment grid
"""

import logging
from io import BytesIO
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd
import streamlit as st

from .annotations import AnnotationStore
from .config import ColumnMap, IssueKind, SourceKind, SOURCE_LABELS, NO_COLUMN_LABEL
from .data_processor import ComparisonRecord
from .errors import ColumnResolutionError
from .exporters import SECTION_COLUMNS, section_values
from .file_reader import detect_header_row, load_excel_rows, map_columns

logger = logging.getLogger(__name__)

ANNOTATION_FIELDS = ['Ignore', 'Update PDM', 'Update DURO', 'Comment']


# ============================================================
# Helpers
# ============================================================
def _col_letter(idx: int) -> str:
    """0-based -> Excel column letters (A, B, ..., Z, AA, ...)"""
    result = ''
    i = idx
    while True:
        result = chr(65 + i % 26) + result
        i = i // 26 - 1
        if i < 0:
            break
    return result


def _build_options(headers: List[str]) -> List[str]:
    return [f'{_col_letter(i)}: {h}' for i, h in enumerate(headers)]


# ============================================================
# File cache (one decode per upload)
# ============================================================
def ensure_file_loaded(uploaded_file, cache_key: str) -> Optional[List[List[Any]]]:
    """Decode and cache the upload when it is new; return the cached rows."""
    raw_key = f'{cache_key}_raw'
    fp_key = f'{cache_key}_fp'

    if uploaded_file is None:
        st.session_state.pop(raw_key, None)
        st.session_state.pop(fp_key, None)
        return None

    fp = f'{uploaded_file.name}_{uploaded_file.size}'

    if st.session_state.get(fp_key) != fp:
        with st.spinner(f'📖 Reading **{uploaded_file.name}** …'):
            try:
                uploaded_file.seek(0)
                raw = load_excel_rows(BytesIO(uploaded_file.read()), uploaded_file.name)
                if not raw:
                    st.error(f'❌ File is empty: {uploaded_file.name}')
                    return None
                st.session_state[raw_key] = raw
                st.session_state[fp_key] = fp
                st.session_state['processed'] = False
            except Exception as e:
                logger.exception('[ui] failed to read %s', uploaded_file.name)
                st.error(f'❌ Failed to read {uploaded_file.name}: {e}')
                return None

    return st.session_state.get(raw_key)


# ============================================================
# Column mapping
# ============================================================
def render_column_mapping(
    raw_data: List[List[Any]],
    source_kind: SourceKind,
    key_prefix: str,
    show_title: bool = True,
) -> Optional[Tuple[int, ColumnMap]]:
    """
    Mapping dropdowns for one source, pre-selected from map_columns.

    Returns (header_row, ColumnMap), or None when the header row is empty.
    """
    if not raw_data:
        return None

    label = SOURCE_LABELS[source_kind]
    if show_title:
        st.markdown(f'##### 📑 {label} BOM')

    header_row = detect_header_row(raw_data)
    raw_headers = raw_data[header_row] if header_row < len(raw_data) else []
    headers = [str(c) if c is not None and str(c).strip() else f'Column {i + 1}'
               for i, c in enumerate(raw_headers)]
    n = len(headers)
    if n == 0:
        st.warning('Header row has no columns')
        return None

    st.caption(f'Header detected on row {header_row + 1}')

    try:
        predicted = map_columns(raw_headers, source_kind, label)
    except ColumnResolutionError as e:
        st.warning(f'⚠️ {e}. Select the part number column manually.')
        predicted = ColumnMap(part_number_col=0)

    opts = _build_options(headers)
    none_opts = [-1] + list(range(n))

    def _opt_fmt(i):
        return NO_COLUMN_LABEL if i == -1 else opts[i]

    def _optional(title: str, predicted_idx: Optional[int], suffix: str) -> Optional[int]:
        default = (predicted_idx + 1) if predicted_idx is not None else 0
        val = st.selectbox(
            title, options=none_opts, format_func=_opt_fmt,
            index=min(default, len(none_opts) - 1), key=f'{key_prefix}_{suffix}',
        )
        return val if val >= 0 else None

    part_col = st.selectbox(
        'Part number column', options=range(n), format_func=lambda i: opts[i],
        index=min(predicted.part_number_col, n - 1), key=f'{key_prefix}_part',
    )
    item_col = _optional('Item number column', predicted.item_number_col, 'item')
    desc_col = _optional('Description column', predicted.description_col, 'desc')
    qty_col = _optional('Quantity column', predicted.quantity_col, 'qty')

    level_col = None
    if source_kind is SourceKind.SECONDARY:
        level_col = _optional('Level column', predicted.level_col, 'level')

    return header_row, ColumnMap(
        part_number_col=part_col,
        item_number_col=item_col,
        description_col=desc_col,
        quantity_col=qty_col,
        level_col=level_col,
    )


# ============================================================
# Annotation grid
# ============================================================
def annotation_frame(records: Sequence[ComparisonRecord], kind: IssueKind,
                     annotations: AnnotationStore) -> pd.DataFrame:
    rows = []
    for r in records:
        ann = annotations.get(r.part_number, kind)
        rows.append(section_values(r, kind) + [
            ann.ignored, ann.update_primary, ann.update_secondary, ann.comment,
        ])
    return pd.DataFrame(rows, columns=SECTION_COLUMNS[kind] + ANNOTATION_FIELDS)


def apply_annotation_frame(edited: pd.DataFrame, kind: IssueKind, annotations: AnnotationStore) -> int:
    """Write edited grid values back into the store; returns the number of changed rows."""
    changed = 0
    for _, row in edited.iterrows():
        pn = row['Part Number']
        current = annotations.get(pn, kind)
        ignored = bool(row['Ignore'])
        update_pdm = bool(row['Update PDM'])
        update_duro = bool(row['Update DURO'])
        comment = '' if pd.isna(row['Comment']) else str(row['Comment'])

        if (current.ignored, current.update_primary, current.update_secondary, current.comment) == \
                (ignored, update_pdm, update_duro, comment):
            continue
        annotations.set_ignored(pn, kind, ignored)
        annotations.set_update(pn, kind, primary=update_pdm, secondary=update_duro)
        annotations.set_comment(pn, kind, comment)
        changed += 1
    return changed


def render_annotation_editor(
    records: Sequence[ComparisonRecord],
    kind: IssueKind,
    annotations: AnnotationStore,
    key: str,
) -> int:
    if not records:
        st.success('🎉 No issues in this category')
        return 0

    df = annotation_frame(records, kind, annotations)
    edited = st.data_editor(
        df,
        key=key,
        hide_index=True,
        use_container_width=True,
        disabled=SECTION_COLUMNS[kind],
        column_config={
            'Ignore': st.column_config.CheckboxColumn('Ignore'),
            'Update PDM': st.column_config.CheckboxColumn('Update PDM'),
            'Update DURO': st.column_config.CheckboxColumn('Update DURO'),
            'Comment': st.column_config.TextColumn('Comment'),
        },
    )
    return apply_annotation_frame(edited, kind, annotations)
