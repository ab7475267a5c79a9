# -*- coding: utf-8 -*-
"""
BOM Reconciler v1.0 - PDM vs DURO

Workflow:
    1. Upload the PDM BOM; upload the DURO BOM or fetch it by assembly number
    2. Confirm column mapping (predicted automatically)
    3. Click "Compare" -> summary + issue tabs
    4. Annotate issues (ignore / update PDM / update DURO / comment)
    5. Download reports and remediation files
"""

import logging
import sys
import traceback
from io import BytesIO
from pathlib import Path

import streamlit as st

sys.path.insert(0, str(Path(__file__).parent))

from bom_reconciler.annotations import AnnotationStore
from bom_reconciler.config import (
    IssueKind, SourceKind, ISSUE_LABELS, SOURCE_LABELS,
    DURO_SOURCE_API, DURO_SOURCE_UPLOAD, load_duro_settings,
)
from bom_reconciler.data_processor import (
    compare_boms,
    get_issue_records,
    results_to_dataframe,
    search_results,
    summarize,
    validate_data,
)
from bom_reconciler.duro_client import DuroClient, build_item_number_update, children_to_records
from bom_reconciler.errors import BomSourceError, DuroApiError, ExportBlockedError
from bom_reconciler.exporters import (
    collect_item_number_updates,
    export_duro_updates,
    export_filename,
    export_pdm_action_report,
    export_results_to_csv,
    export_results_to_excel,
    export_results_to_pdf,
    generate_action_plan,
    generate_duro_item_number_update,
    preview_duro_updates,
)
from bom_reconciler.file_reader import parse_bom, rows_to_records
from bom_reconciler.ui_helper import (
    ensure_file_loaded,
    render_annotation_editor,
    render_column_mapping,
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
logger = logging.getLogger('bom_reconciler.app')

XLSX_MIME = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


# ============================================================
# Page & styles
# ============================================================
st.set_page_config(page_title='BOM Reconciler v1.0', page_icon='📋', layout='wide',
                   initial_sidebar_state='expanded')

st.markdown("""
<style>
.main .block-container{padding-top:1.5rem;padding-bottom:1.5rem}
.main-title{font-size:2rem;font-weight:700;text-align:center;padding:0.8rem 0;
  background:linear-gradient(135deg,#667eea,#764ba2);-webkit-background-clip:text;
  -webkit-text-fill-color:transparent;background-clip:text}
.stat-card{background:linear-gradient(145deg,#fff,#f0f0f3);border-radius:10px;
  padding:1rem;text-align:center;box-shadow:0 4px 15px rgba(0,0,0,.08);border:1px solid #e8e8e8}
.stat-value{font-size:1.8rem;font-weight:700;color:#2d3436}
.stat-label{font-size:.85rem;color:#636e72;margin-top:.2rem}
.pass-indicator{color:#00b894;font-weight:600}
.fail-indicator{color:#d63031;font-weight:600}
[data-testid="stSidebar"]{background:linear-gradient(180deg,#f8f9fc,#e8ecf3)}
div[data-testid="stSelectbox"] label{font-size:0.85rem;margin-bottom:0.2rem}
div[data-testid="stSelectbox"]{margin-bottom:0.5rem}
</style>
""", unsafe_allow_html=True)


# ============================================================
# Session state
# ============================================================
_DEFAULTS = dict(
    processed=False,
    summary=None,
    annotations={},
    duro_api_bom=None,
    duro_records=None,
    duro_from_api=False,
)
for _k, _v in _DEFAULTS.items():
    if _k not in st.session_state:
        st.session_state[_k] = _v

duro_settings = load_duro_settings()


# ============================================================
# Sidebar
# ============================================================
with st.sidebar:
    st.markdown('### 🔧 DURO source')
    source_opts = [DURO_SOURCE_UPLOAD] + ([DURO_SOURCE_API] if duro_settings.is_configured else [])
    duro_source = st.radio('DURO BOM', source_opts, label_visibility='collapsed')
    if not duro_settings.is_configured:
        st.caption('Set DURO_API_URL and DURO_API_TOKEN to fetch BOMs from DURO directly.')
    st.markdown('---')
    with st.expander('📖 How to use', expanded=False):
        st.markdown("""
**Steps:**
1. Upload the PDM BOM (.xlsx / .xls / .csv)
2. Upload the DURO BOM, or fetch it by assembly number
3. Confirm the column mapping (predicted automatically)
4. Click **Compare**
5. Review the tabs, annotate, download

**Matching:** part numbers are compared after normalisation
(`-00-00` and `-DD-DD` suffixes collapse), so `406-00043` matches
`406-00043-00-00`.

**Issue kinds:** Missing · Item Number · Quantity · Description
        """)


# ============================================================
# Title & inputs
# ============================================================
st.markdown('<h1 class="main-title">🔍 BOM Reconciler v1.0</h1>', unsafe_allow_html=True)

st.markdown('### 📁 BOM sources')

col_up = st.columns([1, 1])
with col_up[0]:
    pdm_up = st.file_uploader('📤 PDM BOM', type=['xlsx', 'xls', 'csv'], key='up_pdm')
with col_up[1]:
    duro_up = None
    if duro_source == DURO_SOURCE_UPLOAD:
        duro_up = st.file_uploader('📤 DURO BOM', type=['xlsx', 'xls', 'csv'], key='up_duro')
        st.session_state.duro_api_bom = None
    else:
        assembly_number = st.text_input('Assembly number', placeholder='e.g. 900-00123-00')
        if st.button('🌐 Fetch from DURO', disabled=not assembly_number):
            try:
                with st.spinner(f'Fetching {assembly_number} from DURO …'):
                    st.session_state.duro_api_bom = DuroClient(duro_settings).fetch_bom_by_assembly_number(
                        assembly_number)
                st.session_state.processed = False
            except (BomSourceError, DuroApiError) as e:
                st.session_state.duro_api_bom = None
                st.error(f'❌ {e}')
        if st.session_state.duro_api_bom is not None:
            st.success(f'✅ {len(st.session_state.duro_api_bom.entries)} child components loaded')


# ============================================================
# Read uploads
# ============================================================
pdm_raw = ensure_file_loaded(pdm_up, 'pdm')
duro_raw = ensure_file_loaded(duro_up, 'duro') if duro_up is not None else None


# ============================================================
# Column mapping
# ============================================================
pdm_cfg = None
duro_cfg = None

if pdm_raw or duro_raw:
    st.markdown('---')
    st.markdown('### 📋 Column mapping')

    map_cols = st.columns([1, 1])
    with map_cols[0]:
        if pdm_raw:
            pdm_cfg = render_column_mapping(pdm_raw, SourceKind.PRIMARY, 'pdm')
    with map_cols[1]:
        if duro_raw:
            duro_cfg = render_column_mapping(duro_raw, SourceKind.SECONDARY, 'duro')


# ============================================================
# Compare
# ============================================================
st.markdown('<br>', unsafe_allow_html=True)
_, btn_col, _ = st.columns([1, 2, 1])
with btn_col:
    do_compare = st.button('🚀 Compare', use_container_width=True, type='primary')

if do_compare:
    if pdm_raw is None or pdm_cfg is None:
        st.error('❌ Upload the PDM BOM and confirm its column mapping first')
        st.stop()
    api_bom = st.session_state.duro_api_bom
    if duro_source == DURO_SOURCE_UPLOAD and (duro_raw is None or duro_cfg is None):
        st.error('❌ Upload the DURO BOM and confirm its column mapping first')
        st.stop()
    if duro_source == DURO_SOURCE_API and api_bom is None:
        st.error('❌ Fetch the DURO BOM first')
        st.stop()

    progress = st.progress(0)
    status = st.empty()

    try:
        status.text('📖 Parsing PDM BOM…')
        header_row, cmap = pdm_cfg
        pdm_entries, _, _ = parse_bom(pdm_raw, SourceKind.PRIMARY, column_map=cmap, header_row=header_row)
        progress.progress(30)

        status.text('📖 Parsing DURO BOM…')
        if duro_source == DURO_SOURCE_API:
            duro_entries = api_bom.entries
            st.session_state.duro_records = children_to_records(api_bom.raw_children)
            st.session_state.duro_from_api = True
        else:
            header_row, cmap = duro_cfg
            duro_entries, _, _ = parse_bom(duro_raw, SourceKind.SECONDARY, column_map=cmap,
                                           header_row=header_row)
            st.session_state.duro_records = rows_to_records(duro_raw, header_row)
            st.session_state.duro_from_api = False
        progress.progress(60)

        for w in validate_data(pdm_entries, duro_entries):
            st.warning(w)

        status.text('🔍 Comparing…')
        st.session_state.summary = compare_boms(pdm_entries, duro_entries)
        progress.progress(100)
        status.text('✅ Comparison complete')
        st.session_state.processed = True

    except BomSourceError as e:
        st.error(f'❌ {e}')
    except Exception as e:
        logger.exception('[app] comparison failed')
        st.error(f'❌ Processing error: {e}')
        st.code(traceback.format_exc())
    finally:
        progress.empty()


# ============================================================
# Results
# ============================================================
def _stat_card(value, label, color=''):
    cls = f'class="{color}"' if color else ''
    st.markdown(f'<div class="stat-card"><div class="stat-value" {cls}>{value}</div>'
                f'<div class="stat-label">{label}</div></div>', unsafe_allow_html=True)


def _hl_status(val):
    v = str(val)
    if v == 'OK':
        return 'background-color:#C6EFCE;color:#006100'
    if v.startswith('Missing'):
        return 'background-color:#FFC7CE;color:#9C0006'
    if v.startswith('Mismatch'):
        return 'background-color:#FFEB9C;color:#9C5700'
    return ''


def _save_annotations(store: AnnotationStore):
    st.session_state.annotations = store.to_dict()


if st.session_state.processed and st.session_state.summary is not None:
    summary = st.session_state.summary
    annotations = AnnotationStore.from_dict(st.session_state.annotations)
    effective = summarize(summary.results, annotations.ignored_keys())

    st.markdown('---')
    st.markdown('### 📊 Comparison results')

    cards = [
        (effective.total_parts, 'Total parts', ''),
        (effective.matched_parts, 'Found in both', 'pass-indicator'),
        (effective.matching_parts, 'Matching', 'pass-indicator'),
        (effective.item_number_issues, 'Item # issues', ''),
        (effective.quantity_issues, 'Qty issues', ''),
        (effective.description_issues, 'Description issues', ''),
        (effective.in_primary_only, f'{SOURCE_LABELS[SourceKind.PRIMARY]} only', ''),
        (effective.in_secondary_only, f'{SOURCE_LABELS[SourceKind.SECONDARY]} only', ''),
    ]
    sc = st.columns(len(cards))
    for col, (value, label, clr) in zip(sc, cards):
        with col:
            _stat_card(value, label, clr or ('fail-indicator' if value else 'pass-indicator'))

    st.markdown('<br>', unsafe_allow_html=True)

    s1, s2, s3 = st.columns([3, 2, 1])
    with s1:
        term = st.text_input('🔎 Search', placeholder='Part number, description or item number')
    with s2:
        field = st.radio('Search in', ['all', 'part_number', 'description'], horizontal=True,
                         format_func=lambda f: {'all': 'All fields', 'part_number': 'Part number',
                                                'description': 'Description'}[f])
    with s3:
        if st.button('↩️ Reset ignored', use_container_width=True):
            annotations.reset_ignored()
            _save_annotations(annotations)
            st.rerun()

    tab_kinds = [IssueKind.MISSING, IssueKind.ITEM_NUMBER, IssueKind.QUANTITY, IssueKind.DESCRIPTION]
    tabs = st.tabs([f'{ISSUE_LABELS[k]} ({len(get_issue_records(summary.results, k, annotations.ignored_keys()))})'
                    for k in tab_kinds] + [f'All ({summary.total_parts})'])

    for tab, kind in zip(tabs, tab_kinds):
        with tab:
            records = search_results(get_issue_records(summary.results, kind), term, field)
            if render_annotation_editor(records, kind, annotations, key=f'editor_{kind.value}'):
                _save_annotations(annotations)
                st.rerun()

    with tabs[-1]:
        view = results_to_dataframe(search_results(summary.results, term, field))
        if view.empty:
            st.info('No records match the search')
        else:
            st.dataframe(view.style.map(_hl_status, subset=['Status']),
                         use_container_width=True, height=400)


# ============================================================
# Export
# ============================================================
def _download_workbook(label, build, filename, key):
    """Build a workbook into memory and offer it, or explain why it is blocked."""
    buf = BytesIO()
    try:
        build(buf)
    except ExportBlockedError as e:
        st.caption(f'ℹ️ {label}: {e}')
        return
    buf.seek(0)
    st.download_button(label, buf, filename, mime=XLSX_MIME, use_container_width=True, key=key)


if st.session_state.processed and st.session_state.summary is not None:
    summary = st.session_state.summary
    annotations = AnnotationStore.from_dict(st.session_state.annotations)
    ignored = annotations.ignored_keys()
    effective = summarize(summary.results, ignored)

    st.markdown('---')
    st.markdown('### 💾 Reports')
    try:
        rc = st.columns(4)
        with rc[0]:
            buf = BytesIO()
            export_results_to_excel(buf, summary, annotations)
            buf.seek(0)
            st.download_button('📥 Excel report', buf, export_filename('bom_comparison', 'xlsx'),
                               mime=XLSX_MIME, use_container_width=True, type='primary')
        with rc[1]:
            st.download_button('📥 CSV report', export_results_to_csv(summary, annotations),
                               export_filename('bom_comparison', 'csv'), mime='text/csv',
                               use_container_width=True)
        with rc[2]:
            pdf_buf = BytesIO()
            export_results_to_pdf(pdf_buf, summary, annotations)
            pdf_buf.seek(0)
            st.download_button('📥 PDF report', pdf_buf, export_filename('bom_comparison', 'pdf'),
                               mime='application/pdf', use_container_width=True)
        with rc[3]:
            st.download_button('📥 Action plan', generate_action_plan(summary, annotations),
                               export_filename('bom_action_plan', 'md'), mime='text/markdown',
                               use_container_width=True)
    except Exception as e:
        logger.exception('[app] report generation failed')
        st.error(f'❌ Failed to generate report: {e}')

    st.markdown('### 🛠️ Remediation files')
    uc = st.columns(3)
    with uc[0]:
        _download_workbook('📥 DURO update file',
                           lambda b: export_duro_updates(b, summary.results, annotations),
                           export_filename('duro_updates', 'xlsx'), 'dl_duro_updates')
    with uc[1]:
        _download_workbook('📥 PDM action report',
                           lambda b: export_pdm_action_report(b, summary.results, annotations),
                           export_filename('pdm_action_items', 'xlsx'), 'dl_pdm_actions')
    with uc[2]:
        _download_workbook('📥 DURO item number import',
                           lambda b: generate_duro_item_number_update(
                               b, effective, st.session_state.duro_records, ignored),
                           export_filename('duro_item_numbers', 'xlsx'), 'dl_duro_items')

    pending = [r for r in preview_duro_updates(effective)
               if (r.part_number, IssueKind.ITEM_NUMBER) not in ignored]
    if pending:
        with st.expander(f'🔢 {len(pending)} item numbers will change in DURO', expanded=False):
            st.dataframe(results_to_dataframe(pending)[['Part Number', 'PDM Item #', 'DURO Item #']],
                         use_container_width=True, hide_index=True)

    api_bom = st.session_state.duro_api_bom
    if st.session_state.duro_from_api and api_bom is not None and pending:
        if effective.quantity_issues:
            st.caption(f'ℹ️ Resolve {effective.quantity_issues} quantity issues before pushing to DURO')
        elif st.button('🌐 Push item numbers to DURO', type='primary'):
            try:
                children = build_item_number_update(api_bom.raw_children,
                                                    collect_item_number_updates(effective, ignored))
                DuroClient(duro_settings).update_assembly_bom(api_bom.assembly_id, children)
                st.success(f'✅ Updated {len(pending)} item numbers in DURO')
            except DuroApiError as e:
                st.error(f'❌ DURO update failed: {e}')


# ============================================================
# Footer
# ============================================================
st.markdown('---')
st.markdown('<p style="text-align:center;color:#888;font-size:.75rem">'
            'BOM Reconciler v1.0 | PDM ↔ DURO · normalised part matching · four issue kinds</p>',
            unsafe_allow_html=True)
