# -*- coding: utf-8 -*-
"""
BOM Reconciler - package v1.0 (PDM vs DURO)
"""

__version__ = '1.0.0'

from .config import (
    SourceKind,
    IssueKind,
    ColumnMap,
    DuroSettings,
    SOURCE_LABELS, ISSUE_LABELS,
    FIELD_KEYWORDS, LEVEL_KEYWORDS, POSITIONAL_DEFAULTS, EXACT_HEADER_ALIASES,
    HEADER_SCAN_ROWS, MIN_HEADER_SCORE,
    load_duro_settings,
)

from .errors import (
    BomSourceError,
    ColumnResolutionError,
    EmptySourceError,
    AssemblyNotFoundError,
    DuroApiError,
    ExportBlockedError,
)

from .utils import (
    cell_to_text,
    normalize_text,
    are_texts_equivalent,
    normalize_part_number,
    to_duro_format,
    parse_quantity,
    smart_find_header_row,
    find_column_by_keywords,
)

from .file_reader import (
    BomLineEntry,
    ParseDiagnostics,
    load_excel_rows,
    map_columns,
    extract_entries,
    parse_bom,
    rows_to_records,
)

from .data_processor import (
    ComparisonRecord,
    ComparisonSummary,
    compare_boms,
    summarize,
    get_issue_records,
    get_missing_records,
    search_results,
    results_to_dataframe,
    validate_data,
)

from .annotations import (
    Annotation,
    AnnotationKey,
    AnnotationStore,
)

from .duro_client import (
    DuroBom,
    DuroClient,
)

from .exporters import (
    export_results_to_excel,
    export_results_to_csv,
    export_results_to_pdf,
    generate_action_plan,
    export_duro_updates,
    export_pdm_action_report,
    generate_duro_item_number_update,
    preview_duro_updates,
)

__all__ = [
    # config
    'SourceKind', 'IssueKind', 'ColumnMap', 'DuroSettings',
    'SOURCE_LABELS', 'ISSUE_LABELS',
    'FIELD_KEYWORDS', 'LEVEL_KEYWORDS', 'POSITIONAL_DEFAULTS', 'EXACT_HEADER_ALIASES',
    'HEADER_SCAN_ROWS', 'MIN_HEADER_SCORE', 'load_duro_settings',
    # errors
    'BomSourceError', 'ColumnResolutionError', 'EmptySourceError',
    'AssemblyNotFoundError', 'DuroApiError', 'ExportBlockedError',
    # utils
    'cell_to_text', 'normalize_text', 'are_texts_equivalent',
    'normalize_part_number', 'to_duro_format', 'parse_quantity',
    'smart_find_header_row', 'find_column_by_keywords',
    # file_reader
    'BomLineEntry', 'ParseDiagnostics',
    'load_excel_rows', 'map_columns', 'extract_entries', 'parse_bom', 'rows_to_records',
    # data_processor
    'ComparisonRecord', 'ComparisonSummary',
    'compare_boms', 'summarize', 'get_issue_records', 'get_missing_records',
    'search_results', 'results_to_dataframe', 'validate_data',
    # annotations
    'Annotation', 'AnnotationKey', 'AnnotationStore',
    # duro_client
    'DuroBom', 'DuroClient',
    # exporters
    'export_results_to_excel', 'export_results_to_csv', 'export_results_to_pdf',
    'generate_action_plan', 'export_duro_updates', 'export_pdm_action_report',
    'generate_duro_item_number_update', 'preview_duro_updates',
]
