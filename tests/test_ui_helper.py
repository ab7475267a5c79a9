"""
Tests for the Streamlit-free parts of the UI helpers.

Run with: pytest tests/test_ui_helper.py -v
"""

from bom_reconciler.config import IssueKind
from bom_reconciler.data_processor import get_issue_records
from bom_reconciler.ui_helper import _col_letter, annotation_frame, apply_annotation_frame


class TestColumnLetters:

    def test_letters(self):
        assert [_col_letter(i) for i in (0, 25, 26, 27, 701, 702)] == ['A', 'Z', 'AA', 'AB', 'ZZ', 'AAA']


class TestAnnotationGrid:

    def test_frame_reflects_store(self, summary, annotations):
        annotations.set_ignored('900-11111', IssueKind.MISSING)
        records = get_issue_records(summary.results, IssueKind.MISSING)
        df = annotation_frame(records, IssueKind.MISSING, annotations)

        assert list(df.columns[-4:]) == ['Ignore', 'Update PDM', 'Update DURO', 'Comment']
        assert df.loc[df['Part Number'] == '900-11111', 'Ignore'].item()
        assert not df.loc[df['Part Number'] == '700-22222-00-00', 'Ignore'].item()

    def test_edits_written_back(self, summary, annotations):
        records = get_issue_records(summary.results, IssueKind.QUANTITY)
        df = annotation_frame(records, IssueKind.QUANTITY, annotations)
        df.loc[0, 'Update DURO'] = True
        df.loc[0, 'Comment'] = 'DURO is wrong'

        assert apply_annotation_frame(df, IssueKind.QUANTITY, annotations) == 1
        ann = annotations.get('800-00761-01', IssueKind.QUANTITY)
        assert ann.update_secondary and not ann.update_primary
        assert ann.comment == 'DURO is wrong'

    def test_unchanged_grid_writes_nothing(self, summary, annotations):
        records = get_issue_records(summary.results, IssueKind.MISSING)
        df = annotation_frame(records, IssueKind.MISSING, annotations)
        assert apply_annotation_frame(df, IssueKind.MISSING, annotations) == 0
        assert len(annotations) == 0
