"""
Tests for the per-issue annotation store.

Run with: pytest tests/test_annotations.py -v
"""

from bom_reconciler.annotations import Annotation, AnnotationKey, AnnotationStore
from bom_reconciler.config import IssueKind
from bom_reconciler.data_processor import compare_boms, summarize

from conftest import make_entry


class TestAnnotationStore:

    def test_get_unknown_key_returns_unstored_default(self, annotations):
        ann = annotations.get('A-1', IssueKind.QUANTITY)
        assert ann == Annotation()
        assert len(annotations) == 0

    def test_set_ignored_stores_key(self, annotations):
        annotations.set_ignored('A-1', IssueKind.QUANTITY)
        assert ('A-1', IssueKind.QUANTITY) in annotations
        annotations.set_ignored('A-1', IssueKind.QUANTITY, ignored=False)
        assert not annotations.ignored_keys()

    def test_keys_are_per_issue_kind(self, annotations):
        annotations.set_ignored('A-1', IssueKind.QUANTITY)
        assert not annotations.get('A-1', IssueKind.DESCRIPTION).ignored
        assert annotations.ignored_keys() == frozenset({AnnotationKey('A-1', IssueKind.QUANTITY)})

    def test_set_update_keeps_unspecified_flag(self, annotations):
        annotations.set_update('A-1', IssueKind.ITEM_NUMBER, primary=True)
        annotations.set_update('A-1', IssueKind.ITEM_NUMBER, secondary=True)
        ann = annotations.get('A-1', IssueKind.ITEM_NUMBER)
        assert ann.update_primary and ann.update_secondary

    def test_reset_ignored_keeps_other_fields(self, annotations):
        annotations.set_ignored('A-1', IssueKind.MISSING)
        annotations.set_comment('A-1', IssueKind.MISSING, 'obsolete part')
        annotations.reset_ignored()
        ann = annotations.get('A-1', IssueKind.MISSING)
        assert not ann.ignored
        assert ann.comment == 'obsolete part'

    def test_record_with_two_issues_has_independent_decisions(self, annotations):
        summary = compare_boms([make_entry('A-1', '1', '2')], [make_entry('A-1', '5', '3')])
        record = summary.results[0]
        assert record.issue_kinds == [IssueKind.ITEM_NUMBER, IssueKind.QUANTITY]

        annotations.set_update('A-1', IssueKind.ITEM_NUMBER, secondary=True)
        annotations.set_ignored('A-1', IssueKind.ITEM_NUMBER)

        assert annotations.get('A-1', IssueKind.QUANTITY) == Annotation()
        recount = summarize(summary.results, annotations.ignored_keys())
        assert recount.item_number_issues == 0
        assert recount.quantity_issues == 1

    def test_ignored_keys_feed_summarize(self, annotations, summary):
        annotations.set_ignored('800-00761-01', IssueKind.QUANTITY)
        assert summarize(summary.results, annotations.ignored_keys()).quantity_issues == 0


class TestSessionStorage:

    def test_roundtrip(self, annotations):
        annotations.set_ignored('406-00043-00', IssueKind.DESCRIPTION)
        annotations.set_update('X|1', IssueKind.MISSING, primary=True)
        annotations.set_comment('X|1', IssueKind.MISSING, 'add to PDM')

        restored = AnnotationStore.from_dict(annotations.to_dict())

        assert restored.ignored_keys() == annotations.ignored_keys()
        assert restored.get('X|1', IssueKind.MISSING) == Annotation(
            update_primary=True, comment='add to PDM')

    def test_from_empty(self):
        assert len(AnnotationStore.from_dict(None)) == 0
