"""
Shared fixtures for the reconciler test suite.

Provides:
- Raw PDM / DURO rows as load_excel_rows would return them
- Parsed entries and a finished comparison for export tests
- A factory for BomLineEntry
"""
import pytest

from bom_reconciler.annotations import AnnotationStore
from bom_reconciler.config import SourceKind
from bom_reconciler.data_processor import compare_boms
from bom_reconciler.file_reader import BomLineEntry, parse_bom


def make_entry(part_number, item_number='', quantity='', description=''):
    return BomLineEntry(part_number=part_number, item_number=item_number,
                        description=description, quantity=quantity)


@pytest.fixture
def pdm_rows():
    return [
        ['ITEM NO.', 'PART NUMBER', 'DESCRIPTION', 'QTY.'],
        [1, '406-00043', 'Bracket', 2],
        [2, '453-00516-02', 'Screw M3', 4],
        [3, '800-00761-01', 'Cable  Assy', 1],
        [4, '900-11111', 'Label', 1],
    ]


@pytest.fixture
def duro_rows():
    # first data row is the assembly itself
    return [
        ['Level', 'CPN', 'Item Number', 'Description', 'Quantity'],
        [0, '999-00001-00-00', None, 'Top Assembly', 1],
        [1, '406-00043-00-00', 1, 'bracket', 2],
        [1, '453-00516-02-02', 5, 'Screw M3', 4],
        [1, '800-00761-01', 3, 'Cable Assy', 2],
        [1, '700-22222-00-00', 6, 'Spacer', 8],
    ]


@pytest.fixture
def pdm_entries(pdm_rows):
    entries, _, _ = parse_bom(pdm_rows, SourceKind.PRIMARY)
    return entries


@pytest.fixture
def duro_entries(duro_rows):
    entries, _, _ = parse_bom(duro_rows, SourceKind.SECONDARY)
    return entries


@pytest.fixture
def summary(pdm_entries, duro_entries):
    """
    5 records: 406-00043 matching, 453-00516-02 item number issue,
    800-00761-01 quantity issue, 900-11111 PDM only, 700-22222-00-00 DURO only.
    """
    return compare_boms(pdm_entries, duro_entries)


@pytest.fixture
def annotations():
    return AnnotationStore()
