"""
Tests for text / part-number normalization and header detection.

Run with: pytest tests/test_utils.py -v
"""

import pytest

from bom_reconciler.config import ALL_HEADER_KEYWORDS
from bom_reconciler.utils import (
    are_texts_equivalent,
    cell_to_text,
    find_column_by_keywords,
    is_empty_row,
    is_level_zero,
    normalize_part_number,
    normalize_text,
    parse_quantity,
    smart_find_header_row,
    to_duro_format,
)


class TestCellToText:

    def test_integral_float_loses_decimal(self):
        assert cell_to_text(2.0) == '2'

    def test_fractional_float_kept(self):
        assert cell_to_text(2.5) == '2.5'

    def test_none_and_nan_are_blank(self):
        assert cell_to_text(None) == ''
        assert cell_to_text(float('nan')) == ''

    def test_infinite_float_kept_as_text(self):
        assert cell_to_text(float('inf')) == 'inf'
        assert cell_to_text(float('-inf')) == '-inf'

    def test_invisible_characters_removed(self):
        assert cell_to_text('\u200b406-00043\ufeff ') == '406-00043'

    def test_empty_row(self):
        assert is_empty_row([None, '', '  '])
        assert not is_empty_row([None, 'x'])
        assert is_empty_row([])


class TestNormalizeText:

    @pytest.mark.parametrize('raw, expected', [
        ('  Cable   Assy ', 'cable assy'),
        ('Line\tOne\nTwo', 'line one two'),
        ('BRACKET', 'bracket'),
        (None, ''),
        (float('nan'), ''),
        (3, '3'),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_text(raw) == expected

    def test_idempotent(self):
        once = normalize_text('  Mixed   CASE\ttext ')
        assert normalize_text(once) == once

    def test_equivalence_ignores_case_and_spacing(self):
        assert are_texts_equivalent('Cable  Assy', 'cable assy')
        assert not are_texts_equivalent('Cable Assy', 'CableAssy')
        assert are_texts_equivalent(None, '')


class TestPartNumberKey:

    @pytest.mark.parametrize('raw, expected', [
        ('406-00043-00-00', '406-00043'),
        ('453-00516-02-02', '453-00516-02'),
        ('800-00761-01', '800-00761-01'),
        ('800-00761-00', '800-00761'),
        ('  ABC-123-05-05 ', 'abc-123-05'),
        ('453-00516-02-03', '453-00516-02-03'),
        ('', ''),
        (None, ''),
    ])
    def test_examples(self, raw, expected):
        assert normalize_part_number(raw) == expected

    @pytest.mark.parametrize('raw', [
        '406-00043-00-00', '453-00516-02-02', 'x-00-00-00', '1-01-01-01', 'plain',
    ])
    def test_idempotent(self, raw):
        key = normalize_part_number(raw)
        assert normalize_part_number(key) == key

    def test_pdm_and_duro_spellings_share_a_key(self):
        assert normalize_part_number('406-00043') == normalize_part_number('406-00043-00-00')
        assert normalize_part_number('453-00516-02') == normalize_part_number('453-00516-02-02')


class TestToDuroFormat:

    @pytest.mark.parametrize('raw, expected', [
        ('406-00043', '406-00043-00-00'),
        ('453-00516-02', '453-00516-02-02'),
        ('453-00516-02-02', '453-00516-02-02'),
        (' 406-00043 ', '406-00043-00-00'),
    ])
    def test_examples(self, raw, expected):
        assert to_duro_format(raw) == expected

    @pytest.mark.parametrize('raw', ['406-00043', '453-00516-02', '800-00761-01', '700-22222-00-00'])
    def test_same_key_as_input(self, raw):
        assert normalize_part_number(to_duro_format(raw)) == normalize_part_number(raw)


class TestParseQuantity:

    @pytest.mark.parametrize('raw, expected', [
        ('2', 2.0),
        ('1,000', 1000.0),
        (3, 3.0),
        (' 0.5 ', 0.5),
        ('', None),
        ('abc', None),
        ('2+2', None),
        (None, None),
    ])
    def test_parse(self, raw, expected):
        assert parse_quantity(raw) == expected

    def test_level_zero(self):
        assert is_level_zero(0)
        assert is_level_zero('0')
        assert not is_level_zero('1')
        assert not is_level_zero('')


class TestHeaderDetection:

    def test_skips_title_rows(self):
        data = [
            ['Bill of Materials', None, None, None],
            [None, None, None, None],
            ['Item No', 'Part Number', 'Description', 'Qty'],
            ['1', '406-00043', 'Bracket', '2'],
        ]
        idx, score = smart_find_header_row(data, ALL_HEADER_KEYWORDS)
        assert idx == 2
        assert score >= 2

    def test_no_header_found(self):
        data = [['a', 'b'], ['c', 'd']]
        assert smart_find_header_row(data, ALL_HEADER_KEYWORDS) == (None, 0)

    def test_find_column_skips_claimed(self):
        headers = ['Item Number', 'CPN']
        assert find_column_by_keywords(headers, ['number']) == 0
        assert find_column_by_keywords(headers, ['number', 'cpn'], claimed={0}) == 1
        assert find_column_by_keywords(headers, ['qty']) is None
