"""
Tests for the DURO GraphQL client. The HTTP session is mocked; no network.

Run with: pytest tests/test_duro_client.py -v
"""

from unittest.mock import MagicMock

import pytest
import requests

from bom_reconciler.config import DuroSettings, SourceKind, load_duro_settings
from bom_reconciler.duro_client import (
    DuroClient,
    build_item_number_update,
    children_to_entries,
    children_to_records,
)
from bom_reconciler.errors import AssemblyNotFoundError, DuroApiError, EmptySourceError


SETTINGS = DuroSettings(api_url='https://duro.example/graphql', api_token='secret', timeout=5)

CHILDREN = [
    {'itemNumber': 1, 'quantity': 2,
     'component': {'id': 'c1', 'name': 'Bracket', 'cpn': {'displayValue': '406-00043-00-00'}}},
    {'itemNumber': 5, 'quantity': None,
     'component': {'id': 'c2', 'name': 'Screw M3', 'cpn': {'displayValue': '453-00516-02-02'}}},
    {'itemNumber': 6, 'quantity': 1, 'component': {'id': 'c3', 'name': '', 'cpn': None}},
]


def _response(payload=None, status=200):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.reason = 'Server Error' if status >= 500 else 'OK'
    resp.json.return_value = payload
    return resp


def _search_payload(*cpns):
    edges = [{'node': {'id': f'id-{c}', 'name': c, 'cpn': {'displayValue': c}}} for c in cpns]
    return {'data': {'components': {'connection': {'edges': edges}}}}


def _children_payload(children):
    return {'data': {'componentsByIds': [{'id': 'asm', 'name': 'Top', 'children': children}]}}


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session):
    return DuroClient(SETTINGS, session=session)


class TestSettings:

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv('DURO_API_URL', 'https://duro.example/graphql')
        monkeypatch.setenv('DURO_API_TOKEN', 'tok')
        monkeypatch.setenv('DURO_API_TIMEOUT', '12')
        settings = load_duro_settings()
        assert settings.is_configured
        assert settings.timeout == 12.0

    def test_unconfigured_client_refuses(self, session):
        with pytest.raises(DuroApiError):
            DuroClient(DuroSettings(), session=session).query('{ x }')
        session.post.assert_not_called()


class TestQuery:

    def test_sends_token_and_variables(self, client, session):
        session.post.return_value = _response({'data': {'ok': True}})

        assert client.query('query Q($a: String!) { x }', {'a': '1'}) == {'ok': True}

        _, kwargs = session.post.call_args
        assert kwargs['headers']['apiToken'] == 'secret'
        assert kwargs['json']['variables'] == {'a': '1'}
        assert kwargs['timeout'] == 5

    def test_http_error(self, client, session):
        session.post.return_value = _response(status=500)
        with pytest.raises(DuroApiError) as exc:
            client.query('{ x }')
        assert exc.value.status_code == 500

    def test_graphql_error(self, client, session):
        session.post.return_value = _response({'errors': [{'message': 'bad cpn'}]})
        with pytest.raises(DuroApiError, match='bad cpn'):
            client.query('{ x }')

    def test_connection_error(self, client, session):
        session.post.side_effect = requests.ConnectionError('refused')
        with pytest.raises(DuroApiError, match='Connection error'):
            client.query('{ x }')

    def test_malformed_json(self, client, session):
        resp = _response()
        resp.json.side_effect = ValueError('no json')
        session.post.return_value = resp
        with pytest.raises(DuroApiError):
            client.query('{ x }')


class TestFetchBom:

    def test_exact_match_only(self, client, session):
        session.post.return_value = _response(_search_payload('900-00001-01', '900-00001'))
        node = client.search_component('900-00001')
        assert node['id'] == 'id-900-00001'

    def test_assembly_not_found(self, client, session):
        session.post.return_value = _response(_search_payload('900-00001-01'))
        with pytest.raises(AssemblyNotFoundError) as exc:
            client.fetch_bom_by_assembly_number('900-00001')
        assert exc.value.source_kind is SourceKind.SECONDARY
        assert isinstance(exc.value, EmptySourceError)

    def test_children_become_entries(self, client, session):
        session.post.side_effect = [
            _response(_search_payload('900-00001')),
            _response(_children_payload(CHILDREN)),
        ]
        bom = client.fetch_bom_by_assembly_number(' 900-00001 ')

        assert bom.assembly_id == 'id-900-00001'
        assert [e.part_number for e in bom.entries] == ['406-00043-00-00', '453-00516-02-02']
        assert bom.entries[0].item_number == '1'
        assert bom.entries[1].quantity == '1'
        assert len(bom.raw_children) == 3

    def test_assembly_without_children(self, client, session):
        session.post.side_effect = [
            _response(_search_payload('900-00001')),
            _response(_children_payload([])),
        ]
        with pytest.raises(EmptySourceError):
            client.fetch_bom_by_assembly_number('900-00001')


class TestChildShaping:

    def test_entries_skip_children_without_part_number(self):
        assert len(children_to_entries(CHILDREN)) == 2

    def test_records_in_export_layout(self):
        records = children_to_records(CHILDREN[:1])
        assert records == [{'CPN': '406-00043-00-00', 'Item Number': '1',
                            'Quantity': '2', 'Description': 'Bracket'}]

    def test_zero_item_number_is_blank(self):
        child = {'itemNumber': 0, 'quantity': 1,
                 'component': {'id': 'c4', 'name': 'Washer', 'cpn': {'displayValue': '410-00001'}}}
        assert children_to_entries([child])[0].item_number == ''
        assert children_to_records([child])[0]['Item Number'] == ''


class TestUpdate:

    def test_item_numbers_matched_by_normalized_key(self):
        children = build_item_number_update(CHILDREN[:2], {'453-00516-02': '2'})
        assert children == [
            {'componentId': 'c1', 'quantity': 2, 'itemNumber': 1},
            {'componentId': 'c2', 'quantity': 1, 'itemNumber': '2'},
        ]

    def test_update_mutation_payload(self, client, session):
        session.post.return_value = _response({'data': {'updateComponent': {'id': 'asm'}}})
        children = build_item_number_update(CHILDREN[:2], {'453-00516-02': '2'})

        assert client.update_assembly_bom('asm', children) == {'id': 'asm'}

        _, kwargs = session.post.call_args
        payload = kwargs['json']['variables']['input']
        assert payload['id'] == 'asm'
        assert payload['children'] == [
            {'componentId': 'c1', 'quantity': 2, 'itemNumber': 1},
            {'componentId': 'c2', 'quantity': 1, 'itemNumber': 2},
        ]
