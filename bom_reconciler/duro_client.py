# -*- coding: utf-8 -*-
"""
DURO GraphQL client v1.0

    search_component              - exact CPN lookup of an assembly
    get_assembly_children         - raw child rows of an assembly
    fetch_bom_by_assembly_number  - search + children -> BomLineEntry list
    update_assembly_bom           - replace an assembly's children
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .config import DuroSettings, SourceKind, load_duro_settings
from .errors import AssemblyNotFoundError, DuroApiError, EmptySourceError
from .file_reader import BomLineEntry
from .utils import cell_to_text, normalize_part_number

logger = logging.getLogger(__name__)


SEARCH_COMPONENT_QUERY = """
query SearchComponent($cpn: String!) {
  components(libraryType: GENERAL, search: { cpn: $cpn }) {
    connection(first: 20) {
      edges {
        node {
          id
          name
          cpn { displayValue }
        }
      }
    }
  }
}
"""

ASSEMBLY_CHILDREN_QUERY = """
query AssemblyChildren($ids: [ID]!) {
  componentsByIds(ids: $ids) {
    id
    name
    children {
      itemNumber
      quantity
      component {
        id
        name
        cpn { displayValue }
      }
    }
  }
}
"""

UPDATE_CHILDREN_MUTATION = """
mutation UpdateAssembly($input: UpdateComponentInput!) {
  updateComponent(input: $input) {
    id
    children {
      itemNumber
      quantity
    }
  }
}
"""


@dataclass
class DuroBom:
    assembly_id: str
    entries: List[BomLineEntry]
    raw_children: List[Dict[str, Any]] = field(default_factory=list)


# ============================================================
# Child row shaping (no header mapping needed: the schema is known)
# ============================================================
def _child_cpn(child: Dict[str, Any]) -> str:
    component = child.get('component') or {}
    cpn = (component.get('cpn') or {}).get('displayValue')
    return cell_to_text(cpn) or cell_to_text(component.get('name'))


def _child_item_number(child: Dict[str, Any]) -> str:
    # 0 and null both mean "no item number"
    item_number = child.get('itemNumber')
    return cell_to_text(item_number) if item_number else ''


def children_to_entries(children: List[Dict[str, Any]]) -> List[BomLineEntry]:
    entries = []
    for child in children or []:
        part_number = _child_cpn(child)
        if not part_number:
            continue
        component = child.get('component') or {}
        quantity = child.get('quantity')
        entries.append(BomLineEntry(
            part_number=part_number,
            item_number=_child_item_number(child),
            description=cell_to_text(component.get('name')),
            quantity=cell_to_text(quantity) if quantity is not None else '1',
        ))
    return entries


def children_to_records(children: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Header-keyed rows in DURO export layout, for the update export."""
    records = []
    for child in children or []:
        component = child.get('component') or {}
        quantity = child.get('quantity')
        records.append({
            'CPN': _child_cpn(child),
            'Item Number': _child_item_number(child),
            'Quantity': cell_to_text(quantity) if quantity is not None else '1',
            'Description': cell_to_text(component.get('name')),
        })
    return records


def _safe_item_number(value: Any) -> int:
    try:
        return int(str(value or '0').strip())
    except ValueError:
        return 0


# ============================================================
# Client
# ============================================================
class DuroClient:

    def __init__(self, settings: Optional[DuroSettings] = None,
                 session: Optional[requests.Session] = None):
        self.settings = settings or load_duro_settings()
        self.session = session or requests.Session()

    def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.settings.is_configured:
            raise DuroApiError('DURO_API_URL / DURO_API_TOKEN are not set')

        try:
            response = self.session.post(
                self.settings.api_url,
                json={'query': query, 'variables': variables or {}},
                headers={'Content-Type': 'application/json', 'apiToken': self.settings.api_token},
                timeout=self.settings.timeout,
            )
        except requests.RequestException as e:
            raise DuroApiError(f'Connection error: {e}') from e

        if not response.ok:
            raise DuroApiError(f'API Error: {response.status_code} {response.reason}',
                               status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise DuroApiError('Malformed response from DURO') from e

        if payload.get('errors'):
            raise DuroApiError(f"GraphQL Error: {payload['errors'][0].get('message', 'unknown')}")

        return payload.get('data') or {}

    def search_component(self, assembly_number: str) -> Optional[Dict[str, Any]]:
        """The component whose CPN equals ``assembly_number`` exactly, or None."""
        data = self.query(SEARCH_COMPONENT_QUERY, {'cpn': assembly_number})
        edges = (((data.get('components') or {}).get('connection') or {}).get('edges')) or []

        # the search is fuzzy server-side
        for edge in edges:
            node = edge.get('node') or {}
            if (node.get('cpn') or {}).get('displayValue') == assembly_number:
                return node
        return None

    def get_assembly_children(self, component_id: str) -> List[Dict[str, Any]]:
        data = self.query(ASSEMBLY_CHILDREN_QUERY, {'ids': [component_id]})
        components = data.get('componentsByIds') or []
        if not components:
            raise DuroApiError(f'Component {component_id} not found')
        return components[0].get('children') or []

    def fetch_bom_by_assembly_number(self, assembly_number: str) -> DuroBom:
        assembly_number = (assembly_number or '').strip()
        node = self.search_component(assembly_number)
        if node is None:
            raise AssemblyNotFoundError(assembly_number)

        children = self.get_assembly_children(node['id'])
        entries = children_to_entries(children)
        if not entries:
            raise EmptySourceError(f"assembly '{assembly_number}' has no child components",
                                   SourceKind.SECONDARY)

        logger.info('[duro] %s: %d child components', assembly_number, len(entries))
        return DuroBom(assembly_id=node['id'], entries=entries, raw_children=children)

    def update_assembly_bom(self, assembly_id: str, children: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Replace the children of an assembly.

        children: [{'componentId': ..., 'quantity': ..., 'itemNumber': ...}, ...]
        """
        payload = [{
            'componentId': c['componentId'],
            'quantity': c.get('quantity', 1),
            'itemNumber': _safe_item_number(c.get('itemNumber')),
        } for c in children]

        logger.info('[duro] updating %s with %d children', assembly_id, len(payload))
        data = self.query(UPDATE_CHILDREN_MUTATION, {'input': {'id': assembly_id, 'children': payload}})
        return data.get('updateComponent') or {}


def build_item_number_update(raw_children: List[Dict[str, Any]],
                             item_numbers: Dict[str, str]) -> List[Dict[str, Any]]:
    """
    Children payload for update_assembly_bom with item numbers replaced.

    item_numbers: normalized part key -> new item number
    """
    children = []
    for child in raw_children or []:
        component = child.get('component') or {}
        key = normalize_part_number(_child_cpn(child))
        children.append({
            'componentId': component.get('id'),
            'quantity': child.get('quantity') if child.get('quantity') is not None else 1,
            'itemNumber': item_numbers.get(key, child.get('itemNumber')),
        })
    return children
