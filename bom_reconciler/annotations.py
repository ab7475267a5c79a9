# -*- coding: utf-8 -*-
"""
Per-issue user decisions (ignore, update PDM / DURO, comment).

The store lives in the Streamlit session and is passed explicitly to the
summary and export functions. Keys are (part number, issue kind) tuples;
keys that no longer match a result are kept and simply unused.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, FrozenSet, Iterator, NamedTuple, Optional, Tuple

from .config import IssueKind


class AnnotationKey(NamedTuple):
    part_number: str
    issue_kind: IssueKind


@dataclass
class Annotation:
    ignored: bool = False
    update_primary: bool = False
    update_secondary: bool = False
    comment: str = ''


class AnnotationStore:
    """Lazily populated map of AnnotationKey -> Annotation."""

    def __init__(self, entries: Optional[Dict[AnnotationKey, Annotation]] = None):
        self._entries: Dict[AnnotationKey, Annotation] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Tuple[str, IssueKind]) -> bool:
        return AnnotationKey(*key) in self._entries

    def __iter__(self) -> Iterator[AnnotationKey]:
        return iter(self._entries)

    def get(self, part_number: str, kind: IssueKind) -> Annotation:
        """Stored annotation, or a fresh default that is not stored."""
        return self._entries.get(AnnotationKey(part_number, kind)) or Annotation()

    def _ensure(self, part_number: str, kind: IssueKind) -> Annotation:
        key = AnnotationKey(part_number, kind)
        if key not in self._entries:
            self._entries[key] = Annotation()
        return self._entries[key]

    # ---------- mutation ----------
    def set_ignored(self, part_number: str, kind: IssueKind, ignored: bool = True) -> None:
        self._ensure(part_number, kind).ignored = ignored

    def set_update(self, part_number: str, kind: IssueKind,
                   primary: Optional[bool] = None, secondary: Optional[bool] = None) -> None:
        ann = self._ensure(part_number, kind)
        if primary is not None:
            ann.update_primary = primary
        if secondary is not None:
            ann.update_secondary = secondary

    def set_comment(self, part_number: str, kind: IssueKind, comment: str) -> None:
        self._ensure(part_number, kind).comment = comment or ''

    def reset_ignored(self) -> None:
        for ann in self._entries.values():
            ann.ignored = False

    # ---------- queries ----------
    def ignored_keys(self) -> FrozenSet[AnnotationKey]:
        return frozenset(k for k, a in self._entries.items() if a.ignored)

    # ---------- session storage ----------
    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {f'{k.part_number}\x1f{k.issue_kind.value}': asdict(a)
                for k, a in self._entries.items()}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Dict[str, Any]]]) -> 'AnnotationStore':
        entries = {}
        for raw_key, values in (data or {}).items():
            part_number, _, kind = raw_key.rpartition('\x1f')
            entries[AnnotationKey(part_number, IssueKind(kind))] = Annotation(**values)
        return cls(entries)
