"""
Record lookup and projection helpers.

Upstream APIs return nested collections (conferences containing divisions
containing teams, or a flat list of games). Adapters locate the record a
caller asked for by comparing an identifier against one or more fields,
case-insensitively and in upstream order, with the first match winning.
Status codes found on the matched record are turned into sentences through a
:class:`StatusMessages` table.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

_MISSING = object()


def normalise(value: Any) -> str:
    """Case-normalised string form used for identifier comparison."""

    return str(value).strip().casefold() if value is not None else ""


def dig(record: Any, path: str | Sequence[Any], default: Any = None) -> Any:
    """
    Follow ``path`` (dotted string or sequence of keys/indices) through nested
    mappings and sequences, returning ``default`` when any step is missing.
    """

    steps: Sequence[Any] = path.split(".") if isinstance(path, str) else path
    current = record
    for step in steps:
        if isinstance(current, Mapping):
            current = current.get(step, _MISSING)
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(step)]
            except (IndexError, ValueError):
                current = _MISSING
        else:
            current = _MISSING
        if current is _MISSING:
            return default
    return current


def _as_list(value: Any) -> list:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return list(value)
    return []


def find_first(records: Iterable[Mapping[str, Any]], identifier: str, *fields: str) -> Optional[Mapping[str, Any]]:
    """
    Return the first record where any of ``fields`` equals ``identifier``.

    Comparison goes through :func:`normalise`, so ``"LAL"`` and ``"lal"``
    select the same record. Duplicates are resolved by upstream order.
    """

    wanted = normalise(identifier)
    if not wanted:
        return None
    for record in records:
        if not isinstance(record, Mapping):
            continue
        for field_path in fields:
            if normalise(dig(record, field_path)) == wanted:
                return record
    return None


def iter_nested(collection: Any, *levels: str) -> Iterator[Tuple[Tuple[Mapping[str, Any], ...], Mapping[str, Any]]]:
    """
    Walk a nested collection depth-first in insertion order.

    ``iter_nested(payload, "conferences", "divisions", "teams")`` yields
    ``((conference, division), team)`` for every team.
    """

    if not levels:
        return

    def _walk(node: Any, remaining: Sequence[str], parents: Tuple[Mapping[str, Any], ...]):
        children = _as_list(dig(node, remaining[0]))
        for child in children:
            if not isinstance(child, Mapping):
                continue
            if len(remaining) == 1:
                yield parents, child
            else:
                yield from _walk(child, remaining[1:], parents + (child,))

    yield from _walk(collection, levels, ())


def find_nested(
    collection: Any,
    levels: Sequence[str],
    predicate: Callable[[Mapping[str, Any]], bool],
) -> Optional[Tuple[Tuple[Mapping[str, Any], ...], Mapping[str, Any]]]:
    """Return ``(parents, leaf)`` for the first leaf satisfying ``predicate``."""

    for parents, leaf in iter_nested(collection, *levels):
        if predicate(leaf):
            return parents, leaf
    return None


@dataclass(frozen=True)
class StatusMessages:
    """
    Read-only mapping of status codes to sentence templates.

    Templates use :meth:`str.format` placeholders. :meth:`render` returns
    ``None`` for codes that have no entry; callers treat that as "nothing to
    report" rather than as an error.
    """

    templates: Mapping[Optional[str], str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "templates", MappingProxyType(dict(self.templates)))

    def __contains__(self, status: object) -> bool:
        return status in self.templates

    def render(self, status: Optional[str], **fields: Any) -> Optional[str]:
        template = self.templates.get(status)
        if template is None:
            return None
        return template.format(**fields)
