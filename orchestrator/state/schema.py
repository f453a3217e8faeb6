"""State Annotation Model

A StateSchema is a named set of fields. Each field carries a default-value
factory and, optionally, a reducer ``(current, partial) -> next`` used to
fold partial updates from nodes into the shared state.

Fields without a reducer are last-writer-wins. Updates naming a field the
schema does not declare are rejected with StateUpdateError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..errors import StateUpdateError

Reducer = Callable[[Any, Any], Any]


def append_reducer(current: Any, update: Any) -> List[Any]:
    """Ordered concatenation. A non-list update is appended as one item."""
    base = list(current) if current else []
    if update is None:
        return base
    if isinstance(update, (list, tuple)):
        return base + list(update)
    return base + [update]


def merge_reducer(current: Any, update: Any) -> Dict[str, Any]:
    """Key-wise overwrite of a mapping."""
    merged = dict(current) if current else {}
    if update:
        merged.update(update)
    return merged


def last_value(current: Any, update: Any) -> Any:
    return update


def _none() -> None:
    return None


@dataclass(frozen=True)
class StateField:
    """One declared field of a state schema.

    Attributes:
        name: Field key in the state mapping
        default_factory: Produces the initial value for new threads
        reducer: Folds a partial value into the current one (None = last-writer-wins)
    """

    name: str
    default_factory: Callable[[], Any] = _none
    reducer: Optional[Reducer] = None

    def reduce(self, current: Any, update: Any) -> Any:
        if self.reducer is None:
            return update
        return self.reducer(current, update)


class StateSchema:
    """A named, closed set of state fields sharing the reduce contract."""

    def __init__(self, name: str, fields: Iterable[StateField] = ()):
        if not name:
            raise ValueError("schema name cannot be empty")
        self.name = name
        self._fields: Dict[str, StateField] = {}
        for f in fields:
            self._fields[f.name] = f

    def declare(
        self,
        field_name: str,
        default_factory: Callable[[], Any] = _none,
        reducer: Optional[Reducer] = None,
    ) -> "StateSchema":
        """Register one field. Returns self so declarations can be chained."""
        if not field_name:
            raise ValueError("field name cannot be empty")
        self._fields[field_name] = StateField(field_name, default_factory, reducer)
        return self

    @property
    def fields(self) -> Dict[str, StateField]:
        return dict(self._fields)

    @property
    def field_names(self) -> List[str]:
        return list(self._fields)

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._fields

    def __repr__(self) -> str:
        return f"StateSchema({self.name!r}, fields={self.field_names})"

    def initial_values(self) -> Dict[str, Any]:
        """Fresh state built from every field's default factory."""
        return {name: f.default_factory() for name, f in self._fields.items()}

    def validate_update(self, partial: Mapping[str, Any]) -> None:
        unknown = [key for key in partial if key not in self._fields]
        if unknown:
            raise StateUpdateError(self.name, unknown)

    def reduce_all(self, current: Mapping[str, Any], partial: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Apply each field's reducer where ``partial`` supplies a value.

        Neither argument is mutated; untouched fields keep their values.
        """
        result = dict(current)
        if not partial:
            return result
        self.validate_update(partial)
        for key, value in partial.items():
            field_def = self._fields[key]
            if key in result:
                result[key] = field_def.reduce(result[key], value)
            else:
                result[key] = field_def.reduce(field_def.default_factory(), value)
        return result
