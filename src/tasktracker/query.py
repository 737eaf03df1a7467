"""Typed predicates and assignments for building filter and update statements.

Callers never hand SQL text to the repository. Filters accumulate as
``(column, operator, value)`` triples and updates as ``column -> value``
pairs; both are checked against a whitelist of mapped columns and rendered to
SQLAlchemy expressions, so every value reaches the database as a bound
parameter.
"""

import operator
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List

from sqlalchemy.sql.elements import ColumnElement

OPERATORS: Dict[str, Callable[[Any, Any], ColumnElement]] = {
    "eq": operator.eq,
}


@dataclass(frozen=True)
class Predicate:
    column: str
    operator: str
    value: Any

    def render(self, model) -> ColumnElement:
        return OPERATORS[self.operator](getattr(model, self.column), self.value)


class Criteria:
    """Accumulates predicates joined with ``AND`` for one mapped model."""

    def __init__(self, model, columns: Iterable[str]) -> None:
        self.model = model
        self.columns = frozenset(columns)
        self.predicates: List[Predicate] = []

    def where(self, column: str, value: Any, op: str = "eq") -> "Criteria":
        if column not in self.columns:
            raise ValueError(f"column {column!r} cannot be filtered")
        if op not in OPERATORS:
            raise ValueError(f"unsupported operator {op!r}")
        self.predicates.append(Predicate(column, op, value))
        return self

    def where_present(self, column: str, value: Any, op: str = "eq") -> "Criteria":
        """Add the predicate only when a value was supplied."""
        if value is None or value == "":
            return self
        return self.where(column, value, op)

    def render(self) -> List[ColumnElement]:
        return [predicate.render(self.model) for predicate in self.predicates]

    def __len__(self) -> int:
        return len(self.predicates)


class Assignments:
    """Column assignments for a partial ``UPDATE``."""

    def __init__(self, model, columns: Iterable[str]) -> None:
        self.model = model
        self.columns = frozenset(columns)
        self.values: Dict[str, Any] = {}

    def set(self, column: str, value: Any) -> "Assignments":
        if column not in self.columns:
            raise ValueError(f"column {column!r} cannot be updated")
        self.values[column] = value
        return self

    def render(self) -> Dict[Any, Any]:
        return {getattr(self.model, column): value for column, value in self.values.items()}

    def __len__(self) -> int:
        return len(self.values)
