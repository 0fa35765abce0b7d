"""Abstract relation query interface and an in-memory pandas implementation."""
from __future__ import annotations

import copy
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from creator_discovery.core.errors import BackendError
from creator_discovery.core.filters import Predicate


@dataclass
class TableQuery:
    """Single-relation query: projection, predicates, order and an inclusive window."""

    table: str
    columns: str = "*"
    predicates: List[Predicate] = field(default_factory=list)
    order: List[Tuple[str, bool]] = field(default_factory=list)
    window: Optional[Tuple[int, int]] = None
    count: bool = True


@dataclass
class QueryResult:
    rows: List[Dict[str, Any]]
    count: Optional[int] = None


class QueryBackend(ABC):
    """Generic filter/sort/range capability over one relation."""

    @abstractmethod
    def select(self, query: TableQuery) -> QueryResult:
        ...

    @abstractmethod
    def update(self, table: str, row_id: Any, values: Dict[str, Any]) -> None:
        ...


def parse_columns(columns: str) -> Optional[List[str]]:
    """``None`` means every column."""
    text = (columns or "*").strip()
    if text == "*":
        return None
    return [column.strip() for column in text.split(",") if column.strip()]


def _to_float(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _like_to_regex(pattern: str) -> str:
    parts = [re.escape(part) for part in str(pattern).split("%")]
    return "^" + ".*".join(parts) + "$"


class DataFrameBackend(QueryBackend):
    """Serve a list of row dicts through the query interface using pandas masks."""

    def __init__(self, rows: Iterable[Dict[str, Any]], table: str = "creatordata") -> None:
        self.table = table
        self._rows: List[Dict[str, Any]] = [dict(row) for row in rows]
        self._frame: Optional[pd.DataFrame] = None
        self.select_calls = 0

    @property
    def frame(self) -> pd.DataFrame:
        if self._frame is None:
            self._frame = pd.DataFrame.from_records(self._rows) if self._rows else pd.DataFrame()
        return self._frame

    def _check_table(self, table: str) -> None:
        if table != self.table:
            raise BackendError(f"Unknown table '{table}'")

    def _column(self, name: str) -> pd.Series:
        if name not in self.frame.columns:
            return pd.Series([None] * len(self.frame), index=self.frame.index, dtype=object)
        return self.frame[name]

    def _mask(self, predicate: Predicate) -> pd.Series:
        if predicate.op == "or":
            mask = pd.Series(False, index=self.frame.index)
            for member in predicate.value:
                mask = mask | self._mask(member)
            return mask

        column = self._column(predicate.field)
        if predicate.op == "eq":
            return column == predicate.value
        if predicate.op == "in":
            return column.isin(list(predicate.value))
        if predicate.op == "ilike":
            regex = _like_to_regex(predicate.value)
            return column.astype(str).str.match(regex, case=False) & column.notna()
        numeric = column.map(_to_float)
        if predicate.op == "gte":
            return numeric >= predicate.value
        if predicate.op == "lte":
            return numeric <= predicate.value
        raise BackendError(f"Unsupported predicate op: {predicate.op}")

    def _sort_key(self, name: str, index: pd.Index) -> pd.Series:
        column = self._column(name).loc[index]
        numeric = column.map(_to_float)
        if numeric.notna().any():
            return numeric
        return column.where(column.notna(), None).astype(object)

    def _order(self, index: pd.Index, order: Sequence[Tuple[str, bool]]) -> pd.Index:
        if not order or len(index) == 0:
            return index
        keys = pd.DataFrame({f"k{i}": self._sort_key(name, index) for i, (name, _) in enumerate(order)}, index=index)
        ordered = keys.sort_values(
            by=list(keys.columns),
            ascending=[ascending for _, ascending in order],
            na_position="last",
            kind="mergesort",
        )
        return ordered.index

    def select(self, query: TableQuery) -> QueryResult:
        self._check_table(query.table)
        self.select_calls += 1
        if self.frame.empty:
            return QueryResult(rows=[], count=0 if query.count else None)

        mask = pd.Series(True, index=self.frame.index)
        for predicate in query.predicates:
            mask = mask & self._mask(predicate).fillna(False).astype(bool)

        index = self._order(self.frame.index[mask.to_numpy()], query.order)
        total = len(index)
        if query.window is not None:
            start, end = query.window
            index = index[start:end + 1]

        columns = parse_columns(query.columns)
        rows: List[Dict[str, Any]] = []
        for position in index:
            row = copy.deepcopy(self._rows[position])
            if columns is not None:
                row = {name: row.get(name) for name in columns}
            rows.append(row)
        return QueryResult(rows=rows, count=total if query.count else None)

    def update(self, table: str, row_id: Any, values: Dict[str, Any]) -> None:
        self._check_table(table)
        for row in self._rows:
            if row.get("id") == row_id:
                row.update(values)
                self._frame = None
                return
        raise BackendError(f"Row '{row_id}' not found in '{table}'")
