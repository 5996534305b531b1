"""
Result set data model shared by searches, normalizers and rerankers.

A ResultSet is an ordered, immutable sequence of rows that declares which
score column it is sorted by and in which direction:

- vector search:     _distance, ascending (lower is better)
- full-text search:  _score, descending (higher is better)
- fused output:      _relevance_score, descending (higher is better)

Invariants enforced at construction:
- No duplicate row identifiers
- Rows sorted by the declared score column in the declared direction
- Score column values are finite (no NaN or infinity)
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

# =============================================================================
# Score Column Names
# =============================================================================

DISTANCE_COLUMN = "_distance"
SCORE_COLUMN = "_score"
RELEVANCE_COLUMN = "_relevance_score"

SCORE_COLUMNS = (DISTANCE_COLUMN, SCORE_COLUMN, RELEVANCE_COLUMN)

_DEFAULT_ID_COLUMN = "id"


# =============================================================================
# Row
# =============================================================================


@dataclass
class Row:
    """A single retrieved entity.

    Attributes:
        id: Unique identifier (the table's primary key)
        payload: Arbitrary named columns
        scores: Score fields keyed by column name; None marks an absent side
    """

    id: str | int
    payload: dict[str, Any] = field(default_factory=dict)
    scores: dict[str, float | None] = field(default_factory=dict)

    def get_score(self, column: str) -> float | None:
        """Get a score column value, None if absent."""
        return self.scores.get(column)

    def with_scores(self, scores: Mapping[str, float | None]) -> Row:
        """Return a copy of this row carrying exactly the given scores."""
        return Row(id=self.id, payload=dict(self.payload), scores=dict(scores))

    def to_record(self) -> dict[str, Any]:
        """Flatten to a plain dict: id, payload columns, then score columns."""
        return {_DEFAULT_ID_COLUMN: self.id, **self.payload, **self.scores}

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        id_column: str = _DEFAULT_ID_COLUMN,
    ) -> Row:
        """Build a row from a flat dict, splitting score columns from payload.

        Raises:
            ValueError: If the record has no identifier column
        """
        if id_column not in record:
            raise ValueError(f"Record is missing identifier column '{id_column}'")

        payload: dict[str, Any] = {}
        scores: dict[str, float | None] = {}
        for key, value in record.items():
            if key == id_column:
                continue
            if key in SCORE_COLUMNS:
                scores[key] = None if value is None else float(value)
            else:
                payload[key] = value
        return cls(id=record[id_column], payload=payload, scores=scores)


# =============================================================================
# ResultSet
# =============================================================================


@dataclass(frozen=True)
class ResultSet:
    """Ordered table of rows with a declared score column and direction.

    Attributes:
        rows: Rows in rank order
        score_column: Column the rows are sorted by (None for unscored sets
            such as the output of merge)
        ascending: True when lower values are better (vector distance)
    """

    rows: tuple[Row, ...] = ()
    score_column: str | None = None
    ascending: bool = False

    def __post_init__(self) -> None:
        """Validate identifier uniqueness and sort order."""
        object.__setattr__(self, "rows", tuple(self.rows))

        seen: set[str | int] = set()
        for row in self.rows:
            if row.id in seen:
                raise ValueError(f"Duplicate row identifier in result set: {row.id!r}")
            seen.add(row.id)

        if self.score_column is None:
            return

        previous: float | None = None
        for row in self.rows:
            value = row.get_score(self.score_column)
            if value is None:
                raise ValueError(
                    f"Row {row.id!r} has no value for score column '{self.score_column}'"
                )
            if not math.isfinite(value):
                raise ValueError(
                    f"Row {row.id!r} has non-finite {self.score_column} value: {value}"
                )
            if previous is not None:
                out_of_order = value < previous if self.ascending else value > previous
                if out_of_order:
                    direction = "ascending" if self.ascending else "descending"
                    raise ValueError(
                        f"Result set is not sorted {direction} by '{self.score_column}'"
                    )
            previous = value

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def empty(cls, score_column: str | None = None, ascending: bool = False) -> ResultSet:
        """Create an empty result set."""
        return cls(rows=(), score_column=score_column, ascending=ascending)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Mapping[str, Any]],
        score_column: str | None = None,
        ascending: bool = False,
        id_column: str = _DEFAULT_ID_COLUMN,
    ) -> ResultSet:
        """Build a result set from flat dict records (already in rank order)."""
        rows = tuple(Row.from_record(record, id_column=id_column) for record in records)
        return cls(rows=rows, score_column=score_column, ascending=ascending)

    @classmethod
    def vector(cls, rows: Iterable[Row]) -> ResultSet:
        """Result set from vector search, sorted by _distance ascending."""
        return cls(rows=tuple(rows), score_column=DISTANCE_COLUMN, ascending=True)

    @classmethod
    def full_text(cls, rows: Iterable[Row]) -> ResultSet:
        """Result set from full-text search, sorted by _score descending."""
        return cls(rows=tuple(rows), score_column=SCORE_COLUMN, ascending=False)

    @classmethod
    def fused(cls, rows: Iterable[Row]) -> ResultSet:
        """Result set from a reranker, sorted by _relevance_score descending."""
        return cls(rows=tuple(rows), score_column=RELEVANCE_COLUMN, ascending=False)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def ids(self) -> list[str | int]:
        """Get row identifiers in rank order."""
        return [row.id for row in self.rows]

    def scores(self) -> list[float | None]:
        """Get values of the declared score column in rank order."""
        if self.score_column is None:
            return []
        return [row.get_score(self.score_column) for row in self.rows]

    def head(self, n: int | None) -> ResultSet:
        """Return the first n rows (all rows when n is None)."""
        if n is None or n >= len(self.rows):
            return self
        return ResultSet(
            rows=self.rows[:n],
            score_column=self.score_column,
            ascending=self.ascending,
        )

    def to_records(self) -> list[dict[str, Any]]:
        """Flatten all rows to plain dicts."""
        return [row.to_record() for row in self.rows]
