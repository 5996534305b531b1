"""
Score normalization for result sets from heterogeneous searches.

Vector distance and full-text relevance live on incommensurable scales.
Both methods below map a result set onto [0, 1] where 1.0 always means
"best", so the two sides can be combined arithmetically.

Methods:
- rank:  1 - (rank - 1) / (n - 1), rank is the 1-based position
- score: min-max scaling of the raw score column, inverted for
         ascending (distance) columns

Edge cases resolve deterministically, never as errors:
- n == 1 (rank) maps the single row to 1.0
- all-equal raw scores (score) map every row to 1.0
"""

from __future__ import annotations

from enum import Enum

from hybrid_rerank.search.exceptions import InvalidConfigError
from hybrid_rerank.search.results import ResultSet, Row


class NormalizeMethod(str, Enum):
    """How raw scores are mapped onto a common [0, 1] scale."""

    RANK = "rank"
    SCORE = "score"


def parse_normalize_method(method: NormalizeMethod | str) -> NormalizeMethod:
    """Coerce a string to NormalizeMethod.

    Raises:
        InvalidConfigError: If method is not 'rank' or 'score'
    """
    try:
        return NormalizeMethod(method)
    except ValueError:
        valid = ", ".join(m.value for m in NormalizeMethod)
        raise InvalidConfigError(
            f"Invalid normalize method '{method}'. Valid options: {valid}"
        ) from None


def normalized_scores(
    result_set: ResultSet,
    method: NormalizeMethod | str,
) -> list[float]:
    """Compute normalized scores aligned with the rows of result_set.

    Args:
        result_set: Scored result set in rank order
        method: "rank" or "score"

    Returns:
        List of floats in [0, 1], higher is better

    Raises:
        InvalidConfigError: If method is not recognized
    """
    method = parse_normalize_method(method)
    count = len(result_set)
    if count == 0:
        return []

    if method is NormalizeMethod.RANK:
        if count == 1:
            return [1.0]
        return [1.0 - position / (count - 1) for position in range(count)]

    if result_set.score_column is None:
        raise InvalidConfigError("Score normalization requires a scored result set")

    raw = [float(value) for value in result_set.scores()]  # type: ignore[arg-type]
    low = min(raw)
    high = max(raw)
    if high == low:
        return [1.0] * count

    span = high - low
    if result_set.ascending:
        return [(high - value) / span for value in raw]
    return [(value - low) / span for value in raw]


def normalize(
    result_set: ResultSet,
    method: NormalizeMethod | str,
) -> ResultSet:
    """Replace the score column of each row with its normalized value.

    The returned set keeps the same column name and row order but is
    declared descending, since 1.0 now means best on either side.

    Args:
        result_set: Scored result set in rank order
        method: "rank" or "score"

    Returns:
        New ResultSet; the input is not modified

    Raises:
        InvalidConfigError: If method is not recognized
    """
    values = normalized_scores(result_set, method)
    column = result_set.score_column
    if column is None:
        return result_set

    rows: list[Row] = []
    for row, value in zip(result_set.rows, values):
        rows.append(row.with_scores({**row.scores, column: value}))
    return ResultSet(rows=tuple(rows), score_column=column, ascending=False)
