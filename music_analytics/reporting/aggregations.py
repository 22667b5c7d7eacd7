"""
Ranking primitives shared by the reports.

Every "best X (per Y)" question is answered by one of these:

- keep_group_maximum: rows equal to the maximum of their group, ties kept
  (equivalent to a partitioned rank() == 1 window filter).
- first_maximum: a single best row, first encountered wins a tie.
- top_k: the k highest rows, duplicates retained, stable among equals.
"""

from typing import List, Optional, Sequence, Union

import polars as pl

# Column carrying the position of a group's first input row
FIRST_SEEN = "_first_seen"

Columns = Union[str, Sequence[str]]


def _as_list(columns: Optional[Columns]) -> List[str]:
    if columns is None:
        return []
    if isinstance(columns, str):
        return [columns]
    return list(columns)


def keep_group_maximum(df: pl.DataFrame, value: str, by: Optional[Columns] = None) -> pl.DataFrame:
    """
    Keep every row whose ``value`` equals the maximum within its ``by`` group.

    With no ``by`` the whole frame is one group. Row order is preserved and
    rows with a null value never qualify.
    """
    group = _as_list(by)
    maximum = pl.col(value).max()
    if group:
        maximum = maximum.over(group)
    return df.filter(pl.col(value) == maximum)


def first_maximum(df: pl.DataFrame, value: str, order: Optional[str] = FIRST_SEEN) -> pl.DataFrame:
    """
    Single row holding the maximum ``value``.

    Ties go to the row with the lowest ``order`` (usually :data:`FIRST_SEEN`),
    or to the earliest row when ``order`` is None or absent.
    """
    if order and order in df.columns:
        ranked = df.sort([value, order], descending=[True, False], nulls_last=True)
        return ranked.head(1).drop(order)
    return df.sort(value, descending=True, nulls_last=True, maintain_order=True).head(1)


def top_k(df: pl.DataFrame, value: str, k: int) -> pl.DataFrame:
    """
    The ``k`` rows with the highest ``value``, descending.

    Duplicated values are all kept (no de-duplication); equal values keep
    their input order.
    """
    if k < 1:
        raise ValueError(f"k must be a positive integer, got {k}")
    return df.sort(value, descending=True, nulls_last=True, maintain_order=True).head(k)


def money(column: str) -> pl.Expr:
    """Monetary column rounded to cents."""
    return pl.col(column).round(2)


def money_sum(column: str, alias: str) -> pl.Expr:
    """Sum rounded to cents, so equal amounts compare equal when ranking."""
    return pl.col(column).sum().round(2).alias(alias)
