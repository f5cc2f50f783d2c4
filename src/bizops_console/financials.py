# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Financial aggregations for BizOps Console.

This module contains the pure computations behind the financial overview and
the project financials. Every function takes in-memory records (a pandas
DataFrame, or any iterable of dicts) and returns plain numbers, Series or
small dataclasses; nothing here touches the document store.

Records are expected to carry:

- ``amount``   numeric (non-numeric or missing values count as 0),
- ``date``     ISO date or datetime string, or a date/datetime object,
- ``category`` a string, or a list of strings for expenses (a multi-category
               expense is reported under the joined label "Rent, Utilities").

Main helpers
------------
- totals_by_category       : pie-chart data (category -> total amount)
- monthly_totals           : "YYYY-MM" -> total amount
- aggregate_by_month       : expenses vs earnings, month by month
- average_monthly_expenses : mean of the monthly expense totals
- runway_months            : total earnings / average monthly expenses
- profit_margin            : (budget - expenses) / budget * 100
- expense_to_revenue_ratio : total expenses / total revenue
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Union

import pandas as pd

Records = Union[pd.DataFrame, Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class MonthlyComparison:
    """
    Expenses and earnings aligned month by month.

    The three lists have the same length; months are "YYYY-MM" labels in
    chronological order and a month present on one side only has 0 on the
    other.
    """

    months: list[str]
    expenses: list[float]
    earnings: list[float]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"month": self.months, "expenses": self.expenses, "earnings": self.earnings}
        )


@dataclass(frozen=True)
class ProjectFinancials:
    """Budget, expenses and revenue of a single project."""

    project_id: str
    budget: float
    expenses: float
    revenue: float
    revenue_generated: float
    profit_margin: float


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def to_frame(records: Records) -> pd.DataFrame:
    """Return `records` as a DataFrame (a copy when it already is one)."""
    if isinstance(records, pd.DataFrame):
        return records.copy()
    return pd.DataFrame(list(records))


def _amounts(df: pd.DataFrame, column: str = "amount") -> pd.Series:
    if column not in df.columns:
        return pd.Series(0.0, index=df.index)
    return pd.to_numeric(df[column], errors="coerce").fillna(0.0).astype(float)


def _dates(df: pd.DataFrame, column: str = "date") -> pd.Series:
    """Parse a date column to UTC timestamps; unparseable values become NaT."""
    if column not in df.columns:
        return pd.Series(pd.NaT, index=df.index, dtype="datetime64[ns, UTC]")

    def _as_text(value: Any) -> Any:
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    return pd.to_datetime(
        df[column].map(_as_text), format="ISO8601", utc=True, errors="coerce"
    )


def category_label(value: Any) -> str:
    """Return the display label of a category value (lists are joined)."""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value) or "Uncategorized"
    if value is None or (isinstance(value, float) and pd.isna(value)) or value == "":
        return "Uncategorized"
    return str(value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def total_amount(records: Records) -> float:
    """Sum of the ``amount`` field over all records."""
    df = to_frame(records)
    if df.empty:
        return 0.0
    return float(_amounts(df).sum())


def totals_by_category(records: Records) -> pd.Series:
    """
    Total amount per category label, sorted by decreasing amount.

    Returns
    -------
    pandas.Series
        Index: category labels; values: totals (float). Empty when there are
        no records.
    """
    df = to_frame(records)
    if df.empty:
        return pd.Series(dtype=float, name="amount")

    labels = (
        df["category"].map(category_label)
        if "category" in df.columns
        else pd.Series("Uncategorized", index=df.index)
    )
    totals = _amounts(df).groupby(labels).sum().sort_values(ascending=False)
    totals.index.name = "category"
    totals.name = "amount"
    return totals


def records_for_category(records: Records, category: str) -> pd.DataFrame:
    """Return the records whose category label equals `category` (drill-down)."""
    df = to_frame(records)
    if df.empty or "category" not in df.columns:
        return df.iloc[0:0]
    mask = df["category"].map(category_label) == category
    return df[mask].reset_index(drop=True)


def monthly_totals(records: Records, *, date_field: str = "date") -> pd.Series:
    """
    Total amount per calendar month.

    Records whose date cannot be parsed are ignored.

    Returns
    -------
    pandas.Series
        Index: "YYYY-MM" labels in chronological order; values: totals.
    """
    df = to_frame(records)
    if df.empty:
        return pd.Series(dtype=float, name="amount")

    dates = _dates(df, date_field)
    valid = dates.notna()
    if not valid.any():
        return pd.Series(dtype=float, name="amount")

    months = dates[valid].dt.strftime("%Y-%m")
    totals = _amounts(df)[valid].groupby(months).sum().sort_index()
    totals.name = "amount"
    return totals


def aggregate_by_month(expenses: Records, earnings: Records) -> MonthlyComparison:
    """
    Align expenses and earnings month by month.

    Example
    -------
    expenses [{Jan, 100}, {Feb, 50}] and earnings [{Jan, 30}] give
    months ["2025-01", "2025-02"], expenses [100, 50], earnings [30, 0].
    """
    exp = monthly_totals(expenses)
    earn = monthly_totals(earnings)
    months = sorted(set(exp.index) | set(earn.index))
    return MonthlyComparison(
        months=list(months),
        expenses=[float(exp.get(m, 0.0)) for m in months],
        earnings=[float(earn.get(m, 0.0)) for m in months],
    )


def average_monthly_expenses(expenses: Records) -> float:
    """Mean of the monthly expense totals (months without expenses are not counted)."""
    totals = monthly_totals(expenses)
    if totals.empty:
        return 0.0
    return float(totals.mean())


def runway_months(total_earnings: float, avg_monthly_expenses: float) -> float:
    """
    Number of months the earnings cover at the current spending rate.

    Returns 0 when there are no expenses.
    """
    if avg_monthly_expenses <= 0:
        return 0.0
    return total_earnings / avg_monthly_expenses


def profit_margin(budget: float, expenses: float) -> float:
    """
    Profit margin in percent: (budget - expenses) / budget * 100.

    Returns 0 when the budget is not positive.

    >>> profit_margin(1000, 400)
    60.0
    """
    if budget <= 0:
        return 0.0
    return (budget - expenses) / budget * 100


def expense_to_revenue_ratio(total_expenses: float, total_revenue: float) -> float:
    """Total expenses / total revenue; 0 when there is no revenue."""
    if total_revenue <= 0:
        return 0.0
    return total_expenses / total_revenue


def project_financials(
    project: Mapping[str, Any],
    expenses: Records,
    revenue: Records,
) -> ProjectFinancials:
    """
    Compute the financial summary of a project.

    Parameters
    ----------
    project:
        Project record (``projectId`` and ``financialMetrics.budget`` are used).
    expenses:
        Expenses attached to the project.
    revenue:
        "Project Revenue" earnings referencing the project.
    """
    metrics = project.get("financialMetrics") or {}
    try:
        budget = float(metrics.get("budget") or 0)
    except (TypeError, ValueError):
        budget = 0.0
    spent = total_amount(expenses)
    return ProjectFinancials(
        project_id=str(project.get("projectId") or project.get("id") or ""),
        budget=budget,
        expenses=spent,
        revenue=total_amount(revenue),
        revenue_generated=budget - spent,
        profit_margin=profit_margin(budget, spent),
    )
