# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for BizOps Console.

This module turns records and dashboard results into plain pandas DataFrames
ready to be printed (``DataFrame.to_string``) or exported as CSV by the CLI.
It does no fetching and no computation beyond formatting: list values are
joined, missing values blanked, denormalized references resolved to names
and numbers rounded to the configured number of decimals.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional

import pandas as pd

from .dashboards import FinancialOverview, MarketingSalesDashboard, ProjectSummary
from .validation import is_blank

NOT_AVAILABLE = "N/A"


def _cell(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items())
    if is_blank(value):
        return ""
    return value


def records_table(records: pd.DataFrame, columns: Iterable[str] = ()) -> pd.DataFrame:
    """
    Return a display table of records.

    Only `columns` present in `records` are kept, in the given order (all
    columns when `columns` is empty).
    """
    wanted = [c for c in columns if c in records.columns] or list(records.columns)
    table = records[wanted].copy()
    for column in wanted:
        table[column] = table[column].map(_cell)
    return table.reset_index(drop=True)


def resolve_references(
    records: pd.DataFrame,
    column: str,
    names: Mapping[str, str],
) -> pd.DataFrame:
    """
    Replace the ids of `column` by the matching names.

    Ids missing from `names`, and blank references, are shown as "N/A".
    """
    if column not in records.columns:
        return records
    out = records.copy()
    out[column] = out[column].map(
        lambda v: NOT_AVAILABLE if is_blank(v) else names.get(str(v), NOT_AVAILABLE)
    )
    return out


def record_detail(record: Mapping[str, Any]) -> pd.DataFrame:
    """One row per field of a record; nested maps are flattened with dots."""
    flat = pd.json_normalize([dict(record)], sep=".").iloc[0]
    return pd.DataFrame(
        {"field": list(flat.index), "value": [_cell(v) for v in flat.values]}
    )


def _round(value: Any, decimals: int) -> Any:
    if isinstance(value, float):
        return round(value, decimals)
    return value


def series_table(
    series: pd.Series, key: str, value: str, decimals: int
) -> pd.DataFrame:
    """Turn a labelled Series (category -> amount) into a two-column table."""
    return pd.DataFrame(
        {
            key: [str(k) for k in series.index],
            value: [_round(float(v), decimals) for v in series.values],
        }
    )


def metrics_table(metrics: Mapping[str, Any], decimals: int) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "metric": list(metrics),
            "value": [_round(v, decimals) for v in metrics.values()],
        }
    )


def _rounded_frame(df: pd.DataFrame, decimals: int) -> pd.DataFrame:
    out = df.copy()
    for column in out.columns:
        if pd.api.types.is_float_dtype(out[column]):
            out[column] = out[column].round(decimals)
    return out


def overview_tables(
    overview: FinancialOverview, decimals: int = 2
) -> dict[str, pd.DataFrame]:
    """Tables of the financial overview, keyed by section name."""
    summary = {
        "Total expenses": overview.total_expenses,
        "Total earnings": overview.total_earnings,
        "Average monthly expenses": overview.average_monthly_expenses,
        "Runway (months)": overview.runway_months,
        "Expense to revenue ratio": overview.expense_to_revenue_ratio,
    }
    return {
        "summary": metrics_table(summary, decimals),
        "expenses_by_category": series_table(
            overview.expenses_by_category, "category", "amount", decimals
        ),
        "earnings_by_category": series_table(
            overview.earnings_by_category, "category", "amount", decimals
        ),
        "monthly": _rounded_frame(overview.monthly.to_dataframe(), decimals),
    }


def project_tables(
    summary: ProjectSummary,
    decimals: int = 2,
    expense_columns: Optional[Iterable[str]] = None,
) -> dict[str, pd.DataFrame]:
    """Tables of the project summary, keyed by section name."""
    fin = summary.financials
    metrics = {
        "Project": fin.project_id,
        "Name": summary.project.get("name", ""),
        "Budget": fin.budget,
        "Expenses": fin.expenses,
        "Revenue": fin.revenue,
        "Revenue generated": fin.revenue_generated,
        "Profit margin (%)": fin.profit_margin,
    }
    columns = expense_columns or (
        "expenseId", "category", "amount", "date", "description"
    )
    return {
        "summary": metrics_table(metrics, decimals),
        "expenses": records_table(summary.expenses, columns),
        "revenue": records_table(summary.revenue, ("earningId", "amount", "date")),
    }


def marketing_sales_tables(
    dashboard: MarketingSalesDashboard,
    decimals: int = 2,
) -> dict[str, pd.DataFrame]:
    """Tables of the marketing and sales dashboard, keyed by section name."""
    funnel = dashboard.funnel
    summary = {
        "Period": dashboard.date_range.label,
        "Team": dashboard.team,
        "Leads": funnel.leads,
        "Marketing qualified leads": funnel.marketing_qualified,
        "Sales qualified leads": funnel.sales_qualified,
        "Conversions": funnel.conversions,
        "Lead conversion rate (%)": dashboard.lead_conversion_rate,
        "Average won deal size": dashboard.average_won_deal_size,
        "Average sales cycle (days)": dashboard.average_sales_cycle_days,
    }
    channels = pd.DataFrame(
        {
            "channel": [str(c) for c in dashboard.cost_per_lead.index],
            "cost_per_lead": list(dashboard.cost_per_lead.values),
            "conversion_rate": list(dashboard.conversion_rate.values),
        }
    )
    stages = pd.DataFrame(
        {
            "stage": list(dashboard.deals_by_stage.index),
            "deals": list(dashboard.deals_by_stage.values),
            "average_deal_size": list(dashboard.average_deal_size.values),
        }
    )
    top = records_table(
        dashboard.top_campaigns, ("name", "type", "cost", "revenue", "team")
    )
    return {
        "summary": metrics_table(summary, decimals),
        "channels": _rounded_frame(channels, decimals),
        "campaign_roi": _rounded_frame(dashboard.campaign_roi, decimals),
        "ctr_by_type": series_table(
            dashboard.average_ctr, "type", "average_ctr", decimals
        ),
        "top_campaigns": top,
        "pipeline": _rounded_frame(stages, decimals),
        "teams": _rounded_frame(dashboard.team_performance, decimals),
    }
