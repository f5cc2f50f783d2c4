# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Marketing and sales KPIs for BizOps Console.

Pure computations over lead, campaign, deal and team records (pandas
DataFrames or iterables of dicts). Missing or non-numeric figures count as 0
and every ratio with a zero denominator is 0, so an empty period produces a
dashboard full of zeros rather than an error.

Marketing
---------
- lead_funnel                : total leads, MQLs, SQLs and conversions
- cost_per_lead_by_channel   : spend / leads, per channel
- conversion_rate_by_channel : conversions / leads * 100, per channel
- campaign_roi / roi_by_campaign : (revenue - cost) / cost * 100
- average_ctr_by_type        : mean click-through rate per campaign type
- top_campaigns              : campaigns with the highest revenue

Sales
-----
- deals_by_stage             : number of deals in each pipeline stage
- average_deal_size_by_stage : mean deal value in each stage
- lead_conversion_rate       : won deals / deals in stage "Lead" * 100
- average_won_deal_size      : mean value of won deals
- average_sales_cycle_days   : mean days from entry to close of won deals
                               (an open deal counts up to today)
- team_performance           : per team won revenue, quota, quota attainment,
                               win rate and average sales cycle
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

import pandas as pd

from .financials import Records, to_frame
from .sales import LEAD_STAGE, STAGES, WON_OUTCOME

UNKNOWN = "Unknown"


@dataclass(frozen=True)
class LeadFunnel:
    """Totals of the marketing funnel."""

    leads: float
    marketing_qualified: float
    sales_qualified: float
    conversions: float


def _numbers(df: pd.DataFrame, column: str) -> pd.Series:
    if column not in df.columns:
        return pd.Series(0.0, index=df.index)
    return pd.to_numeric(df[column], errors="coerce").fillna(0.0).astype(float)


def _labels(df: pd.DataFrame, column: str) -> pd.Series:
    if column not in df.columns:
        return pd.Series(UNKNOWN, index=df.index)
    return df[column].map(
        lambda v: UNKNOWN if v is None or v == "" or v != v else str(v)
    )


def _won_mask(df: pd.DataFrame) -> pd.Series:
    if "outcome" not in df.columns:
        return pd.Series(False, index=df.index)
    return df["outcome"] == WON_OUTCOME


def _safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator * scale


# ---------------------------------------------------------------------------
# Marketing
# ---------------------------------------------------------------------------


def lead_funnel(leads: Records) -> LeadFunnel:
    """Sum leads, MQLs, SQLs and conversions over all lead records."""
    df = to_frame(leads)
    return LeadFunnel(
        leads=float(_numbers(df, "leads").sum()),
        marketing_qualified=float(_numbers(df, "marketingQualifiedLeads").sum()),
        sales_qualified=float(_numbers(df, "salesQualifiedLeads").sum()),
        conversions=float(_numbers(df, "conversions").sum()),
    )


def _per_channel(leads: Records) -> pd.DataFrame:
    df = to_frame(leads)
    if df.empty:
        return pd.DataFrame(columns=["leads", "spend", "conversions"], dtype=float)
    frame = pd.DataFrame(
        {
            "channel": _labels(df, "channel"),
            "leads": _numbers(df, "leads"),
            "spend": _numbers(df, "spend"),
            "conversions": _numbers(df, "conversions"),
        }
    )
    # sort=False keeps channels in order of first appearance
    return frame.groupby("channel", sort=False).sum()


def cost_per_lead_by_channel(leads: Records) -> pd.Series:
    """Spend divided by number of leads, per channel (0 for a channel without leads)."""
    grouped = _per_channel(leads)
    result = pd.Series(
        [_safe_ratio(s, n) for s, n in zip(grouped["spend"], grouped["leads"])],
        index=grouped.index,
        dtype=float,
        name="cost_per_lead",
    )
    return result


def conversion_rate_by_channel(leads: Records) -> pd.Series:
    """Conversions divided by leads, in percent, per channel."""
    grouped = _per_channel(leads)
    return pd.Series(
        [
            _safe_ratio(c, n, 100.0)
            for c, n in zip(grouped["conversions"], grouped["leads"])
        ],
        index=grouped.index,
        dtype=float,
        name="conversion_rate",
    )


def campaign_roi(cost: float, revenue: float) -> float:
    """
    Return on investment of a campaign, in percent.

    >>> campaign_roi(100, 250)
    150.0
    >>> campaign_roi(0, 250)
    0.0
    """
    return _safe_ratio(revenue - cost, cost, 100.0)


def roi_by_campaign(campaigns: Records) -> pd.DataFrame:
    """One row per campaign with its name, cost, revenue and ROI."""
    df = to_frame(campaigns)
    if df.empty:
        return pd.DataFrame(columns=["name", "cost", "revenue", "roi"])
    cost = _numbers(df, "cost")
    revenue = _numbers(df, "revenue")
    names = (
        df["name"].fillna("Unnamed").replace("", "Unnamed")
        if "name" in df.columns
        else pd.Series("Unnamed", index=df.index)
    )
    return pd.DataFrame(
        {
            "name": names,
            "cost": cost,
            "revenue": revenue,
            "roi": [campaign_roi(c, r) for c, r in zip(cost, revenue)],
        }
    ).reset_index(drop=True)


def average_ctr_by_type(campaigns: Records) -> pd.Series:
    """Mean click-through rate per campaign type."""
    df = to_frame(campaigns)
    if df.empty:
        return pd.Series(dtype=float, name="average_ctr")
    ctr = _numbers(df, "clickThroughRate")
    result = ctr.groupby(_labels(df, "type"), sort=False).mean()
    result.name = "average_ctr"
    return result


def top_campaigns(campaigns: Records, n: int = 5) -> pd.DataFrame:
    """The `n` campaigns with the highest revenue, highest first."""
    df = to_frame(campaigns)
    if df.empty:
        return df
    df = df.assign(revenue=_numbers(df, "revenue"))
    ranked = df.sort_values("revenue", ascending=False, kind="stable")
    return ranked.head(n).reset_index(drop=True)


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------


def deals_by_stage(deals: Records) -> pd.Series:
    """Number of deals in each pipeline stage (every stage is present)."""
    df = to_frame(deals)
    if df.empty or "stage" not in df.columns:
        return pd.Series(0, index=list(STAGES), name="deals")
    counts = df["stage"].value_counts()
    return pd.Series(
        [int(counts.get(stage, 0)) for stage in STAGES],
        index=list(STAGES),
        name="deals",
    )


def average_deal_size_by_stage(deals: Records) -> pd.Series:
    """Mean deal value in each pipeline stage (0 for an empty stage)."""
    df = to_frame(deals)
    values = []
    for stage in STAGES:
        if df.empty or "stage" not in df.columns:
            values.append(0.0)
            continue
        stage_values = _numbers(df, "value")[df["stage"] == stage]
        values.append(float(stage_values.mean()) if len(stage_values) else 0.0)
    return pd.Series(values, index=list(STAGES), name="average_deal_size")


def lead_conversion_rate(deals: Records) -> float:
    """Won deals divided by deals still in the "Lead" stage, in percent."""
    df = to_frame(deals)
    if df.empty:
        return 0.0
    lead_count = int((df["stage"] == LEAD_STAGE).sum()) if "stage" in df.columns else 0
    won_count = int(_won_mask(df).sum())
    return _safe_ratio(won_count, lead_count, 100.0)


def average_won_deal_size(deals: Records) -> float:
    """Mean value of won deals."""
    df = to_frame(deals)
    if df.empty:
        return 0.0
    won_values = _numbers(df, "value")[_won_mask(df)]
    return float(won_values.mean()) if len(won_values) else 0.0


def sales_cycle_days(
    deal: Mapping[str, Any], today: Optional[date] = None
) -> Optional[float]:
    """
    Days between ``dateEntered`` and ``dateClosed`` (or today if still open).

    Returns None when the entry date is missing or invalid.
    """
    entered = pd.to_datetime(deal.get("dateEntered") or None, errors="coerce")
    if pd.isna(entered):
        return None
    closed_raw = deal.get("dateClosed") or None
    closed = pd.to_datetime(closed_raw, errors="coerce") if closed_raw else pd.NaT
    if pd.isna(closed):
        closed = pd.Timestamp(today or date.today())
    return (closed - entered) / pd.Timedelta(days=1)


def _average_cycle(rows: pd.DataFrame, today: Optional[date]) -> float:
    cycles = [
        days
        for days in (sales_cycle_days(row, today) for row in rows.to_dict("records"))
        if days is not None
    ]
    return sum(cycles) / len(cycles) if cycles else 0.0


def average_sales_cycle_days(deals: Records, today: Optional[date] = None) -> float:
    """Mean sales-cycle length of won deals, in days."""
    df = to_frame(deals)
    if df.empty:
        return 0.0
    return _average_cycle(df[_won_mask(df)], today)


def team_performance(
    deals: Records,
    teams: Records,
    today: Optional[date] = None,
) -> pd.DataFrame:
    """
    Per-team sales performance.

    Result columns
    --------------
    - team              team name
    - revenue           total value of the team's won deals
    - quota             team quota
    - quota_attainment  revenue / quota * 100 (0 without quota)
    - win_rate          won deals / all team deals * 100
    - avg_cycle_days    mean sales cycle of the team's won deals
    """
    deals_df = to_frame(deals)
    teams_df = to_frame(teams)
    columns = [
        "team", "revenue", "quota", "quota_attainment", "win_rate", "avg_cycle_days"
    ]
    if teams_df.empty:
        return pd.DataFrame(columns=columns)

    has_team = "team" in deals_df.columns
    rows = []
    for team in teams_df.to_dict("records"):
        name = team.get("teamName") or UNKNOWN
        try:
            quota = float(team.get("quota") or 0)
        except (TypeError, ValueError):
            quota = 0.0
        if pd.isna(quota):
            quota = 0.0

        if deals_df.empty or not has_team:
            team_deals = deals_df.iloc[0:0]
        else:
            team_deals = deals_df[deals_df["team"] == name]
        won = team_deals[_won_mask(team_deals)] if not team_deals.empty else team_deals
        revenue = float(_numbers(won, "value").sum()) if not won.empty else 0.0

        rows.append(
            {
                "team": name,
                "revenue": revenue,
                "quota": quota,
                "quota_attainment": _safe_ratio(revenue, quota, 100.0),
                "win_rate": _safe_ratio(len(won), len(team_deals), 100.0),
                "avg_cycle_days": _average_cycle(won, today) if not won.empty else 0.0,
            }
        )
    return pd.DataFrame(rows, columns=columns)
