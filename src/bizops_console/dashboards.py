# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Dashboard orchestration for BizOps Console.

Each dashboard fetches the documents it needs from the store and hands them
to the pure aggregations of `financials.py` and `kpis.py`. Nothing is cached:
every call refetches and recomputes from scratch.

Dashboards
----------
- build_financial_overview        : organization or account level finances
- category_records                : expenses and earnings of one category
- build_project_summary           : budget, expenses and revenue of a project
- watch_project_revenue           : live total of a project's revenue
- build_marketing_sales_dashboard : marketing funnel, campaigns and sales KPIs
                                    over a date range, optionally for one team
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from . import financials, kpis
from .db import FieldFilter, load_collection, subscribe_documents
from .earnings import PROJECT_REVENUE
from .live import Subscription
from .marketing import DEFAULT_TEAM
from .periods import DateRange
from .records_service import get_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FinancialOverview:
    """Financial overview of the organization or of one account."""

    account_id: Optional[str]
    expenses_by_category: pd.Series
    earnings_by_category: pd.Series
    monthly: financials.MonthlyComparison
    total_expenses: float
    total_earnings: float
    average_monthly_expenses: float
    runway_months: float
    expense_to_revenue_ratio: float


@dataclass(frozen=True)
class ProjectSummary:
    """A project record with its expenses, revenue and financials."""

    project: dict
    expenses: pd.DataFrame
    revenue: pd.DataFrame
    financials: financials.ProjectFinancials


@dataclass(frozen=True)
class MarketingSalesDashboard:
    """Marketing and sales KPIs over a date range."""

    date_range: DateRange
    team: str
    funnel: kpis.LeadFunnel
    cost_per_lead: pd.Series
    conversion_rate: pd.Series
    campaign_roi: pd.DataFrame
    average_ctr: pd.Series
    top_campaigns: pd.DataFrame
    deals_by_stage: pd.Series
    average_deal_size: pd.Series
    lead_conversion_rate: float
    average_won_deal_size: float
    average_sales_cycle_days: float
    team_performance: pd.DataFrame


def build_financial_overview(
    app_config, account_id: Optional[str] = None
) -> FinancialOverview:
    """
    Build the financial overview.

    Parameters
    ----------
    app_config:
        Application configuration.
    account_id:
        When given, only expenses and earnings with ``accountId == account_id``
        are considered (account-level view).
    """
    filters = [FieldFilter("accountId", "==", account_id)] if account_id else []
    cfg = app_config.database
    expenses = load_collection(cfg, "expenses", filters)
    earnings = load_collection(cfg, "earnings", filters)

    total_expenses = financials.total_amount(expenses)
    total_earnings = financials.total_amount(earnings)
    avg_expenses = financials.average_monthly_expenses(expenses)

    logger.debug(
        "Financial overview (%s): %d expenses, %d earnings",
        account_id or "organization",
        len(expenses),
        len(earnings),
    )

    return FinancialOverview(
        account_id=account_id,
        expenses_by_category=financials.totals_by_category(expenses),
        earnings_by_category=financials.totals_by_category(earnings),
        monthly=financials.aggregate_by_month(expenses, earnings),
        total_expenses=total_expenses,
        total_earnings=total_earnings,
        average_monthly_expenses=avg_expenses,
        runway_months=financials.runway_months(total_earnings, avg_expenses),
        expense_to_revenue_ratio=financials.expense_to_revenue_ratio(
            total_expenses, total_earnings
        ),
    )


def category_records(
    app_config, category: str, account_id: Optional[str] = None
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Drill down into one category of the financial overview.

    Returns the expenses and the earnings whose category label equals
    `category`, optionally restricted to one account.
    """
    filters = [FieldFilter("accountId", "==", account_id)] if account_id else []
    cfg = app_config.database
    return (
        financials.records_for_category(
            load_collection(cfg, "expenses", filters), category
        ),
        financials.records_for_category(
            load_collection(cfg, "earnings", filters), category
        ),
    )


def _project_revenue_filters(project_id: str) -> list[FieldFilter]:
    return [
        FieldFilter("category", "==", PROJECT_REVENUE),
        FieldFilter("referenceId", "==", project_id),
    ]


def build_project_summary(app_config, project_key: str) -> ProjectSummary:
    """
    Build the financial summary of a project.

    `project_key` is the document id or the project id ("WA-42").

    Raises
    ------
    DocumentNotFoundError
        If the project does not exist.
    """
    project = get_record(app_config, "project", project_key)
    project_id = project.get("projectId") or project["id"]
    cfg = app_config.database

    expenses = load_collection(
        cfg, "expenses", [FieldFilter("projectId", "==", project_id)]
    )
    revenue = load_collection(cfg, "earnings", _project_revenue_filters(project_id))

    return ProjectSummary(
        project=project,
        expenses=expenses,
        revenue=revenue,
        financials=financials.project_financials(project, expenses, revenue),
    )


def watch_project_revenue(
    app_config,
    project_id: str,
    callback: Callable[[float], None],
) -> Subscription:
    """Call `callback` with the project's total revenue now and after every change."""

    def _on_snapshot(docs) -> None:
        callback(financials.total_amount(doc.data for doc in docs))

    return subscribe_documents(
        app_config.database,
        "earnings",
        _on_snapshot,
        _project_revenue_filters(project_id),
    )


def _for_team(df: pd.DataFrame, team: str) -> pd.DataFrame:
    if team == DEFAULT_TEAM or df.empty or "team" not in df.columns:
        return df
    return df[df["team"] == team].reset_index(drop=True)


def build_marketing_sales_dashboard(
    app_config,
    date_range: DateRange,
    team: str = DEFAULT_TEAM,
    today: Optional[date] = None,
) -> MarketingSalesDashboard:
    """
    Build the marketing and sales dashboard.

    Leads and campaigns are selected by ``createdAt`` and deals by
    ``dateEntered`` within `date_range`; all teams are loaded for quota
    tracking. A `team` other than "All" restricts leads, campaigns, deals and
    team performance to that team.
    """
    cfg = app_config.database
    created_filters = [
        FieldFilter("createdAt", ">=", date_range.start_iso()),
        FieldFilter("createdAt", "<=", date_range.end_iso()),
    ]
    deal_filters = [
        FieldFilter("dateEntered", ">=", date_range.start.isoformat()),
        FieldFilter("dateEntered", "<=", date_range.end.isoformat()),
    ]

    leads = _for_team(load_collection(cfg, "leads", created_filters), team)
    campaigns = _for_team(load_collection(cfg, "campaigns", created_filters), team)
    deals = _for_team(load_collection(cfg, "deals", deal_filters), team)
    teams = load_collection(cfg, "teams")
    if team != DEFAULT_TEAM and not teams.empty and "teamName" in teams.columns:
        teams = teams[teams["teamName"] == team].reset_index(drop=True)

    top_n = getattr(getattr(app_config, "dashboard", None), "top_campaigns", 5)

    return MarketingSalesDashboard(
        date_range=date_range,
        team=team,
        funnel=kpis.lead_funnel(leads),
        cost_per_lead=kpis.cost_per_lead_by_channel(leads),
        conversion_rate=kpis.conversion_rate_by_channel(leads),
        campaign_roi=kpis.roi_by_campaign(campaigns),
        average_ctr=kpis.average_ctr_by_type(campaigns),
        top_campaigns=kpis.top_campaigns(campaigns, top_n),
        deals_by_stage=kpis.deals_by_stage(deals),
        average_deal_size=kpis.average_deal_size_by_stage(deals),
        lead_conversion_rate=kpis.lead_conversion_rate(deals),
        average_won_deal_size=kpis.average_won_deal_size(deals),
        average_sales_cycle_days=kpis.average_sales_cycle_days(deals, today),
        team_performance=kpis.team_performance(deals, teams, today),
    )
