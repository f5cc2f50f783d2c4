# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Projects for BizOps Console.

A project belongs to an account and a client (both must exist when the
project is saved) and carries its financial metrics:

    projectId          initials of the name + "-" + number ("WR-73")
    name, team, teamMembers, description
    accountId, clientId
    financialMetrics:
        budget, roi, burnRate, expectedRevenue    entered by the user
        revenueGenerated                          budget - project expenses
        profitMargin                              (budget - expenses) / budget * 100
    startDate, endDate     ISO dates
    status                 "Ongoing", "Completed" or "On Hold"
    completion             0 to 100 (percent)

Project expenses are the expenses whose ``projectId`` equals the project id;
the derived metrics are recomputed every time the project is saved.
"""

from collections.abc import Mapping
from typing import Any

from .financials import profit_margin
from .validation import (
    ValidationError,
    coerce_number,
    optional_text,
    parse_iso_date,
    require_choice,
    require_text,
    split_list,
)

STATUSES = ("Ongoing", "Completed", "On Hold")


def build_project(form: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate a project form and return the document fields to store.

    ``revenueGenerated`` and ``profitMargin`` are initialized as if the
    project had no expense; use :func:`apply_expense_metrics` once project
    expenses are known.
    """
    start = parse_iso_date(form.get("startDate"), "Start date", required=False)
    end = parse_iso_date(form.get("endDate"), "End date", required=False)
    if start and end and end < start:
        raise ValidationError("End date cannot be before the start date.", "End date")

    budget = coerce_number(form.get("budget"), "Budget", minimum=0)

    data = {
        "name": require_text(form.get("name"), "Name"),
        "accountId": require_text(form.get("accountId"), "Account"),
        "clientId": require_text(form.get("clientId"), "Client"),
        "team": optional_text(form.get("team")),
        "teamMembers": split_list(form.get("teamMembers")),
        "financialMetrics": {
            "budget": budget,
            "roi": coerce_number(form.get("roi"), "ROI"),
            "burnRate": coerce_number(form.get("burnRate"), "Burn rate", minimum=0),
            "expectedRevenue": coerce_number(
                form.get("expectedRevenue"), "Expected revenue", minimum=0
            ),
            "revenueGenerated": budget,
            "profitMargin": profit_margin(budget, 0.0),
        },
        "startDate": start or "",
        "endDate": end or "",
        "status": require_choice(
            form.get("status"), STATUSES, "Status", default="Ongoing"
        ),
        "description": optional_text(form.get("description")),
        "completion": coerce_number(
            form.get("completion"), "Completion", minimum=0, maximum=100
        ),
    }
    return data


def apply_expense_metrics(
    data: dict[str, Any], expenses_total: float
) -> dict[str, Any]:
    """Recompute revenueGenerated and profitMargin from the project expenses."""
    metrics = dict(data.get("financialMetrics") or {})
    budget = float(metrics.get("budget") or 0)
    metrics["revenueGenerated"] = budget - expenses_total
    metrics["profitMargin"] = profit_margin(budget, expenses_total)
    data["financialMetrics"] = metrics
    return data


def project_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a stored project into editable form fields."""
    metrics = data.get("financialMetrics") or {}
    return {
        "name": data.get("name", ""),
        "accountId": data.get("accountId", ""),
        "clientId": data.get("clientId", ""),
        "team": data.get("team", ""),
        "teamMembers": list(data.get("teamMembers") or []),
        "budget": metrics.get("budget", 0),
        "roi": metrics.get("roi", 0),
        "burnRate": metrics.get("burnRate", 0),
        "expectedRevenue": metrics.get("expectedRevenue", 0),
        "startDate": data.get("startDate", ""),
        "endDate": data.get("endDate", ""),
        "status": data.get("status", ""),
        "description": data.get("description", ""),
        "completion": data.get("completion", 0),
    }
