# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Customer accounts for BizOps Console.

An account groups the projects and clients of one business relationship and
tracks its headline figures:

- ``accountId``     human-readable id ("ACC-4042"),
- ``name``          required,
- ``industry``      one of ``INDUSTRIES``,
- ``revenue``, ``expenses`` non-negative amounts,
- ``profitMargin``  derived: (revenue - expenses) / revenue * 100, rounded to
                    two decimals, 0 when there is no revenue,
- ``projects``, ``clients`` lists of project / client ids,
- ``status``        "Active" or "Closed",
- ``notes``         free text.

Expenses and earnings reference accounts through their ``accountId`` field;
the financial overview can be scoped to a single account.
"""

from collections.abc import Mapping
from typing import Any

from .validation import (
    coerce_number,
    optional_text,
    require_choice,
    require_text,
    split_list,
)

INDUSTRIES = ("Technology", "Finance", "Healthcare", "Retail", "Manufacturing")
STATUSES = ("Active", "Closed")


def account_profit_margin(revenue: float, expenses: float) -> float:
    """
    Return the profit margin of an account, in percent.

    >>> account_profit_margin(1000, 400)
    60.0
    >>> account_profit_margin(0, 50)
    0.0
    """
    if revenue <= 0:
        return 0.0
    return round((revenue - expenses) / revenue * 100, 2)


def build_account(form: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate an account form and return the document fields to store.

    Raises
    ------
    ValidationError
        If the name is missing, a choice is unknown or an amount is invalid.
    """
    revenue = coerce_number(form.get("revenue"), "Revenue", minimum=0)
    expenses = coerce_number(form.get("expenses"), "Expenses", minimum=0)

    return {
        "name": require_text(form.get("name"), "Name"),
        "industry": require_choice(
            form.get("industry"), INDUSTRIES, "Industry", default=""
        ),
        "revenue": revenue,
        "expenses": expenses,
        "profitMargin": account_profit_margin(revenue, expenses),
        "projects": split_list(form.get("projects")),
        "clients": split_list(form.get("clients")),
        "status": require_choice(
            form.get("status"), STATUSES, "Status", default="Active"
        ),
        "notes": optional_text(form.get("notes")),
    }


def account_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return the editable fields of a stored account."""
    return {
        "name": data.get("name", ""),
        "industry": data.get("industry", ""),
        "revenue": data.get("revenue", 0),
        "expenses": data.get("expenses", 0),
        "projects": list(data.get("projects") or []),
        "clients": list(data.get("clients") or []),
        "status": data.get("status", ""),
        "notes": data.get("notes", ""),
    }
