# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Expenses for BizOps Console.

An expense is an outgoing amount on a given date, tagged with one or more
categories and optionally attached to a project and/or an account:

    expenseId    "EXP-5913"
    category     list of CATEGORIES
    amount       non-negative, required
    date         ISO date, required
    description
    projectId    project id or None
    accountId    account id or None
    recurring    bool

Project and account references are not checked: a reference to a deleted
project simply renders as "N/A".
"""

from collections.abc import Mapping
from typing import Any

from .validation import (
    ValidationError,
    optional_text,
    parse_amount,
    parse_bool,
    parse_iso_date,
    require_choice,
    split_list,
)

CATEGORIES = (
    "Rent", "Software Licenses", "Utilities", "Salaries", "Marketing", "Other"
)


def build_expense(form: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate an expense form and return the document fields to store.

    ``category`` accepts a list or a comma-separated string; at least one
    category is required.
    """
    categories = [
        require_choice(item, CATEGORIES, "Category")
        for item in split_list(form.get("category"))
    ]
    if not categories:
        raise ValidationError("Category is required.", "Category")

    return {
        "category": categories,
        "amount": parse_amount(form.get("amount")),
        "date": parse_iso_date(form.get("date"), "Date"),
        "description": optional_text(form.get("description")),
        "projectId": optional_text(form.get("projectId")) or None,
        "accountId": optional_text(form.get("accountId")) or None,
        "recurring": parse_bool(form.get("recurring"), "Recurring"),
    }


def expense_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    category = data.get("category") or []
    if isinstance(category, str):
        category = [category]
    return {
        "category": list(category),
        "amount": data.get("amount", 0),
        "date": data.get("date", ""),
        "description": data.get("description", ""),
        "projectId": data.get("projectId") or "",
        "accountId": data.get("accountId") or "",
        "recurring": bool(data.get("recurring", False)),
    }
