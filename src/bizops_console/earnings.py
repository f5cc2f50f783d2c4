# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Earnings for BizOps Console.

An earning is an incoming amount classified by revenue category. Depending on
the category, ``referenceId`` points to a project, a client or an account, or
holds free text:

    Project Revenue                       -> project id
    Service / Subscription / Licensing
    Revenue, Consulting Fees              -> client id
    Commission Income, Advertising
    Revenue, Rental or Leasing Income     -> account id (copied to accountId)
    Product Sales, Investment Income      -> free text

Project revenue (category "Project Revenue" + project id) feeds the project
financials. Earnings are never deleted.
"""

from collections.abc import Mapping
from datetime import date
from typing import Any, Optional

from .validation import coerce_number, optional_text, parse_iso_date, require_choice

CATEGORIES = (
    "Project Revenue",
    "Service Revenue",
    "Product Sales",
    "Subscription Revenue",
    "Licensing Revenue",
    "Commission Income",
    "Advertising Revenue",
    "Consulting Fees",
    "Investment Income",
    "Rental or Leasing Income",
)

PROJECT_REVENUE = "Project Revenue"

REFERENCE_COLLECTIONS: dict[str, Optional[str]] = {
    "Project Revenue": "projects",
    "Service Revenue": "clients",
    "Subscription Revenue": "clients",
    "Licensing Revenue": "clients",
    "Consulting Fees": "clients",
    "Commission Income": "accounts",
    "Advertising Revenue": "accounts",
    "Rental or Leasing Income": "accounts",
    "Product Sales": None,
    "Investment Income": None,
}
"""Collection referenced by ``referenceId`` for each category (None = free text)."""


def reference_collection(category: str) -> Optional[str]:
    """Return the collection `referenceId` refers to for `category`."""
    return REFERENCE_COLLECTIONS.get(category)


def build_earning(
    form: Mapping[str, Any], *, today: Optional[date] = None
) -> dict[str, Any]:
    """
    Validate an earning form and return the document fields to store.

    A blank amount counts as 0; a blank date defaults to today.
    """
    today = today or date.today()
    category = require_choice(form.get("category"), CATEGORIES, "Category")
    reference_id = optional_text(form.get("referenceId"), default="N/A")
    return {
        "category": category,
        "referenceId": reference_id,
        # account-level overviews filter earnings on accountId
        "accountId": (
            reference_id if reference_collection(category) == "accounts" else ""
        ),
        "amount": coerce_number(form.get("amount"), "Amount", minimum=0),
        "date": (
            parse_iso_date(form.get("date"), "Date", required=False)
            or today.isoformat()
        ),
    }


def earning_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "category": data.get("category", ""),
        "referenceId": data.get("referenceId", ""),
        "amount": data.get("amount", 0),
        "date": data.get("date", ""),
    }
