# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Clients for BizOps Console.

A client document carries contact details, a contract and acquisition
metrics:

    clientId, contractId          "CL-117", "CON-305"
    name, email, phone, address, industry
    contractStartDate, contractEndDate   ISO dates
    Metrics:
        cac                       customer acquisition cost
        cltv                      customer lifetime value
        revenueGenerated
        revenueBreakdown:
            oneTimeRevenue
            recurringRevenue
    status                        "Active" or "Inactive"
    projects                      list of project ids
    notes

Clients are never deleted. The contract id is assigned once, when the client
is created, and kept on later edits.
"""

from collections.abc import Mapping
from typing import Any

from .validation import (
    ValidationError,
    coerce_number,
    is_valid_email,
    optional_text,
    parse_iso_date,
    require_choice,
    require_text,
    split_list,
)

INDUSTRIES = ("Technology", "Finance", "Healthcare", "Retail", "Manufacturing")
STATUSES = ("Active", "Inactive")


def build_client(form: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate a client form and return the document fields to store.

    Metric fields are read from flat form keys (``cac``, ``cltv``,
    ``revenueGenerated``, ``oneTimeRevenue``, ``recurringRevenue``) and stored
    under the nested ``Metrics`` map.
    """
    email = optional_text(form.get("email"))
    if email and not is_valid_email(email):
        raise ValidationError("Email must be a valid email address.", "Email")

    start = parse_iso_date(
        form.get("contractStartDate"), "Contract start date", required=False
    )
    end = parse_iso_date(
        form.get("contractEndDate"), "Contract end date", required=False
    )
    if start and end and end < start:
        raise ValidationError(
            "Contract end date cannot be before the start date.", "Contract end date"
        )

    return {
        "name": require_text(form.get("name"), "Name"),
        "email": email,
        "phone": optional_text(form.get("phone")),
        "address": optional_text(form.get("address")),
        "industry": require_choice(
            form.get("industry"), INDUSTRIES, "Industry", default=""
        ),
        "contractStartDate": start or "",
        "contractEndDate": end or "",
        "Metrics": {
            "cac": coerce_number(form.get("cac"), "CAC", minimum=0),
            "cltv": coerce_number(form.get("cltv"), "CLTV", minimum=0),
            "revenueGenerated": coerce_number(
                form.get("revenueGenerated"), "Revenue generated", minimum=0
            ),
            "revenueBreakdown": {
                "oneTimeRevenue": coerce_number(
                    form.get("oneTimeRevenue"), "One-time revenue", minimum=0
                ),
                "recurringRevenue": coerce_number(
                    form.get("recurringRevenue"), "Recurring revenue", minimum=0
                ),
            },
        },
        "status": require_choice(
            form.get("status"), STATUSES, "Status", default="Active"
        ),
        "projects": split_list(form.get("projects")),
        "notes": optional_text(form.get("notes")),
    }


def client_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a stored client into editable form fields."""
    metrics = data.get("Metrics") or {}
    breakdown = metrics.get("revenueBreakdown") or {}
    return {
        "name": data.get("name", ""),
        "email": data.get("email", ""),
        "phone": data.get("phone", ""),
        "address": data.get("address", ""),
        "industry": data.get("industry", ""),
        "contractStartDate": data.get("contractStartDate", ""),
        "contractEndDate": data.get("contractEndDate", ""),
        "cac": metrics.get("cac", 0),
        "cltv": metrics.get("cltv", 0),
        "revenueGenerated": metrics.get("revenueGenerated", 0),
        "oneTimeRevenue": breakdown.get("oneTimeRevenue", 0),
        "recurringRevenue": breakdown.get("recurringRevenue", 0),
        "status": data.get("status", ""),
        "projects": list(data.get("projects") or []),
        "notes": data.get("notes", ""),
    }
