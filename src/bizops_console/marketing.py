# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Marketing records for BizOps Console: lead batches and campaigns.

A *lead* document summarizes the leads produced by one channel:

    channel                   LinkedIn, Google Ads, Facebook, Email, Other...
    leads                     number of raw leads
    marketingQualifiedLeads   MQLs
    salesQualifiedLeads       SQLs
    conversions
    spend                     money spent on the channel
    team                      owning team ("All" when shared)
    project, account          optional references ("N/A" when absent)

A *campaign* document describes one marketing action:

    name, type (Email, Social, Paid...)
    cost, revenue, clickThroughRate, likes, impressions
    team, project, account

Counts and amounts are non-negative; blank numbers are stored as 0. The
marketing dashboard filters both collections on ``createdAt``.
"""

from collections.abc import Mapping
from typing import Any

from .validation import coerce_number, optional_text, require_text

DEFAULT_TEAM = "All"
NO_REFERENCE = "N/A"

_LEAD_COUNTS = (
    ("leads", "Leads"),
    ("marketingQualifiedLeads", "Marketing qualified leads"),
    ("salesQualifiedLeads", "Sales qualified leads"),
    ("conversions", "Conversions"),
    ("spend", "Spend"),
)

_CAMPAIGN_NUMBERS = (
    ("cost", "Cost"),
    ("revenue", "Revenue"),
    ("clickThroughRate", "Click-through rate"),
    ("likes", "Likes"),
    ("impressions", "Impressions"),
)


def _shared_fields(form: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "team": optional_text(form.get("team"), default=DEFAULT_TEAM),
        "project": optional_text(form.get("project"), default=NO_REFERENCE),
        "account": optional_text(form.get("account"), default=NO_REFERENCE),
    }


def build_lead(form: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a lead form and return the document fields to store."""
    data: dict[str, Any] = {"channel": require_text(form.get("channel"), "Channel")}
    for key, label in _LEAD_COUNTS:
        data[key] = coerce_number(form.get(key), label, minimum=0)
    data.update(_shared_fields(form))
    return data


def build_campaign(form: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a campaign form and return the document fields to store."""
    data: dict[str, Any] = {
        "name": require_text(form.get("name"), "Name"),
        "type": optional_text(form.get("type")),
    }
    for key, label in _CAMPAIGN_NUMBERS:
        data[key] = coerce_number(form.get(key), label, minimum=0)
    data.update(_shared_fields(form))
    return data


def lead_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    form = {"channel": data.get("channel", "")}
    for key, _ in _LEAD_COUNTS:
        form[key] = data.get(key, 0)
    for key in ("team", "project", "account"):
        form[key] = data.get(key, "")
    return form


def campaign_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    form = {"name": data.get("name", ""), "type": data.get("type", "")}
    for key, _ in _CAMPAIGN_NUMBERS:
        form[key] = data.get(key, 0)
    for key in ("team", "project", "account"):
        form[key] = data.get(key, "")
    return form
