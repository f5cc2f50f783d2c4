# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Sales records for BizOps Console: deals and sales teams.

Deals follow a simple pipeline (``STAGES``). Each deal carries a
user-chosen ``dealId`` that must be unique, its value and side revenues
(upsell / cross-sell), the dates it entered and left the pipeline, the
owning team and salesperson, and an outcome.

Teams have a name and a revenue quota used by the sales dashboard to compute
quota attainment. Deals refer to teams by name.
"""

from collections.abc import Mapping
from datetime import date
from typing import Any, Optional

from .validation import (
    ValidationError,
    coerce_number,
    optional_text,
    parse_iso_date,
    require_choice,
    require_text,
)

STAGES = ("Lead", "Negotiation", "Closed Won", "Closed Lost")
OUTCOMES = ("Won", "Lost")
CLIENT_CATEGORIES = ("Hot", "Cold")
DEFAULT_TEAM = "All"

WON_OUTCOME = "Won"
LEAD_STAGE = "Lead"


def build_deal(
    form: Mapping[str, Any], *, today: Optional[date] = None
) -> dict[str, Any]:
    """
    Validate a deal form and return the document fields to store.

    Rules:
    - dealId and stage are required;
    - value, upsell and cross-sell revenues are non-negative;
    - dateEntered defaults to today;
    - dateClosed, when given, cannot be before dateEntered.

    Uniqueness of ``dealId`` is checked by the record service, which has
    access to the store.
    """
    today = today or date.today()

    deal_id = require_text(form.get("dealId"), "Deal ID")
    stage = require_choice(form.get("stage"), STAGES, "Stage")
    date_entered = (
        parse_iso_date(form.get("dateEntered"), "Date entered", required=False)
        or today.isoformat()
    )
    date_closed = (
        parse_iso_date(form.get("dateClosed"), "Date closed", required=False) or ""
    )
    if date_closed and date_closed < date_entered:
        raise ValidationError(
            "Date closed cannot be before the date entered.", "Date closed"
        )

    return {
        "dealId": deal_id,
        "stage": stage,
        "value": coerce_number(form.get("value"), "Value", minimum=0),
        "dateEntered": date_entered,
        "dateClosed": date_closed,
        "team": optional_text(form.get("team"), default=DEFAULT_TEAM),
        "salesperson": optional_text(form.get("salesperson")),
        "outcome": require_choice(form.get("outcome"), OUTCOMES, "Outcome", default=""),
        "clientCategory": require_choice(
            form.get("clientCategory"), CLIENT_CATEGORIES, "Client category", default=""
        ),
        "region": optional_text(form.get("region")),
        "product": optional_text(form.get("product")),
        "upsellRevenue": coerce_number(
            form.get("upsellRevenue"), "Upsell revenue", minimum=0
        ),
        "crossSellRevenue": coerce_number(
            form.get("crossSellRevenue"), "Cross-sell revenue", minimum=0
        ),
        "project": optional_text(form.get("project")),
        "account": optional_text(form.get("account")),
    }


def build_team(form: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a team form: a required name and a non-negative quota."""
    return {
        "teamName": require_text(form.get("teamName"), "Team name"),
        "quota": coerce_number(form.get("quota"), "Quota", minimum=0),
    }


def deal_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    keys = (
        "dealId",
        "stage",
        "value",
        "dateEntered",
        "dateClosed",
        "team",
        "salesperson",
        "outcome",
        "clientCategory",
        "region",
        "product",
        "upsellRevenue",
        "crossSellRevenue",
        "project",
        "account",
    )
    return {key: data.get(key, "") for key in keys}


def team_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    return {"teamName": data.get("teamName", ""), "quota": data.get("quota", 0)}
