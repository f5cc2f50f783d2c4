# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Date range helpers for BizOps Console.

This module defines a DateRange value object and helpers to derive the
reporting window of the dashboards (by default, the last six months up to
today) from CLI arguments.

Documents store ``createdAt`` as ISO datetimes (UTC) and business dates
(``date``, ``dateEntered``) as ISO dates, so a range exposes both forms of
its bounds: the day-level bounds and full-day datetime bounds
(00:00:00 to 23:59:59 UTC).
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

import pandas as pd


@dataclass(frozen=True)
class DateRange:
    """Represents an inclusive date range with a human-readable label."""

    start: date
    end: date
    label: str

    def start_iso(self) -> str:
        """Start of the first day, as an ISO datetime (UTC)."""
        return f"{self.start.isoformat()}T00:00:00+00:00"

    def end_iso(self) -> str:
        """End of the last day, as an ISO datetime (UTC)."""
        return f"{self.end.isoformat()}T23:59:59+00:00"


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def last_n_months(months: int, today: Optional[date] = None) -> DateRange:
    """
    Range covering the last `months` months up to today.

    The start keeps today's day of month, clamped to the length of the
    target month (31 May minus 3 months is 28/29 February).
    """
    if months < 1:
        raise ValueError("The number of months must be at least 1.")
    end = today or _today()
    start = (pd.Timestamp(end) - pd.DateOffset(months=months)).date()
    label = "Last month" if months == 1 else f"Last {months} months"
    return DateRange(start=start, end=end, label=label)


def determine_range_from_args(
    args,
    default_months: int = 6,
    today: Optional[date] = None,
) -> DateRange:
    """
    Determine the dashboard date range from CLI args.

    Priority (highest to lowest):

        1. args.from_date / args.to_date (custom range; a missing bound
           defaults to today for the end and to `default_months` before the
           end for the start)
        2. args.months (last N months)
        3. the last `default_months` months
    """
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        try:
            end = date.fromisoformat(to_raw) if to_raw else (today or _today())
            start = (
                date.fromisoformat(from_raw)
                if from_raw
                else last_n_months(default_months, end).start
            )
        except ValueError as exc:
            raise ValueError("Invalid date format, expected YYYY-MM-DD.") from exc

        if end < start:
            raise ValueError("Custom range end date cannot be before start date.")

        return DateRange(
            start=start, end=end, label=f"Custom range ({start} → {end})"
        )

    months = getattr(args, "months", None)
    return last_n_months(int(months) if months else default_months, today)
