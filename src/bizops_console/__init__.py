# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
BizOps Console
--------------

A Python-based administration console for the day-to-day operations of
Small and Medium-sized Businesses (SMBs). It keeps employees, clients,
accounts, expenses, earnings, projects, roles, marketing leads/campaigns
and sales deals/teams in a schema-less document store, and computes the
financial, marketing and sales indicators managers look at every week.

Main capabilities:
- a local document store (SQLite + JSON) with field filters and live
  subscriptions,
- one generic CRUD workflow shared by every record type, with field
  validation and human-readable identifiers (ACC-4042, CL-117, ...),
- role-based access control ("<Feature>:read" / "<Feature>:full access"),
- financial overview (expenses vs earnings by month, runway, margins),
- project financials (budget, expenses, revenue, profit margin),
- marketing & sales KPIs (funnel, CPL, ROI, win rate, quota attainment),
- spreadsheet import/export for employees, accounts and clients.

Version: 0.1.0

Usage:
    bizops --help
    python -m bizops_console.cli --help
"""

__all__ = ["db", "records_service", "financials", "kpis", "dashboards", "io"]

__version__ = "0.1.0"
