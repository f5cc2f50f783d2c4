# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for BizOps Console.

This module wires together the main building blocks of BizOps Console:

- global configuration (database, identity, dashboard and display options),
- the signed-in user and their roles,
- the generic record service (list, show, add, edit, delete),
- spreadsheet import/export,
- dashboards and their tabular views.

The CLI is intentionally thin: it does not implement business logic
itself. It parses arguments, resolves the user, calls the services and
renders their results as console tables and/or CSV files.


Commands
--------

    bizops init-db [--admin EMAIL]
    bizops records list ENTITY [--search TEXT] [--where FIELD=VALUE ...]
                               [--from-date D] [--to-date D]
                               [--limit N] [--offset N]
    bizops records show ENTITY KEY
    bizops records add ENTITY --set FIELD=VALUE [--set ...]
    bizops records edit ENTITY KEY --set FIELD=VALUE [--set ...]
    bizops records delete ENTITY KEY
    bizops import ENTITY PATH
    bizops export ENTITY PATH
    bizops template ENTITY PATH
    bizops overview [--account ACCOUNT_ID]
    bizops project PROJECT_KEY
    bizops dashboard [--months N | --from-date D --to-date D] [--team TEAM]
    bizops whoami
    bizops profile show
    bizops profile edit --set FIELD=VALUE [--set ...]

ENTITY is one of: account, client, employee, expense, earning, project,
role, lead, campaign, deal, team (plural collection names are accepted).
KEY is the document id or the human-readable id (ACC-4042, CL-117, ...).


User resolution
---------------

Every command except ``init-db`` and ``template`` runs on behalf of a user
registered in the users collection, chosen with ``--user EMAIL`` or, by
default, ``[identity].default_user`` from the configuration. On a fresh
database, create the first user with ``init-db --admin EMAIL``.


Errors
------

Known failures (missing user or permission, invalid field, unknown record,
aborted import, ...) are printed as a one-line message on stderr and the
command exits with status 1.
"""

import argparse
import logging
import math
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from . import __version__
from .auth import (
    ROUTE_ROLES,
    AuthenticationError,
    PermissionDeniedError,
    SessionUser,
    bootstrap_admin,
    clean_role_labels,
    load_profile,
    load_session_user,
    require_route,
    route_allowed,
    update_profile,
)
from .config import AppConfig, load_app_config
from .dashboards import (
    build_financial_overview,
    build_marketing_sales_dashboard,
    build_project_summary,
    category_records,
)
from .db import DocumentNotFoundError, FieldFilter, WriteError, init_database
from .entities import ENTITIES, get_entity
from .ids import IdGenerationError
from .io import ImportAbortedError, export_records, import_records, write_template
from .periods import determine_range_from_args
from .records_service import (
    create_record,
    delete_record,
    edit_record,
    get_record,
    list_records,
    reference_names,
)
from .validation import ValidationError
from .views import (
    marketing_sales_tables,
    overview_tables,
    project_tables,
    record_detail,
    records_table,
    resolve_references,
)

logger = logging.getLogger(__name__)

KNOWN_ERRORS = (
    AuthenticationError,
    PermissionDeniedError,
    ValidationError,
    DocumentNotFoundError,
    WriteError,
    IdGenerationError,
    ImportAbortedError,
    FileNotFoundError,
    ValueError,
)

_WHERE_PATTERN = re.compile(r"^\s*([\w.]+)\s*(==|!=|>=|<=|>|<|=)\s*(.*)$")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_range_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help="Start date (YYYY-MM-DD, inclusive).",
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help="End date (YYYY-MM-DD, inclusive).",
    )


def _add_set_argument(parser: argparse.ArgumentParser, required: bool = True) -> None:
    parser.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        required=required,
        metavar="FIELD=VALUE",
        help=(
            "Form field to set. Repeat for several fields. List fields take "
            "comma-separated values "
            "(--set roles='ManageExpense:read, ManageClient:read')."
        ),
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="bizops",
        description=(
            "BizOps Console - Business operations admin console for SMBs. "
            "Manages employees, clients, accounts, expenses, earnings, projects, "
            "roles, marketing and sales records, and renders financial, "
            "marketing and sales dashboards."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of bizops_console and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            "If omitted, 'bizops_config.toml' in the current directory is used."
        ),
    )
    ap.add_argument(
        "--user",
        dest="user_email",
        help="Email of the user to act as (defaults to [identity].default_user).",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help="Override the display mode defined in the configuration.",
    )
    ap.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v: INFO, -vv: DEBUG).",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="COMMAND")

    # init-db
    init_parser = subparsers.add_parser(
        "init-db",
        help="Create the database (and optionally the first administrator).",
    )
    init_parser.add_argument(
        "--admin",
        dest="admin_email",
        help="Create a user with full access to every feature, if no user exists yet.",
    )

    # records
    records_parser = subparsers.add_parser("records", help="Manage business records.")
    records_sub = records_parser.add_subparsers(
        dest="records_command", metavar="ACTION"
    )

    records_list = records_sub.add_parser("list", help="List records of a type.")
    records_list.add_argument("entity", help="Record type (account, expense, ...).")
    records_list.add_argument(
        "--search", help="Case-insensitive text searched in the main fields."
    )
    records_list.add_argument(
        "--where",
        action="append",
        default=[],
        metavar="CONDITION",
        help=(
            "Field condition such as status=Active or amount>=100. Numbers are "
            "compared as numbers; quote a value to compare it as text. Repeatable."
        ),
    )
    _add_range_arguments(records_list)
    records_list.add_argument("--limit", type=int, help="Maximum number of records.")
    records_list.add_argument(
        "--offset", type=int, default=0, help="Number of records to skip."
    )
    records_list.add_argument(
        "--all-columns",
        action="store_true",
        help="Show every stored field instead of the main columns.",
    )

    records_show = records_sub.add_parser("show", help="Show a single record.")
    records_show.add_argument("entity")
    records_show.add_argument("key", help="Document id or human-readable id.")

    records_add = records_sub.add_parser("add", help="Create a record.")
    records_add.add_argument("entity")
    _add_set_argument(records_add)

    records_edit = records_sub.add_parser("edit", help="Edit a record.")
    records_edit.add_argument("entity")
    records_edit.add_argument("key")
    _add_set_argument(records_edit)

    records_delete = records_sub.add_parser("delete", help="Delete a record.")
    records_delete.add_argument("entity")
    records_delete.add_argument("key")

    # spreadsheets
    import_parser = subparsers.add_parser(
        "import", help="Import employees, accounts or clients from a spreadsheet."
    )
    import_parser.add_argument("entity")
    import_parser.add_argument("path", help="Spreadsheet (.xlsx or .csv).")

    export_parser = subparsers.add_parser(
        "export", help="Export employees, accounts or clients to a spreadsheet."
    )
    export_parser.add_argument("entity")
    export_parser.add_argument("path", help="Output file (.xlsx or .csv).")

    template_parser = subparsers.add_parser(
        "template", help="Write an import template with one sample row."
    )
    template_parser.add_argument("entity")
    template_parser.add_argument("path", help="Output file (.xlsx or .csv).")

    # dashboards
    overview_parser = subparsers.add_parser("overview", help="Financial overview.")
    overview_parser.add_argument(
        "--account",
        dest="account_id",
        help="Restrict to the expenses and earnings of one account (ACC-....).",
    )
    overview_parser.add_argument(
        "--category",
        help="Also list the expenses and earnings of one category (e.g. Rent).",
    )

    project_parser = subparsers.add_parser("project", help="Project financial summary.")
    project_parser.add_argument("key", help="Project id or document id.")

    dashboard_parser = subparsers.add_parser(
        "dashboard", help="Marketing and sales dashboard."
    )
    dashboard_parser.add_argument(
        "--months", type=int, help="Last N months (default from configuration)."
    )
    _add_range_arguments(dashboard_parser)
    dashboard_parser.add_argument(
        "--team", default="All", help='Restrict to one team ("All" for every team).'
    )

    # identity
    subparsers.add_parser("whoami", help="Show the current user and roles.")

    profile_parser = subparsers.add_parser("profile", help="Show or edit your profile.")
    profile_sub = profile_parser.add_subparsers(
        dest="profile_command", metavar="ACTION"
    )
    profile_sub.add_parser("show", help="Show your employee profile.")
    profile_edit = profile_sub.add_parser(
        "edit", help="Edit designation, department or status."
    )
    _add_set_argument(profile_edit)

    return ap


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(level_name: str, verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_assignments(assignments: list[str]) -> dict[str, str]:
    """Parse FIELD=VALUE pairs into a dict."""
    result: dict[str, str] = {}
    for item in assignments:
        field, sep, value = item.partition("=")
        if not sep or not field.strip():
            raise ValueError(f"Invalid assignment {item!r}, expected FIELD=VALUE.")
        result[field.strip()] = value.strip()
    return result


def _parse_number(text: str) -> Any:
    try:
        number = float(text)
    except ValueError:
        return text
    if not math.isfinite(number):
        return text
    return int(number) if number.is_integer() and "." not in text else number


def _parse_where(conditions: list[str]) -> list[FieldFilter]:
    """
    Parse --where conditions into FieldFilters.

    A numeric value is compared as a number (amount=100, revenue>=500). Wrap
    the value in quotes to compare it as text instead (zip="01000").
    """
    filters = []
    for condition in conditions:
        match = _WHERE_PATTERN.match(condition)
        if not match:
            raise ValueError(
                f"Invalid condition {condition!r}, expected e.g. status=Active."
            )
        field, op, raw = match.groups()
        op = "==" if op == "=" else op
        value: Any = raw.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        else:
            value = _parse_number(value)
        filters.append(FieldFilter(field, op, value))
    return filters


def _session_user(args: argparse.Namespace, config: AppConfig) -> SessionUser:
    email = args.user_email or config.identity.default_user
    if not email:
        raise AuthenticationError(
            "No user given. Use --user EMAIL or set [identity].default_user."
        )
    return load_session_user(config, email)


def _display_id(definition, record: dict[str, Any]) -> str:
    """Human-readable id of a record, or its document id."""
    if definition.id_field and record.get(definition.id_field):
        return str(record[definition.id_field])
    return str(record["id"])


def _with_reference_names(
    config: AppConfig, definition, records: pd.DataFrame
) -> pd.DataFrame:
    """Replace referenced ids by names; orphaned or blank links become N/A."""
    for column, names in reference_names(config, definition, records).items():
        records = resolve_references(records, column, names)
    return records


def _display_mode(args: argparse.Namespace, config: AppConfig) -> str:
    return args.display_mode or config.display.mode


def _render(
    tables: dict[str, pd.DataFrame],
    name: str,
    args: argparse.Namespace,
    config: AppConfig,
) -> None:
    """Print tables and/or write them as CSV files depending on the display mode."""
    mode = _display_mode(args, config)

    if mode in {"table", "both"}:
        for section, df in tables.items():
            print()
            print(f"=== {section.replace('_', ' ').capitalize()} ===")
            if df.empty:
                print("(none)")
            else:
                print(df.to_string(index=False))

    if mode in {"csv", "both"}:
        output_dir = Path(config.display.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        for section, df in tables.items():
            path = output_dir / f"{name}_{section}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_init_db(args: argparse.Namespace, config: AppConfig) -> None:
    print(f"Database ready at {config.database.path}")
    if args.admin_email:
        admin = bootstrap_admin(config, args.admin_email)
        if admin is None:
            print("Users already exist; no administrator created.")
        else:
            print(f"Administrator {admin.email} created with full access.")


def _handle_records_list(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    definition = get_entity(args.entity)
    date_range = None
    if args.from_date or args.to_date:
        date_range = determine_range_from_args(
            args, config.dashboard.default_months
        )

    df = list_records(
        config,
        definition,
        user=user,
        filters=_parse_where(args.where),
        search=args.search,
        date_range=date_range,
        limit=args.limit,
        offset=args.offset,
    )
    if df.empty:
        print(f"No {definition.collection} found for the given criteria.")
        return

    columns = () if args.all_columns else definition.list_columns
    _render(
        {
            definition.collection: records_table(
                _with_reference_names(config, definition, df), columns
            )
        },
        definition.collection,
        args,
        config,
    )
    print()
    print(f"Total {definition.collection}: {len(df)}")


def _handle_records_show(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    definition = get_entity(args.entity)
    record = get_record(config, definition, args.key, user=user)
    shown = _with_reference_names(config, definition, pd.DataFrame([record]))
    print(f"{definition.label} {_display_id(definition, record)}")
    print(record_detail(shown.iloc[0].to_dict()).to_string(index=False))


def _handle_records_add(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    definition = get_entity(args.entity)
    record = create_record(
        config, user, definition, _parse_assignments(args.assignments)
    )
    print(
        f"{definition.label} created: "
        f"{_display_id(definition, record)} (document {record['id']})"
    )


def _handle_records_edit(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    definition = get_entity(args.entity)
    record = edit_record(
        config, user, definition, args.key, _parse_assignments(args.assignments)
    )
    print(f"{definition.label} updated: {_display_id(definition, record)}")


def _handle_records_delete(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    definition = get_entity(args.entity)
    record = delete_record(config, user, definition, args.key)
    print(f"{definition.label} deleted: {_display_id(definition, record)}")


def _handle_records_command(args: argparse.Namespace, config: AppConfig) -> None:
    """Dispatch function for the 'records' subcommands."""
    subcmd = getattr(args, "records_command", None)

    if subcmd == "list":
        _handle_records_list(args, config)
    elif subcmd == "show":
        _handle_records_show(args, config)
    elif subcmd == "add":
        _handle_records_add(args, config)
    elif subcmd == "edit":
        _handle_records_edit(args, config)
    elif subcmd == "delete":
        _handle_records_delete(args, config)
    else:
        print(
            "No records subcommand specified. "
            "Available subcommands are: 'list', 'show', 'add', 'edit', 'delete'. "
            f"Record types: {', '.join(ENTITIES)}."
        )


def _handle_import(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    print(f"Importing {args.entity} records from {args.path}...")
    created = import_records(config, user, args.entity, args.path)
    print(f"Imported {len(created)} record(s).")


def _handle_export(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    path = export_records(config, args.entity, args.path, user=user)
    print(f"Wrote {path}")


def _handle_template(args: argparse.Namespace, config: AppConfig) -> None:
    path = write_template(args.entity, args.path)
    print(f"Wrote {path}")


def _handle_overview(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    require_route(user, "overview")
    overview = build_financial_overview(config, args.account_id)
    scope = f"account {args.account_id}" if args.account_id else "organization"
    print(f"Financial overview ({scope})")
    tables = overview_tables(overview, config.display.decimals)
    if args.category:
        expenses, earnings = category_records(
            config, args.category, args.account_id
        )
        tables["category_expenses"] = records_table(
            expenses, ("expenseId", "category", "amount", "date", "description")
        )
        tables["category_earnings"] = records_table(
            earnings, ("earningId", "category", "referenceId", "amount", "date")
        )
    _render(tables, "overview", args, config)


def _handle_project(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    require_route(user, "project")
    summary = build_project_summary(config, args.key)
    _render(project_tables(summary, config.display.decimals), "project", args, config)


def _handle_dashboard(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    if not route_allowed(user, ROUTE_ROLES["marketing"] + ROUTE_ROLES["sales"]):
        raise PermissionDeniedError(
            f"{user.email} is not allowed to open the marketing and sales dashboard."
        )
    date_range = determine_range_from_args(args, config.dashboard.default_months)
    dashboard = build_marketing_sales_dashboard(config, date_range, team=args.team)
    print(f"Marketing & sales dashboard: {date_range.label}")
    _render(
        marketing_sales_tables(dashboard, config.display.decimals),
        "dashboard",
        args,
        config,
    )


def _handle_whoami(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    print(f"User:  {user.email} ({user.uid})")
    print(f"Roles: {', '.join(user.roles) if user.roles else '(none)'}")
    print(f"Areas: {', '.join(clean_role_labels(user.roles)) or '(none)'}")


def _handle_profile(args: argparse.Namespace, config: AppConfig) -> None:
    user = _session_user(args, config)
    subcmd = getattr(args, "profile_command", None)

    if subcmd == "edit":
        record = update_profile(config, user, _parse_assignments(args.assignments))
        print(f"Profile updated for {record.get('email', user.email)}.")
        return

    profile = load_profile(config, user)
    if profile is None:
        print(f"No employee record found for {user.email}.")
        return
    print(record_detail(profile).to_string(index=False))


_HANDLERS = {
    "init-db": _handle_init_db,
    "records": _handle_records_command,
    "import": _handle_import,
    "export": _handle_export,
    "template": _handle_template,
    "overview": _handle_overview,
    "project": _handle_project,
    "dashboard": _handle_dashboard,
    "whoami": _handle_whoami,
    "profile": _handle_profile,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the BizOps Console CLI.

    Parses command-line arguments, loads the configuration, configures
    logging, initializes the database and dispatches to the command handler.

    Returns
    -------
    int
        Process exit status: 0 on success, 1 on a known failure.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"bizops_console version {__version__}")
        return 0

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = load_app_config(args.config_path)
        _configure_logging(config.log_level, args.verbose)
        init_database(config.database)
        _HANDLERS[args.command](args, config)
    except KNOWN_ERRORS as exc:
        logger.debug("Command %r failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
