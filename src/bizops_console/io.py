# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Spreadsheet import and export for BizOps Console.

Employees, accounts and clients can be exchanged as spreadsheets. The file
format is chosen from the extension: ``.xlsx`` (read and written with
openpyxl) or ``.csv``.

Column names
------------
Headers are matched loosely: a header is lower-cased, its whitespace removed,
and it is mapped to the first canonical column whose alias it contains. For
employees:

    "Full Name" -> Name         "Email Address" -> Email
    "joining"   -> Joining Date "Exit"          -> Exit Date

Headers matching no alias are ignored.

Import semantics
----------------
Rows are validated and written one at a time, in file order, through
``records_service.create_record`` (so ids are generated and hooks run as for
a record typed by hand). The first invalid row stops the import and raises
``ImportAbortedError``; rows written before it stay written.

Employee roles that are not in the role catalog are dropped on import rather
than rejected.

Export
------
``export_records`` writes the current records under the canonical headers;
``write_template`` writes the canonical headers with one sample row that
imports cleanly.
"""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .auth import ROLE_CATALOG, SessionUser, require_write
from .entities import get_entity
from .ids import IdGenerationError
from .records_service import create_record, list_records
from .validation import ValidationError, is_blank, split_list

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

SUPPORTED_SUFFIXES = (".xlsx", ".csv")


class ImportAbortedError(Exception):
    """
    Raised when a spreadsheet row fails validation.

    Attributes
    ----------
    row_number:
        Spreadsheet row of the failure (the header is row 1).
    reason:
        Why the row was rejected.
    rows_written:
        Rows created before the failure.
    """

    def __init__(self, row_number: int, reason: str, rows_written: int) -> None:
        self.row_number = row_number
        self.reason = reason
        self.rows_written = rows_written
        super().__init__(
            f"Import aborted at row {row_number}: {reason} "
            f"({rows_written} row(s) imported before the error)."
        )


@dataclass(frozen=True)
class SheetLayout:
    """
    Spreadsheet layout of one record type.

    Attributes
    ----------
    entity:
        Record type name.
    sheet_name:
        Worksheet name used on export.
    columns:
        Canonical header -> form field, in export order.
    aliases:
        (substring, canonical header) pairs, checked in order.
    sample:
        Sample row written by the template.
    """

    entity: str
    sheet_name: str
    columns: dict[str, str]
    aliases: tuple[tuple[str, str], ...]
    sample: dict[str, Any]


LAYOUTS: dict[str, SheetLayout] = {
    "employee": SheetLayout(
        entity="employee",
        sheet_name="Employees",
        columns={
            "Name": "name",
            "Email": "email",
            "Phone": "phone",
            "Department": "department",
            "Designation": "designation",
            "Joining Date": "joiningDate",
            "Exit Date": "exitDate",
            "Salary": "salary",
            "Status": "status",
            "Roles": "roles",
        },
        aliases=(
            ("name", "Name"),
            ("email", "Email"),
            ("phone", "Phone"),
            ("department", "Department"),
            ("designation", "Designation"),
            ("joining", "Joining Date"),
            ("exit", "Exit Date"),
            ("salary", "Salary"),
            ("status", "Status"),
            ("roles", "Roles"),
        ),
        sample={
            "Name": "Jane Doe",
            "Email": "jane.doe@example.com",
            "Phone": "+1 555 0100",
            "Department": "Finance",
            "Designation": "Accountant",
            "Joining Date": "2025-01-15",
            "Exit Date": "",
            "Salary": 52000,
            "Status": "Active",
            "Roles": "ManageExpense:read, ManageEarning:read",
        },
    ),
    "account": SheetLayout(
        entity="account",
        sheet_name="Accounts",
        columns={
            "Name": "name",
            "Industry": "industry",
            "Revenue": "revenue",
            "Expenses": "expenses",
            "Status": "status",
            "Notes": "notes",
        },
        aliases=(
            ("name", "Name"),
            ("industry", "Industry"),
            ("revenue", "Revenue"),
            ("expense", "Expenses"),
            ("status", "Status"),
            ("note", "Notes"),
        ),
        sample={
            "Name": "Northwind",
            "Industry": "Retail",
            "Revenue": 120000,
            "Expenses": 80000,
            "Status": "Active",
            "Notes": "",
        },
    ),
    "client": SheetLayout(
        entity="client",
        sheet_name="Clients",
        columns={
            "Name": "name",
            "Email": "email",
            "Phone": "phone",
            "Address": "address",
            "Industry": "industry",
            "Contract Start Date": "contractStartDate",
            "Contract End Date": "contractEndDate",
            "Status": "status",
            "Notes": "notes",
        },
        aliases=(
            ("name", "Name"),
            ("email", "Email"),
            ("phone", "Phone"),
            ("address", "Address"),
            ("industry", "Industry"),
            ("start", "Contract Start Date"),
            ("end", "Contract End Date"),
            ("status", "Status"),
            ("note", "Notes"),
        ),
        sample={
            "Name": "Contoso",
            "Email": "billing@contoso.example",
            "Phone": "+1 555 0199",
            "Address": "1 Main Street",
            "Industry": "Technology",
            "Contract Start Date": "2025-01-01",
            "Contract End Date": "2025-12-31",
            "Status": "Active",
            "Notes": "",
        },
    ),
}


def get_layout(entity: str) -> SheetLayout:
    """
    Return the spreadsheet layout of a record type.

    Raises
    ------
    ValueError
        If the record type cannot be exchanged as a spreadsheet.
    """
    key = (entity or "").strip().lower().rstrip("s")
    if key not in LAYOUTS:
        raise ValueError(
            f"Spreadsheets are not supported for {entity!r}. "
            f"Expected one of: {', '.join(LAYOUTS)}."
        )
    return LAYOUTS[key]


def normalize_column_name(name: Any, layout: SheetLayout) -> Optional[str]:
    """
    Map a spreadsheet header to a canonical column, or None if unknown.

    >>> normalize_column_name(" Joining date ", LAYOUTS["employee"])
    'Joining Date'
    """
    if is_blank(name):
        return None
    clean = "".join(str(name).lower().split())
    for alias, column in layout.aliases:
        if alias in clean:
            return column
    return None


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported spreadsheet format {suffix or '(none)'!r}; "
            f"use one of {', '.join(SUPPORTED_SUFFIXES)}."
        )
    return suffix


def read_spreadsheet(path: PathLike, layout: SheetLayout) -> pd.DataFrame:
    """
    Read a spreadsheet and rename its columns to the canonical headers.

    Fully blank rows are dropped. When two headers map to the same column, the
    first one wins.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the extension is not supported.
    """
    path = Path(path)
    suffix = _check_suffix(path)
    if not path.exists():
        raise FileNotFoundError(f"Spreadsheet not found: {path}")

    if suffix == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    else:
        df = pd.read_excel(path, engine="openpyxl", dtype=object)

    renamed: dict[str, str] = {}
    for original in df.columns:
        column = normalize_column_name(original, layout)
        if column is not None and column not in renamed.values():
            renamed[original] = column

    if not renamed:
        raise ValueError(
            f"No recognized columns in {path.name}; "
            f"expected: {', '.join(layout.columns)}."
        )

    df = df[list(renamed)].rename(columns=renamed)
    if not df.empty:
        blank = df.apply(lambda row: all(is_blank(v) for v in row), axis=1)
        df = df[~blank]
    return df


def _known_roles(value: Any) -> list[str]:
    by_lower = {role.lower(): role for role in ROLE_CATALOG}
    return [by_lower[r.lower()] for r in split_list(value) if r.lower() in by_lower]


def _row_to_form(row: Mapping[str, Any], layout: SheetLayout) -> dict[str, Any]:
    form = {
        field: (None if is_blank(row.get(header)) else row.get(header))
        for header, field in layout.columns.items()
    }
    if layout.entity == "employee":
        form["roles"] = _known_roles(form.get("roles"))
    return form


def import_records(
    app_config,
    user: Optional[SessionUser],
    entity: str,
    path: PathLike,
    *,
    rng: Optional[random.Random] = None,
) -> list[dict[str, Any]]:
    """
    Import records from a spreadsheet.

    Returns
    -------
    list of dict
        The created records, in file order.

    Raises
    ------
    ImportAbortedError
        On the first invalid row; earlier rows remain written.
    PermissionDeniedError
        If the user may not create records of this type.
    """
    layout = get_layout(entity)
    require_write(user, get_entity(layout.entity).feature)
    df = read_spreadsheet(path, layout)

    created: list[dict[str, Any]] = []
    for position, row in enumerate(df.to_dict("records")):
        row_number = int(df.index[position]) + 2
        try:
            record = create_record(
                app_config, user, layout.entity, _row_to_form(row, layout), rng=rng
            )
        except (ValidationError, IdGenerationError) as exc:
            logger.warning(
                "Import of %s aborted at row %d: %s", path, row_number, exc
            )
            raise ImportAbortedError(row_number, str(exc), len(created)) from exc
        created.append(record)

    logger.info("Imported %d %s record(s) from %s", len(created), layout.entity, path)
    return created


def _format_cell(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    if value is None:
        return ""
    return value


def records_to_sheet(records: pd.DataFrame, layout: SheetLayout) -> pd.DataFrame:
    """Return records as a DataFrame with the canonical headers."""
    rows = []
    for record in records.to_dict("records"):
        rows.append(
            {
                header: _format_cell(
                    None if is_blank(record.get(field)) else record.get(field)
                )
                for header, field in layout.columns.items()
            }
        )
    return pd.DataFrame(rows, columns=list(layout.columns))


def write_sheet(df: pd.DataFrame, path: PathLike, sheet_name: str) -> Path:
    """Write a DataFrame as ``.xlsx`` or ``.csv`` depending on the extension."""
    path = Path(path)
    suffix = _check_suffix(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        df.to_csv(path, index=False)
    else:
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name=sheet_name, index=False)
    return path


def export_records(
    app_config,
    entity: str,
    path: PathLike,
    *,
    user: Optional[SessionUser] = None,
) -> Path:
    """
    Export the current records of a type to a spreadsheet.

    Returns
    -------
    pathlib.Path
        The written file.
    """
    layout = get_layout(entity)
    records = list_records(app_config, layout.entity, user=user)
    written = write_sheet(records_to_sheet(records, layout), path, layout.sheet_name)
    logger.info("Exported %d %s record(s) to %s", len(records), layout.entity, written)
    return written


def write_template(entity: str, path: PathLike) -> Path:
    """Write the canonical headers of a record type with one sample row."""
    layout = get_layout(entity)
    df = pd.DataFrame([layout.sample], columns=list(layout.columns))
    return write_sheet(df, path, layout.sheet_name)
