# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Employees for BizOps Console.

Employee documents hold HR data and the roles that drive access control:

- ``employeeId``  first three letters of the name + "-" + 3 digits,
- ``name``, ``email``, ``phone``,
- ``department``  one of ``DEPARTMENTS``,
- ``designation`` job title,
- ``joiningDate``, ``exitDate`` ISO dates (exit is optional),
- ``salary``      non-negative number,
- ``status``      one of ``STATUSES``,
- ``roles``       role strings ("ManageExpense:read", ...),
- ``uid``         id of the matching users document.

Saving an employee also writes ``{email, roles}`` to the users document
keyed by ``uid`` (see ``auth.sync_user_roles``), so role changes apply on
the user's next session. Employees are never deleted; they leave through
the "Resigned" or "Terminated" status.
"""

from collections.abc import Mapping
from typing import Any

from .validation import (
    ValidationError,
    coerce_number,
    optional_text,
    parse_iso_date,
    require_choice,
    require_email,
    require_text,
    split_list,
)

DEPARTMENTS = ("HR", "Engineering", "Marketing", "Sales", "Finance")
STATUSES = ("Active", "On Leave", "Resigned", "Terminated")


def build_employee(form: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate an employee form and return the document fields to store.

    Required: name, email, department, designation, joining date, status.
    When no ``uid`` is given, the lower-cased email is used.

    Raises
    ------
    ValidationError
        On the first invalid field.
    """
    name = require_text(form.get("name"), "Name")
    email = require_email(form.get("email"))
    department = require_choice(form.get("department"), DEPARTMENTS, "Department")
    designation = require_text(form.get("designation"), "Designation")
    joining_date = parse_iso_date(form.get("joiningDate"), "Joining date")
    exit_date = parse_iso_date(form.get("exitDate"), "Exit date", required=False)
    if exit_date and joining_date and exit_date < joining_date:
        raise ValidationError(
            "Exit date cannot be before the joining date.", "Exit date"
        )
    status = require_choice(form.get("status"), STATUSES, "Status")

    return {
        "name": name,
        "email": email,
        "phone": optional_text(form.get("phone")),
        "department": department,
        "designation": designation,
        "joiningDate": joining_date,
        "exitDate": exit_date,
        "salary": coerce_number(form.get("salary"), "Salary", minimum=0),
        "status": status,
        "roles": split_list(form.get("roles")),
        "uid": optional_text(form.get("uid")) or email.lower(),
    }


def employee_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "name": data.get("name", ""),
        "email": data.get("email", ""),
        "phone": data.get("phone", ""),
        "department": data.get("department", ""),
        "designation": data.get("designation", ""),
        "joiningDate": data.get("joiningDate", ""),
        "exitDate": data.get("exitDate") or "",
        "salary": data.get("salary", 0),
        "status": data.get("status", ""),
        "roles": list(data.get("roles") or []),
        "uid": data.get("uid", ""),
    }
