# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Job roles for BizOps Console.

A role describes a position in the organization (not an access right):
title, department, responsibilities, required skills, experience level,
salary range, whether it is managerial, and its lifecycle status.
"""

from collections.abc import Mapping
from typing import Any

from .validation import (
    ValidationError,
    coerce_number,
    optional_text,
    parse_bool,
    require_choice,
    require_text,
    split_list,
)

DEPARTMENTS = ("Development", "HR", "Marketing", "Finance", "Operations")
EXPERIENCE_LEVELS = ("Entry-level", "Mid-level", "Senior-level")
STATUSES = ("Active", "Archived")


def build_role(form: Mapping[str, Any]) -> dict[str, Any]:
    """
    Validate a role form and return the document fields to store.

    ``salaryMin`` / ``salaryMax`` are stored under ``salaryRange``; the
    maximum cannot be lower than the minimum.
    """
    salary_min = coerce_number(form.get("salaryMin"), "Minimum salary", minimum=0)
    salary_max = coerce_number(form.get("salaryMax"), "Maximum salary", minimum=0)
    if salary_max and salary_max < salary_min:
        raise ValidationError(
            "Maximum salary cannot be lower than the minimum salary.", "Maximum salary"
        )

    return {
        "roleName": require_text(form.get("roleName"), "Role name"),
        "description": optional_text(form.get("description")),
        "department": require_choice(
            form.get("department"), DEPARTMENTS, "Department", default=""
        ),
        "responsibilities": split_list(form.get("responsibilities")),
        "requiredSkills": split_list(form.get("requiredSkills")),
        "experienceLevel": require_choice(
            form.get("experienceLevel"),
            EXPERIENCE_LEVELS,
            "Experience level",
            default="",
        ),
        "salaryRange": {"min": salary_min, "max": salary_max},
        "isManagerial": parse_bool(form.get("isManagerial"), "Managerial"),
        "status": require_choice(
            form.get("status"), STATUSES, "Status", default="Active"
        ),
        "permissions": split_list(form.get("permissions")),
    }


def role_to_form(data: Mapping[str, Any]) -> dict[str, Any]:
    salary_range = data.get("salaryRange") or {}
    return {
        "roleName": data.get("roleName", ""),
        "description": data.get("description", ""),
        "department": data.get("department", ""),
        "responsibilities": list(data.get("responsibilities") or []),
        "requiredSkills": list(data.get("requiredSkills") or []),
        "experienceLevel": data.get("experienceLevel", ""),
        "salaryMin": salary_range.get("min", 0),
        "salaryMax": salary_range.get("max", 0),
        "isManagerial": bool(data.get("isManagerial", False)),
        "status": data.get("status", ""),
        "permissions": list(data.get("permissions") or []),
    }
