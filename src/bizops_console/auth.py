# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Identity, roles and permissions for BizOps Console.

Users are documents of the users collection (one per uid) holding an
``email`` and a list of ``roles``. Roles are plain strings following a
per-feature convention:

    "<Feature>:read"         can list and view records
    "<Feature>:full access"  can also create, edit and delete

where <Feature> is one of ``FEATURES`` (ManageAccount, ManageExpense, ...).
Matching is exact and case-sensitive.

Two gates exist:

- feature gating (``require_read`` / ``require_write``): used by the record
  services before every read or write;
- route gating (``route_allowed``): a view is reachable when the user holds
  any of the roles it allows (see ``ROUTE_ROLES``).

The module also covers the user profile: the employee record whose email
matches the session user, of which the user may edit designation, department
and status.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

from .db import (
    FieldFilter,
    count_documents,
    get_document,
    query_documents,
    set_document,
    update_document,
)
from .employees import DEPARTMENTS as EMPLOYEE_DEPARTMENTS
from .employees import STATUSES as EMPLOYEE_STATUSES
from .validation import ValidationError, require_choice, require_email, require_text

logger = logging.getLogger(__name__)

READ_SUFFIX = ":read"
FULL_ACCESS_SUFFIX = ":full access"

FEATURES: tuple[str, ...] = (
    "ManageAccount",
    "ManageClient",
    "ManageEmployee",
    "ManageExpense",
    "ManageEarning",
    "ManageProject",
    "ManageRole",
    "ManageMarketing",
    "ManageSales",
)

# Features that only come with full access in the role picker.
_FULL_ACCESS_ONLY = {"ManageMarketing", "ManageSales"}

PROFILE_FIELDS = ("designation", "department", "status")


class AuthenticationError(PermissionError):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "No authenticated user.") -> None:
        super().__init__(message)


class PermissionDeniedError(PermissionError):
    """Raised when the user lacks the role required by an operation."""


@dataclass(frozen=True)
class SessionUser:
    """
    The signed-in user.

    Attributes
    ----------
    uid:
        User id (id of the users document).
    email:
        Email address, used to find the matching employee profile.
    roles:
        Role strings granted to the user.
    """

    uid: str
    email: str
    roles: tuple[str, ...] = ()


RolesLike = Union[SessionUser, Iterable[str], None]


def read_role(feature: str) -> str:
    return f"{feature}{READ_SUFFIX}"


def full_access_role(feature: str) -> str:
    return f"{feature}{FULL_ACCESS_SUFFIX}"


ROLE_CATALOG: tuple[str, ...] = tuple(
    role
    for feature in FEATURES
    for role in (
        (full_access_role(feature),)
        if feature in _FULL_ACCESS_ONLY
        else (read_role(feature), full_access_role(feature))
    )
)
"""Every role string that can be granted to an employee."""

ROUTE_ROLES: dict[str, tuple[str, ...]] = {
    "overview": tuple(
        role
        for feature in ("ManageAccount", "ManageExpense", "ManageEarning")
        for role in (read_role(feature), full_access_role(feature))
    ),
    "project": (read_role("ManageProject"), full_access_role("ManageProject")),
    "marketing": (full_access_role("ManageMarketing"),),
    "sales": (full_access_role("ManageSales"),),
    "profile": (),
}
"""Roles allowed on each console view. An empty tuple means any signed-in user."""


def _roles_of(user: RolesLike) -> set[str]:
    if user is None:
        return set()
    if isinstance(user, SessionUser):
        return set(user.roles)
    return set(user)


# ---------------------------------------------------------------------------
# Permission checks
# ---------------------------------------------------------------------------


def has_access(user: RolesLike, feature: str) -> bool:
    """True if the user holds the read or the full-access role of `feature`."""
    roles = _roles_of(user)
    return read_role(feature) in roles or full_access_role(feature) in roles


def can_write(user: RolesLike, feature: str) -> bool:
    """True if the user holds the full-access role of `feature`."""
    return full_access_role(feature) in _roles_of(user)


def is_read_only(user: RolesLike, feature: str) -> bool:
    """True if the user can read `feature` but not write to it."""
    return has_access(user, feature) and not can_write(user, feature)


def require_user(user: Optional[SessionUser]) -> SessionUser:
    """Return `user`, or raise AuthenticationError if there is none."""
    if user is None:
        raise AuthenticationError()
    return user


def require_read(user: Optional[SessionUser], feature: str) -> SessionUser:
    """
    Ensure the user may read `feature`.

    Raises
    ------
    AuthenticationError
        If `user` is None.
    PermissionDeniedError
        If the user has neither the read nor the full-access role.
    """
    user = require_user(user)
    if not has_access(user, feature):
        raise PermissionDeniedError(
            f"{user.email} is not allowed to view {feature} records."
        )
    return user


def require_write(user: Optional[SessionUser], feature: str) -> SessionUser:
    """
    Ensure the user may create, edit and delete `feature` records.

    Raises
    ------
    AuthenticationError
        If `user` is None.
    PermissionDeniedError
        If the user does not hold the full-access role.
    """
    user = require_user(user)
    if not can_write(user, feature):
        raise PermissionDeniedError(
            f"{user.email} has read-only access to {feature} records."
            if has_access(user, feature)
            else f"{user.email} is not allowed to modify {feature} records."
        )
    return user


def route_allowed(user: RolesLike, allowed_roles: Iterable[str]) -> bool:
    """
    True if the user holds any of `allowed_roles`.

    An empty `allowed_roles` admits any signed-in user.
    """
    allowed = list(allowed_roles)
    if not allowed:
        return user is not None
    roles = _roles_of(user)
    return any(role in roles for role in allowed)


def require_route(user: Optional[SessionUser], view: str) -> SessionUser:
    """Raise unless `user` may open the console view named `view`."""
    user = require_user(user)
    if not route_allowed(user, ROUTE_ROLES.get(view, ())):
        raise PermissionDeniedError(f"{user.email} is not allowed to open '{view}'.")
    return user


def clean_role_labels(roles: Iterable[str]) -> list[str]:
    """
    Strip the access suffix from role strings and de-duplicate them.

    ["ManageExpense:read", "ManageExpense:full access", "ManageClient:read"]
    -> ["ManageExpense", "ManageClient"]
    """
    labels: list[str] = []
    for role in roles:
        label = role
        for suffix in (FULL_ACCESS_SUFFIX, READ_SUFFIX):
            if label.endswith(suffix):
                label = label[: -len(suffix)]
                break
        if label not in labels:
            labels.append(label)
    return labels


def validate_roles(roles: Iterable[str]) -> list[str]:
    """Return the roles unchanged if they all belong to ROLE_CATALOG."""
    result = list(roles)
    unknown = [role for role in result if role not in ROLE_CATALOG]
    if unknown:
        raise ValidationError(f"Unknown role(s): {', '.join(unknown)}.", "Roles")
    return result


# ---------------------------------------------------------------------------
# Users collection
# ---------------------------------------------------------------------------


def _users_collection(app_config) -> str:
    identity = getattr(app_config, "identity", None)
    return getattr(identity, "users_collection", "users")


def sync_user_roles(
    app_config,
    uid: str,
    email: str,
    roles: Iterable[str],
) -> None:
    """Mirror an employee's email and roles into their users document (merge)."""
    set_document(
        app_config.database,
        _users_collection(app_config),
        uid,
        {"email": email, "roles": list(roles)},
        merge=True,
    )
    logger.info("Synchronized roles of user %s (%s)", uid, email)


def load_session_user(
    app_config,
    email: Optional[str] = None,
    *,
    uid: Optional[str] = None,
) -> SessionUser:
    """
    Resolve the signed-in user from the users collection.

    Parameters
    ----------
    app_config:
        Application configuration (database and identity sections).
    email:
        Email of the user. Ignored when `uid` is given.
    uid:
        Id of the users document.

    Raises
    ------
    AuthenticationError
        If neither email nor uid is given, or no matching user exists.
    """
    collection = _users_collection(app_config)

    if uid:
        found = get_document(app_config.database, collection, uid)
        docs = [found] if found is not None else []
    elif email:
        docs = query_documents(
            app_config.database,
            collection,
            [FieldFilter("email", "==", email.strip())],
        )
    else:
        raise AuthenticationError()

    if not docs:
        raise AuthenticationError(f"No user registered for {uid or email}.")

    doc = docs[0]
    return SessionUser(
        uid=doc.id,
        email=str(doc.data.get("email") or ""),
        roles=tuple(doc.data.get("roles") or ()),
    )


def bootstrap_admin(app_config, email: str) -> Optional[SessionUser]:
    """
    Create a first user with full access to every feature.

    Only acts when the users collection is empty, so it cannot be used to
    escalate privileges on a populated database.

    Returns
    -------
    SessionUser or None
        The created user, or None if users already exist.
    """
    email = require_email(email)
    collection = _users_collection(app_config)
    if count_documents(app_config.database, collection) > 0:
        logger.info("Users already exist, skipping administrator bootstrap")
        return None

    roles = [full_access_role(feature) for feature in FEATURES]
    uid = email.lower()
    set_document(app_config.database, collection, uid, {"email": email, "roles": roles})
    logger.info("Bootstrapped administrator %s", email)
    return SessionUser(uid=uid, email=email, roles=tuple(roles))


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


def load_profile(app_config, user: Optional[SessionUser]) -> Optional[dict[str, Any]]:
    """
    Return the employee record of the signed-in user, if there is one.

    The record carries an extra ``roleLabels`` entry with the user's roles
    stripped of their access suffix.
    """
    user = require_user(user)
    docs = query_documents(
        app_config.database,
        "employees",
        [FieldFilter("email", "==", user.email)],
    )
    if not docs:
        return None
    record = docs[0].to_record()
    record["roleLabels"] = clean_role_labels(user.roles)
    return record


def update_profile(
    app_config,
    user: Optional[SessionUser],
    changes: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Update designation, department and/or status on the user's employee record.

    Raises
    ------
    ValidationError
        If another field is given or a value is invalid, or if the user has
        no employee record.
    """
    user = require_user(user)
    extra = set(changes) - set(PROFILE_FIELDS)
    if extra:
        raise ValidationError(
            f"Only {', '.join(PROFILE_FIELDS)} can be edited from the profile."
        )

    docs = query_documents(
        app_config.database,
        "employees",
        [FieldFilter("email", "==", user.email)],
    )
    if not docs:
        raise ValidationError(f"No employee record found for {user.email}.")

    cleaned: dict[str, Any] = {}
    if "designation" in changes:
        cleaned["designation"] = require_text(changes["designation"], "Designation")
    if "department" in changes:
        cleaned["department"] = require_choice(
            changes["department"], EMPLOYEE_DEPARTMENTS, "Department"
        )
    if "status" in changes:
        cleaned["status"] = require_choice(
            changes["status"], EMPLOYEE_STATUSES, "Status"
        )
    if not cleaned:
        raise ValidationError("No profile fields to update.")

    doc = update_document(app_config.database, "employees", docs[0].id, cleaned)
    logger.info("Profile of %s updated (%s)", user.email, ", ".join(sorted(cleaned)))
    return doc.to_record()
