# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Record type definitions for BizOps Console.

Every "screen" of the console works the same way: list documents, validate
a form, generate an id, write, re-list. What differs from one record type to
another is captured by an :class:`EntityDefinition`:

- the collection and the permission feature guarding it,
- the form normalizer (``build``) and its inverse (``to_form``),
- the human-readable id field and how its values are generated (or whether
  the user supplies them, as for deals),
- whether records may be deleted,
- the fields used by free-text search and by list views,
- required references to other collections (a project needs an existing
  client and account),
- optional hooks run before and after each write.

``ENTITIES`` maps each record type name ("account", "expense", ...) to its
definition; ``get_entity`` resolves a name typed by a user.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from . import (
    accounts,
    clients,
    earnings,
    employees,
    expenses,
    ids,
    marketing,
    projects,
    roles,
    sales,
)
from .auth import sync_user_roles, validate_roles
from .db import FieldFilter, field_value_exists, query_documents

logger = logging.getLogger(__name__)

IdGenerator = Callable[[Mapping[str, Any], Optional[random.Random]], str]
WriteHook = Callable[[Any, dict[str, Any], Optional[Mapping[str, Any]]], dict[str, Any]]
AfterWriteHook = Callable[[Any, Mapping[str, Any]], None]


@dataclass(frozen=True)
class Reference:
    """A field that must name an existing record of another collection."""

    field: str
    collection: str
    target_field: str
    label: str


@dataclass(frozen=True)
class EntityDefinition:
    """
    Everything the record service needs to manage one record type.

    Attributes
    ----------
    name:
        Singular name used on the command line ("expense").
    label:
        Human label ("Expense").
    collection:
        Collection storing the records.
    feature:
        Permission feature ("ManageExpense").
    build:
        Form -> document fields; raises ValidationError.
    to_form:
        Document fields -> editable form.
    id_field:
        Human-readable id field, if any.
    id_generator:
        Builds a candidate id from the validated fields.
    user_supplied_id:
        The id is typed by the user and must be unique.
    deletable:
        Whether records can be hard-deleted.
    search_fields:
        Fields scanned by free-text search.
    list_columns:
        Columns shown by list views.
    references:
        Required references checked before writing.
    linked:
        References shown by name in list and detail views. They are not
        checked, so an orphaned one is displayed as "N/A".
    before_write, after_write:
        Optional hooks around each write.
    """

    name: str
    label: str
    collection: str
    feature: str
    build: Callable[[Mapping[str, Any]], dict[str, Any]]
    to_form: Callable[[Mapping[str, Any]], dict[str, Any]]
    id_field: Optional[str] = None
    id_generator: Optional[IdGenerator] = None
    user_supplied_id: bool = False
    deletable: bool = False
    search_fields: tuple[str, ...] = ()
    list_columns: tuple[str, ...] = ()
    references: tuple[Reference, ...] = ()
    linked: tuple[Reference, ...] = ()
    before_write: Optional[WriteHook] = None
    after_write: Optional[AfterWriteHook] = None


# ---------------------------------------------------------------------------
# Hooks
# ---------------------------------------------------------------------------


def _client_contract(app_config, data: dict[str, Any], existing) -> dict[str, Any]:
    """Assign a contract id on creation; keep the stored one on edits."""
    if existing and existing.get("contractId"):
        data["contractId"] = existing["contractId"]
        return data

    max_attempts = app_config.ids.max_attempts
    data["contractId"] = ids.generate_unique_id(
        ids.contract_id,
        lambda candidate: field_value_exists(
            app_config.database, "clients", "contractId", candidate
        ),
        max_attempts=max_attempts,
    )
    return data


def _employee_roles(app_config, data: dict[str, Any], existing) -> dict[str, Any]:
    data["roles"] = validate_roles(data.get("roles") or [])
    return data


def _employee_sync_user(app_config, record: Mapping[str, Any]) -> None:
    sync_user_roles(
        app_config, record["uid"], record["email"], record.get("roles") or []
    )


def project_expenses_total(app_config, project_id: str) -> float:
    """Sum of the expenses whose projectId equals `project_id`."""
    docs = query_documents(
        app_config.database,
        "expenses",
        [FieldFilter("projectId", "==", project_id)],
    )
    total = 0.0
    for doc in docs:
        try:
            total += float(doc.data.get("amount") or 0)
        except (TypeError, ValueError):
            logger.debug("Skipping non-numeric amount in expense %s", doc.id)
            continue
    return total


def _project_metrics(app_config, data: dict[str, Any], existing) -> dict[str, Any]:
    total = project_expenses_total(app_config, data["projectId"])
    return projects.apply_expense_metrics(data, total)


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

_PROJECT_REF = Reference("projectId", "projects", "projectId", "Project")
_CLIENT_REF = Reference("clientId", "clients", "clientId", "Client")
_ACCOUNT_REF = Reference("accountId", "accounts", "accountId", "Account")


ENTITIES: dict[str, EntityDefinition] = {
    "account": EntityDefinition(
        name="account",
        label="Account",
        collection="accounts",
        feature="ManageAccount",
        build=accounts.build_account,
        to_form=accounts.account_to_form,
        id_field="accountId",
        id_generator=lambda data, rng: ids.account_id(rng),
        deletable=True,
        search_fields=("accountId", "name", "industry", "status"),
        list_columns=(
            "accountId",
            "name",
            "industry",
            "revenue",
            "expenses",
            "profitMargin",
            "status",
        ),
    ),
    "client": EntityDefinition(
        name="client",
        label="Client",
        collection="clients",
        feature="ManageClient",
        build=clients.build_client,
        to_form=clients.client_to_form,
        id_field="clientId",
        id_generator=lambda data, rng: ids.client_id(rng),
        search_fields=("clientId", "name", "email", "industry"),
        list_columns=(
            "clientId",
            "name",
            "email",
            "industry",
            "contractId",
            "status",
        ),
        before_write=_client_contract,
    ),
    "employee": EntityDefinition(
        name="employee",
        label="Employee",
        collection="employees",
        feature="ManageEmployee",
        build=employees.build_employee,
        to_form=employees.employee_to_form,
        id_field="employeeId",
        id_generator=lambda data, rng: ids.employee_id(data["name"], rng),
        search_fields=("employeeId", "name", "email", "department", "designation"),
        list_columns=(
            "employeeId",
            "name",
            "email",
            "department",
            "designation",
            "status",
        ),
        before_write=_employee_roles,
        after_write=_employee_sync_user,
    ),
    "expense": EntityDefinition(
        name="expense",
        label="Expense",
        collection="expenses",
        feature="ManageExpense",
        build=expenses.build_expense,
        to_form=expenses.expense_to_form,
        id_field="expenseId",
        id_generator=lambda data, rng: ids.expense_id(rng),
        deletable=True,
        search_fields=("expenseId", "description", "projectId", "accountId"),
        list_columns=(
            "expenseId",
            "category",
            "amount",
            "date",
            "projectId",
            "accountId",
            "recurring",
        ),
        linked=(_PROJECT_REF, _ACCOUNT_REF),
    ),
    "earning": EntityDefinition(
        name="earning",
        label="Earning",
        collection="earnings",
        feature="ManageEarning",
        build=earnings.build_earning,
        to_form=earnings.earning_to_form,
        id_field="earningId",
        id_generator=lambda data, rng: ids.earning_id(rng),
        search_fields=("earningId", "category", "referenceId"),
        list_columns=("earningId", "category", "referenceId", "amount", "date"),
    ),
    "project": EntityDefinition(
        name="project",
        label="Project",
        collection="projects",
        feature="ManageProject",
        build=projects.build_project,
        to_form=projects.project_to_form,
        id_field="projectId",
        id_generator=lambda data, rng: ids.project_id(data["name"], rng),
        deletable=True,
        search_fields=("projectId", "name", "team", "status"),
        list_columns=(
            "projectId",
            "name",
            "accountId",
            "clientId",
            "status",
            "completion",
        ),
        references=(_CLIENT_REF, _ACCOUNT_REF),
        linked=(_CLIENT_REF, _ACCOUNT_REF),
        before_write=_project_metrics,
    ),
    "role": EntityDefinition(
        name="role",
        label="Role",
        collection="roles",
        feature="ManageRole",
        build=roles.build_role,
        to_form=roles.role_to_form,
        id_field="roleId",
        id_generator=lambda data, rng: ids.role_id(rng),
        deletable=True,
        search_fields=("roleId", "roleName", "department", "experienceLevel"),
        list_columns=(
            "roleId",
            "roleName",
            "department",
            "experienceLevel",
            "status",
        ),
    ),
    "lead": EntityDefinition(
        name="lead",
        label="Lead",
        collection="leads",
        feature="ManageMarketing",
        build=marketing.build_lead,
        to_form=marketing.lead_to_form,
        deletable=True,
        search_fields=("channel", "team", "project", "account"),
        list_columns=(
            "id",
            "channel",
            "leads",
            "marketingQualifiedLeads",
            "salesQualifiedLeads",
            "conversions",
            "spend",
            "team",
        ),
    ),
    "campaign": EntityDefinition(
        name="campaign",
        label="Campaign",
        collection="campaigns",
        feature="ManageMarketing",
        build=marketing.build_campaign,
        to_form=marketing.campaign_to_form,
        deletable=True,
        search_fields=("name", "type", "team", "project", "account"),
        list_columns=(
            "id",
            "name",
            "type",
            "cost",
            "revenue",
            "clickThroughRate",
            "team",
        ),
    ),
    "deal": EntityDefinition(
        name="deal",
        label="Deal",
        collection="deals",
        feature="ManageSales",
        build=sales.build_deal,
        to_form=sales.deal_to_form,
        id_field="dealId",
        user_supplied_id=True,
        deletable=True,
        search_fields=("dealId", "salesperson", "team", "region", "product"),
        list_columns=(
            "dealId",
            "stage",
            "value",
            "dateEntered",
            "dateClosed",
            "team",
            "outcome",
        ),
    ),
    "team": EntityDefinition(
        name="team",
        label="Team",
        collection="teams",
        feature="ManageSales",
        build=sales.build_team,
        to_form=sales.team_to_form,
        deletable=True,
        search_fields=("teamName",),
        list_columns=("id", "teamName", "quota"),
    ),
}


def get_entity(name: str) -> EntityDefinition:
    """
    Resolve a record type from its singular or plural name.

    Raises
    ------
    ValueError
        If the name is unknown.
    """
    key = (name or "").strip().lower()
    if key in ENTITIES:
        return ENTITIES[key]
    for definition in ENTITIES.values():
        if key == definition.collection:
            return definition
    raise ValueError(
        f"Unknown record type {name!r}. Expected one of: {', '.join(ENTITIES)}."
    )
