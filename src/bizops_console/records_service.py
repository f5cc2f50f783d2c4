# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for CRUD operations on business records.

This module sits between:
- the low-level document store in `db.py`, and
- user-facing layers such as the CLI or a future Web UI.

It implements, once, the workflow every management screen follows, and
parameterizes it with the record type definitions of `entities.py`.

Responsibilities
----------------
1) Listing & Searching
   - Read a collection, optionally with field filters (equality, ranges,
     membership), a created-at date range and a case-insensitive free-text
     search over the record type's search fields.
   - Pagination (limit / offset) for UI integrations.
   - Names of referenced projects, clients and accounts, for display.

2) CRUD Operations
   - Create records: validate the form, generate the human-readable id
     (bounded retry), check required references, run hooks, write.
   - Edit records: flatten the stored document back into a form, overlay
     the changes, re-validate and write a field merge.
   - Delete records, for the record types that allow it.

3) Live views
   - Subscribe to a filtered collection; the callback receives a fresh
     list of records after every write.

4) Access control
   - When a user is given, reads require "<Feature>:read" or
     "<Feature>:full access"; writes always require full access.

Design notes
------------
- Failures are raised as typed exceptions (ValidationError,
  PermissionDeniedError, DocumentNotFoundError, WriteError,
  IdGenerationError). Nothing is retried.
- Id uniqueness is checked by reading before writing. Two concurrent
  creations can still collide; this module does not try to prevent it.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional, Union

import pandas as pd

from .auth import PermissionDeniedError, SessionUser, require_read, require_write
from .db import (
    DatabaseConfig,
    Document,
    DocumentNotFoundError,
    FieldFilter,
    _now_utc_iso,
)
from .db import (
    add_document as _db_add_document,
)
from .db import (
    delete_document as _db_delete_document,
)
from .db import (
    field_value_exists as _db_field_value_exists,
)
from .db import (
    get_document as _db_get_document,
)
from .db import (
    query_documents as _db_query_documents,
)
from .db import (
    subscribe_documents as _db_subscribe_documents,
)
from .db import (
    update_document as _db_update_document,
)
from .earnings import reference_collection
from .entities import EntityDefinition, get_entity
from .ids import generate_unique_id
from .live import Subscription
from .periods import DateRange
from .validation import ValidationError, is_blank

logger = logging.getLogger(__name__)

EntityLike = Union[str, EntityDefinition]

CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"


def _get_db_config(app_config) -> DatabaseConfig:
    """
    Extract the DatabaseConfig from the application configuration.

    This helper isolates the dependency on AppConfig so that the rest of
    the module only deals with DatabaseConfig.
    """
    return app_config.database


def _resolve(entity: EntityLike) -> EntityDefinition:
    if isinstance(entity, EntityDefinition):
        return entity
    return get_entity(entity)


def _max_attempts(app_config) -> int:
    ids_cfg = getattr(app_config, "ids", None)
    return getattr(ids_cfg, "max_attempts", 10)


def _matches_search(
    record: Mapping[str, Any], fields: Iterable[str], needle: str
) -> bool:
    for field in fields:
        value = record.get(field)
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = " ".join(str(v) for v in value)
        if needle in str(value).lower():
            return True
    return False


def _find_document(app_config, definition: EntityDefinition, key: str) -> Document:
    """
    Locate a record by document id, or by its human-readable id.

    Raises
    ------
    DocumentNotFoundError
        If no record matches.
    """
    cfg = _get_db_config(app_config)
    doc = _db_get_document(cfg, definition.collection, key)
    if doc is not None:
        return doc

    if definition.id_field:
        docs = _db_query_documents(
            cfg,
            definition.collection,
            [FieldFilter(definition.id_field, "==", key)],
            limit=1,
        )
        if docs:
            return docs[0]

    raise DocumentNotFoundError(definition.collection, key)


def _check_references(
    app_config, definition: EntityDefinition, data: Mapping[str, Any]
) -> None:
    cfg = _get_db_config(app_config)
    for ref in definition.references:
        value = data.get(ref.field)
        if not value or not _db_field_value_exists(
            cfg, ref.collection, ref.target_field, value
        ):
            raise ValidationError(f"{ref.label} {value!r} does not exist.", ref.label)


def _check_user_id_unique(
    app_config,
    definition: EntityDefinition,
    value: str,
    own_doc_id: Optional[str] = None,
) -> None:
    docs = _db_query_documents(
        _get_db_config(app_config),
        definition.collection,
        [FieldFilter(definition.id_field, "==", value)],
    )
    if any(doc.id != own_doc_id for doc in docs):
        raise ValidationError(
            f"{definition.label} ID already exists.", definition.id_field
        )


# ---------------------------------------------------------------------------
# Listing & searching
# ---------------------------------------------------------------------------


def list_records(
    app_config,
    entity: EntityLike,
    *,
    user: Optional[SessionUser] = None,
    filters: Iterable[FieldFilter] = (),
    search: Optional[str] = None,
    date_range: Optional[DateRange] = None,
    limit: Optional[int] = None,
    offset: int = 0,
) -> pd.DataFrame:
    """
    List records of a given type.

    Parameters
    ----------
    app_config:
        Application configuration.
    entity:
        Record type name ("expense") or definition.
    user:
        Signed-in user. When given, read access is checked.
    filters:
        Additional FieldFilter conditions.
    search:
        Case-insensitive substring searched in the record type's search
        fields.
    date_range:
        Restrict to records created within the range (``createdAt``).
    limit, offset:
        Optional pagination, applied after search.

    Returns
    -------
    pandas.DataFrame
        One row per record, with the document id in the "id" column.
    """
    definition = _resolve(entity)
    if user is not None:
        require_read(user, definition.feature)

    all_filters = list(filters)
    if date_range is not None:
        all_filters.append(FieldFilter(CREATED_AT, ">=", date_range.start_iso()))
        all_filters.append(FieldFilter(CREATED_AT, "<=", date_range.end_iso()))

    cfg = _get_db_config(app_config)
    if search:
        docs = _db_query_documents(cfg, definition.collection, all_filters)
        needle = search.strip().lower()
        records = [
            doc.to_record()
            for doc in docs
            if _matches_search(doc.data, definition.search_fields, needle)
        ]
        end = None if limit is None else offset + limit
        records = records[offset:end]
    else:
        docs = _db_query_documents(
            cfg, definition.collection, all_filters, limit=limit, offset=offset
        )
        records = [doc.to_record() for doc in docs]

    if not records:
        return pd.DataFrame(columns=["id"])
    return pd.DataFrame(records)


def get_record(
    app_config,
    entity: EntityLike,
    key: str,
    *,
    user: Optional[SessionUser] = None,
) -> dict[str, Any]:
    """
    Load a single record by document id or human-readable id.

    Raises
    ------
    DocumentNotFoundError
        If the record does not exist.
    """
    definition = _resolve(entity)
    if user is not None:
        require_read(user, definition.feature)
    return _find_document(app_config, definition, key).to_record()


_NAME_SOURCES = {
    "projects": "projectId",
    "clients": "clientId",
    "accounts": "accountId",
}


def _names_by_id(app_config, collection: str, id_field: str) -> dict[str, str]:
    names = {}
    for doc in _db_query_documents(_get_db_config(app_config), collection):
        ref_id = doc.data.get(id_field)
        if is_blank(ref_id):
            continue
        name = doc.data.get("name")
        names[str(ref_id)] = str(ref_id if is_blank(name) else name)
    return names


def reference_names(
    app_config,
    entity: EntityLike,
    records: Optional[pd.DataFrame] = None,
) -> dict[str, dict[str, str]]:
    """
    Names of the records referenced by a record type, per reference column.

    For earnings, ``referenceId`` points to a project, a client or an account
    depending on the category; free-text references in `records` map to
    themselves so that only orphaned or blank links end up as "N/A".

    Returns
    -------
    dict
        ``{column: {referenced id: name}}``
    """
    definition = _resolve(entity)
    result = {
        ref.field: _names_by_id(app_config, ref.collection, ref.target_field)
        for ref in definition.linked
    }

    if definition.collection == "earnings":
        names: dict[str, str] = {}
        if records is not None and {"category", "referenceId"} <= set(records):
            for category, ref_id in zip(records["category"], records["referenceId"]):
                if reference_collection(category) is None and not is_blank(ref_id):
                    names[str(ref_id)] = str(ref_id)
        for collection, id_field in _NAME_SOURCES.items():
            names.update(_names_by_id(app_config, collection, id_field))
        result["referenceId"] = names
    return result


# ---------------------------------------------------------------------------
# CRUD operations
# ---------------------------------------------------------------------------


def create_record(
    app_config,
    user: Optional[SessionUser],
    entity: EntityLike,
    form: Mapping[str, Any],
    *,
    rng: Optional[random.Random] = None,
) -> dict[str, Any]:
    """
    Validate a form and create a new record.

    Steps:
    1) check the user holds full access to the record type,
    2) validate and normalize the form,
    3) generate the human-readable id (or check the user-supplied one is
       unique),
    4) check required references,
    5) run the before-write hook, write, run the after-write hook.

    Returns
    -------
    dict
        The stored record, including its document id under "id".

    Raises
    ------
    AuthenticationError, PermissionDeniedError
        If the user may not write this record type.
    ValidationError
        If the form is invalid.
    IdGenerationError
        If no free id could be generated.
    WriteError
        If the store rejects the write.
    """
    definition = _resolve(entity)
    user = require_write(user, definition.feature)
    cfg = _get_db_config(app_config)

    data = definition.build(form)

    if definition.user_supplied_id:
        _check_user_id_unique(app_config, definition, data[definition.id_field])
    elif definition.id_field and definition.id_generator:
        new_id = generate_unique_id(
            lambda: definition.id_generator(data, rng),
            lambda candidate: _db_field_value_exists(
                cfg, definition.collection, definition.id_field, candidate
            ),
            max_attempts=_max_attempts(app_config),
        )
        data = {definition.id_field: new_id, **data}

    _check_references(app_config, definition, data)

    if definition.before_write is not None:
        data = definition.before_write(app_config, data, None)

    data[CREATED_AT] = _now_utc_iso()
    doc = _db_add_document(cfg, definition.collection, data)
    record = doc.to_record()

    if definition.after_write is not None:
        definition.after_write(app_config, record)

    logger.info(
        "%s %s created by %s",
        definition.label,
        record.get(definition.id_field or "id", doc.id),
        user.email,
    )
    return record


def edit_record(
    app_config,
    user: Optional[SessionUser],
    entity: EntityLike,
    key: str,
    changes: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Apply changes to an existing record.

    The stored document is flattened back into a form, `changes` are laid
    over it and the result is validated as a whole, so an edit can never
    store a record that would be rejected on creation. Fields absent from
    the form (ids, timestamps) are kept as stored.

    Raises
    ------
    DocumentNotFoundError
        If the record does not exist.
    ValidationError
        If a change names an unknown field or the merged form is invalid.
    """
    definition = _resolve(entity)
    user = require_write(user, definition.feature)
    cfg = _get_db_config(app_config)

    doc = _find_document(app_config, definition, key)
    form = definition.to_form(doc.data)

    unknown = sorted(set(changes) - set(form))
    if unknown:
        raise ValidationError(
            f"Unknown field(s) for {definition.label}: {', '.join(unknown)}."
        )
    form.update(changes)

    data = definition.build(form)

    if definition.user_supplied_id:
        _check_user_id_unique(
            app_config, definition, data[definition.id_field], own_doc_id=doc.id
        )
    elif definition.id_field and doc.data.get(definition.id_field):
        data[definition.id_field] = doc.data[definition.id_field]

    _check_references(app_config, definition, data)

    if definition.before_write is not None:
        data = definition.before_write(app_config, data, doc.data)

    data[UPDATED_AT] = _now_utc_iso()
    updated = _db_update_document(cfg, definition.collection, doc.id, data)
    record = updated.to_record()

    if definition.after_write is not None:
        definition.after_write(app_config, record)

    logger.info(
        "%s %s updated by %s (%s)",
        definition.label,
        record.get(definition.id_field or "id", doc.id),
        user.email,
        ", ".join(sorted(changes)),
    )
    return record


def delete_record(
    app_config,
    user: Optional[SessionUser],
    entity: EntityLike,
    key: str,
) -> dict[str, Any]:
    """
    Permanently delete a record.

    Returns
    -------
    dict
        The record as it was before deletion.

    Raises
    ------
    PermissionDeniedError
        If the record type cannot be deleted or the user lacks full access.
    DocumentNotFoundError
        If the record does not exist.
    """
    definition = _resolve(entity)
    user = require_write(user, definition.feature)
    if not definition.deletable:
        raise PermissionDeniedError(f"{definition.label} records cannot be deleted.")

    doc = _find_document(app_config, definition, key)
    _db_delete_document(_get_db_config(app_config), definition.collection, doc.id)

    logger.info(
        "%s %s deleted by %s",
        definition.label,
        doc.data.get(definition.id_field or "id", doc.id),
        user.email,
    )
    return doc.to_record()


# ---------------------------------------------------------------------------
# Live views
# ---------------------------------------------------------------------------


def watch_records(
    app_config,
    entity: EntityLike,
    callback: Callable[[list[dict[str, Any]]], None],
    *,
    user: Optional[SessionUser] = None,
    filters: Iterable[FieldFilter] = (),
) -> Subscription:
    """
    Subscribe to the records of a type.

    `callback` receives the current list of records immediately, then again
    after every write to the collection, until the subscription is
    cancelled.
    """
    definition = _resolve(entity)
    if user is not None:
        require_read(user, definition.feature)

    def _on_snapshot(docs: list[Document]) -> None:
        callback([doc.to_record() for doc in docs])

    return _db_subscribe_documents(
        _get_db_config(app_config), definition.collection, _on_snapshot, filters
    )
