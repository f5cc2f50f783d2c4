# BizOps Console - Business operations admin console for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Document store for BizOps Console.

This module provides all low-level accessors for the schema-less document
store used by the application. Every business record (employee, client,
account, expense, earning, project, role, lead, campaign, deal, team, user)
is stored as a JSON document inside a named collection. It is responsible
for:

- Initializing the database schema.
- Creating, replacing, merging and deleting documents.
- Reading a full collection or a filtered subset of it.
- Translating field filters (equality, inequality, ranges, membership,
  array membership) into SQL over the JSON payload.
- Notifying live subscriptions (see ``live.py``) after every write.

The store is the single source of truth for all screens, dashboards and
spreadsheet exports.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

The database contains a single table:

documents
   One row per document.

   Columns:
   - collection  TEXT NOT NULL  -- "employees", "expenses", ...
   - doc_id      TEXT NOT NULL  -- opaque id (20 hex characters)
   - data        TEXT NOT NULL  -- JSON object with the document fields
   - created_at  TEXT NOT NULL  -- ISO datetime (UTC)
   - updated_at  TEXT           -- ISO datetime (UTC) of the last write

   PRIMARY KEY (collection, doc_id)

Documents do not enforce any schema: field validation is the job of the
record modules (``accounts.py``, ``expenses.py``, ...). References between
documents are plain strings (for example an expense's ``projectId``) and are
never enforced here.

------------------------------------------------------------------------------
Field filters
------------------------------------------------------------------------------

``FieldFilter(field, op, value)`` selects documents on a (possibly nested)
field. Nested fields use dotted paths ("financialMetrics.budget").

Supported operators:

- "==", "!="       : equality; ``None`` matches missing/null fields.
- "<", "<=", ">", ">=" : range comparisons. Only values of the same JSON
                     type are compared (numbers with numbers, strings with
                     strings), so ISO dates compare chronologically.
- "in"             : the field equals one of the given values.
- "array-contains" : the field is an array containing the given value.

A "!=" filter on a non-null value excludes documents where the field is
missing, which matches the behavior of hosted document stores.

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as ISO-8601 text (UTC).
- Dates and datetimes found in document payloads are stored as ISO strings.
- The database file is created on first use; parent folders are created
  automatically.

------------------------------------------------------------------------------
End of module description.
------------------------------------------------------------------------------
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Literal

import pandas as pd

from . import live

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for BizOps Console.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "in", "array-contains"]
"""
Operators accepted by ``FieldFilter``.

Values
------
- "==" / "!="            : equality / inequality,
- "<" / "<=" / ">" / ">=": range comparisons,
- "in"                   : membership in a list of values,
- "array-contains"       : array field containing a value.
"""

_RANGE_OPS = {"<", "<=", ">", ">="}
_ALL_OPS = {"==", "!=", "in", "array-contains"} | _RANGE_OPS


@dataclass(frozen=True)
class FieldFilter:
    """
    A single condition on a document field.

    Attributes
    ----------
    field:
        Field name, or dotted path for nested maps
        (e.g. "financialMetrics.budget").
    op:
        Comparison operator (see ``FilterOp``).
    value:
        Value to compare with. For "in" this must be a list or tuple.
    """

    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class Document:
    """
    A stored document.

    Attributes
    ----------
    collection:
        Name of the collection the document belongs to.
    id:
        Opaque document id.
    data:
        Document fields, as decoded from JSON.
    created_at, updated_at:
        Storage timestamps (UTC). ``updated_at`` is None until the first
        modification.
    """

    collection: str
    id: str
    data: dict[str, Any]
    created_at: datetime | None
    updated_at: datetime | None

    def to_record(self) -> dict[str, Any]:
        """Return the document fields with the document id under "id"."""
        return {"id": self.id, **self.data}


class DocumentNotFoundError(LookupError):
    """Raised when a document expected to exist is missing."""

    def __init__(self, collection: str, doc_id: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"Document not found: {collection}/{doc_id}")


class WriteError(RuntimeError):
    """Raised when the database rejects a write."""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    return sqlite3.connect(cfg.path)


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create the documents table and its indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
            collection  TEXT NOT NULL,
            doc_id      TEXT NOT NULL,
            data        TEXT NOT NULL,  -- JSON object
            created_at  TEXT NOT NULL,
            updated_at  TEXT,

            PRIMARY KEY (collection, doc_id)
        );
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_documents_collection_created
            ON documents(collection, created_at);
        """
    )

    conn.commit()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _json_default(value: Any) -> Any:
    """Encode the non-JSON types that can reach the store."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    # numpy / pandas scalars coming from spreadsheets
    if hasattr(value, "item"):
        return value.item()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _encode(data: Mapping[str, Any]) -> str:
    try:
        return json.dumps(dict(data), default=_json_default, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise WriteError(f"Document cannot be encoded as JSON: {exc}") from exc


def _to_sql_value(value: Any) -> Any:
    """Convert a filter value to the representation json_extract returns."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float) and math.isnan(value):
        raise ValueError("NaN cannot be used as a filter value.")
    if isinstance(value, (list, tuple, dict)):
        raise ValueError(
            "Only scalar values can be compared; use 'in' or 'array-contains' "
            "for collections."
        )
    return value


def _json_path(field: str) -> str:
    """
    Translate a dotted field name into a SQLite JSON path.

    "financialMetrics.budget" -> '$."financialMetrics"."budget"'
    """
    if not field or '"' in field:
        raise ValueError(f"Invalid field name: {field!r}")
    parts = field.split(".")
    if any(not part for part in parts):
        raise ValueError(f"Invalid field name: {field!r}")
    return "$" + "".join(f'."{part}"' for part in parts)


def _type_guard(value: Any) -> str:
    """Return the json_type() values a range filter value may be compared to."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return "('integer', 'real')"
    if isinstance(value, str):
        return "('text')"
    raise ValueError(
        f"Range filters only accept numbers, strings or dates, got {value!r}."
    )


def _filter_to_sql(flt: FieldFilter) -> tuple[str, list[object]]:
    """
    Build the SQL predicate and its parameters for a single FieldFilter.

    Raises
    ------
    ValueError
        If the operator is unknown or the value is not usable with it.
    """
    if flt.op not in _ALL_OPS:
        raise ValueError(f"Unsupported filter operator: {flt.op!r}")

    path = _json_path(flt.field)
    extract = "json_extract(data, ?)"

    if flt.op == "==":
        if flt.value is None:
            return f"{extract} IS NULL", [path]
        return f"{extract} = ?", [path, _to_sql_value(flt.value)]

    if flt.op == "!=":
        if flt.value is None:
            return f"{extract} IS NOT NULL", [path]
        return (
            f"({extract} IS NOT NULL AND {extract} != ?)",
            [path, path, _to_sql_value(flt.value)],
        )

    if flt.op in _RANGE_OPS:
        value = _to_sql_value(flt.value)
        guard = _type_guard(value)
        return (
            f"(json_type(data, ?) IN {guard} AND {extract} {flt.op} ?)",
            [path, path, value],
        )

    if flt.op == "in":
        if not isinstance(flt.value, (list, tuple, set, frozenset)):
            raise ValueError("The 'in' operator expects a list of values.")
        values = [_to_sql_value(v) for v in flt.value]
        if not values:
            return "0 = 1", []
        placeholders = ", ".join("?" for _ in values)
        return f"{extract} IN ({placeholders})", [path, *values]

    # array-contains
    return (
        "(json_type(data, ?) = 'array' AND EXISTS ("
        "SELECT 1 FROM json_each(data, ?) AS item WHERE item.value = ?))",
        [path, path, _to_sql_value(flt.value)],
    )


def _deep_merge(base: dict[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    """Merge nested maps from `changes` into a copy of `base`."""
    merged = dict(base)
    for key, value in changes.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _row_to_document(collection: str, row: tuple) -> Document:
    doc_id, data_json, created_at, updated_at = row
    return Document(
        collection=collection,
        id=doc_id,
        data=json.loads(data_json),
        created_at=_parse_timestamp(created_at),
        updated_at=_parse_timestamp(updated_at),
    )


def _registry_key(cfg: DatabaseConfig) -> str:
    return str(Path(cfg.path).resolve())


def _notify(cfg: DatabaseConfig, collection: str) -> None:
    live.notify(_registry_key(cfg), collection)


def _execute_write(cfg: DatabaseConfig, sql: str, params: Iterable[object]) -> int:
    """
    Execute a single write statement and return the number of affected rows.

    Raises
    ------
    WriteError
        If SQLite rejects the statement.
    """
    conn = _connect(cfg)
    try:
        cur = conn.execute(sql, list(params))
        conn.commit()
        return cur.rowcount
    except sqlite3.Error as exc:
        raise WriteError(f"Write failed: {exc}") from exc
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent folders) if it does not exist.
    - Creates the ``documents`` table and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    Path(cfg.path).parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def get_document(cfg: DatabaseConfig, collection: str, doc_id: str) -> Document | None:
    """
    Load a single document by id.

    Returns
    -------
    Document or None
        The document, or None if no document with this id exists in the
        collection.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        row = conn.execute(
            """
            SELECT doc_id, data, created_at, updated_at
              FROM documents
             WHERE collection = ? AND doc_id = ?;
            """,
            (collection, doc_id),
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        return None
    return _row_to_document(collection, row)


def add_document(
    cfg: DatabaseConfig,
    collection: str,
    data: Mapping[str, Any],
) -> Document:
    """
    Create a new document with a generated id.

    Parameters
    ----------
    cfg:
        Database configuration.
    collection:
        Target collection name.
    data:
        Document fields. Dates and datetimes are stored as ISO strings.

    Returns
    -------
    Document
        The stored document, as reloaded from the database.

    Raises
    ------
    WriteError
        If the document cannot be encoded or stored.
    """
    init_database(cfg)

    doc_id = uuid.uuid4().hex[:20]
    _execute_write(
        cfg,
        """
        INSERT INTO documents (collection, doc_id, data, created_at, updated_at)
        VALUES (?, ?, ?, ?, NULL);
        """,
        (collection, doc_id, _encode(data), _now_utc_iso()),
    )
    logger.debug("Created document %s/%s", collection, doc_id)
    _notify(cfg, collection)

    result = get_document(cfg, collection, doc_id)
    if result is None:
        msg = (
            f"Document {collection}/{doc_id} was just inserted "
            "but could not be reloaded."
        )
        raise WriteError(msg)
    return result


def set_document(
    cfg: DatabaseConfig,
    collection: str,
    doc_id: str,
    data: Mapping[str, Any],
    *,
    merge: bool = False,
) -> Document:
    """
    Create or overwrite a document under a caller-chosen id.

    Parameters
    ----------
    cfg:
        Database configuration.
    collection:
        Target collection name.
    doc_id:
        Document id (e.g. a user uid).
    data:
        Document fields.
    merge:
        If True and the document exists, nested maps are merged into the
        stored document instead of replacing it.

    Returns
    -------
    Document
        The stored document.
    """
    init_database(cfg)

    existing = get_document(cfg, collection, doc_id)
    now = _now_utc_iso()

    if existing is None:
        _execute_write(
            cfg,
            """
            INSERT INTO documents (collection, doc_id, data, created_at, updated_at)
            VALUES (?, ?, ?, ?, NULL);
            """,
            (collection, doc_id, _encode(data), now),
        )
    else:
        payload = _deep_merge(existing.data, data) if merge else dict(data)
        _execute_write(
            cfg,
            """
            UPDATE documents
               SET data = ?, updated_at = ?
             WHERE collection = ? AND doc_id = ?;
            """,
            (_encode(payload), now, collection, doc_id),
        )

    _notify(cfg, collection)

    result = get_document(cfg, collection, doc_id)
    if result is None:
        msg = f"Document {collection}/{doc_id} was written but could not be reloaded."
        raise WriteError(msg)
    return result


def update_document(
    cfg: DatabaseConfig,
    collection: str,
    doc_id: str,
    changes: Mapping[str, Any],
) -> Document:
    """
    Apply a field-merge update to an existing document.

    Top-level fields present in `changes` replace the stored values; other
    fields are left untouched.

    Raises
    ------
    DocumentNotFoundError
        If the document does not exist.
    ValueError
        If `changes` is empty.
    """
    if not changes:
        raise ValueError("No fields to update.")

    existing = get_document(cfg, collection, doc_id)
    if existing is None:
        raise DocumentNotFoundError(collection, doc_id)

    payload = {**existing.data, **dict(changes)}
    _execute_write(
        cfg,
        """
        UPDATE documents
           SET data = ?, updated_at = ?
         WHERE collection = ? AND doc_id = ?;
        """,
        (_encode(payload), _now_utc_iso(), collection, doc_id),
    )
    logger.debug("Updated document %s/%s (%s)", collection, doc_id, sorted(changes))
    _notify(cfg, collection)

    result = get_document(cfg, collection, doc_id)
    if result is None:
        raise DocumentNotFoundError(collection, doc_id)
    return result


def delete_document(cfg: DatabaseConfig, collection: str, doc_id: str) -> bool:
    """
    Permanently delete a document.

    Returns
    -------
    bool
        True if a document was deleted, False if it did not exist.
    """
    init_database(cfg)

    deleted = _execute_write(
        cfg,
        "DELETE FROM documents WHERE collection = ? AND doc_id = ?;",
        (collection, doc_id),
    )
    if deleted:
        logger.debug("Deleted document %s/%s", collection, doc_id)
        _notify(cfg, collection)
    return deleted > 0


def query_documents(
    cfg: DatabaseConfig,
    collection: str,
    filters: Iterable[FieldFilter] = (),
    *,
    order_by: str | None = None,
    descending: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> list[Document]:
    """
    Read the documents of a collection matching all the given filters.

    Parameters
    ----------
    cfg:
        Database configuration.
    collection:
        Collection name.
    filters:
        FieldFilter conditions, combined with AND. No filter returns the
        whole collection.
    order_by:
        Optional field (dotted path allowed) to sort on. By default documents
        are returned in creation order.
    descending:
        Reverse the sort order.
    limit, offset:
        Optional pagination.

    Returns
    -------
    list[Document]
        Matching documents.

    Raises
    ------
    ValueError
        If a filter is malformed.
    """
    init_database(cfg)

    where_clauses: list[str] = ["collection = ?"]
    params: list[object] = [collection]

    for flt in filters:
        clause, clause_params = _filter_to_sql(flt)
        where_clauses.append(clause)
        params.extend(clause_params)

    direction = "DESC" if descending else "ASC"
    if order_by is not None:
        order_sql = f"json_extract(data, ?) {direction}, created_at {direction}"
        params.append(_json_path(order_by))
    else:
        order_sql = f"created_at {direction}, rowid {direction}"

    sql = f"""
        SELECT doc_id, data, created_at, updated_at
          FROM documents
         WHERE {" AND ".join(where_clauses)}
         ORDER BY {order_sql}
    """

    if limit is not None:
        sql += " LIMIT ? OFFSET ?"
        params.extend([int(limit), int(offset)])
    elif offset:
        sql += " LIMIT -1 OFFSET ?"
        params.append(int(offset))

    conn = _connect(cfg)
    try:
        rows = conn.execute(sql, params).fetchall()
    finally:
        conn.close()

    return [_row_to_document(collection, row) for row in rows]


def load_collection(
    cfg: DatabaseConfig,
    collection: str,
    filters: Iterable[FieldFilter] = (),
) -> pd.DataFrame:
    """
    Load documents as a pandas DataFrame (one row per document).

    The DataFrame has an "id" column with the document id plus one column per
    top-level field. Nested maps are kept as dict values.
    """
    docs = query_documents(cfg, collection, filters)
    if not docs:
        return pd.DataFrame(columns=["id"])
    return pd.DataFrame([doc.to_record() for doc in docs])


def count_documents(
    cfg: DatabaseConfig,
    collection: str,
    filters: Iterable[FieldFilter] = (),
) -> int:
    """Return the number of documents matching the filters."""
    init_database(cfg)

    where_clauses: list[str] = ["collection = ?"]
    params: list[object] = [collection]
    for flt in filters:
        clause, clause_params = _filter_to_sql(flt)
        where_clauses.append(clause)
        params.extend(clause_params)

    conn = _connect(cfg)
    try:
        (count,) = conn.execute(
            f"SELECT COUNT(*) FROM documents WHERE {' AND '.join(where_clauses)};",
            params,
        ).fetchone()
    finally:
        conn.close()
    return int(count)


def field_value_exists(
    cfg: DatabaseConfig,
    collection: str,
    field: str,
    value: Any,
) -> bool:
    """Return True if at least one document has `field == value`."""
    return count_documents(cfg, collection, [FieldFilter(field, "==", value)]) > 0


def subscribe_documents(
    cfg: DatabaseConfig,
    collection: str,
    callback: Callable[[list[Document]], None],
    filters: Iterable[FieldFilter] = (),
) -> live.Subscription:
    """
    Subscribe to a filtered view of a collection.

    The callback is invoked immediately with the current matching documents,
    then again after every write to the collection, until the returned
    subscription is cancelled with ``unsubscribe()``.
    """
    frozen_filters = tuple(filters)

    def fetch() -> list[Document]:
        return query_documents(cfg, collection, frozen_filters)

    return live.subscribe(_registry_key(cfg), collection, fetch, callback)
