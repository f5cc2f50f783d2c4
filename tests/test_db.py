import math

import pytest

from bizops_console.db import (
    DatabaseConfig,
    DocumentNotFoundError,
    FieldFilter,
    WriteError,
    add_document,
    count_documents,
    delete_document,
    field_value_exists,
    get_document,
    init_database,
    load_collection,
    query_documents,
    set_document,
    update_document,
)


def test_init_database_creates_file_and_schema(tmp_path):
    """init_database should create the SQLite file (and folders) idempotently."""
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "nested" / "db.sqlite")

    assert not cfg.path.exists()
    init_database(cfg)
    init_database(cfg)
    assert cfg.path.exists()
    assert count_documents(cfg, "accounts") == 0


def test_unsupported_engine_is_rejected(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "db.sqlite")
    with pytest.raises(ValueError):
        init_database(cfg)


def test_add_and_get_document(db_cfg):
    doc = add_document(db_cfg, "accounts", {"name": "Northwind", "revenue": 10.5})

    assert len(doc.id) == 20
    assert doc.data == {"name": "Northwind", "revenue": 10.5}
    assert doc.created_at is not None
    assert doc.updated_at is None

    loaded = get_document(db_cfg, "accounts", doc.id)
    assert loaded == doc
    assert loaded.to_record() == {"id": doc.id, "name": "Northwind", "revenue": 10.5}

    # Same id in another collection does not exist
    assert get_document(db_cfg, "clients", doc.id) is None


def test_query_equality_and_inequality_filters(db_cfg):
    add_document(db_cfg, "expenses", {"amount": 100, "projectId": "WR-1"})
    add_document(db_cfg, "expenses", {"amount": 50, "projectId": "WR-2"})
    add_document(db_cfg, "expenses", {"amount": 25})

    same = query_documents(
        db_cfg, "expenses", [FieldFilter("projectId", "==", "WR-1")]
    )
    assert [d.data["amount"] for d in same] == [100]

    # "!=" skips documents that do not have the field at all
    other = query_documents(
        db_cfg, "expenses", [FieldFilter("projectId", "!=", "WR-1")]
    )
    assert [d.data["amount"] for d in other] == [50]

    missing = query_documents(
        db_cfg, "expenses", [FieldFilter("projectId", "==", None)]
    )
    assert [d.data["amount"] for d in missing] == [25]

    present = query_documents(
        db_cfg, "expenses", [FieldFilter("projectId", "!=", None)]
    )
    assert len(present) == 2


def test_query_range_filters_only_compare_same_type(db_cfg):
    add_document(db_cfg, "deals", {"value": 10})
    add_document(db_cfg, "deals", {"value": 200.5})
    add_document(db_cfg, "deals", {"value": "999"})

    big = query_documents(db_cfg, "deals", [FieldFilter("value", ">=", 100)])
    assert [d.data["value"] for d in big] == [200.5]

    text = query_documents(db_cfg, "deals", [FieldFilter("value", ">", "5")])
    assert [d.data["value"] for d in text] == ["999"]


def test_query_iso_date_range(db_cfg):
    for day in ("2025-01-31", "2025-02-01", "2025-02-28", "2025-03-01"):
        add_document(db_cfg, "deals", {"dateEntered": day})

    docs = query_documents(
        db_cfg,
        "deals",
        [
            FieldFilter("dateEntered", ">=", "2025-02-01"),
            FieldFilter("dateEntered", "<=", "2025-02-28"),
        ],
    )
    assert [d.data["dateEntered"] for d in docs] == ["2025-02-01", "2025-02-28"]


def test_query_in_array_contains_and_nested_fields(db_cfg):
    add_document(
        db_cfg,
        "expenses",
        {"category": ["Rent", "Utilities"], "meta": {"team": "Ops"}},
    )
    add_document(
        db_cfg,
        "expenses",
        {"category": ["Software Licenses"], "meta": {"team": "Dev"}},
    )

    rent = query_documents(
        db_cfg, "expenses", [FieldFilter("category", "array-contains", "Rent")]
    )
    assert len(rent) == 1

    teams = query_documents(
        db_cfg, "expenses", [FieldFilter("meta.team", "in", ["Dev", "HR"])]
    )
    assert [d.data["meta"]["team"] for d in teams] == ["Dev"]

    nothing = query_documents(
        db_cfg, "expenses", [FieldFilter("meta.team", "in", [])]
    )
    assert nothing == []


def test_query_ordering_and_pagination(db_cfg):
    for value in (3, 1, 2):
        add_document(db_cfg, "teams", {"quota": value})

    ordered = query_documents(db_cfg, "teams", order_by="quota")
    assert [d.data["quota"] for d in ordered] == [1, 2, 3]

    desc = query_documents(db_cfg, "teams", order_by="quota", descending=True, limit=2)
    assert [d.data["quota"] for d in desc] == [3, 2]

    page = query_documents(db_cfg, "teams", limit=1, offset=1)
    assert [d.data["quota"] for d in page] == [1]

    skipped = query_documents(db_cfg, "teams", offset=2)
    assert [d.data["quota"] for d in skipped] == [2]


def test_invalid_filters_raise_value_error(db_cfg):
    with pytest.raises(ValueError):
        query_documents(db_cfg, "deals", [FieldFilter("value", "~", 1)])
    with pytest.raises(ValueError):
        query_documents(db_cfg, "deals", [FieldFilter("value", "in", "abc")])
    with pytest.raises(ValueError):
        query_documents(db_cfg, "deals", [FieldFilter('bad"field', "==", 1)])
    with pytest.raises(ValueError):
        query_documents(db_cfg, "deals", [FieldFilter("value", "<", [1, 2])])


def test_update_document_merges_top_level_fields(db_cfg):
    doc = add_document(db_cfg, "projects", {"name": "Web", "status": "Ongoing"})

    updated = update_document(db_cfg, "projects", doc.id, {"status": "Completed"})

    assert updated.data == {"name": "Web", "status": "Completed"}
    assert updated.updated_at is not None


def test_update_document_errors(db_cfg):
    with pytest.raises(DocumentNotFoundError) as excinfo:
        update_document(db_cfg, "projects", "missing", {"status": "Completed"})
    assert excinfo.value.collection == "projects"
    assert excinfo.value.doc_id == "missing"

    doc = add_document(db_cfg, "projects", {"name": "Web"})
    with pytest.raises(ValueError):
        update_document(db_cfg, "projects", doc.id, {})


def test_set_document_creates_then_merges(db_cfg):
    set_document(db_cfg, "users", "u1", {"email": "a@b.co", "prefs": {"theme": "dark"}})
    merged = set_document(
        db_cfg,
        "users",
        "u1",
        {"roles": ["ManageClient:read"], "prefs": {"lang": "fr"}},
        merge=True,
    )
    assert merged.data == {
        "email": "a@b.co",
        "roles": ["ManageClient:read"],
        "prefs": {"theme": "dark", "lang": "fr"},
    }

    replaced = set_document(db_cfg, "users", "u1", {"email": "c@d.co"})
    assert replaced.data == {"email": "c@d.co"}


def test_delete_document(db_cfg):
    doc = add_document(db_cfg, "teams", {"teamName": "North"})

    assert delete_document(db_cfg, "teams", doc.id) is True
    assert delete_document(db_cfg, "teams", doc.id) is False
    assert get_document(db_cfg, "teams", doc.id) is None


def test_load_collection_and_helpers(db_cfg):
    empty = load_collection(db_cfg, "leads")
    assert list(empty.columns) == ["id"]
    assert empty.empty

    add_document(db_cfg, "leads", {"channel": "Email", "leads": 10})
    add_document(db_cfg, "leads", {"channel": "LinkedIn", "leads": 5})

    df = load_collection(db_cfg, "leads", [FieldFilter("channel", "==", "Email")])
    assert list(df["leads"]) == [10]
    assert "id" in df.columns

    assert count_documents(db_cfg, "leads") == 2
    assert field_value_exists(db_cfg, "leads", "channel", "LinkedIn") is True
    assert field_value_exists(db_cfg, "leads", "channel", "Facebook") is False


def test_unencodable_document_raises_write_error(db_cfg):
    with pytest.raises(WriteError):
        add_document(db_cfg, "expenses", {"amount": math.nan})
    with pytest.raises(WriteError):
        add_document(db_cfg, "expenses", {"amount": object()})
    assert count_documents(db_cfg, "expenses") == 0
