import pandas as pd
import pytest

from bizops_console.auth import PermissionDeniedError, load_session_user
from bizops_console.io import (
    LAYOUTS,
    ImportAbortedError,
    export_records,
    get_layout,
    import_records,
    normalize_column_name,
    read_spreadsheet,
    write_template,
)
from bizops_console.records_service import create_record, list_records

EMPLOYEE_HEADER = (
    "Employee Name,Email,Department,Designation,Joining date,Status,Salary,Roles\n"
)


def _write_csv(path, rows):
    path.write_text(EMPLOYEE_HEADER + "".join(r + "\n" for r in rows), encoding="utf-8")
    return path


def test_get_layout_accepts_plural_names():
    assert get_layout("Employees") is LAYOUTS["employee"]
    assert get_layout("client") is LAYOUTS["client"]
    with pytest.raises(ValueError, match="not supported"):
        get_layout("projects")


@pytest.mark.parametrize(
    "header, expected",
    [
        (" Joining date ", "Joining Date"),
        ("EMAIL", "Email"),
        ("Email Address", "Email"),
        ("Employee Name", "Name"),
        ("Exit date", "Exit Date"),
        ("Annual salary", "Salary"),
        ("Favourite colour", None),
        (None, None),
    ],
)
def test_normalize_column_name(header, expected):
    assert normalize_column_name(header, LAYOUTS["employee"]) == expected


def test_read_spreadsheet_renames_and_drops_blank_rows(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text(
        "Full name,Mail,Notes\nJane,jane@example.com,x\n,,\n", encoding="utf-8"
    )

    df = read_spreadsheet(path, LAYOUTS["employee"])

    assert list(df.columns) == ["Name"]
    assert list(df["Name"]) == ["Jane"]


def test_read_spreadsheet_errors(tmp_path):
    layout = LAYOUTS["employee"]
    with pytest.raises(ValueError, match="Unsupported"):
        read_spreadsheet(tmp_path / "people.txt", layout)
    with pytest.raises(FileNotFoundError):
        read_spreadsheet(tmp_path / "missing.csv", layout)

    unknown = tmp_path / "unknown.csv"
    unknown.write_text("foo,bar\n1,2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="No recognized columns"):
        read_spreadsheet(unknown, layout)


def test_import_employees_from_csv(app_config, admin, rng, tmp_path):
    path = _write_csv(
        tmp_path / "employees.csv",
        [
            "Jane Doe,jane@example.com,finance,Accountant,2025-01-15,Active,5000,"
            '"manageexpense:read, Bogus"',
            "John Roe,john@example.com,Sales,Rep,2025-02-01,Active,,",
        ],
    )

    created = import_records(app_config, admin, "employees", path, rng=rng)

    assert [r["name"] for r in created] == ["Jane Doe", "John Roe"]
    assert created[0]["department"] == "Finance"
    assert created[0]["roles"] == ["ManageExpense:read"]
    assert created[1]["salary"] == 0.0
    assert load_session_user(app_config, "jane@example.com").roles == (
        "ManageExpense:read",
    )


def test_import_aborts_on_first_invalid_row(app_config, admin, rng, tmp_path):
    """Rows before the failure stay written; rows after it are not imported."""
    path = _write_csv(
        tmp_path / "employees.csv",
        [
            "Jane Doe,jane@example.com,Finance,Accountant,2025-01-15,Active,,",
            ",nobody@example.com,Finance,Accountant,2025-01-15,Active,,",
            "John Roe,john@example.com,Sales,Rep,2025-02-01,Active,,",
        ],
    )

    with pytest.raises(ImportAbortedError) as excinfo:
        import_records(app_config, admin, "employee", path, rng=rng)

    err = excinfo.value
    assert err.row_number == 3
    assert err.rows_written == 1
    assert "Name is required" in err.reason
    names = list(list_records(app_config, "employee")["name"])
    assert names == ["Jane Doe"]


def test_import_requires_full_access(app_config, reader, tmp_path):
    path = _write_csv(tmp_path / "employees.csv", [])

    with pytest.raises(PermissionDeniedError):
        import_records(app_config, reader, "employee", path)


@pytest.mark.parametrize("suffix", [".csv", ".xlsx"])
def test_template_can_be_imported_back(app_config, admin, rng, tmp_path, suffix):
    for entity in LAYOUTS:
        path = write_template(entity, tmp_path / f"{entity}_template{suffix}")
        assert path.exists()

        created = import_records(app_config, admin, entity, path, rng=rng)

        assert len(created) == 1
        assert created[0]["name"] == LAYOUTS[entity].sample["Name"]


def test_export_records_writes_canonical_headers(app_config, admin, rng, tmp_path):
    create_record(
        app_config,
        admin,
        "client",
        {"name": "Acme", "email": "ops@acme.io", "industry": "Retail"},
        rng=rng,
    )

    path = export_records(app_config, "clients", tmp_path / "out" / "clients.csv")

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    assert list(df.columns) == list(LAYOUTS["client"].columns)
    assert df.loc[0, "Name"] == "Acme"
    assert df.loc[0, "Contract Start Date"] == ""


def test_export_records_to_xlsx_reads_back(app_config, admin, rng, tmp_path):
    create_record(
        app_config,
        admin,
        "account",
        {"name": "Northwind", "revenue": 100, "expenses": 40},
        rng=rng,
    )
    path = export_records(app_config, "account", tmp_path / "accounts.xlsx")

    back = read_spreadsheet(path, LAYOUTS["account"])

    assert list(back["Name"]) == ["Northwind"]
    assert float(back["Revenue"].iloc[0]) == 100.0
