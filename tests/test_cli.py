import re

import pytest

from bizops_console import __version__
from bizops_console.cli import main

ADMIN = "boss@example.com"


@pytest.fixture
def cli_config(tmp_path):
    path = tmp_path / "bizops_config.toml"
    path.write_text(
        '[database]\npath = "db.sqlite"\n\n[display]\noutput_dir = "out"\n',
        encoding="utf-8",
    )
    assert main(["--config", str(path), "init-db", "--admin", ADMIN]) == 0
    return str(path)


def _run(cli_config, *args, user=ADMIN):
    argv = ["--config", cli_config]
    if user:
        argv += ["--user", user]
    return main(argv + list(args))


def test_version_flag(capsys):
    assert main(["--version"]) == 0
    assert f"bizops_console version {__version__}" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out.lower()


def test_init_db_creates_administrator_once(cli_config, capsys):
    capsys.readouterr()

    assert main(["--config", cli_config, "init-db", "--admin", "other@x.io"]) == 0

    assert "no administrator created" in capsys.readouterr().out


def test_records_add_list_show_and_delete(cli_config, capsys):
    capsys.readouterr()

    assert (
        _run(
            cli_config,
            "records", "add", "account",
            "--set", "name=Northwind",
            "--set", "revenue=1000",
            "--set", "expenses=250",
        )
        == 0
    )
    out = capsys.readouterr().out
    assert "Account created: ACC-" in out
    account_id = re.search(r"ACC-\d+", out).group(0)

    assert _run(cli_config, "records", "list", "account") == 0
    out = capsys.readouterr().out
    assert "Northwind" in out
    assert "Total accounts: 1" in out

    code = _run(cli_config, "records", "list", "account", "--where", "revenue>5000")
    assert code == 0
    assert "No accounts found" in capsys.readouterr().out

    assert _run(cli_config, "records", "show", "account", account_id) == 0
    out = capsys.readouterr().out
    assert "profitMargin" in out
    assert "75" in out

    assert _run(cli_config, "records", "delete", "account", account_id) == 0
    assert f"Account deleted: {account_id}" in capsys.readouterr().out

    assert _run(cli_config, "records", "show", "account", account_id) == 1
    assert "Error:" in capsys.readouterr().err


def test_records_edit(cli_config, capsys):
    _run(cli_config, "records", "add", "account", "--set", "name=Northwind")
    account_id = re.search(r"ACC-\d+", capsys.readouterr().out).group(0)

    assert (
        _run(
            cli_config, "records", "edit", "account", account_id,
            "--set", "status=Closed",
        )
        == 0
    )
    assert f"Account updated: {account_id}" in capsys.readouterr().out

    _run(cli_config, "records", "list", "account", "--where", "status=Closed")
    assert "Total accounts: 1" in capsys.readouterr().out


def test_invalid_form_is_reported_on_stderr(cli_config, capsys):
    capsys.readouterr()

    code = _run(cli_config, "records", "add", "account", "--set", "revenue=lots")

    assert code == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_bad_assignment_and_condition(cli_config, capsys):
    assert _run(cli_config, "records", "add", "account", "--set", "name") == 1
    assert "FIELD=VALUE" in capsys.readouterr().err

    assert _run(cli_config, "records", "list", "account", "--where", "name") == 1
    assert "Invalid condition" in capsys.readouterr().err


def test_missing_or_unknown_user(cli_config, capsys):
    assert _run(cli_config, "records", "list", "account", user=None) == 1
    assert "No user given" in capsys.readouterr().err

    assert _run(cli_config, "whoami", user="nobody@example.com") == 1
    assert "Error:" in capsys.readouterr().err


def test_missing_config_file(tmp_path, capsys):
    code = main(["--config", str(tmp_path / "nope.toml"), "whoami"])

    assert code == 1
    assert "Error:" in capsys.readouterr().err


def test_whoami(cli_config, capsys):
    capsys.readouterr()

    assert _run(cli_config, "whoami") == 0

    out = capsys.readouterr().out
    assert f"User:  {ADMIN}" in out
    assert "ManageClient:full access" in out
    assert "Areas:" in out


def _add_employee(cli_config, roles):
    return _run(
        cli_config,
        "records", "add", "employee",
        "--set", "name=Jane Doe",
        "--set", "email=jane@example.com",
        "--set", "department=Finance",
        "--set", "designation=Accountant",
        "--set", "joiningDate=2025-01-15",
        "--set", "status=Active",
        "--set", f"roles={roles}",
    )


def test_read_only_user_cannot_write_or_open_dashboard(cli_config, capsys):
    assert _add_employee(cli_config, "ManageClient:read") == 0
    capsys.readouterr()
    jane = "jane@example.com"

    assert _run(cli_config, "records", "list", "client", user=jane) == 0
    capsys.readouterr()

    assert (
        _run(cli_config, "records", "add", "client", "--set", "name=Acme", user=jane)
        == 1
    )
    assert "read-only" in capsys.readouterr().err

    assert _run(cli_config, "dashboard", user=jane) == 1
    assert "dashboard" in capsys.readouterr().err


def test_profile_show_and_edit(cli_config, capsys):
    _add_employee(cli_config, "ManageClient:read")
    jane = "jane@example.com"
    capsys.readouterr()

    assert (
        _run(cli_config, "profile", "edit", "--set", "designation=Lead", user=jane)
        == 0
    )
    assert "Profile updated for jane@example.com" in capsys.readouterr().out

    assert _run(cli_config, "profile", "show", user=jane) == 0
    out = capsys.readouterr().out
    assert "Lead" in out

    assert _run(cli_config, "profile", "edit", "--set", "salary=1", user=jane) == 1
    assert "Only designation" in capsys.readouterr().err

    assert _run(cli_config, "profile", "show") == 0
    assert "No employee record found" in capsys.readouterr().out


def test_template_import_and_export(cli_config, tmp_path, capsys):
    template = tmp_path / "clients_template.csv"
    assert _run(cli_config, "template", "client", str(template), user=None) == 0
    assert template.exists()

    assert _run(cli_config, "import", "client", str(template)) == 0
    assert "Imported 1 record(s)." in capsys.readouterr().out

    exported = tmp_path / "clients.xlsx"
    assert _run(cli_config, "export", "client", str(exported)) == 0
    assert exported.exists()


def test_overview_csv_mode_writes_files(cli_config, tmp_path, capsys):
    code = _run(cli_config, "--display-mode", "csv", "overview")

    assert code == 0
    written = sorted(p.name for p in (tmp_path / "out").glob("*.csv"))
    assert any(name.startswith("overview_summary_") for name in written)
    assert any(name.startswith("overview_monthly_") for name in written)
    assert "Financial overview (organization)" in capsys.readouterr().out


def test_dashboard_for_admin(cli_config, capsys):
    capsys.readouterr()

    code = _run(
        cli_config, "dashboard", "--from-date", "2025-01-01", "--to-date", "2025-01-31"
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "Marketing & sales dashboard" in out
    assert "=== Summary ===" in out


def test_project_summary_for_unknown_project(cli_config, capsys):
    assert _run(cli_config, "project", "PRJ-404") == 1
    assert "Error:" in capsys.readouterr().err


def _created_id(capsys, pattern):
    return re.search(pattern, capsys.readouterr().out).group(0)


def test_list_shows_reference_names_and_na_for_orphans(cli_config, capsys):
    _run(cli_config, "records", "add", "account", "--set", "name=Northwind")
    account_id = _created_id(capsys, r"ACC-\d+")
    _run(cli_config, "records", "add", "client", "--set", "name=Acme")
    client_id = _created_id(capsys, r"CL-\d+")
    _run(
        cli_config,
        "records", "add", "project",
        "--set", "name=Website Redesign",
        "--set", f"accountId={account_id}",
        "--set", f"clientId={client_id}",
    )
    project_id = re.search(r"created: (\S+)", capsys.readouterr().out).group(1)
    _run(
        cli_config,
        "records", "add", "expense",
        "--set", "category=Rent",
        "--set", "amount=10",
        "--set", "date=2025-01-05",
        "--set", f"projectId={project_id}",
    )
    capsys.readouterr()

    assert _run(cli_config, "records", "list", "project") == 0
    out = capsys.readouterr().out
    assert "Acme" in out
    assert "Northwind" in out

    assert _run(cli_config, "records", "list", "expense") == 0
    assert "Website Redesign" in capsys.readouterr().out

    assert _run(cli_config, "records", "delete", "project", project_id) == 0
    capsys.readouterr()

    assert _run(cli_config, "records", "list", "expense") == 0
    out = capsys.readouterr().out
    assert "Website Redesign" not in out
    assert "N/A" in out


def test_show_earning_resolves_account_reference(cli_config, capsys):
    _run(cli_config, "records", "add", "account", "--set", "name=Northwind")
    account_id = _created_id(capsys, r"ACC-\d+")
    _run(
        cli_config,
        "records", "add", "earning",
        "--set", "category=Commission Income",
        "--set", f"referenceId={account_id}",
        "--set", "amount=500",
    )
    earning_id = re.search(r"created: (\S+)", capsys.readouterr().out).group(1)

    assert _run(cli_config, "records", "show", "earning", earning_id) == 0
    out = capsys.readouterr().out
    assert "Northwind" in out


def test_where_equality_compares_numbers(cli_config, capsys):
    for name, revenue in (("Northwind", "100"), ("Contoso", "250")):
        _run(
            cli_config,
            "records", "add", "account",
            "--set", f"name={name}",
            "--set", f"revenue={revenue}",
        )
    capsys.readouterr()

    assert _run(cli_config, "records", "list", "account", "--where", "revenue=100") == 0
    out = capsys.readouterr().out
    assert "Northwind" in out
    assert "Total accounts: 1" in out

    _run(cli_config, "records", "list", "account", "--where", "revenue!=100")
    out = capsys.readouterr().out
    assert "Contoso" in out
    assert "Total accounts: 1" in out

    _run(cli_config, "records", "list", "account", "--where", 'revenue="100"')
    assert "No accounts found" in capsys.readouterr().out


def test_overview_category_drill_down(cli_config, capsys):
    for category, amount in (("Rent", "100"), ("Utilities", "40")):
        _run(
            cli_config,
            "records", "add", "expense",
            "--set", f"category={category}",
            "--set", f"amount={amount}",
            "--set", "date=2025-01-05",
            "--set", f"description={category} bill",
        )
    capsys.readouterr()

    assert _run(cli_config, "overview", "--category", "Rent") == 0

    out = capsys.readouterr().out
    assert "=== Category expenses ===" in out
    assert "Rent bill" in out
    assert "Utilities bill" not in out
    assert "=== Category earnings ===" in out
