from datetime import date

import pytest

from bizops_console import (
    accounts,
    clients,
    earnings,
    employees,
    expenses,
    marketing,
    projects,
    roles,
    sales,
)
from bizops_console.entities import ENTITIES, get_entity
from bizops_console.validation import ValidationError

EMPLOYEE_FORM = {
    "name": "Jane Doe",
    "email": "Jane.Doe@example.com",
    "department": "engineering",
    "designation": "Developer",
    "joiningDate": "2024-02-01",
    "status": "Active",
    "salary": "5000",
    "roles": "ManageClient:read, ManageExpense:full access",
}


def test_build_account_computes_profit_margin_and_defaults():
    data = accounts.build_account(
        {"name": "Northwind", "industry": "retail", "revenue": "1000", "expenses": 400}
    )

    assert data["industry"] == "Retail"
    assert data["profitMargin"] == 60.0
    assert data["status"] == "Active"
    assert data["projects"] == []

    with pytest.raises(ValidationError):
        accounts.build_account({"name": "X", "revenue": "-1"})
    with pytest.raises(ValidationError):
        accounts.build_account({"name": "X", "industry": "Mining"})


def test_build_client_nests_metrics():
    data = clients.build_client(
        {
            "name": "Acme",
            "email": "ops@acme.io",
            "cac": "120",
            "oneTimeRevenue": "10",
            "contractStartDate": "2025-01-01",
            "contractEndDate": "2025-12-31",
        }
    )

    assert data["Metrics"]["cac"] == 120.0
    assert data["Metrics"]["revenueBreakdown"] == {
        "oneTimeRevenue": 10.0,
        "recurringRevenue": 0.0,
    }
    assert "cac" not in data


def test_build_client_rejects_bad_email_and_dates():
    with pytest.raises(ValidationError, match="valid email"):
        clients.build_client({"name": "Acme", "email": "nope"})
    with pytest.raises(ValidationError, match="end date"):
        clients.build_client(
            {
                "name": "Acme",
                "contractStartDate": "2025-06-01",
                "contractEndDate": "2025-01-01",
            }
        )


def test_build_employee():
    data = employees.build_employee(EMPLOYEE_FORM)

    assert data["department"] == "Engineering"
    assert data["uid"] == "jane.doe@example.com"
    assert data["exitDate"] is None
    assert data["roles"] == ["ManageClient:read", "ManageExpense:full access"]

    form = dict(EMPLOYEE_FORM, exitDate="2023-01-01")
    with pytest.raises(ValidationError, match="Exit date"):
        employees.build_employee(form)

    form = dict(EMPLOYEE_FORM, designation="  ")
    with pytest.raises(ValidationError) as excinfo:
        employees.build_employee(form)
    assert excinfo.value.field == "Designation"


def test_build_expense_categories_and_optional_references():
    data = expenses.build_expense(
        {"category": "rent, Utilities", "amount": "99.5", "date": "2025-03-01"}
    )

    assert data["category"] == ["Rent", "Utilities"]
    assert data["projectId"] is None
    assert data["accountId"] is None
    assert data["recurring"] is False

    with pytest.raises(ValidationError, match="Category is required"):
        expenses.build_expense({"amount": 1, "date": "2025-03-01"})
    with pytest.raises(ValidationError):
        expenses.build_expense(
            {"category": "Travel", "amount": 1, "date": "2025-03-01"}
        )
    with pytest.raises(ValidationError, match="Amount is required"):
        expenses.build_expense({"category": "Rent", "date": "2025-03-01"})


def test_build_earning_defaults():
    data = earnings.build_earning(
        {"category": "project revenue", "amount": ""}, today=date(2025, 5, 4)
    )

    assert data == {
        "category": "Project Revenue",
        "referenceId": "N/A",
        "accountId": "",
        "amount": 0.0,
        "date": "2025-05-04",
    }
    commission = earnings.build_earning(
        {"category": "Commission Income", "referenceId": "ACC-1234", "amount": 5}
    )
    assert commission["accountId"] == "ACC-1234"
    assert earnings.reference_collection("Project Revenue") == "projects"
    assert earnings.reference_collection("Product Sales") is None


def test_build_project_and_expense_metrics():
    data = projects.build_project(
        {
            "name": "Website Redesign",
            "accountId": "ACC-0001",
            "clientId": "CL-001",
            "budget": "1000",
            "completion": "40",
        }
    )

    assert data["financialMetrics"]["revenueGenerated"] == 1000.0
    assert data["financialMetrics"]["profitMargin"] == 100.0
    assert data["status"] == "Ongoing"

    projects.apply_expense_metrics(data, 400.0)
    assert data["financialMetrics"]["revenueGenerated"] == 600.0
    assert data["financialMetrics"]["profitMargin"] == 60.0

    with pytest.raises(ValidationError, match="Client"):
        projects.build_project({"name": "P", "accountId": "ACC-0001"})
    with pytest.raises(ValidationError, match="at most 100"):
        projects.build_project(
            {"name": "P", "accountId": "A", "clientId": "C", "completion": 120}
        )


def test_build_role_salary_range():
    data = roles.build_role({"roleName": "Analyst", "salaryMin": "100"})
    assert data["salaryRange"] == {"min": 100.0, "max": 0.0}

    with pytest.raises(ValidationError, match="Maximum salary"):
        roles.build_role({"roleName": "Analyst", "salaryMin": 100, "salaryMax": 50})


def test_build_lead_and_campaign_defaults():
    lead = marketing.build_lead({"channel": "Email", "leads": "10", "spend": "50"})
    assert lead["team"] == "All"
    assert lead["project"] == "N/A"
    assert lead["conversions"] == 0.0

    campaign = marketing.build_campaign({"name": "Spring", "revenue": "250"})
    assert campaign["revenue"] == 250.0
    assert campaign["account"] == "N/A"

    with pytest.raises(ValidationError):
        marketing.build_lead({"channel": "Email", "leads": "-1"})


def test_build_deal_rules():
    data = sales.build_deal(
        {"dealId": "D-1", "stage": "closed won", "outcome": "won", "value": "500"},
        today=date(2025, 4, 1),
    )

    assert data["stage"] == "Closed Won"
    assert data["outcome"] == "Won"
    assert data["dateEntered"] == "2025-04-01"
    assert data["dateClosed"] == ""
    assert data["team"] == "All"

    with pytest.raises(ValidationError, match="Deal ID"):
        sales.build_deal({"stage": "Lead"})
    with pytest.raises(ValidationError, match="Date closed"):
        sales.build_deal(
            {
                "dealId": "D-2",
                "stage": "Lead",
                "dateEntered": "2025-04-10",
                "dateClosed": "2025-04-01",
            }
        )


def test_get_entity_accepts_singular_and_collection_names():
    assert get_entity("Expense") is ENTITIES["expense"]
    assert get_entity("expenses") is ENTITIES["expense"]
    with pytest.raises(ValueError, match="Unknown record type"):
        get_entity("invoice")


@pytest.mark.parametrize(
    "name, form",
    [
        ("account", {"name": "Northwind", "revenue": 10, "projects": "P1, P2"}),
        ("client", {"name": "Acme", "cltv": 5, "recurringRevenue": 3}),
        ("employee", EMPLOYEE_FORM),
        ("expense", {"category": "Rent", "amount": 5, "date": "2025-01-01"}),
        ("project", {"name": "Web", "accountId": "A", "clientId": "C", "roi": 3}),
        ("role", {"roleName": "Analyst", "requiredSkills": "SQL, Python"}),
        ("campaign", {"name": "Spring", "type": "Paid", "likes": 4}),
        ("deal", {"dealId": "D-1", "stage": "Lead", "dateEntered": "2025-01-01"}),
    ],
)
def test_to_form_feeds_back_into_build(name, form):
    """Editing starts from to_form(stored); it must rebuild the same record."""
    definition = ENTITIES[name]
    stored = definition.build(form)

    assert definition.build(definition.to_form(stored)) == stored
