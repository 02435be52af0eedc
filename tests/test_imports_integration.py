from __future__ import annotations

import json
import sqlite3
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from sales_crm_app.web.app import create_app
from sales_crm_app.web.services import get_config, get_repo

CSV_PAYLOAD = (
    "Account Name,Sub Account,State,City,Contact Name,Phone,Address,Industry,Sub Industry\n"
    "Acme Corp,HQ,Telangana,Hyderabad,Mr. Rao,9999999999,,Transport Infra,Road\n"
    ",,,,Ms. Devi,8888888888,,,\n"
    "Acme Corp,HQ,telangana ,,,,Plot 12,,\n"
)


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, isolated_local_db: Path) -> TestClient:
    get_config.cache_clear()
    get_repo.cache_clear()
    app = create_app()
    yield TestClient(app)
    get_config.cache_clear()
    get_repo.cache_clear()


def _post_import(client: TestClient):
    return client.post(
        "/api/imports/accounts",
        files={"file": ("accounts.csv", CSV_PAYLOAD, "text/csv")},
    )


def _count(db_path: Path, table_name: str) -> int:
    with sqlite3.connect(db_path) as conn:
        return int(conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0])


def test_health_reports_local_schema(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["mode"] == "local"


def test_import_creates_account_tree_in_local_db(client: TestClient, isolated_local_db: Path) -> None:
    cities_before = _count(isolated_local_db, "cities")

    response = _post_import(client)

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["errors"] == []
    assert result["accounts_created"] == 1
    assert result["sub_accounts_created"] == 1
    assert result["contacts_created"] == 2
    assert result["references_created"] == {"industries": 0, "sub_industries": 0, "states": 0, "cities": 1}
    assert _count(isolated_local_db, "cities") == cities_before + 1

    with sqlite3.connect(isolated_local_db) as conn:
        account_name, stage, industries_json = conn.execute(
            "SELECT account_name, company_stage, industries_json FROM accounts"
        ).fetchone()
        address, state_id, office_type = conn.execute(
            "SELECT address, state_id, office_type FROM sub_accounts"
        ).fetchone()
        contacts = conn.execute("SELECT contact_name, phone FROM contacts ORDER BY contact_name").fetchall()

    assert account_name == "Acme Corp"
    assert stage == "Enterprise"
    assert [(item["industry_id"], item["sub_industry_id"]) for item in json.loads(industries_json)] == [
        ("industry-01", "sub_industry-01")
    ]
    assert address == "Plot 12"
    assert state_id == "state-24"
    assert office_type == "Headquarter"
    assert contacts == [("Mr. Rao", "9999999999"), ("Ms. Devi", "8888888888")]


def test_reimport_updates_without_duplicates(client: TestClient, isolated_local_db: Path) -> None:
    assert _post_import(client).status_code == 200

    response = _post_import(client)

    result = response.json()["result"]
    assert result["accounts_created"] == 0
    assert result["accounts_updated"] == 1
    assert result["sub_accounts_updated"] == 1
    assert result["contacts_updated"] == 2
    assert sum(result["references_created"].values()) == 0
    assert _count(isolated_local_db, "accounts") == 1
    assert _count(isolated_local_db, "sub_accounts") == 1
    assert _count(isolated_local_db, "contacts") == 2


def test_reference_rows_are_listed_by_category(client: TestClient) -> None:
    assert _post_import(client).status_code == 200

    response = client.get("/api/meta/cities")

    assert response.status_code == 200
    items = response.json()["items"]
    assert [(item["name"], item["parent_id"]) for item in items] == [("Hyderabad", "state-24")]

    states = client.get("/api/meta/states").json()["items"]
    assert len(states) == 36
    assert states[0]["parent_id"] is None


def test_repository_store_runs_pipeline_directly(isolated_local_db: Path) -> None:
    import asyncio

    from sales_crm_app.backend.repository.crm_repository import CrmRepository
    from sales_crm_app.core.config import AppConfig
    from sales_crm_app.imports import ImportSettings, RepositoryImportStore, run_account_import

    repo = CrmRepository(AppConfig.from_env())
    repo.ensure_runtime_tables()
    records = [
        {"account": "Globex", "state": "Bangalore", "contact": "Arun / Meena", "phone": "111 / 222"},
        {"account": "Globex", "state": "New Delhi", "sub account": "Delhi Office", "city": "110001"},
    ]

    result = asyncio.run(run_account_import(records, RepositoryImportStore(repo), ImportSettings()))

    assert result.errors == []
    assert result.sub_accounts_created == 2
    account = repo.find_account_by_name("globex")
    assert account is not None and account["is_active"] is True
    sub_accounts = {item["sub_account_name"]: item for item in repo.list_sub_accounts(account["account_id"])}
    assert sub_accounts["Globex"]["state_id"] == "state-11"
    assert sub_accounts["Delhi Office"]["state_id"] == "state-ut-04"
    assert sub_accounts["Delhi Office"]["pincode"] == "110001"
    contacts = repo.list_contacts(sub_accounts["Globex"]["sub_account_id"])
    assert [(item["contact_name"], item["phone"]) for item in contacts] == [("Arun", "111"), ("Meena", "222")]
    city_names = sorted(item["name"] for item in repo.list_reference_rows("cities"))
    assert city_names == ["Bengaluru", "Other"]


def test_non_ascii_names_match_on_rerun(isolated_local_db: Path) -> None:
    import asyncio

    from sales_crm_app.backend.repository.crm_repository import CrmRepository
    from sales_crm_app.core.config import AppConfig
    from sales_crm_app.imports import ImportSettings, RepositoryImportStore, run_account_import

    repo = CrmRepository(AppConfig.from_env())
    records = [{"account": "ÉCOLE Systèmes", "sub account": "ÜBER Werk", "contact": "ÅSA Ñúñez", "phone": "9000000001"}]

    first = asyncio.run(run_account_import(records, RepositoryImportStore(repo), ImportSettings()))
    second = asyncio.run(run_account_import(records, RepositoryImportStore(repo), ImportSettings()))

    assert first.errors == [] and second.errors == []
    assert (first.accounts_created, first.sub_accounts_created, first.contacts_created) == (1, 1, 1)
    assert second.total_created == 0
    assert (second.accounts_updated, second.sub_accounts_updated, second.contacts_updated) == (1, 1, 1)
    assert _count(isolated_local_db, "accounts") == 1
    assert _count(isolated_local_db, "contacts") == 1
    account = repo.find_account_by_name("école systèmes")
    assert account is not None and account["account_name"] == "ÉCOLE Systèmes"


def test_cli_imports_files_and_reports_unreadable_input(isolated_local_db: Path, tmp_path: Path) -> None:
    import subprocess

    repo_root = Path(__file__).resolve().parents[1]
    upload = tmp_path / "accounts.csv"
    upload.write_text(CSV_PAYLOAD, encoding="utf-8")
    script = repo_root / "scripts" / "import_accounts.py"

    ok = subprocess.run([sys.executable, str(script), str(upload)], capture_output=True, text=True, check=False)
    assert ok.returncode == 0, ok.stderr
    assert '"accounts_created": 1' in ok.stdout

    missing = subprocess.run(
        [sys.executable, str(script), str(tmp_path / "missing.csv")],
        capture_output=True,
        text=True,
        check=False,
    )
    assert missing.returncode == 2
    assert _count(isolated_local_db, "accounts") == 1
