from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Any

import pytest

APP_ROOT = Path(__file__).resolve().parents[1] / "app"
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

from sales_crm_app.core.util import normalize_key  # noqa: E402
from sales_crm_app.imports.contracts import ReferenceCandidate  # noqa: E402


class InMemoryImportStore:
    """Dict-backed import store with switchable failures for pipeline tests."""

    def __init__(self) -> None:
        self.references: dict[str, list[ReferenceCandidate]] = {
            "industries": [],
            "sub_industries": [],
            "states": [],
            "cities": [],
        }
        self.accounts: dict[str, dict[str, Any]] = {}
        self.sub_accounts: dict[str, dict[str, Any]] = {}
        self.contacts: dict[str, dict[str, Any]] = {}
        self.calls: list[str] = []
        self.fail_account_names: set[str] = set()
        self.fail_reference_names: set[str] = set()
        self.fail_list_categories: set[str] = set()
        self.fail_sub_account_names: set[str] = set()
        self.fail_contact_names: set[str] = set()
        self._next_id = 0

    def _id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    def seed(self, category: str, name: str, parent_id: str | None = None) -> ReferenceCandidate:
        candidate = ReferenceCandidate(id=self._id(category), name=name, parent_id=parent_id)
        self.references[category].append(candidate)
        return candidate

    def reference_names(self, category: str) -> list[str]:
        return [item.name for item in self.references[category]]

    async def list_reference_candidates(self, category: str) -> list[ReferenceCandidate]:
        self.calls.append(f"list:{category}")
        if category in self.fail_list_categories:
            raise RuntimeError(f"{category} table unavailable")
        return list(self.references[category])

    async def insert_reference(self, category: str, name: str, parent_id: str | None = None) -> ReferenceCandidate:
        self.calls.append(f"insert:{category}")
        if normalize_key(name) in self.fail_reference_names:
            raise RuntimeError("reference table is read-only")
        return self.seed(category, name, parent_id)

    async def find_account(self, normalized_name: str, *, active_only: bool = False) -> dict[str, Any] | None:
        for account in self.accounts.values():
            if normalize_key(account["account_name"]) != normalized_name:
                continue
            if active_only and not account["is_active"]:
                continue
            return dict(account)
        return None

    async def insert_account(self, **values: Any) -> str:
        if normalize_key(values["account_name"]) in self.fail_account_names:
            raise RuntimeError("account insert rejected")
        account_id = self._id("acct")
        self.accounts[account_id] = {"account_id": account_id, "is_active": True, **values}
        return account_id

    async def update_account(self, account_id: str, updates: dict[str, Any]) -> None:
        if normalize_key(self.accounts[account_id]["account_name"]) in self.fail_account_names:
            raise RuntimeError("account update rejected")
        self.accounts[account_id].update(updates)

    async def find_sub_account(self, account_id: str, normalized_name: str) -> dict[str, Any] | None:
        for sub_account in self.sub_accounts.values():
            if sub_account["account_id"] == account_id and normalize_key(sub_account["sub_account_name"]) == normalized_name:
                return dict(sub_account)
        return None

    async def insert_sub_account(self, **values: Any) -> str:
        if normalize_key(values["sub_account_name"]) in self.fail_sub_account_names:
            raise RuntimeError("sub-account insert rejected")
        sub_account_id = self._id("subacct")
        self.sub_accounts[sub_account_id] = {"sub_account_id": sub_account_id, **values}
        return sub_account_id

    async def update_sub_account(self, sub_account_id: str, updates: dict[str, Any]) -> None:
        self.sub_accounts[sub_account_id].update(updates)

    async def find_contact(self, sub_account_id: str, normalized_name: str) -> dict[str, Any] | None:
        for contact in self.contacts.values():
            if contact["sub_account_id"] == sub_account_id and normalize_key(contact["contact_name"]) == normalized_name:
                return dict(contact)
        return None

    async def insert_contact(self, **values: Any) -> str:
        if normalize_key(values["contact_name"]) in self.fail_contact_names:
            raise RuntimeError("contact insert rejected")
        contact_id = self._id("contact")
        self.contacts[contact_id] = {"contact_id": contact_id, **values}
        return contact_id

    async def update_contact(self, contact_id: str, updates: dict[str, Any]) -> None:
        self.contacts[contact_id].update(updates)


@pytest.fixture()
def import_store() -> InMemoryImportStore:
    store = InMemoryImportStore()
    for state_name in ("Tamil Nadu", "Karnataka", "Telangana", "Maharashtra", "Delhi (National Capital Territory)", "Jammu & Kashmir"):
        store.seed("states", state_name)
    industry = store.seed("industries", "Transport Infrastructure")
    store.seed("sub_industries", "Road Infrastructure", industry.id)
    return store


@pytest.fixture()
def isolated_local_db(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    repo_root = Path(__file__).resolve().parents[1]
    db_path = tmp_path / "salescrm_local.db"
    init_script = repo_root / "setup" / "local_db" / "init_local_db.py"
    result = subprocess.run(
        [
            sys.executable,
            str(init_script),
            "--db-path",
            str(db_path),
            "--reset",
        ],
        capture_output=True,
        text=True,
        cwd=str(repo_root),
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(
            "Failed to initialize isolated local DB for tests.\n"
            f"stdout:\n{result.stdout}\n"
            f"stderr:\n{result.stderr}"
        )

    monkeypatch.setenv("SALESCRM_ENV", "dev")
    monkeypatch.setenv("SALESCRM_USE_LOCAL_DB", "true")
    monkeypatch.setenv("SALESCRM_LOCAL_DB_PATH", str(db_path))
    monkeypatch.delenv("SALESCRM_LOCKED_MODE", raising=False)
    return db_path
