from __future__ import annotations

import json
from typing import Any

from sales_crm_app.core.util import normalize_key

ACCOUNT_COLUMNS = [
    "account_id",
    "account_name",
    "company_stage",
    "company_tag",
    "industries_json",
    "is_active",
]
SUB_ACCOUNT_COLUMNS = [
    "sub_account_id",
    "account_id",
    "sub_account_name",
    "address",
    "state_id",
    "city_id",
    "pincode",
    "office_type",
    "is_active",
]
SUB_ACCOUNT_WRITABLE_FIELDS = ("address", "state_id", "city_id", "pincode", "office_type")


def _decode_industries(raw: Any) -> list[dict[str, Any]]:
    text = str(raw or "").strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    return [item for item in parsed if isinstance(item, dict)]


class RepositoryAccountsMixin:
    def _account_from_record(self, record: dict[str, Any] | None) -> dict[str, Any] | None:
        if record is None:
            return None
        account = dict(record)
        account["industries"] = _decode_industries(account.pop("industries_json", None))
        account["is_active"] = bool(account.get("is_active"))
        return account

    def find_account_by_name(self, normalized_name: str, *, active_only: bool = False) -> dict[str, Any] | None:
        statement = (
            f"SELECT {', '.join(ACCOUNT_COLUMNS)} FROM {self._table('accounts')} "
            "WHERE account_key = %s"
        )
        params: tuple = (normalize_key(normalized_name),)
        if active_only:
            statement += " AND is_active = %s"
            params += (True,)
        statement += " ORDER BY created_at LIMIT 1"
        frame = self.client.query(statement, params)
        return self._account_from_record(self._first_record(frame))

    def insert_account(
        self,
        *,
        account_name: str,
        company_stage: str | None,
        company_tag: str | None,
        industries: list[dict[str, Any]],
        created_by: str,
    ) -> str:
        name = str(account_name or "").strip()
        if not name:
            raise ValueError("account_name is required.")
        account_id = self._new_id("acct")
        now = self._now()
        self._insert_row(
            "accounts",
            {
                "account_id": account_id,
                "account_name": name,
                "account_key": normalize_key(name),
                "company_stage": company_stage,
                "company_tag": company_tag,
                "industries_json": json.dumps(list(industries or [])),
                "is_active": True,
                "created_by": created_by,
                "created_at": now,
                "updated_at": now,
            },
        )
        return account_id

    def update_account(self, account_id: str, updates: dict[str, Any]) -> None:
        values: dict[str, Any] = {}
        for field in ("company_stage", "company_tag"):
            if field in updates:
                values[field] = updates[field]
        if "industries" in updates:
            values["industries_json"] = json.dumps(list(updates["industries"] or []))
        if not values:
            return
        values["updated_at"] = self._now()
        self._update_by_id("accounts", "account_id", account_id, values)

    def find_sub_account(self, account_id: str, normalized_name: str) -> dict[str, Any] | None:
        frame = self.client.query(
            (
                f"SELECT {', '.join(SUB_ACCOUNT_COLUMNS)} FROM {self._table('sub_accounts')} "
                "WHERE account_id = %s AND sub_account_key = %s "
                "ORDER BY created_at LIMIT 1"
            ),
            (account_id, normalize_key(normalized_name)),
        )
        return self._first_record(frame)

    def list_sub_accounts(self, account_id: str) -> list[dict[str, Any]]:
        frame = self.client.query(
            (
                f"SELECT {', '.join(SUB_ACCOUNT_COLUMNS)} FROM {self._table('sub_accounts')} "
                "WHERE account_id = %s ORDER BY created_at"
            ),
            (account_id,),
        )
        return self._records(frame)

    def insert_sub_account(self, *, account_id: str, sub_account_name: str, **fields: Any) -> str:
        name = str(sub_account_name or "").strip()
        if not account_id:
            raise ValueError("account_id is required for a sub-account.")
        if not name:
            raise ValueError("sub_account_name is required.")
        sub_account_id = self._new_id("subacct")
        now = self._now()
        values: dict[str, Any] = {
            "sub_account_id": sub_account_id,
            "account_id": account_id,
            "sub_account_name": name,
            "sub_account_key": normalize_key(name),
        }
        for field in SUB_ACCOUNT_WRITABLE_FIELDS:
            values[field] = fields.get(field)
        values.update({"is_active": True, "created_at": now, "updated_at": now})
        self._insert_row("sub_accounts", values)
        return sub_account_id

    def update_sub_account(self, sub_account_id: str, updates: dict[str, Any]) -> None:
        values = {field: updates[field] for field in SUB_ACCOUNT_WRITABLE_FIELDS if field in updates}
        if not values:
            return
        values["updated_at"] = self._now()
        self._update_by_id("sub_accounts", "sub_account_id", sub_account_id, values)
