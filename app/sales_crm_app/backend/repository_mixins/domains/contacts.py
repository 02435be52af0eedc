from __future__ import annotations

from typing import Any

from sales_crm_app.core.util import normalize_key

CONTACT_COLUMNS = [
    "contact_id",
    "account_id",
    "sub_account_id",
    "contact_name",
    "phone",
    "email",
    "designation",
    "created_by",
]
CONTACT_WRITABLE_FIELDS = ("phone", "email", "designation")


class RepositoryContactsMixin:
    def find_contact(self, sub_account_id: str, normalized_name: str) -> dict[str, Any] | None:
        frame = self.client.query(
            (
                f"SELECT {', '.join(CONTACT_COLUMNS)} FROM {self._table('contacts')} "
                "WHERE sub_account_id = %s AND contact_key = %s "
                "ORDER BY created_at LIMIT 1"
            ),
            (sub_account_id, normalize_key(normalized_name)),
        )
        return self._first_record(frame)

    def list_contacts(self, sub_account_id: str) -> list[dict[str, Any]]:
        frame = self.client.query(
            f"SELECT {', '.join(CONTACT_COLUMNS)} FROM {self._table('contacts')} WHERE sub_account_id = %s ORDER BY created_at",
            (sub_account_id,),
        )
        return self._records(frame)

    def insert_contact(
        self,
        *,
        account_id: str,
        sub_account_id: str,
        contact_name: str,
        created_by: str,
        **fields: Any,
    ) -> str:
        name = str(contact_name or "").strip()
        if not sub_account_id:
            raise ValueError("sub_account_id is required for a contact.")
        if not name:
            raise ValueError("contact_name is required.")
        contact_id = self._new_id("contact")
        now = self._now()
        values: dict[str, Any] = {
            "contact_id": contact_id,
            "account_id": account_id,
            "sub_account_id": sub_account_id,
            "contact_name": name,
            "contact_key": normalize_key(name),
        }
        for field in CONTACT_WRITABLE_FIELDS:
            values[field] = fields.get(field)
        values.update({"created_by": created_by, "created_at": now, "updated_at": now})
        self._insert_row("contacts", values)
        return contact_id

    def update_contact(self, contact_id: str, updates: dict[str, Any]) -> None:
        values = {field: updates[field] for field in CONTACT_WRITABLE_FIELDS if field in updates}
        if not values:
            return
        values["updated_at"] = self._now()
        self._update_by_id("contacts", "contact_id", contact_id, values)
