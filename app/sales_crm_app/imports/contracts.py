from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from sales_crm_app.imports.config import REFERENCE_CATEGORIES


@dataclass(frozen=True)
class ReferenceCandidate:
    id: str
    name: str
    parent_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "parent_id": self.parent_id}


class ImportStore(Protocol):
    """Persistence boundary used by the account import.

    Every call is independent; nothing here assumes a transaction spanning calls.
    """

    async def list_reference_candidates(self, category: str) -> list[ReferenceCandidate]: ...

    async def insert_reference(self, category: str, name: str, parent_id: str | None = None) -> ReferenceCandidate: ...

    async def find_account(self, normalized_name: str, *, active_only: bool = False) -> dict[str, Any] | None: ...

    async def insert_account(
        self,
        *,
        account_name: str,
        company_stage: str | None,
        company_tag: str | None,
        industries: list[dict[str, Any]],
        created_by: str,
    ) -> str: ...

    async def update_account(self, account_id: str, updates: dict[str, Any]) -> None: ...

    async def find_sub_account(self, account_id: str, normalized_name: str) -> dict[str, Any] | None: ...

    async def insert_sub_account(self, *, account_id: str, sub_account_name: str, **fields: Any) -> str: ...

    async def update_sub_account(self, sub_account_id: str, updates: dict[str, Any]) -> None: ...

    async def find_contact(self, sub_account_id: str, normalized_name: str) -> dict[str, Any] | None: ...

    async def insert_contact(
        self,
        *,
        account_id: str,
        sub_account_id: str,
        contact_name: str,
        created_by: str,
        **fields: Any,
    ) -> str: ...

    async def update_contact(self, contact_id: str, updates: dict[str, Any]) -> None: ...


def _empty_reference_counts() -> dict[str, int]:
    return {category: 0 for category in REFERENCE_CATEGORIES}


@dataclass
class ImportRunResult:
    accounts_created: int = 0
    accounts_updated: int = 0
    sub_accounts_created: int = 0
    sub_accounts_updated: int = 0
    contacts_created: int = 0
    contacts_updated: int = 0
    references_created: dict[str, int] = field(default_factory=_empty_reference_counts)
    rows_read: int = 0
    rows_skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total_created(self) -> int:
        return (
            self.accounts_created
            + self.sub_accounts_created
            + self.contacts_created
            + sum(self.references_created.values())
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "accounts_created": self.accounts_created,
            "accounts_updated": self.accounts_updated,
            "sub_accounts_created": self.sub_accounts_created,
            "sub_accounts_updated": self.sub_accounts_updated,
            "contacts_created": self.contacts_created,
            "contacts_updated": self.contacts_updated,
            "references_created": dict(self.references_created),
            "rows_read": self.rows_read,
            "rows_skipped": self.rows_skipped,
            "error_count": len(self.errors),
            "errors": list(self.errors),
        }
