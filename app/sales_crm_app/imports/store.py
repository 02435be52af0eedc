from __future__ import annotations

from typing import Any

from starlette.concurrency import run_in_threadpool

from sales_crm_app.backend.repository.crm_repository import CrmRepository
from sales_crm_app.imports.contracts import ReferenceCandidate


def _candidate(row: dict[str, Any]) -> ReferenceCandidate:
    parent_id = row.get("parent_id")
    return ReferenceCandidate(
        id=str(row.get("id") or ""),
        name=str(row.get("name") or ""),
        parent_id=str(parent_id) if parent_id else None,
    )


class RepositoryImportStore:
    """Async import store over the blocking repository.

    Each call runs in the worker thread pool. The import awaits every call
    before issuing the next one.
    """

    def __init__(self, repo: CrmRepository) -> None:
        self.repo = repo

    async def list_reference_candidates(self, category: str) -> list[ReferenceCandidate]:
        rows = await run_in_threadpool(self.repo.list_reference_rows, category)
        return [_candidate(row) for row in rows]

    async def insert_reference(self, category: str, name: str, parent_id: str | None = None) -> ReferenceCandidate:
        row = await run_in_threadpool(self.repo.insert_reference_row, category, name, parent_id)
        return _candidate(row)

    async def find_account(self, normalized_name: str, *, active_only: bool = False) -> dict[str, Any] | None:
        return await run_in_threadpool(self.repo.find_account_by_name, normalized_name, active_only=active_only)

    async def insert_account(self, **values: Any) -> str:
        return await run_in_threadpool(self.repo.insert_account, **values)

    async def update_account(self, account_id: str, updates: dict[str, Any]) -> None:
        await run_in_threadpool(self.repo.update_account, account_id, updates)

    async def find_sub_account(self, account_id: str, normalized_name: str) -> dict[str, Any] | None:
        return await run_in_threadpool(self.repo.find_sub_account, account_id, normalized_name)

    async def insert_sub_account(self, **values: Any) -> str:
        return await run_in_threadpool(self.repo.insert_sub_account, **values)

    async def update_sub_account(self, sub_account_id: str, updates: dict[str, Any]) -> None:
        await run_in_threadpool(self.repo.update_sub_account, sub_account_id, updates)

    async def find_contact(self, sub_account_id: str, normalized_name: str) -> dict[str, Any] | None:
        return await run_in_threadpool(self.repo.find_contact, sub_account_id, normalized_name)

    async def insert_contact(self, **values: Any) -> str:
        return await run_in_threadpool(self.repo.insert_contact, **values)

    async def update_contact(self, contact_id: str, updates: dict[str, Any]) -> None:
        await run_in_threadpool(self.repo.update_contact, contact_id, updates)
