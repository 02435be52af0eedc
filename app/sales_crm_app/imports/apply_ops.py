from __future__ import annotations

import logging
from typing import Any, Iterable

from sales_crm_app.imports.aggregation import AccountDraft, ContactDraft, SubAccountDraft
from sales_crm_app.imports.config import ImportSettings
from sales_crm_app.imports.contracts import ImportRunResult, ImportStore
from sales_crm_app.imports.matching import ReferenceResolutionError, ReferenceResolver
from sales_crm_app.imports.parsing import split_phone_numbers

LOGGER = logging.getLogger(__name__)


def merge_industry_associations(
    existing: Iterable[dict[str, Any]],
    incoming: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Append incoming associations whose (industry id, sub-industry id) pair is new."""
    merged = [dict(item) for item in existing or []]
    seen = {(item.get("industry_id"), item.get("sub_industry_id")) for item in merged}
    for item in incoming:
        pair = (item.get("industry_id"), item.get("sub_industry_id"))
        if pair in seen:
            continue
        seen.add(pair)
        merged.append(dict(item))
    return merged


def merge_phone_values(existing: Any, incoming: Iterable[str], joiner: str) -> str:
    numbers = split_phone_numbers(existing)
    for phone in incoming:
        if phone and phone not in numbers:
            numbers.append(phone)
    return joiner.join(numbers)


def _non_blank(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value not in (None, "")}


class ImportWriter:
    """Upserts one aggregated account tree at a time.

    Failures below the account are recorded and skipped. A failed account
    skips its whole subtree.
    """

    def __init__(
        self,
        store: ImportStore,
        resolver: ReferenceResolver,
        settings: ImportSettings,
        result: ImportRunResult,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.settings = settings
        self.result = result

    def record_error(self, message: str) -> None:
        self.result.errors.append(message)
        LOGGER.warning(message, extra={"event": "import_entity_error"})

    async def _industry_associations(self, account: AccountDraft) -> list[dict[str, Any]]:
        associations: list[dict[str, Any]] = []
        for pair in account.industries:
            try:
                industry = await self.resolver.resolve("industries", pair.industry, label=account.name)
            except ReferenceResolutionError as exc:
                self.record_error(f"{exc} Industry association omitted.")
                continue
            if industry is None:
                continue
            sub_industry = None
            if pair.sub_industry:
                try:
                    sub_industry = await self.resolver.resolve(
                        "sub_industries",
                        pair.sub_industry,
                        parent_id=industry.id,
                        label=account.name,
                    )
                except ReferenceResolutionError as exc:
                    self.record_error(f"{exc} Industry association omitted.")
                    continue
            associations.append(
                {
                    "industry_id": industry.id,
                    "industry_name": industry.name,
                    "sub_industry_id": sub_industry.id if sub_industry else None,
                    "sub_industry_name": sub_industry.name if sub_industry else None,
                }
            )
        return associations

    async def write_account(self, account: AccountDraft) -> str | None:
        associations = await self._industry_associations(account)
        try:
            existing = await self.store.find_account(
                account.key,
                active_only=self.settings.active_accounts_only,
            )
            if existing is None:
                account_id = await self.store.insert_account(
                    account_name=account.name,
                    company_stage=account.company_stage or self.settings.default_company_stage,
                    company_tag=account.company_tag or self.settings.default_company_tag,
                    industries=associations,
                    created_by=self.settings.created_by,
                )
                self.result.accounts_created += 1
                LOGGER.info(
                    "Created account. name=%s id=%s",
                    account.name,
                    account_id,
                    extra={"event": "import_account_created", "account_id": account_id},
                )
            else:
                account_id = str(existing["account_id"])
                updates = _non_blank(
                    {"company_stage": account.company_stage, "company_tag": account.company_tag}
                )
                updates["industries"] = merge_industry_associations(existing.get("industries") or [], associations)
                await self.store.update_account(account_id, updates)
                self.result.accounts_updated += 1
        except Exception as exc:
            skipped = len(account.sub_accounts)
            self.record_error(
                f"{account.name}: account could not be created or updated ({exc}); "
                f"skipped {skipped} sub-account(s) and {account.contact_count} contact(s)."
            )
            return None

        for sub_account in account.sub_accounts:
            await self.write_sub_account(account_id, account, sub_account)
        return account_id

    async def _location_ids(self, label: str, sub_account: SubAccountDraft) -> tuple[str | None, str | None]:
        state_id = None
        city_id = None
        if sub_account.state:
            try:
                state = await self.resolver.resolve("states", sub_account.state, label=label)
                state_id = state.id if state else None
            except ReferenceResolutionError as exc:
                self.record_error(str(exc))
        if sub_account.city:
            if state_id is None:
                self.record_error(f'{label}: City "{sub_account.city}" skipped because the state is not resolved.')
            else:
                try:
                    city = await self.resolver.resolve("cities", sub_account.city, parent_id=state_id, label=label)
                    city_id = city.id if city else None
                except ReferenceResolutionError as exc:
                    self.record_error(str(exc))
        return state_id, city_id

    async def write_sub_account(self, account_id: str, account: AccountDraft, sub_account: SubAccountDraft) -> str | None:
        label = f"{account.name} / {sub_account.name}"
        state_id, city_id = await self._location_ids(label, sub_account)
        fields = _non_blank(
            {
                "address": sub_account.address,
                "state_id": state_id,
                "city_id": city_id,
                "pincode": sub_account.pincode,
                "office_type": sub_account.office_type,
            }
        )
        try:
            existing = await self.store.find_sub_account(account_id, sub_account.key)
            if existing is None:
                fields.setdefault("office_type", self.settings.default_office_type)
                sub_account_id = await self.store.insert_sub_account(
                    account_id=account_id,
                    sub_account_name=sub_account.name,
                    **fields,
                )
                self.result.sub_accounts_created += 1
                LOGGER.info(
                    "Created sub-account. name=%s id=%s account_id=%s",
                    label,
                    sub_account_id,
                    account_id,
                    extra={"event": "import_sub_account_created", "sub_account_id": sub_account_id},
                )
            else:
                sub_account_id = str(existing["sub_account_id"])
                await self.store.update_sub_account(sub_account_id, fields)
                self.result.sub_accounts_updated += 1
        except Exception as exc:
            self.record_error(
                f"{label}: sub-account could not be created or updated ({exc}); "
                f"skipped {len(sub_account.contacts)} contact(s)."
            )
            return None

        for contact in sub_account.contacts:
            await self.write_contact(account_id, sub_account_id, label, contact)
        return sub_account_id

    async def write_contact(self, account_id: str, sub_account_id: str, label: str, contact: ContactDraft) -> str | None:
        joiner = self.settings.phone_joiner
        try:
            existing = await self.store.find_contact(sub_account_id, contact.key)
            if existing is None:
                contact_id = await self.store.insert_contact(
                    account_id=account_id,
                    sub_account_id=sub_account_id,
                    contact_name=contact.name,
                    created_by=self.settings.created_by,
                    phone=joiner.join(contact.phones) or None,
                    email=contact.email or None,
                    designation=contact.designation or None,
                )
                self.result.contacts_created += 1
                LOGGER.info(
                    "Created contact. name=%s id=%s sub_account=%s",
                    contact.name,
                    contact_id,
                    label,
                    extra={"event": "import_contact_created", "contact_id": contact_id},
                )
                return contact_id
            contact_id = str(existing["contact_id"])
            updates = _non_blank(
                {
                    "phone": merge_phone_values(existing.get("phone"), contact.phones, joiner),
                    "email": contact.email,
                    "designation": contact.designation,
                }
            )
            await self.store.update_contact(contact_id, updates)
            self.result.contacts_updated += 1
            return contact_id
        except Exception as exc:
            self.record_error(f"{label} / {contact.name}: contact could not be created or updated ({exc}).")
            return None
