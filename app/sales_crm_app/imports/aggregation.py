from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Iterable

from sales_crm_app.core.util import normalize_key
from sales_crm_app.imports.config import ImportSettings
from sales_crm_app.imports.parsing import (
    ImportRow,
    canonical_choice,
    split_contact_names,
    split_phone_numbers,
)

LOGGER = logging.getLogger(__name__)

SUB_ACCOUNT_MERGE_FIELDS = ("address", "state", "city", "pincode", "office_type")


class RowShape(str, Enum):
    FULL = "full"
    SUB_ACCOUNT = "sub_account"
    CONTACT = "contact"
    NOISE = "noise"


def classify_row(row: ImportRow) -> RowShape:
    if row.account_name:
        return RowShape.FULL
    if row.sub_account_name:
        return RowShape.SUB_ACCOUNT
    if row.contact_name:
        return RowShape.CONTACT
    return RowShape.NOISE


@dataclass(frozen=True)
class IndustryPair:
    industry: str
    sub_industry: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return normalize_key(self.industry), normalize_key(self.sub_industry)


@dataclass
class ContactDraft:
    name: str
    phones: list[str] = field(default_factory=list)
    email: str = ""
    designation: str = ""
    source_lines: list[int] = field(default_factory=list)

    @property
    def key(self) -> str:
        return normalize_key(self.name)

    def merge(self, *, phones: Iterable[str], email: str, designation: str, line_number: int) -> None:
        for phone in phones:
            if phone and phone not in self.phones:
                self.phones.append(phone)
        # First write wins for scalar contact fields.
        if not self.email and email:
            self.email = email
        if not self.designation and designation:
            self.designation = designation
        if line_number not in self.source_lines:
            self.source_lines.append(line_number)


@dataclass
class SubAccountDraft:
    name: str
    address: str = ""
    state: str = ""
    city: str = ""
    pincode: str = ""
    office_type: str = ""
    contacts: list[ContactDraft] = field(default_factory=list)
    _contact_index: dict[str, ContactDraft] = field(default_factory=dict, repr=False)

    @property
    def key(self) -> str:
        return normalize_key(self.name)

    def fill_blanks(self, values: dict[str, str]) -> None:
        for field_name in SUB_ACCOUNT_MERGE_FIELDS:
            incoming = values.get(field_name, "")
            if incoming and not getattr(self, field_name):
                setattr(self, field_name, incoming)

    def contact(self, name: str) -> ContactDraft | None:
        return self._contact_index.get(normalize_key(name))

    def add_contact(self, contact: ContactDraft) -> ContactDraft:
        self.contacts.append(contact)
        self._contact_index[contact.key] = contact
        return contact


@dataclass
class AccountDraft:
    name: str
    company_stage: str = ""
    company_tag: str = ""
    industries: list[IndustryPair] = field(default_factory=list)
    sub_accounts: list[SubAccountDraft] = field(default_factory=list)
    source_lines: list[int] = field(default_factory=list)
    _sub_account_index: dict[str, SubAccountDraft] = field(default_factory=dict, repr=False)

    @property
    def key(self) -> str:
        return normalize_key(self.name)

    def add_industry(self, pair: IndustryPair) -> None:
        if pair.key not in {existing.key for existing in self.industries}:
            self.industries.append(pair)

    def sub_account(self, name: str) -> SubAccountDraft | None:
        return self._sub_account_index.get(normalize_key(name))

    def add_sub_account(self, sub_account: SubAccountDraft) -> SubAccountDraft:
        self.sub_accounts.append(sub_account)
        self._sub_account_index[sub_account.key] = sub_account
        return sub_account

    @property
    def contact_count(self) -> int:
        return sum(len(sub_account.contacts) for sub_account in self.sub_accounts)


@dataclass(frozen=True)
class AggregationContext:
    """The (account, sub-account) pair that continuation rows attach to."""

    account: AccountDraft
    sub_account: SubAccountDraft


@dataclass
class AggregationResult:
    accounts: list[AccountDraft]
    rows_read: int = 0
    rows_skipped: int = 0
    errors: list[str] = field(default_factory=list)


class ImportAggregator:
    """Fold normalized rows, in file order, into an Account -> SubAccount -> Contact tree.

    ``current`` is only moved by full rows and sub-account rows; contact rows
    read it and never change it.
    """

    def __init__(self, settings: ImportSettings) -> None:
        self.settings = settings
        self.current: AggregationContext | None = None
        self._accounts: dict[str, AccountDraft] = {}
        self._rows_read = 0
        self._rows_skipped = 0
        self._errors: list[str] = []

    def add_rows(self, rows: Iterable[ImportRow]) -> "ImportAggregator":
        for row in rows:
            self.add_row(row)
        return self

    def add_row(self, row: ImportRow) -> RowShape:
        self._rows_read += 1
        shape = classify_row(row)
        if shape is RowShape.FULL:
            account = self._account_for(row)
            sub_account = self._sub_account_for(account, row.sub_account_name or row.account_name, row)
            self.current = AggregationContext(account=account, sub_account=sub_account)
            self._attach_contacts(self.current, row)
        elif shape is RowShape.SUB_ACCOUNT:
            if self.current is None:
                self._skip(row, f"Row {row.line_number}: sub-account '{row.sub_account_name}' has no account name and no preceding account row; skipped.")
                return shape
            account = self.current.account
            sub_account = self._sub_account_for(account, row.sub_account_name, row)
            self.current = AggregationContext(account=account, sub_account=sub_account)
            self._attach_contacts(self.current, row)
        elif shape is RowShape.CONTACT:
            if self.current is None:
                self._skip(row, f"Row {row.line_number}: contact '{row.contact_name}' has no preceding account row; skipped.")
                return shape
            self._attach_contacts(self.current, row)
        else:
            self._rows_skipped += 1
        return shape

    def result(self) -> AggregationResult:
        return AggregationResult(
            accounts=list(self._accounts.values()),
            rows_read=self._rows_read,
            rows_skipped=self._rows_skipped,
            errors=list(self._errors),
        )

    def _skip(self, row: ImportRow, message: str) -> None:
        self._rows_skipped += 1
        self._errors.append(message)
        LOGGER.warning(message, extra={"event": "import_row_skipped", "line_number": row.line_number})

    def _choice(self, row: ImportRow, value: str, options: tuple[str, ...], label: str) -> str:
        if not value:
            return ""
        canonical = canonical_choice(value, options)
        if canonical is None:
            message = f"Row {row.line_number}: {label} '{value}' is not recognised; ignored."
            self._errors.append(message)
            LOGGER.warning(message, extra={"event": "import_value_ignored", "line_number": row.line_number})
            return ""
        return canonical

    def _industry_pair(self, row: ImportRow) -> IndustryPair | None:
        industry = row.industry
        sub_industry = row.sub_industry
        defaults = self.settings
        if not industry and defaults.default_industry:
            industry = defaults.default_industry
        if (
            not sub_industry
            and defaults.default_sub_industry
            and normalize_key(industry) == normalize_key(defaults.default_industry)
        ):
            sub_industry = defaults.default_sub_industry
        if not industry:
            if sub_industry:
                self._errors.append(
                    f"Row {row.line_number}: sub-industry '{sub_industry}' has no industry; association omitted."
                )
            return None
        return IndustryPair(industry=industry, sub_industry=sub_industry)

    def _account_for(self, row: ImportRow) -> AccountDraft:
        key = normalize_key(row.account_name)
        stage = self._choice(row, row.company_stage, self.settings.company_stage_options, "company stage")
        tag = self._choice(row, row.company_tag, self.settings.company_tag_options, "company tag")
        account = self._accounts.get(key)
        if account is None:
            account = AccountDraft(name=row.account_name, company_stage=stage, company_tag=tag)
            self._accounts[key] = account
        else:
            # Stage and tag follow the latest non-blank value.
            account.company_stage = stage or account.company_stage
            account.company_tag = tag or account.company_tag
        account.source_lines.append(row.line_number)
        pair = self._industry_pair(row)
        if pair is not None:
            account.add_industry(pair)
        return account

    def _sub_account_for(self, account: AccountDraft, name: str, row: ImportRow) -> SubAccountDraft:
        values = {
            "address": row.address,
            "state": row.state,
            "city": row.city,
            "pincode": row.pincode,
            "office_type": self._choice(row, row.office_type, self.settings.office_type_options, "office type"),
        }
        sub_account = account.sub_account(name)
        if sub_account is None:
            sub_account = account.add_sub_account(SubAccountDraft(name=name))
        sub_account.fill_blanks(values)
        return sub_account

    def _attach_contacts(self, context: AggregationContext, row: ImportRow) -> None:
        names = split_contact_names(row.contact_name)
        if not names:
            return
        phones = split_phone_numbers(row.phone)
        paired = len(names) > 1 and len(phones) == len(names)
        for index, name in enumerate(names):
            contact_phones = [phones[index]] if paired else list(phones)
            contact = context.sub_account.contact(name)
            if contact is None:
                contact = context.sub_account.add_contact(ContactDraft(name=name))
            contact.merge(
                phones=contact_phones,
                email=row.email,
                designation=row.designation,
                line_number=row.line_number,
            )


def aggregate_rows(rows: Iterable[ImportRow], settings: ImportSettings) -> AggregationResult:
    return ImportAggregator(settings).add_rows(rows).result()
