from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from sales_crm_app.core.defaults import (
    DEFAULT_COMPANY_STAGE,
    DEFAULT_COMPANY_TAG,
    DEFAULT_IMPORT_ACTOR,
    DEFAULT_IMPORT_MATCH_THRESHOLD,
    DEFAULT_IMPORT_MAX_ROWS,
    DEFAULT_OFFICE_TYPE,
    DEFAULT_PHONE_JOINER,
    DEFAULT_UNKNOWN_CITY,
)

REFERENCE_CATEGORIES = ("industries", "sub_industries", "states", "cities")

# Logical field -> accepted spreadsheet headers, compared after trim + lowercase + whitespace folding.
DEFAULT_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "account_name": ("account_name", "account name", "account", "company", "company_name", "company name"),
    "company_stage": ("company_stage", "company stage", "stage"),
    "company_tag": ("company_tag", "company tag", "tag"),
    "industry": ("industres", "industry", "industries"),
    "sub_industry": ("sub_industries", "sub industries", "sub industry", "sub_industry", "subindustry"),
    "sub_account_name": ("sub_accounts", "subaccount", "sub_account", "sub account", "sub accounts", "sub_account_name"),
    "office_type": ("office_type", "office type"),
    "address": ("address", "office address"),
    "state": ("state", "state name"),
    "city": ("city", "city name"),
    "pincode": ("pincode", "pin code", "pin", "zip"),
    "contact_name": ("contact name", "contact_name", "contact", "contact person"),
    "phone": ("phone", "contact number", "contact_number", "mobile", "phone number"),
    "designation": ("designation", "desigation"),
    "email": ("email", "email id", "email_id", "e-mail"),
}

DEFAULT_STATE_SYNONYMS: dict[str, str] = {
    "delhi": "delhi (national capital territory)",
    "new delhi": "delhi (national capital territory)",
    "nct of delhi": "delhi (national capital territory)",
    "nct delhi": "delhi (national capital territory)",
    "jammu and kashmir": "jammu & kashmir",
    "j&k": "jammu & kashmir",
    "j & k": "jammu & kashmir",
    "andaman and nicobar islands": "andaman & nicobar islands",
    "pondicherry": "puducherry",
    "orissa": "odisha",
    "uttaranchal": "uttarakhand",
}

# State cells that actually hold a city: normalized text -> (state, city).
DEFAULT_STATE_CITY_CORRECTIONS: dict[str, tuple[str, str]] = {
    "chennai": ("Tamil Nadu", "Chennai"),
    "bengaluru": ("Karnataka", "Bengaluru"),
    "bangalore": ("Karnataka", "Bengaluru"),
    "hyderabad": ("Telangana", "Hyderabad"),
    "krishnagiri": ("Tamil Nadu", "Krishnagiri"),
}

COMPANY_STAGE_OPTIONS = (
    "Enterprise",
    "SMB",
    "Pan India",
    "APAC",
    "Middle East & Africa",
    "Europe",
    "North America",
    "LATAM_SouthAmerica",
)
COMPANY_TAG_OPTIONS = (
    "New",
    "Prospect",
    "Customer",
    "Onboard",
    "Lapsed",
    "Needs Attention",
    "Retention",
    "Renewal",
    "Upselling",
)
OFFICE_TYPE_OPTIONS = ("Headquarter", "Zonal Office", "Regional Office", "Site Office")


def _default_synonyms() -> dict[str, dict[str, str]]:
    return {
        "industries": {},
        "sub_industries": {},
        "states": dict(DEFAULT_STATE_SYNONYMS),
        "cities": {"bangalore": "bengaluru", "bombay": "mumbai", "madras": "chennai", "calcutta": "kolkata"},
    }


@dataclass(frozen=True)
class ImportSettings:
    """Tables and knobs for one account import run.

    Every stage receives the settings explicitly, so tests can swap alias
    tables, synonyms or the match threshold without touching module data.
    """

    field_aliases: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_FIELD_ALIASES))
    synonyms: Mapping[str, Mapping[str, str]] = field(default_factory=_default_synonyms)
    state_city_corrections: Mapping[str, tuple[str, str]] = field(
        default_factory=lambda: dict(DEFAULT_STATE_CITY_CORRECTIONS)
    )
    company_stage_options: tuple[str, ...] = COMPANY_STAGE_OPTIONS
    company_tag_options: tuple[str, ...] = COMPANY_TAG_OPTIONS
    office_type_options: tuple[str, ...] = OFFICE_TYPE_OPTIONS
    match_threshold: float = DEFAULT_IMPORT_MATCH_THRESHOLD
    active_accounts_only: bool = False
    default_industry: str = ""
    default_sub_industry: str = ""
    default_company_stage: str = DEFAULT_COMPANY_STAGE
    default_company_tag: str = DEFAULT_COMPANY_TAG
    default_office_type: str = DEFAULT_OFFICE_TYPE
    unknown_city: str = DEFAULT_UNKNOWN_CITY
    phone_joiner: str = DEFAULT_PHONE_JOINER
    created_by: str = DEFAULT_IMPORT_ACTOR
    max_rows: int = DEFAULT_IMPORT_MAX_ROWS

    def __post_init__(self) -> None:
        if not 0.0 <= float(self.match_threshold) <= 1.0:
            raise ValueError("match_threshold must be between 0 and 1.")
        if not self.field_aliases:
            raise ValueError("field_aliases must not be empty.")

    def synonyms_for(self, category: str) -> Mapping[str, str]:
        return self.synonyms.get(category, {})

    def with_overrides(self, **changes: Any) -> "ImportSettings":
        return replace(self, **changes)

    @staticmethod
    def from_config(config: Any) -> "ImportSettings":
        return ImportSettings(
            match_threshold=float(getattr(config, "import_match_threshold", DEFAULT_IMPORT_MATCH_THRESHOLD)),
            active_accounts_only=bool(getattr(config, "import_active_accounts_only", False)),
            default_industry=str(getattr(config, "import_default_industry", "") or "").strip(),
            default_sub_industry=str(getattr(config, "import_default_sub_industry", "") or "").strip(),
            created_by=str(getattr(config, "import_actor", "") or "").strip() or DEFAULT_IMPORT_ACTOR,
            max_rows=int(getattr(config, "import_max_rows", DEFAULT_IMPORT_MAX_ROWS)),
        )
