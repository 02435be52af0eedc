from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ReferenceTable:
    table_name: str
    id_column: str
    name_column: str
    id_prefix: str
    parent_column: str | None = None


REFERENCE_TABLES: dict[str, ReferenceTable] = {
    "industries": ReferenceTable("industries", "industry_id", "industry_name", "industry"),
    "sub_industries": ReferenceTable(
        "sub_industries", "sub_industry_id", "sub_industry_name", "sub_industry", parent_column="industry_id"
    ),
    "states": ReferenceTable("states", "state_id", "state_name", "state"),
    "cities": ReferenceTable("cities", "city_id", "city_name", "city", parent_column="state_id"),
}


def reference_table(category: str) -> ReferenceTable:
    key = str(category or "").strip().lower()
    if key not in REFERENCE_TABLES:
        allowed = ", ".join(sorted(REFERENCE_TABLES))
        raise ValueError(f"Unknown reference category '{category}'. Expected one of: {allowed}.")
    return REFERENCE_TABLES[key]


class RepositoryReferenceMixin:
    def list_reference_rows(self, category: str) -> list[dict[str, Any]]:
        """Return ``{id, name, parent_id}`` rows for one reference category in insertion order."""
        spec = reference_table(category)
        parent_select = spec.parent_column if spec.parent_column else "NULL"
        frame = self.client.query(
            f"""
            SELECT {spec.id_column} AS id, {spec.name_column} AS name, {parent_select} AS parent_id
            FROM {self._table(spec.table_name)}
            ORDER BY created_at, {spec.id_column}
            """
        )
        return self._records(frame)

    def insert_reference_row(self, category: str, name: str, parent_id: str | None = None) -> dict[str, Any]:
        spec = reference_table(category)
        cleaned_name = str(name or "").strip()
        if not cleaned_name:
            raise ValueError(f"{category} name is required.")
        if spec.parent_column and not parent_id:
            raise ValueError(f"{category} '{cleaned_name}' requires a parent id.")
        row_id = self._new_id(spec.id_prefix)
        values: dict[str, Any] = {spec.id_column: row_id, spec.name_column: cleaned_name}
        if spec.parent_column:
            values[spec.parent_column] = parent_id
        values["created_at"] = self._now()
        self._insert_row(spec.table_name, values)
        return {"id": row_id, "name": cleaned_name, "parent_id": parent_id if spec.parent_column else None}
