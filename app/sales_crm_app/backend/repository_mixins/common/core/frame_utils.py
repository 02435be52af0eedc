from __future__ import annotations

from datetime import datetime, timezone
import uuid
from typing import Any

import pandas as pd


class RepositoryCoreFrameMixin:
    def _table(self, name: str) -> str:
        if self.config.use_local_db:
            return name
        return f"{self.config.fq_schema}.{name}"

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _new_id(self, prefix: str) -> str:
        return f"{str(prefix).strip().lower()}-{uuid.uuid4()}"

    @staticmethod
    def _clean_value(value: Any) -> Any:
        if value is None:
            return None
        try:
            if pd.isna(value):
                return None
        except (TypeError, ValueError):
            pass
        return value

    def _first_record(self, frame: pd.DataFrame) -> dict[str, Any] | None:
        if frame.empty:
            return None
        row = frame.iloc[0].to_dict()
        return {key: self._clean_value(value) for key, value in row.items()}

    def _records(self, frame: pd.DataFrame) -> list[dict[str, Any]]:
        return [
            {key: self._clean_value(value) for key, value in row.items()}
            for row in frame.to_dict("records")
        ]

    def _update_by_id(self, table_name: str, id_column: str, row_id: str, updates: dict[str, Any]) -> None:
        if not updates:
            return
        assignments = ", ".join(f"{column} = %s" for column in updates)
        params = tuple(updates.values()) + (row_id,)
        self.client.execute(
            f"UPDATE {self._table(table_name)} SET {assignments} WHERE {id_column} = %s",
            params,
        )

    def _insert_row(self, table_name: str, values: dict[str, Any]) -> None:
        columns = ", ".join(values)
        placeholders = ", ".join("%s" for _ in values)
        self.client.execute(
            f"INSERT INTO {self._table(table_name)} ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )
