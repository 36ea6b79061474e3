"""Result types returned by the schema resetter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ResetResult:
    schema: str
    dropped_tables: list[str] = field(default_factory=list)

    @property
    def table_count(self) -> int:
        return len(self.dropped_tables)

    def as_dict(self) -> dict[str, Any]:
        return {
            "schema": self.schema,
            "dropped_tables": list(self.dropped_tables),
            "table_count": self.table_count,
        }
