from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

SORT_FIELDS = ("completed_date", "created_at", "title")


@dataclass(frozen=True)
class TaskFilters:
    archived: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sort_by: str = "-completed_date"
    page: int = 1
    limit: int = 50

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.limit
