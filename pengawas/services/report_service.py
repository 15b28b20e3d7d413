"""
Report payloads.

The PDF renderer (outside this backend) receives the store's statistics plus
the supervisor's display name and a human readable period.
"""

from __future__ import annotations

from pengawas.domain.periods import month_label
from pengawas.repositories.json_storage import JSONRecordStore

DEFAULT_DISPLAY_NAME = "Pengawas"


class ReportService:
    def __init__(self, store: JSONRecordStore) -> None:
        self.store = store

    def _display_name(self, user_id: str) -> str:
        user = self.store.get_user(user_id)
        return (user or {}).get("fullName") or DEFAULT_DISPLAY_NAME

    def monthly(self, user_id: str, year: int, month: int) -> dict:
        period = month_label(year, month)
        stats = self.store.get_monthly_stats(user_id, year, month)
        return {"userName": self._display_name(user_id), "period": period, **stats}

    def yearly(self, user_id: str, year: int) -> dict:
        stats = self.store.get_yearly_stats(user_id, year)
        return {"userName": self._display_name(user_id), "year": str(year), **stats}
