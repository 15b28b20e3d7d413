from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from pengawas.routers.deps import current_user_id, get_report_service
from pengawas.services.report_service import ReportService

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/monthly")
def monthly_report(
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
    user_id: str = Depends(current_user_id),
    reports: ReportService = Depends(get_report_service),
):
    return reports.monthly(user_id, year, month)


@router.get("/yearly")
def yearly_report(
    year: int = Query(..., ge=1900, le=9999),
    user_id: str = Depends(current_user_id),
    reports: ReportService = Depends(get_report_service),
):
    return reports.yearly(user_id, year)
