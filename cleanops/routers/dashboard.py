from datetime import date

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from cleanops.audit import audit_user_action
from cleanops.db import get_db
from cleanops.schemas import DashboardStatsRead
from cleanops.security import STAFF_ROLES, SessionContext, require_roles, require_session
from cleanops.services.dashboard import get_dashboard_stats
from cleanops.services.exports import build_cleaning_records_xlsx_bytes

router = APIRouter(tags=["dashboard"])
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/api/dashboard/stats", response_model=DashboardStatsRead)
def dashboard_stats(
    _context: SessionContext = Depends(require_session),
    db: Session = Depends(get_db),
) -> DashboardStatsRead:
    return get_dashboard_stats(db)


@router.get("/api/reports/cleaning-records.xlsx")
def export_cleaning_records_xlsx(
    request: Request,
    objective_id: int | None = Query(default=None, ge=1),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    context: SessionContext = Depends(require_roles(*STAFF_ROLES)),
    db: Session = Depends(get_db),
) -> Response:
    payload = build_cleaning_records_xlsx_bytes(
        db,
        objective_id=objective_id,
        start_date=start_date,
        end_date=end_date,
    )

    audit_user_action(
        db,
        request=request,
        user_id=context.user_id,
        action="CLEANING_RECORDS_EXPORT_XLSX",
        entity_type="export",
        entity_id="cleaning_records",
        details={
            "objective_id": objective_id,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        },
    )

    filename_suffix = "all"
    if start_date is not None and end_date is not None:
        filename_suffix = f"{start_date.isoformat()}-{end_date.isoformat()}"

    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="cleaning-records-{filename_suffix}.xlsx"',
        },
    )
