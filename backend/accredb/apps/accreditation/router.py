# backend/accredb/apps/accreditation/router.py

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...database import get_db, get_read_db
from ...security import get_current_active_user, require_roles, require_scanner
from ..accounts import models as account_models
from ..accounts.models import AccountRole
from ..audit import schemas as audit_schemas
from ..audit import services as audit_services
from . import schemas, services
from .enums import AccreditationStatus, DenyReason, ScanOutcome

router = APIRouter(prefix="/accreditation", tags=["accreditation"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
}


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# --------------------------------------------------------------------------
# PROJECTS
# --------------------------------------------------------------------------


@router.post("/projects", response_model=schemas.ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: schemas.ProjectCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.create_project(db, current_user, payload)


@router.get("/projects", response_model=List[schemas.ProjectRead])
def list_projects(
    active_only: bool = False,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_projects(db, active_only=active_only)


@router.get("/projects/{project_id}", response_model=schemas.ProjectRead)
def get_project(
    project_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_project(db, project_id)


@router.patch("/projects/{project_id}", response_model=schemas.ProjectRead)
def update_project(
    project_id: str,
    payload: schemas.ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.update_project(db, project_id, current_user, payload)


@router.get("/projects/{project_id}/stats", response_model=schemas.ProjectStats)
def project_stats(
    project_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.project_stats(db, project_id)


# --------------------------------------------------------------------------
# RECORDS
# --------------------------------------------------------------------------


@router.post("/records", response_model=schemas.AccreditationRead, status_code=status.HTTP_201_CREATED)
def create_accreditation(
    payload: schemas.AccreditationCreate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.create_accreditation(db, current_user, payload)


@router.get("/records", response_model=List[schemas.AccreditationRead])
def list_accreditations(
    project_id: Optional[str] = None,
    status_filter: Optional[AccreditationStatus] = Query(default=None, alias="status"),
    search: Optional[str] = None,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.list_accreditations(db, project_id=project_id, status=status_filter, search=search)


@router.get("/records/{accreditation_id}", response_model=schemas.AccreditationRead)
def get_accreditation(
    accreditation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_accreditation(db, accreditation_id)


@router.patch("/records/{accreditation_id}", response_model=schemas.AccreditationRead)
def update_accreditation(
    accreditation_id: str,
    payload: schemas.AccreditationUpdate,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.update_accreditation(db, accreditation_id, current_user, payload)


@router.post("/records/{accreditation_id}/submit", response_model=schemas.AccreditationRead)
def submit_accreditation(
    accreditation_id: str,
    payload: Optional[schemas.NotesRequest] = None,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.submit(db, accreditation_id, current_user, notes=payload.notes if payload else None)


@router.post("/records/{accreditation_id}/approve", response_model=schemas.AccreditationRead)
def approve_accreditation(
    accreditation_id: str,
    payload: Optional[schemas.ApproveRequest] = None,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    payload = payload or schemas.ApproveRequest()
    return services.approve(
        db,
        accreditation_id,
        current_user,
        notes=payload.notes,
        rotate_token=payload.rotate_token,
    )


@router.post("/records/{accreditation_id}/reject", response_model=schemas.AccreditationRead)
def reject_accreditation(
    accreditation_id: str,
    payload: Optional[schemas.NotesRequest] = None,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.reject(db, accreditation_id, current_user, notes=payload.notes if payload else None)


@router.post("/records/{accreditation_id}/return-to-draft", response_model=schemas.AccreditationRead)
def return_accreditation_to_draft(
    accreditation_id: str,
    payload: Optional[schemas.NotesRequest] = None,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.return_to_draft(
        db, accreditation_id, current_user, notes=payload.notes if payload else None
    )


@router.post("/records/{accreditation_id}/revoke", response_model=schemas.AccreditationRead)
def revoke_accreditation(
    accreditation_id: str,
    payload: schemas.RevokeRequest,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.revoke(db, accreditation_id, current_user, reason=payload.reason)


@router.get("/records/{accreditation_id}/history", response_model=List[audit_schemas.HistoryEntryRead])
def accreditation_history(
    accreditation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    services.get_accreditation(db, accreditation_id)
    return audit_services.list_history(db, accreditation_id=accreditation_id)


@router.get("/records/{accreditation_id}/verification-url", response_model=schemas.VerificationUrlRead)
def accreditation_verification_url(
    accreditation_id: str,
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(get_current_active_user),
):
    return services.get_verification_url(db, accreditation_id, current_user)


# --------------------------------------------------------------------------
# SCANS
# --------------------------------------------------------------------------


@router.get("/scans", response_model=audit_schemas.ScanPage)
def list_scans(
    accreditation_id: Optional[str] = None,
    project_id: Optional[str] = None,
    outcome: Optional[ScanOutcome] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=audit_services.MAX_SCAN_PAGE_SIZE),
    db: Session = Depends(get_read_db),
    current_user: account_models.User = Depends(
        require_roles(AccountRole.ADMIN, AccountRole.ACCREDITATION_APPROVER)
    ),
):
    rows, total = audit_services.list_scans(
        db,
        accreditation_id=accreditation_id,
        project_id=project_id,
        outcome=outcome,
        start=start,
        end=end,
        page=page,
        page_size=page_size,
    )
    return audit_schemas.ScanPage(
        items=[audit_schemas.ScanEventRead.model_validate(row) for row in rows],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/verify/{token}", response_model=schemas.VerificationResponse)
def verify_token(
    token: str,
    request: Request,
    db: Session = Depends(get_db),
    current_user: account_models.User = Depends(require_scanner),
):
    """
    Checkpoint scan. 200 on ALLOW, 403 on DENY, 404 when the token is not
    known at all. Every call leaves exactly one scan row.
    """
    result = services.verify(
        db,
        token,
        actor=current_user,
        device=request.headers.get("X-Device-Id"),
        ip_address=_client_ip(request),
    )

    if result.decision.allowed:
        status_code = status.HTTP_200_OK
    elif result.decision.reason == DenyReason.UNKNOWN_TOKEN:
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_403_FORBIDDEN
    return JSONResponse(
        status_code=status_code,
        content=result.to_response().model_dump(mode="json"),
        headers=NO_CACHE_HEADERS,
    )
