"""HTTP routes."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Type

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlmodel import Session

from complaint_desk.config import QueryConfig, Settings
from complaint_desk.dashboard import DashboardFilters, DashboardService
from complaint_desk.database import get_session
from complaint_desk.entities import ComplaintPriority, ComplaintStatus
from complaint_desk.fsp import FSPManager, get_query_config
from complaint_desk.models import PaginatedResponse
from complaint_desk.resources import ComplaintEvidenceResource, ComplaintResource, UserResource
from complaint_desk.schemas import (
    ComplaintCreate,
    ComplaintEvidenceCreate,
    ComplaintEvidenceUpdate,
    ComplaintUpdate,
    UserCreate,
    UserUpdate,
)
from complaint_desk.security import PasswordHasher
from complaint_desk.services import ComplaintEvidenceService, ComplaintService, UserService
from complaint_desk.storage import EvidenceStorage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_complaint_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    config: QueryConfig = Depends(get_query_config),
) -> ComplaintService:
    return ComplaintService(
        session, storage=EvidenceStorage(settings.storage_dir), strict_mode=config.strict_mode
    )


def get_evidence_service(
    session: Session = Depends(get_session),
    config: QueryConfig = Depends(get_query_config),
) -> ComplaintEvidenceService:
    return ComplaintEvidenceService(session, strict_mode=config.strict_mode)


def get_user_service(
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    config: QueryConfig = Depends(get_query_config),
) -> UserService:
    return UserService(
        session,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        strict_mode=config.strict_mode,
    )


EVIDENCE_FILES_FIELD = "evidence_files"
FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


@dataclass
class ComplaintSubmission:
    """A validated complaint body plus the evidence files sent with it."""

    body: BaseModel
    evidence_files: List[UploadFile] = field(default_factory=list)


async def _read_fields(request: Request) -> Tuple[Dict[str, Any], List[UploadFile]]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        data: Dict[str, Any] = {}
        files = []
        for name, value in form.multi_items():
            if isinstance(value, str):
                # Blank form inputs count as absent
                if value.strip():
                    data[name] = value
            elif name == EVIDENCE_FILES_FIELD and value.filename:
                files.append(value)
        return data, files

    raw = await request.body()
    if not raw:
        return {}, []
    try:
        data = await request.json()
    except ValueError:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "Malformed JSON body."}]
        ) from None
    if not isinstance(data, dict):
        raise RequestValidationError(
            [{"type": "dict_type", "loc": ("body",), "msg": "Request body must be an object."}]
        )
    return data, []


def complaint_submission(schema: Type[BaseModel]):
    """
    Dependency reading a complaint body from JSON or from form fields.

    Form submissions may carry ``evidence_files`` uploads alongside the
    fields. Either way the fields are validated by ``schema``.

    Raises:
        RequestValidationError: If the fields fail validation
    """

    async def parse(request: Request) -> ComplaintSubmission:
        data, files = await _read_fields(request)
        try:
            body = schema.model_validate(data)
        except ValidationError as e:
            raise RequestValidationError(e.errors()) from e
        return ComplaintSubmission(body=body, evidence_files=files)

    return parse


# --- Complaints ---

complaints = APIRouter(prefix="/complaints", tags=["complaints"])


@complaints.get("", response_model=PaginatedResponse[Dict[str, Any]])
def list_complaints(
    request: Request,
    fsp: FSPManager = Depends(FSPManager),
    service: ComplaintService = Depends(get_complaint_service),
):
    rows, total = service.get_all_paginated(fsp.query, fsp.paginator)
    return fsp.build_response(
        rows, total, lambda row: ComplaintResource.make(row, request.query_params)
    )


@complaints.post("", status_code=status.HTTP_201_CREATED)
def create_complaint(
    request: Request,
    submission: ComplaintSubmission = Depends(complaint_submission(ComplaintCreate)),
    service: ComplaintService = Depends(get_complaint_service),
):
    complaint = service.create(submission.body.model_dump(), submission.evidence_files)
    if submission.evidence_files:
        complaint = service.get(complaint.id)
    return ComplaintResource.make(complaint, request.query_params)


@complaints.get("/{complaint_id}")
def show_complaint(
    complaint_id: int,
    request: Request,
    service: ComplaintService = Depends(get_complaint_service),
):
    return ComplaintResource.make(service.get(complaint_id), request.query_params)


@complaints.patch("/{complaint_id}")
def update_complaint(
    complaint_id: int,
    request: Request,
    submission: ComplaintSubmission = Depends(complaint_submission(ComplaintUpdate)),
    service: ComplaintService = Depends(get_complaint_service),
):
    """Update the given fields and attach any uploaded evidence files."""
    data = submission.body.model_dump(exclude_unset=True, exclude_none=True)
    complaint = service.update(complaint_id, data, submission.evidence_files)
    if submission.evidence_files:
        complaint = service.get(complaint.id)
    return ComplaintResource.make(complaint, request.query_params)


@complaints.delete("/{complaint_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_complaint(
    complaint_id: int, service: ComplaintService = Depends(get_complaint_service)
):
    """Delete a complaint together with its evidence rows."""
    service.delete(complaint_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@complaints.post("/{complaint_id}/evidence-files", status_code=status.HTTP_201_CREATED)
def upload_evidence_files(
    complaint_id: int,
    request: Request,
    evidence_files: List[UploadFile] = File(...),
    service: ComplaintService = Depends(get_complaint_service),
):
    evidences = service.attach_evidence_files(complaint_id, evidence_files)
    return ComplaintEvidenceResource.collection(evidences, request.query_params)


@complaints.get("/{complaint_id}/report")
def complaint_report(
    complaint_id: int,
    request: Request,
    service: ComplaintService = Depends(get_complaint_service),
):
    report = service.report(complaint_id)
    return {
        "filename": report.filename,
        "content_type": report.content_type,
        "complaint": ComplaintResource.make(report.complaint, request.query_params),
    }


public = APIRouter(prefix="/public", tags=["public"])


@public.post("/complaints", status_code=status.HTTP_201_CREATED)
def submit_public_complaint(
    submission: ComplaintSubmission = Depends(complaint_submission(ComplaintCreate)),
    service: ComplaintService = Depends(get_complaint_service),
):
    complaint = service.submit_public(submission.body.model_dump(), submission.evidence_files)
    return {
        "message": "Complaint submitted successfully.",
        "data": {"id": complaint.id, "complaint_number": complaint.complaint_number},
    }


# --- Complaint evidences ---

evidences = APIRouter(prefix="/complaint-evidences", tags=["complaint evidences"])


@evidences.get("", response_model=PaginatedResponse[Dict[str, Any]])
def list_evidences(
    request: Request,
    fsp: FSPManager = Depends(FSPManager),
    service: ComplaintEvidenceService = Depends(get_evidence_service),
):
    rows, total = service.get_all_paginated(fsp.query, fsp.paginator)
    return fsp.build_response(
        rows, total, lambda row: ComplaintEvidenceResource.make(row, request.query_params)
    )


@evidences.post("", status_code=status.HTTP_201_CREATED)
def create_evidence(
    body: ComplaintEvidenceCreate,
    request: Request,
    service: ComplaintEvidenceService = Depends(get_evidence_service),
):
    evidence = service.create(body.model_dump(exclude_none=True))
    return ComplaintEvidenceResource.make(evidence, request.query_params)


@evidences.get("/{evidence_id}")
def show_evidence(
    evidence_id: int,
    request: Request,
    service: ComplaintEvidenceService = Depends(get_evidence_service),
):
    return ComplaintEvidenceResource.make(service.get(evidence_id), request.query_params)


@evidences.put("/{evidence_id}")
def update_evidence(
    evidence_id: int,
    body: ComplaintEvidenceUpdate,
    request: Request,
    service: ComplaintEvidenceService = Depends(get_evidence_service),
):
    evidence = service.update(evidence_id, body.model_dump(exclude_none=True))
    return ComplaintEvidenceResource.make(evidence, request.query_params)


@evidences.delete("/{evidence_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_evidence(
    evidence_id: int, service: ComplaintEvidenceService = Depends(get_evidence_service)
):
    service.delete(evidence_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Users ---

users = APIRouter(prefix="/users", tags=["users"])


@users.get("", response_model=PaginatedResponse[Dict[str, Any]])
def list_users(
    request: Request,
    fsp: FSPManager = Depends(FSPManager),
    service: UserService = Depends(get_user_service),
):
    rows, total = service.get_all_paginated(fsp.query, fsp.paginator)
    return fsp.build_response(
        rows, total, lambda row: UserResource.make(row, request.query_params)
    )


@users.get("/roles")
def list_roles() -> List[str]:
    return UserService.roles()


@users.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    request: Request,
    service: UserService = Depends(get_user_service),
):
    user = service.create(body.model_dump())
    return UserResource.make(user, request.query_params)


@users.get("/{nip}")
def show_user(nip: str, request: Request, service: UserService = Depends(get_user_service)):
    return UserResource.make(service.find_by_nip(nip), request.query_params)


@users.put("/{nip}")
def update_user(
    nip: str,
    body: UserUpdate,
    request: Request,
    service: UserService = Depends(get_user_service),
):
    user = service.update(nip, body.model_dump())
    return UserResource.make(user, request.query_params)


@users.delete("/{nip}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(nip: str, service: UserService = Depends(get_user_service)):
    service.delete(nip)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Dashboard ---

dashboard = APIRouter(tags=["dashboard"])


@dashboard.get("/dashboard")
def show_dashboard(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status"),
    priority: Optional[ComplaintPriority] = None,
    months_back: int = Query(6, ge=1, le=120),
    session: Session = Depends(get_session),
):
    filters = DashboardFilters(
        date_from=date_from,
        date_to=date_to,
        status=status_filter,
        priority=priority,
        months_back=months_back,
    )
    return DashboardService(session).summary(filters)


ROUTERS = (complaints, public, evidences, users, dashboard)
