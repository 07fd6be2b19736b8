from typing import Optional

from fastapi import APIRouter, Depends, Query

from safetywatch.errors import SafetyWatchError
from safetywatch.models.incident import Incident, IncidentIn, IncidentPage, SortOrder, StatusFilter
from safetywatch.models.user import ActingUser
from safetywatch.routes.deps import acting_user, to_http
from safetywatch.services import incidents as incident_service

router = APIRouter(prefix="/incidents", tags=["incident"])


@router.post("", response_model=Incident, status_code=201)
def report_incident(data: IncidentIn, user: Optional[ActingUser] = Depends(acting_user)):
    """
    Accept a report from the form. It is stored as pending until an admin
    reviews it.
    """
    try:
        return incident_service.submit(data, user)
    except SafetyWatchError as e:
        raise to_http(e)


@router.get("", response_model=IncidentPage)
def list_incidents(
    status: StatusFilter = Query(StatusFilter.APPROVED, description="all|pending|approved|rejected"),
    search: Optional[str] = Query(None, description="Case-insensitive match on title, description, location"),
    sort: SortOrder = Query(SortOrder.DESC, description="created_at direction"),
    page: int = Query(1, ge=1),
    user: Optional[ActingUser] = Depends(acting_user),
):
    try:
        return incident_service.list_incidents(user, status=status, search=search, sort=sort, page=page)
    except SafetyWatchError as e:
        raise to_http(e)


@router.get("/feed", response_model=IncidentPage)
def public_feed(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
):
    try:
        return incident_service.public_feed(search=search, page=page)
    except SafetyWatchError as e:
        raise to_http(e)


@router.get("/{incident_id}", response_model=Incident)
def get_incident(incident_id: str, user: Optional[ActingUser] = Depends(acting_user)):
    try:
        return incident_service.get_incident(incident_id, user)
    except SafetyWatchError as e:
        raise to_http(e)
