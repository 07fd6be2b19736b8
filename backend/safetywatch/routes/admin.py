from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from safetywatch.errors import SafetyWatchError
from safetywatch.models.incident import BulkDeleteIn, BulkDeleteResult, Incident, StatusCounts, StatusUpdate
from safetywatch.models.user import ActingUser, UserRow
from safetywatch.routes.deps import acting_user, to_http
from safetywatch.services import incidents as incident_service
from safetywatch.services import users as user_service

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------- Incidents ----------------
@router.get("/incidents/stats", response_model=StatusCounts)
def incident_stats(
    search: Optional[str] = Query(None),
    user: Optional[ActingUser] = Depends(acting_user),
):
    """Counts per status over everything matching `search`, not just one page."""
    try:
        return incident_service.status_counts(user, search=search)
    except SafetyWatchError as e:
        raise to_http(e)


@router.patch("/incidents/{incident_id}", response_model=Incident)
def update_incident_status(
    incident_id: str,
    body: StatusUpdate,
    user: Optional[ActingUser] = Depends(acting_user),
):
    try:
        return incident_service.set_status(incident_id, body.status, user)
    except SafetyWatchError as e:
        raise to_http(e)


@router.delete("/incidents/{incident_id}", status_code=204)
def delete_incident(incident_id: str, user: Optional[ActingUser] = Depends(acting_user)):
    try:
        incident_service.delete_incident(incident_id, user)
    except SafetyWatchError as e:
        raise to_http(e)
    return Response(status_code=204)


@router.post("/incidents/bulk-delete", response_model=BulkDeleteResult)
def bulk_delete_incidents(body: BulkDeleteIn, user: Optional[ActingUser] = Depends(acting_user)):
    try:
        return incident_service.bulk_delete(body.ids, user)
    except SafetyWatchError as e:
        raise to_http(e)


# ---------------- Users ----------------
@router.get("/users", response_model=List[UserRow])
def list_users(
    search: Optional[str] = Query(None, description="Filter by email"),
    user: Optional[ActingUser] = Depends(acting_user),
):
    try:
        return user_service.list_users(user, search=search)
    except SafetyWatchError as e:
        raise to_http(e)


@router.delete("/users/{user_id}", status_code=204)
def remove_user(user_id: str, user: Optional[ActingUser] = Depends(acting_user)):
    try:
        user_service.remove_user(user_id, user)
    except SafetyWatchError as e:
        raise to_http(e)
    return Response(status_code=204)
