# backend/safetywatch/services/incidents.py
"""
Incident review workflow: submission, moderation (approve / reject),
deletion and the filtered, sorted, paginated listing used by the admin
dashboard and the public feed.

Every function takes the acting user explicitly; nothing here reads session
state. Persistence goes through db.dynamo.
"""
from __future__ import annotations

import logging
import math
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from safetywatch import config
from safetywatch.db import dynamo
from safetywatch.errors import (
    DeleteNotPermitted,
    InvalidTransition,
    NotFoundError,
    StoreUnavailable,
    ValidationError,
)
from safetywatch.models.incident import (
    BulkDeleteResult,
    Incident,
    IncidentIn,
    IncidentPage,
    IncidentStatus,
    SortOrder,
    StatusCounts,
    StatusFilter,
)
from safetywatch.models.user import ActingUser
from safetywatch.services.auth import require_admin, require_user

log = logging.getLogger(__name__)

# pending is the only state with a way out
ALLOWED_TRANSITIONS = {
    IncidentStatus.PENDING: frozenset({IncidentStatus.APPROVED, IncidentStatus.REJECTED}),
    IncidentStatus.APPROVED: frozenset(),
    IncidentStatus.REJECTED: frozenset(),
}

_SEARCH_FIELDS = ("title", "description", "location")

_seq_lock = threading.Lock()
_last_seq = 0


# ------------------------
# helpers
# ------------------------
def _now() -> datetime:
    return datetime.now(timezone.utc)


def _next_seq() -> int:
    """Strictly increasing within the process; breaks created_at ties in insertion order."""
    global _last_seq
    with _seq_lock:
        _last_seq = max(time.time_ns(), _last_seq + 1)
        return _last_seq


def _parse_enum(enum_cls, value, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field} {value!r}; expected one of: {allowed}") from None


def _describe(err: PydanticValidationError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ())) or "report"
        parts.append(f"{loc}: {e.get('msg')}")
    return "; ".join(parts)


def _to_incident(item: Mapping[str, Any]) -> Incident:
    return Incident.model_validate(item)


def _insert_order(item: Mapping[str, Any]) -> int:
    return int(item.get("seq", 0))


def _created_at(item: Mapping[str, Any]) -> str:
    return str(item.get("created_at", ""))


def _matches_search(item: Mapping[str, Any], needle: str) -> bool:
    return any(needle in str(item.get(f, "")).casefold() for f in _SEARCH_FIELDS)


def _normalize_search(search: Optional[str]) -> str:
    return (search or "").strip().casefold()


def _fetch(status: StatusFilter, *, ascending: bool) -> List[Dict[str, Any]]:
    if status is StatusFilter.ALL:
        return dynamo.scan_incidents()
    return dynamo.query_incidents_by_status(status.value, ascending=ascending)


def _filtered_sorted(status: StatusFilter, search: Optional[str], order: SortOrder) -> List[Dict[str, Any]]:
    """Full filtered result in final order. Pages are slices of this list."""
    ascending = order is SortOrder.ASC
    items = _fetch(status, ascending=ascending)

    needle = _normalize_search(search)
    if needle:
        items = [it for it in items if _matches_search(it, needle)]

    # sort locally: the GSI order is lost for scans and does not know about seq.
    # sorted() is stable in both directions, so created_at ties keep insertion order.
    items = sorted(items, key=_insert_order)
    return sorted(items, key=_created_at, reverse=not ascending)


def _required_delete_status() -> Optional[str]:
    scope = config.DELETE_SCOPE
    if scope not in config.DELETE_SCOPES:
        raise RuntimeError(f"INCIDENT_DELETE_SCOPE must be one of {config.DELETE_SCOPES}, got {scope!r}")
    return IncidentStatus.APPROVED.value if scope == "approved" else None


def can_transition(current: IncidentStatus, new: IncidentStatus) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


# ------------------------
# operations
# ------------------------
def submit(report: Union[IncidentIn, Mapping[str, Any]], acting_user: Optional[ActingUser]) -> Incident:
    """
    Store a new report as `pending` on behalf of `acting_user`.
    Nothing is written when the report is invalid.
    """
    user = require_user(acting_user)

    if isinstance(report, IncidentIn):
        data = report
    else:
        try:
            data = IncidentIn.model_validate(report)
        except PydanticValidationError as e:
            raise ValidationError(_describe(e)) from e

    now_iso = _now().isoformat()
    item = {
        "id": str(uuid.uuid4()),
        "user_id": user.id,
        "type": data.type.value,
        "title": data.title,
        "description": data.description,
        "location": data.location,
        "status": IncidentStatus.PENDING.value,
        "created_at": now_iso,
        "updated_at": now_iso,
        "seq": _next_seq(),
    }
    dynamo.put_incident(item)
    log.info("Incident %s submitted by %s (%s)", item["id"], user.id, item["type"])
    return _to_incident(item)


def list_incidents(
    acting_user: Optional[ActingUser],
    *,
    status: Union[StatusFilter, str] = StatusFilter.ALL,
    search: Optional[str] = None,
    sort: Union[SortOrder, str] = SortOrder.DESC,
    page: int = 1,
    page_size: Optional[int] = None,
) -> IncidentPage:
    """
    Filter by status and free text, order by created_at, return one page.

    Listing `approved` is public. Any other status filter (including `all`)
    needs the admin capability.
    """
    status_filter = _parse_enum(StatusFilter, status, "status")
    order = _parse_enum(SortOrder, sort, "sort")
    size = page_size if page_size is not None else config.PAGE_SIZE
    if page < 1:
        raise ValidationError("page must be >= 1")
    if size < 1:
        raise ValidationError("page_size must be >= 1")

    if status_filter is not StatusFilter.APPROVED:
        require_admin(acting_user)

    matched = _filtered_sorted(status_filter, search, order)
    total = len(matched)
    start = (page - 1) * size

    return IncidentPage(
        rows=[_to_incident(it) for it in matched[start:start + size]],
        total_count=total,
        page=page,
        page_size=size,
        total_pages=max(1, math.ceil(total / size)),
    )


def public_feed(*, search: Optional[str] = None, page: int = 1) -> IncidentPage:
    """Approved incidents, newest first. No identity needed."""
    return list_incidents(None, status=StatusFilter.APPROVED, search=search, sort=SortOrder.DESC, page=page)


def get_incident(incident_id: str, acting_user: Optional[ActingUser]) -> Incident:
    item = dynamo.get_incident(incident_id)
    if not item:
        raise NotFoundError(f"Incident {incident_id} not found")
    if item.get("status") != IncidentStatus.APPROVED.value:
        require_admin(acting_user)
    return _to_incident(item)


def status_counts(acting_user: Optional[ActingUser], *, search: Optional[str] = None) -> StatusCounts:
    """
    Per-status totals over the full (search-filtered) set, for dashboard cards.
    """
    require_admin(acting_user)

    counts = StatusCounts()
    needle = _normalize_search(search)
    for it in dynamo.scan_incidents():
        if needle and not _matches_search(it, needle):
            continue
        st = it.get("status")
        if st == IncidentStatus.PENDING.value:
            counts.pending += 1
        elif st == IncidentStatus.APPROVED.value:
            counts.approved += 1
        elif st == IncidentStatus.REJECTED.value:
            counts.rejected += 1
        counts.total += 1
    return counts


def set_status(
    incident_id: str, new_status: Union[IncidentStatus, str], acting_user: Optional[ActingUser]
) -> Incident:
    """
    Move a pending incident to approved or rejected.

    Raises InvalidTransition for anything else, including repeating a decision
    that already went through. Only status and updated_at change.
    """
    admin = require_admin(acting_user)
    target = _parse_enum(IncidentStatus, new_status, "status")
    if target is IncidentStatus.PENDING:
        raise ValidationError("status can only be set to approved or rejected")

    item = dynamo.get_incident(incident_id)
    if not item:
        raise NotFoundError(f"Incident {incident_id} not found")

    current = IncidentStatus(item["status"])
    if not can_transition(current, target):
        raise InvalidTransition(f"Incident {incident_id} is {current.value}; cannot move to {target.value}")

    updated = dynamo.update_incident_status(
        incident_id,
        target.value,
        expected_status=current.value,
        updated_at=_now().isoformat(),
    )
    if updated is None:
        # someone else changed or removed it between read and write
        if dynamo.get_incident(incident_id) is None:
            raise NotFoundError(f"Incident {incident_id} not found")
        raise InvalidTransition(f"Incident {incident_id} is no longer {current.value}")

    log.info("Incident %s %s -> %s by %s", incident_id, current.value, target.value, admin.id)
    return _to_incident(updated)


def approve(incident_id: str, acting_user: Optional[ActingUser]) -> Incident:
    return set_status(incident_id, IncidentStatus.APPROVED, acting_user)


def reject(incident_id: str, acting_user: Optional[ActingUser]) -> Incident:
    return set_status(incident_id, IncidentStatus.REJECTED, acting_user)


def delete_incident(incident_id: str, acting_user: Optional[ActingUser]) -> None:
    admin = require_admin(acting_user)
    required = _required_delete_status()

    if not dynamo.delete_incident(incident_id, required_status=required):
        if dynamo.get_incident(incident_id) is None:
            raise NotFoundError(f"Incident {incident_id} not found")
        raise DeleteNotPermitted(f"Only {required} incidents can be deleted")

    log.info("Incident %s deleted by %s", incident_id, admin.id)


def bulk_delete(ids: Iterable[str], acting_user: Optional[ActingUser]) -> BulkDeleteResult:
    """
    Delete every existing id; unknown ids are skipped. Each delete stands on
    its own, so a store failure mid-way keeps what was already removed and
    reports that count on the raised StoreUnavailable.
    """
    admin = require_admin(acting_user)
    required = _required_delete_status()

    unique_ids = list(dict.fromkeys(ids))
    deleted = 0
    for incident_id in unique_ids:
        try:
            if dynamo.delete_incident(incident_id, required_status=required):
                deleted += 1
        except StoreUnavailable as e:
            log.error("Bulk delete stopped after %d of %d: %s", deleted, len(unique_ids), e)
            raise StoreUnavailable(
                f"Bulk delete stopped after {deleted} of {len(unique_ids)}: {e}", deleted_count=deleted
            ) from e

    log.info("Bulk delete by %s removed %d of %d", admin.id, deleted, len(unique_ids))
    return BulkDeleteResult(deleted_count=deleted)
