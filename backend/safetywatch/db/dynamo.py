# backend/safetywatch/db/dynamo.py
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from safetywatch import config
from safetywatch.errors import StoreUnavailable

log = logging.getLogger(__name__)

dynamodb = boto3.resource("dynamodb", region_name=config.AWS_REGION)
incidents_table = dynamodb.Table(config.INCIDENTS_TABLE)


def _is_conditional_failure(err: ClientError) -> bool:
    return err.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


@contextmanager
def _store_call(operation: str) -> Iterator[None]:
    """Turn transport/service errors into StoreUnavailable. Conditional failures pass through."""
    try:
        yield
    except ClientError as e:
        if _is_conditional_failure(e):
            raise
        log.exception("DynamoDB %s failed", operation)
        msg = e.response.get("Error", {}).get("Message", str(e))
        raise StoreUnavailable(f"{operation} failed: {msg}") from e
    except BotoCoreError as e:
        log.exception("DynamoDB %s failed", operation)
        raise StoreUnavailable(f"{operation} failed: {e}") from e


def put_incident(item: Dict[str, Any]) -> None:
    with _store_call("put_item"):
        incidents_table.put_item(Item=item)


def get_incident(incident_id: str) -> Optional[Dict[str, Any]]:
    with _store_call("get_item"):
        resp = incidents_table.get_item(Key={"id": incident_id})
    return resp.get("Item")


def query_incidents_by_status(status: str, *, ascending: bool = False) -> List[Dict[str, Any]]:
    """
    All incidents with the given status via the status GSI,
    transparently auto-paginating until done.
    """
    items: List[Dict[str, Any]] = []
    lek: Optional[Dict[str, Any]] = None

    while True:
        kwargs = {
            "IndexName": config.INCIDENTS_STATUS_INDEX,
            "KeyConditionExpression": Key("status").eq(status),
            "ScanIndexForward": ascending,
        }
        if lek:
            kwargs["ExclusiveStartKey"] = lek

        with _store_call("query"):
            resp = incidents_table.query(**kwargs)
        items.extend(resp.get("Items", []))
        lek = resp.get("LastEvaluatedKey")
        if not lek:
            break

    return items


def scan_incidents() -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    lek: Optional[Dict[str, Any]] = None
    while True:
        kwargs = {}
        if lek:
            kwargs["ExclusiveStartKey"] = lek
        with _store_call("scan"):
            resp = incidents_table.scan(**kwargs)
        items.extend(resp.get("Items", []))
        lek = resp.get("LastEvaluatedKey")
        if not lek:
            break
    return items


def update_incident_status(
    incident_id: str, new_status: str, *, expected_status: str, updated_at: str
) -> Optional[Dict[str, Any]]:
    """
    SET status + updated_at, only if the row still exists with `expected_status`.
    Returns the new item, or None if the condition did not hold.
    """
    try:
        with _store_call("update_item"):
            resp = incidents_table.update_item(
                Key={"id": incident_id},
                UpdateExpression="SET #s = :s, updated_at = :u",
                ConditionExpression=Attr("id").exists() & Attr("status").eq(expected_status),
                ExpressionAttributeNames={"#s": "status"},
                ExpressionAttributeValues={":s": new_status, ":u": updated_at},
                ReturnValues="ALL_NEW",
            )
    except ClientError as e:
        if _is_conditional_failure(e):
            return None
        raise
    return resp.get("Attributes")


def delete_incident(incident_id: str, *, required_status: Optional[str] = None) -> bool:
    """
    Hard delete. Returns False when nothing was removed (missing id, or
    status differs from `required_status` when one is given).
    """
    condition = Attr("id").exists()
    if required_status:
        condition = condition & Attr("status").eq(required_status)

    try:
        with _store_call("delete_item"):
            incidents_table.delete_item(Key={"id": incident_id}, ConditionExpression=condition)
    except ClientError as e:
        if _is_conditional_failure(e):
            return False
        raise
    return True
