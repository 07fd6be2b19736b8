import copy
from datetime import datetime, timedelta, timezone

import pytest
from botocore.exceptions import ClientError

from safetywatch import config
from safetywatch.db import dynamo
from safetywatch.models.user import ActingUser
from safetywatch.services import auth
from safetywatch.services import incidents


def client_error(code, operation):
    return ClientError({"Error": {"Code": code, "Message": f"{code} ({operation})"}}, operation)


def _holds(condition, item):
    """Evaluate the handful of boto3 conditions the db layer builds."""
    if condition is None:
        return True
    expr = condition.get_expression()
    op = expr["operator"]
    values = expr["values"]
    if op == "AND":
        return all(_holds(c, item) for c in values)
    if op == "attribute_exists":
        return values[0].name in item
    if op == "=":
        return item.get(values[0].name) == values[1]
    raise NotImplementedError(op)


def _page(rows, start_key, limit):
    if start_key:
        ids = [r["id"] for r in rows]
        rows = rows[ids.index(start_key["id"]) + 1:]
    if limit and len(rows) > limit:
        return {"Items": rows[:limit], "LastEvaluatedKey": {"id": rows[limit - 1]["id"]}}
    return {"Items": rows}


class FakeTable:
    """In-memory stand-in for a boto3 DynamoDB Table."""

    def __init__(self, page_limit=None):
        self.items = {}
        self.page_limit = page_limit
        self.fail_on = set()
        self.fail_after = {}
        self.calls = []

    def _enter(self, op):
        self.calls.append(op)
        remaining = self.fail_after.get(op)
        if remaining is not None:
            if remaining <= 0:
                raise client_error("InternalServerError", op)
            self.fail_after[op] = remaining - 1
        if op in self.fail_on:
            raise client_error("InternalServerError", op)

    def put_item(self, Item):
        self._enter("put_item")
        self.items[Item["id"]] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        self._enter("get_item")
        item = self.items.get(Key["id"])
        return {"Item": copy.deepcopy(item)} if item else {}

    def query(self, KeyConditionExpression, IndexName=None, ScanIndexForward=True, ExclusiveStartKey=None):
        self._enter("query")
        rows = [copy.deepcopy(i) for i in self.items.values() if _holds(KeyConditionExpression, i)]
        rows.sort(key=lambda i: i["created_at"], reverse=not ScanIndexForward)
        return _page(rows, ExclusiveStartKey, self.page_limit)

    def scan(self, ExclusiveStartKey=None):
        self._enter("scan")
        rows = [copy.deepcopy(i) for i in self.items.values()]
        return _page(rows, ExclusiveStartKey, self.page_limit)

    def update_item(self, Key, UpdateExpression, ConditionExpression=None,
                    ExpressionAttributeNames=None, ExpressionAttributeValues=None, ReturnValues=None):
        self._enter("update_item")
        current = self.items.get(Key["id"], {})
        if not _holds(ConditionExpression, current):
            raise client_error("ConditionalCheckFailedException", "UpdateItem")
        names = ExpressionAttributeNames or {}
        values = ExpressionAttributeValues or {}
        item = copy.deepcopy(current)
        for assignment in UpdateExpression.strip()[len("SET "):].split(","):
            name, placeholder = (p.strip() for p in assignment.split("="))
            item[names.get(name, name)] = values[placeholder]
        self.items[Key["id"]] = item
        return {"Attributes": copy.deepcopy(item)}

    def delete_item(self, Key, ConditionExpression=None):
        self._enter("delete_item")
        current = self.items.get(Key["id"], {})
        if not _holds(ConditionExpression, current):
            raise client_error("ConditionalCheckFailedException", "DeleteItem")
        self.items.pop(Key["id"], None)
        return {}


class FakeCognito:
    """Just enough of the cognito-idp client for the auth and user services."""

    def __init__(self):
        self.users = {}      # username -> {"sub", "email"}
        self.tokens = {}     # access token -> username
        self.admins = set()  # usernames in the admin group
        self.signed_out = []
        self.deleted = []

    def add_user(self, username, sub, email, *, token=None, admin=False):
        self.users[username] = {"sub": sub, "email": email}
        if token:
            self.tokens[token] = username
        if admin:
            self.admins.add(username)

    def _as_listed(self, username):
        u = self.users[username]
        return {
            "Username": username,
            "Attributes": [{"Name": "sub", "Value": u["sub"]}, {"Name": "email", "Value": u["email"]}],
        }

    def get_user(self, AccessToken):
        username = self.tokens.get(AccessToken)
        if username is None:
            raise client_error("NotAuthorizedException", "GetUser")
        if username not in self.users:
            raise client_error("UserNotFoundException", "GetUser")
        u = self.users[username]
        return {
            "Username": username,
            "UserAttributes": [{"Name": "sub", "Value": u["sub"]}, {"Name": "email", "Value": u["email"]}],
        }

    def admin_list_groups_for_user(self, Username, UserPoolId):
        groups = [{"GroupName": config.COGNITO_ADMIN_GROUP}] if Username in self.admins else []
        return {"Groups": groups}

    def list_users_in_group(self, UserPoolId, GroupName, NextToken=None):
        return {"Users": [self._as_listed(n) for n in sorted(self.admins)]}

    def list_users(self, UserPoolId, PaginationToken=None, Filter=None, Limit=None):
        names = list(self.users)
        if Filter:
            wanted = Filter.split('"')[1]
            names = [n for n in names if self.users[n]["sub"] == wanted]
            return {"Users": [self._as_listed(n) for n in names[:Limit]]}
        # two pages so the pagination loop is exercised
        half = len(names) // 2 or len(names)
        if PaginationToken is None and half < len(names):
            return {"Users": [self._as_listed(n) for n in names[:half]], "PaginationToken": "page-2"}
        start = half if PaginationToken else 0
        return {"Users": [self._as_listed(n) for n in names[start:]]}

    def admin_delete_user(self, UserPoolId, Username):
        self.deleted.append(Username)
        self.users.pop(Username, None)
        self.admins.discard(Username)
        self.tokens = {t: u for t, u in self.tokens.items() if u != Username}

    def initiate_auth(self, ClientId, AuthFlow, AuthParameters):
        username = AuthParameters["USERNAME"]
        if username not in self.users or AuthParameters["PASSWORD"] != "Correct-Horse-9":
            raise client_error("NotAuthorizedException", "InitiateAuth")
        token = f"token-{username}"
        self.tokens[token] = username
        return {"AuthenticationResult": {"AccessToken": token, "IdToken": "id", "RefreshToken": "r", "ExpiresIn": 3600}}

    def sign_up(self, ClientId, Username, Password, UserAttributes):
        if Username in self.users:
            raise client_error("UsernameExistsException", "SignUp")
        sub = f"sub-{len(self.users) + 1}"
        self.users[Username] = {"sub": sub, "email": Username}
        return {"UserSub": sub}

    def global_sign_out(self, AccessToken):
        if AccessToken not in self.tokens:
            raise client_error("NotAuthorizedException", "GlobalSignOut")
        self.signed_out.append(self.tokens.pop(AccessToken))


class Clock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def tick(self, seconds=60):
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def table(monkeypatch):
    t = FakeTable()
    monkeypatch.setattr(dynamo, "incidents_table", t)
    monkeypatch.setattr(config, "DELETE_SCOPE", "any")
    monkeypatch.setattr(config, "PAGE_SIZE", 8)
    return t


@pytest.fixture()
def clock(monkeypatch):
    c = Clock()
    monkeypatch.setattr(incidents, "_now", c)
    return c


@pytest.fixture()
def cognito(monkeypatch):
    fake = FakeCognito()
    monkeypatch.setattr(auth, "cognito", fake)
    monkeypatch.setattr(config, "COGNITO_USER_POOL_ID", "eu-north-1_test")
    monkeypatch.setattr(config, "COGNITO_APP_CLIENT_ID", "client-test")
    monkeypatch.setattr(config, "COGNITO_ADMIN_GROUP", "admin")
    fake.add_user("admin@example.com", "admin-1", "admin@example.com", token="admin-token", admin=True)
    fake.add_user("u1@example.com", "u1", "u1@example.com", token="user-token")
    return fake


@pytest.fixture()
def admin():
    return ActingUser(id="admin-1", email="admin@example.com", is_admin=True)


@pytest.fixture()
def reporter():
    return ActingUser(id="u1", email="u1@example.com", is_admin=False)


def make_report(**overrides):
    report = {
        "type": "theft",
        "title": "Bike stolen",
        "description": "Locked bike taken from porch",
        "location": "5th & Elm",
    }
    report.update(overrides)
    return report
