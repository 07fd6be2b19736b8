# backend/safetywatch/config.py
from pathlib import Path
import os

from dotenv import load_dotenv

# Load .env that sits in backend/.env
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

AWS_REGION = os.getenv("AWS_REGION", "eu-north-1")

# ---- DynamoDB ----
INCIDENTS_TABLE = os.getenv("INCIDENTS_TABLE", "Incidents")
# GSI: PK status, SK created_at
INCIDENTS_STATUS_INDEX = os.getenv("INCIDENTS_STATUS_INDEX", "status-created_at-index")

# ---- Cognito ----
COGNITO_USER_POOL_ID = os.getenv("COGNITO_USER_POOL_ID")
COGNITO_APP_CLIENT_ID = os.getenv("COGNITO_APP_CLIENT_ID")
COGNITO_ADMIN_GROUP = os.getenv("COGNITO_ADMIN_GROUP", "admin")

# ---- Incident review ----
PAGE_SIZE = int(os.getenv("INCIDENTS_PAGE_SIZE", "8"))
# "any": admins may delete incidents in every status
# "approved": only approved incidents can be deleted (old dashboard behaviour)
DELETE_SCOPE = os.getenv("INCIDENT_DELETE_SCOPE", "any").strip().lower()
DELETE_SCOPES = ("any", "approved")

# ---- HTTP ----
API_PREFIX = os.getenv("API_PREFIX", "").strip()
CORS_ORIGINS = os.getenv("CORS_ORIGINS")


def require_user_pool_id() -> str:
    if not COGNITO_USER_POOL_ID:
        raise RuntimeError(
            "COGNITO_USER_POOL_ID is not set. Create backend/.env and define COGNITO_USER_POOL_ID=<your user pool id>."
        )
    return COGNITO_USER_POOL_ID


def require_app_client_id() -> str:
    if not COGNITO_APP_CLIENT_ID:
        raise RuntimeError(
            "COGNITO_APP_CLIENT_ID is not set. Create backend/.env and define COGNITO_APP_CLIENT_ID=<your app client id>."
        )
    return COGNITO_APP_CLIENT_ID
