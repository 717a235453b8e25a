"""
Audit logging middleware.
Records every request that touches patient records, with the caller's
subject and role taken from the bearer token.
"""
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..models import base as db_base
from ..models.audit import AuditLog
from ..models.base import generate_uuid
from .security import decode_access_token

logger = logging.getLogger(__name__)

# Requests under these paths touch patient records and are logged
PHI_PATH_PREFIXES = (
    "/api/v1/patients",
)

ACTION_MAP = {
    "GET": "view",
    "POST": "create",
    "PUT": "update",
    "PATCH": "update",
    "DELETE": "delete",
}


def describe_path(path: str):
    """(resource_type, resource_id) for /api/v1/<type>/<id>/..."""
    parts = [p for p in path.split("/") if p]
    resource_type = parts[2] if len(parts) >= 3 else "unknown"
    resource_id = parts[3] if len(parts) >= 4 else "collection"
    return resource_type, resource_id


class AuditMiddleware(BaseHTTPMiddleware):
    """Middleware that auto-logs access to patient endpoints."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        path = request.url.path
        if not any(path.startswith(prefix) for prefix in PHI_PATH_PREFIXES):
            return response
        if request.method not in ACTION_MAP:
            return response

        user_id, role = "anonymous", None
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            payload = decode_access_token(auth_header[7:])
            if payload:
                user_id = payload.get("sub", "anonymous")
                role = payload.get("role")

        resource_type, resource_id = describe_path(path)
        ip_address = request.client.host if request.client else None

        db = db_base.SessionLocal()
        try:
            db.add(AuditLog(
                id=generate_uuid(),
                user_id=user_id,
                role=role,
                action=ACTION_MAP[request.method],
                resource_type=resource_type,
                resource_id=resource_id,
                ip_address=ip_address,
                request_method=request.method,
                request_path=path,
                status_code=str(response.status_code),
            ))
            db.commit()
        except Exception as exc:
            logger.warning(
                "Audit log write failed for %s %s (user=%s): %s",
                request.method, path, user_id, exc,
            )
        finally:
            db.close()

        return response
