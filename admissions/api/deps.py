"""
FastAPI dependencies shared by every router
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from admissions.database import get_db
from admissions.services.access import Operation, Principal, authenticate, authorize_operation
from admissions.services.audit import RequestMeta

bearer_scheme = HTTPBearer(auto_error=False)


def request_meta(request: Request) -> RequestMeta:
    """Caller IP, user agent and path for the audit trail"""
    forwarded = request.headers.get("x-forwarded-for")
    ip_address = forwarded.split(",")[0].strip() if forwarded else (
        request.client.host if request.client else None
    )
    return RequestMeta(
        ip_address=ip_address,
        user_agent=request.headers.get("user-agent"),
        path=request.url.path,
    )


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolves the bearer token of the request.

    Usage:
        @router.get("/me")
        async def me(principal: Principal = Depends(get_current_principal)):
            ...
    """
    token = credentials.credentials if credentials else None
    return authenticate(db, token)


def require(operation: Operation):
    """
    Route dependency enforcing the access policy for one operation.

    Usage:
        @router.get("/stats")
        async def stats(principal: Principal = Depends(require(Operation.view_stats))):
            ...
    """
    async def dependency(
        principal: Principal = Depends(get_current_principal),
        meta: RequestMeta = Depends(request_meta),
        db: Session = Depends(get_db),
    ) -> Principal:
        authorize_operation(db, principal, operation, meta)
        return principal

    return dependency
