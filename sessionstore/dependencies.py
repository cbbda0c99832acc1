from fastapi import Depends, HTTPException, Request

from sessionstore.exceptions import NotFoundError
from sessionstore.models.company import Company
from sessionstore.service import SessionStoreService


def get_service(request: Request) -> SessionStoreService:
    return request.app.state.service


def _extract_token(request: Request) -> str | None:
    """Extract the company token from the Authorization header."""
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def require_company(
    request: Request,
    service: SessionStoreService = Depends(get_service),
) -> Company:
    """Resolve the calling company from its token."""
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="company token required")
    try:
        return service.reports.get_company_by_token(token)
    except NotFoundError:
        raise HTTPException(status_code=401, detail="invalid company token")
