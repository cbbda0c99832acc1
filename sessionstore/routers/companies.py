from fastapi import APIRouter, Depends

from sessionstore.dependencies import get_service, require_company
from sessionstore.models.company import Company
from sessionstore.schemas.company import CompanyQuotaUsage
from sessionstore.schemas.user import UserListResponse
from sessionstore.service import SessionStoreService

router = APIRouter(prefix="/api/companies", tags=["companies"])


@router.get("/me/users", response_model=UserListResponse)
def list_company_users(
    instance: str,
    company: Company = Depends(require_company),
    service: SessionStoreService = Depends(get_service),
):
    """Users of the calling company in ``instance``, connected sessions first."""
    users = service.reports.list_company_users(company.id, instance)
    return {"items": users, "total": len(users)}


@router.get("/me/quota", response_model=CompanyQuotaUsage)
def get_company_quota(
    instance: str,
    company: Company = Depends(require_company),
    service: SessionStoreService = Depends(get_service),
):
    return service.reports.get_company_quota_usage(company.id, instance)
