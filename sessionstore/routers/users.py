from datetime import date

from fastapi import APIRouter, Depends

from sessionstore.dependencies import get_service
from sessionstore.schemas.usage import DailyUsageResponse
from sessionstore.schemas.user import UserListResponse
from sessionstore.service import SessionStoreService

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/users/connected", response_model=UserListResponse)
def list_connected_users(service: SessionStoreService = Depends(get_service)):
    """Connected users of the instance served by this process."""
    users = service.reports.list_connected_users()
    return {"items": users, "total": len(users)}


@router.get("/instances/{instance}/connected-count")
def count_connected_users(instance: str, service: SessionStoreService = Depends(get_service)):
    return {"instance": instance, "connected": service.reports.count_connected_users(instance)}


@router.get("/users/{user_id}/usage", response_model=list[DailyUsageResponse])
def list_user_usage(
    user_id: int,
    start: date | None = None,
    end: date | None = None,
    service: SessionStoreService = Depends(get_service),
):
    service.reports.get_user_by_id(user_id)
    return service.usage.list_daily_usage(user_id, start, end)
