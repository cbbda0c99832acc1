from sessionstore.models.company import Company
from sessionstore.models.user import User
from sessionstore.models.user_daily_usage import UserDailyUsage

__all__ = [
    "Company",
    "User",
    "UserDailyUsage",
]
