from datetime import datetime

from pydantic import BaseModel, Field


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1)
    token: str = Field(min_length=1)
    connections_limit: int = Field(default=10, ge=0)
    connections_instance: int = Field(default=200, ge=0)
    date_limit: datetime | None = None
    redis_uri: str = ""


class CompanyQuotaUsage(BaseModel):
    company_id: int
    instance: str
    users: int
    connections_limit: int
    instance_users: int
    connections_instance: int
    connected: int
    date_limit: datetime | None = None
