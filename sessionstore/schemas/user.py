from datetime import datetime

from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    token: str = Field(min_length=1)
    webhook: str = ""
    jid: str = ""
    expiration: int = 0
    events: str = "All"
    instance: str = ""
    company_id: int | None = None
    whatsapp_id: int | None = None


class UserResponse(BaseModel):
    id: int
    name: str
    webhook: str
    jid: str
    connected: int
    expiration: int
    events: str
    instance: str
    company_id: int | None = None
    whatsapp_id: int | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserListResponse(BaseModel):
    items: list[UserResponse]
    total: int
