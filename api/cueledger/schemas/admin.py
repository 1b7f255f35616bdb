from datetime import datetime
from typing import Any
from pydantic import BaseModel


class SettingUpdate(BaseModel):
    value: Any


class AdminLogEntry(BaseModel):
    id: int
    admin_id: str
    action: str
    target_type: str
    target_id: str
    details: dict[str, Any]
    created_at: datetime

    class Config:
        from_attributes = True


class AdminLogPage(BaseModel):
    logs: list[AdminLogEntry]
    total: int
