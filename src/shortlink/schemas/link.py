from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class LinkCreate(BaseModel):
    shortlink: Optional[str] = None
    longlink: str


class LinkEdit(LinkCreate):
    pass


class LinkRead(BaseModel):
    shortlink: str
    longlink: str
    hits: int
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class LinkResult(BaseModel):
    success: bool
    shortlink: Optional[str] = None
    message: str
