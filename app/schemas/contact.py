"""Pydantic schemas for contact list endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ContactListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)


class ContactListResponse(BaseModel):
    id: int
    name: str
    description: str
    contact_count: int = Field(..., description="Number of members in the list.")
    created_at: datetime


class ContactIn(BaseModel):
    email: EmailStr
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    status: Literal["active", "unsubscribed", "bounced"] = "active"


class AddContactsRequest(BaseModel):
    contacts: List[ContactIn] = Field(..., min_length=1, max_length=10000)


class AddContactsResponse(BaseModel):
    added: int
    skipped: int = Field(..., description="Contacts that were already members of the list.")


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    status: str
    created_at: datetime
