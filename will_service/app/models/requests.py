# Request bodies accepted by the will API
from typing import Any, List, Optional

from pydantic import Field

from .base import WillBaseModel
from .will_db import ChatRole


class CreateWillRequest(WillBaseModel):
    state_compliance: Optional[str] = None


class SectionUpdateRequest(WillBaseModel):
    section: str = Field(min_length=1)
    data: Any = None
    expected_version: Optional[int] = Field(default=None, ge=1)


class ChatMessageRequest(WillBaseModel):
    role: ChatRole
    content: str = Field(min_length=1)


class PhotoRequest(WillBaseModel):
    url: str = Field(min_length=1)
    size: Optional[int] = Field(default=None, ge=0)
    name: Optional[str] = None
    caption: Optional[str] = None
    associated_items: List[str] = Field(default_factory=list)


class DocumentReferenceRequest(WillBaseModel):
    url: str = Field(min_length=1)
