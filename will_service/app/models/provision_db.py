# Optional provisions: pets, final arrangements and digital assets
from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import WillBaseModel, new_id


class ArrangementType(str, Enum):
    BURIAL = "burial"
    CREMATION = "cremation"
    DONATION = "donation"


class Pet(WillBaseModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    caregiver_id: str = Field(min_length=1)
    care_instructions: Optional[str] = None
    care_fund: Optional[float] = Field(default=None, ge=0)


class Arrangement(WillBaseModel):
    id: str = Field(default_factory=new_id)
    type: ArrangementType
    instructions: str = Field(min_length=1)
    location: Optional[str] = None
    contact_info: Optional[str] = None


class DigitalAccount(WillBaseModel):
    id: str = Field(default_factory=new_id)
    platform: str = Field(min_length=1)
    username: Optional[str] = None
    instructions: str = Field(min_length=1)


class DigitalExecutor(WillBaseModel):
    id: str = Field(default_factory=new_id)
    person_id: str = Field(min_length=1)
    accounts: List[DigitalAccount] = Field(default_factory=list)
