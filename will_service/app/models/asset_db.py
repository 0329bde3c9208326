from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from .base import WillBaseModel, new_id
from .person_db import Address


class RealPropertyType(str, Enum):
    HOUSE = "house"
    CONDO = "condo"
    LAND = "land"
    OTHER = "other"


class PersonalAssetType(str, Enum):
    BANK_ACCOUNT = "bank_account"
    INVESTMENT = "investment"
    VEHICLE = "vehicle"
    JEWELRY = "jewelry"
    ART = "art"
    OTHER = "other"


class Beneficiary(WillBaseModel):
    person_id: Optional[str] = None
    name: Optional[str] = None
    relationship: Optional[str] = None
    percentage: float = Field(ge=0, le=100)

    @model_validator(mode="after")
    def require_identity(self) -> "Beneficiary":
        if not self.person_id and not self.name:
            raise ValueError("A beneficiary needs a name or a person_id")
        return self


class RealProperty(WillBaseModel):
    id: str = Field(default_factory=new_id)
    type: RealPropertyType
    description: str = Field(min_length=1)
    address: Address
    estimated_value: Optional[float] = Field(default=None, ge=0)
    beneficiaries: List[Beneficiary] = Field(default_factory=list)


class PersonalAsset(WillBaseModel):
    id: str = Field(default_factory=new_id)
    type: PersonalAssetType
    description: str = Field(min_length=1)
    estimated_value: Optional[float] = Field(default=None, ge=0)
    beneficiaries: List[Beneficiary] = Field(default_factory=list)


class SpecificGift(WillBaseModel):
    id: str = Field(default_factory=new_id)
    item: str = Field(min_length=1)
    beneficiary: str = Field(min_length=1)
    is_monetary: bool
    amount: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def require_amount_for_money(self) -> "SpecificGift":
        if self.is_monetary and self.amount is None:
            raise ValueError("A monetary gift needs an amount")
        return self


class ResidualEstate(WillBaseModel):
    beneficiaries: List[Beneficiary] = Field(default_factory=list)
    contingent_beneficiaries: List[Beneficiary] = Field(default_factory=list)
