import datetime
from typing import Optional

from pydantic import Field, model_validator

from .base import WillBaseModel, IsoDate, new_id

MINOR_AGE_THRESHOLD = 18


def calculate_age(date_of_birth: datetime.date, today: Optional[datetime.date] = None) -> int:
    today = today or datetime.date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


class Address(WillBaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "United States"


class PersonInfo(WillBaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    date_of_birth: Optional[IsoDate] = None
    address: Optional[Address] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    relationship: Optional[str] = None
    marital_status: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Person(PersonInfo):
    """A named person held in a will list (executor, guardian)."""
    id: str = Field(default_factory=new_id)
    is_primary: bool = False
    is_alternate: bool = False


class Child(PersonInfo):
    id: str = Field(default_factory=new_id)
    relationship: Optional[str] = "child"
    is_minor: bool = False
    guardian_id: Optional[str] = None

    @model_validator(mode="after")
    def derive_minor_status(self) -> "Child":
        # Recomputed whenever a child is loaded; the stored flag only counts without a birth date.
        if self.date_of_birth is not None:
            self.is_minor = calculate_age(self.date_of_birth) < MINOR_AGE_THRESHOLD
        return self
