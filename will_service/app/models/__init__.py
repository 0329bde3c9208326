from .person_db import Address, PersonInfo, Person, Child
from .asset_db import Beneficiary, RealProperty, PersonalAsset, SpecificGift, ResidualEstate
from .provision_db import Pet, Arrangement, DigitalAccount, DigitalExecutor
from .will_db import (
    WillStatus, ChatRole, WillSections, WillDocuments, Photo, ChatMessage,
    Progress, WitnessInfo, WillDB, WillSearchResult, WillStatistics,
)

__all__ = [
    "Address",
    "PersonInfo",
    "Person",
    "Child",
    "Beneficiary",
    "RealProperty",
    "PersonalAsset",
    "SpecificGift",
    "ResidualEstate",
    "Pet",
    "Arrangement",
    "DigitalAccount",
    "DigitalExecutor",
    "WillStatus",
    "ChatRole",
    "WillSections",
    "WillDocuments",
    "Photo",
    "ChatMessage",
    "Progress",
    "WitnessInfo",
    "WillDB",
    "WillSearchResult",
    "WillStatistics",
]
