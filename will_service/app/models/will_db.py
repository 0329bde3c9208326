import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from will_service.app.service.progress import calculate_progress
from .base import WillBaseModel, IsoDate, new_id, utc_now
from .person_db import PersonInfo, Person, Child
from .asset_db import RealProperty, PersonalAsset, SpecificGift, ResidualEstate
from .provision_db import Pet, Arrangement, DigitalExecutor


class WillStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"
    EXECUTED = "executed"


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class WillSections(WillBaseModel):
    testator: Optional[PersonInfo] = None
    spouse: Optional[PersonInfo] = None
    children: List[Child] = Field(default_factory=list)
    executors: List[Person] = Field(default_factory=list)
    guardians: List[Person] = Field(default_factory=list)
    real_property: List[RealProperty] = Field(default_factory=list)
    personal_property: List[PersonalAsset] = Field(default_factory=list)
    specific_gifts: List[SpecificGift] = Field(default_factory=list)
    residual_estate: Optional[ResidualEstate] = None
    pets: List[Pet] = Field(default_factory=list)
    arrangements: List[Arrangement] = Field(default_factory=list)
    digital_executors: List[DigitalExecutor] = Field(default_factory=list)


class WillDocuments(WillBaseModel):
    will_pdf: Optional[str] = None
    wishes_pdf: Optional[str] = None
    execution_certificate: Optional[str] = None


class Photo(WillBaseModel):
    id: str = Field(default_factory=new_id)
    url: str = Field(min_length=1)
    caption: Optional[str] = None
    associated_items: List[str] = Field(default_factory=list)
    size: Optional[int] = Field(default=None, ge=0)
    name: Optional[str] = None
    uploaded_at: datetime.datetime = Field(default_factory=utc_now)


class ChatMessage(WillBaseModel):
    id: str = Field(default_factory=new_id)
    role: ChatRole
    content: str = Field(min_length=1)
    timestamp: datetime.datetime = Field(default_factory=utc_now)


class Progress(WillBaseModel):
    completed_sections: List[str] = Field(default_factory=list)
    current_section: str = "personal-info"
    percent_complete: int = Field(default=0, ge=0, le=100)


class WitnessInfo(WillBaseModel):
    witness1: PersonInfo
    witness2: PersonInfo
    notary: Optional[PersonInfo] = None
    execution_date: IsoDate
    execution_location: str = Field(min_length=1)


class WillDB(WillBaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    status: WillStatus = Field(default=WillStatus.DRAFT, validate_default=True)
    state_compliance: str = "CA"
    sections: WillSections = Field(default_factory=WillSections)
    documents: WillDocuments = Field(default_factory=WillDocuments)
    photos: List[Photo] = Field(default_factory=list)
    chat_history: List[ChatMessage] = Field(default_factory=list)
    progress: Progress = Field(default_factory=Progress)
    version: int = 1
    executed_at: Optional[datetime.datetime] = None
    witness_info: Optional[WitnessInfo] = None

    created_at: datetime.datetime = Field(default_factory=utc_now)
    updated_at: datetime.datetime = Field(default_factory=utc_now)

    @field_validator("state_compliance")
    @classmethod
    def check_state_code(cls, value: str) -> str:
        value = value.upper()
        if len(value) != 2 or not value.isalpha():
            raise ValueError("state_compliance must be a two-letter jurisdiction code")
        return value

    def update_progress(self) -> None:
        """Recompute progress from the sections. Called before every persisted write."""
        result = calculate_progress(self.sections)
        self.progress.completed_sections = result.completed_sections
        self.progress.percent_complete = result.percent_complete
        # Completion is sticky: removing content later never returns a will to draft.
        if self.progress.percent_complete == 100 and self.status == WillStatus.DRAFT:
            self.status = WillStatus.COMPLETED.value

    def execution_blockers(self) -> List[str]:
        reasons = []
        if self.status != WillStatus.COMPLETED:
            reasons.append(f"status is '{self.status}', expected 'completed'")
        if self.progress.percent_complete != 100:
            reasons.append(f"progress is {self.progress.percent_complete}%, expected 100%")
        if self.sections.testator is None:
            reasons.append("testator information is missing")
        if not self.sections.executors:
            reasons.append("at least one executor is required")
        return reasons

    def can_be_executed(self) -> bool:
        return not self.execution_blockers()

    def to_document(self) -> dict:
        return self.model_dump()


class WillSearchResult(WillBaseModel):
    wills: List[WillDB] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    pages: int = 0


class WillStatistics(WillBaseModel):
    total_wills: int = 0
    draft_wills: int = 0
    completed_wills: int = 0
    executed_wills: int = 0
    average_completion_days: int = 0
