"""
Input models for the interview steps.

Each form validates what the user typed on one step and turns it into the
payload `update_will_section` expects for that step. The forms are stricter
than the stored models (a stored address may be partial, a typed one may not).
"""
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from will_service.app.models import WillDB, PersonalAsset
from will_service.app.models.asset_db import RealPropertyType
from will_service.app.models.base import WillBaseModel, IsoDate
from will_service.app.models.person_db import calculate_age, MINOR_AGE_THRESHOLD
from will_service.app.service.progress import REQUIRED_SECTIONS
from will_service.app.service.validation import beneficiary_total_errors

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class StepForm(WillBaseModel):
    def to_section_payload(self) -> Any:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class FullAddress(WillBaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    zip_code: str = Field(min_length=1)
    country: str = "United States"


class PersonalInfoForm(StepForm):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    date_of_birth: IsoDate
    email: str = Field(pattern=EMAIL_PATTERN)
    phone: Optional[str] = None
    address: FullAddress
    marital_status: str = Field(min_length=1)


class NamedPerson(WillBaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    relationship: str = Field(min_length=1)
    date_of_birth: Optional[IsoDate] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class SpouseEntry(WillBaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    date_of_birth: Optional[IsoDate] = None
    relationship: str = "spouse"


class ChildEntry(NamedPerson):
    relationship: str = Field(default="child", min_length=1)
    is_minor: bool = False

    @model_validator(mode="after")
    def derive_minor_status(self) -> "ChildEntry":
        self.is_minor = (
            self.date_of_birth is not None
            and calculate_age(self.date_of_birth) < MINOR_AGE_THRESHOLD
        )
        return self


class FamilyForm(StepForm):
    spouse: Optional[SpouseEntry] = None
    children: List[ChildEntry] = Field(default_factory=list)

    def to_section_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True, mode="json", exclude_none=True)
        payload.setdefault("spouse", None)
        return payload


class RealPropertyEntry(WillBaseModel):
    type: RealPropertyType
    description: str = Field(min_length=1)
    address: FullAddress
    estimated_value: Optional[float] = Field(default=None, ge=0)


class AssetsForm(StepForm):
    real_property: List[RealPropertyEntry] = Field(default_factory=list)
    personal_property: List[PersonalAsset] = Field(default_factory=list)


class BeneficiaryEntry(WillBaseModel):
    name: str = Field(min_length=1)
    relationship: str = Field(min_length=1)
    percentage: float = Field(ge=1, le=100)
    person_id: Optional[str] = None


class DistributionForm(StepForm):
    beneficiaries: List[BeneficiaryEntry] = Field(min_length=1)
    contingent_beneficiaries: List[BeneficiaryEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_totals(self) -> "DistributionForm":
        errors = beneficiary_total_errors(self.beneficiaries)
        if self.contingent_beneficiaries:
            errors += beneficiary_total_errors(self.contingent_beneficiaries, label="Contingent beneficiary")
        if errors:
            raise ValueError("; ".join(errors))
        return self


class ExecutorsForm(StepForm):
    executors: List[NamedPerson] = Field(min_length=1)
    guardians: List[NamedPerson] = Field(default_factory=list)


class ReviewSummary(WillBaseModel):
    testator_name: Optional[str] = None
    state_compliance: str
    spouse_name: Optional[str] = None
    children_count: int = 0
    minor_children_count: int = 0
    executor_names: List[str] = Field(default_factory=list)
    guardian_names: List[str] = Field(default_factory=list)
    real_property_count: int = 0
    personal_property_count: int = 0
    estimated_estate_value: float = 0
    beneficiaries: List[str] = Field(default_factory=list)
    completed_sections: List[str] = Field(default_factory=list)
    percent_complete: int = 0


class ReviewForm(StepForm):
    summary: ReviewSummary
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_will(cls, will: WillDB) -> "ReviewForm":
        sections = will.sections
        minors = [child for child in sections.children if child.is_minor]
        estate_value = sum(
            asset.estimated_value or 0
            for asset in [*sections.real_property, *sections.personal_property]
        )
        beneficiaries = sections.residual_estate.beneficiaries if sections.residual_estate else []

        summary = ReviewSummary(
            testator_name=sections.testator.full_name if sections.testator else None,
            state_compliance=will.state_compliance,
            spouse_name=sections.spouse.full_name if sections.spouse else None,
            children_count=len(sections.children),
            minor_children_count=len(minors),
            executor_names=[p.full_name for p in sections.executors],
            guardian_names=[p.full_name for p in sections.guardians],
            real_property_count=len(sections.real_property),
            personal_property_count=len(sections.personal_property),
            estimated_estate_value=estate_value,
            beneficiaries=[f"{b.name or b.person_id} ({b.percentage:g}%)" for b in beneficiaries],
            completed_sections=list(will.progress.completed_sections),
            percent_complete=will.progress.percent_complete,
        )

        warnings = [
            f"Section '{section}' is not complete."
            for section in REQUIRED_SECTIONS
            if section not in will.progress.completed_sections
        ]
        if minors and not sections.guardians:
            warnings.append(f"{len(minors)} minor child(ren) listed without a guardian.")
        if beneficiaries:
            warnings += beneficiary_total_errors(beneficiaries)
        if len(sections.executors) == 1:
            warnings.append("Only one executor named; consider adding an alternate.")
        return cls(summary=summary, warnings=warnings)

    def to_section_payload(self) -> None:
        # Review only reads the will.
        return None
