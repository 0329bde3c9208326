"""
Server-side validation of section payloads.

The interview client checks the same rules before letting a user advance,
but those checks are advisory. Everything here runs inside the repository
before a write, so a payload that fails is rejected whole.
"""
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import ValidationError

from will_service.app.models.will_db import WillSections
from will_service.app.service.exceptions import WillValidationError

logger = logging.getLogger(__name__)

PERCENTAGE_TOLERANCE = 0.01

# Interview step id -> the section fields that step owns.
STEP_SECTION_FIELDS: Dict[str, List[str]] = {
    "personal-info": ["testator"],
    "family": ["spouse", "children"],
    "assets": ["real_property", "personal_property"],
    "distribution": ["residual_estate"],
    "executors": ["executors", "guardians"],
}

SECTION_FIELD_ALIASES: Dict[str, str] = {
    (field_info.alias or name): name for name, field_info in WillSections.model_fields.items()
}


def resolve_section_fields(section: str) -> Tuple[str, List[str]]:
    """
    Maps a section key to (canonical key, fields). Accepts an interview step id,
    a snake_case section field or its camelCase alias.
    """
    if section in STEP_SECTION_FIELDS:
        return section, STEP_SECTION_FIELDS[section]
    if section in WillSections.model_fields:
        return section, [section]
    if section in SECTION_FIELD_ALIASES:
        name = SECTION_FIELD_ALIASES[section]
        return name, [name]
    raise WillValidationError(f"Unknown section '{section}'.", {"section": [f"'{section}' is not a will section"]})


def _errors_from_pydantic(exc: ValidationError, prefix: str = "") -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        key = f"{prefix}{location}" if prefix else location
        errors.setdefault(key, []).append(error["msg"])
    return errors


def beneficiary_total_errors(beneficiaries: Iterable[Any], label: str = "Beneficiary") -> List[str]:
    percentages = []
    for beneficiary in beneficiaries:
        if isinstance(beneficiary, Mapping):
            percentages.append(beneficiary.get("percentage") or 0)
        else:
            percentages.append(getattr(beneficiary, "percentage", 0) or 0)
    total = sum(percentages)
    if abs(total - 100) > PERCENTAGE_TOLERANCE:
        return [f"{label} percentages must total 100% (currently {total:g}%)"]
    return []


def check_section_rules(sections: WillSections, fields: List[str]) -> Dict[str, List[str]]:
    """Business rules for the given fields of an already shape-validated WillSections."""
    errors: Dict[str, List[str]] = {}

    if "testator" in fields:
        testator = sections.testator
        if testator is None:
            errors["testator"] = ["Testator information is required"]
        elif testator.address is None or not testator.address.state:
            errors["testator.address.state"] = ["State is required"]

    if "residual_estate" in fields:
        estate = sections.residual_estate
        if estate is None or not estate.beneficiaries:
            errors["residual_estate.beneficiaries"] = ["At least one beneficiary is required"]
        else:
            total_errors = beneficiary_total_errors(estate.beneficiaries)
            if total_errors:
                errors["residual_estate.beneficiaries"] = total_errors
            if estate.contingent_beneficiaries:
                contingent_errors = beneficiary_total_errors(
                    estate.contingent_beneficiaries, label="Contingent beneficiary"
                )
                if contingent_errors:
                    errors["residual_estate.contingent_beneficiaries"] = contingent_errors

    if "executors" in fields and not sections.executors:
        errors["executors"] = ["At least one executor is required"]

    return errors


def validate_section_update(section: str, data: Any) -> Tuple[str, Dict[str, Any]]:
    """
    Validates a section payload and returns (canonical key, {field: validated value}).

    For a single-field section `data` is the value itself (the testator object for
    `personal-info`). For a multi-field step it is a mapping of the step's fields;
    fields left out are reset, since a section update replaces the whole section.
    """
    key, fields = resolve_section_fields(section)
    # `executors` is both a step id and a field; a bare list targets the field only.
    if key in fields and not isinstance(data, Mapping):
        fields = [key]

    if len(fields) == 1:
        partial = {fields[0]: data}
    else:
        if not isinstance(data, Mapping):
            raise WillValidationError(
                f"Section '{key}' expects an object with {', '.join(fields)}.",
                {key: ["Expected an object"]},
            )
        partial = {}
        for name in fields:
            alias = WillSections.model_fields[name].alias or name
            if name in data:
                partial[name] = data[name]
            elif alias in data:
                partial[name] = data[alias]

    try:
        validated = WillSections.model_validate(partial)
    except ValidationError as e:
        logger.warning(f"Section '{key}' payload failed schema validation: {e.error_count()} error(s)")
        raise WillValidationError(f"Invalid payload for section '{key}'.", _errors_from_pydantic(e))

    rule_errors = check_section_rules(validated, fields)
    if rule_errors:
        logger.warning(f"Section '{key}' payload failed business rules: {sorted(rule_errors)}")
        raise WillValidationError(f"Invalid payload for section '{key}'.", rule_errors)

    return key, {name: getattr(validated, name) for name in fields}
