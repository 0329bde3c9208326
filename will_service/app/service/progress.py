"""
Progress calculation for a will.

Derives which required interview sections are complete from the current
section contents. Pure and total: it never performs I/O and never raises,
so it can run before every persisted write and in tests without setup.
"""
from collections.abc import Mapping
from typing import Any, List

from pydantic import BaseModel

REQUIRED_SECTIONS = ["personal-info", "family", "executors", "assets", "distribution"]


class ProgressResult(BaseModel):
    completed_sections: List[str]
    percent_complete: int


def _field(container: Any, name: str, alias: str) -> Any:
    if isinstance(container, Mapping):
        if name in container:
            return container[name]
        return container.get(alias)
    return getattr(container, name, None)


def _is_present(value: Any) -> bool:
    if isinstance(value, BaseModel):
        return True
    return isinstance(value, Mapping) and len(value) > 0


def _has_items(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


def calculate_progress(sections: Any) -> ProgressResult:
    """Accepts a WillSections model or a raw mapping with snake_case or camelCase keys."""
    if sections is None:
        sections = {}

    completed: List[str] = []
    if _is_present(_field(sections, "testator", "testator")):
        completed.append("personal-info")
    if _has_items(_field(sections, "children", "children")) or _is_present(_field(sections, "spouse", "spouse")):
        completed.append("family")
    if _has_items(_field(sections, "executors", "executors")):
        completed.append("executors")
    if (_has_items(_field(sections, "real_property", "realProperty"))
            or _has_items(_field(sections, "personal_property", "personalProperty"))):
        completed.append("assets")
    residual_estate = _field(sections, "residual_estate", "residualEstate")
    if residual_estate is not None and _has_items(_field(residual_estate, "beneficiaries", "beneficiaries")):
        completed.append("distribution")

    percent_complete = round(len(completed) / len(REQUIRED_SECTIONS) * 100)
    return ProgressResult(completed_sections=completed, percent_complete=percent_complete)
