# Sequences the interview steps and talks to the will API through a client
import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from will_service.app.models import WillDB
from will_service.app.service.exceptions import BaseWillServiceError
from will_service.app.service.interfaces.will_client import AbstractWillClient

logger = logging.getLogger(__name__)

STEPS: List[str] = ["personal-info", "family", "assets", "distribution", "executors", "review"]

DASHBOARD_PATH = "/dashboard"
LOAD_ERROR_MESSAGE = "Error loading will. Please try again or contact support."
SAVE_ERROR_MESSAGE = "Save failed. Please try again."


def interview_path(will_id: str, step: str) -> str:
    return f"/interview/{will_id}?step={step}"


def _get(data: Any, *keys: str) -> Any:
    if not isinstance(data, Mapping):
        return None
    for key in keys:
        if key in data:
            return data[key]
    return None


class InterviewOrchestrator:
    """
    Client-side controller for the six-step interview.

    Holds the will as last returned by the server, the current step and any
    inline error. `redirect_to` is set whenever the UI should navigate.
    Nothing here raises to the caller: failures become `error` and the user
    stays where they were with their input kept in `pending_input`.
    """

    def __init__(self, client: AbstractWillClient, step: Optional[str] = None):
        self.client = client
        self.will: Optional[WillDB] = None
        self.will_id: Optional[str] = None
        self.step_index = STEPS.index(step) if step in STEPS else 0
        self.error: Optional[str] = None
        self.redirect_to: Optional[str] = None
        self.pending_input: Dict[str, Any] = {}
        self.is_loading = False
        self.is_saving = False

    @property
    def current_step(self) -> str:
        return STEPS[self.step_index]

    @property
    def completed_step_numbers(self) -> List[int]:
        """1-based step numbers the server reports complete, for the progress bar."""
        if self.will is None:
            return []
        return [STEPS.index(s) + 1 for s in self.will.progress.completed_sections if s in STEPS]

    def go_to_step(self, step: str) -> None:
        if step not in STEPS:
            self.error = f"Step '{step}' could not be found."
            self.redirect_to = DASHBOARD_PATH
            return
        self.step_index = STEPS.index(step)
        if self.will_id:
            self.redirect_to = interview_path(self.will_id, step)

    async def load_will_data(self, will_id: str) -> Optional[WillDB]:
        self.is_loading = True
        self.error = None
        try:
            if will_id == "new":
                will = await self.client.create_will()
                self.will, self.will_id = will, will.id
                self.step_index = 0
                self.redirect_to = interview_path(will.id, STEPS[0])
                logger.info(f"Started interview for new will {will.id}")
                return will

            self.will = await self.client.get_will(will_id)
            self.will_id = will_id
            return self.will
        except BaseWillServiceError as e:
            logger.error(f"Error loading will {will_id}: {e}")
            self.error = LOAD_ERROR_MESSAGE
            self.redirect_to = DASHBOARD_PATH
            return None
        finally:
            self.is_loading = False

    async def save_will_data(self, section_data: Any, section_id: str) -> bool:
        """Persists one section. Local state is replaced by the server's copy, never computed here."""
        if self.will_id is None:
            self.error = SAVE_ERROR_MESSAGE
            return False
        self.is_saving = True
        try:
            self.will = await self.client.update_section(self.will_id, section_id, section_data)
            self.error = None
            self.pending_input.pop(section_id, None)
            return True
        except BaseWillServiceError as e:
            logger.error(f"Error saving section '{section_id}' of will {self.will_id}: {e}")
            self.error = f"{SAVE_ERROR_MESSAGE} ({e})"
            return False
        finally:
            self.is_saving = False

    async def handle_next(self, step_data: Any = None) -> bool:
        """Saves the current step and advances. Returns whether the step changed."""
        step = self.current_step
        payload = step_data.to_section_payload() if hasattr(step_data, "to_section_payload") else step_data
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(by_alias=True, mode="json")
        self.pending_input[step] = payload

        if not self.can_proceed(payload):
            self.error = "Please complete the required fields before continuing."
            return False

        if step != "review":
            if not await self.save_will_data(payload, step):
                return False
        else:
            self.pending_input.pop(step, None)

        next_index = self.step_index + 1
        if next_index >= len(STEPS):
            return False
        self.go_to_step(STEPS[next_index])
        return True

    def handle_back(self) -> bool:
        if self.step_index == 0:
            return False
        self.error = None
        self.go_to_step(STEPS[self.step_index - 1])
        return True

    def can_proceed(self, step_data: Any) -> bool:
        """Advisory gate for the Next button. The API re-checks the same rules."""
        step = self.current_step
        if step == "personal-info":
            address = _get(step_data, "address")
            return bool(
                _get(step_data, "firstName", "first_name")
                and _get(step_data, "lastName", "last_name")
                and _get(address, "state")
            )
        if step == "distribution":
            return bool(_get(step_data, "beneficiaries"))
        if step == "executors":
            return bool(_get(step_data, "executors"))
        return step in ("family", "assets", "review")
