from abc import ABC, abstractmethod
from typing import Any

from will_service.app.models import WillDB


class AbstractWillClient(ABC):
    """What the interview orchestrator needs from the will API."""

    @abstractmethod
    async def create_will(self, state_compliance: str = "CA") -> WillDB:
        pass

    @abstractmethod
    async def get_will(self, will_id: str) -> WillDB:
        pass

    @abstractmethod
    async def update_section(self, will_id: str, section: str, data: Any) -> WillDB:
        """
        Replaces one section and returns the server's copy of the will,
        including the progress the server recomputed.
        """
        pass
