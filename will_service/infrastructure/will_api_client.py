# HTTP client for the will API, used by the interview orchestrator
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import httpx
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from pydantic import ValidationError

from will_service.app.config import settings
from will_service.app.models import WillDB
from will_service.app.service.exceptions import WillApiError
from will_service.app.service.interfaces.will_client import AbstractWillClient

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


class WillApiClient(AbstractWillClient):
    def __init__(self, http_client: httpx.AsyncClient, user_id: str, base_url: Optional[str] = None):
        self.http_client = http_client
        self.user_id = user_id
        self.base_url = (base_url or settings.WILL_API_BASE_URL).rstrip("/")

    async def _request(self, method: str, path: str, json: Any = None) -> WillDB:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            response = await self.http_client.request(
                method, url, json=json, headers={USER_HEADER: self.user_id}
            )
            response.raise_for_status()
            return WillDB.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.error(f"Will API returned {e.response.status_code} for {method} {url}: {e.response.text}")
            raise WillApiError(_error_message(e.response), status_code=e.response.status_code) from e
        except httpx.RequestError as e:
            logger.error(f"Request error calling will API ({method} {url}): {e}", exc_info=True)
            raise WillApiError(f"Could not reach the will service: {e}") from e
        except ValidationError as e:
            logger.error(f"Will API sent a malformed will for {method} {url}: {e}")
            raise WillApiError("The will service returned an unexpected response.", status_code=response.status_code) from e
        except ValueError as e:
            logger.error(f"Will API sent a non-JSON body for {method} {url}: {e}")
            raise WillApiError("The will service returned an unreadable response.", status_code=response.status_code) from e

    async def create_will(self, state_compliance: str = "CA") -> WillDB:
        return await self._request("POST", "/wills", json={"stateCompliance": state_compliance})

    async def get_will(self, will_id: str) -> WillDB:
        return await self._request("GET", f"/wills/{will_id}")

    async def update_section(self, will_id: str, section: str, data: Any) -> WillDB:
        return await self._request("PUT", f"/wills/{will_id}/section", json={"section": section, "data": data})


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        detail = detail.get("message")
    return detail or f"Will service responded with status {response.status_code}"


@asynccontextmanager
async def open_will_client(user_id: str, base_url: Optional[str] = None) -> AsyncIterator[WillApiClient]:
    """Yields a client for one interview session over its own instrumented httpx client."""
    http_client = httpx.AsyncClient(timeout=settings.DEFAULT_HTTP_TIMEOUT)
    HTTPXClientInstrumentor.instrument_client(http_client)
    try:
        yield WillApiClient(http_client, user_id=user_id, base_url=base_url)
    finally:
        await http_client.aclose()
