"""Client for the first-party RED Atlas admin API."""

from typing import Any, Optional

import httpx

from ..config import Settings
from .errors import UpstreamFetchError


class AtlasClient:
    """Reads the aggregate dashboard document from the Atlas API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.settings.x_admin_key)

    async def dashboard(self) -> Any:
        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.get(
                    self.settings.atlas_api_url,
                    headers={"x-admin-key": self.settings.x_admin_key},
                    timeout=self.settings.atlas_timeout,
                )
            except httpx.HTTPError as exc:
                raise UpstreamFetchError(f"Atlas API request failed: {exc}") from exc

        if not response.is_success:
            raise UpstreamFetchError(f"Atlas API returned HTTP {response.status_code}")
        return response.json()
