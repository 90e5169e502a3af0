# app/integrations/dextools_client.py
from typing import Any, Dict, List, Optional

import httpx

from core.config import settings
from core.errors import DexDataUnavailable
from core.logger import logger


class DexToolsClient:
    """Candle history from the DexTools API (requires an API key)."""

    def __init__(
        self,
        api_key: Optional[str] = settings.DEXTOOLS_API_KEY,
        base_url: str = settings.DEXTOOLS_BASE_URL,
        timeout: float = settings.DEX_HTTP_TIMEOUT_SECS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def fetch_candles(
        self,
        chain_id: str,
        pair_address: str,
        start: int,
        end: int,
        resolution: int = 5,
    ) -> List[Dict[str, Any]]:
        """
        Candles for a pair between two unix timestamps.
        """
        if not self.configured:
            raise DexDataUnavailable("DEXTOOLS_API_KEY is not configured")

        url = f"{self.base_url}/pair/{chain_id}/{pair_address}/candles"
        params = {"from": start, "to": end, "resolution": resolution}
        try:
            response = await self._http.get(url, params=params, headers={"X-API-Key": self.api_key})
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"DexTools candle request failed for {chain_id}/{pair_address}: {e}")
            raise DexDataUnavailable(f"DexTools request failed: {e}") from e

        if not isinstance(data, dict):
            return []
        return data.get("data") or []

    async def close(self) -> None:
        await self._http.aclose()
