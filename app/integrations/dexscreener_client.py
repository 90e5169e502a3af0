# app/integrations/dexscreener_client.py
from typing import Any, Dict, List, Optional

import httpx

from core.config import settings
from core.errors import DexDataUnavailable
from core.logger import logger


class DexScreenerClient:
    """
    Thin async wrapper over the public DexScreener API.
    Payloads are returned as parsed JSON; callers shape them.
    """

    def __init__(
        self,
        base_url: str = settings.DEXSCREENER_BASE_URL,
        timeout: float = settings.DEX_HTTP_TIMEOUT_SECS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def _get_json(self, path: str) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self._http.get(url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"DexScreener returned {e.response.status_code} for {path}")
            raise DexDataUnavailable(f"DexScreener API returned status {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"DexScreener request failed for {path}: {e}")
            raise DexDataUnavailable(f"DexScreener request failed: {e}") from e

        if not isinstance(data, dict):
            raise DexDataUnavailable("DexScreener returned an unexpected payload")
        return data

    async def fetch_token(self, token_address: str) -> Dict[str, Any]:
        """Raw /dex/tokens/{address} payload."""
        return await self._get_json(f"/dex/tokens/{token_address}")

    async def fetch_pair(self, chain_id: str, pair_address: str) -> Dict[str, Any]:
        """Raw /dex/pairs/{chain}/{pair} payload."""
        return await self._get_json(f"/dex/pairs/{chain_id}/{pair_address}")

    async def get_token_pairs(self, token_address: str) -> List[Dict[str, Any]]:
        """Trading pairs for a token, most liquid first as DexScreener orders them."""
        data = await self.fetch_token(token_address)
        return data.get("pairs") or []

    async def close(self) -> None:
        await self._http.aclose()
