import httpx
import pytest

from core.errors import DexDataUnavailable
from integrations.dexscreener_client import DexScreenerClient
from integrations.dextools_client import DexToolsClient

PAIR = {
    "chainId": "solana",
    "pairAddress": "pair_1",
    "dexId": "raydium",
    "liquidity": {"usd": 80_000, "locked": False},
    "volume": {"h24": 20_000},
    "priceChange": {"h24": 12},
    "baseToken": {"address": "mint_1", "totalSupply": 5_000_000},
}


def _dexscreener(routes: dict, status_code: int = 200) -> DexScreenerClient:
    """DexScreener client answering `routes` (path -> JSON body); other paths 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in routes:
            return httpx.Response(status_code, json=routes[request.url.path])
        return httpx.Response(404, json={"error": "not found"})

    return DexScreenerClient(
        base_url="https://dexscreener.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _dextools(body, api_key="dt-key", seen=None) -> DexToolsClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(200, json=body)

    return DexToolsClient(
        api_key=api_key,
        base_url="https://dextools.test/v1",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


# ============================================================================
# CLIENTS
# ============================================================================

class TestDexScreenerClient:

    @pytest.mark.asyncio
    async def test_token_pairs(self):
        dex = _dexscreener({"/dex/tokens/mint_1": {"pairs": [PAIR]}})

        assert await dex.get_token_pairs("mint_1") == [PAIR]

    @pytest.mark.asyncio
    async def test_null_pairs_become_empty_list(self):
        dex = _dexscreener({"/dex/tokens/mint_1": {"pairs": None}})

        assert await dex.get_token_pairs("mint_1") == []

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        dex = _dexscreener({"/dex/tokens/mint_1": {}}, status_code=502)

        with pytest.raises(DexDataUnavailable, match="502"):
            await dex.fetch_token("mint_1")

    @pytest.mark.asyncio
    async def test_non_object_payload_raises(self):
        dex = _dexscreener({"/dex/tokens/mint_1": ["unexpected"]})

        with pytest.raises(DexDataUnavailable):
            await dex.fetch_token("mint_1")


class TestDexToolsClient:

    @pytest.mark.asyncio
    async def test_candle_request(self):
        seen = []
        dextools = _dextools({"data": [{"close": "1.5"}]}, seen=seen)

        candles = await dextools.fetch_candles("solana", "pair_1", start=100, end=200)

        assert candles == [{"close": "1.5"}]
        request = seen[0]
        assert request.url.path == "/v1/pair/solana/pair_1/candles"
        assert request.url.params["from"] == "100"
        assert request.url.params["to"] == "200"
        assert request.url.params["resolution"] == "5"
        assert request.headers["X-API-Key"] == "dt-key"

    @pytest.mark.asyncio
    async def test_unconfigured_client_refuses(self):
        dextools = _dextools({"data": []}, api_key=None)

        assert not dextools.configured
        with pytest.raises(DexDataUnavailable):
            await dextools.fetch_candles("solana", "pair_1", start=0, end=1)


# ============================================================================
# ROUTES
# ============================================================================

class TestTrustRoutes:

    def test_trust_for_token(self, client):
        client.app.state.dexscreener = _dexscreener({"/dex/tokens/mint_1": {"pairs": [PAIR]}})

        response = client.get("/api/trust", params={"tokenAddress": "mint_1", "network": "solana"})

        assert response.status_code == 200
        body = response.json()
        assert body["trustScore"] == "85%"
        assert body["rugPullRisk"] == "Low Risk"
        assert body["tokenInfo"]["supply"] == "5M"

    def test_path_form(self, client):
        client.app.state.dexscreener = _dexscreener({"/dex/tokens/mint_1": {"pairs": [PAIR]}})

        response = client.get("/api/trust/mint_1")

        assert response.json()["trustScore"] == "85%"

    def test_missing_token_address(self, client):
        response = client.get("/api/trust")

        assert response.status_code == 400
        assert response.json() == {"error": "Please provide a token address"}

    def test_upstream_failure_gives_placeholder(self, client):
        client.app.state.dexscreener = _dexscreener({})

        response = client.get("/api/trust", params={"tokenAddress": "mint_1"})

        assert response.status_code == 200
        body = response.json()
        assert body["trustScore"] == "N/A%"
        assert "tokenInfo" not in body


class TestDexScreenerRoutes:

    def test_pair_lookup_first(self, client):
        client.app.state.dexscreener = _dexscreener({"/dex/pairs/solana/pair_1": {"pairs": [PAIR]}})

        response = client.get("/api/dexscreener", params={"tokenAddress": "pair_1"})

        assert response.status_code == 200
        assert response.json()["pairs"][0]["dexId"] == "raydium"

    def test_falls_back_to_token_lookup(self, client):
        client.app.state.dexscreener = _dexscreener({
            "/dex/pairs/solana/mint_1": {"pairs": None},
            "/dex/tokens/mint_1": {"pairs": [PAIR]},
        })

        response = client.get("/api/dexscreener", params={"tokenAddress": "mint_1"})

        assert response.status_code == 200
        assert response.json()["pairs"][0]["pairAddress"] == "pair_1"

    def test_no_data_is_an_error(self, client):
        client.app.state.dexscreener = _dexscreener({
            "/dex/pairs/solana/mint_1": {"pairs": []},
            "/dex/tokens/mint_1": {"pairs": []},
        })

        response = client.get("/api/dexscreener", params={"tokenAddress": "mint_1"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to fetch data"

    def test_raw_token_payload(self, client):
        client.app.state.dexscreener = _dexscreener({"/dex/tokens/mint_1": {"schemaVersion": "1.0.0", "pairs": []}})

        response = client.get("/api/dexscreener/mint_1")

        assert response.status_code == 200
        assert response.json()["schemaVersion"] == "1.0.0"

    def test_raw_token_payload_failure(self, client):
        client.app.state.dexscreener = _dexscreener({})

        response = client.get("/api/dexscreener/mint_1")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch DEX data"}


class TestCandleHistory:

    def test_close_prices_with_pair_info(self, client):
        client.app.state.dexscreener = _dexscreener({"/dex/tokens/mint_1": {"pairs": [PAIR]}})
        client.app.state.dextools = _dextools({"data": [{"close": "1.5"}, {"close": 2}, {"open": 1}]})

        response = client.get("/api/dexscreener/history", params={"tokenAddress": "mint_1"})

        assert response.status_code == 200
        assert response.json() == {
            "prices": [1.5, 2.0],
            "pairInfo": {"address": "pair_1", "chain": "solana", "dex": "raydium"},
        }

    def test_without_api_key(self, client):
        response = client.get("/api/dexscreener/history", params={"tokenAddress": "mint_1"})

        assert response.status_code == 503

    def test_upstream_failure_gives_empty_series(self, client):
        client.app.state.dexscreener = _dexscreener({})
        client.app.state.dextools = _dextools({"data": []})

        response = client.get("/api/dexscreener/history", params={"tokenAddress": "mint_1"})

        assert response.status_code == 200
        assert response.json() == {"prices": []}


class TestPriceHistoryRoute:

    def test_generates_series(self, client):
        response = client.get("/api/price-history", params={"period": "1h", "price": 3.0, "h1": 5})

        assert response.status_code == 200
        points = response.json()["priceHistory"]
        assert len(points) == 61
        assert points[-1]["value"] == 3.0

    def test_non_numeric_price_is_rejected(self, client):
        response = client.get("/api/price-history", params={"price": "abc"})

        assert response.status_code == 400

    @pytest.mark.parametrize("params", [{"price": "nan"}, {"price": "1.0", "h24": "inf"}])
    def test_non_finite_numbers_are_rejected(self, client, params):
        response = client.get("/api/price-history", params=params)

        assert response.status_code == 400
        assert response.json()["details"] == "Invalid price data"
