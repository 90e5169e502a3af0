# routers/dex_router.py
"""
FastAPI Router for DEX market data (DexScreener / DexTools proxies)
"""

import time
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from core.config import settings
from core.errors import DexDataUnavailable
from core.logger import logger
from integrations.dexscreener_client import DexScreenerClient
from integrations.dextools_client import DexToolsClient
from schemas.dex_models import (
    CandleHistoryResponse,
    PairInfo,
    PriceHistoryResponse,
    TrustAnalysis,
)
from services.price_history_service import generate_price_history
from services.trust_service import build_trust_analysis, select_pair, unavailable_trust_analysis


router = APIRouter(
    prefix=settings.API_PREFIX,
    tags=["Market Data"],
    responses={
        400: {"description": "Invalid request"},
        500: {"description": "Upstream or internal error"}
    }
)


def get_dexscreener(request: Request) -> DexScreenerClient:
    return request.app.state.dexscreener


def get_dextools(request: Request) -> DexToolsClient:
    return request.app.state.dextools


# ============================================================================
# TRUST ANALYSIS
# ============================================================================

async def _trust_analysis(
    dex: DexScreenerClient,
    token_address: str,
    network: Optional[str]
) -> TrustAnalysis:
    try:
        pairs = await dex.get_token_pairs(token_address)
    except DexDataUnavailable as e:
        logger.error(f"Trust analysis unavailable for {token_address}: {e}")
        return unavailable_trust_analysis()
    return build_trust_analysis(pairs, token_address, network)


@router.get(
    "/trust",
    response_model=TrustAnalysis,
    response_model_exclude_none=True,
    summary="Token trust analysis"
)
async def trust_analysis(
    tokenAddress: Optional[str] = Query(None),
    network: Optional[str] = Query(None, description="DexScreener chain id, e.g. solana"),
    dex: DexScreenerClient = Depends(get_dexscreener)
):
    if not tokenAddress or not tokenAddress.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Please provide a token address"}
        )
    return await _trust_analysis(dex, tokenAddress.strip(), network)


@router.get(
    "/trust/{token}",
    response_model=TrustAnalysis,
    response_model_exclude_none=True,
    summary="Token trust analysis (path form)"
)
async def trust_analysis_for_token(
    token: str,
    network: Optional[str] = Query(None),
    dex: DexScreenerClient = Depends(get_dexscreener)
):
    return await _trust_analysis(dex, token, network)


# ============================================================================
# DEXSCREENER PROXIES
# ============================================================================

@router.get("/dexscreener", summary="Pair data for the configured or given token")
async def dexscreener_data(
    tokenAddress: Optional[str] = Query(None),
    chainId: Optional[str] = Query(None),
    dex: DexScreenerClient = Depends(get_dexscreener)
):
    """
    Looks the address up as a pair first and falls back to a token lookup.
    """
    address = tokenAddress or settings.DEFAULT_TOKEN_ADDRESS
    chain = chainId or settings.DEFAULT_CHAIN_ID

    try:
        data = await dex.fetch_pair(chain, address)
        if data.get("pairs"):
            return data

        data = await dex.fetch_token(address)
        if data.get("pairs"):
            return data

        message = "No trading data found for this token/pair"
    except DexDataUnavailable as e:
        message = str(e)

    logger.error(f"Error fetching DexScreener data for {address}: {message}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Failed to fetch data", "message": message}
    )


@router.get(
    "/dexscreener/history",
    response_model=CandleHistoryResponse,
    response_model_exclude_none=True,
    summary="Recent close prices from DexTools candles"
)
async def dexscreener_history(
    tokenAddress: Optional[str] = Query(None),
    dex: DexScreenerClient = Depends(get_dexscreener),
    dextools: DexToolsClient = Depends(get_dextools)
):
    if not tokenAddress or not tokenAddress.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Please provide a token address"}
        )
    if not dextools.configured:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": "DEXTOOLS_API_KEY is not configured"}
        )

    try:
        pair = select_pair(await dex.get_token_pairs(tokenAddress.strip()))
        if pair is None:
            return CandleHistoryResponse(prices=[])

        now = int(time.time())
        candles = await dextools.fetch_candles(
            pair.get("chainId", ""),
            pair.get("pairAddress", ""),
            start=now - 24 * 60 * 60,
            end=now,
        )
    except DexDataUnavailable as e:
        logger.error(f"Error fetching price history for {tokenAddress}: {e}")
        return CandleHistoryResponse(prices=[])

    prices = []
    for candle in candles:
        try:
            prices.append(float(candle["close"]))
        except (KeyError, TypeError, ValueError):
            continue

    return CandleHistoryResponse(
        prices=prices,
        pairInfo=PairInfo(
            address=pair.get("pairAddress", ""),
            chain=pair.get("chainId", ""),
            dex=pair.get("dexId", "")
        )
    )


@router.get("/dexscreener/{token}", summary="Raw DexScreener token payload")
async def dexscreener_token(
    token: str,
    dex: DexScreenerClient = Depends(get_dexscreener)
):
    try:
        return await dex.fetch_token(token)
    except DexDataUnavailable as e:
        logger.error(f"Failed to fetch DEX data for {token}: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch DEX data"}
        )


# ============================================================================
# SYNTHETIC PRICE HISTORY
# ============================================================================

@router.get(
    "/price-history",
    response_model=PriceHistoryResponse,
    summary="Illustrative price series ending at the current price"
)
async def price_history(
    period: str = Query("24h", description="1h, 24h or 7d"),
    price: float = Query(0.0),
    h1: float = Query(0.0),
    h24: float = Query(0.0),
    d7: float = Query(0.0)
):
    try:
        points = generate_price_history(price, h1, h24, d7, period=period)
    except ValueError as e:
        # float query params accept "nan" and "inf"; the generator refuses them
        logger.warning(f"Rejected price history input: {e}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Failed to generate price history", "details": str(e)}
        )
    return PriceHistoryResponse(priceHistory=points)
