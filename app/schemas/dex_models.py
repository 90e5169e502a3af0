# schemas/dex_models.py
from pydantic import BaseModel, Field
from typing import List, Optional


class LiquidityHealth(BaseModel):
    value: str
    change: str


class TokenInfo(BaseModel):
    mint: str
    supply: str
    creator: str
    marketCap: str
    mintAuthority: str
    lpLocked: str


class TrustAnalysis(BaseModel):
    """
    Display-ready token risk summary. Every field is pre-formatted text.
    """
    trustScore: str = Field(..., description="Score from 0% to 100%, or N/A%")
    rugPullRisk: str
    volumeAnalysis: str
    holderDistribution: str
    growthPattern: str
    liquidityHealth: LiquidityHealth
    marketImpact: str
    marketCapTrend: str
    lastUpdated: str
    tokenInfo: Optional[TokenInfo] = None

    class Config:
        json_schema_extra = {
            "example": {
                "trustScore": "85%",
                "rugPullRisk": "Medium Risk",
                "volumeAnalysis": "$12,345",
                "holderDistribution": "0 holders",
                "growthPattern": "Steady Growth",
                "liquidityHealth": {"value": "$45,000", "change": "0%"},
                "marketImpact": "4.2%",
                "marketCapTrend": "$1,200,000",
                "lastUpdated": "2026-01-01T00:00:00+00:00",
                "tokenInfo": {
                    "mint": "79HZeHkX9A5WfBg72ankd1ppTXGepoSGpmkxW63wsrHY",
                    "supply": "1B",
                    "creator": "Unknown",
                    "marketCap": "$1,200,000",
                    "mintAuthority": "-",
                    "lpLocked": "0.00%"
                }
            }
        }


class PricePoint(BaseModel):
    time: int = Field(..., description="Unix timestamp in seconds")
    value: float


class PriceHistoryResponse(BaseModel):
    priceHistory: List[PricePoint]


class PairInfo(BaseModel):
    address: str
    chain: str
    dex: str


class CandleHistoryResponse(BaseModel):
    prices: List[float]
    pairInfo: Optional[PairInfo] = None
