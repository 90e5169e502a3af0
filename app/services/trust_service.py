# services/trust_service.py
"""
Token trust summary built from a DexScreener pair.

This is presentation logic: rough risk bands and formatted strings for the
terminal UI. The only hard rule is that the trust score stays within 0..100.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from schemas.dex_models import LiquidityHealth, TokenInfo, TrustAnalysis


def _num(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _section(pair: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = pair.get(key)
    return value if isinstance(value, dict) else {}


def format_usd(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def format_percent(value: float) -> str:
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return f"{text}%"


def format_supply(supply: Any) -> str:
    amount = _num(supply)
    if not amount:
        return "Unknown"
    if amount >= 1e9:
        return f"{amount / 1e9:.0f}B"
    if amount >= 1e6:
        return f"{amount / 1e6:.0f}M"
    if amount >= 1e3:
        return f"{amount / 1e3:.0f}K"
    return f"{amount:g}"


def trust_score(pair: Dict[str, Any]) -> int:
    liquidity = _section(pair, "liquidity")
    score = 100
    if _num(liquidity.get("usd")) < 10_000:
        score -= 30
    if _num(_section(pair, "volume").get("h24")) < 1_000:
        score -= 20
    if abs(_num(_section(pair, "priceChange").get("h24"))) > 30:
        score -= 20
    if not liquidity.get("locked"):
        score -= 15
    return max(0, min(100, score))


def risk_level(pair: Dict[str, Any]) -> str:
    liquidity = _num(_section(pair, "liquidity").get("usd"))
    price_change = abs(_num(_section(pair, "priceChange").get("h24")))
    volume = _num(_section(pair, "volume").get("h24"))

    if liquidity < 10_000 or price_change > 50 or volume < 1_000:
        return "HIGH RISK"
    if liquidity < 50_000 or price_change > 20 or volume < 5_000:
        return "Medium Risk"
    return "Low Risk"


def growth_pattern(pair: Dict[str, Any]) -> str:
    volume_change = _num(_section(pair, "volume").get("h24ChangePercent"))
    price_change = _num(_section(pair, "priceChange").get("h24"))

    if volume_change > 20 and price_change > 0:
        return "Rapid Growth"
    if volume_change > 0 and price_change > 0:
        return "Steady Growth"
    if volume_change < 0 or price_change < 0:
        return "Declining"
    return "Volatile"


def select_pair(pairs: List[Dict[str, Any]], network: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """First pair, preferring one on `network` (DexScreener chainId) when given."""
    if not pairs:
        return None
    if network:
        for pair in pairs:
            if str(pair.get("chainId", "")).lower() == network.lower():
                return pair
    return pairs[0]


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def build_trust_analysis(
    pairs: List[Dict[str, Any]],
    token_address: str,
    network: Optional[str] = None
) -> TrustAnalysis:
    pair = select_pair(pairs, network)
    if pair is None:
        return unavailable_trust_analysis()

    liquidity = _section(pair, "liquidity")
    base_token = _section(pair, "baseToken")
    market_cap = format_usd(_num(pair.get("marketCap")))

    return TrustAnalysis(
        trustScore=f"{trust_score(pair)}%",
        rugPullRisk=risk_level(pair),
        volumeAnalysis=format_usd(_num(_section(pair, "volume").get("h24"))),
        holderDistribution=f"{int(_num(pair.get('holders')))} holders",
        growthPattern=growth_pattern(pair),
        marketImpact=format_percent(_num(_section(pair, "priceChange").get("h24"))),
        marketCapTrend=market_cap,
        liquidityHealth=LiquidityHealth(
            value=format_usd(_num(liquidity.get("usd"))),
            change=format_percent(_num(liquidity.get("h24ChangePercent"))),
        ),
        lastUpdated=_timestamp(),
        tokenInfo=TokenInfo(
            mint=base_token.get("address") or token_address,
            supply=format_supply(base_token.get("totalSupply")),
            creator=base_token.get("creator") or "Unknown",
            marketCap=market_cap,
            mintAuthority=base_token.get("mintAuthority") or "-",
            lpLocked="100.00%" if liquidity.get("locked") else "0.00%",
        ),
    )


def unavailable_trust_analysis() -> TrustAnalysis:
    return TrustAnalysis(
        trustScore="N/A%",
        rugPullRisk="Unknown",
        volumeAnalysis="N/A",
        holderDistribution="N/A",
        growthPattern="Unknown",
        marketImpact="N/A",
        marketCapTrend="N/A",
        liquidityHealth=LiquidityHealth(value="N/A", change="N/A"),
        lastUpdated=_timestamp(),
    )
