from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Tuple

class FeeTier(int, Enum):
    """Concentrated-liquidity pool fee, in hundredths of a basis point."""
    LOW = 500      # 0.05%
    MID = 3000     # 0.30%
    HIGH = 10000   # 1.00%

    @property
    def percent(self) -> float:
        return self.value / 10_000

class VenueKind(str, Enum):
    CONSTANT_PRODUCT = "CONSTANT_PRODUCT"
    CONCENTRATED = "CONCENTRATED"

@dataclass(frozen=True)
class Venue:
    name: str
    chain_id: int
    kind: VenueKind
    router: str
    wrapped_native: str
    quoter: str = ""
    fee_tiers: Tuple[FeeTier, ...] = (FeeTier.LOW, FeeTier.MID, FeeTier.HIGH)
    tokens: Dict[str, str] = field(default_factory=dict)
    public_rpc: str = ""

    def resolve_token(self, symbol_or_address: str) -> str:
        """Accepts a known symbol (case-insensitive) or passes an address through."""
        if symbol_or_address.startswith("0x"):
            return symbol_or_address
        key = symbol_or_address.upper()
        if key not in self.tokens:
            raise KeyError(f"Unknown token {symbol_or_address} on {self.name}. Known: {sorted(self.tokens)}")
        return self.tokens[key]

    def is_wrapped_native(self, token: str) -> bool:
        return token.lower() == self.wrapped_native.lower()


ARBITRUM_UNISWAP_V3 = Venue(
    name="Uniswap V3 (Arbitrum)",
    chain_id=42161,
    kind=VenueKind.CONCENTRATED,
    router="0x68b3465833fb72A70ecDF485E0e4C7bD8665Fc45",   # SwapRouter02
    quoter="0x61fFE014bA17989E743c5F6cB21bF9697530B21e",   # QuoterV2
    wrapped_native="0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
    public_rpc="https://arb1.arbitrum.io/rpc",
    tokens={
        "USDC": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        "WETH": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
        "ARB": "0x912CE59144191C1204E64559FE8253a0e49E6548",
        "WBTC": "0x2f2a2543B76A4166549F7aaB2e75Bef0aefC5B0f",
    },
)

POLYGON_QUICKSWAP_V2 = Venue(
    name="QuickSwap V2 (Polygon)",
    chain_id=137,
    kind=VenueKind.CONSTANT_PRODUCT,
    router="0xa5E0829CaCEd8fFDD4De3c43696c57F7D7A678ff",
    wrapped_native="0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270",
    public_rpc="https://polygon-rpc.com",
    fee_tiers=(),
    tokens={
        "USDT": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
        "WMATIC": "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270",
    },
)

VENUES: Dict[str, Venue] = {
    "arbitrum-uniswap-v3": ARBITRUM_UNISWAP_V3,
    "polygon-quickswap-v2": POLYGON_QUICKSWAP_V2,
}

def get_venue(key: str) -> Venue:
    if key not in VENUES:
        raise KeyError(f"Unknown venue {key}. Known: {sorted(VENUES)}")
    return VENUES[key]
