from dataclasses import dataclass
from typing import Optional, Tuple

from dexgrid.dex.venues import FeeTier

PLACEHOLDER_PRICE_IMPACT = 0.3

@dataclass(frozen=True)
class SwapQuote:
    amount_out: int
    route: Tuple[str, ...]
    fee_tier: Optional[FeeTier]
    router_address: str
    price_impact_estimate: float = PLACEHOLDER_PRICE_IMPACT

@dataclass(frozen=True)
class SwapRequest:
    token_in: str
    token_out: str
    amount_in: int
    slippage_bps: int
    recipient: str

@dataclass(frozen=True)
class SwapResult:
    # amount_out is the pre-trade quote, not the settled amount
    transaction_id: str
    token_in: str
    token_out: str
    amount_in: int
    amount_out: int
    gas_used: int
    effective_gas_price: int

    @property
    def gas_cost(self) -> int:
        return self.gas_used * self.effective_gas_price
