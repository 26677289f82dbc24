from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional

from dexgrid.core.config import ConfigError
from dexgrid.core.math import BPS_DENOMINATOR

class GridSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    def flipped(self) -> "GridSide":
        return GridSide.SELL if self == GridSide.BUY else GridSide.BUY

@dataclass(frozen=True)
class GridBotConfig:
    base_token: str
    quote_token: str
    upper_price: float
    lower_price: float
    level_count: int
    total_investment: int
    slippage_bps: int = 50

    def __post_init__(self):
        if self.level_count < 2:
            raise ConfigError("Level count must be >= 2.")
        if self.lower_price <= 0:
            raise ConfigError("Lower price must be > 0.")
        if self.lower_price >= self.upper_price:
            raise ConfigError(f"lower_price ({self.lower_price}) must be < upper_price ({self.upper_price})")
        if self.total_investment <= 0:
            raise ConfigError("Total investment must be > 0.")
        if not 0 <= self.slippage_bps <= BPS_DENOMINATOR:
            raise ConfigError(f"Slippage must be between 0 and {BPS_DENOMINATOR} bps.")
        if self.base_token.lower() == self.quote_token.lower():
            raise ConfigError("Base and quote token must differ.")

@dataclass
class GridLevel:
    price: float
    side: GridSide
    allocated_amount: int
    filled: bool = False
    last_tx_id: Optional[str] = None
    filled_at: Optional[float] = None
    # A buy fill on this level that no sell has been matched against yet
    holding: bool = False

@dataclass(frozen=True)
class TradeRecord:
    time: float
    side: GridSide
    price: float
    amount_in: int
    amount_out: int
    transaction_id: str
    gas_cost: int
    profit: Optional[int] = None
    level_index: Optional[int] = None

@dataclass
class GridBotState:
    config: GridBotConfig
    levels: List[GridLevel]
    running: bool = False
    total_invested: int = 0
    total_profit: int = 0
    trades_executed: int = 0
    last_check_time: Optional[float] = None
    trades: List[TradeRecord] = field(default_factory=list)
