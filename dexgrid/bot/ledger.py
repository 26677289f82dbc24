from dataclasses import dataclass
from typing import Optional

from dexgrid.bot.state import GridBotState

@dataclass(frozen=True)
class PnL:
    profit: int      # total_profit - gas_costs (mixed units: quote token minus native wei)
    trades: int
    gas_costs: int   # native wei

class TradeLedger:
    """Read-only aggregation over a bot's recorded trades."""

    def __init__(self, state: Optional[GridBotState]):
        self.state = state

    def gas_costs(self) -> int:
        if self.state is None:
            return 0
        return sum(trade.gas_cost for trade in self.state.trades)

    def get_total_pnl(self) -> PnL:
        if self.state is None:
            return PnL(profit=0, trades=0, gas_costs=0)

        gas_costs = self.gas_costs()
        return PnL(
            profit=self.state.total_profit - gas_costs,
            trades=self.state.trades_executed,
            gas_costs=gas_costs,
        )
