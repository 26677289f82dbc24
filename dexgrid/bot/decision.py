import logging
from typing import List, Optional

from dexgrid.bot.state import GridBotConfig, GridBotState, GridLevel, GridSide, TradeRecord
from dexgrid.core.math import allocate_investment, build_grid
from dexgrid.dex.models import SwapResult

logger = logging.getLogger(__name__)

def build_levels(config: GridBotConfig) -> List[GridLevel]:
    """
    Evenly spaced ladder from lower to upper price. The lower half
    (index < level_count // 2) starts as buys, the rest as sells.
    """
    prices = build_grid(config.lower_price, config.upper_price, config.level_count)
    allocations = allocate_investment(config.total_investment, config.level_count)
    split = config.level_count // 2

    return [
        GridLevel(
            price=price,
            side=GridSide.BUY if i < split else GridSide.SELL,
            allocated_amount=amount,
        )
        for i, (price, amount) in enumerate(zip(prices, allocations))
    ]

def create_state(config: GridBotConfig, now: Optional[float] = None) -> GridBotState:
    return GridBotState(
        config=config,
        levels=build_levels(config),
        running=False,
        total_invested=config.total_investment,
        last_check_time=now,
    )

def is_level_due(level: GridLevel, current_price: float) -> bool:
    if level.filled:
        return False
    if level.side == GridSide.BUY:
        return current_price <= level.price
    return current_price >= level.price

def find_due_levels(levels: List[GridLevel], current_price: float) -> List[int]:
    """Indices of due levels, in ascending order."""
    return [i for i, level in enumerate(levels) if is_level_due(level, current_price)]

def find_matching_buy(levels: List[GridLevel], sell_index: int) -> Optional[int]:
    """
    Open buy to pair with a sell fill: the highest-priced holding level
    strictly below the sell level's price.
    """
    sell_price = levels[sell_index].price
    best = None
    for i, level in enumerate(levels):
        if not level.holding or level.price >= sell_price:
            continue
        if best is None or level.price > levels[best].price:
            best = i
    return best

def flip_level(level: GridLevel):
    """Re-arms a filled level on the opposite side."""
    level.side = level.side.flipped()
    level.filled = False

def record_trade(state: GridBotState, trade: TradeRecord):
    state.trades.append(trade)
    state.trades_executed += 1

def apply_fill(state: GridBotState, index: int, result: SwapResult, price: float, now: float) -> TradeRecord:
    """Mutates state for a confirmed fill of level `index` and returns the recorded trade."""
    level = state.levels[index]
    side = level.side

    level.filled = True
    level.last_tx_id = result.transaction_id
    level.filled_at = now

    profit = None
    if side == GridSide.SELL:
        # A level selling back its own buy settles that buy first
        match = index if level.holding else find_matching_buy(state.levels, index)
        if match is not None:
            profit = result.amount_out - level.allocated_amount
            state.levels[match].holding = False
            state.total_profit += profit
            logger.info(f"Sell at level {index} matched buy at level {match}: profit {profit}")
    else:
        level.holding = True

    trade = TradeRecord(
        time=now,
        side=side,
        price=price,
        amount_in=result.amount_in,
        amount_out=result.amount_out,
        transaction_id=result.transaction_id,
        gas_cost=result.gas_cost,
        profit=profit,
        level_index=index,
    )
    record_trade(state, trade)
    flip_level(level)

    return trade
