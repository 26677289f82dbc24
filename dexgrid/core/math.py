import time
from decimal import Decimal
from typing import List, Optional

BPS_DENOMINATOR = 10_000
DEFAULT_DEADLINE_MINUTES = 20


class MathError(Exception):
    """Exception for core math and sizing errors."""
    pass

def build_grid(lower_price: float, upper_price: float, level_count: int) -> List[float]:
    """
    Builds an arithmetic grid of `level_count` price levels between the two
    bounds (inclusive), spaced (upper - lower) / (level_count - 1) apart.
    """
    if level_count < 2:
        raise MathError("Level count must be at least 2.")

    if lower_price <= 0:
        raise MathError("Lower price must be > 0.")

    if lower_price >= upper_price:
        raise MathError(f"Lower price ({lower_price}) must be less than upper price ({upper_price}).")

    step = calculate_price_step(lower_price, upper_price, level_count)

    levels = []
    for i in range(level_count):
        levels.append(lower_price + step * i)

    # Pin the bounds exactly so float drift never moves the top level
    levels[0] = lower_price
    levels[-1] = upper_price

    return levels

def calculate_price_step(lower_price: float, upper_price: float, level_count: int) -> float:
    if level_count < 2:
        raise MathError("Level count must be at least 2.")
    return (upper_price - lower_price) / (level_count - 1)

def allocate_investment(total_investment: int, level_count: int) -> List[int]:
    """
    Splits an integer investment into one allocation per level.
    Every level gets total // level_count; the remainder goes to the last level
    so the allocations always sum back to the total.
    """
    if total_investment <= 0:
        raise MathError("Total investment must be > 0.")
    if level_count < 2:
        raise MathError("Level count must be at least 2.")

    share, remainder = divmod(total_investment, level_count)
    allocations = [share] * level_count
    allocations[-1] += remainder
    return allocations

def calculate_amount_out_min(amount_out: int, slippage_bps: int) -> int:
    """floor(amount_out * (10000 - slippage_bps) / 10000), integer-only."""
    if not 0 <= slippage_bps <= BPS_DENOMINATOR:
        raise MathError(f"Slippage must be between 0 and {BPS_DENOMINATOR} bps, got {slippage_bps}.")
    if amount_out < 0:
        raise MathError("Quoted amount out must be >= 0.")
    return amount_out * (BPS_DENOMINATOR - slippage_bps) // BPS_DENOMINATOR

def slippage_percent_to_bps(slippage_percent: float) -> int:
    """E.g., 0.5 -> 50 bps. Rounded down to a whole basis point."""
    bps = int(Decimal(str(slippage_percent)) * 100)
    if not 0 <= bps <= BPS_DENOMINATOR:
        raise MathError(f"Slippage percent must be between 0 and 100, got {slippage_percent}.")
    return bps

def calculate_deadline(minutes: int = DEFAULT_DEADLINE_MINUTES, now: Optional[float] = None) -> int:
    """Unix timestamp `minutes` from now, as routers expect it."""
    if minutes <= 0:
        raise MathError("Deadline must be at least one minute out.")
    if now is None:
        now = time.time()
    return int(now) + minutes * 60

def to_base_units(amount, decimals: int) -> int:
    """
    Converts a human amount to integer token units.
    E.g., to_base_units("1.5", 6) -> 1500000
    """
    if decimals < 0:
        raise MathError("Decimals must be >= 0.")
    return int(Decimal(str(amount)) * (Decimal(10) ** decimals))

def from_base_units(amount: int, decimals: int) -> Decimal:
    """Inverse of to_base_units, exact."""
    if decimals < 0:
        raise MathError("Decimals must be >= 0.")
    return Decimal(amount) / (Decimal(10) ** decimals)
