from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from dataclasses import dataclass

from dexgrid.dex.venues import FeeTier, Venue

@dataclass(frozen=True)
class TxReceipt:
    transaction_id: str
    success: bool
    gas_used: int
    effective_gas_price: int

@dataclass(frozen=True)
class SwapOrder:
    """A fully-resolved swap, ready to be encoded for the venue's router."""
    route: Tuple[str, ...]
    fee_tier: Optional[FeeTier]
    amount_in: int
    amount_out_min: int
    recipient: str
    deadline: int
    native_in: bool = False
    native_out: bool = False

class ChainError(Exception):
    """Base exception for all RPC, network and contract-call errors."""
    pass

class ChainTimeoutError(ChainError):
    """A request or receipt wait exceeded its timeout. Safe to retry next tick."""
    pass

class ChainInterface(ABC):
    """
    Minimal on-chain surface the swap layer needs: ERC-20 reads, router
    quotes, approve, swap submission and receipt confirmation.
    """

    @abstractmethod
    def get_chain_id(self) -> int:
        pass

    @abstractmethod
    def get_decimals(self, token: str) -> int:
        """ERC-20 decimals()."""
        pass

    @abstractmethod
    def get_balance(self, token: str, owner: str) -> int:
        """ERC-20 balanceOf(owner), in base units."""
        pass

    @abstractmethod
    def get_allowance(self, token: str, owner: str, spender: str) -> int:
        pass

    @abstractmethod
    def quote_exact_input_single(self, venue: Venue, token_in: str, token_out: str, fee_tier: FeeTier, amount_in: int) -> int:
        """
        Simulated output of a single-pool swap on a concentrated-liquidity venue.
        Raises ChainError when the pool does not exist or the quoter reverts.
        """
        pass

    @abstractmethod
    def get_amounts_out(self, venue: Venue, amount_in: int, path: List[str]) -> List[int]:
        """Constant-product router getAmountsOut along `path`."""
        pass

    @abstractmethod
    def approve(self, token: str, spender: str, amount: int, owner: str) -> str:
        """
        Submit approve(spender, amount) from owner.
        Returns the transaction hash without waiting for it.
        """
        pass

    @abstractmethod
    def submit_swap(self, venue: Venue, order: SwapOrder, sender: str) -> str:
        """Encode and submit `order` to the venue router. Returns the transaction hash."""
        pass

    @abstractmethod
    def wait_for_receipt(self, transaction_id: str, timeout: Optional[float] = None) -> TxReceipt:
        """Block until mined. Raises ChainTimeoutError on expiry."""
        pass
