import logging
from decimal import Decimal, ROUND_FLOOR
from typing import Dict, List, Optional, Tuple

from dexgrid.chain.base import ChainInterface, ChainError, SwapOrder, TxReceipt
from dexgrid.dex.venues import FeeTier, Venue

logger = logging.getLogger(__name__)

class MockChain(ChainInterface):
    """
    A purely deterministic in-memory chain for unit tests and offline dry-runs.
    Pools are exchange rates per (token_in, token_out, fee_tier); constant-product
    pairs use fee_tier None.
    """
    def __init__(self, chain_id: int = 42161, gas_used: int = 150_000, gas_price: int = 10**8):
        self._chain_id = chain_id
        self._gas_used = gas_used
        self._gas_price = gas_price
        self._decimals: Dict[str, int] = {}
        self._balances: Dict[Tuple[str, str], int] = {}
        self._allowances: Dict[Tuple[str, str, str], int] = {}
        self._rates: Dict[Tuple[str, str, Optional[int]], Decimal] = {}
        self._receipts: Dict[str, TxReceipt] = {}
        self._fail_next: Dict[str, int] = {}
        self._tx_counter = 0
        self.offline = False
        # Every submitted write, in order: ("approve", {...}) / ("swap", {...})
        self.transactions: List[Tuple[str, dict]] = []

    def add_token(self, token: str, decimals: int):
        self._decimals[token.lower()] = decimals

    def set_balance(self, token: str, owner: str, amount: int):
        self._balances[(token.lower(), owner.lower())] = amount

    def set_allowance(self, token: str, owner: str, spender: str, amount: int):
        self._allowances[(token.lower(), owner.lower(), spender.lower())] = amount

    def set_rate(self, token_in: str, token_out: str, rate: float, fee_tier: Optional[FeeTier] = None):
        """
        Human price of one token_in in token_out for a pool.
        Helper to advance simulated price, or to add a pool.
        """
        key = (token_in.lower(), token_out.lower(), int(fee_tier) if fee_tier is not None else None)
        self._rates[key] = Decimal(str(rate))

    def set_price(self, base: str, quote: str, price: float, fee_tier: Optional[FeeTier] = None):
        """Sets both directions of a pool from a base/quote price."""
        self.set_rate(base, quote, price, fee_tier)
        self.set_rate(quote, base, 1 / Decimal(str(price)), fee_tier)

    def fail_next(self, kind: str, count: int = 1):
        """Next `count` transactions of `kind` ('approve' or 'swap') are mined reverted."""
        self._fail_next[kind] = self._fail_next.get(kind, 0) + count

    def _check_online(self):
        if self.offline:
            raise ChainError("Mock RPC endpoint unreachable")

    def _convert(self, token_in: str, token_out: str, fee: Optional[int], amount_in: int) -> int:
        key = (token_in.lower(), token_out.lower(), fee)
        if key not in self._rates:
            raise ChainError(f"No pool for {token_in} -> {token_out} (fee={fee})")
        scale = Decimal(10) ** (self.get_decimals(token_out) - self.get_decimals(token_in))
        out = Decimal(amount_in) * self._rates[key] * scale
        return int(out.to_integral_value(rounding=ROUND_FLOOR))

    def _mine(self, kind: str, payload: dict) -> str:
        self._tx_counter += 1
        tx_id = f"0xmock{self._tx_counter:060x}"
        failed = self._fail_next.get(kind, 0) > 0
        if failed:
            self._fail_next[kind] -= 1
        self._receipts[tx_id] = TxReceipt(
            transaction_id=tx_id,
            success=not failed,
            gas_used=self._gas_used,
            effective_gas_price=self._gas_price,
        )
        self.transactions.append((kind, dict(payload, transaction_id=tx_id, success=not failed)))
        logger.debug(f"MockChain mined {kind} {tx_id} (success={not failed})")
        return tx_id

    def get_chain_id(self) -> int:
        self._check_online()
        return self._chain_id

    def get_decimals(self, token: str) -> int:
        self._check_online()
        if token.lower() not in self._decimals:
            raise ChainError(f"Token {token} not found.")
        return self._decimals[token.lower()]

    def get_balance(self, token: str, owner: str) -> int:
        self._check_online()
        return self._balances.get((token.lower(), owner.lower()), 0)

    def get_allowance(self, token: str, owner: str, spender: str) -> int:
        self._check_online()
        return self._allowances.get((token.lower(), owner.lower(), spender.lower()), 0)

    def quote_exact_input_single(self, venue: Venue, token_in: str, token_out: str, fee_tier: FeeTier, amount_in: int) -> int:
        self._check_online()
        return self._convert(token_in, token_out, int(fee_tier), amount_in)

    def get_amounts_out(self, venue: Venue, amount_in: int, path: List[str]) -> List[int]:
        self._check_online()
        amounts = [amount_in]
        for token_in, token_out in zip(path, path[1:]):
            amounts.append(self._convert(token_in, token_out, None, amounts[-1]))
        return amounts

    def approve(self, token: str, spender: str, amount: int, owner: str) -> str:
        self._check_online()
        tx_id = self._mine("approve", {"token": token, "spender": spender, "amount": amount, "owner": owner})
        if self._receipts[tx_id].success:
            self.set_allowance(token, owner, spender, amount)
        return tx_id

    def submit_swap(self, venue: Venue, order: SwapOrder, sender: str) -> str:
        self._check_online()
        return self._mine("swap", {"venue": venue.name, "order": order, "sender": sender})

    def wait_for_receipt(self, transaction_id: str, timeout: Optional[float] = None) -> TxReceipt:
        self._check_online()
        if transaction_id not in self._receipts:
            raise ChainError(f"Transaction {transaction_id} not found.")
        return self._receipts[transaction_id]
