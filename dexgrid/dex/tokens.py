import logging
from decimal import Decimal
from typing import Dict

from dexgrid.chain.base import ChainInterface
from dexgrid.core.math import from_base_units, to_base_units

logger = logging.getLogger(__name__)

class TokenMetadataCache:
    """Resolves and memoizes ERC-20 decimals per token address."""

    def __init__(self, chain: ChainInterface):
        self.chain = chain
        self._decimals: Dict[str, int] = {}

    def decimals(self, token: str) -> int:
        key = token.lower()
        if key not in self._decimals:
            self._decimals[key] = self.chain.get_decimals(token)
            logger.debug(f"Resolved decimals for {token}: {self._decimals[key]}")
        return self._decimals[key]

    def one_unit(self, token: str) -> int:
        return 10 ** self.decimals(token)

    def to_base_units(self, token: str, amount) -> int:
        return to_base_units(amount, self.decimals(token))

    def format(self, token: str, amount: int) -> Decimal:
        return from_base_units(amount, self.decimals(token))
