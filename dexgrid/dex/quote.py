import logging
from typing import List, Optional

from dexgrid.chain.base import ChainInterface, ChainError
from dexgrid.dex.errors import InvalidSwapRequestError, NoLiquidityError, UnsupportedChainError
from dexgrid.dex.models import SwapQuote
from dexgrid.dex.tokens import TokenMetadataCache
from dexgrid.dex.venues import Venue, VenueKind

logger = logging.getLogger(__name__)

class QuoteEngine:
    """
    Finds a tradable route for (token_in, token_out, amount_in) on one venue.

    Concentrated-liquidity venues: fee tiers are probed in the venue's declared
    order and the first tier with a strictly positive output wins. Later tiers
    are never consulted, even if they would pay more, so the chosen tier is
    deterministic for fee display.

    Constant-product venues: the path is fixed. Direct when either side is the
    wrapped-native token, otherwise hopping through it.
    """

    def __init__(self, chain: ChainInterface, venue: Venue, tokens: Optional[TokenMetadataCache] = None):
        self.chain = chain
        self.venue = venue
        self.tokens = tokens or TokenMetadataCache(chain)
        self._chain_checked = False

    def ensure_supported_chain(self):
        if self._chain_checked:
            return
        chain_id = self.chain.get_chain_id()
        if chain_id != self.venue.chain_id:
            raise UnsupportedChainError(
                f"{self.venue.name} is only supported on chain {self.venue.chain_id}, connected to {chain_id}"
            )
        self._chain_checked = True

    def build_path(self, token_in: str, token_out: str) -> List[str]:
        if self.venue.is_wrapped_native(token_in) or self.venue.is_wrapped_native(token_out):
            return [token_in, token_out]
        return [token_in, self.venue.wrapped_native, token_out]

    def get_quote(self, token_in: str, token_out: str, amount_in: int) -> SwapQuote:
        if amount_in <= 0:
            raise InvalidSwapRequestError(f"Amount in must be > 0, got {amount_in}")
        if token_in.lower() == token_out.lower():
            raise InvalidSwapRequestError("Token in and token out must differ")

        self.ensure_supported_chain()

        if self.venue.kind == VenueKind.CONSTANT_PRODUCT:
            quote = self._quote_constant_product(token_in, token_out, amount_in)
        else:
            quote = self._quote_fee_tiers(token_in, token_out, amount_in)

        logger.info(
            f"Quote {amount_in} {token_in} -> {quote.amount_out} {token_out} "
            f"(route={len(quote.route)} hops, fee={quote.fee_tier.percent if quote.fee_tier else '-'}%)"
        )
        return quote

    def _quote_fee_tiers(self, token_in: str, token_out: str, amount_in: int) -> SwapQuote:
        for tier in self.venue.fee_tiers:
            try:
                amount_out = self.chain.quote_exact_input_single(self.venue, token_in, token_out, tier, amount_in)
            except ChainError as e:
                logger.debug(f"Fee tier {tier.percent}% failed: {e}")
                continue

            if amount_out > 0:
                return SwapQuote(
                    amount_out=amount_out,
                    route=(token_in, token_out),
                    fee_tier=tier,
                    router_address=self.venue.router,
                )
            logger.debug(f"Fee tier {tier.percent}% returned no output")

        raise NoLiquidityError(f"No liquidity found for {token_in} -> {token_out} on {self.venue.name}")

    def _quote_constant_product(self, token_in: str, token_out: str, amount_in: int) -> SwapQuote:
        path = self.build_path(token_in, token_out)
        try:
            amounts = self.chain.get_amounts_out(self.venue, amount_in, path)
        except ChainError as e:
            raise NoLiquidityError(f"No liquidity found for path {path} on {self.venue.name}: {e}")

        if not amounts or amounts[-1] <= 0:
            raise NoLiquidityError(f"No liquidity found for path {path} on {self.venue.name}")

        return SwapQuote(
            amount_out=amounts[-1],
            route=tuple(path),
            fee_tier=None,
            router_address=self.venue.router,
        )
