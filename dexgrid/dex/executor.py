import time
import logging
from typing import Optional

from dexgrid.chain.base import ChainInterface, SwapOrder
from dexgrid.core.math import DEFAULT_DEADLINE_MINUTES, calculate_amount_out_min, calculate_deadline, MathError
from dexgrid.dex.approval import ApprovalManager
from dexgrid.dex.errors import InvalidSwapRequestError, SwapFailedError
from dexgrid.dex.models import SwapRequest, SwapResult
from dexgrid.dex.quote import QuoteEngine
from dexgrid.dex.venues import Venue

logger = logging.getLogger(__name__)

class SwapExecutor:
    """
    Quote -> bound -> approve -> submit -> confirm, for one venue.
    Every submission blocks until its receipt is in.
    """

    def __init__(
        self,
        chain: ChainInterface,
        venue: Venue,
        quotes: Optional[QuoteEngine] = None,
        approvals: Optional[ApprovalManager] = None,
        deadline_minutes: int = DEFAULT_DEADLINE_MINUTES,
        receipt_timeout: Optional[float] = None,
        dry_run: bool = False,
    ):
        self.chain = chain
        self.venue = venue
        self.quotes = quotes or QuoteEngine(chain, venue)
        self.approvals = approvals or ApprovalManager(chain, venue.router, receipt_timeout)
        self.deadline_minutes = deadline_minutes
        self.receipt_timeout = receipt_timeout
        self.dry_run = dry_run

    def execute_swap(self, request: SwapRequest) -> SwapResult:
        return self._execute(request)

    def swap_native_for_tokens(self, token_out: str, amount_in: int, slippage_bps: int, recipient: str) -> SwapResult:
        """Pays with the chain's native coin, attached as transaction value."""
        request = SwapRequest(
            token_in=self.venue.wrapped_native,
            token_out=token_out,
            amount_in=amount_in,
            slippage_bps=slippage_bps,
            recipient=recipient,
        )
        return self._execute(request, native_in=True)

    def swap_tokens_for_native(self, token_in: str, amount_in: int, slippage_bps: int, recipient: str) -> SwapResult:
        """Receives the chain's native coin (unwrapped by the router)."""
        request = SwapRequest(
            token_in=token_in,
            token_out=self.venue.wrapped_native,
            amount_in=amount_in,
            slippage_bps=slippage_bps,
            recipient=recipient,
        )
        return self._execute(request, native_out=True)

    def _execute(self, request: SwapRequest, native_in: bool = False, native_out: bool = False) -> SwapResult:
        quote = self.quotes.get_quote(request.token_in, request.token_out, request.amount_in)

        try:
            amount_out_min = calculate_amount_out_min(quote.amount_out, request.slippage_bps)
            deadline = calculate_deadline(self.deadline_minutes)
        except MathError as e:
            raise InvalidSwapRequestError(str(e))

        order = SwapOrder(
            route=quote.route,
            fee_tier=quote.fee_tier,
            amount_in=request.amount_in,
            amount_out_min=amount_out_min,
            recipient=request.recipient,
            deadline=deadline,
            native_in=native_in,
            native_out=native_out,
        )
        logger.info(
            f"Swap {request.amount_in} {request.token_in} -> {request.token_out}: "
            f"quoted={quote.amount_out} min={amount_out_min} fee={quote.fee_tier.value if quote.fee_tier else '-'} "
            f"deadline={deadline}"
        )

        if self.dry_run:
            logger.info("[DRY RUN] Swap passed all checks. Skipped approval and submission.")
            return SwapResult(
                transaction_id=f"dry_run_{int(time.time() * 1000)}",
                token_in=request.token_in,
                token_out=request.token_out,
                amount_in=request.amount_in,
                amount_out=quote.amount_out,
                gas_used=0,
                effective_gas_price=0,
            )

        if not native_in:
            self.approvals.ensure_approval(request.token_in, request.amount_in, request.recipient)

        tx_id = self.chain.submit_swap(self.venue, order, request.recipient)
        receipt = self.chain.wait_for_receipt(tx_id, timeout=self.receipt_timeout)
        if not receipt.success:
            raise SwapFailedError(f"Swap {tx_id} failed (slippage or deadline exceeded?)")

        logger.info(f"Swap confirmed: {tx_id} (gas used: {receipt.gas_used})")
        return SwapResult(
            transaction_id=tx_id,
            token_in=request.token_in,
            token_out=request.token_out,
            amount_in=request.amount_in,
            amount_out=quote.amount_out,
            gas_used=receipt.gas_used,
            effective_gas_price=receipt.effective_gas_price,
        )
