import logging
from typing import Optional

from dexgrid.chain.base import ChainInterface
from dexgrid.dex.errors import ApprovalFailedError

logger = logging.getLogger(__name__)

class ApprovalManager:
    """
    Keeps the router's allowance just large enough for the trade at hand.
    Approvals are always for the exact trade amount, never unlimited.
    """

    def __init__(self, chain: ChainInterface, spender: str, receipt_timeout: Optional[float] = None):
        self.chain = chain
        self.spender = spender
        self.receipt_timeout = receipt_timeout

    def ensure_approval(self, token: str, amount: int, owner: str) -> Optional[str]:
        """Returns the approval transaction id, or None when the allowance already covers `amount`."""
        allowance = self.chain.get_allowance(token, owner, self.spender)
        if allowance >= amount:
            logger.debug(f"Allowance {allowance} already covers {amount}")
            return None

        logger.info(f"Approving {amount} of {token} for {self.spender} (current allowance: {allowance})")
        tx_id = self.chain.approve(token, self.spender, amount, owner)
        receipt = self.chain.wait_for_receipt(tx_id, timeout=self.receipt_timeout)
        if not receipt.success:
            raise ApprovalFailedError(f"Approval {tx_id} for {token} failed")

        return tx_id
