class SwapError(Exception):
    """Base exception for quote, approval and swap failures."""
    pass

class NoLiquidityError(SwapError):
    """No fee tier or path produced a positive quote."""
    pass

class ApprovalFailedError(SwapError):
    """The approval transaction was mined with a failure status."""
    pass

class SwapFailedError(SwapError):
    """The swap transaction was mined with a failure status (slippage, deadline...)."""
    pass

class UnsupportedChainError(SwapError):
    pass

class InvalidSwapRequestError(SwapError, ValueError):
    pass
