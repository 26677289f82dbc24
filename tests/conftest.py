import pytest

from dexgrid.chain.mock import MockChain
from dexgrid.dex.venues import ARBITRUM_UNISWAP_V3, POLYGON_QUICKSWAP_V2, FeeTier

WETH = ARBITRUM_UNISWAP_V3.tokens["WETH"]
USDC = ARBITRUM_UNISWAP_V3.tokens["USDC"]
ARB = ARBITRUM_UNISWAP_V3.tokens["ARB"]
ACCOUNT = "0x1111111111111111111111111111111111111111"

WMATIC = POLYGON_QUICKSWAP_V2.wrapped_native
USDT = POLYGON_QUICKSWAP_V2.tokens["USDT"]
DAI = "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063"


@pytest.fixture
def venue():
    return ARBITRUM_UNISWAP_V3


@pytest.fixture
def chain():
    """Arbitrum-like mock: WETH (18) / USDC (6) priced at 1500 on the 0.05% pool."""
    c = MockChain(chain_id=42161)
    c.add_token(WETH, 18)
    c.add_token(USDC, 6)
    c.add_token(ARB, 18)
    c.set_price(WETH, USDC, 1500.0, FeeTier.LOW)
    return c


@pytest.fixture
def v2_venue():
    return POLYGON_QUICKSWAP_V2


@pytest.fixture
def v2_chain():
    c = MockChain(chain_id=137)
    c.add_token(WMATIC, 18)
    c.add_token(USDT, 6)
    c.add_token(DAI, 18)
    c.set_price(WMATIC, USDT, 0.5)
    c.set_price(WMATIC, DAI, 0.5)
    return c
