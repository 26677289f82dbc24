import pytest
import requests
from unittest.mock import MagicMock
from web3 import Web3
from web3.exceptions import TimeExhausted

from dexgrid.chain.base import ChainError, ChainTimeoutError, SwapOrder
from dexgrid.chain.web3_client import Web3ChainClient, ROUTER_ADDRESS_THIS
from dexgrid.dex.venues import ARBITRUM_UNISWAP_V3, POLYGON_QUICKSWAP_V2, FeeTier

from conftest import WETH, USDC, WMATIC, USDT

PRIVATE_KEY = "0x" + "11" * 32

def make_client(private_key: str = ""):
    w3 = MagicMock()
    w3.eth.chain_id = 42161
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = b"\xab" * 32
    contract = w3.eth.contract.return_value
    contract.encode_abi.side_effect = lambda name, args: f"enc:{name}"
    client = Web3ChainClient(private_key=private_key, w3=w3)
    return client, w3, contract

def test_get_decimals():
    client, w3, contract = make_client()
    contract.functions.decimals.return_value.call.return_value = 6

    assert client.get_decimals(USDC) == 6
    _, kwargs = w3.eth.contract.call_args
    assert kwargs["address"] == Web3.to_checksum_address(USDC)

def test_quote_exact_input_single_passes_struct():
    client, w3, contract = make_client()
    contract.functions.quoteExactInputSingle.return_value.call.return_value = [1234, 0, 1, 90000]

    out = client.quote_exact_input_single(ARBITRUM_UNISWAP_V3, WETH, USDC, FeeTier.MID, 10**18)

    assert out == 1234
    params = contract.functions.quoteExactInputSingle.call_args[0][0]
    assert params == (Web3.to_checksum_address(WETH), Web3.to_checksum_address(USDC), 10**18, 3000, 0)
    _, kwargs = w3.eth.contract.call_args
    assert kwargs["address"] == Web3.to_checksum_address(ARBITRUM_UNISWAP_V3.quoter)

def test_network_errors_are_wrapped():
    client, _, contract = make_client()
    contract.functions.allowance.return_value.call.side_effect = requests.ConnectionError("refused")

    with pytest.raises(ChainError, match="Network error"):
        client.get_allowance(USDC, WETH, ARBITRUM_UNISWAP_V3.router)

def test_rpc_timeout_is_retryable():
    client, _, contract = make_client()
    contract.functions.decimals.return_value.call.side_effect = requests.Timeout("slow")

    with pytest.raises(ChainTimeoutError):
        client.get_decimals(USDC)

def test_wait_for_receipt_maps_fields():
    client, w3, _ = make_client()
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 1, "gasUsed": 120000, "effectiveGasPrice": 10**8}

    receipt = client.wait_for_receipt("0xabc", timeout=30)

    assert receipt.success is True
    assert receipt.gas_used == 120000
    assert receipt.effective_gas_price == 10**8
    w3.eth.wait_for_transaction_receipt.assert_called_once_with("0xabc", timeout=30)

def test_wait_for_receipt_failure_status():
    client, w3, _ = make_client()
    w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "gasUsed": 50000, "effectiveGasPrice": 1}
    assert client.wait_for_receipt("0xabc").success is False

def test_wait_for_receipt_timeout():
    client, w3, _ = make_client()
    w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("not mined")

    with pytest.raises(ChainTimeoutError):
        client.wait_for_receipt("0xabc", timeout=1)

def test_writes_require_private_key():
    client, _, _ = make_client()
    with pytest.raises(ChainError, match="Private key required"):
        client.approve(USDC, ARBITRUM_UNISWAP_V3.router, 100, WETH)

def test_approve_signs_and_sends_exact_amount():
    client, w3, contract = make_client(PRIVATE_KEY)
    contract.functions.approve.return_value.build_transaction.return_value = {"to": USDC}

    tx_hash = client.approve(USDC, ARBITRUM_UNISWAP_V3.router, 250, client.address)

    assert tx_hash == "0x" + "ab" * 32
    contract.functions.approve.assert_called_once_with(Web3.to_checksum_address(ARBITRUM_UNISWAP_V3.router), 250)
    contract.functions.approve.return_value.build_transaction.assert_called_once_with(
        {"from": client.address, "nonce": 7, "value": 0, "chainId": 42161}
    )
    w3.eth.account.sign_transaction.assert_called_once_with({"to": USDC}, private_key=PRIVATE_KEY)

def test_cannot_sign_for_other_account():
    client, _, _ = make_client(PRIVATE_KEY)
    with pytest.raises(ChainError, match="Cannot sign"):
        client.approve(USDC, ARBITRUM_UNISWAP_V3.router, 250, "0x" + "22" * 20)

def test_concentrated_swap_goes_through_multicall_with_deadline():
    client, _, contract = make_client(PRIVATE_KEY)
    order = SwapOrder(
        route=(USDC, WETH), fee_tier=FeeTier.LOW, amount_in=100, amount_out_min=95,
        recipient=client.address, deadline=1_700_001_200,
    )

    client.submit_swap(ARBITRUM_UNISWAP_V3, order, client.address)

    contract.functions.multicall.assert_called_once_with(1_700_001_200, ["enc:exactInputSingle"])
    build = contract.functions.multicall.return_value.build_transaction
    assert build.call_args[0][0]["value"] == 0

def test_concentrated_native_out_unwraps_to_recipient():
    client, _, contract = make_client(PRIVATE_KEY)
    order = SwapOrder(
        route=(USDC, WETH), fee_tier=FeeTier.LOW, amount_in=100, amount_out_min=95,
        recipient=client.address, deadline=1, native_out=True,
    )

    client.submit_swap(ARBITRUM_UNISWAP_V3, order, client.address)

    contract.functions.multicall.assert_called_once_with(1, ["enc:exactInputSingle", "enc:unwrapWETH9"])
    calls = [c for c in contract.encode_abi.call_args_list if c[0][0] == "exactInputSingle"]
    params = calls[0][1]["args"][0]
    assert params[3] == Web3.to_checksum_address(ROUTER_ADDRESS_THIS)

def test_constant_product_native_in_attaches_value():
    client, _, contract = make_client(PRIVATE_KEY)
    order = SwapOrder(
        route=(WMATIC, USDT), fee_tier=None, amount_in=10**18, amount_out_min=1,
        recipient=client.address, deadline=5, native_in=True,
    )

    client.submit_swap(POLYGON_QUICKSWAP_V2, order, client.address)

    fn = contract.functions.swapExactETHForTokens
    fn.assert_called_once()
    assert fn.return_value.build_transaction.call_args[0][0]["value"] == 10**18
    contract.functions.swapExactTokensForTokens.assert_not_called()
