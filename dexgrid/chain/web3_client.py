import logging
from typing import Any, Callable, Dict, List, Optional

import requests
from eth_account import Account
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from dexgrid.chain.base import ChainInterface, ChainError, ChainTimeoutError, SwapOrder, TxReceipt
from dexgrid.dex.venues import FeeTier, Venue, VenueKind

logger = logging.getLogger(__name__)

# SwapRouter02 sentinel recipient: "keep the output in the router" (for unwrapWETH9)
ROUTER_ADDRESS_THIS = "0x0000000000000000000000000000000000000002"

ERC20_ABI = [
    {"inputs": [], "name": "decimals", "outputs": [{"name": "", "type": "uint8"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "account", "type": "address"}], "name": "balanceOf", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "owner", "type": "address"}, {"name": "spender", "type": "address"}], "name": "allowance", "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "spender", "type": "address"}, {"name": "amount", "type": "uint256"}], "name": "approve", "outputs": [{"name": "", "type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
]

QUOTER_V2_ABI = [
    {
        "inputs": [{
            "components": [
                {"name": "tokenIn", "type": "address"},
                {"name": "tokenOut", "type": "address"},
                {"name": "amountIn", "type": "uint256"},
                {"name": "fee", "type": "uint24"},
                {"name": "sqrtPriceLimitX96", "type": "uint160"},
            ],
            "name": "params",
            "type": "tuple",
        }],
        "name": "quoteExactInputSingle",
        "outputs": [
            {"name": "amountOut", "type": "uint256"},
            {"name": "sqrtPriceX96After", "type": "uint160"},
            {"name": "initializedTicksCrossed", "type": "uint32"},
            {"name": "gasEstimate", "type": "uint256"},
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]

SWAP_ROUTER02_ABI = [
    {
        "inputs": [{
            "components": [
                {"name": "tokenIn", "type": "address"},
                {"name": "tokenOut", "type": "address"},
                {"name": "fee", "type": "uint24"},
                {"name": "recipient", "type": "address"},
                {"name": "amountIn", "type": "uint256"},
                {"name": "amountOutMinimum", "type": "uint256"},
                {"name": "sqrtPriceLimitX96", "type": "uint160"},
            ],
            "name": "params",
            "type": "tuple",
        }],
        "name": "exactInputSingle",
        "outputs": [{"name": "amountOut", "type": "uint256"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"name": "deadline", "type": "uint256"}, {"name": "data", "type": "bytes[]"}],
        "name": "multicall",
        "outputs": [{"name": "", "type": "bytes[]"}],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [{"name": "amountMinimum", "type": "uint256"}, {"name": "recipient", "type": "address"}],
        "name": "unwrapWETH9",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
]

_V2_SWAP_INPUTS = [
    {"name": "amountOutMin", "type": "uint256"},
    {"name": "path", "type": "address[]"},
    {"name": "to", "type": "address"},
    {"name": "deadline", "type": "uint256"},
]

V2_ROUTER_ABI = [
    {"inputs": [{"name": "amountIn", "type": "uint256"}, {"name": "path", "type": "address[]"}], "name": "getAmountsOut", "outputs": [{"name": "amounts", "type": "uint256[]"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"name": "amountIn", "type": "uint256"}] + _V2_SWAP_INPUTS, "name": "swapExactTokensForTokens", "outputs": [{"name": "amounts", "type": "uint256[]"}], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": _V2_SWAP_INPUTS, "name": "swapExactETHForTokens", "outputs": [{"name": "amounts", "type": "uint256[]"}], "stateMutability": "payable", "type": "function"},
    {"inputs": [{"name": "amountIn", "type": "uint256"}] + _V2_SWAP_INPUTS, "name": "swapExactTokensForETH", "outputs": [{"name": "amounts", "type": "uint256[]"}], "stateMutability": "nonpayable", "type": "function"},
]


class Web3ChainClient(ChainInterface):
    """
    ChainInterface over a JSON-RPC endpoint using web3.py.
    Without a private key the client is read-only: quotes work, writes raise.
    """

    def __init__(self, rpc_url: str = "", private_key: str = "", rpc_timeout: float = 15.0, w3: Optional[Web3] = None):
        if w3 is None:
            w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": rpc_timeout}))
        self.w3 = w3
        self._private_key = private_key
        self.address = Account.from_key(private_key).address if private_key else None

    def _call(self, description: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except TimeExhausted as e:
            raise ChainTimeoutError(f"Timed out waiting for {description}: {e}")
        except requests.Timeout as e:
            raise ChainTimeoutError(f"RPC timeout during {description}: {e}")
        except requests.RequestException as e:
            logger.error(f"RPC request failed during {description}: {e}")
            raise ChainError(f"Network error during {description}: {e}")
        except Web3Exception as e:
            raise ChainError(f"{description} failed: {e}")

    def _token(self, token: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)

    def _send(self, description: str, tx_fn: Callable[[Dict[str, Any]], Dict[str, Any]], sender: str, value: int = 0) -> str:
        if not self._private_key:
            raise ChainError(f"Private key required to send {description}.")
        if sender.lower() != self.address.lower():
            raise ChainError(f"Cannot sign for {sender}; client key belongs to {self.address}.")

        def send():
            nonce = self.w3.eth.get_transaction_count(self.address, "pending")
            tx = tx_fn({"from": self.address, "nonce": nonce, "value": value, "chainId": self.w3.eth.chain_id})
            signed = self.w3.eth.account.sign_transaction(tx, private_key=self._private_key)
            return self.w3.eth.send_raw_transaction(signed.raw_transaction)

        tx_hash = Web3.to_hex(self._call(description, send))
        logger.info(f"Sent {description}: {tx_hash}")
        return tx_hash

    def get_chain_id(self) -> int:
        return int(self._call("eth_chainId", lambda: self.w3.eth.chain_id))

    def get_decimals(self, token: str) -> int:
        return int(self._call(f"decimals({token})", self._token(token).functions.decimals().call))

    def get_balance(self, token: str, owner: str) -> int:
        fn = self._token(token).functions.balanceOf(Web3.to_checksum_address(owner))
        return int(self._call(f"balanceOf({token})", fn.call))

    def get_allowance(self, token: str, owner: str, spender: str) -> int:
        fn = self._token(token).functions.allowance(Web3.to_checksum_address(owner), Web3.to_checksum_address(spender))
        return int(self._call(f"allowance({token})", fn.call))

    def quote_exact_input_single(self, venue: Venue, token_in: str, token_out: str, fee_tier: FeeTier, amount_in: int) -> int:
        quoter = self.w3.eth.contract(address=Web3.to_checksum_address(venue.quoter), abi=QUOTER_V2_ABI)
        params = (
            Web3.to_checksum_address(token_in),
            Web3.to_checksum_address(token_out),
            amount_in,
            int(fee_tier),
            0,
        )
        result = self._call(f"quoteExactInputSingle(fee={int(fee_tier)})", quoter.functions.quoteExactInputSingle(params).call)
        return int(result[0])

    def get_amounts_out(self, venue: Venue, amount_in: int, path: List[str]) -> List[int]:
        router = self.w3.eth.contract(address=Web3.to_checksum_address(venue.router), abi=V2_ROUTER_ABI)
        fn = router.functions.getAmountsOut(amount_in, [Web3.to_checksum_address(t) for t in path])
        return [int(a) for a in self._call("getAmountsOut", fn.call)]

    def approve(self, token: str, spender: str, amount: int, owner: str) -> str:
        fn = self._token(token).functions.approve(Web3.to_checksum_address(spender), amount)
        return self._send(f"approve({token}, {amount})", fn.build_transaction, owner)

    def submit_swap(self, venue: Venue, order: SwapOrder, sender: str) -> str:
        value = order.amount_in if order.native_in else 0
        if venue.kind == VenueKind.CONCENTRATED:
            build = self._concentrated_swap(venue, order)
        else:
            build = self._constant_product_swap(venue, order)
        return self._send(f"swap {order.amount_in} via {venue.name}", build, sender, value=value)

    def _concentrated_swap(self, venue: Venue, order: SwapOrder) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
        # SwapRouter02 has no deadline on exactInputSingle, so it goes through multicall
        router = self.w3.eth.contract(address=Web3.to_checksum_address(venue.router), abi=SWAP_ROUTER02_ABI)
        token_in, token_out = order.route[0], order.route[-1]
        recipient = ROUTER_ADDRESS_THIS if order.native_out else order.recipient
        params = (
            Web3.to_checksum_address(token_in),
            Web3.to_checksum_address(token_out),
            int(order.fee_tier),
            Web3.to_checksum_address(recipient),
            order.amount_in,
            order.amount_out_min,
            0,
        )
        calls = [router.encode_abi("exactInputSingle", args=[params])]
        if order.native_out:
            calls.append(router.encode_abi("unwrapWETH9", args=[order.amount_out_min, Web3.to_checksum_address(order.recipient)]))
        return router.functions.multicall(order.deadline, calls).build_transaction

    def _constant_product_swap(self, venue: Venue, order: SwapOrder) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
        router = self.w3.eth.contract(address=Web3.to_checksum_address(venue.router), abi=V2_ROUTER_ABI)
        path = [Web3.to_checksum_address(t) for t in order.route]
        to = Web3.to_checksum_address(order.recipient)
        if order.native_in:
            fn = router.functions.swapExactETHForTokens(order.amount_out_min, path, to, order.deadline)
        elif order.native_out:
            fn = router.functions.swapExactTokensForETH(order.amount_in, order.amount_out_min, path, to, order.deadline)
        else:
            fn = router.functions.swapExactTokensForTokens(order.amount_in, order.amount_out_min, path, to, order.deadline)
        return fn.build_transaction

    def wait_for_receipt(self, transaction_id: str, timeout: Optional[float] = None) -> TxReceipt:
        receipt = self._call(
            f"receipt {transaction_id}",
            lambda: self.w3.eth.wait_for_transaction_receipt(transaction_id, timeout=timeout or 120),
        )
        return TxReceipt(
            transaction_id=transaction_id,
            success=receipt["status"] == 1,
            gas_used=int(receipt["gasUsed"]),
            effective_gas_price=int(receipt.get("effectiveGasPrice", 0)),
        )
