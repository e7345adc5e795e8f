"""
JSON-RPC ledger adapter.

Implements both ledger interfaces against an EVM node over HTTP:
reads go through ``eth_call``, writes through ``eth_sendTransaction`` (the
node or the wallet behind it holds the key), the pre-flight probe through
``eth_estimateGas``, and confirmation through receipt polling.

Errors are raised raw: JSON-RPC error objects become ``RpcError`` with the
node's code, message and data so the transaction controller can classify
them.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx
from eth_utils import keccak, to_checksum_address

from ..config import settings
from ..core.state.models import TokenSlot
from .base import ContractCall, LedgerReader, LedgerWriter, Receipt


logger = logging.getLogger(__name__)


class RpcError(Exception):
    """Error object returned by the node."""

    def __init__(self, code: Any, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __repr__(self) -> str:
        return f"RpcError(code={self.code!r}, message={self.message!r})"


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith("0x") else value


def _encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError("Value must be non-negative")
    return hex(value)[2:].rjust(64, "0")


def _encode_address(address: str) -> str:
    addr = _strip_0x(address).lower()
    if len(addr) != 40:
        raise ValueError(f"Invalid address length: {address}")
    return addr.rjust(64, "0")


def selector(signature: str) -> str:
    return "0x" + keccak(text=signature)[:4].hex()


def encode_call(signature: str, *args: Any) -> str:
    """Calldata for a function taking only static ``address``/``uint256`` arguments."""
    parts = [selector(signature)]
    for arg in args:
        if isinstance(arg, str):
            parts.append(_encode_address(arg))
        else:
            parts.append(_encode_uint(int(arg)))
    return "".join(parts)


def decode_uint(result: Optional[str]) -> int:
    data = _strip_0x(result or "")
    if not data:
        raise ValueError("Empty eth_call result")
    return int(data[:64], 16)


def decode_string(result: Optional[str]) -> str:
    """Decode an ABI ``string`` return value, accepting legacy ``bytes32`` returns."""
    data = _strip_0x(result or "")
    if not data:
        raise ValueError("Empty eth_call result")
    raw = bytes.fromhex(data)

    if len(raw) == 32:
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace")

    offset = int.from_bytes(raw[:32], "big")
    length = int.from_bytes(raw[offset:offset + 32], "big")
    start = offset + 32
    if start + length > len(raw):
        raise ValueError("Malformed string return data")
    return raw[start:start + length].decode("utf-8", errors="replace")


def _hex_int(value: Optional[str], default: int = 0) -> int:
    if value is None:
        return default
    return int(value, 16)


# Function signatures of the pair and token contracts
RESERVE0 = "xReserve()"
RESERVE1 = "yReserve()"
TOTAL_SUPPLY = "totalSupply()"
BALANCE_OF = "balanceOf(address)"
ALLOWANCE = "allowance(address,address)"
NAME = "name()"
SYMBOL = "symbol()"
DECIMALS = "decimals()"
APPROVE = "approve(address,uint256)"
FREE_MINT = "freeMintToSender(uint256)"
SWAP = "swap(uint256,uint256)"
ADD_LIQUIDITY = "addLiquidity(uint256,uint256)"
REMOVE_LIQUIDITY = "removeLiquidity(uint256)"


class RpcTransactionHandle:
    """Submitted transaction; ``wait()`` polls for its receipt."""

    def __init__(self, ledger: "JsonRpcLedger", tx_hash: str):
        self.ledger = ledger
        self.hash = tx_hash

    async def wait(self) -> Receipt:
        while True:
            receipt = await self.ledger.get_receipt(self.hash)
            if receipt is not None:
                return receipt
            await asyncio.sleep(self.ledger.poll_interval)

    def __repr__(self) -> str:
        return f"RpcTransactionHandle({self.hash})"


class JsonRpcLedger(LedgerReader, LedgerWriter):
    """Pair, token0, token1 and LP token (the pair itself) over one RPC endpoint."""

    name = "json-rpc"

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        account: Optional[str] = None,
        *,
        amm_address: Optional[str] = None,
        token0_address: Optional[str] = None,
        token1_address: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: Optional[float] = None,
        poll_interval_seconds: Optional[float] = None,
    ):
        self.rpc_url = rpc_url or settings.rpc_url
        self.account = to_checksum_address(account) if account else None
        self.amm_address = to_checksum_address(amm_address or settings.amm_address)
        self.addresses: Dict[TokenSlot, str] = {
            TokenSlot.TOKEN0: to_checksum_address(token0_address or settings.token0_address),
            TokenSlot.TOKEN1: to_checksum_address(token1_address or settings.token1_address),
            TokenSlot.LP: self.amm_address,
        }
        self.poll_interval = poll_interval_seconds or settings.confirmation_poll_interval_seconds
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds or settings.request_timeout_seconds
        )
        self._owns_client = client is None
        self._ids = itertools.count(1)

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        """Make a JSON-RPC call and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }

        response = await self._client.post(self.rpc_url, json=payload)
        response.raise_for_status()
        result = response.json()

        if result.get("error"):
            error = result["error"]
            raise RpcError(error.get("code"), error.get("message", "RPC error"), error.get("data"))

        return result.get("result")

    async def _eth_call(self, to: str, data: str) -> str:
        return await self._rpc_call("eth_call", [{"to": to, "data": data}, "latest"])

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def set_account(self, account: Optional[str]) -> None:
        self.account = to_checksum_address(account) if account else None

    # ---------------------------
    # LedgerReader
    # ---------------------------
    @property
    def spender(self) -> str:
        return self.amm_address

    async def reserve0(self) -> int:
        return decode_uint(await self._eth_call(self.amm_address, encode_call(RESERVE0)))

    async def reserve1(self) -> int:
        return decode_uint(await self._eth_call(self.amm_address, encode_call(RESERVE1)))

    async def total_supply(self) -> int:
        return decode_uint(await self._eth_call(self.amm_address, encode_call(TOTAL_SUPPLY)))

    async def balance_of(self, token: TokenSlot, account: str) -> int:
        data = encode_call(BALANCE_OF, account)
        return decode_uint(await self._eth_call(self.addresses[token], data))

    async def allowance(self, token: TokenSlot, owner: str, spender: str) -> int:
        data = encode_call(ALLOWANCE, owner, spender)
        return decode_uint(await self._eth_call(self.addresses[token], data))

    async def token_name(self, token: TokenSlot) -> str:
        return decode_string(await self._eth_call(self.addresses[token], encode_call(NAME)))

    async def token_symbol(self, token: TokenSlot) -> str:
        return decode_string(await self._eth_call(self.addresses[token], encode_call(SYMBOL)))

    async def token_decimals(self, token: TokenSlot) -> int:
        return decode_uint(await self._eth_call(self.addresses[token], encode_call(DECIMALS)))

    # ---------------------------
    # LedgerWriter
    # ---------------------------
    def _call(self, to: str, data: str, description: str) -> ContractCall:
        if not self.account:
            raise RpcError("UNKNOWN_ACCOUNT", "unknown account: no sender configured")
        return ContractCall(to=to, data=data, from_address=self.account, description=description)

    def build_approve(self, token: TokenSlot, spender: str, amount: int) -> ContractCall:
        return self._call(self.addresses[token], encode_call(APPROVE, spender, amount), "approve")

    def build_mint(self, token: TokenSlot, amount: int) -> ContractCall:
        return self._call(self.addresses[token], encode_call(FREE_MINT, amount), "mint")

    def build_swap(self, x_amount_in: int, y_amount_in: int) -> ContractCall:
        return self._call(self.amm_address, encode_call(SWAP, x_amount_in, y_amount_in), "swap")

    def build_add_liquidity(self, amount0: int, amount1: int) -> ContractCall:
        data = encode_call(ADD_LIQUIDITY, amount0, amount1)
        return self._call(self.amm_address, data, "add_liquidity")

    def build_remove_liquidity(self, lp_amount: int) -> ContractCall:
        data = encode_call(REMOVE_LIQUIDITY, lp_amount)
        return self._call(self.amm_address, data, "remove_liquidity")

    @staticmethod
    def _tx_object(call: ContractCall) -> Dict[str, str]:
        tx = {"from": call.from_address, "to": call.to, "data": call.data}
        if call.value:
            tx["value"] = hex(call.value)
        if call.gas is not None:
            tx["gas"] = hex(call.gas)
        if call.gas_price is not None:
            tx["gasPrice"] = hex(call.gas_price)
        return tx

    async def estimate_gas(self, call: ContractCall) -> int:
        tx = self._tx_object(call)
        tx.pop("gas", None)
        return _hex_int(await self._rpc_call("eth_estimateGas", [tx]))

    async def send(self, call: ContractCall) -> RpcTransactionHandle:
        tx_hash = await self._rpc_call("eth_sendTransaction", [self._tx_object(call)])
        logger.info("Transaction sent: %s (%s, gas=%s)", tx_hash, call.description, call.gas)
        return RpcTransactionHandle(self, tx_hash)

    async def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        raw = await self._rpc_call("eth_getTransactionReceipt", [tx_hash])
        if not raw:
            return None
        return Receipt(
            transaction_hash=raw.get("transactionHash", tx_hash),
            status=_hex_int(raw.get("status"), default=1),
            block_number=_hex_int(raw.get("blockNumber")) if raw.get("blockNumber") else None,
            gas_used=_hex_int(raw.get("gasUsed")) if raw.get("gasUsed") else None,
            effective_gas_price=(
                _hex_int(raw.get("effectiveGasPrice")) if raw.get("effectiveGasPrice") else None
            ),
            raw=raw,
        )
