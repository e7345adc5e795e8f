"""Shared fixtures: an in-memory ledger that can both read and write."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from miniamm.core.state.models import TokenSlot
from miniamm.providers.base import ContractCall, LedgerReader, LedgerWriter, Receipt


ACCOUNT = "0x1111111111111111111111111111111111111111"
PAIR = "0x2222222222222222222222222222222222222222"
ONE = 10**18


class FakeHandle:
    def __init__(self, tx_hash: str, status: int = 1, delay: float = 0.0):
        self.hash = tx_hash
        self.status = status
        self.delay = delay

    async def wait(self) -> Receipt:
        if self.delay:
            await asyncio.sleep(self.delay)
        return Receipt(transaction_hash=self.hash, status=self.status, block_number=1)


class FakeLedger(LedgerReader, LedgerWriter):
    """Pair state held in plain attributes; sent calls are recorded, not executed."""

    def __init__(self):
        self.reserves = [1000 * ONE, 2000 * ONE]
        self.supply = 1000 * ONE
        self.balances = {TokenSlot.TOKEN0: 100 * ONE, TokenSlot.TOKEN1: 100 * ONE, TokenSlot.LP: 10 * ONE}
        self.allowances = {TokenSlot.TOKEN0: 0, TokenSlot.TOKEN1: 0}
        self.sent: List[ContractCall] = []
        self.estimated: List[ContractCall] = []
        self.estimate_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.receipt_status = 1
        self.receipt_delay = 0.0

    # Reader
    @property
    def spender(self) -> str:
        return PAIR

    async def reserve0(self) -> int:
        return self.reserves[0]

    async def reserve1(self) -> int:
        return self.reserves[1]

    async def total_supply(self) -> int:
        return self.supply

    async def balance_of(self, token: TokenSlot, account: str) -> int:
        return self.balances[token]

    async def allowance(self, token: TokenSlot, owner: str, spender: str) -> int:
        return self.allowances[token]

    async def token_name(self, token: TokenSlot) -> str:
        return {TokenSlot.TOKEN0: "Token A", TokenSlot.TOKEN1: "Token B", TokenSlot.LP: "MiniAMM LP"}[token]

    async def token_symbol(self, token: TokenSlot) -> str:
        return {TokenSlot.TOKEN0: "TKA", TokenSlot.TOKEN1: "TKB", TokenSlot.LP: "MINI-LP"}[token]

    async def token_decimals(self, token: TokenSlot) -> int:
        return 18

    # Writer
    def _call(self, description: str, **args: Any) -> ContractCall:
        return ContractCall(to=PAIR, data=repr(args), from_address=ACCOUNT, description=description)

    def build_approve(self, token, spender, amount):
        return self._call("approve", token=token, spender=spender, amount=amount)

    def build_mint(self, token, amount):
        return self._call("mint", token=token, amount=amount)

    def build_swap(self, x_amount_in, y_amount_in):
        return self._call("swap", x=x_amount_in, y=y_amount_in)

    def build_add_liquidity(self, amount0, amount1):
        return self._call("add_liquidity", amount0=amount0, amount1=amount1)

    def build_remove_liquidity(self, lp_amount):
        return self._call("remove_liquidity", lp_amount=lp_amount)

    async def estimate_gas(self, call: ContractCall) -> int:
        self.estimated.append(call)
        if self.estimate_error is not None:
            raise self.estimate_error
        return 50_000

    async def send(self, call: ContractCall) -> FakeHandle:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(call)
        tx_hash = "0x" + f"{len(self.sent):064x}"
        return FakeHandle(tx_hash, status=self.receipt_status, delay=self.receipt_delay)

    @property
    def last_sent(self) -> Dict[str, Any]:
        call = self.sent[-1]
        return {"description": call.description, "data": call.data, "gas": call.gas, "gas_price": call.gas_price}


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def account() -> str:
    return ACCOUNT
