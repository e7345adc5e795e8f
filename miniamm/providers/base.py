from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..core.state.models import TokenSlot


@dataclass
class Receipt:
    """Confirmation reported by the ledger for an included transaction."""
    transaction_hash: str
    status: int                                 # 1 = success, 0 = reverted
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@runtime_checkable
class TransactionHandle(Protocol):
    """A submitted write: its hash plus a way to wait for inclusion."""

    hash: str

    async def wait(self) -> Receipt:
        ...


@dataclass
class ContractCall:
    """A write described well enough to be estimated or sent."""
    to: str
    data: str
    from_address: str
    gas: Optional[int] = None
    gas_price: Optional[int] = None
    value: int = 0
    description: str = ""


class LedgerReader(ABC):
    """Read side of the ledger the cache polls."""

    name: str = "ledger"

    @property
    @abstractmethod
    def spender(self) -> str:
        """Address allowances are granted to (the pair contract)."""
        pass

    @abstractmethod
    async def reserve0(self) -> int:
        pass

    @abstractmethod
    async def reserve1(self) -> int:
        pass

    @abstractmethod
    async def total_supply(self) -> int:
        """LP token supply"""
        pass

    @abstractmethod
    async def balance_of(self, token: TokenSlot, account: str) -> int:
        pass

    @abstractmethod
    async def allowance(self, token: TokenSlot, owner: str, spender: str) -> int:
        pass

    @abstractmethod
    async def token_name(self, token: TokenSlot) -> str:
        pass

    @abstractmethod
    async def token_symbol(self, token: TokenSlot) -> str:
        pass

    @abstractmethod
    async def token_decimals(self, token: TokenSlot) -> int:
        pass


class LedgerWriter(ABC):
    """
    Write side of the ledger.

    Every write returns as soon as the ledger accepted it; errors raised here
    are raw and are classified by the transaction controller.
    """

    @abstractmethod
    async def estimate_gas(self, call: ContractCall) -> int:
        pass

    @abstractmethod
    def build_approve(self, token: TokenSlot, spender: str, amount: int) -> ContractCall:
        pass

    @abstractmethod
    def build_mint(self, token: TokenSlot, amount: int) -> ContractCall:
        pass

    @abstractmethod
    def build_swap(self, x_amount_in: int, y_amount_in: int) -> ContractCall:
        pass

    @abstractmethod
    def build_add_liquidity(self, amount0: int, amount1: int) -> ContractCall:
        pass

    @abstractmethod
    def build_remove_liquidity(self, lp_amount: int) -> ContractCall:
        pass

    @abstractmethod
    async def send(self, call: ContractCall) -> TransactionHandle:
        pass

    async def _send_with_gas(
        self,
        call: ContractCall,
        gas: Optional[int],
        gas_price: Optional[int],
    ) -> TransactionHandle:
        call.gas = gas
        call.gas_price = gas_price
        return await self.send(call)

    async def approve(
        self,
        token: TokenSlot,
        spender: str,
        amount: int,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> TransactionHandle:
        return await self._send_with_gas(self.build_approve(token, spender, amount), gas, gas_price)

    async def mint(
        self,
        token: TokenSlot,
        amount: int,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> TransactionHandle:
        return await self._send_with_gas(self.build_mint(token, amount), gas, gas_price)

    async def swap(
        self,
        x_amount_in: int,
        y_amount_in: int,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> TransactionHandle:
        return await self._send_with_gas(self.build_swap(x_amount_in, y_amount_in), gas, gas_price)

    async def add_liquidity(
        self,
        amount0: int,
        amount1: int,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> TransactionHandle:
        return await self._send_with_gas(self.build_add_liquidity(amount0, amount1), gas, gas_price)

    async def remove_liquidity(
        self,
        lp_amount: int,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> TransactionHandle:
        return await self._send_with_gas(self.build_remove_liquidity(lp_amount), gas, gas_price)
